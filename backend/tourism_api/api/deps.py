"""
FastAPI dependencies wiring the reservation services together.
"""

from fastapi import Depends

from tourism_api.core.config import get_settings
from tourism_api.services.interfaces.notification import NotificationGateway
from tourism_api.services.lifecycle_service import ReservationLifecycle
from tourism_api.services.lock_factory import get_entity_lock
from tourism_api.services.notification_service import get_notification_gateway
from tourism_api.services.reservation_service import ReservationService
from tourism_api.services.reservation_store import ReservationStore


def get_reservation_store() -> ReservationStore:
    return ReservationStore(get_entity_lock())


def get_reservation_service(
    store: ReservationStore = Depends(get_reservation_store),
    gateway: NotificationGateway = Depends(get_notification_gateway),
) -> ReservationService:
    lifecycle = ReservationLifecycle(store, gateway, get_settings())
    return ReservationService(store, lifecycle)
