"""
Reservation use cases: what the HTTP routes call.

Creation runs EntityStore -> availability -> price -> atomic insert, then
lets the lifecycle send whatever the initial status calls for. Updates go
through the lifecycle so the transition table and notifications apply.
"""

import time
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from tourism_api.core.exceptions import AvailabilityError, NotFoundError, ReservationError, ValidationError
from tourism_api.core.logging import get_logger
from tourism_api.core.metrics import record_reservation_attempt, reservation_create_latency
from tourism_api.db.base import utcnow
from tourism_api.models.reservation import Reservation
from tourism_api.schemas.reservation import ReservationCreate, ReservationUpdate
from tourism_api.services import entity_store
from tourism_api.services.availability_service import check_availability, to_utc
from tourism_api.services.booking_target import EventTarget, target_from_ids
from tourism_api.services.lifecycle_service import INITIAL_STATUSES, ReservationLifecycle
from tourism_api.services.pricing_service import compute_price
from tourism_api.services.reservation_store import (
    NOT_ENOUGH_TICKETS,
    PLACE_NOT_AVAILABLE,
    ReservationDraft,
    ReservationFilters,
    ReservationListing,
    ReservationStore,
)

logger = get_logger(__name__)

NULLABLE_FIELDS = frozenset({"payment_method", "payment_id"})


class ReservationService:
    def __init__(self, store: ReservationStore, lifecycle: ReservationLifecycle):
        self.store = store
        self.lifecycle = lifecycle

    async def create_reservation(self, db: AsyncSession, data: ReservationCreate) -> Reservation:
        start = time.perf_counter()
        try:
            reservation = await self._create(db, data)
        except AvailabilityError as e:
            record_reservation_attempt("unavailable")
            logger.warning("reservation_rejected", reason=e.message, user_id=data.user_id,
                           event_id=data.event_id, place_id=data.place_id, quantity=data.quantity)
            raise
        except (ValidationError, NotFoundError):
            record_reservation_attempt("invalid")
            raise
        except ReservationError:
            record_reservation_attempt("error")
            raise
        finally:
            reservation_create_latency.observe(time.perf_counter() - start)

        record_reservation_attempt("created")
        logger.info(
            "reservation_created",
            reservation_id=reservation.id,
            user_id=reservation.user_id,
            event_id=reservation.event_id,
            place_id=reservation.place_id,
            quantity=reservation.quantity,
            total_price=str(reservation.total_price),
        )

        await self.lifecycle.on_created(db, reservation)
        return reservation

    async def _create(self, db: AsyncSession, data: ReservationCreate) -> Reservation:
        target = target_from_ids(data.event_id, data.place_id)

        status = data.status or "pending"
        if status not in INITIAL_STATUSES:
            raise ValidationError(
                f"A reservation cannot be created as '{status}'",
                errors=[{"field": "status", "message": "Must be 'pending' or 'confirmed'"}],
            )

        visit_date = to_utc(data.visit_date) if data.visit_date else utcnow()

        if await entity_store.find_user_by_id(db, data.user_id) is None:
            raise NotFoundError("User not found")

        entity = await entity_store.get_target_entity(db, target)
        if entity is None:
            raise NotFoundError(f"{target.kind.capitalize()} not found")

        # Early rejection only; the store re-checks under lock before inserting
        if not await check_availability(db, target.kind, target.id, visit_date, data.quantity):
            raise AvailabilityError(NOT_ENOUGH_TICKETS if isinstance(target, EventTarget) else PLACE_NOT_AVAILABLE)

        total_price = compute_price(target.kind, entity, data.quantity)

        # Close the read transaction so the store starts a fresh one under lock
        await db.commit()

        draft = ReservationDraft(
            user_id=data.user_id,
            target=target,
            quantity=data.quantity,
            visit_date=visit_date,
            total_price=total_price,
            status=status,
            payment_method=data.payment_method,
            payment_id=data.payment_id,
        )
        return await self.store.create(db, draft)

    async def get_reservation(self, db: AsyncSession, reservation_id: int) -> Reservation:
        reservation = await self.store.get_by_id(db, reservation_id)
        if reservation is None:
            raise NotFoundError("Reservation not found")
        return reservation

    async def update_reservation(self, db: AsyncSession, reservation_id: int, data: ReservationUpdate) -> Reservation:
        reservation = await self.get_reservation(db, reservation_id)

        changes = {
            field: value
            for field, value in data.model_dump(exclude_unset=True).items()
            if value is not None or field in NULLABLE_FIELDS
        }
        if changes.get("visit_date") is not None:
            changes["visit_date"] = to_utc(changes["visit_date"])

        return await self.lifecycle.apply_update(db, reservation, changes)

    async def delete_reservation(self, db: AsyncSession, reservation_id: int) -> None:
        reservation = await self.get_reservation(db, reservation_id)
        await self.store.delete(db, reservation)
        logger.info("reservation_deleted", reservation_id=reservation_id)

    async def list_reservations(
        self, db: AsyncSession, filters: Optional[ReservationFilters] = None
    ) -> list[ReservationListing]:
        filters = filters or ReservationFilters()
        if filters.from_date is not None:
            filters.from_date = to_utc(filters.from_date)
        if filters.to_date is not None:
            filters.to_date = to_utc(filters.to_date)
        return await self.store.list(db, filters)

    async def check_availability(
        self, db: AsyncSession, entity_type: str, entity_id: int, visit_date=None, quantity: int = 1
    ) -> bool:
        return await check_availability(db, entity_type, entity_id, visit_date, quantity)
