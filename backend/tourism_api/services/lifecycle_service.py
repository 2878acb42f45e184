"""
Reservation status workflow.

    pending ──> confirmed ──> completed
       │            │
       └────────────┴──> cancelled

cancelled and completed are terminal. Asking for the current status is a
no-op; every other pair not in TRANSITIONS is rejected before anything is
written. The check runs inside ReservationStore.update against the row as
locked there, so two concurrent requests cannot both pass it on a stale read.

The reminder action ("rappler") is not a state: it sends the visit reminder
for the reservation as it stands and persists nothing.

Emails go out after the change has committed. They are bounded by
NOTIFICATION_TIMEOUT_SECONDS and their failures are logged, never raised:
a status change is durable even when its email is not.
"""

import asyncio
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from tourism_api.core.config import Settings
from tourism_api.core.exceptions import InvalidTransitionError, ValidationError
from tourism_api.core.logging import get_logger
from tourism_api.core.metrics import record_notification, record_transition
from tourism_api.models.reservation import Reservation
from tourism_api.services import entity_store
from tourism_api.services.interfaces.notification import NotificationGateway
from tourism_api.services.notification_service import confirmation_email, reminder_email
from tourism_api.services.reservation_store import ReservationStore

logger = get_logger(__name__)

REMINDER = "rappler"
CONFIRMATION = "confirmation"
REMINDER_KIND = "reminder"

TRANSITIONS: dict[str, frozenset[str]] = {
    "pending": frozenset({"confirmed", "cancelled"}),
    "confirmed": frozenset({"completed", "cancelled"}),
    "cancelled": frozenset(),
    "completed": frozenset(),
}

# States a reservation may be created in
INITIAL_STATUSES = frozenset({"pending", "confirmed"})

# States in which a visit reminder still makes sense
REMINDABLE_STATUSES = frozenset({"pending", "confirmed"})


def is_allowed(current: str, requested: str) -> bool:
    return requested == current or requested in TRANSITIONS.get(current, frozenset())


class ReservationLifecycle:
    def __init__(self, store: ReservationStore, gateway: NotificationGateway, settings: Settings):
        self.store = store
        self.gateway = gateway
        self.settings = settings

    async def apply_update(self, db: AsyncSession, reservation: Reservation, changes: dict) -> Reservation:
        """Validate the requested status change against the locked row, persist, then notify."""
        changes = dict(changes)
        requested: Optional[str] = changes.pop("status", None)

        if requested == REMINDER:
            if changes:
                raise ValidationError(
                    "A reminder cannot be combined with other changes",
                    errors=[{"field": field, "message": "Not allowed with status 'rappler'"} for field in changes],
                )
            return await self.send_reminder(db, reservation)

        def authorize(current: Reservation) -> dict:
            allowed = dict(changes)
            if requested is None:
                return allowed
            if not is_allowed(current.status, requested):
                logger.warning("reservation_transition_rejected", reservation_id=current.id,
                               current=current.status, requested=requested)
                raise InvalidTransitionError(current.status, requested)
            if requested != current.status:
                allowed["status"] = requested
            return allowed

        applied = await self.store.update(db, reservation, changes, authorize=authorize)
        reservation = applied.reservation

        if "status" in applied.changes:
            record_transition(applied.previous_status, requested)
            logger.info("reservation_status_changed", reservation_id=reservation.id,
                        from_status=applied.previous_status, to_status=requested)
            await self.on_enter(db, reservation, requested)

        return reservation

    async def send_reminder(self, db: AsyncSession, reservation: Reservation) -> Reservation:
        if reservation.status not in REMINDABLE_STATUSES:
            raise InvalidTransitionError(reservation.status, REMINDER_KIND)
        await self.notify(db, reservation, REMINDER_KIND)
        return reservation

    async def on_created(self, db: AsyncSession, reservation: Reservation) -> None:
        if reservation.status != "pending":
            await self.on_enter(db, reservation, reservation.status)

    async def on_enter(self, db: AsyncSession, reservation: Reservation, status: str) -> None:
        if status == "confirmed":
            await self.notify(db, reservation, CONFIRMATION)

    async def notify(self, db: AsyncSession, reservation: Reservation, kind: str) -> bool:
        """Best-effort email to the reservation's owner. Returns whether it was sent."""
        user = await entity_store.find_user_by_id(db, reservation.user_id)
        if user is None or not user.email:
            logger.warning("notification_skipped", kind=kind, reservation_id=reservation.id,
                           user_id=reservation.user_id, reason="no_email")
            record_notification(kind, "skipped")
            return False

        if kind == CONFIRMATION:
            subject, html = confirmation_email(reservation, self.settings)
        else:
            subject, html = reminder_email(reservation, self.settings)

        try:
            sent = await asyncio.wait_for(
                self.gateway.send_email(user.email, subject, html),
                timeout=self.settings.NOTIFICATION_TIMEOUT_SECONDS,
            )
        except asyncio.TimeoutError:
            logger.error("notification_failed", kind=kind, reservation_id=reservation.id, reason="timeout")
            record_notification(kind, "failed")
            return False
        except Exception as e:
            # Gateway failures never propagate past this point
            logger.error("notification_failed", kind=kind, reservation_id=reservation.id, error=str(e))
            record_notification(kind, "failed")
            return False

        if not sent:
            logger.error("notification_failed", kind=kind, reservation_id=reservation.id, reason="rejected")
            record_notification(kind, "failed")
            return False

        logger.info("notification_sent", kind=kind, reservation_id=reservation.id, to=user.email)
        record_notification(kind, "sent")
        return True
