"""
Reservation persistence with overbooking-safe creation.

CONCURRENCY STRATEGY: Entity Lock + Row Lock, Check Inside the Transaction
=========================================================================

Problem:
  Two visitors ask for the last ticket of an event at the same time.
  Both read "1 ticket left", both insert, the event is overbooked.
  Places have the same race on a given day.

Solution:
  Availability is re-checked in the same transaction as the insert, and
  writers for the same entity are serialized around that transaction:

  1. Take the per-entity lock (EntityLock: asyncio.Lock in process, or Redis)
  2. SELECT the event/place row FOR UPDATE (PostgreSQL; SQLite skips it)
  3. Re-run the capacity/day check against committed reservations
  4. INSERT the reservation and COMMIT, then release the lock

  Any failure before COMMIT rolls the transaction back: a rejected or
  failed request writes nothing.

  Updates go through the same lock and re-read the reservation FOR UPDATE,
  so status rules are judged against the committed row, not a stale read.
  Changes that take capacity are re-checked, excluding the reservation's
  own contribution.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tourism_api.core.exceptions import AvailabilityError, NotFoundError, PersistenceError, ReservationError
from tourism_api.core.logging import get_logger
from tourism_api.db.base import utcnow
from tourism_api.models.reservation import Reservation
from tourism_api.models.user import User
from tourism_api.services import entity_store
from tourism_api.services.availability_service import event_has_capacity, place_is_free
from tourism_api.services.booking_target import BookingTarget, EventTarget, target_of
from tourism_api.services.interfaces.entity_lock import EntityLock

logger = get_logger(__name__)

NOT_ENOUGH_TICKETS = "Not enough tickets available"
PLACE_NOT_AVAILABLE = "Place not available for this date"


@dataclass
class ReservationDraft:
    user_id: int
    target: BookingTarget
    quantity: int
    visit_date: datetime
    total_price: Decimal
    status: str = "pending"
    payment_method: Optional[str] = None
    payment_id: Optional[str] = None


@dataclass
class AppliedUpdate:
    reservation: Reservation
    previous_status: str
    changes: dict


@dataclass
class ReservationListing:
    reservation: Reservation
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None


@dataclass
class ReservationFilters:
    user_id: Optional[int] = None
    place_id: Optional[int] = None
    event_id: Optional[int] = None
    status: Optional[str] = None
    from_date: Optional[datetime] = None
    to_date: Optional[datetime] = None


class ReservationStore:
    """Sole writer of the reservations table."""

    def __init__(self, entity_lock: EntityLock):
        self.entity_lock = entity_lock

    async def _ensure_available(
        self,
        db: AsyncSession,
        target: BookingTarget,
        quantity: int,
        visit_date: datetime,
        exclude_id: Optional[int] = None,
    ) -> None:
        entity = await entity_store.get_target_entity(db, target, for_update=True)
        if entity is None:
            raise NotFoundError(f"{target.kind.capitalize()} not found")

        if isinstance(target, EventTarget):
            if not await event_has_capacity(db, entity, quantity, exclude_id=exclude_id):
                raise AvailabilityError(NOT_ENOUGH_TICKETS)
        elif not await place_is_free(db, target.id, visit_date, exclude_id=exclude_id):
            raise AvailabilityError(PLACE_NOT_AVAILABLE)

    async def create(self, db: AsyncSession, draft: ReservationDraft) -> Reservation:
        """Check availability and insert atomically. Returns the committed row."""
        async with self.entity_lock.hold(draft.target.lock_key):
            try:
                await self._ensure_available(db, draft.target, draft.quantity, draft.visit_date)

                reservation = Reservation(
                    user_id=draft.user_id,
                    quantity=draft.quantity,
                    visit_date=draft.visit_date,
                    total_price=draft.total_price,
                    status=draft.status,
                    payment_method=draft.payment_method,
                    payment_id=draft.payment_id,
                    **draft.target.columns(),
                )
                db.add(reservation)
                await db.flush()
                await db.commit()
            except ReservationError:
                await db.rollback()
                raise
            except SQLAlchemyError as e:
                await db.rollback()
                logger.error("reservation_insert_failed", target=draft.target.lock_key, error=str(e))
                raise PersistenceError() from e

        logger.info(
            "reservation_stored",
            reservation_id=reservation.id,
            target=draft.target.kind,
            target_id=draft.target.id,
            quantity=draft.quantity,
        )
        return reservation

    async def update(
        self,
        db: AsyncSession,
        reservation: Reservation,
        changes: dict,
        authorize: Optional[Callable[[Reservation], dict]] = None,
    ) -> AppliedUpdate:
        """
        Apply field changes and stamp updated_at. total_price is never recomputed.

        Runs under the entity lock against the row re-read FOR UPDATE.
        `authorize` sees that fresh row and returns the changes to write,
        or raises to reject them. Changes that take capacity (quantity,
        visit date, leaving 'cancelled') are re-checked against availability.
        """
        reservation_id = reservation.id
        target = target_of(reservation)
        async with self.entity_lock.hold(target.lock_key):
            try:
                current = await self._get_for_update(db, reservation_id)
                if current is None:
                    raise NotFoundError("Reservation not found")
                previous_status = current.status
                changes = authorize(current) if authorize is not None else dict(changes)

                if self._takes_capacity(current, changes):
                    await self._ensure_available(
                        db,
                        target,
                        changes.get("quantity", current.quantity),
                        changes.get("visit_date", current.visit_date),
                        exclude_id=reservation_id,
                    )
            except ReservationError:
                await db.rollback()
                raise
            except SQLAlchemyError as e:
                await db.rollback()
                logger.error("reservation_update_check_failed", reservation_id=reservation_id, error=str(e))
                raise PersistenceError() from e
            reservation = await self._apply(db, current, changes)
        return AppliedUpdate(reservation=reservation, previous_status=previous_status, changes=changes)

    @staticmethod
    def _takes_capacity(current: Reservation, changes: dict) -> bool:
        if changes.get("status", current.status) == "cancelled":
            return False
        if current.status == "cancelled":
            return True
        return ("quantity" in changes and changes["quantity"] != current.quantity) or (
            "visit_date" in changes and changes["visit_date"] != current.visit_date
        )

    async def _get_for_update(self, db: AsyncSession, reservation_id: int) -> Optional[Reservation]:
        result = await db.execute(
            select(Reservation)
            .where(Reservation.id == reservation_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _apply(self, db: AsyncSession, reservation: Reservation, changes: dict) -> Reservation:
        reservation_id = reservation.id
        try:
            for field, value in changes.items():
                setattr(reservation, field, value)
            reservation.updated_at = utcnow()
            await db.flush()
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("reservation_update_failed", reservation_id=reservation_id, error=str(e))
            raise PersistenceError() from e
        return reservation

    async def get_by_id(self, db: AsyncSession, reservation_id: int) -> Optional[Reservation]:
        result = await db.execute(select(Reservation).where(Reservation.id == reservation_id))
        return result.scalar_one_or_none()

    async def delete(self, db: AsyncSession, reservation: Reservation) -> None:
        """Hard delete, whatever the status."""
        reservation_id = reservation.id
        try:
            await db.delete(reservation)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("reservation_delete_failed", reservation_id=reservation_id, error=str(e))
            raise PersistenceError() from e

    async def list(self, db: AsyncSession, filters: ReservationFilters) -> list[ReservationListing]:
        """Matching reservations, newest first, with the owner's contact details."""
        query = select(Reservation, User.first_name, User.last_name, User.phone).outerjoin(
            User, User.id == Reservation.user_id
        )

        if filters.user_id is not None:
            query = query.where(Reservation.user_id == filters.user_id)
        if filters.place_id is not None:
            query = query.where(Reservation.place_id == filters.place_id)
        if filters.event_id is not None:
            query = query.where(Reservation.event_id == filters.event_id)
        if filters.status is not None:
            query = query.where(Reservation.status == filters.status)
        if filters.from_date is not None:
            query = query.where(
                or_(Reservation.visit_date >= filters.from_date, Reservation.created_at >= filters.from_date)
            )
        if filters.to_date is not None:
            query = query.where(
                or_(Reservation.visit_date <= filters.to_date, Reservation.created_at <= filters.to_date)
            )

        query = query.order_by(Reservation.created_at.desc(), Reservation.id.desc())
        result = await db.execute(query)
        return [
            ReservationListing(reservation=reservation, first_name=first_name, last_name=last_name, phone=phone)
            for reservation, first_name, last_name, phone in result.all()
        ]
