"""
Availability rules for events and places.

Events draw from a ticket pool: capacity minus the quantities of all
non-cancelled reservations. Places are booked per calendar day: a place
accepts PLACE_MAX_BOOKINGS_PER_DAY non-cancelled reservations on a given
date (1 by default, i.e. one booking per place per day).

These checks read without locking. The creation path re-runs them inside
its transaction, under the entity lock, before inserting.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Union

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tourism_api.core.config import get_settings
from tourism_api.core.exceptions import InvalidArgumentError
from tourism_api.models.reservation import Reservation
from tourism_api.services import entity_store
from tourism_api.services.booking_target import EVENT, ENTITY_TYPES

DateLike = Union[date, datetime]


def to_utc(value: datetime) -> datetime:
    """Naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def day_bounds(value: DateLike) -> tuple[datetime, datetime]:
    """Half-open UTC range [start of day, start of next day)."""
    if isinstance(value, datetime):
        day = to_utc(value).date()
    else:
        day = value
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


async def booked_event_quantity(db: AsyncSession, event_id: int, exclude_id: Optional[int] = None) -> int:
    query = select(func.coalesce(func.sum(Reservation.quantity), 0)).where(
        Reservation.event_id == event_id,
        Reservation.status != "cancelled",
    )
    if exclude_id is not None:
        query = query.where(Reservation.id != exclude_id)
    result = await db.execute(query)
    return int(result.scalar_one())


async def place_bookings_on(
    db: AsyncSession, place_id: int, visit_date: DateLike, exclude_id: Optional[int] = None
) -> int:
    start, end = day_bounds(visit_date)
    query = select(func.count(Reservation.id)).where(
        Reservation.place_id == place_id,
        Reservation.visit_date >= start,
        Reservation.visit_date < end,
        Reservation.status != "cancelled",
    )
    if exclude_id is not None:
        query = query.where(Reservation.id != exclude_id)
    result = await db.execute(query)
    return int(result.scalar_one())


async def event_has_capacity(db: AsyncSession, event, quantity: int, exclude_id: Optional[int] = None) -> bool:
    booked = await booked_event_quantity(db, event.id, exclude_id=exclude_id)
    return (event.capacity or 0) - booked >= quantity


async def place_is_free(
    db: AsyncSession, place_id: int, visit_date: DateLike, exclude_id: Optional[int] = None
) -> bool:
    existing = await place_bookings_on(db, place_id, visit_date, exclude_id=exclude_id)
    return existing + 1 <= get_settings().PLACE_MAX_BOOKINGS_PER_DAY


async def check_availability(
    db: AsyncSession,
    entity_type: str,
    entity_id: int,
    visit_date: Optional[DateLike] = None,
    quantity: int = 1,
) -> bool:
    """
    Whether `quantity` units of the entity can still be booked.

    A missing event or place is reported as unavailable rather than raised.
    Raises InvalidArgumentError for an unknown entity type, a place check
    without a date, or a quantity below 1.
    """
    if entity_type not in ENTITY_TYPES:
        raise InvalidArgumentError("Invalid entity type or missing required parameters")
    if quantity < 1:
        raise InvalidArgumentError("Number of tickets must be at least 1")

    if entity_type == EVENT:
        event = await entity_store.get_event_by_id(db, entity_id)
        if event is None:
            return False
        return await event_has_capacity(db, event, quantity)

    if visit_date is None:
        raise InvalidArgumentError("A date is required to check place availability")
    place = await entity_store.get_place_by_id(db, entity_id)
    if place is None:
        return False
    return await place_is_free(db, entity_id, visit_date)
