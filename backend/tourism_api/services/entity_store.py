"""
Read access to the entities reservations point at: events, places and users.

These tables belong to other parts of the platform. The reservation core
only checks existence and reads pricing, capacity and contact fields.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tourism_api.models.event import Event
from tourism_api.models.place import Place
from tourism_api.models.user import User
from tourism_api.services.booking_target import BookingTarget, EventTarget


async def get_event_by_id(db: AsyncSession, event_id: int, for_update: bool = False) -> Optional[Event]:
    query = select(Event).where(Event.id == event_id)
    if for_update:
        # Row lock on the entity serializes concurrent creators on PostgreSQL.
        # SQLite ignores FOR UPDATE; the entity lock covers it there.
        query = query.with_for_update()
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def get_place_by_id(db: AsyncSession, place_id: int, for_update: bool = False) -> Optional[Place]:
    query = select(Place).where(Place.id == place_id)
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def get_target_entity(db: AsyncSession, target: BookingTarget, for_update: bool = False):
    if isinstance(target, EventTarget):
        return await get_event_by_id(db, target.id, for_update=for_update)
    return await get_place_by_id(db, target.id, for_update=for_update)


async def find_user_by_id(db: AsyncSession, user_id: int) -> Optional[User]:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()
