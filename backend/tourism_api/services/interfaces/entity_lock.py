"""
Entity lock strategy interface.
Serializes reservation writers that target the same event or place.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager


class EntityLock(ABC):
    """
    Interface for per-entity single-writer arbiters.

    Implementations:
    - LocalEntityLock: asyncio.Lock per key, one process
    - RedisEntityLock: Redis lock shared by every API process

    The database row lock taken inside the creation transaction stays
    authoritative on PostgreSQL; this lock is what protects backends that
    cannot lock rows (SQLite) and keeps contention out of the database.
    """

    @abstractmethod
    def hold(self, key: str) -> AbstractAsyncContextManager[None]:
        """
        Hold the lock for `key` for the duration of the block.

        Raises:
            AvailabilityError: the lock could not be acquired in time
        """
        pass
