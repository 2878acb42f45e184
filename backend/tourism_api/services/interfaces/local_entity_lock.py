"""
In-process entity lock - one asyncio.Lock per key.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator

from tourism_api.core.exceptions import AvailabilityError
from tourism_api.services.interfaces.entity_lock import EntityLock


class LocalEntityLock(EntityLock):
    """
    Serializes writers inside a single process.

    Use when:
    - One API worker, or SQLite
    - Tests
    Locks are dropped once nobody holds or waits on them.
    """

    def __init__(self, timeout: float = 10.0):
        self.timeout = timeout
        self._locks: dict[str, asyncio.Lock] = {}
        self._waiters: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            try:
                await asyncio.wait_for(lock.acquire(), timeout=self.timeout)
            except asyncio.TimeoutError:
                raise AvailabilityError("Reservation system is busy, please try again")
            try:
                yield
            finally:
                lock.release()
        finally:
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                del self._waiters[key]
                self._locks.pop(key, None)
