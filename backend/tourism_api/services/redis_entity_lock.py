"""
Redis-backed entity lock for multi-process deployments.
Implements EntityLock using redis-py's Lock (SET NX PX + token check on release).

Fallback:
  On Redis failure the lock degrades to the in-process LocalEntityLock.
  Writers in other processes are then only serialized by the database row
  lock, which remains authoritative on PostgreSQL.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from redis.exceptions import LockError, RedisError

from tourism_api.core.exceptions import AvailabilityError
from tourism_api.core.logging import get_logger
from tourism_api.core.metrics import entity_lock_fallbacks
from tourism_api.infrastructure.redis_client import get_redis
from tourism_api.services.interfaces.entity_lock import EntityLock
from tourism_api.services.interfaces.local_entity_lock import LocalEntityLock

logger = get_logger(__name__)

# Upper bound on how long a crashed holder can keep an entity locked
LOCK_LEASE_SECONDS = 30


class RedisEntityLock(EntityLock):
    """
    Use when:
    - Several API workers or hosts write reservations
    - The database cannot lock rows
    """

    def __init__(self, fallback: LocalEntityLock, timeout: float = 10.0):
        self.fallback = fallback
        self.timeout = timeout

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        client = get_redis()
        lock = None
        if client is not None:
            lock = client.lock(key, timeout=LOCK_LEASE_SECONDS, blocking_timeout=self.timeout)
            try:
                acquired = await lock.acquire()
            except RedisError as e:
                entity_lock_fallbacks.inc()
                logger.warning("entity_lock_fallback", key=key, error=str(e))
                lock = None
            else:
                if not acquired:
                    raise AvailabilityError("Reservation system is busy, please try again")

        if lock is None:
            async with self.fallback.hold(key):
                yield
            return

        try:
            yield
        finally:
            try:
                await lock.release()
            except (LockError, RedisError) as e:
                # Lease expired or Redis went away; the key expires on its own
                logger.warning("entity_lock_release_failed", key=key, error=str(e))
