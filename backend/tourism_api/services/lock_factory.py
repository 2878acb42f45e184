"""
Entity lock factory.
Configures which write-serialization strategy reservation creation uses.
"""

from typing import Optional

from tourism_api.core.config import get_settings
from tourism_api.services.interfaces.entity_lock import EntityLock
from tourism_api.services.interfaces.local_entity_lock import LocalEntityLock
from tourism_api.services.redis_entity_lock import RedisEntityLock


def get_entity_lock_strategy() -> EntityLock:
    """
    Build the configured lock.

    - local (default): one process, or SQLite
    - redis: several API processes sharing one database

    Selected via the LOCK_BACKEND env var.
    """
    settings = get_settings()
    local = LocalEntityLock(timeout=settings.LOCK_TIMEOUT_SECONDS)

    if settings.LOCK_BACKEND == 'redis':
        return RedisEntityLock(fallback=local, timeout=settings.LOCK_TIMEOUT_SECONDS)
    return local


# Singleton instance
_lock: Optional[EntityLock] = None


def get_entity_lock() -> EntityLock:
    """Get entity lock singleton."""
    global _lock
    if _lock is None:
        _lock = get_entity_lock_strategy()
    return _lock
