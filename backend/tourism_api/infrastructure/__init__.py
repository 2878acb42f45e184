"""
External systems. Redis backs the cross-process entity lock when
LOCK_BACKEND=redis; nothing else in the service talks to it.
"""

from .redis_client import get_redis, RedisClient

__all__ = ['get_redis', 'RedisClient']
