"""
Redis client for cross-process entity locks.
Separated from business logic for clean architecture.
"""

from typing import Optional

import redis.asyncio as redis

from tourism_api.core.config import get_settings
from tourism_api.core.logging import get_logger

logger = get_logger(__name__)


class RedisClient:
    """Singleton async Redis client with connection pooling."""

    _instance: Optional[redis.Redis] = None

    @classmethod
    def get_client(cls) -> Optional[redis.Redis]:
        """Get or create the client. Returns None if Redis is disabled."""
        settings = get_settings()
        if not settings.REDIS_ENABLED:
            return None
        if cls._instance is None:
            cls._instance = redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
                health_check_interval=30,
            )
        return cls._instance

    @classmethod
    async def ping(cls) -> bool:
        client = cls.get_client()
        if client is None:
            return False
        try:
            await client.ping()
            return True
        except redis.RedisError as e:
            logger.error("redis_connection_failed", error=str(e))
            return False

    @classmethod
    async def close(cls) -> None:
        if cls._instance is not None:
            await cls._instance.aclose()
            cls._instance = None


# Convenience function
def get_redis() -> Optional[redis.Redis]:
    """Get Redis client instance."""
    return RedisClient.get_client()
