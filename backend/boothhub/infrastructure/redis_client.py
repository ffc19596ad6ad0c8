"""
Redis client for admission control and caching.
Separated from business logic for clean architecture.

Redis is optional: when disabled or unreachable every caller gets None and
degrades to going straight to the database.
"""

from typing import Optional

import redis.asyncio as redis

from boothhub.core.config import get_settings
from boothhub.core.logging import get_logger
from boothhub.core.metrics import redis_connection_errors, redis_circuit_breaker_open

logger = get_logger(__name__)
settings = get_settings()


class RedisClient:
    """Process-wide async Redis client with connection pooling."""

    _instance: Optional[redis.Redis] = None

    @classmethod
    async def get_client(cls) -> Optional[redis.Redis]:
        if not settings.REDIS_ENABLED:
            return None

        if cls._instance is None:
            client = redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
                health_check_interval=30,
            )
            try:
                await client.ping()
            except Exception as e:
                redis_connection_errors.inc()
                redis_circuit_breaker_open.set(1)
                logger.error("redis_connection_failed", error=str(e))
                await client.aclose()
                return None
            cls._instance = client
            redis_circuit_breaker_open.set(0)
            logger.info("redis_connected", url=settings.REDIS_URL)

        return cls._instance

    @classmethod
    async def close(cls) -> None:
        if cls._instance is not None:
            await cls._instance.aclose()
            cls._instance = None


async def get_redis() -> Optional[redis.Redis]:
    return await RedisClient.get_client()


async def close_redis() -> None:
    await RedisClient.close()
