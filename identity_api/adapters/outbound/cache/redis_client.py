# identity_api/adapters/outbound/cache/redis_client.py

"""
Redis connection management and the shared rate-limit counter store.
"""

import logging
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from identity_api.adapters.configuration.config import settings
from identity_api.application.ports.outbound import IRateLimitStore

logger = logging.getLogger(__name__)


class RedisManager:
    def __init__(self, redis_url: Optional[str] = None):
        self.redis_url = str(redis_url) if redis_url else str(settings.REDIS_URL)
        self.redis_client = None

    async def connect(self):
        """Connect to Redis. A failed ping is logged, not raised: counters fail open."""
        self.redis_client = redis.from_url(
            self.redis_url,
            encoding="utf-8",
            decode_responses=True,
            socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
            socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT,
            retry_on_timeout=True,
            health_check_interval=30,
        )
        try:
            await self.redis_client.ping()
            logger.info("Redis connection established")
        except RedisError as e:
            logger.error(f"Failed to connect to Redis at startup: {e}")

    async def disconnect(self):
        """Disconnect from Redis"""
        if self.redis_client:
            await self.redis_client.aclose()
            logger.info("Disconnected from Redis")

    async def get_redis(self):
        """Get Redis client, connecting lazily"""
        if not self.redis_client:
            await self.connect()
        return self.redis_client


class RedisRateLimitStore(IRateLimitStore):
    """
    Fixed-window counters shared by every instance of the service.

    INCR and EXPIRE run in one MULTI/EXEC transaction so a counter never
    outlives its window.
    """

    def __init__(self, manager: RedisManager):
        self.manager = manager

    async def increment(self, key: str, window_seconds: int) -> int:
        client = await self.manager.get_redis()
        async with client.pipeline(transaction=True) as pipe:
            pipe.incr(key)
            pipe.expire(key, window_seconds, nx=True)
            count, _ = await pipe.execute()
        return int(count)


# Global Redis Manager
redis_manager = RedisManager()
rate_limit_store = RedisRateLimitStore(redis_manager)
