"""
Redis caching layer for workflow results.
"""

from typing import Optional

import redis.asyncio as redis

from shared.logging import get_logger
from shared.errors import WorkflowException
from .base import Cache, CACHE_KEY_PREFIX


class RedisCache(Cache):
    """Redis-backed cache. Expiry is delegated to ``SETEX``."""

    name = "redis"

    def __init__(self, redis_url: str, client: Optional[redis.Redis] = None):
        self.redis_url = redis_url
        self.logger = get_logger("workflow.cache.redis")
        self.redis: Optional[redis.Redis] = client

    async def start(self):
        """Start the Redis cache."""
        try:
            if self.redis is None:
                self.redis = self._connect()
            await self.redis.ping()
            self.logger.info("Redis cache started")
        except Exception as e:
            self.logger.error("Failed to start Redis cache", error=str(e))
            raise WorkflowException("REDIS_START_FAILED", str(e))

    async def stop(self):
        """Stop the Redis cache."""
        if self.redis:
            await self.redis.aclose()
            self.logger.info("Redis cache stopped")

    def _connect(self) -> redis.Redis:
        return redis.from_url(
            self.redis_url,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            health_check_interval=30
        )

    def _client(self) -> redis.Redis:
        if self.redis is None:
            self.redis = self._connect()
        return self.redis

    async def get(self, key: str) -> Optional[str]:
        value = await self._client().get(key)
        if value is None:
            return None
        return value.decode("utf-8") if isinstance(value, bytes) else value

    async def set(self, key: str, value: str, ttl_seconds: int) -> bool:
        await self._client().setex(key, ttl_seconds, value)
        self.logger.debug("Cached workflow result", cache_key=key, ttl=ttl_seconds)
        return True

    async def delete(self, key: str) -> None:
        await self._client().delete(key)

    async def clear(self) -> int:
        """Clear all workflow cache entries."""
        client = self._client()
        removed = 0
        batch = []
        async for key in client.scan_iter(match=f"{CACHE_KEY_PREFIX}:*", count=500):
            batch.append(key)
            if len(batch) >= 500:
                removed += await client.delete(*batch)
                batch = []
        if batch:
            removed += await client.delete(*batch)

        self.logger.info("Cache cleared", count=removed)
        return removed

    async def health_check(self) -> bool:
        """Check Redis health."""
        try:
            await self._client().ping()
            return True
        except Exception:
            return False
