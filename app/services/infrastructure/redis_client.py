# app/services/infrastructure/redis_client.py
import time

import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool

from app.config import settings
from app.core.errors import TransientError
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

# Minimum gap between reconnect attempts after a failed initialization
RECONNECT_INTERVAL_S = 30.0


class RedisCacheStore:
    """Cache store backed by a pooled redis.asyncio client."""

    def __init__(self, url: str | None = None):
        self.url = url or settings.REDIS_URL
        self.pool = None
        self.client = None
        self._initialized = False
        self._last_attempt: float | None = None

    async def initialize(self):
        """Initialize connection pool on startup"""
        if self._initialized:
            return

        try:
            logger.info("Attempting Redis connection", host=settings.redis_host())

            self.pool = ConnectionPool.from_url(
                self.url,
                retry_on_timeout=True,
                health_check_interval=30,
                decode_responses=True,
                **settings.get_redis_pool_config(),
            )
            self.client = redis.Redis(connection_pool=self.pool)

            result = await self.client.ping()
            logger.info("Redis ping successful", result=result)

            self._initialized = True
            logger.info("Redis cache store initialized")

        except Exception as e:
            logger.error("Failed to initialize Redis cache store", error=str(e))
            self._initialized = False
            await self._release_pool()
            raise RuntimeError("Redis initialization failed") from e

    async def close(self):
        """Clean shutdown"""
        try:
            if self.client:
                await self.client.aclose()
            if self.pool:
                await self.pool.disconnect()
            self._initialized = False
            logger.info("Redis cache store closed")
        except Exception as e:
            logger.error("Error closing Redis client", error=str(e))

    async def _release_pool(self):
        pool, self.pool, self.client = self.pool, None, None
        if pool is not None:
            try:
                await pool.disconnect()
            except Exception as e:
                logger.warning("Error releasing Redis pool", error=str(e))

    async def _ensure_initialized(self):
        if self._initialized:
            return
        now = time.monotonic()
        if self._last_attempt is not None and now - self._last_attempt < RECONNECT_INTERVAL_S:
            raise RuntimeError("Redis unavailable, reconnect deferred")
        self._last_attempt = now
        logger.warning("Redis not initialized, attempting to initialize")
        await self.initialize()

    async def ping(self) -> bool:
        """Test Redis connection"""
        try:
            await self._ensure_initialized()
            return bool(await self.client.ping())
        except Exception as e:
            logger.error("Redis ping failed", error=str(e))
            return False

    async def get(self, key: str) -> str | None:
        try:
            await self._ensure_initialized()
            result = await self.client.get(key)
            return result if result else None
        except Exception as e:
            logger.error("Redis GET failed", key=key[:30], error=str(e))
            raise TransientError("Cache read failed", details={"key": key[:30]}) from e

    async def set(self, key: str, value: str, ttl_s: int) -> None:
        await self.set_with_ttl(key, value, ttl_s)

    async def set_with_ttl(self, key: str, value: str, ttl_s: int | None = None) -> None:
        try:
            await self._ensure_initialized()
            if ttl_s:
                await self.client.setex(key, ttl_s, value)
            else:
                await self.client.set(key, value)
        except Exception as e:
            logger.error("Redis SET failed", key=key[:30], error=str(e))
            raise TransientError("Cache write failed", details={"key": key[:30]}) from e


# Global instance
cache_store = RedisCacheStore()
