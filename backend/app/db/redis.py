"""
Redis connection management.

Provides the async Redis connection used for rate limiting the public
unsubscribe endpoint.
"""

import time
from typing import Optional

from redis.asyncio import ConnectionPool, Redis

from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)

# Global connection pool
_redis_pool: Optional[ConnectionPool] = None
_redis_client: Optional[Redis] = None


async def init_redis() -> Redis:
    """
    Initialize Redis connection pool.

    Called lazily on first use.
    """
    global _redis_pool, _redis_client

    if _redis_pool is None:
        logger.info("redis_pool_initializing")

        # Format: redis://localhost:6379/0
        _redis_pool = ConnectionPool.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            max_connections=20,
            socket_connect_timeout=5,
            socket_keepalive=True
        )

        _redis_client = Redis(connection_pool=_redis_pool)

        try:
            await _redis_client.ping()
            logger.info("redis_connected")
        except Exception as e:
            logger.error("redis_connection_failed", error=str(e))
            # Drop the half-built pool so the next call retries
            await close_redis()
            raise

    return _redis_client


async def get_redis() -> Redis:
    """
    Get Redis client instance.

    Use this as a dependency in FastAPI endpoints or services.
    """
    if _redis_client is None:
        return await init_redis()
    return _redis_client


async def close_redis():
    """
    Close Redis connection pool.

    Called during application shutdown.
    """
    global _redis_pool, _redis_client

    if _redis_client:
        logger.info("redis_closing")
        await _redis_client.aclose()
        _redis_client = None

    if _redis_pool:
        await _redis_pool.disconnect()
        _redis_pool = None


# ========================================
# Rate Limiting Helper
# ========================================

class RedisRateLimiter:
    """
    Simple rate limiter using Redis.

    Uses sliding window algorithm for accurate rate limiting.
    """

    def __init__(self, redis: Redis):
        self.redis = redis

    async def is_allowed(
        self,
        key: str,
        max_requests: int,
        window_seconds: int
    ) -> tuple[bool, int]:
        """
        Check if request is allowed under rate limit.

        Args:
            key: Unique identifier (e.g., ip address)
            max_requests: Maximum requests allowed in window
            window_seconds: Time window in seconds

        Returns:
            (is_allowed, current_count)
        """
        now = time.time()
        window_start = now - window_seconds

        # Sorted set scored by timestamp
        rate_key = f"rate_limit:{key}"

        await self.redis.zremrangebyscore(rate_key, 0, window_start)

        current_count = await self.redis.zcard(rate_key)

        if current_count < max_requests:
            await self.redis.zadd(rate_key, {str(now): now})
            await self.redis.expire(rate_key, window_seconds)
            return (True, current_count + 1)
        return (False, current_count)


# ========================================
# Health Check
# ========================================

async def check_redis_health() -> bool:
    """
    Check if Redis is healthy and responsive.

    Returns:
        bool: True if Redis is healthy, False otherwise
    """
    try:
        redis = await get_redis()
        response = await redis.ping()
        return response is True
    except Exception as e:
        logger.error("redis_health_check_failed", error=str(e))
        return False
