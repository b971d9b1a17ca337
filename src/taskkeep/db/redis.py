"""Redis connection pool — shared by the rate limiter and the Redis session store.

Learn: One pool per process, created in the FastAPI lifespan and closed on
shutdown. Code that can live without Redis (rate limiting) calls
get_redis() and backs off on RuntimeError.
"""

from typing import Optional

import redis.asyncio as aioredis

from taskkeep.config import settings

# Global Redis connection pool (initialized in lifespan)
_redis: Optional[aioredis.Redis] = None


async def init_redis() -> aioredis.Redis:
    """Initialize the Redis connection pool."""
    global _redis
    _redis = aioredis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
    )
    try:
        await _redis.ping()
    except Exception:
        await _redis.aclose()
        _redis = None
        raise
    return _redis


async def close_redis() -> None:
    """Close the Redis connection pool."""
    global _redis
    if _redis:
        await _redis.aclose()
        _redis = None


def get_redis() -> aioredis.Redis:
    """Get the Redis connection (must be initialized first)."""
    if _redis is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis
