"""
Redis connection pool shared by the lifecycle lock and the event publisher.

The pool is created on first use so importing the API or the worker never
touches Redis; ``close_redis`` releases it at application shutdown.
"""

from typing import Optional

import redis.asyncio as aioredis

from src.config import settings

_pool: Optional[aioredis.ConnectionPool] = None


def _get_pool() -> aioredis.ConnectionPool:
    global _pool
    if _pool is None:
        _pool = aioredis.ConnectionPool.from_url(
            settings.redis_url, decode_responses=True
        )
    return _pool


async def get_redis() -> aioredis.Redis:
    """Return a client on the shared pool."""
    return aioredis.Redis(connection_pool=_get_pool())


async def close_redis() -> None:
    global _pool
    if _pool is not None:
        await _pool.disconnect()
        _pool = None
