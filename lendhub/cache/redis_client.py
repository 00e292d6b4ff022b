"""
Redis client - caches the global category lists.
Challenge: Connection pooling, fail gracefully when Redis is down.
Design: Single client instance, dependency injection for testability.
"""

import json
import logging
from typing import Any

from redis.asyncio import Redis

from lendhub.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

# Shared async Redis client (connection pool managed by redis-py)
_redis: Redis | None = None


async def get_redis() -> Redis:
    """Get Redis connection. Used as FastAPI dependency."""
    global _redis
    if _redis is None:
        _redis = Redis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=1,
        )
    return _redis


async def close_redis() -> None:
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None


async def cache_get(key: str) -> str | None:
    """Get value from cache. Returns None if miss or error (graceful degradation)."""
    try:
        client = await get_redis()
        return await client.get(key)
    except Exception as e:
        logger.debug("cache_get %s failed: %s", key, e)
        return None


async def cache_set(key: str, value: str | dict[str, Any] | list[Any], ttl_seconds: int = 300) -> bool:
    """Set value in cache with TTL. Dicts and lists are JSON-serialized."""
    try:
        client = await get_redis()
        if not isinstance(value, str):
            value = json.dumps(value)
        await client.setex(key, ttl_seconds, value)
        return True
    except Exception as e:
        logger.debug("cache_set %s failed: %s", key, e)
        return False
