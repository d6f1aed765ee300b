"""Redis connection used by the event broadcaster."""

from __future__ import annotations

import redis.asyncio as redis
import structlog
from redis.exceptions import RedisError

from app.core.config import get_settings

settings = get_settings()
log = structlog.get_logger()

_redis_client: redis.Redis | None = None


async def get_redis() -> redis.Redis:
    """Get or lazily create the shared client."""
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(settings.redis_url, decode_responses=True)
    return _redis_client


async def redis_available() -> bool:
    try:
        client = await get_redis()
        return bool(await client.ping())
    except (RedisError, OSError) as exc:
        log.warning("redis.unavailable", error=str(exc))
        return False


async def close_redis() -> None:
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
