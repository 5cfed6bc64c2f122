"""
Redis connection for the public tracking cache.

Timeouts are short: a slow Redis must not hold up a tracking lookup that
can be answered from the database.
"""

import logging

import redis.asyncio as redis
from redis.exceptions import RedisError

from sendit.app.core.config import settings

logger = logging.getLogger(__name__)

redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=settings.redis_decode_responses,
    socket_timeout=settings.redis_socket_timeout_seconds,
    socket_connect_timeout=settings.redis_socket_timeout_seconds,
)


async def ping_redis() -> bool:
    """Used by /health. Never raises."""
    try:
        return bool(await redis_client.ping())
    except (RedisError, OSError) as exc:
        logger.warning("Redis ping failed: %s", exc)
        return False


async def close_redis() -> None:
    try:
        await redis_client.aclose()
    except (RedisError, OSError) as exc:
        logger.warning("Redis close failed: %s", exc)
