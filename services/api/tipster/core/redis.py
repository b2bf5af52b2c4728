from __future__ import annotations

import logging

import redis
import redis.asyncio as redis_async

logger = logging.getLogger(__name__)


def create_redis(url: str) -> redis.Redis:
    """Sync client, used by RQ and the pub/sub publishers."""
    return redis.Redis.from_url(url, decode_responses=True)


async def create_redis_async(url: str) -> redis_async.Redis | None:
    """Return a connected async client, or None when Redis is unreachable.

    The prediction cache fails open: without Redis every lookup is a miss.
    """
    client: redis_async.Redis = redis_async.Redis.from_url(url, decode_responses=True)
    try:
        await client.ping()
    except redis.RedisError as exc:
        logger.warning("Redis unavailable; prediction caching disabled: %s", exc)
        await client.aclose()
        return None
    return client
