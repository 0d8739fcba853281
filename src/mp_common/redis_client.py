"""Lazily created Redis client backing the production rate-limit store.

Nothing else touches Redis: the response cache and admin sessions live in
process memory.
"""

import logging

import redis.asyncio as aioredis

from config.settings import settings

logger = logging.getLogger("mp.redis")

_client: aioredis.Redis | None = None


async def get_redis() -> aioredis.Redis:
    """Return the shared client, connecting and pinging on first use."""
    global _client  # noqa: PLW0603
    if _client is None:
        client = aioredis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_timeout=settings.REDIS_SOCKET_TIMEOUT_SECONDS,
            socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT_SECONDS,
        )
        await client.ping()
        logger.info("Redis connected url=%s", settings.REDIS_URL.rsplit("@", 1)[-1])
        _client = client
    return _client


async def close_redis() -> None:
    global _client  # noqa: PLW0603
    if _client is not None:
        await _client.aclose()
        _client = None
