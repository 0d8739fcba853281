"""Counter stores behind the rate limiter.

Both implementations satisfy KeyValueStore: a local dict for development and
single-instance deployments, and Redis for anything that runs more than one
worker. Windows are fixed: they start on the first hit and expire
`window_ms` later; the reset time is returned as epoch milliseconds.
"""

import asyncio
import contextlib
import logging
import math
from dataclasses import dataclass
from typing import Any, Protocol

import redis.asyncio as aioredis

from src.mp_common.datetime_utils import now_ms

logger = logging.getLogger("mp.ratelimit")


@dataclass
class WindowCounter:
    count: int
    reset_at_ms: int


class KeyValueStore(Protocol):
    async def get(self, key: str) -> WindowCounter | None: ...

    async def set(self, key: str, value: WindowCounter) -> None: ...

    async def increment(self, key: str, window_ms: int) -> WindowCounter: ...

    async def delete(self, key: str) -> None: ...


class MemoryStore:
    """Process-local store.

    Expired windows are dropped lazily on read and by cleanup(), which
    start_cleanup() runs on an interval. Keys include the request path, so
    without the periodic pass every distinct URL would stay in memory.
    """

    def __init__(self, cleanup_interval: float = 60.0) -> None:
        self._data: dict[str, WindowCounter] = {}
        self.cleanup_interval = cleanup_interval
        self._cleaner: asyncio.Task[None] | None = None

    async def get(self, key: str) -> WindowCounter | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        if now_ms() > entry.reset_at_ms:
            del self._data[key]
            return None
        return entry

    async def set(self, key: str, value: WindowCounter) -> None:
        self._data[key] = value

    async def increment(self, key: str, window_ms: int) -> WindowCounter:
        existing = await self.get(key)
        if existing is not None:
            existing.count += 1
            return existing
        entry = WindowCounter(count=1, reset_at_ms=now_ms() + window_ms)
        self._data[key] = entry
        return entry

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def cleanup(self) -> int:
        """Drop expired windows; returns how many were removed."""
        now = now_ms()
        expired = [k for k, v in self._data.items() if now > v.reset_at_ms]
        for k in expired:
            del self._data[k]
        return len(expired)

    def __len__(self) -> int:
        return len(self._data)

    def start_cleanup(self) -> None:
        if self._cleaner is None or self._cleaner.done():
            self._cleaner = asyncio.create_task(self._cleanup_forever())

    async def stop_cleanup(self) -> None:
        if self._cleaner is not None:
            self._cleaner.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._cleaner
            self._cleaner = None

    async def _cleanup_forever(self) -> None:
        while True:
            await asyncio.sleep(self.cleanup_interval)
            removed = self.cleanup()
            if removed:
                logger.debug(
                    "Rate limit cleanup removed=%d remaining=%d", removed, len(self._data)
                )


# KEYS[1]=counter key; ARGV = reset_at_ms, window_ms, now_ms
_INCREMENT_LUA = """
local key = KEYS[1]
local resetTime = tonumber(ARGV[1])
local windowMs = tonumber(ARGV[2])
local now = tonumber(ARGV[3])

local current = redis.call('HMGET', key, 'count', 'resetTime')
local count = tonumber(current[1]) or 0
local existingResetTime = tonumber(current[2]) or 0

if existingResetTime > now then
  count = count + 1
  redis.call('HSET', key, 'count', count, 'resetTime', existingResetTime)
  redis.call('EXPIRE', key, math.ceil((existingResetTime - now) / 1000))
  return {count, existingResetTime}
else
  redis.call('HSET', key, 'count', 1, 'resetTime', resetTime)
  redis.call('EXPIRE', key, math.ceil(windowMs / 1000))
  return {1, resetTime}
end
"""


class RedisStore:
    """Hash-per-key store; increment is a single atomic Lua call."""

    KEY_PREFIX = "ratelimit:"

    def __init__(self, redis: aioredis.Redis) -> None:
        self._redis = redis
        self._increment_script: Any = redis.register_script(_INCREMENT_LUA)

    def _key(self, key: str) -> str:
        return f"{self.KEY_PREFIX}{key}"

    async def get(self, key: str) -> WindowCounter | None:
        data = await self._redis.hgetall(self._key(key))
        if not data or "count" not in data:
            return None
        return WindowCounter(count=int(data["count"]), reset_at_ms=int(data["resetTime"]))

    async def set(self, key: str, value: WindowCounter) -> None:
        ttl = max(1, math.ceil((value.reset_at_ms - now_ms()) / 1000))
        redis_key = self._key(key)
        await self._redis.hset(
            redis_key, mapping={"count": value.count, "resetTime": value.reset_at_ms}
        )
        await self._redis.expire(redis_key, ttl)

    async def increment(self, key: str, window_ms: int) -> WindowCounter:
        now = now_ms()
        result = await self._increment_script(
            keys=[self._key(key)],
            args=[now + window_ms, window_ms, now],
        )
        return WindowCounter(count=int(result[0]), reset_at_ms=int(result[1]))

    async def delete(self, key: str) -> None:
        await self._redis.delete(self._key(key))
