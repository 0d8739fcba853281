"""In-memory response cache for public catalog reads.

Entries are keyed by method + path (+ query string) and replayed verbatim
while younger than their TTL. When the map is full the oldest 10% (by
insertion time) are dropped; a background task also sweeps expired entries
every minute. Caching is best-effort: a failure while storing an entry is
logged and the live response is returned unchanged.

Headers set on responses:
    x-cache: HIT | MISS
    x-cache-age: <seconds since stored>        (HIT only)
    cache-control: public, max-age=<ttl>        (MISS, when stored)

A HIT replays the stored body byte for byte, so the envelope's `request_id`
and `timestamp` are those of the request that filled the entry. The
X-Request-ID header is still fresh per request; correlate logs by the
header, not the body.
"""

import asyncio
import contextlib
import logging
import math
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from config.settings import settings

logger = logging.getLogger("mp.cache")

_KEY_HEADERS = ("accept", "accept-language", "authorization")
_UNCACHED_HEADERS = {"set-cookie", "x-cache", "x-cache-age", "x-request-id", "x-response-time"}


@dataclass
class CacheConfig:
    enabled: bool = True
    ttl: int = 300  # seconds
    max_size: int = 1000
    include_query_params: bool = True
    include_headers: bool = False
    cacheable_methods: tuple[str, ...] = ("GET",)
    cacheable_status_codes: tuple[int, ...] = (200, 201, 204)
    key_prefix: str = "api_cache"
    sweep_interval: float = 60.0


@dataclass
class CacheEntry:
    body: bytes
    status_code: int
    headers: dict[str, str]
    timestamp: float
    ttl: int


class ResponseCache:
    def __init__(
        self,
        config: CacheConfig | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config or CacheConfig()
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0
        self._sweeper: asyncio.Task[None] | None = None

    def generate_key(self, request: Request) -> str:
        key = f"{self.config.key_prefix}:{request.method}:{request.url.path}"
        if self.config.include_query_params and request.url.query:
            key += f"?{request.url.query}"
        if self.config.include_headers:
            values = [request.headers.get(h) for h in _KEY_HEADERS]
            joined = "|".join(v for v in values if v)
            if joined:
                key += f":{joined}"
        return key

    def is_cacheable(self, method: str, status_code: int, headers: dict[str, str]) -> bool:
        if not self.config.enabled:
            return False
        if method not in self.config.cacheable_methods:
            return False
        if status_code not in self.config.cacheable_status_codes:
            return False
        cache_control = headers.get("cache-control", "")
        if "no-cache" in cache_control or "no-store" in cache_control:
            return False
        return headers.get("content-type", "").startswith("application/json")

    def get(self, key: str) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return None
        if self._clock() - entry.timestamp >= entry.ttl:
            del self._entries[key]
            self._misses += 1
            return None
        self._hits += 1
        return entry

    def set(
        self,
        key: str,
        body: bytes,
        status_code: int,
        headers: dict[str, str],
        ttl: int | None = None,
    ) -> CacheEntry:
        if key not in self._entries and len(self._entries) >= self.config.max_size:
            self._evict_oldest()
        entry = CacheEntry(
            body=body,
            status_code=status_code,
            headers=headers,
            timestamp=self._clock(),
            ttl=ttl or self.config.ttl,
        )
        self._entries[key] = entry
        logger.debug("Cache entry created key=%s ttl=%d", key, entry.ttl)
        return entry

    def _evict_oldest(self) -> None:
        to_remove = math.ceil(self.config.max_size * 0.1)
        oldest = sorted(self._entries.items(), key=lambda kv: kv[1].timestamp)[:to_remove]
        for key, _ in oldest:
            del self._entries[key]
        logger.debug("Cache evicted %d oldest entries", len(oldest))

    def age(self, entry: CacheEntry) -> int:
        """Whole seconds since the entry was stored."""
        return int(self._clock() - entry.timestamp)

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()
        logger.info("Cache cleared")

    def invalidate(self, pattern: str) -> int:
        """Drop every entry whose key contains `pattern`."""
        keys = [k for k in self._entries if pattern in k]
        for k in keys:
            del self._entries[k]
        logger.info("Cache invalidation pattern=%s invalidated=%d", pattern, len(keys))
        return len(keys)

    def sweep(self) -> int:
        """Remove expired entries; returns how many were removed."""
        now = self._clock()
        expired = [k for k, e in self._entries.items() if now - e.timestamp >= e.ttl]
        for k in expired:
            del self._entries[k]
        if expired:
            logger.debug(
                "Cache cleanup completed cleaned=%d remaining=%d",
                len(expired),
                len(self._entries),
            )
        return len(expired)

    def stats(self) -> dict[str, float]:
        lookups = self._hits + self._misses
        return {
            "size": len(self._entries),
            "max_size": self.config.max_size,
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": self._hits / lookups if lookups else 0.0,
        }

    def __len__(self) -> int:
        return len(self._entries)

    # -- background sweeper -------------------------------------------------

    def start_sweeper(self) -> None:
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.create_task(self._sweep_forever())

    async def stop_sweeper(self) -> None:
        if self._sweeper is not None:
            self._sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweeper
            self._sweeper = None

    async def _sweep_forever(self) -> None:
        while True:
            await asyncio.sleep(self.config.sweep_interval)
            self.sweep()


class ResponseCacheMiddleware(BaseHTTPMiddleware):
    """Serve repeat GETs under `paths` from a ResponseCache."""

    def __init__(self, app: ASGIApp, cache: ResponseCache, paths: Sequence[str] = ()) -> None:
        super().__init__(app)
        self.cache = cache
        self.paths = tuple(paths)

    def _applies(self, request: Request) -> bool:
        if not self.cache.config.enabled:
            return False
        if request.method not in self.cache.config.cacheable_methods:
            return False
        return not self.paths or request.url.path.startswith(self.paths)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if not self._applies(request):
            return await call_next(request)

        key = self.cache.generate_key(request)
        entry = self.cache.get(key)
        if entry is not None:
            logger.debug("Cache hit key=%s", key)
            hit = Response(content=entry.body, status_code=entry.status_code, headers=entry.headers)
            hit.headers["x-cache"] = "HIT"
            hit.headers["x-cache-age"] = str(self.cache.age(entry))
            return hit

        logger.debug("Cache miss key=%s", key)
        response = await call_next(request)
        body = b"".join([chunk async for chunk in response.body_iterator])  # type: ignore[attr-defined]
        live = Response(content=body, status_code=response.status_code)
        live.raw_headers = list(response.raw_headers)

        try:
            headers = {k: v for k, v in live.headers.items() if k not in _UNCACHED_HEADERS}
            if self.cache.is_cacheable(request.method, live.status_code, headers):
                self.cache.set(key, body, live.status_code, headers)
                live.headers["x-cache"] = "MISS"
                live.headers["cache-control"] = f"public, max-age={self.cache.config.ttl}"
        except Exception:
            logger.exception("Failed to cache response key=%s", key)
        return live


api_cache = ResponseCache(
    CacheConfig(
        enabled=settings.CACHE_ENABLED,
        ttl=settings.CACHE_TTL_SECONDS,
        max_size=settings.CACHE_MAX_SIZE,
    )
)
