"""Rate limiting middleware.

Rules (first matching path prefix wins):
  - Auth endpoints:     5 req / 15 min   (anti brute-force)
  - Search:            20 req / 1 min
  - Uploads / product
    creation:          10 req / 10 min
  - Support/contact:    3 req / 1 hour
  - Everything /api:  100 req / 15 min

Client identity:
  1. Authorization header present → "auth:<sha256 of header>"
  2. otherwise → "anon:<sha256 of ip:user-agent>", where ip is the first
     X-Forwarded-For hop, then X-Real-IP, then the socket peer.

Counters live in a KeyValueStore (memory in dev, Redis in production). If
the store fails the request is allowed and the error logged.

Rejections return 429 with X-RateLimit-Limit / -Remaining / -Reset (epoch ms)
and Retry-After (seconds).
"""

import hashlib
import logging
import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from src.mp_common.datetime_utils import now_ms
from src.mp_common.errors import RateLimitError
from src.mp_common.kv_store import KeyValueStore
from src.mp_common.response import error_response

logger = logging.getLogger("mp.ratelimit")


@dataclass
class RateLimitRule:
    path_prefix: str
    window_seconds: int
    max_requests: int
    message: str = "Too many requests"
    methods: frozenset[str] | None = None  # None = every method
    key_func: Callable[[Request], str] | None = None

    def matches(self, request: Request) -> bool:
        if self.methods is not None and request.method not in self.methods:
            return False
        return request.url.path.startswith(self.path_prefix)


@dataclass
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at_ms: int
    total: int


DEFAULT_RULES: list[RateLimitRule] = [
    RateLimitRule(
        "/api/auth/", 15 * 60, 5,
        "Too many authentication attempts, please try again later",
        methods=frozenset({"POST"}),
    ),
    RateLimitRule(
        "/api/admin/login", 15 * 60, 5,
        "Too many authentication attempts, please try again later",
    ),
    RateLimitRule("/api/search", 60, 20, "Too many search requests, please slow down"),
    RateLimitRule(
        "/api/products", 10 * 60, 10,
        "Too many upload requests, please try again later",
        methods=frozenset({"POST"}),
    ),
    RateLimitRule(
        "/api/support", 60 * 60, 3,
        "Too many contact form submissions, please try again later",
        methods=frozenset({"POST"}),
    ),
    RateLimitRule("/api/", 15 * 60, 100, "Too many API requests, please try again later"),
]


def _hash(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()[:16]


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    if request.client is not None:
        return request.client.host
    return "unknown"


def client_identifier(request: Request) -> str:
    authorization = request.headers.get("authorization")
    if authorization:
        return f"auth:{_hash(authorization)}"
    user_agent = request.headers.get("user-agent", "unknown")
    return f"anon:{_hash(f'{client_ip(request)}:{user_agent}')}"


class RateLimiter:
    def __init__(self, store: KeyValueStore, whitelist: Sequence[str] = ()) -> None:
        self.store = store
        self.whitelist = frozenset(whitelist)

    async def check(self, request: Request, rule: RateLimitRule) -> RateLimitResult:
        window_ms = rule.window_seconds * 1000
        if self.whitelist and client_ip(request) in self.whitelist:
            return RateLimitResult(True, rule.max_requests, now_ms() + window_ms, 0)

        identity = rule.key_func(request) if rule.key_func else client_identifier(request)
        key = f"{request.url.path}:{identity}"

        try:
            counter = await self.store.increment(key, window_ms)
        except Exception:
            logger.exception("Rate limiter store error key=%s", key)
            return RateLimitResult(True, rule.max_requests, now_ms() + window_ms, 0)

        allowed = counter.count <= rule.max_requests
        if not allowed:
            logger.warning(
                "Rate limit exceeded key=%s count=%d max=%d ip=%s [%s] %s",
                key,
                counter.count,
                rule.max_requests,
                client_ip(request),
                request.method,
                request.url.path,
            )
        return RateLimitResult(
            allowed=allowed,
            remaining=max(0, rule.max_requests - counter.count),
            reset_at_ms=counter.reset_at_ms,
            total=counter.count,
        )


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: ASGIApp,
        limiter: RateLimiter,
        rules: Sequence[RateLimitRule] = (),
        enabled: bool = True,
    ) -> None:
        super().__init__(app)
        self.limiter = limiter
        self.rules: list[RateLimitRule] = list(rules) or list(DEFAULT_RULES)
        self.enabled = enabled

    def _rule_for(self, request: Request) -> RateLimitRule | None:
        for rule in self.rules:
            if rule.matches(request):
                return rule
        return None

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        rule = self._rule_for(request) if self.enabled else None
        if rule is None:
            return await call_next(request)

        result = await self.limiter.check(request, rule)
        headers = {
            "X-RateLimit-Limit": str(rule.max_requests),
            "X-RateLimit-Remaining": str(result.remaining),
            "X-RateLimit-Reset": str(result.reset_at_ms),
        }
        if not result.allowed:
            retry_after = max(1, math.ceil((result.reset_at_ms - now_ms()) / 1000))
            err = RateLimitError(rule.message)
            resp = error_response(err.code, err.message, request)
            return JSONResponse(
                status_code=err.http_status,
                content=resp.model_dump(),
                headers={**headers, "Retry-After": str(retry_after)},
            )

        response = await call_next(request)
        for name, value in headers.items():
            response.headers[name] = value
        return response

