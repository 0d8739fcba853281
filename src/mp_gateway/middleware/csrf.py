"""CSRF protection (double-submit cookie).

State-changing requests must:
  1. come from a trusted origin (Origin header, else the Referer's origin);
  2. carry the `_csrf_token` cookie;
  3. repeat that token in the `x-csrf-token` header or in the JSON body
     (`_csrf_token` / `csrfToken`);
  4. match cookie and request token under a constant-time comparison.

GET, HEAD and OPTIONS are never checked, nor are the exempt path prefixes
(token-based auth endpoints, admin login, health).
"""

import hmac
import json
import logging
import secrets
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlsplit

from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from config.settings import settings
from src.mp_common.errors import CsrfError
from src.mp_common.response import error_response

logger = logging.getLogger("mp.csrf")


@dataclass
class CsrfConfig:
    cookie_name: str = "_csrf_token"
    header_name: str = "x-csrf-token"
    token_length: int = 32  # bytes; the token is hex so twice as many chars
    same_site: str = "strict"
    secure: bool = False
    max_age: int = 60 * 60 * 24
    ignore_methods: frozenset[str] = frozenset({"GET", "HEAD", "OPTIONS"})
    trusted_origins: list[str] = field(default_factory=list)
    exempt_paths: list[str] = field(default_factory=list)


@dataclass
class CsrfResult:
    is_valid: bool
    error: str | None = None


def _request_origin(request: Request) -> str | None:
    origin = request.headers.get("origin")
    if origin:
        return origin
    referer = request.headers.get("referer")
    if not referer:
        return None
    parts = urlsplit(referer)
    if not parts.scheme or not parts.netloc:
        return None
    return f"{parts.scheme}://{parts.netloc}"


class CsrfProtection:
    def __init__(self, config: CsrfConfig | None = None) -> None:
        self.config = config or CsrfConfig()

    def generate_token(self) -> str:
        return secrets.token_hex(self.config.token_length)

    def cookie_kwargs(self) -> dict[str, Any]:
        """Arguments for Response.set_cookie when issuing a token.

        Not HttpOnly: browser code reads the cookie to echo it in the header.
        """
        return {
            "key": self.config.cookie_name,
            "max_age": self.config.max_age,
            "path": "/",
            "samesite": self.config.same_site,
            "secure": self.config.secure,
            "httponly": False,
        }

    def is_exempt(self, request: Request) -> bool:
        if request.method.upper() in self.config.ignore_methods:
            return True
        path = request.url.path
        return any(path.startswith(prefix) for prefix in self.config.exempt_paths)

    def validate(self, request: Request, body: Any = None) -> CsrfResult:
        if self.is_exempt(request):
            return CsrfResult(True)

        origin = _request_origin(request)
        if origin is None or origin not in self.config.trusted_origins:
            logger.warning(
                "CSRF: untrusted origin=%s [%s] %s", origin, request.method, request.url.path
            )
            return CsrfResult(False, "Invalid origin")

        cookie_token = request.cookies.get(self.config.cookie_name)
        if not cookie_token:
            logger.warning("CSRF: missing cookie token [%s] %s", request.method, request.url.path)
            return CsrfResult(False, "Missing CSRF cookie")

        request_token = request.headers.get(self.config.header_name)
        if not request_token and isinstance(body, dict):
            request_token = body.get("_csrf_token") or body.get("csrfToken")
        if not request_token or not isinstance(request_token, str):
            logger.warning("CSRF: missing request token [%s] %s", request.method, request.url.path)
            return CsrfResult(False, "Missing CSRF token in request")

        if not hmac.compare_digest(cookie_token.encode(), request_token.encode()):
            logger.warning(
                "CSRF: token mismatch [%s] %s cookie_len=%d request_len=%d",
                request.method,
                request.url.path,
                len(cookie_token),
                len(request_token),
            )
            return CsrfResult(False, "CSRF token mismatch")

        return CsrfResult(True)


class CsrfMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, protection: CsrfProtection, enabled: bool = True) -> None:
        super().__init__(app)
        self.protection = protection
        self.enabled = enabled

    async def _json_body(self, request: Request) -> Any:
        # Only consulted when the header token is absent.
        if request.headers.get(self.protection.config.header_name):
            return None
        if not request.headers.get("content-type", "").startswith("application/json"):
            return None
        raw = await request.body()
        if not raw:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            return None

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if not self.enabled or self.protection.is_exempt(request):
            return await call_next(request)

        result = self.protection.validate(request, await self._json_body(request))
        if not result.is_valid:
            err = CsrfError(result.error or "Invalid CSRF token")
            resp = error_response(err.code, err.message, request)
            return JSONResponse(status_code=err.http_status, content=resp.model_dump())
        return await call_next(request)


csrf_protection = CsrfProtection(
    CsrfConfig(
        secure=settings.is_production,
        trusted_origins=list(settings.CSRF_TRUSTED_ORIGINS),
        exempt_paths=list(settings.CSRF_EXEMPT_PATHS),
    )
)
