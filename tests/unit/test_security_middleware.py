"""Unit tests for security headers and request logging middleware."""

from fastapi import FastAPI, Request
from httpx import ASGITransport, AsyncClient

from src.mp_gateway.middleware.request_log import RequestLogMiddleware
from src.mp_gateway.middleware.security_headers import (
    HSTS_VALUE,
    SECURITY_HEADERS,
    SecurityHeadersMiddleware,
)


def _app(hsts: bool) -> FastAPI:
    app = FastAPI()
    app.add_middleware(SecurityHeadersMiddleware, hsts=hsts)
    app.add_middleware(RequestLogMiddleware)

    @app.get("/ping")
    async def ping(request: Request) -> dict[str, str]:
        return {"request_id": request.state.request_id}

    return app


class TestSecurityHeaders:
    async def test_static_headers_present(self) -> None:
        async with AsyncClient(transport=ASGITransport(app=_app(False)), base_url="http://t") as c:
            resp = await c.get("/ping")
        for name, value in SECURITY_HEADERS.items():
            assert resp.headers[name] == value
        assert "Strict-Transport-Security" not in resp.headers

    async def test_hsts_only_when_enabled(self) -> None:
        async with AsyncClient(transport=ASGITransport(app=_app(True)), base_url="http://t") as c:
            resp = await c.get("/ping")
        assert resp.headers["Strict-Transport-Security"] == HSTS_VALUE


class TestRequestLog:
    async def test_request_id_echoed_and_shared_with_handler(self) -> None:
        async with AsyncClient(transport=ASGITransport(app=_app(False)), base_url="http://t") as c:
            resp = await c.get("/ping")
        request_id = resp.headers["X-Request-ID"]
        assert request_id.startswith("req_")
        assert resp.json()["request_id"] == request_id
        assert resp.headers["X-Response-Time"].endswith("ms")
