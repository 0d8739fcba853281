"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from config.settings import settings
from src.mp_catalog.api.admin_router import router as admin_catalog_router
from src.mp_catalog.api.router import router as catalog_router
from src.mp_catalog.api.seller_router import router as seller_router
from src.mp_common.database import check_database, engine
from src.mp_common.errors import AppError, InternalError, ValidationError
from src.mp_common.kv_store import MemoryStore, RedisStore
from src.mp_common.logging_config import configure_logging
from src.mp_common.redis_client import close_redis, get_redis
from src.mp_common.response import error_response
from src.mp_gateway.api.admin_router import router as admin_session_router
from src.mp_gateway.api.router import csrf_router
from src.mp_gateway.api.router import router as auth_router
from src.mp_gateway.api.support_router import router as support_router
from src.mp_gateway.middleware.cache import ResponseCacheMiddleware, api_cache
from src.mp_gateway.middleware.csrf import CsrfMiddleware, csrf_protection
from src.mp_gateway.middleware.rate_limit import RateLimiter, RateLimitMiddleware
from src.mp_gateway.middleware.request_log import RequestLogMiddleware
from src.mp_gateway.middleware.security_headers import SecurityHeadersMiddleware
from src.mp_leads.api.router import router as leads_router
from src.mp_order.api.router import router as order_router

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger("mp.error")

CACHED_PATHS = ("/api/products", "/api/categories")

rate_limiter = RateLimiter(MemoryStore(), whitelist=settings.RATE_LIMIT_WHITELIST)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB (+ Redis when it backs the rate limiter), start the
    cache sweeper and the memory rate-limit cleanup. Shutdown: stop both,
    dispose connections."""
    await check_database()
    if settings.RATE_LIMIT_BACKEND == "redis":
        rate_limiter.store = RedisStore(await get_redis())
    if isinstance(rate_limiter.store, MemoryStore):
        rate_limiter.store.start_cleanup()
    api_cache.start_sweeper()
    yield
    await api_cache.stop_sweeper()
    if isinstance(rate_limiter.store, MemoryStore):
        await rate_limiter.store.stop_cleanup()
    await engine.dispose()
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


# Last added runs first: request log → security headers → rate limit → CSRF → cache.
app.add_middleware(ResponseCacheMiddleware, cache=api_cache, paths=CACHED_PATHS)
app.add_middleware(CsrfMiddleware, protection=csrf_protection, enabled=settings.CSRF_ENABLED)
app.add_middleware(
    RateLimitMiddleware, limiter=rate_limiter, enabled=settings.RATE_LIMIT_ENABLED
)
app.add_middleware(SecurityHeadersMiddleware, hsts=settings.is_production)
app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message, request)
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    err = ValidationError(f"{location}: {message}" if location else message)
    resp = error_response(err.code, err.message, request)
    return JSONResponse(status_code=err.http_status, content=resp.model_dump())


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on [%s] %s", request.method, request.url.path)
    err = InternalError()
    resp = error_response(err.code, err.message, request)
    return JSONResponse(status_code=err.http_status, content=resp.model_dump())


app.include_router(auth_router, prefix="/api")
app.include_router(csrf_router, prefix="/api")
app.include_router(admin_session_router, prefix="/api")
app.include_router(admin_catalog_router, prefix="/api")
app.include_router(catalog_router, prefix="/api")
app.include_router(seller_router, prefix="/api")
app.include_router(order_router, prefix="/api")
app.include_router(leads_router, prefix="/api")
app.include_router(support_router, prefix="/api")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
