"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000

Push notifications live in this process's memory; run a single worker.
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
from sqlalchemy import text

from config.settings import settings
from src.ff_admin.api.router import router as admin_router
from src.ff_common.database import engine
from src.ff_common.errors import AppError, InternalError, RequestValidationFailed
from src.ff_common.response import error_response
from src.ff_gateway.api.router import profile_router
from src.ff_gateway.api.router import router as auth_router
from src.ff_gateway.middleware.request_log import RequestLogMiddleware
from src.ff_notify.api.router import router as notification_router
from src.ff_notify.domain.hub import NotificationHub
from src.ff_order.api.router import router as order_router
from src.ff_pricing.api.router import admin_router as admin_pricing_router
from src.ff_pricing.api.router import router as pricing_router

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB, create the notification hub. Shutdown: close both."""
    # Startup
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    app.state.notification_hub = NotificationHub(
        heartbeat_seconds=settings.NOTIFICATION_HEARTBEAT_SECONDS,
        channel_buffer=settings.NOTIFICATION_CHANNEL_BUFFER,
    )
    yield
    # Shutdown
    await app.state.notification_hub.close()
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message, request=request)
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    detail = f"{location}: {first.get('msg', 'invalid')}" if location else "Invalid request"
    err = RequestValidationFailed(detail)
    return await app_error_handler(request, err)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return await app_error_handler(request, InternalError())


app.include_router(auth_router, prefix="/api/v1")
app.include_router(profile_router, prefix="/api/v1")
app.include_router(order_router, prefix="/api/v1")
app.include_router(notification_router, prefix="/api/v1")
app.include_router(pricing_router, prefix="/api/v1")
app.include_router(admin_pricing_router, prefix="/api/v1")
app.include_router(admin_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
