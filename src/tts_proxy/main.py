"""
FastAPI Application Entry Point.

This module creates and configures the FastAPI application for the
tts-proxy service: logging, CORS, exception handlers and routes.

Usage:
    # Run with uvicorn
    uvicorn tts_proxy.main:app --host 0.0.0.0 --port 3001

    # Or use the CLI
    tts-proxy --port 3001
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tts_proxy import __version__
from tts_proxy.api.admission import quota_exceeded_response
from tts_proxy.api.dependencies import get_app_config
from tts_proxy.api.routes import router
from tts_proxy.core.errors import QuotaExceededError
from tts_proxy.core.logging import configure_logging, get_logger, info, warn
from tts_proxy.core.metrics import metrics

_LOG = get_logger("tts-proxy.main")

# Response headers browsers may read cross-origin
EXPOSED_HEADERS = [
    "RateLimit-Limit",
    "RateLimit-Remaining",
    "RateLimit-Reset",
    "Retry-After",
    "X-Request-Id",
]


async def _quota_exceeded_handler(request: Request, exc: QuotaExceededError) -> JSONResponse:
    metrics.record_request(request.url.path, exc.status_code)
    return quota_exceeded_response(exc)


async def _invalid_body_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report unparseable or mistyped bodies as 400 in the service's error shape."""
    warn(_LOG, "invalid_request_body", path=request.url.path, errors=len(exc.errors()))
    metrics.record_request(request.url.path, 400)
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request body", "details": jsonable_encoder(exc.errors())},
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    config = get_app_config()
    info(
        _LOG,
        "server_started",
        version=__version__,
        provider=config.provider.name,
        region=config.provider.region,
        daily_limit=config.quota.daily_limit,
    )
    yield
    info(_LOG, "server_stopped")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    This factory function:
        1. Configures structured logging based on environment settings
        2. Creates a FastAPI instance with the service title
        3. Adds CORS so the browser client can read the quota headers
        4. Registers the 429 and invalid-body exception handlers
        5. Registers the API router

    Returns:
        FastAPI: Configured application instance ready to serve requests.
    """
    configure_logging()

    config = get_app_config()
    app = FastAPI(title="tts-proxy", version=__version__, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=EXPOSED_HEADERS,
    )

    app.add_exception_handler(QuotaExceededError, _quota_exceeded_handler)
    app.add_exception_handler(RequestValidationError, _invalid_body_handler)

    app.include_router(router)

    return app


# Global application instance for ASGI servers (uvicorn, gunicorn, etc.)
app = create_app()
