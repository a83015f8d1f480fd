"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable

import httpx
import uvicorn
from fastapi import FastAPI, Request, Response

from prompt_gateway import __version__
from prompt_gateway.config import Settings, get_settings
from prompt_gateway.cors import OriginPolicy, install_origin_policy
from prompt_gateway.error_handlers import register_error_handlers
from prompt_gateway.exceptions import MisconfiguredError
from prompt_gateway.logging import configure_logging
from prompt_gateway.rate_limit import build_limiter
from prompt_gateway.routes import build_router

logger = logging.getLogger(__name__)

CONTENT_SECURITY_POLICY = "default-src 'self'; style-src 'self' 'unsafe-inline'; script-src 'self'"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create application resources during startup and clean up on shutdown."""

    settings: Settings = app.state.settings
    async with httpx.AsyncClient() as client:
        app.state.http_client = client
        logger.info(
            "Server started",
            extra={
                "environment": settings.mode,
                "port": settings.port,
                "allowed_origins": list(app.state.origin_policy.origins),
                "rate_limit": settings.rate_limit,
            },
        )
        yield
        del app.state.http_client


def _check_credential(settings: Settings) -> None:
    """Fail fast in production when the provider credential is missing."""

    if settings.has_provider_credential:
        logger.info("Completion provider credential configured")
        return

    if settings.is_production:
        logger.critical("FATAL: CEREBRAS_API_KEY environment variable is not set")
        raise MisconfiguredError(
            "AI service is not configured",
            details="CEREBRAS_API_KEY environment variable is not set",
        )

    if settings.allow_mock_completions:
        logger.warning("Development mode: running without an API key, mock completions enabled")
    else:
        logger.warning("Development mode: running without an API key, /askAi will fail")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Application factory."""

    settings = settings or get_settings()
    configure_logging(settings.log_level)
    _check_credential(settings)

    policy = OriginPolicy.from_settings(settings)
    limiter = build_limiter()

    app = FastAPI(
        title="Prompt Gateway",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.origin_policy = policy
    app.state.limiter = limiter

    app.include_router(build_router(limiter, settings.rate_limit))
    register_error_handlers(app)
    install_origin_policy(app, policy, settings)

    @app.middleware("http")
    async def security_headers_and_access_log(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        started = time.perf_counter()
        response = await call_next(request)

        response.headers["Content-Security-Policy"] = CONTENT_SECURITY_POLICY
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "SAMEORIGIN"
        response.headers["Cross-Origin-Resource-Policy"] = "cross-origin"
        response.headers["Referrer-Policy"] = "no-referrer"
        if settings.is_production:
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )

        logger.info(
            "%s %s",
            request.method,
            request.url.path,
            extra={
                "origin": request.headers.get("origin", "none"),
                "status_code": response.status_code,
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            },
        )
        return response

    return app


def run() -> None:
    """Console entrypoint: build the app and serve it with uvicorn."""

    settings = get_settings()
    try:
        application = create_app(settings)
    except MisconfiguredError:
        raise SystemExit(1) from None

    uvicorn.run(application, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    run()
