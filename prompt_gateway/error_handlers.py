"""Exception handlers rendering every failure in the same JSON envelope."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from prompt_gateway.config import Settings
from prompt_gateway.exceptions import RateLimitedError, ServiceError
from prompt_gateway.models import ErrorResponse
from prompt_gateway.rate_limit import client_identity

logger = logging.getLogger(__name__)


def _settings(request: Request) -> Settings:
    return request.app.state.settings  # type: ignore[no-any-return]


def error_response(request: Request, error: ServiceError, **extra: Any) -> JSONResponse:
    """Render ``error`` as the failure envelope; details are dropped in production."""

    body = ErrorResponse(
        error=error.message,
        details=None if _settings(request).is_production else error.details,
    ).model_dump(exclude_none=True)
    body.update(extra)
    return JSONResponse(body, status_code=error.status_code)


async def service_error_handler(request: Request, exc: ServiceError) -> Response:
    extra = {"code": exc.code, "status_code": exc.status_code, "path": request.url.path}
    if exc.status_code >= 500:
        logger.error("Request failed: %s", exc.message, extra=extra)
    else:
        logger.info("Request rejected: %s", exc.message, extra=extra)

    return error_response(request, exc)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """Render slowapi's ``RateLimitExceeded`` as a ``RateLimitedError``."""

    logger.warning(
        "Rate limit exceeded",
        extra={"client": client_identity(request), "path": request.url.path},
    )
    response = await service_error_handler(
        request,
        RateLimitedError("Too many requests", details=f"Rate limit exceeded: {exc.detail}"),
    )
    limiter: Limiter = request.app.state.limiter
    return limiter._inject_headers(response, request.state.view_rate_limit)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> Response:
    """Replace the framework's 404/405 bodies with the failure envelope."""

    if exc.status_code == 404:
        error = "Not Found"
    elif exc.status_code == 405:
        error = "Method Not Allowed"
    else:
        error = str(exc.detail)

    return JSONResponse(
        {
            "success": False,
            "error": error,
            "message": f"Cannot {request.method} {request.url.path}",
        },
        status_code=exc.status_code,
        headers=exc.headers,
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> Response:
    logger.exception("Unhandled error", extra={"path": request.url.path})
    production = _settings(request).is_production
    return JSONResponse(
        {
            "success": False,
            "error": "Internal Server Error",
            "message": "Something went wrong" if production else str(exc),
        },
        status_code=500,
    )


class UnhandledErrorMiddleware(BaseHTTPMiddleware):
    """Turn unexpected exceptions into the envelope below the CORS layer.

    Starlette runs handlers registered for ``Exception`` outermost, where the
    response would miss the CORS and security headers.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            return await unhandled_error_handler(request, exc)


def register_error_handlers(app: FastAPI) -> None:
    """Install handlers and the innermost error middleware.

    Call before any other middleware is added so the error middleware sits
    directly around the router.
    """

    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
    app.add_middleware(UnhandledErrorMiddleware)
