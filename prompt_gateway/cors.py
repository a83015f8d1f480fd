"""Allowed-origin policy and the middleware enforcing it."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from prompt_gateway.config import Settings
from prompt_gateway.error_handlers import error_response
from prompt_gateway.exceptions import OriginNotAllowedError

logger = logging.getLogger(__name__)

ALLOWED_METHODS = ("GET", "POST", "OPTIONS")
ALLOWED_HEADERS = ("Content-Type", "Authorization", "X-Requested-With")
EXPOSED_HEADERS = ("Content-Length",)
PREFLIGHT_MAX_AGE = 86400


@dataclass(frozen=True)
class OriginPolicy:
    """Exact-match allow-list of browser origins, fixed at startup."""

    origins: tuple[str, ...]

    @classmethod
    def from_settings(cls, settings: Settings) -> "OriginPolicy":
        mode_origins = (
            settings.production_origins
            if settings.is_production
            else settings.development_origins
        )
        return cls.of([*mode_origins, *settings.extra_allowed_origins])

    @classmethod
    def of(cls, origins: Iterable[str]) -> "OriginPolicy":
        # dict keeps first-seen order while dropping duplicates
        return cls(tuple(dict.fromkeys(o for o in origins if o)))

    def allows(self, origin: str | None) -> bool:
        """Requests without an Origin header come from non-browser clients."""

        if not origin:
            return True
        return origin in self.origins


class OriginGuardMiddleware(BaseHTTPMiddleware):
    """Reject requests whose Origin header is outside the allow-list."""

    def __init__(
        self,
        app: ASGIApp,
        policy: OriginPolicy,
        expose_allowed_origins: bool = False,
        exempt_paths: Iterable[str] = (),
    ) -> None:
        super().__init__(app)
        self._policy = policy
        self._expose_allowed_origins = expose_allowed_origins
        self._exempt_paths = frozenset(exempt_paths)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        origin = request.headers.get("origin")
        if self._policy.allows(origin) or request.url.path in self._exempt_paths:
            if request.method == "OPTIONS" and not _is_preflight(request):
                # Real preflights carry Access-Control-Request-Method and are
                # answered by CORSMiddleware; bare OPTIONS stop here.
                echoed = origin if self._policy.allows(origin) else None
                return Response(status_code=204, headers=_options_headers(echoed))
            return await call_next(request)

        logger.warning(
            "CORS blocked request",
            extra={"origin": origin, "method": request.method, "path": request.url.path},
        )
        error = OriginNotAllowedError(
            "CORS Error",
            details="The CORS policy for this site does not allow access from the specified Origin.",
        )
        extra: dict[str, object] = {"message": "Not allowed by CORS policy"}
        if self._expose_allowed_origins:
            extra["allowed_origins"] = list(self._policy.origins)
        return error_response(request, error, **extra)


def _is_preflight(request: Request) -> bool:
    return "origin" in request.headers and "access-control-request-method" in request.headers


def _options_headers(origin: str | None) -> dict[str, str]:
    headers = {
        "Allow": ", ".join(ALLOWED_METHODS),
        "Access-Control-Allow-Methods": ", ".join(ALLOWED_METHODS),
        "Access-Control-Allow-Headers": ", ".join(ALLOWED_HEADERS),
        "Access-Control-Max-Age": str(PREFLIGHT_MAX_AGE),
    }
    if origin:
        headers["Access-Control-Allow-Origin"] = origin
        headers["Access-Control-Allow-Credentials"] = "true"
        headers["Vary"] = "Origin"
    return headers


def install_origin_policy(app: FastAPI, policy: OriginPolicy, settings: Settings) -> None:
    """Wire CORS headers and the deny rule onto ``app``.

    Middleware added last runs first, so the guard sees every request before
    Starlette's CORS middleware answers preflights.
    """

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(policy.origins),
        allow_credentials=True,
        allow_methods=list(ALLOWED_METHODS),
        allow_headers=list(ALLOWED_HEADERS),
        expose_headers=list(EXPOSED_HEADERS),
        max_age=PREFLIGHT_MAX_AGE,
    )
    app.add_middleware(
        OriginGuardMiddleware,
        policy=policy,
        expose_allowed_origins=not settings.is_production,
        exempt_paths=("/test-cors",),
    )
