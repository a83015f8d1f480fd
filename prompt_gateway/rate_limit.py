"""Per-client throttling for the completion endpoint.

Uses ``slowapi`` (which wraps ``limits``) with in-memory fixed windows. A new
limiter is built for every application instance, so counters never leak
between apps and are lost on restart.
"""

from __future__ import annotations

from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from prompt_gateway.config import Settings


def client_identity(request: Request) -> str:
    """Key requests by client IP, honouring X-Forwarded-For when trusted."""

    settings: Settings = request.app.state.settings
    if settings.trust_proxy_headers:
        forwarded = request.headers.get("x-forwarded-for", "")
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    return get_remote_address(request)


def build_limiter() -> Limiter:
    return Limiter(
        key_func=client_identity,
        storage_uri="memory://",
        strategy="fixed-window",
        headers_enabled=True,
    )

