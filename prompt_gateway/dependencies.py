"""Dependency providers for the FastAPI application."""

from typing import Protocol

import httpx
from fastapi import Depends
from starlette.requests import HTTPConnection

from prompt_gateway.config import Settings
from prompt_gateway.cors import OriginPolicy
from prompt_gateway.models import Completion
from prompt_gateway.services.completion_service import (
    CompletionService,
    MockCompletionService,
    UnconfiguredCompletionService,
)


class CompletionBackend(Protocol):
    async def complete(self, prompt: str) -> Completion: ...


async def get_app_settings(connection: HTTPConnection) -> Settings:
    """Settings the application was built with."""

    return connection.app.state.settings  # type: ignore[no-any-return]


async def get_origin_policy(connection: HTTPConnection) -> OriginPolicy:
    return connection.app.state.origin_policy  # type: ignore[no-any-return]


async def get_http_client(connection: HTTPConnection) -> httpx.AsyncClient:
    """Retrieve the shared AsyncClient from application state."""

    return connection.app.state.http_client  # type: ignore[no-any-return]


async def get_completion_service(
    client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_app_settings),
) -> CompletionBackend:
    """Pick the completion backend for this deployment.

    Without a credential, non-production deployments either echo through the
    mock service (when explicitly enabled) or get a stand-in whose
    ``complete`` raises ``MisconfiguredError``.
    Production never gets here without a credential; ``create_app`` refuses to start.
    """

    if settings.has_provider_credential:
        return CompletionService(client=client, settings=settings)

    if settings.allow_mock_completions and not settings.is_production:
        return MockCompletionService()

    return UnconfiguredCompletionService()
