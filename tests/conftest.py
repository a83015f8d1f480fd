"""Shared pytest fixtures."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any, Callable, Iterator

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("CEREBRAS_API_KEY", "test-key")
os.environ.setdefault("ENVIRONMENT", "test")

from prompt_gateway.config import Settings  # noqa: E402
from prompt_gateway.dependencies import get_completion_service  # noqa: E402
from prompt_gateway.main import create_app  # noqa: E402
from prompt_gateway.models import Completion  # noqa: E402

ALLOWED_ORIGIN = "http://localhost:5173"


class RecordingCompletionService:
    """Stands in for the provider and remembers every prompt it was given."""

    def __init__(self) -> None:
        self.calls: list[str] = []
        self.text: str = "LLM reply"
        self.tokens: int | None = 42
        self.error: Exception | None = None

    async def complete(self, prompt: str) -> Completion:
        self.calls.append(prompt)
        if self.error is not None:
            raise self.error
        return Completion(text=self.text, model="llama3.1-8b", tokens=self.tokens)


def build_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {"provider_api_key": "test-key", "environment": "test"}
    values.update(overrides)
    # Pass aliases so explicit values (including None) win over the environment.
    by_alias = {Settings.model_fields[name].alias or name: value for name, value in values.items()}
    return Settings(_env_file=None, **by_alias)


@pytest.fixture(autouse=True)
def configure_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Ensure required environment variables are present during tests."""

    monkeypatch.setenv("CEREBRAS_API_KEY", "test-key")
    monkeypatch.setenv("ENVIRONMENT", "test")


@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    return build_settings


@pytest.fixture
def completion_service() -> RecordingCompletionService:
    return RecordingCompletionService()


@pytest.fixture
def make_client(
    completion_service: RecordingCompletionService,
) -> Iterator[Callable[..., TestClient]]:
    """Build an app from settings overrides and return a started TestClient."""

    opened: list[TestClient] = []

    def factory(override_service: bool = True, **overrides: Any) -> TestClient:
        app = create_app(build_settings(**overrides))
        if override_service:
            app.dependency_overrides[get_completion_service] = lambda: completion_service
        client = TestClient(app)
        client.__enter__()
        opened.append(client)
        return client

    yield factory

    for client in opened:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client: Callable[..., TestClient]) -> TestClient:
    return make_client()
