import json

import httpx
import pytest

from prompt_gateway.config import Settings
from prompt_gateway.exceptions import (
    EmptyCompletionError,
    UnauthorizedError,
    UpstreamError,
    UpstreamRateLimitedError,
    UpstreamTimeoutError,
)
from prompt_gateway.services.completion_service import (
    CompletionService,
    MockCompletionService,
)


@pytest.fixture
def settings(make_settings) -> Settings:
    return make_settings(provider_api_key="secret-key")


async def _complete(settings: Settings, handler, prompt: str = "hello"):
    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(transport=transport) as client:
        service = CompletionService(client, settings)
        return await service.complete(prompt)


@pytest.mark.asyncio
async def test_completion_service_success(settings: Settings) -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        assert request.url == "https://api.cerebras.ai/v1/chat/completions"
        assert request.headers["Authorization"] == "Bearer secret-key"
        payload = json.loads(request.content.decode())
        assert payload == {
            "model": "llama3.1-8b",
            "messages": [{"role": "user", "content": "hello"}],
            "max_tokens": 1500,
            "temperature": 0.7,
        }
        return httpx.Response(
            200,
            json={
                "choices": [{"message": {"role": "assistant", "content": "hi there"}}],
                "usage": {"total_tokens": 17},
            },
        )

    result = await _complete(settings, handler)

    assert result.text == "hi there"
    assert result.model == "llama3.1-8b"
    assert result.tokens == 17


@pytest.mark.asyncio
async def test_completion_service_without_usage(settings: Settings) -> None:
    async def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"choices": [{"message": {"content": "ok"}}]})

    result = await _complete(settings, handler)

    assert result.tokens is None


@pytest.mark.asyncio
async def test_completion_service_custom_base_url(make_settings) -> None:
    settings = make_settings(provider_base_url="https://llm.internal/v1/")

    async def handler(request: httpx.Request) -> httpx.Response:
        assert request.url == "https://llm.internal/v1/chat/completions"
        return httpx.Response(200, json={"choices": [{"message": {"content": "ok"}}]})

    result = await _complete(settings, handler)

    assert result.text == "ok"


@pytest.mark.asyncio
async def test_completion_service_unauthorized(settings: Settings) -> None:
    async def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"message": "Wrong API Key"})

    with pytest.raises(UnauthorizedError) as exc:
        await _complete(settings, handler)

    assert exc.value.status_code == 401
    assert "secret-key" not in str(exc.value)
    assert exc.value.details is None


@pytest.mark.asyncio
async def test_completion_service_upstream_rate_limited(settings: Settings) -> None:
    async def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(429, json={"message": "slow down"})

    with pytest.raises(UpstreamRateLimitedError) as exc:
        await _complete(settings, handler)

    assert exc.value.status_code == 429


@pytest.mark.asyncio
async def test_completion_service_server_error(settings: Settings) -> None:
    async def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={"message": "overloaded"})

    with pytest.raises(UpstreamError) as exc:
        await _complete(settings, handler)

    assert exc.value.status_code == 500
    assert exc.value.details == "Provider returned HTTP 503"


@pytest.mark.asyncio
async def test_completion_service_timeout(settings: Settings) -> None:
    async def handler(_: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timeout")

    with pytest.raises(UpstreamTimeoutError) as exc:
        await _complete(settings, handler)

    assert exc.value.status_code == 504


@pytest.mark.asyncio
async def test_completion_service_transport_error(settings: Settings) -> None:
    async def handler(_: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused")

    with pytest.raises(UpstreamError):
        await _complete(settings, handler)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {"choices": []},
        {"choices": [{"message": {"content": ""}}]},
        {"choices": [{"message": {"content": None}}]},
        {"choices": [{"message": {}}]},
        {"choices": [{}]},
    ],
)
async def test_completion_service_empty_completion(settings: Settings, body) -> None:
    async def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=body)

    with pytest.raises(EmptyCompletionError):
        await _complete(settings, handler)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {"unexpected": "structure"},
        {"choices": {"x": 1}},
        {"choices": 5},
        {"choices": "text"},
        {"choices": None},
        ["not", "an", "object"],
    ],
)
async def test_completion_service_bad_payload(settings: Settings, body) -> None:
    async def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=body)

    with pytest.raises(UpstreamError) as exc:
        await _complete(settings, handler)

    assert exc.value.message == "Failed to get response from AI"
    assert exc.value.details == "Invalid completion response payload"


@pytest.mark.asyncio
async def test_completion_service_non_json(settings: Settings) -> None:
    async def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"<html>gateway</html>")

    with pytest.raises(UpstreamError):
        await _complete(settings, handler)


@pytest.mark.asyncio
async def test_mock_completion_service_echoes_prompt() -> None:
    result = await MockCompletionService().complete("ping")

    assert "ping" in result.text
    assert result.model == "mock"
