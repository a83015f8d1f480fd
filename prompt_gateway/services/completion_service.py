"""Adapter for OpenAI-compatible chat completion providers."""

from __future__ import annotations

import logging

import httpx

from prompt_gateway.config import Settings
from prompt_gateway.exceptions import (
    EmptyCompletionError,
    MisconfiguredError,
    UnauthorizedError,
    UpstreamError,
    UpstreamRateLimitedError,
    UpstreamTimeoutError,
)
from prompt_gateway.models import Completion

logger = logging.getLogger(__name__)

UPSTREAM_FAILURE = "Failed to get response from AI"


class CompletionService:
    """Single-shot client for the provider's ``/chat/completions`` endpoint."""

    def __init__(self, client: httpx.AsyncClient, settings: Settings) -> None:
        self._client = client
        self._settings = settings
        self._endpoint = settings.provider_base_url.rstrip("/") + "/chat/completions"

    async def complete(self, prompt: str) -> Completion:
        """Forward ``prompt`` as a lone user turn and return the generated text."""

        payload = {
            "model": self._settings.completion_model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": self._settings.max_output_tokens,
            "temperature": self._settings.temperature,
        }

        api_key = self._settings.provider_api_key
        headers = {
            "Authorization": f"Bearer {api_key.get_secret_value() if api_key else ''}",
            "Content-Type": "application/json",
        }

        try:
            response = await self._client.post(
                self._endpoint,
                headers=headers,
                json=payload,
                timeout=self._settings.provider_timeout,
            )
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            logger.warning("Completion request timed out", exc_info=exc)
            raise UpstreamTimeoutError(
                "AI service timed out", details=str(exc) or None
            ) from exc
        except httpx.HTTPStatusError as exc:
            raise self._status_error(exc) from exc
        except httpx.HTTPError as exc:
            logger.exception("Unexpected completion HTTP error")
            raise UpstreamError(UPSTREAM_FAILURE, details=str(exc) or None) from exc

        try:
            data = response.json()
        except ValueError as exc:
            logger.error("Completion response is not JSON")
            raise UpstreamError(
                UPSTREAM_FAILURE, details="Invalid completion response payload"
            ) from exc

        choices = data.get("choices") if isinstance(data, dict) else None
        if not isinstance(choices, list):
            logger.error("Malformed completion response", extra={"raw_response": data})
            raise UpstreamError(UPSTREAM_FAILURE, details="Invalid completion response payload")

        content = None
        if choices:
            message = choices[0].get("message") if isinstance(choices[0], dict) else None
            if isinstance(message, dict):
                content = message.get("content")

        if not isinstance(content, str) or not content:
            raise EmptyCompletionError("No response from AI model")

        usage = data.get("usage") or {}
        tokens = usage.get("total_tokens") if isinstance(usage, dict) else None

        return Completion(
            text=content,
            model=self._settings.completion_model,
            tokens=tokens if isinstance(tokens, int) else None,
        )

    def _status_error(self, exc: httpx.HTTPStatusError) -> Exception:
        status_code = exc.response.status_code
        logger.error(
            "Completion request failed",
            extra={"status_code": status_code, "response_text": exc.response.text},
        )
        if status_code == 401:
            return UnauthorizedError("Invalid API key")
        if status_code == 429:
            return UpstreamRateLimitedError("Rate limit exceeded. Please try again later.")
        return UpstreamError(
            UPSTREAM_FAILURE,
            details=f"Provider returned HTTP {status_code}",
        )


class MockCompletionService:
    """Echoes prompts back; only wired up outside production without a credential."""

    model = "mock"

    async def complete(self, prompt: str) -> Completion:
        return Completion(
            text=f"[mock completion] You said: {prompt}",
            model=self.model,
        )


class UnconfiguredCompletionService:
    """Stands in for the provider when no credential is set outside production.

    Failing from ``complete`` rather than from dependency resolution keeps
    these requests behind the rate limiter and request validation.
    """

    async def complete(self, prompt: str) -> Completion:
        raise MisconfiguredError(
            "AI service is not configured",
            details="CEREBRAS_API_KEY environment variable is not set",
        )
