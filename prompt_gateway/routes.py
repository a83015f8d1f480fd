"""HTTP routes: the completion endpoint plus health and metadata."""

import logging
from datetime import datetime, timezone
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request, Response
from pydantic import ValidationError
from slowapi import Limiter

from prompt_gateway import __version__
from prompt_gateway.config import Settings
from prompt_gateway.cors import OriginPolicy
from prompt_gateway.dependencies import (
    CompletionBackend,
    get_app_settings,
    get_completion_service,
    get_origin_policy,
)
from prompt_gateway.exceptions import InvalidRequestError, PayloadTooLargeError
from prompt_gateway.models import AskAiRequest, AskAiResponse

logger = logging.getLogger(__name__)

MESSAGE_REQUIRED = "Message is required and must be a non-empty string"


def build_router(limiter: Limiter, rate_limit: str) -> APIRouter:
    """Create the router, throttling ``/askAi`` with ``rate_limit``."""

    router = APIRouter()

    @router.get("/")
    async def banner(
        settings: Annotated[Settings, Depends(get_app_settings)],
        policy: Annotated[OriginPolicy, Depends(get_origin_policy)],
    ) -> dict[str, Any]:
        return {
            "status": "Server is running",
            "message": "Blog Backend API",
            "version": __version__,
            "environment": settings.mode,
            "endpoints": {"health": "GET /health", "askAi": "POST /askAi"},
            "cors": {
                "allowed_origins": list(policy.origins),
                "note": (
                    "Production mode - restricted domains"
                    if settings.is_production
                    else "Development mode - includes localhost"
                ),
            },
        }

    @router.get("/health")
    async def health(
        settings: Annotated[Settings, Depends(get_app_settings)],
        policy: Annotated[OriginPolicy, Depends(get_origin_policy)],
    ) -> dict[str, Any]:
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": settings.service_name,
            "environment": settings.mode,
            "cors_allowed_origins": list(policy.origins),
        }

    @router.get("/test-cors")
    async def test_cors(
        request: Request,
        policy: Annotated[OriginPolicy, Depends(get_origin_policy)],
    ) -> dict[str, Any]:
        origin = request.headers.get("origin")
        return {
            "origin": origin,
            "allowed": policy.allows(origin),
            "allowed_origins": list(policy.origins),
        }

    @router.post(
        "/askAi",
        response_model=AskAiResponse,
        response_model_exclude_none=True,
    )
    @limiter.limit(rate_limit)
    async def ask_ai(
        request: Request,
        response: Response,  # slowapi writes the X-RateLimit-* headers here
        completion_service: Annotated[CompletionBackend, Depends(get_completion_service)],
        settings: Annotated[Settings, Depends(get_app_settings)],
    ) -> AskAiResponse:
        """Validate the prompt, forward it once, and wrap the generated text."""

        message = await _read_message(request, settings)

        logger.info(
            "Processing AI request",
            extra={"preview": message[:100], "length": len(message)},
        )
        completion = await completion_service.complete(message)
        logger.info(
            "AI response generated",
            extra={"characters": len(completion.text), "tokens": completion.tokens},
        )

        return AskAiResponse.from_completion(completion)

    return router


async def _read_message(request: Request, settings: Settings) -> str:
    """Extract and validate ``message`` from the raw request body."""

    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > settings.max_body_bytes:
        raise PayloadTooLargeError("Request body too large")

    # Chunked bodies carry no Content-Length; stop reading once over the cap.
    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > settings.max_body_bytes:
            raise PayloadTooLargeError("Request body too large")

    try:
        payload = AskAiRequest.model_validate_json(bytes(body))
    except ValidationError as exc:
        raise InvalidRequestError(
            MESSAGE_REQUIRED, details=exc.errors()[0]["msg"] if exc.errors() else None
        ) from exc

    message = payload.message
    if len(message.strip()) == 0:
        raise InvalidRequestError(MESSAGE_REQUIRED)

    if len(message) > settings.max_message_length:
        raise InvalidRequestError(
            f"Message too long. Maximum {settings.max_message_length} characters."
        )

    return message
