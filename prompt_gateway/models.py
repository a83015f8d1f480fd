"""Pydantic models shared across application layers."""

from pydantic import BaseModel, Field, StrictStr


class AskAiRequest(BaseModel):
    """Incoming prompt payload."""

    message: StrictStr = Field(description="User supplied text prompt.")


class Completion(BaseModel):
    """Generated text as returned by a completion service."""

    text: str
    model: str
    tokens: int | None = None


class CompletionData(BaseModel):
    text: str


class CompletionMeta(BaseModel):
    model: str
    tokens: int | None = None


class AskAiResponse(BaseModel):
    """Success envelope returned by ``POST /askAi``."""

    success: bool = True
    data: CompletionData
    meta: CompletionMeta

    @classmethod
    def from_completion(cls, completion: Completion) -> "AskAiResponse":
        return cls(
            data=CompletionData(text=completion.text),
            meta=CompletionMeta(model=completion.model, tokens=completion.tokens),
        )


class ErrorResponse(BaseModel):
    """Failure envelope shared by every error path."""

    success: bool = False
    error: str
    details: str | None = None
