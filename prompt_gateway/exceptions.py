"""Custom exceptions mapped onto the failure envelope."""

from dataclasses import dataclass


@dataclass(eq=False)
class ServiceError(Exception):
    """Base exception for failures surfaced to clients."""

    message: str
    code: str = "service_error"
    status_code: int = 500
    details: str | None = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.message


@dataclass(eq=False)
class InvalidRequestError(ServiceError):
    """Raised when the request body fails validation."""

    code: str = "invalid_request"
    status_code: int = 400


@dataclass(eq=False)
class UnauthorizedError(ServiceError):
    """Raised when the provider rejects the configured credential."""

    code: str = "unauthorized"
    status_code: int = 401


@dataclass(eq=False)
class OriginNotAllowedError(ServiceError):
    code: str = "origin_not_allowed"
    status_code: int = 403


@dataclass(eq=False)
class PayloadTooLargeError(ServiceError):
    code: str = "payload_too_large"
    status_code: int = 413


@dataclass(eq=False)
class RateLimitedError(ServiceError):
    """Raised when a client exceeds the local request quota."""

    code: str = "rate_limited"
    status_code: int = 429


@dataclass(eq=False)
class UpstreamRateLimitedError(ServiceError):
    """Raised when the provider throttles us."""

    code: str = "upstream_rate_limited"
    status_code: int = 429


@dataclass(eq=False)
class EmptyCompletionError(ServiceError):
    """Raised when the provider answers without any generated text."""

    code: str = "empty_completion"
    status_code: int = 500


@dataclass(eq=False)
class UpstreamError(ServiceError):
    code: str = "upstream_error"
    status_code: int = 500


@dataclass(eq=False)
class MisconfiguredError(ServiceError):
    """Raised when the provider credential is missing."""

    code: str = "misconfigured"
    status_code: int = 500


@dataclass(eq=False)
class UpstreamTimeoutError(ServiceError):
    code: str = "upstream_timeout"
    status_code: int = 504
