"""Application settings loaded from environment variables."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

PRODUCTION_RATE_LIMIT = 50
DEVELOPMENT_RATE_LIMIT = 100


class Settings(BaseSettings):
    """Strongly typed application configuration."""

    provider_api_key: SecretStr | None = Field(default=None, alias="CEREBRAS_API_KEY")
    provider_base_url: str = Field(
        default="https://api.cerebras.ai/v1", alias="PROVIDER_BASE_URL"
    )
    completion_model: str = Field(default="llama3.1-8b", alias="COMPLETION_MODEL")
    max_output_tokens: int = Field(default=1500, alias="MAX_OUTPUT_TOKENS")
    temperature: float = Field(default=0.7, alias="TEMPERATURE")
    provider_timeout: float = Field(
        default=30.0, alias="PROVIDER_TIMEOUT", description="Seconds"
    )

    environment: str = Field(default="development", alias="ENVIRONMENT")
    log_level: Literal["debug", "info", "warning", "error", "critical"] = Field(
        default="info", alias="LOG_LEVEL"
    )
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=3000, alias="PORT")
    service_name: str = Field(default="blog-backend-api", alias="SERVICE_NAME")

    max_message_length: int = Field(default=5000, alias="MAX_MESSAGE_LENGTH")
    max_body_bytes: int = Field(default=10 * 1024 * 1024, alias="MAX_BODY_BYTES")

    rate_limit_window_seconds: int = Field(
        default=15 * 60, alias="RATE_LIMIT_WINDOW_SECONDS"
    )
    rate_limit_max_requests: int | None = Field(
        default=None, alias="RATE_LIMIT_MAX_REQUESTS"
    )
    trust_proxy_headers: bool = Field(default=False, alias="TRUST_PROXY_HEADERS")

    development_origins: list[str] = Field(
        default=[
            "http://localhost:5173",
            "http://localhost:3000",
            "http://localhost:5174",
        ],
        alias="DEVELOPMENT_ORIGINS",
    )
    production_origins: list[str] = Field(
        default=[
            "https://your-frontend-domain.com",
            "https://www.your-frontend-domain.com",
        ],
        alias="PRODUCTION_ORIGINS",
    )
    extra_allowed_origins: list[str] = Field(
        default_factory=list, alias="EXTRA_ALLOWED_ORIGINS"
    )

    allow_mock_completions: bool = Field(default=False, alias="ALLOW_MOCK_COMPLETIONS")

    model_config = SettingsConfigDict(
        env_file=".env", case_sensitive=False, populate_by_name=True
    )

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def mode(self) -> str:
        return "production" if self.is_production else "development"

    @property
    def has_provider_credential(self) -> bool:
        return bool(
            self.provider_api_key is not None
            and self.provider_api_key.get_secret_value().strip()
        )

    @property
    def rate_limit(self) -> str:
        """Limit string for the completion endpoint, e.g. ``"50 per 900 seconds"``."""

        if self.rate_limit_max_requests is not None:
            ceiling = self.rate_limit_max_requests
        elif self.is_production:
            ceiling = PRODUCTION_RATE_LIMIT
        else:
            ceiling = DEVELOPMENT_RATE_LIMIT
        return f"{ceiling} per {self.rate_limit_window_seconds} seconds"


@lru_cache
def get_settings() -> Settings:
    """Return a cached instance of settings."""

    return Settings()
