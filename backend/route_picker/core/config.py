"""Application configuration."""

import logging
from typing import Literal

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # API Settings
    API_V1_PREFIX: str = "/api/v1"
    PROJECT_NAME: str = "RoutePicker"
    DEBUG: bool = False
    ALLOWED_ORIGINS: str = "http://localhost:5173"

    @field_validator("ALLOWED_ORIGINS", mode="after")
    @classmethod
    def parse_cors(cls, v: str | list[str]) -> list[str]:
        """Parse comma-separated CORS origins or pass through list."""
        return v if isinstance(v, list) else [origin.strip() for origin in v.split(",")]

    # Database Settings
    DATABASE_URL: str = Field(validation_alias="SECRET_DATABASE_URL")
    DATABASE_ECHO: bool = False
    DATABASE_POOL_SIZE: int = 5
    DATABASE_MAX_OVERFLOW: int = 10

    # Identity provider settings (issuer of the RS256 session tokens)
    AUTH_DOMAIN: str
    AUTH_API_AUDIENCE: str
    AUTH_ALGORITHMS: str = "RS256"

    @field_validator("AUTH_ALGORITHMS", mode="after")
    @classmethod
    def parse_auth_algorithms(cls, v: str | list[str]) -> list[str]:
        """Parse comma-separated signing algorithms or pass through list."""
        return v if isinstance(v, list) else [algo.strip() for algo in v.split(",")]

    # Provider recorded for users whose token carries no provider claim
    AUTH_DEFAULT_PROVIDER: str = "oauth"

    # Fallback lifetime of a recorded session when the token has no exp claim
    SESSION_TTL_HOURS: int = 24 * 7

    # Alembic Settings
    ALEMBIC_INI_PATH: str = "alembic.ini"

    # OpenTelemetry Settings
    OTEL_ENABLED: bool = True
    OTEL_SERVICE_NAME: str = "route-picker-backend"
    OTEL_ENVIRONMENT: str = "production"

    # OTLP Exporter Endpoints (separate for traces and logs)
    OTEL_EXPORTER_OTLP_TRACES_ENDPOINT: str | None = None
    OTEL_EXPORTER_OTLP_LOGS_ENDPOINT: str | None = None
    OTEL_EXPORTER_OTLP_HEADERS: str | None = Field(default=None, validation_alias="SECRET_OTEL_HEADERS")
    OTEL_EXCLUDED_URLS: str = "/health,/ready"

    # Log level for OTLP log export (NOTSET exports all levels)
    OTEL_LOG_LEVEL: str = "NOTSET"

    @field_validator("OTEL_EXCLUDED_URLS", mode="after")
    @classmethod
    def parse_otel_excluded_urls(cls, v: str | list[str]) -> list[str]:
        """Parse comma-separated excluded URLs or pass through list, filtering out empty strings."""
        if isinstance(v, list):
            return [url for url in v if url]
        return [url.strip() for url in v.split(",") if url.strip()]

    # Logging Settings
    LOG_LEVEL: str = "INFO"
    # "json" for log shippers, "console" for humans
    LOG_FORMAT: Literal["console", "json"] = "console"

    @field_validator("LOG_LEVEL", "OTEL_LOG_LEVEL", mode="after")
    @classmethod
    def validate_log_level(cls, v: str, info: ValidationInfo) -> str:
        """Normalize a log level name, rejecting names the logging module does not know."""
        normalized = v.upper()
        valid_levels = logging.getLevelNamesMapping()
        if normalized not in valid_levels:
            msg = f"Invalid {info.field_name} '{v}'. Must be one of: {', '.join(sorted(valid_levels))}"
            raise ValueError(msg)
        return normalized


settings = Settings()


def require_config(*field_names: str) -> None:
    """
    Validate that required configuration fields are set.

    This utility should be called by modules on import to verify their
    required configuration is present.

    Args:
        *field_names: Names of required configuration fields

    Raises:
        ValueError: If any required field is missing or None

    Example:
        from route_picker.core.config import require_config, settings
        require_config("AUTH_DOMAIN", "AUTH_API_AUDIENCE")
    """
    missing = []
    for field in field_names:
        value = getattr(settings, field, None)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(field)

    if missing:
        msg = f"Required configuration missing: {', '.join(missing)}"
        raise ValueError(msg)
