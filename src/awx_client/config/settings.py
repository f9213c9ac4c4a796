"""Configuration settings for the Airwallex client core.

This module defines the client configuration: API credentials, the target
base URL, timeouts and the retry/circuit-breaker tunables. Settings are
loaded from environment variables and .env files.
"""

from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PRODUCTION_BASE_URL = "https://api.airwallex.com"
"""Default API base URL; always requires HTTPS."""

API_VERSION = "2025-11-11"
"""Pinned value sent in the ``x-api-version`` header."""


class Settings(BaseSettings):
    """Client settings loaded from environment variables.

    :param client_id: Airwallex client ID used for login
    :type client_id: Optional[str]
    :param api_key: Airwallex API key used for login
    :type api_key: Optional[str]
    :param account_id: Optional account selector sent as ``x-login-as``
    :type account_id: Optional[str]
    :param base_url: Explicit non-production base URL; None for production
    :type base_url: Optional[str]
    :param log_level: Logging level for the application
    :type log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    :param http_timeout: Per-request HTTP timeout in seconds
    :type http_timeout: float
    :param operation_timeout: Default deadline for a whole logical call
    :type operation_timeout: float
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra fields in .env file
        populate_by_name=True,
    )

    # Credentials
    client_id: Optional[str] = Field(
        None, alias="AWX_CLIENT_ID", description="Airwallex client ID"
    )
    api_key: Optional[str] = Field(
        None, alias="AWX_API_KEY", description="Airwallex API key"
    )
    account_id: Optional[str] = Field(
        None,
        alias="AWX_ACCOUNT_ID",
        description="Account to log in as (multi-account API keys)",
    )

    # API Configuration
    base_url: Optional[str] = Field(
        None,
        alias="AWX_BASE_URL",
        description="Non-production base URL; production is used when unset",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        "INFO", alias="LOG_LEVEL", description="Logging level"
    )

    # Timeouts
    http_timeout: float = Field(
        30.0, alias="AWX_HTTP_TIMEOUT", description="Per-request timeout (s)"
    )
    operation_timeout: float = Field(
        45.0,
        alias="AWX_OPERATION_TIMEOUT",
        description="Default deadline for a logical operation (s)",
    )
    token_refresh_buffer: float = Field(
        60.0,
        alias="AWX_TOKEN_REFRESH_BUFFER",
        description="Refresh the token this long before it expires (s)",
    )

    # Retry policy
    max_rate_limit_retries: int = Field(
        3, alias="AWX_MAX_RATE_LIMIT_RETRIES", ge=0
    )
    rate_limit_base_delay: float = Field(1.0, alias="AWX_RATE_LIMIT_BASE_DELAY")
    server_error_retry_delay: float = Field(
        1.0, alias="AWX_SERVER_ERROR_RETRY_DELAY"
    )

    # Circuit breaker
    circuit_breaker_threshold: int = Field(
        5, alias="AWX_CIRCUIT_BREAKER_THRESHOLD", ge=1
    )
    circuit_breaker_reset_time: float = Field(
        30.0, alias="AWX_CIRCUIT_BREAKER_RESET_TIME"
    )

    @field_validator(
        "http_timeout",
        "operation_timeout",
        "rate_limit_base_delay",
        "server_error_retry_delay",
        "circuit_breaker_reset_time",
    )
    @classmethod
    def validate_positive(cls, v: float) -> float:
        """Reject zero or negative durations."""
        if v <= 0:
            raise ValueError("must be greater than zero")
        return v

    @field_validator("token_refresh_buffer")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("must not be negative")
        return v

    @field_validator("base_url")
    @classmethod
    def normalize_base_url(cls, v: Optional[str]) -> Optional[str]:
        """Strip whitespace and trailing slashes; treat blank as unset."""
        if v is None:
            return None
        v = v.strip().rstrip("/")
        return v or None

    @property
    def has_credentials(self) -> bool:
        """Return whether both client ID and API key are set and non-blank."""
        return bool(
            self.client_id
            and self.client_id.strip()
            and self.api_key
            and self.api_key.strip()
        )


settings = Settings()
"""Global settings instance for the Airwallex client.

This instance is created once at import time; callers that need different
values construct their own :class:`Settings`.
"""
