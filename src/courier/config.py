"""Configuration management for Courier."""

import logging
import secrets
import warnings
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

from courier.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def _generate_dev_secret_key() -> str:
    """Generate a random secret key for development use.

    Tokens signed with it are invalidated on restart, which is
    acceptable outside production.

    Returns:
        A cryptographically secure random hex string (64 characters).
    """
    return secrets.token_hex(32)


class Settings(BaseSettings):
    """Courier configuration loaded from environment variables.

    All settings can be overridden via environment variables with
    the COURIER_ prefix. For example:
        COURIER_STORAGE_BACKEND=qdrant
        COURIER_RETRY_DELAYS_SECONDS='[1, 5]'

    Security Notes:
        - In production (COURIER_ENV=production), auth is enabled by default
        - A missing auth secret key in production raises an error
    """

    # Environment
    env: Literal["development", "production", "test"] = Field(
        default="development",
        description="Environment: development, production, or test",
    )

    # Storage
    storage_backend: Literal["memory", "qdrant"] = Field(
        default="memory",
        description="Subscription store implementation",
    )
    qdrant_url: str = Field(
        default="http://localhost:6333",
        description="Qdrant connection URL",
    )
    qdrant_api_key: str | None = Field(
        default=None,
        description="Qdrant API key (for cloud)",
    )
    collection_prefix: str = Field(
        default="courier",
        description="Prefix for Qdrant collection names",
    )

    # Delivery
    delivery_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        le=300,
        description="Per-attempt HTTP timeout; a timeout counts as a failed attempt",
    )
    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Total delivery attempts per event, including the first",
    )
    retry_delays_seconds: list[float] = Field(
        default_factory=lambda: [1.0, 5.0],
        description=(
            "Waits between consecutive attempts. The last value is reused if "
            "max_attempts needs more waits than listed."
        ),
    )
    user_agent: str = Field(
        default="Courier-Webhook/1.0",
        description="User-Agent header sent with every delivery",
    )
    resolve_on_delivery: bool = Field(
        default=False,
        description=(
            "Resolve the webhook host before every attempt and refuse to send "
            "to private addresses (DNS rebinding guard)"
        ),
    )
    max_concurrent_deliveries: int = Field(
        default=10,
        ge=1,
        le=1000,
        description="Concurrency bound for event fan-out",
    )

    # Reliability
    failure_window_size: int = Field(
        default=20,
        ge=1,
        le=1000,
        description="Number of most recent delivery outcomes kept per subscription",
    )
    min_deliveries_for_auto_disable: int = Field(
        default=20,
        ge=1,
        description="Outcomes required in the window before auto-disable is evaluated",
    )
    failure_rate_threshold: float = Field(
        default=0.5,
        ge=0.0,
        lt=1.0,
        description="Window failure rate above which a subscription is disabled",
    )

    # Registration
    min_secret_length: int = Field(
        default=8,
        ge=1,
        description="Minimum length of a webhook signing secret",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_format: Literal["json", "text"] = Field(
        default="json",
        description="Log output format",
    )

    # Authentication
    auth_enabled: bool | None = Field(
        default=None,
        description=(
            "Enable Bearer token authentication. "
            "If not set, defaults to True in production, False otherwise."
        ),
    )
    auth_secret_key: str | None = Field(
        default=None,
        description=(
            "Secret key for token validation (HMAC). "
            "REQUIRED in production. In dev/test, a random key is generated if not set."
        ),
    )

    # CORS Configuration
    cors_enabled: bool = Field(
        default=True,
        description="Enable CORS middleware",
    )
    cors_allow_origins: list[str] = Field(
        default_factory=lambda: ["*"],
        description="List of allowed CORS origins",
    )
    cors_allow_methods: list[str] = Field(
        default_factory=lambda: ["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        description="Allowed HTTP methods for CORS requests",
    )
    cors_allow_headers: list[str] = Field(
        default_factory=lambda: ["*"],
        description="Allowed headers for CORS requests",
    )

    # Runtime-generated dev secret (not from env)
    _runtime_dev_secret: str | None = None

    model_config = {
        "env_prefix": "COURIER_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_nested_delimiter": "__",
    }

    @model_validator(mode="after")
    def validate_reliability_window(self) -> "Settings":
        """Validate the auto-disable window can ever fill up.

        A minimum above the window size would make auto-disable unreachable.
        """
        if self.min_deliveries_for_auto_disable > self.failure_window_size:
            raise ValueError(
                f"min_deliveries_for_auto_disable ({self.min_deliveries_for_auto_disable}) "
                f"must not exceed failure_window_size ({self.failure_window_size})"
            )
        if any(delay < 0 for delay in self.retry_delays_seconds):
            raise ValueError("retry_delays_seconds must not contain negative values")
        return self

    @model_validator(mode="after")
    def validate_security_settings(self) -> "Settings":
        """Validate security settings based on environment.

        - In production, a secret key MUST be explicitly provided
        - In dev/test, a random key is generated if not provided
        - Resolves auth_enabled default based on environment
        """
        is_production = self.env == "production"

        if self.auth_enabled is None:
            object.__setattr__(self, "auth_enabled", is_production)

        if is_production:
            if self.auth_secret_key is None:
                raise ConfigurationError(
                    "COURIER_AUTH_SECRET_KEY must be set in production. "
                    'Generate one with: python -c "import secrets; print(secrets.token_hex(32))"'
                )

            if not self.auth_enabled:
                warnings.warn(
                    "Authentication is disabled in production environment. "
                    "Set COURIER_AUTH_ENABLED=true to enable.",
                    UserWarning,
                    stacklevel=2,
                )
                logger.warning("Authentication disabled in production")
        elif self.auth_secret_key is None:
            object.__setattr__(self, "_runtime_dev_secret", _generate_dev_secret_key())
            logger.debug("Generated random auth secret for development")

        return self

    @property
    def is_auth_enabled(self) -> bool:
        """Get resolved auth_enabled value (always bool, never None)."""
        if self.auth_enabled is None:
            return self.env == "production"
        return self.auth_enabled

    @property
    def effective_auth_secret_key(self) -> str:
        """Get the effective secret key for authentication.

        Returns:
            The configured key, or the runtime-generated one in dev/test.

        Raises:
            ConfigurationError: If no secret key is available.
        """
        if self.auth_secret_key is not None:
            return self.auth_secret_key
        if self._runtime_dev_secret is not None:
            return self._runtime_dev_secret
        raise ConfigurationError("No auth secret key available")


# Global settings instance
settings = Settings()
