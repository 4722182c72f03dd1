"""Authentication for the Courier API.

Provides:
- HMAC-signed Bearer tokens identifying the webhook owner
- Owner resolution for routes, with a user_id fallback when auth is disabled
"""

from __future__ import annotations

import hashlib
import hmac
import time
from functools import lru_cache
from typing import TYPE_CHECKING

from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, ConfigDict, Field

from courier.exceptions import AuthenticationError, ValidationError
from courier.logging import get_logger

if TYPE_CHECKING:
    from courier.config import Settings

logger = get_logger(__name__)

# Security scheme for OpenAPI docs
security = HTTPBearer(auto_error=False)


class AuthenticatedUser(BaseModel):
    """Represents an authenticated user.

    Attributes:
        user_id: Unique identifier for the user; owns the user's webhooks.
        org_id: Optional organization ID.
    """

    model_config = ConfigDict(extra="forbid")

    user_id: str = Field(description="Unique identifier for the user")
    org_id: str | None = Field(default=None, description="Optional organization ID")


class TokenValidator:
    """Validates Bearer tokens using HMAC-SHA256.

    Token format: user_id:org_id:expires_at:signature
    where signature = HMAC(secret, user_id:org_id:expires_at)
    """

    def __init__(self, secret_key: str) -> None:
        self.secret_key = secret_key.encode()

    def _sign(self, payload: str) -> str:
        return hmac.new(self.secret_key, payload.encode(), hashlib.sha256).hexdigest()

    def create_token(
        self,
        user_id: str,
        org_id: str | None = None,
        expire_minutes: int = 60,
    ) -> str:
        """Create a signed token for a user.

        Args:
            user_id: User identifier.
            org_id: Optional organization ID (encoded in token).
            expire_minutes: Token validity in minutes.

        Returns:
            Signed token string.
        """
        expires_at = int(time.time()) + (expire_minutes * 60)
        payload = f"{user_id}:{org_id or ''}:{expires_at}"
        return f"{payload}:{self._sign(payload)}"

    def validate_token(self, token: str) -> AuthenticatedUser:
        """Validate a token and return the authenticated user.

        Raises:
            AuthenticationError: If token is invalid or expired.
        """
        try:
            parts = token.split(":")
            if len(parts) != 4:
                raise AuthenticationError("Invalid token format")

            user_id, org_id, expires_at_str, signature = parts
            payload = f"{user_id}:{org_id}:{expires_at_str}"

            if not hmac.compare_digest(signature, self._sign(payload)):
                raise AuthenticationError("Invalid token signature")

            if time.time() > int(expires_at_str):
                raise AuthenticationError("Token has expired")

            if not user_id:
                raise AuthenticationError("Token has no user")

            return AuthenticatedUser(user_id=user_id, org_id=org_id or None)

        except ValueError as e:
            raise AuthenticationError(f"Invalid token: {e}") from e


@lru_cache(maxsize=1)
def get_token_validator(secret_key: str) -> TokenValidator:
    """Get or create the token validator singleton.

    The secret_key parameter ensures a new validator is created if the key changes.
    """
    return TokenValidator(secret_key)


def reset_auth_singletons() -> None:
    """Reset auth singletons (for testing)."""
    get_token_validator.cache_clear()


def resolve_owner_id(
    settings: Settings,
    credentials: HTTPAuthorizationCredentials | None,
    user_id: str | None = None,
) -> str:
    """Determine which owner a request acts for.

    With auth enabled the owner is the Bearer token's user. With auth
    disabled the caller names the owner with the user_id query parameter.

    Raises:
        AuthenticationError: If auth is enabled and the token is missing or invalid.
        ValidationError: If auth is disabled and no user_id was given.
    """
    if not settings.is_auth_enabled:
        if not user_id:
            raise ValidationError("user_id", "Required when authentication is disabled")
        return user_id

    if credentials is None:
        raise AuthenticationError("Missing authentication credentials")

    validator = get_token_validator(settings.effective_auth_secret_key)
    user = validator.validate_token(credentials.credentials)

    logger.debug("User authenticated", user_id=user.user_id, org_id=user.org_id)
    return user.user_id
