"""Tests for API authentication and owner resolution."""

import time

import pytest
from fastapi.security import HTTPAuthorizationCredentials

from courier.api.auth import (
    AuthenticatedUser,
    TokenValidator,
    get_token_validator,
    reset_auth_singletons,
    resolve_owner_id,
)
from courier.config import Settings
from courier.exceptions import AuthenticationError, ValidationError


class TestTokenValidator:
    """Tests for token creation and validation."""

    @pytest.fixture
    def validator(self):
        """Create a token validator with test secret."""
        return TokenValidator("test-secret-key")

    def test_create_token(self, validator):
        """Should create a signed token."""
        token = validator.create_token("user_123")
        assert "user_123" in token
        # Token format: user_id:org_id:expires_at:signature
        assert len(token.split(":")) == 4

    def test_validate_token_success(self, validator):
        """Should validate a valid token."""
        token = validator.create_token("user_123", org_id="org_456")
        user = validator.validate_token(token)

        assert isinstance(user, AuthenticatedUser)
        assert user.user_id == "user_123"
        assert user.org_id == "org_456"

    def test_validate_token_no_org(self, validator):
        """Should handle token without org_id."""
        user = validator.validate_token(validator.create_token("user_123"))

        assert user.org_id is None

    def test_validate_token_invalid_format(self, validator):
        """Should reject invalid token format."""
        with pytest.raises(AuthenticationError, match="Invalid token format"):
            validator.validate_token("invalid-token")

    def test_validate_token_invalid_signature(self, validator):
        """Should reject token with invalid signature."""
        parts = validator.create_token("user_123").split(":")
        parts[3] = "invalid_signature"

        with pytest.raises(AuthenticationError, match="Invalid token signature"):
            validator.validate_token(":".join(parts))

    def test_validate_token_wrong_secret(self, validator):
        """Tokens signed with another key should be rejected."""
        token = TokenValidator("other-secret").create_token("user_123")

        with pytest.raises(AuthenticationError, match="Invalid token signature"):
            validator.validate_token(token)

    def test_validate_token_expired(self, validator):
        """Should reject expired token."""
        token = validator.create_token("user_123", expire_minutes=0)
        time.sleep(1.1)

        with pytest.raises(AuthenticationError, match="expired"):
            validator.validate_token(token)

    def test_validate_token_bad_expiry(self, validator):
        """A non-numeric expiry with a valid signature should be rejected."""
        payload = "user_123::soon"
        token = f"{payload}:{validator._sign(payload)}"

        with pytest.raises(AuthenticationError, match="Invalid token"):
            validator.validate_token(token)

    def test_validate_token_empty_user(self, validator):
        """A token without a user should be rejected."""
        token = validator.create_token("")

        with pytest.raises(AuthenticationError):
            validator.validate_token(token)


class TestTokenValidatorSingleton:
    """Tests for validator caching."""

    def setup_method(self):
        reset_auth_singletons()

    def teardown_method(self):
        reset_auth_singletons()

    def test_same_key_same_instance(self):
        """The same key should reuse the validator."""
        assert get_token_validator("key-a") is get_token_validator("key-a")

    def test_new_key_new_instance(self):
        """A changed key should build a new validator."""
        first = get_token_validator("key-a")
        assert get_token_validator("key-b") is not first


class TestResolveOwnerId:
    """Tests for resolve_owner_id()."""

    def setup_method(self):
        reset_auth_singletons()

    def teardown_method(self):
        reset_auth_singletons()

    @pytest.fixture
    def auth_settings(self):
        return Settings(
            _env_file=None, env="test", auth_enabled=True, auth_secret_key="test-secret-key"
        )

    def test_auth_disabled_uses_user_id(self):
        """Without auth the query parameter names the owner."""
        settings = Settings(_env_file=None, env="test", auth_enabled=False)

        assert resolve_owner_id(settings, None, "user_123") == "user_123"

    def test_auth_disabled_requires_user_id(self):
        """Without auth a missing user_id should be a validation error."""
        settings = Settings(_env_file=None, env="test", auth_enabled=False)

        with pytest.raises(ValidationError, match="user_id"):
            resolve_owner_id(settings, None, None)

    def test_auth_enabled_uses_token(self, auth_settings):
        """With auth the token's user is the owner."""
        token = TokenValidator("test-secret-key").create_token("user_123")
        credentials = HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)

        assert resolve_owner_id(auth_settings, credentials, "spoofed") == "user_123"

    def test_auth_enabled_requires_token(self, auth_settings):
        """With auth a missing token should fail authentication."""
        with pytest.raises(AuthenticationError, match="Missing"):
            resolve_owner_id(auth_settings, None, "user_123")
