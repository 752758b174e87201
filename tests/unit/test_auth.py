"""Unit tests for token validation and the auth header dependency."""

import pytest
from fastapi import HTTPException
from jose import jwt

from offer_catalog_service.auth.auth_dependencies import get_user_id_from_header
from offer_catalog_service.auth.token_validator import (
    AuthTokenValidator,
    hash_password,
    verify_password,
)


@pytest.mark.unit
class TestAuthTokenValidator:
    """Test suite for AuthTokenValidator."""

    @pytest.fixture
    def validator(self) -> AuthTokenValidator:
        """Validator with a test key."""
        return AuthTokenValidator(secret_key="test-secret")

    def test_requires_secret_key(self) -> None:
        """Test that an empty signing key is rejected."""
        with pytest.raises(ValueError, match="signing key"):
            AuthTokenValidator(secret_key="")

    def test_issue_and_validate(self, validator: AuthTokenValidator) -> None:
        """Test that issued tokens carry the user id."""
        token = validator.issue("user_1")

        assert jwt.decode(token, "test-secret", algorithms=["HS256"]) == {"id": "user_1"}
        assert validator.validate(token) == "user_1"

    def test_validate_wrong_key(self, validator: AuthTokenValidator) -> None:
        """Test that tokens signed with another key are rejected."""
        token = AuthTokenValidator(secret_key="other-secret").issue("user_1")

        assert validator.validate(token) is None

    def test_validate_garbage(self, validator: AuthTokenValidator) -> None:
        """Test that malformed tokens are rejected."""
        assert validator.validate("not-a-token") is None

    def test_validate_without_id_claim(self, validator: AuthTokenValidator) -> None:
        """Test that tokens without an id are rejected."""
        token = jwt.encode({"sub": "user_1"}, "test-secret", algorithm="HS256")

        assert validator.validate(token) is None


@pytest.mark.unit
class TestPasswordHashing:
    """Tests for bcrypt password helpers."""

    def test_hash_and_verify(self) -> None:
        """Test that a hash verifies only the original password."""
        password_hash = hash_password("password123")

        assert password_hash != "password123"
        assert verify_password("password123", password_hash) is True
        assert verify_password("password124", password_hash) is False


@pytest.mark.unit
class TestGetUserIdFromHeader:
    """Tests for the auth header dependency."""

    @pytest.fixture
    def validator(self) -> AuthTokenValidator:
        """Validator with a test key."""
        return AuthTokenValidator(secret_key="test-secret")

    def test_valid_token(self, validator: AuthTokenValidator) -> None:
        """Test that a valid token yields the user id."""
        token = validator.issue("user_1")

        assert get_user_id_from_header(x_auth_token=token, validator=validator) == "user_1"

    def test_missing_token(self, validator: AuthTokenValidator) -> None:
        """Test that a missing header raises 401."""
        with pytest.raises(HTTPException) as exc_info:
            get_user_id_from_header(x_auth_token=None, validator=validator)

        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Access denied. No token provided."

    def test_invalid_token(self, validator: AuthTokenValidator) -> None:
        """Test that an invalid token raises 401."""
        with pytest.raises(HTTPException) as exc_info:
            get_user_id_from_header(x_auth_token="bad", validator=validator)

        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Invalid token."

    def test_missing_validator(self) -> None:
        """Test that a missing validator rejects every token."""
        with pytest.raises(HTTPException) as exc_info:
            get_user_id_from_header(x_auth_token="anything", validator=None)

        assert exc_info.value.status_code == 401
