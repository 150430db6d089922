# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for JWT token utilities.

Tests the JWTManager class and token operations.
"""

from unittest.mock import MagicMock

import pytest
from jose import jwt
from pydantic import SecretStr

from src.domains.auth.jwt import (
    InvalidTokenError,
    JWTManager,
    TokenExpiredError,
    TokenPayload,
)


@pytest.fixture
def jwt_settings() -> MagicMock:
    """Create mock JWT settings."""
    settings = MagicMock()
    settings.secret_key = SecretStr("test-secret-key-for-jwt-testing")
    settings.algorithm = "HS256"
    settings.access_token_expire_minutes = 30
    return settings


@pytest.fixture
def jwt_manager(jwt_settings: MagicMock) -> JWTManager:
    """Create JWT manager with test settings."""
    return JWTManager(jwt_settings)


class TestJWTManager:
    """Tests for JWTManager class."""

    def test_create_and_decode_access_token(self, jwt_manager: JWTManager) -> None:
        """Test that a token round-trips its identity and role."""
        token = jwt_manager.create_access_token(user_id="ADM-42", role="senate_admin")

        payload = jwt_manager.decode_token(token)

        assert isinstance(payload, TokenPayload)
        assert payload.sub == "ADM-42"
        assert payload.role == "senate_admin"
        assert payload.exp - payload.iat == 30 * 60
        assert payload.jti

    def test_custom_lifetime(self, jwt_manager: JWTManager) -> None:
        """Test the configured lifetime can be overridden."""
        token = jwt_manager.create_access_token("STU-1", "student", expires_in_minutes=5)

        payload = jwt_manager.decode_token(token)

        assert payload.exp - payload.iat == 5 * 60

    def test_unknown_role_is_refused(self, jwt_manager: JWTManager) -> None:
        """Test tokens are only issued for known roles."""
        with pytest.raises(ValueError):
            jwt_manager.create_access_token("X-1", "vice_chancellor")

    def test_expired_token(self, jwt_manager: JWTManager) -> None:
        """Test that an expired token raises TokenExpiredError."""
        token = jwt_manager.create_access_token("LECT-1", "lecturer", expires_in_minutes=-1)

        with pytest.raises(TokenExpiredError):
            jwt_manager.decode_token(token)

    def test_wrong_secret(self, jwt_manager: JWTManager) -> None:
        """Test that a token signed with another key is invalid."""
        token = jwt.encode(
            {"sub": "LECT-1", "role": "lecturer", "exp": 9999999999, "iat": 0, "jti": "a"},
            "another-secret",
            algorithm="HS256",
        )

        with pytest.raises(InvalidTokenError):
            jwt_manager.decode_token(token)

    def test_malformed_token(self, jwt_manager: JWTManager) -> None:
        """Test that garbage is an invalid token."""
        with pytest.raises(InvalidTokenError):
            jwt_manager.decode_token("not-a-token")

    def test_invalid_claims(self, jwt_manager: JWTManager) -> None:
        """Test that a validly signed token with an unknown role is refused."""
        token = jwt.encode(
            {"sub": "X", "role": "root", "exp": 9999999999, "iat": 0, "jti": "a"},
            "test-secret-key-for-jwt-testing",
            algorithm="HS256",
        )

        with pytest.raises(InvalidTokenError):
            jwt_manager.decode_token(token)

    def test_verify_token(self, jwt_manager: JWTManager) -> None:
        """Test verify_token reports validity without raising."""
        token = jwt_manager.create_access_token("STU-1", "student")

        assert jwt_manager.verify_token(token) is True
        assert jwt_manager.verify_token("broken") is False


class TestScopeClaims:
    """Tests for department and school scope claims."""

    def test_department_admin_carries_department(self, jwt_manager: JWTManager) -> None:
        """Test the department claim survives the round trip."""
        token = jwt_manager.create_access_token(
            "ADM-1", "department_admin", department_id="CSC"
        )

        payload = jwt_manager.decode_token(token)

        assert payload.department_id == "CSC"
        assert payload.school_id is None

    @pytest.mark.parametrize("role", ["department_admin", "school_admin"])
    def test_scope_claim_required_to_issue(self, jwt_manager: JWTManager, role: str) -> None:
        """Test administrator tokens are not issued without their scope."""
        with pytest.raises(ValueError):
            jwt_manager.create_access_token("ADM-1", role)

    def test_scope_claim_required_to_decode(self, jwt_manager: JWTManager) -> None:
        """Test a signed school administrator token without a school is invalid."""
        token = jwt.encode(
            {"sub": "ADM-1", "role": "school_admin", "exp": 9999999999, "iat": 0, "jti": "a"},
            "test-secret-key-for-jwt-testing",
            algorithm="HS256",
        )

        with pytest.raises(InvalidTokenError):
            jwt_manager.decode_token(token)

    def test_unrelated_claims_are_not_added(self, jwt_manager: JWTManager) -> None:
        """Test empty scope claims are left out of the token."""
        token = jwt_manager.create_access_token("STU-1", "student")

        claims = jwt.get_unverified_claims(token)

        assert "department_id" not in claims
        assert "school_id" not in claims
