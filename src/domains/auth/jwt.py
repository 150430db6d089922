# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""JWT token management utilities.

This module provides access token creation and validation using
python-jose. Tokens carry the caller identity (``sub``) and a single
role, from which the approval tier is derived.

Example:
    >>> from src.core.config import get_settings
    >>> jwt_manager = JWTManager(get_settings().jwt)
    >>> token = jwt_manager.create_access_token(user_id="lect-1", role="lecturer")
    >>> claims = jwt_manager.decode_token(token)
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Literal

from jose import ExpiredSignatureError, JWTError as JoseJWTError, jwt
from pydantic import BaseModel, ValidationError, model_validator

from src.core.config.settings import JWTSettings

logger = logging.getLogger(__name__)

Role = Literal["student", "lecturer", "department_admin", "school_admin", "senate_admin"]

ROLES: tuple[str, ...] = (
    "student",
    "lecturer",
    "department_admin",
    "school_admin",
    "senate_admin",
)

# Scope claim each administrator role must carry
SCOPE_CLAIMS: dict[str, str] = {
    "department_admin": "department_id",
    "school_admin": "school_id",
}


class TokenPayload(BaseModel):
    """JWT token payload structure.

    Attributes:
        sub: Subject (user ID).
        role: Role of the caller.
        exp: Expiration timestamp.
        iat: Issued at timestamp.
        jti: JWT ID for token tracking.
        department_id: Department a department administrator acts for.
        school_id: School a school administrator acts for.
    """

    sub: str
    role: Role
    exp: int
    iat: int
    jti: str
    department_id: str | None = None
    school_id: str | None = None

    @model_validator(mode="after")
    def require_scope_claim(self) -> "TokenPayload":
        """Department and school administrators must carry their scope."""
        claim = SCOPE_CLAIMS.get(self.role)
        if claim and not getattr(self, claim):
            raise ValueError(f"{self.role} tokens require a {claim} claim")
        return self


class JWTError(Exception):
    """Base exception for JWT operations."""

    pass


class TokenExpiredError(JWTError):
    """Raised when a token has expired."""

    pass


class InvalidTokenError(JWTError):
    """Raised when a token is invalid."""

    pass


class JWTManager:
    """JWT token creation and validation manager.

    Attributes:
        _settings: JWT configuration settings.
    """

    def __init__(self, settings: JWTSettings) -> None:
        """Initialize the JWT manager.

        Args:
            settings: JWT configuration settings.
        """
        self._settings = settings

    def create_access_token(
        self,
        user_id: str,
        role: str,
        expires_in_minutes: int | None = None,
        department_id: str | None = None,
        school_id: str | None = None,
    ) -> str:
        """Create an access token.

        Args:
            user_id: User identifier.
            role: One of the known roles.
            expires_in_minutes: Override for the configured lifetime.
            department_id: Department scope (required for department_admin).
            school_id: School scope (required for school_admin).

        Returns:
            JWT access token string.

        Raises:
            ValueError: If the role is unknown or its scope claim is missing.
        """
        if role not in ROLES:
            raise ValueError(f"Unknown role: {role}")
        scope = {"department_id": department_id, "school_id": school_id}
        claim = SCOPE_CLAIMS.get(role)
        if claim and not scope[claim]:
            raise ValueError(f"{role} tokens require a {claim} claim")

        now = datetime.now(timezone.utc)
        minutes = (
            expires_in_minutes
            if expires_in_minutes is not None
            else self._settings.access_token_expire_minutes
        )
        exp = now + timedelta(minutes=minutes)

        payload = {
            "sub": str(user_id),
            "role": role,
            "exp": int(exp.timestamp()),
            "iat": int(now.timestamp()),
            "jti": secrets.token_urlsafe(16),
        }
        payload.update({key: value for key, value in scope.items() if value})

        return jwt.encode(
            payload,
            self._settings.secret_key.get_secret_value(),
            algorithm=self._settings.algorithm,
        )

    def decode_token(self, token: str) -> TokenPayload:
        """Decode and validate a JWT token.

        Args:
            token: JWT token string.

        Returns:
            TokenPayload with decoded claims.

        Raises:
            TokenExpiredError: If the token has expired.
            InvalidTokenError: If the token is invalid or its claims are.
        """
        try:
            payload = jwt.decode(
                token,
                self._settings.secret_key.get_secret_value(),
                algorithms=[self._settings.algorithm],
            )
        except ExpiredSignatureError:
            raise TokenExpiredError("Token has expired")
        except JoseJWTError as e:
            logger.warning("Token decode failed: %s", str(e))
            raise InvalidTokenError(f"Invalid token: {str(e)}")

        try:
            return TokenPayload.model_validate(payload)
        except ValidationError as e:
            logger.warning("Token claims rejected: %s", str(e))
            raise InvalidTokenError("Invalid token claims")

    def verify_token(self, token: str) -> bool:
        """Verify if a token is valid.

        Returns:
            True if token is valid, False otherwise.
        """
        try:
            self.decode_token(token)
            return True
        except (TokenExpiredError, InvalidTokenError):
            return False
