# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authentication domain services.

The identity provider is external: callers present a signed access token
carrying their user id and role. This package only creates and validates
those tokens.

Exports:
    JWTManager: JWT token creation and validation.
"""

from src.domains.auth.jwt import (
    ROLES,
    InvalidTokenError,
    JWTError,
    JWTManager,
    TokenExpiredError,
    TokenPayload,
)

__all__ = [
    "ROLES",
    "JWTManager",
    "JWTError",
    "InvalidTokenError",
    "TokenExpiredError",
    "TokenPayload",
]
