# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI dependency injection definitions.

This module provides dependency functions for FastAPI endpoints.
Dependencies are used to:
- Get database sessions and the session factory
- Get the notification service
- Get authenticated users and enforce roles

Example:
    @router.post("/results/{record_id}/advance")
    async def advance(
        db: AsyncSession = Depends(get_db),
        current_user: CurrentUser = Depends(require_approver),
    ):
        ...
"""

import logging
from typing import Annotated, AsyncGenerator

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.api.middleware.auth import CurrentUser, get_current_user
from src.core.config import get_settings
from src.core.config.settings import Settings
from src.infrastructure.database.connection import get_session, get_sessionmaker
from src.infrastructure.notifications import NotificationService

logger = logging.getLogger(__name__)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get database session.

    Yields:
        AsyncSession, committed on success and rolled back on error.
    """
    async with get_session() as session:
        yield session


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get the session factory for work that needs one session per item."""
    return get_sessionmaker()


def get_app_settings() -> Settings:
    """Get application settings."""
    return get_settings()


def get_notifier(request: Request) -> NotificationService | None:
    """Get the notification service created at startup.

    Returns:
        NotificationService, or None if notifications are not configured.
    """
    return getattr(request.app.state, "notifier", None)


# =========================================================================
# Authentication Dependencies
# =========================================================================


def require_auth(request: Request) -> CurrentUser:
    """Require authenticated user.

    Raises:
        HTTPException: If not authenticated.
    """
    user = get_current_user(request)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def require_lecturer(request: Request) -> CurrentUser:
    """Require lecturer user.

    Raises:
        HTTPException: If not authenticated or not a lecturer.
    """
    user = require_auth(request)
    if not user.is_lecturer:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Lecturer access required",
        )
    return user


def require_approver(request: Request) -> CurrentUser:
    """Require a user acting for an approval tier.

    Raises:
        HTTPException: If not authenticated or not an approver.
    """
    user = require_auth(request)
    if not user.is_approver:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Approver access required",
        )
    return user


def require_senate_admin(request: Request) -> CurrentUser:
    """Require senate administrator.

    Raises:
        HTTPException: If not authenticated or not a senate administrator.
    """
    user = require_auth(request)
    if not user.is_senate_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Senate admin access required",
        )
    return user


def require_admin(request: Request) -> CurrentUser:
    """Require any administrator.

    Raises:
        HTTPException: If not authenticated or not an administrator.
    """
    user = require_auth(request)
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user


def require_student(request: Request) -> CurrentUser:
    """Require student user.

    Raises:
        HTTPException: If not authenticated or not a student.
    """
    user = require_auth(request)
    if not user.is_student:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Student access required",
        )
    return user


# =========================================================================
# Type Aliases for Dependency Injection
# =========================================================================

DB = Annotated[AsyncSession, Depends(get_db)]
SessionFactory = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]
AppSettings = Annotated[Settings, Depends(get_app_settings)]
Notifier = Annotated[NotificationService | None, Depends(get_notifier)]
AuthenticatedUser = Annotated[CurrentUser, Depends(require_auth)]
LecturerUser = Annotated[CurrentUser, Depends(require_lecturer)]
ApproverUser = Annotated[CurrentUser, Depends(require_approver)]
SenateAdminUser = Annotated[CurrentUser, Depends(require_senate_admin)]
AdminUser = Annotated[CurrentUser, Depends(require_admin)]
StudentUser = Annotated[CurrentUser, Depends(require_student)]
