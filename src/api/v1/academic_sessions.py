# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Academic session management API endpoints.

This module provides endpoints for academic session management:
- POST / - Create a new academic session
- GET / - List academic sessions
- GET /current - Get the current academic session
- POST /{session_id}/set-current - Set as current session
- PATCH /{session_id} - Update semester or registration window

Changes require admin access; reading the current session requires
any authenticated user.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_db, require_admin, require_auth
from src.api.errors import to_http_exception
from src.api.middleware.auth import CurrentUser
from src.domains.academic_session.service import (
    AcademicSessionService,
    AcademicSessionServiceError,
)
from src.models.academic_session import (
    AcademicSessionCreateRequest,
    AcademicSessionListResponse,
    AcademicSessionResponse,
    AcademicSessionUpdateRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_service(db: AsyncSession) -> AcademicSessionService:
    """Get academic session service instance."""
    return AcademicSessionService(db=db)


@router.post(
    "",
    response_model=AcademicSessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create academic session",
)
async def create_academic_session(
    data: AcademicSessionCreateRequest,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> AcademicSessionResponse:
    """Create a new academic session."""
    logger.info(
        "Creating academic session: %s by %s",
        data.academic_year,
        current_user.id,
    )

    service = _get_service(db)
    try:
        return await service.create_session(data)
    except AcademicSessionServiceError as e:
        raise to_http_exception(e)


@router.get(
    "",
    response_model=AcademicSessionListResponse,
    summary="List academic sessions",
)
async def list_academic_sessions(
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> AcademicSessionListResponse:
    """List all academic sessions."""
    items, total = await _get_service(db).list_sessions()
    return AcademicSessionListResponse(items=items, total=total)


@router.get(
    "/current",
    response_model=AcademicSessionResponse,
    summary="Get current academic session",
)
async def get_current_academic_session(
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> AcademicSessionResponse:
    """Get the current academic session.

    Raises:
        HTTPException: If no session is current.
    """
    current = await _get_service(db).get_current()
    if current is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No current academic session is set",
        )
    return current


@router.post(
    "/{session_id}/set-current",
    response_model=AcademicSessionResponse,
    summary="Set current academic session",
)
async def set_current_academic_session(
    session_id: UUID,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> AcademicSessionResponse:
    """Make a session the current one."""
    service = _get_service(db)
    try:
        return await service.set_current(str(session_id))
    except AcademicSessionServiceError as e:
        raise to_http_exception(e)


@router.patch(
    "/{session_id}",
    response_model=AcademicSessionResponse,
    summary="Update academic session",
)
async def update_academic_session(
    session_id: UUID,
    data: AcademicSessionUpdateRequest,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> AcademicSessionResponse:
    """Update the semester or registration window of a session."""
    service = _get_service(db)
    try:
        return await service.update_session(str(session_id), data)
    except AcademicSessionServiceError as e:
        raise to_http_exception(e)
