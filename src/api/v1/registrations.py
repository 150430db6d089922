# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Course registration API endpoints.

This module provides endpoints for the registration lifecycle:
- POST / - Submit or resubmit a course registration (student)
- GET /{registration_id} - Get a registration
- POST /{registration_id}/review - Approve or reject (admin)
- POST /{registration_id}/derive - Re-run derivation (admin)
- POST /derive-term - Derive every approved registration of a term (admin)
- POST /withdraw - Withdraw from a course
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.api.dependencies import (
    get_app_settings,
    get_db,
    get_session_factory,
    require_admin,
    require_auth,
    require_student,
)
from src.api.errors import to_http_exception
from src.api.middleware.auth import CurrentUser
from src.core.config.settings import Settings
from src.domains.academic_session.service import (
    AcademicSessionService,
    AcademicSessionServiceError,
)
from src.domains.registration.service import (
    RegistrationService,
    RegistrationServiceError,
)
from src.domains.results.exceptions import ResultServiceError
from src.infrastructure.database.connection import DatabaseError
from src.models.common import Semester
from src.models.registration import (
    DerivationResult,
    DeriveTermRequest,
    DeriveTermResponse,
    EnrollmentResponse,
    RegistrationResponse,
    RegistrationReviewRequest,
    RegistrationReviewResponse,
    RegistrationSubmitRequest,
    WithdrawRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_service(db: AsyncSession, settings: Settings) -> RegistrationService:
    """Get registration service instance."""
    return RegistrationService(db=db, settings=settings)


async def _resolve_term(
    db: AsyncSession,
    academic_year: str | None,
    semester: Semester | None,
) -> tuple[str, str]:
    try:
        return await AcademicSessionService(db).resolve_term(academic_year, semester)
    except AcademicSessionServiceError as e:
        raise to_http_exception(e)


@router.post(
    "",
    response_model=RegistrationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit registration",
    description="Submit or resubmit the caller's course selection for a term.",
)
async def submit_registration(
    data: RegistrationSubmitRequest,
    current_user: CurrentUser = Depends(require_student),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> RegistrationResponse:
    """Submit a course registration for the calling student."""
    academic_year, semester = await _resolve_term(db, data.academic_year, data.semester)

    service = _get_service(db, settings)
    try:
        return await service.submit_registration(
            student_id=current_user.id,
            academic_year=academic_year,
            semester=semester,
            level=data.level,
            department_id=data.department_id,
            course_ids=[str(course_id) for course_id in data.course_ids],
        )
    except (RegistrationServiceError, DatabaseError) as e:
        raise to_http_exception(e)


@router.get(
    "/{registration_id}",
    response_model=RegistrationResponse,
    summary="Get registration",
    description="Students may read their own registrations; administrators any.",
)
async def get_registration(
    registration_id: UUID,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> RegistrationResponse:
    """Get a registration by ID."""
    service = _get_service(db, settings)
    try:
        registration = await service.get_registration(str(registration_id))
    except RegistrationServiceError as e:
        raise to_http_exception(e)

    if not current_user.is_admin and registration.student_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Registration not found",
        )
    return registration


@router.post(
    "/{registration_id}/review",
    response_model=RegistrationReviewResponse,
    summary="Review registration",
    description="Approve or reject a pending registration. Approval derives enrollments.",
)
async def review_registration(
    registration_id: UUID,
    data: RegistrationReviewRequest,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> RegistrationReviewResponse:
    """Review a pending registration."""
    service = _get_service(db, settings)
    try:
        return await service.review_registration(
            str(registration_id),
            decision=data.decision,
            reviewer_id=current_user.id,
            comments=data.comments,
        )
    except (RegistrationServiceError, ResultServiceError, DatabaseError) as e:
        raise to_http_exception(e)


@router.post(
    "/derive-term",
    response_model=DeriveTermResponse,
    summary="Derive term",
    description="Derive enrollments and score records for every approved registration.",
)
async def derive_term(
    data: DeriveTermRequest,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    settings: Settings = Depends(get_app_settings),
) -> DeriveTermResponse:
    """Derive every approved registration of a term."""
    academic_year, semester = await _resolve_term(db, data.academic_year, data.semester)

    logger.info(
        "Term derivation requested: term=%s %s, by=%s",
        academic_year,
        semester,
        current_user.id,
    )

    service = _get_service(db, settings)
    return await service.derive_for_term(academic_year, semester, session_factory)


@router.post(
    "/withdraw",
    response_model=EnrollmentResponse,
    summary="Withdraw from course",
    description="Deactivate an enrollment. Students withdraw themselves; admins name the student.",
)
async def withdraw(
    data: WithdrawRequest,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> EnrollmentResponse:
    """Withdraw a student from a course."""
    if current_user.is_admin:
        if not data.student_id:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="student_id is required",
            )
        student_id = data.student_id
    elif current_user.is_student:
        if data.student_id and data.student_id != current_user.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Students may only withdraw themselves",
            )
        student_id = current_user.id
    else:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Student or admin access required",
        )

    academic_year, semester = await _resolve_term(db, data.academic_year, data.semester)

    service = _get_service(db, settings)
    try:
        return await service.withdraw(
            student_id=student_id,
            course_id=str(data.course_id),
            academic_year=academic_year,
            semester=semester,
            withdrawn_by=current_user.id,
        )
    except (ResultServiceError, DatabaseError) as e:
        raise to_http_exception(e)


@router.post(
    "/{registration_id}/derive",
    response_model=DerivationResult,
    summary="Derive registration",
    description="Idempotently derive enrollments and score records for an approved registration.",
)
async def derive_registration(
    registration_id: UUID,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> DerivationResult:
    """Re-run derivation for one registration."""
    service = _get_service(db, settings)
    try:
        return await service.derive_for_registration(str(registration_id))
    except (RegistrationServiceError, ResultServiceError, DatabaseError) as e:
        raise to_http_exception(e)
