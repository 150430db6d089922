# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Result approval API endpoints.

This module provides endpoints for score entry and the approval workflow:
- POST /scores - Upload a lecturer score sheet
- PUT /{record_id}/scores - Edit or resubmit one record
- POST /{record_id}/advance - Record a tier decision on one record
- POST /advance-batch - Record a tier decision on a term
- POST /{record_id}/force-approve - Senate override
- GET /review - Records of a term with status statistics
- GET /{record_id}/ledger - Approval audit trail
- GET /me - Finalised results of the calling student
"""

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.api.dependencies import (
    get_app_settings,
    get_db,
    get_notifier,
    get_session_factory,
    require_approver,
    require_lecturer,
    require_senate_admin,
    require_student,
)
from src.api.errors import to_http_exception
from src.api.middleware.auth import CurrentUser
from src.core.config.settings import Settings
from src.domains.academic_session.service import (
    AcademicSessionService,
    AcademicSessionServiceError,
)
from src.domains.results import (
    ApprovalActor,
    ApprovalService,
    BulkTransitionOrchestrator,
    ResultService,
    ResultServiceError,
)
from src.infrastructure.database.connection import DatabaseError
from src.infrastructure.notifications import NotificationService
from src.models.common import AcademicYear, ResultStatus, Semester
from src.models.results import (
    AdvanceRequest,
    AdvanceResponse,
    BatchAdvanceRequest,
    BatchAdvanceResponse,
    BulkScoreRequest,
    BulkScoreResponse,
    ForceApproveRequest,
    ForceApproveResponse,
    LedgerEntryResponse,
    LedgerHistoryResponse,
    ReviewListResponse,
    ScoreRecordResponse,
    ScoreUpdateRequest,
    VisibleScoresResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _actor(user: CurrentUser) -> ApprovalActor:
    return ApprovalActor(
        id=user.id,
        tier=user.tier,
        role=user.role,
        department_id=user.department_id,
        school_id=user.school_id,
    )


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
    "/scores",
    response_model=BulkScoreResponse,
    summary="Upload score sheet",
    description="Create or update scores for one course and term. Requires lecturer access.",
)
async def upload_scores(
    data: BulkScoreRequest,
    current_user: CurrentUser = Depends(require_lecturer),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    notifier: NotificationService | None = Depends(get_notifier),
) -> BulkScoreResponse:
    """Upload a lecturer score sheet.

    Each line is processed on its own; failing lines are reported in the
    response and do not affect the others.
    """
    academic_year, semester = await _resolve_term(db, data.academic_year, data.semester)

    logger.info(
        "Score sheet upload: course=%s, term=%s %s, entries=%d, by=%s",
        data.course_id,
        academic_year,
        semester,
        len(data.entries),
        current_user.id,
    )

    service = ResultService(db, settings, notifier)
    try:
        return await service.bulk_upsert(
            course_id=str(data.course_id),
            academic_year=academic_year,
            semester=semester,
            entries=data.entries,
            submitted_by=current_user.id,
        )
    except (ResultServiceError, DatabaseError) as e:
        raise to_http_exception(e)


@router.put(
    "/{record_id}/scores",
    response_model=ScoreRecordResponse,
    summary="Edit scores",
    description="Edit a PENDING record or resubmit a REJECTED one. Requires lecturer access.",
)
async def update_scores(
    record_id: UUID,
    data: ScoreUpdateRequest,
    current_user: CurrentUser = Depends(require_lecturer),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    notifier: NotificationService | None = Depends(get_notifier),
) -> ScoreRecordResponse:
    """Edit the scores of one record."""
    service = ResultService(db, settings, notifier)
    try:
        result = await service.update_record_scores(
            str(record_id),
            ca_score=data.ca_score,
            exam_score=data.exam_score,
            submitted_by=current_user.id,
        )
    except (ResultServiceError, DatabaseError) as e:
        raise to_http_exception(e)

    return ScoreRecordResponse.model_validate(result.record)


@router.post(
    "/advance-batch",
    response_model=BatchAdvanceResponse,
    summary="Advance a term",
    description="Apply a tier decision to every matching record of a term.",
)
async def advance_batch(
    data: BatchAdvanceRequest,
    current_user: CurrentUser = Depends(require_approver),
    db: AsyncSession = Depends(get_db),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    settings: Settings = Depends(get_app_settings),
    notifier: NotificationService | None = Depends(get_notifier),
) -> BatchAdvanceResponse:
    """Apply a tier decision in bulk.

    Records no longer in the expected status are skipped, not failed.
    """
    academic_year, semester = await _resolve_term(db, data.academic_year, data.semester)

    orchestrator = BulkTransitionOrchestrator(session_factory, settings, notifier)
    try:
        return await orchestrator.advance_batch(
            tier=data.tier,
            decision=data.decision,
            actor=_actor(current_user),
            academic_year=academic_year,
            semester=semester,
            expected_status=data.expected_status,
            course_id=str(data.course_id) if data.course_id else None,
            record_ids=[str(record_id) for record_id in data.record_ids]
            if data.record_ids is not None
            else None,
            comments=data.comments,
        )
    except (ResultServiceError, DatabaseError) as e:
        raise to_http_exception(e)


@router.get(
    "/review",
    response_model=ReviewListResponse,
    summary="Review listing",
    description="Records of a term with per-status statistics. Requires approver access.",
)
async def list_for_review(
    academic_year: Annotated[AcademicYear | None, Query(description="e.g. 2024/2025")] = None,
    semester: Annotated[Semester | None, Query()] = None,
    status_filter: Annotated[ResultStatus | None, Query(alias="status")] = None,
    course_id: Annotated[UUID | None, Query()] = None,
    current_user: CurrentUser = Depends(require_approver),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> ReviewListResponse:
    """List records of a term within the caller's approval scope."""
    academic_year, term_semester = await _resolve_term(db, academic_year, semester)

    service = ResultService(db, settings)
    try:
        return await service.list_for_review(
            academic_year,
            term_semester,
            status=status_filter,
            course_id=str(course_id) if course_id else None,
            scope=_actor(current_user).scope,
        )
    except (ResultServiceError, DatabaseError) as e:
        raise to_http_exception(e)


@router.get(
    "/me",
    response_model=VisibleScoresResponse,
    summary="My results",
    description="Finalised results of the calling student with GPA and CGPA.",
)
async def my_results(
    academic_year: Annotated[AcademicYear | None, Query(description="e.g. 2024/2025")] = None,
    semester: Annotated[Semester | None, Query()] = None,
    current_user: CurrentUser = Depends(require_student),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> VisibleScoresResponse:
    """List the caller's SENATE_APPROVED results only."""
    service = ResultService(db, settings)
    return await service.list_visible(
        current_user.id,
        academic_year=academic_year,
        semester=semester.value if semester else None,
    )


@router.post(
    "/{record_id}/advance",
    response_model=AdvanceResponse,
    summary="Advance one record",
    description="Record the caller's tier decision on one record.",
)
async def advance_record(
    record_id: UUID,
    data: AdvanceRequest,
    current_user: CurrentUser = Depends(require_approver),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    notifier: NotificationService | None = Depends(get_notifier),
) -> AdvanceResponse:
    """Approve or reject one record at the caller's tier."""
    service = ApprovalService(db, settings, notifier)
    try:
        result = await service.advance(
            str(record_id),
            tier=data.tier,
            actor=_actor(current_user),
            decision=data.decision,
            comments=data.comments,
        )
    except (ResultServiceError, DatabaseError) as e:
        raise to_http_exception(e)

    return AdvanceResponse(
        record=ScoreRecordResponse.model_validate(result.record),
        previous_status=result.previous_status,
        ledger_entry=LedgerEntryResponse.model_validate(result.ledger_entry),
    )


@router.post(
    "/{record_id}/force-approve",
    response_model=ForceApproveResponse,
    status_code=status.HTTP_200_OK,
    summary="Force approve",
    description="Finalise a record without the lower tiers. Senate admins only, when enabled.",
)
async def force_approve(
    record_id: UUID,
    data: ForceApproveRequest,
    current_user: CurrentUser = Depends(require_senate_admin),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    notifier: NotificationService | None = Depends(get_notifier),
) -> ForceApproveResponse:
    """Apply the senate override to one record."""
    service = ApprovalService(db, settings, notifier)
    try:
        result = await service.force_approve(
            str(record_id),
            actor=_actor(current_user),
            reason=data.reason,
        )
    except (ResultServiceError, DatabaseError) as e:
        raise to_http_exception(e)

    return ForceApproveResponse(
        record=ScoreRecordResponse.model_validate(result.record),
        previous_status=result.previous_status,
        forced_entries=[
            LedgerEntryResponse.model_validate(entry) for entry in result.forced_entries
        ],
    )


@router.get(
    "/{record_id}/ledger",
    response_model=LedgerHistoryResponse,
    summary="Approval history",
    description="Ledger entries of a record across cycles. Requires approver access.",
)
async def ledger_history(
    record_id: UUID,
    current_user: CurrentUser = Depends(require_approver),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> LedgerHistoryResponse:
    """Return the approval audit trail of a record."""
    service = ApprovalService(db, settings)
    try:
        record, entries = await service.history(str(record_id), actor=_actor(current_user))
    except (ResultServiceError, DatabaseError) as e:
        raise to_http_exception(e)

    return LedgerHistoryResponse(
        score_record_id=record.id,
        current_cycle=record.cycle,
        status=ResultStatus(record.status),
        entries=[LedgerEntryResponse.model_validate(entry) for entry in entries],
    )
