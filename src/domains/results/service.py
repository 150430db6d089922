# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Result service for score entry and result queries.

This module provides the ResultService class for:
- Lecturer score entry, single and by score sheet
- Resubmission of rejected results
- Administrator review listings
- Student result views (finalised results only)

Lecturers enter scores only for courses they are assigned to.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config.settings import Settings
from src.domains.results.exceptions import (
    InvalidTransitionError,
    NotEnrolledError,
    ResultServiceError,
    ScoreValidationError,
)
from src.domains.results.notifications import course_label, resubmission_notifications
from src.domains.results.scope import INSTITUTION_WIDE, ApprovalScope
from src.domains.results.state_machine import ResultStatus
from src.domains.results.store import (
    ScoreOutcome,
    ScoreRecordStore,
    UpsertResult,
    require_course_assignment,
)
from src.infrastructure.database.connection import DatabaseError
from src.infrastructure.database.models.registration import Course
from src.infrastructure.database.models.results import ScoreRecord
from src.infrastructure.notifications.service import NotificationService
from src.models.common import Semester
from src.models.results import (
    BulkScoreResponse,
    ReviewListResponse,
    ScoreEntry,
    ScoreEntryOutcome,
    VisibleScoresResponse,
)

logger = logging.getLogger(__name__)


class ResultService:
    """Service for entering scores and querying results.

    Attributes:
        db: Async database session.
        settings: Application settings.
        store: Score record store on the same session.
    """

    def __init__(
        self,
        db: AsyncSession,
        settings: Settings,
        notifier: NotificationService | None = None,
    ) -> None:
        """Initialize result service.

        Args:
            db: Async database session.
            settings: Application settings.
            notifier: Notification service, or None to send nothing.
        """
        self.db = db
        self.settings = settings
        self.store = ScoreRecordStore(db, settings.grading)
        self._notifier = notifier

    async def ensure_assigned(self, lecturer_id: str, course_id: str) -> None:
        """Refuse score entry by a lecturer not assigned to the course.

        Raises:
            NotAssignedError: If there is no active assignment.
            DatabaseError: If the lookup fails.
        """
        try:
            await require_course_assignment(self.db, lecturer_id, course_id)
        except SQLAlchemyError as e:
            raise DatabaseError("Failed to check course assignment", e) from e

    async def upsert_score(
        self,
        student_id: str,
        course_id: str,
        academic_year: str,
        semester: str,
        ca_score: float,
        exam_score: float,
        submitted_by: str,
    ) -> UpsertResult:
        """Enter or correct one student's scores and commit.

        Raises:
            NotAssignedError: If ``submitted_by`` is not assigned to the course.
            ScoreValidationError: If a score is out of bounds.
            NotEnrolledError: If the student is not actively enrolled.
            InvalidTransitionError: If the record is locked for review.
            DatabaseError: If persistence fails.
        """
        await self.ensure_assigned(submitted_by, course_id)
        return await self._save_scores(
            student_id, course_id, academic_year, semester, ca_score, exam_score, submitted_by
        )

    async def update_record_scores(
        self,
        record_id: str,
        ca_score: float,
        exam_score: float,
        submitted_by: str,
    ) -> UpsertResult:
        """Edit the scores of an existing record by its ID.

        Editing a REJECTED record resubmits it.

        Raises:
            ScoreRecordNotFoundError: If the record does not exist.
            NotAssignedError: If ``submitted_by`` is not assigned to the course.
            ScoreValidationError: If a score is out of bounds.
            NotEnrolledError: If the student is no longer enrolled.
            InvalidTransitionError: If the record is locked for review.
            DatabaseError: If persistence fails.
        """
        record = await self.store.get(record_id)
        return await self.upsert_score(
            student_id=record.student_id,
            course_id=record.course_id,
            academic_year=record.academic_year,
            semester=record.semester,
            ca_score=ca_score,
            exam_score=exam_score,
            submitted_by=submitted_by,
        )

    async def bulk_upsert(
        self,
        course_id: str,
        academic_year: str,
        semester: str,
        entries: list[ScoreEntry],
        submitted_by: str,
    ) -> BulkScoreResponse:
        """Save a lecturer's score sheet for one course.

        The assignment is checked once for the whole sheet. After that
        each entry is committed on its own; a failing entry is reported
        and does not affect the others.

        Args:
            course_id: Course the sheet belongs to.
            academic_year: Academic year.
            semester: FIRST or SECOND.
            entries: Score lines.
            submitted_by: Lecturer submitting the sheet.

        Returns:
            Per-entry outcomes and counts.

        Raises:
            NotAssignedError: If ``submitted_by`` is not assigned to the course.
        """
        await self.ensure_assigned(submitted_by, course_id)

        response = BulkScoreResponse(
            course_id=course_id,
            academic_year=academic_year,
            semester=Semester(semester),
        )

        for entry in entries:
            try:
                result = await self._save_scores(
                    entry.student_id,
                    course_id,
                    academic_year,
                    semester,
                    entry.ca_score,
                    entry.exam_score,
                    submitted_by,
                )
            except (
                ScoreValidationError,
                NotEnrolledError,
                InvalidTransitionError,
                DatabaseError,
            ) as e:
                response.failed += 1
                response.results.append(
                    ScoreEntryOutcome(
                        student_id=entry.student_id,
                        outcome="failed",
                        error_code=type(e).__name__,
                        error=str(e),
                    )
                )
                continue

            if result.outcome == ScoreOutcome.CREATED:
                response.created += 1
            elif result.outcome == ScoreOutcome.UPDATED:
                response.updated += 1
            else:
                response.resubmitted += 1
            response.results.append(
                ScoreEntryOutcome(
                    student_id=entry.student_id,
                    outcome=result.outcome.value,
                    record_id=result.record.id,
                )
            )

        logger.info(
            "Score sheet for course %s %s %s: created=%d updated=%d resubmitted=%d failed=%d",
            course_id,
            academic_year,
            semester,
            response.created,
            response.updated,
            response.resubmitted,
            response.failed,
        )
        return response

    async def list_for_review(
        self,
        academic_year: str,
        semester: str,
        status: ResultStatus | None = None,
        course_id: str | None = None,
        scope: ApprovalScope = INSTITUTION_WIDE,
    ) -> ReviewListResponse:
        """List records of a term within an approver's scope, with status statistics."""
        return await self.store.list_for_review(
            academic_year, semester, status, course_id, scope=scope
        )

    async def list_visible(
        self,
        student_id: str,
        academic_year: str | None = None,
        semester: str | None = None,
    ) -> VisibleScoresResponse:
        """List a student's finalised results with GPA and CGPA."""
        return await self.store.list_visible(student_id, academic_year, semester)

    async def _save_scores(
        self,
        student_id: str,
        course_id: str,
        academic_year: str,
        semester: str,
        ca_score: float,
        exam_score: float,
        submitted_by: str,
    ) -> UpsertResult:
        try:
            result = await self.store.upsert(
                student_id=student_id,
                course_id=course_id,
                academic_year=academic_year,
                semester=semester,
                ca_score=ca_score,
                exam_score=exam_score,
                submitted_by=submitted_by,
            )
            await self.db.commit()
        except ResultServiceError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise DatabaseError("Failed to save scores", e) from e

        logger.info(
            "Scores %s for record %s by %s (total=%s grade=%s)",
            result.outcome.value,
            result.record.id,
            submitted_by,
            result.record.total_score,
            result.record.letter_grade,
        )

        if result.outcome == ScoreOutcome.RESUBMITTED:
            await self._notify_resubmission(result.record)

        return result

    async def _notify_resubmission(self, record: ScoreRecord) -> None:
        if self._notifier is None:
            return
        try:
            result = await self.db.execute(
                select(Course.code, Course.title).where(Course.id == record.course_id)
            )
            row = result.one_or_none()
            label = course_label(row[0], row[1]) if row else record.course_id
            self._notifier.dispatch(
                resubmission_notifications(record.id, record.student_id, label)
            )
        except Exception:
            logger.warning(
                "Failed to queue resubmission notification for %s", record.id, exc_info=True
            )
