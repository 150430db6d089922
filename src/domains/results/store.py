# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Score record store.

Creates and edits score records, derives their total and letter grade,
and answers the review and student-facing queries. Every status change
goes through ``transition()``, a conditional UPDATE keyed on the status
and version the caller read, so a concurrent writer is detected instead
of overwritten.

The store only flushes; services own the transaction.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config.settings import GradingSettings
from src.domains.results.exceptions import (
    InvalidTransitionError,
    NotAssignedError,
    NotEnrolledError,
    ScoreRecordNotFoundError,
)
from src.domains.results.grading import (
    calculate_gpa,
    grade_points,
    grade_scores,
    result_statistics,
)
from src.domains.results.ledger import ApprovalLedger
from src.domains.results.scope import INSTITUTION_WIDE, ApprovalScope
from src.domains.results.state_machine import ResultStatus
from src.infrastructure.database.models.registration import Course, CourseAssignment, Enrollment
from src.infrastructure.database.models.results import ScoreRecord
from src.models.common import Semester
from src.models.results import (
    ResultStatisticsResponse,
    ReviewItem,
    ReviewListResponse,
    ReviewStatistics,
    VisibleScore,
    VisibleScoresResponse,
)
from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)


class ScoreOutcome(str, Enum):
    """What an upsert did to the score record."""

    CREATED = "created"
    UPDATED = "updated"
    RESUBMITTED = "resubmitted"


@dataclass
class UpsertResult:
    """Result of a score upsert.

    Attributes:
        record: The score record after the write.
        outcome: Whether it was created, updated or resubmitted.
        previous_status: Status before the write (None when created).
    """

    record: ScoreRecord
    outcome: ScoreOutcome
    previous_status: ResultStatus | None = None


async def require_active_enrollment(
    db: AsyncSession,
    student_id: str,
    course_id: str,
    academic_year: str,
    semester: str,
) -> Enrollment:
    """Get the active enrollment a score record depends on.

    Args:
        db: Async database session.
        student_id: Student identity.
        course_id: Course ID.
        academic_year: Academic year, e.g. "2024/2025".
        semester: FIRST or SECOND.

    Returns:
        The active enrollment.

    Raises:
        NotEnrolledError: If the student has no active enrollment.
    """
    result = await db.execute(
        select(Enrollment).where(
            Enrollment.student_id == student_id,
            Enrollment.course_id == course_id,
            Enrollment.academic_year == academic_year,
            Enrollment.semester == semester,
            Enrollment.is_active.is_(True),
        )
    )
    enrollment = result.scalar_one_or_none()
    if enrollment is None:
        raise NotEnrolledError(
            f"Student {student_id} is not enrolled in course {course_id} "
            f"for {academic_year} {semester}"
        )
    return enrollment


async def require_course_assignment(
    db: AsyncSession,
    lecturer_id: str,
    course_id: str,
) -> CourseAssignment:
    """Get the active assignment that lets a lecturer score a course.

    Raises:
        NotAssignedError: If the lecturer is not assigned to the course.
    """
    result = await db.execute(
        select(CourseAssignment).where(
            CourseAssignment.lecturer_id == lecturer_id,
            CourseAssignment.course_id == course_id,
            CourseAssignment.is_active.is_(True),
        )
    )
    assignment = result.scalar_one_or_none()
    if assignment is None:
        raise NotAssignedError(
            f"Lecturer {lecturer_id} is not assigned to course {course_id}"
        )
    return assignment


class ScoreRecordStore:
    """Persistence operations on score records.

    Attributes:
        db: Async database session.
        grading: Score bounds used to validate entries.
        ledger: Approval ledger sharing the same session.
    """

    def __init__(self, db: AsyncSession, grading: GradingSettings) -> None:
        """Initialize the store.

        Args:
            db: Async database session.
            grading: Grading settings.
        """
        self.db = db
        self.grading = grading
        self.ledger = ApprovalLedger(db)

    async def get(self, record_id: str) -> ScoreRecord:
        """Read a score record straight from the database.

        The identity map is refreshed so the status is never stale.

        Raises:
            ScoreRecordNotFoundError: If the record does not exist.
        """
        result = await self.db.execute(
            select(ScoreRecord)
            .where(ScoreRecord.id == record_id)
            .execution_options(populate_existing=True)
        )
        record = result.scalar_one_or_none()
        if record is None:
            raise ScoreRecordNotFoundError(f"Score record {record_id} not found")
        return record

    async def get_by_key(
        self,
        student_id: str,
        course_id: str,
        academic_year: str,
        semester: str,
    ) -> ScoreRecord | None:
        """Find a score record by its natural key."""
        result = await self.db.execute(
            select(ScoreRecord)
            .where(
                ScoreRecord.student_id == student_id,
                ScoreRecord.course_id == course_id,
                ScoreRecord.academic_year == academic_year,
                ScoreRecord.semester == semester,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def create_pending(
        self,
        student_id: str,
        course_id: str,
        academic_year: str,
        semester: str,
    ) -> tuple[ScoreRecord, bool]:
        """Create an empty PENDING record with its ledger entries.

        Used when deriving records from an approved registration. An
        existing record is returned untouched.

        Returns:
            Tuple of (record, created).
        """
        record = await self.get_by_key(student_id, course_id, academic_year, semester)
        if record is not None:
            return record, False

        record = ScoreRecord(
            student_id=student_id,
            course_id=course_id,
            academic_year=academic_year,
            semester=semester,
            status=ResultStatus.PENDING.value,
            cycle=1,
            version=1,
        )
        self.db.add(record)
        await self.db.flush()
        await self.ledger.create_entries(record.id, record.cycle)
        return record, True

    async def upsert(
        self,
        student_id: str,
        course_id: str,
        academic_year: str,
        semester: str,
        ca_score: float,
        exam_score: float,
        submitted_by: str | None = None,
    ) -> UpsertResult:
        """Enter or correct the scores of a student's course result.

        - No record: a PENDING record is created.
        - PENDING: scores are updated in place.
        - REJECTED: the record is resubmitted. It returns to PENDING and
          a new ledger cycle is opened, so every tier reviews it again.
        - Under review or finalised: refused.

        Args:
            student_id: Student identity.
            course_id: Course ID.
            academic_year: Academic year.
            semester: FIRST or SECOND.
            ca_score: Continuous assessment score.
            exam_score: Examination score.
            submitted_by: Lecturer entering the scores.

        Returns:
            UpsertResult describing the write.

        Raises:
            ScoreValidationError: If a score is out of bounds.
            NotEnrolledError: If the student is not actively enrolled.
            InvalidTransitionError: If the record is locked for review or
                was changed concurrently.
        """
        total, grade = grade_scores(ca_score, exam_score, self.grading)
        await require_active_enrollment(self.db, student_id, course_id, academic_year, semester)

        scores = {
            "ca_score": ca_score,
            "exam_score": exam_score,
            "total_score": total,
            "letter_grade": grade,
            "submitted_by": submitted_by,
        }

        record = await self.get_by_key(student_id, course_id, academic_year, semester)
        if record is None:
            record = ScoreRecord(
                student_id=student_id,
                course_id=course_id,
                academic_year=academic_year,
                semester=semester,
                status=ResultStatus.PENDING.value,
                cycle=1,
                version=1,
                **scores,
            )
            self.db.add(record)
            await self.db.flush()
            await self.ledger.create_entries(record.id, record.cycle)
            return UpsertResult(record=record, outcome=ScoreOutcome.CREATED)

        status = ResultStatus(record.status)

        if status == ResultStatus.PENDING:
            await self.transition(record, ResultStatus.PENDING, **scores)
            return UpsertResult(
                record=record,
                outcome=ScoreOutcome.UPDATED,
                previous_status=status,
            )

        if status == ResultStatus.REJECTED:
            previous_cycle = record.cycle
            await self.transition(
                record,
                ResultStatus.REJECTED,
                status=ResultStatus.PENDING.value,
                cycle=previous_cycle + 1,
                **scores,
            )
            await self.ledger.open_new_cycle(record.id, previous_cycle, record.cycle)
            logger.info(
                "Resubmitted score record %s (cycle %d)", record.id, record.cycle
            )
            return UpsertResult(
                record=record,
                outcome=ScoreOutcome.RESUBMITTED,
                previous_status=status,
            )

        raise InvalidTransitionError(
            f"Result is {status.value}; it must be rejected before its scores can change",
            record_id=record.id,
            current_status=status.value,
            expected_status=ResultStatus.PENDING.value,
        )

    async def transition(
        self,
        record: ScoreRecord,
        expected: ResultStatus,
        **values: Any,
    ) -> ScoreRecord:
        """Apply a conditional write to a record.

        The UPDATE only matches when the stored status and version still
        equal what the caller read. The version is always incremented.

        Args:
            record: Record as read by the caller.
            expected: Status the record must still hold.
            **values: Columns to set.

        Returns:
            The refreshed record.

        Raises:
            InvalidTransitionError: If another writer changed the record.
        """
        result = await self.db.execute(
            update(ScoreRecord)
            .where(
                ScoreRecord.id == record.id,
                ScoreRecord.status == expected.value,
                ScoreRecord.version == record.version,
            )
            .values(version=record.version + 1, updated_at=utc_now(), **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InvalidTransitionError(
                record_id=record.id,
                current_status=record.status,
                expected_status=expected.value,
            )
        await self.db.refresh(record)
        return record

    async def list_for_review(
        self,
        academic_year: str,
        semester: str,
        status: ResultStatus | None = None,
        course_id: str | None = None,
        scope: ApprovalScope = INSTITUTION_WIDE,
    ) -> ReviewListResponse:
        """List score records of a term for administrators.

        Args:
            academic_year: Academic year.
            semester: FIRST or SECOND.
            status: Only return records in this status.
            course_id: Only return records of this course.
            scope: Only return records within this approval scope.

        Returns:
            Records with course details and per-status statistics for
            the term (and course, when given).
        """
        conditions = [
            ScoreRecord.academic_year == academic_year,
            ScoreRecord.semester == semester,
            *scope.record_conditions(),
        ]
        if course_id:
            conditions.append(ScoreRecord.course_id == course_id)

        counts_result = await self.db.execute(
            select(ScoreRecord.status, func.count())
            .where(*conditions)
            .group_by(ScoreRecord.status)
        )
        counts = {row[0]: row[1] for row in counts_result.all()}
        statistics = ReviewStatistics(
            total=sum(counts.values()),
            pending=counts.get(ResultStatus.PENDING.value, 0),
            department_approved=counts.get(ResultStatus.DEPARTMENT_APPROVED.value, 0),
            faculty_approved=counts.get(ResultStatus.FACULTY_APPROVED.value, 0),
            senate_approved=counts.get(ResultStatus.SENATE_APPROVED.value, 0),
            rejected=counts.get(ResultStatus.REJECTED.value, 0),
        )

        if status is not None:
            conditions.append(ScoreRecord.status == status.value)

        result = await self.db.execute(
            select(ScoreRecord, Course.code, Course.title)
            .join(Course, Course.id == ScoreRecord.course_id)
            .where(*conditions)
            .order_by(Course.code, ScoreRecord.student_id)
        )
        items = [
            ReviewItem.model_validate(
                {
                    **_record_fields(record),
                    "course_code": code,
                    "course_title": title,
                }
            )
            for record, code, title in result.all()
        ]

        return ReviewListResponse(
            academic_year=academic_year,
            semester=Semester(semester),
            items=items,
            statistics=statistics,
        )

    async def list_visible(
        self,
        student_id: str,
        academic_year: str | None = None,
        semester: str | None = None,
    ) -> VisibleScoresResponse:
        """List a student's finalised results with GPA and CGPA.

        Only SENATE_APPROVED records are ever returned.

        Args:
            student_id: Student identity.
            academic_year: Restrict the listing (and GPA) to this year.
            semester: Restrict the listing (and GPA) to this semester.

        Returns:
            Visible results, term GPA, cumulative GPA and statistics.
        """
        result = await self.db.execute(
            select(ScoreRecord, Course)
            .join(Course, Course.id == ScoreRecord.course_id)
            .where(
                ScoreRecord.student_id == student_id,
                ScoreRecord.status == ResultStatus.SENATE_APPROVED.value,
            )
            .order_by(ScoreRecord.academic_year, ScoreRecord.semester, Course.code)
        )
        rows = result.all()

        all_graded = [(record.letter_grade, course.credit_unit) for record, course in rows]
        selected = [
            (record, course)
            for record, course in rows
            if (academic_year is None or record.academic_year == academic_year)
            and (semester is None or record.semester == semester)
        ]
        selected_graded = [(record.letter_grade, course.credit_unit) for record, course in selected]

        return VisibleScoresResponse(
            student_id=student_id,
            academic_year=academic_year,
            semester=Semester(semester) if semester else None,
            results=[
                VisibleScore(
                    record_id=record.id,
                    course_id=course.id,
                    course_code=course.code,
                    course_title=course.title,
                    credit_unit=course.credit_unit,
                    academic_year=record.academic_year,
                    semester=Semester(record.semester),
                    ca_score=record.ca_score,
                    exam_score=record.exam_score,
                    total_score=record.total_score,
                    letter_grade=record.letter_grade,
                    grade_points=grade_points(record.letter_grade),
                )
                for record, course in selected
            ],
            gpa=calculate_gpa(selected_graded),
            cgpa=calculate_gpa(all_graded),
            statistics=ResultStatisticsResponse(**result_statistics(selected_graded)),
        )


def _record_fields(record: ScoreRecord) -> dict[str, Any]:
    return {
        "id": record.id,
        "student_id": record.student_id,
        "course_id": record.course_id,
        "academic_year": record.academic_year,
        "semester": record.semester,
        "ca_score": record.ca_score,
        "exam_score": record.exam_score,
        "total_score": record.total_score,
        "letter_grade": record.letter_grade,
        "status": record.status,
        "submitted_by": record.submitted_by,
        "cycle": record.cycle,
        "version": record.version,
        "created_at": record.created_at,
        "updated_at": record.updated_at,
    }
