# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Registration service for course registrations and enrollments.

This module provides the RegistrationService class for:
- Course registration submission and review
- Deriving enrollments and PENDING score records from approved registrations
- Enrollment withdrawal
- The active-enrollment gate for score entry
"""

from __future__ import annotations

import logging

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.core.config.settings import Settings
from src.domains.results.exceptions import (
    MissingReasonError,
    NotEnrolledError,
    ResultServiceError,
)
from src.domains.results.grading import is_gradable_course
from src.domains.results.store import ScoreRecordStore, require_active_enrollment
from src.infrastructure.database.connection import DatabaseError
from src.infrastructure.database.models.registration import (
    Course,
    CourseRegistration,
    CourseSelection,
    Enrollment,
)
from src.models.common import RegistrationStatus, Semester
from src.models.registration import (
    DerivationResult,
    DeriveTermResponse,
    EnrollmentResponse,
    RegistrationDecision,
    RegistrationResponse,
    RegistrationReviewResponse,
)
from src.utils.batching import run_in_chunks
from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)


class RegistrationServiceError(Exception):
    """Base exception for registration service errors."""

    pass


class RegistrationNotFoundError(RegistrationServiceError):
    """Raised when a course registration is not found."""

    pass


class RegistrationAlreadyReviewedError(RegistrationServiceError):
    """Raised when a registration is no longer pending."""

    pass


class RegistrationNotApprovedError(RegistrationServiceError):
    """Raised when deriving from a registration that is not approved."""

    pass


class InvalidCourseSelectionError(RegistrationServiceError):
    """Raised when selected courses do not exist or do not fit the term."""

    pass


class RegistrationService:
    """Service for course registrations and enrollments.

    Attributes:
        db: Async database session.
        settings: Application settings.
    """

    def __init__(self, db: AsyncSession, settings: Settings) -> None:
        """Initialize registration service.

        Args:
            db: Async database session.
            settings: Application settings.
        """
        self.db = db
        self.settings = settings
        self.store = ScoreRecordStore(db, settings.grading)

    async def submit_registration(
        self,
        student_id: str,
        academic_year: str,
        semester: str,
        level: str,
        department_id: str | None = None,
        course_ids: list[str] | None = None,
    ) -> RegistrationResponse:
        """Submit or resubmit a student's course selection for a term.

        A PENDING or REJECTED registration is replaced and returns to
        PENDING. An APPROVED registration cannot be changed.

        Args:
            student_id: Student identity.
            academic_year: Academic year.
            semester: FIRST or SECOND.
            level: Student level, e.g. "LEVEL_300".
            department_id: Student department.
            course_ids: Selected courses. Empty means the level curriculum.

        Returns:
            The pending registration.

        Raises:
            RegistrationAlreadyReviewedError: If already approved.
            InvalidCourseSelectionError: If a course is unknown, inactive
                or offered in another semester.
        """
        course_ids = list(dict.fromkeys(course_ids or []))
        if course_ids:
            await self._check_courses(course_ids, semester)

        result = await self.db.execute(
            select(CourseRegistration).where(
                CourseRegistration.student_id == student_id,
                CourseRegistration.academic_year == academic_year,
                CourseRegistration.semester == semester,
            )
        )
        registration = result.scalar_one_or_none()

        if registration is None:
            registration = CourseRegistration(
                student_id=student_id,
                academic_year=academic_year,
                semester=semester,
                level=level,
                department_id=department_id,
                status=RegistrationStatus.PENDING.value,
            )
            self.db.add(registration)
            await self.db.flush()
        elif registration.status == RegistrationStatus.APPROVED:
            raise RegistrationAlreadyReviewedError(
                "Registration is already approved and cannot be changed"
            )
        else:
            registration.level = level
            registration.department_id = department_id
            registration.status = RegistrationStatus.PENDING.value
            registration.reviewed_by = None
            registration.reviewed_at = None
            registration.comments = None
            await self.db.execute(
                delete(CourseSelection).where(
                    CourseSelection.registration_id == registration.id
                )
            )

        for course_id in course_ids:
            self.db.add(CourseSelection(registration_id=registration.id, course_id=course_id))

        await self.db.commit()
        await self.db.refresh(registration)

        logger.info(
            "Registration submitted: student=%s, term=%s %s, courses=%d",
            student_id,
            academic_year,
            semester,
            len(course_ids),
        )

        return await self._to_response(registration)

    async def get_registration(self, registration_id: str) -> RegistrationResponse:
        """Get a registration by ID.

        Raises:
            RegistrationNotFoundError: If the registration does not exist.
        """
        registration = await self._get_registration(registration_id)
        return await self._to_response(registration)

    async def review_registration(
        self,
        registration_id: str,
        decision: RegistrationDecision,
        reviewer_id: str,
        comments: str | None = None,
    ) -> RegistrationReviewResponse:
        """Approve or reject a pending registration.

        Approval derives enrollments and score records in the same
        transaction.

        Args:
            registration_id: Registration to review.
            decision: APPROVE or REJECT.
            reviewer_id: Administrator reviewing.
            comments: Review comments (required to reject).

        Returns:
            The reviewed registration and, when approved, the derivation.

        Raises:
            RegistrationNotFoundError: If the registration does not exist.
            RegistrationAlreadyReviewedError: If it is not pending.
            MissingReasonError: If rejecting without comments.
        """
        decision = RegistrationDecision(decision)
        comments = comments.strip() if comments else None
        if decision == RegistrationDecision.REJECT and not comments:
            raise MissingReasonError("A reason is required to reject a registration")

        registration = await self._get_registration(registration_id)
        if registration.status != RegistrationStatus.PENDING:
            raise RegistrationAlreadyReviewedError(
                f"Registration is already {registration.status}"
            )

        registration.reviewed_by = reviewer_id
        registration.reviewed_at = utc_now()
        registration.comments = comments

        derivation: DerivationResult | None = None
        if decision == RegistrationDecision.APPROVE:
            registration.status = RegistrationStatus.APPROVED.value
            await self.db.flush()
            derivation = await self._derive(registration)
        else:
            registration.status = RegistrationStatus.REJECTED.value

        await self.db.commit()
        await self.db.refresh(registration)

        logger.info(
            "Registration %s %s by %s",
            registration.id,
            registration.status,
            reviewer_id,
        )

        return RegistrationReviewResponse(
            registration=await self._to_response(registration),
            derivation=derivation,
        )

    async def derive_for_registration(self, registration_id: str) -> DerivationResult:
        """Derive enrollments and PENDING score records for a registration.

        Idempotent: re-running creates nothing that already exists.

        Raises:
            RegistrationNotFoundError: If the registration does not exist.
            RegistrationNotApprovedError: If it is not approved.
        """
        registration = await self._get_registration(registration_id)
        if registration.status != RegistrationStatus.APPROVED:
            raise RegistrationNotApprovedError(
                f"Registration is {registration.status}, not APPROVED"
            )

        derivation = await self._derive(registration)
        await self.db.commit()
        return derivation

    async def derive_for_term(
        self,
        academic_year: str,
        semester: str,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> DeriveTermResponse:
        """Derive every approved registration of a term.

        Registrations are processed in chunks with bounded concurrency,
        each in its own session. A failing registration is counted and
        the rest continue.

        Args:
            academic_year: Academic year.
            semester: FIRST or SECOND.
            session_factory: Factory for the per-registration sessions.

        Returns:
            Counts of processed and failed registrations.
        """
        result = await self.db.execute(
            select(CourseRegistration.id)
            .where(
                CourseRegistration.academic_year == academic_year,
                CourseRegistration.semester == semester,
                CourseRegistration.status == RegistrationStatus.APPROVED.value,
            )
            .order_by(CourseRegistration.id)
        )
        registration_ids = [row[0] for row in result.all()]

        response = DeriveTermResponse(academic_year=academic_year, semester=Semester(semester))

        async def worker(registration_id: str) -> DerivationResult | str:
            async with session_factory() as session:
                service = RegistrationService(session, self.settings)
                try:
                    return await service.derive_for_registration(registration_id)
                except (
                    RegistrationServiceError,
                    ResultServiceError,
                    DatabaseError,
                    SQLAlchemyError,
                ) as e:
                    await session.rollback()
                    logger.error("Failed to derive registration %s: %s", registration_id, e)
                    return f"{registration_id}: {e}"

        outcomes = await run_in_chunks(
            registration_ids,
            worker,
            chunk_size=self.settings.approval.batch_chunk_size,
            concurrency=self.settings.approval.batch_concurrency,
        )

        for outcome in outcomes:
            if isinstance(outcome, DerivationResult):
                response.processed += 1
                response.enrollments_created += outcome.enrollments_created
                response.records_created += outcome.records_created
            else:
                response.failed += 1
                response.errors.append(outcome)

        logger.info(
            "Derived term %s %s: processed=%d failed=%d records_created=%d",
            academic_year,
            semester,
            response.processed,
            response.failed,
            response.records_created,
        )
        return response

    async def withdraw(
        self,
        student_id: str,
        course_id: str,
        academic_year: str,
        semester: str,
        withdrawn_by: str | None = None,
    ) -> EnrollmentResponse:
        """Withdraw a student from a course.

        Existing score records are kept, but no score can be entered
        while the enrollment is inactive.

        Raises:
            NotEnrolledError: If there is no active enrollment.
        """
        enrollment = await self.require_active_enrollment(
            student_id, course_id, academic_year, semester
        )
        enrollment.is_active = False
        enrollment.withdrawn_at = utc_now()

        await self.db.commit()
        await self.db.refresh(enrollment)

        logger.info(
            "Withdrew student: student=%s, course=%s, term=%s %s, by=%s",
            student_id,
            course_id,
            academic_year,
            semester,
            withdrawn_by,
        )

        return EnrollmentResponse.model_validate(enrollment)

    async def require_active_enrollment(
        self,
        student_id: str,
        course_id: str,
        academic_year: str,
        semester: str,
    ) -> Enrollment:
        """Get the active enrollment for a student, course and term.

        Raises:
            NotEnrolledError: If the student is not actively enrolled.
        """
        return await require_active_enrollment(
            self.db, student_id, course_id, academic_year, semester
        )

    async def _derive(self, registration: CourseRegistration) -> DerivationResult:
        """Create missing enrollments and score records (flush only)."""
        derivation = DerivationResult(registration_id=registration.id)
        markers = self.settings.grading.non_gradable_code_markers

        for course in await self._courses_for(registration):
            enrollment = await self._get_enrollment(
                registration.student_id,
                course.id,
                registration.academic_year,
                registration.semester,
            )
            if enrollment is None:
                self.db.add(
                    Enrollment(
                        student_id=registration.student_id,
                        course_id=course.id,
                        academic_year=registration.academic_year,
                        semester=registration.semester,
                        registration_id=registration.id,
                        is_active=True,
                    )
                )
                derivation.enrollments_created += 1
            elif not enrollment.is_active:
                enrollment.is_active = True
                enrollment.withdrawn_at = None
                derivation.enrollments_reactivated += 1

            if not is_gradable_course(course.code, course.is_gradable, markers):
                derivation.skipped_non_gradable += 1
                continue

            _, created = await self.store.create_pending(
                registration.student_id,
                course.id,
                registration.academic_year,
                registration.semester,
            )
            if created:
                derivation.records_created += 1

        await self.db.flush()

        logger.debug(
            "Derived registration %s: enrollments=%d, records=%d, skipped=%d",
            registration.id,
            derivation.enrollments_created,
            derivation.records_created,
            derivation.skipped_non_gradable,
        )
        return derivation

    async def _courses_for(self, registration: CourseRegistration) -> list[Course]:
        """Selected courses, or the level curriculum when nothing was selected."""
        selected = await self._selected_course_ids(registration.id)
        if selected:
            query = select(Course).where(Course.id.in_(selected))
        else:
            query = select(Course).where(
                Course.level == registration.level,
                Course.semester == registration.semester,
                Course.is_active.is_(True),
            )
            if registration.department_id:
                query = query.where(Course.department_id == registration.department_id)

        result = await self.db.execute(query.order_by(Course.code))
        return list(result.scalars().all())

    async def _check_courses(self, course_ids: list[str], semester: str) -> None:
        result = await self.db.execute(select(Course).where(Course.id.in_(course_ids)))
        courses = {course.id: course for course in result.scalars().all()}

        missing = [course_id for course_id in course_ids if course_id not in courses]
        if missing:
            raise InvalidCourseSelectionError(f"Unknown courses: {', '.join(missing)}")

        invalid = [
            course.code
            for course in courses.values()
            if not course.is_active or course.semester != semester
        ]
        if invalid:
            raise InvalidCourseSelectionError(
                f"Courses not offered in the {semester} semester: {', '.join(invalid)}"
            )

    async def _get_registration(self, registration_id: str) -> CourseRegistration:
        result = await self.db.execute(
            select(CourseRegistration).where(CourseRegistration.id == registration_id)
        )
        registration = result.scalar_one_or_none()
        if registration is None:
            raise RegistrationNotFoundError(f"Registration {registration_id} not found")
        return registration

    async def _get_enrollment(
        self,
        student_id: str,
        course_id: str,
        academic_year: str,
        semester: str,
    ) -> Enrollment | None:
        result = await self.db.execute(
            select(Enrollment).where(
                Enrollment.student_id == student_id,
                Enrollment.course_id == course_id,
                Enrollment.academic_year == academic_year,
                Enrollment.semester == semester,
            )
        )
        return result.scalar_one_or_none()

    async def _selected_course_ids(self, registration_id: str) -> list[str]:
        result = await self.db.execute(
            select(CourseSelection.course_id).where(
                CourseSelection.registration_id == registration_id
            )
        )
        return [row[0] for row in result.all()]

    async def _to_response(self, registration: CourseRegistration) -> RegistrationResponse:
        return RegistrationResponse(
            id=registration.id,
            student_id=registration.student_id,
            academic_year=registration.academic_year,
            semester=Semester(registration.semester),
            level=registration.level,
            department_id=registration.department_id,
            status=RegistrationStatus(registration.status),
            course_ids=await self._selected_course_ids(registration.id),
            reviewed_by=registration.reviewed_by,
            reviewed_at=registration.reviewed_at,
            comments=registration.comments,
            created_at=registration.created_at,
            updated_at=registration.updated_at,
        )
