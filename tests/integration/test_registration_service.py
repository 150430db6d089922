# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for course registration and derivation."""

import pytest
from sqlalchemy import select

from src.domains.registration import (
    InvalidCourseSelectionError,
    RegistrationAlreadyReviewedError,
    RegistrationNotApprovedError,
    RegistrationNotFoundError,
    RegistrationService,
)
from src.domains.results import MissingReasonError, NotEnrolledError, ResultService
from src.infrastructure.database.models import Enrollment, ScoreRecord
from src.models.common import RegistrationStatus, ResultStatus
from src.models.registration import RegistrationDecision

pytestmark = pytest.mark.integration

YEAR = "2024/2025"
SEMESTER = "FIRST"


@pytest.fixture
async def curriculum(make_course):
    """Create a LEVEL_300 first-semester curriculum with an SIW course."""
    return [
        await make_course(code="CSC 301", title="Operating Systems"),
        await make_course(code="CSC 303", title="Databases", credit_unit=2),
        await make_course(code="CSC 399 SIW", title="Industrial Training", credit_unit=6),
    ]


async def _submit(session_factory, settings, student_id="STU-REG", course_ids=None):
    async with session_factory() as session:
        return await RegistrationService(session, settings).submit_registration(
            student_id=student_id,
            academic_year=YEAR,
            semester=SEMESTER,
            level="LEVEL_300",
            department_id="CSC",
            course_ids=course_ids,
        )


class TestSubmitRegistration:
    """Tests for registration submission."""

    async def test_submit_with_selected_courses(self, session_factory, test_settings, curriculum):
        """Test a submitted registration is PENDING with its courses."""
        selected = [curriculum[0].id, curriculum[1].id, curriculum[0].id]

        registration = await _submit(session_factory, test_settings, course_ids=selected)

        assert registration.status == RegistrationStatus.PENDING
        assert sorted(registration.course_ids) == sorted([curriculum[0].id, curriculum[1].id])

    async def test_rejects_course_of_other_semester(
        self, session_factory, test_settings, make_course
    ):
        """Test a second-semester course cannot be picked for the first semester."""
        course = await make_course(code="CSC 302", semester="SECOND")

        with pytest.raises(InvalidCourseSelectionError):
            await _submit(session_factory, test_settings, course_ids=[course.id])

    async def test_rejects_unknown_course(self, session_factory, test_settings):
        """Test an unknown course ID is refused."""
        with pytest.raises(InvalidCourseSelectionError):
            await _submit(
                session_factory,
                test_settings,
                course_ids=["11111111-2222-3333-4444-555555555555"],
            )

    async def test_resubmit_after_rejection(self, session_factory, test_settings, curriculum):
        """Test a rejected registration can be resubmitted as PENDING."""
        registration = await _submit(session_factory, test_settings)
        async with session_factory() as session:
            await RegistrationService(session, test_settings).review_registration(
                registration.id,
                RegistrationDecision.REJECT,
                reviewer_id="ADM-DEPT",
                comments="Carry-over course missing",
            )

        resubmitted = await _submit(
            session_factory, test_settings, course_ids=[curriculum[0].id]
        )

        assert resubmitted.id == registration.id
        assert resubmitted.status == RegistrationStatus.PENDING
        assert resubmitted.comments is None
        assert resubmitted.course_ids == [curriculum[0].id]

    async def test_approved_registration_is_frozen(
        self, session_factory, test_settings, curriculum
    ):
        """Test an approved registration cannot be replaced."""
        registration = await _submit(session_factory, test_settings)
        async with session_factory() as session:
            await RegistrationService(session, test_settings).review_registration(
                registration.id, RegistrationDecision.APPROVE, reviewer_id="ADM-DEPT"
            )

        with pytest.raises(RegistrationAlreadyReviewedError):
            await _submit(session_factory, test_settings)


class TestReviewAndDerive:
    """Tests for review and derivation of enrollments and score records."""

    async def test_approval_derives_curriculum(self, session_factory, test_settings, curriculum):
        """Test approval enrolls every course and skips the SIW score record."""
        registration = await _submit(session_factory, test_settings)

        async with session_factory() as session:
            reviewed = await RegistrationService(session, test_settings).review_registration(
                registration.id, RegistrationDecision.APPROVE, reviewer_id="ADM-DEPT"
            )

        assert reviewed.registration.status == RegistrationStatus.APPROVED
        assert reviewed.derivation.enrollments_created == 3
        assert reviewed.derivation.records_created == 2
        assert reviewed.derivation.skipped_non_gradable == 1

        async with session_factory() as session:
            records = (
                await session.execute(
                    select(ScoreRecord).where(ScoreRecord.student_id == "STU-REG")
                )
            ).scalars().all()
        assert len(records) == 2
        assert all(r.status == ResultStatus.PENDING.value for r in records)
        assert all(r.ca_score is None and r.exam_score is None for r in records)

    async def test_derivation_is_idempotent(self, session_factory, test_settings, curriculum):
        """Test re-running derivation creates nothing new."""
        registration = await _submit(session_factory, test_settings)
        async with session_factory() as session:
            await RegistrationService(session, test_settings).review_registration(
                registration.id, RegistrationDecision.APPROVE, reviewer_id="ADM-DEPT"
            )

        async with session_factory() as session:
            again = await RegistrationService(session, test_settings).derive_for_registration(
                registration.id
            )

        assert again.enrollments_created == 0
        assert again.records_created == 0
        async with session_factory() as session:
            enrollments = (await session.execute(select(Enrollment))).scalars().all()
        assert len(enrollments) == 3

    async def test_reject_requires_comments(self, session_factory, test_settings, curriculum):
        """Test a registration rejection needs a reason."""
        registration = await _submit(session_factory, test_settings)

        async with session_factory() as session:
            with pytest.raises(MissingReasonError):
                await RegistrationService(session, test_settings).review_registration(
                    registration.id, RegistrationDecision.REJECT, reviewer_id="ADM-DEPT"
                )

    async def test_review_twice(self, session_factory, test_settings, curriculum):
        """Test a reviewed registration cannot be reviewed again."""
        registration = await _submit(session_factory, test_settings)
        async with session_factory() as session:
            service = RegistrationService(session, test_settings)
            await service.review_registration(
                registration.id, RegistrationDecision.APPROVE, reviewer_id="ADM-DEPT"
            )
            with pytest.raises(RegistrationAlreadyReviewedError):
                await service.review_registration(
                    registration.id, RegistrationDecision.APPROVE, reviewer_id="ADM-DEPT"
                )

    async def test_pending_registration_cannot_be_derived(
        self, session_factory, test_settings, curriculum
    ):
        """Test derivation requires an approved registration."""
        registration = await _submit(session_factory, test_settings)

        async with session_factory() as session:
            with pytest.raises(RegistrationNotApprovedError):
                await RegistrationService(session, test_settings).derive_for_registration(
                    registration.id
                )

    async def test_unknown_registration(self, session_factory, test_settings):
        """Test a missing registration raises not found."""
        async with session_factory() as session:
            with pytest.raises(RegistrationNotFoundError):
                await RegistrationService(session, test_settings).get_registration(
                    "00000000-0000-0000-0000-000000000000"
                )

    async def test_derive_for_term(self, session_factory, test_settings, curriculum):
        """Test every approved registration of the term is derived."""
        for student_id in ("STU-T1", "STU-T2"):
            registration = await _submit(session_factory, test_settings, student_id=student_id)
            async with session_factory() as session:
                service = RegistrationService(session, test_settings)
                await service.review_registration(
                    registration.id, RegistrationDecision.APPROVE, reviewer_id="ADM-DEPT"
                )
        await _submit(session_factory, test_settings, student_id="STU-T3")

        async with session_factory() as session:
            summary = await RegistrationService(session, test_settings).derive_for_term(
                YEAR, SEMESTER, session_factory
            )

        assert summary.processed == 2
        assert summary.failed == 0
        # derivation already ran when the registrations were approved
        assert summary.records_created == 0


class TestWithdraw:
    """Tests for enrollment withdrawal."""

    async def test_withdrawn_student_cannot_be_scored(
        self, session_factory, test_settings, curriculum
    ):
        """Test score entry requires an active enrollment."""
        registration = await _submit(session_factory, test_settings, course_ids=[curriculum[0].id])
        async with session_factory() as session:
            await RegistrationService(session, test_settings).review_registration(
                registration.id, RegistrationDecision.APPROVE, reviewer_id="ADM-DEPT"
            )

        async with session_factory() as session:
            enrollment = await RegistrationService(session, test_settings).withdraw(
                "STU-REG", curriculum[0].id, YEAR, SEMESTER, withdrawn_by="STU-REG"
            )
        assert enrollment.is_active is False
        assert enrollment.withdrawn_at is not None

        async with session_factory() as session:
            with pytest.raises(NotEnrolledError):
                await ResultService(session, test_settings).upsert_score(
                    "STU-REG", curriculum[0].id, YEAR, SEMESTER, 20, 40, "LECT-001"
                )

    async def test_withdraw_without_enrollment(self, session_factory, test_settings, curriculum):
        """Test withdrawing from a course never enrolled in fails."""
        async with session_factory() as session:
            with pytest.raises(NotEnrolledError):
                await RegistrationService(session, test_settings).withdraw(
                    "STU-NONE", curriculum[0].id, YEAR, SEMESTER
                )
