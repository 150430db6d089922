# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest fixtures for database integration tests.

Provides a temporary database, session factories and seed helpers.
"""

from collections.abc import Awaitable, Callable
from typing import AsyncGenerator
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from src.core.config.settings import Settings
from src.domains.results import ApprovalActor, ApprovalService, ResultService
from src.infrastructure.database.connection import build_engine, build_sessionmaker
from src.infrastructure.database.models import (
    Base,
    Course,
    CourseAssignment,
    Department,
    Enrollment,
)
from src.models.common import ApprovalTier, Decision

TEST_YEAR = "2024/2025"
TEST_SEMESTER = "FIRST"
TEST_LECTURER = "LECT-001"

# Department code -> school. CSC and MTH share a school, LAW does not.
DEPARTMENTS = {"CSC": "SCI", "MTH": "SCI", "LAW": "HUM"}


@pytest_asyncio.fixture(scope="function")
async def db_engine(test_settings: Settings) -> AsyncGenerator[AsyncEngine, None]:
    """Create an engine on a fresh database with every table."""
    engine = build_engine(test_settings.database)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with build_sessionmaker(engine)() as session:
        session.add_all(
            Department(code=code, name=f"Department of {code}", school_id=school_id)
            for code, school_id in DEPARTMENTS.items()
        )
        await session.commit()

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create the session factory the application would use."""
    return build_sessionmaker(db_engine)


@pytest_asyncio.fixture(scope="function")
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create async session for tests."""
    async with session_factory() as session:
        yield session
        await session.rollback()


# =============================================================================
# Actors
# =============================================================================


@pytest.fixture
def department_admin() -> ApprovalActor:
    return ApprovalActor(
        id="ADM-DEPT",
        tier=ApprovalTier.DEPARTMENT,
        role="department_admin",
        department_id="CSC",
    )


@pytest.fixture
def school_admin() -> ApprovalActor:
    return ApprovalActor(
        id="ADM-SCHOOL",
        tier=ApprovalTier.SCHOOL,
        role="school_admin",
        school_id="SCI",
    )


@pytest.fixture
def senate_admin() -> ApprovalActor:
    return ApprovalActor(id="ADM-SENATE", tier=ApprovalTier.SENATE, role="senate_admin")


@pytest.fixture
def actors(
    department_admin: ApprovalActor,
    school_admin: ApprovalActor,
    senate_admin: ApprovalActor,
) -> dict[ApprovalTier, ApprovalActor]:
    """Provide the acting administrator of every tier."""
    return {
        ApprovalTier.DEPARTMENT: department_admin,
        ApprovalTier.SCHOOL: school_admin,
        ApprovalTier.SENATE: senate_admin,
    }


# =============================================================================
# Seed helpers
# =============================================================================


@pytest.fixture
def assign(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[..., Awaitable[None]]:
    """Return a helper that assigns lecturers to a course, once each."""

    async def _assign(course_id: str, *lecturer_ids: str) -> None:
        async with session_factory() as session:
            result = await session.execute(
                select(CourseAssignment.lecturer_id).where(
                    CourseAssignment.course_id == course_id
                )
            )
            assigned = set(result.scalars().all())
            session.add_all(
                CourseAssignment(course_id=course_id, lecturer_id=lecturer_id)
                for lecturer_id in lecturer_ids
                if lecturer_id not in assigned
            )
            await session.commit()

    return _assign


@pytest.fixture
def make_course(
    session_factory: async_sessionmaker[AsyncSession],
    assign: Callable[..., Awaitable[None]],
) -> Callable[..., Awaitable[Course]]:
    """Return a helper that inserts a course taught by ``lecturers``."""

    async def _make_course(
        code: str | None = None,
        title: str = "Operating Systems",
        credit_unit: int = 3,
        level: str = "LEVEL_300",
        semester: str = TEST_SEMESTER,
        department_id: str | None = "CSC",
        is_active: bool = True,
        is_gradable: bool = True,
        lecturers: tuple[str, ...] = (TEST_LECTURER,),
    ) -> Course:
        async with session_factory() as session:
            course = Course(
                code=code or f"CSC {uuid4().hex[:6].upper()}",
                title=title,
                credit_unit=credit_unit,
                level=level,
                semester=semester,
                department_id=department_id,
                is_active=is_active,
                is_gradable=is_gradable,
            )
            session.add(course)
            await session.commit()
        await assign(course.id, *lecturers)
        return course

    return _make_course


@pytest.fixture
def enroll(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[..., Awaitable[None]]:
    """Return a helper that enrolls students in a course."""

    async def _enroll(
        course_id: str,
        *student_ids: str,
        academic_year: str = TEST_YEAR,
        semester: str = TEST_SEMESTER,
    ) -> None:
        async with session_factory() as session:
            for student_id in student_ids:
                session.add(
                    Enrollment(
                        student_id=student_id,
                        course_id=course_id,
                        academic_year=academic_year,
                        semester=semester,
                        is_active=True,
                    )
                )
            await session.commit()

    return _enroll


@pytest.fixture
def scored_record(
    session_factory: async_sessionmaker[AsyncSession],
    test_settings: Settings,
    make_course: Callable[..., Awaitable[Course]],
    enroll: Callable[..., Awaitable[None]],
    assign: Callable[..., Awaitable[None]],
) -> Callable[..., Awaitable[str]]:
    """Return a helper that creates an enrolled, scored PENDING record."""

    async def _scored_record(
        student_id: str = "STU-001",
        ca_score: float = 25.0,
        exam_score: float = 50.0,
        course: Course | None = None,
        lecturer_id: str = TEST_LECTURER,
    ) -> str:
        if course is None:
            course = await make_course()
        await assign(course.id, lecturer_id)
        await enroll(course.id, student_id)
        async with session_factory() as session:
            result = await ResultService(session, test_settings).upsert_score(
                student_id=student_id,
                course_id=course.id,
                academic_year=TEST_YEAR,
                semester=TEST_SEMESTER,
                ca_score=ca_score,
                exam_score=exam_score,
                submitted_by=lecturer_id,
            )
            return result.record.id

    return _scored_record


@pytest.fixture
def approve_through(
    session_factory: async_sessionmaker[AsyncSession],
    test_settings: Settings,
    actors: dict[ApprovalTier, ApprovalActor],
) -> Callable[..., Awaitable[None]]:
    """Return a helper that approves a record at the given tiers in order."""

    async def _approve_through(record_id: str, *tiers: ApprovalTier) -> None:
        for tier in tiers:
            async with session_factory() as session:
                await ApprovalService(session, test_settings).advance(
                    record_id, tier, actors[tier], Decision.APPROVE
                )

    return _approve_through
