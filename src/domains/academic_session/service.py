# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Academic session service for managing academic sessions.

This module provides the AcademicSessionService class for:
- Academic session creation, listing and updates
- Setting the current academic session
- Resolving the default term for term-scoped operations
"""

from __future__ import annotations

import logging

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.infrastructure.database.models.academic_session import AcademicSession
from src.models.academic_session import (
    AcademicSessionCreateRequest,
    AcademicSessionResponse,
    AcademicSessionUpdateRequest,
)
from src.models.common import Semester

logger = logging.getLogger(__name__)


class AcademicSessionServiceError(Exception):
    """Base exception for academic session service errors."""

    pass


class AcademicSessionNotFoundError(AcademicSessionServiceError):
    """Raised when an academic session is not found."""

    pass


class AcademicSessionConflictError(AcademicSessionServiceError):
    """Raised when an academic session already exists or dates conflict."""

    pass


class AcademicSessionService:
    """Service for managing academic sessions.

    The current session is persisted state set by an administrator. It
    supplies the default (academic_year, semester) when a request does
    not name a term.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize academic session service.

        Args:
            db: Async database session.
        """
        self.db = db

    async def create_session(
        self,
        request: AcademicSessionCreateRequest,
    ) -> AcademicSessionResponse:
        """Create a new academic session.

        Args:
            request: Academic session creation data.

        Returns:
            Created academic session.

        Raises:
            AcademicSessionConflictError: If the academic year already exists.
        """
        existing = await self._get_by_year(request.academic_year)
        if existing:
            raise AcademicSessionConflictError(
                f"Academic session {request.academic_year} already exists"
            )

        # If setting as current, unset other current sessions
        if request.is_current:
            await self._unset_current()

        session = AcademicSession(
            academic_year=request.academic_year,
            current_semester=request.current_semester.value,
            is_current=request.is_current,
            registration_open=request.registration_open,
            starts_on=request.starts_on,
            ends_on=request.ends_on,
        )

        self.db.add(session)
        await self.db.commit()
        await self.db.refresh(session)

        logger.info("Created academic session: %s (%s)", session.academic_year, session.id)

        return AcademicSessionResponse.model_validate(session)

    async def list_sessions(self) -> tuple[list[AcademicSessionResponse], int]:
        """List all academic sessions, newest first.

        Returns:
            Tuple of (list of sessions, total count).
        """
        query = select(AcademicSession).order_by(AcademicSession.academic_year.desc())

        count_query = select(func.count()).select_from(AcademicSession)
        total_result = await self.db.execute(count_query)
        total = total_result.scalar() or 0

        result = await self.db.execute(query)
        items = [
            AcademicSessionResponse.model_validate(session)
            for session in result.scalars().all()
        ]

        return items, total

    async def get_session(self, session_id: str) -> AcademicSessionResponse:
        """Get academic session by ID.

        Raises:
            AcademicSessionNotFoundError: If not found.
        """
        session = await self._get_by_id(session_id)
        return AcademicSessionResponse.model_validate(session)

    async def get_current(self) -> AcademicSessionResponse | None:
        """Get the current academic session.

        Returns:
            Current session or None if not set.
        """
        session = await self._get_current()
        if session is None:
            return None
        return AcademicSessionResponse.model_validate(session)

    async def set_current(self, session_id: str) -> AcademicSessionResponse:
        """Make a session the current one.

        Any other current session is unset.

        Raises:
            AcademicSessionNotFoundError: If not found.
        """
        session = await self._get_by_id(session_id)

        await self._unset_current()
        session.is_current = True

        await self.db.commit()
        await self.db.refresh(session)

        logger.info("Set academic session %s as current", session.academic_year)

        return AcademicSessionResponse.model_validate(session)

    async def update_session(
        self,
        session_id: str,
        request: AcademicSessionUpdateRequest,
    ) -> AcademicSessionResponse:
        """Update the semester or registration window of a session.

        Raises:
            AcademicSessionNotFoundError: If not found.
            AcademicSessionConflictError: If the resulting dates are invalid.
        """
        session = await self._get_by_id(session_id)

        new_start = request.starts_on or session.starts_on
        new_end = request.ends_on or session.ends_on
        if new_start and new_end and new_end <= new_start:
            raise AcademicSessionConflictError("End date must be after start date")

        if request.current_semester is not None:
            session.current_semester = request.current_semester.value
        if request.registration_open is not None:
            session.registration_open = request.registration_open
        if request.starts_on is not None:
            session.starts_on = request.starts_on
        if request.ends_on is not None:
            session.ends_on = request.ends_on

        await self.db.commit()
        await self.db.refresh(session)

        logger.info("Updated academic session: %s", session.academic_year)

        return AcademicSessionResponse.model_validate(session)

    async def resolve_term(
        self,
        academic_year: str | None = None,
        semester: Semester | str | None = None,
    ) -> tuple[str, str]:
        """Fill a missing academic year or semester from the current session.

        Args:
            academic_year: Requested academic year, if any.
            semester: Requested semester, if any.

        Returns:
            Tuple of (academic_year, semester).

        Raises:
            AcademicSessionNotFoundError: If a value is missing and no
                session is current.
        """
        if academic_year and semester:
            return academic_year, Semester(semester).value

        current = await self._get_current()
        if current is None:
            raise AcademicSessionNotFoundError(
                "No current academic session is set; specify academic_year and semester"
            )

        return (
            academic_year or current.academic_year,
            Semester(semester).value if semester else current.current_semester,
        )

    async def _get_by_id(self, session_id: str) -> AcademicSession:
        result = await self.db.execute(
            select(AcademicSession).where(AcademicSession.id == session_id)
        )
        session = result.scalar_one_or_none()
        if not session:
            raise AcademicSessionNotFoundError(f"Academic session {session_id} not found")
        return session

    async def _get_by_year(self, academic_year: str) -> AcademicSession | None:
        result = await self.db.execute(
            select(AcademicSession).where(AcademicSession.academic_year == academic_year)
        )
        return result.scalar_one_or_none()

    async def _get_current(self) -> AcademicSession | None:
        result = await self.db.execute(
            select(AcademicSession).where(AcademicSession.is_current.is_(True))
        )
        return result.scalar_one_or_none()

    async def _unset_current(self) -> None:
        """Unset any current academic session."""
        stmt = (
            update(AcademicSession)
            .where(AcademicSession.is_current.is_(True))
            .values(is_current=False)
        )
        await self.db.execute(stmt)
