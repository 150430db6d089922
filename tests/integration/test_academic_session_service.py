# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for the academic session service."""

from datetime import date

import pytest

from src.domains.academic_session import (
    AcademicSessionConflictError,
    AcademicSessionNotFoundError,
    AcademicSessionService,
)
from src.models.academic_session import (
    AcademicSessionCreateRequest,
    AcademicSessionUpdateRequest,
)
from src.models.common import Semester

pytestmark = pytest.mark.integration


class TestAcademicSessionService:
    """Tests for AcademicSessionService."""

    async def test_create_and_get_current(self, db_session):
        """Test the session created as current becomes the default."""
        service = AcademicSessionService(db_session)

        created = await service.create_session(
            AcademicSessionCreateRequest(academic_year="2024/2025", is_current=True)
        )
        current = await service.get_current()

        assert current is not None
        assert current.id == created.id
        assert current.current_semester == Semester.FIRST

    async def test_duplicate_year_conflicts(self, db_session):
        """Test an academic year can only be created once."""
        service = AcademicSessionService(db_session)
        await service.create_session(AcademicSessionCreateRequest(academic_year="2024/2025"))

        with pytest.raises(AcademicSessionConflictError):
            await service.create_session(
                AcademicSessionCreateRequest(academic_year="2024/2025")
            )

    async def test_only_one_current_session(self, db_session):
        """Test setting a session current unsets the previous one."""
        service = AcademicSessionService(db_session)
        first = await service.create_session(
            AcademicSessionCreateRequest(academic_year="2023/2024", is_current=True)
        )
        second = await service.create_session(
            AcademicSessionCreateRequest(academic_year="2024/2025")
        )

        await service.set_current(second.id)
        items, total = await service.list_sessions()

        assert total == 2
        current_ids = [item.id for item in items if item.is_current]
        assert current_ids == [second.id]
        assert items[0].academic_year == "2024/2025"
        assert first.id in {item.id for item in items}

    async def test_resolve_term_defaults(self, db_session):
        """Test missing term values come from the current session."""
        service = AcademicSessionService(db_session)
        session = await service.create_session(
            AcademicSessionCreateRequest(academic_year="2024/2025", is_current=True)
        )
        await service.update_session(
            session.id, AcademicSessionUpdateRequest(current_semester=Semester.SECOND)
        )

        assert await service.resolve_term() == ("2024/2025", "SECOND")
        assert await service.resolve_term(semester=Semester.FIRST) == ("2024/2025", "FIRST")
        assert await service.resolve_term("2023/2024", "FIRST") == ("2023/2024", "FIRST")

    async def test_resolve_term_without_current_session(self, db_session):
        """Test a term cannot be inferred when no session is current."""
        service = AcademicSessionService(db_session)

        with pytest.raises(AcademicSessionNotFoundError):
            await service.resolve_term(academic_year="2024/2025")

    async def test_update_rejects_inverted_dates(self, db_session):
        """Test an update that would end the session before it starts fails."""
        service = AcademicSessionService(db_session)
        session = await service.create_session(
            AcademicSessionCreateRequest(
                academic_year="2024/2025",
                starts_on=date(2024, 10, 1),
                ends_on=date(2025, 7, 31),
            )
        )

        with pytest.raises(AcademicSessionConflictError):
            await service.update_session(
                session.id, AcademicSessionUpdateRequest(ends_on=date(2024, 9, 1))
            )

    async def test_unknown_session(self, db_session):
        """Test a missing session raises not found."""
        service = AcademicSessionService(db_session)

        with pytest.raises(AcademicSessionNotFoundError):
            await service.set_current("00000000-0000-0000-0000-000000000000")
