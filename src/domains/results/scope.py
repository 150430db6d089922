# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Approval scopes.

A department administrator acts on the results of their department's
courses and a school administrator on the results of courses owned by
any department of their school. The senate acts institution-wide.

Scopes are applied as WHERE conditions on ``score_records`` so listings,
batch candidates and single-record checks share one definition.
"""

from dataclasses import dataclass

from sqlalchemy import ColumnElement, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.results.exceptions import OutOfScopeError
from src.infrastructure.database.models.registration import Course, Department
from src.infrastructure.database.models.results import ScoreRecord
from src.models.common import ApprovalTier


@dataclass(frozen=True)
class ApprovalScope:
    """The records an approver may see and decide on.

    Attributes:
        department_id: Department code, for department administrators.
        school_id: School identifier, for school administrators.
    """

    department_id: str | None = None
    school_id: str | None = None

    @property
    def is_institution_wide(self) -> bool:
        """Whether the scope covers every record."""
        return self.department_id is None and self.school_id is None

    def record_conditions(self) -> list[ColumnElement[bool]]:
        """Conditions restricting ``ScoreRecord`` rows to this scope."""
        if self.department_id is not None:
            courses = select(Course.id).where(Course.department_id == self.department_id)
            return [ScoreRecord.course_id.in_(courses)]
        if self.school_id is not None:
            departments = select(Department.code).where(Department.school_id == self.school_id)
            courses = select(Course.id).where(Course.department_id.in_(departments))
            return [ScoreRecord.course_id.in_(courses)]
        return []


INSTITUTION_WIDE = ApprovalScope()


def scope_for_tier(
    tier: ApprovalTier | None,
    department_id: str | None = None,
    school_id: str | None = None,
) -> ApprovalScope:
    """Build the scope an approver of ``tier`` acts within.

    Raises:
        OutOfScopeError: If a department or school administrator has no
            department or school.
    """
    if tier == ApprovalTier.DEPARTMENT:
        if not department_id:
            raise OutOfScopeError("Department administrators must belong to a department")
        return ApprovalScope(department_id=department_id)
    if tier == ApprovalTier.SCHOOL:
        if not school_id:
            raise OutOfScopeError("School administrators must belong to a school")
        return ApprovalScope(school_id=school_id)
    return INSTITUTION_WIDE


async def ensure_record_in_scope(
    db: AsyncSession,
    record_id: str,
    scope: ApprovalScope,
) -> None:
    """Refuse a record outside the approver's scope.

    Raises:
        OutOfScopeError: If the record's course is not covered by ``scope``.
    """
    if scope.is_institution_wide:
        return
    result = await db.execute(
        select(ScoreRecord.id).where(ScoreRecord.id == record_id, *scope.record_conditions())
    )
    if result.scalar_one_or_none() is None:
        raise OutOfScopeError(
            f"Score record {record_id} is outside the caller's approval scope"
        )
