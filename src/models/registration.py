# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Request and response models for course registration and enrollment."""

from datetime import datetime
from enum import Enum
from typing import Self
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.models.common import AcademicYear, RegistrationStatus, Semester


class RegistrationDecision(str, Enum):
    """Decision on a course registration."""

    APPROVE = "APPROVE"
    REJECT = "REJECT"


class RegistrationSubmitRequest(BaseModel):
    """Course selection for a term.

    Year and semester default to the current academic session. When no
    courses are selected, the level curriculum for the semester is used.
    """

    level: str = Field(..., min_length=1, max_length=20, examples=["LEVEL_300"])
    academic_year: AcademicYear | None = None
    semester: Semester | None = None
    department_id: str | None = None
    course_ids: list[UUID] = Field(default_factory=list, max_length=50)


class RegistrationReviewRequest(BaseModel):
    """Administrator decision on a pending registration."""

    decision: RegistrationDecision
    comments: str | None = Field(default=None, max_length=2000)

    @model_validator(mode="after")
    def check_comments(self) -> Self:
        """Refuse a rejection without a reason."""
        if self.decision == RegistrationDecision.REJECT and not (
            self.comments and self.comments.strip()
        ):
            raise ValueError("comments are required when rejecting")
        return self


class RegistrationResponse(BaseModel):
    """A course registration and its selected courses."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    student_id: str
    academic_year: str
    semester: Semester
    level: str
    department_id: str | None
    status: RegistrationStatus
    course_ids: list[str] = Field(default_factory=list)
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None
    comments: str | None = None
    created_at: datetime
    updated_at: datetime


class DerivationResult(BaseModel):
    """What deriving a registration created.

    Every count is zero when the derivation had already run.
    """

    registration_id: str
    enrollments_created: int = 0
    enrollments_reactivated: int = 0
    records_created: int = 0
    skipped_non_gradable: int = 0


class RegistrationReviewResponse(BaseModel):
    """Reviewed registration and, when approved, its derivation."""

    registration: RegistrationResponse
    derivation: DerivationResult | None = None


class DeriveTermRequest(BaseModel):
    """Derive every approved registration of a term."""

    academic_year: AcademicYear | None = None
    semester: Semester | None = None


class DeriveTermResponse(BaseModel):
    """Summary of a term-wide derivation."""

    academic_year: str
    semester: Semester
    processed: int = 0
    failed: int = 0
    enrollments_created: int = 0
    records_created: int = 0
    errors: list[str] = Field(default_factory=list)


class WithdrawRequest(BaseModel):
    """Withdraw a student from a course for a term.

    Students may only withdraw themselves; administrators must name
    the student.
    """

    course_id: UUID
    student_id: str | None = None
    academic_year: AcademicYear | None = None
    semester: Semester | None = None


class EnrollmentResponse(BaseModel):
    """A student's enrollment in a course."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    student_id: str
    course_id: str
    academic_year: str
    semester: Semester
    registration_id: str | None
    is_active: bool
    withdrawn_at: datetime | None
