# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Shared enums, types and response models."""

import re
from enum import Enum
from typing import Annotated

from pydantic import AfterValidator, BaseModel, Field

_ACADEMIC_YEAR_PATTERN = re.compile(r"^(\d{4})/(\d{4})$")


class Semester(str, Enum):
    """Semester of an academic year."""

    FIRST = "FIRST"
    SECOND = "SECOND"


class ResultStatus(str, Enum):
    """Aggregate approval status of a score record."""

    PENDING = "PENDING"
    DEPARTMENT_APPROVED = "DEPARTMENT_APPROVED"
    FACULTY_APPROVED = "FACULTY_APPROVED"
    SENATE_APPROVED = "SENATE_APPROVED"
    REJECTED = "REJECTED"


class ApprovalTier(str, Enum):
    """Approval authorities, declared in review order."""

    DEPARTMENT = "DEPARTMENT"
    SCHOOL = "SCHOOL"
    SENATE = "SENATE"

    @property
    def order(self) -> int:
        """Position of the tier in the review sequence (0-based)."""
        return list(ApprovalTier).index(self)


class Decision(str, Enum):
    """Decision a tier records on a score record."""

    APPROVE = "APPROVE"
    REJECT = "REJECT"


class LedgerStatus(str, Enum):
    """Status of a single tier's ledger entry."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class RegistrationStatus(str, Enum):
    """Review status of a course registration."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


def validate_academic_year(value: str) -> str:
    """Validate an academic year of the form "2024/2025".

    The second year must directly follow the first.

    Raises:
        ValueError: If the value is not a valid academic year.
    """
    match = _ACADEMIC_YEAR_PATTERN.match(value)
    if not match:
        raise ValueError("academic year must look like 2024/2025")
    first, second = (int(part) for part in match.groups())
    if second != first + 1:
        raise ValueError("academic year must span two consecutive years")
    return value


AcademicYear = Annotated[str, AfterValidator(validate_academic_year)]


class ErrorDetail(BaseModel):
    """Error payload returned by the API."""

    code: str = Field(..., description="Machine readable error code")
    message: str = Field(..., description="Human readable description")


class ErrorResponse(BaseModel):
    """Envelope for API errors."""

    error: ErrorDetail
