# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Request and response models for academic sessions."""

from datetime import date, datetime
from typing import Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.models.common import AcademicYear, Semester


def _check_dates(starts_on: date | None, ends_on: date | None) -> None:
    if starts_on and ends_on and ends_on <= starts_on:
        raise ValueError("ends_on must be after starts_on")


class AcademicSessionCreateRequest(BaseModel):
    """Create an academic session."""

    academic_year: AcademicYear = Field(..., examples=["2024/2025"])
    current_semester: Semester = Semester.FIRST
    is_current: bool = False
    registration_open: bool = False
    starts_on: date | None = None
    ends_on: date | None = None

    @model_validator(mode="after")
    def check_dates(self) -> Self:
        """Validate the session date range."""
        _check_dates(self.starts_on, self.ends_on)
        return self


class AcademicSessionUpdateRequest(BaseModel):
    """Update the semester or registration window of a session."""

    current_semester: Semester | None = None
    registration_open: bool | None = None
    starts_on: date | None = None
    ends_on: date | None = None

    @model_validator(mode="after")
    def check_dates(self) -> Self:
        """Validate the session date range."""
        _check_dates(self.starts_on, self.ends_on)
        return self


class AcademicSessionResponse(BaseModel):
    """Academic session details."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    academic_year: str
    current_semester: Semester
    is_current: bool
    registration_open: bool
    starts_on: date | None
    ends_on: date | None
    created_at: datetime
    updated_at: datetime


class AcademicSessionListResponse(BaseModel):
    """List of academic sessions."""

    items: list[AcademicSessionResponse]
    total: int
