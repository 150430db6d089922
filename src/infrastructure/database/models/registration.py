# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Departments, course catalog, lecturer assignments, registration and enrollment models."""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import (
    Base,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
)


class Department(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """An academic department and the school (faculty) it belongs to.

    ``Course.department_id`` holds the department code. Approval scopes
    resolve a school administrator's school to its department codes
    through this table.
    """

    __tablename__ = "departments"

    code: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    school_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)


class Course(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A course offered in a level and semester.

    Courses are read-only inputs for ResultGate.
    """

    __tablename__ = "courses"

    code: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    credit_unit: Mapped[int] = mapped_column(Integer, nullable=False, default=3)
    level: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    semester: Mapped[str] = mapped_column(String(10), nullable=False)
    department_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_gradable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class CourseAssignment(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A lecturer assigned to teach, and enter scores for, a course."""

    __tablename__ = "course_assignments"
    __table_args__ = (
        UniqueConstraint(
            "course_id",
            "lecturer_id",
            name="uq_course_assignments_course_lecturer",
        ),
    )

    course_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("courses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    lecturer_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class CourseRegistration(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A student's term-level course selection request."""

    __tablename__ = "course_registrations"
    __table_args__ = (
        UniqueConstraint(
            "student_id",
            "academic_year",
            "semester",
            name="uq_course_registrations_student_term",
        ),
    )

    student_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    academic_year: Mapped[str] = mapped_column(String(9), nullable=False)
    semester: Mapped[str] = mapped_column(String(10), nullable=False)
    level: Mapped[str] = mapped_column(String(20), nullable=False)
    department_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="PENDING")
    reviewed_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    comments: Mapped[str | None] = mapped_column(Text, nullable=True)


class CourseSelection(UUIDPrimaryKeyMixin, Base):
    """A course picked on a course registration."""

    __tablename__ = "course_selections"
    __table_args__ = (
        UniqueConstraint(
            "registration_id",
            "course_id",
            name="uq_course_selections_registration_course",
        ),
    )

    registration_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("course_registrations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    course_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("courses.id", ondelete="RESTRICT"),
        nullable=False,
    )


class Enrollment(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A student's registration in a course for a term.

    Score records may only be created while the enrollment is active.
    """

    __tablename__ = "enrollments"
    __table_args__ = (
        UniqueConstraint(
            "student_id",
            "course_id",
            "academic_year",
            "semester",
            name="uq_enrollments_student_course_term",
        ),
    )

    student_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    course_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("courses.id", ondelete="RESTRICT"),
        nullable=False,
    )
    academic_year: Mapped[str] = mapped_column(String(9), nullable=False)
    semester: Mapped[str] = mapped_column(String(10), nullable=False)
    registration_id: Mapped[str | None] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("course_registrations.id", ondelete="SET NULL"),
        nullable=True,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    withdrawn_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
