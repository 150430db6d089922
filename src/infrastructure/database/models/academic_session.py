# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Academic session model."""

from datetime import date

from sqlalchemy import Boolean, Date, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import (
    Base,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
)


class AcademicSession(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """An academic year such as "2024/2025".

    At most one session is current at a time. The current session and
    semester are the defaults for term-scoped operations.
    """

    __tablename__ = "academic_sessions"
    __table_args__ = (
        Index(
            "uq_academic_sessions_current",
            "is_current",
            unique=True,
            postgresql_where=text("is_current"),
            sqlite_where=text("is_current"),
        ),
    )

    academic_year: Mapped[str] = mapped_column(String(9), nullable=False, unique=True)
    current_semester: Mapped[str] = mapped_column(String(10), nullable=False, default="FIRST")
    is_current: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    registration_open: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    starts_on: Mapped[date | None] = mapped_column(Date, nullable=True)
    ends_on: Mapped[date | None] = mapped_column(Date, nullable=True)
