# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Score record and approval ledger models."""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
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
from src.utils.datetime import utc_now


class ScoreRecord(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """One student's outcome in one course for one term.

    Status values are those of ``ResultStatus``. Scores stay null until
    the lecturer enters them.
    """

    __tablename__ = "score_records"
    __table_args__ = (
        UniqueConstraint(
            "student_id",
            "course_id",
            "academic_year",
            "semester",
            name="uq_score_records_student_course_term",
        ),
        Index("ix_score_records_term_status", "academic_year", "semester", "status"),
    )

    student_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    course_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("courses.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    academic_year: Mapped[str] = mapped_column(String(9), nullable=False)
    semester: Mapped[str] = mapped_column(String(10), nullable=False)
    ca_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    exam_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    total_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    letter_grade: Mapped[str | None] = mapped_column(String(1), nullable=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="PENDING")
    submitted_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    cycle: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    @property
    def has_scores(self) -> bool:
        """Whether both score components have been entered."""
        return self.ca_score is not None and self.exam_score is not None


class ApprovalLedgerEntry(UUIDPrimaryKeyMixin, Base):
    """Audit row capturing one tier's decision on one score record.

    Three entries (one per tier) are created together for every cycle.
    Entries are never deleted; a resubmission stamps ``superseded_at``
    on the previous cycle and opens a new one.
    """

    __tablename__ = "approval_ledger_entries"
    __table_args__ = (
        UniqueConstraint(
            "score_record_id",
            "tier",
            "cycle",
            name="uq_approval_ledger_record_tier_cycle",
        ),
    )

    score_record_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("score_records.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    tier: Mapped[str] = mapped_column(String(16), nullable=False)
    cycle: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="PENDING")
    decided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    decided_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    forced: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    superseded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )
