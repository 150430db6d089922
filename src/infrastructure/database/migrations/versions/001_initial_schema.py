# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Initial ResultGate schema.

Revision ID: 001_initial_schema
Revises: None
Create Date: 2025-01-15

This migration creates all tables based on the SQLAlchemy models in
src/infrastructure/database/models/.
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id_column() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=False),
        server_default=sa.text("gen_random_uuid()"),
        primary_key=True,
    )


def _timestamp_columns() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    ]


def upgrade() -> None:
    """Create ResultGate tables."""
    # ==========================================================================
    # 1. academic_sessions table
    # ==========================================================================
    op.create_table(
        "academic_sessions",
        _id_column(),
        sa.Column("academic_year", sa.String(9), unique=True, nullable=False),
        sa.Column("current_semester", sa.String(10), nullable=False, server_default="FIRST"),
        sa.Column("is_current", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("registration_open", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("starts_on", sa.Date, nullable=True),
        sa.Column("ends_on", sa.Date, nullable=True),
        *_timestamp_columns(),
        sa.CheckConstraint(
            "current_semester IN ('FIRST', 'SECOND')",
            name="valid_academic_session_semester",
        ),
    )
    # At most one current session
    op.create_index(
        "uq_academic_sessions_current",
        "academic_sessions",
        ["is_current"],
        unique=True,
        postgresql_where=sa.text("is_current"),
    )

    # ==========================================================================
    # 2. courses table
    # ==========================================================================
    op.create_table(
        "courses",
        _id_column(),
        sa.Column("code", sa.String(20), unique=True, nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("credit_unit", sa.Integer, nullable=False, server_default="3"),
        sa.Column("level", sa.String(20), nullable=False),
        sa.Column("semester", sa.String(10), nullable=False),
        sa.Column("department_id", sa.String(64), nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("is_gradable", sa.Boolean, nullable=False, server_default=sa.true()),
        *_timestamp_columns(),
    )
    op.create_index("ix_courses_level", "courses", ["level"])
    op.create_index("ix_courses_department_id", "courses", ["department_id"])

    # ==========================================================================
    # 3. course_registrations table
    # ==========================================================================
    op.create_table(
        "course_registrations",
        _id_column(),
        sa.Column("student_id", sa.String(64), nullable=False),
        sa.Column("academic_year", sa.String(9), nullable=False),
        sa.Column("semester", sa.String(10), nullable=False),
        sa.Column("level", sa.String(20), nullable=False),
        sa.Column("department_id", sa.String(64), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="PENDING"),
        sa.Column("reviewed_by", sa.String(64), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("comments", sa.Text, nullable=True),
        *_timestamp_columns(),
        sa.UniqueConstraint(
            "student_id",
            "academic_year",
            "semester",
            name="uq_course_registrations_student_term",
        ),
        sa.CheckConstraint(
            "status IN ('PENDING', 'APPROVED', 'REJECTED')",
            name="valid_registration_status",
        ),
    )
    op.create_index(
        "ix_course_registrations_student_id", "course_registrations", ["student_id"]
    )

    # ==========================================================================
    # 4. course_selections table
    # ==========================================================================
    op.create_table(
        "course_selections",
        _id_column(),
        sa.Column(
            "registration_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("course_registrations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "course_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("courses.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.UniqueConstraint(
            "registration_id",
            "course_id",
            name="uq_course_selections_registration_course",
        ),
    )
    op.create_index(
        "ix_course_selections_registration_id", "course_selections", ["registration_id"]
    )

    # ==========================================================================
    # 5. enrollments table
    # ==========================================================================
    op.create_table(
        "enrollments",
        _id_column(),
        sa.Column("student_id", sa.String(64), nullable=False),
        sa.Column(
            "course_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("courses.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("academic_year", sa.String(9), nullable=False),
        sa.Column("semester", sa.String(10), nullable=False),
        sa.Column(
            "registration_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("course_registrations.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("withdrawn_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamp_columns(),
        sa.UniqueConstraint(
            "student_id",
            "course_id",
            "academic_year",
            "semester",
            name="uq_enrollments_student_course_term",
        ),
    )
    op.create_index("ix_enrollments_student_id", "enrollments", ["student_id"])

    # ==========================================================================
    # 6. score_records table
    # ==========================================================================
    op.create_table(
        "score_records",
        _id_column(),
        sa.Column("student_id", sa.String(64), nullable=False),
        sa.Column(
            "course_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("courses.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("academic_year", sa.String(9), nullable=False),
        sa.Column("semester", sa.String(10), nullable=False),
        sa.Column("ca_score", sa.Float, nullable=True),
        sa.Column("exam_score", sa.Float, nullable=True),
        sa.Column("total_score", sa.Float, nullable=True),
        sa.Column("letter_grade", sa.String(1), nullable=True),
        sa.Column("status", sa.String(32), nullable=False, server_default="PENDING"),
        sa.Column("submitted_by", sa.String(64), nullable=True),
        sa.Column("cycle", sa.Integer, nullable=False, server_default="1"),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        *_timestamp_columns(),
        sa.UniqueConstraint(
            "student_id",
            "course_id",
            "academic_year",
            "semester",
            name="uq_score_records_student_course_term",
        ),
        sa.CheckConstraint(
            "status IN ('PENDING', 'DEPARTMENT_APPROVED', 'FACULTY_APPROVED', "
            "'SENATE_APPROVED', 'REJECTED')",
            name="valid_score_record_status",
        ),
        sa.CheckConstraint(
            "letter_grade IS NULL OR letter_grade IN ('A', 'B', 'C', 'D', 'E', 'F')",
            name="valid_letter_grade",
        ),
    )
    op.create_index("ix_score_records_student_id", "score_records", ["student_id"])
    op.create_index("ix_score_records_course_id", "score_records", ["course_id"])
    op.create_index(
        "ix_score_records_term_status",
        "score_records",
        ["academic_year", "semester", "status"],
    )

    # ==========================================================================
    # 7. approval_ledger_entries table
    # ==========================================================================
    op.create_table(
        "approval_ledger_entries",
        _id_column(),
        sa.Column(
            "score_record_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("score_records.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("tier", sa.String(16), nullable=False),
        sa.Column("cycle", sa.Integer, nullable=False, server_default="1"),
        sa.Column("status", sa.String(16), nullable=False, server_default="PENDING"),
        sa.Column("decided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("decided_by", sa.String(64), nullable=True),
        sa.Column("comments", sa.Text, nullable=True),
        sa.Column("forced", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("superseded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.UniqueConstraint(
            "score_record_id",
            "tier",
            "cycle",
            name="uq_approval_ledger_record_tier_cycle",
        ),
        sa.CheckConstraint(
            "tier IN ('DEPARTMENT', 'SCHOOL', 'SENATE')",
            name="valid_ledger_tier",
        ),
        sa.CheckConstraint(
            "status IN ('PENDING', 'APPROVED', 'REJECTED')",
            name="valid_ledger_status",
        ),
    )
    op.create_index(
        "ix_approval_ledger_entries_score_record_id",
        "approval_ledger_entries",
        ["score_record_id"],
    )

    # ==========================================================================
    # 8. notifications table
    # ==========================================================================
    op.create_table(
        "notifications",
        _id_column(),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("notification_type", sa.String(50), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("data", postgresql.JSONB, nullable=False, server_default="{}"),
        sa.Column("channels", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column("delivery_status", postgresql.JSONB, nullable=False, server_default="{}"),
        sa.Column("action_url", sa.String(500), nullable=True),
        sa.Column("is_read", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index(
        "ix_notifications_user_unread",
        "notifications",
        ["user_id", "is_read"],
    )


def downgrade() -> None:
    """Drop ResultGate tables."""
    op.drop_table("notifications")
    op.drop_table("approval_ledger_entries")
    op.drop_table("score_records")
    op.drop_table("enrollments")
    op.drop_table("course_selections")
    op.drop_table("course_registrations")
    op.drop_table("courses")
    op.drop_table("academic_sessions")
