# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Departments and lecturer course assignments.

Revision ID: 002_approval_scopes
Revises: 001_initial_schema
Create Date: 2025-02-03

Departments map course department codes to schools for the school
administrator scope. Course assignments gate lecturer score entry.
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "002_approval_scopes"
down_revision: Union[str, None] = "001_initial_schema"
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
    """Create departments and course_assignments."""
    op.create_table(
        "departments",
        _id_column(),
        sa.Column("code", sa.String(64), unique=True, nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("school_id", sa.String(64), nullable=False),
        *_timestamp_columns(),
    )
    op.create_index("ix_departments_school_id", "departments", ["school_id"])

    op.create_table(
        "course_assignments",
        _id_column(),
        sa.Column(
            "course_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("courses.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("lecturer_id", sa.String(64), nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        *_timestamp_columns(),
        sa.UniqueConstraint(
            "course_id",
            "lecturer_id",
            name="uq_course_assignments_course_lecturer",
        ),
    )
    op.create_index("ix_course_assignments_course_id", "course_assignments", ["course_id"])
    op.create_index(
        "ix_course_assignments_lecturer_id", "course_assignments", ["lecturer_id"]
    )


def downgrade() -> None:
    """Drop departments and course_assignments."""
    op.drop_table("course_assignments")
    op.drop_table("departments")
