# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""ORM models for ResultGate.

Importing this package registers every table on ``Base.metadata``.
"""

from src.infrastructure.database.models.academic_session import AcademicSession
from src.infrastructure.database.models.base import Base, generate_uuid
from src.infrastructure.database.models.notification import Notification
from src.infrastructure.database.models.registration import (
    Course,
    CourseAssignment,
    CourseRegistration,
    CourseSelection,
    Department,
    Enrollment,
)
from src.infrastructure.database.models.results import ApprovalLedgerEntry, ScoreRecord

__all__ = [
    "Base",
    "generate_uuid",
    "AcademicSession",
    "ApprovalLedgerEntry",
    "Course",
    "CourseAssignment",
    "CourseRegistration",
    "CourseSelection",
    "Department",
    "Enrollment",
    "Notification",
    "ScoreRecord",
]
