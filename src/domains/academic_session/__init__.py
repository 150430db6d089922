# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Academic session domain package."""

from src.domains.academic_session.service import (
    AcademicSessionConflictError,
    AcademicSessionNotFoundError,
    AcademicSessionService,
    AcademicSessionServiceError,
)

__all__ = [
    "AcademicSessionService",
    "AcademicSessionServiceError",
    "AcademicSessionNotFoundError",
    "AcademicSessionConflictError",
]
