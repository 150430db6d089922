# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Registration domain package.

This package provides course registration and enrollment management:
- Registration submission and review
- Derivation of enrollments and initial score records
- Enrollment withdrawal
"""

from src.domains.registration.service import (
    InvalidCourseSelectionError,
    RegistrationAlreadyReviewedError,
    RegistrationNotApprovedError,
    RegistrationNotFoundError,
    RegistrationService,
    RegistrationServiceError,
)

__all__ = [
    "RegistrationService",
    "RegistrationServiceError",
    "RegistrationNotFoundError",
    "RegistrationAlreadyReviewedError",
    "RegistrationNotApprovedError",
    "InvalidCourseSelectionError",
]
