# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API v1 routes package.

This package contains all v1 API endpoint definitions.
Each module provides a FastAPI router for a specific domain.

Modules:
    results: Score entry and the result approval workflow.
    registrations: Course registration, derivation and withdrawal.
    academic_sessions: Academic session management.
"""

from fastapi import APIRouter

from src.api.v1 import academic_sessions, registrations, results

# Create the main v1 router
router = APIRouter(prefix="/api/v1")

# Include domain routers
router.include_router(results.router, prefix="/results", tags=["Results"])
router.include_router(registrations.router, prefix="/registrations", tags=["Registrations"])
router.include_router(
    academic_sessions.router,
    prefix="/academic-sessions",
    tags=["Academic Sessions"],
)

__all__ = ["router"]
