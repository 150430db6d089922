# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database infrastructure for ResultGate.

This package provides SQLAlchemy async database connections and the ORM
models for score records, the approval ledger, registrations and
academic sessions.

Example:
    from src.infrastructure.database import get_session

    async with get_session() as session:
        result = await session.execute(select(ScoreRecord))
"""

from src.infrastructure.database.connection import (
    DatabaseError,
    build_engine,
    build_sessionmaker,
    close_database,
    get_engine,
    get_session,
    get_sessionmaker,
    init_database,
)

__all__ = [
    "DatabaseError",
    "build_engine",
    "build_sessionmaker",
    "close_database",
    "get_engine",
    "get_session",
    "get_sessionmaker",
    "init_database",
]
