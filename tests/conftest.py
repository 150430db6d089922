# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types:
- Unit tests
- Integration tests against a temporary SQLite database
"""

from pathlib import Path

import pytest

from src.core.config.settings import (
    ApprovalSettings,
    DatabaseSettings,
    Settings,
)


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (temporary database)"
    )


# =============================================================================
# Settings Fixtures
# =============================================================================


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    """Provide a file-backed SQLite URL unique to the test."""
    return f"sqlite+aiosqlite:///{tmp_path / 'resultgate.db'}"


@pytest.fixture
def test_settings(database_url: str) -> Settings:
    """Provide application settings for tests.

    Batches run one record at a time because SQLite serialises writers.
    """
    return Settings(
        environment="test",
        debug=False,
        database=DatabaseSettings(url_override=database_url),
        approval=ApprovalSettings(
            batch_chunk_size=25,
            batch_concurrency=1,
            notification_concurrency=1,
            allow_force_approve=False,
        ),
    )


@pytest.fixture
def force_approve_settings(test_settings: Settings) -> Settings:
    """Provide test settings with the senate override enabled."""
    return test_settings.model_copy(
        update={
            "approval": test_settings.approval.model_copy(
                update={"allow_force_approve": True}
            )
        }
    )


# =============================================================================
# Helper Fixtures
# =============================================================================


@pytest.fixture
def sample_student_id() -> str:
    """Provide a sample student ID for testing."""
    return "STU-2021-0001"


@pytest.fixture
def sample_lecturer_id() -> str:
    """Provide a sample lecturer ID for testing."""
    return "LECT-0001"
