# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for logging setup and context binding."""

import io
import json
import logging
from collections.abc import Iterator

import pytest
import structlog

from src.core.config.settings import Settings
from src.utils.logging import (
    bind_context,
    clear_context,
    get_logger,
    setup_logging,
    term_context,
)


@pytest.fixture(autouse=True)
def clean_context() -> Iterator[None]:
    """Start and finish every test with an empty logging context."""
    clear_context()
    yield
    clear_context()


@pytest.fixture
def captured(test_settings: Settings) -> Iterator[io.StringIO]:
    """Configure JSON logging into a buffer and restore the root logger after."""
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level

    setup_logging(test_settings)
    stream = io.StringIO()
    root.handlers[-1].setStream(stream)

    yield stream

    root.handlers = saved_handlers
    root.setLevel(saved_level)
    structlog.reset_defaults()


def _lines(stream: io.StringIO) -> list[dict]:
    return [json.loads(line) for line in stream.getvalue().splitlines() if line]


class TestTermContext:
    """Tests for term_context."""

    def test_binds_and_restores(self) -> None:
        """Test the term is bound inside the block and request keys survive it."""
        bind_context(request_id="req-1")

        with term_context("2024/2025", "FIRST", tier="SENATE"):
            inside = structlog.contextvars.get_contextvars()

        assert inside == {
            "request_id": "req-1",
            "academic_year": "2024/2025",
            "semester": "FIRST",
            "tier": "SENATE",
        }
        assert structlog.contextvars.get_contextvars() == {"request_id": "req-1"}

    def test_tier_is_optional(self) -> None:
        """Test no tier key is bound when none is given."""
        with term_context("2024/2025", "SECOND"):
            assert "tier" not in structlog.contextvars.get_contextvars()


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_single_handler(self, captured: io.StringIO) -> None:
        """Test the root logger gets exactly one structlog-formatted handler."""
        handlers = [
            h
            for h in logging.getLogger().handlers
            if isinstance(h.formatter, structlog.stdlib.ProcessorFormatter)
        ]

        assert len(handlers) == 1

    def test_stdlib_lines_carry_context(self, captured: io.StringIO) -> None:
        """Test a service's stdlib log line includes the bound request id."""
        bind_context(request_id="req-9")

        logging.getLogger("src.domains.results.service").info(
            "Scores %s for record %s", "created", "rec-1"
        )

        [line] = _lines(captured)
        assert line["event"] == "Scores created for record rec-1"
        assert line["request_id"] == "req-9"
        assert line["level"] == "info"
        assert line["logger"] == "src.domains.results.service"

    def test_structlog_lines_carry_term(self, captured: io.StringIO) -> None:
        """Test batch log lines inside term_context carry the term."""
        with term_context("2024/2025", "FIRST", tier="DEPARTMENT"):
            get_logger("src.domains.results.bulk").info("Batch started", eligible=3)

        [line] = _lines(captured)
        assert line["event"] == "Batch started"
        assert line["eligible"] == 3
        assert line["academic_year"] == "2024/2025"
        assert line["tier"] == "DEPARTMENT"

    def test_noisy_loggers_are_quieted(self, captured: io.StringIO) -> None:
        """Test driver loggers are raised to WARNING."""
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
        assert logging.getLogger("aiosqlite").level == logging.WARNING
