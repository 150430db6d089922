# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Logging for ResultGate.

Services log through ``logging.getLogger(__name__)`` and the batch
orchestrator through structlog. Both end in one stdlib handler whose
``structlog.stdlib.ProcessorFormatter`` renders every record the same
way, so the request id bound by the request middleware and the term
bound by ``term_context`` appear on service log lines too.

Example:
    >>> setup_logging(get_settings())
    >>> with term_context("2024/2025", "FIRST", tier="DEPARTMENT"):
    ...     get_logger(__name__).info("Batch started", eligible=120)
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

import structlog
from structlog.types import Processor

if TYPE_CHECKING:
    from src.core.config.settings import Settings

QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiosqlite", "asyncio")


def _pre_chain() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]


def setup_logging(settings: "Settings") -> None:
    """Route structlog and stdlib logging through one renderer.

    Development and debug runs render to the console; other environments
    emit one JSON object per line.

    Args:
        settings: Application settings (log_level, environment, debug).
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    if settings.is_development or settings.debug:
        renderers: list[Processor] = [structlog.dev.ConsoleRenderer()]
    else:
        renderers = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_pre_chain(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_pre_chain(),
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *renderers,
            ],
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger for ``name``."""
    return structlog.get_logger(name)


def bind_context(**kwargs: object) -> None:
    """Bind key-value pairs to every later log line of the current context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Drop everything bound with bind_context()."""
    structlog.contextvars.clear_contextvars()


@contextmanager
def term_context(
    academic_year: str,
    semester: str,
    tier: str | None = None,
) -> Iterator[None]:
    """Bind the term (and tier) a batch works on for the enclosed block.

    Tasks created inside the block copy the binding, so per-record log
    lines of a batch carry the term. The previous values are restored on
    exit and request-level keys are left untouched.
    """
    values: dict[str, str] = {"academic_year": academic_year, "semester": semester}
    if tier is not None:
        values["tier"] = tier
    with structlog.contextvars.bound_contextvars(**values):
        yield
