# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""DateTime utilities for ResultGate.

All timestamps are stored in UTC (TIMESTAMPTZ) and all Python datetimes
are timezone-aware.

Usage:
    from src.utils.datetime import utc_now

    decided_at = utc_now()
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Timezone-aware datetime representing current UTC time.
    """
    return datetime.now(timezone.utc)

