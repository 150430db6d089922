"""ResultGate Backend.

Hierarchical result-approval service for an academic learning-management
system: lecturer score entry, Department -> School -> Senate sign-off,
rejection and resubmission, and student-facing result visibility.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
