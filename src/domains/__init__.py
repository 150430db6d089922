# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain services layer for ResultGate.

Each domain module provides services that encapsulate business logic
and own their transaction boundaries.

Domains:
    academic_session: Academic years, semesters and the current term.
    auth: Access token creation and validation.
    registration: Course registration review and enrollment derivation.
    results: Score entry, the approval state machine and the ledger.
"""
