# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Results domain package.

This package implements the hierarchical result-approval workflow:
- Score entry, resubmission and student views (ResultService)
- Tier decisions and the senate override (ApprovalService)
- Batch decisions over a term (BulkTransitionOrchestrator)
- The pure state machine and grading rules
"""

from src.domains.results.approval import (
    AdvanceResult,
    ApprovalActor,
    ApprovalService,
    ForceApproveResult,
)
from src.domains.results.bulk import BulkTransitionOrchestrator
from src.domains.results.exceptions import (
    ForceApproveDisabledError,
    IncompleteScoreError,
    InvalidTransitionError,
    MissingReasonError,
    NotAssignedError,
    NotEnrolledError,
    OutOfScopeError,
    ResultServiceError,
    ScoreRecordNotFoundError,
    ScoreValidationError,
    TierMismatchError,
)
from src.domains.results.scope import ApprovalScope
from src.domains.results.service import ResultService
from src.domains.results.state_machine import (
    ApprovalTier,
    Decision,
    LedgerStatus,
    ResultStatus,
)
from src.domains.results.store import ScoreOutcome, ScoreRecordStore, UpsertResult

__all__ = [
    # Services
    "ResultService",
    "ApprovalService",
    "BulkTransitionOrchestrator",
    "ScoreRecordStore",
    # Values
    "ApprovalActor",
    "ApprovalScope",
    "AdvanceResult",
    "ForceApproveResult",
    "ScoreOutcome",
    "UpsertResult",
    "ApprovalTier",
    "Decision",
    "LedgerStatus",
    "ResultStatus",
    # Exceptions
    "ResultServiceError",
    "ScoreRecordNotFoundError",
    "InvalidTransitionError",
    "MissingReasonError",
    "NotEnrolledError",
    "ScoreValidationError",
    "IncompleteScoreError",
    "TierMismatchError",
    "ForceApproveDisabledError",
    "OutOfScopeError",
    "NotAssignedError",
]
