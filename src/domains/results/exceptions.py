# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Exceptions raised by the results domain."""


class ResultServiceError(Exception):
    """Base exception for result service errors."""

    pass


class ScoreRecordNotFoundError(ResultServiceError):
    """Raised when a score record does not exist."""

    pass


class InvalidTransitionError(ResultServiceError):
    """Raised when a record's current status does not permit a transition.

    This usually signals a stale read or a concurrent advance. Callers
    should refetch the record before retrying.

    Attributes:
        record_id: Score record the transition targeted.
        current_status: Status observed when the transition was attempted.
        expected_status: Status the transition required.
    """

    STALE_MESSAGE = "this record has already moved past the expected state"

    def __init__(
        self,
        message: str | None = None,
        record_id: str | None = None,
        current_status: str | None = None,
        expected_status: str | None = None,
    ) -> None:
        super().__init__(message or self.STALE_MESSAGE)
        self.message = message or self.STALE_MESSAGE
        self.record_id = record_id
        self.current_status = current_status
        self.expected_status = expected_status


class MissingReasonError(ResultServiceError):
    """Raised when a rejection or override is attempted without comments."""

    pass


class NotEnrolledError(ResultServiceError):
    """Raised when a score is entered without an active enrollment."""

    pass


class ScoreValidationError(ResultServiceError):
    """Raised when a score is outside the configured bounds."""

    pass


class IncompleteScoreError(ScoreValidationError):
    """Raised when a record without entered scores is advanced."""

    pass


class TierMismatchError(ResultServiceError):
    """Raised when the caller's tier differs from the tier being advanced."""

    pass


class ForceApproveDisabledError(ResultServiceError):
    """Raised when force approval is used while it is disabled."""

    pass


class OutOfScopeError(ResultServiceError):
    """Raised when an approver acts on a record outside their department or school."""

    pass


class NotAssignedError(ResultServiceError):
    """Raised when a lecturer enters scores for a course they are not assigned to."""

    pass
