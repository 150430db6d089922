# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Approval state machine for score records.

A score record moves through the tiers in a fixed order:

    PENDING -> DEPARTMENT_APPROVED -> FACULTY_APPROVED -> SENATE_APPROVED

Any tier may reject the record it is reviewing, which moves it to
REJECTED. A lecturer edit on a REJECTED record sends it back to PENDING.
SENATE_APPROVED is terminal and is the only status visible to students.

Everything in this module is pure. Persistence and concurrency control
live in the approval service.
"""

from collections.abc import Sequence

from src.domains.results.exceptions import InvalidTransitionError, MissingReasonError
from src.models.common import ApprovalTier, Decision, LedgerStatus, ResultStatus


TIER_ORDER: tuple[ApprovalTier, ...] = (
    ApprovalTier.DEPARTMENT,
    ApprovalTier.SCHOOL,
    ApprovalTier.SENATE,
)

# Status a record must hold for the tier's decision to apply
EXPECTED_STATUS: dict[ApprovalTier, ResultStatus] = {
    ApprovalTier.DEPARTMENT: ResultStatus.PENDING,
    ApprovalTier.SCHOOL: ResultStatus.DEPARTMENT_APPROVED,
    ApprovalTier.SENATE: ResultStatus.FACULTY_APPROVED,
}

APPROVED_STATUS: dict[ApprovalTier, ResultStatus] = {
    ApprovalTier.DEPARTMENT: ResultStatus.DEPARTMENT_APPROVED,
    ApprovalTier.SCHOOL: ResultStatus.FACULTY_APPROVED,
    ApprovalTier.SENATE: ResultStatus.SENATE_APPROVED,
}

ALLOWED_TRANSITIONS: dict[ResultStatus, frozenset[ResultStatus]] = {
    ResultStatus.PENDING: frozenset(
        {ResultStatus.DEPARTMENT_APPROVED, ResultStatus.REJECTED}
    ),
    ResultStatus.DEPARTMENT_APPROVED: frozenset(
        {ResultStatus.FACULTY_APPROVED, ResultStatus.REJECTED}
    ),
    ResultStatus.FACULTY_APPROVED: frozenset(
        {ResultStatus.SENATE_APPROVED, ResultStatus.REJECTED}
    ),
    ResultStatus.REJECTED: frozenset({ResultStatus.PENDING}),
    ResultStatus.SENATE_APPROVED: frozenset(),
}

# Statuses from which the explicit senate override may finalise a record
FORCE_APPROVABLE: frozenset[ResultStatus] = frozenset(
    {
        ResultStatus.PENDING,
        ResultStatus.DEPARTMENT_APPROVED,
        ResultStatus.FACULTY_APPROVED,
    }
)

# Statuses in which scores are locked against lecturer edits
LOCKED_STATUSES: frozenset[ResultStatus] = frozenset(
    {
        ResultStatus.DEPARTMENT_APPROVED,
        ResultStatus.FACULTY_APPROVED,
        ResultStatus.SENATE_APPROVED,
    }
)

# Progress rank used to tell a stale request from an out-of-order one
_PROGRESS: dict[ResultStatus, int] = {
    ResultStatus.PENDING: 0,
    ResultStatus.DEPARTMENT_APPROVED: 1,
    ResultStatus.FACULTY_APPROVED: 2,
    ResultStatus.SENATE_APPROVED: 3,
}

ROLE_TIERS: dict[str, ApprovalTier] = {
    "department_admin": ApprovalTier.DEPARTMENT,
    "school_admin": ApprovalTier.SCHOOL,
    "senate_admin": ApprovalTier.SENATE,
}


def tier_for_role(role: str | None) -> ApprovalTier | None:
    """Map an identity role to the approval tier it acts for.

    Args:
        role: Role claim of the caller.

    Returns:
        The tier, or None when the role does not approve results.
    """
    if role is None:
        return None
    return ROLE_TIERS.get(role.lower())


def previous_tier(tier: ApprovalTier) -> ApprovalTier | None:
    """Return the tier that must approve before ``tier``, if any."""
    index = TIER_ORDER.index(tier)
    return TIER_ORDER[index - 1] if index > 0 else None


def expected_status(tier: ApprovalTier) -> ResultStatus:
    """Return the status a record must hold for ``tier`` to decide on it."""
    return EXPECTED_STATUS[tier]


def next_status(tier: ApprovalTier, decision: Decision) -> ResultStatus:
    """Return the status a decision by ``tier`` moves a record to."""
    if decision == Decision.REJECT:
        return ResultStatus.REJECTED
    return APPROVED_STATUS[tier]


def is_visible(status: str) -> bool:
    """Whether a record with this status may be shown to its student."""
    return status == ResultStatus.SENATE_APPROVED


def is_locked(status: str) -> bool:
    """Whether scores on a record with this status may not be edited."""
    return ResultStatus(status) in LOCKED_STATUSES


def can_transition(current: str, target: str) -> bool:
    """Check a single edge of the state graph."""
    return ResultStatus(target) in ALLOWED_TRANSITIONS[ResultStatus(current)]


def is_legal_path(statuses: Sequence[str]) -> bool:
    """Check that a status sequence read over time is a legal path.

    Args:
        statuses: Observed statuses in chronological order.

    Returns:
        True if every consecutive pair is an allowed transition.
    """
    return all(
        can_transition(current, target)
        for current, target in zip(statuses, statuses[1:])
    )


def validate_transition(
    current: str,
    tier: ApprovalTier,
    decision: Decision,
    comments: str | None = None,
    record_id: str | None = None,
) -> ResultStatus:
    """Validate a tier decision against the record's current status.

    A rejection without comments is refused before the status is looked
    at. A decision by any tier other than the next expected one fails,
    regardless of the caller's authority.

    Args:
        current: Current status of the record.
        tier: Tier recording the decision.
        decision: APPROVE or REJECT.
        comments: Reviewer comments (required for REJECT).
        record_id: Record identifier for error reporting.

    Returns:
        The status the record moves to.

    Raises:
        MissingReasonError: If rejecting without comments.
        InvalidTransitionError: If the current status is not the one
            expected for ``tier``.
    """
    if decision == Decision.REJECT and not (comments and comments.strip()):
        raise MissingReasonError("A reason is required to reject a result")

    status = ResultStatus(current)
    expected = expected_status(tier)

    if status != expected:
        raise InvalidTransitionError(
            _transition_message(status, expected, tier),
            record_id=record_id,
            current_status=status.value,
            expected_status=expected.value,
        )

    target = next_status(tier, decision)
    # The table is the single source of truth for edges
    if not can_transition(status, target):
        raise InvalidTransitionError(
            f"Cannot move a result from {status.value} to {target.value}",
            record_id=record_id,
            current_status=status.value,
            expected_status=expected.value,
        )
    return target


def _transition_message(
    current: ResultStatus,
    expected: ResultStatus,
    tier: ApprovalTier,
) -> str:
    """Describe why a tier's decision does not apply to the current status."""
    current_rank = _PROGRESS.get(current)
    if current_rank is not None and current_rank > _PROGRESS[expected]:
        return InvalidTransitionError.STALE_MESSAGE
    if current == ResultStatus.REJECTED:
        return "Result was rejected and must be resubmitted before review"
    return (
        f"{tier.value} cannot review a result in {current.value} state; "
        f"it must be {expected.value}"
    )
