# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the approval state machine."""

import pytest

from src.domains.results.exceptions import InvalidTransitionError, MissingReasonError
from src.domains.results.state_machine import (
    ALLOWED_TRANSITIONS,
    can_transition,
    expected_status,
    is_legal_path,
    is_locked,
    is_visible,
    next_status,
    previous_tier,
    tier_for_role,
    validate_transition,
)
from src.models.common import ApprovalTier, Decision, ResultStatus


class TestValidateTransition:
    """Tests for validate_transition."""

    @pytest.mark.parametrize(
        "tier,current,target",
        [
            (ApprovalTier.DEPARTMENT, "PENDING", ResultStatus.DEPARTMENT_APPROVED),
            (ApprovalTier.SCHOOL, "DEPARTMENT_APPROVED", ResultStatus.FACULTY_APPROVED),
            (ApprovalTier.SENATE, "FACULTY_APPROVED", ResultStatus.SENATE_APPROVED),
        ],
    )
    def test_approval_moves_one_step(self, tier, current, target) -> None:
        """Test each tier approves from the status it reviews."""
        assert validate_transition(current, tier, Decision.APPROVE) == target

    def test_rejection_from_any_reviewed_status(self) -> None:
        """Test every tier may reject the record it reviews."""
        for tier in ApprovalTier:
            result = validate_transition(
                expected_status(tier).value, tier, Decision.REJECT, comments="Wrong CA"
            )
            assert result == ResultStatus.REJECTED

    def test_tier_skip_is_refused(self) -> None:
        """Test the senate cannot approve a PENDING record."""
        with pytest.raises(InvalidTransitionError) as exc_info:
            validate_transition("PENDING", ApprovalTier.SENATE, Decision.APPROVE, record_id="r1")

        assert exc_info.value.record_id == "r1"
        assert exc_info.value.current_status == "PENDING"
        assert exc_info.value.expected_status == "FACULTY_APPROVED"

    def test_record_past_expected_status_is_stale(self) -> None:
        """Test a record already moved on yields the stale message."""
        with pytest.raises(InvalidTransitionError) as exc_info:
            validate_transition("FACULTY_APPROVED", ApprovalTier.DEPARTMENT, Decision.APPROVE)

        assert str(exc_info.value) == InvalidTransitionError.STALE_MESSAGE

    def test_rejected_record_needs_resubmission(self) -> None:
        """Test no tier can decide on a REJECTED record."""
        with pytest.raises(InvalidTransitionError, match="resubmitted"):
            validate_transition("REJECTED", ApprovalTier.DEPARTMENT, Decision.APPROVE)

    def test_senate_approved_is_terminal(self) -> None:
        """Test a finalised record cannot be decided on again."""
        for tier in ApprovalTier:
            with pytest.raises(InvalidTransitionError):
                validate_transition("SENATE_APPROVED", tier, Decision.REJECT, comments="x")

    @pytest.mark.parametrize("comments", [None, "", "   "])
    def test_reject_without_reason(self, comments) -> None:
        """Test missing reasons are checked before the status."""
        with pytest.raises(MissingReasonError):
            validate_transition("SENATE_APPROVED", ApprovalTier.SENATE, Decision.REJECT, comments)


class TestStateGraph:
    """Tests for the transition table and helpers."""

    def test_only_listed_edges_are_allowed(self) -> None:
        """Test can_transition agrees with the table for every pair."""
        for current in ResultStatus:
            for target in ResultStatus:
                assert can_transition(current, target) == (
                    target in ALLOWED_TRANSITIONS[current]
                )

    def test_resubmission_edge(self) -> None:
        """Test REJECTED only leads back to PENDING."""
        assert ALLOWED_TRANSITIONS[ResultStatus.REJECTED] == frozenset({ResultStatus.PENDING})

    def test_legal_paths(self) -> None:
        """Test observed status sequences are checked edge by edge."""
        assert is_legal_path(
            [
                "PENDING",
                "DEPARTMENT_APPROVED",
                "FACULTY_APPROVED",
                "REJECTED",
                "PENDING",
                "DEPARTMENT_APPROVED",
            ]
        )
        assert not is_legal_path(["PENDING", "FACULTY_APPROVED"])
        assert not is_legal_path(["SENATE_APPROVED", "PENDING"])

    def test_visibility_and_locking(self) -> None:
        """Test only finalised results are visible and reviewed ones are locked."""
        assert is_visible("SENATE_APPROVED")
        assert not is_visible("FACULTY_APPROVED")
        assert not is_locked("PENDING")
        assert not is_locked("REJECTED")
        assert is_locked("DEPARTMENT_APPROVED")
        assert is_locked("SENATE_APPROVED")

    def test_tier_helpers(self) -> None:
        """Test tier ordering helpers."""
        assert previous_tier(ApprovalTier.DEPARTMENT) is None
        assert previous_tier(ApprovalTier.SENATE) == ApprovalTier.SCHOOL
        assert next_status(ApprovalTier.SCHOOL, Decision.APPROVE) == ResultStatus.FACULTY_APPROVED
        assert next_status(ApprovalTier.SCHOOL, Decision.REJECT) == ResultStatus.REJECTED
        assert [tier.order for tier in ApprovalTier] == [0, 1, 2]


class TestTierForRole:
    """Tests for mapping roles to tiers."""

    @pytest.mark.parametrize(
        "role,tier",
        [
            ("department_admin", ApprovalTier.DEPARTMENT),
            ("SCHOOL_ADMIN", ApprovalTier.SCHOOL),
            ("senate_admin", ApprovalTier.SENATE),
            ("lecturer", None),
            ("student", None),
            (None, None),
        ],
    )
    def test_mapping(self, role, tier) -> None:
        """Test only administrator roles act for a tier."""
        assert tier_for_role(role) == tier
