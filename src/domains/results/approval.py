# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Approval service: the single entry point for status transitions.

Every transition re-reads the record, validates it against the state
machine, applies a conditional UPDATE and records the tier's ledger
decision in the same transaction. Notifications are queued after the
commit, delivered in the background, and can never fail the transition.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config.settings import Settings
from src.domains.results.exceptions import (
    ForceApproveDisabledError,
    IncompleteScoreError,
    InvalidTransitionError,
    MissingReasonError,
    ResultServiceError,
    TierMismatchError,
)
from src.domains.results.notifications import (
    TransitionEvent,
    course_label,
    force_approval_notifications,
    transition_notifications,
)
from src.domains.results.state_machine import (
    FORCE_APPROVABLE,
    ApprovalTier,
    Decision,
    ResultStatus,
    validate_transition,
)
from src.domains.results.scope import ApprovalScope, ensure_record_in_scope, scope_for_tier
from src.domains.results.store import ScoreRecordStore
from src.infrastructure.database.connection import DatabaseError
from src.infrastructure.database.models.registration import Course
from src.infrastructure.database.models.results import ApprovalLedgerEntry, ScoreRecord
from src.infrastructure.notifications.channels.base import NotificationPayload
from src.infrastructure.notifications.service import NotificationService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApprovalActor:
    """The administrator performing a decision.

    Attributes:
        id: Identity recorded as ``decided_by``.
        tier: Tier the identity acts for, or None for non-approvers.
        role: Role claim the tier was derived from.
        department_id: Department a department administrator acts for.
        school_id: School a school administrator acts for.
    """

    id: str
    tier: ApprovalTier | None
    role: str | None = None
    department_id: str | None = None
    school_id: str | None = None

    @property
    def scope(self) -> ApprovalScope:
        """Records this actor may decide on.

        Raises:
            OutOfScopeError: If a department or school administrator
                carries no department or school.
        """
        return scope_for_tier(self.tier, self.department_id, self.school_id)


@dataclass
class AdvanceResult:
    """Outcome of a single advance."""

    record: ScoreRecord
    previous_status: ResultStatus
    ledger_entry: ApprovalLedgerEntry
    event: TransitionEvent


@dataclass
class ForceApproveResult:
    """Outcome of a force approval."""

    record: ScoreRecord
    previous_status: ResultStatus
    forced_entries: list[ApprovalLedgerEntry]


def _clean(comments: str | None) -> str | None:
    if comments is None:
        return None
    return comments.strip() or None


class ApprovalService:
    """Applies tier decisions to score records.

    Attributes:
        db: Async database session.
        settings: Application settings.
        store: Score record store on the same session.
    """

    def __init__(
        self,
        db: AsyncSession,
        settings: Settings,
        notifier: NotificationService | None = None,
    ) -> None:
        """Initialize the approval service.

        Args:
            db: Async database session.
            settings: Application settings.
            notifier: Notification service, or None to send nothing.
        """
        self.db = db
        self.settings = settings
        self.store = ScoreRecordStore(db, settings.grading)
        self._notifier = notifier

    async def advance(
        self,
        record_id: str,
        tier: ApprovalTier,
        actor: ApprovalActor,
        decision: Decision,
        comments: str | None = None,
        notify: bool = True,
    ) -> AdvanceResult:
        """Record a tier's decision on one score record.

        Args:
            record_id: Score record to decide on.
            tier: Tier recording the decision.
            actor: Administrator deciding.
            decision: APPROVE or REJECT.
            comments: Reviewer comments (required to reject).
            notify: Queue notifications after the commit.

        Returns:
            AdvanceResult with the updated record and ledger entry.

        Raises:
            TierMismatchError: If the actor does not act for ``tier``.
            OutOfScopeError: If the record belongs to another department
                or school.
            MissingReasonError: If rejecting without comments.
            ScoreRecordNotFoundError: If the record does not exist.
            InvalidTransitionError: If the record is not in the status the
                tier reviews, or moved concurrently.
            IncompleteScoreError: If the record has no scores yet.
            DatabaseError: If persistence fails.
        """
        tier = ApprovalTier(tier)
        decision = Decision(decision)
        comments = _clean(comments)
        self._check_actor(actor, tier)
        scope = actor.scope

        try:
            record = await self.store.get(record_id)
            await ensure_record_in_scope(self.db, record.id, scope)
            previous = ResultStatus(record.status)
            new_status = validate_transition(
                record.status, tier, decision, comments, record_id=record.id
            )
            if not record.has_scores:
                raise IncompleteScoreError(
                    f"Score record {record.id} has no scores to review"
                )

            await self.store.transition(record, previous, status=new_status.value)
            entry = await self.store.ledger.record_decision(
                record.id,
                record.cycle,
                tier,
                decision,
                decided_by=actor.id,
                comments=comments,
            )
            label = await self._course_label(record.course_id)
            await self.db.commit()
        except ResultServiceError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise DatabaseError("Failed to advance score record", e) from e

        logger.info(
            "Score record %s: %s %s by %s, %s -> %s",
            record.id,
            tier.value,
            decision.value,
            actor.id,
            previous.value,
            new_status.value,
        )

        event = TransitionEvent(
            record_id=record.id,
            student_id=record.student_id,
            lecturer_id=record.submitted_by,
            course_label=label,
            tier=tier,
            decision=decision,
            new_status=new_status.value,
            comments=comments,
        )
        if notify:
            self._notify(transition_notifications(event))

        return AdvanceResult(
            record=record,
            previous_status=previous,
            ledger_entry=entry,
            event=event,
        )

    async def force_approve(
        self,
        record_id: str,
        actor: ApprovalActor,
        reason: str,
    ) -> ForceApproveResult:
        """Finalise a record without waiting for the lower tiers.

        Only senate administrators may do this, only when the override is
        enabled, and only with a reason. Every undecided ledger entry of
        the cycle is approved and flagged as forced.

        Raises:
            ForceApproveDisabledError: If the override is disabled.
            TierMismatchError: If the actor is not a senate administrator.
            MissingReasonError: If no reason is given.
            InvalidTransitionError: If the record is rejected or finalised.
            IncompleteScoreError: If the record has no scores yet.
            DatabaseError: If persistence fails.
        """
        if not self.settings.approval.allow_force_approve:
            raise ForceApproveDisabledError("Force approval is disabled")
        self._check_actor(actor, ApprovalTier.SENATE)
        reason = _clean(reason)
        if not reason:
            raise MissingReasonError("A reason is required to force approve a result")

        try:
            record = await self.store.get(record_id)
            previous = ResultStatus(record.status)
            if previous not in FORCE_APPROVABLE:
                raise InvalidTransitionError(
                    f"A {previous.value} result cannot be force approved",
                    record_id=record.id,
                    current_status=previous.value,
                )
            if not record.has_scores:
                raise IncompleteScoreError(
                    f"Score record {record.id} has no scores to approve"
                )

            await self.store.transition(
                record, previous, status=ResultStatus.SENATE_APPROVED.value
            )
            forced = await self.store.ledger.force_approve(
                record.id, record.cycle, decided_by=actor.id, reason=reason
            )
            label = await self._course_label(record.course_id)
            await self.db.commit()
        except ResultServiceError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise DatabaseError("Failed to force approve score record", e) from e

        logger.warning(
            "Score record %s force approved by %s from %s (%d tiers bypassed): %s",
            record.id,
            actor.id,
            previous.value,
            len(forced),
            reason,
        )

        self._notify(
            force_approval_notifications(record.id, record.student_id, label)
        )
        return ForceApproveResult(
            record=record,
            previous_status=previous,
            forced_entries=forced,
        )

    async def history(
        self,
        record_id: str,
        actor: ApprovalActor | None = None,
    ) -> tuple[ScoreRecord, list[ApprovalLedgerEntry]]:
        """Get a record and its ledger entries across all cycles.

        Args:
            record_id: Score record.
            actor: Approver asking, whose scope the record must fall in.

        Raises:
            ScoreRecordNotFoundError: If the record does not exist.
            OutOfScopeError: If the record is outside the actor's scope.
        """
        record = await self.store.get(record_id)
        if actor is not None:
            await ensure_record_in_scope(self.db, record.id, actor.scope)
        return record, await self.store.ledger.history(record.id)

    def _check_actor(self, actor: ApprovalActor, tier: ApprovalTier) -> None:
        if actor.tier != tier:
            raise TierMismatchError(
                f"Caller acts for {actor.tier.value if actor.tier else 'no tier'}, "
                f"not {tier.value}"
            )

    async def _course_label(self, course_id: str) -> str:
        result = await self.db.execute(
            select(Course.code, Course.title).where(Course.id == course_id)
        )
        row = result.one_or_none()
        if row is None:
            return course_id
        return course_label(row[0], row[1])

    def _notify(self, payloads: Sequence[NotificationPayload]) -> None:
        if self._notifier is None or not payloads:
            return
        try:
            self._notifier.dispatch(payloads)
        except Exception:
            logger.warning("Failed to queue result notifications", exc_info=True)
