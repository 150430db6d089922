# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Bulk transition orchestrator.

Applies one tier decision to every score record of a term that is in
the status the tier reviews. Each record is advanced in its own session
and transaction through ``ApprovalService.advance``, so a failure on one
record never touches another and a record is never left with a status
change but no ledger entry.

Batches are resumable: records that were already advanced no longer
match the expected status and are counted as skipped on a re-run.
"""

from dataclasses import dataclass
from enum import Enum

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.core.config.settings import Settings
from src.domains.results.approval import ApprovalActor, ApprovalService
from src.domains.results.exceptions import (
    InvalidTransitionError,
    MissingReasonError,
    OutOfScopeError,
    ScoreRecordNotFoundError,
    ScoreValidationError,
    TierMismatchError,
)
from src.domains.results.notifications import TransitionEvent, batch_notifications
from src.domains.results.scope import ApprovalScope
from src.domains.results.state_machine import (
    ApprovalTier,
    Decision,
    ResultStatus,
    expected_status as expected_status_for,
)
from src.infrastructure.database.connection import DatabaseError
from src.infrastructure.database.models.results import ScoreRecord
from src.infrastructure.notifications.service import NotificationService
from src.models.common import Semester
from src.models.results import BatchAdvanceResponse, BatchItemError
from src.utils.batching import run_in_chunks
from src.utils.logging import get_logger, term_context

logger = get_logger(__name__)


class ItemStatus(str, Enum):
    """How a single record fared in a batch."""

    ADVANCED = "advanced"
    SKIPPED = "skipped"
    FAILED_VALIDATION = "failed_validation"
    FAILED = "failed"


@dataclass
class ItemOutcome:
    """Outcome of one record in a batch."""

    record_id: str
    status: ItemStatus
    event: TransitionEvent | None = None
    error_code: str | None = None
    error: str | None = None


class BulkTransitionOrchestrator:
    """Advances batches of score records with bounded concurrency.

    Attributes:
        settings: Application settings (chunk size and concurrency).
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Settings,
        notifier: NotificationService | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            session_factory: Factory for the per-record sessions.
            settings: Application settings.
            notifier: Notification service, or None to send nothing.
        """
        self._session_factory = session_factory
        self.settings = settings
        self._notifier = notifier

    async def advance_batch(
        self,
        tier: ApprovalTier,
        decision: Decision,
        actor: ApprovalActor,
        academic_year: str,
        semester: str,
        expected_status: ResultStatus | None = None,
        course_id: str | None = None,
        record_ids: list[str] | None = None,
        comments: str | None = None,
    ) -> BatchAdvanceResponse:
        """Apply a tier decision to the matching records of a term.

        Args:
            tier: Tier recording the decision.
            decision: APPROVE or REJECT.
            actor: Administrator deciding.
            academic_year: Term year.
            semester: Term semester.
            expected_status: Status the records must hold. Defaults to the
                status ``tier`` reviews; any other value is refused.
            course_id: Restrict the batch to one course.
            record_ids: Restrict the batch to these records.
            comments: Reviewer comments (required to reject).

        Returns:
            Counts of advanced, skipped, failed-validation and failed records.

        Raises:
            TierMismatchError: If the actor does not act for ``tier``.
            OutOfScopeError: If a department or school administrator has no
                department or school. Records outside the actor's scope
                are never candidates.
            MissingReasonError: If rejecting without comments.
            InvalidTransitionError: If ``expected_status`` is not the status
                ``tier`` reviews.
        """
        tier = ApprovalTier(tier)
        decision = Decision(decision)
        comments = comments.strip() if comments else None

        if actor.tier != tier:
            raise TierMismatchError(
                f"Caller acts for {actor.tier.value if actor.tier else 'no tier'}, "
                f"not {tier.value}"
            )
        if decision == Decision.REJECT and not comments:
            raise MissingReasonError("A reason is required to reject results")
        scope = actor.scope

        required = expected_status_for(tier)
        if expected_status is not None and ResultStatus(expected_status) != required:
            raise InvalidTransitionError(
                f"{tier.value} reviews {required.value} results, "
                f"not {ResultStatus(expected_status).value}",
                expected_status=required.value,
            )

        with term_context(academic_year, semester, tier=tier.value):
            response = BatchAdvanceResponse(
                tier=tier,
                decision=decision,
                academic_year=academic_year,
                semester=Semester(semester),
                expected_status=required,
            )

            candidates = await self._load_candidates(
                academic_year, semester, course_id, record_ids, scope
            )
            response.matched = len(candidates)
            eligible = [record_id for record_id, status in candidates if status == required]
            response.skipped = len(candidates) - len(eligible)

            logger.info(
                "Batch started",
                decision=decision.value,
                candidates=len(candidates),
                eligible=len(eligible),
            )

            async def worker(record_id: str) -> ItemOutcome:
                return await self._advance_one(record_id, tier, decision, actor, comments)

            outcomes = await run_in_chunks(
                eligible,
                worker,
                chunk_size=self.settings.approval.batch_chunk_size,
                concurrency=self.settings.approval.batch_concurrency,
            )

            events: list[TransitionEvent] = []
            for outcome in outcomes:
                if outcome.status == ItemStatus.ADVANCED:
                    response.advanced += 1
                    if outcome.event is not None:
                        events.append(outcome.event)
                    continue
                if outcome.status == ItemStatus.SKIPPED:
                    response.skipped += 1
                elif outcome.status == ItemStatus.FAILED_VALIDATION:
                    response.failed_validation += 1
                else:
                    response.failed += 1
                if outcome.status != ItemStatus.SKIPPED:
                    response.errors.append(
                        BatchItemError(
                            record_id=outcome.record_id,
                            code=outcome.error_code or outcome.status.value,
                            message=outcome.error or "",
                        )
                    )

            if events and self._notifier is not None:
                payloads = batch_notifications(events, tier, decision, comments)
                try:
                    self._notifier.dispatch(payloads)
                    response.notifications_queued = len(payloads)
                except Exception:
                    logger.warning("Failed to queue batch notifications", exc_info=True)

            logger.info(
                "Batch finished",
                decision=decision.value,
                advanced=response.advanced,
                skipped=response.skipped,
                failed_validation=response.failed_validation,
                failed=response.failed,
                notifications_queued=response.notifications_queued,
            )
            return response

    async def _load_candidates(
        self,
        academic_year: str,
        semester: str,
        course_id: str | None,
        record_ids: list[str] | None,
        scope: ApprovalScope,
    ) -> list[tuple[str, str]]:
        """Read (id, status) of every record the batch applies to."""
        query = select(ScoreRecord.id, ScoreRecord.status).where(
            ScoreRecord.academic_year == academic_year,
            ScoreRecord.semester == semester,
            *scope.record_conditions(),
        )
        if course_id:
            query = query.where(ScoreRecord.course_id == course_id)
        if record_ids is not None:
            query = query.where(ScoreRecord.id.in_(record_ids))

        try:
            async with self._session_factory() as session:
                result = await session.execute(query.order_by(ScoreRecord.id))
                return [(row[0], row[1]) for row in result.all()]
        except SQLAlchemyError as e:
            raise DatabaseError("Failed to load batch candidates", e) from e

    async def _advance_one(
        self,
        record_id: str,
        tier: ApprovalTier,
        decision: Decision,
        actor: ApprovalActor,
        comments: str | None,
    ) -> ItemOutcome:
        """Advance one record in its own session, classifying the outcome."""
        async with self._session_factory() as session:
            service = ApprovalService(session, self.settings)
            try:
                result = await service.advance(
                    record_id,
                    tier,
                    actor,
                    decision,
                    comments=comments,
                    notify=False,
                )
            except InvalidTransitionError as e:
                logger.debug("Skipped stale record", record_id=record_id, reason=str(e))
                return ItemOutcome(record_id, ItemStatus.SKIPPED, error=str(e))
            except ScoreValidationError as e:
                return ItemOutcome(
                    record_id,
                    ItemStatus.FAILED_VALIDATION,
                    error_code=type(e).__name__,
                    error=str(e),
                )
            except (ScoreRecordNotFoundError, OutOfScopeError) as e:
                return ItemOutcome(
                    record_id,
                    ItemStatus.FAILED,
                    error_code=type(e).__name__,
                    error=str(e),
                )
            except (DatabaseError, SQLAlchemyError) as e:
                logger.error("Failed to advance record", record_id=record_id, error=str(e))
                return ItemOutcome(
                    record_id,
                    ItemStatus.FAILED,
                    error_code="DatabaseError",
                    error=str(e),
                )

        return ItemOutcome(record_id, ItemStatus.ADVANCED, event=result.event)
