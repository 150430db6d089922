# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Per-tier approval ledger.

Every review cycle of a score record has exactly one entry per tier,
created together in PENDING state. Entries are never deleted: when a
rejected record is resubmitted, the previous cycle's entries are
stamped ``superseded_at`` and a fresh cycle is opened.

The ledger only flushes. Committing is left to the caller so a status
change and its ledger update land in the same transaction.
"""

import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.results.exceptions import InvalidTransitionError
from src.domains.results.state_machine import (
    TIER_ORDER,
    ApprovalTier,
    Decision,
    LedgerStatus,
    previous_tier,
)
from src.infrastructure.database.models.results import ApprovalLedgerEntry
from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)


class ApprovalLedger:
    """Reads and writes approval ledger entries.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize the ledger.

        Args:
            db: Async database session.
        """
        self.db = db

    async def create_entries(self, score_record_id: str, cycle: int) -> list[ApprovalLedgerEntry]:
        """Create the PENDING entries of a cycle for every tier.

        Tiers that already have an entry for the cycle are left alone.

        Args:
            score_record_id: Score record the entries belong to.
            cycle: Review cycle number.

        Returns:
            Entries of the cycle in tier order.
        """
        existing = {
            entry.tier: entry
            for entry in await self.get_cycle(score_record_id, cycle)
        }

        for tier in TIER_ORDER:
            if tier.value not in existing:
                entry = ApprovalLedgerEntry(
                    score_record_id=score_record_id,
                    tier=tier.value,
                    cycle=cycle,
                    status=LedgerStatus.PENDING.value,
                    forced=False,
                )
                self.db.add(entry)
                existing[tier.value] = entry

        await self.db.flush()
        return [existing[tier.value] for tier in TIER_ORDER]

    async def get_cycle(self, score_record_id: str, cycle: int) -> list[ApprovalLedgerEntry]:
        """Get the entries of one cycle in tier order."""
        result = await self.db.execute(
            select(ApprovalLedgerEntry).where(
                ApprovalLedgerEntry.score_record_id == score_record_id,
                ApprovalLedgerEntry.cycle == cycle,
            )
        )
        return _sorted(result.scalars().all())

    async def record_decision(
        self,
        score_record_id: str,
        cycle: int,
        tier: ApprovalTier,
        decision: Decision,
        decided_by: str,
        comments: str | None = None,
    ) -> ApprovalLedgerEntry:
        """Record a tier's decision in the current cycle.

        A tier's entry can only be decided once, and only after the
        previous tier's entry of the same cycle was approved.

        Args:
            score_record_id: Score record decided on.
            cycle: Current review cycle of the record.
            tier: Tier recording the decision.
            decision: APPROVE or REJECT.
            decided_by: Identity of the administrator.
            comments: Reviewer comments.

        Returns:
            The updated entry.

        Raises:
            InvalidTransitionError: If the entry was already decided or the
                previous tier has not approved.
        """
        entries = {entry.tier: entry for entry in await self.create_entries(score_record_id, cycle)}
        entry = entries[tier.value]

        if entry.status != LedgerStatus.PENDING:
            raise InvalidTransitionError(
                f"{tier.value} already recorded {entry.status} for cycle {cycle}",
                record_id=score_record_id,
            )

        prior = previous_tier(tier)
        if prior is not None and entries[prior.value].status != LedgerStatus.APPROVED:
            raise InvalidTransitionError(
                f"{prior.value} approval is required before {tier.value}",
                record_id=score_record_id,
            )

        entry.status = (
            LedgerStatus.APPROVED.value
            if decision == Decision.APPROVE
            else LedgerStatus.REJECTED.value
        )
        entry.decided_at = utc_now()
        entry.decided_by = decided_by
        entry.comments = comments
        await self.db.flush()
        return entry

    async def force_approve(
        self,
        score_record_id: str,
        cycle: int,
        decided_by: str,
        reason: str,
    ) -> list[ApprovalLedgerEntry]:
        """Approve every undecided entry of the cycle as a forced override.

        Returns:
            The entries that were forced, in tier order.
        """
        forced: list[ApprovalLedgerEntry] = []
        now = utc_now()

        for entry in await self.create_entries(score_record_id, cycle):
            if entry.status == LedgerStatus.PENDING:
                entry.status = LedgerStatus.APPROVED.value
                entry.decided_at = now
                entry.decided_by = decided_by
                entry.comments = reason
                entry.forced = True
                forced.append(entry)

        await self.db.flush()
        return forced

    async def open_new_cycle(
        self,
        score_record_id: str,
        previous_cycle: int,
        new_cycle: int,
    ) -> list[ApprovalLedgerEntry]:
        """Supersede the previous cycle and open a new one.

        Args:
            score_record_id: Resubmitted score record.
            previous_cycle: Cycle that ended in rejection.
            new_cycle: Cycle the record now enters.

        Returns:
            PENDING entries of the new cycle.
        """
        await self.db.execute(
            update(ApprovalLedgerEntry)
            .where(
                ApprovalLedgerEntry.score_record_id == score_record_id,
                ApprovalLedgerEntry.cycle == previous_cycle,
                ApprovalLedgerEntry.superseded_at.is_(None),
            )
            .values(superseded_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        logger.debug(
            "Superseded ledger cycle %d of record %s", previous_cycle, score_record_id
        )
        return await self.create_entries(score_record_id, new_cycle)

    async def history(self, score_record_id: str) -> list[ApprovalLedgerEntry]:
        """Get every entry of a record ordered by cycle and tier.

        Args:
            score_record_id: Score record to audit.

        Returns:
            Entries across all cycles, including superseded ones.
        """
        result = await self.db.execute(
            select(ApprovalLedgerEntry)
            .where(ApprovalLedgerEntry.score_record_id == score_record_id)
            .execution_options(populate_existing=True)
        )
        return _sorted(result.scalars().all())


def _sorted(entries: list[ApprovalLedgerEntry]) -> list[ApprovalLedgerEntry]:
    return sorted(
        entries,
        key=lambda entry: (entry.cycle, ApprovalTier(entry.tier).order),
    )
