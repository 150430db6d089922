# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification service for orchestrating notification delivery.

Delivery is best effort. A channel failure is logged and reported in
the returned results but never raised. Services call dispatch() after
their commit so delivery runs as a tracked background task and a slow
channel never delays the response that triggered it. drain() waits for
the tasks still in flight and is called on shutdown.

Usage:
    service = build_notification_service(session_factory, settings)
    service.dispatch(payloads)
    await service.notify(
        target_id=student_id,
        title="Result Finalized",
        message="Your result for CSC 301 has been finalized.",
        notification_type="GRADE",
    )
"""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.infrastructure.notifications.channels import (
    BaseChannel,
    ChannelResult,
    InAppChannel,
    NotificationPayload,
)

if TYPE_CHECKING:
    from src.core.config.settings import Settings

logger = logging.getLogger(__name__)


@dataclass
class NotificationResult:
    """Result of a batch of notification deliveries.

    Attributes:
        recipients_count: Number of payloads processed.
        sent: Payloads accepted by at least one channel.
        failed: Payloads no channel accepted.
        channel_results: Results per channel per payload.
        errors: Error messages collected during delivery.
    """

    recipients_count: int = 0
    sent: int = 0
    failed: int = 0
    channel_results: list[dict[str, Any]] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


class NotificationService:
    """Service for sending notifications to students and lecturers.

    Attributes:
        channels: Channels every notification is sent through.
    """

    def __init__(
        self,
        channels: Sequence[BaseChannel],
        concurrency: int = 8,
    ) -> None:
        """Initialize the notification service.

        Args:
            channels: Delivery channels.
            concurrency: Maximum deliveries in flight for notify_many().
        """
        self.channels = list(channels)
        self._concurrency = max(1, concurrency)
        self._pending: set[asyncio.Task[NotificationResult]] = set()

        logger.info("NotificationService initialized with %d channels", len(self.channels))

    async def notify(
        self,
        target_id: str,
        title: str,
        message: str,
        notification_type: str,
        data: dict[str, Any] | None = None,
    ) -> list[ChannelResult]:
        """Send a notification to one student or lecturer.

        Args:
            target_id: Recipient identity.
            title: Notification title.
            message: Notification message.
            notification_type: Type of notification.
            data: Additional data.

        Returns:
            List of channel results. Never raises.
        """
        payload = NotificationPayload(
            recipient_id=target_id,
            title=title,
            message=message,
            notification_type=notification_type,
            data=data or {},
        )
        return await self._send_through_channels(payload)

    async def notify_many(
        self,
        payloads: Sequence[NotificationPayload],
    ) -> NotificationResult:
        """Send several notifications with bounded concurrency.

        Args:
            payloads: Notifications to deliver.

        Returns:
            NotificationResult summarising the deliveries. Never raises.
        """
        result = NotificationResult(recipients_count=len(payloads))
        if not payloads:
            return result

        semaphore = asyncio.Semaphore(self._concurrency)

        async def deliver(payload: NotificationPayload) -> list[ChannelResult]:
            async with semaphore:
                return await self._send_through_channels(payload)

        outcomes = await asyncio.gather(*(deliver(p) for p in payloads))

        for payload, channel_results in zip(payloads, outcomes):
            if any(r.ok for r in channel_results):
                result.sent += 1
            else:
                result.failed += 1
                result.errors.extend(
                    f"{payload.recipient_id}: {r.error_message}"
                    for r in channel_results
                    if r.error_message
                )
            result.channel_results.extend(
                {"recipient_id": payload.recipient_id, **r.to_dict()}
                for r in channel_results
            )

        logger.info(
            "Delivered %d/%d notifications (%d failed)",
            result.sent,
            result.recipients_count,
            result.failed,
        )
        return result

    def dispatch(
        self,
        payloads: Sequence[NotificationPayload],
    ) -> asyncio.Task[NotificationResult] | None:
        """Deliver notifications in the background.

        Must be called from a running event loop. The task is kept until
        it finishes so it is not garbage collected mid-delivery.

        Args:
            payloads: Notifications to deliver.

        Returns:
            The delivery task, or None when there is nothing to send.
        """
        if not payloads:
            return None
        task = asyncio.get_running_loop().create_task(self.notify_many(list(payloads)))
        self._pending.add(task)
        task.add_done_callback(self._delivery_done)
        return task

    @property
    def pending(self) -> int:
        """Number of background deliveries still in flight."""
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for every background delivery to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _delivery_done(self, task: asyncio.Task[NotificationResult]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            logger.warning("Notification delivery cancelled")
            return
        error = task.exception()
        if error is not None:
            logger.error("Notification delivery failed: %s", error, exc_info=error)

    async def _send_through_channels(
        self,
        payload: NotificationPayload,
    ) -> list[ChannelResult]:
        """Send a payload through every channel, capturing failures."""
        results: list[ChannelResult] = []

        for channel in self.channels:
            try:
                results.append(await channel.send(payload))
            except Exception as e:
                logger.warning(
                    "Channel %s failed to notify %s: %s",
                    channel.channel_type.value,
                    payload.recipient_id,
                    str(e),
                    exc_info=True,
                )
                results.append(channel.create_failure_result(str(e)))

        return results


def build_notification_service(
    session_factory: async_sessionmaker[AsyncSession],
    settings: "Settings",
) -> NotificationService:
    """Create the notification service used by the application.

    Args:
        session_factory: Session factory for the in-app channel.
        settings: Application settings.

    Returns:
        NotificationService delivering in-app notifications.
    """
    return NotificationService(
        channels=[InAppChannel(session_factory)],
        concurrency=settings.approval.notification_concurrency,
    )
