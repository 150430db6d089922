# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""In-app notification channel.

This channel creates notification records in the database
that are displayed within the application UI.

Each send runs in its own session, so a failed notification never
touches the transaction of the operation that triggered it.
"""

from datetime import timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.infrastructure.database.models.base import generate_uuid
from src.infrastructure.database.models.notification import Notification
from src.infrastructure.notifications.channels.base import (
    BaseChannel,
    ChannelResult,
    ChannelType,
    DeliveryStatus,
    NotificationPayload,
)
from src.utils.datetime import utc_now


class InAppChannel(BaseChannel):
    """In-app notification channel.

    Creates notification records in the notifications table.
    """

    # Default expiration time for notifications (30 days)
    DEFAULT_EXPIRATION_DAYS = 30

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Initialize the in-app channel.

        Args:
            session_factory: Factory for the sessions notifications are
                written in.
        """
        super().__init__()
        self._session_factory = session_factory

    @property
    def channel_type(self) -> ChannelType:
        """Return the channel type."""
        return ChannelType.IN_APP

    async def send(self, payload: NotificationPayload) -> ChannelResult:
        """Create an in-app notification record.

        Args:
            payload: The notification payload.

        Returns:
            ChannelResult with delivery status.
        """
        now = utc_now()
        notification = Notification(
            id=generate_uuid(),
            user_id=payload.recipient_id,
            notification_type=payload.notification_type,
            title=payload.title,
            message=payload.message,
            data={"priority": payload.priority, **payload.data},
            channels=[ChannelType.IN_APP.value],
            delivery_status={
                ChannelType.IN_APP.value: {
                    "status": DeliveryStatus.SENT.value,
                    "sent_at": now.isoformat(),
                }
            },
            action_url=payload.action_url,
            expires_at=now + timedelta(days=self.DEFAULT_EXPIRATION_DAYS),
        )

        try:
            async with self._session_factory() as session:
                session.add(notification)
                await session.commit()
        except SQLAlchemyError as e:
            self.logger.error(
                "Failed to create in-app notification for user %s: %s",
                payload.recipient_id,
                str(e),
                exc_info=True,
            )
            return self.create_failure_result(f"Database error: {str(e)}")

        self.logger.debug(
            "Created in-app notification %s for user %s",
            notification.id,
            payload.recipient_id,
        )
        return self.create_success_result(
            message_id=notification.id,
            metadata={"notification_id": notification.id},
        )
