# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification system for ResultGate.

Notifications tell students and lecturers about result transitions.
Delivery is best effort and never fails the operation that triggered it.

Key Components:
- NotificationService: Delivers payloads through the configured channels
- InAppChannel: Persists notifications for the in-app notification center
- NotificationPayload: Data structure for notification content
"""

from src.infrastructure.notifications.channels import (
    BaseChannel,
    ChannelResult,
    ChannelType,
    DeliveryStatus,
    InAppChannel,
    NotificationPayload,
)
from src.infrastructure.notifications.service import (
    NotificationResult,
    NotificationService,
    build_notification_service,
)

__all__ = [
    # Service
    "NotificationService",
    "NotificationResult",
    "build_notification_service",
    # Channel types
    "BaseChannel",
    "ChannelResult",
    "ChannelType",
    "DeliveryStatus",
    "InAppChannel",
    "NotificationPayload",
]
