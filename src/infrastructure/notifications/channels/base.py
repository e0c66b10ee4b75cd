# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Base classes for notification channels.

This module defines the abstract base class and shared types
for notification channels. Each channel handles delivery
through a specific medium.

Channel implementations must be async and must not raise on
delivery problems: they report them through ChannelResult.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class ChannelType(str, Enum):
    """Available notification channel types."""

    EMAIL = "email"


class DeliveryStatus(str, Enum):
    """Delivery status for a channel."""

    PENDING = "pending"
    SENT = "sent"
    DELIVERED = "delivered"
    FAILED = "failed"
    SKIPPED = "skipped"

    @property
    def is_success(self) -> bool:
        """Check whether the message left through the channel."""
        return self in (DeliveryStatus.SENT, DeliveryStatus.DELIVERED)


@dataclass
class NotificationPayload:
    """Payload for sending a notification.

    Attributes:
        notification_type: Kind of notification (email kind).
        title: Notification title (email subject).
        message: Notification message body.
        recipient_id: Platform user ID of the recipient.
        recipient_email: Email address of the recipient.
        recipient_name: Display name of the recipient.
        data: Additional data for the notification.
    """

    notification_type: str
    title: str
    message: str
    recipient_id: int
    recipient_email: str
    recipient_name: str | None = None
    data: dict[str, Any] = field(default_factory=dict)


@dataclass
class ChannelResult:
    """Result of a channel send operation.

    Attributes:
        channel: Which channel was used.
        status: Delivery status.
        message_id: External message ID (if available).
        error_message: Error message if failed or skipped.
        sent_at: When the send was attempted.
        metadata: Additional result metadata.
    """

    channel: ChannelType
    status: DeliveryStatus
    message_id: str | None = None
    error_message: str | None = None
    sent_at: datetime | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        """Check whether the notification went out."""
        return self.status.is_success

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "channel": self.channel.value,
            "status": self.status.value,
            "message_id": self.message_id,
            "error_message": self.error_message,
            "sent_at": self.sent_at.isoformat() if self.sent_at else None,
            "metadata": self.metadata,
        }


class BaseChannel(ABC):
    """Abstract base class for notification channels.

    Attributes:
        channel_type: The type of this channel.
    """

    def __init__(self) -> None:
        """Initialize the channel."""
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    @abstractmethod
    def channel_type(self) -> ChannelType:
        """Return the channel type."""
        ...

    @abstractmethod
    async def send(self, payload: NotificationPayload) -> ChannelResult:
        """Send a notification through this channel.

        Args:
            payload: The notification payload to send.

        Returns:
            ChannelResult with delivery status.
        """
        ...

    def create_success_result(
        self,
        message_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> ChannelResult:
        """Create a successful channel result.

        Args:
            message_id: External message ID.
            metadata: Additional metadata.

        Returns:
            ChannelResult with SENT status.
        """
        return ChannelResult(
            channel=self.channel_type,
            status=DeliveryStatus.SENT,
            message_id=message_id,
            sent_at=datetime.now(),
            metadata=metadata or {},
        )

    def create_failure_result(
        self,
        error_message: str,
        metadata: dict[str, Any] | None = None,
    ) -> ChannelResult:
        """Create a failed channel result.

        Args:
            error_message: Error description.
            metadata: Additional metadata.

        Returns:
            ChannelResult with FAILED status.
        """
        return ChannelResult(
            channel=self.channel_type,
            status=DeliveryStatus.FAILED,
            error_message=error_message,
            sent_at=datetime.now(),
            metadata=metadata or {},
        )

    def create_skipped_result(self, reason: str) -> ChannelResult:
        """Create a skipped channel result.

        Args:
            reason: Why the send was skipped.

        Returns:
            ChannelResult with SKIPPED status.
        """
        return ChannelResult(
            channel=self.channel_type,
            status=DeliveryStatus.SKIPPED,
            error_message=reason,
            sent_at=datetime.now(),
        )
