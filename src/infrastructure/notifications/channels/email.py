# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Email notification channel using async SMTP.

This channel sends plain text email using aiosmtplib. Configuration
comes from SMTPSettings (SMTP_* environment variables):

- SMTP_HOST: SMTP server hostname
- SMTP_PORT: SMTP server port (default: 587)
- SMTP_USERNAME: SMTP authentication username
- SMTP_PASSWORD: SMTP authentication password
- SMTP_USE_TLS: Use STARTTLS (default: true)
- SMTP_FROM_EMAIL: Sender email address
- SMTP_FROM_NAME: Sender display name
"""

from email.message import EmailMessage
from email.utils import formataddr, make_msgid

import aiosmtplib

from src.core.config.settings import SMTPSettings
from src.infrastructure.notifications.channels.base import (
    BaseChannel,
    ChannelResult,
    ChannelType,
    NotificationPayload,
)


class EmailChannel(BaseChannel):
    """Email notification channel using async SMTP.

    While SMTP is not fully configured every send is reported as
    SKIPPED, so the rest of the system keeps working without mail.
    """

    def __init__(self, settings: SMTPSettings) -> None:
        """Initialize the email channel.

        Args:
            settings: SMTP configuration.
        """
        super().__init__()
        self._settings = settings
        self._warned = False

    @property
    def channel_type(self) -> ChannelType:
        """Return the channel type."""
        return ChannelType.EMAIL

    @property
    def is_configured(self) -> bool:
        """Check whether SMTP delivery is possible."""
        return self._settings.is_configured

    async def send(self, payload: NotificationPayload) -> ChannelResult:
        """Send an email via SMTP.

        Args:
            payload: The notification payload.

        Returns:
            ChannelResult with delivery status. SMTP errors are logged and
            reported as FAILED, never raised.
        """
        if not self.is_configured:
            if not self._warned:
                self.logger.warning(
                    "Email notifications disabled: SMTP_HOST, SMTP_USERNAME, "
                    "SMTP_PASSWORD, or SMTP_FROM_EMAIL not set"
                )
                self._warned = True
            return self.create_skipped_result("SMTP configuration incomplete")

        if not payload.recipient_email:
            return self.create_skipped_result("No recipient email address")

        message = self.build_message(payload)
        password = self._settings.password

        try:
            await aiosmtplib.send(
                message,
                hostname=self._settings.host,
                port=self._settings.port,
                username=self._settings.username,
                password=password.get_secret_value() if password else None,
                start_tls=self._settings.use_tls,
                timeout=self._settings.timeout,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            self.logger.error(
                "Failed to send %s email to %s: %s",
                payload.notification_type,
                payload.recipient_email,
                str(e),
                exc_info=True,
            )
            return self.create_failure_result(
                f"SMTP error: {str(e)}",
                metadata={"recipient": payload.recipient_email},
            )

        self.logger.info(
            "Email sent to %s: %s",
            payload.recipient_email,
            payload.title,
        )
        return self.create_success_result(
            message_id=message["Message-ID"],
            metadata={"recipient": payload.recipient_email},
        )

    def build_message(self, payload: NotificationPayload) -> EmailMessage:
        """Build the MIME message.

        Messages come from the configured no-reply address and are marked
        as automatically generated (RFC 3834).

        Args:
            payload: Notification payload.

        Returns:
            EmailMessage ready to send.
        """
        message = EmailMessage()
        message["From"] = formataddr((self._settings.from_name, self._settings.from_email or ""))
        message["To"] = formataddr((payload.recipient_name or "", payload.recipient_email))
        message["Subject"] = payload.title
        message["Message-ID"] = make_msgid()
        message["Auto-Submitted"] = "auto-generated"
        message.set_content(payload.message)
        return message
