# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Lifecycle email delivery.

EnrolmentMailer resolves the people and course an email is about,
renders the template of the email kind and hands the result to the
email channel. Delivery problems never raise: the channel reports
them in its ChannelResult and the tracking state stays as it is.
"""

import logging
from typing import Callable

from src.domains.temporary_enrolment.config import EnrolmentConfig
from src.domains.temporary_enrolment.templates import (
    EmailKind,
    TemplateContext,
    TemplateRenderer,
)
from src.infrastructure.notifications.channels.base import (
    BaseChannel,
    ChannelResult,
    DeliveryStatus,
    NotificationPayload,
)
from src.infrastructure.platform.base import PlatformGateway, PlatformUserInfo
from src.utils.datetime import epoch_now

logger = logging.getLogger(__name__)


class EnrolmentMailer:
    """Sends the emails of the temporary enrolment lifecycle.

    Attributes:
        gateway: Platform gateway for user and course lookups.
        channel: Channel the rendered emails are sent through.
        renderer: Template renderer.
    """

    def __init__(
        self,
        gateway: PlatformGateway,
        channel: BaseChannel,
        renderer: TemplateRenderer | None = None,
        clock: Callable[[], int] = epoch_now,
    ) -> None:
        """Initialize the mailer.

        Args:
            gateway: Platform gateway for user and course lookups.
            channel: Channel the rendered emails are sent through.
            renderer: Template renderer, a default one when omitted.
            clock: Returns the current time in epoch seconds.
        """
        self.gateway = gateway
        self.channel = channel
        self.renderer = renderer or TemplateRenderer()
        self._clock = clock

    async def send(
        self,
        kind: EmailKind,
        config: EnrolmentConfig,
        *,
        recipient_id: int,
        subject_id: int,
        assigner_id: int,
        course_id: int | None,
        time_end: int | None = None,
    ) -> ChannelResult | None:
        """Render and send one lifecycle email.

        Args:
            kind: Email kind; selects the template and switch.
            config: Active configuration.
            recipient_id: User the email goes to.
            subject_id: User the temporary enrolment belongs to.
            assigner_id: User who granted (or revoked) the role.
            course_id: Course of the role assignment.
            time_end: End of the temporary window, if tracked.

        Returns:
            The channel result, or None when the email kind is disabled
            or the recipient cannot be resolved.
        """
        if not config.email_enabled(kind):
            logger.debug("Email %s disabled, not sending", kind.value)
            return None

        recipient = await self.gateway.get_user(recipient_id)
        if recipient is None or not recipient.email:
            logger.warning(
                "Skipping %s email: recipient %s not found or has no email address",
                kind.value,
                recipient_id,
            )
            return None

        context = TemplateContext(
            now=self._clock(),
            assigner=await self._lookup_user(assigner_id, recipient),
            subject=await self._lookup_user(subject_id, recipient),
            course=await self.gateway.get_course(course_id) if course_id is not None else None,
            time_end=time_end,
        )
        rendered = self.renderer.render(config.template_for(kind), context)

        payload = NotificationPayload(
            notification_type=kind.value,
            title=rendered.subject,
            message=rendered.body,
            recipient_id=recipient.id,
            recipient_email=recipient.email,
            recipient_name=recipient.full_name,
            data={
                "subject_id": subject_id,
                "assigner_id": assigner_id,
                "course_id": course_id,
            },
        )
        result = await self.channel.send(payload)

        if result.status == DeliveryStatus.FAILED:
            logger.warning(
                "Email %s to user %s failed: %s",
                kind.value,
                recipient.id,
                result.error_message,
            )
        else:
            logger.debug("Email %s to user %s: %s", kind.value, recipient.id, result.status.value)

        return result

    async def _lookup_user(
        self,
        user_id: int,
        known: PlatformUserInfo,
    ) -> PlatformUserInfo | None:
        if user_id == known.id:
            return known
        return await self.gateway.get_user(user_id)
