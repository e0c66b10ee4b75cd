# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Wiring of the temporary enrolment components.

A TemporaryEnrolmentService bundles the engine, sweeps and their
collaborators for one invocation. The API builds one per request around
the request session; background actors use enrolment_unit_of_work(),
which also owns the session and commits it when the block succeeds.

Example:
    async with enrolment_unit_of_work(get_worker_db_manager(), settings) as service:
        result = await service.sweeps.expire()
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, AsyncIterator, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.temporary_enrolment.config import EnrolmentConfig, load_enrolment_config
from src.domains.temporary_enrolment.engine import LifecycleEngine
from src.domains.temporary_enrolment.mailer import EnrolmentMailer
from src.domains.temporary_enrolment.store import SQLTrackingStore, TrackingStore
from src.domains.temporary_enrolment.sweeps import SweepJobs
from src.domains.temporary_enrolment.templates import TemplateRenderer
from src.infrastructure.notifications.channels.base import BaseChannel
from src.infrastructure.notifications.channels.email import EmailChannel
from src.infrastructure.platform.base import PlatformGateway
from src.infrastructure.platform.moodle import MoodleGateway
from src.utils.datetime import epoch_now

if TYPE_CHECKING:
    from src.core.config.settings import Settings
    from src.infrastructure.database.connection import DatabaseManager


@dataclass
class TemporaryEnrolmentService:
    """Components of one invocation, sharing a configuration snapshot."""

    config: EnrolmentConfig
    store: TrackingStore
    gateway: PlatformGateway
    mailer: EnrolmentMailer
    engine: LifecycleEngine
    sweeps: SweepJobs


def build_service(
    store: TrackingStore,
    gateway: PlatformGateway,
    channel: BaseChannel,
    config: EnrolmentConfig,
    clock: Callable[[], int] = epoch_now,
) -> TemporaryEnrolmentService:
    """Assemble the engine and sweeps around a store and gateway.

    Args:
        store: Tracking record storage.
        gateway: Host platform access.
        channel: Email channel.
        config: Configuration snapshot.
        clock: Returns the current time in epoch seconds.

    Returns:
        The assembled service.
    """
    mailer = EnrolmentMailer(gateway, channel, TemplateRenderer(), clock=clock)
    engine = LifecycleEngine(store, gateway, mailer, config, clock=clock)
    sweeps = SweepJobs(store, gateway, engine, mailer, config, clock=clock)
    return TemporaryEnrolmentService(
        config=config,
        store=store,
        gateway=gateway,
        mailer=mailer,
        engine=engine,
        sweeps=sweeps,
    )


def build_sql_service(
    session: AsyncSession,
    settings: "Settings",
    channel: BaseChannel | None = None,
) -> TemporaryEnrolmentService:
    """Assemble a service over the platform database.

    Args:
        session: Session of the current unit of work.
        settings: Application settings.
        channel: Email channel, an SMTP channel from settings when omitted.

    Returns:
        The assembled service.

    Raises:
        InvalidConfigurationError: If the enrolment settings are invalid.
    """
    return build_service(
        store=SQLTrackingStore(session),
        gateway=MoodleGateway(session),
        channel=channel or EmailChannel(settings.smtp),
        config=load_enrolment_config(settings.enrolment),
    )


@asynccontextmanager
async def enrolment_unit_of_work(
    db: "DatabaseManager",
    settings: "Settings",
    channel: BaseChannel | None = None,
) -> AsyncIterator[TemporaryEnrolmentService]:
    """Open a session and yield a service bound to it.

    The session commits when the block exits normally and rolls back
    when it raises.

    Args:
        db: Database manager to open the session from.
        settings: Application settings.
        channel: Email channel, an SMTP channel from settings when omitted.

    Yields:
        TemporaryEnrolmentService for this unit of work.
    """
    async with db.session() as session:
        yield build_sql_service(session, settings, channel)
