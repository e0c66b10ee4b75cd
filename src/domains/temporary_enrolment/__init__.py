# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Temporary enrolment domain package.

This package provides the temporary enrolment lifecycle:
- Tracking of marker role assignments and their expiration clock
- Upgrade to permanent enrolment when another role is granted
- Expiry, reminder, backfill and duration reconciliation sweeps
- Lifecycle emails rendered from configurable templates
"""

from src.domains.temporary_enrolment.config import EnrolmentConfig, load_enrolment_config
from src.domains.temporary_enrolment.engine import (
    LifecycleAction,
    LifecycleEngine,
    LifecycleResult,
)
from src.domains.temporary_enrolment.exceptions import (
    InvalidConfigurationError,
    TemporaryEnrolmentError,
    UnknownSweepError,
)
from src.domains.temporary_enrolment.mailer import EnrolmentMailer
from src.domains.temporary_enrolment.service import (
    TemporaryEnrolmentService,
    build_service,
    build_sql_service,
    enrolment_unit_of_work,
)
from src.domains.temporary_enrolment.store import SQLTrackingStore, TrackingStore
from src.domains.temporary_enrolment.sweeps import SweepJobs, SweepResult
from src.domains.temporary_enrolment.templates import (
    DEFAULT_TEMPLATES,
    EmailKind,
    RenderedEmail,
    TemplateContext,
    TemplateRenderer,
)

__all__ = [
    "DEFAULT_TEMPLATES",
    "EmailKind",
    "EnrolmentConfig",
    "EnrolmentMailer",
    "InvalidConfigurationError",
    "LifecycleAction",
    "LifecycleEngine",
    "LifecycleResult",
    "RenderedEmail",
    "SQLTrackingStore",
    "SweepJobs",
    "SweepResult",
    "TemplateContext",
    "TemplateRenderer",
    "TemporaryEnrolmentError",
    "TemporaryEnrolmentService",
    "TrackingStore",
    "UnknownSweepError",
    "build_service",
    "build_sql_service",
    "enrolment_unit_of_work",
    "load_enrolment_config",
]
