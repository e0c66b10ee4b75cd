# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Utility functions and helpers for the temporary enrolments service.

This package contains cross-cutting utilities:
- logging: Structured logging with structlog
- datetime: Epoch-second time arithmetic
"""

from src.utils.datetime import (
    DAY_SECONDS,
    days_left,
    epoch_now,
    minutes_left,
    round_half_away,
    utc_now,
)
from src.utils.logging import bind_context, clear_context, setup_logging

__all__ = [
    # Logging
    "setup_logging",
    "bind_context",
    "clear_context",
    # Datetime
    "DAY_SECONDS",
    "utc_now",
    "epoch_now",
    "round_half_away",
    "days_left",
    "minutes_left",
]
