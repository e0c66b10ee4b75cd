# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""DateTime utilities for the temporary enrolments service.

The host platform stores every timestamp as Unix epoch seconds, and so
does the tracking table. Python code works with integers at the
boundaries and converts to timezone-aware datetimes only for display.

Usage:
------
    from src.utils.datetime import epoch_now, days_left

    now = epoch_now()
    remaining = days_left(record.time_end, now)
"""

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

DAY_SECONDS = 86400
MINUTE_SECONDS = 60


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Timezone-aware datetime representing current UTC time.
    """
    return datetime.now(timezone.utc)


def epoch_now() -> int:
    """Get current time as whole Unix epoch seconds.

    Returns:
        Seconds since the epoch, truncated.
    """
    return int(utc_now().timestamp())



def round_half_away(value: float) -> int:
    """Round to the nearest integer, halves away from zero.

    The built-in round() uses banker's rounding (round(2.5) == 2),
    which would make "days left" in emails disagree with the platform.

    Args:
        value: Number to round.

    Returns:
        Rounded integer.

    Example:
        >>> round_half_away(2.5)
        3
        >>> round_half_away(-2.5)
        -3
    """
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def days_left(time_end: int, now: int) -> int:
    """Whole days remaining until time_end, as shown in emails.

    Args:
        time_end: End of the window in epoch seconds.
        now: Current time in epoch seconds.

    Returns:
        round((time_end - now) / 86400), negative once expired.
    """
    return round_half_away((time_end - now) / DAY_SECONDS)


def minutes_left(time_end: int, now: int) -> int:
    """Whole minutes remaining until time_end.

    Args:
        time_end: End of the window in epoch seconds.
        now: Current time in epoch seconds.

    Returns:
        round((time_end - now) / 60).
    """
    return round_half_away((time_end - now) / MINUTE_SECONDS)

