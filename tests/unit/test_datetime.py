# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for epoch-second time helpers."""

from src.utils.datetime import (
    days_left,
    epoch_now,
    minutes_left,
    round_half_away,
)

DAY = 86400
T0 = 1736154000


class TestRounding:
    """Tests for round_half_away."""

    def test_halves_round_away_from_zero(self):
        """Test the difference from banker's rounding."""
        assert round_half_away(2.5) == 3
        assert round_half_away(3.5) == 4
        assert round_half_away(-2.5) == -3

    def test_regular_values(self):
        """Test values that are not halves."""
        assert round_half_away(2.4) == 2
        assert round_half_away(2.6) == 3
        assert round_half_away(0.0) == 0


class TestTimeLeft:
    """Tests for days_left and minutes_left."""

    def test_days_left_worked_example(self):
        """Test 14 day window checked after 7 days."""
        assert days_left(T0 + 14 * DAY, T0 + 7 * DAY) == 7

    def test_days_left_after_expiry(self):
        """Test negative days once the window has passed."""
        assert days_left(T0, T0 + 3 * DAY) == -3

    def test_minutes_left(self):
        """Test minute rounding."""
        assert minutes_left(T0 + 90, T0) == 2
        assert minutes_left(T0 + 89, T0) == 1


class TestConversions:
    """Tests for epoch conversions."""

    def test_epoch_now_is_int(self):
        """Test that epoch_now returns whole seconds."""
        assert isinstance(epoch_now(), int)

