"""Unit tests for time utility functions.

This module tests the conversion and formatting helpers used by the timer
display and by every hours calculation.
"""

import datetime as dt
from decimal import Decimal

import pytest

from timeflow.calculators.time_utils import (
    calculate_duration_hours,
    decimal_hours_to_seconds,
    format_compact,
    format_duration_human,
    format_elapsed,
    parse_time_string,
    seconds_to_decimal_hours,
)


class TestSecondsToDecimalHours:
    """Test converting seconds to six-place decimal hours."""

    def test_whole_hours(self):
        assert seconds_to_decimal_hours(7200) == Decimal("2.000000")

    def test_ninety_minutes(self):
        """Test that 5400 seconds is exactly 1.5 hours."""
        assert seconds_to_decimal_hours(5400) == Decimal("1.500000")

    def test_one_second_keeps_precision(self):
        """Test that a single second is not rounded away."""
        assert seconds_to_decimal_hours(1) == Decimal("0.000278")

    def test_half_up_rounding(self):
        # 0.0018 s = 0.0000005 h, rounded half-up
        assert seconds_to_decimal_hours(0.0018) == Decimal("0.000001")

    def test_zero(self):
        assert seconds_to_decimal_hours(0) == Decimal("0.000000")

    def test_round_trip_to_seconds(self):
        assert decimal_hours_to_seconds(Decimal("1.5")) == 5400.0


class TestCalculateDurationHours:
    """Test hours between two timestamps."""

    def test_same_day(self):
        start = dt.datetime(2024, 3, 4, 9, 0, tzinfo=dt.timezone.utc)
        end = dt.datetime(2024, 3, 4, 17, 30, tzinfo=dt.timezone.utc)
        assert calculate_duration_hours(start, end) == Decimal("8.500000")

    def test_across_midnight(self):
        start = dt.datetime(2024, 3, 4, 22, 0, tzinfo=dt.timezone.utc)
        end = dt.datetime(2024, 3, 5, 2, 0, tzinfo=dt.timezone.utc)
        assert calculate_duration_hours(start, end) == Decimal("4.000000")

    def test_reversed_is_negative(self):
        start = dt.datetime(2024, 3, 4, 10, 0, tzinfo=dt.timezone.utc)
        end = dt.datetime(2024, 3, 4, 9, 0, tzinfo=dt.timezone.utc)
        assert calculate_duration_hours(start, end) == Decimal("-1.000000")


class TestFormatElapsed:
    """Test the timer display formats."""

    @pytest.mark.parametrize(
        "seconds,fmt,expected",
        [
            (0, "HH:MM:SS", "00:00:00"),
            (3665, "HH:MM:SS", "01:01:05"),
            (3665, "HH:MM", "01:01"),
            (5400, "decimal", "1.50"),
            (3900, "compact", "1h 5m"),
            (45, "compact", "45s"),
            (90061, "HH:MM:SS", "25:01:01"),
        ],
    )
    def test_formats(self, seconds, fmt, expected):
        assert format_elapsed(seconds, fmt) == expected

    def test_fractional_seconds_are_truncated(self):
        """Test that 59.9 seconds still shows 59."""
        assert format_elapsed(59.9) == "00:00:59"

    def test_milliseconds(self):
        assert format_elapsed(1.5, show_milliseconds=True) == "00:00:01.500"

    def test_milliseconds_ignored_outside_full_format(self):
        assert format_elapsed(1.5, "HH:MM", show_milliseconds=True) == "00:00"

    def test_negative_is_zero(self):
        assert format_elapsed(-10) == "00:00:00"

    def test_unknown_format(self):
        with pytest.raises(ValueError, match="Unknown elapsed format"):
            format_elapsed(10, "MM:SS")


class TestHumanFormats:
    """Test compact and long-form duration strings."""

    def test_compact_zero(self):
        assert format_compact(0) == "0s"

    def test_compact_drops_seconds_above_an_hour(self):
        assert format_compact(3601) == "1h"

    def test_compact_minutes_and_seconds(self):
        assert format_compact(270) == "4m 30s"

    def test_human_plural(self):
        assert format_duration_human(7322) == "2 hours, 2 minutes, 2 seconds"

    def test_human_singular(self):
        assert format_duration_human(3661) == "1 hour, 1 minute, 1 second"

    def test_human_zero(self):
        assert format_duration_human(0) == "0 seconds"


class TestParseTimeString:
    """Test parsing HH:MM[:SS] strings."""

    def test_hours_and_minutes(self):
        assert parse_time_string("01:30") == 5400

    def test_with_seconds(self):
        assert parse_time_string("00:01:05") == 65

    def test_whitespace_is_stripped(self):
        assert parse_time_string(" 09:00 ") == 32400

    @pytest.mark.parametrize("value", ["9", "09:60", "ab:cd", "1:2:3:4", "-1:00"])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_time_string(value)
