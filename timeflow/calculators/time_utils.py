"""Time calculation and formatting utilities.

This module provides low-level helpers for:
- Converting between seconds and decimal hours
- Formatting elapsed time for timer displays (HH:MM:SS, HH:MM, decimal,
  compact "1h 5m")
- Parsing "HH:MM[:SS]" strings back to seconds

Formatting works on whole seconds; the optional millisecond suffix is a
display detail independent of the engine's second-level accuracy.
"""

import datetime as dt
import math
from decimal import Decimal

from timeflow.models.base import HOURS_QUANTUM, quantize

ELAPSED_FORMATS = ("HH:MM:SS", "HH:MM", "decimal", "compact")


def _split_seconds(seconds: float):
    total = int(math.floor(seconds))
    return total // 3600, (total % 3600) // 60, total % 60


def seconds_to_decimal_hours(seconds: float) -> Decimal:
    """Convert seconds to decimal hours with six decimal places.

    Args:
        seconds: Duration in seconds

    Returns:
        Decimal hours (ROUND_HALF_UP)

    Example:
        >>> seconds_to_decimal_hours(5400)
        Decimal('1.500000')
        >>> seconds_to_decimal_hours(1)
        Decimal('0.000278')
    """
    hours = Decimal(str(seconds)) / Decimal("3600")
    return quantize(hours, HOURS_QUANTUM)


def decimal_hours_to_seconds(hours: Decimal) -> float:
    """Convert decimal hours back to seconds.

    Example:
        >>> decimal_hours_to_seconds(Decimal("1.5"))
        5400.0
    """
    return float(Decimal(hours) * Decimal("3600"))


def calculate_duration_hours(start: dt.datetime, end: dt.datetime) -> Decimal:
    """Calculate decimal hours between two timestamps.

    Args:
        start: Start timestamp
        end: End timestamp

    Returns:
        Decimal hours (negative if end precedes start)
    """
    return seconds_to_decimal_hours((end - start).total_seconds())


def format_elapsed(
    seconds: float, fmt: str = "HH:MM:SS", show_milliseconds: bool = False
) -> str:
    """Format elapsed seconds for display.

    Args:
        seconds: Elapsed seconds; negative values are treated as zero
        fmt: One of "HH:MM:SS", "HH:MM", "decimal" or "compact"
        show_milliseconds: Append ".mmm" (HH:MM:SS only)

    Returns:
        Formatted string

    Raises:
        ValueError: If the format is unknown

    Example:
        >>> format_elapsed(3665)
        '01:01:05'
        >>> format_elapsed(3665, "HH:MM")
        '01:01'
        >>> format_elapsed(5400, "decimal")
        '1.50'
        >>> format_elapsed(3900, "compact")
        '1h 5m'
    """
    if fmt not in ELAPSED_FORMATS:
        raise ValueError(
            f"Unknown elapsed format: {fmt!r}. "
            f"Must be one of {', '.join(ELAPSED_FORMATS)}"
        )

    safe_seconds = max(0.0, float(seconds))
    hours, minutes, secs = _split_seconds(safe_seconds)

    if fmt == "HH:MM:SS":
        result = f"{hours:02d}:{minutes:02d}:{secs:02d}"
        if show_milliseconds:
            millis = int((safe_seconds - math.floor(safe_seconds)) * 1000)
            result += f".{millis:03d}"
        return result

    if fmt == "HH:MM":
        return f"{hours:02d}:{minutes:02d}"

    if fmt == "decimal":
        return f"{safe_seconds / 3600:.2f}"

    return format_compact(safe_seconds)


def format_compact(seconds: float) -> str:
    """Compact human-readable duration, e.g. "1h 5m" or "4m 30s".

    Seconds are only shown below one hour.

    Example:
        >>> format_compact(0)
        '0s'
        >>> format_compact(270)
        '4m 30s'
        >>> format_compact(7200)
        '2h'
    """
    hours, minutes, secs = _split_seconds(max(0.0, seconds))
    parts = []
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if secs and not hours:
        parts.append(f"{secs}s")
    return " ".join(parts) if parts else "0s"


def format_duration_human(seconds: float) -> str:
    """Long-form duration, e.g. "1 hour, 5 minutes, 3 seconds".

    Example:
        >>> format_duration_human(3901)
        '1 hour, 5 minutes, 1 second'
        >>> format_duration_human(0)
        '0 seconds'
    """
    hours, minutes, secs = _split_seconds(max(0.0, seconds))
    parts = []
    for value, unit in ((hours, "hour"), (minutes, "minute"), (secs, "second")):
        if value:
            parts.append(f"{value} {unit}{'' if value == 1 else 's'}")
    return ", ".join(parts) if parts else "0 seconds"


def parse_time_string(value: str) -> int:
    """Parse "HH:MM" or "HH:MM:SS" into seconds.

    Args:
        value: Time string

    Returns:
        Total seconds

    Raises:
        ValueError: If the string is not in one of the accepted formats

    Example:
        >>> parse_time_string("01:30")
        5400
        >>> parse_time_string("00:01:05")
        65
    """
    parts = value.strip().split(":")
    if len(parts) not in (2, 3) or not all(p.isdigit() for p in parts):
        raise ValueError(f"Invalid time format {value!r}. Expected HH:MM or HH:MM:SS")

    numbers = [int(p) for p in parts]
    if any(n >= 60 for n in numbers[1:]):
        raise ValueError(f"Minutes and seconds must be below 60: {value!r}")

    hours, minutes = numbers[0], numbers[1]
    secs = numbers[2] if len(numbers) == 3 else 0
    return hours * 3600 + minutes * 60 + secs
