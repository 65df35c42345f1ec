"""Time and range helpers shared by the scheduler and the priority engine."""

from __future__ import annotations

from datetime import datetime

SECONDS_PER_DAY = 86400.0
SECONDS_PER_HOUR = 3600.0


def _align(start: datetime, end: datetime) -> tuple[datetime, datetime]:
    # Mixed naive/aware inputs compare as naive wall-clock times
    if (start.tzinfo is None) != (end.tzinfo is None):
        start = start.replace(tzinfo=None)
        end = end.replace(tzinfo=None)
    return start, end


def days_between(start: datetime, end: datetime) -> float:
    """Fractional days from start to end (negative when end is earlier)."""
    start, end = _align(start, end)
    return (end - start).total_seconds() / SECONDS_PER_DAY


def hours_between(start: datetime, end: datetime) -> float:
    """Fractional hours from start to end (negative when end is earlier)."""
    start, end = _align(start, end)
    return (end - start).total_seconds() / SECONDS_PER_HOUR


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))
