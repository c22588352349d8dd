"""Time-of-day helpers; the optimizer works in minutes since midnight."""

from __future__ import annotations

from datetime import time

MINUTES_PER_DAY = 24 * 60


def time_to_minutes(value: time) -> float:
    return value.hour * 60 + value.minute + value.second / 60.0


def format_minutes(minutes: float) -> str:
    """Render minutes since midnight as ``HH:MM``.

    Times past midnight keep counting (``24:15``) so an overflowing route
    never reads as an early-morning stop.
    """

    total = int(round(minutes))
    return f"{total // 60:02d}:{total % 60:02d}"


def minutes_to_time(minutes: float) -> time:
    total = int(round(minutes))
    if not 0 <= total < MINUTES_PER_DAY:
        raise ValueError(f"{minutes:.0f} minutes since midnight is not a time of day")
    return time(total // 60, total % 60)
