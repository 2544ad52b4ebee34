"""
Race Timing Calculations
========================
Elapsed and remaining time queries. All results are in minutes and are
clamped so that clock skew never produces a negative duration.
"""

from datetime import datetime, timedelta
from typing import Optional


def minutes_between(start: datetime, end: datetime) -> float:
    """Signed minutes from `start` to `end`."""
    return (end - start).total_seconds() / 60


def add_minutes(moment: datetime, minutes: float) -> datetime:
    return moment + timedelta(minutes=minutes)


def elapsed_time(
    start_time: Optional[datetime],
    current_time: datetime,
    max_elapsed: Optional[float] = None
) -> float:
    """
    Minutes elapsed since `start_time`.

    Args:
        start_time: Start of the interval (None means not started)
        current_time: "Now"
        max_elapsed: Optional upper bound, e.g. a stint's planned length

    Returns:
        Elapsed minutes, never negative
    """
    if start_time is None:
        return 0.0
    elapsed = max(0.0, minutes_between(start_time, current_time))
    if max_elapsed is not None:
        return min(elapsed, max(0.0, max_elapsed))
    return elapsed


def remaining_time(
    start_time: Optional[datetime],
    planned_length: float,
    current_time: datetime
) -> float:
    """Minutes left in a stint of `planned_length` started at `start_time`."""
    if start_time is None:
        return max(0.0, planned_length)
    return max(0.0, planned_length - elapsed_time(start_time, current_time))


def remaining_race_time(
    race_start_time: Optional[datetime],
    race_length_hours: float,
    current_time: datetime
) -> float:
    """Minutes left in the race; the full length if it has not started."""
    total = race_length_hours * 60
    if race_start_time is None:
        return total
    return max(0.0, total - elapsed_time(race_start_time, current_time))
