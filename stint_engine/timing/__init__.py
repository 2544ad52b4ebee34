"""
Timing Module
=============
Race clock, time calculations and formatting.
"""

from .race_clock import RaceClock, ClockSnapshot
from .calculations import elapsed_time, remaining_time, remaining_race_time
from .formatting import (
    format_time,
    format_duration,
    format_duration_hms,
    format_race_time,
    parse_time_to_minutes
)

__all__ = [
    'RaceClock',
    'ClockSnapshot',
    'elapsed_time',
    'remaining_time',
    'remaining_race_time',
    'format_time',
    'format_duration',
    'format_duration_hms',
    'format_race_time',
    'parse_time_to_minutes'
]
