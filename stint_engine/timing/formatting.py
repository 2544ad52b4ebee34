"""Time formatting helpers for schedule tables and logs."""

from datetime import datetime
from typing import Optional


def format_time(moment: Optional[datetime]) -> str:
    """Clock time as HH:MM:SS."""
    if moment is None:
        return '--:--:--'
    return moment.strftime('%H:%M:%S')


def format_duration_hms(minutes: Optional[float]) -> str:
    """Minutes as HH:MM:SS; zero for missing or non-positive durations."""
    if minutes is None or minutes != minutes or minutes <= 0:  # NaN check
        return '00:00:00'

    total_seconds = int(minutes * 60)
    hours, rest = divmod(total_seconds, 3600)
    mins, secs = divmod(rest, 60)
    return f"{hours:02d}:{mins:02d}:{secs:02d}"


# Race clock uses the same layout
format_race_time = format_duration_hms


def format_duration(minutes: float) -> str:
    """Whole minutes as H:MM, keeping the sign."""
    sign = '-' if minutes < 0 else ''
    total = int(abs(minutes))
    return f"{sign}{total // 60}:{total % 60:02d}"


def parse_time_to_minutes(text: str) -> float:
    """
    Parse 'HH:MM:SS' or 'MM:SS' into minutes.

    Unparseable parts count as zero, as does any other layout.
    """
    parts = []
    for part in text.strip().split(':'):
        try:
            parts.append(int(part))
        except ValueError:
            parts.append(0)

    if len(parts) == 2:
        return parts[0] + parts[1] / 60
    if len(parts) == 3:
        return parts[0] * 60 + parts[1] + parts[2] / 60
    return 0.0
