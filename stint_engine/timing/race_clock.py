"""
Race Clock
==========
Start / pause / resume / stop semantics for the race, plus the
Full Course Yellow flag.

The clock never reads the wall clock itself: "now" is handed in by the
host once per tick (1 Hz while running and not paused).
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from .calculations import elapsed_time

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClockSnapshot:
    """Plain-data view of the clock, for persistence."""
    race_start_time: Optional[datetime]
    started: bool
    paused: bool
    paused_at: Optional[datetime]
    fcy_active: bool
    current_time: Optional[datetime]


class RaceClock:
    """
    Race-wide clock.

    The origin (`race_start_time`) is shifted forward on resume by the
    paused duration, so elapsed race time is continuous across a pause.
    """

    def __init__(self):
        self.race_start_time: Optional[datetime] = None
        self.started = False
        self.paused = False
        self.paused_at: Optional[datetime] = None
        self.fcy_active = False
        self.current_time: Optional[datetime] = None

    @property
    def is_running(self) -> bool:
        return self.started and not self.paused

    def start(self, now: datetime) -> datetime:
        """Start the race at `now` and return the origin."""
        self.race_start_time = now
        self.started = True
        self.paused = False
        self.paused_at = None
        self.current_time = now
        logger.info(f"Race started at {now.isoformat()}")
        return now

    def pause(self, now: datetime) -> None:
        if not self.started or self.paused:
            return
        self.paused = True
        self.paused_at = now
        self.current_time = now
        logger.info(f"Race paused at {now.isoformat()}")

    def resume(self, now: datetime) -> timedelta:
        """
        Resume a paused race.

        Returns:
            The paused duration the origin was shifted by (zero if the
            clock was not paused)
        """
        if not self.started or not self.paused:
            return timedelta(0)

        pause_duration = max(timedelta(0), now - self.paused_at)
        self.race_start_time = self.race_start_time + pause_duration
        self.paused = False
        self.paused_at = None
        self.current_time = now
        logger.info(f"Race resumed after {pause_duration.total_seconds():.0f}s pause")
        return pause_duration

    def toggle_pause(self, now: datetime) -> timedelta:
        """Pause if running, resume if paused. Returns the resumed pause duration."""
        if self.paused:
            return self.resume(now)
        self.pause(now)
        return timedelta(0)

    def stop(self) -> None:
        """Stop the race; clears the origin and the FCY flag."""
        self.race_start_time = None
        self.started = False
        self.paused = False
        self.paused_at = None
        self.fcy_active = False
        logger.info("Race stopped")

    def toggle_fcy(self) -> bool:
        self.fcy_active = not self.fcy_active
        logger.info(f"FCY {'declared' if self.fcy_active else 'cleared'}")
        return self.fcy_active

    def tick(self, now: datetime) -> bool:
        """Record `now`; ignored unless the race is running. Returns True if recorded."""
        if not self.is_running:
            return False
        self.current_time = now
        return True

    def update_race_start_time(self, race_start_time: datetime) -> None:
        """Manually correct the race origin."""
        self.race_start_time = race_start_time

    def now(self) -> Optional[datetime]:
        """Clock's notion of now; frozen at the pause instant while paused."""
        if self.paused:
            return self.paused_at
        return self.current_time

    def elapsed_minutes(self, now: Optional[datetime] = None) -> float:
        if self.paused:
            now = self.paused_at
        elif now is None:
            now = self.current_time
        if now is None:
            return 0.0
        return elapsed_time(self.race_start_time, now)

    def snapshot(self) -> ClockSnapshot:
        return ClockSnapshot(
            race_start_time=self.race_start_time,
            started=self.started,
            paused=self.paused,
            paused_at=self.paused_at,
            fcy_active=self.fcy_active,
            current_time=self.current_time,
        )

    @classmethod
    def from_snapshot(cls, snapshot: ClockSnapshot) -> "RaceClock":
        clock = cls()
        clock.race_start_time = snapshot.race_start_time
        clock.started = snapshot.started
        clock.paused = snapshot.paused
        clock.paused_at = snapshot.paused_at
        clock.fcy_active = snapshot.fcy_active
        clock.current_time = snapshot.current_time
        return clock

