"""
Pit Stop Executor
=================
Applies a pit stop to a team's stint list and returns the next committed
team state.

Three paths:
- scheduled / FCY stop with fuel: the next planned stint becomes active
- scheduled / FCY stop without fuel: the stint is closed, nothing activated
- unscheduled stop: a new active stint is inserted and the rest renumbered

Every future timestamp is offset by the race's minimum pit time.
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Optional

from ..exceptions import InvariantViolation
from ..race.types import PitReason, RaceConfig, Stint, Team, TeamState
from ..timing.calculations import elapsed_time

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PitStopEvent:
    """A pit stop as entered by the strategist."""
    team_index: int
    pit_reason: PitReason
    fuel_taken: bool
    driver_changed: bool
    selected_driver_index: int
    now: datetime


class PitStopExecutor:
    """Turns a pit stop event into a new team state."""

    def execute(
        self,
        team_state: TeamState,
        team: Team,
        race_config: RaceConfig,
        event: PitStopEvent
    ) -> TeamState:
        """
        Execute a pit stop.

        Args:
            team_state: Committed team state before the stop
            team: Team configuration (driver names)
            race_config: Race parameters (fuel range, minimum pit time)
            event: The pit stop

        Returns:
            New team state; the input is not modified

        Raises:
            InvariantViolation: If the team has no active stint
        """
        active_index = team_state.active_index()
        if active_index is None:
            raise InvariantViolation(
                f"Team {team.number or event.team_index}: no active stint to pit from",
                team_index=event.team_index,
            )

        now = event.now
        rejoin = now + race_config.pit_time
        active = team_state.stints[active_index]
        elapsed = elapsed_time(team_state.stint_start_time, now)

        previous_driver = team.driver_name(team_state.current_driver)
        next_driver = (team.driver_name(event.selected_driver_index)
                       if event.driver_changed else previous_driver)

        pit_reason = event.pit_reason
        if pit_reason is PitReason.UNSCHEDULED:
            state = self._unscheduled_stop(
                team_state, active_index, race_config, event, rejoin, elapsed, previous_driver, next_driver
            )
        else:
            state = self._scheduled_stop(
                team_state, active_index, race_config, event, rejoin, elapsed, previous_driver, next_driver
            )

        logger.info(
            f"Team {team.number}: {pit_reason.value} stop after {elapsed:.1f} min on stint "
            f"{active.stint_number} (fuel: {event.fuel_taken}, driver change: {event.driver_changed})"
        )

        return replace(
            state,
            last_pit_time=now,
            current_driver=(event.selected_driver_index if event.driver_changed
                            else team_state.current_driver),
        )

    def _complete_active(
        self,
        active: Stint,
        event: PitStopEvent,
        elapsed: float,
        driver: str,
        pit_reason: PitReason
    ) -> Stint:
        return active.complete(
            finish=event.now,
            calculated_length=elapsed,
            fuel_taken=event.fuel_taken,
            pit_reason=pit_reason,
            driver_changed=event.driver_changed,
            driver=driver,
        )

    def _scheduled_stop(
        self,
        team_state: TeamState,
        active_index: int,
        race_config: RaceConfig,
        event: PitStopEvent,
        rejoin: datetime,
        elapsed: float,
        previous_driver: str,
        next_driver: str
    ) -> TeamState:
        stints = list(team_state.stints)
        stints[active_index] = self._complete_active(
            stints[active_index], event, elapsed, previous_driver, event.pit_reason
        )

        if not event.fuel_taken:
            # Same fuel: stint clock and pointer are left for the caller
            return team_state.with_stints(stints)

        next_index = self._next_planned_index(team_state, active_index)
        if next_index is None:
            logger.warning(
                f"No planned stint after stint {stints[active_index].stint_number}; "
                f"team has finished its plan"
            )
            return replace(team_state, stint_start_time=None, stints=tuple(stints))

        stints[next_index] = stints[next_index].activate(
            rejoin, next_driver, planned_length=race_config.fuel_range_minutes
        )
        return replace(
            team_state,
            current_stint=team_state.current_stint + 1,
            stint_start_time=rejoin,
            stints=tuple(stints),
        )

    def _unscheduled_stop(
        self,
        team_state: TeamState,
        active_index: int,
        race_config: RaceConfig,
        event: PitStopEvent,
        rejoin: datetime,
        elapsed: float,
        previous_driver: str,
        next_driver: str
    ) -> TeamState:
        active = team_state.stints[active_index]
        stints = list(team_state.stints)
        stints[active_index] = self._complete_active(
            active, event, elapsed, previous_driver, PitReason.UNSCHEDULED
        )

        # Fuel resets the range; otherwise the car carries what is left
        if event.fuel_taken:
            stint_length = race_config.fuel_range_minutes
        else:
            stint_length = max(0.0, active.planned_length - elapsed)

        new_number = team_state.current_stint + 1
        inserted = Stint(
            stint_number=new_number,
            planned_length=stint_length,
            planned_start=rejoin,
            planned_finish=rejoin + timedelta(minutes=stint_length),
            pit_time=race_config.min_pit_time_seconds,
            is_unscheduled=True,
        ).activate(rejoin, next_driver)

        following = [s.renumbered(s.stint_number + 1) for s in stints[active_index + 1:]]
        stints = stints[:active_index + 1] + [inserted] + following

        if event.fuel_taken:
            stint_start_time = rejoin
        else:
            # Keep counting from before the stop
            stint_start_time = rejoin - timedelta(minutes=elapsed)

        return replace(
            team_state,
            current_stint=new_number,
            stint_start_time=stint_start_time,
            stints=tuple(stints),
        )

    @staticmethod
    def _next_planned_index(team_state: TeamState, after: int) -> Optional[int]:
        for index in range(after + 1, len(team_state.stints)):
            if team_state.stints[index].is_planned:
                return index
        return None


def execute_pit_stop(
    team_state: TeamState,
    team: Team,
    race_config: RaceConfig,
    event: PitStopEvent
) -> TeamState:
    """Module-level shortcut for `PitStopExecutor().execute`."""
    return PitStopExecutor().execute(team_state, team, race_config, event)
