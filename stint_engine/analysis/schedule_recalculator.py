"""
Schedule Recalculator
=====================
Regenerates the remaining part of a team's stint plan while keeping its
history.

Two entry points share one tail generator:
- `recalculate`: after an unscheduled stop or any other perturbation
- `recalculate_for_fuel_change`: when the fuel range itself changes

Both are pure. Recomputing with identical inputs yields an equal result,
so callers compare with `==` and skip the write when nothing changed.
"""

import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import List, Optional, Sequence, Tuple

from ..race.types import PitReason, RaceConfig, Stint, Team, TeamState
from ..timing.calculations import elapsed_time, remaining_race_time
from .stint_planner import StintPlanner

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class ScheduleRecalculator:
    """
    Repairs and extends stint plans from the committed team state.

    Completed stints are never touched. The active stint is kept. Only
    planned (never started) stints are discarded and regenerated.
    """

    # Below this many minutes the race is treated as over
    RACE_END_THRESHOLD_MINUTES = 5
    # Tail chunks shorter than this are not worth a stint
    MIN_FUTURE_STINT_MINUTES = 5

    def recalculate(
        self,
        team_state: TeamState,
        race_config: RaceConfig,
        race_start_time: Optional[datetime],
        now: datetime
    ) -> Tuple[Stint, ...]:
        """
        Rebuild the future part of a team's plan.

        Args:
            team_state: Committed team state
            race_config: Race parameters (fuel range, race length, pit time)
            race_start_time: Race origin (None if not started)
            now: Current time

        Returns:
            Kept history followed by freshly generated planned stints
        """
        if race_start_time is None:
            return team_state.stints

        remaining_race = remaining_race_time(race_start_time, race_config.race_length_hours, now)
        kept = self._kept_stints(team_state.stints)

        if remaining_race <= self.RACE_END_THRESHOLD_MINUTES:
            return tuple(kept)

        return tuple(kept + self._future_stints(team_state, kept, race_config, race_start_time, now))

    def recalculate_for_fuel_change(
        self,
        team_state: TeamState,
        race_config: RaceConfig,
        race_start_time: Optional[datetime],
        now: datetime,
        team: Optional[Team] = None
    ) -> TeamState:
        """
        Recalculate a team's plan after the fuel range changed.

        `race_config` already carries the new fuel range.

        Args:
            team: Team entry used to name the drivers of restored stints

        Returns:
            New team state (stints and, where restored, `stint_start_time`)
        """
        fuel_range = race_config.fuel_range_minutes

        if race_start_time is None or not team_state.stints:
            planner = StintPlanner(race_config.min_pit_time_seconds)
            stints = planner.generate(fuel_range, race_config.race_length_minutes, race_start_time)
            return team_state.with_stints(stints)

        if not team_state.has_history():
            restored = self._restore_active_stint(team_state, race_config, race_start_time, team)
            if restored.active_stint() is None:
                return restored
            return self._with_tail(restored, list(restored.stints), race_config, race_start_time, now)

        # Ongoing race: keep history, resize the active stint, regenerate the tail
        kept = []
        for stint in self._kept_stints(team_state.stints):
            if stint.is_active and stint.planned_length != fuel_range:
                stint = replace(
                    stint,
                    planned_length=fuel_range,
                    planned_finish=(stint.planned_start + timedelta(minutes=fuel_range)
                                    if stint.planned_start else None),
                    predicted_finish=(stint.actual_start + timedelta(minutes=fuel_range)
                                      if stint.actual_start else None),
                )
            kept.append(stint)

        stint_start_time = team_state.stint_start_time
        active = next((s for s in kept if s.is_active), None)
        if active is not None and stint_start_time is None:
            stint_start_time = active.actual_start
        state = replace(team_state, stint_start_time=stint_start_time, stints=tuple(kept))

        return self._with_tail(state, kept, race_config, race_start_time, now)

    def _with_tail(
        self,
        state: TeamState,
        kept: List[Stint],
        race_config: RaceConfig,
        race_start_time: datetime,
        now: datetime
    ) -> TeamState:
        remaining_race = remaining_race_time(race_start_time, race_config.race_length_hours, now)
        if remaining_race <= self.RACE_END_THRESHOLD_MINUTES:
            return state.with_stints(kept)

        future = self._future_stints(state, kept, race_config, race_start_time, now)
        return state.with_stints(kept + future)

    def _restore_active_stint(
        self,
        team_state: TeamState,
        race_config: RaceConfig,
        race_start_time: datetime,
        team: Optional[Team] = None
    ) -> TeamState:
        """
        Regenerate the plan up to the stint under the pointer and re-activate it.

        Stints before the pointer are recorded as completed at their
        planned length, back to back from the race start, so the history
        survives later recalculations. The active stint starts where they
        end and the team's stint clock is restored to the same instant.
        The caller regenerates the tail.
        """
        stints = StintPlanner(race_config.min_pit_time_seconds).generate(
            race_config.fuel_range_minutes, race_config.race_length_minutes, race_start_time
        )
        index = team_state.current_stint - 1
        if not 0 <= index < len(stints):
            logger.warning(
                f"Stint {team_state.current_stint} is beyond the regenerated plan "
                f"({len(stints)} stints); nothing restored"
            )
            return team_state.with_stints(stints)

        history = []
        for position, stint in enumerate(stints[:index]):
            driver = StintPlanner.driver_for_stint(team, stints, position) if team else ''
            history.append(stint.activate(stint.planned_start, driver).complete(
                finish=stint.planned_finish,
                calculated_length=stint.planned_length,
                fuel_taken=True,
                pit_reason=PitReason.SCHEDULED,
                driver_changed=False,
                driver=driver,
            ))

        estimated_start = race_start_time + timedelta(minutes=sum(s.planned_length for s in stints[:index]))
        driver = team.driver_name(team_state.current_driver) if team else ''
        fuel_range = race_config.fuel_range_minutes
        # Restored on a full tank
        restored = replace(
            stints[index],
            planned_start=estimated_start,
            planned_finish=estimated_start + timedelta(minutes=fuel_range),
        ).activate(estimated_start, driver, planned_length=fuel_range)

        return replace(team_state, stint_start_time=estimated_start, stints=tuple(history + [restored]))

    @staticmethod
    def _kept_stints(stints: Sequence[Stint]) -> List[Stint]:
        """Completed stints plus the single active one, in plan order."""
        kept = [s for s in stints if s.is_completed]
        active = next((s for s in stints if s.is_active), None)
        if active is not None:
            kept.append(active)
        return kept

    def _future_stints(
        self,
        team_state: TeamState,
        kept: Sequence[Stint],
        race_config: RaceConfig,
        race_start_time: datetime,
        now: datetime
    ) -> List[Stint]:
        remaining_race = remaining_race_time(race_start_time, race_config.race_length_hours, now)
        active = next((s for s in kept if s.is_active), None)

        race_time_used = sum(s.race_time_minutes for s in kept if s.is_completed)
        remaining_in_active = 0.0
        if active is not None and team_state.stint_start_time is not None:
            elapsed_in_active = elapsed_time(team_state.stint_start_time, now)
            race_time_used += elapsed_in_active
            remaining_in_active = max(0.0, active.planned_length - elapsed_in_active)

        time_after_current = max(0.0, remaining_race - remaining_in_active)
        if time_after_current <= self.MIN_FUTURE_STINT_MINUTES:
            return []

        fuel_range = race_config.fuel_range_minutes
        pit_seconds = race_config.min_pit_time_seconds
        next_number = kept[-1].stint_number + 1 if kept else 1

        # Strategy projection ignores pit time; prediction adds one stop per stint
        planned_origin = race_start_time + timedelta(minutes=race_time_used + remaining_in_active)
        predicted_origin = now + timedelta(minutes=remaining_in_active)

        future = []
        used = 0.0
        while used < time_after_current:
            stint_length = min(fuel_range, time_after_current - used)
            if stint_length < self.MIN_FUTURE_STINT_MINUTES:
                break

            stops = len(future) + 1
            planned_start = planned_origin + timedelta(minutes=used)
            predicted_start = predicted_origin + timedelta(minutes=used, seconds=stops * pit_seconds)
            future.append(Stint(
                stint_number=next_number + len(future),
                planned_length=stint_length,
                planned_start=planned_start,
                planned_finish=planned_start + timedelta(minutes=stint_length),
                predicted_start=predicted_start,
                predicted_finish=predicted_start + timedelta(minutes=stint_length),
                pit_time=pit_seconds,
            ))
            used += stint_length

        return future


def recalculate_stint_plan(
    team_state: TeamState,
    race_config: RaceConfig,
    race_start_time: Optional[datetime],
    now: datetime
) -> Tuple[Stint, ...]:
    """Module-level shortcut for `ScheduleRecalculator().recalculate`."""
    return ScheduleRecalculator().recalculate(team_state, race_config, race_start_time, now)


def recalculate_for_fuel_change(
    team_state: TeamState,
    race_config: RaceConfig,
    race_start_time: Optional[datetime],
    now: datetime,
    team: Optional[Team] = None
) -> TeamState:
    """Module-level shortcut for `ScheduleRecalculator().recalculate_for_fuel_change`."""
    return ScheduleRecalculator().recalculate_for_fuel_change(
        team_state, race_config, race_start_time, now, team
    )
