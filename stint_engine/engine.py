"""
Race Engine
===========
Owns the race configuration, the race clock and every team's state.

Commands return the new team state and commit it. A pit stop and the plan
recalculation it triggers are two explicit, sequential phases: the
recalculation always sees the already-committed pit stop.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from .analysis.fcy_strategy import FCYStrategy
from .analysis.pit_advisor import FCYBuffer, PitDecisionAdvisor, PitWindowStatus
from .analysis.pit_stop_executor import PitStopEvent, PitStopExecutor
from .analysis.pit_validation import PitStopValidator
from .analysis.schedule_recalculator import ScheduleRecalculator
from .analysis.stint_planner import StintPlanner
from .exceptions import ConfigurationError, InvariantViolation
from .race.types import (
    MAX_FUEL_RANGE_MINUTES,
    MIN_FUEL_RANGE_MINUTES,
    RaceConfig,
    TeamState,
)
from .timing import calculations
from .timing.race_clock import RaceClock

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class RaceEngine:
    """
    Single owner of all race state.

    The host application is the single writer: it feeds clock ticks and
    strategist commands in sequence. Teams never share mutable data.
    """

    def __init__(
        self,
        race_config: RaceConfig,
        clock: Optional[RaceClock] = None,
        team_states: Optional[Dict[int, TeamState]] = None
    ):
        """
        Initialize the engine.

        Args:
            race_config: Validated race configuration
            clock: Existing clock (e.g. restored from disk); a fresh one otherwise
            team_states: Existing team states keyed by team index; a fresh
                plan per team otherwise
        """
        self.race_config = race_config.ensure_valid()
        self.clock = clock or RaceClock()
        self.planner = StintPlanner(race_config.min_pit_time_seconds)
        self.recalculator = ScheduleRecalculator()
        self.advisor = PitDecisionAdvisor()
        self.executor = PitStopExecutor()

        self.team_states: Dict[int, TeamState] = (
            dict(team_states) if team_states is not None else self._initial_team_states()
        )

        logger.info("Race engine initialized:")
        logger.info(f"  - Track: {race_config.track}")
        logger.info(f"  - Race length: {race_config.race_length_hours}h")
        logger.info(f"  - Fuel range: {race_config.fuel_range_minutes} min")
        logger.info(f"  - {len(race_config.teams)} teams")

    def _initial_team_states(self) -> Dict[int, TeamState]:
        stints = tuple(self.planner.generate(
            self.race_config.fuel_range_minutes, self.race_config.race_length_minutes
        ))
        return {
            index: TeamState(stints=stints, position=index + 1)
            for index in range(len(self.race_config.teams))
        }

    @property
    def race_start_time(self) -> Optional[datetime]:
        return self.clock.race_start_time

    def _now(self, now: Optional[datetime]) -> datetime:
        current = now or self.clock.now()
        if current is None:
            raise ValueError("No current time: pass `now` or start the race first")
        return current

    def team_state_list(self) -> List[TeamState]:
        return [self.team_states[i] for i in sorted(self.team_states)]

    def _commit(self, team_index: int, new_state: TeamState) -> TeamState:
        if self.team_states.get(team_index) != new_state:
            self.team_states[team_index] = new_state
        return self.team_states[team_index]

    # Race control

    def start_race(self, now: datetime) -> datetime:
        """Start the clock and put every team's first stint on track."""
        start = self.clock.start(now)
        for index, team in enumerate(self.race_config.teams):
            state = self.team_states[index]
            stints = self.planner.apply_race_start(
                state.stints, start, self.race_config.min_pit_time_seconds,
                first_driver=StintPlanner.driver_for_stint(team, state.stints, 0),
            )
            self.team_states[index] = TeamState(
                current_stint=1,
                stint_start_time=start,
                current_driver=state.current_driver,
                stints=tuple(stints),
                position=state.position,
            )
        return start

    def pause_race(self, now: datetime) -> None:
        self.clock.pause(now)

    def resume_race(self, now: datetime) -> None:
        """Resume and shift every team's clocks by the pause length."""
        pause_duration = self.clock.resume(now)
        if pause_duration:
            for index, state in list(self.team_states.items()):
                self.team_states[index] = state.shifted(pause_duration)

    def toggle_pause(self, now: datetime) -> None:
        if self.clock.paused:
            self.resume_race(now)
        else:
            self.pause_race(now)

    def stop_race(self) -> None:
        """Stop the race and reset every team to a fresh plan."""
        self.clock.stop()
        fresh = self._initial_team_states()
        for index, state in self.team_states.items():
            self.team_states[index] = TeamState(stints=fresh[index].stints, position=state.position)

    def toggle_fcy(self) -> bool:
        return self.clock.toggle_fcy()

    def tick(self, now: datetime) -> bool:
        return self.clock.tick(now)

    # Queries

    def elapsed_time(self, team_index: int, now: Optional[datetime] = None) -> float:
        """Minutes into the team's current stint, capped at its planned length."""
        state = self.team_states[team_index]
        current = state.current()
        max_elapsed = current.planned_length if current is not None else None
        return calculations.elapsed_time(state.stint_start_time, self._now(now), max_elapsed)

    def remaining_time(self, team_index: int, now: Optional[datetime] = None) -> float:
        state = self.team_states[team_index]
        current = state.current()
        planned = current.planned_length if current is not None else self.race_config.fuel_range_minutes
        return calculations.remaining_time(state.stint_start_time, planned, self._now(now))

    def remaining_race_time(self, now: Optional[datetime] = None) -> float:
        if self.race_start_time is None:
            return self.race_config.race_length_minutes
        return calculations.remaining_race_time(
            self.race_start_time, self.race_config.race_length_hours, self._now(now)
        )

    def fcy_buffer(self, team_index: int, now: Optional[datetime] = None) -> FCYBuffer:
        return self.advisor.fcy_buffer(
            self.team_states[team_index], self.race_config, self.race_start_time, self._now(now)
        )

    def can_pit_on_fcy(self, team_index: int, now: Optional[datetime] = None) -> bool:
        return self.fcy_buffer(team_index, now).is_in_window

    def next_pit_window(self, team_index: int, now: Optional[datetime] = None) -> PitWindowStatus:
        return self.advisor.next_pit_window(
            self.team_states[team_index], self.race_config, self._now(now), self.clock.fcy_active
        )

    def fcy_strategy(self) -> FCYStrategy:
        return FCYStrategy(self.clock.fcy_active, self.race_config)

    def validator(self, now: Optional[datetime] = None) -> PitStopValidator:
        return PitStopValidator(self.race_config, self.team_state_list(), self._now(now))

    def pit_stop_recommendations(self, team_index: int, now: Optional[datetime] = None) -> List[str]:
        return self.advisor.pit_stop_recommendations(
            team_index, self.team_state_list(), self.race_config, self._now(now), self.clock.fcy_active
        )

    # Commands

    def _is_known_team(self, team_index: int) -> bool:
        return team_index in self.team_states and 0 <= team_index < len(self.race_config.teams)

    def execute_pit_stop(self, event: PitStopEvent) -> Optional[TeamState]:
        """
        Phase one of a pit stop: apply and commit it.

        An unknown team or an inconsistent team state (no active stint) is
        logged and leaves every team unchanged; an unknown team returns None.
        """
        team_index = event.team_index
        if not self._is_known_team(team_index):
            logger.error(f"Pit stop for unknown team index {team_index} ignored")
            return None

        state = self.team_states[team_index]
        try:
            new_state = self.executor.execute(
                state, self.race_config.teams[team_index], self.race_config, event
            )
        except InvariantViolation as e:
            logger.error(f"Pit stop ignored: {e}")
            return state

        return self._commit(team_index, new_state)

    def recalculate_team(self, team_index: int, now: Optional[datetime] = None) -> Optional[TeamState]:
        """Phase two: regenerate the team's future stints from its committed state."""
        if not self._is_known_team(team_index):
            logger.error(f"Recalculation for unknown team index {team_index} skipped")
            return None

        state = self.team_states[team_index]
        stints = self.recalculator.recalculate(
            state, self.race_config, self.race_start_time, self._now(now)
        )
        return self._commit(team_index, state.with_stints(stints))

    def recalculate_all(self, now: Optional[datetime] = None) -> List[TeamState]:
        return [self.recalculate_team(index, now) for index in sorted(self.team_states)]

    def pit_and_recalculate(self, event: PitStopEvent) -> Optional[TeamState]:
        """Execute a pit stop, then recalculate from the committed result."""
        if self.execute_pit_stop(event) is None:
            return None
        return self.recalculate_team(event.team_index, event.now)

    def change_fuel_range(self, fuel_range_minutes: float, now: Optional[datetime] = None) -> List[TeamState]:
        """
        Apply a new fuel range and recalculate every team's plan.

        Raises:
            ConfigurationError: If the fuel range is outside the allowed limits
        """
        if not MIN_FUEL_RANGE_MINUTES <= fuel_range_minutes <= MAX_FUEL_RANGE_MINUTES:
            raise ConfigurationError([
                f'Fuel range must be between {MIN_FUEL_RANGE_MINUTES} and '
                f'{MAX_FUEL_RANGE_MINUTES} minutes'
            ])

        self.race_config = self.race_config.with_fuel_range(fuel_range_minutes)
        logger.info(f"Fuel range changed to {fuel_range_minutes} min")

        if self.race_start_time is None:
            fresh = self._initial_team_states()
            for index, state in self.team_states.items():
                self._commit(index, state.with_stints(fresh[index].stints))
            return self.team_state_list()

        current = self._now(now)
        for index, state in list(self.team_states.items()):
            self._commit(index, self.recalculator.recalculate_for_fuel_change(
                state, self.race_config, self.race_start_time, current,
                team=self.race_config.teams[index],
            ))
        return self.team_state_list()

    # Statistics

    def team_statistics(self, team_index: int, now: Optional[datetime] = None) -> Dict:
        """Progress and efficiency figures for one team."""
        state = self.team_states[team_index]
        completed = state.completed_stints()
        active = [s for s in state.stints if s.is_active]

        total_race_time = 0.0
        if self.race_start_time is not None:
            total_race_time = calculations.elapsed_time(self.race_start_time, self._now(now))

        total_pit_time = 0.0
        average_stint = 0.0
        if completed:
            lengths = np.array([s.calculated_length for s in completed], dtype=float)
            total_pit_time = max(0.0, total_race_time - float(lengths.sum()))
            average_stint = float(lengths.mean())

        total = len(state.stints)
        return {
            'total_stints': total,
            'completed_stints': len(completed),
            'active_stints': len(active),
            'completion_percentage': len(completed) / total * 100 if total else 0.0,
            'total_race_time': total_race_time,
            'total_pit_time': total_pit_time,
            'average_stint_length': average_stint,
            'efficiency': ((total_race_time - total_pit_time) / total_race_time * 100
                           if total_race_time > 0 else 100.0),
        }

    def team_statistics_dataframe(self, now: Optional[datetime] = None) -> pd.DataFrame:
        """Statistics for every team as a DataFrame."""
        data = []
        for index, team in enumerate(self.race_config.teams):
            stats = self.team_statistics(index, now)
            data.append({
                'Team': f"#{team.number} {team.name}",
                'Stints': stats['total_stints'],
                'Completed': stats['completed_stints'],
                'Completion (%)': round(stats['completion_percentage'], 1),
                'Race Time (min)': round(stats['total_race_time'], 1),
                'Pit Time (min)': round(stats['total_pit_time'], 1),
                'Avg Stint (min)': round(stats['average_stint_length'], 1),
                'Efficiency (%)': round(stats['efficiency'], 1),
            })
        return pd.DataFrame(data)


def main():
    """Demo a short race with one unscheduled stop."""
    from datetime import timedelta

    from .race.types import PitReason, Team

    print("Race Engine Demo")
    print("=" * 50)

    config = RaceConfig(
        track='Spa-Francorchamps',
        race_length_hours=6,
        fuel_range_minutes=65,
        min_pit_time_seconds=170,
        teams=(
            Team(number='7', name='Blue Arrow Racing', drivers=('Laurent', 'Okafor', 'Sato')),
            Team(number='46', name='Team Kessel', drivers=('Brandt', 'Moreau')),
        ),
    )
    engine = RaceEngine(config)

    start = datetime(2024, 7, 27, 12, 0, 0)
    engine.start_race(start)

    # Puncture on lap 12: unscheduled stop with fuel and a driver change
    now = start + timedelta(minutes=25)
    engine.tick(now)
    engine.pit_and_recalculate(PitStopEvent(
        team_index=0,
        pit_reason=PitReason.UNSCHEDULED,
        fuel_taken=True,
        driver_changed=True,
        selected_driver_index=1,
        now=now,
    ))

    print()
    print(engine.planner.format_schedule_table(
        engine.team_states[0].stints, title="STINT SCHEDULE - #7 after unscheduled stop"
    ))

    buffer = engine.fcy_buffer(1, now)
    print(f"\n#46 FCY buffer: {buffer.buffer_minutes:.0f} min (in window: {buffer.is_in_window})")

    print("\nTeam statistics:")
    print(engine.team_statistics_dataframe(now).to_string(index=False))


if __name__ == '__main__':
    main()
