"""
Pit Decision Advisor
====================
Pit-window and Full Course Yellow (FCY) advice for the strategist.

The FCY window test is a stop-count heuristic: pitting now is "free" if
ceil(remaining race / stint length) does not exceed the stop count of
running the current tank dry first. It ignores pit time and has no fuel
sensor; it is kept exactly as strategists are used to reading it.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import List, Optional

import numpy as np

from ..race.types import RaceConfig, Team, TeamState
from ..timing.calculations import elapsed_time, remaining_race_time
from .pit_validation import PitStopValidator

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class PitUrgency(Enum):
    """How soon a team has to pit."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class PitAction(Enum):
    """Recommended action for the current stint."""
    CONTINUE = "continue"
    PREPARE = "prepare"
    PIT_NOW = "pit_now"


@dataclass(frozen=True)
class FCYBuffer:
    """Minutes until the FCY pit window opens, and whether it is open."""
    buffer_minutes: float
    is_in_window: bool


@dataclass(frozen=True)
class PitWindowStatus:
    """Snapshot of a team's position relative to its next stop."""
    time_to_next_pit: float  # minutes
    can_pit_now: bool
    recommended_action: PitAction
    urgency: PitUrgency
    fcy_opportunity: bool = False


class PitDecisionAdvisor:
    """
    Computes FCY buffers, pit windows and recommendations.

    All methods are pure functions of the team state, race configuration
    and the supplied "now".
    """

    # FCY window opens this many minutes before the stint's planned end
    FCY_WINDOW_LOOKBACK_MINUTES = 20
    # Planning margin subtracted from the fuel range
    STINT_BUFFER_MINUTES = 5
    MIN_OPTIMAL_STINT_MINUTES = 30

    def fcy_buffer(
        self,
        team_state: TeamState,
        race_config: RaceConfig,
        race_start_time: Optional[datetime],
        now: datetime
    ) -> FCYBuffer:
        """
        Calculate the FCY pit-window buffer for a team.

        Args:
            team_state: Current team state
            race_config: Race parameters
            race_start_time: Race origin (None means the full race remains)
            now: Current time

        Returns:
            FCYBuffer with minutes until the window opens and the window flag
        """
        elapsed = elapsed_time(team_state.stint_start_time, now)
        remaining_race = remaining_race_time(race_start_time, race_config.race_length_hours, now)

        current = team_state.current()
        max_stint_length = race_config.fuel_range_minutes
        if current is not None and current.planned_length > 0:
            max_stint_length = current.planned_length

        window_opens_at = max_stint_length - self.FCY_WINDOW_LOOKBACK_MINUTES

        if elapsed >= window_opens_at and max_stint_length > 0:
            remaining_fuel_in_stint = max_stint_length - elapsed
            stops_if_wait = int(np.ceil((remaining_race - remaining_fuel_in_stint) / max_stint_length))
            stops_if_pit_now = int(np.ceil(remaining_race / max_stint_length))

            if stops_if_pit_now <= stops_if_wait:
                return FCYBuffer(buffer_minutes=0.0, is_in_window=True)

        return FCYBuffer(buffer_minutes=max(0.0, window_opens_at - elapsed), is_in_window=False)

    def can_pit_on_fcy(
        self,
        team_state: TeamState,
        race_config: RaceConfig,
        race_start_time: Optional[datetime],
        now: datetime
    ) -> bool:
        return self.fcy_buffer(team_state, race_config, race_start_time, now).is_in_window

    def optimal_stint_length(self, race_config: RaceConfig) -> float:
        """Fuel range less a safety buffer, never below 30 minutes."""
        return max(self.MIN_OPTIMAL_STINT_MINUTES,
                   race_config.fuel_range_minutes - self.STINT_BUFFER_MINUTES)

    def predict_next_pit_window(
        self,
        team_state: TeamState,
        race_config: RaceConfig
    ) -> Optional[datetime]:
        """Moment the next pit window opens (fuel range less the buffer)."""
        if team_state.stint_start_time is None:
            return None
        minutes = race_config.fuel_range_minutes - self.STINT_BUFFER_MINUTES
        return team_state.stint_start_time + timedelta(minutes=minutes)

    def next_pit_window(
        self,
        team_state: TeamState,
        race_config: RaceConfig,
        now: datetime,
        fcy_active: bool = False
    ) -> PitWindowStatus:
        """
        Classify how urgently a team needs to pit.

        Under 5 minutes of fuel is pit-now; under 15 is prepare; under an
        FCY, anything under 30 is also prepare.
        """
        fuel_range = race_config.fuel_range_minutes
        current = team_state.current()

        if current is None or team_state.stint_start_time is None:
            return PitWindowStatus(
                time_to_next_pit=fuel_range,
                can_pit_now=False,
                recommended_action=PitAction.CONTINUE,
                urgency=PitUrgency.LOW,
            )

        planned_length = current.planned_length or fuel_range
        remaining = max(0.0, planned_length - elapsed_time(team_state.stint_start_time, now))

        urgency = PitUrgency.LOW
        action = PitAction.CONTINUE
        if remaining < 5:
            urgency = PitUrgency.HIGH
            action = PitAction.PIT_NOW
        elif remaining < 15:
            urgency = PitUrgency.MEDIUM
            action = PitAction.PREPARE
        elif fcy_active and remaining < 30:
            urgency = PitUrgency.MEDIUM
            action = PitAction.PREPARE

        return PitWindowStatus(
            time_to_next_pit=float(np.floor(remaining)),
            can_pit_now=remaining < fuel_range * 0.9,
            recommended_action=action,
            urgency=urgency,
            fcy_opportunity=fcy_active and 10 < remaining < 30,
        )

    def pit_stop_recommendations(
        self,
        team_index: int,
        team_states: List[TeamState],
        race_config: RaceConfig,
        now: datetime,
        fcy_active: bool = False
    ) -> List[str]:
        """Human-readable recommendations for a team's next stop."""
        team_state = team_states[team_index] if 0 <= team_index < len(team_states) else None
        team: Optional[Team] = (race_config.teams[team_index]
                                if 0 <= team_index < len(race_config.teams) else None)

        if team_state is None or team is None or team_state.stint_start_time is None:
            return ['Unable to provide recommendations - insufficient data']

        recommendations = []
        stint_minutes = elapsed_time(team_state.stint_start_time, now)
        fuel_remaining = max(0.0, race_config.fuel_range_minutes - stint_minutes)

        if fcy_active:
            recommendations.append('FCY active - good time to pit')
            recommendations.append('Time advantage available')
            if stint_minutes > 30:
                recommendations.append('Sufficient stint time completed')

        if fuel_remaining < 30:
            recommendations.append('LOW FUEL - pit required soon')
        elif fuel_remaining < 60:
            recommendations.append('Moderate fuel - consider pit window')
        elif stint_minutes < 30:
            recommendations.append('Early in stint - wait unless FCY')

        if len(team.drivers) > 1:
            recommendations.append('Driver change available')
            next_driver = team.drivers[(team_state.current_driver + 1) % len(team.drivers)]
            recommendations.append(f'Next driver: {next_driver}')

        validator = PitStopValidator(race_config, team_states, now)
        if not validator.validate_pit_timing(team_index).warnings:
            recommendations.append('Optimal pit window timing')

        return recommendations
