"""
Pit Stop Validation
===================
Checks run before a pit stop is executed and before a race starts.

Failures are returned, never raised: the caller decides how to present
them.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Sequence

from ..race.types import RaceConfig, TeamState
from ..timing.calculations import elapsed_time


@dataclass
class ValidationResult:
    """Outcome of a validation check."""
    valid: bool
    reasons: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def __bool__(self):
        return self.valid


class PitStopValidator:
    """
    Validates pit stops, pit timing, driver changes and race configuration.

    Bound to one snapshot of the race: configuration, team states and now.
    """

    # Guard against an immediate re-pit
    MIN_STINT_MINUTES_BEFORE_PIT = 10

    # Fractions of the fuel range
    EARLY_PIT_FRACTION = 0.5
    LATE_PIT_FRACTION = 0.9

    def __init__(
        self,
        race_config: RaceConfig,
        team_states: Sequence[TeamState],
        now: datetime
    ):
        """
        Initialize the validator.

        Args:
            race_config: Race configuration
            team_states: Team states indexed like race_config.teams
            now: Current time
        """
        self.race_config = race_config
        self.team_states = list(team_states)
        self.now = now

    def _stint_minutes(self, team_state: TeamState) -> float:
        return elapsed_time(team_state.stint_start_time, self.now)

    def can_execute_pit_stop(self, team_index: int) -> ValidationResult:
        """Check whether a team may pit right now."""
        if team_index < 0 or team_index >= len(self.team_states):
            return ValidationResult(False, ['Invalid team index'])

        team_state = self.team_states[team_index]
        if team_state is None:
            return ValidationResult(False, ['Team state not found'])

        if team_index >= len(self.race_config.teams):
            return ValidationResult(False, ['Team configuration not found'])

        if team_state.stint_start_time is None or team_state.active_stint() is None:
            return ValidationResult(False, ['No active stint to pit from'])

        stint_minutes = self._stint_minutes(team_state)
        if stint_minutes < self.MIN_STINT_MINUTES_BEFORE_PIT:
            return ValidationResult(False, [
                f'Stint too short ({round(stint_minutes)} min, '
                f'minimum {self.MIN_STINT_MINUTES_BEFORE_PIT} min)'
            ])

        return ValidationResult(True)

    def validate_pit_timing(self, team_index: int) -> ValidationResult:
        """Warn when a stop is early, late or past the fuel range."""
        if not 0 <= team_index < len(self.team_states):
            return ValidationResult(False, warnings=['No active stint'])

        team_state = self.team_states[team_index]
        if team_state is None or team_state.stint_start_time is None:
            return ValidationResult(False, warnings=['No active stint'])

        warnings = []
        stint_minutes = self._stint_minutes(team_state)
        fuel_range = self.race_config.fuel_range_minutes

        if stint_minutes < fuel_range * self.EARLY_PIT_FRACTION:
            warnings.append('Pitting early - fuel range not fully utilized')

        if stint_minutes > fuel_range * self.LATE_PIT_FRACTION:
            warnings.append('Pitting late - approaching fuel limit')

        if stint_minutes > fuel_range:
            warnings.append('CRITICAL: Exceeding fuel range!')

        return ValidationResult(True, warnings=warnings)

    def validate_driver_change(self, team_index: int, new_driver_index: int) -> ValidationResult:
        """Check the driver selected for a driver change."""
        if not 0 <= team_index < min(len(self.team_states), len(self.race_config.teams)):
            return ValidationResult(False, ['Team not found'])

        team = self.race_config.teams[team_index]
        team_state = self.team_states[team_index]

        if new_driver_index < 0 or new_driver_index >= len(team.drivers):
            return ValidationResult(False, ['Invalid driver index'])

        if new_driver_index == team_state.current_driver:
            return ValidationResult(False, ['Driver is already driving'])

        return ValidationResult(True)

    def validate_race_configuration(self) -> ValidationResult:
        errors = self.race_config.validate()
        return ValidationResult(not errors, errors)
