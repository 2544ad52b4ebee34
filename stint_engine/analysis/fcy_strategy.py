"""
FCY Strategy
============
Full Course Yellow pit recommendations.

Under FCY the field is neutralized, so a stop loses less track position
than under green.
"""

from dataclasses import dataclass
from typing import List

from ..race.types import RaceConfig


@dataclass(frozen=True)
class FuelAdvice:
    """Whether to take fuel during an FCY stop, and why."""
    should_take_fuel: bool
    reasoning: str


class FCYStrategy:
    """FCY decisions for the current caution state."""

    # Conservative estimate; the real gain varies by track
    FCY_PIT_ADVANTAGE_SECONDS = 15

    def __init__(self, fcy_active: bool, race_config: RaceConfig):
        self.fcy_active = fcy_active
        self.race_config = race_config

    def should_recommend_pit(self) -> bool:
        return self.fcy_active

    def fcy_pit_advantage(self) -> float:
        """Seconds gained by pitting under FCY rather than green."""
        if not self.fcy_active:
            return 0
        return self.FCY_PIT_ADVANTAGE_SECONDS

    def optimal_fcy_pit_timing(self) -> float:
        """Minutes into the FCY period to pit: immediately."""
        return 0

    def optimal_fcy_actions(self) -> List[str]:
        if not self.fcy_active:
            return []
        return [
            'Consider pit stop for time advantage',
            'Take fuel if fuel window is open',
            'Change drivers if needed',
            'Check tire condition (if applicable)',
            'Communicate strategy to all teams',
        ]

    def is_strategic_fcy_opportunity(self, current_fuel_minutes: float, target_stint_length: float) -> bool:
        """
        FCY is strategic once over half the fuel range is used but more
        than 15 minutes of the stint are still to run.
        """
        if not self.fcy_active or self.race_config.fuel_range_minutes <= 0:
            return False

        fuel_used = current_fuel_minutes / self.race_config.fuel_range_minutes
        remaining_stint = target_stint_length - current_fuel_minutes
        return fuel_used > 0.5 and remaining_stint > 15

    def fcy_fuel_strategy(self, current_stint_minutes: float) -> FuelAdvice:
        """
        Recommend whether to take fuel during an FCY stop.

        Args:
            current_stint_minutes: Minutes already driven in this stint
        """
        if not self.fcy_active:
            return FuelAdvice(False, 'No FCY active')

        fuel_remaining = self.race_config.fuel_range_minutes - current_stint_minutes

        if fuel_remaining < 30:
            return FuelAdvice(True, 'Low fuel - must take fuel')

        if fuel_remaining < 60:
            return FuelAdvice(True, 'FCY opportunity with moderate fuel')

        if current_stint_minutes > 30:
            return FuelAdvice(True, 'FCY advantage outweighs early stop')

        return FuelAdvice(False, 'Too early in stint for FCY advantage')

    def communication_priorities(self) -> List[str]:
        if not self.fcy_active:
            return []
        return [
            'FCY declared - prepare for pit opportunity',
            'Confirm fuel levels and stint progress',
            'Prepare driver change if scheduled',
            'Monitor field neutralization',
            'Ready pit crew for potential stop',
        ]
