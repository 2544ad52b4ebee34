"""
Stint Planner for Endurance Racing
==================================
Builds the stint skeleton that covers a race under a fuel-range constraint.

The skeleton is pure: it depends only on the fuel range and race length.
Absolute clock times are overlaid afterwards, either at race start
(`apply_race_start`) or when the plan is recalculated mid-race.
"""

import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import List, Optional, Sequence

import pandas as pd

from ..race.types import Stint, Team
from ..timing.formatting import format_duration_hms, format_time

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class StintPlanner:
    """
    Generates fuel-range-bounded stint plans.

    Each stint is as long as the fuel range allows; the last one takes
    whatever race time remains.
    """

    # Planned pit time used when no race configuration supplies one
    DEFAULT_PIT_TIME_SECONDS = 170

    def __init__(self, pit_time_seconds: float = DEFAULT_PIT_TIME_SECONDS):
        """
        Initialize the planner.

        Args:
            pit_time_seconds: Planned pit time stored on every generated stint
        """
        self.pit_time_seconds = pit_time_seconds

    def generate(
        self,
        fuel_range_minutes: float,
        race_length_minutes: float,
        start_time: Optional[datetime] = None
    ) -> List[Stint]:
        """
        Split the race into stints of at most `fuel_range_minutes`.

        Args:
            fuel_range_minutes: Max continuous driving minutes on one tank
            race_length_minutes: Total race length
            start_time: Optional race start, overlays planned start/finish

        Returns:
            Ordered list of planned stints numbered from 1
        """
        stints = []
        if fuel_range_minutes <= 0:
            logger.warning(f"Fuel range {fuel_range_minutes} min cannot produce a plan")
            return stints

        race_time_used = 0
        stint_number = 1

        while race_time_used < race_length_minutes:
            stint_length = min(fuel_range_minutes, race_length_minutes - race_time_used)
            if stint_length <= 0:
                break

            planned_start = planned_finish = None
            if start_time is not None:
                planned_start = start_time + timedelta(minutes=race_time_used)
                planned_finish = planned_start + timedelta(minutes=stint_length)

            stints.append(Stint(
                stint_number=stint_number,
                planned_length=stint_length,
                planned_start=planned_start,
                planned_finish=planned_finish,
                pit_time=self.pit_time_seconds,
            ))

            race_time_used += stint_length
            stint_number += 1

        # Final safety pass: nothing may exceed the fuel range
        return [
            replace(s, planned_length=fuel_range_minutes) if s.planned_length > fuel_range_minutes else s
            for s in stints
        ]

    def apply_race_start(
        self,
        stints: Sequence[Stint],
        start_time: datetime,
        min_pit_time_seconds: float,
        first_driver: str = ''
    ) -> List[Stint]:
        """
        Overlay clock times on a skeleton when the race starts.

        The first stint becomes active at `start_time`. Planned times are
        strategy-only (race time, no pit stops); predicted times add one
        minimum pit time per preceding stop.
        """
        result = []
        cumulative = 0.0

        for index, stint in enumerate(stints):
            planned_start = start_time + timedelta(minutes=cumulative)
            planned_finish = planned_start + timedelta(minutes=stint.planned_length)
            pit_offset = timedelta(seconds=index * min_pit_time_seconds)

            updated = replace(
                stint,
                planned_start=planned_start,
                planned_finish=planned_finish,
                predicted_start=planned_start + pit_offset,
                predicted_finish=planned_finish + pit_offset,
            )
            if index == 0:
                updated = updated.activate(start_time, first_driver or stint.driver)
            result.append(updated)
            cumulative += stint.planned_length

        return result

    @staticmethod
    def driver_for_stint(team: Team, stints: Sequence[Stint], stint_index: int) -> str:
        """
        Resolve who drives a stint.

        Order of precedence: the driver recorded on the stint, the team's
        per-stint assignment override, then plain rotation.
        """
        if not team.drivers:
            return '--'

        if 0 <= stint_index < len(stints) and stints[stint_index].driver:
            return stints[stint_index].driver

        if stint_index < len(team.driver_assignments):
            return team.driver_name(team.driver_assignments[stint_index])

        return team.drivers[stint_index % len(team.drivers)]

    def to_dataframe(self, stints: Sequence[Stint]) -> pd.DataFrame:
        """Convert a stint list to a DataFrame."""
        data = []
        for s in stints:
            data.append({
                'Stint': s.stint_number,
                'Status': s.status.value,
                'Driver': s.driver or '--',
                'Planned (min)': round(s.planned_length, 1),
                'Actual (min)': round(s.calculated_length, 1) if s.calculated_length is not None else None,
                'Planned Start': s.planned_start,
                'Predicted Start': s.predicted_start,
                'Actual Start': s.actual_start,
                'Actual Finish': s.actual_finish,
                'Fuel Taken': s.fuel_taken,
                'Pit Reason': s.pit_reason.value if s.pit_reason else None,
                'Unscheduled': s.is_unscheduled,
            })
        return pd.DataFrame(data)

    def format_schedule_table(self, stints: Sequence[Stint], title: str = "STINT SCHEDULE") -> str:
        """Format a stint list as a readable table."""
        lines = []
        lines.append("=" * 90)
        lines.append(title)
        lines.append("=" * 90)
        lines.append(
            f"{'#':<4} {'Status':<10} {'Driver':<15} {'Length':<10} "
            f"{'Planned':<10} {'Predicted':<10} {'Actual':<10}"
        )
        lines.append("-" * 90)

        for s in stints:
            length = s.calculated_length if s.calculated_length is not None else s.planned_length
            lines.append(
                f"{s.stint_number:<4} {s.status.value:<10} {(s.driver or '--'):<15} "
                f"{format_duration_hms(length):<10} {format_time(s.planned_start):<10} "
                f"{format_time(s.predicted_start):<10} {format_time(s.actual_start):<10}"
            )
            if s.pit_reason is not None:
                fuel = 'fuel' if s.fuel_taken else 'no fuel'
                lines.append(f"     └─ pitted ({s.pit_reason.value}, {fuel})")

        total = sum(s.race_time_minutes for s in stints)
        lines.append("-" * 90)
        lines.append(f"{len(stints)} stints, {format_duration_hms(total)} of race time")
        lines.append("=" * 90)
        return "\n".join(lines)


def generate_stint_plan(
    fuel_range_minutes: float,
    race_length_hours: float,
    start_time: Optional[datetime] = None,
    pit_time_seconds: float = StintPlanner.DEFAULT_PIT_TIME_SECONDS
) -> List[Stint]:
    """Generate a stint plan for a race given in hours."""
    planner = StintPlanner(pit_time_seconds)
    return planner.generate(fuel_range_minutes, race_length_hours * 60, start_time)


def main():
    """Demo the stint planner."""
    print("Stint Planner Demo")
    print("=" * 50)

    planner = StintPlanner(pit_time_seconds=170)

    # 24h race on a 108 minute fuel range
    stints = planner.generate(108, 24 * 60)
    print(f"\n24h race, 108 min fuel range: {len(stints)} stints")
    print(f"  Last stint: {stints[-1].planned_length:.0f} min")

    start = datetime(2024, 6, 15, 16, 0, 0)
    stints = planner.apply_race_start(stints, start, min_pit_time_seconds=170)
    print()
    print(planner.format_schedule_table(stints, title="STINT SCHEDULE - 24h Race"))

    df = planner.to_dataframe(stints)
    print(df[['Stint', 'Status', 'Planned (min)', 'Predicted Start']].head().to_string(index=False))


if __name__ == '__main__':
    main()
