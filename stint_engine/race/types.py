"""
Race Data Model
===============
Immutable race configuration, stint and team state types.

A stint's lifecycle phase is a tagged variant (Planned, Active, Completed)
so that fields which only make sense once a stint has started or finished
cannot be set on a stint that has not.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from ..exceptions import ConfigurationError


class StintStatus(Enum):
    """Lifecycle status of a stint."""
    PLANNED = "planned"
    ACTIVE = "active"
    COMPLETED = "completed"


class PitReason(Enum):
    """Why a stint was ended by a pit stop."""
    SCHEDULED = "scheduled"
    FCY_OPPORTUNITY = "fcyOpportunity"
    UNSCHEDULED = "unscheduled"


# Configuration limits
MIN_FUEL_RANGE_MINUTES = 30
MAX_FUEL_RANGE_MINUTES = 300
MIN_RACE_LENGTH_HOURS = 1
MAX_RACE_LENGTH_HOURS = 48
MIN_PIT_TIME_SECONDS = 30
MAX_PIT_TIME_SECONDS = 600


@dataclass(frozen=True)
class Team:
    """A team entry: car number, name and ordered driver line-up."""
    number: str
    name: str
    drivers: Tuple[str, ...] = ()
    driver_assignments: Tuple[int, ...] = ()  # per-stint index into drivers

    def driver_name(self, index: int) -> str:
        if 0 <= index < len(self.drivers):
            return self.drivers[index]
        return "--"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Team":
        return cls(
            number=str(data.get('number', '')),
            name=str(data.get('name', '')),
            drivers=tuple(str(d) for d in data.get('drivers') or ()),
            driver_assignments=tuple(int(i) for i in data.get('driverAssignments') or ()),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'number': self.number,
            'name': self.name,
            'drivers': list(self.drivers),
            'driverAssignments': list(self.driver_assignments),
        }


@dataclass(frozen=True)
class RaceConfig:
    """Race-wide parameters shared by every team."""
    track: str
    race_length_hours: float
    fuel_range_minutes: float
    min_pit_time_seconds: float
    teams: Tuple[Team, ...] = ()

    @property
    def race_length_minutes(self) -> float:
        return self.race_length_hours * 60

    @property
    def pit_time(self) -> timedelta:
        return timedelta(seconds=self.min_pit_time_seconds)

    def validate(self) -> List[str]:
        """Return every field-level problem with this configuration."""
        errors = []

        if not self.track.strip():
            errors.append('Track name is required')

        if not MIN_RACE_LENGTH_HOURS <= self.race_length_hours <= MAX_RACE_LENGTH_HOURS:
            errors.append(
                f'Race length must be between {MIN_RACE_LENGTH_HOURS} and '
                f'{MAX_RACE_LENGTH_HOURS} hours'
            )

        if not MIN_FUEL_RANGE_MINUTES <= self.fuel_range_minutes <= MAX_FUEL_RANGE_MINUTES:
            errors.append(
                f'Fuel range must be between {MIN_FUEL_RANGE_MINUTES} and '
                f'{MAX_FUEL_RANGE_MINUTES} minutes'
            )

        if not MIN_PIT_TIME_SECONDS <= self.min_pit_time_seconds <= MAX_PIT_TIME_SECONDS:
            errors.append(
                f'Minimum pit time must be between {MIN_PIT_TIME_SECONDS} and '
                f'{MAX_PIT_TIME_SECONDS} seconds'
            )

        if not self.teams:
            errors.append('At least one team is required')

        for index, team in enumerate(self.teams, start=1):
            if not team.name.strip():
                errors.append(f'Team {index}: Name is required')
            if not team.number.strip():
                errors.append(f'Team {index}: Number is required')
            if not team.drivers:
                errors.append(f'Team {index}: At least one driver is required')
            for driver_index, driver in enumerate(team.drivers, start=1):
                if not driver.strip():
                    errors.append(f'Team {index}: Driver {driver_index} name is required')

        return errors

    def ensure_valid(self) -> "RaceConfig":
        """Raise ConfigurationError if the configuration is invalid."""
        errors = self.validate()
        if errors:
            raise ConfigurationError(errors)
        return self

    def with_fuel_range(self, fuel_range_minutes: float) -> "RaceConfig":
        return replace(self, fuel_range_minutes=fuel_range_minutes)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RaceConfig":
        """Build a config from the camelCase plain-data shape."""
        try:
            return cls(
                track=str(data.get('track', '')),
                race_length_hours=float(data['raceLengthHours']),
                fuel_range_minutes=float(data['fuelRangeMinutes']),
                min_pit_time_seconds=float(data['minPitTimeSeconds']),
                teams=tuple(Team.from_dict(t) for t in data.get('teams') or ()),
            )
        except KeyError as e:
            raise ConfigurationError([f'Missing required field: {e.args[0]}']) from e
        except (TypeError, ValueError) as e:
            raise ConfigurationError([f'Invalid field value: {e}']) from e

    def to_dict(self) -> Dict[str, Any]:
        return {
            'track': self.track,
            'raceLengthHours': self.race_length_hours,
            'fuelRangeMinutes': self.fuel_range_minutes,
            'minPitTimeSeconds': self.min_pit_time_seconds,
            'numTeams': len(self.teams),
            'teams': [t.to_dict() for t in self.teams],
        }


@dataclass(frozen=True)
class Planned:
    """Stint has not started."""
    status = StintStatus.PLANNED


@dataclass(frozen=True)
class Active:
    """Stint currently on track."""
    start: datetime
    driver: str
    status = StintStatus.ACTIVE


@dataclass(frozen=True)
class Completed:
    """Stint ended by a pit stop."""
    start: Optional[datetime]
    finish: datetime
    calculated_length: float
    fuel_taken: bool
    pit_reason: PitReason
    driver_changed: bool
    status = StintStatus.COMPLETED


StintPhase = Union[Planned, Active, Completed]


@dataclass(frozen=True)
class Stint:
    """A single driving segment between pit stops."""
    stint_number: int
    planned_length: float  # minutes
    planned_start: Optional[datetime] = None
    planned_finish: Optional[datetime] = None
    predicted_start: Optional[datetime] = None
    predicted_finish: Optional[datetime] = None
    pit_time: float = 0  # planned, seconds
    actual_pit_time: Optional[float] = None
    driver: str = ''
    is_unscheduled: bool = False
    phase: StintPhase = field(default_factory=Planned)

    @property
    def status(self) -> StintStatus:
        return self.phase.status

    @property
    def is_planned(self) -> bool:
        return self.status is StintStatus.PLANNED

    @property
    def is_active(self) -> bool:
        return self.status is StintStatus.ACTIVE

    @property
    def is_completed(self) -> bool:
        return self.status is StintStatus.COMPLETED

    @property
    def actual_start(self) -> Optional[datetime]:
        if isinstance(self.phase, (Active, Completed)):
            return self.phase.start
        return None

    @property
    def actual_finish(self) -> Optional[datetime]:
        if isinstance(self.phase, Completed):
            return self.phase.finish
        return None

    @property
    def calculated_length(self) -> Optional[float]:
        if isinstance(self.phase, Completed):
            return self.phase.calculated_length
        return None

    @property
    def fuel_taken(self) -> Optional[bool]:
        """True/False once completed, None while unknown."""
        if isinstance(self.phase, Completed):
            return self.phase.fuel_taken
        return None

    @property
    def pit_reason(self) -> Optional[PitReason]:
        if isinstance(self.phase, Completed):
            return self.phase.pit_reason
        return None

    @property
    def driver_changed(self) -> Optional[bool]:
        if isinstance(self.phase, Completed):
            return self.phase.driver_changed
        return None

    @property
    def race_time_minutes(self) -> float:
        """Minutes of race time this stint accounts for."""
        if self.calculated_length is not None:
            return self.calculated_length
        return self.planned_length

    def activate(
        self,
        start: datetime,
        driver: str,
        planned_length: Optional[float] = None
    ) -> "Stint":
        """Return this stint started at `start`."""
        if self.is_completed:
            raise ValueError(f"Stint {self.stint_number} is already completed")
        length = self.planned_length if planned_length is None else planned_length
        return replace(
            self,
            planned_length=length,
            predicted_start=start,
            predicted_finish=start + timedelta(minutes=length),
            driver=driver,
            phase=Active(start=start, driver=driver),
        )

    def complete(
        self,
        finish: datetime,
        calculated_length: float,
        fuel_taken: bool,
        pit_reason: PitReason,
        driver_changed: bool,
        driver: str
    ) -> "Stint":
        """Return this stint ended by a pit stop at `finish`."""
        if not self.is_active:
            raise ValueError(
                f"Only an active stint can be completed (stint {self.stint_number} "
                f"is {self.status.value})"
            )
        return replace(
            self,
            predicted_finish=finish,
            driver=driver,
            phase=Completed(
                start=self.actual_start,
                finish=finish,
                calculated_length=max(0.0, calculated_length),
                fuel_taken=fuel_taken,
                pit_reason=pit_reason,
                driver_changed=driver_changed,
            ),
        )

    def renumbered(self, stint_number: int) -> "Stint":
        return replace(self, stint_number=stint_number)


@dataclass(frozen=True)
class TeamState:
    """Live state of one team: its stint list and the pointers into it."""
    current_stint: int = 1  # 1-based
    stint_start_time: Optional[datetime] = None
    current_driver: int = 0
    stints: Tuple[Stint, ...] = ()
    last_pit_time: Optional[datetime] = None
    position: int = 1

    def active_index(self) -> Optional[int]:
        for index, stint in enumerate(self.stints):
            if stint.is_active:
                return index
        return None

    def active_stint(self) -> Optional[Stint]:
        index = self.active_index()
        return None if index is None else self.stints[index]

    def pointer_stint(self) -> Optional[Stint]:
        """Stint addressed by `current_stint`, if it exists."""
        index = self.current_stint - 1
        if 0 <= index < len(self.stints):
            return self.stints[index]
        return None

    def current(self) -> Optional[Stint]:
        """Active stint, falling back to the one under the pointer."""
        return self.active_stint() or self.pointer_stint()

    def completed_stints(self) -> List[Stint]:
        return [s for s in self.stints if s.is_completed]

    def has_history(self) -> bool:
        return any(not s.is_planned for s in self.stints)

    def with_stints(self, stints) -> "TeamState":
        return replace(self, stints=tuple(stints))

    def shifted(self, delta: timedelta) -> "TeamState":
        """Move the stint and pit clocks forward by `delta` (pause handling)."""
        return replace(
            self,
            stint_start_time=self.stint_start_time + delta if self.stint_start_time else None,
            last_pit_time=self.last_pit_time + delta if self.last_pit_time else None,
        )
