"""
Race Persistence
================
Saves and restores a race (configuration, team states, clock) as plain JSON.

Every datetime is written as an ISO-8601 string and parsed back on load.
Stint phases are flattened into a `status` field plus the phase-only
fields, and rebuilt on load.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .engine import RaceEngine
from .exceptions import PersistenceError, StintEngineError
from .race.types import (
    Active,
    Completed,
    PitReason,
    Planned,
    RaceConfig,
    Stint,
    StintStatus,
    TeamState,
)
from .timing.race_clock import ClockSnapshot, RaceClock

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def _dt_to_str(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _str_to_dt(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromisoformat(value)


def stint_to_dict(stint: Stint) -> Dict[str, Any]:
    return {
        'stintNumber': stint.stint_number,
        'status': stint.status.value,
        'plannedLength': stint.planned_length,
        'plannedStart': _dt_to_str(stint.planned_start),
        'plannedFinish': _dt_to_str(stint.planned_finish),
        'predictedStart': _dt_to_str(stint.predicted_start),
        'predictedFinish': _dt_to_str(stint.predicted_finish),
        'actualStart': _dt_to_str(stint.actual_start),
        'actualFinish': _dt_to_str(stint.actual_finish),
        'calculatedLength': stint.calculated_length,
        'fuelTaken': stint.fuel_taken,
        'pitReason': stint.pit_reason.value if stint.pit_reason else None,
        'driverChanged': stint.driver_changed,
        'pitTime': stint.pit_time,
        'actualPitTime': stint.actual_pit_time,
        'driver': stint.driver,
        'isUnscheduled': stint.is_unscheduled,
    }


def stint_from_dict(data: Dict[str, Any]) -> Stint:
    status = StintStatus(data.get('status', StintStatus.PLANNED.value))
    actual_start = _str_to_dt(data.get('actualStart'))
    driver = data.get('driver') or ''

    if status is StintStatus.ACTIVE:
        if actual_start is None:
            raise ValueError(f"active stint {data.get('stintNumber')} has no actualStart")
        phase = Active(start=actual_start, driver=driver)
    elif status is StintStatus.COMPLETED:
        finish = _str_to_dt(data.get('actualFinish'))
        if finish is None:
            raise ValueError(f"completed stint {data.get('stintNumber')} has no actualFinish")
        phase = Completed(
            start=actual_start,
            finish=finish,
            calculated_length=float(data.get('calculatedLength') or 0),
            fuel_taken=bool(data.get('fuelTaken')),
            pit_reason=PitReason(data.get('pitReason') or PitReason.SCHEDULED.value),
            driver_changed=bool(data.get('driverChanged')),
        )
    else:
        phase = Planned()

    return Stint(
        stint_number=int(data['stintNumber']),
        planned_length=float(data['plannedLength']),
        planned_start=_str_to_dt(data.get('plannedStart')),
        planned_finish=_str_to_dt(data.get('plannedFinish')),
        predicted_start=_str_to_dt(data.get('predictedStart')),
        predicted_finish=_str_to_dt(data.get('predictedFinish')),
        pit_time=float(data.get('pitTime') or 0),
        actual_pit_time=data.get('actualPitTime'),
        driver=driver,
        is_unscheduled=bool(data.get('isUnscheduled')),
        phase=phase,
    )


def team_state_to_dict(state: TeamState) -> Dict[str, Any]:
    return {
        'currentStint': state.current_stint,
        'stintStartTime': _dt_to_str(state.stint_start_time),
        'currentDriver': state.current_driver,
        'lastPitTime': _dt_to_str(state.last_pit_time),
        'position': state.position,
        'stints': [stint_to_dict(s) for s in state.stints],
    }


def team_state_from_dict(data: Dict[str, Any]) -> TeamState:
    return TeamState(
        current_stint=int(data.get('currentStint', 1)),
        stint_start_time=_str_to_dt(data.get('stintStartTime')),
        current_driver=int(data.get('currentDriver', 0)),
        stints=tuple(stint_from_dict(s) for s in data.get('stints') or ()),
        last_pit_time=_str_to_dt(data.get('lastPitTime')),
        position=int(data.get('position', 1)),
    )


def clock_to_dict(snapshot: ClockSnapshot) -> Dict[str, Any]:
    return {
        'raceStartTime': _dt_to_str(snapshot.race_start_time),
        'started': snapshot.started,
        'paused': snapshot.paused,
        'pausedAt': _dt_to_str(snapshot.paused_at),
        'fcyActive': snapshot.fcy_active,
        'currentTime': _dt_to_str(snapshot.current_time),
    }


def clock_from_dict(data: Dict[str, Any]) -> ClockSnapshot:
    return ClockSnapshot(
        race_start_time=_str_to_dt(data.get('raceStartTime')),
        started=bool(data.get('started')),
        paused=bool(data.get('paused')),
        paused_at=_str_to_dt(data.get('pausedAt')),
        fcy_active=bool(data.get('fcyActive')),
        current_time=_str_to_dt(data.get('currentTime')),
    )


def race_to_dict(engine: RaceEngine) -> Dict[str, Any]:
    """Plain-data view of everything needed to resume a race."""
    return {
        'raceConfig': engine.race_config.to_dict(),
        'teamStates': [team_state_to_dict(s) for s in engine.team_state_list()],
        'clock': clock_to_dict(engine.clock.snapshot()),
    }


def race_from_dict(data: Dict[str, Any]) -> RaceEngine:
    """
    Rebuild a race engine from `race_to_dict` output.

    Raises:
        PersistenceError: If the data is malformed
    """
    try:
        race_config = RaceConfig.from_dict(data['raceConfig'])
        team_states: List[TeamState] = [team_state_from_dict(s) for s in data.get('teamStates') or ()]
        snapshot = clock_from_dict(data.get('clock') or {})
    except StintEngineError as e:
        raise PersistenceError(f"Invalid saved race configuration: {e}") from e
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise PersistenceError(f"Malformed saved race: {e!r}") from e

    if team_states and len(team_states) != len(race_config.teams):
        raise PersistenceError(
            f"Saved race has {len(team_states)} team states for {len(race_config.teams)} teams"
        )

    try:
        return RaceEngine(
            race_config,
            clock=RaceClock.from_snapshot(snapshot),
            team_states=dict(enumerate(team_states)) if team_states else None,
        )
    except StintEngineError as e:
        raise PersistenceError(f"Invalid saved race configuration: {e}") from e


def save_race(engine: RaceEngine, path: Union[str, Path], indent: int = 2) -> Path:
    """Write a race to a JSON file, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, 'w') as f:
        json.dump(race_to_dict(engine), f, indent=indent)

    logger.info(f"Saved race to {path}")
    return path


def load_race(path: Union[str, Path]) -> RaceEngine:
    """
    Load a race saved with `save_race`.

    Raises:
        PersistenceError: If the file is missing or holds invalid data
    """
    path = Path(path)
    try:
        with open(path, 'r') as f:
            data = json.load(f)
    except OSError as e:
        raise PersistenceError(f"Cannot read {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise PersistenceError(f"{path} is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise PersistenceError(f"{path} does not contain a saved race")

    engine = race_from_dict(data)
    logger.info(f"Loaded race from {path}")
    return engine
