"""
Endurance Stint & Pit-Strategy Engine
=====================================
Stint scheduling and pit strategy for multi-team endurance races.

Modules:
- race: Race configuration, stint and team state types
- timing: Race clock, elapsed/remaining time, formatting
- analysis: Stint planning, recalculation, pit advice and pit execution
- engine: Race engine owning all live state
- persistence: JSON save/load of a race
- config: YAML race configuration loading
"""

__version__ = '1.0.0'
__author__ = 'Race Strategy Team'

from .analysis import (
    StintPlanner,
    ScheduleRecalculator,
    PitDecisionAdvisor,
    PitStopValidator,
    FCYStrategy,
    PitStopExecutor,
    PitStopEvent
)
from .config import load_race_config
from .engine import RaceEngine
from .exceptions import (
    StintEngineError,
    ConfigurationError,
    InvariantViolation,
    PersistenceError
)
from .persistence import load_race, save_race
from .race import PitReason, RaceConfig, Stint, StintStatus, Team, TeamState
from .timing import RaceClock

__all__ = [
    'StintPlanner',
    'ScheduleRecalculator',
    'PitDecisionAdvisor',
    'PitStopValidator',
    'FCYStrategy',
    'PitStopExecutor',
    'PitStopEvent',
    'RaceEngine',
    'RaceClock',
    'RaceConfig',
    'Team',
    'TeamState',
    'Stint',
    'StintStatus',
    'PitReason',
    'StintEngineError',
    'ConfigurationError',
    'InvariantViolation',
    'PersistenceError',
    'load_race_config',
    'load_race',
    'save_race'
]
