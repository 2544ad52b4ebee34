"""
Race Module
===========
Race configuration, stint and team state types.
"""

from .types import (
    Active,
    Completed,
    PitReason,
    Planned,
    RaceConfig,
    Stint,
    StintStatus,
    Team,
    TeamState
)

__all__ = [
    'Active',
    'Completed',
    'PitReason',
    'Planned',
    'RaceConfig',
    'Stint',
    'StintStatus',
    'Team',
    'TeamState'
]
