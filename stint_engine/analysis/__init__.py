"""
Analysis Module
==============
Stint planning and pit strategy tools.
"""

from .stint_planner import StintPlanner, generate_stint_plan
from .schedule_recalculator import (
    ScheduleRecalculator,
    recalculate_stint_plan,
    recalculate_for_fuel_change
)
from .pit_advisor import PitDecisionAdvisor, FCYBuffer, PitWindowStatus, PitUrgency, PitAction
from .pit_validation import PitStopValidator, ValidationResult
from .fcy_strategy import FCYStrategy, FuelAdvice
from .pit_stop_executor import PitStopExecutor, PitStopEvent, execute_pit_stop

__all__ = [
    'StintPlanner',
    'generate_stint_plan',
    'ScheduleRecalculator',
    'recalculate_stint_plan',
    'recalculate_for_fuel_change',
    'PitDecisionAdvisor',
    'FCYBuffer',
    'PitWindowStatus',
    'PitUrgency',
    'PitAction',
    'PitStopValidator',
    'ValidationResult',
    'FCYStrategy',
    'FuelAdvice',
    'PitStopExecutor',
    'PitStopEvent',
    'execute_pit_stop'
]
