"""
Pit Stop and Recalculation Tests
================================
"""

import pytest
import sys
from datetime import datetime, timedelta
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from stint_engine.analysis.pit_stop_executor import PitStopEvent, PitStopExecutor
from stint_engine.analysis.schedule_recalculator import ScheduleRecalculator
from stint_engine.analysis.stint_planner import StintPlanner
from stint_engine.exceptions import InvariantViolation
from stint_engine.race.types import PitReason, RaceConfig, Team, TeamState


START = datetime(2024, 6, 15, 16, 0, 0)
PIT = timedelta(seconds=170)

TEAM = Team(number='7', name='Blue Arrow Racing', drivers=('Laurent', 'Okafor', 'Sato'))
CONFIG = RaceConfig(
    track='Spa-Francorchamps',
    race_length_hours=24,
    fuel_range_minutes=108,
    min_pit_time_seconds=170,
    teams=(TEAM,),
)


def started_state():
    """Team state right after the green flag."""
    planner = StintPlanner(170)
    stints = planner.apply_race_start(planner.generate(108, 1440), START, 170, first_driver='Laurent')
    return TeamState(stint_start_time=START, stints=tuple(stints))


def pit(state, minutes, reason=PitReason.SCHEDULED, fuel=True, driver_changed=False, driver=0):
    event = PitStopEvent(
        team_index=0,
        pit_reason=reason,
        fuel_taken=fuel,
        driver_changed=driver_changed,
        selected_driver_index=driver,
        now=START + timedelta(minutes=minutes),
    )
    return PitStopExecutor().execute(state, TEAM, CONFIG, event)


class TestScheduledPitStop:
    """Tests for scheduled and FCY stops."""

    def test_scheduled_with_fuel(self):
        """Test the next planned stint becomes active after the pit time."""
        now = START + timedelta(minutes=100)
        state = pit(started_state(), 100, driver_changed=True, driver=1)

        first, second = state.stints[0], state.stints[1]
        assert first.is_completed
        assert first.calculated_length == pytest.approx(100)
        assert first.actual_finish == now
        assert first.driver == 'Laurent'
        assert first.pit_reason is PitReason.SCHEDULED

        assert second.is_active
        assert second.actual_start == now + PIT
        assert second.planned_length == 108
        assert second.driver == 'Okafor'

        assert state.current_stint == 2
        assert state.stint_start_time == now + PIT
        assert state.last_pit_time == now
        assert state.current_driver == 1
        assert len(state.stints) == 14

    def test_scheduled_without_fuel(self):
        """Test a no-fuel stop closes the stint without activating another."""
        state = pit(started_state(), 60, fuel=False)

        assert state.stints[0].is_completed
        assert state.stints[0].fuel_taken is False
        assert state.active_stint() is None
        assert state.current_stint == 1
        assert state.stint_start_time == START

    def test_fcy_stop_records_reason(self):
        """Test an FCY stop is recorded with its reason."""
        state = pit(started_state(), 90, reason=PitReason.FCY_OPPORTUNITY)
        assert state.stints[0].pit_reason is PitReason.FCY_OPPORTUNITY

    def test_driver_unchanged_without_change(self):
        """Test the current driver stays when no change was made."""
        state = pit(started_state(), 100, driver_changed=False, driver=2)

        assert state.current_driver == 0
        assert state.stints[1].driver == 'Laurent'

    def test_input_state_not_modified(self):
        """Test the executor returns a new state."""
        before = started_state()
        pit(before, 100)

        assert before == started_state()

    def test_no_active_stint_raises(self):
        """Test a second stop with nothing on track is an invariant violation."""
        state = pit(started_state(), 60, fuel=False)

        with pytest.raises(InvariantViolation) as exc:
            pit(state, 70)
        assert exc.value.team_index == 0


class TestUnscheduledPitStop:
    """Tests for unscheduled stops."""

    def test_without_fuel_inserts_remaining_stint(self):
        """Test the car rejoins with what was left in the tank."""
        now = START + timedelta(minutes=25)
        state = pit(started_state(), 25, reason=PitReason.UNSCHEDULED, fuel=False)

        assert len(state.stints) == 15
        assert state.stints[0].is_completed
        assert state.stints[0].pit_reason is PitReason.UNSCHEDULED

        inserted = state.stints[1]
        assert inserted.stint_number == 2
        assert inserted.is_active
        assert inserted.is_unscheduled
        assert inserted.planned_length == pytest.approx(83)
        assert inserted.actual_start == now + PIT
        assert inserted.planned_start == now + PIT

        assert [s.stint_number for s in state.stints] == list(range(1, 16))
        assert state.stints[-1].planned_length == 36
        assert state.current_stint == 2
        assert state.stint_start_time == now + PIT - timedelta(minutes=25)

    def test_with_fuel_starts_full_stint(self):
        """Test taking fuel resets the stint to the full range."""
        now = START + timedelta(minutes=25)
        state = pit(started_state(), 25, reason=PitReason.UNSCHEDULED, fuel=True)

        assert state.stints[1].planned_length == 108
        assert state.stint_start_time == now + PIT
        assert state.stints[0].fuel_taken is True


class TestScheduleRecalculator:
    """Tests for ScheduleRecalculator."""

    def test_recalculate_after_unscheduled_stop(self):
        """Test history is kept and the tail covers the remaining race."""
        now = START + timedelta(minutes=25)
        state = pit(started_state(), 25, reason=PitReason.UNSCHEDULED, fuel=True)

        stints = ScheduleRecalculator().recalculate(state, CONFIG, START, now)
        future = stints[2:]

        assert stints[0] == state.stints[0]
        assert stints[1] == state.stints[1]
        assert [s.stint_number for s in stints] == list(range(1, len(stints) + 1))
        assert all(s.is_planned for s in future)
        assert all(s.planned_length <= 108 for s in future)
        # 1415 minutes left, 108 of them on the current tank
        assert sum(s.planned_length for s in future) == pytest.approx(1307)

    def test_future_predictions_include_pit_time(self):
        """Test predicted starts add one pit stop per future stint."""
        now = START + timedelta(minutes=25)
        state = pit(started_state(), 25, reason=PitReason.UNSCHEDULED, fuel=True)

        stints = ScheduleRecalculator().recalculate(state, CONFIG, START, now)

        assert stints[2].predicted_start == now + timedelta(minutes=108) + PIT
        assert stints[3].predicted_start == now + timedelta(minutes=216) + 2 * PIT

    def test_recalculate_near_race_end(self):
        """Test no future stints are generated with 5 minutes or less left."""
        race_start = START - timedelta(minutes=1436)
        state = started_state()

        stints = ScheduleRecalculator().recalculate(state, CONFIG, race_start, START)

        assert len(stints) == 1
        assert stints[0].is_active

    def test_recalculate_not_started(self):
        """Test a race that has not started keeps its plan."""
        state = TeamState(stints=tuple(StintPlanner().generate(108, 1440)))
        assert ScheduleRecalculator().recalculate(state, CONFIG, None, START) == state.stints

    def test_recalculate_is_idempotent(self):
        """Test recalculating the recalculated state changes nothing."""
        now = START + timedelta(minutes=100)
        state = pit(started_state(), 100)
        recalculator = ScheduleRecalculator()

        once = state.with_stints(recalculator.recalculate(state, CONFIG, START, now))
        twice = once.with_stints(recalculator.recalculate(once, CONFIG, START, now))

        assert once == twice


class TestFuelChange:
    """Tests for recalculation after a fuel range change."""

    def test_ongoing_race_keeps_history(self):
        """Test completed stints survive and the active stint is resized."""
        now = START + timedelta(minutes=150)
        state = pit(started_state(), 100)
        config = CONFIG.with_fuel_range(90)

        new_state = ScheduleRecalculator().recalculate_for_fuel_change(state, config, START, now)

        assert new_state.stints[0] == state.stints[0]
        active = new_state.active_stint()
        assert active.stint_number == 2
        assert active.planned_length == 90
        assert all(s.planned_length <= 90 for s in new_state.stints[1:])
        assert [s.stint_number for s in new_state.stints] == list(range(1, len(new_state.stints) + 1))

    def test_restores_active_stint_without_history(self):
        """Test a plan with no started stint is regenerated and re-activated."""
        planned_only = TeamState(
            current_stint=3,
            current_driver=2,
            stint_start_time=START + timedelta(minutes=216),
            stints=tuple(StintPlanner().generate(108, 1440)),
        )
        config = CONFIG.with_fuel_range(100)
        now = START + timedelta(minutes=250)

        new_state = ScheduleRecalculator().recalculate_for_fuel_change(
            planned_only, config, START, now, team=TEAM
        )

        assert len(new_state.stints) == 15
        assert [s.stint_number for s in new_state.stints] == list(range(1, 16))

        earlier = new_state.stints[:2]
        assert all(s.is_completed for s in earlier)
        assert [s.calculated_length for s in earlier] == [100, 100]
        assert earlier[1].actual_start == START + timedelta(minutes=100)
        assert [s.driver for s in earlier] == ['Laurent', 'Okafor']

        restored = new_state.stints[2]
        assert restored.is_active
        assert restored.driver == 'Sato'
        assert restored.actual_start == START + timedelta(minutes=200)
        assert new_state.stint_start_time == START + timedelta(minutes=200)
        assert new_state.pointer_stint() == restored
        assert all(s.is_planned for s in new_state.stints[3:])

    def test_restore_is_idempotent(self):
        """Test repeating the fuel change on a restored plan changes nothing."""
        planned_only = TeamState(
            current_stint=3,
            stints=tuple(StintPlanner().generate(108, 1440)),
        )
        config = CONFIG.with_fuel_range(100)
        now = START + timedelta(minutes=250)
        recalculator = ScheduleRecalculator()

        once = recalculator.recalculate_for_fuel_change(planned_only, config, START, now, team=TEAM)
        twice = recalculator.recalculate_for_fuel_change(once, config, START, now, team=TEAM)

        assert once == twice

    def test_recalculate_after_restore_keeps_numbering(self):
        """Test a plain recalculation keeps the restored history and pointer."""
        planned_only = TeamState(
            current_stint=3,
            stints=tuple(StintPlanner().generate(108, 1440)),
        )
        config = CONFIG.with_fuel_range(100)
        now = START + timedelta(minutes=250)
        restored = ScheduleRecalculator().recalculate_for_fuel_change(planned_only, config, START, now)

        stints = ScheduleRecalculator().recalculate(restored, config, START, now + timedelta(minutes=10))
        state = restored.with_stints(stints)

        assert [s.stint_number for s in stints] == list(range(1, len(stints) + 1))
        assert state.pointer_stint().is_active
        assert state.pointer_stint().stint_number == 3

    def test_ongoing_fuel_change_is_idempotent(self):
        """Test repeating a mid-race fuel change changes nothing."""
        now = START + timedelta(minutes=150)
        state = pit(started_state(), 100)
        config = CONFIG.with_fuel_range(90)
        recalculator = ScheduleRecalculator()

        once = recalculator.recalculate_for_fuel_change(state, config, START, now, team=TEAM)
        twice = recalculator.recalculate_for_fuel_change(once, config, START, now, team=TEAM)

        assert once == twice

    def test_not_started_gives_fresh_plan(self):
        """Test a race that has not started just regenerates."""
        state = TeamState(stints=tuple(StintPlanner().generate(108, 1440)))
        config = CONFIG.with_fuel_range(120)

        new_state = ScheduleRecalculator().recalculate_for_fuel_change(state, config, None, START)

        assert len(new_state.stints) == 12
        assert all(s.planned_length == 120 for s in new_state.stints)


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
