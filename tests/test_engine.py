"""
Race Engine, Persistence and Configuration Tests
================================================
"""

import json
import pytest
import sys
from datetime import datetime, timedelta
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from stint_engine.analysis.pit_stop_executor import PitStopEvent
from stint_engine.config import CONFIG_DIR, DEFAULT_RACE_FILE, load_race_config
from stint_engine.engine import RaceEngine
from stint_engine.exceptions import ConfigurationError, PersistenceError, StintEngineError
from stint_engine.persistence import load_race, race_from_dict, race_to_dict, save_race
from stint_engine.race.types import PitReason, RaceConfig, StintStatus, Team


START = datetime(2024, 6, 15, 16, 0, 0)
PIT = timedelta(seconds=170)


def make_engine():
    config = RaceConfig(
        track='Spa-Francorchamps',
        race_length_hours=24,
        fuel_range_minutes=108,
        min_pit_time_seconds=170,
        teams=(
            Team(number='7', name='Blue Arrow Racing', drivers=('Laurent', 'Okafor', 'Sato')),
            Team(number='46', name='Team Kessel', drivers=('Brandt', 'Moreau'),
                 driver_assignments=(1,)),
        ),
    )
    return RaceEngine(config)


def pit_event(minutes, team_index=0, reason=PitReason.SCHEDULED, fuel=True, driver_changed=True, driver=1):
    return PitStopEvent(
        team_index=team_index,
        pit_reason=reason,
        fuel_taken=fuel,
        driver_changed=driver_changed,
        selected_driver_index=driver,
        now=START + timedelta(minutes=minutes),
    )


class TestRaceEngine:
    """Tests for RaceEngine."""

    def test_initialization(self):
        """Test every team gets a fresh plan and a position."""
        engine = make_engine()

        assert len(engine.team_states) == 2
        assert all(len(s.stints) == 14 for s in engine.team_states.values())
        assert [s.position for s in engine.team_state_list()] == [1, 2]
        assert engine.remaining_race_time() == 1440

    def test_invalid_config_rejected(self):
        """Test the engine refuses an invalid configuration."""
        with pytest.raises(ConfigurationError):
            RaceEngine(RaceConfig(track='', race_length_hours=24, fuel_range_minutes=108,
                                  min_pit_time_seconds=170))

    def test_start_race(self):
        """Test the race start puts each team's first driver on track."""
        engine = make_engine()
        engine.start_race(START)

        first = engine.team_states[0].stints[0]
        assert first.is_active
        assert first.actual_start == START
        assert first.driver == 'Laurent'
        assert engine.team_states[1].stints[0].driver == 'Moreau'
        assert all(s.stint_start_time == START for s in engine.team_states.values())

    def test_queries(self):
        """Test elapsed and remaining time for a running team."""
        engine = make_engine()
        engine.start_race(START)
        now = START + timedelta(minutes=40)

        assert engine.elapsed_time(0, now) == pytest.approx(40)
        assert engine.remaining_time(0, now) == pytest.approx(68)
        assert engine.remaining_race_time(now) == pytest.approx(1400)
        assert engine.fcy_buffer(0, now).buffer_minutes == pytest.approx(48)
        assert not engine.can_pit_on_fcy(0, now)

    def test_pause_resume_shifts_team_clocks(self):
        """Test a pause does not count towards stint time."""
        engine = make_engine()
        engine.start_race(START)
        engine.pause_race(START + timedelta(minutes=30))
        engine.resume_race(START + timedelta(minutes=40))

        assert engine.race_start_time == START + timedelta(minutes=10)
        assert engine.team_states[0].stint_start_time == START + timedelta(minutes=10)
        assert engine.elapsed_time(0, START + timedelta(minutes=50)) == pytest.approx(40)

    def test_toggle_pause(self):
        """Test toggling pauses then resumes."""
        engine = make_engine()
        engine.start_race(START)

        engine.toggle_pause(START + timedelta(minutes=5))
        assert engine.clock.paused

        engine.toggle_pause(START + timedelta(minutes=6))
        assert not engine.clock.paused
        assert engine.team_states[1].stint_start_time == START + timedelta(minutes=1)

    def test_stop_race_resets_plans(self):
        """Test stopping the race resets every team."""
        engine = make_engine()
        engine.start_race(START)
        engine.toggle_fcy()
        engine.pit_and_recalculate(pit_event(100))

        engine.stop_race()

        assert engine.race_start_time is None
        assert not engine.clock.fcy_active
        for state in engine.team_states.values():
            assert state.stint_start_time is None
            assert all(s.status is StintStatus.PLANNED for s in state.stints)

    def test_pit_and_recalculate(self):
        """Test the pit stop is committed before the plan is rebuilt."""
        engine = make_engine()
        engine.start_race(START)

        state = engine.pit_and_recalculate(pit_event(25, reason=PitReason.UNSCHEDULED))

        assert engine.team_states[0] == state
        assert state.stints[0].is_completed
        assert state.stints[1].is_unscheduled
        assert state.stints[1].is_active
        assert state.current_driver == 1
        assert [s.stint_number for s in state.stints] == list(range(1, len(state.stints) + 1))
        assert sum(s.planned_length for s in state.stints[2:]) == pytest.approx(1307)
        # Other teams are untouched
        assert engine.team_states[1].stints[0].is_active

    def test_invalid_pit_stop_leaves_state(self):
        """Test a stop with no active stint is logged and ignored."""
        engine = make_engine()
        engine.start_race(START)
        engine.execute_pit_stop(pit_event(60, fuel=False))
        before = engine.team_states[0]

        after = engine.execute_pit_stop(pit_event(70))

        assert after == before
        assert engine.team_states[0] == before

    def test_unknown_team_pit_is_ignored(self):
        """Test a pit stop for a team that does not exist changes nothing."""
        engine = make_engine()
        engine.start_race(START)
        before = engine.team_state_list()

        assert engine.pit_and_recalculate(pit_event(30, team_index=5)) is None
        assert engine.execute_pit_stop(pit_event(30, team_index=-1)) is None
        assert engine.recalculate_team(5, START + timedelta(minutes=30)) is None
        assert engine.team_state_list() == before

    def test_recalculate_team_is_stable(self):
        """Test repeated recalculation with the same inputs changes nothing."""
        engine = make_engine()
        engine.start_race(START)
        now = START + timedelta(minutes=30)

        once = engine.recalculate_team(0, now)
        twice = engine.recalculate_team(0, now)

        assert once == twice

    def test_change_fuel_range_before_start(self):
        """Test a fuel change before the start regenerates every plan."""
        engine = make_engine()
        engine.change_fuel_range(120)

        assert engine.race_config.fuel_range_minutes == 120
        assert all(len(s.stints) == 12 for s in engine.team_states.values())

    def test_change_fuel_range_during_race(self):
        """Test a fuel change mid-race keeps completed stints."""
        engine = make_engine()
        engine.start_race(START)
        engine.pit_and_recalculate(pit_event(100))
        completed = engine.team_states[0].stints[0]

        engine.change_fuel_range(90, START + timedelta(minutes=120))

        state = engine.team_states[0]
        assert state.stints[0] == completed
        assert state.active_stint().planned_length == 90

    def test_change_fuel_range_rejects_out_of_range(self):
        """Test the fuel range limits."""
        engine = make_engine()

        with pytest.raises(ConfigurationError):
            engine.change_fuel_range(10)
        assert engine.race_config.fuel_range_minutes == 108

    def test_team_statistics(self):
        """Test progress figures after one stop."""
        engine = make_engine()
        engine.start_race(START)
        engine.pit_and_recalculate(pit_event(100))

        stats = engine.team_statistics(0, START + timedelta(minutes=100))

        assert stats['completed_stints'] == 1
        assert stats['active_stints'] == 1
        assert stats['average_stint_length'] == pytest.approx(100)
        assert stats['total_race_time'] == pytest.approx(100)
        assert 0 <= stats['efficiency'] <= 100

        df = engine.team_statistics_dataframe(START + timedelta(minutes=100))
        assert len(df) == 2
        assert 'Efficiency (%)' in df.columns

    def test_recommendations_and_validator(self):
        """Test engine-level advice helpers."""
        engine = make_engine()
        engine.start_race(START)
        now = START + timedelta(minutes=5)

        assert not engine.validator(now).can_execute_pit_stop(0)
        assert engine.pit_stop_recommendations(0, now)
        assert engine.next_pit_window(0, now).time_to_next_pit == 103


class TestPersistence:
    """Tests for JSON save / load."""

    def test_round_trip(self, tmp_path):
        """Test a race in progress survives a save and load."""
        engine = make_engine()
        engine.start_race(START)
        engine.tick(START + timedelta(minutes=30))
        engine.pit_and_recalculate(pit_event(30, reason=PitReason.UNSCHEDULED, fuel=False))
        engine.toggle_fcy()

        path = save_race(engine, tmp_path / 'saves' / 'race.json')
        restored = load_race(path)

        assert restored.race_config == engine.race_config
        assert restored.team_state_list() == engine.team_state_list()
        assert restored.clock.snapshot() == engine.clock.snapshot()

    def test_datetimes_are_iso_strings(self):
        """Test every datetime is written as ISO-8601."""
        engine = make_engine()
        engine.start_race(START)

        data = json.loads(json.dumps(race_to_dict(engine)))

        assert data['clock']['raceStartTime'] == START.isoformat()
        first = data['teamStates'][0]['stints'][0]
        assert first['status'] == 'active'
        assert first['actualStart'] == START.isoformat()

    def test_not_started_round_trip(self):
        """Test a race that has not started restores its plans."""
        engine = make_engine()
        restored = race_from_dict(race_to_dict(engine))

        assert restored.race_start_time is None
        assert restored.team_state_list() == engine.team_state_list()

    def test_malformed_data(self, tmp_path):
        """Test broken saves raise PersistenceError."""
        with pytest.raises(PersistenceError):
            race_from_dict({'raceConfig': {'track': 'Spa'}})

        engine = make_engine()
        engine.start_race(START)
        data = race_to_dict(engine)
        data['teamStates'][0]['stints'][0]['actualStart'] = None
        with pytest.raises(PersistenceError):
            race_from_dict(data)

        bad = tmp_path / 'bad.json'
        bad.write_text('{not json')
        with pytest.raises(PersistenceError):
            load_race(bad)

        with pytest.raises(PersistenceError):
            load_race(tmp_path / 'missing.json')

    def test_errors_share_base_class(self):
        """Test persistence errors are engine errors."""
        assert issubclass(PersistenceError, StintEngineError)
        assert issubclass(ConfigurationError, StintEngineError)


class TestConfigLoading:
    """Tests for YAML configuration loading."""

    def test_sample_config(self):
        """Test the bundled sample race loads and validates."""
        config = load_race_config()

        assert config.track == 'Spa-Francorchamps'
        assert config.fuel_range_minutes == 108
        assert len(config.teams) == 2

    def test_default_path_is_project_config(self):
        """Test the default race file is config/race.yaml in the project root."""
        assert CONFIG_DIR == Path(__file__).parent.parent / 'config'
        assert (CONFIG_DIR / DEFAULT_RACE_FILE).exists()

    def test_custom_file(self, tmp_path):
        """Test loading a race file from a given path."""
        path = tmp_path / 'monza.yaml'
        path.write_text(
            "track: Monza\n"
            "raceLengthHours: 6\n"
            "fuelRangeMinutes: 60\n"
            "minPitTimeSeconds: 90\n"
            "teams:\n"
            "  - number: '12'\n"
            "    name: Scuderia Test\n"
            "    drivers: [Rossi, Bianchi]\n"
        )

        config = load_race_config(path)

        assert config.track == 'Monza'
        assert config.teams[0].drivers == ('Rossi', 'Bianchi')

    def test_invalid_file(self, tmp_path):
        """Test missing, unparseable and invalid files."""
        with pytest.raises(ConfigurationError):
            load_race_config(tmp_path / 'missing.yaml')

        broken = tmp_path / 'broken.yaml'
        broken.write_text("track: [unclosed\n")
        with pytest.raises(ConfigurationError):
            load_race_config(broken)

        invalid = tmp_path / 'invalid.yaml'
        invalid.write_text(
            "track: Monza\nraceLengthHours: 100\nfuelRangeMinutes: 60\nminPitTimeSeconds: 90\n"
        )
        with pytest.raises(ConfigurationError) as exc:
            load_race_config(invalid)
        assert 'Race length must be between 1 and 48 hours' in exc.value.reasons


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
