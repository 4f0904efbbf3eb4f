"""
Tests for payload validation, the JSONL history store and the YAML engine
configuration.
"""

import json
from datetime import date, timedelta

import pytest

from lift_planner.core.config import MAX_EXERCISE_ROWS
from lift_planner.core.engine import config_loader
from lift_planner.core.engine.config_loader import (
    EngineDefaults,
    get_bundled_yaml_path,
    load_engine_config,
    load_engine_defaults,
)
from lift_planner.core.models import (
    DeviceReadinessInput,
    ExerciseSetRecord,
    ManualReadinessInput,
    SessionHistory,
    UserPreferences,
)
from lift_planner.io.history_store import HistoryStore, get_default_history_path
from lift_planner.io.serializers import (
    ValidationError,
    dict_to_exercise_history,
    dict_to_plan_target,
    dict_to_readiness_input,
    json_line_to_session,
    parse_exercise_entry,
    parse_one_rm_option,
    session_to_json_line,
    validate_date,
)


def _session(session_id: int, day: date, template_id: int | None = 1, rows=None) -> SessionHistory:
    rows = rows or [("Squat", 100.0, 5, 3, 10)]
    return SessionHistory(
        session_id=session_id,
        workout_date=day,
        template_id=template_id,
        template_name="Leg day" if template_id else None,
        exercises=[
            ExerciseSetRecord(
                exercise_name=name,
                workout_date=day,
                weight=weight,
                reps=reps,
                sets=sets,
                master_exercise_id=master_id,
            )
            for name, weight, reps, sets, master_id in rows
        ],
    )


@pytest.fixture
def store(tmp_path):
    s = HistoryStore(tmp_path / "history.jsonl")
    s.init()
    return s


# ---------------------------------------------------------------------------
# Serializers
# ---------------------------------------------------------------------------


class TestReadinessPayloads:
    def test_device_payload(self):
        data = dict_to_readiness_input({"recovery_score": 80, "hrv_now_ms": "45"})
        assert isinstance(data, DeviceReadinessInput)
        assert data.recovery_score == 80.0
        assert data.hrv_now_ms == 45.0

    def test_manual_fields_select_manual_variant(self):
        data = dict_to_readiness_input(
            {"energy_level": 7, "sleep_quality": 6, "recovery_score": 40, "notes": "tired"}
        )
        assert isinstance(data, ManualReadinessInput)
        assert data.device.recovery_score == 40.0
        assert data.notes == "tired"

    def test_nested_device_block(self):
        data = dict_to_readiness_input(
            {"energy_level": 7, "sleep_quality": 6, "device": {"hrv_now_ms": 50, "hrv_baseline_ms": 40}}
        )
        assert data.device.hrv_baseline_ms == 40.0

    def test_manual_without_device(self):
        data = dict_to_readiness_input({"energy_level": 7, "sleep_quality": 6})
        assert data.device is None

    def test_whole_float_rating_is_accepted(self):
        data = dict_to_readiness_input({"energy_level": 7.0, "sleep_quality": "6"})
        assert (data.energy_level, data.sleep_quality) == (7, 6)

    @pytest.mark.parametrize(
        "payload",
        [
            {"energy_level": 7.9, "sleep_quality": 6},
            {"energy_level": 7, "sleep_quality": "6.5"},
        ],
    )
    def test_fractional_rating_is_rejected(self, payload):
        with pytest.raises(ValidationError, match="must be a"):
            dict_to_readiness_input(payload)

    @pytest.mark.parametrize(
        "payload",
        [
            {"recovery_score": 150},
            {"recovery_score": "high"},
            {"recovery_score": True},
            {"energy_level": 7},
            {"energy_level": 7, "sleep_quality": 6, "notes": 5},
            {"device": "whoop"},
            [],
        ],
    )
    def test_invalid_payloads(self, payload):
        with pytest.raises(ValidationError):
            dict_to_readiness_input(payload)


class TestHistoryPayloads:
    def test_session_json_line(self):
        session = _session(3, date(2024, 1, 8))
        line = session_to_json_line(session)
        assert "\n" not in line

        loaded = json_line_to_session(line)
        record = loaded.exercises[0]
        assert loaded.session_id == 3
        assert loaded.template_name == "Leg day"
        assert record.volume_load == 1500.0
        assert record.one_rm_estimate == pytest.approx(112.5)
        assert record.master_exercise_id == 10

    def test_stored_metrics_are_kept(self):
        line = json.dumps({
            "session_id": 1,
            "workout_date": "2024-01-08",
            "exercises": [{"exercise_name": "Squat", "weight": 100, "reps": 5, "one_rm_estimate": 120}],
        })
        assert json_line_to_session(line).exercises[0].one_rm_estimate == 120.0

    def test_zero_sets_is_kept(self):
        line = json.dumps({
            "session_id": 1,
            "workout_date": "2024-01-08",
            "exercises": [
                {"exercise_name": "Squat", "weight": 100, "reps": 5, "sets": 0},
                {"exercise_name": "Bench Press", "weight": 80, "reps": 5},
            ],
        })
        squat, bench = json_line_to_session(line).exercises
        assert squat.sets == 0
        assert squat.volume_load == 0.0
        assert bench.sets == 1
        assert bench.volume_load == 400.0

    def test_fractional_reps_are_rejected(self):
        line = json.dumps({
            "session_id": 1,
            "workout_date": "2024-01-08",
            "exercises": [{"exercise_name": "Squat", "weight": 100, "reps": 5.5}],
        })
        with pytest.raises(ValidationError):
            json_line_to_session(line)

    @pytest.mark.parametrize(
        "line",
        [
            "not json",
            json.dumps({"workout_date": "2024-01-08"}),
            json.dumps({"session_id": 1, "workout_date": "08/01/2024"}),
            json.dumps({"session_id": 1, "workout_date": "2024-01-08", "exercises": "Squat"}),
            json.dumps({
                "session_id": 1,
                "workout_date": "2024-01-08",
                "exercises": [{"exercise_name": "Squat", "weight": -5}],
            }),
        ],
    )
    def test_invalid_lines(self, line):
        with pytest.raises(ValidationError):
            json_line_to_session(line)

    def test_exercise_history_sorted_newest_first(self):
        history = dict_to_exercise_history({
            "exercise_name": "Bench Press",
            "sessions": [
                {"workout_date": "2024-01-01", "sets": [{"weight": 80, "reps": 8}]},
                {"workout_date": "2024-01-08", "sets": [{"weight": 82.5, "reps": 8}]},
            ],
        })
        assert history.sessions[0].workout_date == date(2024, 1, 8)
        assert history.sessions[0].total_volume == 660.0

    def test_validate_date(self):
        assert validate_date("2024-02-29") == date(2024, 2, 29)
        with pytest.raises(ValidationError):
            validate_date("2023-02-29")


class TestPlanTargetPayloads:
    def test_plan_target(self):
        target = dict_to_plan_target({
            "name": "Bench Press",
            "tags": ["strength"],
            "sets": [{"target_reps": 5, "target_weight_kg": 100}, {"set_id": "top", "target_reps": 3}],
        })
        assert target.exercise_id == "Bench Press"
        assert [s.set_id for s in target.sets] == ["set-1", "top"]
        assert target.sets[0].target_weight_kg == 100.0

    def test_unknown_tag(self):
        with pytest.raises(ValidationError):
            dict_to_plan_target({"name": "Bench Press", "tags": ["speed"]})

    def test_missing_name(self):
        with pytest.raises(ValidationError):
            dict_to_plan_target({"sets": []})

    def test_invalid_rpe(self):
        with pytest.raises(ValidationError):
            dict_to_plan_target({"name": "Squat", "sets": [{"target_rpe": 12}]})


class TestCommandLineParsers:
    @pytest.mark.parametrize(
        "entry,expected",
        [
            ("Squat: 100x5x3", ("Squat", 100.0, 5, 3)),
            ("Bench Press: 82.5x8", ("Bench Press", 82.5, 8, 1)),
            ("Pull-up: 12", ("Pull-up", None, 12, 1)),
            ("Squat: 100 X 5 x 3", ("Squat", 100.0, 5, 3)),
        ],
    )
    def test_exercise_entry(self, entry, expected):
        assert parse_exercise_entry(entry) == expected

    @pytest.mark.parametrize("entry", ["Squat 100x5", ": 100x5", "Squat: heavy", "Squat: 100x5x0"])
    def test_invalid_exercise_entry(self, entry):
        with pytest.raises(ValidationError):
            parse_exercise_entry(entry)

    def test_one_rm_option(self):
        assert parse_one_rm_option("Bench Press=102.5") == ("Bench Press", 102.5)

    @pytest.mark.parametrize("entry", ["Squat", "=140", "Squat=lots", "Squat=-5"])
    def test_invalid_one_rm_option(self, entry):
        with pytest.raises(ValidationError):
            parse_one_rm_option(entry)


# ---------------------------------------------------------------------------
# History store
# ---------------------------------------------------------------------------


class TestHistoryStore:
    def test_init_creates_file(self, tmp_path):
        store = HistoryStore(tmp_path / "nested" / "history.jsonl")
        assert not store.exists()
        store.init()
        assert store.exists()
        assert store.load_history() == []

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            HistoryStore(tmp_path / "missing.jsonl").load_history()

    def test_append_and_sort(self, store):
        store.append_session(_session(2, date(2024, 1, 10)))
        store.append_session(_session(1, date(2024, 1, 8)))

        sessions = store.load_history()
        assert [s.session_id for s in sessions] == [1, 2]
        assert store.next_session_id() == 3

    def test_append_replaces_same_id(self, store):
        store.append_session(_session(1, date(2024, 1, 8)))
        store.append_session(_session(1, date(2024, 1, 9)))

        sessions = store.load_history()
        assert len(sessions) == 1
        assert sessions[0].workout_date == date(2024, 1, 9)

    def test_invalid_line_reports_line_number(self, store):
        store.append_session(_session(1, date(2024, 1, 8)))
        with open(store.history_path, "a") as f:
            f.write("{broken\n")

        with pytest.raises(ValidationError, match="line 2"):
            store.load_history()

    def test_fetch_by_template(self, store):
        store.append_session(_session(1, date(2024, 1, 8), template_id=1))
        store.append_session(_session(2, date(2024, 1, 10), template_id=2))
        store.append_session(_session(3, date(2024, 1, 12), template_id=1))

        sessions = store.fetch_sessions_by_template("local", [1], limit=20)
        assert [s.session_id for s in sessions] == [3, 1]
        assert store.fetch_sessions_by_template("local", [1], limit=1)[0].session_id == 3

    def test_fetch_by_exercise_keeps_matching_rows(self, store):
        store.append_session(
            _session(1, date(2024, 1, 8), rows=[("Squat", 100.0, 5, 3, 10), ("Bench Press", 80.0, 5, 3, 20)])
        )
        store.append_session(_session(2, date(2024, 1, 10), rows=[("Bench Press", 82.5, 5, 3, 20)]))

        sessions = store.fetch_sessions_by_exercise("local", [10], limit=20)
        assert [s.session_id for s in sessions] == [1]
        assert [ex.exercise_name for ex in sessions[0].exercises] == ["Squat"]

    def test_fetch_by_exercise_caps_total_rows(self, store):
        # 20 sessions × 6 rows = 120 rows; only the newest 100 come back
        start = date(2024, 1, 1)
        for i in range(20):
            store.append_session(
                _session(i + 1, start + timedelta(days=i), rows=[("Squat", 100.0, 5, 1, 10)] * 6)
            )

        sessions = store.fetch_sessions_by_exercise("local", [10], limit=20)

        assert sum(len(s.exercises) for s in sessions) == MAX_EXERCISE_ROWS
        assert sessions[0].session_id == 20
        assert len(sessions) == 17
        assert len(sessions[-1].exercises) == 4

    def test_load_exercise_history(self, store):
        store.append_session(_session(1, date(2024, 1, 8)))
        store.append_session(_session(2, date(2024, 1, 10), rows=[("Squat", 102.5, 5, 2, 10)]))
        store.append_session(_session(3, date(2024, 1, 12), rows=[("Squat", 105.0, 5, 1, 10)]))

        history = store.load_exercise_history(["Squat", "Deadlift"])
        squat = history["Squat"]

        assert "Deadlift" not in history
        assert [s.workout_date for s in squat.sessions] == [date(2024, 1, 12), date(2024, 1, 10)]
        assert len(squat.sessions[1].sets) == 2
        assert squat.sessions[1].total_volume == 1025.0

    def test_load_exercise_history_without_file(self, tmp_path):
        assert HistoryStore(tmp_path / "history.jsonl").load_exercise_history(["Squat"]) == {}

    def test_preferences(self, store):
        assert store.load_preferences() == UserPreferences()

        prefs = UserPreferences(
            progression_type="linear",
            training_days_per_week=4,
            recovery_strategy="conservative",
            recovery_sensitivity=8,
        )
        store.save_preferences(prefs)
        assert store.load_preferences() == prefs

    def test_invalid_preferences_fall_back_to_defaults(self, store):
        store.preferences_path.write_text(json.dumps({"training_days_per_week": 9}))
        assert store.load_preferences() == UserPreferences()

    def test_invalid_recovery_sensitivity_falls_back_to_defaults(self, store):
        store.preferences_path.write_text(json.dumps({"recovery_sensitivity": 12}))
        assert store.load_preferences() == UserPreferences()

    def test_older_preferences_file_gets_recovery_defaults(self, store):
        store.preferences_path.write_text(json.dumps({"progression_type": "linear"}))
        prefs = store.load_preferences()
        assert prefs.recovery_strategy == "moderate"
        assert prefs.recovery_sensitivity == 5

    def test_default_path_honours_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LIFT_PLANNER_HOME", str(tmp_path))
        assert get_default_history_path() == tmp_path / "history.jsonl"


# ---------------------------------------------------------------------------
# Engine configuration
# ---------------------------------------------------------------------------


class TestEngineConfig:
    def test_bundled_yaml_is_found(self):
        path = get_bundled_yaml_path()
        assert path is not None
        assert path.name == "engine.yaml"

    def test_bundled_defaults(self, tmp_path, monkeypatch):
        monkeypatch.setenv("HOME", str(tmp_path))
        assert load_engine_defaults() == EngineDefaults()

    def test_empty_config_uses_python_defaults(self):
        defaults = load_engine_defaults({})
        assert defaults.weight_increment_kg == 2.5
        assert defaults.training_days_per_week == 3
        assert defaults.recent_session_limit == 20

    def test_invalid_values_fall_back(self):
        defaults = load_engine_defaults({
            "defaults": {
                "weight_increment_kg": "heavy",
                "training_days_per_week": 9,
                "experience_level": "elite",
            },
            "history": {"recent_session_limit": 50},
        })
        assert defaults == EngineDefaults()

    def test_user_override_is_merged(self, tmp_path, monkeypatch):
        monkeypatch.setenv("HOME", str(tmp_path))
        user_dir = tmp_path / ".lift-planner"
        user_dir.mkdir()
        (user_dir / "engine.yaml").write_text("defaults:\n  weight_increment_kg: 1.25\n")

        config = load_engine_config()
        defaults = load_engine_defaults(config)

        assert defaults.weight_increment_kg == 1.25
        # keys not overridden keep the bundled values
        assert config["history"]["recent_session_limit"] == 20

    def test_broken_user_yaml_is_ignored(self, tmp_path, monkeypatch):
        monkeypatch.setenv("HOME", str(tmp_path))
        user_dir = tmp_path / ".lift-planner"
        user_dir.mkdir()
        (user_dir / "engine.yaml").write_text("defaults: [unclosed\n")

        assert load_engine_defaults() == EngineDefaults()

    def test_deep_merge(self):
        merged = config_loader._deep_merge({"a": {"x": 1, "y": 2}, "b": 1}, {"a": {"y": 3}})
        assert merged == {"a": {"x": 1, "y": 3}, "b": 1}
