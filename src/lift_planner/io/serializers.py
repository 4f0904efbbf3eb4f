"""
JSON serialization for lift-planner data models.

Handles conversion between dataclasses and JSON-compatible dicts, and is
the boundary where raw payloads are validated.  Model constructors raise
ValueError; here those become ValidationError with the offending field
named.
"""

import json
import re
from dataclasses import asdict
from datetime import date
from typing import Any, Callable, TypeVar

from ..core.models import (
    DeviceReadinessInput,
    ExerciseHistory,
    ExercisePlanTarget,
    ExerciseSessionHistory,
    ExerciseSetRecord,
    HistoricalSet,
    ManualReadinessInput,
    PlanningContext,
    PRForecast,
    ReadinessInput,
    ReadinessResult,
    RecoveryPlan,
    SessionAdvice,
    SessionHistory,
    SetTarget,
    UserPreferences,
    WeeklyPlan,
)

T = TypeVar("T")

DEVICE_FIELDS = (
    "recovery_score",
    "sleep_performance",
    "hrv_now_ms",
    "hrv_baseline_ms",
    "rhr_now_bpm",
    "rhr_baseline_bpm",
    "yesterday_strain",
)
MANUAL_FIELDS = ("energy_level", "sleep_quality")


class ValidationError(ValueError):
    """Raised when data validation fails."""

    pass


def _build(factory: Callable[..., T], what: str, **kwargs: Any) -> T:
    """Construct a model, re-raising its ValueError as ValidationError."""
    try:
        return factory(**kwargs)
    except ValidationError:
        raise
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid {what}: {e}") from e


def _require(data: dict[str, Any], key: str, what: str) -> Any:
    if data.get(key) is None:
        raise ValidationError(f"Missing required field '{key}' in {what}")
    return data[key]


def _optional_number(data: dict[str, Any], key: str, cast: Callable[[Any], T]) -> T | None:
    """
    Read an optional numeric field.

    Integer fields accept whole floats (7.0) but reject fractional ones
    instead of truncating them.
    """
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be a number, got {value!r}")
    if cast is int and isinstance(value, float) and not value.is_integer():
        raise ValidationError(f"{key} must be a whole number, got {value!r}")
    try:
        return cast(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{key} must be a number, got {value!r}") from e


def _expect_dict(data: Any, what: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise ValidationError(f"{what} must be a JSON object, got {type(data).__name__}")
    return data


def validate_date(date_str: Any) -> date:
    """
    Parse an ISO date.

    Raises:
        ValidationError: If the value is not a YYYY-MM-DD string
    """
    if isinstance(date_str, date):
        return date_str
    try:
        return date.fromisoformat(str(date_str))
    except ValueError as e:
        raise ValidationError(f"Invalid date: {date_str!r}. Expected YYYY-MM-DD") from e


# =============================================================================
# Readiness
# =============================================================================


def _device_from_dict(data: dict[str, Any]) -> DeviceReadinessInput:
    return _build(
        DeviceReadinessInput,
        "device readiness input",
        **{k: _optional_number(data, k, float) for k in DEVICE_FIELDS},
    )


def dict_to_readiness_input(data: dict[str, Any]) -> ReadinessInput:
    """
    Resolve a raw payload into one readiness variant.

    A payload carrying either manual wellness field selects the manual
    variant; device fields present alongside it (top level or under
    "device") are attached as its device data.  Otherwise the payload is
    read as device input.

    Raises:
        ValidationError: On non-numeric or out-of-range values
    """
    data = _expect_dict(data, "readiness input")
    nested = data.get("device")
    device_data = _expect_dict(nested, "device") if nested is not None else data

    if any(data.get(k) is not None for k in MANUAL_FIELDS):
        for k in MANUAL_FIELDS:
            _require(data, k, "manual readiness input")
        device = None
        if any(device_data.get(k) is not None for k in DEVICE_FIELDS):
            device = _device_from_dict(device_data)
        notes = data.get("notes")
        if notes is not None and not isinstance(notes, str):
            raise ValidationError("notes must be a string")
        return _build(
            ManualReadinessInput,
            "manual readiness input",
            energy_level=_optional_number(data, "energy_level", int),
            sleep_quality=_optional_number(data, "sleep_quality", int),
            notes=notes,
            device=device,
        )

    return _device_from_dict(device_data)


def readiness_result_to_dict(result: ReadinessResult) -> dict[str, Any]:
    return {"rho": result.rho, "flags": list(result.flags)}


# =============================================================================
# Session history
# =============================================================================


def exercise_record_to_dict(record: ExerciseSetRecord) -> dict[str, Any]:
    """
    Convert ExerciseSetRecord to JSON-compatible dict.

    Derived metrics are stored so that later reads keep the historical
    values even if the formulas change.
    """
    data: dict[str, Any] = {
        "exercise_name": record.exercise_name,
        "weight": record.weight,
        "reps": record.reps,
        "sets": record.sets,
        "unit": record.unit,
        "volume_load": record.volume_load,
        "one_rm_estimate": record.one_rm_estimate,
    }
    if record.resolved_exercise_name:
        data["resolved_exercise_name"] = record.resolved_exercise_name
    if record.master_exercise_id is not None:
        data["master_exercise_id"] = record.master_exercise_id
    return data


def dict_to_exercise_record(data: dict[str, Any], workout_date: date) -> ExerciseSetRecord:
    """
    Convert dict to ExerciseSetRecord.

    Raises:
        ValidationError: If data is invalid
    """
    data = _expect_dict(data, "exercise record")
    sets = _optional_number(data, "sets", int)
    return _build(
        ExerciseSetRecord,
        "exercise record",
        exercise_name=_require(data, "exercise_name", "exercise record"),
        workout_date=workout_date,
        weight=_optional_number(data, "weight", float),
        reps=_optional_number(data, "reps", int),
        sets=1 if sets is None else sets,
        unit=data.get("unit", "kg"),
        volume_load=_optional_number(data, "volume_load", float),
        one_rm_estimate=_optional_number(data, "one_rm_estimate", float),
        resolved_exercise_name=data.get("resolved_exercise_name"),
        master_exercise_id=_optional_number(data, "master_exercise_id", int),
    )


def session_history_to_dict(session: SessionHistory) -> dict[str, Any]:
    return {
        "session_id": session.session_id,
        "workout_date": session.workout_date.isoformat(),
        "template_id": session.template_id,
        "template_name": session.template_name,
        "exercises": [exercise_record_to_dict(ex) for ex in session.exercises],
    }


def dict_to_session_history(data: dict[str, Any]) -> SessionHistory:
    """
    Convert dict to SessionHistory.

    Raises:
        ValidationError: If data is invalid
    """
    data = _expect_dict(data, "session")
    _require(data, "session_id", "session")
    workout_date = validate_date(_require(data, "workout_date", "session"))
    exercises = data.get("exercises") or []
    if not isinstance(exercises, list):
        raise ValidationError("exercises must be a list")

    return SessionHistory(
        session_id=_optional_number(data, "session_id", int),
        workout_date=workout_date,
        template_id=_optional_number(data, "template_id", int),
        template_name=data.get("template_name"),
        exercises=[dict_to_exercise_record(ex, workout_date) for ex in exercises],
    )


def session_to_json_line(session: SessionHistory) -> str:
    """Serialize a session to a single JSON line (no trailing newline)."""
    return json.dumps(session_history_to_dict(session), separators=(",", ":"))


def json_line_to_session(line: str) -> SessionHistory:
    """
    Deserialize a JSON line to a SessionHistory.

    Raises:
        ValidationError: If JSON is invalid or data validation fails
    """
    try:
        data = json.loads(line.strip())
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON: {e}") from e

    return dict_to_session_history(data)


def dict_to_exercise_history(data: dict[str, Any]) -> ExerciseHistory:
    """
    Convert {"exercise_name", "sessions": [{"workout_date", "sets": [...]}]}.

    Sessions are re-sorted newest first.
    """
    data = _expect_dict(data, "exercise history")
    sessions = []
    for raw in data.get("sessions") or []:
        raw = _expect_dict(raw, "history session")
        sets = []
        for s in raw.get("sets") or []:
            s = _expect_dict(s, "history set")
            sets.append(
                HistoricalSet(
                    weight=_optional_number(s, "weight", float),
                    reps=_optional_number(s, "reps", int),
                    volume=_optional_number(s, "volume", float),
                )
            )
        sessions.append(
            ExerciseSessionHistory(
                workout_date=validate_date(_require(raw, "workout_date", "history session")),
                sets=sets,
            )
        )
    sessions.sort(key=lambda s: s.workout_date, reverse=True)
    return ExerciseHistory(
        exercise_name=_require(data, "exercise_name", "exercise history"),
        sessions=sessions,
    )


# =============================================================================
# Prescription input / output
# =============================================================================


def dict_to_set_target(data: dict[str, Any], index: int) -> SetTarget:
    data = _expect_dict(data, "set target")
    return _build(
        SetTarget,
        "set target",
        set_id=str(data.get("set_id") or f"set-{index + 1}"),
        target_reps=_optional_number(data, "target_reps", int),
        target_weight_kg=_optional_number(data, "target_weight_kg", float),
        target_rpe=_optional_number(data, "target_rpe", float),
    )


def dict_to_plan_target(data: dict[str, Any]) -> ExercisePlanTarget:
    """
    Convert {"exercise_id", "name", "tags", "sets": [...]} to ExercisePlanTarget.

    Raises:
        ValidationError: On missing name, unknown tags or invalid set targets
    """
    data = _expect_dict(data, "exercise target")
    name = _require(data, "name", "exercise target")
    tags = data.get("tags") or []
    if not isinstance(tags, list):
        raise ValidationError("tags must be a list")
    sets = data.get("sets") or []
    if not isinstance(sets, list):
        raise ValidationError("sets must be a list")

    return _build(
        ExercisePlanTarget,
        "exercise target",
        exercise_id=str(data.get("exercise_id") or name),
        name=name,
        tags=set(tags),
        sets=[dict_to_set_target(s, i) for i, s in enumerate(sets)],
    )


def session_advice_to_dict(advice: SessionAdvice) -> dict[str, Any]:
    """Convert SessionAdvice to a JSON-compatible dict."""
    return asdict(advice)


# =============================================================================
# Preferences, context and plans
# =============================================================================


def preferences_to_dict(prefs: UserPreferences) -> dict[str, Any]:
    return asdict(prefs)


def dict_to_preferences(data: dict[str, Any]) -> UserPreferences:
    """
    Convert dict to UserPreferences; absent keys keep their defaults.

    Raises:
        ValidationError: On invalid values
    """
    data = _expect_dict(data, "preferences")
    kwargs: dict[str, Any] = {}
    if data.get("default_weight_unit") is not None:
        kwargs["default_weight_unit"] = data["default_weight_unit"]
    if data.get("progression_type") is not None:
        kwargs["progression_type"] = data["progression_type"]
    if data.get("training_days_per_week") is not None:
        kwargs["training_days_per_week"] = _optional_number(data, "training_days_per_week", int)
    if data.get("weight_increment_kg") is not None:
        kwargs["weight_increment_kg"] = _optional_number(data, "weight_increment_kg", float)
    if data.get("recovery_strategy") is not None:
        kwargs["recovery_strategy"] = data["recovery_strategy"]
    if data.get("recovery_sensitivity") is not None:
        kwargs["recovery_sensitivity"] = _optional_number(data, "recovery_sensitivity", int)
    return _build(UserPreferences, "preferences", **kwargs)


def weekly_plan_to_dict(week: WeeklyPlan) -> dict[str, Any]:
    """Convert WeeklyPlan to dict, including the derived volume targets."""
    return {
        "week_number": week.week_number,
        "week_type": week.week_type,
        "volume_target": week.volume_target,
        "progression_formula": week.progression_formula,
        "sessions": [
            {
                "session_number": s.session_number,
                "day_of_week": s.day_of_week,
                "total_volume_target": s.total_volume_target,
                "estimated_duration_minutes": s.estimated_duration_minutes,
                "notes": s.notes,
                "exercises": [asdict(ex) for ex in s.exercises],
            }
            for s in week.sessions
        ],
    }


def planning_context_to_dict(context: PlanningContext) -> dict[str, Any]:
    """Convert PlanningContext to a JSON-compatible dict (dates as ISO strings)."""
    return {
        "user_id": context.user_id,
        "target_type": context.target_type,
        "target_ids": list(context.target_ids),
        "duration": context.duration,
        "goal_preset": context.goal_preset,
        "goal_text": context.goal_text,
        "periodization": context.periodization,
        "recent_sessions": [session_history_to_dict(s) for s in context.recent_sessions],
        "current_one_rm_estimates": dict(context.current_one_rm_estimates),
        "preferences": preferences_to_dict(context.preferences),
        "volume_trends": [
            {
                "exercise_name": t.exercise_name,
                "trend_slope": t.trend_slope,
                "weekly_data": [
                    {
                        "week_start": w.week_start.isoformat(),
                        "total_volume": w.total_volume,
                        "session_count": w.session_count,
                        "average_intensity": w.average_intensity,
                    }
                    for w in t.weekly_data
                ],
            }
            for t in context.volume_trends
        ],
        "available_equipment": list(context.available_equipment),
    }


def plan_target_to_dict(target: ExercisePlanTarget) -> dict[str, Any]:
    return {
        "exercise_id": target.exercise_id,
        "name": target.name,
        "tags": sorted(target.tags),
        "sets": [asdict(s) for s in target.sets],
    }


def recovery_plan_to_dict(plan: RecoveryPlan) -> dict[str, Any]:
    """Convert RecoveryPlan to a JSON-compatible dict (tags as sorted lists)."""
    return {
        "rho": plan.rho,
        "flags": list(plan.flags),
        "strategy": plan.strategy,
        "adjustment": asdict(plan.adjustment),
        "exercises": [plan_target_to_dict(t) for t in plan.exercises],
    }


def pr_forecast_to_dict(forecast: PRForecast) -> dict[str, Any]:
    return asdict(forecast)


# =============================================================================
# Command-line shorthand
# =============================================================================


def parse_exercise_entry(entry: str) -> tuple[str, float | None, int, int]:
    """
    Parse a logged exercise written on the command line.

    Formats:
        "Bench Press: 80x8x3"   weight × reps × sets
        "Bench Press: 80x8"     one set
        "Pull-up: 12"           bodyweight reps, one set

    Args:
        entry: Exercise string

    Returns:
        (exercise_name, weight_kg or None, reps, sets)

    Raises:
        ValidationError: If format is invalid
    """
    if ":" not in entry:
        raise ValidationError(
            f"Invalid exercise entry: '{entry}'. Use 'Name: WEIGHTxREPS[xSETS]' or 'Name: REPS'"
        )
    name, _, set_text = entry.partition(":")
    name, set_text = name.strip(), set_text.strip().lower()
    if not name:
        raise ValidationError("Exercise name cannot be empty")

    match_weighted = re.match(r"^(\d+\.?\d*)\s*x\s*(\d+)(?:\s*x\s*(\d+))?$", set_text)
    match_bare = re.match(r"^(\d+)$", set_text)

    if match_weighted:
        weight = float(match_weighted.group(1))
        reps = int(match_weighted.group(2))
        sets = int(match_weighted.group(3) or 1)
    elif match_bare:
        weight = None
        reps = int(match_bare.group(1))
        sets = 1
    else:
        raise ValidationError(
            f"Invalid set format for {name}: '{set_text}'. Use WEIGHTxREPS[xSETS] (e.g. 80x8x3) or REPS"
        )

    if sets < 1:
        raise ValidationError(f"Sets must be at least 1: {sets}")
    return name, weight, reps, sets


def parse_one_rm_option(entry: str) -> tuple[str, float]:
    """
    Parse "Name=KG" as given to --one-rm.

    Raises:
        ValidationError: If format is invalid or the value is negative
    """
    name, sep, value = entry.partition("=")
    if not sep or not name.strip():
        raise ValidationError(f"Invalid 1RM entry: '{entry}'. Use Name=KG (e.g. Squat=140)")
    try:
        kg = float(value)
    except ValueError as e:
        raise ValidationError(f"Invalid 1RM value for {name.strip()}: '{value}'") from e
    if kg < 0:
        raise ValidationError(f"1RM must be non-negative: {kg}")
    return name.strip(), kg
