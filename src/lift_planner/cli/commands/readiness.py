"""Readiness commands: readiness, prescribe, recovery, suggest."""

from pathlib import Path
from typing import Annotated, Any, Optional

import typer

from ...core.adaptation import calculate_progression_suggestions
from ...core.models import ExerciseHistory, ExercisePlanTarget, ReadinessInput
from ...core.prescription import advise_session
from ...core.readiness import compute_readiness, overload_multiplier
from ...core.recovery import plan_recovery_session
from ...io.serializers import (
    ValidationError,
    dict_to_plan_target,
    dict_to_readiness_input,
    readiness_result_to_dict,
    recovery_plan_to_dict,
    session_advice_to_dict,
)
from .. import views
from ..app import (
    HistoryPathOption,
    JsonOption,
    app,
    fail,
    get_engine_defaults,
    get_store,
    load_json_file,
    print_json,
)

ReadinessFileOption = Annotated[
    Optional[Path],
    typer.Option("--input", "-i", help="Readiness JSON file (device or manual fields)"),
]
RecoveryOption = Annotated[
    Optional[float], typer.Option("--recovery", help="Recovery score 0-100")
]
SleepPerfOption = Annotated[
    Optional[float], typer.Option("--sleep-performance", help="Sleep performance 0-100")
]
EnergyOption = Annotated[
    Optional[int], typer.Option("--energy", help="Manual energy level 1-10")
]
SleepQualityOption = Annotated[
    Optional[int], typer.Option("--sleep-quality", help="Manual sleep quality 1-10")
]
ExperienceOption = Annotated[
    Optional[str],
    typer.Option("--experience", "-e", help="beginner, intermediate or advanced"),
]


def _readiness_payload(
    input_file: Path | None,
    recovery: float | None,
    sleep_performance: float | None,
    energy: int | None,
    sleep_quality: int | None,
) -> dict[str, Any]:
    """Merge a JSON file with command-line values (command line wins)."""
    payload: dict[str, Any] = {}
    if input_file is not None:
        data = load_json_file(input_file, "readiness")
        if not isinstance(data, dict):
            fail(ValidationError("readiness file must contain a JSON object"))
        payload.update(data)

    overrides = {
        "recovery_score": recovery,
        "sleep_performance": sleep_performance,
        "energy_level": energy,
        "sleep_quality": sleep_quality,
    }
    payload.update({k: v for k, v in overrides.items() if v is not None})
    return payload


def _resolve_readiness(payload: dict[str, Any]) -> ReadinessInput:
    try:
        return dict_to_readiness_input(payload)
    except ValidationError as e:
        fail(e)


def _load_targets(targets_file: Path) -> list[ExercisePlanTarget]:
    """Read a list of exercises (or {"exercises": [...]}) from a JSON file."""
    raw = load_json_file(targets_file, "targets")
    if isinstance(raw, dict):
        raw = raw.get("exercises")
    if not isinstance(raw, list):
        fail(ValidationError("targets file must contain a list of exercises"))
    try:
        return [dict_to_plan_target(t) for t in raw]
    except ValidationError as e:
        fail(e)


@app.command()
def readiness(
    input_file: ReadinessFileOption = None,
    recovery: RecoveryOption = None,
    sleep_performance: SleepPerfOption = None,
    energy: EnergyOption = None,
    sleep_quality: SleepQualityOption = None,
    hrv: Annotated[
        Optional[str],
        typer.Option("--hrv", help="HRV now/baseline in ms, e.g. 45/40"),
    ] = None,
    rhr: Annotated[
        Optional[str],
        typer.Option("--rhr", help="Resting HR now/baseline in bpm, e.g. 58/60"),
    ] = None,
    strain: Annotated[
        Optional[float], typer.Option("--strain", help="Yesterday's strain 0-21")
    ] = None,
    experience: ExperienceOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Compute today's readiness score from wearable or manual input.
    """
    payload = _readiness_payload(input_file, recovery, sleep_performance, energy, sleep_quality)
    for option, value, (now_key, base_key) in (
        ("--hrv", hrv, ("hrv_now_ms", "hrv_baseline_ms")),
        ("--rhr", rhr, ("rhr_now_bpm", "rhr_baseline_bpm")),
    ):
        if value is None:
            continue
        now, sep, base = value.partition("/")
        if not sep:
            fail(ValidationError(f"{option} must be NOW/BASELINE, got '{value}'"))
        payload[now_key], payload[base_key] = now.strip(), base.strip()
    if strain is not None:
        payload["yesterday_strain"] = strain

    data = _resolve_readiness(payload)
    result = compute_readiness(data)

    level = experience or get_engine_defaults().experience_level
    try:
        delta = overload_multiplier(result.rho, level)
    except ValueError as e:
        fail(e)

    if json_out:
        print_json({**readiness_result_to_dict(result), "overload_multiplier": delta})
        return

    views.print_readiness(result, delta)


@app.command()
def prescribe(
    targets_file: Annotated[
        Path,
        typer.Option("--targets", "-t", help="Planned exercises JSON file"),
    ],
    input_file: ReadinessFileOption = None,
    recovery: RecoveryOption = None,
    sleep_performance: SleepPerfOption = None,
    energy: EnergyOption = None,
    sleep_quality: SleepQualityOption = None,
    experience: ExperienceOption = None,
    increment: Annotated[
        Optional[float],
        typer.Option("--increment", help="Weight rounding step in kg"),
    ] = None,
    history_path: HistoryPathOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Prescribe today's sets from readiness, planned targets and recent history.

    The targets file holds a list of exercises (or {"exercises": [...]}),
    each with name, optional tags and a list of set targets.
    """
    defaults = get_engine_defaults()
    payload = _readiness_payload(input_file, recovery, sleep_performance, energy, sleep_quality)
    data = _resolve_readiness(payload)

    targets = _load_targets(targets_file)

    store = get_store(history_path)
    try:
        history = store.load_exercise_history([t.name for t in targets])
        prefs = store.load_preferences()
        advice = advise_session(
            data,
            experience or defaults.experience_level,
            targets,
            history=history,
            min_increment_kg=increment if increment is not None else prefs.weight_increment_kg,
        )
    except ValueError as e:
        fail(e)

    if json_out:
        print_json(session_advice_to_dict(advice))
        return

    views.print_session_advice(advice)


@app.command()
def recovery(
    input_file: ReadinessFileOption = None,
    recovery_score: RecoveryOption = None,
    sleep_performance: SleepPerfOption = None,
    energy: EnergyOption = None,
    sleep_quality: SleepQualityOption = None,
    targets_file: Annotated[
        Optional[Path],
        typer.Option("--targets", "-t", help="Planned exercises JSON file to adjust"),
    ] = None,
    strategy: Annotated[
        Optional[str],
        typer.Option(
            "--strategy", "-s", help="conservative, moderate, adaptive or aggressive"
        ),
    ] = None,
    sensitivity: Annotated[
        Optional[int],
        typer.Option("--sensitivity", help="1-10; higher cuts back sooner"),
    ] = None,
    history_path: HistoryPathOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Recommend rest, active recovery, a lighter session or training as planned.

    Strategy and sensitivity default to the stored preferences.  With
    --targets, the planned session is returned with loads and sets cut back
    for the readiness zone.
    """
    payload = _readiness_payload(
        input_file, recovery_score, sleep_performance, energy, sleep_quality
    )
    data = _resolve_readiness(payload)
    targets = _load_targets(targets_file) if targets_file is not None else []

    prefs = get_store(history_path).load_preferences()
    try:
        plan = plan_recovery_session(
            data,
            targets,
            strategy=strategy or prefs.recovery_strategy,
            sensitivity=sensitivity if sensitivity is not None else prefs.recovery_sensitivity,
            increment=prefs.weight_increment_kg,
        )
    except ValueError as e:
        fail(e)

    if json_out:
        print_json(recovery_plan_to_dict(plan))
        return

    views.print_recovery_plan(plan)


@app.command()
def suggest(
    exercises: Annotated[
        list[str],
        typer.Argument(help="Exercise names to suggest progressions for"),
    ],
    rho: Annotated[
        float,
        typer.Option("--rho", help="Readiness score 0-1 (see 'readiness')"),
    ] = 0.5,
    model: Annotated[
        str,
        typer.Option("--model", help="Progress 'weight' or 'reps'"),
    ] = "weight",
    history_path: HistoryPathOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Suggest next-session loads using the stored progression preference.
    """
    if not 0.0 <= rho <= 1.0:
        fail(ValidationError(f"--rho must be between 0 and 1, got {rho}"))
    if model not in ("weight", "reps"):
        fail(ValidationError(f"--model must be 'weight' or 'reps', got '{model}'"))

    store = get_store(history_path)
    try:
        prefs = store.load_preferences()
        found = store.load_exercise_history(exercises)
    except (FileNotFoundError, ValidationError) as e:
        fail(e)

    histories = [found.get(name) or ExerciseHistory(exercise_name=name) for name in exercises]
    progressions = calculate_progression_suggestions(
        histories,
        rho,
        prefs.progression_type,
        linear_increment=prefs.weight_increment_kg,
        progression_model=model,
        increment=prefs.weight_increment_kg,
    )

    if json_out:
        print_json([
            {
                "exercise_name": p.exercise_name,
                "plateau_detected": p.plateau_detected,
                "suggestions": [vars(s) for s in p.suggestions],
            }
            for p in progressions
        ])
        return

    views.print_progressions(progressions)
