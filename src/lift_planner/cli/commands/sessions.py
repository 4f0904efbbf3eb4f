"""Session commands: init, log-session, show-history."""

from datetime import date
from typing import Annotated, Optional

import typer

from ...core.config import DEFAULT_RECOVERY_SENSITIVITY, DEFAULT_RECOVERY_STRATEGY
from ...core.models import ExerciseSetRecord, SessionHistory, UserPreferences
from ...io.serializers import ValidationError, parse_exercise_entry, session_history_to_dict, validate_date
from .. import views
from ..app import HistoryPathOption, JsonOption, app, fail, get_engine_defaults, get_store, print_json


@app.command()
def init(
    history_path: HistoryPathOption = None,
    days: Annotated[
        Optional[int],
        typer.Option("--days", "-d", help="Training days per week (1-7)"),
    ] = None,
    increment: Annotated[
        Optional[float],
        typer.Option("--increment", help="Smallest loadable weight step in kg"),
    ] = None,
    progression: Annotated[
        str,
        typer.Option("--progression", help="Progression type: linear, percentage, adaptive"),
    ] = "adaptive",
    unit: Annotated[
        str,
        typer.Option("--unit", help="Default weight unit: kg or lbs"),
    ] = "kg",
    recovery_strategy: Annotated[
        str,
        typer.Option(
            "--recovery-strategy", help="conservative, moderate, adaptive or aggressive"
        ),
    ] = DEFAULT_RECOVERY_STRATEGY,
    sensitivity: Annotated[
        int,
        typer.Option("--sensitivity", help="Recovery sensitivity 1-10"),
    ] = DEFAULT_RECOVERY_SENSITIVITY,
) -> None:
    """
    Create the history file and store training preferences.
    """
    defaults = get_engine_defaults()
    store = get_store(history_path)

    try:
        prefs = UserPreferences(
            default_weight_unit=unit,
            progression_type=progression,
            training_days_per_week=days if days is not None else defaults.training_days_per_week,
            weight_increment_kg=increment if increment is not None else defaults.weight_increment_kg,
            recovery_strategy=recovery_strategy,
            recovery_sensitivity=sensitivity,
        )
    except ValueError as e:
        fail(e)

    existed = store.exists()
    store.init()
    store.save_preferences(prefs)

    if existed:
        views.print_info(f"History already exists: {store.history_path} (preferences updated)")
    else:
        views.print_success(f"Created history: {store.history_path}")
    views.console.print(
        f"{prefs.training_days_per_week} days/week, {prefs.progression_type} progression, "
        f"{prefs.weight_increment_kg:g}kg increments"
    )


@app.command("log-session")
def log_session(
    exercises: Annotated[
        list[str],
        typer.Option(
            "--exercise", "-x",
            help="Logged exercise 'Name: WEIGHTxREPSxSETS' (e.g. 'Squat: 100x5x3'); repeatable",
        ),
    ],
    history_path: HistoryPathOption = None,
    session_date: Annotated[
        Optional[str],
        typer.Option("--date", help="Session date YYYY-MM-DD (default: today)"),
    ] = None,
    template_id: Annotated[
        Optional[int],
        typer.Option("--template-id", "-t", help="Template the session was logged from"),
    ] = None,
    template_name: Annotated[
        Optional[str],
        typer.Option("--template-name", help="Template display name"),
    ] = None,
    exercise_id: Annotated[
        Optional[list[int]],
        typer.Option(
            "--exercise-id",
            help="Master exercise id for each --exercise, in the same order",
        ),
    ] = None,
) -> None:
    """
    Log a completed session.
    """
    store = get_store(history_path)
    if not store.exists():
        views.print_error(f"History file not found: {store.history_path}")
        views.print_info("Run 'init' first to create the history file.")
        raise typer.Exit(1)

    ids = exercise_id or []
    if ids and len(ids) != len(exercises):
        views.print_error("Give one --exercise-id per --exercise, or none at all")
        raise typer.Exit(1)

    try:
        workout_date = validate_date(session_date) if session_date else date.today()
        records = []
        for i, entry in enumerate(exercises):
            name, weight, reps, sets = parse_exercise_entry(entry)
            records.append(
                ExerciseSetRecord(
                    exercise_name=name,
                    workout_date=workout_date,
                    weight=weight,
                    reps=reps,
                    sets=sets,
                    master_exercise_id=ids[i] if ids else None,
                )
            )
        session = SessionHistory(
            session_id=store.next_session_id(),
            workout_date=workout_date,
            template_id=template_id,
            template_name=template_name,
            exercises=records,
        )
        store.append_session(session)
    except (FileNotFoundError, ValueError) as e:
        fail(e)

    views.print_success(
        f"Logged session #{session.session_id} on {workout_date.isoformat()} "
        f"({len(records)} exercises, {session.total_volume:,.0f}kg)"
    )


@app.command("show-history")
def show_history(
    history_path: HistoryPathOption = None,
    limit: Annotated[
        int,
        typer.Option("--limit", "-n", help="Number of most recent sessions to show"),
    ] = 20,
    json_out: JsonOption = False,
) -> None:
    """
    Display logged sessions, newest first.
    """
    store = get_store(history_path)

    try:
        sessions = list(reversed(store.load_history()))[: max(0, limit)]
    except (FileNotFoundError, ValidationError) as e:
        fail(e)

    if json_out:
        print_json([session_history_to_dict(s) for s in sessions])
        return

    views.print_history(sessions)
