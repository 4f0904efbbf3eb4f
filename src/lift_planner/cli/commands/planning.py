"""Planning commands: context, plan, one-rm, forecast."""

from typing import Annotated, Optional

import typer

from ...core.config import MAX_PLAN_WEEKS
from ...core.context import aggregate_context, compute_one_rm_estimates, default_one_rms
from ...core.forecast import forecast_prs
from ...core.metrics import estimate_one_rep_max
from ...core.models import PlanningContext
from ...core.planner import generate_algorithmic_plan, select_periodization_model
from ...io.serializers import (
    ValidationError,
    parse_one_rm_option,
    planning_context_to_dict,
    pr_forecast_to_dict,
    weekly_plan_to_dict,
)
from .. import views
from ..app import HistoryPathOption, JsonOption, app, fail, get_engine_defaults, get_store, print_json

TemplateOption = Annotated[
    Optional[list[int]],
    typer.Option("--template", "-t", help="Template id to plan for; repeatable"),
]
ExerciseIdOption = Annotated[
    Optional[list[int]],
    typer.Option("--exercise-id", "-x", help="Master exercise id to plan for; repeatable"),
]
WeeksOption = Annotated[
    int,
    typer.Option("--weeks", "-w", help="Plan length in weeks (4-6)"),
]
GoalOption = Annotated[
    Optional[str],
    typer.Option("--goal", "-g", help="powerlifting, strength, hypertrophy or peaking"),
]
UserOption = Annotated[
    str,
    typer.Option("--user", help="User id recorded in the planning context"),
]


def _targets(template: list[int] | None, exercise_id: list[int] | None) -> tuple[str, list[int]]:
    if template and exercise_id:
        fail(ValidationError("Give either --template or --exercise-id, not both"))
    if template:
        return "template", list(template)
    if exercise_id:
        return "exercise", list(exercise_id)
    fail(ValidationError("Give at least one --template or --exercise-id"))


def _build_context(
    history_path,
    user: str,
    template: list[int] | None,
    exercise_id: list[int] | None,
    weeks: int,
    goal: str | None,
    model: str | None = None,
    one_rm_inputs: dict[str, float] | None = None,
) -> PlanningContext:
    target_type, target_ids = _targets(template, exercise_id)
    store = get_store(history_path)
    try:
        return aggregate_context(
            user,
            target_type,
            target_ids,
            preferences=store.load_preferences(),
            provider=store,
            duration=weeks,
            goal_preset=goal,
            periodization=model,
            one_rm_inputs=one_rm_inputs,
            limit=get_engine_defaults().recent_session_limit,
        )
    except ValueError as e:
        fail(e)


@app.command()
def context(
    template: TemplateOption = None,
    exercise_id: ExerciseIdOption = None,
    weeks: WeeksOption = MAX_PLAN_WEEKS,
    goal: GoalOption = None,
    user: UserOption = "local",
    history_path: HistoryPathOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Show the planning context: recent sessions, 1RM estimates and volume trends.
    """
    ctx = _build_context(history_path, user, template, exercise_id, weeks, goal)

    if json_out:
        print_json(planning_context_to_dict(ctx))
        return

    views.print_context(ctx)


@app.command()
def plan(
    template: TemplateOption = None,
    exercise_id: ExerciseIdOption = None,
    weeks: WeeksOption = MAX_PLAN_WEEKS,
    goal: GoalOption = None,
    model: Annotated[
        Optional[str],
        typer.Option("--model", "-m", help="Force linear, dup or block periodization"),
    ] = None,
    one_rm: Annotated[
        Optional[list[str]],
        typer.Option("--one-rm", help="Known 1RM as Name=KG (e.g. Squat=140); repeatable"),
    ] = None,
    use_defaults: Annotated[
        bool,
        typer.Option("--use-defaults", help="Fill missing 1RMs with starter estimates"),
    ] = False,
    user: UserOption = "local",
    history_path: HistoryPathOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Generate a periodized multi-week plan.

    1RMs come from logged history; --one-rm values override them and
    --use-defaults adds starter estimates for the main lifts.
    """
    try:
        inputs = default_one_rms() if use_defaults else {}
        inputs.update(parse_one_rm_option(entry) for entry in one_rm or [])
    except ValidationError as e:
        fail(e)

    ctx = _build_context(history_path, user, template, exercise_id, weeks, goal, model, inputs)
    if not ctx.current_one_rm_estimates:
        views.print_warning(
            "No 1RM estimates from history; log sessions, pass --one-rm or use --use-defaults"
        )

    try:
        weeks_plan = generate_algorithmic_plan(ctx)
    except ValueError as e:
        fail(e)

    chosen = ctx.periodization or select_periodization_model(
        ctx.goal_preset, len(ctx.recent_sessions)
    )

    if json_out:
        print_json({
            "periodization": chosen,
            "weeks": [weekly_plan_to_dict(w) for w in weeks_plan],
        })
        return

    views.print_plan(weeks_plan, chosen)


@app.command("one-rm")
def one_rm(
    exercises: Annotated[
        Optional[list[str]],
        typer.Argument(help="Limit history estimates to these exercises"),
    ] = None,
    weight: Annotated[
        Optional[float],
        typer.Option("--weight", help="Estimate from a single set: weight in kg"),
    ] = None,
    reps: Annotated[
        Optional[int],
        typer.Option("--reps", help="Estimate from a single set: reps performed"),
    ] = None,
    history_path: HistoryPathOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Estimate 1RM from a single set, or the best per exercise from history.
    """
    if (weight is None) != (reps is None):
        fail(ValidationError("--weight and --reps must be given together"))

    if weight is not None:
        if weight < 0 or reps < 1:
            fail(ValidationError("--weight must be >= 0 and --reps >= 1"))
        value = estimate_one_rep_max(weight, reps)
        if json_out:
            print_json({"weight": weight, "reps": reps, "one_rm": value})
            return
        views.console.print(f"Estimated 1RM for {weight:g}kg x {reps}: [bold]{value:.1f}kg[/bold]")
        return

    store = get_store(history_path)
    try:
        sessions = store.load_history()
    except (FileNotFoundError, ValidationError) as e:
        fail(e)

    estimates = compute_one_rm_estimates(sessions)
    if exercises:
        estimates = {k: v for k, v in estimates.items() if k in exercises}

    if json_out:
        print_json(estimates)
        return

    views.print_one_rm_table(estimates, title="Best Estimated 1RM")


@app.command()
def forecast(
    exercises: Annotated[
        Optional[list[str]],
        typer.Argument(help="Limit forecasts to these exercises"),
    ] = None,
    experience: Annotated[
        Optional[str],
        typer.Option("--experience", "-e", help="beginner, intermediate or advanced"),
    ] = None,
    history_path: HistoryPathOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Forecast when each lift will reach its next PR.

    Needs at least three sessions with a rising 1RM estimate per exercise.
    """
    store = get_store(history_path)
    try:
        sessions = store.load_history()
        forecasts = forecast_prs(sessions, experience or get_engine_defaults().experience_level)
    except (FileNotFoundError, ValueError) as e:
        fail(e)

    if exercises:
        forecasts = [f for f in forecasts if f.exercise_name in exercises]

    if json_out:
        print_json([pr_forecast_to_dict(f) for f in forecasts])
        return

    views.print_forecasts(forecasts)
