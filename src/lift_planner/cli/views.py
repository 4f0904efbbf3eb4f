"""
CLI view formatters using Rich for pretty console output.

Handles table formatting and display of readiness, prescriptions,
planning context and periodized plans.
"""

from rich.console import Console
from rich.table import Table

from ..core.models import (
    ExerciseProgression,
    PlanningContext,
    PRForecast,
    ReadinessResult,
    RecoveryPlan,
    SessionAdvice,
    SessionHistory,
    WeeklyPlan,
)
from ..core.planner import calculate_week_volume

console = Console()
err_console = Console(stderr=True)

_WEEK_STYLE = {"training": "white", "deload": "cyan", "pr_attempt": "bold magenta"}


def _fmt_weight(weight: float | None) -> str:
    return f"{weight:g}" if weight is not None else "-"


def _rho_style(rho: float) -> str:
    if rho > 0.7:
        return "green"
    if rho > 0.5:
        return "yellow"
    return "red"


def format_readiness(result: ReadinessResult, overload: float | None = None) -> str:
    """
    Format a readiness result as a text block.

    Args:
        result: Readiness result to display
        overload: Overload multiplier for the user's level, if known

    Returns:
        Rich-markup string
    """
    style = _rho_style(result.rho)
    lines = [f"Readiness: [{style}]{result.rho:.2f}[/{style}] ({result.rho:.0%})"]
    if overload is not None:
        lines.append(f"Overload multiplier: x{overload:.3f}")
    lines.append(f"Flags: {', '.join(result.flags) if result.flags else '-'}")
    return "\n".join(lines)


def print_readiness(result: ReadinessResult, overload: float | None = None) -> None:
    console.print()
    console.print(format_readiness(result, overload))
    console.print()


def print_session_advice(advice: SessionAdvice) -> None:
    """
    Print a session prescription: one table per exercise plus summary.

    Args:
        advice: Session advice to display
    """
    console.print()
    console.print(format_readiness(
        ReadinessResult(rho=advice.rho, flags=advice.flags), advice.overload_multiplier
    ))

    for ex in advice.per_exercise:
        table = Table(title=f"{ex.name}  (chance to beat best {ex.predicted_chance_to_beat_best:.0%})")
        table.add_column("Set", style="dim")
        table.add_column("Weight(kg)", justify="right", style="bold")
        table.add_column("Reps", justify="right")
        table.add_column("Rest(s)", justify="right")
        table.add_column("Rationale")

        for s in ex.sets:
            table.add_row(
                s.set_id,
                _fmt_weight(s.suggested_weight_kg),
                str(s.suggested_reps) if s.suggested_reps is not None else "-",
                str(s.suggested_rest_seconds) if s.suggested_rest_seconds is not None else "-",
                s.rationale,
            )
        console.print(table)
        console.print(
            f"  planned volume {_fmt_weight(ex.planned_volume_kg)}kg, "
            f"best {_fmt_weight(ex.best_volume_kg)}kg"
        )

    console.print()
    console.print(f"Session chance to beat best: [bold]{advice.session_predicted_chance:.0%}[/bold]")
    if advice.summary:
        console.print(advice.summary)
    if advice.recovery is not None:
        rec = advice.recovery
        console.print(
            f"Rest between sessions: {rec.rest_between_sessions}; "
            f"session duration ~{rec.session_duration_minutes} min"
        )
        for note in rec.notes:
            console.print(f"  - {note}")
    for warning in advice.warnings:
        print_warning(warning)
    console.print()


def format_session_table(sessions: list[SessionHistory]) -> Table:
    """
    Create a Rich table displaying session history.

    Args:
        sessions: List of sessions to display (newest first)

    Returns:
        Rich Table object
    """
    table = Table(title="Recent Sessions")

    table.add_column("#", justify="right", style="dim", width=4)
    table.add_column("Date", style="cyan")
    table.add_column("Template", style="magenta")
    table.add_column("Exercises")
    table.add_column("Volume(kg)", justify="right", style="bold")

    for session in sessions:
        names = ", ".join(dict.fromkeys(ex.name for ex in session.exercises))
        table.add_row(
            str(session.session_id),
            session.workout_date.isoformat(),
            session.template_name or (str(session.template_id) if session.template_id else "-"),
            names or "-",
            f"{session.total_volume:,.0f}",
        )

    return table


def print_history(sessions: list[SessionHistory]) -> None:
    if not sessions:
        console.print("[yellow]No sessions recorded yet.[/yellow]")
        return
    console.print(format_session_table(sessions))


def print_context(context: PlanningContext) -> None:
    """
    Print the planning context: history, 1RM estimates and volume trends.

    Args:
        context: Aggregated planning context
    """
    console.print()
    console.print(
        f"[bold]Planning context[/bold] for {context.target_type} {context.target_ids} "
        f"({context.duration} weeks)"
    )
    prefs = context.preferences
    console.print(
        f"Preferences: {prefs.training_days_per_week} days/week, "
        f"{prefs.progression_type} progression, {prefs.weight_increment_kg:g}kg increments"
    )

    print_history(context.recent_sessions)
    print_one_rm_table(context.current_one_rm_estimates)

    if context.volume_trends:
        table = Table(title="Weekly Volume Trends")
        table.add_column("Exercise", style="green")
        table.add_column("Weeks", justify="right")
        table.add_column("Latest week(kg)", justify="right")
        table.add_column("Slope(kg/week)", justify="right", style="bold")

        for trend in context.volume_trends:
            latest = trend.weekly_data[-1].total_volume if trend.weekly_data else 0.0
            table.add_row(
                trend.exercise_name,
                str(len(trend.weekly_data)),
                f"{latest:,.0f}",
                f"{trend.trend_slope:+.1f}",
            )
        console.print(table)
    console.print()


def print_one_rm_table(estimates: dict[str, float], title: str = "Estimated 1RM") -> None:
    if not estimates:
        console.print("[yellow]No 1RM estimates available.[/yellow]")
        return

    table = Table(title=title)
    table.add_column("Exercise", style="green")
    table.add_column("1RM(kg)", justify="right", style="bold")
    for name, value in sorted(estimates.items()):
        table.add_row(name, f"{value:.1f}")
    console.print(table)


def print_plan(plan: list[WeeklyPlan], model: str | None = None) -> None:
    """
    Print a periodized plan, one table per week.

    Args:
        plan: Weekly plans to display
        model: Periodization model name for the heading
    """
    if not plan:
        console.print("[yellow]No weeks planned.[/yellow]")
        return

    console.print()
    if model:
        console.print(f"[bold]{model.upper()} periodization, {len(plan)} weeks[/bold]")

    for week in plan:
        style = _WEEK_STYLE.get(week.week_type, "white")
        table = Table(
            title=(
                f"[{style}]Week {week.week_number} - {week.week_type}[/{style}]  "
                f"{week.progression_formula}  "
                f"volume {calculate_week_volume(week.sessions):,.0f}kg"
            )
        )
        table.add_column("Session", style="cyan")
        table.add_column("Exercise", style="green")
        table.add_column("Sets x Reps", justify="right")
        table.add_column("Weight(kg)", justify="right", style="bold")
        table.add_column("Rest(s)", justify="right")
        table.add_column("RPE", justify="right")
        table.add_column("Notes", style="dim")

        for session in week.sessions:
            label = session.day_of_week or f"#{session.session_number}"
            if not session.exercises:
                table.add_row(label, "-", "", "", "", "", session.notes or "")
                continue
            for i, ex in enumerate(session.exercises):
                table.add_row(
                    label if i == 0 else "",
                    ex.exercise_name,
                    f"{ex.sets}x{ex.reps}",
                    _fmt_weight(ex.weight),
                    str(ex.rest_seconds) if ex.rest_seconds is not None else "-",
                    str(ex.rpe) if ex.rpe is not None else "-",
                    ex.notes or (session.notes if i == 0 else "") or "",
                )
        console.print(table)
    console.print()


def print_progressions(progressions: list[ExerciseProgression]) -> None:
    table = Table(title="Next-session Suggestions")
    table.add_column("Exercise", style="green")
    table.add_column("Plateau", justify="center")
    table.add_column("Type")
    table.add_column("Current", justify="right")
    table.add_column("Suggested", justify="right", style="bold")
    table.add_column("Rationale")

    for prog in progressions:
        plateau = "[red]yes[/red]" if prog.plateau_detected else "no"
        if not prog.suggestions:
            table.add_row(prog.exercise_name, plateau, "-", "-", "-", "No sets in latest session")
        for s in prog.suggestions:
            table.add_row(
                prog.exercise_name, plateau, s.type, f"{s.current:g}", f"{s.suggested:g}", s.rationale
            )
    console.print(table)


def print_forecasts(forecasts: list[PRForecast]) -> None:
    if not forecasts:
        console.print("[yellow]No upward 1RM trend to forecast from.[/yellow]")
        return

    table = Table(title="PR Forecast")
    table.add_column("Exercise", style="green")
    table.add_column("Current(kg)", justify="right")
    table.add_column("Next PR(kg)", justify="right", style="bold")
    table.add_column("Sessions", justify="right")
    table.add_column("Weeks", justify="right")
    table.add_column("kg/session", justify="right")
    table.add_column("Confidence", justify="right")
    table.add_column("Trend")

    for f in forecasts:
        table.add_row(
            f.exercise_name,
            f"{f.current_pr:.1f}",
            _fmt_weight(f.next_pr_weight),
            str(f.sessions_to_next_pr),
            f"{f.weeks_to_next_pr} ({f.estimated_weeks_low}-{f.estimated_weeks_high})",
            f"{f.velocity:.2f}",
            f"{f.confidence:.0%}",
            f.trajectory,
        )
    console.print(table)


def print_recovery_plan(plan: RecoveryPlan) -> None:
    """
    Print a recovery recommendation and the adjusted session, if any.

    Args:
        plan: Recovery plan to display
    """
    adj = plan.adjustment
    style = adj.zone  # zone names are rich colours

    console.print()
    console.print(format_readiness(ReadinessResult(rho=plan.rho, flags=plan.flags)))
    console.print(
        f"Zone: [{style}]{adj.zone}[/{style}]  "
        f"[bold]{adj.recommendation.replace('_', ' ')}[/bold]  ({plan.strategy})"
    )
    console.print(
        f"Intensity x{adj.intensity_adjustment:.2f}, volume x{adj.volume_adjustment:.2f}, "
        f"confidence {adj.confidence:.0%}"
    )
    console.print(f"[dim]{adj.reasoning}[/dim]")

    for ex in plan.exercises:
        table = Table(title=ex.name)
        table.add_column("Set", style="dim")
        table.add_column("Weight(kg)", justify="right", style="bold")
        table.add_column("Reps", justify="right")
        table.add_column("RPE", justify="right")
        for s in ex.sets:
            table.add_row(
                s.set_id,
                _fmt_weight(s.target_weight_kg),
                str(s.target_reps) if s.target_reps is not None else "-",
                _fmt_weight(s.target_rpe),
            )
        console.print(table)
    console.print()


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]{message}[/green]")


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red]Error: {message}[/red]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]Warning: {message}[/yellow]")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]{message}[/blue]")
