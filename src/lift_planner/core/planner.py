"""
Periodization planner for lift-planner.

Generates deterministic 4-6 week training plans from a PlanningContext.
Three models are supported:

    linear  volume phase → deload → intensity phase → PR attempt
    dup     heavy / medium / light sessions cycling within each week
    block   accumulation → intensification → realization

Model choice is a small decision table over goal and training experience;
an explicit periodization on the context always wins.
"""

import logging

from .config import (
    BLOCK_ACCUMULATION,
    BLOCK_HEAVY_THRESHOLD,
    BLOCK_INTENSIFICATION,
    BLOCK_REALIZATION,
    DEFAULT_UNKNOWN_ONE_RM_KG,
    DELOAD_VOLUME_MULTIPLIER,
    DELOAD_WEEK,
    DUP_CYCLE,
    DUP_DAYS,
    DUP_DELOAD_INTENSITY,
    DUP_DELOAD_SETS,
    DUP_MAX_ATTEMPT,
    DUP_MAX_SESSIONS,
    EXPERIENCED_SESSION_COUNT,
    HEAVY_REST_SECONDS,
    LIGHT_REST_SECONDS,
    LINEAR_DELOAD,
    LINEAR_HEAVY_THRESHOLD,
    LINEAR_INTENSITY_BASE,
    LINEAR_INTENSITY_REPS,
    LINEAR_INTENSITY_SETS,
    LINEAR_PR,
    LINEAR_VOLUME_BASE,
    LINEAR_VOLUME_REPS,
    LINEAR_VOLUME_SETS,
    LINEAR_WEEKLY_STEP,
    MINUTES_PER_EXERCISE,
    PR_INTENSITY_MULTIPLIER,
    PROGRESSION_PERCENT_PER_WEEK,
    Scheme,
)
from .metrics import round_half_up, round_to_increment
from .models import (
    ExercisePrescription,
    PlanningContext,
    SessionPrescription,
    WeeklyPlan,
)

logger = logging.getLogger(__name__)

# (goal preset, experienced) → model.  Pairs not listed fall back to linear.
_MODEL_TABLE: dict[tuple[str | None, bool], str] = {
    ("powerlifting", False): "block",
    ("powerlifting", True): "block",
    ("peaking", False): "block",
    ("peaking", True): "block",
    ("strength", True): "dup",
    ("hypertrophy", True): "dup",
}


def select_periodization_model(goal_preset: str | None, session_count: int) -> str:
    """
    Pick a periodization model from goal and experience.

    powerlifting / peaking          → block
    ≥ 12 sessions and strength /
      hypertrophy                   → dup
    anything else                   → linear

    Args:
        goal_preset: Goal preset, or None
        session_count: Number of historical sessions

    Returns:
        "linear", "dup" or "block"
    """
    experienced = session_count >= EXPERIENCED_SESSION_COUNT
    return _MODEL_TABLE.get((goal_preset, experienced), "linear")


def _resolve_one_rms(context: PlanningContext) -> list[tuple[str, float]]:
    resolved = []
    for name, one_rm in context.current_one_rm_estimates.items():
        if not one_rm or one_rm <= 0:
            logger.info("no 1RM for %s, using %.0fkg", name, DEFAULT_UNKNOWN_ONE_RM_KG)
            one_rm = DEFAULT_UNKNOWN_ONE_RM_KG
        resolved.append((name, one_rm))
    return resolved


def _rpe(intensity: float) -> int:
    return min(10, int(round_half_up(intensity * 10)))


def _prescribe(
    name: str,
    one_rm: float,
    scheme: Scheme,
    intensity: float,
    increment: float,
    rest_seconds: int,
    rpe_intensity: float | None = None,
    notes: str | None = None,
) -> ExercisePrescription:
    return ExercisePrescription(
        exercise_name=name,
        sets=scheme.sets,
        reps=scheme.reps,
        weight=round_to_increment(one_rm * intensity, increment),
        rest_seconds=rest_seconds,
        rpe=_rpe(intensity if rpe_intensity is None else rpe_intensity),
        notes=notes,
    )


def _week_type(week: int, duration: int) -> str:
    """Week 4 is the deload; the last week of a longer plan is the PR attempt."""
    if week == DELOAD_WEEK:
        return "deload"
    if week == duration and duration > DELOAD_WEEK:
        return "pr_attempt"
    return "training"


# =============================================================================
# Linear
# =============================================================================


def _linear_scheme(week: int, week_type: str) -> tuple[Scheme, float]:
    """Scheme and working intensity for a linear week."""
    if week_type == "deload":
        return LINEAR_DELOAD, LINEAR_DELOAD.intensity
    if week_type == "pr_attempt":
        return LINEAR_PR, LINEAR_PR.intensity * PR_INTENSITY_MULTIPLIER
    if week < DELOAD_WEEK:
        intensity = LINEAR_VOLUME_BASE + LINEAR_WEEKLY_STEP * (week - 1)
        return Scheme("volume", LINEAR_VOLUME_SETS, LINEAR_VOLUME_REPS, intensity), intensity
    intensity = LINEAR_INTENSITY_BASE + LINEAR_WEEKLY_STEP * (week - DELOAD_WEEK)
    return Scheme("intensity", LINEAR_INTENSITY_SETS, LINEAR_INTENSITY_REPS, intensity), intensity


def _generate_linear(context: PlanningContext) -> list[WeeklyPlan]:
    """
    Linear periodization.

    Weeks 1-3:  3×10 @ 70 % + 2.5 %/week
    Week 4:     deload 3×5 @ 60 %
    Weeks 5+:   5×5 @ 80 % + 2.5 %/week
    Final week: PR attempt 5×3 @ 85 % × 1.05 (plans longer than 4 weeks)

    Exercises are spread round-robin: exercise k goes to session k mod days.
    """
    one_rms = _resolve_one_rms(context)
    days = context.preferences.training_days_per_week
    increment = context.preferences.weight_increment_kg

    weeks = []
    for week in range(1, context.duration + 1):
        week_type = _week_type(week, context.duration)
        scheme, intensity = _linear_scheme(week, week_type)
        rest = HEAVY_REST_SECONDS if scheme.intensity > LINEAR_HEAVY_THRESHOLD else LIGHT_REST_SECONDS
        note = "Attempt PR - go for max" if week_type == "pr_attempt" else None

        sessions = []
        for session_number in range(1, days + 1):
            exercises = [
                _prescribe(
                    name, one_rm, scheme, intensity, increment, rest,
                    rpe_intensity=scheme.intensity, notes=note,
                )
                for idx, (name, one_rm) in enumerate(one_rms)
                if idx % days == session_number - 1
            ]
            sessions.append(
                SessionPrescription(
                    session_number=session_number,
                    exercises=exercises,
                    estimated_duration_minutes=len(exercises) * MINUTES_PER_EXERCISE,
                    notes="Deload week - reduced load for recovery" if week_type == "deload" else None,
                )
            )

        if week_type == "deload":
            formula = f"deload_{DELOAD_VOLUME_MULTIPLIER:.0%}"
        else:
            formula = f"linear_{round_half_up(intensity * 100, 1):g}%"

        weeks.append(
            WeeklyPlan(
                week_number=week,
                week_type=week_type,
                sessions=sessions,
                progression_formula=formula,
            )
        )
    return weeks


# =============================================================================
# Daily undulating (DUP)
# =============================================================================


def _generate_dup(context: PlanningContext) -> list[WeeklyPlan]:
    """
    Daily undulating periodization.

    Up to 3 sessions per week cycle heavy (5×3 @ 85 %), medium (4×6 @ 75 %)
    and light (3×10 @ 65 %).  Loads compound 2.5 % per week via
    1RM × (1 + 0.025 × (week − 1)).  Week 4 drops to 2 sets at 70 % of the
    usual intensity; the first session of a final PR week is a 5×1 @ 95 %
    max attempt.  Every session trains every exercise.
    """
    one_rms = _resolve_one_rms(context)
    days = min(context.preferences.training_days_per_week, DUP_MAX_SESSIONS)
    increment = context.preferences.weight_increment_kg

    weeks = []
    for week in range(1, context.duration + 1):
        week_type = _week_type(week, context.duration)
        progression = 1 + PROGRESSION_PERCENT_PER_WEEK * (week - 1)

        sessions = []
        for s in range(days):
            scheme = DUP_CYCLE[s % len(DUP_CYCLE)]
            if week_type == "deload":
                scheme = Scheme(
                    scheme.name,
                    sets=DUP_DELOAD_SETS,
                    reps=scheme.reps,
                    intensity=scheme.intensity * DUP_DELOAD_INTENSITY,
                    rest_seconds=scheme.rest_seconds,
                )
            elif week_type == "pr_attempt" and s == 0:
                scheme = DUP_MAX_ATTEMPT

            exercises = [
                _prescribe(
                    name, one_rm * progression, scheme, scheme.intensity, increment,
                    scheme.rest_seconds,
                )
                for name, one_rm in one_rms
            ]
            sessions.append(
                SessionPrescription(
                    session_number=s + 1,
                    exercises=exercises,
                    day_of_week=DUP_DAYS[s],
                    estimated_duration_minutes=len(exercises) * MINUTES_PER_EXERCISE,
                    notes=f"DUP {scheme.name} day",
                )
            )

        weeks.append(
            WeeklyPlan(
                week_number=week,
                week_type=week_type,
                sessions=sessions,
                progression_formula=f"DUP_week{week}_{week_type}",
            )
        )
    return weeks


# =============================================================================
# Block
# =============================================================================


def _block_phase(week: int) -> Scheme:
    if week <= 2:
        return BLOCK_ACCUMULATION
    if week <= 4:
        return BLOCK_INTENSIFICATION
    return BLOCK_REALIZATION


def _generate_block(context: PlanningContext) -> list[WeeklyPlan]:
    """
    Block periodization.

    Weeks 1-2 accumulation 4×10 @ 70 %, weeks 3-4 intensification
    5×5 @ 82 %, weeks 5+ realization 3×3 @ 90 %.  The final week is a PR
    attempt when it falls in the realization block.
    """
    one_rms = _resolve_one_rms(context)
    days = context.preferences.training_days_per_week
    increment = context.preferences.weight_increment_kg

    weeks = []
    for week in range(1, context.duration + 1):
        phase = _block_phase(week)
        is_pr = week == context.duration and phase is BLOCK_REALIZATION
        rest = HEAVY_REST_SECONDS if phase.intensity > BLOCK_HEAVY_THRESHOLD else LIGHT_REST_SECONDS

        sessions = []
        for session_number in range(1, days + 1):
            exercises = [
                _prescribe(name, one_rm, phase, phase.intensity, increment, rest)
                for name, one_rm in one_rms
            ]
            sessions.append(
                SessionPrescription(
                    session_number=session_number,
                    exercises=exercises,
                    estimated_duration_minutes=len(exercises) * MINUTES_PER_EXERCISE,
                    notes="Realization phase - peak performance" if phase is BLOCK_REALIZATION else None,
                )
            )

        weeks.append(
            WeeklyPlan(
                week_number=week,
                week_type="pr_attempt" if is_pr else "training",
                sessions=sessions,
                progression_formula=f"block_{phase.name}",
            )
        )
    return weeks


_GENERATORS = {
    "linear": _generate_linear,
    "dup": _generate_dup,
    "block": _generate_block,
}


def generate_algorithmic_plan(context: PlanningContext) -> list[WeeklyPlan]:
    """
    Generate a deterministic periodized plan.

    Args:
        context: Validated planning context (duration 4-6 weeks)

    Returns:
        One WeeklyPlan per week, weeks numbered from 1
    """
    model = context.periodization or select_periodization_model(
        context.goal_preset, len(context.recent_sessions)
    )
    logger.info(
        "generating %s plan: %d weeks, %d exercises",
        model,
        context.duration,
        len(context.current_one_rm_estimates),
    )
    return _GENERATORS[model](context)


def calculate_week_volume(sessions: list[SessionPrescription]) -> float:
    """
    Week volume target = Σ sets × reps × weight over all sessions.

    Args:
        sessions: Sessions of one week

    Returns:
        Volume in kg, 2 decimals
    """
    return round_half_up(sum(s.total_volume_target for s in sessions), 2)


def format_plan_summary(plan: list[WeeklyPlan]) -> str:
    """
    Create a text summary of the plan.

    Args:
        plan: Weekly plans

    Returns:
        Formatted string summary
    """
    if not plan:
        return "No weeks planned."

    lines = []
    for week in plan:
        if lines:
            lines.append("")
        lines.append(
            f"Week {week.week_number} ({week.week_type}, {week.progression_formula}) "
            f"volume {calculate_week_volume(week.sessions):,.0f}kg"
        )
        for session in week.sessions:
            label = session.day_of_week or f"Session {session.session_number}"
            if not session.exercises:
                lines.append(f"  {label}: (no exercises)")
                continue
            parts = [
                f"{ex.exercise_name} {ex.sets}x{ex.reps}@{ex.weight or 0:g}"
                for ex in session.exercises
            ]
            lines.append(f"  {label}: " + ", ".join(parts))

    return "\n".join(lines)
