"""
Adaptation rules: plateau detection and next-session progression suggestions.

Implements the logic for deciding whether a lift has stalled and how the
load (or reps) should move next session given readiness and the user's
preferred progression style.
"""

import logging
from typing import Sequence

from .config import (
    ADAPTIVE_DELOAD_FACTOR,
    DEFAULT_PERCENTAGE_INCREMENT,
    DEFAULT_WEIGHT_INCREMENT_KG,
    PLATEAU_SESSION_WINDOW,
    PLATEAU_VARIANCE_HIGH,
    PLATEAU_VARIANCE_MEDIUM,
    PROGRESSION_TYPES,
    READINESS_TIER_HIGH,
    READINESS_TIER_MID,
    STARTER_WEIGHT_KG,
)
from .metrics import round_to_increment
from .models import (
    ExerciseHistory,
    ExerciseProgression,
    ExerciseSetRecord,
    PlateauResult,
    ProgressionSuggestion,
)

logger = logging.getLogger(__name__)


def _population_variance(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    mean = sum(values) / len(values)
    return sum((v - mean) ** 2 for v in values) / len(values)


def detect_plateau(records: Sequence[ExerciseSetRecord]) -> PlateauResult:
    """
    Detect a stalled lift over the most recent sessions.

    Plateau = at least 3 sessions AND neither weight nor reps went up from
    one session to the next.  Confidence comes from how flat the series is:
    summed weight + reps variance < 0.5 → high, < 2.0 → medium, else low.

    Args:
        records: One top-set record per session for a single exercise

    Returns:
        PlateauResult (is_plateaued False when fewer than 3 sessions)
    """
    recent = sorted(records, key=lambda r: r.workout_date, reverse=True)
    recent = recent[:PLATEAU_SESSION_WINDOW]

    if len(recent) < PLATEAU_SESSION_WINDOW:
        return PlateauResult(is_plateaued=False, session_count=len(recent))

    # Oldest → newest so "progression" means the later session beat the earlier one
    weights = [r.weight or 0.0 for r in reversed(recent)]
    reps = [r.reps or 0 for r in reversed(recent)]

    weight_up = any(weights[i] > weights[i - 1] for i in range(1, len(weights)))
    reps_up = any(reps[i] > reps[i - 1] for i in range(1, len(reps)))

    total_variance = _population_variance(weights) + _population_variance(reps)
    if total_variance < PLATEAU_VARIANCE_HIGH:
        confidence = "high"
    elif total_variance < PLATEAU_VARIANCE_MEDIUM:
        confidence = "medium"
    else:
        confidence = "low"

    plateaued = not weight_up and not reps_up
    if plateaued:
        logger.info(
            "plateau detected for %s (confidence=%s)", recent[0].name, confidence
        )

    return PlateauResult(
        is_plateaued=plateaued,
        session_count=len(recent),
        stalled_weight=weights[-1] if plateaued else 0.0,
        stalled_reps=reps[-1] if plateaued else 0,
        confidence=confidence,
    )


def _volume_plateau(history: ExerciseHistory) -> bool:
    """Latest session volume did not exceed the one before it."""
    if len(history.sessions) < 2:
        return False
    return history.sessions[0].total_volume <= history.sessions[1].total_volume


def _adaptive_suggestion(
    weight: float,
    reps: int,
    rho: float,
    plateaued: bool,
    progression_model: str,
    increment: float,
) -> ProgressionSuggestion:
    if progression_model == "reps":
        if rho >= READINESS_TIER_MID:
            return ProgressionSuggestion(
                type="reps",
                current=reps,
                suggested=reps + 1,
                rationale=f"Readiness {rho:.0%}: add one rep at {weight:g}kg",
            )
        return ProgressionSuggestion(
            type="reps",
            current=reps,
            suggested=reps,
            rationale=f"Readiness {rho:.0%}: repeat {reps} reps",
        )

    if rho >= READINESS_TIER_HIGH:
        return ProgressionSuggestion(
            type="weight",
            current=weight,
            suggested=round_to_increment(weight + increment, increment),
            rationale=f"High readiness ({rho:.0%}): add {increment:g}kg",
        )
    if plateaued and rho < READINESS_TIER_MID:
        return ProgressionSuggestion(
            type="weight",
            current=weight,
            suggested=round_to_increment(weight * ADAPTIVE_DELOAD_FACTOR, increment),
            rationale=(
                f"Plateau with low readiness ({rho:.0%}): "
                f"deload to {ADAPTIVE_DELOAD_FACTOR:.0%} and rebuild"
            ),
        )
    return ProgressionSuggestion(
        type="weight",
        current=weight,
        suggested=weight,
        rationale=f"Moderate readiness ({rho:.0%}): hold load at {weight:g}kg",
    )


def suggest_progression(
    history: ExerciseHistory,
    rho: float,
    progression_type: str,
    linear_increment: float = DEFAULT_WEIGHT_INCREMENT_KG,
    percentage_increment: float = DEFAULT_PERCENTAGE_INCREMENT,
    progression_model: str = "weight",
    increment: float = DEFAULT_WEIGHT_INCREMENT_KG,
) -> ExerciseProgression:
    """
    Suggest the next-session load for one exercise.

    linear:     W + linear_increment
    percentage: round_to_increment(W × (1 + pct/100))
    adaptive:   rho ≥ 0.7 → W + increment; plateau and rho < 0.5 → 90 % W;
                otherwise hold.  With progression_model="reps", rho ≥ 0.5
                adds one rep instead.

    W and R are taken from the heaviest set of the latest session.

    Args:
        history: Sessions for the exercise, newest first
        rho: Readiness score in [0, 1]
        progression_type: "linear", "percentage" or "adaptive"

    Returns:
        ExerciseProgression (suggestions empty when the latest session has no sets)
    """
    if progression_type not in PROGRESSION_TYPES:
        raise ValueError(
            f"Invalid progression_type: {progression_type!r}. Must be one of {PROGRESSION_TYPES}"
        )

    if not history.sessions:
        return ExerciseProgression(
            exercise_name=history.exercise_name,
            plateau_detected=False,
            suggestions=[
                ProgressionSuggestion(
                    type="weight",
                    current=0.0,
                    suggested=STARTER_WEIGHT_KG,
                    rationale=f"No historical data - start light at {STARTER_WEIGHT_KG:g}kg",
                )
            ],
        )

    plateaued = _volume_plateau(history)
    best = history.sessions[0].best_set()
    if best is None:
        return ExerciseProgression(
            exercise_name=history.exercise_name, plateau_detected=plateaued
        )

    weight = best.weight or 0.0
    reps = best.reps or 0

    if progression_type == "linear":
        suggestion = ProgressionSuggestion(
            type="weight",
            current=weight,
            suggested=round(weight + linear_increment, 2),
            rationale=f"Linear progression: +{linear_increment:g}kg",
        )
    elif progression_type == "percentage":
        suggestion = ProgressionSuggestion(
            type="weight",
            current=weight,
            suggested=round_to_increment(weight * (1 + percentage_increment / 100), increment),
            rationale=f"Percentage progression: +{percentage_increment:g}%",
        )
    else:
        suggestion = _adaptive_suggestion(
            weight, reps, rho, plateaued, progression_model, increment
        )

    return ExerciseProgression(
        exercise_name=history.exercise_name,
        plateau_detected=plateaued,
        suggestions=[suggestion],
    )


def calculate_progression_suggestions(
    histories: Sequence[ExerciseHistory],
    rho: float,
    progression_type: str,
    linear_increment: float = DEFAULT_WEIGHT_INCREMENT_KG,
    percentage_increment: float = DEFAULT_PERCENTAGE_INCREMENT,
    progression_model: str = "weight",
    increment: float = DEFAULT_WEIGHT_INCREMENT_KG,
) -> list[ExerciseProgression]:
    """Run suggest_progression for every exercise, preserving input order."""
    return [
        suggest_progression(
            h,
            rho,
            progression_type,
            linear_increment=linear_increment,
            percentage_increment=percentage_increment,
            progression_model=progression_model,
            increment=increment,
        )
        for h in histories
    ]
