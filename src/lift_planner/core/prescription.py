"""
Session prescription generator.

Turns today's readiness (rho) and the planned sets of a session into
per-set load / rep / rest suggestions, a human-readable rationale for each
set, and a predicted chance of beating the previous best volume.

Core formulas:
    Δ     = clip(1 + 0.3 × (rho − 0.5), 0.9, 1.1)     (beginner cap 1.05)
    f(i)  = max(0, 1 − 0.05 × i)                        (within-session fatigue)
    load  = round_to_increment(target × Δ × f(i), inc)
    rest  = {120, 150, 180}[readiness tier] + 15 × i
    p     = clip(0.5 + 0.35 × (rho − 0.5) + 0.15 × ln γ, 0.05, 0.98)
"""

import logging
import math
from typing import Callable, Iterable, Mapping, Sequence

from .config import (
    BODYWEIGHT_REP_CHANGE_CAP,
    CHANCE_BASE,
    CHANCE_MAX,
    CHANCE_MIN,
    CHANCE_READINESS_GAIN,
    CHANCE_VOLUME_GAIN,
    DEFAULT_WEIGHT_INCREMENT_KG,
    FATIGUE_DECAY_PER_SET,
    GAMMA_FLOOR,
    HIGH_REP_THRESHOLD,
    READINESS_TIER_HIGH,
    READINESS_TIER_MID,
    REST_HIGH_READINESS,
    REST_INCREMENT_PER_SET,
    REST_LOW_READINESS,
    REST_MID_READINESS,
    RPE_HIGH_EFFORT,
    RPE_LOAD_SHIFT_THRESHOLD,
    RPE_LOW_EFFORT,
    RPE_NUDGE_MAX,
    UNSAFE_SESSION_CHANCE,
    WORK_SECONDS_PER_SET,
)
from .metrics import clip, round_half_up, round_to_increment
from .models import (
    ExerciseAdvice,
    ExerciseHistory,
    ExercisePlanTarget,
    ReadinessInput,
    RecoveryRecommendation,
    SessionAdvice,
    SetPrescription,
    SetTarget,
)
from .readiness import compute_readiness, is_unsafe, overload_multiplier, validate_experience_level

logger = logging.getLogger(__name__)

UNSAFE_WARNING = "Low readiness detected - no overload recommended"
UNSAFE_SUMMARY = (
    "Your recovery metrics suggest taking it easy today. Stick to your planned loads."
)

Overlay = Callable[[SessionAdvice], SessionAdvice | None]


# =============================================================================
# Per-set building blocks
# =============================================================================


def fatigue_multiplier(set_index: int) -> float:
    """
    Within-session fatigue factor for the 0-based set index.

    1.0, 0.95, 0.90, ... continuing linearly and floored at 0.
    """
    return max(0.0, 1.0 - FATIGUE_DECAY_PER_SET * set_index)


def readiness_tier(rho: float) -> str:
    if rho > READINESS_TIER_HIGH:
        return "good"
    if rho > READINESS_TIER_MID:
        return "moderate"
    return "low"


def base_rest_seconds(rho: float) -> int:
    """Rest between sets for the readiness tier (before per-set increase)."""
    if rho > READINESS_TIER_HIGH:
        return REST_HIGH_READINESS
    if rho > READINESS_TIER_MID:
        return REST_MID_READINESS
    return REST_LOW_READINESS


def rest_seconds(rho: float, set_index: int) -> int:
    """Rest after set i: tier base + 15 s per preceding set."""
    return base_rest_seconds(rho) + REST_INCREMENT_PER_SET * set_index


def nudge_reps_for_rpe(reps: int, target_rpe: float | None, load_scale: float) -> int:
    """
    Shift reps by at most one toward the target effort.

    When the load scale (Δ × f) raises the load noticeably and the set is
    already hard (RPE ≥ 8), one rep is removed.  When the load drops and
    the set is easy (RPE ≤ 7), one rep is added.  Otherwise reps are kept.
    """
    if target_rpe is None:
        return reps
    shift = load_scale - 1.0
    if shift > RPE_LOAD_SHIFT_THRESHOLD and target_rpe >= RPE_HIGH_EFFORT:
        return max(1, reps - RPE_NUDGE_MAX)
    if shift < -RPE_LOAD_SHIFT_THRESHOLD and target_rpe <= RPE_LOW_EFFORT:
        return reps + RPE_NUDGE_MAX
    return reps


def bodyweight_reps(target_reps: int, load_scale: float, capped: bool) -> int:
    """
    Scale reps for a bodyweight set.

    When capped (endurance tag or more than 15 target reps) the change from
    target is limited to ±2 reps.
    """
    reps = int(round_half_up(target_reps * load_scale))
    if capped:
        change = clip(reps - target_reps, -BODYWEIGHT_REP_CHANGE_CAP, BODYWEIGHT_REP_CHANGE_CAP)
        reps = target_reps + int(change)
    return max(0, reps)


def chance_to_beat_best(rho: float, planned_volume: float | None, best_volume: float | None) -> float:
    """
    Probability of beating the previous best volume.

    γ = max(0.1, planned / max(1, best)) when both volumes are known, else 1.0.
    """
    gamma = 1.0
    if planned_volume is not None and best_volume is not None:
        gamma = max(GAMMA_FLOOR, planned_volume / max(1.0, best_volume))
    p = CHANCE_BASE + CHANCE_READINESS_GAIN * (rho - 0.5) + CHANCE_VOLUME_GAIN * math.log(gamma)
    return round_half_up(clip(p, CHANCE_MIN, CHANCE_MAX), 3)


def session_chance(rho: float, per_exercise: Sequence[ExerciseAdvice]) -> float:
    """
    Session-level chance: volume-weighted mean of per-exercise chances when
    every exercise carries a planned volume, arithmetic mean otherwise.
    """
    if not per_exercise:
        return chance_to_beat_best(rho, None, None)

    volumes = [ex.planned_volume_kg for ex in per_exercise]
    if all(v is not None and v > 0 for v in volumes):
        total = sum(volumes)
        weighted = sum(ex.predicted_chance_to_beat_best * ex.planned_volume_kg for ex in per_exercise)
        return round_half_up(weighted / total, 3)

    mean = sum(ex.predicted_chance_to_beat_best for ex in per_exercise) / len(per_exercise)
    return round_half_up(mean, 3)


# =============================================================================
# History lookups
# =============================================================================


def _find_history(
    target: ExercisePlanTarget, history: Mapping[str, ExerciseHistory]
) -> ExerciseHistory | None:
    return history.get(target.exercise_id) or history.get(target.name)


def _find_best(
    target: ExercisePlanTarget,
    prior_bests: Mapping[str, float],
    hist: ExerciseHistory | None,
) -> float | None:
    for key in (target.exercise_id, target.name):
        if prior_bests.get(key) is not None:
            return prior_bests[key]
    if hist is not None:
        volumes = [s.total_volume for s in hist.sessions if s.total_volume > 0]
        if volumes:
            return max(volumes)
    return None


def _history_note(hist: ExerciseHistory | None) -> str:
    if hist is None or not hist.sessions:
        return "No previous session on record"

    latest = hist.sessions[0]
    best = latest.best_set()
    if best is not None:
        note = f"Last session: {best.weight or 0:g}kg x {best.reps or 0}"
    else:
        note = "Last session logged without sets"

    if len(hist.sessions) >= 2 and latest.total_volume <= hist.sessions[1].total_volume:
        note += (
            f"; plateau detected (volume {latest.total_volume:g}kg "
            f"vs {hist.sessions[1].total_volume:g}kg)"
        )
    return note


def _rationale(rho: float, scale: float, set_index: int, rest: int, history_note: str) -> str:
    parts = [f"Load x{scale:.2f} at {readiness_tier(rho)} readiness ({rho:.0%})"]
    if set_index > 0:
        pct = int(round_half_up((1 - fatigue_multiplier(set_index)) * 100))
        parts.append(f"Fatigue adjustment -{pct}%")
    parts.append(f"Rest {rest}s ({round_half_up(rest / 60, 1):g} min)")
    parts.append(history_note)
    return ". ".join(parts)


# =============================================================================
# Exercise and session
# =============================================================================


def _prescribe_set(
    target: SetTarget,
    set_index: int,
    rho: float,
    delta: float,
    increment: float,
    capped: bool,
    history_note: str,
) -> SetPrescription:
    fatigue = fatigue_multiplier(set_index)
    scale = delta * fatigue
    rest = rest_seconds(rho, set_index)

    weight: float | None = None
    reps: int | None = None
    if target.target_weight_kg is not None:
        weight = round_to_increment(target.target_weight_kg * scale, increment)
        if target.target_reps is not None:
            reps = nudge_reps_for_rpe(target.target_reps, target.target_rpe, scale)
    elif target.target_reps is not None:
        reps = bodyweight_reps(target.target_reps, scale, capped)

    return SetPrescription(
        set_id=target.set_id,
        suggested_weight_kg=weight,
        suggested_reps=reps,
        suggested_rest_seconds=rest,
        rationale=_rationale(rho, delta, set_index, rest, history_note),
    )


def _prescribe_exercise(
    target: ExercisePlanTarget,
    rho: float,
    delta: float,
    increment: float,
    history: Mapping[str, ExerciseHistory],
    prior_bests: Mapping[str, float],
    warnings: list[str],
) -> ExerciseAdvice:
    hist = _find_history(target, history)
    note = _history_note(hist)

    sets: list[SetPrescription] = []
    planned_volume = 0.0
    has_volume = False

    for i, set_target in enumerate(target.sets):
        capped = "endurance" in target.tags or (
            set_target.target_reps is not None and set_target.target_reps > HIGH_REP_THRESHOLD
        )
        prescription = _prescribe_set(set_target, i, rho, delta, increment, capped, note)
        sets.append(prescription)

        if set_target.target_weight_kg is None and set_target.target_reps is None:
            warnings.append(
                f"{target.name} set {set_target.set_id}: no target weight or reps, left blank"
            )
        if prescription.suggested_weight_kg is not None and set_target.target_reps is not None:
            planned_volume += prescription.suggested_weight_kg * set_target.target_reps
            has_volume = True

    planned = round_half_up(planned_volume, 2) if has_volume else None
    best = _find_best(target, prior_bests, hist)
    if best is None:
        warnings.append(f"{target.name}: no prior best volume, chance assumes parity")

    return ExerciseAdvice(
        exercise_id=target.exercise_id,
        name=target.name,
        predicted_chance_to_beat_best=chance_to_beat_best(rho, planned, best),
        planned_volume_kg=planned,
        best_volume_kg=best,
        sets=sets,
    )


def recommend_recovery(rho: float, per_exercise: Sequence[ExerciseAdvice], has_history: bool) -> RecoveryRecommendation:
    """
    Rest guidance for the session.

    Duration = (sets × tier rest + sets × 60 s work) / 60, in minutes.
    """
    total_sets = sum(len(ex.sets) for ex in per_exercise)
    rest = base_rest_seconds(rho)
    duration = int(round_half_up((total_sets * rest + total_sets * WORK_SECONDS_PER_SET) / 60))

    if rho > READINESS_TIER_HIGH:
        between_sessions = "24-48 hours"
    elif rho > READINESS_TIER_MID:
        between_sessions = "48-72 hours"
    else:
        between_sessions = "72+ hours for full recovery"

    return RecoveryRecommendation(
        rest_between_sets=f"{round_half_up(rest / 60):g} minutes for strength exercises",
        rest_between_sessions=between_sessions,
        session_duration_minutes=duration,
        notes=[
            "Consider active recovery or light cardio instead"
            if rho < READINESS_TIER_MID
            else "Monitor fatigue levels throughout session",
            "Prioritize sleep and nutrition for optimal recovery",
            "Track progression over multiple sessions" if has_history else "Focus on movement quality",
        ],
    )


def _unsafe_advice(rho: float, flags: list[str]) -> SessionAdvice:
    logger.warning("readiness %.2f below safety threshold, overload disabled", rho)
    return SessionAdvice(
        rho=rho,
        overload_multiplier=1.0,
        flags=flags + ["unsafe_readiness"],
        per_exercise=[],
        session_predicted_chance=UNSAFE_SESSION_CHANCE,
        warnings=[UNSAFE_WARNING],
        summary=UNSAFE_SUMMARY,
        recovery=recommend_recovery(rho, [], has_history=False),
    )


def generate_session_prescription(
    rho: float,
    experience_level: str,
    targets: Sequence[ExercisePlanTarget],
    history: Mapping[str, ExerciseHistory] | None = None,
    prior_bests: Mapping[str, float] | None = None,
    min_increment_kg: float | None = None,
    flags: Iterable[str] = (),
) -> SessionAdvice:
    """
    Generate per-set prescriptions for one session.

    Args:
        rho: Readiness score in [0, 1]
        experience_level: "beginner", "intermediate" or "advanced"
        targets: Planned exercises with their set targets
        history: Per-exercise history keyed by exercise id or name
        prior_bests: Best session volume per exercise id or name
        min_increment_kg: Plate step for load rounding (default 2.5)
        flags: Readiness flags carried into the response

    Returns:
        SessionAdvice.  Below rho 0.35 the conservative response is
        returned: Δ = 1.0, no exercises, chance 0.3.

    Raises:
        ValueError: On rho outside [0, 1], an unknown experience level or a
            non-positive increment
    """
    if not (0.0 <= rho <= 1.0):
        raise ValueError(f"rho must be within [0, 1], got {rho}")
    validate_experience_level(experience_level)
    increment = DEFAULT_WEIGHT_INCREMENT_KG if min_increment_kg is None else min_increment_kg
    if increment <= 0:
        raise ValueError("min_increment_kg must be positive")

    flags = list(flags)
    if is_unsafe(rho):
        return _unsafe_advice(rho, flags)

    history = history or {}
    prior_bests = prior_bests or {}
    delta = overload_multiplier(rho, experience_level)
    warnings: list[str] = []

    per_exercise = [
        _prescribe_exercise(t, rho, delta, increment, history, prior_bests, warnings)
        for t in targets
    ]

    has_history = any(_find_history(t, history) is not None for t in targets)
    recovery = recommend_recovery(rho, per_exercise, has_history)
    summary = (
        f"Load recommendations based on readiness ({round_half_up(rho * 100):.0f}%) and "
        f"{'historical performance data' if has_history else 'conservative estimates'}. "
        f"Allow {recovery.session_duration_minutes} minutes for this session."
    )

    logger.debug(
        "prescribed %d exercises at rho=%.3f delta=%.3f", len(per_exercise), rho, delta
    )
    return SessionAdvice(
        rho=rho,
        overload_multiplier=delta,
        flags=flags,
        per_exercise=per_exercise,
        session_predicted_chance=session_chance(rho, per_exercise),
        warnings=warnings,
        summary=summary,
        recovery=recovery,
    )


def advise_session(
    readiness_input: ReadinessInput,
    experience_level: str,
    targets: Sequence[ExercisePlanTarget],
    history: Mapping[str, ExerciseHistory] | None = None,
    prior_bests: Mapping[str, float] | None = None,
    min_increment_kg: float | None = None,
    overlay: Overlay | None = None,
) -> SessionAdvice:
    """
    Readiness + prescription in one call, with an optional overlay.

    The overlay receives the algorithmic advice and may return a replacement.
    It is never consulted on the conservative (unsafe) path.  An overlay that
    returns None or raises leaves the algorithmic advice in place and adds a
    warning.
    """
    readiness = compute_readiness(readiness_input)
    advice = generate_session_prescription(
        readiness.rho,
        experience_level,
        targets,
        history=history,
        prior_bests=prior_bests,
        min_increment_kg=min_increment_kg,
        flags=readiness.flags,
    )

    if overlay is None or "unsafe_readiness" in advice.flags:
        return advice

    try:
        replacement = overlay(advice)
    except Exception as e:
        logger.warning("prescription overlay failed: %s", e)
        advice.warnings.append("Overlay unavailable - using algorithmic prescription")
        return advice

    if replacement is None:
        advice.warnings.append("Overlay returned no result - using algorithmic prescription")
        return advice
    return replacement
