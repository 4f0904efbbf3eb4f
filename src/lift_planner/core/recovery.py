"""
Recovery session planner.

Sorts today's readiness into a red, yellow or green zone and scales a
planned session accordingly.  Zone edges (0.33 / 0.66) move with the
user's sensitivity setting; how hard the red and yellow zones cut load and
sets depends on the chosen strategy (conservative ... aggressive).
"""

import logging
from dataclasses import replace
from typing import Sequence

from .config import (
    DEFAULT_RECOVERY_SENSITIVITY,
    DEFAULT_RECOVERY_STRATEGY,
    RECOVERY_RED_ZONE,
    RECOVERY_YELLOW_ZONE,
    REST_DAY_THRESHOLD,
    SENSITIVITY_MIDPOINT,
    SENSITIVITY_ZONE_SHIFT,
    STRATEGY_MULTIPLIERS,
    ZONE_CONFIDENCE,
)
from .metrics import round_half_up, round_to_increment
from .models import (
    ExercisePlanTarget,
    ReadinessInput,
    RecoveryPlan,
    SessionAdjustment,
    validate_recovery_settings,
)
from .readiness import compute_readiness

logger = logging.getLogger(__name__)

_FLAG_REASONS = {
    "good_recovery": "recovery score is high",
    "low_recovery": "recovery score is low",
    "good_sleep": "sleep was good",
    "poor_sleep": "sleep was poor",
    "high_strain_yesterday": "yesterday's strain was high",
    "low_energy": "energy is low",
    "stress_noted": "stress was noted",
    "illness_noted": "illness was noted",
}


def zone_thresholds(sensitivity: int = DEFAULT_RECOVERY_SENSITIVITY) -> tuple[float, float]:
    """
    Red and yellow zone upper edges for a 1-10 sensitivity.

    Sensitivity 5 keeps 0.33 / 0.66.  Each step above 5 raises both edges
    by 0.01 (more sessions get cut back); each step below lowers them.
    """
    shift = (sensitivity - SENSITIVITY_MIDPOINT) / 10 * SENSITIVITY_ZONE_SHIFT
    return RECOVERY_RED_ZONE + shift, RECOVERY_YELLOW_ZONE + shift


def determine_adjustment(
    rho: float,
    strategy: str = DEFAULT_RECOVERY_STRATEGY,
    sensitivity: int = DEFAULT_RECOVERY_SENSITIVITY,
) -> SessionAdjustment:
    """
    Map readiness to a recommendation and load / volume multipliers.

    red    → rest_day (rho < 0.2) or active_recovery
    yellow → reduce_intensity
    green  → train_as_planned (multipliers 1.0)

    Raises:
        ValueError: On rho outside [0, 1], an unknown strategy or a
            sensitivity outside 1-10
    """
    if not (0.0 <= rho <= 1.0):
        raise ValueError(f"rho must be within [0, 1], got {rho}")
    validate_recovery_settings(strategy, sensitivity)

    multipliers = STRATEGY_MULTIPLIERS[strategy]
    red_edge, yellow_edge = zone_thresholds(sensitivity)

    if rho < red_edge:
        return SessionAdjustment(
            recommendation="rest_day" if rho < REST_DAY_THRESHOLD else "active_recovery",
            zone="red",
            intensity_adjustment=multipliers.red_intensity,
            volume_adjustment=multipliers.red_volume,
            confidence=ZONE_CONFIDENCE["red"],
        )
    if rho < yellow_edge:
        return SessionAdjustment(
            recommendation="reduce_intensity",
            zone="yellow",
            intensity_adjustment=multipliers.yellow_intensity,
            volume_adjustment=multipliers.yellow_volume,
            confidence=ZONE_CONFIDENCE["yellow"],
        )
    return SessionAdjustment(
        recommendation="train_as_planned",
        zone="green",
        intensity_adjustment=1.0,
        volume_adjustment=1.0,
        confidence=ZONE_CONFIDENCE["green"],
    )


def explain_adjustment(rho: float, flags: Sequence[str], adjustment: SessionAdjustment) -> str:
    reasons = [f"Readiness is {rho:.0%}"]
    reasons.extend(_FLAG_REASONS[f] for f in flags if f in _FLAG_REASONS)

    rec = adjustment.recommendation
    if rec == "rest_day":
        reasons.append("A rest day is recommended to allow for full recovery")
    elif rec == "active_recovery":
        reasons.append(
            "Light activity or active recovery is recommended to promote blood flow "
            "without additional stress"
        )
    elif rec == "reduce_intensity":
        reasons.append(
            f"Consider reducing intensity by {round_half_up((1 - adjustment.intensity_adjustment) * 100):.0f}% "
            f"and volume by {round_half_up((1 - adjustment.volume_adjustment) * 100):.0f}%"
        )
    else:
        reasons.append("Your recovery indicators support training as planned")
    return ". ".join(reasons)


def adjust_targets(
    targets: Sequence[ExercisePlanTarget],
    adjustment: SessionAdjustment,
    increment: float | None = None,
) -> list[ExercisePlanTarget]:
    """
    Apply an adjustment to planned exercises.

    Weights scale by the intensity multiplier (rounded to `increment` when
    given, else to 0.1 kg).  Set counts scale by the volume multiplier,
    keeping at least one set and dropping sets from the end.  Inputs are
    not modified.

    Args:
        targets: Planned exercises
        adjustment: Output of determine_adjustment
        increment: Plate step for adjusted weights

    Returns:
        Adjusted copies of the targets, in order
    """
    adjusted = []
    for target in targets:
        sets = list(target.sets)

        if adjustment.intensity_adjustment != 1.0:
            sets = [
                replace(s, target_weight_kg=_scale_weight(
                    s.target_weight_kg, adjustment.intensity_adjustment, increment
                ))
                if s.target_weight_kg else s
                for s in sets
            ]

        if adjustment.volume_adjustment != 1.0 and sets:
            keep = max(1, int(round_half_up(len(sets) * adjustment.volume_adjustment)))
            sets = sets[:keep]

        adjusted.append(replace(target, tags=set(target.tags), sets=sets))
    return adjusted


def _scale_weight(weight: float, factor: float, increment: float | None) -> float:
    if increment is not None:
        return round_to_increment(weight * factor, increment)
    return round_half_up(weight * factor, 1)


def plan_recovery_session(
    data: ReadinessInput,
    targets: Sequence[ExercisePlanTarget] = (),
    strategy: str = DEFAULT_RECOVERY_STRATEGY,
    sensitivity: int = DEFAULT_RECOVERY_SENSITIVITY,
    increment: float | None = None,
) -> RecoveryPlan:
    """
    Readiness, zone adjustment and adjusted session in one call.

    Args:
        data: Device or manual readiness input
        targets: Planned exercises (may be empty for a recommendation only)
        strategy: conservative, moderate, adaptive or aggressive
        sensitivity: 1-10, higher cuts back sooner
        increment: Plate step for adjusted weights

    Returns:
        RecoveryPlan

    Raises:
        ValueError: On an unknown strategy or out-of-range sensitivity
    """
    readiness = compute_readiness(data)
    adjustment = determine_adjustment(readiness.rho, strategy, sensitivity)
    adjustment.reasoning = explain_adjustment(readiness.rho, readiness.flags, adjustment)

    logger.debug(
        "rho %.2f → %s zone, %s", readiness.rho, adjustment.zone, adjustment.recommendation
    )

    return RecoveryPlan(
        rho=readiness.rho,
        flags=list(readiness.flags),
        strategy=strategy,
        adjustment=adjustment,
        exercises=adjust_targets(targets, adjustment, increment),
    )
