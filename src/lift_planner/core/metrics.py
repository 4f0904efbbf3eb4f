"""
Pure metric computation functions (the exercise math library).

All functions are pure, deterministic and typed for testability.
Rounding is half-up (not Python's banker's rounding) so that displayed
weights match what lifters compute by hand.
"""

import math
from datetime import date, timedelta
from typing import Literal, Sequence

from .config import BRZYCKI_MAX_REPS, DEFAULT_WEIGHT_INCREMENT_KG, EPLEY_DIVISOR
from .models import ExerciseSetRecord, PrKind


def clip(x: float, low: float, high: float) -> float:
    """Clamp x into [low, high]."""
    return min(max(x, low), high)


def round_half_up(x: float, ndigits: int = 0) -> float:
    """
    Round with ties going toward +inf (2.5 → 3, 8.5 → 9, -2.5 → -2).

    Args:
        x: Value to round
        ndigits: Decimal places to keep

    Returns:
        Rounded value (float; callers cast to int when ndigits == 0)
    """
    factor = 10 ** ndigits
    return math.floor(x * factor + 0.5) / factor


def round_to_increment(x: float, increment: float = DEFAULT_WEIGHT_INCREMENT_KG) -> float:
    """
    Round a load to the nearest loadable increment.

    round_to_increment(x, inc) = round(x / inc) × inc

    Args:
        x: Raw load in kg
        increment: Plate step (must be positive)

    Returns:
        Multiple of increment nearest to x
    """
    if increment <= 0:
        raise ValueError("increment must be positive")
    steps = round_half_up(x / increment)
    # Re-round to strip float noise such as 82.50000000000001
    return round(steps * increment, 6)


def estimate_one_rep_max(weight: float, reps: int) -> float:
    """
    Estimate 1RM using Brzycki, falling back to Epley.

    Brzycki: 1RM = w × 36 / (37 − r)     for 1 < r ≤ 36
    Epley:   1RM = w × (1 + r / 30)      otherwise

    Args:
        weight: Load lifted in kg
        reps: Repetitions performed

    Returns:
        Estimated 1RM in kg, 2 decimals; 0 for non-positive input
    """
    if reps == 1:
        return weight
    if weight <= 0 or reps <= 0:
        return 0.0

    if reps <= BRZYCKI_MAX_REPS:
        brzycki = weight * (36 / (37 - reps))
        if brzycki > 0 and math.isfinite(brzycki):
            return round_half_up(brzycki, 2)

    epley = weight * (1 + reps / EPLEY_DIVISOR)
    return round_half_up(epley, 2)


def volume_load(sets: int | None, reps: int | None, weight: float | None) -> float:
    """
    Volume load = sets × reps × weight, missing factors count as 0.

    Args:
        sets: Number of sets
        reps: Reps per set
        weight: Load in kg

    Returns:
        Volume load in kg, 2 decimals
    """
    return round_half_up((sets or 0) * (reps or 0) * (weight or 0.0), 2)


def trend_slope(points: Sequence[tuple[float, float]]) -> float:
    """
    Ordinary least-squares slope of y over x.

    Args:
        points: (x, y) pairs, e.g. (week index, volume)

    Returns:
        Slope, or 0.0 with fewer than 2 points or a degenerate x spread
    """
    if len(points) < 2:
        return 0.0

    n = len(points)
    sum_x = sum(p[0] for p in points)
    sum_y = sum(p[1] for p in points)
    sum_xy = sum(p[0] * p[1] for p in points)
    sum_x2 = sum(p[0] ** 2 for p in points)

    denominator = n * sum_x2 - sum_x**2
    if denominator == 0:
        return 0.0

    slope = (n * sum_xy - sum_x * sum_y) / denominator
    return slope if math.isfinite(slope) else 0.0


def consistency_score(values: Sequence[float]) -> int:
    """
    Performance consistency from the coefficient of variation.

    score = max(0, 100 − 100 × σ / μ)   (population σ)

    Args:
        values: Metric series, typically 1RM estimates over time

    Returns:
        Integer score 0-100 (higher = more consistent)
    """
    if len(values) < 2:
        return 100

    mean = sum(values) / len(values)
    variance = sum((v - mean) ** 2 for v in values) / len(values)
    std = math.sqrt(variance)

    cv = std / mean if mean > 0 else 1.0
    return int(round_half_up(max(0.0, 100 - cv * 100)))


def percentage_change(current: float, previous: float) -> float:
    """
    Percent change from previous to current, 2 decimals.

    A zero baseline reports 100 for any gain and 0 otherwise.
    """
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return round_half_up((current - previous) / previous * 100, 2)


def is_personal_record(
    current: ExerciseSetRecord,
    best: ExerciseSetRecord,
    kind: PrKind,
) -> bool:
    """
    Strict greater-than comparison on the selected metric.

    Args:
        current: Performance being evaluated
        best: Historical best performance
        kind: "weight", "volume" or "one_rm"

    Returns:
        True if current beats best on that metric
    """
    current_weight = current.weight or 0.0
    best_weight = best.weight or 0.0
    current_reps = current.reps or 0
    best_reps = best.reps or 0

    if kind == "weight":
        return current_weight > best_weight
    if kind == "volume":
        return volume_load(current.sets or 1, current_reps, current_weight) > volume_load(
            best.sets or 1, best_reps, best_weight
        )
    if kind == "one_rm":
        return estimate_one_rep_max(current_weight, current_reps) > estimate_one_rep_max(
            best_weight, best_reps
        )
    raise ValueError(f"Unknown PR kind: {kind!r}")


def week_start(day: date) -> date:
    """Monday of the week containing day."""
    return day - timedelta(days=day.weekday())


def training_frequency(workout_dates: Sequence[date], start: date, end: date) -> float:
    """
    Workouts per week over [start, end], 1 decimal.

    Periods shorter than a week count as one week.
    """
    total_days = (end - start).days
    weeks = max(1.0, total_days / 7)
    return round_half_up(len(workout_dates) / weeks, 1)


def date_range(
    time_range: Literal["week", "month", "quarter", "year"],
    today: date,
    start: date | None = None,
    end: date | None = None,
) -> tuple[date, date]:
    """
    Resolve a named reporting window ending today.

    Explicit start and end win when both are given.
    """
    if start is not None and end is not None:
        return start, end

    if time_range == "week":
        return today - timedelta(days=7), today

    months = {"month": 1, "quarter": 3, "year": 12}.get(time_range)
    if months is None:
        raise ValueError(f"Unknown time range: {time_range!r}")

    year, month = today.year, today.month - months
    while month <= 0:
        month += 12
        year -= 1
    # Clamp day for short months (e.g. Mar 31 → Feb 28)
    day = today.day
    while True:
        try:
            return date(year, month, day), today
        except ValueError:
            day -= 1
