"""
PR forecasting: when is the next personal record likely?

The estimated 1RM of recent sessions is regressed against session index to
get a progression velocity (1RM gained per session).  The next PR is the
next plate step above the current best; sessions to reach it convert to
weeks through the usual training frequency for the lifter's level.
"""

import logging
import math
from collections import defaultdict
from typing import Sequence

from .config import (
    FORECAST_CONFIDENCE_BOOST,
    FORECAST_CONFIDENCE_PENALTY,
    FORECAST_HISTORY_LIMIT,
    FORECAST_IMPROVING_VELOCITY,
    FORECAST_LOW_DATA_CONFIDENCE,
    FORECAST_MIN_FIT_POINTS,
    FORECAST_MIN_SESSIONS,
    FORECAST_REALISTIC_VELOCITY_MAX,
    FORECAST_REALISTIC_VELOCITY_MIN,
    FORECAST_UNREALISTIC_VELOCITY,
    FORECAST_VELOCITY_WINDOW,
    PR_PLATE_STEP_KG,
    WEEKLY_FREQUENCY_BY_LEVEL,
)
from .metrics import clip, round_half_up, trend_slope
from .models import ExerciseSetRecord, PRForecast, SessionHistory
from .readiness import validate_experience_level

logger = logging.getLogger(__name__)


def _ceil(x: float) -> int:
    # strip float noise so 45.000000001 does not become 46
    return math.ceil(round(x, 6))


def progression_velocity(one_rms: Sequence[float]) -> float:
    """
    1RM gained per session over the most recent sessions.

    Args:
        one_rms: Estimated 1RM per session, newest first

    Returns:
        Positive slope in kg per session, or 0.0 for a flat or falling trend
    """
    recent = list(one_rms[:FORECAST_VELOCITY_WINDOW])
    # x = 0 is the newest session, so a rising lift has a negative slope
    slope = trend_slope(list(enumerate(recent)))
    return max(0.0, -slope)


def _r_squared(values: Sequence[float]) -> float:
    n = len(values)
    mean_x = (n - 1) / 2
    mean_y = sum(values) / n
    slope = trend_slope(list(enumerate(values)))
    intercept = mean_y - slope * mean_x

    total_ss = sum((y - mean_y) ** 2 for y in values)
    if total_ss == 0:
        return 0.0
    residual_ss = sum((y - (intercept + slope * x)) ** 2 for x, y in enumerate(values))
    return 1 - residual_ss / total_ss


def forecast_confidence(one_rms: Sequence[float], velocity: float) -> float:
    """
    Confidence (0-1, 2 decimals) that the forecast holds.

    Fewer than 5 data points gives a flat 0.3.  Otherwise the R² of the
    regression line over the velocity window, +0.2 for a realistic
    velocity (0.5-5 kg/session) and -0.3 for an implausible one (> 10).
    """
    if len(one_rms) < FORECAST_MIN_FIT_POINTS:
        return FORECAST_LOW_DATA_CONFIDENCE

    confidence = clip(_r_squared(list(one_rms[:FORECAST_VELOCITY_WINDOW])), 0.0, 1.0)

    if FORECAST_REALISTIC_VELOCITY_MIN <= velocity <= FORECAST_REALISTIC_VELOCITY_MAX:
        confidence = min(1.0, confidence + FORECAST_CONFIDENCE_BOOST)
    if velocity > FORECAST_UNREALISTIC_VELOCITY:
        confidence = max(0.0, confidence - FORECAST_CONFIDENCE_PENALTY)

    return round_half_up(confidence, 2)


def next_pr_weight(current_pr: float) -> float:
    """Smallest plate step (2.5 kg) at least one step above the current PR."""
    return _ceil((current_pr + PR_PLATE_STEP_KG) / PR_PLATE_STEP_KG) * PR_PLATE_STEP_KG


def forecast_pr(
    records: Sequence[ExerciseSetRecord],
    experience_level: str = "intermediate",
) -> PRForecast | None:
    """
    Forecast the next PR for one exercise.

    Args:
        records: One top record per session for a single exercise
        experience_level: beginner, intermediate or advanced (2, 3 or 4
            sessions per week)

    Returns:
        PRForecast, or None with fewer than 3 sessions, no 1RM estimates,
        or no upward trend

    Raises:
        ValueError: On an unknown experience level
    """
    validate_experience_level(experience_level)
    if not records:
        return None

    recent = sorted(records, key=lambda r: r.workout_date, reverse=True)
    recent = recent[:FORECAST_HISTORY_LIMIT]
    name = recent[0].name

    if len(recent) < FORECAST_MIN_SESSIONS:
        logger.debug("%s: %d sessions, too few to forecast", name, len(recent))
        return None

    one_rms = [r.one_rm_estimate for r in recent if r.one_rm_estimate is not None]
    if not one_rms:
        return None

    velocity = round_half_up(progression_velocity(one_rms), 3)
    if velocity <= 0:
        logger.debug("%s: no upward 1RM trend", name)
        return None

    current_pr = max(one_rms)
    target = next_pr_weight(current_pr)
    sessions_needed = _ceil((target - current_pr) / velocity)
    weeks = _ceil(sessions_needed / WEEKLY_FREQUENCY_BY_LEVEL[experience_level])

    return PRForecast(
        exercise_name=name,
        current_pr=round_half_up(current_pr, 2),
        next_pr_weight=target,
        sessions_to_next_pr=sessions_needed,
        weeks_to_next_pr=weeks,
        estimated_weeks_low=max(1, weeks - 1),
        estimated_weeks_high=weeks + 1,
        velocity=velocity,
        confidence=forecast_confidence(one_rms, velocity),
        trajectory="improving" if velocity > FORECAST_IMPROVING_VELOCITY else "stable",
    )


def top_records_by_exercise(
    sessions: Sequence[SessionHistory],
) -> dict[str, list[ExerciseSetRecord]]:
    """
    Best row (highest 1RM estimate) per exercise per session.

    Sessions that log one row per set still count once each.
    """
    best: dict[str, dict[int, ExerciseSetRecord]] = defaultdict(dict)
    for session in sessions:
        for record in session.exercises:
            if record.one_rm_estimate is None:
                continue
            current = best[record.name].get(session.session_id)
            if current is None or record.one_rm_estimate > current.one_rm_estimate:
                best[record.name][session.session_id] = record
    return {name: list(rows.values()) for name, rows in best.items()}


def forecast_prs(
    sessions: Sequence[SessionHistory],
    experience_level: str = "intermediate",
) -> list[PRForecast]:
    """Forecasts for every exercise with an upward trend, most confident first."""
    forecasts = []
    for records in top_records_by_exercise(sessions).values():
        forecast = forecast_pr(records, experience_level)
        if forecast is not None:
            forecasts.append(forecast)
    forecasts.sort(key=lambda f: (-f.confidence, f.exercise_name))
    return forecasts
