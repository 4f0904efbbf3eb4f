"""
Context aggregator: gathers history and preferences into a PlanningContext.

History comes from a HistoryProvider (the storage layer).  A provider that
fails is treated as "no history available", so a planning request always
produces a context.
"""

import logging
from collections import defaultdict
from datetime import date
from typing import Protocol, Sequence

from .config import DEFAULT_PLAN_WEEKS, MAX_RECENT_SESSIONS, STARTER_ONE_RMS_KG
from .metrics import estimate_one_rep_max, round_half_up, trend_slope, week_start
from .models import (
    PlanningContext,
    SessionHistory,
    UserPreferences,
    VolumeTrend,
    WeeklyVolume,
    validate_plan_request,
)

logger = logging.getLogger(__name__)


class HistoryProvider(Protocol):
    """Storage contract: most recent sessions for templates or exercises."""

    def fetch_sessions_by_template(
        self, user_id: str, template_ids: Sequence[int], limit: int
    ) -> list[SessionHistory]:
        ...

    def fetch_sessions_by_exercise(
        self, user_id: str, exercise_ids: Sequence[int], limit: int
    ) -> list[SessionHistory]:
        ...


def fetch_recent_sessions(
    provider: HistoryProvider | None,
    user_id: str,
    target_type: str,
    target_ids: Sequence[int],
    limit: int = MAX_RECENT_SESSIONS,
) -> list[SessionHistory]:
    """
    Fetch at most `limit` sessions, newest first.

    Provider errors are logged and yield an empty list.
    """
    limit = max(0, min(limit, MAX_RECENT_SESSIONS))
    if provider is None or not target_ids or limit == 0:
        return []

    try:
        if target_type == "template":
            sessions = provider.fetch_sessions_by_template(user_id, list(target_ids), limit)
        else:
            sessions = provider.fetch_sessions_by_exercise(user_id, list(target_ids), limit)
    except Exception as e:
        logger.warning("history fetch failed for user %s: %s", user_id, e)
        return []

    ordered = sorted(
        sessions or [], key=lambda s: (s.workout_date, s.session_id), reverse=True
    )
    return ordered[:limit]


def compute_one_rm_estimates(sessions: Sequence[SessionHistory]) -> dict[str, float]:
    """
    Best 1RM per resolved exercise name across all sessions.

    Each row contributes its stored estimate and a fresh estimate from
    weight × reps; the maximum wins.
    """
    estimates: dict[str, float] = {}
    for session in sessions:
        for record in session.exercises:
            candidates = [record.one_rm_estimate or 0.0]
            if record.weight and record.reps:
                candidates.append(estimate_one_rep_max(record.weight, record.reps))
            best = max(candidates)
            if best <= 0:
                continue
            if best > estimates.get(record.name, 0.0):
                estimates[record.name] = best
    return estimates


def compute_volume_trends(sessions: Sequence[SessionHistory]) -> list[VolumeTrend]:
    """
    Weekly (Monday-anchored) volume per exercise with its OLS slope.

    average_intensity is the mean of weight / 1RM estimate over every logged
    row in the week, so a session logged one row per set still averages to
    at most 1.0.  session_count counts distinct sessions.
    """
    # name → week start → [volume, session ids, intensity sum, row count]
    weekly: dict[str, dict[date, list]] = defaultdict(dict)

    for session in sessions:
        monday = week_start(session.workout_date)
        for record in session.exercises:
            bucket = weekly[record.name].setdefault(monday, [0.0, set(), 0.0, 0])
            bucket[0] += record.volume_load or 0.0
            bucket[1].add(session.session_id)
            bucket[3] += 1
            if record.weight and record.one_rm_estimate:
                bucket[2] += record.weight / record.one_rm_estimate

    trends = []
    for name, weeks in weekly.items():
        data = []
        for monday in sorted(weeks):
            volume, session_ids, intensity_sum, rows = weeks[monday]
            data.append(
                WeeklyVolume(
                    week_start=monday,
                    total_volume=round_half_up(volume, 2),
                    session_count=len(session_ids),
                    average_intensity=round_half_up(intensity_sum / rows, 3) if rows else 0.0,
                )
            )
        slope = trend_slope([(i, w.total_volume) for i, w in enumerate(data)])
        trends.append(VolumeTrend(exercise_name=name, weekly_data=data, trend_slope=slope))
    return trends


def default_one_rms() -> dict[str, float]:
    """Starter 1RM estimates (kg) for a user with no history."""
    return dict(STARTER_ONE_RMS_KG)


def aggregate_context(
    user_id: str,
    target_type: str,
    target_ids: Sequence[int],
    preferences: UserPreferences | None = None,
    provider: HistoryProvider | None = None,
    *,
    duration: int = DEFAULT_PLAN_WEEKS,
    goal_preset: str | None = None,
    goal_text: str | None = None,
    periodization: str | None = None,
    one_rm_inputs: dict[str, float] | None = None,
    available_equipment: Sequence[str] | None = None,
    limit: int = MAX_RECENT_SESSIONS,
) -> PlanningContext:
    """
    Build the planning context for one plan request.

    Args:
        user_id: Owner of the history
        target_type: "template" or "exercise"
        target_ids: Template or master-exercise ids
        preferences: User preferences (defaults when None)
        provider: History provider; None means no history
        duration: Plan length in weeks (4-6)
        one_rm_inputs: User-entered 1RMs, overriding computed values

    Returns:
        PlanningContext (empty collections for a user with no history)

    Raises:
        ValueError: On invalid plan parameters, before any history is fetched
    """
    validate_plan_request(target_type, duration, goal_preset, periodization)

    sessions = fetch_recent_sessions(provider, user_id, target_type, target_ids, limit)
    estimates = compute_one_rm_estimates(sessions)
    if one_rm_inputs:
        estimates.update(one_rm_inputs)

    logger.debug(
        "context for %s: %d sessions, %d exercises", user_id, len(sessions), len(estimates)
    )
    return PlanningContext(
        user_id=user_id,
        target_type=target_type,
        target_ids=list(target_ids),
        duration=duration,
        goal_preset=goal_preset,
        goal_text=goal_text,
        periodization=periodization,
        recent_sessions=sessions,
        current_one_rm_estimates=estimates,
        preferences=preferences or UserPreferences(),
        volume_trends=compute_volume_trends(sessions),
        available_equipment=list(available_equipment or []),
    )
