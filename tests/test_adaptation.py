"""
Tests for plateau detection and next-session progression suggestions.
"""

from datetime import date, timedelta

import pytest

from lift_planner.core.adaptation import (
    calculate_progression_suggestions,
    detect_plateau,
    suggest_progression,
)
from lift_planner.core.models import (
    ExerciseHistory,
    ExerciseSessionHistory,
    ExerciseSetRecord,
    HistoricalSet,
)


def _records(*sets: tuple[float, int]) -> list[ExerciseSetRecord]:
    """One record per session, oldest first."""
    start = date(2024, 1, 1)
    return [
        ExerciseSetRecord(
            exercise_name="Squat",
            workout_date=start + timedelta(days=3 * i),
            weight=w,
            reps=r,
        )
        for i, (w, r) in enumerate(sets)
    ]


def _history(*sessions: list[tuple[float, int]]) -> ExerciseHistory:
    """Sessions given newest first, each a list of (weight, reps) sets."""
    latest = date(2024, 2, 1)
    return ExerciseHistory(
        exercise_name="Bench Press",
        sessions=[
            ExerciseSessionHistory(
                workout_date=latest - timedelta(days=3 * i),
                sets=[HistoricalSet(weight=w, reps=r) for w, r in sets],
            )
            for i, sets in enumerate(sessions)
        ],
    )


STALLED = _history([(80, 8), (75, 8)], [(80, 8), (75, 8)])
IMPROVING = _history([(80, 8)], [(77.5, 8)])


class TestPlateauDetection:
    def test_flat_series_is_high_confidence_plateau(self):
        result = detect_plateau(_records((100, 5), (100, 5), (100, 5)))

        assert result.is_plateaued
        assert result.session_count == 3
        assert result.confidence == "high"
        assert (result.stalled_weight, result.stalled_reps) == (100, 5)

    def test_rising_weight_is_not_plateau(self):
        result = detect_plateau(_records((95, 5), (97.5, 5), (100, 5)))
        assert not result.is_plateaued

    def test_rising_reps_is_not_plateau(self):
        result = detect_plateau(_records((100, 5), (100, 5), (100, 6)))
        assert not result.is_plateaued

    def test_declining_series_is_low_confidence_plateau(self):
        # weights 100, 97.5, 95 → variance 4.17
        result = detect_plateau(_records((100, 5), (97.5, 5), (95, 5)))

        assert result.is_plateaued
        assert result.confidence == "low"
        assert result.stalled_weight == 95

    def test_medium_confidence(self):
        # reps 7, 5, 5 → variance 0.89
        result = detect_plateau(_records((100, 7), (100, 5), (100, 5)))
        assert result.is_plateaued
        assert result.confidence == "medium"

    def test_only_three_most_recent_sessions_count(self):
        result = detect_plateau(_records((80, 5), (100, 5), (100, 5), (100, 5)))
        assert result.is_plateaued
        assert result.session_count == 3

    def test_input_order_does_not_matter(self):
        records = _records((95, 5), (97.5, 5), (100, 5))
        assert not detect_plateau(list(reversed(records))).is_plateaued

    def test_too_few_sessions(self):
        result = detect_plateau(_records((100, 5), (100, 5)))
        assert not result.is_plateaued
        assert result.session_count == 2


class TestProgressionSuggestions:
    def test_linear(self):
        prog = suggest_progression(STALLED, 0.6, "linear")
        assert prog.suggestions[0].suggested == 82.5
        assert prog.suggestions[0].current == 80

    def test_percentage_rounds_to_increment(self):
        # 80 × 1.05 = 84 → 85
        prog = suggest_progression(STALLED, 0.6, "percentage")
        assert prog.suggestions[0].suggested == 85.0

    def test_adaptive_high_readiness_adds_load(self):
        prog = suggest_progression(IMPROVING, 0.8, "adaptive")
        assert prog.suggestions[0].suggested > 80
        assert prog.suggestions[0].suggested == 82.5

    def test_adaptive_plateau_with_low_readiness_deloads(self):
        prog = suggest_progression(STALLED, 0.3, "adaptive")
        assert prog.plateau_detected
        assert prog.suggestions[0].suggested < 80
        # 80 × 0.9 = 72 → 72.5
        assert prog.suggestions[0].suggested == 72.5

    def test_adaptive_moderate_readiness_holds(self):
        prog = suggest_progression(STALLED, 0.6, "adaptive")
        assert prog.suggestions[0].suggested == 80

    def test_adaptive_low_readiness_without_plateau_holds(self):
        prog = suggest_progression(IMPROVING, 0.3, "adaptive")
        assert not prog.plateau_detected
        assert prog.suggestions[0].suggested == 80

    def test_adaptive_reps_model(self):
        prog = suggest_progression(STALLED, 0.6, "adaptive", progression_model="reps")
        assert prog.suggestions[0].type == "reps"
        assert prog.suggestions[0].suggested == 9

    def test_no_history_suggests_starter_weight(self):
        prog = suggest_progression(ExerciseHistory(exercise_name="Squat"), 0.6, "adaptive")
        suggestion = prog.suggestions[0]

        assert suggestion.suggested == 20
        assert suggestion.rationale == "No historical data - start light at 20kg"

    def test_latest_session_without_sets(self):
        history = ExerciseHistory(
            exercise_name="Squat",
            sessions=[ExerciseSessionHistory(workout_date=date(2024, 2, 1))],
        )
        assert suggest_progression(history, 0.6, "linear").suggestions == []

    def test_unknown_type(self):
        with pytest.raises(ValueError):
            suggest_progression(STALLED, 0.6, "wave")

    def test_batch_preserves_order(self):
        progs = calculate_progression_suggestions(
            [STALLED, ExerciseHistory(exercise_name="Squat")], 0.6, "linear"
        )
        assert [p.exercise_name for p in progs] == ["Bench Press", "Squat"]
