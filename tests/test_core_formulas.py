"""
Formula-focused unit tests for the exercise math library and the
readiness calculator.

Values are hand-computed from the formulas so the tests act as a
reference for the numbers the engine produces.
"""

from datetime import date, timedelta

import pytest

from lift_planner.core.metrics import (
    clip,
    consistency_score,
    date_range,
    estimate_one_rep_max,
    is_personal_record,
    percentage_change,
    round_half_up,
    round_to_increment,
    training_frequency,
    trend_slope,
    volume_load,
    week_start,
)
from lift_planner.core.models import (
    DeviceReadinessInput,
    ExerciseSetRecord,
    ManualReadinessInput,
    ReadinessResult,
)
from lift_planner.core.readiness import (
    compute_readiness,
    is_unsafe,
    map_manual_wellness_to_device,
    overload_multiplier,
)


def _record(weight: float | None, reps: int | None, sets: int = 1) -> ExerciseSetRecord:
    return ExerciseSetRecord(
        exercise_name="Bench Press",
        workout_date=date(2024, 1, 8),
        weight=weight,
        reps=reps,
        sets=sets,
    )


# ---------------------------------------------------------------------------
# One-rep max
# ---------------------------------------------------------------------------


class TestOneRepMax:
    def test_single_rep_returns_weight(self):
        assert estimate_one_rep_max(100, 1) == 100

    def test_brzycki_five_reps(self):
        # 100 × 36 / 32
        assert estimate_one_rep_max(100, 5) == pytest.approx(112.5)

    def test_brzycki_rounded_to_two_decimals(self):
        # 100 × 36 / 29 = 124.1379...
        assert estimate_one_rep_max(100, 8) == pytest.approx(124.14)

    def test_epley_beyond_brzycki_range(self):
        # 100 × (1 + 40/30) = 233.33
        assert estimate_one_rep_max(100, 40) == pytest.approx(233.33)

    @pytest.mark.parametrize("weight,reps", [(0, 5), (-10, 5), (100, 0), (100, -1)])
    def test_non_positive_input_is_zero(self, weight, reps):
        assert estimate_one_rep_max(weight, reps) == 0

    def test_pure_function(self):
        assert estimate_one_rep_max(87.5, 6) == estimate_one_rep_max(87.5, 6)


# ---------------------------------------------------------------------------
# Volume, rounding and trends
# ---------------------------------------------------------------------------


class TestVolumeAndRounding:
    def test_volume_load(self):
        assert volume_load(3, 10, 50) == 1500

    def test_volume_load_missing_factor_is_zero(self):
        assert volume_load(None, 10, 50) == 0
        assert volume_load(3, None, 50) == 0
        assert volume_load(3, 10, None) == 0

    def test_round_half_up_ties_go_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(8.5) == 9
        assert round_half_up(-2.5) == -2

    def test_round_to_increment_nearest(self):
        assert round_to_increment(81) == 80.0
        assert round_to_increment(82) == 82.5

    def test_round_to_increment_tie_goes_up(self):
        # 83.75 / 2.5 = 33.5 → 34 steps
        assert round_to_increment(83.75) == 85.0

    @pytest.mark.parametrize("x", [0.0, 1.1, 17.3, 61.24, 99.99, 102.5, 187.6, 333.3])
    def test_round_to_increment_is_multiple(self, x):
        result = round_to_increment(x, 2.5)
        assert (result / 2.5) == pytest.approx(round(result / 2.5))

    def test_round_to_custom_increment(self):
        assert round_to_increment(81, 1.25) == 81.25

    def test_round_to_increment_rejects_zero(self):
        with pytest.raises(ValueError):
            round_to_increment(80, 0)

    def test_clip(self):
        assert clip(1.5, 0.8, 1.2) == 1.2
        assert clip(0.5, 0.8, 1.2) == 0.8
        assert clip(1.0, 0.8, 1.2) == 1.0

    def test_trend_slope_linear_series(self):
        assert trend_slope([(0, 100), (1, 200), (2, 300)]) == pytest.approx(100)

    def test_trend_slope_needs_two_points(self):
        assert trend_slope([(0, 100)]) == 0.0
        assert trend_slope([]) == 0.0

    def test_trend_slope_degenerate_x(self):
        assert trend_slope([(1, 100), (1, 300)]) == 0.0


class TestConsistencyAndChange:
    def test_constant_series_is_fully_consistent(self):
        assert consistency_score([100, 100, 100]) == 100

    def test_short_series_is_fully_consistent(self):
        assert consistency_score([100]) == 100

    def test_coefficient_of_variation(self):
        # mean 100, population σ 50 → CV 0.5 → 50
        assert consistency_score([50, 150]) == 50

    def test_zero_mean_scores_zero(self):
        assert consistency_score([0, 0]) == 0

    def test_percentage_change(self):
        assert percentage_change(110, 100) == pytest.approx(10.0)
        assert percentage_change(90, 120) == pytest.approx(-25.0)

    def test_percentage_change_from_zero(self):
        assert percentage_change(5, 0) == 100.0
        assert percentage_change(0, 0) == 0.0


class TestPersonalRecords:
    def test_weight_pr(self):
        assert is_personal_record(_record(100, 5), _record(95, 8), "weight")

    def test_volume_is_not_pr(self):
        # 500 vs 760
        assert not is_personal_record(_record(100, 5), _record(95, 8), "volume")

    def test_one_rm_is_not_pr(self):
        # 112.5 vs 117.93
        assert not is_personal_record(_record(100, 5), _record(95, 8), "one_rm")

    def test_equal_is_not_pr(self):
        assert not is_personal_record(_record(100, 5), _record(100, 5), "weight")

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            is_personal_record(_record(100, 5), _record(95, 8), "speed")


class TestDates:
    def test_week_start_is_monday(self):
        assert week_start(date(2024, 1, 10)) == date(2024, 1, 8)
        assert week_start(date(2024, 1, 8)) == date(2024, 1, 8)

    def test_training_frequency(self):
        start = date(2024, 1, 1)
        dates = [start + timedelta(days=2 * i) for i in range(6)]
        assert training_frequency(dates, start, start + timedelta(days=14)) == 3.0

    def test_short_window_counts_as_one_week(self):
        start = date(2024, 1, 1)
        assert training_frequency([start, start], start, start + timedelta(days=3)) == 2.0

    def test_date_range_week(self):
        today = date(2024, 3, 15)
        assert date_range("week", today) == (date(2024, 3, 8), today)

    def test_date_range_explicit_bounds_win(self):
        start, end = date(2024, 1, 1), date(2024, 2, 1)
        assert date_range("year", date(2024, 3, 15), start, end) == (start, end)


# ---------------------------------------------------------------------------
# Readiness: device path
# ---------------------------------------------------------------------------


class TestDeviceReadiness:
    def test_full_device_input(self):
        """0.4·0.8 + 0.3·0.8 + 0.15·1 + 0.15·1 = 0.86"""
        result = compute_readiness(
            DeviceReadinessInput(
                recovery_score=80,
                sleep_performance=80,
                hrv_now_ms=40,
                hrv_baseline_ms=40,
                rhr_now_bpm=60,
                rhr_baseline_bpm=60,
                yesterday_strain=10,
            )
        )
        assert result.rho == pytest.approx(0.86)
        assert "good_recovery" in result.flags
        assert "good_sleep" in result.flags
        assert not any(f.startswith("missing_") for f in result.flags)

    def test_empty_input_uses_neutral_defaults(self):
        """0.4·0.5 + 0.3·0.5 + 0.15 + 0.15 = 0.65"""
        result = compute_readiness(DeviceReadinessInput())
        assert result.rho == pytest.approx(0.65)
        assert result.flags == [
            "missing_hrv",
            "missing_rhr",
            "missing_sleep",
            "missing_recovery",
            "low_recovery",
            "poor_sleep",
        ]

    def test_high_strain_penalty(self):
        result = compute_readiness(
            DeviceReadinessInput(recovery_score=80, sleep_performance=80, yesterday_strain=15)
        )
        assert result.rho == pytest.approx(0.81)
        assert "high_strain_yesterday" in result.flags

    def test_strain_at_threshold_is_not_penalized(self):
        result = compute_readiness(
            DeviceReadinessInput(recovery_score=80, sleep_performance=80, yesterday_strain=14)
        )
        assert result.rho == pytest.approx(0.86)
        assert "high_strain_yesterday" not in result.flags

    def test_hrv_ratio_is_clipped(self):
        """HRV 80/40 = 2.0 clips to 1.2: 0.2 + 0.15 + 0.18 + 0.15"""
        result = compute_readiness(DeviceReadinessInput(hrv_now_ms=80, hrv_baseline_ms=40))
        assert result.rho == pytest.approx(0.68)

    def test_monotonic_in_recovery(self):
        rhos = [
            compute_readiness(
                DeviceReadinessInput(recovery_score=score, sleep_performance=70)
            ).rho
            for score in range(0, 101, 10)
        ]
        assert rhos == sorted(rhos)

    @pytest.mark.parametrize("recovery", [0, 100])
    @pytest.mark.parametrize("sleep", [0, 100])
    @pytest.mark.parametrize("hrv_now", [10, 200])
    @pytest.mark.parametrize("rhr_now", [30, 120])
    @pytest.mark.parametrize("strain", [0, 21])
    def test_rho_bounded(self, recovery, sleep, hrv_now, rhr_now, strain):
        result = compute_readiness(
            DeviceReadinessInput(
                recovery_score=recovery,
                sleep_performance=sleep,
                hrv_now_ms=hrv_now,
                hrv_baseline_ms=50,
                rhr_now_bpm=rhr_now,
                rhr_baseline_bpm=60,
                yesterday_strain=strain,
            )
        )
        assert 0.0 <= result.rho <= 1.0

    def test_out_of_range_recovery_rejected(self):
        with pytest.raises(ValueError):
            DeviceReadinessInput(recovery_score=120)

    def test_unsupported_input_type(self):
        with pytest.raises(TypeError):
            compute_readiness({"recovery_score": 80})


# ---------------------------------------------------------------------------
# Readiness: manual path
# ---------------------------------------------------------------------------


class TestManualReadiness:
    def test_manual_formula(self):
        """0.5·0.8 + 0.4·0.6 + 0.05 + 0.05 = 0.74"""
        result = compute_readiness(ManualReadinessInput(energy_level=8, sleep_quality=6))
        assert result.rho == pytest.approx(0.74)
        assert result.flags == ["manual_wellness_input"]

    def test_low_ratings_and_notes(self):
        result = compute_readiness(
            ManualReadinessInput(
                energy_level=2, sleep_quality=3, notes="Stressed at work and a bit SICK"
            )
        )
        assert result.rho == pytest.approx(0.32)
        assert result.flags == [
            "manual_wellness_input",
            "low_energy",
            "poor_sleep",
            "stress_noted",
            "illness_noted",
        ]

    def test_attached_device_ratios_are_used(self):
        """HRV ratio 1.2, RHR ratio 0.8: 0.4 + 0.24 + 0.06 + 0.04"""
        result = compute_readiness(
            ManualReadinessInput(
                energy_level=8,
                sleep_quality=6,
                device=DeviceReadinessInput(
                    hrv_now_ms=60, hrv_baseline_ms=50, rhr_now_bpm=75, rhr_baseline_bpm=60
                ),
            )
        )
        assert result.rho == pytest.approx(0.74)
        assert "missing_hrv" not in result.flags

    @pytest.mark.parametrize("energy,sleep", [(0, 5), (11, 5), (5, 0)])
    def test_ratings_out_of_range(self, energy, sleep):
        with pytest.raises(ValueError):
            ManualReadinessInput(energy_level=energy, sleep_quality=sleep)

    def test_notes_too_long(self):
        with pytest.raises(ValueError):
            ManualReadinessInput(energy_level=5, sleep_quality=5, notes="x" * 501)

    def test_map_to_device_extremes(self):
        best = map_manual_wellness_to_device(ManualReadinessInput(energy_level=10, sleep_quality=10))
        assert best.recovery_score == 100
        assert best.sleep_performance == 100
        assert best.yesterday_strain == 5

        worst = map_manual_wellness_to_device(ManualReadinessInput(energy_level=1, sleep_quality=1))
        assert worst.recovery_score == 0
        assert worst.sleep_performance == 0
        assert worst.yesterday_strain == 20


# ---------------------------------------------------------------------------
# Overload multiplier and safety threshold
# ---------------------------------------------------------------------------


class TestOverloadMultiplier:
    def test_neutral_readiness(self):
        assert overload_multiplier(0.5, "intermediate") == pytest.approx(1.0)

    def test_linear_region(self):
        assert overload_multiplier(0.7, "intermediate") == pytest.approx(1.06)

    def test_clipped(self):
        assert overload_multiplier(1.0, "advanced") == pytest.approx(1.1)
        assert overload_multiplier(0.0, "advanced") == pytest.approx(0.9)

    @pytest.mark.parametrize("rho", [0.0, 0.35, 0.5, 0.66, 0.8, 1.0])
    def test_beginner_cap(self, rho):
        assert overload_multiplier(rho, "beginner") <= 1.05

    def test_invalid_level(self):
        with pytest.raises(ValueError):
            overload_multiplier(0.5, "elite")

    def test_unsafe_threshold(self):
        assert is_unsafe(0.34)
        assert not is_unsafe(0.35)

    def test_result_rejects_rho_out_of_bounds(self):
        with pytest.raises(ValueError):
            ReadinessResult(rho=1.2)
