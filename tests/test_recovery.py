"""
Tests for the recovery session planner: zones, sensitivity, strategies and
the adjusted session.
"""

import pytest

from lift_planner.core.models import (
    DeviceReadinessInput,
    ExercisePlanTarget,
    ManualReadinessInput,
    SetTarget,
    UserPreferences,
)
from lift_planner.core.recovery import (
    adjust_targets,
    determine_adjustment,
    explain_adjustment,
    plan_recovery_session,
    zone_thresholds,
)


def _squat(sets: int = 3, weight: float | None = 102.5) -> ExercisePlanTarget:
    return ExercisePlanTarget(
        exercise_id="squat",
        name="Squat",
        tags={"strength"},
        sets=[
            SetTarget(set_id=f"s{i + 1}", target_reps=5, target_weight_kg=weight, target_rpe=8.0)
            for i in range(sets)
        ],
    )


def _manual(energy: int, sleep: int, notes: str | None = None) -> ManualReadinessInput:
    # Without device data: rho = 0.05 * energy + 0.04 * sleep + 0.1
    return ManualReadinessInput(energy_level=energy, sleep_quality=sleep, notes=notes)


class TestZoneThresholds:
    def test_midpoint_keeps_default_edges(self):
        assert zone_thresholds(5) == pytest.approx((0.33, 0.66))

    def test_high_sensitivity_raises_edges(self):
        assert zone_thresholds(10) == pytest.approx((0.38, 0.71))

    def test_low_sensitivity_lowers_edges(self):
        assert zone_thresholds(1) == pytest.approx((0.29, 0.62))


class TestDetermineAdjustment:
    @pytest.mark.parametrize(
        "rho, recommendation, zone",
        [
            (0.0, "rest_day", "red"),
            (0.19, "rest_day", "red"),
            (0.25, "active_recovery", "red"),
            (0.33, "reduce_intensity", "yellow"),
            (0.5, "reduce_intensity", "yellow"),
            (0.66, "train_as_planned", "green"),
            (1.0, "train_as_planned", "green"),
        ],
    )
    def test_zones(self, rho, recommendation, zone):
        adjustment = determine_adjustment(rho)
        assert adjustment.recommendation == recommendation
        assert adjustment.zone == zone

    def test_moderate_multipliers(self):
        red = determine_adjustment(0.25)
        yellow = determine_adjustment(0.5)
        green = determine_adjustment(0.9)

        assert (red.intensity_adjustment, red.volume_adjustment) == (0.70, 0.60)
        assert (yellow.intensity_adjustment, yellow.volume_adjustment) == (0.85, 0.80)
        assert (green.intensity_adjustment, green.volume_adjustment) == (1.0, 1.0)
        assert (red.confidence, yellow.confidence, green.confidence) == (0.9, 0.8, 0.7)

    def test_strategies_order_from_cautious_to_aggressive(self):
        cuts = [
            determine_adjustment(0.5, strategy).intensity_adjustment
            for strategy in ("conservative", "moderate", "adaptive", "aggressive")
        ]
        assert cuts == sorted(cuts)
        assert cuts[0] == 0.80
        assert cuts[-1] == 0.95

    def test_green_zone_ignores_strategy(self):
        for strategy in ("conservative", "aggressive"):
            adjustment = determine_adjustment(0.8, strategy)
            assert adjustment.intensity_adjustment == 1.0
            assert adjustment.volume_adjustment == 1.0

    def test_sensitivity_moves_borderline_sessions(self):
        assert determine_adjustment(0.30, sensitivity=5).zone == "red"
        assert determine_adjustment(0.30, sensitivity=1).zone == "yellow"
        assert determine_adjustment(0.68, sensitivity=5).zone == "green"
        assert determine_adjustment(0.68, sensitivity=10).zone == "yellow"

    @pytest.mark.parametrize(
        "kwargs, match",
        [
            ({"rho": 1.2}, "rho"),
            ({"rho": -0.1}, "rho"),
            ({"rho": 0.5, "strategy": "reckless"}, "recovery_strategy"),
            ({"rho": 0.5, "sensitivity": 0}, "recovery_sensitivity"),
            ({"rho": 0.5, "sensitivity": 11}, "recovery_sensitivity"),
            ({"rho": 0.5, "sensitivity": True}, "recovery_sensitivity"),
        ],
    )
    def test_invalid_arguments(self, kwargs, match):
        with pytest.raises(ValueError, match=match):
            determine_adjustment(**kwargs)


class TestExplainAdjustment:
    def test_reduce_intensity_mentions_both_cuts(self):
        adjustment = determine_adjustment(0.5)
        text = explain_adjustment(0.5, ["poor_sleep"], adjustment)

        assert text.startswith("Readiness is 50%")
        assert "sleep was poor" in text
        assert "reducing intensity by 15% and volume by 20%" in text

    def test_unknown_flags_are_not_described(self):
        adjustment = determine_adjustment(0.9)
        text = explain_adjustment(0.9, ["missing_hrv"], adjustment)
        assert text == "Readiness is 90%. Your recovery indicators support training as planned"


class TestAdjustTargets:
    def test_yellow_zone_rounds_to_increment_and_drops_sets(self):
        adjustment = determine_adjustment(0.5)  # x0.85 load, x0.80 sets
        [squat] = adjust_targets([_squat(3)], adjustment, increment=2.5)

        # 102.5 * 0.85 = 87.125 -> 87.5; 3 * 0.8 = 2.4 -> 2 sets
        assert [s.target_weight_kg for s in squat.sets] == [87.5, 87.5]
        assert [s.set_id for s in squat.sets] == ["s1", "s2"]
        assert squat.sets[0].target_reps == 5
        assert squat.sets[0].target_rpe == 8.0

    def test_without_increment_rounds_to_tenth(self):
        [squat] = adjust_targets([_squat(3)], determine_adjustment(0.5))
        assert squat.sets[0].target_weight_kg == pytest.approx(87.1)

    def test_at_least_one_set_is_kept(self):
        adjustment = determine_adjustment(0.25, "conservative")  # x0.50 sets
        [squat] = adjust_targets([_squat(1)], adjustment)
        assert len(squat.sets) == 1

        [squat] = adjust_targets([_squat(4)], adjustment)
        assert len(squat.sets) == 2

    def test_bodyweight_sets_keep_no_load(self):
        [squat] = adjust_targets([_squat(2, weight=None)], determine_adjustment(0.5))
        assert all(s.target_weight_kg is None for s in squat.sets)

    def test_green_zone_is_unchanged(self):
        planned = _squat(3)
        [squat] = adjust_targets([planned], determine_adjustment(0.9), increment=2.5)
        assert squat == planned

    def test_inputs_are_not_modified(self):
        planned = _squat(3)
        adjust_targets([planned], determine_adjustment(0.25))
        assert len(planned.sets) == 3
        assert planned.sets[0].target_weight_kg == 102.5


class TestPlanRecoverySession:
    def test_rest_day_for_very_low_readiness(self):
        plan = plan_recovery_session(_manual(1, 1))

        assert plan.rho == pytest.approx(0.19)
        assert plan.adjustment.recommendation == "rest_day"
        assert "low_energy" in plan.flags
        assert "energy is low" in plan.adjustment.reasoning
        assert plan.exercises == []

    def test_active_recovery(self):
        plan = plan_recovery_session(_manual(2, 2), [_squat(3)], increment=2.5)

        assert plan.adjustment.recommendation == "active_recovery"
        # 102.5 * 0.70 = 71.75 -> 72.5; 3 * 0.6 = 1.8 -> 2 sets
        assert [s.target_weight_kg for s in plan.exercises[0].sets] == [72.5, 72.5]

    def test_reduced_session(self):
        plan = plan_recovery_session(_manual(5, 5, notes="work stress"), [_squat(3)])

        assert plan.adjustment.zone == "yellow"
        assert plan.strategy == "moderate"
        assert "stress was noted" in plan.adjustment.reasoning
        assert len(plan.exercises[0].sets) == 2

    def test_train_as_planned_from_device_data(self):
        data = DeviceReadinessInput(
            recovery_score=90,
            sleep_performance=85,
            hrv_now_ms=50,
            hrv_baseline_ms=45,
            rhr_now_bpm=55,
            rhr_baseline_bpm=58,
        )
        plan = plan_recovery_session(data, [_squat(3)])

        assert plan.adjustment.recommendation == "train_as_planned"
        assert plan.exercises == [_squat(3)]
        assert "recovery score is high" in plan.adjustment.reasoning

    def test_strategy_and_sensitivity_are_passed_through(self):
        plan = plan_recovery_session(
            _manual(5, 5), [_squat(3)], strategy="aggressive", sensitivity=8
        )
        assert plan.strategy == "aggressive"
        assert plan.adjustment.intensity_adjustment == 0.95

    def test_invalid_strategy(self):
        with pytest.raises(ValueError, match="recovery_strategy"):
            plan_recovery_session(_manual(5, 5), strategy="yolo")


class TestRecoveryPreferences:
    def test_defaults(self):
        prefs = UserPreferences()
        assert prefs.recovery_strategy == "moderate"
        assert prefs.recovery_sensitivity == 5

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"recovery_strategy": "reckless"},
            {"recovery_sensitivity": 0},
            {"recovery_sensitivity": 11},
        ],
    )
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            UserPreferences(**kwargs)
