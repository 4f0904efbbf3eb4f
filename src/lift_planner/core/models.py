"""
Data models for lift-planner.

All core dataclasses representing history records, readiness inputs,
session prescriptions, and periodized plans.  Validation happens in
__post_init__ so malformed input fails at construction, before any
formula runs.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Literal, Union

from .config import (
    DEFAULT_RECOVERY_SENSITIVITY,
    DEFAULT_RECOVERY_STRATEGY,
    DEFAULT_TRAINING_DAYS,
    DEFAULT_WEIGHT_INCREMENT_KG,
    GOAL_PRESETS,
    MAX_PLAN_WEEKS,
    MAX_SENSITIVITY,
    MAX_TRAINING_DAYS,
    MIN_PLAN_WEEKS,
    MIN_SENSITIVITY,
    MIN_TRAINING_DAYS,
    PERIODIZATION_MODELS,
    PROGRESSION_TYPES,
    RECOVERY_STRATEGIES,
    TARGET_TYPES,
    WEEK_TYPES,
)

ExerciseTag = Literal["strength", "hypertrophy", "endurance"]
ExperienceLevel = Literal["beginner", "intermediate", "advanced"]
GoalPreset = Literal["powerlifting", "strength", "hypertrophy", "peaking"]
PeriodizationModel = Literal["linear", "dup", "block"]
TargetType = Literal["template", "exercise"]
WeekType = Literal["training", "deload", "pr_attempt"]
PrKind = Literal["weight", "volume", "one_rm"]

VALID_TAGS = ("strength", "hypertrophy", "endurance")


def _check_range(value: float | None, name: str, low: float, high: float) -> None:
    if value is not None and not (low <= value <= high):
        raise ValueError(f"{name} must be between {low} and {high}, got {value}")


def _check_positive(value: float | None, name: str) -> None:
    if value is not None and value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")


# =============================================================================
# History
# =============================================================================


@dataclass(frozen=True)
class ExerciseSetRecord:
    """
    One logged exercise row from a past session.

    ``volume_load`` and ``one_rm_estimate`` are derived from weight, reps and
    sets when the caller does not supply stored values.
    """

    exercise_name: str
    workout_date: date
    weight: float | None = None
    reps: int | None = None
    sets: int = 1
    unit: str = "kg"
    volume_load: float | None = None
    one_rm_estimate: float | None = None
    resolved_exercise_name: str | None = None
    master_exercise_id: int | None = None

    def __post_init__(self) -> None:
        """Validate the record and fill derived metrics."""
        from .metrics import estimate_one_rep_max, volume_load

        if not self.exercise_name:
            raise ValueError("exercise_name must be non-empty")
        if self.weight is not None and self.weight < 0:
            raise ValueError("weight must be non-negative")
        if self.reps is not None and self.reps < 0:
            raise ValueError("reps must be non-negative")
        if self.sets < 0:
            raise ValueError("sets must be non-negative")
        if self.unit not in ("kg", "lbs"):
            raise ValueError(f"Invalid unit: {self.unit}")

        # frozen: derived fields are written through object.__setattr__
        if self.volume_load is None:
            object.__setattr__(
                self, "volume_load", volume_load(self.sets, self.reps, self.weight)
            )
        if self.one_rm_estimate is None and self.weight and self.reps:
            object.__setattr__(
                self, "one_rm_estimate", estimate_one_rep_max(self.weight, self.reps)
            )

    @property
    def name(self) -> str:
        """Resolved exercise name, falling back to the logged name."""
        return self.resolved_exercise_name or self.exercise_name


@dataclass
class SessionHistory:
    """A past workout session with its logged exercise rows."""

    session_id: int
    workout_date: date
    template_id: int | None = None
    template_name: str | None = None
    exercises: list[ExerciseSetRecord] = field(default_factory=list)

    @property
    def total_volume(self) -> float:
        """Sum of volume load across all exercise rows."""
        return round(sum(ex.volume_load or 0.0 for ex in self.exercises), 2)


@dataclass(frozen=True)
class HistoricalSet:
    """A single performed set as seen by the session prescription generator."""

    weight: float | None = None
    reps: int | None = None
    volume: float | None = None

    @property
    def volume_or_derived(self) -> float:
        if self.volume is not None:
            return self.volume
        return (self.weight or 0.0) * (self.reps or 0)


@dataclass
class ExerciseSessionHistory:
    """One past session for one exercise (sets in performed order)."""

    workout_date: date
    sets: list[HistoricalSet] = field(default_factory=list)

    @property
    def total_volume(self) -> float:
        return round(sum(s.volume_or_derived for s in self.sets), 2)

    def best_set(self) -> HistoricalSet | None:
        """Heaviest set; ties keep the earliest set."""
        if not self.sets:
            return None
        best = self.sets[0]
        for s in self.sets[1:]:
            if (s.weight or 0.0) > (best.weight or 0.0):
                best = s
        return best


@dataclass
class ExerciseHistory:
    """Recent sessions for one exercise, newest first."""

    exercise_name: str
    sessions: list[ExerciseSessionHistory] = field(default_factory=list)


# =============================================================================
# Readiness
# =============================================================================


@dataclass(frozen=True)
class DeviceReadinessInput:
    """
    Wearable-derived recovery signals.  Every field is optional; missing
    values resolve to neutral defaults inside the readiness calculator.
    """

    recovery_score: float | None = None  # 0-100
    sleep_performance: float | None = None  # 0-100
    hrv_now_ms: float | None = None
    hrv_baseline_ms: float | None = None
    rhr_now_bpm: float | None = None
    rhr_baseline_bpm: float | None = None
    yesterday_strain: float | None = None  # 0-21

    def __post_init__(self) -> None:
        """Validate signal ranges."""
        _check_range(self.recovery_score, "recovery_score", 0, 100)
        _check_range(self.sleep_performance, "sleep_performance", 0, 100)
        _check_range(self.yesterday_strain, "yesterday_strain", 0, 21)
        _check_positive(self.hrv_now_ms, "hrv_now_ms")
        _check_positive(self.hrv_baseline_ms, "hrv_baseline_ms")
        _check_positive(self.rhr_now_bpm, "rhr_now_bpm")
        _check_positive(self.rhr_baseline_bpm, "rhr_baseline_bpm")


@dataclass(frozen=True)
class ManualReadinessInput:
    """
    Subjective wellness check-in (two 1-10 ratings plus optional notes).

    ``device`` carries any wearable data captured alongside the check-in;
    only its HRV and RHR ratios feed the manual formula.
    """

    energy_level: int
    sleep_quality: int
    notes: str | None = None
    device: DeviceReadinessInput | None = None

    def __post_init__(self) -> None:
        """Validate ratings and notes length."""
        _check_range(self.energy_level, "energy_level", 1, 10)
        _check_range(self.sleep_quality, "sleep_quality", 1, 10)
        if self.notes is not None and len(self.notes) > 500:
            raise ValueError("notes must be at most 500 characters")


ReadinessInput = Union[DeviceReadinessInput, ManualReadinessInput]


@dataclass
class ReadinessResult:
    """Normalized readiness score and the flags raised while computing it."""

    rho: float
    flags: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not (0.0 <= self.rho <= 1.0):
            raise ValueError(f"rho must be within [0, 1], got {self.rho}")


# =============================================================================
# Session prescription
# =============================================================================


@dataclass(frozen=True)
class SetTarget:
    """A planned set from the caller's template or session."""

    set_id: str
    target_reps: int | None = None
    target_weight_kg: float | None = None
    target_rpe: float | None = None

    def __post_init__(self) -> None:
        """Validate set targets."""
        if self.target_reps is not None and self.target_reps < 0:
            raise ValueError("target_reps must be non-negative")
        if self.target_weight_kg is not None and self.target_weight_kg < 0:
            raise ValueError("target_weight_kg must be non-negative")
        _check_range(self.target_rpe, "target_rpe", 1, 10)


@dataclass
class ExercisePlanTarget:
    """A planned exercise: identity, training tags, and ordered set targets."""

    exercise_id: str
    name: str
    tags: set[str] = field(default_factory=set)
    sets: list[SetTarget] = field(default_factory=list)

    def __post_init__(self) -> None:
        unknown = set(self.tags) - set(VALID_TAGS)
        if unknown:
            raise ValueError(f"Unknown exercise tags: {sorted(unknown)}")


@dataclass(frozen=True)
class SetPrescription:
    """Suggested load, reps and rest for one set, with a human rationale."""

    set_id: str
    suggested_weight_kg: float | None
    suggested_reps: int | None
    suggested_rest_seconds: int | None
    rationale: str


@dataclass
class ExerciseAdvice:
    """Per-exercise prescription plus the chance to beat the previous best."""

    exercise_id: str
    name: str
    predicted_chance_to_beat_best: float
    planned_volume_kg: float | None
    best_volume_kg: float | None
    sets: list[SetPrescription] = field(default_factory=list)


@dataclass
class RecoveryRecommendation:
    """Rest guidance derived from readiness and the prescribed session."""

    rest_between_sets: str
    rest_between_sessions: str
    session_duration_minutes: int
    notes: list[str] = field(default_factory=list)


@dataclass
class SessionAdvice:
    """Complete response of the session prescription generator."""

    rho: float
    overload_multiplier: float
    flags: list[str]
    per_exercise: list[ExerciseAdvice]
    session_predicted_chance: float
    warnings: list[str] = field(default_factory=list)
    summary: str = ""
    recovery: RecoveryRecommendation | None = None


# =============================================================================
# Periodized plans
# =============================================================================


@dataclass
class ExercisePrescription:
    """One row of a weekly training plan."""

    exercise_name: str
    sets: int
    reps: int
    weight: float | None = None
    rest_seconds: int | None = None
    rpe: int | None = None
    notes: str | None = None

    def __post_init__(self) -> None:
        if self.sets <= 0:
            raise ValueError("sets must be positive")
        if self.reps <= 0:
            raise ValueError("reps must be positive")
        if self.weight is not None and self.weight < 0:
            raise ValueError("weight must be non-negative")

    @property
    def volume(self) -> float:
        return self.sets * self.reps * (self.weight or 0.0)


@dataclass
class SessionPrescription:
    """One planned session inside a week."""

    session_number: int
    exercises: list[ExercisePrescription] = field(default_factory=list)
    day_of_week: str | None = None
    estimated_duration_minutes: int | None = None
    notes: str | None = None

    def __post_init__(self) -> None:
        if not (1 <= self.session_number <= MAX_TRAINING_DAYS):
            raise ValueError(f"session_number must be 1-7, got {self.session_number}")

    @property
    def total_volume_target(self) -> float:
        """Sum of sets × reps × weight across exercises."""
        return round(sum(ex.volume for ex in self.exercises), 2)


@dataclass
class WeeklyPlan:
    """One week of a periodized plan."""

    week_number: int
    week_type: WeekType
    sessions: list[SessionPrescription] = field(default_factory=list)
    progression_formula: str = ""

    def __post_init__(self) -> None:
        if not (1 <= self.week_number <= MAX_PLAN_WEEKS):
            raise ValueError(f"week_number must be 1-{MAX_PLAN_WEEKS}, got {self.week_number}")
        if self.week_type not in WEEK_TYPES:
            raise ValueError(f"Invalid week_type: {self.week_type}")

    @property
    def volume_target(self) -> float:
        """Week volume: sum of session volume targets."""
        return round(sum(s.total_volume_target for s in self.sessions), 2)


# =============================================================================
# Planning context
# =============================================================================


@dataclass
class UserPreferences:
    """
    Training preferences supplied by the user preference provider.

    All fields are optional in storage; the defaults below apply when a
    user has never set them.
    """

    default_weight_unit: str = "kg"
    progression_type: str = "adaptive"
    training_days_per_week: int = DEFAULT_TRAINING_DAYS
    weight_increment_kg: float = DEFAULT_WEIGHT_INCREMENT_KG
    recovery_strategy: str = DEFAULT_RECOVERY_STRATEGY
    recovery_sensitivity: int = DEFAULT_RECOVERY_SENSITIVITY

    def __post_init__(self) -> None:
        """Validate preference values."""
        validate_recovery_settings(self.recovery_strategy, self.recovery_sensitivity)
        if self.default_weight_unit not in ("kg", "lbs"):
            raise ValueError(f"Invalid default_weight_unit: {self.default_weight_unit!r}")
        if self.progression_type not in PROGRESSION_TYPES:
            raise ValueError(
                f"Invalid progression_type: {self.progression_type!r}. "
                f"Must be one of {PROGRESSION_TYPES}"
            )
        if not (MIN_TRAINING_DAYS <= self.training_days_per_week <= MAX_TRAINING_DAYS):
            raise ValueError(
                f"training_days_per_week must be {MIN_TRAINING_DAYS}-{MAX_TRAINING_DAYS}, "
                f"got {self.training_days_per_week}"
            )
        if self.weight_increment_kg <= 0:
            raise ValueError("weight_increment_kg must be positive")


def validate_recovery_settings(strategy: str, sensitivity: int) -> None:
    """
    Raises:
        ValueError: On an unknown strategy or a sensitivity outside 1-10
    """
    if strategy not in RECOVERY_STRATEGIES:
        raise ValueError(
            f"Invalid recovery_strategy: {strategy!r}. Must be one of {RECOVERY_STRATEGIES}"
        )
    if isinstance(sensitivity, bool) or not isinstance(sensitivity, int):
        raise ValueError(f"recovery_sensitivity must be an integer, got {sensitivity!r}")
    if not (MIN_SENSITIVITY <= sensitivity <= MAX_SENSITIVITY):
        raise ValueError(
            f"recovery_sensitivity must be {MIN_SENSITIVITY}-{MAX_SENSITIVITY}, got {sensitivity}"
        )


@dataclass
class WeeklyVolume:
    """Aggregated volume for one exercise in one Monday-anchored week."""

    week_start: date
    total_volume: float
    session_count: int
    average_intensity: float


@dataclass
class VolumeTrend:
    """Weekly volume series for one exercise and its regression slope."""

    exercise_name: str
    weekly_data: list[WeeklyVolume] = field(default_factory=list)
    trend_slope: float = 0.0


@dataclass
class PlanningContext:
    """
    Everything the periodization planner needs for one invocation.

    Built by core.context.aggregate_context; validated here so a malformed
    plan request fails before any history is fetched or any math runs.
    """

    user_id: str
    target_type: TargetType
    target_ids: list[int]
    duration: int = 6
    goal_preset: GoalPreset | None = None
    goal_text: str | None = None
    periodization: PeriodizationModel | None = None
    recent_sessions: list[SessionHistory] = field(default_factory=list)
    current_one_rm_estimates: dict[str, float] = field(default_factory=dict)
    preferences: UserPreferences = field(default_factory=UserPreferences)
    volume_trends: list[VolumeTrend] = field(default_factory=list)
    available_equipment: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Validate plan request parameters."""
        validate_plan_request(
            self.target_type, self.duration, self.goal_preset, self.periodization
        )
        for name, value in self.current_one_rm_estimates.items():
            if value < 0:
                raise ValueError(f"1RM for {name!r} must be non-negative, got {value}")


def validate_plan_request(
    target_type: str,
    duration: int,
    goal_preset: str | None = None,
    periodization: str | None = None,
) -> None:
    """
    Validate plan-level parameters.

    Raises:
        ValueError: On unknown target type, goal, periodization model, or a
            duration outside the supported 4-6 week window.
    """
    if target_type not in TARGET_TYPES:
        raise ValueError(f"Invalid target_type: {target_type!r}. Must be one of {TARGET_TYPES}")
    if isinstance(duration, bool) or not isinstance(duration, int):
        raise ValueError(f"duration must be an integer number of weeks, got {duration!r}")
    if not (MIN_PLAN_WEEKS <= duration <= MAX_PLAN_WEEKS):
        raise ValueError(
            f"duration must be between {MIN_PLAN_WEEKS} and {MAX_PLAN_WEEKS} weeks, got {duration}"
        )
    if goal_preset is not None and goal_preset not in GOAL_PRESETS:
        raise ValueError(f"Unknown goal_preset: {goal_preset!r}. Must be one of {GOAL_PRESETS}")
    if periodization is not None and periodization not in PERIODIZATION_MODELS:
        raise ValueError(
            f"Unknown periodization model: {periodization!r}. "
            f"Must be one of {PERIODIZATION_MODELS}"
        )


@dataclass
class PlateauResult:
    """Outcome of multi-session plateau detection for one exercise."""

    is_plateaued: bool
    session_count: int
    stalled_weight: float = 0.0
    stalled_reps: int = 0
    confidence: Literal["low", "medium", "high"] = "low"


@dataclass
class ProgressionSuggestion:
    """A single next-session suggestion (load or reps)."""

    type: Literal["weight", "reps"]
    current: float
    suggested: float
    rationale: str


@dataclass
class ExerciseProgression:
    """Progression suggestions for one exercise."""

    exercise_name: str
    plateau_detected: bool
    suggestions: list[ProgressionSuggestion] = field(default_factory=list)


# =============================================================================
# PR forecasting and recovery planning
# =============================================================================


@dataclass
class PRForecast:
    """
    When the next personal record is likely, from the recent 1RM trend.

    ``velocity`` is estimated 1RM gained per session (kg); weeks are derived
    from the usual weekly training frequency for the experience level.
    """

    exercise_name: str
    current_pr: float
    next_pr_weight: float
    sessions_to_next_pr: int
    weeks_to_next_pr: int
    estimated_weeks_low: int
    estimated_weeks_high: int
    velocity: float
    confidence: float
    trajectory: Literal["improving", "stable"]


RecoveryRecommendationType = Literal[
    "rest_day", "active_recovery", "reduce_intensity", "train_as_planned"
]


@dataclass
class SessionAdjustment:
    """How a planned session should change for today's readiness zone."""

    recommendation: RecoveryRecommendationType
    zone: Literal["red", "yellow", "green"]
    intensity_adjustment: float
    volume_adjustment: float
    confidence: float
    reasoning: str = ""


@dataclass
class RecoveryPlan:
    """A planned session after readiness-zone adjustment."""

    rho: float
    flags: list[str]
    strategy: str
    adjustment: SessionAdjustment
    exercises: list[ExercisePlanTarget] = field(default_factory=list)
