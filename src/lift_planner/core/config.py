"""
Configuration constants for the training prescription engine.

All adjustable parameters are centralized here for easy tuning.
Runtime defaults that users may override live in engine.yaml
(see core/engine/config_loader.py).
"""

from dataclasses import dataclass
from typing import Final

# =============================================================================
# ROUNDING
# =============================================================================

DEFAULT_WEIGHT_INCREMENT_KG: Final[float] = 2.5  # Smallest loadable plate step
DEFAULT_UNKNOWN_ONE_RM_KG: Final[float] = 100.0  # Planner fallback for a missing 1RM

# =============================================================================
# ONE-REP MAX ESTIMATION
# =============================================================================

BRZYCKI_MAX_REPS: Final[int] = 36  # Brzycki diverges at 37 reps
EPLEY_DIVISOR: Final[float] = 30.0

# =============================================================================
# READINESS
# =============================================================================

RATIO_MIN: Final[float] = 0.8  # HRV / RHR ratio floor
RATIO_MAX: Final[float] = 1.2  # HRV / RHR ratio ceiling
NEUTRAL_RATIO: Final[float] = 1.0
NEUTRAL_SCORE: Final[float] = 0.5  # Stand-in for missing recovery / sleep

W_RECOVERY: Final[float] = 0.40
W_SLEEP: Final[float] = 0.30
W_HRV: Final[float] = 0.15
W_RHR: Final[float] = 0.15

W_MANUAL_ENERGY: Final[float] = 0.50
W_MANUAL_SLEEP: Final[float] = 0.40
W_MANUAL_HRV: Final[float] = 0.05
W_MANUAL_RHR: Final[float] = 0.05

HIGH_STRAIN_THRESHOLD: Final[float] = 14.0  # WHOOP strain scale 0-21
HIGH_STRAIN_PENALTY: Final[float] = 0.05

LOW_SCORE_THRESHOLD: Final[float] = 0.6
GOOD_SCORE_THRESHOLD: Final[float] = 0.8
LOW_MANUAL_RATING: Final[int] = 3  # energy / sleep rating at or below is "low"

UNSAFE_READINESS_THRESHOLD: Final[float] = 0.35
UNSAFE_SESSION_CHANCE: Final[float] = 0.3

# =============================================================================
# OVERLOAD MULTIPLIER
# =============================================================================

OVERLOAD_SLOPE: Final[float] = 0.3
OVERLOAD_MIN: Final[float] = 0.9
OVERLOAD_MAX: Final[float] = 1.1
BEGINNER_OVERLOAD_CAP: Final[float] = 1.05

EXPERIENCE_LEVELS: Final[tuple[str, ...]] = ("beginner", "intermediate", "advanced")

# =============================================================================
# WITHIN-SESSION FATIGUE AND REST
# =============================================================================

FATIGUE_DECAY_PER_SET: Final[float] = 0.05  # 1.0, 0.95, 0.90, ...

REST_HIGH_READINESS: Final[int] = 120  # rho > 0.7
REST_MID_READINESS: Final[int] = 150  # rho > 0.5
REST_LOW_READINESS: Final[int] = 180
REST_INCREMENT_PER_SET: Final[int] = 15

READINESS_TIER_HIGH: Final[float] = 0.7
READINESS_TIER_MID: Final[float] = 0.5

BODYWEIGHT_REP_CHANGE_CAP: Final[int] = 2
HIGH_REP_THRESHOLD: Final[int] = 15
RPE_NUDGE_MAX: Final[int] = 1
RPE_HIGH_EFFORT: Final[float] = 8.0  # At or above: trim a rep when load rises
RPE_LOW_EFFORT: Final[float] = 7.0  # At or below: add a rep when load drops
RPE_LOAD_SHIFT_THRESHOLD: Final[float] = 0.025

# =============================================================================
# CHANCE TO BEAT PREVIOUS BEST
# =============================================================================

CHANCE_BASE: Final[float] = 0.5
CHANCE_READINESS_GAIN: Final[float] = 0.35
CHANCE_VOLUME_GAIN: Final[float] = 0.15
CHANCE_MIN: Final[float] = 0.05
CHANCE_MAX: Final[float] = 0.98
GAMMA_FLOOR: Final[float] = 0.1

WORK_SECONDS_PER_SET: Final[int] = 60  # Used for session duration estimates

# =============================================================================
# CONTEXT AGGREGATION
# =============================================================================

MAX_RECENT_SESSIONS: Final[int] = 20
MAX_EXERCISE_ROWS: Final[int] = 100

STARTER_ONE_RMS_KG: Final[dict[str, float]] = {
    "Squat": 70.0,
    "Bench Press": 50.0,
    "Deadlift": 80.0,
    "Overhead Press": 35.0,
    "Barbell Row": 45.0,
}

# =============================================================================
# PLAN HORIZON AND MODEL SELECTION
# =============================================================================

MIN_PLAN_WEEKS: Final[int] = 4
MAX_PLAN_WEEKS: Final[int] = 6
DEFAULT_PLAN_WEEKS: Final[int] = 6
DELOAD_WEEK: Final[int] = 4

DEFAULT_TRAINING_DAYS: Final[int] = 3
MIN_TRAINING_DAYS: Final[int] = 1
MAX_TRAINING_DAYS: Final[int] = 7

EXPERIENCED_SESSION_COUNT: Final[int] = 12

GOAL_PRESETS: Final[tuple[str, ...]] = ("powerlifting", "strength", "hypertrophy", "peaking")
PERIODIZATION_MODELS: Final[tuple[str, ...]] = ("linear", "dup", "block")
TARGET_TYPES: Final[tuple[str, ...]] = ("template", "exercise")
WEEK_TYPES: Final[tuple[str, ...]] = ("training", "deload", "pr_attempt")

PROGRESSION_PERCENT_PER_WEEK: Final[float] = 0.025  # DUP compounding overload
DELOAD_VOLUME_MULTIPLIER: Final[float] = 0.65
MINUTES_PER_EXERCISE: Final[int] = 15

# =============================================================================
# SET / REP SCHEMES
# =============================================================================


@dataclass(frozen=True)
class Scheme:
    """One sets × reps @ %1RM prescription block."""

    name: str
    sets: int
    reps: int
    intensity: float  # Fraction of 1RM
    rest_seconds: int | None = None


# Linear periodization
LINEAR_VOLUME_SETS: Final[int] = 3
LINEAR_VOLUME_REPS: Final[int] = 10
LINEAR_VOLUME_BASE: Final[float] = 0.70
LINEAR_INTENSITY_SETS: Final[int] = 5
LINEAR_INTENSITY_REPS: Final[int] = 5
LINEAR_INTENSITY_BASE: Final[float] = 0.80
LINEAR_WEEKLY_STEP: Final[float] = 0.025
LINEAR_DELOAD: Final[Scheme] = Scheme("deload", sets=3, reps=5, intensity=0.60)
LINEAR_PR: Final[Scheme] = Scheme("power", sets=5, reps=3, intensity=0.85)
PR_INTENSITY_MULTIPLIER: Final[float] = 1.05
LINEAR_HEAVY_THRESHOLD: Final[float] = 0.75  # Above: long rest
HEAVY_REST_SECONDS: Final[int] = 180
LIGHT_REST_SECONDS: Final[int] = 90

# Daily undulating periodization
DUP_CYCLE: Final[tuple[Scheme, ...]] = (
    Scheme("heavy", sets=5, reps=3, intensity=0.85, rest_seconds=240),
    Scheme("medium", sets=4, reps=6, intensity=0.75, rest_seconds=120),
    Scheme("light", sets=3, reps=10, intensity=0.65, rest_seconds=90),
)
DUP_MAX_ATTEMPT: Final[Scheme] = Scheme("max", sets=5, reps=1, intensity=0.95, rest_seconds=300)
DUP_DELOAD_SETS: Final[int] = 2
DUP_DELOAD_INTENSITY: Final[float] = 0.7
DUP_MAX_SESSIONS: Final[int] = 3
DUP_DAYS: Final[tuple[str, ...]] = ("Monday", "Wednesday", "Friday")

# Block periodization
BLOCK_ACCUMULATION: Final[Scheme] = Scheme("accumulation", sets=4, reps=10, intensity=0.70)
BLOCK_INTENSIFICATION: Final[Scheme] = Scheme("intensification", sets=5, reps=5, intensity=0.82)
BLOCK_REALIZATION: Final[Scheme] = Scheme("realization", sets=3, reps=3, intensity=0.90)
BLOCK_HEAVY_THRESHOLD: Final[float] = 0.80

# =============================================================================
# ADAPTATION (plateau detection and progression suggestions)
# =============================================================================

PLATEAU_SESSION_WINDOW: Final[int] = 3
PLATEAU_VARIANCE_HIGH: Final[float] = 0.5  # Below: high confidence
PLATEAU_VARIANCE_MEDIUM: Final[float] = 2.0

STARTER_WEIGHT_KG: Final[float] = 20.0  # Suggestion for an exercise with no history
DEFAULT_PERCENTAGE_INCREMENT: Final[float] = 5.0
ADAPTIVE_DELOAD_FACTOR: Final[float] = 0.9
PROGRESSION_TYPES: Final[tuple[str, ...]] = ("linear", "percentage", "adaptive")

# =============================================================================
# PR FORECASTING
# =============================================================================

FORECAST_MIN_SESSIONS: Final[int] = 3
FORECAST_HISTORY_LIMIT: Final[int] = 20  # Sessions considered per exercise
FORECAST_VELOCITY_WINDOW: Final[int] = 10  # Sessions in the 1RM regression
FORECAST_MIN_FIT_POINTS: Final[int] = 5  # Below: fixed low confidence
FORECAST_LOW_DATA_CONFIDENCE: Final[float] = 0.3
PR_PLATE_STEP_KG: Final[float] = 2.5

# kg of 1RM per session
FORECAST_REALISTIC_VELOCITY_MIN: Final[float] = 0.5
FORECAST_REALISTIC_VELOCITY_MAX: Final[float] = 5.0
FORECAST_UNREALISTIC_VELOCITY: Final[float] = 10.0
FORECAST_CONFIDENCE_BOOST: Final[float] = 0.2
FORECAST_CONFIDENCE_PENALTY: Final[float] = 0.3
FORECAST_IMPROVING_VELOCITY: Final[float] = 0.5  # Above: "improving", else "stable"

WEEKLY_FREQUENCY_BY_LEVEL: Final[dict[str, int]] = {
    "beginner": 2,
    "intermediate": 3,
    "advanced": 4,
}

# =============================================================================
# RECOVERY SESSION PLANNER
# =============================================================================

RECOVERY_RED_ZONE: Final[float] = 0.33  # rho below: rest or active recovery
RECOVERY_YELLOW_ZONE: Final[float] = 0.66  # rho below: reduce intensity
REST_DAY_THRESHOLD: Final[float] = 0.2  # Red-zone rho below: full rest day
SENSITIVITY_MIDPOINT: Final[int] = 5
SENSITIVITY_ZONE_SHIFT: Final[float] = 0.1  # Zone shift across the 1-10 scale
MIN_SENSITIVITY: Final[int] = 1
MAX_SENSITIVITY: Final[int] = 10
DEFAULT_RECOVERY_STRATEGY: Final[str] = "moderate"
DEFAULT_RECOVERY_SENSITIVITY: Final[int] = 5

ZONE_CONFIDENCE: Final[dict[str, float]] = {"red": 0.9, "yellow": 0.8, "green": 0.7}


@dataclass(frozen=True)
class StrategyMultipliers:
    """Intensity and volume multipliers applied in the red and yellow zones."""

    red_intensity: float
    red_volume: float
    yellow_intensity: float
    yellow_volume: float


STRATEGY_MULTIPLIERS: Final[dict[str, StrategyMultipliers]] = {
    "conservative": StrategyMultipliers(0.60, 0.50, 0.80, 0.70),
    "moderate": StrategyMultipliers(0.70, 0.60, 0.85, 0.80),
    "adaptive": StrategyMultipliers(0.75, 0.65, 0.90, 0.85),
    "aggressive": StrategyMultipliers(0.80, 0.70, 0.95, 0.90),
}
RECOVERY_STRATEGIES: Final[tuple[str, ...]] = tuple(STRATEGY_MULTIPLIERS)
