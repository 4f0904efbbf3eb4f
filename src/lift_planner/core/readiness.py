"""
Readiness calculator.

Turns wearable recovery signals or a manual wellness check-in into a
normalized readiness score rho ∈ [0, 1] plus descriptive flags, and maps
rho to the bounded overload multiplier used by session prescriptions.

The readiness input is an explicit union (DeviceReadinessInput |
ManualReadinessInput).  Each path first runs a single defaulting pass that
produces a fully populated _DeviceSignals, so the weighted formulas never
deal with missing values.
"""

import logging
from dataclasses import dataclass, field

from .config import (
    BEGINNER_OVERLOAD_CAP,
    EXPERIENCE_LEVELS,
    GOOD_SCORE_THRESHOLD,
    HIGH_STRAIN_PENALTY,
    HIGH_STRAIN_THRESHOLD,
    LOW_MANUAL_RATING,
    LOW_SCORE_THRESHOLD,
    NEUTRAL_RATIO,
    NEUTRAL_SCORE,
    OVERLOAD_MAX,
    OVERLOAD_MIN,
    OVERLOAD_SLOPE,
    RATIO_MAX,
    RATIO_MIN,
    UNSAFE_READINESS_THRESHOLD,
    W_HRV,
    W_MANUAL_ENERGY,
    W_MANUAL_HRV,
    W_MANUAL_RHR,
    W_MANUAL_SLEEP,
    W_RECOVERY,
    W_RHR,
    W_SLEEP,
)
from .metrics import clip, round_half_up
from .models import (
    DeviceReadinessInput,
    ManualReadinessInput,
    ReadinessInput,
    ReadinessResult,
)

logger = logging.getLogger(__name__)


@dataclass
class _DeviceSignals:
    """Fully defaulted device signals (all values populated)."""

    hrv_ratio: float
    rhr_ratio: float
    sleep: float
    recovery: float
    strain: float
    flags: list[str] = field(default_factory=list)


def _add_flag(flags: list[str], flag: str) -> None:
    if flag not in flags:
        flags.append(flag)


def _resolve_device_signals(data: DeviceReadinessInput | None) -> _DeviceSignals:
    """
    Defaulting pass: replace every missing signal by its neutral value.

    HRV ratio  = clip(hrv_now / hrv_baseline, 0.8, 1.2), neutral 1.0
    RHR ratio  = clip(rhr_baseline / rhr_now, 0.8, 1.2), neutral 1.0
    sleep      = sleep_performance / 100, neutral 0.5
    recovery   = recovery_score / 100, neutral 0.5

    Args:
        data: Device input, or None when no wearable data exists

    Returns:
        _DeviceSignals with flags naming each default that was used
    """
    if data is None:
        data = DeviceReadinessInput()

    flags: list[str] = []

    if data.hrv_now_ms is not None and data.hrv_baseline_ms is not None:
        hrv_ratio = clip(data.hrv_now_ms / data.hrv_baseline_ms, RATIO_MIN, RATIO_MAX)
    else:
        hrv_ratio = NEUTRAL_RATIO
        _add_flag(flags, "missing_hrv")

    if data.rhr_now_bpm is not None and data.rhr_baseline_bpm is not None:
        rhr_ratio = clip(data.rhr_baseline_bpm / data.rhr_now_bpm, RATIO_MIN, RATIO_MAX)
    else:
        rhr_ratio = NEUTRAL_RATIO
        _add_flag(flags, "missing_rhr")

    if data.sleep_performance is not None:
        sleep = data.sleep_performance / 100
    else:
        sleep = NEUTRAL_SCORE
        _add_flag(flags, "missing_sleep")

    if data.recovery_score is not None:
        recovery = data.recovery_score / 100
    else:
        recovery = NEUTRAL_SCORE
        _add_flag(flags, "missing_recovery")

    strain = data.yesterday_strain if data.yesterday_strain is not None else 0.0

    return _DeviceSignals(
        hrv_ratio=hrv_ratio,
        rhr_ratio=rhr_ratio,
        sleep=sleep,
        recovery=recovery,
        strain=strain,
        flags=flags,
    )


def _device_readiness(data: DeviceReadinessInput) -> ReadinessResult:
    signals = _resolve_device_signals(data)
    flags = list(signals.flags)

    rho = clip(
        W_RECOVERY * signals.recovery
        + W_SLEEP * signals.sleep
        + W_HRV * signals.hrv_ratio
        + W_RHR * signals.rhr_ratio,
        0.0,
        1.0,
    )

    if signals.strain > HIGH_STRAIN_THRESHOLD:
        rho = max(0.0, rho - HIGH_STRAIN_PENALTY)
        _add_flag(flags, "high_strain_yesterday")

    if signals.recovery < LOW_SCORE_THRESHOLD:
        _add_flag(flags, "low_recovery")
    if signals.sleep < LOW_SCORE_THRESHOLD:
        _add_flag(flags, "poor_sleep")
    if signals.recovery >= GOOD_SCORE_THRESHOLD:
        _add_flag(flags, "good_recovery")
    if signals.sleep >= GOOD_SCORE_THRESHOLD:
        _add_flag(flags, "good_sleep")

    return ReadinessResult(rho=rho, flags=flags)


def _manual_readiness(data: ManualReadinessInput) -> ReadinessResult:
    # Only the HRV / RHR ratios of attached device data are used here, so the
    # missing_* flags of the defaulting pass are not reported.
    signals = _resolve_device_signals(data.device)
    flags = ["manual_wellness_input"]

    energy = data.energy_level / 10
    sleep = data.sleep_quality / 10
    rho = clip(
        W_MANUAL_ENERGY * energy
        + W_MANUAL_SLEEP * sleep
        + W_MANUAL_HRV * signals.hrv_ratio
        + W_MANUAL_RHR * signals.rhr_ratio,
        0.0,
        1.0,
    )

    if data.energy_level <= LOW_MANUAL_RATING:
        _add_flag(flags, "low_energy")
    if data.sleep_quality <= LOW_MANUAL_RATING:
        _add_flag(flags, "poor_sleep")

    notes = (data.notes or "").lower()
    if "stress" in notes:
        _add_flag(flags, "stress_noted")
    if "sick" in notes:
        _add_flag(flags, "illness_noted")

    return ReadinessResult(rho=rho, flags=flags)


def compute_readiness(data: ReadinessInput) -> ReadinessResult:
    """
    Compute session readiness from device or manual input.

    Device:  rho = clip(0.4c + 0.3s + 0.15h + 0.15r, 0, 1), −0.05 after a
             high-strain day (strain > 14)
    Manual:  rho = clip(0.5·energy/10 + 0.4·sleep/10 + 0.05h + 0.05r, 0, 1)

    Args:
        data: DeviceReadinessInput or ManualReadinessInput

    Returns:
        ReadinessResult with rho in [0, 1] and ordered flags

    Raises:
        TypeError: If data is neither readiness variant
    """
    if isinstance(data, ManualReadinessInput):
        result = _manual_readiness(data)
    elif isinstance(data, DeviceReadinessInput):
        result = _device_readiness(data)
    else:
        raise TypeError(f"Unsupported readiness input: {type(data).__name__}")

    logger.debug("readiness rho=%.3f flags=%s", result.rho, result.flags)
    return result


def overload_multiplier(rho: float, experience_level: str) -> float:
    """
    Readiness-driven load multiplier.

    Δ = clip(1 + 0.3 × (rho − 0.5), 0.9, 1.1), capped at 1.05 for beginners.

    Args:
        rho: Readiness score
        experience_level: "beginner", "intermediate" or "advanced"

    Returns:
        Overload multiplier Δ
    """
    validate_experience_level(experience_level)
    delta = clip(1 + OVERLOAD_SLOPE * (rho - 0.5), OVERLOAD_MIN, OVERLOAD_MAX)
    if experience_level == "beginner":
        delta = min(delta, BEGINNER_OVERLOAD_CAP)
    return delta


def is_unsafe(rho: float) -> bool:
    """True when readiness is too low for any overload recommendation."""
    return rho < UNSAFE_READINESS_THRESHOLD


def validate_experience_level(experience_level: str) -> str:
    if experience_level not in EXPERIENCE_LEVELS:
        raise ValueError(
            f"Invalid experience_level: {experience_level!r}. Must be one of {EXPERIENCE_LEVELS}"
        )
    return experience_level


def map_manual_wellness_to_device(data: ManualReadinessInput) -> DeviceReadinessInput:
    """
    Express a manual check-in in wearable terms.

    energy / sleep (1-10) are rescaled to 0-100; recovery weights energy
    70 % and sleep 30 %.  Yesterday's strain is estimated from energy
    (low energy suggests a hard previous day) and bounded to 5-20.  HRV and
    RHR are left empty since they cannot be derived from a rating.

    Args:
        data: Manual wellness input

    Returns:
        DeviceReadinessInput suitable for device-based consumers
    """
    energy_score = (data.energy_level - 1) / 9 * 100
    sleep_score = (data.sleep_quality - 1) / 9 * 100

    recovery = round_half_up(energy_score * 0.7 + sleep_score * 0.3)
    strain = round_half_up(20 - (data.energy_level - 1) / 9 * 15)

    return DeviceReadinessInput(
        recovery_score=clip(recovery, 0, 100),
        sleep_performance=clip(sleep_score, 0, 100),
        yesterday_strain=clip(strain, 5, 20),
    )
