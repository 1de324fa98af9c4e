"""Cross-sensor fire risk correlation and sensor anomaly checks."""

from __future__ import annotations

from typing import Optional, Sequence

from models.status import SensorHealth
from models.thresholds import DEFAULT_FIRE_RISK_THRESHOLDS, FireRiskThresholds

DEFAULT_WARMUP_MS = 180_000
DEFAULT_STUCK_SAMPLES = 60
DEFAULT_AVERAGE_WINDOW = 10


def detect_fire_risk(
    co_ppm: float,
    temperature: float,
    gas_percent: float,
    thresholds: Optional[FireRiskThresholds] = None,
) -> bool:
    """Return ``True`` only when CO, temperature and gas are all elevated.

    A single noisy sensor can never raise fire risk on its own. Threshold
    fields that are zero fall back to their defaults.
    """
    limits = thresholds or DEFAULT_FIRE_RISK_THRESHOLDS
    co_limit = limits.co_warning or DEFAULT_FIRE_RISK_THRESHOLDS.co_warning
    temp_limit = limits.temp_warning or DEFAULT_FIRE_RISK_THRESHOLDS.temp_warning
    gas_limit = limits.gas_warning or DEFAULT_FIRE_RISK_THRESHOLDS.gas_warning
    return co_ppm >= co_limit and temperature >= temp_limit and gas_percent >= gas_limit


def _as_samples(readings: object) -> Optional[Sequence[float]]:
    if isinstance(readings, (list, tuple)):
        return readings
    return None


def apply_moving_average(readings: Sequence[float], window_size: int = DEFAULT_AVERAGE_WINDOW) -> float:
    samples = _as_samples(readings)
    if not samples or window_size <= 0:
        return 0.0
    window = samples[-window_size:]
    return sum(window) / len(window)


def is_sensor_stuck(readings: Sequence[float], min_readings: int = DEFAULT_STUCK_SAMPLES) -> bool:
    """Report a stuck sensor when the last ``min_readings`` samples are identical.

    Fewer samples than ``min_readings`` is not enough evidence and reports
    ``False``.
    """
    samples = _as_samples(readings)
    if samples is None or min_readings <= 0 or len(samples) < min_readings:
        return False
    recent = samples[-min_readings:]
    first = recent[0]
    return all(sample == first for sample in recent)


def is_warming_up(
    boot_time_ms: Optional[float],
    current_time_ms: Optional[float],
    warmup_duration_ms: float = DEFAULT_WARMUP_MS,
) -> bool:
    """Warmup is complete once ``warmup_duration_ms`` has fully elapsed.

    Missing timestamps are treated as still warming up.
    """
    if boot_time_ms is None or current_time_ms is None:
        return True
    return (current_time_ms - boot_time_ms) < warmup_duration_ms


def sensor_health(
    readings: Optional[Sequence[float]],
    warming_up: bool,
    min_readings: int = DEFAULT_STUCK_SAMPLES,
) -> SensorHealth:
    if readings is not None and is_sensor_stuck(readings, min_readings):
        return SensorHealth.error
    if warming_up:
        return SensorHealth.warning
    return SensorHealth.ok
