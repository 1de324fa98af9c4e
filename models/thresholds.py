"""Threshold value objects used for one evaluation cycle."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

DEFAULT_GAS_THRESHOLD = 40.0
DEFAULT_TEMP_THRESHOLD = 60.0
FIRE_RISK_OFFSET = 10.0

CO_WARNING_BOUNDS = (10.0, 50.0)
CO_DANGER_BOUNDS = (50.0, 200.0)
CO_CRITICAL_BOUNDS = (200.0, 800.0)


@dataclass(frozen=True, slots=True)
class CoThresholds:
    """CO cut-points in PPM. A value exactly at a cut-point takes the higher band."""

    warning: float = 35.0
    danger: float = 100.0
    critical: float = 400.0


@dataclass(frozen=True, slots=True)
class FireRiskThresholds:
    co_warning: float = 35.0
    temp_warning: float = 50.0
    gas_warning: float = 30.0


DEFAULT_CO_THRESHOLDS = CoThresholds()
DEFAULT_FIRE_RISK_THRESHOLDS = FireRiskThresholds()


def _clamp(value: float, bounds: tuple[float, float]) -> float:
    low, high = bounds
    return max(low, min(high, value))


def clamp_co_thresholds(
    warning: Optional[float] = None,
    danger: Optional[float] = None,
    critical: Optional[float] = None,
) -> dict[str, float]:
    """Clamp user supplied CO thresholds into their allowed ranges.

    Only the values that were supplied appear in the result, keyed by the
    command names stored on the device document.
    """
    clamped: dict[str, float] = {}
    if warning is not None:
        clamped["co_warning_threshold"] = _clamp(warning, CO_WARNING_BOUNDS)
    if danger is not None:
        clamped["co_danger_threshold"] = _clamp(danger, CO_DANGER_BOUNDS)
    if critical is not None:
        clamped["co_critical_threshold"] = _clamp(critical, CO_CRITICAL_BOUNDS)
    return clamped


@dataclass(frozen=True, slots=True)
class ThresholdSet:
    """All thresholds needed to evaluate one device update."""

    co: CoThresholds = field(default_factory=CoThresholds)
    gas_threshold: float = DEFAULT_GAS_THRESHOLD
    temp_threshold: float = DEFAULT_TEMP_THRESHOLD
    fire_risk_offset: float = FIRE_RISK_OFFSET

    @classmethod
    def from_stored(
        cls,
        gas_threshold: Optional[float] = None,
        temp_threshold: Optional[float] = None,
        co_warning: Optional[float] = None,
        co_danger: Optional[float] = None,
        co_critical: Optional[float] = None,
    ) -> "ThresholdSet":
        """Build from stored device settings; absent or zero values take defaults."""
        return cls(
            co=CoThresholds(
                warning=co_warning or DEFAULT_CO_THRESHOLDS.warning,
                danger=co_danger or DEFAULT_CO_THRESHOLDS.danger,
                critical=co_critical or DEFAULT_CO_THRESHOLDS.critical,
            ),
            gas_threshold=gas_threshold or DEFAULT_GAS_THRESHOLD,
            temp_threshold=temp_threshold or DEFAULT_TEMP_THRESHOLD,
        )

    def fire_risk_thresholds(self) -> FireRiskThresholds:
        """Fire risk trips below the alarm thresholds by a fixed offset."""
        return FireRiskThresholds(
            co_warning=self.co.warning,
            temp_warning=self.temp_threshold - self.fire_risk_offset,
            gas_warning=self.gas_threshold - self.fire_risk_offset,
        )
