"""Map concentrations and readings onto ordered severity levels."""

from __future__ import annotations

from typing import Optional, Sequence

from models.status import CO_STATUS_ORDER, AqiStatus, CoStatus, SeverityBand
from models.thresholds import DEFAULT_CO_THRESHOLDS, CoThresholds

AQI_GOOD = 50
AQI_MODERATE = 100
AQI_UNHEALTHY_SENSITIVE = 150

GAS_BAND_LIMITS = (20.0, 35.0, 50.0, 70.0, 85.0)
TEMPERATURE_BAND_LIMITS = (45.0, 52.0, 60.0, 68.0, 75.0)

_BANDS = tuple(SeverityBand)


def get_co_status(ppm: float, thresholds: Optional[CoThresholds] = None) -> CoStatus:
    """Classify CO; a value exactly at a cut-point belongs to the higher band."""
    limits = thresholds or DEFAULT_CO_THRESHOLDS
    if ppm >= limits.critical:
        return CoStatus.critical
    if ppm >= limits.danger:
        return CoStatus.danger
    if ppm >= limits.warning:
        return CoStatus.warning
    return CoStatus.normal


def get_aqi_status(aqi: float) -> AqiStatus:
    """Classify AQI; a value exactly at a boundary belongs to the lower band.

    This is the opposite inclusion rule from :func:`get_co_status` and is kept
    for compatibility with stored history.
    """
    if aqi <= AQI_GOOD:
        return AqiStatus.good
    if aqi <= AQI_MODERATE:
        return AqiStatus.moderate
    if aqi <= AQI_UNHEALTHY_SENSITIVE:
        return AqiStatus.unhealthy_sensitive
    return AqiStatus.unhealthy


def co_status_rank(status: CoStatus | str) -> int:
    return CO_STATUS_ORDER.index(CoStatus(status))


def _band(value: float, limits: Sequence[float]) -> SeverityBand:
    for band, limit in zip(_BANDS, limits):
        if value <= limit:
            return band
    return SeverityBand.critical


def gas_level(percent: float) -> SeverityBand:
    return _band(percent, GAS_BAND_LIMITS)


def temperature_level(celsius: float) -> SeverityBand:
    return _band(celsius, TEMPERATURE_BAND_LIMITS)
