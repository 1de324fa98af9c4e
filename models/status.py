"""Ordered severity scales produced by the classifier and orchestrator."""

from __future__ import annotations

from enum import Enum


class CoStatus(str, Enum):
    normal = "normal"
    warning = "warning"
    danger = "danger"
    critical = "critical"


class AqiStatus(str, Enum):
    good = "good"
    moderate = "moderate"
    unhealthy_sensitive = "unhealthy_sensitive"
    unhealthy = "unhealthy"


class SeverityBand(str, Enum):
    """Six-band scale for gas percentage and temperature, used for display only."""

    safe = "safe"
    low = "low"
    medium = "medium"
    high = "high"
    danger = "danger"
    critical = "critical"


class AlertLevel(str, Enum):
    none = "none"
    warning = "warning"
    danger = "danger"
    critical = "critical"
    fire_risk = "fire_risk"


class AlarmTrigger(str, Enum):
    gas = "gas"
    temperature = "temperature"
    both = "both"
    fire_risk = "fire_risk"
    co = "co"


class SensorHealth(str, Enum):
    ok = "ok"
    warning = "warning"
    error = "error"


CO_STATUS_ORDER = (
    CoStatus.normal,
    CoStatus.warning,
    CoStatus.danger,
    CoStatus.critical,
)
