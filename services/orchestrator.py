"""Alert decisions for one device update.

The orchestrator is pure: it takes the previous device state and the new
snapshot and returns the merged state together with everything the caller
has to persist or send. Storage and delivery belong to the ingest service.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional, Sequence, TypeVar

from app.schemas import (
    AlarmEvent,
    DeviceState,
    HistoryRecord,
    NotificationPayload,
    SensorSnapshot,
)
from models.status import AlarmTrigger, AlertLevel, AqiStatus, CoStatus, SensorHealth
from models.thresholds import ThresholdSet
from services.classifier import co_status_rank, get_aqi_status, get_co_status
from services.detector import (
    DEFAULT_AVERAGE_WINDOW,
    DEFAULT_STUCK_SAMPLES,
    DEFAULT_WARMUP_MS,
    apply_moving_average,
    detect_fire_risk,
    is_warming_up,
    sensor_health,
)
from services.estimator import calculate_aqi, calculate_co_ppm
from services.notifications import (
    co_critical_notification,
    co_danger_notification,
    fire_alarm_notification,
    fire_risk_notification,
)

T = TypeVar("T")

TIME_RANGES = {
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
}
DEFAULT_TIME_RANGE = "24h"

# Snapshot fields that never overwrite stored state directly.
_NON_STATE_FIELDS = {
    "threshold",
    "temp_threshold",
    "siren_enabled",
    "co_status",
    "aqi_status",
    "boot_time_ms",
    "adc_history",
}


@dataclass
class Evaluation:
    """Outcome of evaluating one snapshot against the previous state."""

    state: DeviceState
    co_status: CoStatus
    aqi_status: AqiStatus
    fire_risk: bool
    warming_up: bool
    sensor_health: SensorHealth
    history_record: Optional[HistoryRecord] = None
    alarm_events: List[AlarmEvent] = field(default_factory=list)
    notifications: List[NotificationPayload] = field(default_factory=list)

    @property
    def alert_level(self) -> Optional[AlertLevel]:
        if self.history_record is None:
            return None
        return self.history_record.alert_level


def _or_zero(value: Optional[float]) -> float:
    return value if value is not None else 0.0


def _first_present(*values: Optional[T]) -> Optional[T]:
    for value in values:
        if value is not None:
            return value
    return None


def classify_trigger(
    gas: Optional[float], temperature: Optional[float], gas_threshold: float, temp_threshold: float
) -> AlarmTrigger:
    gas_high = _or_zero(gas) > gas_threshold
    temp_high = _or_zero(temperature) > temp_threshold
    if gas_high and temp_high:
        return AlarmTrigger.both
    if gas_high:
        return AlarmTrigger.gas
    return AlarmTrigger.temperature


def alert_level_for(
    co_status: CoStatus, aqi_status: AqiStatus, fire_risk: bool
) -> tuple[AlertLevel, list[str]]:
    """Pick the history alert level by priority and name the sensors involved."""
    if fire_risk:
        return AlertLevel.fire_risk, ["co", "temperature", "gas"]
    if co_status is CoStatus.critical:
        return AlertLevel.critical, ["co"]
    if co_status is CoStatus.danger or aqi_status is AqiStatus.unhealthy:
        triggers = []
        if co_status is CoStatus.danger:
            triggers.append("co")
        if aqi_status is AqiStatus.unhealthy:
            triggers.append("aqi")
        return AlertLevel.danger, triggers
    if co_status is CoStatus.warning or aqi_status is AqiStatus.unhealthy_sensitive:
        triggers = []
        if co_status is CoStatus.warning:
            triggers.append("co")
        if aqi_status is AqiStatus.unhealthy_sensitive:
            triggers.append("aqi")
        return AlertLevel.warning, triggers
    return AlertLevel.none, []


def merge_state(
    previous: DeviceState,
    snapshot: SensorSnapshot,
    thresholds: ThresholdSet,
    **derived: Any,
) -> DeviceState:
    """Merge an inbound snapshot into the stored state.

    Precedence, field by field:

    * readings present in the snapshot replace stored readings; absent
      readings keep their stored value;
    * ``threshold``, ``temp_threshold`` and ``siren_enabled`` keep the stored
      value, fall back to the device-reported value, then to the defaults;
    * ``derived`` values (statuses, flags, computed concentrations) win over
      everything.
    """
    incoming = {
        name: getattr(snapshot, name)
        for name in snapshot.model_fields_set | {"sensor_warmup"}
        if name not in _NON_STATE_FIELDS and getattr(snapshot, name) is not None
    }
    update = {
        **incoming,
        "threshold": _first_present(
            previous.threshold, snapshot.threshold, thresholds.gas_threshold
        ),
        "temp_threshold": _first_present(
            previous.temp_threshold, snapshot.temp_threshold, thresholds.temp_threshold
        ),
        "siren_enabled": _first_present(
            previous.siren_enabled, snapshot.siren_enabled, True
        ),
        **{name: value for name, value in derived.items() if value is not None},
    }
    return previous.model_copy(update=update)


class AlertOrchestrator:
    """Turns a device snapshot into statuses, edges, history and payloads."""

    def __init__(
        self,
        warmup_duration_ms: int = DEFAULT_WARMUP_MS,
        stuck_samples: int = DEFAULT_STUCK_SAMPLES,
        average_window: int = DEFAULT_AVERAGE_WINDOW,
    ) -> None:
        self.warmup_duration_ms = warmup_duration_ms
        self.stuck_samples = stuck_samples
        self.average_window = average_window

    def evaluate(
        self,
        device_id: str,
        previous: DeviceState,
        snapshot: SensorSnapshot,
        thresholds: Optional[ThresholdSet] = None,
        now: Optional[datetime] = None,
    ) -> Evaluation:
        thresholds = thresholds or ThresholdSet()
        now = _as_utc(now) if now is not None else datetime.now(timezone.utc)
        now_ms = now.timestamp() * 1000

        last_calibration = _first_present(snapshot.last_calibration, previous.last_calibration)
        if last_calibration is None and snapshot.reports_calibration:
            last_calibration = now
        co_ro = snapshot.co_ro or previous.co_ro
        aqi_ro = snapshot.aqi_ro or previous.aqi_ro

        # Raw samples mean nothing against the factory Ro of an uncalibrated sensor.
        calibrated = last_calibration is not None
        co_ppm = snapshot.co_ppm
        if co_ppm is None and calibrated:
            co_ppm = self._derive_co_ppm(snapshot, co_ro)
        aqi = snapshot.aqi
        if aqi is None and calibrated and snapshot.aqi_raw is not None:
            aqi = calculate_aqi(snapshot.aqi_raw, aqi_ro)

        co_status = snapshot.co_status or (
            get_co_status(co_ppm, thresholds.co) if co_ppm is not None else CoStatus.normal
        )
        aqi_status = snapshot.aqi_status or (
            get_aqi_status(aqi) if aqi is not None else AqiStatus.good
        )

        warming_up = snapshot.sensor_warmup or (
            snapshot.boot_time_ms is not None
            and is_warming_up(snapshot.boot_time_ms, now_ms, self.warmup_duration_ms)
        )
        health = sensor_health(snapshot.adc_history, warming_up, self.stuck_samples)

        # Device thresholds after merge feed both fire risk and trigger naming.
        state = merge_state(
            previous,
            snapshot,
            thresholds,
            co_ppm=co_ppm,
            aqi=aqi,
            co_status=co_status,
            aqi_status=aqi_status,
            sensor_health=health,
            last_calibration=last_calibration,
            timestamp=now,
        )
        effective = replace(
            thresholds,
            gas_threshold=state.threshold,
            temp_threshold=state.temp_threshold,
        )

        fire_risk = False
        if not warming_up and co_ppm is not None:
            fire_risk = detect_fire_risk(
                co_ppm,
                _or_zero(snapshot.temperature),
                _or_zero(snapshot.gas),
                effective.fire_risk_thresholds(),
            )
        state = state.model_copy(update={"fire_risk": fire_risk})

        evaluation = Evaluation(
            state=state,
            co_status=co_status,
            aqi_status=aqi_status,
            fire_risk=fire_risk,
            warming_up=warming_up,
            sensor_health=health,
        )

        if co_ppm is not None or aqi is not None:
            level, triggers = alert_level_for(co_status, aqi_status, fire_risk)
            evaluation.history_record = HistoryRecord(
                device_id=device_id,
                co_ppm=_or_zero(co_ppm),
                co_raw=_or_zero(snapshot.co_raw),
                co_status=co_status,
                aqi=_or_zero(aqi),
                aqi_raw=_or_zero(snapshot.aqi_raw),
                aqi_status=aqi_status,
                temperature=snapshot.temperature,
                humidity=snapshot.humidity,
                gas=snapshot.gas,
                alert_level=level,
                alert_triggers=triggers,
                timestamp=now,
            )

        self._collect_edges(device_id, previous, snapshot, effective, evaluation, co_ppm, now)
        return evaluation

    def _derive_co_ppm(self, snapshot: SensorSnapshot, ro: float) -> Optional[float]:
        if snapshot.adc_history:
            smoothed = apply_moving_average(snapshot.adc_history, self.average_window)
            return calculate_co_ppm(round(smoothed), ro)
        if snapshot.co_raw is not None:
            return calculate_co_ppm(snapshot.co_raw, ro)
        return None

    def _collect_edges(
        self,
        device_id: str,
        previous: DeviceState,
        snapshot: SensorSnapshot,
        thresholds: ThresholdSet,
        evaluation: Evaluation,
        co_ppm: Optional[float],
        now: datetime,
    ) -> None:
        def _event(trigger: AlarmTrigger) -> AlarmEvent:
            return AlarmEvent(
                device_id=device_id,
                trigger=trigger,
                gas=snapshot.gas,
                temperature=snapshot.temperature,
                humidity=snapshot.humidity,
                timestamp=now,
            )

        if not previous.alarm and snapshot.alarm:
            trigger = classify_trigger(
                snapshot.gas,
                snapshot.temperature,
                thresholds.gas_threshold,
                thresholds.temp_threshold,
            )
            evaluation.alarm_events.append(_event(trigger))
            evaluation.notifications.append(
                fire_alarm_notification(trigger, snapshot.gas, snapshot.temperature)
            )

        if evaluation.fire_risk and not previous.fire_risk:
            evaluation.alarm_events.append(_event(AlarmTrigger.fire_risk))
            evaluation.notifications.append(
                fire_risk_notification(co_ppm, snapshot.temperature, snapshot.gas)
            )

        was = previous.co_status
        current = evaluation.co_status
        if current is CoStatus.critical and was is not CoStatus.critical:
            evaluation.alarm_events.append(_event(AlarmTrigger.co))
            evaluation.notifications.append(co_critical_notification(co_ppm))
        elif current is CoStatus.danger and co_status_rank(was) < co_status_rank(CoStatus.danger):
            evaluation.alarm_events.append(_event(AlarmTrigger.co))
            evaluation.notifications.append(co_danger_notification(co_ppm))


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return _as_utc(value)
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        candidate = value.strip()
        if candidate.endswith("Z"):
            candidate = candidate[:-1] + "+00:00"
        try:
            return _as_utc(datetime.fromisoformat(candidate))
        except ValueError:
            return None
    return None


def _record_timestamp(record: Any) -> Optional[datetime]:
    if isinstance(record, Mapping):
        raw = record.get("timestamp")
    else:
        raw = getattr(record, "timestamp", None)
    return _parse_timestamp(raw)


def filter_by_time_range(
    records: Sequence[T], time_range: str = DEFAULT_TIME_RANGE, now: Optional[datetime] = None
) -> list[T]:
    """Keep records whose timestamp lies in ``[now - range, now]``.

    Unknown ranges fall back to 24 hours. Records with a missing or
    unparseable timestamp are dropped, as are future records.
    """
    if not isinstance(records, (list, tuple)):
        return []

    end = _as_utc(now) if now is not None else datetime.now(timezone.utc)
    cutoff = end - TIME_RANGES.get(time_range, TIME_RANGES[DEFAULT_TIME_RANGE])

    kept: list[T] = []
    for record in records:
        timestamp = _record_timestamp(record)
        if timestamp is not None and cutoff <= timestamp <= end:
            kept.append(record)
    return kept
