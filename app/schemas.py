"""Pydantic schemas for device payloads, stored documents and the HTTP API.

Field names are snake_case in Python and camelCase on the wire so that the
ESP32 firmware payloads validate unchanged.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from models.status import AlarmTrigger, AlertLevel, AqiStatus, CoStatus, SensorHealth


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FrozenCamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )


class SensorSnapshot(FrozenCamelModel):
    """One inbound device update. Every reading is optional."""

    gas: Optional[float] = Field(default=None, description="Gas/smoke level in percent.")
    temperature: Optional[float] = Field(default=None, description="Degrees Celsius.")
    humidity: Optional[float] = None
    voltage: Optional[float] = None
    threshold: Optional[float] = Field(default=None, description="Device-side gas alarm threshold.")
    temp_threshold: Optional[float] = None
    siren_enabled: Optional[bool] = None
    alarm: Optional[bool] = None
    co_ppm: Optional[float] = None
    co_raw: Optional[float] = None
    co_status: Optional[CoStatus] = None
    aqi: Optional[float] = None
    aqi_raw: Optional[float] = None
    aqi_status: Optional[AqiStatus] = None
    sensor_warmup: bool = False
    boot_time_ms: Optional[float] = None
    adc_history: Optional[List[float]] = Field(
        default=None, description="Recent MQ-7 ADC samples, oldest first."
    )
    co_ro: Optional[float] = Field(default=None, gt=0, description="MQ-7 clean-air resistance.")
    aqi_ro: Optional[float] = Field(default=None, gt=0, description="MQ-135 clean-air resistance.")
    last_calibration: Optional[datetime] = None

    @property
    def reports_calibration(self) -> bool:
        return self.co_ro is not None or self.aqi_ro is not None


class DeviceState(FrozenCamelModel):
    """Last known merged state of a device."""

    gas: float = 0.0
    temperature: float = 0.0
    humidity: float = 0.0
    voltage: float = 0.0
    threshold: Optional[float] = None
    temp_threshold: Optional[float] = None
    siren_enabled: Optional[bool] = None
    alarm: bool = False
    co_ppm: float = 0.0
    co_raw: float = 0.0
    co_status: CoStatus = CoStatus.normal
    aqi: float = 0.0
    aqi_raw: float = 0.0
    aqi_status: AqiStatus = AqiStatus.good
    sensor_warmup: bool = True
    fire_risk: bool = False
    sensor_health: SensorHealth = SensorHealth.ok
    co_ro: float = Field(default=10_000.0, gt=0)
    aqi_ro: float = Field(default=10_000.0, gt=0)
    last_calibration: Optional[datetime] = None
    timestamp: Optional[datetime] = None


class DeviceCommands(FrozenCamelModel):
    """Settings stored server-side for a device."""

    co_warning_threshold: float = 35.0
    co_danger_threshold: float = 100.0
    co_critical_threshold: float = 400.0
    calibrate: bool = False


class DeviceDocument(FrozenCamelModel):
    device_id: str
    current: DeviceState = Field(default_factory=DeviceState)
    commands: DeviceCommands = Field(default_factory=DeviceCommands)
    last_seen: Optional[datetime] = None


class AlarmEvent(FrozenCamelModel):
    """Appended to the alarm history on a rising edge."""

    device_id: str
    trigger: AlarmTrigger
    gas: Optional[float] = None
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    timestamp: datetime


class HistoryRecord(FrozenCamelModel):
    """Appended for every update that carries gas sensor data."""

    device_id: str
    co_ppm: float = 0.0
    co_raw: float = 0.0
    co_status: CoStatus = CoStatus.normal
    aqi: float = 0.0
    aqi_raw: float = 0.0
    aqi_status: AqiStatus = AqiStatus.good
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    gas: Optional[float] = None
    alert_level: AlertLevel = AlertLevel.none
    alert_triggers: List[str] = Field(default_factory=list)
    timestamp: datetime


class NotificationPayload(FrozenCamelModel):
    title: str
    body: str
    vibrate: List[int] = Field(default_factory=list)
    tag: str
    require_interaction: bool = True


class IngestResponse(CamelModel):
    success: bool = True
    co_status: CoStatus
    aqi_status: AqiStatus
    fire_risk: bool
    alert_level: Optional[AlertLevel] = None
    notifications: List[NotificationPayload] = Field(default_factory=list)


class CoThresholdsUpdate(CamelModel):
    warning: Optional[float] = None
    danger: Optional[float] = None
    critical: Optional[float] = None


class CalibrationStatus(CamelModel):
    last_calibration: Optional[datetime] = None
    co_ro: float
    aqi_ro: float
    calibration_pending: bool
