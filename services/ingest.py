"""Device update ingestion: load state, evaluate, persist, notify."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import Optional

from app.schemas import (
    AlarmEvent,
    CalibrationStatus,
    DeviceCommands,
    DeviceDocument,
    HistoryRecord,
    SensorSnapshot,
)
from datastore.device_table import DeviceTable, build_default_device_table
from datastore.history_log import HistoryLog, build_default_history_log
from models.status import AlarmTrigger, SensorHealth
from models.thresholds import ThresholdSet, clamp_co_thresholds
from services.notifications import NotificationDispatcher
from services.orchestrator import AlertOrchestrator, Evaluation, filter_by_time_range
from settings import get_settings

logger = logging.getLogger(__name__)

ALARM_HISTORY_LIMIT = 50
GAS_HISTORY_LIMIT = 1000

_PRIMARY_TRIGGERS = {AlarmTrigger.gas, AlarmTrigger.temperature, AlarmTrigger.both}


class DeviceIngestService:
    """Coordinates the device store, the history log and notification dispatch."""

    def __init__(
        self,
        table: DeviceTable,
        history: HistoryLog,
        dispatcher: NotificationDispatcher,
        orchestrator: AlertOrchestrator,
    ) -> None:
        self.table = table
        self.history = history
        self.dispatcher = dispatcher
        self.orchestrator = orchestrator

    def get_device(self, device_id: str) -> DeviceDocument:
        """Return the stored document, creating a default one on first access."""
        document = self.table.get_device(device_id)
        if document is None:
            document = DeviceDocument(device_id=device_id)
            self.table.put_device(document)
        return document

    def ingest(
        self,
        device_id: str,
        snapshot: SensorSnapshot,
        now: Optional[datetime] = None,
    ) -> Evaluation:
        now = now or datetime.now(timezone.utc)
        document = self.table.get_device(device_id) or DeviceDocument(device_id=device_id)
        thresholds = self._thresholds_for(document)

        evaluation = self.orchestrator.evaluate(
            device_id, document.current, snapshot, thresholds, now=now
        )

        update = {"current": evaluation.state, "last_seen": now}
        if snapshot.reports_calibration and document.commands.calibrate:
            update["commands"] = document.commands.model_copy(update={"calibrate": False})
            logger.info("Calibration completed", extra={"device_id": device_id})
        self.table.put_device(document.model_copy(update=update))
        if evaluation.history_record is not None:
            self.history.append_gas_record(evaluation.history_record)

        for event in evaluation.alarm_events:
            self.history.append_alarm(event)
            logger.warning(
                "Alarm edge detected",
                extra={"device_id": device_id, "trigger": event.trigger.value},
            )
            if event.trigger in _PRIMARY_TRIGGERS:
                self.dispatcher.send_alarm_sms(device_id, event)
        for payload in evaluation.notifications:
            self.dispatcher.send(device_id, payload)

        if evaluation.sensor_health is SensorHealth.error:
            logger.warning("CO sensor readings look stuck", extra={"device_id": device_id})

        logger.info(
            "Device update evaluated",
            extra={
                "device_id": device_id,
                "co_status": evaluation.co_status.value,
                "aqi_status": evaluation.aqi_status.value,
                "fire_risk": evaluation.fire_risk,
                "alert_level": evaluation.alert_level.value if evaluation.alert_level else None,
            },
        )
        return evaluation

    def alarm_history(self, device_id: str, limit: int = ALARM_HISTORY_LIMIT) -> list[AlarmEvent]:
        events = self.history.alarms(device_id)
        return list(reversed(events))[:limit]

    def clear_alarm_history(self, device_id: str) -> int:
        return self.history.clear_alarms(device_id)

    def gas_history(
        self,
        device_id: str,
        time_range: str = "24h",
        now: Optional[datetime] = None,
        limit: int = GAS_HISTORY_LIMIT,
    ) -> list[HistoryRecord]:
        records = filter_by_time_range(self.history.gas_records(device_id), time_range, now)
        records.sort(key=lambda record: record.timestamp, reverse=True)
        logger.info(
            "Gas history requested",
            extra={"device_id": device_id, "time_range": time_range, "record_count": len(records)},
        )
        return records[:limit]

    def update_co_thresholds(
        self,
        device_id: str,
        warning: Optional[float] = None,
        danger: Optional[float] = None,
        critical: Optional[float] = None,
    ) -> DeviceCommands:
        document = self.get_device(device_id)
        commands = document.commands.model_copy(
            update=clamp_co_thresholds(warning, danger, critical)
        )
        self.table.put_device(document.model_copy(update={"commands": commands}))
        return commands

    def poll_commands(self, device_id: str) -> DeviceCommands:
        """Hand the stored commands to the device and reset the one-shot ones.

        CO thresholds are settings and stay in place; ``calibrate`` is
        delivered once. Unknown devices get the defaults and nothing is stored.
        """
        document = self.table.get_device(device_id)
        if document is None:
            return DeviceCommands()
        commands = document.commands
        if commands.calibrate:
            reset = commands.model_copy(update={"calibrate": False})
            self.table.put_device(document.model_copy(update={"commands": reset}))
        return commands

    def request_calibration(self, device_id: str) -> None:
        document = self._require_device(device_id)
        commands = document.commands.model_copy(update={"calibrate": True})
        self.table.put_device(document.model_copy(update={"commands": commands}))

    def calibration_status(self, device_id: str) -> CalibrationStatus:
        document = self._require_device(device_id)
        return CalibrationStatus(
            last_calibration=document.current.last_calibration,
            co_ro=document.current.co_ro,
            aqi_ro=document.current.aqi_ro,
            calibration_pending=document.commands.calibrate,
        )

    def _require_device(self, device_id: str) -> DeviceDocument:
        document = self.table.get_device(device_id)
        if document is None:
            raise KeyError(f"Device {device_id!r} not found.")
        return document

    @staticmethod
    def _thresholds_for(document: DeviceDocument) -> ThresholdSet:
        return ThresholdSet.from_stored(
            gas_threshold=document.current.threshold,
            temp_threshold=document.current.temp_threshold,
            co_warning=document.commands.co_warning_threshold,
            co_danger=document.commands.co_danger_threshold,
            co_critical=document.commands.co_critical_threshold,
        )


@lru_cache
def build_default_ingest_service() -> DeviceIngestService:
    """Factory that wires the ingest service with the default stores."""
    settings = get_settings()
    orchestrator = AlertOrchestrator(
        warmup_duration_ms=settings.warmup_duration_ms,
        stuck_samples=settings.stuck_sensor_samples,
        average_window=settings.moving_average_window,
    )
    return DeviceIngestService(
        table=build_default_device_table(),
        history=build_default_history_log(),
        dispatcher=NotificationDispatcher(),
        orchestrator=orchestrator,
    )
