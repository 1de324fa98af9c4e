from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from app.schemas import SensorSnapshot
from datastore.device_table import DeviceTable
from datastore.history_log import HistoryLog
from models.status import AlarmTrigger, CoStatus
from services.ingest import DeviceIngestService
from services.notifications import NotificationDispatcher
from services.orchestrator import AlertOrchestrator

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def service() -> DeviceIngestService:
    return DeviceIngestService(
        table=DeviceTable(),
        history=HistoryLog(),
        dispatcher=NotificationDispatcher(),
        orchestrator=AlertOrchestrator(),
    )


def _fire_risk_snapshot() -> SensorSnapshot:
    return SensorSnapshot(co_ppm=450, temperature=65, gas=40, humidity=30, sensor_warmup=False)


def test_fire_risk_update_dispatches_and_records(service: DeviceIngestService) -> None:
    evaluation = service.ingest("dev-1", _fire_risk_snapshot(), now=NOW)

    assert evaluation.fire_risk is True
    assert [payload.tag for payload in service.dispatcher.sent("dev-1")] == [
        "fire-risk",
        "co-critical",
    ]
    assert service.dispatcher.sent_sms("dev-1") == []
    assert [event.trigger for event in service.alarm_history("dev-1")] == [
        AlarmTrigger.co,
        AlarmTrigger.fire_risk,
    ]
    assert len(service.gas_history("dev-1", "24h", now=NOW)) == 1


def test_state_is_persisted_between_updates(service: DeviceIngestService) -> None:
    service.ingest("dev-1", _fire_risk_snapshot(), now=NOW)
    service.ingest("dev-1", _fire_risk_snapshot(), now=NOW + timedelta(seconds=5))

    document = service.table.get_device("dev-1")

    assert document is not None
    assert document.current.fire_risk is True
    assert document.current.co_status is CoStatus.critical
    assert document.current.humidity == 30
    assert document.last_seen == NOW + timedelta(seconds=5)
    assert len(service.dispatcher.sent("dev-1")) == 2
    assert len(service.gas_history("dev-1", now=NOW + timedelta(seconds=5))) == 2


def test_primary_alarm_queues_sms(service: DeviceIngestService) -> None:
    service.ingest("dev-1", SensorSnapshot(alarm=True, gas=55, temperature=30), now=NOW)

    messages = service.dispatcher.sent_sms("dev-1")

    assert len(messages) == 1
    assert messages[0].startswith("🔥 GAS DETECTED!")
    assert [payload.tag for payload in service.dispatcher.sent("dev-1")] == ["fire-alarm"]


def test_stored_gas_threshold_survives_device_reports(service: DeviceIngestService) -> None:
    service.ingest("dev-1", SensorSnapshot(gas=10, threshold=50), now=NOW)
    service.ingest(
        "dev-1",
        SensorSnapshot(alarm=True, gas=45, temperature=30, threshold=40),
        now=NOW + timedelta(seconds=5),
    )

    document = service.table.get_device("dev-1")

    assert document is not None
    assert document.current.threshold == 50
    assert service.alarm_history("dev-1")[0].trigger is AlarmTrigger.temperature


def test_gas_history_respects_range_and_order(service: DeviceIngestService) -> None:
    for hours in (30, 2, 1):
        service.ingest("dev-1", SensorSnapshot(co_ppm=hours), now=NOW - timedelta(hours=hours))

    last_day = service.gas_history("dev-1", "24h", now=NOW)
    last_week = service.gas_history("dev-1", "7d", now=NOW)

    assert [record.co_ppm for record in last_day] == [1, 2]
    assert [record.co_ppm for record in last_week] == [1, 2, 30]
    assert len(service.gas_history("dev-1", "7d", now=NOW, limit=1)) == 1


def test_alarm_history_is_newest_first_and_clearable(service: DeviceIngestService) -> None:
    service.ingest("dev-1", SensorSnapshot(alarm=True, gas=55, temperature=30), now=NOW)
    service.ingest("dev-1", SensorSnapshot(alarm=False), now=NOW + timedelta(seconds=1))
    service.ingest(
        "dev-1",
        SensorSnapshot(alarm=True, gas=10, temperature=80),
        now=NOW + timedelta(seconds=2),
    )

    history = service.alarm_history("dev-1")

    assert [event.trigger for event in history] == [AlarmTrigger.temperature, AlarmTrigger.gas]
    assert len(service.alarm_history("dev-1", limit=1)) == 1
    assert service.clear_alarm_history("dev-1") == 2
    assert service.alarm_history("dev-1") == []


def test_co_thresholds_are_clamped_and_applied(service: DeviceIngestService) -> None:
    commands = service.update_co_thresholds("dev-1", warning=5, danger=50, critical=900)

    assert commands.co_warning_threshold == 10
    assert commands.co_danger_threshold == 50
    assert commands.co_critical_threshold == 800

    evaluation = service.ingest("dev-1", SensorSnapshot(co_ppm=60), now=NOW)

    assert evaluation.co_status is CoStatus.danger
    assert [payload.tag for payload in service.dispatcher.sent("dev-1")] == ["co-danger"]


def test_partial_threshold_update_keeps_other_values(service: DeviceIngestService) -> None:
    service.update_co_thresholds("dev-1", danger=150)

    commands = service.get_device("dev-1").commands

    assert commands.co_warning_threshold == 35
    assert commands.co_danger_threshold == 150
    assert commands.co_critical_threshold == 400


def test_calibration_requires_known_device(service: DeviceIngestService) -> None:
    with pytest.raises(KeyError):
        service.request_calibration("missing")
    with pytest.raises(KeyError):
        service.calibration_status("missing")


def test_calibration_request_sets_pending_flag(service: DeviceIngestService) -> None:
    service.get_device("dev-1")

    assert service.calibration_status("dev-1").calibration_pending is False

    service.request_calibration("dev-1")
    status = service.calibration_status("dev-1")

    assert status.calibration_pending is True
    assert status.co_ro == 10_000
    assert status.last_calibration is None


def test_get_device_creates_default_document(service: DeviceIngestService) -> None:
    document = service.get_device("fresh")

    assert document.device_id == "fresh"
    assert document.current.sensor_warmup is True
    assert service.table.get_device("fresh") is not None


def test_reported_calibration_completes_pending_request(service: DeviceIngestService) -> None:
    service.get_device("dev-1")
    service.request_calibration("dev-1")

    service.ingest(
        "dev-1",
        SensorSnapshot(co_ro=5.2, aqi_ro=20.0, last_calibration=NOW, co_ppm=1),
        now=NOW,
    )
    status = service.calibration_status("dev-1")

    assert status.calibration_pending is False
    assert status.co_ro == 5.2
    assert status.aqi_ro == 20.0
    assert status.last_calibration == NOW


def test_raw_readings_before_calibration_raise_no_alarm(service: DeviceIngestService) -> None:
    evaluation = service.ingest("dev-1", SensorSnapshot(co_raw=300, aqi_raw=300), now=NOW)

    assert evaluation.co_status is CoStatus.normal
    assert service.dispatcher.sent("dev-1") == []
    assert service.gas_history("dev-1", now=NOW) == []


def test_poll_commands_delivers_calibration_once(service: DeviceIngestService) -> None:
    service.update_co_thresholds("dev-1", warning=20)
    service.request_calibration("dev-1")

    first = service.poll_commands("dev-1")
    second = service.poll_commands("dev-1")

    assert first.calibrate is True
    assert second.calibrate is False
    assert second.co_warning_threshold == 20
    assert service.calibration_status("dev-1").calibration_pending is False


def test_poll_commands_for_unknown_device_returns_defaults(service: DeviceIngestService) -> None:
    assert service.poll_commands("ghost").calibrate is False
    assert service.table.get_device("ghost") is None
