from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

from app.schemas import AlarmEvent, DeviceDocument, DeviceState, HistoryRecord
from datastore.device_table import DeviceTable
from datastore.history_log import HistoryLog
from models.status import AlarmTrigger, CoStatus

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def _document(device_id: str = "dev-1", **state) -> DeviceDocument:
    return DeviceDocument(device_id=device_id, current=DeviceState(**state), last_seen=NOW)


def test_device_table_round_trip_in_memory() -> None:
    table = DeviceTable()
    table.put_device(_document(gas=12.5, co_status=CoStatus.warning))

    stored = table.get_device("dev-1")

    assert stored is not None
    assert stored.current.gas == 12.5
    assert stored.current.co_status is CoStatus.warning
    assert table.get_device("missing") is None


def test_device_table_persists_camel_case_json(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "devices.json"
    table = DeviceTable(persistence_path=path)
    table.put_device(_document(co_ppm=120.0, threshold=45.0))

    raw = json.loads(path.read_text())
    assert raw["dev-1"]["current"]["coPpm"] == 120.0
    assert raw["dev-1"]["commands"]["coWarningThreshold"] == 35.0

    reloaded = DeviceTable(persistence_path=path).get_device("dev-1")
    assert reloaded is not None
    assert reloaded.current.threshold == 45.0
    assert reloaded.last_seen == NOW


def test_device_table_tolerates_corrupt_file(tmp_path: Path) -> None:
    path = tmp_path / "devices.json"
    path.write_text("{not json")

    table = DeviceTable(persistence_path=path)

    assert table.get_device("dev-1") is None


def test_device_table_stores_independent_copies() -> None:
    table = DeviceTable()
    document = _document()
    table.put_device(document)

    first = table.get_device("dev-1")
    second = table.get_device("dev-1")

    assert first == second
    assert first is not second
    assert first is not document


def _alarm(device_id: str, trigger: AlarmTrigger = AlarmTrigger.gas) -> AlarmEvent:
    return AlarmEvent(device_id=device_id, trigger=trigger, gas=50.0, timestamp=NOW)


def test_history_log_filters_by_device() -> None:
    log = HistoryLog()
    log.append_alarm(_alarm("dev-1"))
    log.append_alarm(_alarm("dev-2"))
    log.append_alarm(_alarm("dev-1", AlarmTrigger.co))
    log.append_gas_record(HistoryRecord(device_id="dev-2", co_ppm=5.0, timestamp=NOW))

    assert [event.trigger for event in log.alarms("dev-1")] == [
        AlarmTrigger.gas,
        AlarmTrigger.co,
    ]
    assert log.gas_records("dev-1") == []
    assert len(log.gas_records("dev-2")) == 1


def test_clear_alarms_only_touches_one_device() -> None:
    log = HistoryLog()
    log.append_alarm(_alarm("dev-1"))
    log.append_alarm(_alarm("dev-1"))
    log.append_alarm(_alarm("dev-2"))

    assert log.clear_alarms("dev-1") == 2
    assert log.alarms("dev-1") == []
    assert len(log.alarms("dev-2")) == 1
    assert log.clear_alarms("dev-1") == 0


def test_history_log_reloads_from_disk(tmp_path: Path) -> None:
    path = tmp_path / "history.json"
    log = HistoryLog(persistence_path=path)
    log.append_alarm(_alarm("dev-1"))
    log.append_gas_record(
        HistoryRecord(device_id="dev-1", co_ppm=80.0, timestamp=NOW - timedelta(hours=1))
    )

    raw = json.loads(path.read_text())
    assert set(raw) == {"alarms", "gasHistory"}
    assert raw["gasHistory"][0]["coPpm"] == 80.0

    reloaded = HistoryLog(persistence_path=path)
    assert reloaded.alarms("dev-1") == log.alarms("dev-1")
    assert reloaded.gas_records("dev-1")[0].timestamp == NOW - timedelta(hours=1)


def test_gas_records_past_retention_are_pruned_on_append() -> None:
    log = HistoryLog(gas_retention=timedelta(days=30))
    log.append_gas_record(HistoryRecord(device_id="dev-1", co_ppm=1.0, timestamp=NOW - timedelta(days=31)))
    log.append_gas_record(HistoryRecord(device_id="dev-2", co_ppm=2.0, timestamp=NOW - timedelta(days=29)))

    log.append_gas_record(HistoryRecord(device_id="dev-1", co_ppm=3.0, timestamp=NOW))

    assert [record.co_ppm for record in log.gas_records("dev-1")] == [3.0]
    assert [record.co_ppm for record in log.gas_records("dev-2")] == [2.0]


def test_pruned_records_are_not_persisted(tmp_path: Path) -> None:
    path = tmp_path / "history.json"
    log = HistoryLog(persistence_path=path, gas_retention=timedelta(hours=1))
    log.append_gas_record(HistoryRecord(device_id="dev-1", timestamp=NOW - timedelta(hours=2)))
    log.append_gas_record(HistoryRecord(device_id="dev-1", timestamp=NOW))

    raw = json.loads(path.read_text())

    assert len(raw["gasHistory"]) == 1
    assert len(HistoryLog(persistence_path=path).gas_records("dev-1")) == 1
