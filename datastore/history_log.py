from __future__ import annotations
import json
from datetime import timedelta
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Optional

from app.schemas import AlarmEvent, HistoryRecord
from settings import get_settings

DEFAULT_GAS_RETENTION = timedelta(days=30)


class HistoryLog:
    """Alarm events and gas sensor history records.

    Appending a gas record prunes records more than ``gas_retention`` older
    than it. Alarm events are kept until cleared.
    """

    def __init__(
        self,
        persistence_path: Optional[Path] = None,
        gas_retention: timedelta = DEFAULT_GAS_RETENTION,
    ) -> None:
        self._alarms: list[AlarmEvent] = []
        self._gas_records: list[HistoryRecord] = []
        self.persistence_path = persistence_path
        self.gas_retention = gas_retention
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def append_alarm(self, event: AlarmEvent) -> None:
        with self._lock:
            self._alarms.append(event)
            self._persist()

    def append_gas_record(self, record: HistoryRecord) -> None:
        with self._lock:
            cutoff = record.timestamp - self.gas_retention
            self._gas_records = [
                existing for existing in self._gas_records if existing.timestamp >= cutoff
            ]
            self._gas_records.append(record)
            self._persist()

    def alarms(self, device_id: str) -> list[AlarmEvent]:
        """Alarm events for a device in insertion order."""

        with self._lock:
            return [event for event in self._alarms if event.device_id == device_id]

    def gas_records(self, device_id: str) -> list[HistoryRecord]:
        with self._lock:
            return [
                record for record in self._gas_records if record.device_id == device_id
            ]

    def clear_alarms(self, device_id: str) -> int:
        with self._lock:
            kept = [event for event in self._alarms if event.device_id != device_id]
            removed = len(self._alarms) - len(kept)
            self._alarms = kept
            self._persist()
        return removed

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = {
            "alarms": [event.model_dump(mode="json", by_alias=True) for event in self._alarms],
            "gasHistory": [
                record.model_dump(mode="json", by_alias=True) for record in self._gas_records
            ],
        }
        self.persistence_path.write_text(
            json.dumps(payload, indent=2, sort_keys=True, ensure_ascii=False)
        )

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "{}"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError):
            data = {}

        self._alarms = [AlarmEvent.model_validate(item) for item in data.get("alarms", [])]
        self._gas_records = [
            HistoryRecord.model_validate(item) for item in data.get("gasHistory", [])
        ]


@lru_cache
def build_default_history_log(path: Optional[str] = None) -> HistoryLog:
    settings = get_settings()
    log_path = settings.history_log_path if path is None else path
    persistence = Path(log_path) if log_path else None
    return HistoryLog(
        persistence_path=persistence,
        gas_retention=timedelta(days=settings.gas_history_retention_days),
    )
