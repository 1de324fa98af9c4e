from __future__ import annotations
import json
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Dict, Optional

from app.schemas import DeviceDocument
from settings import get_settings


class DeviceTable:
    """Device documents keyed by device id, optionally mirrored to a JSON file."""

    def __init__(self, persistence_path: Optional[Path] = None) -> None:
        self._items: Dict[str, DeviceDocument] = {}
        self.persistence_path = persistence_path
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def put_device(self, document: DeviceDocument) -> None:
        with self._lock:
            self._items[document.device_id] = document.model_copy(deep=True)
            self._persist()

    def get_device(self, device_id: str) -> Optional[DeviceDocument]:
        with self._lock:
            document = self._items.get(device_id)
            if document is None:
                return None
            return document.model_copy(deep=True)

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = {
            device_id: document.model_dump(mode="json", by_alias=True)
            for device_id, document in self._items.items()
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

        for device_id, payload in data.items():
            self._items[device_id] = DeviceDocument.model_validate(payload)


@lru_cache
def build_default_device_table(path: Optional[str] = None) -> DeviceTable:
    settings = get_settings()
    table_path = settings.device_table_path if path is None else path
    persistence = Path(table_path) if table_path else None
    return DeviceTable(persistence_path=persistence)
