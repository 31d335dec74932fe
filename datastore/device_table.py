from __future__ import annotations
import json
import logging
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Dict, Optional

from pydantic import ValidationError

from app.schemas import DeviceRecord
from settings import get_settings

logger = logging.getLogger(__name__)


class DeviceTable:
    """Device cache keyed by sensor name, optionally mirrored to a JSON file."""

    def __init__(self, persistence_path: Optional[Path] = None) -> None:
        self._items: Dict[str, DeviceRecord] = {}
        self.persistence_path = persistence_path
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def put_item(self, item: DeviceRecord) -> None:
        with self._lock:
            self._items[item.name] = item.model_copy(deep=True)
            self._persist()

    def get_item(self, name: str) -> Optional[DeviceRecord]:
        with self._lock:
            item = self._items.get(name)
            if item is None:
                return None
            return item.model_copy(deep=True)

    def scan(self) -> list[DeviceRecord]:
        """Return copies of all devices sorted by name."""

        with self._lock:
            return [self._items[name].model_copy(deep=True) for name in sorted(self._items)]

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = {name: item.model_dump(mode="json") for name, item in self._items.items()}
        self.persistence_path.write_text(json.dumps(payload, indent=2, sort_keys=True))

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "{}"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError):
            logger.warning("Ignoring unreadable device cache %s", self.persistence_path)
            return

        if not isinstance(data, dict):
            logger.warning("Ignoring malformed device cache %s", self.persistence_path)
            return

        items: Dict[str, DeviceRecord] = {}
        try:
            for name, payload in data.items():
                items[name] = DeviceRecord.model_validate(payload)
        except ValidationError:
            logger.warning("Ignoring malformed device cache %s", self.persistence_path)
            return
        self._items = items


@lru_cache
def build_default_table(path: Optional[str] = None) -> DeviceTable:
    settings = get_settings()
    table_path = settings.device_cache_path if path is None else path
    persistence = Path(table_path) if table_path else None
    return DeviceTable(persistence_path=persistence)
