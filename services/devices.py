"""Reflects poller events into host-side device records."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import Callable, List

from app.schemas import DeviceRecord
from datastore.device_table import DeviceTable, build_default_table
from models.records import SensorReading
from services.events import EventPublisher
from services.poller import build_default_poller

logger = logging.getLogger(__name__)


class DeviceBridge:
    """Registers one device per sensor name and mirrors readings into it.

    Devices restored from the table are reused when their sensor shows up
    again, so a restart keeps the same records.
    """

    def __init__(self, table: DeviceTable, publisher: EventPublisher) -> None:
        self.table = table
        self.publisher = publisher
        self._unsubscribers: List[Callable[[], None]] = []

    @property
    def attached(self) -> bool:
        return bool(self._unsubscribers)

    def attach(self) -> None:
        if self._unsubscribers:
            return
        self._unsubscribers = [
            self.publisher.sensor_added.subscribe(self.register),
            self.publisher.sensor_removed.subscribe(self.mark_removed),
            self.publisher.reading_updated.subscribe(self.apply_reading),
        ]

    def detach(self) -> None:
        while self._unsubscribers:
            self._unsubscribers.pop()()

    def register(self, name: str) -> DeviceRecord:
        now = datetime.now(timezone.utc)
        existing = self.table.get_item(name)
        if existing is not None:
            logger.info("Restoring existing device from cache: %s", name, extra={"sensor": name})
            record = existing.model_copy(update={"present": True, "updated_at": now})
        else:
            logger.info("Adding new device: %s", name, extra={"sensor": name})
            record = DeviceRecord(name=name, registered_at=now)
        self.table.put_item(record)
        return record

    def mark_removed(self, name: str) -> None:
        logger.warning("Sensor removed: %s", name, extra={"sensor": name})
        existing = self.table.get_item(name)
        if existing is None:
            return
        self.table.put_item(
            existing.model_copy(
                update={"present": False, "updated_at": datetime.now(timezone.utc)}
            )
        )

    def apply_reading(self, reading: SensorReading) -> None:
        record = self.table.get_item(reading.name)
        if record is None:
            return

        if record.detected != reading.alarming:
            if reading.alarming:
                logger.debug("Motion on %s note: %s", reading.name, reading.note, extra={"sensor": reading.name})
            else:
                logger.debug("No motion %s note: %s", reading.name, reading.note, extra={"sensor": reading.name})

        self.table.put_item(
            record.model_copy(
                update={
                    "detected": reading.alarming,
                    "note": reading.note,
                    "updated_at": datetime.now(timezone.utc),
                }
            )
        )


@lru_cache
def build_default_bridge() -> DeviceBridge:
    """Factory that connects the default device table to the default poller."""
    bridge = DeviceBridge(table=build_default_table(), publisher=build_default_poller().publisher)
    bridge.attach()
    return bridge
