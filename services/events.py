"""In-process fan-out of poller events to subscribers."""

from __future__ import annotations

import logging
from threading import Lock
from typing import Callable, Generic, List, TypeVar

from models.records import SensorReading

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Channel(Generic[T]):
    """One event kind with its own ordered list of subscribers."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._subscribers: List[Callable[[T], None]] = []
        self._lock = Lock()

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """Register ``callback`` and return a function that unregisters it."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def emit(self, payload: T) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(payload)
            except Exception:  # noqa: BLE001 - one bad subscriber must not starve the rest
                logger.exception("Subscriber failed handling %s event", self.name)

    def __len__(self) -> int:
        with self._lock:
            return len(self._subscribers)


class EventPublisher:
    """The three event kinds emitted by the poller."""

    def __init__(self) -> None:
        self.sensor_added: Channel[str] = Channel("sensor_added")
        self.sensor_removed: Channel[str] = Channel("sensor_removed")
        self.reading_updated: Channel[SensorReading] = Channel("reading_updated")
