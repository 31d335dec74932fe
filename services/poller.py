"""Periodic polling of the controller and event emission."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from functools import lru_cache
from typing import FrozenSet, Optional, Sequence

from models.records import SensorReading
from services.differ import diff_names
from services.errors import (
    DurationFormatError,
    FetchExhaustedError,
    OHSError,
    StructuralParseError,
)
from services.events import EventPublisher
from services.fetcher import RetryPolicy, StatusPageFetcher
from services.scraper import ReadingBuilder, RowExtractor, parse_status_page
from settings import get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PollerStatus:
    """Snapshot of the poller's bookkeeping."""

    running: bool = False
    interval_seconds: float = 0.0
    cycles: int = 0
    failures: int = 0
    last_success_at: Optional[datetime] = None
    last_failure_at: Optional[datetime] = None
    last_failure_kind: Optional[str] = None
    last_error: Optional[str] = None
    sensor_count: int = 0


def _failure_kind(exc: OHSError) -> str:
    if isinstance(exc, FetchExhaustedError):
        return "fetch_exhausted"
    if isinstance(exc, DurationFormatError):
        return "duration_format"
    return "structural"


class SensorPoller:
    """Runs fetch, parse, diff and publish cycles on a fixed period.

    A single worker thread waits ``interval_seconds``, runs one cycle, then
    waits again, so a slow cycle (for example one stuck in backoff) delays
    the next one instead of overlapping it. The set of known sensor names is
    only touched inside a cycle and only replaced after a successful one.
    """

    def __init__(
        self,
        fetcher: StatusPageFetcher,
        publisher: Optional[EventPublisher] = None,
        interval_seconds: float = 10.0,
        extractor: Optional[RowExtractor] = None,
        builder: Optional[ReadingBuilder] = None,
    ) -> None:
        self.fetcher = fetcher
        self.publisher = publisher or EventPublisher()
        self.interval_seconds = interval_seconds
        self.extractor = extractor or RowExtractor()
        self.builder = builder or ReadingBuilder()
        self._seen: FrozenSet[str] = frozenset()
        self._cycle_lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._stop_event: Optional[threading.Event] = None
        self._status = PollerStatus(interval_seconds=interval_seconds)

    @property
    def running(self) -> bool:
        with self._state_lock:
            return self._thread is not None

    def start(self) -> None:
        """Begin scheduling cycles; does nothing if already running."""
        with self._state_lock:
            if self._thread is not None:
                return
            stop_event = threading.Event()
            thread = threading.Thread(
                target=self._run,
                args=(stop_event,),
                name="ohs-poller",
                daemon=True,
            )
            self._stop_event = stop_event
            self._thread = thread
        logger.info(
            "Starting poller every %.1fs",
            self.interval_seconds,
            extra={"endpoint": self.fetcher.endpoint},
        )
        thread.start()

    def stop(self) -> None:
        """Stop scheduling cycles. A cycle already running is allowed to finish."""
        with self._state_lock:
            thread, stop_event = self._thread, self._stop_event
            if thread is None or stop_event is None:
                return
            stop_event.set()
            self._stop_event = None
            self._thread = None
        logger.info("Poller stopped", extra={"endpoint": self.fetcher.endpoint})

    def close(self, timeout: Optional[float] = None) -> None:
        """Stop scheduling, wait for the in-flight cycle, then release the HTTP client."""
        with self._state_lock:
            thread = self._thread
        self.stop()
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        with self._cycle_lock:
            self.fetcher.close()

    def status(self) -> PollerStatus:
        with self._state_lock:
            return replace(self._status, running=self._thread is not None)

    def poll_once(self) -> Optional[Sequence[SensorReading]]:
        """Run one cycle now and return its readings, or ``None`` if it failed or was skipped."""
        if not self._cycle_lock.acquire(blocking=False):
            logger.debug("Poll cycle already in flight; skipping")
            return None
        try:
            return self._cycle()
        finally:
            self._cycle_lock.release()

    def _run(self, stop_event: threading.Event) -> None:
        while not stop_event.wait(self.interval_seconds):
            try:
                self.poll_once()
            except Exception:  # noqa: BLE001 - the schedule must survive anything
                logger.exception(
                    "Unexpected error during poll cycle",
                    extra={"endpoint": self.fetcher.endpoint},
                )

    def _cycle(self) -> Optional[Sequence[SensorReading]]:
        try:
            raw = self.fetcher.fetch()
            readings = parse_status_page(raw, self.extractor, self.builder)
        except (FetchExhaustedError, StructuralParseError, DurationFormatError) as exc:
            self._record_failure(exc)
            return None

        diff = diff_names(self._seen, (reading.name for reading in readings))
        if diff.changed:
            logger.info(
                "Sensor membership changed",
                extra={
                    "endpoint": self.fetcher.endpoint,
                    "added": ",".join(diff.added) or None,
                    "removed": ",".join(diff.removed) or None,
                },
            )
        for name in diff.removed:
            self.publisher.sensor_removed.emit(name)
        for name in diff.added:
            self.publisher.sensor_added.emit(name)
        self._seen = frozenset(reading.name for reading in readings)

        for reading in readings:
            self.publisher.reading_updated.emit(reading)

        with self._state_lock:
            self._status = replace(
                self._status,
                cycles=self._status.cycles + 1,
                last_success_at=datetime.now(timezone.utc),
                sensor_count=len(readings),
            )
        logger.debug(
            "Poll cycle complete",
            extra={"endpoint": self.fetcher.endpoint, "sensor_count": len(readings)},
        )
        return readings

    def _record_failure(self, exc: OHSError) -> None:
        kind = _failure_kind(exc)
        attempts = getattr(exc, "attempts", None)
        logger.warning(
            "Poll cycle failed, keeping previous sensor state: %s",
            exc,
            extra={"endpoint": self.fetcher.endpoint, "attempts": attempts, "failure_kind": kind},
        )
        with self._state_lock:
            self._status = replace(
                self._status,
                cycles=self._status.cycles + 1,
                failures=self._status.failures + 1,
                last_failure_at=datetime.now(timezone.utc),
                last_failure_kind=kind,
                last_error=str(exc),
            )


@lru_cache
def build_default_poller() -> SensorPoller:
    """Factory that wires the poller from environment settings."""
    settings = get_settings()
    fetcher = StatusPageFetcher(
        endpoint=settings.endpoint,
        username=settings.username,
        password=settings.password,
        policy=RetryPolicy(
            max_retries=settings.max_retries,
            backoff_unit_ms=settings.backoff_unit_ms,
        ),
        timeout=settings.http_timeout,
    )
    return SensorPoller(
        fetcher=fetcher,
        publisher=EventPublisher(),
        interval_seconds=settings.poll_interval,
    )
