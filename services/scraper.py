"""Extraction of sensor readings from the controller's HTML status page.

The page renders the whole sensor table on a single ``<body onload=...>``
line. Parsing is a chain of small passes: find that line, split it into
table rows, clean each row down to whitespace separated fields, and turn the
fields into a :class:`SensorReading`.
"""

from __future__ import annotations

import html
import logging
import re
from typing import Iterable, List, Optional, Sequence

from models.records import SensorReading
from services.durations import NO_DATA, parse_duration
from services.errors import StructuralParseError

logger = logging.getLogger(__name__)

STATUS_MARKER = "body onload="
MAX_SENSORS = 8
OK_THRESHOLD_SECONDS = 20

PLACEHOLDER_NAME = "-"
ALARM_TOKEN = "ALARM"

NAME_FIELD = 1
ZONE_FIELD = 5
LAST_OK_FIELD = 6
LAST_ALARM_FIELD = 7
ACTIVE_ALARM_FIELD = 8

_ROW_BOUNDARY_RE = re.compile(r"</?tr(?:\s[^>]*)?>", re.IGNORECASE)
_CELL_RE = re.compile(r"<td\b", re.IGNORECASE)
_ICON_RE = re.compile(r"<i\b[^>]*>(?:\s*</i>)?", re.IGNORECASE)
_ZONE_CELL_RE = re.compile(r"<td>\s*(\d)\s*-\s*[a-z\d]+\s*</td>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")
_DAYS_RE = re.compile(r"(\d+)d,\s*")
_WHITESPACE_RE = re.compile(r"\s+")
_ROW_NUMBER_RE = re.compile(r"^(\d+)\.")
_SECONDS_RE = re.compile(r" second\(s\)", re.IGNORECASE)


def _replace_icon(match: re.Match[str]) -> str:
    if "fa-bell" in match.group(0).lower():
        return f" {ALARM_TOKEN} "
    return " "


class RowExtractor:
    """Locate the status line and split it into raw table rows."""

    def __init__(self, marker: str = STATUS_MARKER, max_rows: int = MAX_SENSORS) -> None:
        self.marker = marker
        self.max_rows = max_rows

    def find_marker_line(self, raw_text: str) -> str:
        for line in raw_text.splitlines():
            if self.marker in line:
                return line
        raise StructuralParseError(
            f"Unable to find a line containing {self.marker!r}; "
            "the response is not a recognised status page."
        )

    def split_rows(self, line: str) -> List[str]:
        return [fragment for fragment in _ROW_BOUNDARY_RE.split(line) if _CELL_RE.search(fragment)]

    def extract(self, raw_text: str) -> List[str]:
        rows = self.split_rows(self.find_marker_line(raw_text))
        # The controller's table has a fixed number of slots; anything past
        # them is not a sensor row. Placeholder slots still count here.
        return rows[: self.max_rows]


class ReadingBuilder:
    """Turn one raw table row into a :class:`SensorReading`."""

    def __init__(self, ok_threshold_seconds: int = OK_THRESHOLD_SECONDS) -> None:
        self.ok_threshold_seconds = ok_threshold_seconds

    @staticmethod
    def clean(row: str) -> str:
        text = _ICON_RE.sub(_replace_icon, row)
        text = _ZONE_CELL_RE.sub(r" \1 ", text)
        text = _TAG_RE.sub(" ", text)
        text = html.unescape(text)
        text = _DAYS_RE.sub(r"\1:", text)
        text = _WHITESPACE_RE.sub(" ", text).strip()
        text = _ROW_NUMBER_RE.sub(r"\1", text)
        return _SECONDS_RE.sub("s", text)

    def fields(self, row: str) -> List[str]:
        cleaned = self.clean(row)
        return cleaned.split(" ") if cleaned else []

    def build(self, row: str) -> Optional[SensorReading]:
        """Return the reading for ``row`` or ``None`` for an unoccupied slot."""
        fields = self.fields(row)
        if len(fields) <= NAME_FIELD:
            raise StructuralParseError(f"Sensor row has no name field: {fields!r}")

        name = fields[NAME_FIELD]
        if name == PLACEHOLDER_NAME:
            return None

        if len(fields) <= LAST_ALARM_FIELD:
            raise StructuralParseError(
                f"Sensor row for {name!r} has {len(fields)} fields, "
                f"expected at least {LAST_ALARM_FIELD + 1}."
            )

        last_ok = parse_duration(fields[LAST_OK_FIELD])
        actively_alarming = (
            len(fields) > ACTIVE_ALARM_FIELD and fields[ACTIVE_ALARM_FIELD] == ALARM_TOKEN
        )

        if actively_alarming:
            return SensorReading(name=name, alarming=True, note="Actively alarming")
        if last_ok is None or last_ok < self.ok_threshold_seconds:
            shown = NO_DATA if last_ok is None else last_ok
            return SensorReading(name=name, alarming=True, note=f"OK for: {shown}")
        return SensorReading(name=name, alarming=False, note=f"For {last_ok}")

    def build_all(self, rows: Iterable[str]) -> List[SensorReading]:
        readings: List[SensorReading] = []
        seen: set[str] = set()
        for index, row in enumerate(rows):
            reading = self.build(row)
            if reading is None:
                logger.debug("Skipping unoccupied sensor slot %d", index + 1)
                continue
            if reading.name in seen:
                raise StructuralParseError(f"Sensor {reading.name!r} appears more than once.")
            seen.add(reading.name)
            readings.append(reading)
        return readings


def parse_status_page(
    raw_text: str,
    extractor: Optional[RowExtractor] = None,
    builder: Optional[ReadingBuilder] = None,
) -> Sequence[SensorReading]:
    """Parse a full status page into readings in document order."""
    extractor = extractor or RowExtractor()
    builder = builder or ReadingBuilder()
    return builder.build_all(extractor.extract(raw_text))
