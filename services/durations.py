"""Elapsed-time parsing for the status page's duration cells."""

from __future__ import annotations

from typing import Optional

from services.errors import DurationFormatError

NO_DATA = "-"

_UNIT_SECONDS = (86400, 3600, 60, 1)


def parse_duration(text: str) -> Optional[int]:
    """Convert ``days:hours:minutes:seconds`` into a number of seconds.

    The controller renders ``-`` when it has never seen the event; that
    sentinel maps to ``None``. Anything else that is not exactly four
    non-negative integers raises :class:`DurationFormatError`.
    """
    candidate = text.strip()
    if candidate == NO_DATA:
        return None

    parts = candidate.split(":")
    if len(parts) != len(_UNIT_SECONDS):
        raise DurationFormatError(
            f"Expected days:hours:minutes:seconds, got {text!r}."
        )

    total = 0
    for part, unit in zip(parts, _UNIT_SECONDS):
        # Rejects signs, blanks and decimals that int() would accept.
        if not (part.isascii() and part.isdigit()):
            raise DurationFormatError(f"Invalid duration component {part!r} in {text!r}.")
        total += int(part) * unit
    return total
