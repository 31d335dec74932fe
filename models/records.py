"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class SensorReading:
    """One sensor's derived state for a single poll cycle."""

    name: str
    alarming: bool
    note: str
