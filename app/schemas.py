"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class DeviceRecord(BaseModel):
    """Host-side representation of one discovered sensor."""

    name: str = Field(..., description="Sensor name as rendered by the controller.")
    detected: bool = Field(
        default=False, description="Mirrors the latest reading's alarming flag."
    )
    note: Optional[str] = Field(
        default=None, description="Explanation attached to the latest reading."
    )
    present: bool = Field(
        default=True, description="False once the sensor disappears from the status page."
    )
    registered_at: datetime
    updated_at: Optional[datetime] = None


class PollerStatusResponse(BaseModel):
    """Poller bookkeeping exposed for diagnostics."""

    running: bool
    endpoint: str
    interval_seconds: float = Field(..., gt=0)
    cycles: int = Field(..., ge=0)
    failures: int = Field(..., ge=0)
    last_success_at: Optional[datetime] = None
    last_failure_at: Optional[datetime] = None
    last_failure_kind: Optional[str] = Field(
        default=None,
        description="One of fetch_exhausted, structural or duration_format.",
    )
    last_error: Optional[str] = None
    sensor_count: int = Field(default=0, ge=0)
