"""HTTP route definitions for the service."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from app.schemas import DeviceRecord, PollerStatusResponse
from datastore.device_table import DeviceTable, build_default_table
from services.poller import SensorPoller, build_default_poller

router = APIRouter()


def get_table() -> DeviceTable:
    return build_default_table()


def get_poller() -> SensorPoller:
    return build_default_poller()


@router.get(
    "/sensors",
    response_model=list[DeviceRecord],
    summary="List every device discovered on the controller.",
)
async def list_sensors(table: DeviceTable = Depends(get_table)) -> list[DeviceRecord]:
    return table.scan()


@router.get(
    "/sensors/{name}",
    response_model=DeviceRecord,
    summary="Fetch the latest state of one sensor.",
)
async def get_sensor(name: str, table: DeviceTable = Depends(get_table)) -> DeviceRecord:
    record = table.get_item(name)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Sensor {name!r} not found.",
        )
    return record


@router.get(
    "/poller",
    response_model=PollerStatusResponse,
    summary="Report poll cycle counters and the most recent failure.",
)
async def poller_status(poller: SensorPoller = Depends(get_poller)) -> PollerStatusResponse:
    snapshot = poller.status()
    return PollerStatusResponse(
        running=snapshot.running,
        endpoint=poller.fetcher.endpoint,
        interval_seconds=snapshot.interval_seconds,
        cycles=snapshot.cycles,
        failures=snapshot.failures,
        last_success_at=snapshot.last_success_at,
        last_failure_at=snapshot.last_failure_at,
        last_failure_kind=snapshot.last_failure_kind,
        last_error=snapshot.last_error,
        sensor_count=snapshot.sensor_count,
    )


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /sensors for device state."}
