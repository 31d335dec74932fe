from __future__ import annotations

from typing import Any, Dict, Iterable, Sequence

import typer

from models.records import SensorReading


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def _state_label(active: bool) -> str:
    return typer.style("ALARMING", fg=typer.colors.RED) if active else typer.style("ok", fg=typer.colors.GREEN)


def render_readings(readings: Sequence[SensorReading]) -> None:
    echo_heading("Sensor Readings")
    if not readings:
        typer.echo("No sensors reported.")
        return
    width = max(len(reading.name) for reading in readings)
    for reading in readings:
        typer.echo(f"  {reading.name:<{width}}  {_state_label(reading.alarming)}  {reading.note}")


def render_devices(devices: Iterable[Dict[str, Any]]) -> None:
    echo_heading("Devices")
    items = list(devices)
    if not items:
        typer.echo("No devices registered.")
        return
    for device in items:
        suffix = "" if device.get("present", True) else " (missing)"
        typer.echo(
            f"  - {device.get('name')}{suffix}: {_state_label(bool(device.get('detected')))}"
            f" {device.get('note') or ''}".rstrip()
        )
