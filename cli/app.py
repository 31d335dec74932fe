from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import NoReturn, Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_devices, render_readings
from logging_config import configure_logging
from services.errors import DurationFormatError, FetchError, StructuralParseError
from services.fetcher import RetryPolicy, StatusPageFetcher
from services.scraper import parse_status_page
from settings import get_settings


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for scraping an OpenHomeSecurity controller and querying the monitor service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _fail(message: str) -> NoReturn:
    typer.secho(message, fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        _fail("CLI state is uninitialized.")
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Monitor API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log retries and parse details."),
) -> None:
    """Entry point for the CLI."""
    configure_logging("DEBUG" if verbose else "WARNING")
    config = load_config(base_url=base_url)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("scrape")
def scrape_command(
    endpoint: Optional[str] = typer.Option(
        None, "--endpoint", "-e", help="Controller base URL (defaults to OHS_ENDPOINT)."
    ),
    username: Optional[str] = typer.Option(None, "--username", "-u", help="Defaults to OHS_USERNAME."),
    password: Optional[str] = typer.Option(None, "--password", "-p", help="Defaults to OHS_PASSWORD."),
    retries: Optional[int] = typer.Option(
        None, "--retries", min=0, help="Retries after the first attempt (defaults to OHS_MAX_RETRIES)."
    ),
) -> None:
    """Fetch the controller status page once and print each sensor."""
    settings = get_settings()
    try:
        fetcher = StatusPageFetcher(
            endpoint=endpoint or settings.endpoint,
            username=username if username is not None else settings.username,
            password=password if password is not None else settings.password,
            policy=RetryPolicy(
                max_retries=settings.max_retries if retries is None else retries,
                backoff_unit_ms=settings.backoff_unit_ms,
            ),
            timeout=settings.http_timeout,
        )
    except FetchError as exc:
        _fail(f"Fetch failed: {exc}")
    typer.echo(f"Querying {fetcher.url} ...")
    try:
        raw = fetcher.fetch()
    except FetchError as exc:
        _fail(f"Fetch failed: {exc}")
    finally:
        fetcher.close()

    try:
        readings = parse_status_page(raw)
    except (StructuralParseError, DurationFormatError) as exc:
        _fail(f"Page format not recognised: {exc}")
    render_readings(readings)


@app.command("parse")
def parse_command(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Saved status page."),
) -> None:
    """Parse a saved status page without contacting the controller."""
    try:
        readings = parse_status_page(file.read_text(encoding="utf-8", errors="replace"))
    except (StructuralParseError, DurationFormatError) as exc:
        _fail(f"Page format not recognised: {exc}")
    render_readings(readings)


@app.command("sensors")
def sensors_command(ctx: typer.Context) -> None:
    """List devices tracked by a running monitor service."""
    state = _get_state(ctx)
    render_devices(state.client.list_sensors())
