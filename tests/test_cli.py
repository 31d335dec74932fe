from __future__ import annotations

from typing import Any, Dict, List

import pytest
from typer.testing import CliRunner

from cli.app import app
from pages import LOGIN_PAGE, make_page, make_placeholder, make_row
from services.errors import FetchExhaustedError


class StubClient:
    def __init__(self, config) -> None:
        self.config = config
        self.devices: List[Dict[str, Any]] = [
            {"name": "Hall", "detected": True, "note": "Actively alarming", "present": True},
            {"name": "Porch", "detected": False, "note": "For 120", "present": False},
        ]
        self.closed = False

    def list_sensors(self) -> List[Dict[str, Any]]:
        return self.devices

    def close(self) -> None:
        self.closed = True


class StubFetcher:
    instances: List["StubFetcher"] = []

    def __init__(self, endpoint: str, username: str, password: str, policy=None, timeout: float = 10.0) -> None:
        self.endpoint = endpoint
        self.username = username
        self.password = password
        self.policy = policy
        self.closed = False
        self.outcome: Any = make_page(
            [make_row(1, "Hall", alarming=True), make_placeholder(2), make_row(3, "Porch", last_ok="0:0:2:0")]
        )
        StubFetcher.instances.append(self)

    @property
    def url(self) -> str:
        return f"{self.endpoint}/z"

    def fetch(self) -> str:
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def stub_client(monkeypatch) -> StubClient:
    stub = StubClient(config=None)

    def factory(config):
        stub.config = config
        return stub

    monkeypatch.setattr("cli.app.ApiClient", factory)
    return stub


@pytest.fixture()
def stub_fetcher(monkeypatch, stub_client) -> type[StubFetcher]:
    StubFetcher.instances = []
    monkeypatch.setattr("cli.app.StatusPageFetcher", StubFetcher)
    return StubFetcher


def test_scrape_prints_readings(runner: CliRunner, stub_fetcher) -> None:
    result = runner.invoke(
        app, ["scrape", "--endpoint", "http://ohs.local", "--username", "u", "--password", "p", "--retries", "1"]
    )

    assert result.exit_code == 0, result.output
    assert "Querying http://ohs.local/z" in result.stdout
    assert "Hall" in result.stdout and "Actively alarming" in result.stdout
    assert "Porch" in result.stdout and "For 120" in result.stdout
    fetcher = stub_fetcher.instances[0]
    assert (fetcher.username, fetcher.password) == ("u", "p")
    assert fetcher.policy.max_retries == 1
    assert fetcher.closed is True


def test_scrape_reports_exhausted_fetch(runner: CliRunner, stub_fetcher, monkeypatch) -> None:
    original_init = StubFetcher.__init__

    def failing_init(self, *args, **kwargs) -> None:
        original_init(self, *args, **kwargs)
        self.outcome = FetchExhaustedError("http://ohs.local", attempts=4)

    monkeypatch.setattr(StubFetcher, "__init__", failing_init)

    result = runner.invoke(app, ["scrape"])

    assert result.exit_code == 1
    assert "Fetch failed" in result.output
    assert stub_fetcher.instances[0].closed is True


def test_scrape_reports_unrecognised_page(runner: CliRunner, stub_fetcher, monkeypatch) -> None:
    original_init = StubFetcher.__init__

    def login_init(self, *args, **kwargs) -> None:
        original_init(self, *args, **kwargs)
        self.outcome = LOGIN_PAGE

    monkeypatch.setattr(StubFetcher, "__init__", login_init)

    result = runner.invoke(app, ["scrape"])

    assert result.exit_code == 1
    assert "Page format not recognised" in result.output


def test_scrape_rejects_malformed_endpoint(runner: CliRunner, stub_client) -> None:
    result = runner.invoke(app, ["scrape", "--endpoint", "http://ohs.local:notaport"])

    assert result.exit_code == 1
    assert "Fetch failed" in result.output
    assert "Invalid OHS endpoint" in result.output
    assert result.exception is None or isinstance(result.exception, SystemExit)


def test_parse_reads_saved_page(runner: CliRunner, stub_client, tmp_path) -> None:
    page = tmp_path / "z.html"
    page.write_text(make_page([make_row(1, "Garage", last_ok="0:0:0:5")]))

    result = runner.invoke(app, ["parse", str(page)])

    assert result.exit_code == 0, result.output
    assert "Garage" in result.stdout
    assert "OK for: 5" in result.stdout


def test_sensors_lists_devices(runner: CliRunner, stub_client: StubClient) -> None:
    result = runner.invoke(app, ["--base-url", "http://monitor:9000/", "sensors"])

    assert result.exit_code == 0, result.output
    assert "Hall: ALARMING Actively alarming" in result.stdout
    assert "Porch (missing): ok For 120" in result.stdout
    assert stub_client.config.base_url == "http://monitor:9000"
    assert stub_client.closed is True
