from __future__ import annotations

import base64
from typing import Callable, List

import httpx
import pytest

from services.errors import FetchExhaustedError, InvalidEndpointError, TransientFetchError
from services.fetcher import RetryPolicy, StatusPageFetcher


def _build_fetcher(
    handler: Callable[[httpx.Request], httpx.Response],
    policy: RetryPolicy | None = None,
) -> tuple[StatusPageFetcher, List[float]]:
    sleeps: List[float] = []
    client = httpx.Client(transport=httpx.MockTransport(handler))
    fetcher = StatusPageFetcher(
        endpoint="http://ohs.local/",
        username="admin",
        password="secret",
        policy=policy,
        client=client,
        sleep=sleeps.append,
    )
    return fetcher, sleeps


def _scripted(outcomes: list) -> Callable[[httpx.Request], httpx.Response]:
    """Handler that replays ``outcomes``: a string is a 200 body, an int a status code."""
    calls = iter(outcomes)

    def handler(request: httpx.Request) -> httpx.Response:
        outcome = next(calls)
        if outcome is None:
            raise httpx.ConnectError("connection refused", request=request)
        if isinstance(outcome, int):
            return httpx.Response(outcome, text="error")
        return httpx.Response(200, text=outcome)

    return handler


def test_retry_policy_delays_grow_linearly() -> None:
    policy = RetryPolicy()

    assert [policy.delay_for(attempt) for attempt in range(3)] == [2.0, 4.0, 6.0]
    assert policy.max_attempts == 4


def test_fetch_sends_basic_auth_and_close_header() -> None:
    seen: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, text="<html>ok</html>")

    fetcher, sleeps = _build_fetcher(handler)

    assert fetcher.fetch() == "<html>ok</html>"
    assert sleeps == []
    request = seen[0]
    assert request.method == "GET"
    assert str(request.url) == "http://ohs.local/z"
    expected = "Basic " + base64.b64encode(b"admin:secret").decode("ascii")
    assert request.headers["Authorization"] == expected
    assert request.headers["Connection"] == "close"


def test_two_failures_then_success_returns_body() -> None:
    fetcher, sleeps = _build_fetcher(_scripted([None, None, "page"]))

    assert fetcher.fetch() == "page"
    assert sleeps == [2.0, 4.0]


def test_exhausting_retries_raises_with_attempt_count() -> None:
    fetcher, sleeps = _build_fetcher(_scripted([None] * 4))

    with pytest.raises(FetchExhaustedError) as excinfo:
        fetcher.fetch()

    assert excinfo.value.attempts == 4
    assert excinfo.value.endpoint == "http://ohs.local"
    assert isinstance(excinfo.value.__cause__, TransientFetchError)
    assert sleeps == [2.0, 4.0, 6.0]


def test_third_failure_exhausts_two_retries() -> None:
    fetcher, sleeps = _build_fetcher(
        _scripted([None, None, None, "unreachable"]),
        policy=RetryPolicy(max_retries=2, backoff_unit_ms=10),
    )

    with pytest.raises(FetchExhaustedError) as excinfo:
        fetcher.fetch()

    assert excinfo.value.attempts == 3
    assert sleeps == [0.01, 0.02]


def test_http_error_status_is_retried() -> None:
    fetcher, sleeps = _build_fetcher(_scripted([503, "page"]))

    assert fetcher.fetch() == "page"
    assert sleeps == [2.0]


def test_zero_retries_fails_immediately() -> None:
    fetcher, sleeps = _build_fetcher(_scripted([401]), policy=RetryPolicy(max_retries=0))

    with pytest.raises(FetchExhaustedError) as excinfo:
        fetcher.fetch()

    assert excinfo.value.attempts == 1
    assert "HTTP 401" in str(excinfo.value.__cause__)
    assert sleeps == []


def test_exhaustion_is_logged_with_endpoint(caplog) -> None:
    fetcher, _ = _build_fetcher(_scripted([None]), policy=RetryPolicy(max_retries=0))

    with caplog.at_level("WARNING", logger="services.fetcher"):
        with pytest.raises(FetchExhaustedError):
            fetcher.fetch()

    records = [record for record in caplog.records if record.name == "services.fetcher"]
    assert any("Ran out of retries" in record.getMessage() for record in records)
    assert any(getattr(record, "endpoint", None) == "http://ohs.local" for record in records)


def test_malformed_endpoint_is_rejected_up_front() -> None:
    with pytest.raises(InvalidEndpointError) as excinfo:
        StatusPageFetcher(endpoint="http://ohs.local:notaport", username="admin", password="secret")

    assert excinfo.value.endpoint == "http://ohs.local:notaport"
    assert "notaport" in str(excinfo.value)
