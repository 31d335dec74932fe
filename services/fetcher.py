"""Authenticated retrieval of the controller status page."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

import httpx

from services.errors import FetchExhaustedError, InvalidEndpointError, TransientFetchError

logger = logging.getLogger(__name__)

STATUS_PATH = "/z"


@dataclass(frozen=True)
class RetryPolicy:
    """Linear backoff: the n-th retry waits ``n * backoff_unit_ms``."""

    max_retries: int = 3
    backoff_unit_ms: int = 2000

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after ``attempt`` (zero based) failed."""
        return (attempt + 1) * self.backoff_unit_ms / 1000

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1


class StatusPageFetcher:
    """Fetch ``{endpoint}/z`` with HTTP Basic auth, retrying transient failures."""

    def __init__(
        self,
        endpoint: str,
        username: str,
        password: str,
        policy: Optional[RetryPolicy] = None,
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.endpoint = endpoint.rstrip("/")
        try:
            httpx.URL(self.url)
        except httpx.InvalidURL as exc:
            raise InvalidEndpointError(endpoint, str(exc)) from exc
        self.policy = policy or RetryPolicy()
        self._sleep = sleep
        self._client = client or httpx.Client(timeout=timeout)
        self._auth = httpx.BasicAuth(username, password)
        logger.debug("Connecting to %s", self.endpoint, extra={"endpoint": self.endpoint})

    @property
    def url(self) -> str:
        return f"{self.endpoint}{STATUS_PATH}"

    def close(self) -> None:
        self._client.close()

    def fetch(self) -> str:
        """Return the raw page body, or raise :class:`FetchExhaustedError`."""
        retries_left = self.policy.max_retries
        attempt = 0
        while True:
            try:
                return self._fetch_once(attempt)
            except TransientFetchError as exc:
                if retries_left <= 0:
                    logger.warning(
                        "Ran out of retries while querying OHS: %s",
                        exc,
                        extra={"endpoint": self.endpoint, "attempts": attempt + 1},
                    )
                    raise FetchExhaustedError(self.endpoint, attempt + 1) from exc

                delay = self.policy.delay_for(attempt)
                logger.info(
                    "Status request failed, backing off: %s",
                    exc,
                    extra={"endpoint": self.endpoint, "attempt": attempt + 1, "delay_s": delay},
                )
                self._sleep(delay)
                retries_left -= 1
                attempt += 1

    def _fetch_once(self, attempt: int) -> str:
        try:
            response = self._client.get(
                self.url,
                auth=self._auth,
                headers={"Connection": "close"},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise TransientFetchError(
                self.endpoint, attempt, f"HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise TransientFetchError(self.endpoint, attempt, repr(exc)) from exc
        return response.text
