"""Error hierarchy for fetching and parsing the controller status page."""

from __future__ import annotations


class OHSError(Exception):
    """Base class for every failure raised by the polling core."""


class FetchError(OHSError):
    """The status page could not be retrieved."""


class TransientFetchError(FetchError):
    """A single request attempt failed at the network or HTTP level."""

    def __init__(self, endpoint: str, attempt: int, reason: str) -> None:
        super().__init__(f"Attempt {attempt + 1} against {endpoint} failed: {reason}")
        self.endpoint = endpoint
        self.attempt = attempt


class FetchExhaustedError(FetchError):
    """Every allowed attempt failed; the last transient error is chained."""

    def __init__(self, endpoint: str, attempts: int) -> None:
        super().__init__(f"Ran out of retries querying {endpoint} after {attempts} attempt(s).")
        self.endpoint = endpoint
        self.attempts = attempts


class InvalidEndpointError(FetchError):
    """The configured endpoint cannot be turned into a request URL."""

    def __init__(self, endpoint: str, reason: str) -> None:
        super().__init__(f"Invalid OHS endpoint {endpoint!r}: {reason}")
        self.endpoint = endpoint


class StructuralParseError(OHSError):
    """The document does not have the expected status table layout."""


class DurationFormatError(OHSError, ValueError):
    """An elapsed-time cell is not in ``days:hours:minutes:seconds`` form."""
