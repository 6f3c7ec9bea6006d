from __future__ import annotations


class StatsClientError(RuntimeError):
    """Base exception for stats API failures."""


class HttpError(StatsClientError):
    """Non-2xx response from the stats API."""

    def __init__(self, status: int, status_text: str = "", message: str | None = None) -> None:
        self.status = status
        self.status_text = status_text
        super().__init__(message or f"HTTP {status}: {status_text}".rstrip(": "))


class RateLimitError(HttpError):
    """The stats API throttled the request (HTTP 429)."""

    def __init__(self, status_text: str = "Too Many Requests") -> None:
        super().__init__(429, status_text, "Too many requests, please try again later")


class ApiError(StatsClientError):
    """Well-formed envelope with `success: false`."""

    def __init__(self, message: str = "API error") -> None:
        self.message = message
        super().__init__(message)


class MalformedResponseError(StatsClientError):
    """Response body matches none of the recognized envelope shapes."""


class NetworkError(StatsClientError):
    """Request could not complete (offline, DNS, transport timeout)."""
