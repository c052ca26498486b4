"""
Weather domain errors.

Only LocationNotFound and AuthorizationDenied are meant for the client; the
HTTP layer reduces every other WeatherServiceError to a generic 500 after
logging the detail.
"""

from __future__ import annotations


class WeatherServiceError(Exception):
    """Base class for every error raised by the weather engine and its adapters."""


class NoCachedData(WeatherServiceError):
    """The cache holds no entry for the requested location."""

    def __init__(self, key: str) -> None:
        super().__init__(f"no data in cache for location {key!r}")
        self.key = key


class LocationNotFound(WeatherServiceError):
    """The provider could not resolve the location query (HTTP 400)."""

    def __init__(self, query: str) -> None:
        super().__init__("no matching location found")
        self.query = query


class InvalidResponsePayload(WeatherServiceError):
    """The provider answered 200 with a body that does not match the expected shape."""


class IncompleteResponsePayload(InvalidResponsePayload):
    """The provider body is not syntactically complete JSON (truncated or garbled)."""


class UpstreamUnavailable(WeatherServiceError):
    """Transport failure, timeout or non-200 status from the provider."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class StoreFailure(WeatherServiceError):
    """Cache or account store I/O error."""


class AuthorizationDenied(WeatherServiceError):
    """The API key is unknown or has been disabled."""
