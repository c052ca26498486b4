"""
WeatherApiClient — weatherapi.com /current.json client.

One GET per lookup:

  GET {base_url}/current.json?key=<api key>&q=<query>&aqi=no

Status mapping:
  200        -> body parsed into RawWeatherReading
  400        -> LocationNotFound (weatherapi.com answers 400 / code 1006 for unknown places)
  other      -> UpstreamUnavailable
  transport  -> UpstreamUnavailable (includes timeouts)

Body mapping:
  not JSON / truncated      -> IncompleteResponsePayload
  JSON of the wrong shape   -> InvalidResponsePayload
"""

from __future__ import annotations

import json
import logging

import httpx
from pydantic import ValidationError

from havo.api.weather.errors import (
    IncompleteResponsePayload,
    InvalidResponsePayload,
    LocationNotFound,
    UpstreamUnavailable,
)
from havo.api.weather.models import RawWeatherReading

logger = logging.getLogger(__name__)

_DEFAULT_BASE_URL = "http://api.weatherapi.com/v1"

# HTTP timeout for weatherapi.com calls
_API_TIMEOUT_S = 8.0


def parse_reading(body: bytes | str) -> RawWeatherReading:
    """Decode a /current.json body into a RawWeatherReading."""
    try:
        data = json.loads(body)
    except ValueError as exc:
        raise IncompleteResponsePayload(f"unexpected end of JSON input: {exc}") from exc

    try:
        return RawWeatherReading.model_validate(data)
    except ValidationError as exc:
        raise InvalidResponsePayload(
            f"error occurred while decoding weatherapi payload: {exc.error_count()} invalid field(s)"
        ) from exc


class WeatherApiClient:
    """
    Async weatherapi.com client.

    Usage:
        provider = WeatherApiClient(api_key="...", client=httpx.AsyncClient(timeout=8.0))
        reading = await provider.fetch_current("new york")

    The shared httpx.AsyncClient is safe for concurrent use. Without one,
    each call opens and closes its own client.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = _DEFAULT_BASE_URL,
        timeout_s: float = _API_TIMEOUT_S,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._endpoint = f"{base_url.rstrip('/')}/current.json"
        self._timeout_s = timeout_s
        self._client = client

    async def fetch_current(self, query: str) -> RawWeatherReading:
        """Fetch the current weather for a free-text location query."""
        if not self._api_key:
            logger.warning("WEATHERAPI_API_KEY not set; cannot fetch weather for %r", query)
            raise UpstreamUnavailable("weather provider API key is not configured")

        params = {"key": self._api_key, "q": query, "aqi": "no"}
        try:
            if self._client is not None:
                resp = await self._client.get(self._endpoint, params=params, timeout=self._timeout_s)
            else:
                async with httpx.AsyncClient(timeout=self._timeout_s) as client:
                    resp = await client.get(self._endpoint, params=params)
        except httpx.HTTPError as exc:
            logger.warning("weatherapi request failed for q=%r: %s", query, exc)
            raise UpstreamUnavailable(f"failed to send GET request to weatherapi: {exc}") from exc

        if resp.status_code == 400:
            logger.debug("weatherapi has no match for q=%r: %s", query, resp.text[:200])
            raise LocationNotFound(query)

        if resp.status_code != 200:
            logger.warning(
                "weatherapi returned %d for q=%r: %s",
                resp.status_code,
                query,
                resp.text[:200],
            )
            raise UpstreamUnavailable(
                f"weatherapi response status code is not 200: {resp.status_code}",
                status_code=resp.status_code,
            )

        return parse_reading(resp.content)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
