"""
Weather cache — Redis-backed, keyed by normalized location name.

Cache key format:  the title-cased query, e.g. "new york" -> "New York"
TTL:               1800 seconds (30 minutes)

The formatted record is stored as compact JSON. Entries expire inside Redis;
the only explicit delete is the refresh job's full FLUSHDB, so this cache
expects a Redis database of its own.

Unlike a best-effort cache, a miss and a Redis failure are reported
differently: a miss raises NoCachedData (the engine falls through to the
provider), any other failure raises StoreFailure (the engine gives up).
"""

from __future__ import annotations

import asyncio
import logging
import re

from pydantic import ValidationError

from havo.api.weather.errors import NoCachedData, StoreFailure
from havo.api.weather.models import FormattedWeatherRecord

logger = logging.getLogger(__name__)

_TTL_SECONDS = 30 * 60
_DEFAULT_TIMEOUT_S = 2.0

# A word is a run of letters, apostrophes allowed inside ("L'este").
_WORD_RE = re.compile(r"[^\W\d_]+(?:'[^\W\d_]+)*")


def normalize_location(query: str) -> str:
    """Title-case a location query for use as a cache key.

    'new york'       -> 'New York'
    'TASHKENT'       -> 'Tashkent'
    'guinea-bissau'  -> 'Guinea-Bissau'
    """
    return _WORD_RE.sub(lambda m: m.group(0)[:1].upper() + m.group(0)[1:].lower(), query.strip())


class WeatherCache:
    """
    Redis-backed store of FormattedWeatherRecord.

    Usage:
        cache = WeatherCache(redis_client)
        try:
            record = await cache.get("Tashkent")
        except NoCachedData:
            record = await fetch_from_provider(...)
            await cache.set("Tashkent", record)
    """

    def __init__(
        self,
        redis,
        ttl_s: int = _TTL_SECONDS,
        timeout_s: float = _DEFAULT_TIMEOUT_S,
    ) -> None:
        """
        Args:
            redis:     An async Redis client (redis.asyncio compatible) with
                       decode_responses=True.
            ttl_s:     Expiry applied to every write.
            timeout_s: Upper bound on each Redis round trip.
        """
        self._redis = redis
        self._ttl_s = ttl_s
        self._timeout_s = timeout_s

    @property
    def ttl_s(self) -> int:
        return self._ttl_s

    async def get(self, key: str) -> FormattedWeatherRecord:
        """Return the cached record for key.

        Raises NoCachedData on a miss and StoreFailure on any Redis or
        decoding problem.
        """
        try:
            raw = await asyncio.wait_for(self._redis.get(key), self._timeout_s)
        except Exception as exc:
            raise StoreFailure(f"failed to get data from Redis for key={key!r}: {exc}") from exc

        if raw is None:
            logger.debug("Weather cache miss: %s", key)
            raise NoCachedData(key)

        try:
            record = FormattedWeatherRecord.model_validate_json(raw)
        except ValidationError as exc:
            raise StoreFailure(f"failed to decode cached record for key={key!r}") from exc

        logger.debug("Weather cache hit: %s", key)
        return record

    async def set(self, key: str, record: FormattedWeatherRecord) -> None:
        """Write record under key with the configured TTL. Raises StoreFailure."""
        payload = record.model_dump_json()
        try:
            await asyncio.wait_for(
                self._redis.set(key, payload, ex=self._ttl_s),
                self._timeout_s,
            )
        except Exception as exc:
            raise StoreFailure(f"failed to set data in Redis for key={key!r}: {exc}") from exc
        logger.debug("Weather cached: key=%s ttl=%ds", key, self._ttl_s)

    async def flush_all(self) -> None:
        """Drop every entry in the cache database."""
        try:
            await asyncio.wait_for(self._redis.flushdb(), self._timeout_s)
        except Exception as exc:
            raise StoreFailure(f"failed to flush Redis database: {exc}") from exc
        logger.info("Weather cache flushed")
