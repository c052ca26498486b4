"""
WeatherEngine — cache-aside weather retrieval.

Single lookup:
  1. Title-case the query -> cache key
  2. Cache hit: return the stored record, no provider call
  3. Miss (NoCachedData): fetch from the provider with the raw query,
     format, write back with a 30 minute TTL, return
  4. Any other cache failure (StoreFailure) propagates; the provider is not
     consulted

Concurrent misses for the same key share one provider call: the first caller
starts the fetch, later callers await the same task and get its record or its
exception.

A failed cache write does not fail the lookup. The engine counts consecutive
write failures and escalates to ERROR once the configured threshold is hit.

Bulk lookup runs the single lookup over each query in order. LocationNotFound
is collected as "'<query>' not found"; anything else aborts the batch.

Refresh flushes the whole cache and re-fetches every roster location, pausing
between calls to stay under the provider's rate limit.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Iterable, Sequence

from havo.api.weather.cache import WeatherCache, normalize_location
from havo.api.weather.errors import LocationNotFound, NoCachedData, StoreFailure
from havo.api.weather.formatter import format_reading
from havo.api.weather.models import BulkResult, FormattedWeatherRecord, RefreshReport
from havo.api.weather.provider import WeatherApiClient
from havo.api.weather.roster import COUNTRY_ROSTER

logger = logging.getLogger(__name__)

_REFRESH_DELAY_S = 0.5
_WRITE_FAILURE_ALERT_THRESHOLD = 3


def not_found_message(query: str) -> str:
    return f"'{query}' not found"


class WeatherEngine:
    """
    Usage:
        engine = WeatherEngine(cache=WeatherCache(redis), provider=WeatherApiClient(api_key))
        record = await engine.fetch_weather("tashkent")
        bulk = await engine.fetch_bulk_weather(["new york", "london"])
        report = await engine.refresh_cache()
    """

    def __init__(
        self,
        cache: WeatherCache,
        provider: WeatherApiClient,
        roster: Sequence[str] = COUNTRY_ROSTER,
        refresh_delay_s: float = _REFRESH_DELAY_S,
        write_failure_alert_threshold: int = _WRITE_FAILURE_ALERT_THRESHOLD,
    ) -> None:
        self._cache = cache
        self._provider = provider
        self._roster = tuple(roster)
        self._refresh_delay_s = refresh_delay_s
        self._write_failure_alert_threshold = write_failure_alert_threshold
        self._cache_write_failures = 0
        # cache key -> provider fetch in progress
        self._inflight: dict[str, asyncio.Task] = {}

    @property
    def roster(self) -> tuple[str, ...]:
        return self._roster

    @property
    def cache_write_failures(self) -> int:
        """Consecutive cache write failures since the last successful write."""
        return self._cache_write_failures

    # ------------------------------------------------------------------
    # Single location
    # ------------------------------------------------------------------

    async def fetch_weather(self, query: str) -> FormattedWeatherRecord:
        """Return the current weather for one location, cache first."""
        key = normalize_location(query)

        try:
            return await self._cache.get(key)
        except NoCachedData:
            pass

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._fetch_and_store(key, query))
            self._inflight[key] = task
            task.add_done_callback(lambda done: self._forget(key, done))
        else:
            logger.debug("Joining in-flight weather fetch for key=%s", key)

        # a cancelled waiter leaves the shared fetch running
        return await asyncio.shield(task)

    async def aclose(self) -> None:
        """Cancel provider fetches still in flight and wait for them to unwind."""
        tasks = list(self._inflight.values())
        if not tasks:
            return
        logger.info("Cancelling %d in-flight weather fetch(es)", len(tasks))
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._inflight.clear()

    def _forget(self, key: str, task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]

    async def _fetch_and_store(self, key: str, query: str) -> FormattedWeatherRecord:
        reading = await self._provider.fetch_current(query)
        record = format_reading(reading)
        await self._store(key, record)
        return record

    async def _store(self, key: str, record: FormattedWeatherRecord) -> None:
        try:
            await self._cache.set(key, record)
        except StoreFailure:
            self._cache_write_failures += 1
            if self._cache_write_failures >= self._write_failure_alert_threshold:
                logger.error(
                    "Weather cache writes failing: %d consecutive failures (latest key=%s); "
                    "every lookup now goes to the provider",
                    self._cache_write_failures,
                    key,
                    exc_info=True,
                )
            else:
                logger.warning("Error caching weather data for key=%s", key, exc_info=True)
            return

        if self._cache_write_failures:
            logger.info(
                "Weather cache writes recovered after %d failure(s)",
                self._cache_write_failures,
            )
            self._cache_write_failures = 0

    # ------------------------------------------------------------------
    # Bulk
    # ------------------------------------------------------------------

    async def fetch_bulk_weather(self, queries: Iterable[str]) -> BulkResult:
        """
        Look up every query in order.

        Queries the provider cannot resolve end up in not_found; any other
        error propagates and no partial result is returned.
        """
        found: list[FormattedWeatherRecord] = []
        not_found: list[str] = []

        for query in queries:
            try:
                record = await self.fetch_weather(query)
            except LocationNotFound:
                not_found.append(not_found_message(query))
                continue
            found.append(record)

        return BulkResult(found=found, not_found=not_found or None)

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    async def refresh_cache(self) -> RefreshReport:
        """
        Flush the cache and re-fetch every roster location.

        A flush failure propagates. Per-location failures are logged and
        skipped.
        """
        start_ts = time.monotonic()
        await self._cache.flush_all()

        report = RefreshReport()
        last = len(self._roster) - 1
        for idx, location in enumerate(self._roster):
            try:
                await self.fetch_weather(location)
            except Exception as exc:
                logger.warning("Error fetching data for %s: %s", location, exc)
                report.failed.append(location)
            else:
                report.refreshed.append(location)

            if idx < last and self._refresh_delay_s > 0:
                await asyncio.sleep(self._refresh_delay_s)

        report.duration_ms = int((time.monotonic() - start_ts) * 1000)
        logger.info(
            "Weather cache refresh complete: refreshed=%d failed=%d duration_ms=%d",
            len(report.refreshed),
            len(report.failed),
            report.duration_ms,
        )
        return report
