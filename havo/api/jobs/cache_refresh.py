"""
Periodic weather cache refresh.

Every 30 minutes the whole weather cache is flushed and the roster of
countries is fetched again, so the common lookups stay warm.

Inside the API process the refresh runs as an asyncio background task
(CacheRefreshScheduler, started from the FastAPI lifespan). A tick that finds
the previous refresh still running is skipped rather than queued.

Entry point for a one-off run from cron / Cloud Run Job:
    python -m havo.api.jobs.cache_refresh
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from havo.api.weather.engine import WeatherEngine

logger = logging.getLogger(__name__)

_REFRESH_INTERVAL_S = 30 * 60


async def run_cache_refresh(engine: WeatherEngine) -> dict[str, Any]:
    """
    Run one refresh and summarise it.

    Returns:
        {
            "status": "success" | "error",
            "refreshed": int,
            "failed": int,
            "duration_ms": int,
        }
    """
    logger.info("cache_refresh: starting for %d locations", len(engine.roster))
    try:
        report = await engine.refresh_cache()
    except Exception:
        logger.error("cache_refresh: failed", exc_info=True)
        return {"status": "error", "refreshed": 0, "failed": 0, "duration_ms": 0}

    return {
        "status": "success",
        "refreshed": len(report.refreshed),
        "failed": len(report.failed),
        "duration_ms": report.duration_ms,
    }


class CacheRefreshScheduler:
    """
    Fires run_cache_refresh on a fixed interval.

    Usage:
        scheduler = CacheRefreshScheduler(engine, interval_s=1800)
        scheduler.start()
        ...
        await scheduler.stop()
    """

    def __init__(
        self,
        engine: WeatherEngine,
        interval_s: float = _REFRESH_INTERVAL_S,
        run_immediately: bool = False,
    ) -> None:
        self._engine = engine
        self._interval_s = interval_s
        self._run_immediately = run_immediately
        self._lock = asyncio.Lock()
        self._loop_task: asyncio.Task | None = None
        self._runs: set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    def start(self) -> None:
        if self.running:
            return
        self._loop_task = asyncio.create_task(self._loop(), name="weather-cache-refresh")
        logger.info("cache_refresh: scheduled every %.0fs", self._interval_s)

    async def stop(self) -> None:
        tasks = [t for t in (self._loop_task, *self._runs) if t is not None]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._loop_task = None
        self._runs.clear()

    async def trigger(self) -> dict[str, Any] | None:
        """Run one refresh now. Returns None when a refresh is already running."""
        if self._lock.locked():
            logger.warning("cache_refresh: previous run still in progress, skipping this tick")
            return None
        async with self._lock:
            return await run_cache_refresh(self._engine)

    async def _loop(self) -> None:
        if not self._run_immediately:
            await asyncio.sleep(self._interval_s)
        while True:
            # Runs are detached from the ticker; trigger() drops overlapping ticks.
            run = asyncio.create_task(self.trigger())
            self._runs.add(run)
            run.add_done_callback(self._runs.discard)
            await asyncio.sleep(self._interval_s)


# ---------------------------------------------------------------------------
# Standalone entry point
# ---------------------------------------------------------------------------

async def main() -> None:
    """Standalone entry point for running from cron or Cloud Run Job."""
    import redis.asyncio as aioredis

    from havo.api.config import settings
    from havo.api.weather.cache import WeatherCache
    from havo.api.weather.provider import WeatherApiClient

    logging.basicConfig(level=settings.log_level)

    redis_client = aioredis.from_url(settings.weather_cache_redis_url, decode_responses=True)
    provider = WeatherApiClient(
        api_key=settings.weatherapi_api_key,
        base_url=settings.weatherapi_base_url,
        timeout_s=settings.weather_api_timeout_s,
    )
    engine = WeatherEngine(
        cache=WeatherCache(
            redis_client,
            ttl_s=settings.weather_cache_ttl_s,
            timeout_s=settings.redis_timeout_s,
        ),
        provider=provider,
        refresh_delay_s=settings.cache_refresh_delay_s,
    )
    try:
        result = await run_cache_refresh(engine)
        print(f"cache_refresh complete: {result}")
    finally:
        await redis_client.aclose()


if __name__ == "__main__":
    asyncio.run(main())
