"""
Tests for WeatherCache and location normalization.

Coverage targets:
  - title-case key normalization
  - miss vs. store failure are distinct errors
  - JSON round trip and 30 minute TTL on writes
  - flush_all
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from havo.api.weather.cache import WeatherCache, normalize_location
from havo.api.weather.errors import NoCachedData, StoreFailure
from havo.api.weather.formatter import format_reading
from havo.api.weather.models import RawWeatherReading
from havo.api.tests.helpers.provider_stub import make_provider_payload


def _record(**overrides):
    return format_reading(RawWeatherReading.model_validate(make_provider_payload(**overrides)))


class TestNormalizeLocation:
    def test_lowercase(self):
        assert normalize_location("tashkent") == "Tashkent"

    def test_multiple_words(self):
        assert normalize_location("new york") == "New York"

    def test_uppercase_is_lowered(self):
        assert normalize_location("LONDON") == "London"

    def test_whitespace_trimmed(self):
        assert normalize_location("  paris ") == "Paris"

    def test_hyphenated(self):
        assert normalize_location("guinea-bissau") == "Guinea-Bissau"

    def test_apostrophe_inside_word(self):
        assert normalize_location("timor l'este") == "Timor L'este"

    def test_same_place_same_key(self):
        assert normalize_location("NEW york") == normalize_location("new York")

    def test_non_ascii(self):
        assert normalize_location("são paulo") == "São Paulo"


class TestWeatherCacheGetSet:
    @pytest.mark.asyncio
    async def test_miss_raises_no_cached_data(self, weather_cache):
        with pytest.raises(NoCachedData):
            await weather_cache.get("Tashkent")

    @pytest.mark.asyncio
    async def test_round_trip(self, weather_cache):
        record = _record()
        await weather_cache.set("Tashkent", record)
        assert await weather_cache.get("Tashkent") == record

    @pytest.mark.asyncio
    async def test_set_uses_30_minute_ttl(self, weather_cache, fake_redis):
        await weather_cache.set("Tashkent", _record())
        assert fake_redis.ttl_of("Tashkent") == 30 * 60

    @pytest.mark.asyncio
    async def test_entry_expires(self, weather_cache, fake_redis):
        await weather_cache.set("Tashkent", _record())
        fake_redis.advance(30 * 60)
        with pytest.raises(NoCachedData):
            await weather_cache.get("Tashkent")

    @pytest.mark.asyncio
    async def test_set_passes_ex_to_redis(self):
        redis = AsyncMock()
        cache = WeatherCache(redis=redis, ttl_s=120)
        await cache.set("Tokyo", _record(name="Tokyo"))

        redis.set.assert_called_once()
        args, kwargs = redis.set.call_args
        assert args[0] == "Tokyo"
        assert kwargs["ex"] == 120

    @pytest.mark.asyncio
    async def test_get_failure_is_store_failure(self, weather_cache, fake_redis):
        fake_redis.fail_get = ConnectionError("Redis down")
        with pytest.raises(StoreFailure):
            await weather_cache.get("Tashkent")

    @pytest.mark.asyncio
    async def test_set_failure_is_store_failure(self, weather_cache, fake_redis):
        fake_redis.fail_set = ConnectionError("Redis down")
        with pytest.raises(StoreFailure):
            await weather_cache.set("Tashkent", _record())

    @pytest.mark.asyncio
    async def test_undecodable_entry_is_store_failure(self, weather_cache, fake_redis):
        await fake_redis.set("Tashkent", '{"name": "Tashkent"')
        with pytest.raises(StoreFailure):
            await weather_cache.get("Tashkent")

    @pytest.mark.asyncio
    async def test_slow_redis_times_out(self):
        async def _slow_get(key):
            await asyncio.sleep(1)

        redis = AsyncMock()
        redis.get = _slow_get
        cache = WeatherCache(redis=redis, timeout_s=0.01)
        with pytest.raises(StoreFailure):
            await cache.get("Tashkent")


class TestWeatherCacheFlush:
    @pytest.mark.asyncio
    async def test_flush_drops_everything(self, weather_cache, fake_redis):
        await weather_cache.set("Tashkent", _record())
        await weather_cache.set("London", _record(name="London"))

        await weather_cache.flush_all()

        assert fake_redis.keys() == []

    @pytest.mark.asyncio
    async def test_flush_failure_is_store_failure(self, weather_cache, fake_redis):
        fake_redis.fail_flush = ConnectionError("Redis down")
        with pytest.raises(StoreFailure):
            await weather_cache.flush_all()
