"""
Weather package.

weatherapi.com integration with cache-aside Redis caching keyed by the
title-cased location name, color banding of the readings, bulk lookups and
a whole-cache refresh over a fixed roster.
"""

from havo.api.weather.cache import WeatherCache
from havo.api.weather.engine import WeatherEngine
from havo.api.weather.provider import WeatherApiClient

__all__ = ["WeatherCache", "WeatherEngine", "WeatherApiClient"]
