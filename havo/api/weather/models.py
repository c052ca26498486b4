"""
Weather data shapes.

RawWeatherReading mirrors the subset of the weatherapi.com /current.json
response we consume:

  {
    "location": {"name": "Tashkent", "country": "Uzbekistan", "lat": 41.32, "lon": 69.25, ...},
    "current":  {"temp_c": 18.0, "wind_kph": 11.2, "cloud": 25, ...},
  }

FormattedWeatherRecord is what we cache and serve; records are immutable.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict


class ProviderLocation(BaseModel):
    name: str
    country: str
    lat: float
    lon: float


class ProviderCurrent(BaseModel):
    temp_c: float
    wind_kph: float
    cloud: int


class RawWeatherReading(BaseModel):
    location: ProviderLocation
    current: ProviderCurrent


class FormattedWeatherRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    country: str
    lat: float
    lon: float
    temp_c: float
    temp_color: str
    wind_kph: float
    wind_color: str
    cloud: int
    cloud_color: str


@dataclass
class BulkResult:
    """Outcome of a bulk lookup.

    not_found stays None when every query resolved; callers treat None and
    an empty list the same way.
    """

    found: list[FormattedWeatherRecord] = field(default_factory=list)
    not_found: list[str] | None = None


@dataclass
class RefreshReport:
    refreshed: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    duration_ms: int = 0
