"""
Provider reading -> display record.

Each metric is mapped to a hex color through fixed bands (lower bound
inclusive, upper bound exclusive). Values outside every band, including NaN,
get FALLBACK_COLOR.
"""

from __future__ import annotations

import math

from havo.api.weather.models import FormattedWeatherRecord, RawWeatherReading

FALLBACK_COLOR = "#FFFFFF"

# (lower, upper, color); None means unbounded on that side
_TEMP_BANDS: tuple[tuple[float | None, float | None, str], ...] = (
    (None, -20, "#003366"),   # deep blue
    (-20, -10, "#4A90E2"),    # ice blue
    (-10, 0, "#B3DFFD"),      # light blue
    (0, 10, "#E6F7FF"),       # pale grayish blue
    (10, 20, "#D1F2D3"),      # light green
    (20, 30, "#FFFACD"),      # soft yellow
    (30, 40, "#FFCC80"),      # light orange
    (40, 50, "#FF7043"),      # deep orange
    (50, None, "#D32F2F"),    # bright red
)

_WIND_BANDS: tuple[tuple[float | None, float | None, str], ...] = (
    (0, 10, "#E0F7FA"),       # light cyan
    (10, 20, "#B2EBF2"),      # pale blue
    (20, 40, "#4DD0E1"),      # soft teal
    (40, 60, "#0288D1"),      # bright blue
    (60, None, "#01579B"),    # deep navy
)

# Last band is closed at 100.
_CLOUD_BANDS: tuple[tuple[float | None, float | None, str], ...] = (
    (0, 10, "#FFF9C4"),       # light yellow
    (10, 30, "#FFF176"),      # soft yellow
    (30, 60, "#E0E0E0"),      # light gray
    (60, 90, "#9E9E9E"),      # gray
    (90, 100, "#616161"),     # dark gray
)


def _band_color(
    value: float,
    bands: tuple[tuple[float | None, float | None, str], ...],
    closed_upper: bool = False,
) -> str:
    if math.isnan(value):
        return FALLBACK_COLOR
    last = len(bands) - 1
    for idx, (lower, upper, color) in enumerate(bands):
        if lower is not None and value < lower:
            continue
        if upper is None or value < upper:
            return color
        if closed_upper and idx == last and value == upper:
            return color
    return FALLBACK_COLOR


def temp_color(temp_c: float) -> str:
    return _band_color(temp_c, _TEMP_BANDS)


def wind_color(wind_kph: float) -> str:
    return _band_color(wind_kph, _WIND_BANDS)


def cloud_color(cloud: float) -> str:
    return _band_color(cloud, _CLOUD_BANDS, closed_upper=True)


def format_reading(reading: RawWeatherReading) -> FormattedWeatherRecord:
    """Copy location and current fields and attach the three band colors."""
    location = reading.location
    current = reading.current
    return FormattedWeatherRecord(
        name=location.name,
        country=location.country,
        lat=location.lat,
        lon=location.lon,
        temp_c=current.temp_c,
        temp_color=temp_color(current.temp_c),
        wind_kph=current.wind_kph,
        wind_color=wind_color(current.wind_kph),
        cloud=current.cloud,
        cloud_color=cloud_color(current.cloud),
    )
