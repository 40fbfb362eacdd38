"""Physical-unit types and WMO weather codes.

Every scalar that enters the engine is one of the annotated types below, so
pydantic checks its range when a model is built. Out-of-range readings are
rejected at construction; aggregation clamps its own results with the
``clamp_*`` helpers before it builds anything.
"""

from __future__ import annotations

import math
from enum import IntEnum
from typing import Annotated

from pydantic import AfterValidator, Field


def normalize_direction(degrees: float) -> float:
    """Wrap a bearing into [0, 360)."""
    value = float(degrees) % 360.0
    # -1e-20 % 360 rounds to 360.0 in floating point
    return 0.0 if value >= 360.0 else value


Celsius = Annotated[float, Field(allow_inf_nan=False)]
Millimeters = Annotated[float, Field(ge=0.0, allow_inf_nan=False)]
MetersPerSecond = Annotated[float, Field(ge=0.0, allow_inf_nan=False)]
Percentage = Annotated[float, Field(ge=0.0, le=100.0)]
Hectopascals = Annotated[float, Field(ge=0.0, allow_inf_nan=False)]
UVIndex = Annotated[float, Field(ge=0.0, allow_inf_nan=False)]
Meters = Annotated[float, Field(ge=0.0, allow_inf_nan=False)]
Probability = Annotated[float, Field(ge=0.0, le=1.0)]
WindDirection = Annotated[float, Field(allow_inf_nan=False), AfterValidator(normalize_direction)]


def clamp(value: float, lower: float, upper: float | None = None) -> float:
    """Clamp to [lower, upper]; no upper bound when `upper` is None."""
    value = max(lower, value)
    if upper is not None:
        value = min(upper, value)
    return value


def clamp_percentage(value: float) -> float:
    return clamp(value, 0.0, 100.0)


def clamp_non_negative(value: float) -> float:
    return clamp(value, 0.0)


def clamp_probability(value: float) -> float:
    return clamp(value, 0.0, 1.0)


class WeatherCode(IntEnum):
    """WMO weather interpretation codes as reported by the forecast models."""
    CLEAR_SKY = 0
    MAINLY_CLEAR = 1
    PARTLY_CLOUDY = 2
    OVERCAST = 3
    FOG = 45
    DEPOSITING_RIME_FOG = 48
    LIGHT_DRIZZLE = 51
    MODERATE_DRIZZLE = 53
    DENSE_DRIZZLE = 55
    LIGHT_FREEZING_DRIZZLE = 56
    DENSE_FREEZING_DRIZZLE = 57
    SLIGHT_RAIN = 61
    MODERATE_RAIN = 63
    HEAVY_RAIN = 65
    LIGHT_FREEZING_RAIN = 66
    HEAVY_FREEZING_RAIN = 67
    SLIGHT_SNOW = 71
    MODERATE_SNOW = 73
    HEAVY_SNOW = 75
    SNOW_GRAINS = 77
    SLIGHT_RAIN_SHOWERS = 80
    MODERATE_RAIN_SHOWERS = 81
    VIOLENT_RAIN_SHOWERS = 82
    SLIGHT_SNOW_SHOWERS = 85
    HEAVY_SNOW_SHOWERS = 86
    THUNDERSTORM = 95
    THUNDERSTORM_SLIGHT_HAIL = 96
    THUNDERSTORM_HEAVY_HAIL = 99


_KNOWN_CODES = {code.value for code in WeatherCode}


def coerce_weather_code(value: float) -> WeatherCode:
    """Round to the nearest integer code; unknown codes fall back to clear sky."""
    rounded = int(math.floor(value + 0.5))
    if rounded in _KNOWN_CODES:
        return WeatherCode(rounded)
    return WeatherCode.CLEAR_SKY


def ms_to_kmh(speed: float) -> float:
    return speed * 3.6
