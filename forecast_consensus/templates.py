"""Vocabulary and fixed sentence templates for forecast narratives.

Weather codes are folded into a small set of conditions, conditions into
plain-English descriptions, and values into display strings. Template
selection is deterministic: the first template of each group is always used.
"""

from __future__ import annotations

import datetime as dt
import re
from enum import Enum
from typing import Mapping, Sequence, TypeVar

from forecast_consensus.domain import MODEL_INFO, ConfidenceLevelName, ModelName
from forecast_consensus.statistics import round_half_away_from_zero

T = TypeVar("T")

_PLACEHOLDER = re.compile(r"\{(\w+)\}")


class WeatherCondition(str, Enum):
    """Coarse condition category derived from a WMO weather code."""
    SUNNY = "sunny"
    PARTLY_CLOUDY = "partly_cloudy"
    CLOUDY = "cloudy"
    OVERCAST = "overcast"
    FOG = "fog"
    DRIZZLE = "drizzle"
    RAIN = "rain"
    HEAVY_RAIN = "heavy_rain"
    THUNDERSTORM = "thunderstorm"
    SNOW = "snow"
    SLEET = "sleet"
    UNKNOWN = "unknown"


_DESCRIPTIONS = {
    WeatherCondition.SUNNY: "sunny",
    WeatherCondition.PARTLY_CLOUDY: "partly cloudy",
    WeatherCondition.CLOUDY: "cloudy",
    WeatherCondition.OVERCAST: "overcast",
    WeatherCondition.FOG: "foggy",
    WeatherCondition.DRIZZLE: "light rain",
    WeatherCondition.RAIN: "rain",
    WeatherCondition.HEAVY_RAIN: "heavy rain",
    WeatherCondition.THUNDERSTORM: "thunderstorms",
    WeatherCondition.SNOW: "snow",
    WeatherCondition.SLEET: "sleet",
    WeatherCondition.UNKNOWN: "mixed conditions",
}

PRECIPITATION_CONDITIONS = frozenset({
    WeatherCondition.DRIZZLE,
    WeatherCondition.RAIN,
    WeatherCondition.HEAVY_RAIN,
    WeatherCondition.THUNDERSTORM,
    WeatherCondition.SNOW,
    WeatherCondition.SLEET,
})

DRY_CONDITIONS = frozenset({
    WeatherCondition.SUNNY,
    WeatherCondition.PARTLY_CLOUDY,
    WeatherCondition.CLOUDY,
    WeatherCondition.OVERCAST,
    WeatherCondition.FOG,
})

_WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def weather_code_to_condition(code: int) -> WeatherCondition:
    code = int(code)
    if code == 0:
        return WeatherCondition.SUNNY
    if 1 <= code <= 2:
        return WeatherCondition.PARTLY_CLOUDY
    if code == 3:
        return WeatherCondition.CLOUDY
    if 45 <= code <= 48:
        return WeatherCondition.FOG
    if 51 <= code <= 57:
        return WeatherCondition.DRIZZLE
    if code in (65, 82):
        return WeatherCondition.HEAVY_RAIN
    if 61 <= code <= 64 or 80 <= code <= 81:
        return WeatherCondition.RAIN
    if 66 <= code <= 67:
        return WeatherCondition.SLEET  # freezing rain
    if 71 <= code <= 77 or 85 <= code <= 86:
        return WeatherCondition.SNOW
    if 95 <= code <= 99:
        return WeatherCondition.THUNDERSTORM
    return WeatherCondition.UNKNOWN


def condition_to_description(condition: WeatherCondition) -> str:
    return _DESCRIPTIONS[WeatherCondition(condition)]


def is_precipitation(condition: WeatherCondition) -> bool:
    return WeatherCondition(condition) in PRECIPITATION_CONDITIONS


def is_dry_condition(condition: WeatherCondition) -> bool:
    """Dry conditions; UNKNOWN is neither dry nor precipitation."""
    return WeatherCondition(condition) in DRY_CONDITIONS


def format_model_name(model: ModelName) -> str:
    return MODEL_INFO[ModelName(model)].display_name


def format_model_list(models: Sequence[ModelName]) -> str:
    """Join model names as "A", "A and B" or "A, B, and C"."""
    names = [format_model_name(m) for m in models]
    if not names:
        return ""
    if len(names) == 1:
        return names[0]
    if len(names) == 2:
        return f"{names[0]} and {names[1]}"
    return f"{', '.join(names[:-1])}, and {names[-1]}"


def format_temperature(celsius: float) -> str:
    return f"{int(round_half_away_from_zero(celsius))}°C"


def format_precipitation(mm: float) -> str:
    if mm < 1:
        return "trace amounts"
    return f"{int(round_half_away_from_zero(mm))}mm"


def _as_date(value: dt.date) -> dt.date:
    return value.date() if isinstance(value, dt.datetime) else value


def format_relative_day(day: dt.date, reference: dt.date) -> str:
    """Describe `day` relative to `reference`: "today", "tomorrow", "Friday"...

    Beyond six days out the full form "Friday, Mar 14" is used.
    """
    day = _as_date(day)
    diff = (day - _as_date(reference)).days
    if diff == 0:
        return "today"
    if diff == 1:
        return "tomorrow"
    weekday = _WEEKDAYS[day.weekday()]
    if 2 <= diff <= 6:
        return weekday
    return f"{weekday}, {_MONTHS[day.month - 1]} {day.day}"


def format_time_period(hour: int) -> str:
    if 5 <= hour < 12:
        return "morning"
    if 12 <= hour < 17:
        return "afternoon"
    if 17 <= hour < 21:
        return "evening"
    return "overnight"


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

AGREEMENT_STRONG = (
    "Models agree on {condition} conditions through {endDay}.",
    "All models are in agreement: {condition} through {endDay}.",
    "Strong model consensus shows {condition} conditions through {endDay}.",
)

DRY_TO_WET = (
    "{condition} arriving {day} {period}.",
    "Expect {condition} to move in {day} {period}.",
    "{condition} expected {day} {period}.",
)

WET_TO_DRY = (
    "{condition} clearing by {day}.",
    "Drier conditions returning {day}.",
    "Expect clearing skies by {day}.",
)

UNCERTAINTY = (
    "This uncertainty is common at {days}+ days out. Check back {checkDay} for a clearer picture.",
    "Extended range forecasts beyond {days} days carry increased uncertainty.",
    "Consider this a general trend - details may change as we get closer.",
)

CONFIDENCE_SENTENCES: Mapping[ConfidenceLevelName, str] = {
    ConfidenceLevelName.HIGH: "Confidence is HIGH for {period}.",
    ConfidenceLevelName.MEDIUM: "Confidence is MEDIUM for {period}.",
    ConfidenceLevelName.LOW: "Confidence is LOW for {period} - significant model disagreement.",
}

NO_DATA_HEADLINE = "No forecast data available."
UNCERTAIN_HEADLINE = "Models show significant uncertainty in the forecast."
TEMPERATURE_DISAGREEMENT_HEADLINE = "Models disagree significantly on temperatures this period."
PRECIPITATION_DISAGREEMENT_HEADLINE = "Precipitation amounts uncertain - models show different scenarios."
GENERAL_DISAGREEMENT_HEADLINE = "Model disagreement creates forecast uncertainty."
DISAGREEMENT_ALERT = "Significant model disagreement - consider multiple scenarios."


def select_template(templates: Sequence[T]) -> T:
    """Always the first template, so narratives are reproducible."""
    return templates[0]


def fill_template(template: str, values: Mapping[str, str]) -> str:
    """Replace each ``{name}`` with its value; unknown placeholders stay as-is."""
    return _PLACEHOLDER.sub(lambda match: values.get(match.group(1), match.group(0)), template)
