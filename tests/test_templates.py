import datetime as dt

import pytest

from forecast_consensus import templates
from forecast_consensus.domain import ModelName
from forecast_consensus.templates import WeatherCondition


@pytest.mark.parametrize(
    "code, condition",
    [
        (0, WeatherCondition.SUNNY),
        (2, WeatherCondition.PARTLY_CLOUDY),
        (3, WeatherCondition.CLOUDY),
        (48, WeatherCondition.FOG),
        (53, WeatherCondition.DRIZZLE),
        (61, WeatherCondition.RAIN),
        (65, WeatherCondition.HEAVY_RAIN),
        (66, WeatherCondition.SLEET),
        (75, WeatherCondition.SNOW),
        (81, WeatherCondition.RAIN),
        (82, WeatherCondition.HEAVY_RAIN),
        (86, WeatherCondition.SNOW),
        (96, WeatherCondition.THUNDERSTORM),
        (42, WeatherCondition.UNKNOWN),
    ],
)
def test_weather_code_to_condition(code, condition):
    assert templates.weather_code_to_condition(code) == condition


def test_descriptions():
    assert templates.condition_to_description(WeatherCondition.FOG) == "foggy"
    assert templates.condition_to_description(WeatherCondition.DRIZZLE) == "light rain"
    assert templates.condition_to_description(WeatherCondition.UNKNOWN) == "mixed conditions"


def test_dry_and_wet_classes():
    assert templates.is_dry_condition(WeatherCondition.FOG)
    assert not templates.is_dry_condition(WeatherCondition.RAIN)
    assert templates.is_precipitation(WeatherCondition.SNOW)
    assert not templates.is_precipitation(WeatherCondition.UNKNOWN)
    assert not templates.is_dry_condition(WeatherCondition.UNKNOWN)


def test_model_names_and_lists():
    assert templates.format_model_name(ModelName.METEOFRANCE) == "ARPEGE"
    assert templates.format_model_list([]) == ""
    assert templates.format_model_list([ModelName.GFS]) == "GFS"
    assert templates.format_model_list([ModelName.GFS, ModelName.UKMO]) == "GFS and UK Met Office"
    assert templates.format_model_list([ModelName.ECMWF, ModelName.GFS, ModelName.ICON]) == "ECMWF, GFS, and ICON"


def test_value_formatting():
    assert templates.format_temperature(21.5) == "22°C"
    assert templates.format_temperature(-3.5) == "-4°C"
    assert templates.format_precipitation(0.6) == "trace amounts"
    assert templates.format_precipitation(12.4) == "12mm"


def test_relative_days():
    monday = dt.date(2025, 6, 2)
    assert templates.format_relative_day(monday, monday) == "today"
    assert templates.format_relative_day(monday + dt.timedelta(days=1), monday) == "tomorrow"
    assert templates.format_relative_day(monday + dt.timedelta(days=2), monday) == "Wednesday"
    assert templates.format_relative_day(monday + dt.timedelta(days=7), monday) == "Monday, Jun 9"
    noon = dt.datetime(2025, 6, 2, 12, 0, tzinfo=dt.timezone.utc)
    assert templates.format_relative_day(monday + dt.timedelta(days=1), noon) == "tomorrow"


@pytest.mark.parametrize(
    "hour_of_day, period",
    [(5, "morning"), (11, "morning"), (12, "afternoon"), (17, "evening"), (21, "overnight"), (2, "overnight")],
)
def test_time_periods(hour_of_day, period):
    assert templates.format_time_period(hour_of_day) == period


def test_fill_template_leaves_unknown_placeholders():
    filled = templates.fill_template("{condition} arriving {day} {period}.", {"condition": "Rain", "day": "Friday"})
    assert filled == "Rain arriving Friday {period}."


def test_fill_template_replaces_every_occurrence():
    assert templates.fill_template("{x} and {x}", {"x": "y"}) == "y and y"


def test_select_template_is_deterministic():
    assert templates.select_template(templates.WET_TO_DRY) == "{condition} clearing by {day}."
    assert templates.select_template(templates.AGREEMENT_STRONG) == templates.AGREEMENT_STRONG[0]


def test_fill_template_does_not_expand_substituted_values():
    filled = templates.fill_template("{condition} arriving {day}", {"condition": "{day}", "day": "Friday"})
    assert filled == "{day} arriving Friday"
