"""Collapse a bucket's per-model readings into one representative reading.

Each metric has a fixed estimator picked for robustness against one model
drifting away from the rest:

- temperatures use a trimmed mean;
- bounded or additive quantities (humidity, pressure, cloud cover,
  visibility, precipitation amount) use the arithmetic mean;
- wind speed, gusts, UV and the weather code use the median;
- precipitation probability is the share of models with measurable rain.

Wind direction is the arithmetic mean of the raw bearings. That is wrong
near north (350 and 10 average to 180) and is kept as-is because consumers
compare against it.
"""

from __future__ import annotations

from typing import Sequence

from forecast_consensus import statistics
from forecast_consensus.config import Settings, settings as default_settings
from forecast_consensus.consensus import DailyEntry, HourlyEntry, day_key
from forecast_consensus.domain import (
    CloudCoverSummary,
    DailyForecast,
    DailyRange,
    HourlyRange,
    HumidityRange,
    MetricRange,
    PrecipitationSummary,
    PressureRange,
    TemperatureRange,
    WeatherMetrics,
    WindSummary,
)
from forecast_consensus.statistics import Comparison, round_half_away_from_zero
from forecast_consensus.units import (
    clamp_non_negative,
    clamp_percentage,
    clamp_probability,
    coerce_weather_code,
    normalize_direction,
)


def _rounded_percentage(values: Sequence[float]) -> float:
    return clamp_percentage(round_half_away_from_zero(statistics.mean(values)))


def _rounded_direction(values: Sequence[float]) -> float:
    return normalize_direction(round_half_away_from_zero(statistics.mean(values)))


def _wet_fraction(amounts: Sequence[float], settings: Settings) -> float:
    """Fraction of models reporting more than the measurable-rain threshold."""
    percent = statistics.ensemble_probability(amounts, settings.precipitation_threshold_mm, Comparison.GT)
    return clamp_probability(percent / 100.0)


def _metric_range(values: Sequence[float]) -> MetricRange:
    if not values:
        return MetricRange(min=0.0, max=0.0)
    return MetricRange(min=min(values), max=max(values))


def aggregate_hourly_metrics(
    entries: Sequence[HourlyEntry],
    settings: Settings | None = None,
) -> WeatherMetrics:
    """Representative metrics for one hourly bucket."""
    settings = settings or default_settings
    metrics = [e.reading.metrics for e in entries]
    trim = settings.trim_fraction

    gusts = [m.wind_gust for m in metrics if m.wind_gust is not None]
    precipitation = [m.precipitation for m in metrics]

    return WeatherMetrics(
        temperature=statistics.trimmed_mean([m.temperature for m in metrics], trim),
        feels_like=statistics.trimmed_mean([m.feels_like for m in metrics], trim),
        humidity=_rounded_percentage([m.humidity for m in metrics]),
        pressure=clamp_non_negative(statistics.mean([m.pressure for m in metrics])),
        wind_speed=clamp_non_negative(statistics.median([m.wind_speed for m in metrics])),
        wind_direction=_rounded_direction([m.wind_direction for m in metrics]),
        wind_gust=clamp_non_negative(statistics.median(gusts)) if gusts else None,
        precipitation=clamp_non_negative(statistics.mean(precipitation)),
        precipitation_probability=_wet_fraction(precipitation, settings),
        cloud_cover=_rounded_percentage([m.cloud_cover for m in metrics]),
        visibility=clamp_non_negative(statistics.mean([m.visibility for m in metrics])),
        uv_index=clamp_non_negative(round_half_away_from_zero(statistics.median([m.uv_index for m in metrics]))),
        weather_code=coerce_weather_code(statistics.median([m.weather_code for m in metrics])),
    )


def aggregate_daily_forecast(
    entries: Sequence[DailyEntry],
    settings: Settings | None = None,
) -> DailyForecast:
    """Representative daily summary for one calendar-day bucket.

    Sunrise and sunset do not vary between models, so they are taken from the
    first contributor. The consensus carries no hourly breakdown of its own.
    """
    settings = settings or default_settings
    days = [e.reading for e in entries]
    trim = settings.trim_fraction

    totals = [d.precipitation.total for d in days]
    hours = statistics.mean([d.precipitation.hours for d in days])

    return DailyForecast(
        date=day_key(days[0].date),
        temperature=TemperatureRange(
            min=statistics.trimmed_mean([d.temperature.min for d in days], trim),
            max=statistics.trimmed_mean([d.temperature.max for d in days], trim),
        ),
        humidity=HumidityRange(
            min=_rounded_percentage([d.humidity.min for d in days]),
            max=_rounded_percentage([d.humidity.max for d in days]),
        ),
        pressure=PressureRange(
            min=clamp_non_negative(statistics.mean([d.pressure.min for d in days])),
            max=clamp_non_negative(statistics.mean([d.pressure.max for d in days])),
        ),
        precipitation=PrecipitationSummary(
            total=clamp_non_negative(statistics.mean(totals)),
            probability=_wet_fraction(totals, settings),
            hours=int(round_half_away_from_zero(hours)),
        ),
        wind=WindSummary(
            avg_speed=clamp_non_negative(statistics.mean([d.wind.avg_speed for d in days])),
            max_speed=clamp_non_negative(statistics.median([d.wind.max_speed for d in days])),
            dominant_direction=_rounded_direction([d.wind.dominant_direction for d in days]),
        ),
        cloud_cover=CloudCoverSummary(
            avg=_rounded_percentage([d.cloud_cover.avg for d in days]),
            max=_rounded_percentage([d.cloud_cover.max for d in days]),
        ),
        uv_index_max=clamp_non_negative(round_half_away_from_zero(statistics.median([d.uv_index_max for d in days]))),
        sun=days[0].sun,
        weather_code=coerce_weather_code(statistics.median([d.weather_code for d in days])),
        hourly=[],
    )


def hourly_range(entries: Sequence[HourlyEntry]) -> HourlyRange:
    """Min/max of the key hourly metrics across contributing models."""
    metrics = [e.reading.metrics for e in entries]
    return HourlyRange(
        temperature=_metric_range([m.temperature for m in metrics]),
        precipitation=_metric_range([m.precipitation for m in metrics]),
        wind_speed=_metric_range([m.wind_speed for m in metrics]),
    )


def daily_range(entries: Sequence[DailyEntry]) -> DailyRange:
    """Min/max of the key daily metrics across contributing models."""
    days = [e.reading for e in entries]
    return DailyRange(
        temperature_max=_metric_range([d.temperature.max for d in days]),
        temperature_min=_metric_range([d.temperature.min for d in days]),
        precipitation=_metric_range([d.precipitation.total for d in days]),
    )
