"""Combine several model forecasts into one consensus forecast.

`aggregate` is the single entry point: it buckets every model's hourly and
daily readings, builds a consensus and a representative reading per bucket,
scores each bucket, and assembles the immutable ``AggregatedForecast``.
Buckets are independent of each other, so each one is built by a pure
function of its own entries and the result is sorted at the end.
"""

from __future__ import annotations

import datetime as dt
from typing import List, Sequence

from forecast_consensus import confidence, consensus, metric_aggregator
from forecast_consensus.config import Settings, settings as default_settings
from forecast_consensus.domain import (
    AggregatedDailyForecast,
    AggregatedForecast,
    AggregatedHourlyForecast,
    ForecastConsensus,
    ModelForecast,
    ModelName,
)
from forecast_consensus.exceptions import EmptyInputError
from forecast_consensus.weighting import calculate_model_weights
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="aggregation")


def _unique_by_model(forecasts: Sequence[ModelForecast]) -> List[ModelForecast]:
    """Keep the first forecast per model; later duplicates are dropped."""
    seen: set[ModelName] = set()
    unique: List[ModelForecast] = []
    for forecast in forecasts:
        if forecast.model in seen:
            logger.warning("Dropping duplicate forecast", extra={"model": forecast.model.value})
            continue
        seen.add(forecast.model)
        unique.append(forecast)
    return unique


def aggregate_hourly_bucket(
    entries: Sequence[consensus.HourlyEntry],
    total_models: int,
    settings: Settings | None = None,
) -> AggregatedHourlyForecast:
    """Build the aggregated record for one hourly bucket."""
    settings = settings or default_settings
    agreement = consensus.build_hourly_consensus(entries, settings.outlier_z_threshold)
    precipitation = [e.reading.metrics.precipitation for e in entries]
    return AggregatedHourlyForecast(
        timestamp=consensus.hour_key(entries[0].reading.timestamp),
        metrics=metric_aggregator.aggregate_hourly_metrics(entries, settings),
        confidence=confidence.score_hourly_bucket(
            agreement, precipitation, total_models, settings.precipitation_threshold_mm
        ),
        model_agreement=agreement,
        range=metric_aggregator.hourly_range(entries),
        model_count=len(entries),
    )


def aggregate_daily_bucket(
    entries: Sequence[consensus.DailyEntry],
    total_models: int,
    settings: Settings | None = None,
) -> AggregatedDailyForecast:
    """Build the aggregated record for one calendar-day bucket."""
    settings = settings or default_settings
    agreement = consensus.build_daily_consensus(entries, settings.outlier_z_threshold)
    totals = [e.reading.precipitation.total for e in entries]
    forecast = metric_aggregator.aggregate_daily_forecast(entries, settings)
    return AggregatedDailyForecast(
        date=forecast.date,
        forecast=forecast,
        confidence=confidence.score_daily_bucket(
            agreement, totals, total_models, settings.precipitation_threshold_mm
        ),
        model_agreement=agreement,
        range=metric_aggregator.daily_range(entries),
        model_count=len(entries),
    )


def aggregate(
    forecasts: Sequence[ModelForecast],
    *,
    generated_at: dt.datetime | None = None,
    settings: Settings | None = None,
) -> AggregatedForecast:
    """Reduce per-model forecasts to a single consensus forecast.

    Parameters
    ----------
    forecasts:
        Successfully fetched model forecasts for one location. Fewer models
        than requested is fine; an empty list is not.
    generated_at:
        Timestamp stamped on the result. Defaults to the newest model
        generation time so the output depends only on the inputs.
    settings:
        Engine settings; the module-level settings are used when omitted.

    Raises
    ------
    EmptyInputError
        If `forecasts` is empty.
    """
    settings = settings or default_settings
    if not forecasts:
        raise EmptyInputError("Cannot aggregate zero model forecasts")

    forecasts = _unique_by_model(forecasts)
    models = [f.model for f in forecasts]
    total_models = len(models)

    hourly_groups = consensus.group_hourly(forecasts)
    daily_groups = consensus.group_daily(forecasts)

    hourly = sorted(
        (aggregate_hourly_bucket(entries, total_models, settings) for entries in hourly_groups.values()),
        key=lambda bucket: bucket.timestamp,
    )
    daily = sorted(
        (aggregate_daily_bucket(entries, total_models, settings) for entries in daily_groups.values()),
        key=lambda bucket: bucket.date,
    )

    for bucket in hourly:
        if bucket.model_count < total_models:
            logger.debug(
                "Partial model coverage for hour",
                extra={"timestamp": bucket.timestamp.isoformat(), "models": bucket.model_count},
            )

    if hourly:
        valid_from, valid_to = hourly[0].timestamp, hourly[-1].timestamp
    elif daily:
        valid_from, valid_to = consensus.day_start(daily[0].date), consensus.day_start(daily[-1].date)
    else:
        valid_from, valid_to = forecasts[0].valid_from, forecasts[0].valid_to

    overall = confidence.overall_confidence(hourly, daily)
    result = AggregatedForecast(
        coordinates=forecasts[0].coordinates,
        generated_at=generated_at or max(consensus.hour_key(f.generated_at) for f in forecasts),
        valid_from=valid_from,
        valid_to=valid_to,
        models=models,
        model_forecasts=list(forecasts),
        consensus=ForecastConsensus(hourly=hourly, daily=daily),
        model_weights=calculate_model_weights(models),
        overall_confidence=overall,
    )

    logger.info(
        "Aggregated model forecasts",
        extra={
            "models": [m.value for m in models],
            "hourly_buckets": len(hourly),
            "daily_buckets": len(daily),
            "confidence": overall.level.value,
        },
    )
    return result
