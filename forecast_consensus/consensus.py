"""Bucketing of per-model readings and per-bucket agreement analysis.

Hourly readings share a bucket only when their timestamps denote the same UTC
instant; daily readings share a bucket when they describe the same calendar
date. Readings a few minutes apart are never merged: aligning model output
onto a common hourly grid is the fetch layer's job.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from forecast_consensus import statistics
from forecast_consensus.config import Settings, settings as default_settings
from forecast_consensus.domain import (
    DailyForecast,
    HourlyForecast,
    ModelConsensus,
    ModelForecast,
    ModelName,
    OutlierInfo,
)
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="consensus")


@dataclass(frozen=True)
class HourlyEntry:
    """One model's contribution to an hourly bucket."""
    model: ModelName
    reading: HourlyForecast


@dataclass(frozen=True)
class DailyEntry:
    """One model's contribution to a daily bucket."""
    model: ModelName
    reading: DailyForecast


def hour_key(timestamp: dt.datetime) -> dt.datetime:
    """Normalize a timestamp to an aware UTC instant (naive values are UTC)."""
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=dt.timezone.utc)
    return timestamp.astimezone(dt.timezone.utc)


def day_key(day: dt.date) -> dt.date:
    """Calendar-date key; datetimes are reduced to their date."""
    if isinstance(day, dt.datetime):
        return day.date()
    return day


def day_start(day: dt.date) -> dt.datetime:
    """Midnight UTC at the start of `day`."""
    return dt.datetime.combine(day_key(day), dt.time(0, 0), tzinfo=dt.timezone.utc)


def group_hourly(forecasts: Sequence[ModelForecast]) -> Dict[dt.datetime, List[HourlyEntry]]:
    """Group hourly readings by instant, keeping input model order per bucket.

    A model contributes at most one reading per bucket; a repeated timestamp
    keeps the model's first reading.
    """
    groups: Dict[dt.datetime, List[HourlyEntry]] = {}
    for forecast in forecasts:
        seen: set[dt.datetime] = set()
        for reading in forecast.hourly:
            key = hour_key(reading.timestamp)
            if key in seen:
                logger.warning(
                    "Dropping repeated hourly reading",
                    extra={"model": forecast.model.value, "timestamp": key.isoformat()},
                )
                continue
            seen.add(key)
            groups.setdefault(key, []).append(HourlyEntry(model=forecast.model, reading=reading))
    return groups


def group_daily(forecasts: Sequence[ModelForecast]) -> Dict[dt.date, List[DailyEntry]]:
    """Group daily readings by calendar date, keeping input model order per bucket.

    A repeated date keeps the model's first reading.
    """
    groups: Dict[dt.date, List[DailyEntry]] = {}
    for forecast in forecasts:
        seen: set[dt.date] = set()
        for reading in forecast.daily:
            key = day_key(reading.date)
            if key in seen:
                logger.warning(
                    "Dropping repeated daily reading",
                    extra={"model": forecast.model.value, "date": key.isoformat()},
                )
                continue
            seen.add(key)
            groups.setdefault(key, []).append(DailyEntry(model=forecast.model, reading=reading))
    return groups


def _analyze_bucket(
    models: Sequence[ModelName],
    metrics: Sequence[Tuple[str, List[float]]],
    timestamp: dt.datetime | None,
    threshold: float,
) -> Tuple[ModelConsensus, List[OutlierInfo]]:
    """Shared agreement analysis for one bucket.

    `metrics` holds (name, per-model values) pairs in a fixed order: the
    temperature, precipitation and wind vectors. A model flagged on any of
    them is an outlier for the whole bucket.
    """
    flagged: set[int] = set()
    outliers: List[OutlierInfo] = []
    stats = []
    for name, values in metrics:
        stats.append(statistics.calculate_spread(values))
        for idx in statistics.find_outlier_indices(values, threshold):
            flagged.add(idx)
            outliers.append(
                OutlierInfo(
                    model=models[idx],
                    metric=name,
                    value=values[idx],
                    z_score=statistics.z_score(values[idx], values),
                    timestamp=timestamp,
                )
            )

    # a model repeated in one bucket is judged on all of its entries
    outlier_models: List[ModelName] = []
    for i, m in enumerate(models):
        if i in flagged and m not in outlier_models:
            outlier_models.append(m)
    in_agreement: List[ModelName] = []
    for m in models:
        if m not in outlier_models and m not in in_agreement:
            in_agreement.append(m)
    contributing = len(in_agreement) + len(outlier_models)
    agreement = len(in_agreement) / contributing if contributing else 0.0

    temperature_stats, precipitation_stats, wind_stats = stats
    consensus = ModelConsensus(
        agreement_score=agreement,
        models_in_agreement=in_agreement,
        outlier_models=outlier_models,
        temperature_stats=temperature_stats,
        precipitation_stats=precipitation_stats,
        wind_stats=wind_stats,
    )
    return consensus, outliers


def analyze_hourly_bucket(
    entries: Sequence[HourlyEntry],
    threshold: float | None = None,
) -> Tuple[ModelConsensus, List[OutlierInfo]]:
    """Consensus plus per-metric outlier reports for one hourly bucket."""
    threshold = default_settings.outlier_z_threshold if threshold is None else threshold
    timestamp = hour_key(entries[0].reading.timestamp) if entries else None
    return _analyze_bucket(
        [e.model for e in entries],
        [
            ("temperature", [e.reading.metrics.temperature for e in entries]),
            ("precipitation", [e.reading.metrics.precipitation for e in entries]),
            ("wind_speed", [e.reading.metrics.wind_speed for e in entries]),
        ],
        timestamp,
        threshold,
    )


def analyze_daily_bucket(
    entries: Sequence[DailyEntry],
    threshold: float | None = None,
) -> Tuple[ModelConsensus, List[OutlierInfo]]:
    """Consensus plus per-metric outlier reports for one daily bucket.

    Daily temperature agreement is judged on the maximum, wind on the peak
    speed.
    """
    threshold = default_settings.outlier_z_threshold if threshold is None else threshold
    timestamp = day_start(entries[0].reading.date) if entries else None
    return _analyze_bucket(
        [e.model for e in entries],
        [
            ("temperature", [e.reading.temperature.max for e in entries]),
            ("precipitation", [e.reading.precipitation.total for e in entries]),
            ("wind_speed", [e.reading.wind.max_speed for e in entries]),
        ],
        timestamp,
        threshold,
    )


def build_hourly_consensus(entries: Sequence[HourlyEntry], threshold: float | None = None) -> ModelConsensus:
    return analyze_hourly_bucket(entries, threshold)[0]


def build_daily_consensus(entries: Sequence[DailyEntry], threshold: float | None = None) -> ModelConsensus:
    return analyze_daily_bucket(entries, threshold)[0]


def identify_outliers(
    forecasts: Sequence[ModelForecast],
    settings: Settings | None = None,
) -> List[OutlierInfo]:
    """Every per-metric outlier reading across all hourly then daily buckets.

    Fewer than three models cannot produce a meaningful outlier, so such
    inputs, and buckets with fewer than three contributors, report nothing.
    """
    settings = settings or default_settings
    if len(forecasts) <= 2:
        return []

    found: List[OutlierInfo] = []
    for entries in group_hourly(forecasts).values():
        if len(entries) <= 2:
            continue
        found.extend(analyze_hourly_bucket(entries, settings.outlier_z_threshold)[1])
    for entries in group_daily(forecasts).values():
        if len(entries) <= 2:
            continue
        found.extend(analyze_daily_bucket(entries, settings.outlier_z_threshold)[1])

    logger.debug("Outlier scan complete", extra={"outliers": len(found)})
    return found
