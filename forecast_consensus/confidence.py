"""Confidence scoring for aggregated buckets and whole forecasts.

Two flavours live here:

* bucket scores (:func:`score_hourly_bucket`, :func:`score_daily_bucket`,
  :func:`overall_confidence`) produce the ``ConfidenceLevel`` stored on every
  aggregated bucket; they use the 0.7 / 0.4 label thresholds;
* detailed results (:func:`calculate_confidence` and friends) produce an
  explainable ``ConfidenceResult`` with its weighted factors, used for
  narrative text and UI badges; they label with 0.8 / 0.5.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Sequence

from forecast_consensus import statistics
from forecast_consensus.domain import (
    AggregatedDailyForecast,
    AggregatedForecast,
    AggregatedHourlyForecast,
    ConfidenceFactor,
    ConfidenceLevel,
    ConfidenceLevelName,
    ConfidenceResult,
    MetricType,
    ModelConsensus,
)
from forecast_consensus.statistics import Comparison, confidence_from_range, confidence_from_std_dev
from forecast_consensus.units import clamp_probability, ms_to_kmh


@dataclass(frozen=True)
class SpreadThresholds:
    """Dispersion at which confidence is full (`high`) and floored (`low`)."""
    high: float
    low: float
    unit: str


METRIC_THRESHOLDS: Dict[MetricType, SpreadThresholds] = {
    MetricType.TEMPERATURE: SpreadThresholds(high=1.5, low=4.0, unit="C"),
    MetricType.PRECIPITATION: SpreadThresholds(high=2.0, low=10.0, unit="mm"),
    MetricType.WIND: SpreadThresholds(high=2.78, low=6.94, unit="m/s"),  # 10 and 25 km/h
    MetricType.HUMIDITY: SpreadThresholds(high=10.0, low=30.0, unit="%"),
    MetricType.OVERALL: SpreadThresholds(high=0.7, low=0.4, unit=""),
}

# Wind range thresholds for bucket scores, in km/h
WIND_RANGE_HIGH_KMH = 10.0
WIND_RANGE_LOW_KMH = 25.0

SPREAD_WEIGHT = 0.5
AGREEMENT_WEIGHT = 0.3
TIME_HORIZON_WEIGHT = 0.2
COVERAGE_WEIGHT = 0.2

TIME_DECAY_PER_DAY = 0.05
MAX_TIME_DECAY_DAYS = 10

# Humidity is not tracked per bucket; assume a moderate spread.
DEFAULT_HUMIDITY_STD_DEV = 5.0

NEUTRAL_SCORE = 0.5


# ---------------------------------------------------------------------------
# Factor scores
# ---------------------------------------------------------------------------


def agreement_factor(models_in_agreement: int, total_models: int) -> float:
    """Scale agreement from 0.3 (nobody agrees) to 1.0 (everyone agrees)."""
    if total_models == 0:
        return NEUTRAL_SCORE
    return 0.3 + (models_in_agreement / total_models) * 0.7


def time_horizon_factor(days_ahead: int) -> float:
    """Lose 5% per day ahead, never dropping below 0.5 from lead time alone."""
    effective = min(days_ahead, MAX_TIME_DECAY_DAYS)
    return max(0.5, 1.0 - effective * TIME_DECAY_PER_DAY)


def precipitation_decisiveness(precipitation: Sequence[float], threshold_mm: float = 0.1) -> float:
    """1.0 when models clearly agree on wet or dry, 0.5 when they split."""
    probability = statistics.ensemble_probability(precipitation, threshold_mm, Comparison.GT)
    return 1.0 if probability >= 80 or probability <= 20 else 0.5


def spread_factor(consensus: ModelConsensus, precipitation: Sequence[float], threshold_mm: float = 0.1) -> float:
    """Blend temperature, precipitation and wind dispersion into one score."""
    temp = METRIC_THRESHOLDS[MetricType.TEMPERATURE]
    precip = METRIC_THRESHOLDS[MetricType.PRECIPITATION]
    temp_conf = confidence_from_std_dev(consensus.temperature_stats.std_dev, temp.high, temp.low)
    precip_conf = precipitation_decisiveness(precipitation, threshold_mm) * confidence_from_std_dev(
        consensus.precipitation_stats.std_dev, precip.high, precip.low
    )
    wind_conf = confidence_from_range(ms_to_kmh(consensus.wind_stats.range), WIND_RANGE_HIGH_KMH, WIND_RANGE_LOW_KMH)
    return temp_conf * 0.4 + precip_conf * 0.3 + wind_conf * 0.3


# ---------------------------------------------------------------------------
# Bucket-level scores
# ---------------------------------------------------------------------------


def bucket_score(
    consensus: ModelConsensus,
    precipitation: Sequence[float],
    total_models: int,
    threshold_mm: float = 0.1,
) -> float:
    """Score one bucket from its spread, agreement and model coverage."""
    contributing = len(consensus.models_in_agreement) + len(consensus.outlier_models)
    if contributing == 0:
        agreement = NEUTRAL_SCORE
    else:
        agreement = 0.3 + consensus.agreement_score * 0.7
    coverage = contributing / total_models if total_models > 0 else 1.0

    score = (
        spread_factor(consensus, precipitation, threshold_mm) * SPREAD_WEIGHT
        + agreement * AGREEMENT_WEIGHT
        + min(coverage, 1.0) * COVERAGE_WEIGHT
    )
    return clamp_probability(score)


def score_hourly_bucket(
    consensus: ModelConsensus,
    precipitation: Sequence[float],
    total_models: int,
    threshold_mm: float = 0.1,
) -> ConfidenceLevel:
    return ConfidenceLevel.from_score(bucket_score(consensus, precipitation, total_models, threshold_mm))


def score_daily_bucket(
    consensus: ModelConsensus,
    precipitation_totals: Sequence[float],
    total_models: int,
    threshold_mm: float = 0.1,
) -> ConfidenceLevel:
    # Daily buckets judge the same signals, using max temperature and total rain.
    return ConfidenceLevel.from_score(bucket_score(consensus, precipitation_totals, total_models, threshold_mm))


def overall_confidence(
    hourly: Sequence[AggregatedHourlyForecast],
    daily: Sequence[AggregatedDailyForecast],
) -> ConfidenceLevel:
    """Mean of every bucket score; neutral medium when there are no buckets."""
    scores = [h.confidence.score for h in hourly] + [d.confidence.score for d in daily]
    if not scores:
        return ConfidenceLevel.from_score(NEUTRAL_SCORE)
    return ConfidenceLevel.from_score(clamp_probability(statistics.mean(scores)))


# ---------------------------------------------------------------------------
# Detailed, explainable results
# ---------------------------------------------------------------------------


def score_to_level(score: float) -> ConfidenceLevelName:
    """Label used for detailed results (stricter than bucket labels)."""
    if score >= 0.8:
        return ConfidenceLevelName.HIGH
    if score >= 0.5:
        return ConfidenceLevelName.MEDIUM
    return ConfidenceLevelName.LOW


def _explanation(models_in_agreement: int, total_models: int, level: ConfidenceLevelName, metric: MetricType) -> str:
    if models_in_agreement == total_models:
        agreement = f"All {total_models} models agree"
    else:
        agreement = f"{models_in_agreement} of {total_models} models agree"
    subject = "on the forecast" if metric == MetricType.OVERALL else f"on {metric.value} predictions"
    prefix = {
        ConfidenceLevelName.HIGH: "High confidence",
        ConfidenceLevelName.MEDIUM: "Moderate confidence",
        ConfidenceLevelName.LOW: "Low confidence",
    }[level]
    return f"{prefix}: {agreement} {subject}"


def _factor(name: str, weight: float, score: float, detail: str) -> ConfidenceFactor:
    return ConfidenceFactor(
        name=name,
        weight=weight,
        score=score,
        contribution=clamp_probability(score * weight),
        detail=detail,
    )


def _days_detail(days_ahead: int) -> str:
    return f"{days_ahead} day{'' if days_ahead == 1 else 's'} ahead"


def _result(factors: List[ConfidenceFactor], models_in_agreement: int, total_models: int, metric: MetricType) -> ConfidenceResult:
    score = clamp_probability(sum(f.contribution for f in factors))
    level = score_to_level(score)
    return ConfidenceResult(
        level=level,
        score=score,
        factors=factors,
        explanation=_explanation(models_in_agreement, total_models, level, metric),
    )


def calculate_confidence(
    aggregated: AggregatedForecast,
    metric: MetricType | str,
    days_ahead: int = 0,
) -> ConfidenceResult:
    """Explainable confidence for one metric of an aggregated forecast.

    Specific metrics are judged on the first hourly bucket; ``overall``
    averages the stored hourly bucket scores.
    """
    metric = MetricType(metric)
    total_models = len(aggregated.models)
    thresholds = METRIC_THRESHOLDS[metric]
    hourly = aggregated.consensus.hourly

    spread_score = 1.0
    spread_value = 0.0
    models_in_agreement = total_models

    if metric == MetricType.OVERALL:
        if hourly:
            avg = statistics.mean([h.confidence.score for h in hourly])
            spread_score = avg
            spread_value = 1.0 - avg
            models_in_agreement = int(statistics.round_half_away_from_zero(
                statistics.mean([len(h.model_agreement.models_in_agreement) for h in hourly])
            ))
    elif hourly:
        consensus = hourly[0].model_agreement
        spread_value = {
            MetricType.TEMPERATURE: consensus.temperature_stats.std_dev,
            MetricType.PRECIPITATION: consensus.precipitation_stats.std_dev,
            MetricType.WIND: consensus.wind_stats.std_dev,
            MetricType.HUMIDITY: DEFAULT_HUMIDITY_STD_DEV,
        }[metric]
        spread_score = confidence_from_std_dev(spread_value, thresholds.high, thresholds.low)
        models_in_agreement = len(consensus.models_in_agreement)

    factors = [
        _factor("spread", SPREAD_WEIGHT, spread_score, f"Spread: {spread_value:.1f}{thresholds.unit}"),
        _factor(
            "agreement",
            AGREEMENT_WEIGHT,
            agreement_factor(models_in_agreement, total_models),
            f"{models_in_agreement}/{total_models} models agree",
        ),
        _factor("timeHorizon", TIME_HORIZON_WEIGHT, time_horizon_factor(days_ahead), _days_detail(days_ahead)),
    ]
    return _result(factors, models_in_agreement, total_models, metric)


def _bucket_result(consensus: ModelConsensus, total_models: int, days_ahead: int) -> ConfidenceResult:
    temp = METRIC_THRESHOLDS[MetricType.TEMPERATURE]
    precip = METRIC_THRESHOLDS[MetricType.PRECIPITATION]
    wind = METRIC_THRESHOLDS[MetricType.WIND]
    temp_sd = consensus.temperature_stats.std_dev
    precip_sd = consensus.precipitation_stats.std_dev
    wind_sd = consensus.wind_stats.std_dev
    models_in_agreement = len(consensus.models_in_agreement)

    factors = [
        _factor(
            "temperatureSpread",
            SPREAD_WEIGHT * 0.5,
            confidence_from_std_dev(temp_sd, temp.high, temp.low),
            f"Temp spread: {temp_sd:.1f}C",
        ),
        _factor(
            "precipitationSpread",
            SPREAD_WEIGHT * 0.3,
            confidence_from_std_dev(precip_sd, precip.high, precip.low),
            f"Precip spread: {precip_sd:.1f}mm",
        ),
        _factor(
            "windSpread",
            SPREAD_WEIGHT * 0.2,
            confidence_from_std_dev(wind_sd, wind.high, wind.low),
            f"Wind spread: {wind_sd:.1f}m/s",
        ),
        _factor(
            "agreement",
            AGREEMENT_WEIGHT,
            agreement_factor(models_in_agreement, total_models),
            f"{models_in_agreement}/{total_models} models agree",
        ),
        _factor("timeHorizon", TIME_HORIZON_WEIGHT, time_horizon_factor(days_ahead), _days_detail(days_ahead)),
    ]
    return _result(factors, models_in_agreement, total_models, MetricType.OVERALL)


def hourly_confidence_result(
    hourly: AggregatedHourlyForecast,
    total_models: int,
    days_ahead: int = 0,
) -> ConfidenceResult:
    return _bucket_result(hourly.model_agreement, total_models, days_ahead)


def daily_confidence_result(
    daily: AggregatedDailyForecast,
    total_models: int,
    days_ahead: int = 0,
) -> ConfidenceResult:
    return _bucket_result(daily.model_agreement, total_models, days_ahead)


def daily_confidence_results(aggregated: AggregatedForecast) -> List[ConfidenceResult]:
    """One detailed result per daily bucket, with lead time equal to its index."""
    total_models = len(aggregated.models)
    return [
        daily_confidence_result(day, total_models, days_ahead=index)
        for index, day in enumerate(aggregated.consensus.daily)
    ]


def format_confidence_summary(result: ConfidenceResult) -> str:
    """Short badge text such as "High (85%)"."""
    percentage = int(statistics.round_half_away_from_zero(result.score * 100))
    return f"{result.level.value.capitalize()} ({percentage}%)"


def confidence_emoji(level: ConfidenceLevelName | str) -> str:
    return {
        ConfidenceLevelName.HIGH: "✅",
        ConfidenceLevelName.MEDIUM: "⚠️",
        ConfidenceLevelName.LOW: "❓",
    }[ConfidenceLevelName(level)]
