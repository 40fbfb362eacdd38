"""Deterministic narrative summaries of an aggregated forecast.

A narrative is classified first, in priority order:

1. ``disagreement`` when the average confidence score is below 0.5;
2. ``transition`` when the first and last days differ between dry and wet;
3. ``agreement`` otherwise.

The classification picks the headline. The body, alerts and model notes are
independent lists of sentences, each added only when its trigger fires.
Nothing here is random or clock-dependent: relative day names are computed
against an explicit reference time.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from forecast_consensus import statistics
from forecast_consensus.config import Settings, settings as default_settings
from forecast_consensus.consensus import day_key
from forecast_consensus.domain import (
    AggregatedDailyForecast,
    AggregatedForecast,
    ConfidenceLevelName,
    ConfidenceResult,
    DailyForecast,
    ModelName,
    NarrativeSummary,
    NarrativeType,
)
from forecast_consensus.templates import (
    AGREEMENT_STRONG,
    CONFIDENCE_SENTENCES,
    DISAGREEMENT_ALERT,
    DRY_TO_WET,
    GENERAL_DISAGREEMENT_HEADLINE,
    NO_DATA_HEADLINE,
    PRECIPITATION_DISAGREEMENT_HEADLINE,
    TEMPERATURE_DISAGREEMENT_HEADLINE,
    UNCERTAIN_HEADLINE,
    UNCERTAINTY,
    WET_TO_DRY,
    WeatherCondition,
    condition_to_description,
    fill_template,
    format_model_list,
    format_model_name,
    format_precipitation,
    format_relative_day,
    format_temperature,
    is_dry_condition,
    is_precipitation,
    select_template,
    weather_code_to_condition,
)
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="narration")

NEUTRAL_CONFIDENCE = 0.5
TEMPERATURE_SPREAD_CALLOUT = 5.0  # degrees C across models
PRECIPITATION_SPREAD_CALLOUT = 10.0  # mm across models, headline
PRECIPITATION_DIVERGENCE_CALLOUT = 5.0  # mm across models, body
TRANSITION_PERIOD = "afternoon"


@dataclass(frozen=True)
class Transition:
    """First day whose dry/wet state differs from the opening day."""
    day: AggregatedDailyForecast
    condition: WeatherCondition
    period: str


@dataclass(frozen=True)
class ModelOutlier:
    """A model's daily value that sits far from the bucket mean."""
    model: ModelName
    metric: str
    value: float
    z_score: float


def _condition(day: AggregatedDailyForecast) -> WeatherCondition:
    return weather_code_to_condition(day.forecast.weather_code)


def _model_daily(aggregated: AggregatedForecast, model: ModelName, day: dt.date) -> Optional[DailyForecast]:
    """The raw daily reading a model produced for `day`, if any."""
    for forecast in aggregated.model_forecasts:
        if forecast.model != model:
            continue
        for reading in forecast.daily:
            if day_key(reading.date) == day_key(day):
                return reading
    return None


def average_confidence(confidence: Sequence[ConfidenceResult]) -> float:
    if not confidence:
        return NEUTRAL_CONFIDENCE
    return statistics.mean([c.score for c in confidence])


def average_confidence_level(confidence: Sequence[ConfidenceResult]) -> ConfidenceLevelName:
    """Label for the average score, using detailed-result thresholds."""
    score = average_confidence(confidence)
    if score >= 0.8:
        return ConfidenceLevelName.HIGH
    if score >= 0.5:
        return ConfidenceLevelName.MEDIUM
    return ConfidenceLevelName.LOW


def classify_narrative_type(
    aggregated: AggregatedForecast,
    confidence: Sequence[ConfidenceResult],
) -> NarrativeType:
    if average_confidence(confidence) < 0.5:
        return NarrativeType.DISAGREEMENT

    daily = aggregated.consensus.daily
    if len(daily) >= 2:
        if is_dry_condition(_condition(daily[0])) != is_dry_condition(_condition(daily[-1])):
            return NarrativeType.TRANSITION

    return NarrativeType.AGREEMENT


def dominant_condition(aggregated: AggregatedForecast) -> WeatherCondition:
    """Most frequent daily condition; ties go to the earliest one seen."""
    counts: Dict[WeatherCondition, int] = {}
    for day in aggregated.consensus.daily:
        condition = _condition(day)
        counts[condition] = counts.get(condition, 0) + 1

    dominant = WeatherCondition.UNKNOWN
    best = 0
    for condition, count in counts.items():
        if count > best:
            dominant, best = condition, count
    return dominant


def find_transition(aggregated: AggregatedForecast) -> Optional[Transition]:
    daily = aggregated.consensus.daily
    if len(daily) < 2:
        return None

    first_is_dry = is_dry_condition(_condition(daily[0]))
    for day in daily[1:]:
        condition = _condition(day)
        if is_dry_condition(condition) != first_is_dry:
            return Transition(day=day, condition=condition, period=TRANSITION_PERIOD)
    return None


def identify_outlier_models(
    aggregated: AggregatedForecast,
    threshold: float = 2.0,
) -> List[ModelOutlier]:
    """Daily outlier models whose max temperature or rain total is far off.

    Only models already flagged as bucket outliers are checked. The z-score
    is signed: positive means warmer or wetter than the mean.
    """
    found: List[ModelOutlier] = []
    for day in aggregated.consensus.daily:
        agreement = day.model_agreement
        for model in agreement.outlier_models:
            reading = _model_daily(aggregated, model, day.date)
            if reading is None:
                continue
            checks = (
                ("temperature", reading.temperature.max, agreement.temperature_stats),
                ("precipitation", reading.precipitation.total, agreement.precipitation_stats),
            )
            for metric, value, stats in checks:
                z = (value - stats.mean) / stats.std_dev if stats.std_dev > 0 else 0.0
                if abs(z) > threshold:
                    found.append(ModelOutlier(model=model, metric=metric, value=value, z_score=z))
    return found


# ---------------------------------------------------------------------------
# Headlines
# ---------------------------------------------------------------------------


def _agreement_headline(aggregated: AggregatedForecast, condition: WeatherCondition, reference: dt.date) -> str:
    daily = aggregated.consensus.daily
    end_day = format_relative_day(daily[-1].date, reference) if daily else "the forecast period"
    return fill_template(
        select_template(AGREEMENT_STRONG),
        {"condition": condition_to_description(condition), "endDay": end_day},
    )


def _disagreement_headline(aggregated: AggregatedForecast) -> str:
    daily = aggregated.consensus.daily
    if not daily:
        return UNCERTAIN_HEADLINE

    first = daily[0].range
    if first.temperature_max.max - first.temperature_max.min > TEMPERATURE_SPREAD_CALLOUT:
        return TEMPERATURE_DISAGREEMENT_HEADLINE
    if first.precipitation.max - first.precipitation.min > PRECIPITATION_SPREAD_CALLOUT:
        return PRECIPITATION_DISAGREEMENT_HEADLINE
    return GENERAL_DISAGREEMENT_HEADLINE


def _transition_headline(aggregated: AggregatedForecast, transition: Transition, reference: dt.date) -> str:
    first_is_dry = is_dry_condition(_condition(aggregated.consensus.daily[0]))
    description = condition_to_description(transition.condition)
    day_name = format_relative_day(transition.day.date, reference)

    if first_is_dry and is_precipitation(transition.condition):
        return fill_template(
            select_template(DRY_TO_WET),
            {"condition": description[:1].upper() + description[1:], "day": day_name, "period": transition.period},
        )
    return fill_template(select_template(WET_TO_DRY), {"condition": description, "day": day_name})


# ---------------------------------------------------------------------------
# Body, alerts, model notes
# ---------------------------------------------------------------------------


def _temperature_split_sentence(aggregated: AggregatedForecast) -> Optional[str]:
    """Name the warm and cool outlier models on the first day."""
    first = aggregated.consensus.daily[0]
    stats = first.model_agreement.temperature_stats
    if stats.range <= TEMPERATURE_SPREAD_CALLOUT:
        return None

    high: List[ModelName] = []
    low: List[ModelName] = []
    for model in first.model_agreement.outlier_models:
        reading = _model_daily(aggregated, model, first.date)
        if reading is not None and reading.temperature.max > stats.mean:
            high.append(model)
        else:
            low.append(model)
    if not high or not low:
        return None

    return (
        f"{format_model_list(high)} {'predicts' if len(high) == 1 else 'predict'} "
        f"{format_temperature(first.range.temperature_max.max)} while "
        f"{format_model_list(low)} {'shows' if len(low) == 1 else 'show'} only "
        f"{format_temperature(first.range.temperature_max.min)}."
    )


def _precipitation_divergence_sentence(aggregated: AggregatedForecast) -> Optional[str]:
    """Contrast the wettest models with the driest on the transition day."""
    transition = find_transition(aggregated)
    if transition is None or not is_precipitation(transition.condition):
        return None

    amounts = []
    for forecast in aggregated.model_forecasts:
        reading = _model_daily(aggregated, forecast.model, transition.day.date)
        if reading is not None:
            amounts.append((forecast.model, reading.precipitation.total))
    if len(amounts) < 2:
        return None

    ranked = sorted(amounts, key=lambda item: item[1], reverse=True)
    (high_model, high_amount), (second_model, _) = ranked[0], ranked[1]
    low_model, low_amount = ranked[-1]
    if high_amount - low_amount <= PRECIPITATION_DIVERGENCE_CALLOUT:
        return None

    return (
        f"{format_model_name(high_model)} and {format_model_name(second_model)} show heavier rain "
        f"({format_precipitation(high_amount)}) while {format_model_name(low_model)} predicts a "
        f"lighter system ({format_precipitation(low_amount)})."
    )


def generate_body(
    aggregated: AggregatedForecast,
    confidence: Sequence[ConfidenceResult],
    narrative_type: NarrativeType,
) -> str:
    sentences: List[str] = []

    if narrative_type == NarrativeType.DISAGREEMENT and aggregated.consensus.daily:
        sentence = _temperature_split_sentence(aggregated)
        if sentence:
            sentences.append(sentence)
    elif narrative_type == NarrativeType.TRANSITION:
        sentence = _precipitation_divergence_sentence(aggregated)
        if sentence:
            sentences.append(sentence)

    if confidence:
        period = "the dry period" if narrative_type == NarrativeType.TRANSITION else "this forecast period"
        sentences.append(fill_template(CONFIDENCE_SENTENCES[average_confidence_level(confidence)], {"period": period}))

    return " ".join(sentences)


def generate_alerts(
    aggregated: AggregatedForecast,
    confidence: Sequence[ConfidenceResult],
    reference: dt.date,
    settings: Settings | None = None,
) -> List[str]:
    settings = settings or default_settings
    alerts: List[str] = []

    daily = aggregated.consensus.daily
    if daily:
        days_ahead = (day_key(daily[-1].date) - reference).days
        if days_ahead >= settings.uncertainty_days_threshold:
            check_day = format_relative_day(reference + dt.timedelta(days=2), reference)
            alerts.append(
                fill_template(
                    select_template(UNCERTAINTY),
                    {"days": str(settings.uncertainty_days_threshold), "checkDay": check_day},
                )
            )

    if average_confidence(confidence) < 0.5:
        alerts.append(DISAGREEMENT_ALERT)
    return alerts


def generate_model_notes(aggregated: AggregatedForecast, settings: Settings | None = None) -> List[str]:
    """One temperature and one precipitation note at most per outlier model."""
    settings = settings or default_settings
    by_model: Dict[ModelName, List[ModelOutlier]] = {}
    for outlier in identify_outlier_models(aggregated, settings.outlier_callout_threshold):
        by_model.setdefault(outlier.model, []).append(outlier)

    notes: List[str] = []
    for model, outliers in by_model.items():
        name = format_model_name(model)
        temperature = next((o for o in outliers if o.metric == "temperature"), None)
        precipitation = next((o for o in outliers if o.metric == "precipitation"), None)
        if temperature is not None:
            direction = "warmer" if temperature.z_score > 0 else "cooler"
            notes.append(f"{name} is notably {direction} at {format_temperature(temperature.value)}.")
        if precipitation is not None:
            direction = "wetter" if precipitation.z_score > 0 else "drier"
            notes.append(f"{name} shows a {direction} scenario ({format_precipitation(precipitation.value)}).")
    return notes


def generate_narrative(
    aggregated: AggregatedForecast,
    confidence: Sequence[ConfidenceResult] = (),
    *,
    reference_time: dt.datetime | dt.date | None = None,
    settings: Settings | None = None,
) -> NarrativeSummary:
    """Compose the headline, body, alerts and model notes for a forecast.

    `reference_time` anchors "today"/"tomorrow"; it defaults to the
    aggregate's generation time.
    """
    settings = settings or default_settings
    if not aggregated.consensus.daily:
        return NarrativeSummary(headline=NO_DATA_HEADLINE)

    reference = day_key(reference_time or aggregated.generated_at)
    narrative_type = classify_narrative_type(aggregated, confidence)

    if narrative_type == NarrativeType.DISAGREEMENT:
        headline = _disagreement_headline(aggregated)
    elif narrative_type == NarrativeType.TRANSITION:
        transition = find_transition(aggregated)
        if transition is not None:
            headline = _transition_headline(aggregated, transition, reference)
        else:
            headline = _agreement_headline(aggregated, dominant_condition(aggregated), reference)
    else:
        headline = _agreement_headline(aggregated, dominant_condition(aggregated), reference)

    summary = NarrativeSummary(
        headline=headline,
        body=generate_body(aggregated, confidence, narrative_type),
        alerts=generate_alerts(aggregated, confidence, reference, settings),
        model_notes=generate_model_notes(aggregated, settings),
    )
    logger.debug("Generated narrative", extra={"type": narrative_type.value, "alerts": len(summary.alerts)})
    return summary
