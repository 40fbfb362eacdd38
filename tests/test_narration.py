import datetime as dt

from forecast_consensus import narration
from forecast_consensus.aggregation import aggregate
from forecast_consensus.domain import (
    ConfidenceLevelName,
    ConfidenceResult,
    ModelName,
    NarrativeType,
)
from forecast_consensus.templates import WeatherCondition
from forecast_factories import ALL_MODELS, BASE_TIME, day, forecast, simple_forecast


def conf(score):
    level = ConfidenceLevelName.HIGH if score >= 0.8 else ConfidenceLevelName.MEDIUM if score >= 0.5 else ConfidenceLevelName.LOW
    return ConfidenceResult(level=level, score=score, explanation="")


def _three_models(codes):
    return aggregate([simple_forecast(m, days=len(codes), weather_codes=codes) for m in ALL_MODELS[:3]])


def test_no_daily_data_gives_placeholder():
    aggregated = aggregate([forecast(ModelName.ECMWF)])
    summary = narration.generate_narrative(aggregated, [conf(0.9)])
    assert summary.headline == "No forecast data available."
    assert summary.body == ""
    assert summary.alerts == []
    assert summary.model_notes == []


def test_low_confidence_is_disagreement_even_with_transition():
    aggregated = _three_models([0, 61])
    assert narration.classify_narrative_type(aggregated, [conf(0.3)]) == NarrativeType.DISAGREEMENT


def test_empty_confidence_is_neutral():
    aggregated = _three_models([0, 0])
    assert narration.average_confidence([]) == 0.5
    assert narration.classify_narrative_type(aggregated, []) == NarrativeType.AGREEMENT


def test_dry_to_wet_is_transition():
    aggregated = _three_models([0, 0, 61])
    assert narration.classify_narrative_type(aggregated, [conf(0.9)]) == NarrativeType.TRANSITION
    transition = narration.find_transition(aggregated)
    assert transition.condition == WeatherCondition.RAIN
    assert transition.day.date == BASE_TIME.date() + dt.timedelta(days=2)


def test_single_day_is_never_transition():
    aggregated = _three_models([61])
    assert narration.classify_narrative_type(aggregated, []) == NarrativeType.AGREEMENT


def test_dominant_condition_ties_go_to_earliest():
    aggregated = _three_models([3, 0, 0, 3])
    assert narration.dominant_condition(aggregated) == WeatherCondition.CLOUDY


def test_agreement_narrative():
    aggregated = _three_models([0, 0])
    summary = narration.generate_narrative(aggregated, [conf(0.9)])
    assert summary.headline == "Models agree on sunny conditions through tomorrow."
    assert summary.body == "Confidence is HIGH for this forecast period."
    assert summary.alerts == []
    assert summary.model_notes == []


def test_agreement_without_confidence_has_empty_body():
    summary = narration.generate_narrative(_three_models([2, 2]))
    assert summary.headline == "Models agree on partly cloudy conditions through tomorrow."
    assert summary.body == ""


def test_dry_to_wet_narrative_with_divergent_totals():
    totals = {ModelName.ECMWF: 12.0, ModelName.GFS: 10.0, ModelName.ICON: 2.0}
    forecasts = [
        forecast(m, daily=[day(0), day(1), day(2, weather_code=61, precip=totals[m])])
        for m in totals
    ]
    summary = narration.generate_narrative(aggregate(forecasts), [conf(0.6)])
    assert summary.headline == "Rain arriving Wednesday afternoon."
    assert summary.body == (
        "ECMWF and GFS show heavier rain (12mm) while ICON predicts a lighter system (2mm). "
        "Confidence is MEDIUM for the dry period."
    )


def test_wet_to_dry_narrative():
    summary = narration.generate_narrative(_three_models([63, 0]))
    assert summary.headline == "sunny clearing by tomorrow."


def test_temperature_disagreement_names_models():
    forecasts = []
    for m in ALL_MODELS:
        temp_max = 30.0 if m == ModelName.ECMWF else 20.0
        wind_max = 30.0 if m == ModelName.GFS else 5.0
        forecasts.append(forecast(m, daily=[day(0, temp_max=temp_max, wind_max=wind_max)]))
    summary = narration.generate_narrative(aggregate(forecasts), [conf(0.3)])
    assert summary.headline == "Models disagree significantly on temperatures this period."
    assert summary.body == (
        "ECMWF predicts 30°C while GFS shows only 20°C. "
        "Confidence is LOW for this forecast period - significant model disagreement."
    )
    assert summary.alerts == ["Significant model disagreement - consider multiple scenarios."]
    assert summary.model_notes == ["ECMWF is notably warmer at 30°C."]


def test_precipitation_disagreement_and_wetter_note():
    forecasts = [
        forecast(m, daily=[day(0, precip=15.0 if m == ModelName.GEM else 0.0)])
        for m in ALL_MODELS
    ]
    summary = narration.generate_narrative(aggregate(forecasts), [conf(0.2)])
    assert summary.headline == "Precipitation amounts uncertain - models show different scenarios."
    assert summary.model_notes == ["GEM shows a wetter scenario (15mm)."]


def test_general_disagreement_headline():
    summary = narration.generate_narrative(_three_models([0]), [conf(0.1)])
    assert summary.headline == "Model disagreement creates forecast uncertainty."


def test_cooler_note():
    forecasts = [
        forecast(m, daily=[day(0, temp_max=10.0 if m == ModelName.JMA else 20.0)])
        for m in ALL_MODELS
    ]
    summary = narration.generate_narrative(aggregate(forecasts))
    assert summary.model_notes == ["JMA is notably cooler at 10°C."]


def test_extended_range_alert():
    aggregated = _three_models([0] * 6)
    summary = narration.generate_narrative(aggregated)
    assert summary.alerts == [
        "This uncertainty is common at 5+ days out. Check back Wednesday for a clearer picture."
    ]


def test_reference_time_shifts_relative_days():
    aggregated = _three_models([0, 0])
    earlier = BASE_TIME - dt.timedelta(days=1)
    summary = narration.generate_narrative(aggregated, reference_time=earlier)
    assert summary.headline == "Models agree on sunny conditions through Tuesday."
