"""Domain vocabulary and strict schemas for multi-model forecast consensus.

These models are the contract between the upstream fetch layer, the
aggregation engine, and whatever renders the result. Records are frozen once
built; the engine never mutates an input forecast or a produced aggregate.
No statistics or interpretation logic lives here.
"""

from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field, model_validator

from forecast_consensus.units import (
    Celsius,
    Hectopascals,
    Meters,
    MetersPerSecond,
    Millimeters,
    Percentage,
    Probability,
    UVIndex,
    WeatherCode,
    WindDirection,
)


class _StrictBaseModel(BaseModel):
    """Base model with strict extra handling and immutable instances."""

    model_config = ConfigDict(extra="forbid", frozen=True, protected_namespaces=())


class ModelName(str, Enum):
    """Numerical weather-prediction models the engine knows how to combine."""
    ECMWF = "ecmwf"
    GFS = "gfs"
    ICON = "icon"
    METEOFRANCE = "meteofrance"
    UKMO = "ukmo"
    JMA = "jma"
    GEM = "gem"


class ModelInfo(_StrictBaseModel):
    """Display metadata for a forecast model."""
    name: ModelName
    display_name: str
    provider: str
    resolution: str
    update_frequency: str


MODEL_INFO: Dict[ModelName, ModelInfo] = {
    ModelName.ECMWF: ModelInfo(
        name=ModelName.ECMWF,
        display_name="ECMWF",
        provider="European Centre for Medium-Range Weather Forecasts",
        resolution="9km",
        update_frequency="6 hours",
    ),
    ModelName.GFS: ModelInfo(
        name=ModelName.GFS,
        display_name="GFS",
        provider="NOAA",
        resolution="25km",
        update_frequency="6 hours",
    ),
    ModelName.ICON: ModelInfo(
        name=ModelName.ICON,
        display_name="ICON",
        provider="Deutscher Wetterdienst",
        resolution="13km",
        update_frequency="6 hours",
    ),
    ModelName.METEOFRANCE: ModelInfo(
        name=ModelName.METEOFRANCE,
        display_name="ARPEGE",
        provider="Meteo-France",
        resolution="10km",
        update_frequency="6 hours",
    ),
    ModelName.UKMO: ModelInfo(
        name=ModelName.UKMO,
        display_name="UK Met Office",
        provider="UK Met Office",
        resolution="10km",
        update_frequency="6 hours",
    ),
    ModelName.JMA: ModelInfo(
        name=ModelName.JMA,
        display_name="JMA",
        provider="Japan Meteorological Agency",
        resolution="20km",
        update_frequency="6 hours",
    ),
    ModelName.GEM: ModelInfo(
        name=ModelName.GEM,
        display_name="GEM",
        provider="Environment and Climate Change Canada",
        resolution="15km",
        update_frequency="12 hours",
    ),
}


class Coordinates(_StrictBaseModel):
    """Location the forecasts were produced for."""
    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)
    name: str | None = None


# ---------------------------------------------------------------------------
# Raw per-model readings
# ---------------------------------------------------------------------------


class WeatherMetrics(_StrictBaseModel):
    """Physical-quantity vector at one instant."""
    temperature: Celsius
    feels_like: Celsius
    humidity: Percentage
    pressure: Hectopascals
    wind_speed: MetersPerSecond
    wind_direction: WindDirection
    wind_gust: MetersPerSecond | None = None
    precipitation: Millimeters
    precipitation_probability: Probability | None = None
    cloud_cover: Percentage
    visibility: Meters
    uv_index: UVIndex
    weather_code: WeatherCode


class HourlyForecast(_StrictBaseModel):
    """One model's reading for one hour."""
    timestamp: dt.datetime
    metrics: WeatherMetrics


class TemperatureRange(_StrictBaseModel):
    min: Celsius
    max: Celsius


class HumidityRange(_StrictBaseModel):
    min: Percentage
    max: Percentage


class PressureRange(_StrictBaseModel):
    min: Hectopascals
    max: Hectopascals


class PrecipitationSummary(_StrictBaseModel):
    total: Millimeters
    probability: Probability
    hours: int = Field(ge=0)


class WindSummary(_StrictBaseModel):
    avg_speed: MetersPerSecond
    max_speed: MetersPerSecond
    dominant_direction: WindDirection


class CloudCoverSummary(_StrictBaseModel):
    avg: Percentage
    max: Percentage


class SunTimes(_StrictBaseModel):
    sunrise: dt.datetime
    sunset: dt.datetime
    daylight_hours: float = Field(ge=0.0, le=24.0)


class DailyForecast(_StrictBaseModel):
    """One model's (or the consensus) summary for one calendar day."""
    date: dt.date
    temperature: TemperatureRange
    humidity: HumidityRange
    pressure: PressureRange
    precipitation: PrecipitationSummary
    wind: WindSummary
    cloud_cover: CloudCoverSummary
    uv_index_max: UVIndex
    sun: SunTimes | None = None
    weather_code: WeatherCode
    hourly: List[HourlyForecast] = Field(default_factory=list)


class ModelForecast(_StrictBaseModel):
    """One model's complete output for a location and window."""
    model: ModelName
    coordinates: Coordinates
    generated_at: dt.datetime
    valid_from: dt.datetime
    valid_to: dt.datetime
    hourly: List[HourlyForecast] = Field(default_factory=list)
    daily: List[DailyForecast] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Consensus and aggregate shapes
# ---------------------------------------------------------------------------


class MetricStatistics(_StrictBaseModel):
    """Spread of one metric across the models contributing to a bucket."""
    mean: float = 0.0
    median: float = 0.0
    min: float = 0.0
    max: float = 0.0
    std_dev: float = Field(default=0.0, ge=0.0)
    range: float = Field(default=0.0, ge=0.0)


class ModelConsensus(_StrictBaseModel):
    """Agreement partition and per-metric statistics for one bucket."""
    agreement_score: float = Field(ge=0.0, le=1.0)
    models_in_agreement: List[ModelName] = Field(default_factory=list)
    outlier_models: List[ModelName] = Field(default_factory=list)
    temperature_stats: MetricStatistics = Field(default_factory=MetricStatistics)
    precipitation_stats: MetricStatistics = Field(default_factory=MetricStatistics)
    wind_stats: MetricStatistics = Field(default_factory=MetricStatistics)

    @model_validator(mode="after")
    def _check_partition(self) -> "ModelConsensus":
        if set(self.models_in_agreement) & set(self.outlier_models):
            raise ValueError("a model cannot both agree and be an outlier")
        return self


class MetricRange(_StrictBaseModel):
    min: float
    max: float


class HourlyRange(_StrictBaseModel):
    """Min/max across models for the key hourly metrics."""
    temperature: MetricRange
    precipitation: MetricRange
    wind_speed: MetricRange


class DailyRange(_StrictBaseModel):
    """Min/max across models for the key daily metrics."""
    temperature_max: MetricRange
    temperature_min: MetricRange
    precipitation: MetricRange


class ConfidenceLevelName(str, Enum):
    """Three-way confidence label."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


HIGH_CONFIDENCE_THRESHOLD = 0.7
MEDIUM_CONFIDENCE_THRESHOLD = 0.4


def _level_for_score(score: float) -> ConfidenceLevelName:
    if score >= HIGH_CONFIDENCE_THRESHOLD:
        return ConfidenceLevelName.HIGH
    if score >= MEDIUM_CONFIDENCE_THRESHOLD:
        return ConfidenceLevelName.MEDIUM
    return ConfidenceLevelName.LOW


class ConfidenceLevel(_StrictBaseModel):
    """Bounded confidence score with its derived label.

    Build instances with :meth:`from_score`; a label that disagrees with the
    score is rejected.
    """
    level: ConfidenceLevelName
    score: float = Field(ge=0.0, le=1.0)

    @classmethod
    def from_score(cls, score: float) -> "ConfidenceLevel":
        if not 0.0 <= score <= 1.0:
            raise ValueError(f"confidence score must be within [0, 1], got {score}")
        return cls(level=_level_for_score(score), score=score)

    @model_validator(mode="after")
    def _check_level(self) -> "ConfidenceLevel":
        if self.level != _level_for_score(self.score):
            raise ValueError(f"level {self.level.value!r} does not match score {self.score}")
        return self


class ModelWeight(_StrictBaseModel):
    """Contribution weight of one model to the consensus."""
    model: ModelName
    weight: float = Field(gt=0.0, le=1.0)
    reason: str


class AggregatedHourlyForecast(_StrictBaseModel):
    """Consensus reading for one hourly bucket."""
    timestamp: dt.datetime
    metrics: WeatherMetrics
    confidence: ConfidenceLevel
    model_agreement: ModelConsensus
    range: HourlyRange
    model_count: int = Field(ge=1)


class AggregatedDailyForecast(_StrictBaseModel):
    """Consensus summary for one calendar-day bucket."""
    date: dt.date
    forecast: DailyForecast
    confidence: ConfidenceLevel
    model_agreement: ModelConsensus
    range: DailyRange
    model_count: int = Field(ge=1)


class ForecastConsensus(_StrictBaseModel):
    """Aggregated buckets, ascending by timestamp and by date."""
    hourly: List[AggregatedHourlyForecast] = Field(default_factory=list)
    daily: List[AggregatedDailyForecast] = Field(default_factory=list)


class AggregatedForecast(_StrictBaseModel):
    """Complete result of combining several model forecasts."""
    coordinates: Coordinates
    generated_at: dt.datetime
    valid_from: dt.datetime
    valid_to: dt.datetime
    models: List[ModelName]
    model_forecasts: List[ModelForecast]
    consensus: ForecastConsensus
    model_weights: List[ModelWeight] = Field(default_factory=list)
    overall_confidence: ConfidenceLevel


# ---------------------------------------------------------------------------
# Explainable confidence and outlier reports
# ---------------------------------------------------------------------------


class MetricType(str, Enum):
    """Metric a detailed confidence result can be computed for."""
    TEMPERATURE = "temperature"
    PRECIPITATION = "precipitation"
    WIND = "wind"
    HUMIDITY = "humidity"
    OVERALL = "overall"


class ConfidenceFactor(_StrictBaseModel):
    """One weighted input to a detailed confidence score."""
    name: str
    weight: float = Field(ge=0.0, le=1.0)
    score: float = Field(ge=0.0, le=1.0)
    contribution: float = Field(ge=0.0, le=1.0)
    detail: str


class ConfidenceResult(_StrictBaseModel):
    """Confidence score with the factors that produced it."""
    level: ConfidenceLevelName
    score: float = Field(ge=0.0, le=1.0)
    factors: List[ConfidenceFactor] = Field(default_factory=list)
    explanation: str


class OutlierInfo(_StrictBaseModel):
    """A single model reading that sits far from the bucket consensus."""
    model: ModelName
    metric: str
    value: float
    z_score: float
    timestamp: dt.datetime


class NarrativeType(str, Enum):
    """How the narrative frames the forecast."""
    AGREEMENT = "agreement"
    DISAGREEMENT = "disagreement"
    TRANSITION = "transition"


class NarrativeSummary(_StrictBaseModel):
    """Human-readable summary regenerated on demand from an aggregate."""
    headline: str
    body: str = ""
    alerts: List[str] = Field(default_factory=list)
    model_notes: List[str] = Field(default_factory=list)
