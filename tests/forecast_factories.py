"""Builders for synthetic model forecasts shared by the test modules."""

import datetime as dt

from forecast_consensus.domain import (
    CloudCoverSummary,
    Coordinates,
    DailyForecast,
    HourlyForecast,
    HumidityRange,
    ModelForecast,
    ModelName,
    PrecipitationSummary,
    PressureRange,
    SunTimes,
    TemperatureRange,
    WeatherMetrics,
    WindSummary,
)

# Monday
BASE_TIME = dt.datetime(2025, 6, 2, 0, 0, tzinfo=dt.timezone.utc)
BASE_DATE = BASE_TIME.date()
COORDS = Coordinates(latitude=52.83, longitude=-6.93, name="Carlow")

ALL_MODELS = [
    ModelName.ECMWF,
    ModelName.GFS,
    ModelName.ICON,
    ModelName.METEOFRANCE,
    ModelName.UKMO,
    ModelName.JMA,
    ModelName.GEM,
]


def metrics(**overrides):
    base = {
        "temperature": 18.0,
        "feels_like": 17.0,
        "humidity": 60.0,
        "pressure": 1015.0,
        "wind_speed": 4.0,
        "wind_direction": 220.0,
        "wind_gust": 7.0,
        "precipitation": 0.0,
        "precipitation_probability": 0.1,
        "cloud_cover": 40.0,
        "visibility": 20000.0,
        "uv_index": 5.0,
        "weather_code": 0,
    }
    base.update(overrides)
    return WeatherMetrics(**base)


def hour(offset_hours=0, **overrides):
    return HourlyForecast(
        timestamp=BASE_TIME + dt.timedelta(hours=offset_hours),
        metrics=metrics(**overrides),
    )


def day(
    offset_days=0,
    *,
    temp_max=22.0,
    temp_min=12.0,
    precip=0.0,
    precip_hours=0,
    wind_max=8.0,
    weather_code=0,
    sun=None,
):
    return DailyForecast(
        date=BASE_DATE + dt.timedelta(days=offset_days),
        temperature=TemperatureRange(min=temp_min, max=temp_max),
        humidity=HumidityRange(min=45.0, max=80.0),
        pressure=PressureRange(min=1010.0, max=1020.0),
        precipitation=PrecipitationSummary(
            total=precip,
            probability=1.0 if precip > 0.1 else 0.0,
            hours=precip_hours,
        ),
        wind=WindSummary(avg_speed=4.0, max_speed=wind_max, dominant_direction=220.0),
        cloud_cover=CloudCoverSummary(avg=40.0, max=70.0),
        uv_index_max=6.0,
        sun=sun,
        weather_code=weather_code,
    )


def sun_times(offset_days=0):
    start = BASE_TIME + dt.timedelta(days=offset_days)
    return SunTimes(
        sunrise=start + dt.timedelta(hours=4, minutes=55),
        sunset=start + dt.timedelta(hours=20, minutes=45),
        daylight_hours=15.8,
    )


def forecast(model, *, hourly=(), daily=(), generated_at=BASE_TIME):
    return ModelForecast(
        model=model,
        coordinates=COORDS,
        generated_at=generated_at,
        valid_from=BASE_TIME,
        valid_to=BASE_TIME + dt.timedelta(days=7),
        hourly=list(hourly),
        daily=list(daily),
    )


def simple_forecast(model, *, hours=2, days=2, weather_codes=None, **hour_overrides):
    """A forecast with identical readings for every hour and day."""
    codes = weather_codes or [0] * days
    return forecast(
        model,
        hourly=[hour(i, **hour_overrides) for i in range(hours)],
        daily=[day(i, weather_code=codes[i]) for i in range(days)],
    )
