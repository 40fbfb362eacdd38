import datetime as dt

import pytest

from forecast_consensus import consensus
from forecast_consensus.domain import ModelName
from forecast_factories import ALL_MODELS, BASE_TIME, day, forecast, hour, simple_forecast


def _hourly_entries(temperatures, **overrides):
    return [
        consensus.HourlyEntry(model=model, reading=hour(0, temperature=t, **overrides))
        for model, t in zip(ALL_MODELS, temperatures)
    ]


def test_hour_key_treats_naive_as_utc():
    naive = dt.datetime(2025, 6, 2, 12, 0)
    aware = dt.datetime(2025, 6, 2, 12, 0, tzinfo=dt.timezone.utc)
    assert consensus.hour_key(naive) == consensus.hour_key(aware)
    assert consensus.hour_key(naive).tzinfo is not None


def test_same_instant_in_different_offsets_shares_bucket():
    plus_two = dt.timezone(dt.timedelta(hours=2))
    a = forecast(ModelName.ECMWF, hourly=[hour(12)])
    b = forecast(
        ModelName.GFS,
        hourly=[hour(0).model_copy(update={"timestamp": dt.datetime(2025, 6, 2, 14, 0, tzinfo=plus_two)})],
    )
    groups = consensus.group_hourly([a, b])
    assert len(groups) == 1
    assert [e.model for e in groups[BASE_TIME + dt.timedelta(hours=12)]] == [ModelName.ECMWF, ModelName.GFS]


def test_misaligned_timestamps_never_merge():
    a = forecast(ModelName.ECMWF, hourly=[hour(0)])
    b = forecast(
        ModelName.GFS,
        hourly=[hour(0).model_copy(update={"timestamp": BASE_TIME + dt.timedelta(minutes=30)})],
    )
    assert len(consensus.group_hourly([a, b])) == 2


def test_group_daily_keeps_input_model_order():
    forecasts = [forecast(m, daily=[day(0), day(1)]) for m in (ModelName.ICON, ModelName.ECMWF)]
    groups = consensus.group_daily(forecasts)
    assert list(groups) == [BASE_TIME.date(), BASE_TIME.date() + dt.timedelta(days=1)]
    assert [e.model for e in groups[BASE_TIME.date()]] == [ModelName.ICON, ModelName.ECMWF]


def test_identical_readings_all_agree():
    result = consensus.build_hourly_consensus(_hourly_entries([18.0] * 4))
    assert result.agreement_score == 1
    assert result.outlier_models == []
    assert result.models_in_agreement == ALL_MODELS[:4]
    assert result.temperature_stats.std_dev == 0


def test_deviant_temperature_is_outlier_for_bucket():
    result = consensus.build_hourly_consensus(_hourly_entries([20.0] * 6 + [30.0]))
    assert result.outlier_models == [ModelName.GEM]
    assert ModelName.GEM not in result.models_in_agreement
    assert len(result.models_in_agreement) + len(result.outlier_models) == 7
    assert result.agreement_score == pytest.approx(6 / 7)


def test_flag_on_any_metric_makes_model_outlier():
    entries = [
        consensus.HourlyEntry(
            model=m,
            reading=hour(0, wind_speed=25.0 if m == ModelName.ICON else 4.0),
        )
        for m in ALL_MODELS
    ]
    result = consensus.build_hourly_consensus(entries)
    assert result.outlier_models == [ModelName.ICON]
    assert result.wind_stats.max == 25.0


def test_outliers_listed_in_contribution_order():
    temperatures = [20.0] * 7
    entries = []
    for m, t in zip(ALL_MODELS, temperatures):
        overrides = {}
        if m == ModelName.GFS:
            overrides["precipitation"] = 20.0
        if m == ModelName.ECMWF:
            overrides["wind_speed"] = 30.0
        entries.append(consensus.HourlyEntry(model=m, reading=hour(0, temperature=t, **overrides)))
    result = consensus.build_hourly_consensus(entries)
    assert result.outlier_models == [ModelName.ECMWF, ModelName.GFS]


def test_empty_bucket_has_zero_agreement():
    result = consensus.build_hourly_consensus([])
    assert result.agreement_score == 0
    assert result.models_in_agreement == []
    assert result.temperature_stats.mean == 0


def test_daily_consensus_uses_max_temperature():
    entries = [
        consensus.DailyEntry(model=m, reading=day(0, temp_max=30.0 if m == ModelName.JMA else 20.0))
        for m in ALL_MODELS
    ]
    result = consensus.build_daily_consensus(entries)
    assert result.outlier_models == [ModelName.JMA]
    assert result.temperature_stats.max == 30.0


def test_three_models_with_warm_offset_stay_in_agreement():
    # with three models the largest possible z-score is sqrt(2)
    entries = [
        consensus.HourlyEntry(model=m, reading=hour(0, temperature=t))
        for m, t in zip(ALL_MODELS[:3], [18.0, 21.0, 18.0])
    ]
    result = consensus.build_hourly_consensus(entries)
    assert result.outlier_models == []
    assert result.agreement_score == 1


def test_identify_outliers_needs_three_models():
    forecasts = [simple_forecast(m) for m in ALL_MODELS[:2]]
    assert consensus.identify_outliers(forecasts) == []


def test_identify_outliers_reports_metric_value_and_z_score():
    forecasts = [
        simple_forecast(m, hours=1, days=0, temperature=30.0 if m == ModelName.UKMO else 20.0)
        for m in ALL_MODELS
    ]
    outliers = consensus.identify_outliers(forecasts)
    assert len(outliers) == 1
    report = outliers[0]
    assert report.model == ModelName.UKMO
    assert report.metric == "temperature"
    assert report.value == 30.0
    assert report.z_score == pytest.approx(6 ** 0.5)
    assert report.timestamp == BASE_TIME


def test_identify_outliers_covers_daily_buckets():
    forecasts = [
        forecast(m, daily=[day(0, precip=25.0 if m == ModelName.GEM else 0.0)])
        for m in ALL_MODELS
    ]
    outliers = consensus.identify_outliers(forecasts)
    assert [(o.model, o.metric) for o in outliers] == [(ModelName.GEM, "precipitation")]
    assert outliers[0].timestamp == BASE_TIME


def test_model_repeated_in_bucket_is_listed_once():
    entries = _hourly_entries([20.0] * 7)
    entries.append(consensus.HourlyEntry(model=ModelName.GEM, reading=hour(0, temperature=30.0)))
    result = consensus.build_hourly_consensus(entries)
    assert result.outlier_models == [ModelName.GEM]
    assert result.models_in_agreement == ALL_MODELS[:6]
    assert result.agreement_score == pytest.approx(6 / 7)


def test_identify_outliers_tolerates_repeated_model():
    forecasts = [simple_forecast(m, hours=1, days=0) for m in ALL_MODELS]
    forecasts.append(simple_forecast(ModelName.ECMWF, hours=1, days=0, temperature=40.0))
    outliers = consensus.identify_outliers(forecasts)
    assert [(o.model, o.metric, o.value) for o in outliers] == [(ModelName.ECMWF, "temperature", 40.0)]


def test_repeated_timestamp_within_model_keeps_first():
    a = forecast(ModelName.ECMWF, hourly=[hour(0, temperature=15.0), hour(0, temperature=25.0)])
    groups = consensus.group_hourly([a])
    (entries,) = groups.values()
    assert len(entries) == 1
    assert entries[0].reading.metrics.temperature == 15.0
