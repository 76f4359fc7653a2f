"""Tests for sigma-band anomaly detection."""

import pytest

from ship_health.phm.anomaly import AnomalyDetector, classify_deviation
from ship_health.phm.grouping import group_readings
from ship_health.phm.types import AnomalySeverity


def test_classify_deviation_bands():
    assert classify_deviation(3.1, 1.0) is AnomalySeverity.CRITICAL
    assert classify_deviation(3.0, 1.0) is AnomalySeverity.HIGH
    assert classify_deviation(2.0, 1.0) is AnomalySeverity.MEDIUM
    assert classify_deviation(1.5, 1.0) is AnomalySeverity.LOW


def test_short_series_skipped(make_series):
    groups = group_readings(make_series("vibration", [1.0, 50.0]))
    assert AnomalyDetector().detect(groups) == []


def test_constant_series_has_no_anomalies(make_series):
    groups = group_readings(make_series("temperature", [70.0] * 10))
    assert AnomalyDetector().detect(groups) == []


def test_spike_is_critical(make_series):
    values = [10.0] * 19 + [30.0]
    groups = group_readings(make_series("vibration", values))

    anomalies = AnomalyDetector().detect(groups)

    assert len(anomalies) == 1
    spike = anomalies[0]
    assert spike.value == 30.0
    assert spike.severity is AnomalySeverity.CRITICAL
    assert spike.expected_value == pytest.approx(11.0)
    assert spike.deviation_percent == pytest.approx(19.0 / 11.0 * 100.0)
    assert spike.metric_type == "vibration"


def test_high_band(make_series):
    # mean 11, std 3: the spike deviates by exactly 3 sigma, which is not > 3
    values = [10.0] * 9 + [20.0]
    anomalies = AnomalyDetector().detect(group_readings(make_series("current", values)))
    assert [a.severity for a in anomalies] == [AnomalySeverity.HIGH]


def test_low_points_are_dropped(make_series):
    values = [10.0] * 9 + [20.0]
    anomalies = AnomalyDetector().detect(group_readings(make_series("current", values)))
    assert all(a.severity is not AnomalySeverity.LOW for a in anomalies)


def test_zero_mean_deviation_percent(make_series):
    values = [0.0] * 18 + [20.0, -20.0]
    anomalies = AnomalyDetector().detect(group_readings(make_series("speed", values)))
    assert len(anomalies) == 2
    assert all(a.deviation_percent == 0.0 for a in anomalies)


def test_multiple_metrics(make_series):
    readings = make_series("vibration", [2.0] * 19 + [9.0]) + make_series(
        "temperature", [70.0] * 10
    )
    anomalies = AnomalyDetector().detect(group_readings(readings))
    assert {a.metric_type for a in anomalies} == {"vibration"}


def test_min_points_validation():
    with pytest.raises(ValueError):
        AnomalyDetector(min_points=1)


def test_custom_min_points(make_series):
    groups = group_readings(make_series("vibration", [10.0] * 19 + [30.0]))
    assert AnomalyDetector(min_points=25).detect(groups) == []


def test_to_dict(make_series):
    anomalies = AnomalyDetector().detect(
        group_readings(make_series("vibration", [10.0] * 19 + [30.0]))
    )
    d = anomalies[0].to_dict()
    assert d["severity"] == "critical"
    assert d["timestamp"].endswith("+00:00")
