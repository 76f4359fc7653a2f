"""Shared fixtures: a fixed clock, data builders and a temporary store."""

from datetime import datetime, timedelta, timezone

import pytest

from ship_health.assessment.store import AlarmRecord, SqliteStore
from ship_health.phm.types import AlarmHistory, AnomalyPoint, MetricDataPoint

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_series():
    """Evenly spaced readings for one metric, ending before NOW."""

    def _make(metric, values, step_hours=1.0, start=None):
        step = timedelta(hours=step_hours)
        if start is None:
            start = NOW - step * len(values)
        return [
            MetricDataPoint(timestamp=start + i * step, metric_type=metric, value=v)
            for i, v in enumerate(values)
        ]

    return _make


@pytest.fixture
def make_anomaly():
    def _make(metric, value, severity, expected=None, hours_ago=1.0):
        if expected is None:
            expected = value * 0.5
        deviation = abs(value - expected)
        return AnomalyPoint(
            timestamp=NOW - timedelta(hours=hours_ago),
            metric_type=metric,
            value=value,
            expected_value=expected,
            deviation_percent=deviation / abs(expected) * 100.0 if expected else 0.0,
            severity=severity,
        )

    return _make


@pytest.fixture
def make_alarm():
    counter = {"n": 0}

    def _make(metric, severity="critical", days_ago=0.0):
        counter["n"] += 1
        return AlarmHistory(
            id=f"alarm-{counter['n']}",
            timestamp=NOW - timedelta(days=days_ago, minutes=30),
            severity=severity,
            metric_type=metric,
        )

    return _make


@pytest.fixture
def store(tmp_path):
    s = SqliteStore(str(tmp_path / "health.db"))
    s.init_db()
    return s


def _healthy_readings():
    """Ten days of hourly vibration and temperature with bounded ripple."""
    start = NOW - timedelta(hours=239, minutes=30)
    readings = []
    for k in range(240):
        ts = start + timedelta(hours=k)
        ripple = (k % 5) - 2
        readings.append(MetricDataPoint(ts, "vibration", 2.0 + 0.1 * ripple))
        readings.append(MetricDataPoint(ts, "temperature", 70.0 + ripple))
    return readings


@pytest.fixture
def seeded_store(store):
    """Store holding 'pump-1': two years old, ten days of readings, alarms and maintenance."""
    store.add_equipment("pump-1", installed_at=NOW - timedelta(days=730), name="Cooling pump")
    store.add_readings("pump-1", _healthy_readings())
    store.add_alarms(
        [
            AlarmRecord("a1", "pump-1", NOW - timedelta(days=1), "critical", "vibration", 7.5, 7.1),
            AlarmRecord("a2", "pump-1", NOW - timedelta(days=2), "high", "temperature", 91.0, 90.0),
            AlarmRecord("a3", "pump-1", NOW - timedelta(days=3), "low", "pressure", 0.29, 0.3),
        ]
    )
    store.add_maintenance("pump-1", NOW - timedelta(days=400), "annual service")
    store.add_maintenance("pump-1", NOW - timedelta(days=100), "bearing regrease")
    return store
