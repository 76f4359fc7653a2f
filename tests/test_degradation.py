"""Tests for degradation model."""

import math

import numpy as np

from ship_health.simulation.degradation import WienerDegradationModel


def test_degradation_step_and_rul():
    model = WienerDegradationModel(base_drift=1.0, load_drift_factor=0.1, volatility=0.0, failure_threshold=20.0)
    health = 100.0
    # Step without noise
    new_health, failed = model.step(health, delta_t=1.0, load_ratio=0.0)
    assert new_health == 99.0
    assert not failed
    # Step until failure
    for _ in range(100):
        new_health, failed = model.step(new_health, delta_t=1.0, load_ratio=0.0)
        if failed:
            break
    assert failed
    assert new_health < 20.0
    # RUL estimation should be positive for health above failure threshold
    rul = model.estimate_rul(50.0, load_ratio=0.3)
    assert math.isclose(rul, 30.0 / 1.03)


def test_health_bounded():
    model = WienerDegradationModel(base_drift=1.0, volatility=0.0)
    health, failed = model.step(0.5, delta_t=10.0)
    assert health == 0.0
    assert failed
    model = WienerDegradationModel(base_drift=-5.0, volatility=0.0)
    health, _ = model.step(99.0, delta_t=1.0)
    assert health == 100.0


def test_idle_equipment_does_not_degrade():
    model = WienerDegradationModel(volatility=0.0)
    assert model.step(55.0, delta_t=24.0, operating=False) == (55.0, False)


def test_rul_without_drift_is_infinite():
    model = WienerDegradationModel(base_drift=0.0, load_drift_factor=0.0)
    assert model.estimate_rul(80.0) == float("inf")


def test_rul_below_threshold_is_zero():
    assert WienerDegradationModel().estimate_rul(10.0) == 0.0


def test_maintenance():
    model = WienerDegradationModel(pm_threshold=40.0, maintenance_restore=95.0)
    assert model.needs_maintenance(39.0)
    assert not model.needs_maintenance(40.0)
    assert model.perform_maintenance() == 95.0


def test_seeded_noise_is_reproducible():
    a = WienerDegradationModel(rng=np.random.default_rng(3))
    b = WienerDegradationModel(rng=np.random.default_rng(3))
    health_a = health_b = 100.0
    for _ in range(20):
        health_a, _ = a.step(health_a, 1.0, load_ratio=0.5)
        health_b, _ = b.step(health_b, 1.0, load_ratio=0.5)
    assert health_a == health_b
