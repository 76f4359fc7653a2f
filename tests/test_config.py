"""Tests for YAML configuration loading."""

import os

import pytest

from ship_health.config import AssessmentConfig, load_config
from ship_health.phm.types import HealthIndexWeights

CONFIG_DIR = os.path.join(os.path.dirname(__file__), "..", "config")


@pytest.fixture(autouse=True)
def no_db_override(monkeypatch):
    monkeypatch.delenv("SHIP_HEALTH_DB", raising=False)


def test_default_file_matches_builtin_defaults():
    cfg = AssessmentConfig.from_file(os.path.join(CONFIG_DIR, "default.yaml"))
    assert cfg.health_index_weights == HealthIndexWeights()
    assert cfg.soh_weights["vibration"] == 0.25
    assert cfg.unknown_metric_policy == "neutral"
    assert cfg.anomaly_min_points == 3
    assert cfg.db_path == "ship_health.db"
    assert cfg.log_level == "INFO"


def test_strict_inherits_default():
    cfg = AssessmentConfig.from_file(os.path.join(CONFIG_DIR, "strict.yaml"))
    assert cfg.soh_weights["vibration"] == 0.35
    assert cfg.health_index_weights == HealthIndexWeights(0.35, 0.20, 0.30, 0.15)
    assert cfg.anomaly_min_points == 5
    assert cfg.log_level == "DEBUG"
    # untouched keys come from the parent
    assert cfg.unknown_metric_policy == "neutral"
    assert cfg.trend_window_days == 30


def test_section_keys_merge_over_parent(tmp_path):
    child = tmp_path / "child.yaml"
    child.write_text(
        f"inherit_from: {os.path.abspath(os.path.join(CONFIG_DIR, 'default.yaml'))}\n"
        "soh:\n"
        "  unknown_metric_policy: vibration\n"
    )
    raw = load_config(str(child))
    assert raw["soh"]["unknown_metric_policy"] == "vibration"
    assert raw["soh"]["weights"]["temperature"] == 0.20
    assert "inherit_from" not in raw


def test_partial_health_index_weights():
    cfg = AssessmentConfig.from_dict({"health_index": {"weights": {"alarm": 0.5}}})
    # 0.40 + 0.25 + 0.5 + 0.15, rescaled to sum to 1
    assert cfg.health_index_weights.total == pytest.approx(1.0)
    assert cfg.health_index_weights.alarm == pytest.approx(0.5 / 1.3)
    assert cfg.health_index_weights.soh == pytest.approx(0.40 / 1.3)


def test_empty_mapping_gives_defaults():
    cfg = AssessmentConfig.from_dict({})
    assert cfg.soh_weights is None
    assert cfg.max_trend_samples == 30


def test_env_overrides_db_path(monkeypatch):
    monkeypatch.setenv("SHIP_HEALTH_DB", "/var/lib/health.db")
    cfg = AssessmentConfig.from_dict({"storage": {"db_path": "other.db"}})
    assert cfg.db_path == "/var/lib/health.db"


def test_log_level_normalised():
    assert AssessmentConfig(log_level="debug").log_level == "DEBUG"


@pytest.mark.parametrize(
    "raw",
    [
        {"soh": {"unknown_metric_policy": "skip"}},
        {"soh": {"weights": {"vibration": -0.1}}},
        {"soh": {"weights": [0.1, 0.2]}},
        {"health_index": {"weights": {"uptime": 0.1}}},
        {"anomaly": {"min_points": 1}},
        {"assessment": {"trend_window_days": 0}},
        {"assessment": {"max_trend_samples": 0}},
        {"logging": {"level": "verbose"}},
        {"storage": "ship_health.db"},
    ],
)
def test_invalid_values(raw):
    with pytest.raises(ValueError):
        AssessmentConfig.from_dict(raw)


def test_missing_file():
    with pytest.raises(FileNotFoundError):
        AssessmentConfig.from_file(os.path.join(CONFIG_DIR, "absent.yaml"))
