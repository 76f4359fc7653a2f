"""YAML configuration for the health assessment pipeline.

Config files may name a parent with ``inherit_from`` (resolved relative to
the child file). Section mappings in the child are merged key by key over
the parent's; any other value replaces the parent's outright.

Example::

    inherit_from: default.yaml
    soh:
      unknown_metric_policy: vibration
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

import yaml

from ship_health.phm.health_index import resolve_weights
from ship_health.phm.soh import UNKNOWN_METRIC_POLICIES
from ship_health.phm.types import HealthIndexWeights

DEFAULT_DB_PATH = os.environ.get("SHIP_HEALTH_DB", "ship_health.db")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def load_config(path: str) -> Dict[str, Any]:
    """Load YAML config with inheritance support."""
    with open(path, "r") as f:
        cfg = yaml.safe_load(f) or {}
    inherit = cfg.get("inherit_from")
    if inherit:
        base_path = os.path.join(os.path.dirname(path), inherit)
        base_cfg = load_config(base_path)
        for key, value in cfg.items():
            if key == "inherit_from":
                continue
            if isinstance(value, dict) and isinstance(base_cfg.get(key), dict):
                base_cfg[key] = {**base_cfg[key], **value}
            else:
                base_cfg[key] = value
        return base_cfg
    return cfg


def _section(cfg: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = cfg.get(name) or {}
    if not isinstance(value, Mapping):
        raise ValueError(f"Config section '{name}' must be a mapping")
    return value


def _weights(raw: Any, name: str) -> Optional[Dict[str, float]]:
    if raw is None:
        return None
    if not isinstance(raw, Mapping):
        raise ValueError(f"{name} must be a mapping of metric -> weight")
    out: Dict[str, float] = {}
    for key, value in raw.items():
        weight = float(value)
        if weight < 0:
            raise ValueError(f"{name}.{key} must be non-negative, got {weight}")
        out[str(key)] = weight
    return out


@dataclass
class AssessmentConfig:
    soh_weights: Optional[Dict[str, float]] = None
    unknown_metric_policy: str = "neutral"
    health_index_weights: HealthIndexWeights = field(default_factory=HealthIndexWeights)
    anomaly_min_points: int = 3
    trend_window_days: int = 30
    max_trend_samples: int = 30
    db_path: str = DEFAULT_DB_PATH
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.unknown_metric_policy not in UNKNOWN_METRIC_POLICIES:
            raise ValueError(
                f"soh.unknown_metric_policy must be one of {UNKNOWN_METRIC_POLICIES}, "
                f"got {self.unknown_metric_policy!r}"
            )
        if self.anomaly_min_points < 2:
            raise ValueError("anomaly.min_points must be at least 2")
        if self.trend_window_days < 1:
            raise ValueError("assessment.trend_window_days must be at least 1")
        if self.max_trend_samples < 1:
            raise ValueError("assessment.max_trend_samples must be at least 1")
        self.log_level = str(self.log_level).upper()
        if self.log_level not in LOG_LEVELS:
            raise ValueError(f"logging.level must be one of {LOG_LEVELS}, got {self.log_level!r}")

    @classmethod
    def from_dict(cls, cfg: Mapping[str, Any]) -> "AssessmentConfig":
        soh = _section(cfg, "soh")
        health_index = _section(cfg, "health_index")
        anomaly = _section(cfg, "anomaly")
        assessment = _section(cfg, "assessment")
        storage = _section(cfg, "storage")
        logging_cfg = _section(cfg, "logging")

        hi_weights = _weights(health_index.get("weights"), "health_index.weights")
        return cls(
            soh_weights=_weights(soh.get("weights"), "soh.weights"),
            unknown_metric_policy=soh.get("unknown_metric_policy", "neutral"),
            health_index_weights=resolve_weights(hi_weights),
            anomaly_min_points=int(anomaly.get("min_points", 3)),
            trend_window_days=int(assessment.get("trend_window_days", 30)),
            max_trend_samples=int(assessment.get("max_trend_samples", 30)),
            db_path=os.environ.get("SHIP_HEALTH_DB") or storage.get("db_path", DEFAULT_DB_PATH),
            log_level=logging_cfg.get("level", "INFO"),
        )

    @classmethod
    def from_file(cls, path: str) -> "AssessmentConfig":
        return cls.from_dict(load_config(path))
