"""Health assessment for shipboard equipment.

The three core entry points are plain functions over in-memory data:

- :func:`calculate_soh` scores grouped sensor readings.
- :func:`evaluate_health_index` blends SOH, its trend, alarms and
  maintenance into one index.
- :func:`diagnose_faults` matches anomalies and alarms against the fault
  knowledge base.
"""

from __future__ import annotations

from datetime import datetime
from importlib.metadata import PackageNotFoundError, version
from typing import Mapping, Optional, Sequence

from .phm.fault_diagnosis import FaultDiagnosticEngine
from .phm.health_index import HealthIndexEvaluator, WeightsLike
from .phm.soh import SOHCalculator
from .phm.types import (
    AlarmHistory,
    AnomalyPoint,
    EquipmentStatistics,
    FaultDiagnosisResult,
    HealthIndexResult,
    MetricDataPoint,
    SOHResult,
    SOHTrendPoint,
)

__all__ = ["calculate_soh", "evaluate_health_index", "diagnose_faults", "get_version"]


def get_version() -> str:
    """Return package version."""
    try:
        return version("ship_health")
    except PackageNotFoundError:
        return "0.0.0"


def calculate_soh(
    groups: Mapping[str, Sequence[MetricDataPoint]],
    weights: Optional[Mapping[str, float]] = None,
) -> SOHResult:
    return SOHCalculator().calculate_soh(groups, weights)


def evaluate_health_index(
    current_soh: float,
    soh_trend: Sequence[SOHTrendPoint],
    stats: EquipmentStatistics,
    weights: Optional[WeightsLike] = None,
    now: Optional[datetime] = None,
) -> HealthIndexResult:
    return HealthIndexEvaluator().evaluate_health_index(current_soh, soh_trend, stats, weights, now)


def diagnose_faults(
    anomalies: Sequence[AnomalyPoint],
    alarms: Sequence[AlarmHistory],
    current_soh: float,
    now: Optional[datetime] = None,
) -> FaultDiagnosisResult:
    return FaultDiagnosticEngine().diagnose_faults(anomalies, alarms, current_soh, now)
