"""Prognostics and Health Management (PHM) algorithms.

Pure computations over one equipment's readings and alarms:

- Grouping of readings into per-metric series
- Statistical anomaly detection
- State of Health (SOH) scoring
- Composite health index evaluation
- Rule-based fault diagnosis with failure time prediction
"""

from .anomaly import AnomalyDetector
from .fault_diagnosis import FaultDiagnosticEngine
from .feature_eng import extract_features
from .grouping import MetricGrouper, group_readings
from .health_index import HealthIndexEvaluator
from .knowledge_base import FAULT_KNOWLEDGE_BASE, FaultProfile
from .rul_estimator import FailureTimeEstimator
from .soh import DEFAULT_THRESHOLDS, DEFAULT_WEIGHTS, MetricThreshold, SOHCalculator
from .types import (
    AlarmHistory,
    AlarmSeverity,
    AnomalyPoint,
    AnomalySeverity,
    EquipmentStatistics,
    FaultDiagnosisResult,
    FaultPattern,
    FaultRiskLevel,
    HealthGrade,
    HealthIndexResult,
    HealthIndexWeights,
    MetricDataPoint,
    PatternType,
    Recommendation,
    RecommendationPriority,
    SOHResult,
    SOHTrendPoint,
    SuspectedFault,
)

__all__ = [
    # Algorithms
    "AnomalyDetector",
    "FaultDiagnosticEngine",
    "FailureTimeEstimator",
    "HealthIndexEvaluator",
    "MetricGrouper",
    "SOHCalculator",
    "extract_features",
    "group_readings",
    # Knowledge and defaults
    "FAULT_KNOWLEDGE_BASE",
    "FaultProfile",
    "DEFAULT_THRESHOLDS",
    "DEFAULT_WEIGHTS",
    "MetricThreshold",
    # Types
    "AlarmHistory",
    "AlarmSeverity",
    "AnomalyPoint",
    "AnomalySeverity",
    "EquipmentStatistics",
    "FaultDiagnosisResult",
    "FaultPattern",
    "FaultRiskLevel",
    "HealthGrade",
    "HealthIndexResult",
    "HealthIndexWeights",
    "MetricDataPoint",
    "PatternType",
    "Recommendation",
    "RecommendationPriority",
    "SOHResult",
    "SOHTrendPoint",
    "SuspectedFault",
]
