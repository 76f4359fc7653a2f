"""Data types shared by the health assessment algorithms.

Every result produced by the PHM algorithms is a plain dataclass created
fresh on each call. Severity, risk and priority fields are closed string
enums so that they serialise to the same strings the downstream report
and presentation layers expect.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ship_health.utils.timeutils import ensure_utc, isoformat, utc_now


class AnomalySeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AlarmSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class FaultRiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RecommendationPriority(str, Enum):
    IMMEDIATE = "immediate"
    URGENT = "urgent"
    NORMAL = "normal"
    LOW = "low"


class HealthGrade(str, Enum):
    EXCELLENT = "Excellent"
    GOOD = "Good"
    FAIR = "Fair"
    POOR = "Poor"
    CRITICAL = "Critical"


class PatternType(str, Enum):
    """Fault patterns known to the diagnostic knowledge base."""

    BEARING_FAULT = "bearingFault"
    LUBRICATION_FAILURE = "lubricationFailure"
    IMBALANCE = "imbalance"
    ELECTRICAL_FAULT = "electricalFault"
    OVERLOAD = "overload"
    WEAR_DEGRADATION = "wearDegradation"


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MetricDataPoint:
    """One sensor reading for a single metric."""

    timestamp: datetime
    metric_type: str
    value: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "timestamp", ensure_utc(self.timestamp))
        object.__setattr__(self, "value", float(self.value))


@dataclass(frozen=True)
class AlarmHistory:
    """Alarm record as seen by the fault diagnostic engine."""

    id: str
    timestamp: datetime
    severity: AlarmSeverity
    metric_type: str
    alarm_type: str = "THRESHOLD_EXCEEDED"
    metric_value: float = 0.0
    threshold_value: float = 0.0
    description: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "timestamp", ensure_utc(self.timestamp))
        object.__setattr__(self, "severity", AlarmSeverity(self.severity))


@dataclass(frozen=True)
class SOHTrendPoint:
    timestamp: datetime
    soh_value: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "timestamp", ensure_utc(self.timestamp))


@dataclass(frozen=True)
class EquipmentStatistics:
    """Run, alarm and maintenance aggregates for one piece of equipment."""

    total_running_hours: float
    total_alarm_count: int
    critical_alarm_count: int
    warning_alarm_count: int
    maintenance_count: int
    installation_date: datetime
    last_maintenance_date: Optional[datetime] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "installation_date", ensure_utc(self.installation_date))
        if self.last_maintenance_date is not None:
            object.__setattr__(
                self, "last_maintenance_date", ensure_utc(self.last_maintenance_date)
            )


# ---------------------------------------------------------------------------
# Anomalies and SOH
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AnomalyPoint:
    timestamp: datetime
    metric_type: str
    value: float
    expected_value: float  # mean of the metric's series
    deviation_percent: float
    severity: AnomalySeverity

    def __post_init__(self) -> None:
        object.__setattr__(self, "timestamp", ensure_utc(self.timestamp))
        object.__setattr__(self, "severity", AnomalySeverity(self.severity))

    @property
    def is_high_or_critical(self) -> bool:
        return self.severity in (AnomalySeverity.HIGH, AnomalySeverity.CRITICAL)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": isoformat(self.timestamp),
            "metric_type": self.metric_type,
            "value": self.value,
            "expected_value": round(self.expected_value, 4),
            "deviation_percent": round(self.deviation_percent, 2),
            "severity": self.severity.value,
        }


@dataclass(frozen=True)
class MetricContribution:
    score: float
    weight: float
    contribution: float


@dataclass
class SOHResult:
    """State-of-health score for one assessment window."""

    soh: float
    confidence: float
    contributions: Dict[str, MetricContribution]
    calculated_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "soh": self.soh,
            "confidence": self.confidence,
            "contributions": {
                metric: {
                    "score": round(c.score, 4),
                    "weight": c.weight,
                    "contribution": round(c.contribution, 4),
                }
                for metric, c in self.contributions.items()
            },
            "calculated_at": isoformat(self.calculated_at),
        }


# ---------------------------------------------------------------------------
# Health index
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class HealthIndexWeights:
    soh: float = 0.40
    trend: float = 0.25
    alarm: float = 0.20
    maintenance: float = 0.15

    @property
    def total(self) -> float:
        return self.soh + self.trend + self.alarm + self.maintenance


@dataclass(frozen=True)
class HealthFactors:
    soh_score: float
    trend_score: float
    alarm_score: float
    maintenance_score: float


@dataclass
class HealthIndexResult:
    health_index: float
    grade: HealthGrade
    factors: HealthFactors
    weights: HealthIndexWeights
    recommendations: List[str]
    calculated_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "health_index": self.health_index,
            "grade": self.grade.value,
            "factors": {
                "soh_score": self.factors.soh_score,
                "trend_score": self.factors.trend_score,
                "alarm_score": self.factors.alarm_score,
                "maintenance_score": self.factors.maintenance_score,
            },
            "weights": {
                "soh": self.weights.soh,
                "trend": self.weights.trend,
                "alarm": self.weights.alarm,
                "maintenance": self.weights.maintenance,
            },
            "recommendations": list(self.recommendations),
            "calculated_at": isoformat(self.calculated_at),
        }


# ---------------------------------------------------------------------------
# Fault diagnosis
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FaultPattern:
    pattern_type: PatternType
    confidence: float
    affected_metrics: Tuple[str, ...]
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pattern_type": self.pattern_type.value,
            "confidence": round(self.confidence, 4),
            "affected_metrics": list(self.affected_metrics),
            "description": self.description,
        }


@dataclass(frozen=True)
class SuspectedFault:
    fault_type: str
    pattern_type: PatternType
    probability: float
    root_causes: Tuple[str, ...]
    evidences: Tuple[str, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fault_type": self.fault_type,
            "pattern_type": self.pattern_type.value,
            "probability": round(self.probability, 2),
            "root_causes": list(self.root_causes),
            "evidences": list(self.evidences),
        }


@dataclass(frozen=True)
class Recommendation:
    priority: RecommendationPriority
    action: str
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {"priority": self.priority.value, "action": self.action, "reason": self.reason}


@dataclass
class FaultDiagnosisResult:
    fault_probability: float
    fault_risk_level: FaultRiskLevel
    detected_patterns: List[FaultPattern]
    suspected_faults: List[SuspectedFault]
    recommendations: List[Recommendation]
    predicted_failure_time: Optional[datetime] = None
    diagnosed_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fault_probability": self.fault_probability,
            "fault_risk_level": self.fault_risk_level.value,
            "detected_patterns": [p.to_dict() for p in self.detected_patterns],
            "suspected_faults": [f.to_dict() for f in self.suspected_faults],
            "recommendations": [r.to_dict() for r in self.recommendations],
            "predicted_failure_time": (
                isoformat(self.predicted_failure_time)
                if self.predicted_failure_time is not None
                else None
            ),
            "diagnosed_at": isoformat(self.diagnosed_at),
        }
