"""Storage-backed assessment of individual equipment."""

from .errors import (
    AssessmentError,
    EquipmentNotFoundError,
    InvalidTimeRangeError,
    NoDataInRangeError,
)
from .orchestrator import (
    AssessmentOrchestrator,
    EquipmentAssessment,
    HealthScore,
    TrendAnalysis,
    UptimeStats,
)
from .store import AlarmRecord, EquipmentRecord, MaintenanceRecord, SqliteStore

__all__ = [
    "AssessmentError",
    "EquipmentNotFoundError",
    "InvalidTimeRangeError",
    "NoDataInRangeError",
    "AssessmentOrchestrator",
    "EquipmentAssessment",
    "HealthScore",
    "TrendAnalysis",
    "UptimeStats",
    "AlarmRecord",
    "EquipmentRecord",
    "MaintenanceRecord",
    "SqliteStore",
]
