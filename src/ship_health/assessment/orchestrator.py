"""Equipment assessment orchestration.

The orchestrator reads raw readings, alarms and maintenance history from
the store for one equipment and time window (epoch milliseconds), runs the
PHM algorithms over them, and composes the results. It is the only layer
that touches storage; the algorithms themselves stay pure.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

import numpy as np

from ship_health.config import AssessmentConfig
from ship_health.phm.anomaly import AnomalyDetector
from ship_health.phm.fault_diagnosis import FaultDiagnosticEngine
from ship_health.phm.feature_eng import extract_features, index_trend_slope
from ship_health.phm.grouping import MetricGroups, group_readings
from ship_health.phm.health_index import HealthIndexEvaluator
from ship_health.phm.soh import SOHCalculator
from ship_health.phm.types import (
    AlarmHistory,
    AlarmSeverity,
    AnomalyPoint,
    EquipmentStatistics,
    FaultDiagnosisResult,
    FaultRiskLevel,
    HealthIndexResult,
    SOHResult,
    SOHTrendPoint,
)
from ship_health.utils.timeutils import MS_PER_DAY, days_between, ensure_utc, from_millis, isoformat, utc_now

from .errors import EquipmentNotFoundError, InvalidTimeRangeError, NoDataInRangeError
from .store import AlarmRecord, EquipmentRecord, SqliteStore

logger = logging.getLogger(__name__)

# running / maintenance / stopped share of the window by equipment status
UPTIME_SPLITS = {
    "normal": (0.90, 0.05, 0.05),
    "warning": (0.70, 0.20, 0.10),
    "fault": (0.10, 0.10, 0.80),
    "offline": (0.05, 0.05, 0.90),
}
DEFAULT_UPTIME_SPLIT = (0.50, 0.25, 0.25)

STABLE_SLOPE = 0.01
SHARP_SLOPE = 0.05

# health score: points deducted per alarm level, and alarm / stability / uptime weights
ALARM_DEDUCTIONS = {"critical": 10, "high": 5, "medium": 2, "low": 1}
HEALTH_SCORE_WEIGHTS = (0.40, 0.35, 0.25)
NEUTRAL_STABILITY_SCORE = 50.0


def map_alarm_severity(level: str) -> AlarmSeverity:
    """Collapse the four store alarm levels to the diagnostic severities."""
    level = (level or "").lower()
    if level == "critical":
        return AlarmSeverity.CRITICAL
    if level in ("high", "medium"):
        return AlarmSeverity.WARNING
    return AlarmSeverity.INFO


def to_alarm_history(record: AlarmRecord) -> AlarmHistory:
    return AlarmHistory(
        id=record.id,
        timestamp=record.timestamp,
        severity=map_alarm_severity(record.severity),
        metric_type=record.metric_type,
        metric_value=record.metric_value,
        threshold_value=record.threshold_value,
        description=record.description,
    )


def trend_label(values: List[float]) -> str:
    """Qualitative direction of a series from its per-sample OLS slope."""
    if len(values) < 2:
        return "insufficient data"
    slope = index_trend_slope(values)
    if abs(slope) < STABLE_SLOPE:
        return "stable"
    if slope > SHARP_SLOPE:
        return "rising sharply"
    if slope > 0:
        return "rising slightly"
    if slope < -SHARP_SLOPE:
        return "falling sharply"
    return "falling slightly"


def overall_label(health_score: float) -> str:
    if health_score >= 75:
        return "good"
    if health_score >= 60:
        return "fair"
    return "needs attention"


def abnormal_risk_level(abnormal_count: int) -> FaultRiskLevel:
    if abnormal_count == 0:
        return FaultRiskLevel.LOW
    if abnormal_count <= 5:
        return FaultRiskLevel.MEDIUM
    return FaultRiskLevel.HIGH


def alarm_deduction_score(alarms: Sequence[AlarmRecord]) -> float:
    """100 less a fixed deduction per alarm level, floored at 0."""
    deduction = sum(ALARM_DEDUCTIONS.get((a.severity or "").lower(), 0) for a in alarms)
    return float(max(0, 100 - deduction))


def stability_score(groups: MetricGroups) -> float:
    """100 less twice the mean coefficient of variation (percent) of each metric.

    Metrics with fewer than two readings are ignored. With nothing to
    measure the score is a neutral 50.
    """
    cvs = []
    for points in groups.values():
        if len(points) < 2:
            continue
        features = extract_features([p.value for p in points])
        mean = features["mean"]
        cvs.append(features["std"] / abs(mean) * 100.0 if mean != 0 else 0.0)
    if not cvs:
        return NEUTRAL_STABILITY_SCORE
    return round(min(100.0, max(0.0, 100.0 - 2.0 * float(np.mean(cvs)))), 2)


def blend_health_score(alarm: float, stability: float, uptime: float) -> float:
    alarm_w, stability_w, uptime_w = HEALTH_SCORE_WEIGHTS
    return round(alarm * alarm_w + stability * stability_w + uptime * uptime_w, 2)


def health_level(score: float) -> str:
    if score >= 90:
        return "excellent"
    if score >= 75:
        return "good"
    if score >= 60:
        return "fair"
    return "poor"


@dataclass
class UptimeStats:
    total_duration_ms: int
    running_ms: int
    maintenance_ms: int
    stopped_ms: int
    uptime_rate: float  # percent of the window spent running

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_duration_ms": self.total_duration_ms,
            "running_ms": self.running_ms,
            "maintenance_ms": self.maintenance_ms,
            "stopped_ms": self.stopped_ms,
            "uptime_rate": self.uptime_rate,
        }


@dataclass
class HealthScore:
    """Operational score blended from alarm load, signal stability and uptime."""

    score: float
    level: str
    alarm_score: float
    stability_score: float
    uptime_score: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "level": self.level,
            "alarm_score": self.alarm_score,
            "stability_score": self.stability_score,
            "uptime_score": self.uptime_score,
        }


@dataclass
class TrendAnalysis:
    temperature_trend: str
    vibration_trend: str
    overall_trend: str
    risk_level: FaultRiskLevel
    suggestions: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "temperature_trend": self.temperature_trend,
            "vibration_trend": self.vibration_trend,
            "overall_trend": self.overall_trend,
            "risk_level": self.risk_level.value,
            "suggestions": list(self.suggestions),
        }


@dataclass
class EquipmentAssessment:
    """Everything computed for one equipment over one window."""

    equipment_id: str
    start_ms: int
    end_ms: int
    soh: SOHResult
    health_index: HealthIndexResult
    diagnosis: FaultDiagnosisResult
    anomalies: List[AnomalyPoint]
    abnormal_events: int
    uptime: UptimeStats
    health_score: HealthScore
    trend_analysis: TrendAnalysis
    assessed_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "equipment_id": self.equipment_id,
            "start": isoformat(from_millis(self.start_ms)),
            "end": isoformat(from_millis(self.end_ms)),
            "soh": self.soh.to_dict(),
            "health_index": self.health_index.to_dict(),
            "diagnosis": self.diagnosis.to_dict(),
            "anomalies": [a.to_dict() for a in self.anomalies],
            "abnormal_events": self.abnormal_events,
            "uptime": self.uptime.to_dict(),
            "health_score": self.health_score.to_dict(),
            "trend_analysis": self.trend_analysis.to_dict(),
            "assessed_at": isoformat(self.assessed_at),
        }

    def to_row(self) -> Dict[str, Any]:
        """Flat summary suitable for CSV export."""
        faults = self.diagnosis.suspected_faults
        predicted = self.diagnosis.predicted_failure_time
        return {
            "equipment_id": self.equipment_id,
            "start": isoformat(from_millis(self.start_ms)),
            "end": isoformat(from_millis(self.end_ms)),
            "soh": self.soh.soh,
            "soh_confidence": self.soh.confidence,
            "health_index": self.health_index.health_index,
            "grade": self.health_index.grade.value,
            "fault_probability": self.diagnosis.fault_probability,
            "fault_risk_level": self.diagnosis.fault_risk_level.value,
            "top_fault": faults[0].fault_type if faults else "",
            "predicted_failure_time": isoformat(predicted) if predicted is not None else "",
            "anomaly_count": len(self.anomalies),
            "abnormal_events": self.abnormal_events,
            "uptime_rate": self.uptime.uptime_rate,
            "health_score": self.health_score.score,
            "health_level": self.health_score.level,
        }


class AssessmentOrchestrator:
    """Run the health assessment pipeline against a store.

    Args:
        store: Source of equipment, readings, alarms and maintenance.
        config: Weights and sampling settings. Defaults to
            ``AssessmentConfig()``.
        log: Optional callback receiving each progress message, in
            addition to the module logger.
        clock: Returns the current time; injectable for reproducible
            results.
    """

    def __init__(
        self,
        store: SqliteStore,
        config: Optional[AssessmentConfig] = None,
        log: Optional[Callable[[str], None]] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.config = config or AssessmentConfig()
        self._log = log
        self._clock = clock
        self.soh_calculator = SOHCalculator(
            default_weights=self.config.soh_weights,
            unknown_metric_policy=self.config.unknown_metric_policy,
        )
        self.anomaly_detector = AnomalyDetector(min_points=self.config.anomaly_min_points)
        self.health_index_evaluator = HealthIndexEvaluator()
        self.fault_engine = FaultDiagnosticEngine()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _emit(self, message: str) -> None:
        logger.info(message)
        if self._log is not None:
            self._log(message)

    def _now(self) -> datetime:
        return ensure_utc(self._clock())

    @staticmethod
    def _check_range(start_ms: int, end_ms: int) -> None:
        if start_ms >= end_ms:
            raise InvalidTimeRangeError(start_ms, end_ms)

    def _require_equipment(self, equipment_id: str) -> EquipmentRecord:
        equipment = self.store.get_equipment(equipment_id)
        if equipment is None:
            raise EquipmentNotFoundError(equipment_id)
        return equipment

    def _prepare(self, equipment_id: str, start_ms: int, end_ms: int) -> EquipmentRecord:
        self._check_range(start_ms, end_ms)
        return self._require_equipment(equipment_id)

    def _groups(self, equipment_id: str, start_ms: int, end_ms: int) -> MetricGroups:
        return group_readings(self.store.fetch_readings(equipment_id, start_ms, end_ms))

    def _soh_from_groups(self, groups: MetricGroups) -> SOHResult:
        result = self.soh_calculator.calculate_soh(groups)
        result.calculated_at = self._now()
        return result

    # ------------------------------------------------------------------
    # Single-algorithm operations
    # ------------------------------------------------------------------

    def calculate_soh(self, equipment_id: str, start_ms: int, end_ms: int) -> SOHResult:
        self._prepare(equipment_id, start_ms, end_ms)
        result = self._soh_from_groups(self._groups(equipment_id, start_ms, end_ms))
        self._emit(
            f"SOH for {equipment_id}: {result.soh} (confidence {result.confidence})"
        )
        return result

    def detect_anomalies(self, equipment_id: str, start_ms: int, end_ms: int) -> List[AnomalyPoint]:
        self._prepare(equipment_id, start_ms, end_ms)
        anomalies = self.anomaly_detector.detect(self._groups(equipment_id, start_ms, end_ms))
        logger.debug("Detected %d anomalies for %s", len(anomalies), equipment_id)
        return anomalies

    def fetch_alarm_history(self, equipment_id: str, start_ms: int, end_ms: int) -> List[AlarmHistory]:
        self._prepare(equipment_id, start_ms, end_ms)
        return [to_alarm_history(a) for a in self.store.fetch_alarms(equipment_id, start_ms, end_ms)]

    def collect_statistics(
        self, equipment_id: str, now: Optional[datetime] = None
    ) -> EquipmentStatistics:
        """Lifetime run, alarm and maintenance aggregates."""
        equipment = self._require_equipment(equipment_id)
        now = ensure_utc(now) if now is not None else self._now()

        running_hours = max(0.0, days_between(equipment.installed_at, now) * 24.0)
        alarms = self.store.fetch_alarms(equipment_id)
        severities = [map_alarm_severity(a.severity) for a in alarms]
        maintenance = self.store.fetch_maintenance(equipment_id)

        return EquipmentStatistics(
            total_running_hours=running_hours,
            total_alarm_count=len(alarms),
            critical_alarm_count=sum(1 for s in severities if s is AlarmSeverity.CRITICAL),
            warning_alarm_count=sum(1 for s in severities if s is AlarmSeverity.WARNING),
            maintenance_count=len(maintenance),
            installation_date=equipment.installed_at,
            last_maintenance_date=maintenance[-1].performed_at if maintenance else None,
        )

    def sample_soh_trend(self, equipment_id: str, start_ms: int, end_ms: int) -> List[SOHTrendPoint]:
        """SOH over consecutive one-day sub-windows.

        At most ``config.max_trend_samples`` sub-windows are sampled, evenly
        strided over the range. Sub-windows are end-exclusive except the one
        closing the range. Sub-windows without readings are skipped.
        """
        self._prepare(equipment_id, start_ms, end_ms)
        segments = (end_ms - start_ms) // MS_PER_DAY
        stride = max(1, math.ceil(segments / self.config.max_trend_samples))

        trend: List[SOHTrendPoint] = []
        for i in range(0, segments, stride):
            seg_start = start_ms + i * MS_PER_DAY
            seg_end = min(seg_start + MS_PER_DAY, end_ms)
            # a reading on a day boundary belongs to the later sub-window
            seg_last = seg_end if seg_end == end_ms else seg_end - 1
            groups = self._groups(equipment_id, seg_start, seg_last)
            if not any(groups.values()):
                logger.debug("No readings for %s in sub-window starting %d", equipment_id, seg_start)
                continue
            result = self.soh_calculator.calculate_soh(groups)
            trend.append(SOHTrendPoint(timestamp=from_millis(seg_start), soh_value=result.soh))
        return trend

    def evaluate_health_index(self, equipment_id: str, start_ms: int, end_ms: int) -> HealthIndexResult:
        self._prepare(equipment_id, start_ms, end_ms)
        now = self._now()
        soh = self._soh_from_groups(self._groups(equipment_id, start_ms, end_ms))
        result = self._health_index(equipment_id, soh, end_ms, now)
        self._emit(
            f"Health index for {equipment_id}: {result.health_index} ({result.grade.value})"
        )
        return result

    def _health_index(
        self, equipment_id: str, soh: SOHResult, end_ms: int, now: datetime
    ) -> HealthIndexResult:
        trend_start = end_ms - self.config.trend_window_days * MS_PER_DAY
        trend = self.sample_soh_trend(equipment_id, trend_start, end_ms)
        stats = self.collect_statistics(equipment_id, now)
        return self.health_index_evaluator.evaluate_health_index(
            soh.soh, trend, stats, weights=self.config.health_index_weights, now=now
        )

    def diagnose_faults(self, equipment_id: str, start_ms: int, end_ms: int) -> FaultDiagnosisResult:
        self._prepare(equipment_id, start_ms, end_ms)
        groups = self._groups(equipment_id, start_ms, end_ms)
        anomalies = self.anomaly_detector.detect(groups)
        alarms = self.fetch_alarm_history(equipment_id, start_ms, end_ms)
        soh = self._soh_from_groups(groups)
        result = self.fault_engine.diagnose_faults(anomalies, alarms, soh.soh, now=self._now())
        self._emit(
            f"Fault diagnosis for {equipment_id}: probability {result.fault_probability}%, "
            f"risk {result.fault_risk_level.value}"
        )
        return result

    # ------------------------------------------------------------------
    # Report sections
    # ------------------------------------------------------------------

    def count_abnormal_events(self, equipment_id: str, start_ms: int, end_ms: int) -> int:
        """Number of alarms raised in the window."""
        self._prepare(equipment_id, start_ms, end_ms)
        return self.store.count_alarms(equipment_id, start_ms, end_ms)

    def calculate_uptime_stats(self, equipment_id: str, start_ms: int, end_ms: int) -> UptimeStats:
        """Estimate the running/maintenance/stopped split from the current status.

        No status history is kept, so the whole window is apportioned by
        the equipment's present status.
        """
        equipment = self._prepare(equipment_id, start_ms, end_ms)
        total = end_ms - start_ms
        running, maintenance, stopped = UPTIME_SPLITS.get(equipment.status, DEFAULT_UPTIME_SPLIT)
        return UptimeStats(
            total_duration_ms=total,
            running_ms=round(total * running),
            maintenance_ms=round(total * maintenance),
            stopped_ms=round(total * stopped),
            uptime_rate=round(running * 100.0, 2),
        )

    def calculate_health_score(self, equipment_id: str, start_ms: int, end_ms: int) -> HealthScore:
        """Blend alarm load, reading stability and uptime over the window."""
        self._prepare(equipment_id, start_ms, end_ms)
        result = self._health_score(
            self.store.fetch_alarms(equipment_id, start_ms, end_ms),
            self._groups(equipment_id, start_ms, end_ms),
            self.calculate_uptime_stats(equipment_id, start_ms, end_ms),
        )
        self._emit(f"Health score for {equipment_id}: {result.score} ({result.level})")
        return result

    @staticmethod
    def _health_score(
        alarms: Sequence[AlarmRecord], groups: MetricGroups, uptime: UptimeStats
    ) -> HealthScore:
        alarm = alarm_deduction_score(alarms)
        stability = stability_score(groups)
        uptime_score = round(uptime.uptime_rate, 2)
        score = blend_health_score(alarm, stability, uptime_score)
        return HealthScore(
            score=score,
            level=health_level(score),
            alarm_score=alarm,
            stability_score=stability,
            uptime_score=uptime_score,
        )

    def generate_trend_analysis(self, equipment_id: str, start_ms: int, end_ms: int) -> TrendAnalysis:
        self._prepare(equipment_id, start_ms, end_ms)
        groups = self._groups(equipment_id, start_ms, end_ms)
        alarms = self.store.fetch_alarms(equipment_id, start_ms, end_ms)
        health_score = self._health_score(
            alarms, groups, self.calculate_uptime_stats(equipment_id, start_ms, end_ms)
        )
        return self._trend_analysis(groups, health_score, len(alarms))

    def _trend_analysis(self, groups: MetricGroups, health_score: HealthScore, abnormal: int) -> TrendAnalysis:
        temperature = trend_label([p.value for p in groups.get("temperature", [])])
        vibration = trend_label([p.value for p in groups.get("vibration", [])])

        suggestions: List[str] = []
        if temperature.startswith("rising"):
            suggestions.append("Temperature is rising: check that the cooling system works properly")
        if vibration.startswith("rising"):
            suggestions.append("Vibration is rising: check the mountings and bearing condition")
        if abnormal > 5:
            suggestions.append("Frequent recent alarms: schedule a full overhaul")
        if health_score.score < 60:
            suggestions.append("Equipment health is poor: carry out maintenance soon")
        if not suggestions:
            suggestions.append("Equipment is operating normally: continue routine maintenance")

        return TrendAnalysis(
            temperature_trend=temperature,
            vibration_trend=vibration,
            overall_trend=overall_label(health_score.score),
            risk_level=abnormal_risk_level(abnormal),
            suggestions=suggestions,
        )

    # ------------------------------------------------------------------
    # Full assessment
    # ------------------------------------------------------------------

    def assess(self, equipment_id: str, start_ms: int, end_ms: int) -> EquipmentAssessment:
        """Run every assessment step over one window.

        Raises:
            InvalidTimeRangeError: ``start_ms`` is not before ``end_ms``.
            EquipmentNotFoundError: the equipment is unknown.
            NoDataInRangeError: the window holds no readings.
        """
        self._prepare(equipment_id, start_ms, end_ms)
        if self.store.count_readings(equipment_id, start_ms, end_ms) == 0:
            raise NoDataInRangeError(equipment_id, start_ms, end_ms)

        now = self._now()
        self._emit(f"Assessing {equipment_id} from {start_ms} to {end_ms}")

        groups = self._groups(equipment_id, start_ms, end_ms)
        soh = self._soh_from_groups(groups)
        anomalies = self.anomaly_detector.detect(groups)
        alarm_records = self.store.fetch_alarms(equipment_id, start_ms, end_ms)
        alarms = [to_alarm_history(a) for a in alarm_records]

        health_index = self._health_index(equipment_id, soh, end_ms, now)
        diagnosis = self.fault_engine.diagnose_faults(anomalies, alarms, soh.soh, now=now)
        abnormal = len(alarms)
        uptime = self.calculate_uptime_stats(equipment_id, start_ms, end_ms)
        health_score = self._health_score(alarm_records, groups, uptime)

        assessment = EquipmentAssessment(
            equipment_id=equipment_id,
            start_ms=start_ms,
            end_ms=end_ms,
            soh=soh,
            health_index=health_index,
            diagnosis=diagnosis,
            anomalies=anomalies,
            abnormal_events=abnormal,
            uptime=uptime,
            health_score=health_score,
            trend_analysis=self._trend_analysis(groups, health_score, abnormal),
            assessed_at=now,
        )
        self._emit(
            f"Assessment of {equipment_id} complete: SOH {soh.soh}, "
            f"HI {health_index.health_index} ({health_index.grade.value}), "
            f"health score {health_score.score}, "
            f"risk {diagnosis.fault_risk_level.value}"
        )
        return assessment
