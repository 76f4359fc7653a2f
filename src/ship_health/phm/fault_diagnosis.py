"""Rule-based fault diagnosis.

Detected anomalies and alarm history are matched against the static
fault-pattern knowledge base. A single pass produces:

1. the matched fault patterns with a confidence each,
2. an overall fault probability (0-100) and risk level,
3. suspected faults with root causes and supporting evidence,
4. prioritised maintenance recommendations,
5. a predicted failure date when the probability is at least 30.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Mapping, Optional, Sequence

from ship_health.utils.timeutils import days_ago, ensure_utc, utc_now

from .feature_eng import increasing_fraction, interval_regularity
from .knowledge_base import FAULT_KNOWLEDGE_BASE, FaultProfile
from .rul_estimator import FailureTimeEstimator
from .types import (
    AlarmHistory,
    AlarmSeverity,
    AnomalyPoint,
    AnomalySeverity,
    FaultDiagnosisResult,
    FaultPattern,
    FaultRiskLevel,
    PatternType,
    Recommendation,
    RecommendationPriority,
    SuspectedFault,
)

AnomalyGroups = Dict[str, List[AnomalyPoint]]
AlarmGroups = Dict[str, List[AlarmHistory]]

PERIODIC_CV_LIMIT = 0.3
GRADUAL_INCREASE_FRACTION = 0.7
IMBALANCE_CONFIDENCE = 0.7
WEAR_CONFIDENCE = 0.65
MAX_SPECIFIC_RECOMMENDATIONS = 3
EVIDENCE_ALARM_DAYS = 30
PROBABILITY_ALARM_DAYS = 7


def group_anomalies(anomalies: Sequence[AnomalyPoint]) -> AnomalyGroups:
    groups: AnomalyGroups = {}
    for anomaly in anomalies:
        groups.setdefault(anomaly.metric_type, []).append(anomaly)
    return groups


def group_alarms(alarms: Sequence[AlarmHistory]) -> AlarmGroups:
    groups: AlarmGroups = {}
    for alarm in alarms:
        groups.setdefault(alarm.metric_type, []).append(alarm)
    return groups


def recent_alarms(
    alarms: Sequence[AlarmHistory], days: float, now: datetime
) -> List[AlarmHistory]:
    cutoff = days_ago(now, days)
    return [a for a in alarms if a.timestamp >= cutoff]


def risk_level_for(probability: float) -> FaultRiskLevel:
    if probability >= 80:
        return FaultRiskLevel.CRITICAL
    if probability >= 60:
        return FaultRiskLevel.HIGH
    if probability >= 30:
        return FaultRiskLevel.MEDIUM
    return FaultRiskLevel.LOW


# ---------------------------------------------------------------------------
# Pattern predicates
# ---------------------------------------------------------------------------


def has_high_anomalies(groups: AnomalyGroups, metric: str, min_count: int) -> bool:
    return sum(1 for a in groups.get(metric, ()) if a.is_high_or_critical) >= min_count


def has_low_anomalies(groups: AnomalyGroups, metric: str, min_count: int) -> bool:
    """At least `min_count` anomalies fell below their series mean."""
    return sum(1 for a in groups.get(metric, ()) if a.value < a.expected_value) >= min_count


def _chronological(anomalies: Sequence[AnomalyPoint]) -> List[AnomalyPoint]:
    return sorted(anomalies, key=lambda a: a.timestamp)


def has_periodic_anomalies(groups: AnomalyGroups, metric: str) -> bool:
    """Heuristic periodicity check: evenly spaced anomaly times.

    The coefficient of variation of the gaps between consecutive anomalies
    must be below 0.3. No frequency analysis is done.
    """
    anomalies = groups.get(metric, [])
    if len(anomalies) < 3:
        return False
    times = [a.timestamp.timestamp() for a in _chronological(anomalies)]
    cv = interval_regularity(times)
    return cv is not None and cv < PERIODIC_CV_LIMIT


def has_gradual_increase(groups: AnomalyGroups, metric: str) -> bool:
    anomalies = groups.get(metric, [])
    if len(anomalies) < 3:
        return False
    values = [a.value for a in _chronological(anomalies)]
    return increasing_fraction(values) > GRADUAL_INCREASE_FRACTION


def pattern_confidence(
    anomaly_groups: AnomalyGroups, metrics: Sequence[str], alarm_groups: AlarmGroups
) -> float:
    confidence = 0.5
    for metric in metrics:
        count = len(anomaly_groups.get(metric, ()))
        if count > 0:
            confidence += 0.1
        if count > 3:
            confidence += 0.1
    for metric in metrics:
        if any(a.severity is AlarmSeverity.CRITICAL for a in alarm_groups.get(metric, ())):
            confidence += 0.15
    return min(1.0, confidence)


class FaultDiagnosticEngine:
    """Match anomalies and alarms against the fault knowledge base.

    Args:
        knowledge_base: Pattern profiles. Defaults to
            ``FAULT_KNOWLEDGE_BASE``.
        estimator: Failure time estimator used for the predicted failure
            date.
    """

    def __init__(
        self,
        knowledge_base: Optional[Mapping[PatternType, FaultProfile]] = None,
        estimator: Optional[FailureTimeEstimator] = None,
    ) -> None:
        self.knowledge_base = knowledge_base if knowledge_base is not None else FAULT_KNOWLEDGE_BASE
        self.estimator = estimator or FailureTimeEstimator()

    def diagnose_faults(
        self,
        anomalies: Sequence[AnomalyPoint],
        alarms: Sequence[AlarmHistory],
        current_soh: float,
        now: Optional[datetime] = None,
    ) -> FaultDiagnosisResult:
        now = ensure_utc(now) if now is not None else utc_now()

        patterns = self.detect_patterns(anomalies, alarms)
        probability = round(self.fault_probability(anomalies, alarms, current_soh, patterns, now), 2)
        risk_level = risk_level_for(probability)
        suspected = self.suspected_faults(patterns, anomalies, alarms, now)
        recommendations = self.recommendations(risk_level, suspected, current_soh)
        predicted = self.estimator.predict(probability, anomalies, current_soh, now)

        return FaultDiagnosisResult(
            fault_probability=probability,
            fault_risk_level=risk_level,
            detected_patterns=patterns,
            suspected_faults=suspected,
            recommendations=recommendations,
            predicted_failure_time=predicted,
            diagnosed_at=now,
        )

    # ------------------------------------------------------------------
    # 1. Pattern detection
    # ------------------------------------------------------------------

    def detect_patterns(
        self, anomalies: Sequence[AnomalyPoint], alarms: Sequence[AlarmHistory]
    ) -> List[FaultPattern]:
        by_metric = group_anomalies(anomalies)
        alarms_by_metric = group_alarms(alarms)
        patterns: List[FaultPattern] = []

        def confidence(*metrics: str) -> float:
            return pattern_confidence(by_metric, metrics, alarms_by_metric)

        if has_high_anomalies(by_metric, "vibration", 2) and has_high_anomalies(
            by_metric, "temperature", 2
        ):
            patterns.append(
                FaultPattern(
                    pattern_type=PatternType.BEARING_FAULT,
                    confidence=confidence("vibration", "temperature"),
                    affected_metrics=("vibration", "temperature"),
                    description="Bearing fault signature: vibration and temperature abnormal together",
                )
            )

        if has_high_anomalies(by_metric, "temperature", 3) and has_low_anomalies(
            by_metric, "pressure", 2
        ):
            patterns.append(
                FaultPattern(
                    pattern_type=PatternType.LUBRICATION_FAILURE,
                    confidence=confidence("temperature", "pressure"),
                    affected_metrics=("temperature", "pressure", "vibration"),
                    description="Lubrication failure signature: temperature rising while pressure drops",
                )
            )

        if has_periodic_anomalies(by_metric, "vibration"):
            patterns.append(
                FaultPattern(
                    pattern_type=PatternType.IMBALANCE,
                    confidence=IMBALANCE_CONFIDENCE,
                    affected_metrics=("vibration", "speed"),
                    description="Rotor imbalance signature: periodic vibration anomalies",
                )
            )

        if has_high_anomalies(by_metric, "current", 2) or has_high_anomalies(
            by_metric, "voltage", 2
        ):
            patterns.append(
                FaultPattern(
                    pattern_type=PatternType.ELECTRICAL_FAULT,
                    confidence=confidence("current", "voltage"),
                    affected_metrics=("current", "voltage", "power"),
                    description="Electrical fault signature: abnormal current or voltage",
                )
            )

        if has_high_anomalies(by_metric, "current", 3) and has_high_anomalies(
            by_metric, "temperature", 2
        ):
            patterns.append(
                FaultPattern(
                    pattern_type=PatternType.OVERLOAD,
                    confidence=confidence("current", "temperature"),
                    affected_metrics=("current", "temperature", "speed"),
                    description="Overload signature: current and temperature persistently high",
                )
            )

        if has_gradual_increase(by_metric, "vibration"):
            patterns.append(
                FaultPattern(
                    pattern_type=PatternType.WEAR_DEGRADATION,
                    confidence=WEAR_CONFIDENCE,
                    affected_metrics=("vibration", "temperature"),
                    description="Wear degradation signature: vibration gradually increasing",
                )
            )

        return patterns

    # ------------------------------------------------------------------
    # 2. Fault probability
    # ------------------------------------------------------------------

    def fault_probability(
        self,
        anomalies: Sequence[AnomalyPoint],
        alarms: Sequence[AlarmHistory],
        current_soh: float,
        patterns: Sequence[FaultPattern],
        now: datetime,
    ) -> float:
        probability = 0.0

        if current_soh < 40:
            probability += 50
        elif current_soh < 60:
            probability += 30
        elif current_soh < 80:
            probability += 10

        probability += 5 * sum(1 for a in anomalies if a.severity is AnomalySeverity.CRITICAL)
        probability += 2 * sum(1 for a in anomalies if a.severity is AnomalySeverity.HIGH)

        critical_recent = sum(
            1
            for a in recent_alarms(alarms, PROBABILITY_ALARM_DAYS, now)
            if a.severity is AlarmSeverity.CRITICAL
        )
        probability += min(20, 3 * critical_recent)

        if patterns:
            probability += 20 * max(p.confidence for p in patterns)

        return min(100.0, probability)

    # ------------------------------------------------------------------
    # 4. Suspected faults
    # ------------------------------------------------------------------

    def suspected_faults(
        self,
        patterns: Sequence[FaultPattern],
        anomalies: Sequence[AnomalyPoint],
        alarms: Sequence[AlarmHistory],
        now: datetime,
    ) -> List[SuspectedFault]:
        window_alarms = recent_alarms(alarms, EVIDENCE_ALARM_DAYS, now)
        faults: List[SuspectedFault] = []

        for pattern in patterns:
            profile = self.knowledge_base.get(pattern.pattern_type)
            if profile is None:
                continue

            evidences: List[str] = []
            for metric in pattern.affected_metrics:
                count = sum(1 for a in anomalies if a.metric_type == metric)
                if count > 0:
                    evidences.append(f"{metric} had {count} anomalies")

            related = sum(1 for a in window_alarms if a.metric_type in pattern.affected_metrics)
            if related > 0:
                evidences.append(
                    f"{related} related alarms in the last {EVIDENCE_ALARM_DAYS} days"
                )

            faults.append(
                SuspectedFault(
                    fault_type=profile.display_name,
                    pattern_type=pattern.pattern_type,
                    probability=pattern.confidence * 100.0,
                    root_causes=profile.root_causes,
                    evidences=tuple(evidences),
                )
            )

        # sorted() is stable, so equal probabilities keep detection order.
        return sorted(faults, key=lambda f: f.probability, reverse=True)

    # ------------------------------------------------------------------
    # 5. Recommendations
    # ------------------------------------------------------------------

    def recommendations(
        self,
        risk_level: FaultRiskLevel,
        suspected: Sequence[SuspectedFault],
        current_soh: float,
    ) -> List[Recommendation]:
        recs: List[Recommendation] = []

        if risk_level is FaultRiskLevel.CRITICAL:
            recs.append(
                Recommendation(
                    priority=RecommendationPriority.IMMEDIATE,
                    action="Stop the equipment immediately and inspect it to prevent further damage",
                    reason="Fault risk is very high; continued operation may cause serious damage",
                )
            )
            recs.append(
                Recommendation(
                    priority=RecommendationPriority.IMMEDIATE,
                    action="Contact qualified maintenance staff for an emergency diagnosis",
                    reason="A detailed inspection and repair by specialists is required",
                )
            )
        elif risk_level is FaultRiskLevel.HIGH:
            recs.append(
                Recommendation(
                    priority=RecommendationPriority.URGENT,
                    action="Schedule a maintenance shutdown window as soon as possible",
                    reason="Fault risk is high; complete the repair within 72 hours",
                )
            )
        elif risk_level is FaultRiskLevel.MEDIUM:
            recs.append(
                Recommendation(
                    priority=RecommendationPriority.NORMAL,
                    action="Plan a detailed inspection at the next maintenance cycle",
                    reason="Potential fault risk; arrange an inspection within 2 weeks",
                )
            )

        for fault in suspected[:MAX_SPECIFIC_RECOMMENDATIONS]:
            profile = self.knowledge_base.get(fault.pattern_type)
            if profile is None or profile.action is None:
                continue
            priority = profile.action_priority
            if profile.escalate_when_critical and risk_level is FaultRiskLevel.CRITICAL:
                priority = RecommendationPriority.IMMEDIATE
            recs.append(
                Recommendation(
                    priority=priority,
                    action=profile.action,
                    reason=(
                        f"{profile.display_name} signature detected "
                        f"(probability {fault.probability:.1f}%)"
                    ),
                )
            )

        if current_soh < 50:
            recs.append(
                Recommendation(
                    priority=RecommendationPriority.URGENT,
                    action="Carry out a full health assessment and system inspection",
                    reason=f"Current state of health is only {current_soh}%; a full overhaul is needed",
                )
            )

        recs.append(
            Recommendation(
                priority=RecommendationPriority.LOW,
                action="Increase monitoring frequency and establish trend analysis",
                reason="Continuous monitoring catches problems early and avoids sudden failures",
            )
        )
        return recs
