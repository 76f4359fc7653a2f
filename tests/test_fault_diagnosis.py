"""Tests for the rule-based fault diagnostic engine."""

from datetime import timedelta

import pytest

import ship_health
from ship_health.phm.fault_diagnosis import (
    FaultDiagnosticEngine,
    pattern_confidence,
    group_alarms,
    group_anomalies,
    risk_level_for,
)
from ship_health.phm.knowledge_base import FAULT_KNOWLEDGE_BASE
from ship_health.phm.types import (
    FaultRiskLevel,
    PatternType,
    RecommendationPriority,
)


@pytest.fixture
def engine():
    return FaultDiagnosticEngine()


@pytest.fixture
def bearing_anomalies(make_anomaly):
    return [
        make_anomaly("vibration", 7.5, "critical", expected=2.5, hours_ago=4),
        make_anomaly("vibration", 7.8, "critical", expected=2.5, hours_ago=3),
        make_anomaly("temperature", 95.0, "high", expected=70.0, hours_ago=2),
        make_anomaly("temperature", 98.0, "high", expected=70.0, hours_ago=1),
    ]


def pattern_types(result):
    return [p.pattern_type for p in result.detected_patterns]


def test_quiet_equipment(engine, now):
    result = engine.diagnose_faults([], [], 95.0, now=now)
    assert result.fault_risk_level is FaultRiskLevel.LOW
    assert result.detected_patterns == []
    assert result.suspected_faults == []
    assert result.fault_probability < 20
    assert result.predicted_failure_time is None
    assert [r.priority for r in result.recommendations] == [RecommendationPriority.LOW]
    assert result.diagnosed_at == now


class TestBearingFault:
    def test_detected(self, engine, bearing_anomalies, make_alarm, now):
        alarms = [make_alarm("vibration", "critical")]
        result = engine.diagnose_faults(bearing_anomalies, alarms, 70.0, now=now)

        bearing = [p for p in result.detected_patterns if p.pattern_type is PatternType.BEARING_FAULT]
        assert len(bearing) == 1
        assert {"vibration", "temperature"} <= set(bearing[0].affected_metrics)
        # base 0.5, +0.1 per anomalous metric, +0.15 for the critical vibration alarm
        assert bearing[0].confidence == pytest.approx(0.85)

    def test_probability_and_prediction(self, engine, bearing_anomalies, make_alarm, now):
        alarms = [make_alarm("vibration", "critical")]
        result = engine.diagnose_faults(bearing_anomalies, alarms, 70.0, now=now)

        # 10 (SOH) + 2*5 + 2*2 + 3 (recent critical alarm) + 0.85*20
        assert result.fault_probability == pytest.approx(44.0)
        assert result.fault_risk_level is FaultRiskLevel.MEDIUM
        # 56 remaining at 2%/day (4 anomalies in the last week)
        assert result.predicted_failure_time == now + timedelta(days=28)

    def test_suspected_fault(self, engine, bearing_anomalies, make_alarm, now):
        alarms = [make_alarm("vibration", "critical")]
        result = engine.diagnose_faults(bearing_anomalies, alarms, 70.0, now=now)

        fault = result.suspected_faults[0]
        assert fault.pattern_type is PatternType.BEARING_FAULT
        assert fault.fault_type == "Bearing fault"
        assert fault.probability == pytest.approx(85.0)
        assert len(fault.root_causes) == 3
        assert fault.evidences == (
            "vibration had 2 anomalies",
            "temperature had 2 anomalies",
            "1 related alarms in the last 30 days",
        )

    def test_recommendations(self, engine, bearing_anomalies, make_alarm, now):
        alarms = [make_alarm("vibration", "critical")]
        result = engine.diagnose_faults(bearing_anomalies, alarms, 70.0, now=now)
        assert [r.priority for r in result.recommendations] == [
            RecommendationPriority.NORMAL,
            RecommendationPriority.URGENT,
            RecommendationPriority.LOW,
        ]
        assert "bearing" in result.recommendations[1].action

    def test_escalates_when_critical(self, engine, bearing_anomalies, make_alarm, now):
        alarms = [make_alarm("vibration", "critical")]
        result = engine.diagnose_faults(bearing_anomalies, alarms, 30.0, now=now)

        assert result.fault_probability == pytest.approx(84.0)
        assert result.fault_risk_level is FaultRiskLevel.CRITICAL
        assert [r.priority for r in result.recommendations] == [
            RecommendationPriority.IMMEDIATE,
            RecommendationPriority.IMMEDIATE,
            RecommendationPriority.IMMEDIATE,
            RecommendationPriority.URGENT,
            RecommendationPriority.LOW,
        ]
        # 16 remaining at 2 * 1.5 %/day
        assert result.predicted_failure_time == now + timedelta(days=6)


def test_high_risk_schedules_shutdown(engine, make_anomaly, now):
    anomalies = [make_anomaly("speed", 1900.0, "critical", hours_ago=i + 1) for i in range(6)]
    result = engine.diagnose_faults(anomalies, [], 55.0, now=now)
    # 30 for SOH below 60, 5 per critical anomaly
    assert result.fault_probability == 60.0
    assert result.fault_risk_level is FaultRiskLevel.HIGH
    assert result.detected_patterns == []
    assert [r.priority for r in result.recommendations] == [
        RecommendationPriority.URGENT,
        RecommendationPriority.LOW,
    ]
    assert result.recommendations[0].action == "Schedule a maintenance shutdown window as soon as possible"
    # 40 points left at 3/day, raised by a fifth for SOH below 60
    assert result.predicted_failure_time == now + timedelta(days=12)


def test_lubrication_failure(engine, make_anomaly, now):
    anomalies = [
        make_anomaly("temperature", 96.0, "high", expected=70.0, hours_ago=h) for h in (1, 2, 3)
    ] + [
        make_anomaly("pressure", 0.2, "medium", expected=0.5, hours_ago=h) for h in (1, 2)
    ]
    result = engine.diagnose_faults(anomalies, [], 85.0, now=now)

    assert pattern_types(result) == [PatternType.LUBRICATION_FAILURE]
    pattern = result.detected_patterns[0]
    assert pattern.affected_metrics == ("temperature", "pressure", "vibration")
    assert pattern.confidence == pytest.approx(0.7)


def test_pressure_above_expected_is_not_lubrication(engine, make_anomaly, now):
    anomalies = [
        make_anomaly("temperature", 96.0, "high", expected=70.0, hours_ago=h) for h in (1, 2, 3)
    ] + [
        make_anomaly("pressure", 0.8, "medium", expected=0.5, hours_ago=h) for h in (1, 2)
    ]
    result = engine.diagnose_faults(anomalies, [], 85.0, now=now)
    assert PatternType.LUBRICATION_FAILURE not in pattern_types(result)


def test_imbalance_from_evenly_spaced_anomalies(engine, make_anomaly, now):
    anomalies = [make_anomaly("vibration", 5.0, "medium", hours_ago=h) for h in (24, 18, 12, 6)]
    result = engine.diagnose_faults(anomalies, [], 90.0, now=now)

    assert pattern_types(result) == [PatternType.IMBALANCE]
    assert result.detected_patterns[0].confidence == pytest.approx(0.7)
    assert result.detected_patterns[0].affected_metrics == ("vibration", "speed")


def test_wear_degradation_has_no_specific_action(engine, make_anomaly, now):
    # irregular spacing, steadily increasing values
    anomalies = [
        make_anomaly("vibration", v, "medium", hours_ago=h)
        for v, h in ((5.0, 21), (6.0, 20), (7.0, 16), (8.0, 1))
    ]
    result = engine.diagnose_faults(anomalies, [], 90.0, now=now)

    assert pattern_types(result) == [PatternType.WEAR_DEGRADATION]
    assert result.fault_probability == pytest.approx(13.0)
    assert [r.priority for r in result.recommendations] == [RecommendationPriority.LOW]


def test_electrical_fault_from_voltage_alone(engine, make_anomaly, now):
    anomalies = [make_anomaly("voltage", 430.0, "high", expected=400.0, hours_ago=h) for h in (1, 5)]
    result = engine.diagnose_faults(anomalies, [], 90.0, now=now)
    assert pattern_types(result) == [PatternType.ELECTRICAL_FAULT]


def test_overload_ranks_above_electrical(engine, make_anomaly, now):
    anomalies = [
        make_anomaly("current", 135.0, "high", expected=100.0, hours_ago=h) for h in (1, 5, 7)
    ] + [
        make_anomaly("temperature", 101.0, "critical", expected=70.0, hours_ago=h) for h in (2, 9)
    ]
    result = engine.diagnose_faults(anomalies, [], 90.0, now=now)

    assert pattern_types(result) == [PatternType.ELECTRICAL_FAULT, PatternType.OVERLOAD]
    assert [f.pattern_type for f in result.suspected_faults] == [
        PatternType.OVERLOAD,
        PatternType.ELECTRICAL_FAULT,
    ]
    assert [f.probability for f in result.suspected_faults] == pytest.approx([70.0, 60.0])


def test_at_most_three_fault_specific_actions(engine, make_anomaly, now):
    anomalies = (
        [make_anomaly("vibration", 8.0, "critical", hours_ago=h) for h in (4, 3, 2, 1)]
        + [make_anomaly("temperature", 99.0, "high", hours_ago=h) for h in (1.5, 5)]
        + [make_anomaly("current", 135.0, "high", hours_ago=h) for h in (1.2, 6, 11)]
    )
    result = engine.diagnose_faults(anomalies, [], 90.0, now=now)

    assert len(result.suspected_faults) == 4
    actions = {p.action for p in FAULT_KNOWLEDGE_BASE.values() if p.action}
    assert sum(1 for r in result.recommendations if r.action in actions) == 3


def test_pattern_confidence_capped(make_anomaly, make_alarm):
    anomalies = [make_anomaly(m, 10.0, "critical") for m in ("current", "voltage") for _ in range(5)]
    alarms = [make_alarm("current"), make_alarm("voltage")]
    confidence = pattern_confidence(
        group_anomalies(anomalies), ("current", "voltage"), group_alarms(alarms)
    )
    assert confidence == 1.0


def test_lower_soh_never_lowers_probability(engine, bearing_anomalies, now):
    high = engine.diagnose_faults(bearing_anomalies, [], 85.0, now=now)
    low = engine.diagnose_faults(bearing_anomalies, [], 35.0, now=now)
    assert low.fault_probability > high.fault_probability


def test_recent_alarms_weigh_more(engine, make_alarm, now):
    recent = [make_alarm("vibration", "critical", days_ago=d) for d in range(10)]
    old = [make_alarm("vibration", "critical", days_ago=30 + d) for d in range(10)]
    assert (
        engine.diagnose_faults([], recent, 85.0, now=now).fault_probability
        > engine.diagnose_faults([], old, 85.0, now=now).fault_probability
    )


def test_no_prediction_below_threshold(engine, now):
    result = engine.diagnose_faults([], [], 75.0, now=now)
    assert result.fault_probability == pytest.approx(10.0)
    assert result.predicted_failure_time is None


def test_prediction_strictly_after_now_at_full_probability(engine, make_anomaly, now):
    anomalies = [make_anomaly("speed", 2500.0, "critical", hours_ago=200) for _ in range(20)]
    result = engine.diagnose_faults(anomalies, [], 30.0, now=now)
    assert result.fault_probability == 100.0
    assert result.predicted_failure_time > now


@pytest.mark.parametrize(
    "probability,level",
    [
        (80.0, FaultRiskLevel.CRITICAL),
        (79.9, FaultRiskLevel.HIGH),
        (60.0, FaultRiskLevel.HIGH),
        (30.0, FaultRiskLevel.MEDIUM),
        (29.9, FaultRiskLevel.LOW),
    ],
)
def test_risk_levels(probability, level):
    assert risk_level_for(probability) is level


def test_knowledge_base_is_exhaustive():
    assert set(FAULT_KNOWLEDGE_BASE) == set(PatternType)
    for profile in FAULT_KNOWLEDGE_BASE.values():
        assert profile.indicator_metrics
        assert len(profile.root_causes) == 3
        assert profile.thresholds


def test_deterministic_given_now(engine, bearing_anomalies, make_alarm, now):
    alarms = [make_alarm("vibration", "critical")]
    first = engine.diagnose_faults(bearing_anomalies, alarms, 55.0, now=now)
    second = engine.diagnose_faults(bearing_anomalies, alarms, 55.0, now=now)
    assert first.to_dict() == second.to_dict()


def test_package_entry_point(bearing_anomalies, now):
    result = ship_health.diagnose_faults(bearing_anomalies, [], 70.0, now=now)
    assert PatternType.BEARING_FAULT in pattern_types(result)
