"""Static fault-pattern knowledge base.

Each known fault pattern maps to a profile describing which metrics
indicate it, the reference thresholds for those metrics, the symptoms an
operator would observe, likely root causes, and the maintenance action to
recommend when the pattern is suspected.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from .types import PatternType, RecommendationPriority


@dataclass(frozen=True)
class FaultProfile:
    display_name: str
    indicator_metrics: Tuple[str, ...]
    thresholds: Mapping[str, float]
    symptoms: Tuple[str, ...]
    root_causes: Tuple[str, ...]
    # Follow-up action for a suspected fault; None means no specific action.
    action: Optional[str] = None
    action_priority: RecommendationPriority = RecommendationPriority.NORMAL
    # Bearing faults escalate to immediate when overall risk is critical.
    escalate_when_critical: bool = False


FAULT_KNOWLEDGE_BASE: Mapping[PatternType, FaultProfile] = MappingProxyType(
    {
        PatternType.BEARING_FAULT: FaultProfile(
            display_name="Bearing fault",
            indicator_metrics=("vibration", "temperature"),
            thresholds=MappingProxyType({"vibration": 7.0, "temperature": 90.0}),
            symptoms=("rising vibration", "persistently rising temperature", "abnormal noise"),
            root_causes=(
                "Bearing wear or damage",
                "Poor bearing lubrication",
                "Improper bearing installation",
            ),
            action="Inspect and replace the bearing, and make sure it is properly lubricated",
            action_priority=RecommendationPriority.URGENT,
            escalate_when_critical=True,
        ),
        PatternType.LUBRICATION_FAILURE: FaultProfile(
            display_name="Lubrication failure",
            indicator_metrics=("temperature", "vibration", "pressure"),
            thresholds=MappingProxyType({"temperature": 95.0, "vibration": 5.0, "pressure": 0.3}),
            symptoms=("abnormal temperature rise", "pressure drop", "increased vibration"),
            root_causes=(
                "Insufficient lubricating oil",
                "Degraded lubricating oil",
                "Lubrication system fault",
            ),
            action="Check the lubrication system and top up or replace the oil",
            action_priority=RecommendationPriority.URGENT,
        ),
        PatternType.IMBALANCE: FaultProfile(
            display_name="Rotor imbalance",
            indicator_metrics=("vibration", "speed"),
            thresholds=MappingProxyType({"vibration": 6.0}),
            symptoms=("periodic vibration", "vibration peaks at a characteristic frequency"),
            root_causes=("Rotor imbalance", "Blade damage", "Installation misalignment"),
            action="Perform dynamic balancing and inspect the rotor assembly",
            action_priority=RecommendationPriority.NORMAL,
        ),
        PatternType.ELECTRICAL_FAULT: FaultProfile(
            display_name="Electrical fault",
            indicator_metrics=("current", "voltage", "power"),
            thresholds=MappingProxyType({"current": 120.0, "voltage": 420.0}),
            symptoms=("current fluctuation", "unstable voltage", "abnormal power draw"),
            root_causes=(
                "Loose electrical connections",
                "Insulation aging",
                "Control system fault",
            ),
            action="Inspect the electrical system and test insulation and connections",
            action_priority=RecommendationPriority.URGENT,
        ),
        PatternType.OVERLOAD: FaultProfile(
            display_name="Overload",
            indicator_metrics=("current", "temperature", "speed"),
            thresholds=MappingProxyType({"current": 130.0, "temperature": 100.0, "speed": 1800.0}),
            symptoms=("excessive current", "rising temperature", "abnormal speed"),
            root_causes=(
                "Excessive load",
                "Insufficient cooling",
                "Improper operating parameters",
            ),
            action="Check the load and optimise operating parameters",
            action_priority=RecommendationPriority.NORMAL,
        ),
        PatternType.WEAR_DEGRADATION: FaultProfile(
            display_name="Wear degradation",
            indicator_metrics=("vibration", "temperature"),
            thresholds=MappingProxyType({"vibration": 5.5, "temperature": 85.0}),
            symptoms=("gradually increasing vibration", "falling efficiency", "increasing noise"),
            root_causes=(
                "Normal wear and aging",
                "Harsh operating environment",
                "Delayed maintenance",
            ),
        ),
    }
)


def get_profile(pattern_type: PatternType) -> FaultProfile:
    return FAULT_KNOWLEDGE_BASE[PatternType(pattern_type)]
