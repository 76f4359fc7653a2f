"""State of Health (SOH) scoring.

SOH summarises the current condition of a piece of equipment on a 0-100
scale. Each monitored metric is scored from the band its mean value falls
in, discounted for instability, and the per-metric scores are combined
into a weighted average:

    score_m   = base_band_score(mean_m) * (0.8 + 0.2 * stability_m)
    stability = max(0, 1 - std_m / mean_m)
    soh       = 100 * sum(score_m * w_m) / sum(w_m)

Confidence rewards metric breadth (up to seven tracked metric types) and
data volume (up to 100 readings) independently.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Sequence, Tuple

from .feature_eng import extract_features
from .types import MetricContribution, MetricDataPoint, SOHResult

Band = Tuple[float, float]


@dataclass(frozen=True)
class MetricThreshold:
    """Inclusive value bands for one metric type, checked best first."""

    optimal: Band
    normal: Band
    warning: Band
    critical: Band

    def base_score(self, value: float) -> float:
        if _within(value, self.optimal):
            return OPTIMAL_SCORE
        if _within(value, self.normal):
            return NORMAL_SCORE
        if _within(value, self.warning):
            return WARNING_SCORE
        return CRITICAL_SCORE


def _within(value: float, band: Band) -> bool:
    return band[0] <= value <= band[1]


OPTIMAL_SCORE = 0.95
NORMAL_SCORE = 0.80
WARNING_SCORE = 0.55
CRITICAL_SCORE = 0.20
NEUTRAL_SCORE = 0.50

FALLBACK_WEIGHT = 0.05
TRACKED_METRIC_COUNT = 7
SUFFICIENT_DATA_POINTS = 100

DEFAULT_WEIGHTS: Mapping[str, float] = MappingProxyType(
    {
        "vibration": 0.25,
        "temperature": 0.20,
        "pressure": 0.15,
        "speed": 0.15,
        "current": 0.10,
        "voltage": 0.10,
        "power": 0.05,
    }
)

DEFAULT_THRESHOLDS: Mapping[str, MetricThreshold] = MappingProxyType(
    {
        # mm/s RMS
        "vibration": MetricThreshold(
            optimal=(0.0, 2.5), normal=(2.5, 4.5), warning=(4.5, 7.1), critical=(7.1, 100.0)
        ),
        # degrees C
        "temperature": MetricThreshold(
            optimal=(60.0, 75.0), normal=(55.0, 85.0), warning=(45.0, 95.0), critical=(0.0, 110.0)
        ),
        # MPa
        "pressure": MetricThreshold(
            optimal=(0.4, 0.6), normal=(0.3, 0.7), warning=(0.2, 0.8), critical=(0.0, 1.0)
        ),
        # rpm
        "speed": MetricThreshold(
            optimal=(1400.0, 1600.0),
            normal=(1300.0, 1700.0),
            warning=(1200.0, 1800.0),
            critical=(0.0, 2000.0),
        ),
    }
)

UNKNOWN_METRIC_POLICIES = ("neutral", "vibration")


class SOHCalculator:
    """Weighted, threshold-based SOH calculator.

    Args:
        thresholds: Band table per metric type. Defaults to
            ``DEFAULT_THRESHOLDS``.
        default_weights: Weight table used when ``calculate_soh`` is not
            given one. Defaults to ``DEFAULT_WEIGHTS``.
        unknown_metric_policy: How to score a metric with no band table.
            ``"neutral"`` gives it a base score of 0.5; ``"vibration"``
            borrows the vibration bands.
    """

    def __init__(
        self,
        thresholds: Optional[Mapping[str, MetricThreshold]] = None,
        default_weights: Optional[Mapping[str, float]] = None,
        unknown_metric_policy: str = "neutral",
    ) -> None:
        if unknown_metric_policy not in UNKNOWN_METRIC_POLICIES:
            raise ValueError(
                f"unknown_metric_policy must be one of {UNKNOWN_METRIC_POLICIES}, "
                f"got {unknown_metric_policy!r}"
            )
        self.thresholds = dict(thresholds) if thresholds is not None else dict(DEFAULT_THRESHOLDS)
        self.default_weights = (
            dict(default_weights) if default_weights is not None else dict(DEFAULT_WEIGHTS)
        )
        self.unknown_metric_policy = unknown_metric_policy

    def calculate_soh(
        self,
        groups: Mapping[str, Sequence[MetricDataPoint]],
        weights: Optional[Mapping[str, float]] = None,
    ) -> SOHResult:
        """Score every non-empty metric series and aggregate them.

        A supplied ``weights`` table replaces the defaults outright; metrics
        it does not mention get a weight of 0.05.
        """
        weight_table = weights if weights is not None else self.default_weights

        contributions: Dict[str, MetricContribution] = {}
        total_weighted = 0.0
        total_weight = 0.0
        point_count = 0

        for metric_type, points in groups.items():
            if not points:
                continue
            weight = float(weight_table.get(metric_type, FALLBACK_WEIGHT))
            score = self.metric_health_score(metric_type, [p.value for p in points])
            contribution = score * weight
            contributions[metric_type] = MetricContribution(
                score=score, weight=weight, contribution=contribution
            )
            total_weighted += contribution
            total_weight += weight
            point_count += len(points)

        soh = total_weighted / total_weight * 100.0 if total_weight > 0 else 0.0
        confidence = self.confidence(len(contributions), point_count)

        return SOHResult(
            soh=round(max(0.0, min(100.0, soh)), 2),
            confidence=round(confidence, 2),
            contributions=contributions,
        )

    def metric_health_score(self, metric_type: str, values: Sequence[float]) -> float:
        """Health score in [0, 1] for one metric's readings."""
        feats = extract_features(values)
        mean, std = feats["mean"], feats["std"]

        threshold = self.thresholds.get(metric_type)
        if threshold is None and self.unknown_metric_policy == "vibration":
            threshold = self.thresholds.get("vibration", DEFAULT_THRESHOLDS["vibration"])
        base = threshold.base_score(mean) if threshold is not None else NEUTRAL_SCORE

        stability = max(0.0, 1.0 - std / mean) if mean != 0.0 else 0.0
        adjusted = base * (0.8 + 0.2 * stability)
        return max(0.0, min(1.0, adjusted))

    @staticmethod
    def confidence(metric_count: int, point_count: int) -> float:
        coverage = min(1.0, metric_count / TRACKED_METRIC_COUNT)
        volume = min(1.0, point_count / SUFFICIENT_DATA_POINTS)
        return 0.6 * coverage + 0.4 * volume
