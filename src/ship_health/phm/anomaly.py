"""Statistical anomaly detection over grouped metric series.

Each series is compared against its own full-window baseline: the mean and
population standard deviation are recomputed from scratch on every call, so
this is a static detector rather than an online one.

Severity bands (deviation from the mean, in standard deviations):

    > 3.0 sigma   critical
    > 2.0 sigma   high
    > 1.5 sigma   medium
    otherwise     low (dropped)
"""

from __future__ import annotations

from typing import List, Mapping, Sequence

from .feature_eng import extract_features
from .types import AnomalyPoint, AnomalySeverity, MetricDataPoint

CRITICAL_SIGMA = 3.0
HIGH_SIGMA = 2.0
MEDIUM_SIGMA = 1.5


def classify_deviation(deviation: float, std: float) -> AnomalySeverity:
    """Map an absolute deviation from the mean to a severity band."""
    if deviation > CRITICAL_SIGMA * std:
        return AnomalySeverity.CRITICAL
    if deviation > HIGH_SIGMA * std:
        return AnomalySeverity.HIGH
    if deviation > MEDIUM_SIGMA * std:
        return AnomalySeverity.MEDIUM
    return AnomalySeverity.LOW


class AnomalyDetector:
    """Flag readings far from their series mean.

    Args:
        min_points: Series shorter than this are skipped as carrying too
            little signal.
    """

    def __init__(self, min_points: int = 3) -> None:
        if min_points < 2:
            raise ValueError("min_points must be at least 2")
        self.min_points = min_points

    def detect(self, groups: Mapping[str, Sequence[MetricDataPoint]]) -> List[AnomalyPoint]:
        anomalies: List[AnomalyPoint] = []
        for metric_type, points in groups.items():
            anomalies.extend(self.detect_series(metric_type, points))
        return anomalies

    def detect_series(
        self, metric_type: str, points: Sequence[MetricDataPoint]
    ) -> List[AnomalyPoint]:
        if len(points) < self.min_points:
            return []

        feats = extract_features([p.value for p in points])
        mean, std = feats["mean"], feats["std"]

        found: List[AnomalyPoint] = []
        for point in points:
            deviation = abs(point.value - mean)
            severity = classify_deviation(deviation, std)
            if severity is AnomalySeverity.LOW:
                continue
            deviation_percent = deviation / abs(mean) * 100.0 if mean != 0.0 else 0.0
            found.append(
                AnomalyPoint(
                    timestamp=point.timestamp,
                    metric_type=metric_type,
                    value=point.value,
                    expected_value=mean,
                    deviation_percent=deviation_percent,
                    severity=severity,
                )
            )
        return found
