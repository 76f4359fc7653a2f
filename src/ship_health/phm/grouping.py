"""Group flat sensor readings into per-metric series."""

from __future__ import annotations

from typing import Dict, Iterable, List

from .types import MetricDataPoint

MetricGroups = Dict[str, List[MetricDataPoint]]


def group_readings(readings: Iterable[MetricDataPoint]) -> MetricGroups:
    """Group readings by metric type.

    Nothing is filtered or re-sorted: each group keeps the order in which its
    readings arrived, so callers must supply readings in ascending time order
    for the trend math downstream to be meaningful.
    """
    groups: MetricGroups = {}
    for reading in readings:
        groups.setdefault(reading.metric_type, []).append(reading)
    return groups


class MetricGrouper:
    def group(self, readings: Iterable[MetricDataPoint]) -> MetricGroups:
        return group_readings(readings)
