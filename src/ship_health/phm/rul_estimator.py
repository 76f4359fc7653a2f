"""Failure time estimation from the overall fault probability.

The estimator treats ``100 - fault_probability`` as the remaining margin
before failure and consumes it at a constant daily deterioration rate. The
rate rises with the number of recent anomalies and with poor SOH, giving
a coarse linear extrapolation rather than a probabilistic RUL.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta
from typing import Optional, Sequence

from ship_health.utils.timeutils import days_between, ensure_utc

from .types import AnomalyPoint

PREDICTION_THRESHOLD = 30.0
RECENT_ANOMALY_DAYS = 7.0


class FailureTimeEstimator:
    """Linear extrapolation of the failure date.

    Parameters
    ----------
    base_rate : float
        Deterioration in probability points per day with few recent
        anomalies.
    moderate_rate : float
        Rate once more than 2 anomalies fell in the last 7 days.
    rapid_rate : float
        Rate once more than 5 anomalies fell in the last 7 days.
    """

    def __init__(
        self,
        base_rate: float = 1.0,
        moderate_rate: float = 2.0,
        rapid_rate: float = 3.0,
    ) -> None:
        self.base_rate = base_rate
        self.moderate_rate = moderate_rate
        self.rapid_rate = rapid_rate

    def deterioration_rate(
        self, anomalies: Sequence[AnomalyPoint], current_soh: float, now: datetime
    ) -> float:
        recent = sum(
            1 for a in anomalies if days_between(a.timestamp, now) <= RECENT_ANOMALY_DAYS
        )
        if recent > 5:
            rate = self.rapid_rate
        elif recent > 2:
            rate = self.moderate_rate
        else:
            rate = self.base_rate

        if current_soh < 40:
            rate *= 1.5
        elif current_soh < 60:
            rate *= 1.2
        return rate

    def days_to_failure(
        self,
        fault_probability: float,
        anomalies: Sequence[AnomalyPoint],
        current_soh: float,
        now: datetime,
    ) -> int:
        remaining = max(0.0, 100.0 - fault_probability)
        rate = self.deterioration_rate(anomalies, current_soh, now)
        return max(1, math.ceil(remaining / rate))

    def predict(
        self,
        fault_probability: float,
        anomalies: Sequence[AnomalyPoint],
        current_soh: float,
        now: datetime,
    ) -> Optional[datetime]:
        """Predicted failure date, or None when the probability is below 30."""
        if fault_probability < PREDICTION_THRESHOLD:
            return None
        now = ensure_utc(now)
        days = self.days_to_failure(fault_probability, anomalies, current_soh, now)
        return now + timedelta(days=days)
