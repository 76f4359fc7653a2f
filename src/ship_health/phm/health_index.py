"""Composite health index evaluation.

The health index blends four factor scores, each on a 0-100 scale:

- SOH: the current state of health, used as-is.
- Trend: direction and stability of recent SOH samples.
- Alarm: alarm frequency per 100 running hours and the critical share.
- Maintenance: maintenance frequency over the equipment's age and how
  recently it was last serviced.

Grades: >=90 Excellent, >=75 Good, >=60 Fair, >=40 Poor, else Critical.
"""

from __future__ import annotations

import math
from dataclasses import replace
from datetime import datetime
from typing import List, Mapping, Optional, Sequence, Union

from ship_health.utils.timeutils import days_between, ensure_utc, utc_now

from .feature_eng import coefficient_of_variation, linear_trend_slope, recent_change_rate
from .types import (
    EquipmentStatistics,
    HealthFactors,
    HealthGrade,
    HealthIndexResult,
    HealthIndexWeights,
    SOHTrendPoint,
)

DEFAULT_HEALTH_INDEX_WEIGHTS = HealthIndexWeights()

NEUTRAL_TREND_SCORE = 70.0
TREND_SLOPE_THRESHOLD = 0.1  # SOH points per day
RECENT_WINDOW = 5
SHARP_DECLINE_PERCENT = -5.0
DAYS_PER_YEAR = 365.0
WEIGHT_SUM_TOLERANCE = 1e-6

WeightsLike = Union[HealthIndexWeights, Mapping[str, float]]


def resolve_weights(weights: Optional[WeightsLike]) -> HealthIndexWeights:
    """Merge a partial weight override onto the defaults.

    Weights that do not sum to 1 are rescaled so that they do. Negative
    weights, or weights that are all zero, raise ``ValueError``.
    """
    if weights is None:
        return DEFAULT_HEALTH_INDEX_WEIGHTS
    if isinstance(weights, HealthIndexWeights):
        resolved = weights
    else:
        unknown = set(weights) - {"soh", "trend", "alarm", "maintenance"}
        if unknown:
            raise ValueError(f"Unknown health index weight(s): {sorted(unknown)}")
        resolved = replace(DEFAULT_HEALTH_INDEX_WEIGHTS, **{k: float(v) for k, v in weights.items()})

    if min(resolved.soh, resolved.trend, resolved.alarm, resolved.maintenance) < 0:
        raise ValueError(f"Health index weights must be non-negative, got {resolved}")
    total = resolved.total
    if total <= 0:
        raise ValueError("Health index weights must not all be zero")
    if math.isclose(total, 1.0, abs_tol=WEIGHT_SUM_TOLERANCE):
        return resolved
    return HealthIndexWeights(
        soh=resolved.soh / total,
        trend=resolved.trend / total,
        alarm=resolved.alarm / total,
        maintenance=resolved.maintenance / total,
    )


def grade_for(health_index: float) -> HealthGrade:
    if health_index >= 90:
        return HealthGrade.EXCELLENT
    if health_index >= 75:
        return HealthGrade.GOOD
    if health_index >= 60:
        return HealthGrade.FAIR
    if health_index >= 40:
        return HealthGrade.POOR
    return HealthGrade.CRITICAL


def _clamp(value: float) -> float:
    return max(0.0, min(100.0, value))


class HealthIndexEvaluator:
    """Evaluate the composite health index for one piece of equipment."""

    def evaluate_health_index(
        self,
        current_soh: float,
        soh_trend: Sequence[SOHTrendPoint],
        stats: EquipmentStatistics,
        weights: Optional[WeightsLike] = None,
        now: Optional[datetime] = None,
    ) -> HealthIndexResult:
        now = ensure_utc(now) if now is not None else utc_now()
        w = resolve_weights(weights)

        soh_score = _clamp(float(current_soh))
        trend_score = self.trend_score(soh_trend)
        alarm_score = self.alarm_score(stats)
        maintenance_score = self.maintenance_score(stats, now)

        health_index = _clamp(
            soh_score * w.soh
            + trend_score * w.trend
            + alarm_score * w.alarm
            + maintenance_score * w.maintenance
        )

        recommendations = self.recommendations(
            health_index, soh_score, trend_score, alarm_score, maintenance_score, stats, now
        )

        return HealthIndexResult(
            health_index=round(health_index, 2),
            grade=grade_for(health_index),
            factors=HealthFactors(
                soh_score=round(soh_score, 2),
                trend_score=round(trend_score, 2),
                alarm_score=round(alarm_score, 2),
                maintenance_score=round(maintenance_score, 2),
            ),
            weights=w,
            recommendations=recommendations,
            calculated_at=now,
        )

    # ------------------------------------------------------------------
    # Factor scores
    # ------------------------------------------------------------------

    def trend_score(self, soh_trend: Sequence[SOHTrendPoint]) -> float:
        if len(soh_trend) < 2:
            return NEUTRAL_TREND_SCORE

        ordered = sorted(soh_trend, key=lambda p: p.timestamp)
        origin = ordered[0].timestamp
        elapsed_days = [days_between(origin, p.timestamp) for p in ordered]
        values = [p.soh_value for p in ordered]

        score = NEUTRAL_TREND_SCORE

        slope = linear_trend_slope(elapsed_days, values)
        if slope > TREND_SLOPE_THRESHOLD:
            score += 20
        elif slope < -TREND_SLOPE_THRESHOLD:
            score -= 20

        cv = coefficient_of_variation(values)
        if cv < 0.1:
            score += 10
        elif cv > 0.3:
            score -= 10

        if recent_change_rate(values, RECENT_WINDOW) < SHARP_DECLINE_PERCENT:
            score -= 15

        return _clamp(score)

    def alarm_score(self, stats: EquipmentStatistics) -> float:
        hours = stats.total_running_hours
        rate = stats.total_alarm_count / hours * 100.0 if hours > 0 else 0.0
        critical_ratio = (
            stats.critical_alarm_count / stats.total_alarm_count
            if stats.total_alarm_count > 0
            else 0.0
        )

        if rate < 0.5:
            score = 95.0
        elif rate < 1:
            score = 85.0
        elif rate < 2:
            score = 70.0
        elif rate < 5:
            score = 50.0
        else:
            score = 30.0

        return _clamp(score - critical_ratio * 20.0)

    def maintenance_score(self, stats: EquipmentStatistics, now: datetime) -> float:
        age_years = days_between(stats.installation_date, now) / DAYS_PER_YEAR
        rate = stats.maintenance_count / age_years if age_years > 0 else 0.0

        if rate >= 2:
            score = 95.0
        elif rate >= 1:
            score = 85.0
        elif rate >= 0.5:
            score = 70.0
        else:
            score = 50.0

        if stats.last_maintenance_date is None:
            return 40.0

        since = days_between(stats.last_maintenance_date, now)
        if since > 365:
            score -= 20
        elif since > 180:
            score -= 10
        return _clamp(score)

    # ------------------------------------------------------------------
    # Recommendations
    # ------------------------------------------------------------------

    def recommendations(
        self,
        health_index: float,
        current_soh: float,
        trend_score: float,
        alarm_score: float,
        maintenance_score: float,
        stats: EquipmentStatistics,
        now: datetime,
    ) -> List[str]:
        lines: List[str] = []

        if health_index < 40:
            lines.append("Health is critical: shut the equipment down for repair immediately")
            lines.append("Call in qualified maintenance staff for a full diagnosis")
        elif health_index < 60:
            lines.append("Health is poor: schedule maintenance as soon as possible")
        elif health_index < 75:
            lines.append("Health is fair: keep monitoring and plan maintenance")

        if current_soh < 50:
            lines.append("State of health is low: check whether key components need replacing")
        elif current_soh < 70:
            lines.append("Carry out preventive maintenance to stop further deterioration")

        if trend_score < 60:
            lines.append("Health is trending down: watch the equipment's operation closely")
            lines.append("Increase inspection frequency to catch emerging problems early")

        if alarm_score < 60:
            lines.append("Alarm rate is high: review the equipment's operating parameters")
            lines.append("Handle critical alarms first and trace their root cause")

        if maintenance_score < 60:
            lines.append("Maintenance is insufficient: set up a complete maintenance plan")
            if stats.last_maintenance_date is None:
                lines.append("No maintenance on record: start a maintenance log for this equipment")
            else:
                since = days_between(stats.last_maintenance_date, now)
                if since > 365:
                    lines.append(
                        f"No maintenance for about {round(since / 30)} months: "
                        "schedule a service soon"
                    )

        if health_index >= 90:
            lines.append("Equipment is in excellent condition: keep up the current maintenance routine")
        elif health_index >= 75:
            lines.append("Equipment is in good condition: continue with the existing maintenance plan")

        return lines
