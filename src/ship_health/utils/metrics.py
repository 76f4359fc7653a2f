"""Fleet-level summaries over flattened assessment rows.

Rows are the flat dictionaries produced by ``EquipmentAssessment.to_row``:
numeric columns are averaged and the categorical risk and grade columns
are counted.
"""

from __future__ import annotations

from collections import Counter
from typing import Any, Dict, List

import numpy as np

NUMERIC_COLUMNS = (
    "soh",
    "soh_confidence",
    "health_index",
    "fault_probability",
    "anomaly_count",
    "abnormal_events",
    "uptime_rate",
    "health_score",
)


def compute_fleet_summary(rows: List[Dict[str, Any]]) -> Dict[str, float]:
    """Mean of each numeric column plus counts of risk levels and grades."""
    if not rows:
        return {}
    summary: Dict[str, float] = {"equipment_count": float(len(rows))}
    for key in NUMERIC_COLUMNS:
        values = [float(r[key]) for r in rows if r.get(key) is not None]
        summary[f"mean_{key}"] = float(np.mean(values)) if values else 0.0

    for level, count in Counter(r.get("fault_risk_level") for r in rows).items():
        if level:
            summary[f"risk_{level}"] = float(count)
    for grade, count in Counter(r.get("grade") for r in rows).items():
        if grade:
            summary[f"grade_{grade.lower()}"] = float(count)
    return summary


def at_risk(rows: List[Dict[str, Any]], min_level: str = "high") -> List[str]:
    """Equipment ids whose fault risk is at or above `min_level`, worst first."""
    order = ["low", "medium", "high", "critical"]
    threshold = order.index(min_level)
    flagged = [r for r in rows if order.index(r["fault_risk_level"]) >= threshold]
    flagged.sort(key=lambda r: (-order.index(r["fault_risk_level"]), -float(r["fault_probability"])))
    return [r["equipment_id"] for r in flagged]
