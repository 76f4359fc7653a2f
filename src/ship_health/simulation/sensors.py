"""Synthetic sensor data for shipboard equipment.

A hidden health value follows :class:`WienerDegradationModel`; each
sampling step turns it into one reading per metric. Lower health pushes
vibration, temperature and current up and pressure down. Readings beyond
the alarm limits raise alarms, and preventive maintenance is logged
whenever health drops below the model's maintenance threshold.

Injected faults shape the last fifth of the window:

- ``vibration``: evenly spaced vibration and temperature spikes, the
  signature of a bearing fault.
- ``electrical``: current and voltage spikes.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

import numpy as np

from ship_health.assessment.store import AlarmRecord
from ship_health.phm.types import MetricDataPoint
from ship_health.utils.timeutils import ensure_utc

from .degradation import WienerDegradationModel

FAULT_KINDS = ("none", "vibration", "electrical")

# metric -> (nominal value, noise std, change at zero health)
SENSOR_PROFILES: Dict[str, Tuple[float, float, float]] = {
    "vibration": (2.0, 0.15, 4.0),
    "temperature": (68.0, 1.0, 20.0),
    "pressure": (0.5, 0.01, -0.15),
    "speed": (1500.0, 10.0, -150.0),
    "current": (100.0, 1.5, 15.0),
    "voltage": (400.0, 2.0, 0.0),
    "power": (55.0, 1.0, 8.0),
}

# metric -> high alarm limit
ALARM_LIMITS: Dict[str, float] = {
    "vibration": 7.1,
    "temperature": 90.0,
    "current": 120.0,
    "voltage": 420.0,
}

FAULT_SPIKES: Dict[str, Dict[str, float]] = {
    "vibration": {"vibration": 7.8, "temperature": 96.0},
    "electrical": {"current": 128.0, "voltage": 428.0},
}

SPIKE_EVERY_STEPS = 6


@dataclass
class SimulatedData:
    equipment_id: str
    readings: List[MetricDataPoint] = field(default_factory=list)
    alarms: List[AlarmRecord] = field(default_factory=list)
    maintenance: List[datetime] = field(default_factory=list)
    final_health: float = 100.0
    failed: bool = False


class SensorDataSimulator:
    """Generate readings, alarms and maintenance for one equipment.

    Parameters
    ----------
    model : WienerDegradationModel, optional
        Health process. A seeded default is built when omitted.
    seed : int, optional
        Seed for sensor noise and the default model.
    interval_minutes : int
        Spacing between samples.
    load_ratio : float
        Constant load applied to the degradation model.
    """

    def __init__(
        self,
        model: Optional[WienerDegradationModel] = None,
        seed: Optional[int] = None,
        interval_minutes: int = 60,
        load_ratio: float = 0.3,
    ) -> None:
        if interval_minutes <= 0:
            raise ValueError("interval_minutes must be positive")
        self.rng = np.random.default_rng(seed)
        self.model = model or WienerDegradationModel(rng=np.random.default_rng(seed))
        self.interval = timedelta(minutes=interval_minutes)
        self.load_ratio = load_ratio

    def generate(
        self,
        equipment_id: str,
        start: datetime,
        days: float,
        fault: str = "none",
        initial_health: float = 100.0,
    ) -> SimulatedData:
        if fault not in FAULT_KINDS:
            raise ValueError(f"fault must be one of {FAULT_KINDS}, got {fault!r}")
        if days <= 0:
            raise ValueError("days must be positive")

        start = ensure_utc(start)
        n_steps = int(timedelta(days=days) / self.interval)
        fault_from = int(n_steps * 0.8)
        delta_hours = self.interval.total_seconds() / 3600.0

        data = SimulatedData(equipment_id=equipment_id)
        health = initial_health

        for step in range(n_steps):
            ts = start + step * self.interval
            health, failed = self.model.step(health, delta_hours, load_ratio=self.load_ratio)
            data.failed = data.failed or failed
            if self.model.needs_maintenance(health):
                health = self.model.perform_maintenance()
                data.maintenance.append(ts)

            values = self.sample(health)
            if fault != "none" and step >= fault_from and (step - fault_from) % SPIKE_EVERY_STEPS == 0:
                for metric, level in FAULT_SPIKES[fault].items():
                    values[metric] = level + float(self.rng.normal(0.0, 0.1))

            for metric, value in values.items():
                data.readings.append(MetricDataPoint(timestamp=ts, metric_type=metric, value=value))
                alarm = self.check_alarm(equipment_id, ts, metric, value)
                if alarm is not None:
                    data.alarms.append(alarm)

        data.final_health = health
        return data

    def sample(self, health: float) -> Dict[str, float]:
        """One noisy reading per metric for the given health level."""
        wear = (100.0 - health) / 100.0
        values: Dict[str, float] = {}
        for metric, (nominal, noise, shift) in SENSOR_PROFILES.items():
            value = nominal + shift * wear + float(self.rng.normal(0.0, noise))
            values[metric] = max(0.0, value)
        return values

    @staticmethod
    def check_alarm(
        equipment_id: str, ts: datetime, metric: str, value: float
    ) -> Optional[AlarmRecord]:
        limit = ALARM_LIMITS.get(metric)
        if limit is None or value <= limit:
            return None
        severity = "critical" if value > limit * 1.05 else "high"
        return AlarmRecord(
            id=uuid.uuid4().hex,
            equipment_id=equipment_id,
            timestamp=ts,
            severity=severity,
            metric_type=metric,
            metric_value=value,
            threshold_value=limit,
            description=f"{metric} {value:.2f} above limit {limit}",
        )
