"""Hidden equipment health for synthetic sensor data.

The simulator in :mod:`ship_health.simulation.sensors` needs a ground-truth
health value to bend its readings away from nominal. That value follows a
Wiener process: a steady downward drift that grows with load, plus Gaussian
noise scaled by the square root of the step length. Health lives on the
same 0-100 scale as SOH, so generated data can be checked against what the
assessment later reports. Servicing puts health back to a fixed level and
is logged as a maintenance record.
"""

from __future__ import annotations

from typing import Optional, Tuple

import numpy as np


class WienerDegradationModel:
    """Drifting, noisy health trajectory for one simulated machine.

    Parameters
    ----------
    base_drift : float
        Health points lost per running hour with no load.
    load_drift_factor : float
        Extra points lost per running hour at full load; scaled linearly
        by the load ratio.
    volatility : float
        Noise amplitude per square-root hour.
    failure_threshold : float
        Health below which the machine counts as failed.
    pm_threshold : float
        Health below which the simulator services the machine.
    maintenance_restore : float
        Health immediately after a service.
    rng : numpy.random.Generator, optional
        Noise source; pass a seeded generator for repeatable datasets.
    """

    def __init__(
        self,
        base_drift: float = 0.02,
        load_drift_factor: float = 0.03,
        volatility: float = 0.5,
        failure_threshold: float = 20.0,
        pm_threshold: float = 40.0,
        maintenance_restore: float = 95.0,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        self.base_drift = base_drift
        self.load_drift_factor = load_drift_factor
        self.volatility = volatility
        self.failure_threshold = failure_threshold
        self.pm_threshold = pm_threshold
        self.maintenance_restore = maintenance_restore
        self.rng = rng if rng is not None else np.random.default_rng()

    def drift(self, load_ratio: float = 0.0) -> float:
        """Mean health loss per hour at the given load."""
        return self.base_drift + self.load_drift_factor * load_ratio

    def step(
        self,
        current_health: float,
        delta_t: float,
        load_ratio: float = 0.0,
        operating: bool = True,
    ) -> Tuple[float, bool]:
        """Health after ``delta_t`` hours, and whether it is below failure.

        A stopped machine keeps its health. The result is clipped to
        [0, 100] so noise cannot push it past a new machine.
        """
        if not operating:
            return current_health, current_health < self.failure_threshold
        noise = self.rng.normal(0.0, 1.0)
        delta_health = -self.drift(load_ratio) * delta_t + self.volatility * np.sqrt(delta_t) * noise
        new_health = float(min(100.0, max(0.0, current_health + delta_health)))
        return new_health, new_health < self.failure_threshold

    def needs_maintenance(self, current_health: float) -> bool:
        return current_health < self.pm_threshold

    def estimate_rul(self, current_health: float, load_ratio: float = 0.3) -> float:
        """Hours until health is expected to reach the failure threshold.

        Ignores the noise term: margin over failure divided by the drift.
        Infinite when health does not drift downward.
        """
        drift = self.drift(load_ratio)
        if drift <= 0.0:
            return float("inf")
        return max(0.0, (current_health - self.failure_threshold) / drift)

    def perform_maintenance(self) -> float:
        return float(self.maintenance_restore)
