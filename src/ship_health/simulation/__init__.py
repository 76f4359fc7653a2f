"""Synthetic equipment data for demos and tests."""

from .degradation import WienerDegradationModel
from .sensors import FAULT_KINDS, SensorDataSimulator, SimulatedData

__all__ = ["WienerDegradationModel", "FAULT_KINDS", "SensorDataSimulator", "SimulatedData"]
