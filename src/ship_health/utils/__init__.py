"""Utility functions for timestamps, logging and fleet summaries."""

from .logging import log_results_csv, setup_logging
from .metrics import at_risk, compute_fleet_summary
from .timeutils import ensure_utc, from_millis, to_millis, utc_now

__all__ = [
    "log_results_csv",
    "setup_logging",
    "at_risk",
    "compute_fleet_summary",
    "ensure_utc",
    "from_millis",
    "to_millis",
    "utc_now",
]
