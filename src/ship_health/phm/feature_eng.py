"""Series statistics used by the health assessment algorithms.

The scoring, anomaly and trend code all work from the same handful of
descriptive statistics over a 1D series of readings. Every helper is total:
empty input, a zero mean or a degenerate time axis yields a defined value
rather than NaN or infinity.
"""

from __future__ import annotations

from typing import Dict, Optional, Sequence

import numpy as np
from scipy import stats


def extract_features(signal: Sequence[float]) -> Dict[str, float]:
    """Return basic statistical features of a 1D sensor signal.

    `std` is the population standard deviation (ddof=0).
    """
    arr = np.asarray(signal, dtype=float)
    return {
        "mean": float(arr.mean()) if arr.size > 0 else 0.0,
        "std": float(arr.std()) if arr.size > 0 else 0.0,
        "min": float(arr.min()) if arr.size > 0 else 0.0,
        "max": float(arr.max()) if arr.size > 0 else 0.0,
        "count": float(arr.size),
    }


def coefficient_of_variation(signal: Sequence[float]) -> float:
    """Population standard deviation divided by the mean.

    Returns 0.0 for empty input or a non-positive mean.
    """
    arr = np.asarray(signal, dtype=float)
    if arr.size == 0 or arr.mean() <= 0.0:
        return 0.0
    return float(stats.variation(arr))


def linear_trend_slope(x: Sequence[float], y: Sequence[float]) -> float:
    """Ordinary least-squares slope of `y` against `x`.

    Returns 0.0 when fewer than two points are given or all `x` coincide.
    """
    xs = np.asarray(x, dtype=float)
    ys = np.asarray(y, dtype=float)
    if xs.size < 2 or xs.size != ys.size or np.ptp(xs) == 0.0:
        return 0.0
    slope = float(np.polyfit(xs, ys, 1)[0])
    return slope if np.isfinite(slope) else 0.0


def index_trend_slope(signal: Sequence[float]) -> float:
    """OLS slope of a signal against its sample index."""
    arr = np.asarray(signal, dtype=float)
    return linear_trend_slope(np.arange(arr.size), arr)


def recent_change_rate(signal: Sequence[float], window: int = 5) -> float:
    """Relative change (percent) between the first and last of the last `window` values."""
    arr = np.asarray(signal, dtype=float)
    if arr.size < 2:
        return 0.0
    recent = arr[-min(window, arr.size):]
    first, last = recent[0], recent[-1]
    if first == 0.0:
        return 0.0
    return float((last - first) / first * 100.0)


def increasing_fraction(signal: Sequence[float]) -> float:
    """Fraction of consecutive steps where the value strictly increases."""
    arr = np.asarray(signal, dtype=float)
    if arr.size < 2:
        return 0.0
    return float(np.count_nonzero(np.diff(arr) > 0) / (arr.size - 1))


def interval_regularity(times_seconds: Sequence[float]) -> Optional[float]:
    """Coefficient of variation of the gaps between consecutive event times.

    Low values mean evenly spaced events. Returns None when fewer than two
    gaps exist or every event shares one timestamp.
    """
    arr = np.sort(np.asarray(times_seconds, dtype=float))
    if arr.size < 3:
        return None
    gaps = np.diff(arr)
    mean_gap = gaps.mean()
    if mean_gap <= 0.0:
        return None
    return float(gaps.std() / mean_gap)
