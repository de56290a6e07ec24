"""
Anomaly Detector - Sigma-threshold outlier detection.

Baseline is the full-series mean/stdev, or a trailing rolling window when
one is given. Positions before the first full window use the first full
window's statistics.
"""

from collections.abc import Sequence

import numpy as np

from fincast.core.algorithms.series_utils import as_array, rolling_stat
from fincast.core.domain.errors import ValidationError

_EPS = np.finfo(float).eps


def _baseline(values: np.ndarray, window: int | None) -> tuple[np.ndarray, np.ndarray]:
    n = len(values)
    if window is None or window >= n:
        return np.full(n, values.mean()), np.full(n, values.std())

    means, stds = rolling_stat(values, window)
    first = window - 1
    means[:first] = means[first]
    stds[:first] = stds[first]
    return means, stds


def sigma_deviations(values: Sequence[float] | np.ndarray, window: int | None = None) -> np.ndarray:
    """
    Signed deviation of each point from its baseline, in standard deviations.

    Points whose baseline deviation is zero get 0.0.
    """
    if window is not None and window < 1:
        raise ValidationError(f"Anomaly window must be >= 1, got {window}")
    y = as_array(values)
    if len(y) == 0:
        return np.array([])

    means, stds = _baseline(y, window)
    deviations = np.zeros(len(y))
    # Spreads within float rounding of the level count as zero
    count = len(y) if window is None or window >= len(y) else window
    nonzero = stds > _EPS * np.sqrt(count) * np.maximum(np.abs(means), 1.0)
    deviations[nonzero] = (y[nonzero] - means[nonzero]) / stds[nonzero]
    return deviations


def detect_anomalies(
    values: Sequence[float] | np.ndarray,
    threshold_sigma: float,
    window: int | None = None,
) -> list[int]:
    """
    Indices where |value - mean| > threshold_sigma * stdev, ascending.

    A zero standard deviation never flags a point, so a constant series
    returns an empty list for any threshold.
    """
    if not threshold_sigma > 0.0:
        raise ValidationError(f"threshold_sigma must be > 0, got {threshold_sigma}")
    deviations = sigma_deviations(values, window)
    return [int(i) for i in np.flatnonzero(np.abs(deviations) > threshold_sigma)]
