"""
Series Utilities - Shared numeric helpers for the forecasting algorithms.
"""

from collections.abc import Sequence

import numpy as np
import pandas as pd

from fincast.core.domain.errors import (
    InsufficientDataError,
    NumericalInstabilityError,
    ValidationError,
)


def as_array(values: Sequence[float] | np.ndarray) -> np.ndarray:
    """Copy input values into a 1-D float array."""
    arr = np.array(values, dtype=float, copy=True)
    if arr.ndim != 1:
        raise ValidationError("Series values must be one-dimensional")
    return arr


def check_horizon(horizon: int) -> None:
    if horizon < 1:
        raise ValidationError(f"Horizon must be positive, got {horizon}")


def difference(values: Sequence[float] | np.ndarray, d: int) -> np.ndarray:
    """Apply the first difference d times."""
    if d < 0:
        raise ValidationError(f"Differencing order must be >= 0, got {d}")
    arr = as_array(values)
    if len(arr) <= d:
        raise InsufficientDataError(f"Cannot difference {len(arr)} points {d} times")
    if d == 0:
        return arr
    return np.diff(arr, n=d)


def integrate(diffs: np.ndarray, original: np.ndarray, d: int) -> np.ndarray:
    """
    Undo d differencing steps for values that continue a series.

    Args:
        diffs: Future values at the d-th difference level.
        original: The undifferenced history the diffs continue.
        d: Number of differencing steps to undo.

    Returns:
        Future values on the original scale.
    """
    # Last observed value at each level 0..d-1 seeds that level's cumulative sum
    seeds = [as_array(original)]
    for _ in range(d - 1):
        seeds.append(np.diff(seeds[-1]))

    out = as_array(diffs)
    for level in range(d - 1, -1, -1):
        out = seeds[level][-1] + np.cumsum(out)
    return out


def rolling_stat(values: Sequence[float] | np.ndarray, window: int) -> tuple[np.ndarray, np.ndarray]:
    """
    Trailing rolling mean and population standard deviation.

    Positions before window-1 are NaN.
    """
    if window < 1:
        raise ValidationError(f"Rolling window must be >= 1, got {window}")
    arr = as_array(values)
    if len(arr) < window:
        raise InsufficientDataError(f"Rolling window {window} exceeds series length {len(arr)}")
    rolling = pd.Series(arr).rolling(window=window, min_periods=window)
    return rolling.mean().to_numpy(copy=True), rolling.std(ddof=0).to_numpy(copy=True)


def least_squares(x: Sequence[float] | np.ndarray, y: Sequence[float] | np.ndarray) -> tuple[float, float]:
    """
    Ordinary least squares fit of y = intercept + slope * x.

    Returns:
        (slope, intercept)
    """
    x_arr = as_array(x)
    y_arr = as_array(y)
    if len(x_arr) != len(y_arr):
        raise ValidationError(f"x and y lengths differ: {len(x_arr)} != {len(y_arr)}")
    if len(x_arr) == 0:
        raise InsufficientDataError("Cannot fit a line to an empty series")

    x_mean = x_arr.mean()
    sxx = float(np.sum((x_arr - x_mean) ** 2))
    if sxx == 0.0:
        raise NumericalInstabilityError("Regression input has zero variance")

    y_mean = y_arr.mean()
    slope = float(np.sum((x_arr - x_mean) * (y_arr - y_mean)) / sxx)
    intercept = float(y_mean - slope * x_mean)
    return slope, intercept
