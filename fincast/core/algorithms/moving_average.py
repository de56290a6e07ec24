"""
Moving Average Algorithms - Simple and exponentially weighted smoothing.
"""

from collections import deque
from collections.abc import Sequence

import numpy as np

from fincast.core.algorithms.base import ModelFit
from fincast.core.algorithms.series_utils import as_array, check_horizon
from fincast.core.domain.errors import InsufficientDataError, ValidationError


def simple_moving_average(values: Sequence[float] | np.ndarray, window: int, horizon: int) -> ModelFit:
    """
    Forecast each step as the mean of the previous ``window`` values.

    Predictions are appended to the window as they are made, so the
    forecast flattens out once the horizon exceeds the window.
    """
    if window < 1:
        raise ValidationError(f"SMA window must be >= 1, got {window}")
    check_horizon(horizon)
    y = as_array(values)
    if len(y) < window:
        raise InsufficientDataError(f"SMA needs at least {window} points, got {len(y)}")

    buffer = deque(y[-window:], maxlen=window)
    forecast = np.empty(horizon)
    for step in range(horizon):
        forecast[step] = sum(buffer) / window
        buffer.append(forecast[step])

    # One-step in-sample errors against the preceding window
    residuals = np.full(len(y), np.nan)
    for t in range(window, len(y)):
        residuals[t] = y[t] - y[t - window:t].mean()

    return ModelFit(forecast=forecast, residuals=residuals, params={"window": window})


def ewma_smooth(values: Sequence[float] | np.ndarray, alpha: float) -> np.ndarray:
    """Smoothed values S_t = alpha*y_t + (1-alpha)*S_{t-1}, with S_0 = y_0."""
    if not 0.0 < alpha <= 1.0:
        raise ValidationError(f"EWMA alpha must be in (0, 1], got {alpha}")
    y = as_array(values)
    if len(y) == 0:
        raise InsufficientDataError("EWMA needs at least one point")

    smoothed = np.empty(len(y))
    smoothed[0] = y[0]
    for t in range(1, len(y)):
        smoothed[t] = alpha * y[t] + (1.0 - alpha) * smoothed[t - 1]
    return smoothed


def exponential_weighted_moving_average(
    values: Sequence[float] | np.ndarray,
    alpha: float,
    horizon: int,
) -> ModelFit:
    """Flat forecast of the final smoothed value (no trend extrapolation)."""
    check_horizon(horizon)
    y = as_array(values)
    smoothed = ewma_smooth(y, alpha)

    residuals = np.full(len(y), np.nan)
    residuals[1:] = y[1:] - smoothed[:-1]

    forecast = np.full(horizon, smoothed[-1])
    return ModelFit(forecast=forecast, residuals=residuals, params={"alpha": alpha})
