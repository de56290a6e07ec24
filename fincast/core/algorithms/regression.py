"""
Linear Regression Forecast - Straight-line trend extrapolation.
"""

from collections.abc import Sequence

import numpy as np

from fincast.core.algorithms.base import ModelFit
from fincast.core.algorithms.series_utils import as_array, check_horizon, least_squares
from fincast.core.domain.errors import InsufficientDataError


def linear_regression_forecast(values: Sequence[float] | np.ndarray, horizon: int) -> ModelFit:
    """Fit y = a + b*t over t = 0..n-1 and extrapolate a + b*(n-1+h)."""
    check_horizon(horizon)
    y = as_array(values)
    n = len(y)
    if n < 2:
        raise InsufficientDataError(f"Linear regression needs at least 2 points, got {n}")

    t = np.arange(n, dtype=float)
    slope, intercept = least_squares(t, y)

    future_t = np.arange(n, n + horizon, dtype=float)
    forecast = intercept + slope * future_t
    residuals = y - (intercept + slope * t)

    return ModelFit(
        forecast=forecast,
        residuals=residuals,
        params={"slope": slope, "intercept": intercept},
    )
