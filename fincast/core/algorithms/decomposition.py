"""
Decomposition Forecasts - Additive trend + seasonal models.

Two variants:
- Classical seasonal decomposition: centered moving-average trend,
  per-phase seasonal indices, OLS trend extrapolation.
- Trend+seasonality ("prophet-like"): a linear trend and Fourier terms
  solved jointly by least squares. No changepoints or holiday effects.
"""

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from fincast.core.algorithms.base import ModelFit
from fincast.core.algorithms.series_utils import as_array, check_horizon, least_squares
from fincast.core.domain.errors import (
    InsufficientDataError,
    NumericalInstabilityError,
    ValidationError,
)


@dataclass(frozen=True)
class SeasonalComponents:
    """Additive decomposition. Arrays are NaN where the trend is undefined."""

    trend: np.ndarray
    seasonal: np.ndarray
    residual: np.ndarray
    seasonal_indices: np.ndarray

    @property
    def defined(self) -> np.ndarray:
        return ~np.isnan(self.trend)


def _check_season(season_length: int, n: int) -> None:
    if season_length < 2:
        raise ValidationError(f"Season length must be >= 2, got {season_length}")
    if n < 2 * season_length:
        raise InsufficientDataError(
            f"Seasonal models need at least {2 * season_length} points, got {n}"
        )


def _centered_weights(season_length: int) -> np.ndarray:
    if season_length % 2 == 1:
        return np.full(season_length, 1.0 / season_length)
    # Even seasons use the symmetric 2xL average over L+1 points
    weights = np.ones(season_length + 1)
    weights[0] = weights[-1] = 0.5
    return weights / season_length


def seasonal_decompose(values: Sequence[float] | np.ndarray, season_length: int) -> SeasonalComponents:
    """Split a series into trend, zero-sum seasonal indices and residual."""
    y = as_array(values)
    n = len(y)
    _check_season(season_length, n)

    weights = _centered_weights(season_length)
    half = len(weights) // 2
    trend = np.full(n, np.nan)
    trend[half : n - half] = np.convolve(y, weights, mode="valid")

    detrended = y - trend
    phases = np.arange(n) % season_length
    defined = ~np.isnan(trend)

    indices = np.array([
        detrended[defined & (phases == phase)].mean()
        for phase in range(season_length)
    ])
    indices -= indices.mean()

    seasonal = indices[phases]
    residual = detrended - seasonal
    return SeasonalComponents(
        trend=trend,
        seasonal=seasonal,
        residual=residual,
        seasonal_indices=indices,
    )


def seasonal_decomposition_forecast(
    values: Sequence[float] | np.ndarray,
    season_length: int,
    horizon: int,
) -> ModelFit:
    """Extrapolate the trend linearly and add the matching seasonal index."""
    check_horizon(horizon)
    y = as_array(values)
    components = seasonal_decompose(y, season_length)

    positions = np.arange(len(y), dtype=float)
    defined = components.defined
    slope, intercept = least_squares(positions[defined], components.trend[defined])

    future_t = np.arange(len(y), len(y) + horizon)
    forecast = intercept + slope * future_t + components.seasonal_indices[future_t % season_length]

    return ModelFit(
        forecast=forecast,
        residuals=components.residual,
        params={
            "slope": slope,
            "intercept": intercept,
            "seasonal_indices": components.seasonal_indices.tolist(),
        },
    )


def _fourier_basis(t: np.ndarray, season_length: int, order: int) -> np.ndarray:
    columns = [np.ones_like(t), t]
    for k in range(1, order + 1):
        angle = 2.0 * np.pi * k * t / season_length
        columns.append(np.sin(angle))
        columns.append(np.cos(angle))
    return np.column_stack(columns)


def trend_seasonality_forecast(
    values: Sequence[float] | np.ndarray,
    season_length: int,
    horizon: int,
    fourier_order: int = 2,
) -> ModelFit:
    """
    Fit a linear trend plus Fourier seasonality jointly and extrapolate.

    Args:
        values: Observed series, oldest first.
        season_length: Dominant period in steps.
        horizon: Number of future steps.
        fourier_order: Number of sine/cosine pairs (capped at season_length // 2).
    """
    check_horizon(horizon)
    if fourier_order < 1:
        raise ValidationError(f"Fourier order must be >= 1, got {fourier_order}")
    y = as_array(values)
    n = len(y)
    _check_season(season_length, n)

    order = min(fourier_order, season_length // 2)
    t = np.arange(n, dtype=float)
    design = _fourier_basis(t, season_length, order)
    if n <= design.shape[1]:
        raise InsufficientDataError(
            f"Trend+seasonality with order {order} needs more than {design.shape[1]} points, got {n}"
        )

    coef, _, rank, _ = np.linalg.lstsq(design, y, rcond=None)
    if rank < 2 or not np.all(np.isfinite(coef)):
        raise NumericalInstabilityError("Trend+seasonality design matrix is degenerate")

    future_t = np.arange(n, n + horizon, dtype=float)
    forecast = _fourier_basis(future_t, season_length, order) @ coef
    residuals = y - design @ coef

    return ModelFit(
        forecast=forecast,
        residuals=residuals,
        params={"coefficients": coef.tolist(), "fourier_order": order},
    )
