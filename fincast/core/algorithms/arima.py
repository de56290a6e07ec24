"""
ARIMA(p, d, q) Forecast - Differencing, Yule-Walker AR and iterative MA fitting.

The MA stage refits coefficients by least squares against lagged
innovations until the largest coefficient change drops below a
tolerance. The loop is bounded and polls a cancellation token so a
pathological series cannot stall a worker.
"""

import logging
from collections.abc import Sequence

import numpy as np

from fincast.core.algorithms.base import ModelFit
from fincast.core.algorithms.series_utils import as_array, check_horizon, difference, integrate
from fincast.core.domain.cancellation import CancellationToken
from fincast.core.domain.errors import (
    InsufficientDataError,
    NumericalInstabilityError,
    ValidationError,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 100
DEFAULT_TOLERANCE = 1e-6


def arima_min_points(p: int, d: int, q: int) -> int:
    """Smallest series length ARIMA(p, d, q) accepts."""
    if p == 0 and d == 0 and q == 0:
        return 1
    return max(max(p, q) + d + 2, p + d + q + 1)


def _autocovariance(x: np.ndarray, max_lag: int) -> np.ndarray:
    m = len(x)
    return np.array([np.dot(x[: m - k], x[k:]) / m for k in range(max_lag + 1)])


def _yule_walker(x: np.ndarray, p: int) -> np.ndarray:
    if p == 0:
        return np.zeros(0)
    gamma = _autocovariance(x, p)
    if gamma[0] == 0.0:
        # Constant differenced series: no autoregressive signal
        return np.zeros(p)

    idx = np.arange(p)
    toeplitz = gamma[np.abs(idx[:, None] - idx[None, :])]
    try:
        phi = np.linalg.solve(toeplitz, gamma[1 : p + 1])
    except np.linalg.LinAlgError as e:
        raise NumericalInstabilityError(f"Yule-Walker system is singular: {e}") from e
    if not np.all(np.isfinite(phi)):
        raise NumericalInstabilityError("Yule-Walker produced non-finite coefficients")
    return phi


def _ar_residuals(x: np.ndarray, phi: np.ndarray) -> np.ndarray:
    p = len(phi)
    residuals = np.zeros(len(x))
    for t in range(p, len(x)):
        residuals[t] = x[t] - np.dot(phi, x[t - p : t][::-1])
    return residuals


def _innovations(residuals: np.ndarray, theta: np.ndarray, start: int) -> np.ndarray:
    q = len(theta)
    innovations = residuals.copy()
    for t in range(start, len(residuals)):
        total = 0.0
        for j in range(1, q + 1):
            if t - j >= start:
                total += theta[j - 1] * innovations[t - j]
        innovations[t] = residuals[t] - total
    return innovations


def _fit_ma(
    residuals: np.ndarray,
    q: int,
    start: int,
    max_iterations: int,
    tolerance: float,
    token: CancellationToken | None,
) -> tuple[np.ndarray, np.ndarray, int]:
    """
    Fit MA(q) coefficients on AR residuals by iterative least squares.

    Returns:
        (theta, innovations, iterations used)
    """
    if q == 0 or np.allclose(residuals[start:], 0.0, atol=1e-12):
        return np.zeros(q), residuals.copy(), 0

    theta = np.zeros(q)
    innovations = residuals.copy()
    rows = np.arange(start + q, len(residuals))

    for iteration in range(1, max_iterations + 1):
        if token is not None:
            token.raise_if_cancelled()

        lagged = np.column_stack([innovations[rows - j] for j in range(1, q + 1)])
        theta_new, *_ = np.linalg.lstsq(lagged, residuals[rows], rcond=None)
        innovations = _innovations(residuals, theta_new, start)

        if not (np.all(np.isfinite(theta_new)) and np.all(np.isfinite(innovations))):
            raise NumericalInstabilityError(f"MA fit diverged at iteration {iteration}")

        change = float(np.max(np.abs(theta_new - theta)))
        theta = theta_new
        if change < tolerance:
            return theta, innovations, iteration

    raise NumericalInstabilityError(
        f"MA({q}) fit did not converge within {max_iterations} iterations"
    )


def arima_forecast(
    values: Sequence[float] | np.ndarray,
    p: int,
    d: int,
    q: int,
    horizon: int,
    *,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    tolerance: float = DEFAULT_TOLERANCE,
    token: CancellationToken | None = None,
) -> ModelFit:
    """
    Fit ARIMA(p, d, q) and forecast ``horizon`` steps.

    Args:
        values: Observed series, oldest first.
        p: Autoregressive order.
        d: Differencing order.
        q: Moving-average order.
        horizon: Number of future steps.
        max_iterations: Bound on MA refitting iterations.
        tolerance: Convergence threshold on MA coefficient change.
        token: Optional cancellation token polled between iterations.

    Returns:
        ModelFit with the forecast on the original scale and the fitted
        innovations as residuals.
    """
    if min(p, d, q) < 0:
        raise ValidationError(f"ARIMA orders must be >= 0, got ({p}, {d}, {q})")
    check_horizon(horizon)
    if token is not None:
        token.raise_if_cancelled()
    y = as_array(values)

    required = arima_min_points(p, d, q)
    if len(y) < required:
        raise InsufficientDataError(
            f"ARIMA({p},{d},{q}) needs at least {required} points, got {len(y)}"
        )

    if p == 0 and d == 0 and q == 0:
        mean = float(y.mean())
        return ModelFit(forecast=np.full(horizon, mean), residuals=y - mean, params={"mean": mean})

    z = difference(y, d)
    mu = float(z.mean())
    x = z - mu

    phi = _yule_walker(x, p)
    residuals = _ar_residuals(x, phi)
    theta, innovations, iterations = _fit_ma(residuals, q, p, max_iterations, tolerance, token)
    logger.debug(f"ARIMA({p},{d},{q}) fitted phi={phi} theta={theta} after {iterations} MA iterations")

    history = list(x)
    shocks = list(innovations)
    future = np.empty(horizon)
    for step in range(horizon):
        ar_part = sum(phi[i] * history[-1 - i] for i in range(p))
        ma_part = sum(theta[j] * shocks[-1 - j] for j in range(q))
        future[step] = ar_part + ma_part
        history.append(future[step])
        shocks.append(0.0)

    forecast = integrate(future + mu, y, d)
    if not np.all(np.isfinite(forecast)):
        raise NumericalInstabilityError("ARIMA forecast is not finite")

    fitted_residuals = np.full(len(y), np.nan)
    fitted_residuals[d + p :] = innovations[p:]

    return ModelFit(
        forecast=forecast,
        residuals=fitted_residuals,
        params={"phi": phi.tolist(), "theta": theta.tolist(), "mu": mu, "iterations": iterations},
    )
