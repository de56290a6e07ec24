"""
Algorithm Registry - Dispatch table from AlgorithmType to algorithm calls.

Each entry adapts a config's ParamSet to the pure algorithm function and
reports the algorithm's minimum data requirement.
"""

from collections.abc import Callable
from dataclasses import dataclass

import numpy as np

from fincast.core.algorithms.arima import arima_forecast, arima_min_points
from fincast.core.algorithms.base import ModelFit
from fincast.core.algorithms.decomposition import (
    seasonal_decomposition_forecast,
    trend_seasonality_forecast,
)
from fincast.core.algorithms.ensemble import ensemble_forecast
from fincast.core.algorithms.moving_average import (
    exponential_weighted_moving_average,
    simple_moving_average,
)
from fincast.core.algorithms.regression import linear_regression_forecast
from fincast.core.domain.cancellation import CancellationToken
from fincast.core.domain.config import AlgorithmType, ParamSet
from fincast.core.domain.errors import ValidationError


@dataclass(frozen=True)
class ComputeContext:
    """Per-invocation execution limits passed down to iterative fits."""

    token: CancellationToken | None = None
    arima_max_iterations: int = 100
    arima_tolerance: float = 1e-6

    def checkpoint(self) -> None:
        if self.token is not None:
            self.token.raise_if_cancelled()


AlgorithmFn = Callable[[np.ndarray, ParamSet, int, ComputeContext], ModelFit]


def _sma(values: np.ndarray, params: ParamSet, horizon: int, ctx: ComputeContext) -> ModelFit:
    return simple_moving_average(values, params.resolved_window, horizon)


def _ewma(values: np.ndarray, params: ParamSet, horizon: int, ctx: ComputeContext) -> ModelFit:
    return exponential_weighted_moving_average(values, params.resolved_alpha, horizon)


def _linear(values: np.ndarray, params: ParamSet, horizon: int, ctx: ComputeContext) -> ModelFit:
    return linear_regression_forecast(values, horizon)


def _arima(values: np.ndarray, params: ParamSet, horizon: int, ctx: ComputeContext) -> ModelFit:
    p, d, q = params.resolved_order
    return arima_forecast(
        values,
        p,
        d,
        q,
        horizon,
        max_iterations=ctx.arima_max_iterations,
        tolerance=ctx.arima_tolerance,
        token=ctx.token,
    )


def _seasonal(values: np.ndarray, params: ParamSet, horizon: int, ctx: ComputeContext) -> ModelFit:
    return seasonal_decomposition_forecast(values, params.resolved_season_length, horizon)


def _trend_seasonality(values: np.ndarray, params: ParamSet, horizon: int, ctx: ComputeContext) -> ModelFit:
    return trend_seasonality_forecast(
        values,
        params.resolved_season_length,
        horizon,
        fourier_order=params.resolved_fourier_order,
    )


def _ensemble(values: np.ndarray, params: ParamSet, horizon: int, ctx: ComputeContext) -> ModelFit:
    if not params.ensemble_members:
        raise ValidationError("Ensemble needs at least one member")

    fits = []
    for member in params.ensemble_members:
        ctx.checkpoint()
        fits.append(run_algorithm(member.algorithm, values, member.parameters, horizon, ctx))

    forecast = ensemble_forecast([fit.forecast for fit in fits])
    spread = float(np.mean([fit.residual_std for fit in fits]))
    return ModelFit(
        forecast=forecast,
        noise=spread,
        params={"members": [member.algorithm.value for member in params.ensemble_members]},
    )


ALGORITHMS: dict[AlgorithmType, AlgorithmFn] = {
    AlgorithmType.SMA: _sma,
    AlgorithmType.EWMA: _ewma,
    AlgorithmType.LINEAR_REGRESSION: _linear,
    AlgorithmType.ARIMA: _arima,
    AlgorithmType.SEASONAL_DECOMPOSITION: _seasonal,
    AlgorithmType.TREND_SEASONALITY: _trend_seasonality,
    AlgorithmType.ENSEMBLE: _ensemble,
}


def run_algorithm(
    algorithm: AlgorithmType,
    values: np.ndarray,
    params: ParamSet,
    horizon: int,
    ctx: ComputeContext | None = None,
) -> ModelFit:
    """Dispatch to the forecasting function registered for ``algorithm``."""
    if algorithm not in ALGORITHMS:
        raise ValidationError(f"{algorithm.value} does not produce forecasts")
    return ALGORITHMS[algorithm](values, params, horizon, ctx or ComputeContext())


def required_points(algorithm: AlgorithmType, params: ParamSet) -> int:
    """Minimum series length the algorithm accepts with these parameters."""
    if algorithm == AlgorithmType.SMA:
        return params.resolved_window
    if algorithm == AlgorithmType.EWMA:
        return 1
    if algorithm == AlgorithmType.LINEAR_REGRESSION:
        return 2
    if algorithm == AlgorithmType.ARIMA:
        return arima_min_points(*params.resolved_order)
    if algorithm == AlgorithmType.SEASONAL_DECOMPOSITION:
        return 2 * params.resolved_season_length
    if algorithm == AlgorithmType.TREND_SEASONALITY:
        season_length = params.resolved_season_length
        order = min(params.resolved_fourier_order, season_length // 2)
        return max(2 * season_length, 2 * order + 3)
    if algorithm == AlgorithmType.ENSEMBLE:
        return max(
            (required_points(member.algorithm, member.parameters) for member in params.ensemble_members),
            default=1,
        )
    if algorithm == AlgorithmType.ANOMALY_DETECTION:
        return 1
    raise ValidationError(f"Unknown algorithm {algorithm}")
