import numpy as np
import pytest

from fincast.core.algorithms.arima import arima_forecast
from fincast.core.algorithms.decomposition import (
    seasonal_decomposition_forecast,
    trend_seasonality_forecast,
)
from fincast.core.algorithms.registry import ComputeContext, required_points, run_algorithm
from fincast.core.domain.cancellation import CancellationToken
from fincast.core.domain.config import AlgorithmType, EnsembleMember, ParamSet
from fincast.core.domain.errors import ForecastCancelledError, NumericalInstabilityError, ValidationError


def test_dispatch_uses_resolved_parameters():
    fit = run_algorithm(AlgorithmType.SMA, np.arange(1.0, 11.0), ParamSet(window=2), horizon=1)
    np.testing.assert_allclose(fit.forecast, [9.5])


def test_anomaly_detection_is_not_a_forecast():
    with pytest.raises(ValidationError):
        run_algorithm(AlgorithmType.ANOMALY_DETECTION, np.arange(10.0), ParamSet(), horizon=1)


def test_ensemble_averages_members():
    params = ParamSet(
        ensemble_members=(
            EnsembleMember(algorithm=AlgorithmType.LINEAR_REGRESSION),
            EnsembleMember(algorithm=AlgorithmType.EWMA, parameters=ParamSet(alpha=1.0)),
        )
    )
    values = np.arange(10.0)
    fit = run_algorithm(AlgorithmType.ENSEMBLE, values, params, horizon=2)
    # Regression continues to 10, 11; EWMA with alpha=1 stays at 9
    np.testing.assert_allclose(fit.forecast, [9.5, 10.0])
    assert fit.params["members"] == ["LINEAR_REGRESSION", "EWMA"]


def test_ensemble_checks_token_between_members():
    token = CancellationToken()
    token.cancel()
    params = ParamSet(ensemble_members=(EnsembleMember(algorithm=AlgorithmType.SMA),))
    with pytest.raises(ForecastCancelledError):
        run_algorithm(AlgorithmType.ENSEMBLE, np.arange(10.0), params, 1, ComputeContext(token=token))


def test_required_points():
    assert required_points(AlgorithmType.SMA, ParamSet(window=5)) == 5
    assert required_points(AlgorithmType.EWMA, ParamSet()) == 1
    assert required_points(AlgorithmType.LINEAR_REGRESSION, ParamSet()) == 2
    assert required_points(AlgorithmType.ARIMA, ParamSet(p=2, d=1, q=1)) == 5
    assert required_points(AlgorithmType.SEASONAL_DECOMPOSITION, ParamSet(season_length=7)) == 14
    ensemble = ParamSet(
        ensemble_members=(
            EnsembleMember(algorithm=AlgorithmType.SMA, parameters=ParamSet(window=30)),
            EnsembleMember(algorithm=AlgorithmType.LINEAR_REGRESSION),
        )
    )
    assert required_points(AlgorithmType.ENSEMBLE, ensemble) == 30


@pytest.mark.parametrize(
    "algorithm,params,direct",
    [
        (
            AlgorithmType.ARIMA,
            ParamSet(p=2, d=1, q=0),
            lambda values, h: arima_forecast(values, 2, 1, 0, h),
        ),
        (
            AlgorithmType.ARIMA,
            ParamSet(q=0),
            lambda values, h: arima_forecast(values, 1, 1, 0, h),
        ),
        (
            AlgorithmType.SEASONAL_DECOMPOSITION,
            ParamSet(season_length=5),
            lambda values, h: seasonal_decomposition_forecast(values, 5, h),
        ),
        (
            AlgorithmType.SEASONAL_DECOMPOSITION,
            ParamSet(),
            lambda values, h: seasonal_decomposition_forecast(values, 7, h),
        ),
        (
            AlgorithmType.TREND_SEASONALITY,
            ParamSet(season_length=7, fourier_order=1),
            lambda values, h: trend_seasonality_forecast(values, 7, h, fourier_order=1),
        ),
        (
            AlgorithmType.TREND_SEASONALITY,
            ParamSet(),
            lambda values, h: trend_seasonality_forecast(values, 7, h, fourier_order=2),
        ),
    ],
)
def test_dispatch_matches_direct_call(algorithm, params, direct):
    rng = np.random.default_rng(11)
    values = 50.0 + 0.3 * np.arange(60) + np.sin(np.arange(60)) + rng.normal(0.0, 0.5, size=60)

    fit = run_algorithm(algorithm, values, params, horizon=6)
    np.testing.assert_allclose(fit.forecast, direct(values, 6).forecast)


def test_dispatch_applies_arima_iteration_limits():
    rng = np.random.default_rng(3)
    values = rng.normal(0.0, 1.0, size=60)
    ctx = ComputeContext(arima_max_iterations=1, arima_tolerance=1e-12)
    with pytest.raises(NumericalInstabilityError):
        run_algorithm(AlgorithmType.ARIMA, values, ParamSet(p=1, d=0, q=1), 2, ctx)


def test_required_points_trend_seasonality():
    assert required_points(AlgorithmType.TREND_SEASONALITY, ParamSet(season_length=7)) == 14
    # Short seasons are bounded by the Fourier design size instead
    assert required_points(AlgorithmType.TREND_SEASONALITY, ParamSet(season_length=2, fourier_order=3)) == 5
