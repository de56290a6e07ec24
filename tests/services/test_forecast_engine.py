"""
Tests for ForecastEngine.
"""
from datetime import date, timedelta

import numpy as np
import pytest

from fincast.core.domain.config import AlgorithmType
from fincast.core.domain.errors import InsufficientDataError, ValidationError
from fincast.core.domain.series import TimeSeries
from fincast.core.domain.settings import EngineSettings
from fincast.core.services.forecast_engine import ForecastEngine


@pytest.fixture
def engine():
    return ForecastEngine()


def test_generate_one_point_per_day(engine, linear_series, make_config):
    config = make_config(algorithm=AlgorithmType.LINEAR_REGRESSION, horizon_days=5)
    points = engine.generate(linear_series, config)

    assert len(points) == 5
    first = linear_series.last_date + timedelta(days=1)
    assert [p.target_date for p in points] == [first + timedelta(days=i) for i in range(5)]
    assert points[0].predicted_value == pytest.approx(3.0 + 2.0 * 60)


def test_generate_honours_start_date_and_horizon(engine, linear_series, make_config):
    config = make_config(algorithm=AlgorithmType.SMA, horizon_days=30)
    points = engine.generate(linear_series, config, start_date=date(2025, 1, 1), horizon_days=3)
    assert [p.target_date for p in points] == [date(2025, 1, 1), date(2025, 1, 2), date(2025, 1, 3)]


def test_confidence_decreases_with_horizon(engine, noisy_series, make_config):
    config = make_config(algorithm=AlgorithmType.EWMA, horizon_days=10)
    points = engine.generate(noisy_series, config)
    scores = [p.confidence_score for p in points]
    assert all(0.0 <= s <= 100.0 for s in scores)
    assert scores == sorted(scores, reverse=True)
    assert scores[0] > scores[-1]


def test_bounds_widen_with_horizon(engine, noisy_series, make_config):
    config = make_config(algorithm=AlgorithmType.LINEAR_REGRESSION, horizon_days=4)
    points = engine.generate(noisy_series, config)
    widths = [p.upper_bound - p.lower_bound for p in points]
    assert all(p.lower_bound <= p.predicted_value <= p.upper_bound for p in points)
    assert widths == sorted(widths)


def test_noisier_series_scores_lower(engine, linear_series, noisy_series, make_config):
    config = make_config(algorithm=AlgorithmType.LINEAR_REGRESSION, horizon_days=1)
    clean = engine.generate(linear_series, config)[0].confidence_score
    noisy = engine.generate(noisy_series, config)[0].confidence_score
    assert clean > noisy


def test_horizon_is_clipped(linear_series, make_config):
    engine = ForecastEngine(EngineSettings(max_horizon_days=10))
    config = make_config(algorithm=AlgorithmType.SMA)
    assert len(engine.generate(linear_series, config, horizon_days=30)) == 10


def test_non_positive_horizon(engine, linear_series, make_config):
    with pytest.raises(ValidationError):
        engine.generate(linear_series, make_config(), horizon_days=0)


def test_anomaly_config_cannot_forecast(engine, linear_series, make_config):
    config = make_config(algorithm=AlgorithmType.ANOMALY_DETECTION)
    with pytest.raises(ValidationError):
        engine.generate(linear_series, config)


def test_errors_carry_config_context(engine, linear_series, make_config):
    config = make_config(config_id=42, algorithm=AlgorithmType.SMA, parameters={"window": 500})
    with pytest.raises(InsufficientDataError) as exc_info:
        engine.generate(linear_series, config)
    assert exc_info.value.config_id == 42
    assert exc_info.value.algorithm == "SMA"


def test_input_series_not_mutated(engine, noisy_series, make_config):
    before = noisy_series.values
    engine.generate(noisy_series, make_config(algorithm=AlgorithmType.ARIMA, parameters={"q": 0}))
    np.testing.assert_array_equal(noisy_series.values, before)


def test_detect_maps_back_to_original_positions(engine):
    values = [10.0] * 30
    values[3] = np.nan
    values[20] = 100.0
    series = TimeSeries.from_values(values, start=date(2024, 1, 1))

    anomalies = engine.detect(series, threshold_sigma=3.0)
    assert len(anomalies) == 1
    assert anomalies[0].index == 20
    assert anomalies[0].date == date(2024, 1, 21)
    assert anomalies[0].value == 100.0
    assert anomalies[0].sigma_deviation > 3.0


@pytest.mark.parametrize(
    "algorithm,parameters",
    [
        (AlgorithmType.ARIMA, {"p": 2, "d": 1, "q": 0}),
        (AlgorithmType.SEASONAL_DECOMPOSITION, {"season_length": 7}),
        (AlgorithmType.TREND_SEASONALITY, {"season_length": 7, "fourier_order": 3}),
    ],
)
def test_generate_dispatches_on_algorithm(engine, weekly_series, make_config, algorithm, parameters):
    config = make_config(algorithm=algorithm, parameters=parameters, horizon_days=7)
    points = engine.generate(weekly_series, config)
    assert len(points) == 7
    assert all(np.isfinite(p.predicted_value) for p in points)
