"""
Backtest Runner - Replays history to measure forecast accuracy.

Fits on the lookback window ending before the start date, forecasts the
horizon, and scores the forecast against the actuals that followed.
"""

import logging
from datetime import date, timedelta

from fincast.core.algorithms.registry import required_points
from fincast.core.domain.cancellation import CancellationToken
from fincast.core.domain.config import ForecastConfig
from fincast.core.domain.errors import InsufficientDataError, ValidationError
from fincast.core.domain.result import AccuracyMetrics, BacktestResult, ForecastPoint
from fincast.core.domain.series import TimeSeries
from fincast.core.services.forecast_engine import ForecastEngine

logger = logging.getLogger(__name__)


def mean_absolute_percentage_error(
    points: list[ForecastPoint],
    actuals: dict[date, float],
) -> tuple[float | None, int, int]:
    """
    MAPE as a fraction, mean(|actual - predicted| / |actual|).

    Dates without an actual are skipped. Zero actuals have no defined
    percentage error and are skipped too.

    Returns:
        (mape or None when nothing was comparable, compared points, skipped zero actuals)
    """
    errors = []
    skipped_zero = 0
    for point in points:
        if point.target_date not in actuals:
            continue
        actual = actuals[point.target_date]
        if actual == 0.0:
            skipped_zero += 1
            continue
        errors.append(abs(actual - point.predicted_value) / abs(actual))

    if not errors:
        return None, 0, skipped_zero
    return sum(errors) / len(errors), len(errors), skipped_zero


class BacktestRunner:
    """
    Runs a single backtest for a config against a user's history.
    """

    def __init__(self, engine: ForecastEngine | None = None):
        self.engine = engine or ForecastEngine()

    def backtest(
        self,
        series: TimeSeries,
        config: ForecastConfig,
        start_date: date,
        horizon_days: int,
        lookback_days: int,
        token: CancellationToken | None = None,
    ) -> BacktestResult:
        """
        Forecast from ``start_date`` using only history before it and score it.

        Args:
            series: Full history, including actuals after start_date.
            config: Config to evaluate.
            start_date: First forecast target date.
            horizon_days: Number of days forecast and compared.
            lookback_days: Length of the training window before start_date.

        Returns:
            BacktestResult with the forecast points and their accuracy.
        """
        if horizon_days < 1 or lookback_days < 1:
            raise ValidationError(
                f"horizon_days and lookback_days must be positive, got {horizon_days}/{lookback_days}",
                config_id=config.id,
                algorithm=config.algorithm.value,
            )
        horizon = self.engine.validate(config, horizon_days)

        training = series.between(start_date - timedelta(days=lookback_days), start_date)
        minimum = required_points(config.algorithm, config.parameters)
        if len(training) < minimum:
            raise InsufficientDataError(
                f"Lookback window has {len(training)} points, {config.algorithm.value} needs {minimum}",
                config_id=config.id,
                algorithm=config.algorithm.value,
            )

        logger.info(
            f"Backtesting config {config.id} ({config.algorithm.value}) from {start_date} "
            f"with {len(training)} training points"
        )
        points = self.engine.generate(
            training,
            config,
            start_date=start_date,
            horizon_days=horizon,
            token=token,
        )

        actuals = series.between(start_date, start_date + timedelta(days=horizon)).value_map()
        mape, compared, skipped_zero = mean_absolute_percentage_error(points, actuals)
        if mape is None:
            logger.warning(f"Backtest for config {config.id} had no comparable actuals; MAPE undefined")

        metrics = AccuracyMetrics(
            config_id=config.id,
            user_id=config.user_id,
            mape=mape,
            horizon_days=horizon,
            lookback_days=lookback_days,
            compared_points=compared,
            skipped_zero_actuals=skipped_zero,
        )
        return BacktestResult(points=points, metrics=metrics)
