"""
Forecast Engine - Dispatches a config and a series to its algorithm.

Handles the pre/post-processing around the pure algorithm call:
1. Validate the config and horizon
2. Apply the missing-value policy
3. Run the algorithm through the registry
4. Attach target dates, confidence scores and bounds
"""

import logging
import math
from datetime import date, timedelta

import numpy as np

from fincast.core.algorithms.anomaly import detect_anomalies, sigma_deviations
from fincast.core.algorithms.base import ModelFit
from fincast.core.algorithms.registry import ComputeContext, run_algorithm
from fincast.core.domain.cancellation import CancellationToken
from fincast.core.domain.config import AlgorithmType, ForecastConfig
from fincast.core.domain.errors import ForecastError, ValidationError
from fincast.core.domain.result import Anomaly, ForecastPoint
from fincast.core.domain.series import TimeSeries
from fincast.core.domain.settings import EngineSettings

logger = logging.getLogger(__name__)

# Relative confidence lost per additional horizon step
HORIZON_DECAY = 0.05
# z-value for the ~95% band around each prediction
BOUND_Z = 1.96


class ForecastEngine:
    """
    Stateless forecasting entry point. Safe to share across threads.
    """

    def __init__(self, settings: EngineSettings | None = None):
        self.settings = settings or EngineSettings()

    def validate(self, config: ForecastConfig, horizon_days: int | None = None) -> int:
        """
        Check a config is forecastable and return the effective horizon.

        Raises:
            ValidationError: Non-forecasting algorithm or non-positive horizon.
        """
        if config.algorithm == AlgorithmType.ANOMALY_DETECTION:
            raise ValidationError(
                "ANOMALY_DETECTION configs do not produce forecast points",
                config_id=config.id,
                algorithm=config.algorithm.value,
            )

        horizon = horizon_days if horizon_days is not None else config.horizon_days
        if horizon < 1:
            raise ValidationError(
                f"Horizon must be positive, got {horizon}",
                config_id=config.id,
                algorithm=config.algorithm.value,
            )
        if horizon > self.settings.max_horizon_days:
            logger.warning(
                f"Clipping horizon {horizon} to {self.settings.max_horizon_days} days for config {config.id}"
            )
            horizon = self.settings.max_horizon_days
        return horizon

    def generate(
        self,
        series: TimeSeries,
        config: ForecastConfig,
        start_date: date | None = None,
        horizon_days: int | None = None,
        token: CancellationToken | None = None,
    ) -> list[ForecastPoint]:
        """
        Produce one ForecastPoint per horizon day.

        Args:
            series: Historical observations (not modified).
            config: Validated forecast configuration.
            start_date: First target date. Defaults to the day after the
                last observation.
            horizon_days: Overrides config.horizon_days when given.
            token: Cancellation token for cooperative abort.

        Returns:
            Points in increasing date order.
        """
        horizon = self.validate(config, horizon_days)
        algorithm = config.algorithm.value

        try:
            values = series.fill_missing(self.settings.missing_values)
            ctx = ComputeContext(
                token=token,
                arima_max_iterations=self.settings.arima_max_iterations,
                arima_tolerance=self.settings.arima_tolerance,
            )
            fit = run_algorithm(config.algorithm, values, config.parameters, horizon, ctx)
        except ForecastError as e:
            raise e.with_context(config.id, algorithm)

        if start_date is None:
            last = series.last_date
            start_date = (last + timedelta(days=1)) if last else date.today()

        points = self._to_points(fit, values, start_date)
        logger.debug(f"Config {config.id} ({algorithm}) produced {len(points)} points from {len(values)} observations")
        return points

    def detect(
        self,
        series: TimeSeries,
        threshold_sigma: float,
        window: int | None = None,
    ) -> list[Anomaly]:
        """Flag anomalous observations and report their sigma deviation."""
        values = series.values
        dates = series.dates
        observed = ~np.isnan(values)
        positions = np.flatnonzero(observed)

        clean = values[observed]
        flagged = detect_anomalies(clean, threshold_sigma, window)
        deviations = sigma_deviations(clean, window)

        return [
            Anomaly(
                index=int(positions[i]),
                date=dates[positions[i]],
                value=float(clean[i]),
                sigma_deviation=float(deviations[i]),
            )
            for i in flagged
        ]

    def _to_points(self, fit: ModelFit, values: np.ndarray, start_date: date) -> list[ForecastPoint]:
        residual_std = fit.residual_std
        level = abs(float(np.mean(values))) if len(values) else 0.0
        noise = residual_std / max(level, 1e-9)
        base_score = 100.0 / (1.0 + noise)

        points = []
        for step, value in enumerate(fit.forecast, start=1):
            score = base_score / (1.0 + HORIZON_DECAY * (step - 1))
            band = BOUND_Z * residual_std * math.sqrt(step)
            points.append(
                ForecastPoint(
                    target_date=start_date + timedelta(days=step - 1),
                    predicted_value=float(value),
                    confidence_score=min(100.0, max(0.0, score)),
                    lower_bound=float(value) - band,
                    upper_bound=float(value) + band,
                )
            )
        return points
