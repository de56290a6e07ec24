"""
Forecast Service - The core entry point used by schedulers and API handlers.

This service orchestrates the load-compute-store cycle:
1. Load the user's history through the SeriesLoader port
2. Run the engine, backtest or batch computation off the event loop
3. Write results through the ResultWriter port
"""

import asyncio
import logging
from collections.abc import Sequence
from datetime import date, timedelta

from fincast.core.domain.config import ForecastConfig
from fincast.core.domain.errors import InsufficientDataError, ValidationError
from fincast.core.domain.result import (
    Anomaly,
    BacktestResult,
    ConfigOutcome,
    ForecastJob,
    ForecastPoint,
    JobStatus,
)
from fincast.core.domain.series import TimeSeries
from fincast.core.domain.settings import EngineSettings
from fincast.core.ports.result_writer import ResultWriter
from fincast.core.ports.series_loader import SeriesLoader
from fincast.core.services.backtest import BacktestRunner
from fincast.core.services.batch import BatchOrchestrator
from fincast.core.services.forecast_engine import ForecastEngine

logger = logging.getLogger(__name__)


class ForecastService:
    """
    Async facade over the engine, backtest runner and batch orchestrator.
    """

    def __init__(
        self,
        loader: SeriesLoader,
        writer: ResultWriter,
        settings: EngineSettings | None = None,
        engine: ForecastEngine | None = None,
        orchestrator: BatchOrchestrator | None = None,
    ):
        """
        Initialize the service.

        Args:
            loader: Port to read historical series
            writer: Port to persist results
            settings: Engine settings (defaults when omitted)
            engine: Forecast engine (built from settings when omitted)
            orchestrator: Batch orchestrator (built from settings when omitted)
        """
        self.loader = loader
        self.writer = writer
        self.settings = settings or EngineSettings()
        self.engine = engine or ForecastEngine(self.settings)
        self.backtester = BacktestRunner(self.engine)
        self.orchestrator = orchestrator or BatchOrchestrator(
            self.engine,
            max_workers=self.settings.max_workers,
            config_timeout_seconds=self.settings.config_timeout_seconds,
        )

    async def generate_forecast(
        self,
        user_id: int,
        config: ForecastConfig,
        start_date: date,
        horizon_days: int,
    ) -> list[ForecastPoint]:
        """
        Forecast ``horizon_days`` days starting at ``start_date`` and store the points.
        """
        self._check_owner(user_id, config)
        self.engine.validate(config, horizon_days)
        logger.info(f"Generating forecast: user={user_id} config={config.id} algo={config.algorithm.value} horizon={horizon_days}")

        series = await self._load_history(user_id, config, start_date)
        if series.is_empty:
            raise InsufficientDataError(
                f"No history for user {user_id} before {start_date}",
                config_id=config.id,
                algorithm=config.algorithm.value,
            )

        points = await asyncio.to_thread(
            self.engine.generate,
            series,
            config,
            start_date,
            horizon_days,
        )
        await self.writer.save_forecast_results(user_id, config, points)
        return points

    async def backtest_and_store_accuracy(
        self,
        user_id: int,
        config: ForecastConfig,
        start_date: date,
        horizon_days: int,
        lookback_days: int,
    ) -> BacktestResult:
        """
        Backtest a config from ``start_date`` and store the points and accuracy.
        """
        self._check_owner(user_id, config)
        series = await self.loader.load_series(
            user_id,
            start_date - timedelta(days=lookback_days),
            start_date + timedelta(days=horizon_days - 1),
            category=config.category,
            transaction_type=config.transaction_type,
        )

        result = await asyncio.to_thread(
            self.backtester.backtest,
            series,
            config,
            start_date,
            horizon_days,
            lookback_days,
        )
        await self.writer.save_forecast_results(user_id, config, result.points)
        await self.writer.save_accuracy_metrics(result.metrics)
        logger.info(f"Backtest stored for config {config.id}: mape={result.metrics.mape}")
        return result

    async def batch_generate_forecasts(
        self,
        user_id: int,
        configs: Sequence[ForecastConfig],
        start_date: date,
        horizon_days: int,
    ) -> dict[int, ConfigOutcome]:
        """
        Forecast every config and store the successful ones.

        Results are written only after the whole batch settles, so a
        cancelled or timed-out batch writes nothing.
        """
        job = ForecastJob(
            user_id=user_id,
            description=f"Batch of {len(configs)} forecasts from {start_date}",
            total_configs=len(configs),
        )
        job.transition(JobStatus.RUNNING)
        await self.writer.save_job(job)

        try:
            series = await self._load_per_filter(user_id, configs, start_date)
            outcomes = await self.orchestrator.batch_generate(
                user_id,
                configs,
                series,
                start_date,
                horizon_days,
                timeout=self.settings.batch_timeout_seconds,
            )
        except BaseException as e:
            job.transition(JobStatus.FAILED, error_message=str(e) or type(e).__name__)
            await self.writer.save_job(job)
            raise

        by_id = {config.id: config for config in configs}
        for config_id, outcome in outcomes.items():
            if outcome.ok:
                await self.writer.save_forecast_results(user_id, by_id[config_id], outcome.points)

        job.succeeded = sum(1 for outcome in outcomes.values() if outcome.ok)
        job.failed = len(outcomes) - job.succeeded
        job.transition(JobStatus.COMPLETED)
        await self.writer.save_job(job)
        return outcomes

    def detect_anomalies(self, series: TimeSeries, threshold_sigma: float) -> list[int]:
        """Indices of anomalous observations using the full-series baseline."""
        return [anomaly.index for anomaly in self.engine.detect(series, threshold_sigma)]

    async def detect_and_store_anomalies(
        self,
        user_id: int,
        config: ForecastConfig,
        start_date: date,
        end_date: date,
    ) -> list[Anomaly]:
        """
        Detect anomalies in a date range using the config's threshold and window.
        """
        self._check_owner(user_id, config)
        series = await self.loader.load_series(
            user_id,
            start_date,
            end_date,
            category=config.category,
            transaction_type=config.transaction_type,
        )
        params = config.parameters
        anomalies = self.engine.detect(series, params.resolved_threshold_sigma, params.anomaly_window)
        if anomalies:
            logger.info(f"Detected {len(anomalies)} anomalies for user {user_id} config {config.id}")
        await self.writer.save_anomalies(user_id, config.id, anomalies)
        return anomalies

    async def _load_history(self, user_id: int, config: ForecastConfig, start_date: date) -> TimeSeries:
        return await self.loader.load_series(
            user_id,
            start_date - timedelta(days=self.settings.default_lookback_days),
            start_date - timedelta(days=1),
            category=config.category,
            transaction_type=config.transaction_type,
        )

    async def _load_per_filter(
        self,
        user_id: int,
        configs: Sequence[ForecastConfig],
        start_date: date,
    ) -> dict[int, TimeSeries]:
        """Load one series per distinct (category, transaction_type) filter."""
        loaded: dict[tuple[str | None, str | None], TimeSeries] = {}
        series = {}
        for config in configs:
            key = config.series_filter
            if key not in loaded:
                loaded[key] = await self._load_history(user_id, config, start_date)
            series[config.id] = loaded[key]
        return series

    @staticmethod
    def _check_owner(user_id: int, config: ForecastConfig) -> None:
        if config.user_id != user_id:
            raise ValidationError(
                f"Config belongs to user {config.user_id}, not {user_id}",
                config_id=config.id,
                algorithm=config.algorithm.value,
            )
