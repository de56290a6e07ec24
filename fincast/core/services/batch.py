"""
Batch Orchestrator - Runs many forecast configs concurrently.

Each config is an independent, cancellable unit of work executed on a
bounded thread pool. One config failing never aborts its peers; the
aggregate is only returned once every member has settled.
"""

import asyncio
import logging
import os
from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from datetime import date

from fincast.core.domain.cancellation import CancellationToken
from fincast.core.domain.config import ForecastConfig
from fincast.core.domain.errors import BatchCancelledError, ForecastError, ValidationError
from fincast.core.domain.result import ConfigOutcome
from fincast.core.domain.series import TimeSeries
from fincast.core.services.forecast_engine import ForecastEngine

logger = logging.getLogger(__name__)


class BatchOrchestrator:
    """
    Fans forecast configs out across a bounded worker pool.

    Args:
        engine: Engine used for each member computation.
        max_workers: Pool size. Defaults to the CPU count.
        config_timeout_seconds: Time budget for each member, independent
            of any batch-level timeout.
    """

    def __init__(
        self,
        engine: ForecastEngine | None = None,
        max_workers: int | None = None,
        config_timeout_seconds: float | None = None,
    ):
        self.engine = engine or ForecastEngine()
        self.max_workers = max_workers or os.cpu_count() or 1
        self.config_timeout_seconds = config_timeout_seconds
        self._executor = ThreadPoolExecutor(
            max_workers=self.max_workers,
            thread_name_prefix="fincast-batch",
        )

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)

    async def batch_generate(
        self,
        user_id: int,
        configs: Sequence[ForecastConfig],
        series: TimeSeries | Mapping[int, TimeSeries],
        start_date: date | None,
        horizon_days: int | None,
        timeout: float | None = None,
    ) -> dict[int, ConfigOutcome]:
        """
        Generate forecasts for every config.

        Args:
            user_id: Owner of every config.
            configs: Configs to run. Ids must be unique.
            series: One series for all configs, or a series per config id.
            start_date: First target date for every forecast.
            horizon_days: Horizon for every forecast (None uses each config's own).
            timeout: Seconds to wait for the whole batch.

        Returns:
            One ConfigOutcome per config id, in input order.

        Raises:
            ValidationError: Duplicate config ids.
            BatchCancelledError: The batch timed out. Completed results are discarded.
        """
        ids = [config.id for config in configs]
        duplicates = sorted({config_id for config_id in ids if ids.count(config_id) > 1})
        if duplicates:
            raise ValidationError(f"Duplicate config ids in batch: {duplicates}")

        outcomes: dict[int, ConfigOutcome] = {config_id: ConfigOutcome(config_id=config_id) for config_id in ids}
        runnable = []
        for config in configs:
            try:
                self._precheck(user_id, config, series, horizon_days)
            except ValidationError as e:
                logger.error(f"Rejected config {config.id} before scheduling: {e}")
                outcomes[config.id].error = e
                continue
            runnable.append(config)

        logger.info(
            f"Batch for user {user_id}: {len(runnable)} of {len(configs)} configs scheduled "
            f"on {self.max_workers} workers"
        )

        loop = asyncio.get_running_loop()
        tokens = {config.id: CancellationToken(self.config_timeout_seconds) for config in runnable}
        futures = [
            loop.run_in_executor(
                self._executor,
                self._run_one,
                config,
                self._series_for(config, series),
                start_date,
                horizon_days,
                tokens[config.id],
            )
            for config in runnable
        ]

        try:
            settled = await asyncio.wait_for(
                asyncio.gather(*futures, return_exceptions=True),
                timeout=timeout,
            )
        except asyncio.TimeoutError as e:
            self._cancel_all(tokens, futures)
            raise BatchCancelledError(f"Batch for user {user_id} did not settle within {timeout}s") from e
        except asyncio.CancelledError:
            self._cancel_all(tokens, futures)
            raise

        for config, result in zip(runnable, settled):
            if isinstance(result, BaseException):
                if isinstance(result, ForecastError):
                    result.with_context(config.id, config.algorithm.value)
                logger.error(f"Config {config.id} ({config.algorithm.value}) failed: {result}")
                outcomes[config.id].error = result
            else:
                outcomes[config.id].points = result

        failed = sum(1 for outcome in outcomes.values() if not outcome.ok)
        logger.info(f"Batch for user {user_id} settled: {len(outcomes) - failed} ok, {failed} failed")
        return outcomes

    def _precheck(
        self,
        user_id: int,
        config: ForecastConfig,
        series: TimeSeries | Mapping[int, TimeSeries],
        horizon_days: int | None,
    ) -> None:
        if config.user_id != user_id:
            raise ValidationError(
                f"Config belongs to user {config.user_id}, not {user_id}",
                config_id=config.id,
                algorithm=config.algorithm.value,
            )
        self.engine.validate(config, horizon_days)
        if isinstance(series, Mapping) and config.id not in series:
            raise ValidationError(
                "No series supplied for config",
                config_id=config.id,
                algorithm=config.algorithm.value,
            )

    @staticmethod
    def _series_for(config: ForecastConfig, series: TimeSeries | Mapping[int, TimeSeries]) -> TimeSeries:
        if isinstance(series, Mapping):
            return series[config.id]
        return series

    def _run_one(
        self,
        config: ForecastConfig,
        series: TimeSeries,
        start_date: date | None,
        horizon_days: int | None,
        token: CancellationToken,
    ):
        token.start_clock()
        token.raise_if_cancelled()
        return self.engine.generate(
            series,
            config,
            start_date=start_date,
            horizon_days=horizon_days,
            token=token,
        )

    @staticmethod
    def _cancel_all(tokens: dict[int, CancellationToken], futures: list[asyncio.Future]) -> None:
        for token in tokens.values():
            token.cancel()
        for future in futures:
            future.cancel()
        logger.warning(f"Cancelled {len(tokens)} in-flight batch computations")
