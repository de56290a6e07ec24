"""
In-Memory Storage Adapters - Process-local loader and writer.

Used by tests and ad-hoc runs where no persistent storage is wanted.
"""

from datetime import date, timedelta

from fincast.core.domain.config import ForecastConfig
from fincast.core.domain.result import AccuracyMetrics, Anomaly, ForecastJob, ForecastPoint
from fincast.core.domain.series import TimeSeries
from fincast.core.ports.result_writer import ResultWriter
from fincast.core.ports.series_loader import SeriesLoader


class InMemorySeriesLoader(SeriesLoader):
    """Serves pre-built series keyed by (user_id, category, transaction_type)."""

    def __init__(self):
        self._series: dict[tuple[int, str | None, str | None], TimeSeries] = {}

    def add(
        self,
        user_id: int,
        series: TimeSeries,
        category: str | None = None,
        transaction_type: str | None = None,
    ) -> None:
        self._series[(user_id, category, transaction_type)] = series

    async def load_series(
        self,
        user_id: int,
        start: date,
        end: date,
        category: str | None = None,
        transaction_type: str | None = None,
    ) -> TimeSeries:
        series = self._series.get((user_id, category, transaction_type))
        if series is None:
            return TimeSeries.empty()
        # load_series bounds are inclusive, between() is half-open
        return series.between(start, end + timedelta(days=1))


class InMemoryResultWriter(ResultWriter):
    """Keeps every written record in lists for later inspection."""

    def __init__(self):
        self.forecasts: dict[int, list[ForecastPoint]] = {}
        self.metrics: list[AccuracyMetrics] = []
        self.anomalies: dict[int | None, list[Anomaly]] = {}
        self.jobs: list[ForecastJob] = []

    async def save_forecast_results(
        self,
        user_id: int,
        config: ForecastConfig,
        points: list[ForecastPoint],
    ) -> None:
        self.forecasts[config.id] = list(points)

    async def save_accuracy_metrics(self, metrics: AccuracyMetrics) -> None:
        self.metrics.append(metrics)

    async def save_anomalies(self, user_id: int, config_id: int | None, anomalies: list[Anomaly]) -> None:
        self.anomalies[config_id] = list(anomalies)

    async def save_job(self, job: ForecastJob) -> None:
        # Jobs are mutated across transitions; keep the latest state once
        if not any(saved is job for saved in self.jobs):
            self.jobs.append(job)
