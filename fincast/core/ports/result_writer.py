"""
ResultWriter Port - Persistence of forecast, accuracy and anomaly results.
"""

from abc import ABC, abstractmethod

from fincast.core.domain.config import ForecastConfig
from fincast.core.domain.result import AccuracyMetrics, Anomaly, ForecastJob, ForecastPoint


class ResultWriter(ABC):
    """
    Abstract interface for storing results produced by the core.
    """

    @abstractmethod
    async def save_forecast_results(
        self,
        user_id: int,
        config: ForecastConfig,
        points: list[ForecastPoint],
    ) -> None:
        """Persist the forecast points generated for a config."""
        ...

    @abstractmethod
    async def save_accuracy_metrics(self, metrics: AccuracyMetrics) -> None:
        """Persist one backtest accuracy record."""
        ...

    @abstractmethod
    async def save_anomalies(self, user_id: int, config_id: int | None, anomalies: list[Anomaly]) -> None:
        """Persist detected anomalies."""
        ...

    @abstractmethod
    async def save_job(self, job: ForecastJob) -> None:
        """Persist a batch job record."""
        ...
