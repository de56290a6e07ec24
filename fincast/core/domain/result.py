"""
Result Domain Models - Data structures for forecast, accuracy and anomaly results.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum

from fincast.core.domain.errors import ForecastError


@dataclass
class ForecastPoint:
    """A single forecast point with a confidence score and uncertainty bounds."""

    target_date: date
    predicted_value: float
    confidence_score: float  # 0.0 = no confidence, 100.0 = certain
    lower_bound: float | None = None
    upper_bound: float | None = None


@dataclass
class AccuracyMetrics:
    """Backtest accuracy for one config run."""

    config_id: int
    user_id: int
    mape: float | None  # None when no actual had a nonzero denominator
    horizon_days: int
    lookback_days: int
    compared_points: int = 0
    skipped_zero_actuals: int = 0
    created_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def is_defined(self) -> bool:
        return self.mape is not None


@dataclass
class Anomaly:
    """A flagged observation, indexed into the input series."""

    index: int
    date: date
    value: float
    sigma_deviation: float


@dataclass
class BacktestResult:
    """Forecast points produced during a backtest and their accuracy."""

    points: list[ForecastPoint]
    metrics: AccuracyMetrics


@dataclass
class ConfigOutcome:
    """Outcome of one config inside a batch: either points or an error."""

    config_id: int
    points: list[ForecastPoint] | None = None
    error: ForecastError | Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class JobStatus(str, Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


@dataclass
class ForecastJob:
    """Bookkeeping record for a batch run."""

    user_id: int
    description: str = ""
    status: JobStatus = JobStatus.PENDING
    total_configs: int = 0
    succeeded: int = 0
    failed: int = 0
    error_message: str | None = None
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)

    def transition(self, status: JobStatus, error_message: str | None = None) -> None:
        self.status = status
        if error_message is not None:
            self.error_message = error_message[:1000]
        self.updated_at = datetime.utcnow()


@dataclass
class AccuracySummary:
    """Aggregate accuracy for one config across backtest runs."""

    config_id: int
    runs: int
    defined_runs: int
    mean_mape: float | None
    min_mape: float | None
    max_mape: float | None
    last_mape: float | None
