from typing import Literal

from pydantic import BaseModel, Field


class EngineSettings(BaseModel):
    """
    Global engine configuration settings.
    """
    # Batch execution
    max_workers: int | None = Field(default=None, ge=1, description="Worker pool size (defaults to CPU count)")
    config_timeout_seconds: float | None = Field(default=30.0, gt=0, description="Time budget per config computation")
    batch_timeout_seconds: float | None = Field(default=None, gt=0, description="Timeout for a whole batch")

    # Algorithms
    arima_max_iterations: int = Field(default=100, ge=1, description="MA fitting iteration bound")
    arima_tolerance: float = Field(default=1e-6, gt=0, description="MA coefficient convergence tolerance")
    max_horizon_days: int = Field(default=365, ge=1, description="Horizon clip applied by the engine")
    default_lookback_days: int = Field(default=180, ge=1, description="History loaded before a forecast start date")
    missing_values: Literal["drop", "ffill", "interpolate"] = Field(default="drop", description="Missing value policy")

    # Storage adapters
    configs_file: str = Field(default="forecast_configs.yaml", description="Path to forecast configs file")
    transactions_file: str = Field(default="transactions.csv", description="Path to transactions CSV")
    results_dir: str = Field(default="results", description="Directory for JSON-lines results")

    # Scheduling
    redis_url: str = Field(default="redis://localhost:6379/0", description="Celery broker and backend URL")
    nightly_schedule: str = Field(default="15 2 * * *", description="Cron expression for the nightly batch")
    nightly_horizon_days: int = Field(default=7, ge=1, description="Horizon used by the nightly batch")

    log_level: str = Field(default="INFO", description="Root logging level")
