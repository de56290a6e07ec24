import asyncio
import logging
from collections import defaultdict
from datetime import date, timedelta

from celery import Celery
from celery.schedules import crontab

from fincast.adapters.config.settings_loader import load_settings
from fincast.adapters.config.yaml_store import YamlConfigStore
from fincast.adapters.storage.csv_loader import CsvTransactionLoader
from fincast.adapters.storage.jsonl_writer import JsonlResultWriter
from fincast.core.domain.config import AlgorithmType
from fincast.core.services.forecast_service import ForecastService

# Configuration (Load from YAML with Env Overrides)
settings = load_settings()

# Logging
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


def parse_cron(expression: str) -> crontab:
    """Build a crontab from a standard 5-field cron string."""
    fields = expression.split()
    if len(fields) != 5:
        raise ValueError(f"Cron expression must have 5 fields, got '{expression}'")
    minute, hour, day_of_month, month_of_year, day_of_week = fields
    return crontab(
        minute=minute,
        hour=hour,
        day_of_month=day_of_month,
        month_of_year=month_of_year,
        day_of_week=day_of_week,
    )


# Celery Application
celery_app = Celery("fincast", broker=settings.redis_url, backend=settings.redis_url)
celery_app.conf.beat_schedule = {
    "nightly-forecasts": {
        "task": "fincast.tasks.run_nightly_forecasts",
        "schedule": parse_cron(settings.nightly_schedule),
    },
}


def get_config_store() -> YamlConfigStore:
    return YamlConfigStore(config_path=settings.configs_file)


def build_service() -> ForecastService:
    loader = CsvTransactionLoader(settings.transactions_file)
    writer = JsonlResultWriter(settings.results_dir)
    return ForecastService(loader, writer, settings=settings)


# Celery Tasks
@celery_app.task(name="fincast.tasks.run_nightly_forecasts")
def run_nightly_forecasts_task():
    """
    Background task: forecast every configured user from today and
    scan yesterday's lookback window for anomalies.
    """
    start_date = date.today()
    logger.info(f"Starting nightly forecasts from {start_date}")

    async def _execute() -> dict[str, int]:
        config_store = get_config_store()
        service = build_service()

        by_user = defaultdict(list)
        for config in await config_store.list_configs():
            by_user[config.user_id].append(config)

        summary = {"users": len(by_user), "succeeded": 0, "failed": 0, "anomalies": 0}
        try:
            for user_id, configs in by_user.items():
                forecast_configs = [c for c in configs if c.algorithm != AlgorithmType.ANOMALY_DETECTION]
                if forecast_configs:
                    outcomes = await service.batch_generate_forecasts(
                        user_id,
                        forecast_configs,
                        start_date,
                        settings.nightly_horizon_days,
                    )
                    ok = sum(1 for outcome in outcomes.values() if outcome.ok)
                    summary["succeeded"] += ok
                    summary["failed"] += len(outcomes) - ok

                for config in configs:
                    if config.algorithm != AlgorithmType.ANOMALY_DETECTION:
                        continue
                    anomalies = await service.detect_and_store_anomalies(
                        user_id,
                        config,
                        start_date - timedelta(days=settings.default_lookback_days),
                        start_date - timedelta(days=1),
                    )
                    summary["anomalies"] += len(anomalies)
        finally:
            service.orchestrator.shutdown()
        return summary

    try:
        summary = asyncio.run(_execute())
        logger.info(f"Nightly forecasts finished: {summary}")
        return summary
    except Exception as e:
        logger.error(f"Nightly forecasts failed: {e}")
        raise e


@celery_app.task(name="fincast.tasks.run_backtest")
def run_backtest_task(
    config_id: int,
    start_date: str,
    horizon_days: int,
    lookback_days: int | None = None,
):
    """
    Background task to backtest one config and store its accuracy.

    Args:
        config_id: Config to backtest
        start_date: ISO date of the first forecast day
        horizon_days: Days forecast and compared
        lookback_days: Training window (defaults to settings.default_lookback_days)
    """
    logger.info(f"Starting backtest task for config {config_id} from {start_date}")

    async def _execute():
        config_store = get_config_store()
        config = await config_store.get_config(config_id)
        if not config:
            logger.error(f"Config {config_id} not found in configuration.")
            return None

        service = build_service()
        try:
            result = await service.backtest_and_store_accuracy(
                config.user_id,
                config,
                date.fromisoformat(start_date),
                horizon_days,
                lookback_days or settings.default_lookback_days,
            )
        finally:
            service.orchestrator.shutdown()
        return result.metrics.mape

    try:
        mape = asyncio.run(_execute())
        return {"config_id": config_id, "mape": mape}
    except Exception as e:
        logger.error(f"Backtest failed for config {config_id}: {e}")
        raise e
