"""
JSON-Lines Result Writer - Appends results to files under a directory.

One file per record kind:
- forecast_results.jsonl
- accuracy_metrics.jsonl
- anomalies.jsonl
- forecast_jobs.jsonl
"""

import json
import logging
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from fincast.core.domain.config import ForecastConfig
from fincast.core.domain.result import AccuracyMetrics, Anomaly, ForecastJob, ForecastPoint
from fincast.core.ports.result_writer import ResultWriter

logger = logging.getLogger(__name__)


def _json_default(value: Any) -> Any:
    if hasattr(value, "isoformat"):
        return value.isoformat()
    if hasattr(value, "value"):
        return value.value
    raise TypeError(f"Cannot serialize {type(value).__name__}")


class JsonlResultWriter(ResultWriter):
    """
    Append-only result writer. Each line is one JSON record.
    """

    def __init__(self, results_dir: str | Path):
        self.results_dir = Path(results_dir)

    def _append(self, filename: str, records: list[dict[str, Any]]) -> None:
        if not records:
            return
        self.results_dir.mkdir(parents=True, exist_ok=True)
        path = self.results_dir / filename
        with open(path, "a") as f:
            for record in records:
                f.write(json.dumps(record, default=_json_default) + "\n")
        logger.debug(f"Appended {len(records)} records to {path}")

    async def save_forecast_results(
        self,
        user_id: int,
        config: ForecastConfig,
        points: list[ForecastPoint],
    ) -> None:
        written_at = datetime.now(timezone.utc)
        records = [
            {
                "user_id": user_id,
                "config_id": config.id,
                "algorithm": config.algorithm.value,
                **asdict(point),
                "created_at": written_at,
            }
            for point in points
        ]
        self._append("forecast_results.jsonl", records)

    async def save_accuracy_metrics(self, metrics: AccuracyMetrics) -> None:
        self._append("accuracy_metrics.jsonl", [asdict(metrics)])

    async def save_anomalies(self, user_id: int, config_id: int | None, anomalies: list[Anomaly]) -> None:
        records = [{"user_id": user_id, "config_id": config_id, **asdict(a)} for a in anomalies]
        self._append("anomalies.jsonl", records)

    async def save_job(self, job: ForecastJob) -> None:
        self._append("forecast_jobs.jsonl", [asdict(job)])
