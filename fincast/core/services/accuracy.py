"""
Accuracy Reporter - Aggregates backtest accuracy across configs.
"""

from collections.abc import Iterable
from dataclasses import asdict

import pandas as pd

from fincast.core.domain.result import AccuracyMetrics, AccuracySummary

METRIC_COLUMNS = [
    "config_id",
    "user_id",
    "mape",
    "horizon_days",
    "lookback_days",
    "compared_points",
    "skipped_zero_actuals",
    "created_at",
]


def _optional(value) -> float | None:
    return None if pd.isna(value) else float(value)


class AccuracyReporter:
    """Summaries over AccuracyMetrics records. Undefined MAPEs count as runs only."""

    def to_frame(self, metrics: Iterable[AccuracyMetrics]) -> pd.DataFrame:
        rows = [asdict(m) for m in metrics]
        df = pd.DataFrame(rows, columns=METRIC_COLUMNS)
        df["mape"] = pd.to_numeric(df["mape"], errors="coerce")
        return df

    def summarize(self, metrics: Iterable[AccuracyMetrics]) -> list[AccuracySummary]:
        """One summary per config id, ordered by config id."""
        df = self.to_frame(metrics)
        if df.empty:
            return []

        df = df.sort_values("created_at", kind="stable")
        summaries = []
        for config_id, group in df.groupby("config_id", sort=True):
            mape = group["mape"]
            defined = mape.dropna()
            summaries.append(
                AccuracySummary(
                    config_id=int(config_id),
                    runs=len(group),
                    defined_runs=len(defined),
                    mean_mape=_optional(defined.mean()) if len(defined) else None,
                    min_mape=_optional(defined.min()) if len(defined) else None,
                    max_mape=_optional(defined.max()) if len(defined) else None,
                    last_mape=_optional(mape.iloc[-1]),
                )
            )
        return summaries

    def best_config(self, metrics: Iterable[AccuracyMetrics]) -> int | None:
        """Config id with the lowest mean MAPE, or None if nothing is defined."""
        ranked = [s for s in self.summarize(metrics) if s.mean_mape is not None]
        if not ranked:
            return None
        return min(ranked, key=lambda s: (s.mean_mape, s.config_id)).config_id
