"""
TimeSeries Domain Model - Ordered (date, value) observations for one user.

Backed by a pandas DataFrame with columns ["ds", "y"]. Accessors hand out
copies so the core never mutates a caller's series.
"""

from collections.abc import Iterable
from datetime import date, timedelta

import numpy as np
import pandas as pd

from fincast.core.domain.errors import ValidationError


class TimeSeries:
    """
    Strictly increasing, duplicate-free daily observations.

    Gaps are allowed; algorithms treat the series as index-ordered.
    Values may be NaN (missing) but never infinite.
    """

    def __init__(self, df: pd.DataFrame):
        required_cols = {"ds", "y"}
        if not required_cols.issubset(df.columns):
            raise ValidationError(f"Series frame must contain columns: {required_cols}")

        frame = df[["ds", "y"]].copy()
        frame["ds"] = pd.to_datetime(frame["ds"]).dt.normalize()
        frame["y"] = frame["y"].astype(float)

        if not frame["ds"].is_monotonic_increasing or frame["ds"].duplicated().any():
            raise ValidationError("Series dates must be strictly increasing without duplicates")
        if np.isinf(frame["y"].to_numpy()).any():
            raise ValidationError("Series values must be finite or NaN")

        self._df = frame.reset_index(drop=True)

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[date, float]]) -> "TimeSeries":
        rows = list(pairs)
        return cls(pd.DataFrame(rows, columns=["ds", "y"]))

    @classmethod
    def from_values(cls, values: Iterable[float], start: date = date(2024, 1, 1)) -> "TimeSeries":
        """Build a consecutive daily series starting at ``start``."""
        values = list(values)
        dates = [start + timedelta(days=i) for i in range(len(values))]
        return cls(pd.DataFrame({"ds": dates, "y": values}))

    @classmethod
    def empty(cls) -> "TimeSeries":
        return cls(pd.DataFrame({"ds": pd.Series(dtype="datetime64[ns]"), "y": pd.Series(dtype=float)}))

    def __len__(self) -> int:
        return len(self._df)

    def __repr__(self) -> str:
        return f"TimeSeries(points={len(self)})"

    @property
    def is_empty(self) -> bool:
        return self._df.empty

    @property
    def values(self) -> np.ndarray:
        return self._df["y"].to_numpy(dtype=float, copy=True)

    @property
    def dates(self) -> list[date]:
        return [ts.date() for ts in self._df["ds"]]

    @property
    def last_date(self) -> date | None:
        if self._df.empty:
            return None
        return self._df["ds"].iloc[-1].date()

    def between(self, start: date | None = None, end: date | None = None) -> "TimeSeries":
        """Return the half-open slice [start, end)."""
        mask = pd.Series(True, index=self._df.index)
        if start is not None:
            mask &= self._df["ds"] >= pd.Timestamp(start)
        if end is not None:
            mask &= self._df["ds"] < pd.Timestamp(end)
        return TimeSeries(self._df[mask])

    def value_map(self) -> dict[date, float]:
        """Map each observed date to its value, skipping missing values."""
        clean = self._df.dropna(subset=["y"])
        return {ts.date(): float(y) for ts, y in zip(clean["ds"], clean["y"])}

    def fill_missing(self, policy: str) -> np.ndarray:
        """
        Return values with missing entries handled.

        Args:
            policy: 'drop' removes NaNs, 'ffill' carries the last value
                forward, 'interpolate' fills linearly between neighbours.
                Leading NaNs that cannot be filled are dropped.
        """
        y = self._df["y"]
        if policy == "ffill":
            y = y.ffill()
        elif policy == "interpolate":
            y = y.interpolate(method="linear", limit_direction="forward")
        elif policy != "drop":
            raise ValidationError(f"Unknown missing-value policy '{policy}'")
        return y.dropna().to_numpy(dtype=float, copy=True)
