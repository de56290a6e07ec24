"""
CSV Transaction Loader - SeriesLoader backed by a transactions export.

Reads a CSV with columns user_id, date, amount, category and
transaction_type, and aggregates matching rows to daily totals.
"""

import logging
from datetime import date
from pathlib import Path

import pandas as pd

from fincast.core.domain.series import TimeSeries
from fincast.core.ports.series_loader import SeriesLoader

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ["user_id", "date", "amount"]
OPTIONAL_COLUMNS = ["category", "transaction_type"]


class CsvTransactionLoader(SeriesLoader):
    """
    Loads daily totals per user from a CSV file.

    The file is read once and cached for the lifetime of the loader.
    """

    def __init__(self, csv_path: str | Path):
        self.csv_path = Path(csv_path)
        self._df: pd.DataFrame | None = None

    def _frame(self) -> pd.DataFrame:
        if self._df is None:
            self._df = self._read()
        return self._df

    def _read(self) -> pd.DataFrame:
        if not self.csv_path.exists():
            logger.warning(f"Transactions file {self.csv_path} not found")
            return pd.DataFrame(columns=REQUIRED_COLUMNS + OPTIONAL_COLUMNS)

        df = pd.read_csv(self.csv_path)
        missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
        if missing:
            raise ValueError(f"Transactions file {self.csv_path} is missing columns: {missing}")

        for col in OPTIONAL_COLUMNS:
            if col not in df.columns:
                df[col] = None

        df["date"] = pd.to_datetime(df["date"]).dt.normalize()
        df["amount"] = pd.to_numeric(df["amount"], errors="coerce")
        dropped = int(df["amount"].isna().sum())
        if dropped:
            logger.warning(f"Dropped {dropped} transactions with non-numeric amounts")
            df = df.dropna(subset=["amount"])

        logger.info(f"Loaded {len(df)} transactions from {self.csv_path}")
        return df

    async def load_series(
        self,
        user_id: int,
        start: date,
        end: date,
        category: str | None = None,
        transaction_type: str | None = None,
    ) -> TimeSeries:
        df = self._frame()
        if df.empty:
            return TimeSeries.empty()

        mask = (
            (df["user_id"] == user_id)
            & (df["date"] >= pd.Timestamp(start))
            & (df["date"] <= pd.Timestamp(end))
        )
        if category is not None:
            mask &= df["category"] == category
        if transaction_type is not None:
            mask &= df["transaction_type"] == transaction_type

        selected = df.loc[mask]
        if selected.empty:
            return TimeSeries.empty()

        daily = (
            selected.groupby("date", sort=True)["amount"]
            .sum()
            .reset_index()
            .rename(columns={"date": "ds", "amount": "y"})
        )
        return TimeSeries(daily)
