"""
SeriesLoader Port - Read-only access to a user's historical values.
"""

from abc import ABC, abstractmethod
from datetime import date

from fincast.core.domain.series import TimeSeries


class SeriesLoader(ABC):
    """
    Abstract interface for loading a user's daily value series.
    """

    @abstractmethod
    async def load_series(
        self,
        user_id: int,
        start: date,
        end: date,
        category: str | None = None,
        transaction_type: str | None = None,
    ) -> TimeSeries:
        """
        Load daily totals for a user.

        Args:
            user_id: Owner of the series
            start: First date included
            end: Last date included
            category: Optional category filter
            transaction_type: Optional transaction type filter

        Returns:
            TimeSeries ordered by date (possibly empty)
        """
        ...
