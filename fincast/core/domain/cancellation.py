"""
Cancellation Token - Cooperative cancellation and time budgets.

Long iterative fits poll the token between iterations; the batch
orchestrator cancels it when the caller abandons the batch.
"""

import threading
import time

from fincast.core.domain.errors import ComputeBudgetExceededError, ForecastCancelledError


class CancellationToken:
    """
    Thread-safe cancellation flag with an optional time budget.

    Args:
        budget_seconds: Maximum wall time allowed from the last start_clock().
            None means unbounded.
    """

    def __init__(self, budget_seconds: float | None = None):
        self._event = threading.Event()
        self._budget = budget_seconds
        self._deadline = None
        self.start_clock()

    def start_clock(self) -> None:
        """Restart the time budget, e.g. when queued work begins running."""
        if self._budget is not None:
            self._deadline = time.monotonic() + self._budget

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def expired(self) -> bool:
        return self._deadline is not None and time.monotonic() > self._deadline

    def raise_if_cancelled(self) -> None:
        """Raise if the token was cancelled or its budget ran out."""
        if self._event.is_set():
            raise ForecastCancelledError("Computation cancelled by caller")
        if self.expired:
            raise ComputeBudgetExceededError("Computation exceeded its time budget")
