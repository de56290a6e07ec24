"""
Error Domain Model - Typed failures raised by the forecasting core.

Every error carries enough context (config id, algorithm, reason) to be
logged and reported to the API layer.
"""


class ForecastError(Exception):
    """Base class for all forecasting failures."""

    def __init__(
        self,
        reason: str,
        *,
        config_id: int | None = None,
        algorithm: str | None = None,
    ):
        super().__init__(reason)
        self.reason = reason
        self.config_id = config_id
        self.algorithm = algorithm

    def with_context(self, config_id: int | None = None, algorithm: str | None = None) -> "ForecastError":
        """Attach config context without overwriting what is already known."""
        if self.config_id is None:
            self.config_id = config_id
        if self.algorithm is None:
            self.algorithm = algorithm
        return self

    def __str__(self) -> str:
        context = []
        if self.config_id is not None:
            context.append(f"config_id={self.config_id}")
        if self.algorithm is not None:
            context.append(f"algorithm={self.algorithm}")
        if not context:
            return self.reason
        return f"{self.reason} ({', '.join(context)})"


class ValidationError(ForecastError, ValueError):
    """Malformed config or arguments. Checked eagerly, never retried."""


class InsufficientDataError(ForecastError):
    """Series shorter than an algorithm's minimum requirement."""


class NumericalInstabilityError(ForecastError):
    """Degenerate regression input or a fit that failed to converge."""


class ForecastCancelledError(ForecastError):
    """The caller cancelled the computation."""


class ComputeBudgetExceededError(ForecastError):
    """A single computation ran past its time budget."""


class BatchCancelledError(ForecastError):
    """A batch did not settle within its timeout."""
