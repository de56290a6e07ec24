"""
Base Model Fit - Common return type for forecasting algorithms.
"""

from dataclasses import dataclass, field
from typing import Any

import numpy as np


@dataclass(frozen=True)
class ModelFit:
    """
    Forecast produced by a pure algorithm function.

    Attributes:
        forecast: One predicted value per horizon step.
        residuals: In-sample fit errors (NaN where undefined). Used by the
            engine to derive confidence scores and bounds.
        params: Fitted coefficients, for diagnostics.
    """

    forecast: np.ndarray
    residuals: np.ndarray = field(default_factory=lambda: np.array([]))
    params: dict[str, Any] = field(default_factory=dict)
    noise: float | None = None  # overrides the residual spread when set

    @property
    def residual_std(self) -> float:
        if self.noise is not None:
            return self.noise
        finite = self.residuals[np.isfinite(self.residuals)]
        if finite.size == 0:
            return 0.0
        return float(np.std(finite))

    def __len__(self) -> int:
        return len(self.forecast)
