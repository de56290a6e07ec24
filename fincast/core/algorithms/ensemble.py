"""
Ensemble Forecast - Step-wise mean of member forecasts.
"""

from collections.abc import Sequence

import numpy as np

from fincast.core.domain.errors import ValidationError


def ensemble_forecast(member_forecasts: Sequence[Sequence[float] | np.ndarray]) -> np.ndarray:
    """
    Average member forecasts at each horizon step.

    Raises:
        ValidationError: No members, an empty member, or unequal lengths.
    """
    if member_forecasts is None or len(member_forecasts) == 0:
        raise ValidationError("Ensemble needs at least one member forecast")

    lengths = {len(member) for member in member_forecasts}
    if 0 in lengths:
        raise ValidationError("Ensemble member forecasts must not be empty")
    if len(lengths) > 1:
        raise ValidationError(f"Ensemble member forecasts have unequal lengths: {sorted(lengths)}")

    stacked = np.vstack([np.asarray(member, dtype=float) for member in member_forecasts])
    # Identical members must come back bit-for-bit, which summation rounding breaks
    if np.array_equal(stacked, np.broadcast_to(stacked[0], stacked.shape)):
        return stacked[0].copy()
    return stacked.mean(axis=0)
