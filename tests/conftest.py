"""
Pytest configuration for fincast tests.
"""
from datetime import date

import numpy as np
import pytest

from fincast.core.domain.config import AlgorithmType, ForecastConfig
from fincast.core.domain.series import TimeSeries


@pytest.fixture
def start_day():
    return date(2024, 1, 1)


@pytest.fixture
def linear_series(start_day):
    """y = 3 + 2t over 60 days."""
    return TimeSeries.from_values([3.0 + 2.0 * t for t in range(60)], start=start_day)


@pytest.fixture
def weekly_series(start_day):
    """Level 100 with a repeating weekly pattern over 8 weeks."""
    pattern = [10.0, -5.0, 0.0, 3.0, -8.0, 4.0, -4.0]
    values = [100.0 + pattern[t % 7] for t in range(56)]
    return TimeSeries.from_values(values, start=start_day)


@pytest.fixture
def noisy_series(start_day):
    rng = np.random.default_rng(42)
    return TimeSeries.from_values(100.0 + rng.normal(0.0, 5.0, size=90), start=start_day)


@pytest.fixture
def make_config():
    def _make(config_id=1, algorithm=AlgorithmType.SMA, user_id=7, **kwargs):
        return ForecastConfig(id=config_id, user_id=user_id, algorithm=algorithm, **kwargs)
    return _make
