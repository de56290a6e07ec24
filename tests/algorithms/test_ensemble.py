import numpy as np
import pytest

from fincast.core.algorithms.ensemble import ensemble_forecast
from fincast.core.domain.errors import ValidationError


def test_ensemble_stepwise_mean():
    np.testing.assert_allclose(ensemble_forecast([[10.0, 20.0], [20.0, 30.0]]), [15.0, 25.0])


def test_ensemble_identical_members_are_exact():
    member = [0.1, 0.2, 0.7]
    result = ensemble_forecast([member, member, member])
    assert result.tolist() == member


def test_ensemble_single_member():
    np.testing.assert_array_equal(ensemble_forecast([[1.0, 2.0]]), [1.0, 2.0])


@pytest.mark.parametrize(
    "members",
    [
        [],
        [[]],
        [[1.0, 2.0], [1.0]],
    ],
)
def test_ensemble_invalid_members(members):
    with pytest.raises(ValidationError):
        ensemble_forecast(members)
