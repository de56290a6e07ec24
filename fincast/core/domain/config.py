"""
Forecast Config Domain Model - Algorithm selection and parameters.

Uses Pydantic for validation. Construction failures surface as the
core's own ValidationError so callers handle a single error family.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

from fincast.core.domain.errors import ValidationError

DEFAULT_WINDOW = 7
DEFAULT_ALPHA = 0.3
DEFAULT_ORDER = (1, 1, 1)
DEFAULT_SEASON_LENGTH = 7
DEFAULT_FOURIER_ORDER = 2
DEFAULT_THRESHOLD_SIGMA = 3.0


class AlgorithmType(str, Enum):
    SMA = "SMA"
    EWMA = "EWMA"
    LINEAR_REGRESSION = "LINEAR_REGRESSION"
    ARIMA = "ARIMA"
    SEASONAL_DECOMPOSITION = "SEASONAL_DECOMPOSITION"
    TREND_SEASONALITY = "TREND_SEASONALITY"
    ENSEMBLE = "ENSEMBLE"
    ANOMALY_DETECTION = "ANOMALY_DETECTION"


class _FrozenModel(BaseModel):
    """Immutable model whose validation errors use the core error type."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    def __init__(self, **data: Any):
        try:
            super().__init__(**data)
        except PydanticValidationError as e:
            raise ValidationError(
                f"Invalid {type(self).__name__}: {e}",
                config_id=data.get("id"),
                algorithm=_algorithm_name(data.get("algorithm")),
            ) from e


def _algorithm_name(value: Any) -> str | None:
    if isinstance(value, AlgorithmType):
        return value.value
    return str(value) if value is not None else None


class EnsembleMember(_FrozenModel):
    """One member algorithm of an ensemble."""

    algorithm: AlgorithmType
    parameters: "ParamSet" = Field(default_factory=lambda: ParamSet())

    @model_validator(mode="after")
    def _check_member_algorithm(self) -> "EnsembleMember":
        if self.algorithm in (AlgorithmType.ENSEMBLE, AlgorithmType.ANOMALY_DETECTION):
            raise ValueError(f"{self.algorithm.value} cannot be an ensemble member")
        return self


class ParamSet(_FrozenModel):
    """Algorithm-specific parameters. Unset fields fall back to defaults."""

    window: int | None = Field(default=None, ge=1)
    alpha: float | None = Field(default=None, gt=0.0, le=1.0)
    p: int | None = Field(default=None, ge=0)
    d: int | None = Field(default=None, ge=0)
    q: int | None = Field(default=None, ge=0)
    season_length: int | None = Field(default=None, ge=2)
    fourier_order: int | None = Field(default=None, ge=1)
    threshold_sigma: float | None = Field(default=None, gt=0.0)
    anomaly_window: int | None = Field(default=None, ge=1)
    ensemble_members: tuple[EnsembleMember, ...] = ()

    @property
    def resolved_window(self) -> int:
        return self.window if self.window is not None else DEFAULT_WINDOW

    @property
    def resolved_alpha(self) -> float:
        return self.alpha if self.alpha is not None else DEFAULT_ALPHA

    @property
    def resolved_order(self) -> tuple[int, int, int]:
        p, d, q = DEFAULT_ORDER
        return (
            self.p if self.p is not None else p,
            self.d if self.d is not None else d,
            self.q if self.q is not None else q,
        )

    @property
    def resolved_season_length(self) -> int:
        return self.season_length if self.season_length is not None else DEFAULT_SEASON_LENGTH

    @property
    def resolved_fourier_order(self) -> int:
        return self.fourier_order if self.fourier_order is not None else DEFAULT_FOURIER_ORDER

    @property
    def resolved_threshold_sigma(self) -> float:
        return self.threshold_sigma if self.threshold_sigma is not None else DEFAULT_THRESHOLD_SIGMA


EnsembleMember.model_rebuild()
ParamSet.model_rebuild()


class ForecastConfig(_FrozenModel):
    """
    Complete forecast configuration for one user.

    Matches the forecast_configs record owned by the storage collaborator.
    """

    # --- Identity ---
    id: int
    user_id: int
    description: str = ""

    # --- Algorithm ---
    algorithm: AlgorithmType
    parameters: ParamSet = Field(default_factory=ParamSet)
    horizon_days: int = Field(default=30, gt=0)

    # --- Series filters ---
    category: str | None = None
    transaction_type: str | None = None

    @model_validator(mode="after")
    def _check_ensemble(self) -> "ForecastConfig":
        if self.algorithm == AlgorithmType.ENSEMBLE and not self.parameters.ensemble_members:
            raise ValueError("ENSEMBLE requires at least one ensemble member")
        return self

    @property
    def series_filter(self) -> tuple[str | None, str | None]:
        return (self.category, self.transaction_type)
