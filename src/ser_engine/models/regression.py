"""Regression result types — the contract between fitter, statistics, and cache.

Both models are frozen: a refit always produces a new ``FittedModel`` and the
cache swaps the reference, so readers never see a half-populated model.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ser_engine.config.cohort import CohortKey

PredictorKind = Literal["simple", "multiple"]
"""'simple' = distance only; 'multiple' = distance + tonnage (with intercept)."""


# ═══════════════════════════════════════════════════════════════════════════
# Statistics
# ═══════════════════════════════════════════════════════════════════════════

class CoefficientStatistics(BaseModel):
    """Inferential statistics for one coefficient (intercept, distance, tonnage)."""

    model_config = ConfigDict(frozen=True)

    name: str
    estimate: float
    standard_error: float
    t_stat: float
    p_value: float
    lower_95: float
    """estimate − 1.96 × standard_error (normal approximation)."""
    upper_95: float
    """estimate + 1.96 × standard_error."""


class FitStatistics(BaseModel):
    """Goodness-of-fit and inference for one fit.  Pure function of (observations, model)."""

    model_config = ConfigDict(frozen=True)

    # --- Fit quality ---
    multiple_r: float
    r_squared: float
    adjusted_r_squared: float
    standard_error: float
    """sqrt(mse)."""
    observations: int
    degrees_of_freedom: int
    """n − k − 1."""

    # --- ANOVA ---
    total_ss: float
    regression_ss: float
    """total_ss − residual_ss."""
    residual_ss: float
    mean_square_regression: float
    """regression_ss / k."""
    f_statistic: float
    significance_f: float

    # --- Coefficients (intercept, distance[, tonnage]) ---
    coefficients: list[CoefficientStatistics] = Field(default_factory=list)

    # --- Residual output, index-aligned with the fitting observations ---
    predicted_values: list[float] = Field(default_factory=list)
    residuals: list[float] = Field(default_factory=list)

    # --- Error metrics / information criteria ---
    mse: float
    """residual_ss / degrees_of_freedom."""
    rmse: float
    """sqrt(mse) — identical to standard_error by construction."""
    mae: float
    aic: float
    """n·ln(mse) + 2·(k+1)."""
    bic: float
    """n·ln(mse) + ln(n)·(k+1)."""

    variance_inflation_factors: list[float] = Field(default_factory=list)
    """One per predictor for multiple fits; empty for simple fits."""

    p_value_method: str = "logistic"

    def coefficient(self, name: str) -> CoefficientStatistics:
        for coef in self.coefficients:
            if coef.name == name:
                return coef
        raise KeyError(name)


# ═══════════════════════════════════════════════════════════════════════════
# Fitted model
# ═══════════════════════════════════════════════════════════════════════════

class RegressionCoefficients(BaseModel):
    """Slopes of the consumption model.  ``tonnage`` is None for simple fits."""

    model_config = ConfigDict(frozen=True)

    distance: float
    """Litres per km."""
    tonnage: float | None = None
    """Litres per tonne (multiple fits only)."""


class FittedModel(BaseModel):
    """One regression run for one cohort."""

    model_config = ConfigDict(frozen=True)

    cohort: CohortKey | None = None
    predictor_kind: PredictorKind
    intercept: float
    coefficients: RegressionCoefficients
    fit_statistics: FitStatistics | None = None
    """Filled by the pipeline before the model is published."""
    source_observation_count: int = Field(ge=3)
    fitted_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    version: int = Field(default=0, ge=0)
    """Monotonic per model cache; 0 until published."""
    warnings: list[str] = Field(default_factory=list)
    """Data-quality and significance warnings attached at fit time."""

    @model_validator(mode="after")
    def _tonnage_matches_kind(self) -> "FittedModel":
        has_tonnage = self.coefficients.tonnage is not None
        if has_tonnage != (self.predictor_kind == "multiple"):
            raise ValueError("coefficients.tonnage must be set iff predictor_kind == 'multiple'")
        return self

    @property
    def predictor_count(self) -> int:
        return 2 if self.predictor_kind == "multiple" else 1

    @property
    def r_squared(self) -> float | None:
        return self.fit_statistics.r_squared if self.fit_statistics is not None else None

    @property
    def equation(self) -> str:
        """Human-readable regression equation."""
        c = self.coefficients
        sign = "+" if self.intercept >= 0 else "-"
        terms = f"{c.distance:.4f} * distance"
        if c.tonnage is not None:
            terms += f" + {c.tonnage:.4f} * tonnage"
        return f"Consumption = {terms} {sign} {abs(self.intercept):.2f}"
