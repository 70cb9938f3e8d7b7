"""Validation thresholds — fatal checks and data-quality warnings."""

from pydantic import BaseModel, Field


class ValidationConfig(BaseModel):
    """Limits used by the DataPoint Validator.

    ``min_observations`` and ``multicollinearity_threshold`` drive fatal
    errors.  Everything else only produces warnings.
    """

    # --- Fatal checks ---
    min_observations: int = Field(
        default=3, ge=3,
        description="Minimum observations for a regression (below → insufficient sample size)",
    )
    multicollinearity_threshold: float = Field(
        default=0.9999, gt=0, le=1.0,
        description="|r(distance, tonnage)| above this is perfect multicollinearity",
    )

    # --- Warnings ---
    high_correlation_threshold: float = Field(
        default=0.9, gt=0, le=1.0,
        description="|r(distance, tonnage)| above this is flagged as high correlation",
    )
    outlier_z_threshold: float = Field(
        default=2.0, gt=0,
        description="|z-score| above this flags a possible outlier (fuel or distance)",
    )
    max_distance_km: float = Field(default=500_000.0, gt=0, description="Upper plausible monthly distance")
    max_fuel_liters: float = Field(default=50_000.0, gt=0, description="Upper plausible monthly fuel")
    max_tonnage: float = Field(default=500_000.0, gt=0, description="Upper plausible monthly tonnage")
