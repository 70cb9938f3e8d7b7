"""Scoring knobs — improvement target and anomaly thresholds."""

from pydantic import BaseModel, Field


class ScoringConfig(BaseModel):
    """Improvement percentage plus the thresholds of the anomaly predicates."""

    improvement_percentage: float = Field(
        default=0.0, ge=0, le=100,
        description="Target reduction applied to the reference consumption (%)",
    )
    ipe_threshold: float = Field(
        default=30.0, gt=0,
        description="Actual IPE (L/100km) above this raises an anomaly",
    )
    ipe_high_threshold: float = Field(
        default=40.0, gt=0,
        description="Actual IPE (L/100km) above this makes the anomaly HIGH severity",
    )
    min_r_squared: float = Field(
        default=0.5, ge=0, le=1.0,
        description="Cohort models with R² below this get a model-quality warning",
    )
