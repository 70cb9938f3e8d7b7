"""Top-level engine configuration — bundles all caller-supplied options."""

from pydantic import BaseModel, Field

from ser_engine.config.scoring import ScoringConfig
from ser_engine.config.statistics import StatisticsConfig
from ser_engine.config.validation import ValidationConfig


class EngineConfig(BaseModel):
    """Complete option bundle for fitting and scoring.

    Accepts plain dictionaries through ``EngineConfig.model_validate``;
    missing sections fall back to their defaults.
    """

    validation: ValidationConfig = Field(default_factory=ValidationConfig)
    statistics: StatisticsConfig = Field(default_factory=StatisticsConfig)
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    baseline_fallback_years: int = Field(
        default=5, ge=0, le=20,
        description="How many prior years the SER baseline lookup may fall back to",
    )
