"""Configuration models — cohort filters and engine options."""

from ser_engine.config.cohort import ALL_REGIONS, CohortKey, VehicleClass
from ser_engine.config.validation import ValidationConfig
from ser_engine.config.statistics import StatisticsConfig
from ser_engine.config.scoring import ScoringConfig
from ser_engine.config.engine import EngineConfig

__all__ = [
    "ALL_REGIONS",
    "CohortKey",
    "VehicleClass",
    "ValidationConfig",
    "StatisticsConfig",
    "ScoringConfig",
    "EngineConfig",
]
