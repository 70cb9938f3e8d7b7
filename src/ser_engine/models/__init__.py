"""Result models — engine input/output contracts."""

from ser_engine.models.observation import Observation, ValidationIssue, ValidationResult
from ser_engine.models.regression import (
    CoefficientStatistics,
    FitStatistics,
    FittedModel,
    PredictorKind,
    RegressionCoefficients,
)
from ser_engine.models.scoring import (
    AnomalyEvent,
    MonthlyTrendPoint,
    ObservationFailure,
    ProjectedMetrics,
    ScoringReport,
)

__all__ = [
    "Observation",
    "ValidationIssue",
    "ValidationResult",
    "CoefficientStatistics",
    "FitStatistics",
    "FittedModel",
    "PredictorKind",
    "RegressionCoefficients",
    "AnomalyEvent",
    "MonthlyTrendPoint",
    "ObservationFailure",
    "ProjectedMetrics",
    "ScoringReport",
]
