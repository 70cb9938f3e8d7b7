"""Engine — validation, regression, statistics, projection, scoring and caching."""

from ser_engine.engine.validation import assess_significance, require_valid, validate_observations
from ser_engine.engine.ols import OLSFit, fit_ols, predictor_kind_for
from ser_engine.engine.statistics import (
    LogisticApproximation,
    PValueEstimator,
    StudentTDistribution,
    compute_statistics,
    get_estimator,
)
from ser_engine.engine.projection import (
    build_monthly_trends,
    project_batch,
    project_observation,
    reference_consumption,
    target_consumption,
)
from ser_engine.engine.scoring import score_batch, score_model_quality, score_observation
from ser_engine.engine.pipeline import AnomalySink, deliver_events, evaluate_cohort, fit_cohort
from ser_engine.engine.model_cache import BaselineSelection, CacheState, ModelCache, ModelStore

__all__ = [
    "validate_observations",
    "require_valid",
    "assess_significance",
    "OLSFit",
    "fit_ols",
    "predictor_kind_for",
    "PValueEstimator",
    "LogisticApproximation",
    "StudentTDistribution",
    "compute_statistics",
    "get_estimator",
    "reference_consumption",
    "target_consumption",
    "project_observation",
    "project_batch",
    "build_monthly_trends",
    "score_observation",
    "score_model_quality",
    "score_batch",
    # Pipeline
    "fit_cohort",
    "evaluate_cohort",
    "deliver_events",
    "AnomalySink",
    # Cache
    "ModelCache",
    "ModelStore",
    "CacheState",
    "BaselineSelection",
]
