"""Fit / evaluate pipeline — wires the engine stages together.

  fit_cohort:      observations → validate → OLS → statistics → FittedModel
  evaluate_cohort: observations + baseline model → projections → anomaly events
  deliver_events:  anomaly events → notification sink

Entry points are pure apart from logging; caching lives in ``ModelCache``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import Protocol

from ser_engine.config.cohort import CohortKey
from ser_engine.config.engine import EngineConfig
from ser_engine.engine.ols import fit_ols, predictor_kind_for
from ser_engine.engine.scoring import score_batch
from ser_engine.engine.statistics import compute_statistics, get_estimator
from ser_engine.engine.validation import assess_significance, require_valid
from ser_engine.models.observation import Observation
from ser_engine.models.regression import FittedModel
from ser_engine.models.scoring import AnomalyEvent, ScoringReport

logger = logging.getLogger(__name__)


class AnomalySink(Protocol):
    """External notification collaborator.  Owns wording, translation, channels."""

    def deliver(self, event: AnomalyEvent) -> None: ...


def fit_cohort(
    observations: Sequence[Observation],
    cohort: CohortKey,
    config: EngineConfig | None = None,
) -> FittedModel:
    """Validate, fit and characterise one cohort.

    Returns an unpublished (``version == 0``) model with ``fit_statistics``
    filled and data-quality / significance warnings attached.

    Raises
    ------
    InsufficientDataError, DegenerateInputError
        The observation set is unusable; the fitter is never invoked.
    NumericDegeneracyError
        The fit or its statistics hit a singular / non-finite value.
    ConfigurationError
        Unknown p-value estimator.
    """
    cfg = config or EngineConfig()
    estimator = get_estimator(cfg.statistics.p_value_method)

    validation = require_valid(observations, cohort=cohort, config=cfg.validation)

    fit = fit_ols(observations, predictor_kind_for(cohort.vehicle_class), cohort)
    statistics = compute_statistics(observations, fit.model, estimator)
    significance = assess_significance(statistics, cfg.statistics.significance_level)

    warnings = [issue.message for issue in validation.warnings + significance]
    for message in warnings:
        logger.debug(f"{cohort.label}: {message}")
    logger.debug(
        f"Fitted {cohort.label}: {fit.model.equation} "
        f"(R² = {statistics.r_squared:.4f}, n = {statistics.observations})"
    )

    return fit.model.model_copy(update={"fit_statistics": statistics, "warnings": warnings})


def evaluate_cohort(
    observations: Sequence[Observation],
    baseline: FittedModel,
    config: EngineConfig | None = None,
) -> ScoringReport:
    """Project ``observations`` against a baseline model and classify anomalies.

    The baseline may belong to another year (normally the SER year).  A
    model-quality event for the baseline is included when its R² is low.
    """
    cfg = config or EngineConfig()
    return score_batch(observations, baseline, cfg.scoring)


def deliver_events(events: Iterable[AnomalyEvent], sink: AnomalySink) -> int:
    """Hand events to ``sink`` in order; returns how many were delivered."""
    count = 0
    for event in events:
        sink.deliver(event)
        count += 1
    logger.debug(f"Delivered {count} anomaly event(s)")
    return count
