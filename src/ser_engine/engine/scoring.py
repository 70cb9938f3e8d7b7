"""Efficiency & Anomaly Scorer — classify projected observations.

Per-observation predicates (independent; one observation may raise several):
  1. actual IPE > 30 L/100km              → ipe_above_threshold
     severity HIGH if actual IPE > 40, else MEDIUM
  2. trucks, per-tonne values defined:
     actual IPE/t > reference IPE/t       → ipe_per_tonne_above_reference
     severity HIGH if predicate 1 holds, else MEDIUM

Cohort-level predicate:
  3. model R² < 0.5                       → model_quality_low

The scorer only classifies and packages values.  Message wording and
delivery belong to the notification sink.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from ser_engine.config.scoring import ScoringConfig
from ser_engine.engine.projection import project_observation
from ser_engine.exceptions import SEREngineError
from ser_engine.models.observation import Observation
from ser_engine.models.regression import FittedModel
from ser_engine.models.scoring import AnomalyEvent, ObservationFailure, ProjectedMetrics, ScoringReport

logger = logging.getLogger(__name__)


def score_observation(
    observation: Observation,
    metrics: ProjectedMetrics,
    config: ScoringConfig | None = None,
) -> list[AnomalyEvent]:
    """Evaluate predicates 1 and 2 for one projected observation."""
    cfg = config or ScoringConfig()
    events: list[AnomalyEvent] = []

    ipe_exceeded = metrics.actual_ipe is not None and metrics.actual_ipe > cfg.ipe_threshold

    if ipe_exceeded:
        events.append(_event(
            observation, metrics,
            reason_code="ipe_above_threshold",
            severity="high" if metrics.actual_ipe > cfg.ipe_high_threshold else "medium",
        ))

    if (
        observation.is_truck
        and metrics.actual_ipe_per_tonne is not None
        and metrics.reference_ipe_per_tonne is not None
        and metrics.actual_ipe_per_tonne > metrics.reference_ipe_per_tonne
    ):
        events.append(_event(
            observation, metrics,
            reason_code="ipe_per_tonne_above_reference",
            severity="high" if ipe_exceeded else "medium",
        ))

    return events


def score_model_quality(model: FittedModel, config: ScoringConfig | None = None) -> list[AnomalyEvent]:
    """Cohort-level warning when the model explains too little variance."""
    cfg = config or ScoringConfig()
    r_squared = model.r_squared
    if r_squared is None or r_squared >= cfg.min_r_squared:
        return []

    cohort = model.cohort
    return [AnomalyEvent(
        vehicle_id=None,
        period=cohort.year if cohort is not None else None,
        region=cohort.region if cohort is not None else None,
        cohort=cohort,
        reason_code="model_quality_low",
        severity="medium",
        measured_values={
            "r_squared": r_squared,
            "min_r_squared": cfg.min_r_squared,
            "observations": float(model.source_observation_count),
        },
    )]


def score_batch(
    observations: Sequence[Observation],
    model: FittedModel,
    config: ScoringConfig | None = None,
) -> ScoringReport:
    """Project and score every observation against ``model``.

    A failure on one observation is recorded in ``failures`` and does not
    stop the rest of the batch.  The model-quality event, if any, comes
    first in ``events``.
    """
    cfg = config or ScoringConfig()
    report = ScoringReport(events=score_model_quality(model, cfg))

    for i, obs in enumerate(observations):
        try:
            metrics = project_observation(obs, model, cfg.improvement_percentage)
            events = score_observation(obs, metrics, cfg)
        except SEREngineError as exc:
            logger.warning(f"Could not score {obs.vehicle_id} ({obs.period}): {exc}")
            report.failures.append(ObservationFailure(
                index=i,
                vehicle_id=obs.vehicle_id,
                reason_code=exc.reason_code.value,
                message=exc.message,
            ))
            continue
        report.metrics.append(metrics)
        report.events.extend(events)

    logger.debug(
        f"Scored {len(report.metrics)}/{len(observations)} observations, "
        f"{len(report.events)} event(s), {len(report.failures)} failure(s)"
    )
    return report


def _event(
    observation: Observation,
    metrics: ProjectedMetrics,
    reason_code: str,
    severity: str,
) -> AnomalyEvent:
    measured = {
        "actual_ipe": metrics.actual_ipe,
        "reference_ipe": metrics.reference_ipe,
        "actual_ipe_per_tonne": metrics.actual_ipe_per_tonne,
        "reference_ipe_per_tonne": metrics.reference_ipe_per_tonne,
        "fuel_consumed_liters": observation.fuel_consumed_liters,
        "reference_consumption_liters": metrics.reference_consumption_liters,
        "target_consumption_liters": metrics.target_consumption_liters,
    }
    return AnomalyEvent(
        vehicle_id=observation.vehicle_id,
        period=observation.period,
        region=observation.region,
        cohort=metrics.baseline_cohort,
        reason_code=reason_code,
        severity=severity,
        measured_values={k: v for k, v in measured.items() if v is not None},
    )
