"""Reference/Target Projector — apply a baseline model to observations.

  reference = intercept + b_distance · distance + (b_tonnage or 0) · tonnage
  target    = reference · (1 − improvement_percentage / 100)
  IPE       = litres / distance × 100          (L/100km)
  IPE/t     = IPE / tonnage                    (trucks only)
  deviation = (reference − fuel) / fuel × 100  (positive = below reference)

The baseline model may come from any cohort-year: projecting 2025
observations against a 2024 model is the normal "vs last year's SER" case.
The projector never checks model vintage.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from collections.abc import Sequence

from ser_engine.exceptions import ConfigurationError, ProjectionUndefinedError, ReasonCode
from ser_engine.models.observation import Observation
from ser_engine.models.regression import FittedModel
from ser_engine.models.scoring import MonthlyTrendPoint, ProjectedMetrics

logger = logging.getLogger(__name__)

_MONTH_ORDER = {
    name: i + 1
    for names in (
        ("janvier", "février", "mars", "avril", "mai", "juin",
         "juillet", "août", "septembre", "octobre", "novembre", "décembre"),
        ("january", "february", "march", "april", "may", "june",
         "july", "august", "september", "october", "november", "december"),
    )
    for i, name in enumerate(names)
}


def reference_consumption(model: FittedModel, distance_km: float, tonnage: float | None = None) -> float:
    """Model-predicted fuel consumption (L) for a distance / tonnage pair."""
    tonnage_term = (model.coefficients.tonnage or 0.0) * (tonnage or 0.0)
    return model.intercept + model.coefficients.distance * distance_km + tonnage_term


def target_consumption(reference_liters: float, improvement_percentage: float) -> float:
    """Reference consumption reduced by ``improvement_percentage`` (0–100)."""
    _check_improvement(improvement_percentage)
    return reference_liters * (1.0 - improvement_percentage / 100.0)


def ipe_per_100km(liters: float, distance_km: float) -> float:
    """Litres per 100 km.  Raises ProjectionUndefinedError on zero distance."""
    if distance_km == 0:
        raise ProjectionUndefinedError("IPE is not computable for zero distance")
    return liters / distance_km * 100.0


def project_observation(
    observation: Observation,
    model: FittedModel,
    improvement_percentage: float = 0.0,
) -> ProjectedMetrics:
    """Measure one observation against a baseline model.

    Fields that cannot be computed (zero distance, zero fuel, missing
    tonnage) are left as None and their reason recorded in
    ``not_computable``; the call itself does not fail for them.

    Raises
    ------
    ConfigurationError
        ``improvement_percentage`` outside [0, 100].
    """
    _check_improvement(improvement_percentage)

    reference = reference_consumption(model, observation.distance_km, observation.tonnage)
    target = target_consumption(reference, improvement_percentage)
    not_computable: list[str] = []

    actual_ipe: float | None = None
    reference_ipe: float | None = None
    try:
        actual_ipe = ipe_per_100km(observation.fuel_consumed_liters, observation.distance_km)
        reference_ipe = ipe_per_100km(reference, observation.distance_km)
    except ProjectionUndefinedError as exc:
        logger.warning(
            f"IPE not computable for {observation.vehicle_id} ({observation.period}): zero distance"
        )
        not_computable.append(exc.reason_code.value)

    actual_per_tonne: float | None = None
    reference_per_tonne: float | None = None
    if observation.is_truck and actual_ipe is not None:
        if observation.tonnage:
            actual_per_tonne = actual_ipe / observation.tonnage
            reference_per_tonne = reference_ipe / observation.tonnage
        else:
            not_computable.append(ReasonCode.TONNAGE_MISSING.value)

    deviation: float | None = None
    if observation.fuel_consumed_liters != 0:
        deviation = (reference - observation.fuel_consumed_liters) / observation.fuel_consumed_liters * 100.0
    else:
        not_computable.append(ReasonCode.FUEL_ZERO.value)

    return ProjectedMetrics(
        vehicle_id=observation.vehicle_id,
        period=observation.period,
        region=observation.region,
        baseline_cohort=model.cohort,
        reference_consumption_liters=reference,
        target_consumption_liters=target,
        improvement_percentage=improvement_percentage,
        actual_ipe=actual_ipe,
        reference_ipe=reference_ipe,
        actual_ipe_per_tonne=actual_per_tonne,
        reference_ipe_per_tonne=reference_per_tonne,
        deviation_percentage=deviation,
        not_computable=not_computable,
    )


def project_batch(
    observations: Sequence[Observation],
    model: FittedModel,
    improvement_percentage: float = 0.0,
) -> list[ProjectedMetrics]:
    """Project every observation, preserving input order."""
    return [project_observation(obs, model, improvement_percentage) for obs in observations]


def build_monthly_trends(
    observations: Sequence[Observation],
    metrics: Sequence[ProjectedMetrics],
) -> list[MonthlyTrendPoint]:
    """Average actual / reference / target consumption per month, in calendar order.

    ``metrics`` must be index-aligned with ``observations`` (as returned by
    ``project_batch``).
    """
    if len(observations) != len(metrics):
        raise ValueError("observations and metrics must be index-aligned")

    grouped: OrderedDict[str, list[tuple[float, float, float]]] = OrderedDict()
    for obs, m in zip(observations, metrics):
        grouped.setdefault(obs.month, []).append(
            (obs.fuel_consumed_liters, m.reference_consumption_liters, m.target_consumption_liters)
        )

    points = [
        MonthlyTrendPoint(
            month=month,
            actual=sum(v[0] for v in values) / len(values),
            reference=sum(v[1] for v in values) / len(values),
            target=sum(v[2] for v in values) / len(values),
        )
        for month, values in grouped.items()
    ]
    return sorted(points, key=lambda p: month_number(p.month))


def month_number(label: str) -> int:
    """1–12 for French / English month names or numeric labels; 13 if unknown."""
    key = label.strip().lower()
    if key.isdigit():
        return int(key)
    return _MONTH_ORDER.get(key, 13)


def _check_improvement(improvement_percentage: float) -> None:
    if not 0.0 <= improvement_percentage <= 100.0:
        raise ConfigurationError(
            f"improvement_percentage must be between 0 and 100, got {improvement_percentage}",
            ReasonCode.IMPROVEMENT_OUT_OF_RANGE,
            config_key="scoring.improvement_percentage",
        )
