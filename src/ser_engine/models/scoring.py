"""Projection and scoring result types.

``None`` on an IPE field means "not computable" (e.g. zero distance), never 0.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from ser_engine.config.cohort import CohortKey

AnomalyReason = Literal[
    "ipe_above_threshold",
    "ipe_per_tonne_above_reference",
    "model_quality_low",
]
Severity = Literal["medium", "high"]


class ProjectedMetrics(BaseModel):
    """One observation measured against a baseline model."""

    vehicle_id: str
    period: str
    region: str | None = None
    baseline_cohort: CohortKey | None = None
    """Cohort of the model used — may be a different year than the observation."""

    reference_consumption_liters: float
    """intercept + b_distance × distance + b_tonnage × tonnage."""
    target_consumption_liters: float
    """reference × (1 − improvement_percentage / 100)."""
    improvement_percentage: float = Field(ge=0, le=100)

    actual_ipe: float | None = None
    """fuel / distance × 100 (L/100km)."""
    reference_ipe: float | None = None
    """reference / distance × 100 (L/100km)."""
    actual_ipe_per_tonne: float | None = None
    """actual_ipe / tonnage (trucks only)."""
    reference_ipe_per_tonne: float | None = None
    """reference_ipe / tonnage (trucks only)."""
    deviation_percentage: float | None = None
    """(reference − fuel) / fuel × 100.  Positive = consumed less than reference."""

    not_computable: list[str] = Field(default_factory=list)
    """Reason codes explaining every field left as None."""

    @property
    def ipe_computable(self) -> bool:
        return self.actual_ipe is not None


class AnomalyEvent(BaseModel):
    """Classified anomaly, ready for an external notification sink."""

    model_config = ConfigDict(frozen=True)

    vehicle_id: str | None
    """None for cohort-level (model quality) events."""
    period: str | None
    region: str | None = None
    cohort: CohortKey | None = None
    reason_code: AnomalyReason
    severity: Severity
    measured_values: dict[str, float] = Field(default_factory=dict)


class ObservationFailure(BaseModel):
    """An observation that could not be projected or scored in a batch."""

    index: int
    vehicle_id: str
    reason_code: str
    message: str


class ScoringReport(BaseModel):
    """Batch output of projecting + scoring a set of observations."""

    metrics: list[ProjectedMetrics] = Field(default_factory=list)
    events: list[AnomalyEvent] = Field(default_factory=list)
    failures: list[ObservationFailure] = Field(default_factory=list)

    @property
    def anomalous_vehicle_ids(self) -> set[str]:
        return {e.vehicle_id for e in self.events if e.vehicle_id is not None}


class MonthlyTrendPoint(BaseModel):
    """Actual / reference / target consumption for one month (trend charts)."""

    month: str
    actual: float
    reference: float
    target: float
