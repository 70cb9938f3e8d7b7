"""Observation and validation-result types.

Observations are not range-constrained.  Negative or non-finite values reach
the DataPoint Validator, which reports every offending row.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from ser_engine.config.cohort import VehicleClass
from ser_engine.exceptions import ReasonCode


class Observation(BaseModel):
    """One vehicle, one calendar month."""

    vehicle_id: str
    """Stable vehicle identifier (plate number)."""

    vehicle_class: VehicleClass
    """'car' or 'truck'.  Only trucks carry tonnage."""

    month: str
    """Month label — French/English month name or '1'..'12'."""

    year: str
    """Calendar year label."""

    region: str | None = None
    """Optional region tag."""

    distance_km: float
    """Distance driven in the month (independent variable 1)."""

    tonnage: float | None = None
    """Tonnage carried in the month (trucks only, independent variable 2)."""

    fuel_consumed_liters: float
    """Fuel consumed in the month (dependent variable)."""

    @property
    def period(self) -> str:
        return f"{self.month} {self.year}"

    @property
    def is_truck(self) -> bool:
        return self.vehicle_class == "truck"


class ValidationIssue(BaseModel):
    """One validator finding.  ``index`` points at the offending observation, if any."""

    code: ReasonCode
    message: str
    index: int | None = None


class ValidationResult(BaseModel):
    """Outcome of validating a candidate fitting set.

    Only ``errors`` decide ``is_valid``; ``warnings`` are data-quality notes
    (ranges, outliers, high correlation) that never block a fit.
    """

    errors: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[ValidationIssue] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def error_codes(self) -> list[str]:
        return [issue.code.value for issue in self.errors]

    @property
    def warning_codes(self) -> list[str]:
        return [issue.code.value for issue in self.warnings]
