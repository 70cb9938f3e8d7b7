"""Error taxonomy — fit, projection, and cache failures.

Every error carries a machine-readable ``reason_code`` and, when known, the
cohort it belongs to, so the notification / UI layer can render it without
parsing messages.

Codes are grouped by where they are raised:
  - validation (sample size, bad values, variance, collinearity)
  - numeric (degenerate model, singular matrix, non-finite values)
  - projection (per-observation, soft)
  - configuration and cache
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ser_engine.config.cohort import CohortKey


class ReasonCode(str, Enum):
    """Machine-readable reason codes."""

    # Validation
    INSUFFICIENT_SAMPLE_SIZE = "insufficient_sample_size"
    INVALID_VALUE = "invalid_value"
    ZERO_VARIANCE_FUEL = "zero_variance_fuel"
    ZERO_VARIANCE_DISTANCE = "zero_variance_distance"
    ZERO_VARIANCE_TONNAGE = "zero_variance_tonnage"
    PERFECT_MULTICOLLINEARITY = "perfect_multicollinearity"

    # Data-quality / significance warnings (never fatal)
    VALUE_OUT_OF_RANGE = "value_out_of_range"
    POSSIBLE_OUTLIER = "possible_outlier"
    HIGH_CORRELATION = "high_correlation"
    INVALID_R_SQUARED = "invalid_r_squared"
    MODEL_NOT_SIGNIFICANT = "model_not_significant"
    COEFFICIENT_NOT_SIGNIFICANT = "coefficient_not_significant"

    # Numeric
    DEGENERATE_MODEL = "degenerate_model"
    SINGULAR_MATRIX = "singular_matrix"
    NON_FINITE_VALUE = "non_finite_value"

    # Projection
    DISTANCE_ZERO = "distance_zero"
    FUEL_ZERO = "fuel_zero"
    TONNAGE_MISSING = "tonnage_missing"

    # Configuration / cache
    IMPROVEMENT_OUT_OF_RANGE = "improvement_out_of_range"
    UNKNOWN_ESTIMATOR = "unknown_estimator"
    FIT_SUPERSEDED = "fit_superseded"


class SEREngineError(Exception):
    """Base exception for all SER engine errors."""

    def __init__(
        self,
        message: str,
        reason_code: ReasonCode,
        cohort: CohortKey | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.reason_code = reason_code
        self.cohort = cohort
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Payload for the notification / UI layer."""
        return {
            "error": type(self).__name__,
            "reason_code": self.reason_code.value,
            "message": self.message,
            "cohort": self.cohort.model_dump() if self.cohort is not None else None,
            "details": self.details,
        }


class InsufficientDataError(SEREngineError):
    """Fewer observations than a regression needs."""

    def __init__(self, message: str, observation_count: int, cohort: CohortKey | None = None):
        super().__init__(
            message,
            ReasonCode.INSUFFICIENT_SAMPLE_SIZE,
            cohort=cohort,
            details={"observation_count": observation_count},
        )
        self.observation_count = observation_count


class DegenerateInputError(SEREngineError):
    """Zero variance, invalid values, or perfect multicollinearity."""

    def __init__(
        self,
        message: str,
        reason_code: ReasonCode,
        cohort: CohortKey | None = None,
        issues: list | None = None,
    ):
        issues = issues or []
        super().__init__(
            message,
            reason_code,
            cohort=cohort,
            details={"violations": sorted({issue.code.value for issue in issues})} if issues else None,
        )
        self.issues = issues


class NumericDegeneracyError(SEREngineError):
    """Non-positive degrees of freedom, singular XᵗX, or a non-finite intermediate."""

    def __init__(
        self,
        message: str,
        reason_code: ReasonCode = ReasonCode.DEGENERATE_MODEL,
        cohort: CohortKey | None = None,
        quantity: str | None = None,
    ):
        details = {}
        if quantity:
            details["quantity"] = quantity
        super().__init__(message, reason_code, cohort=cohort, details=details)
        self.quantity = quantity


class ProjectionUndefinedError(SEREngineError):
    """A single observation cannot produce an IPE figure (soft)."""

    def __init__(
        self,
        message: str,
        reason_code: ReasonCode = ReasonCode.DISTANCE_ZERO,
        vehicle_id: str | None = None,
        period: str | None = None,
        cohort: CohortKey | None = None,
    ):
        details = {}
        if vehicle_id:
            details["vehicle_id"] = vehicle_id
        if period:
            details["period"] = period
        super().__init__(message, reason_code, cohort=cohort, details=details)
        self.vehicle_id = vehicle_id
        self.period = period


class ConfigurationError(SEREngineError):
    """Caller-supplied option is out of range or unknown."""

    def __init__(self, message: str, reason_code: ReasonCode, config_key: str | None = None):
        details = {}
        if config_key:
            details["config_key"] = config_key
        super().__init__(message, reason_code, details=details)
        self.config_key = config_key


class FitSupersededError(SEREngineError):
    """A fit finished after its cohort was invalidated; its result was discarded."""

    def __init__(self, cohort: CohortKey):
        super().__init__(
            f"Fit for {cohort.label} was superseded by a newer request",
            ReasonCode.FIT_SUPERSEDED,
            cohort=cohort,
        )
