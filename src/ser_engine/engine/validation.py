"""DataPoint Validator — is this observation set usable for regression?

Fatal checks (collected, not short-circuited, except sample size):
  1. fewer than ``min_observations`` rows        → insufficient_sample_size (stop)
  2. non-finite / negative distance, fuel, tonnage, or zero distance → invalid_value (per row)
  3. zero variance in fuel / distance             → zero_variance_*
  4. trucks: zero tonnage variance                → zero_variance_tonnage
  5. trucks: |r(distance, tonnage)| > 0.9999      → perfect_multicollinearity

Data-quality warnings (never fatal): implausible ranges, |z| > 2 outliers,
high (but not perfect) distance/tonnage correlation.

Post-fit significance assessment lives here too (``assess_significance``).
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence

import numpy as np

from ser_engine.config.cohort import CohortKey, VehicleClass
from ser_engine.config.validation import ValidationConfig
from ser_engine.exceptions import DegenerateInputError, InsufficientDataError, ReasonCode
from ser_engine.models.observation import Observation, ValidationIssue, ValidationResult
from ser_engine.models.regression import FitStatistics

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# Validation
# ═══════════════════════════════════════════════════════════════════════════

def validate_observations(
    observations: Sequence[Observation],
    vehicle_class: VehicleClass | None = None,
    config: ValidationConfig | None = None,
) -> ValidationResult:
    """Check a candidate fitting set.  Pure function.

    Parameters
    ----------
    observations : Sequence[Observation]
        Candidate fitting set, in fitting order.
    vehicle_class : VehicleClass | None
        Cohort class.  When None, the set is treated as a truck cohort only
        if every observation is a truck.
    config : ValidationConfig | None
        Thresholds; defaults apply when None.
    """
    cfg = config or ValidationConfig()
    result = ValidationResult()

    n = len(observations)
    if n < cfg.min_observations:
        result.errors.append(ValidationIssue(
            code=ReasonCode.INSUFFICIENT_SAMPLE_SIZE,
            message=f"At least {cfg.min_observations} observations are required, got {n}",
        ))
        return result

    truck_cohort = _is_truck_cohort(observations, vehicle_class)

    # ── Per-observation value checks ───────────────────────────────────
    for i, obs in enumerate(observations):
        for field_name in ("distance_km", "fuel_consumed_liters", "tonnage"):
            value = getattr(obs, field_name)
            if value is None:
                if field_name == "tonnage" and truck_cohort:
                    result.errors.append(ValidationIssue(
                        code=ReasonCode.INVALID_VALUE,
                        message=f"Missing tonnage at index {i}",
                        index=i,
                    ))
                continue
            if not math.isfinite(value) or value < 0 or (field_name == "distance_km" and value == 0):
                result.errors.append(ValidationIssue(
                    code=ReasonCode.INVALID_VALUE,
                    message=f"Invalid {field_name} value {value!r} at index {i}",
                    index=i,
                ))

    distance = _column(observations, "distance_km")
    fuel = _column(observations, "fuel_consumed_liters")

    # ── Variance checks ────────────────────────────────────────────────
    if _has_zero_variance(fuel):
        result.errors.append(ValidationIssue(
            code=ReasonCode.ZERO_VARIANCE_FUEL,
            message="No variance in fuel consumption — cannot perform regression",
        ))
    if _has_zero_variance(distance):
        result.errors.append(ValidationIssue(
            code=ReasonCode.ZERO_VARIANCE_DISTANCE,
            message="No variance in distance — cannot perform regression",
        ))

    correlation: float | None = None
    if truck_cohort:
        tonnage = _column(observations, "tonnage")
        if _has_zero_variance(tonnage):
            result.errors.append(ValidationIssue(
                code=ReasonCode.ZERO_VARIANCE_TONNAGE,
                message="No variance in tonnage — cannot perform regression",
            ))
        else:
            correlation = pearson_correlation(distance, tonnage)
            if correlation is not None and abs(correlation) > cfg.multicollinearity_threshold:
                result.errors.append(ValidationIssue(
                    code=ReasonCode.PERFECT_MULTICOLLINEARITY,
                    message=(
                        f"Perfect multicollinearity detected between distance and "
                        f"tonnage (r = {correlation:.6f})"
                    ),
                ))

    result.warnings.extend(_data_quality_warnings(observations, distance, fuel, correlation, cfg))
    return result


def require_valid(
    observations: Sequence[Observation],
    cohort: CohortKey | None = None,
    vehicle_class: VehicleClass | None = None,
    config: ValidationConfig | None = None,
) -> ValidationResult:
    """Validate and raise on failure; returns the result (with warnings) on success.

    Raises
    ------
    InsufficientDataError
        Too few observations.
    DegenerateInputError
        Any other fatal violation.  ``reason_code`` is the first violation;
        ``issues`` holds all of them.
    """
    if vehicle_class is None and cohort is not None:
        vehicle_class = cohort.vehicle_class
    result = validate_observations(observations, vehicle_class, config)
    if result.is_valid:
        return result

    label = cohort.label if cohort is not None else "observation set"
    logger.warning(f"Validation failed for {label}: {result.error_codes}")

    first = result.errors[0]
    if first.code == ReasonCode.INSUFFICIENT_SAMPLE_SIZE:
        raise InsufficientDataError(first.message, observation_count=len(observations), cohort=cohort)
    raise DegenerateInputError(
        "; ".join(issue.message for issue in result.errors),
        first.code,
        cohort=cohort,
        issues=result.errors,
    )


# ═══════════════════════════════════════════════════════════════════════════
# Significance assessment (post-fit)
# ═══════════════════════════════════════════════════════════════════════════

def assess_significance(
    statistics: FitStatistics,
    significance_level: float = 0.05,
) -> list[ValidationIssue]:
    """Flag a fit whose R² is out of bounds or whose F / coefficients are not significant."""
    issues: list[ValidationIssue] = []

    if statistics.r_squared < 0 or statistics.r_squared > 1 + 1e-9:
        issues.append(ValidationIssue(
            code=ReasonCode.INVALID_R_SQUARED,
            message=f"Invalid R² value {statistics.r_squared:.4f} — must be between 0 and 1",
        ))

    if statistics.significance_f > significance_level:
        issues.append(ValidationIssue(
            code=ReasonCode.MODEL_NOT_SIGNIFICANT,
            message=f"Model is not statistically significant (p = {statistics.significance_f:.4f})",
        ))

    for coef in statistics.coefficients:
        if coef.p_value > significance_level:
            issues.append(ValidationIssue(
                code=ReasonCode.COEFFICIENT_NOT_SIGNIFICANT,
                message=f"Coefficient '{coef.name}' is not statistically significant (p = {coef.p_value:.4f})",
            ))

    return issues


# ═══════════════════════════════════════════════════════════════════════════
# Helpers
# ═══════════════════════════════════════════════════════════════════════════

def pearson_correlation(x: np.ndarray, y: np.ndarray) -> float | None:
    """Pearson r, or None when either series has no variance."""
    dx = x - x.mean()
    dy = y - y.mean()
    denominator = math.sqrt(float(np.dot(dx, dx)) * float(np.dot(dy, dy)))
    if denominator == 0 or not math.isfinite(denominator):
        return None
    return float(np.dot(dx, dy)) / denominator


def _is_truck_cohort(observations: Sequence[Observation], vehicle_class: VehicleClass | None) -> bool:
    if vehicle_class is not None:
        return vehicle_class == "truck"
    return all(obs.is_truck for obs in observations)


def _column(observations: Sequence[Observation], field_name: str) -> np.ndarray:
    return np.array(
        [getattr(obs, field_name) if getattr(obs, field_name) is not None else 0.0 for obs in observations],
        dtype=np.float64,
    )


def _has_zero_variance(values: np.ndarray) -> bool:
    finite = values[np.isfinite(values)]
    if finite.size == 0:
        return True
    return float(((finite - finite.mean()) ** 2).sum()) == 0.0


def _data_quality_warnings(
    observations: Sequence[Observation],
    distance: np.ndarray,
    fuel: np.ndarray,
    correlation: float | None,
    cfg: ValidationConfig,
) -> list[ValidationIssue]:
    warnings: list[ValidationIssue] = []

    # ── Plausible ranges ───────────────────────────────────────────────
    for i, obs in enumerate(observations):
        checks = [
            ("distance_km", obs.distance_km, cfg.max_distance_km),
            ("fuel_consumed_liters", obs.fuel_consumed_liters, cfg.max_fuel_liters),
        ]
        if obs.tonnage is not None:
            checks.append(("tonnage", obs.tonnage, cfg.max_tonnage))
        for field_name, value, upper in checks:
            if math.isfinite(value) and value > upper:
                warnings.append(ValidationIssue(
                    code=ReasonCode.VALUE_OUT_OF_RANGE,
                    message=f"{field_name} value {value:.2f} for {obs.period} is outside the expected range",
                    index=i,
                ))

    # ── Z-score outliers ───────────────────────────────────────────────
    for field_name, values in (("fuel_consumed_liters", fuel), ("distance_km", distance)):
        if not np.all(np.isfinite(values)):
            continue
        std = float(values.std(ddof=1))
        if std == 0:
            continue
        z_scores = (values - values.mean()) / std
        for i, z in enumerate(z_scores):
            if abs(z) > cfg.outlier_z_threshold:
                warnings.append(ValidationIssue(
                    code=ReasonCode.POSSIBLE_OUTLIER,
                    message=(
                        f"Possible outlier — {field_name} value {values[i]:.2f} for "
                        f"{observations[i].period} (z-score: {z:.2f})"
                    ),
                    index=i,
                ))

    # ── High (not perfect) correlation ─────────────────────────────────
    if correlation is not None and cfg.high_correlation_threshold < abs(correlation) <= cfg.multicollinearity_threshold:
        warnings.append(ValidationIssue(
            code=ReasonCode.HIGH_CORRELATION,
            message=(
                f"High correlation ({correlation:.2f}) between distance and tonnage "
                f"may affect the reliability of the regression results"
            ),
        ))

    return warnings
