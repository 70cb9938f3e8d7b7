"""OLS Fitter — simple (distance) or multiple (distance + tonnage) regression.

Simple regression, closed form:
  slope     = Σ(x − x̄)(y − ȳ) / Σ(x − x̄)²
  intercept = ȳ − slope · x̄

Multiple regression, normal equations with a fixed 3×3 adjugate inverse:
  X rows = [1, distance, tonnage]
  β      = (XᵗX)⁻¹ Xᵗy

The predictor count is fixed at one or two: the IPE / per-tonne logic
downstream only knows distance and tonnage.

The fitter does not re-validate.  Run the DataPoint Validator first.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from ser_engine.config.cohort import CohortKey, VehicleClass
from ser_engine.exceptions import NumericDegeneracyError, ReasonCode
from ser_engine.models.observation import Observation
from ser_engine.models.regression import FittedModel, PredictorKind, RegressionCoefficients

# |det(XᵗX)| relative to n·Sxx·Stt below this is treated as singular (≈ 1 − r² for a Gram matrix).
_SINGULAR_RTOL = 1e-12


@dataclass(frozen=True)
class OLSFit:
    """Fitter output: the model plus index-aligned predictions and residuals."""

    model: FittedModel
    predicted_values: list[float]
    residuals: list[float]


def predictor_kind_for(vehicle_class: VehicleClass) -> PredictorKind:
    """Cars regress on distance only; trucks on distance and tonnage."""
    return "multiple" if vehicle_class == "truck" else "simple"


def fit_ols(
    observations: Sequence[Observation],
    predictor_kind: PredictorKind,
    cohort: CohortKey | None = None,
) -> OLSFit:
    """Fit a consumption model to ``observations``.

    Parameters
    ----------
    observations : Sequence[Observation]
        Validated fitting set.  Order is preserved in the returned arrays.
    predictor_kind : PredictorKind
        'simple' (distance) or 'multiple' (distance + tonnage).
    cohort : CohortKey | None
        Cohort the model is fitted for (carried on the model and on errors).

    Raises
    ------
    NumericDegeneracyError
        XᵗX is singular or a coefficient is non-finite.
    """
    y = np.array([obs.fuel_consumed_liters for obs in observations], dtype=np.float64)
    x = design_matrix(observations, predictor_kind)

    if predictor_kind == "simple":
        intercept, slope = _solve_simple(x[:, 1], y, cohort)
        beta = np.array([intercept, slope])
        coefficients = RegressionCoefficients(distance=slope)
    else:
        beta = _solve_multiple(x, y, cohort)
        intercept = float(beta[0])
        coefficients = RegressionCoefficients(distance=float(beta[1]), tonnage=float(beta[2]))

    if not np.all(np.isfinite(beta)):
        raise NumericDegeneracyError(
            "Regression produced non-finite coefficients",
            ReasonCode.NON_FINITE_VALUE,
            cohort=cohort,
            quantity="coefficients",
        )

    predicted = predict(x, beta)
    residuals = y - predicted

    model = FittedModel(
        cohort=cohort,
        predictor_kind=predictor_kind,
        intercept=float(intercept),
        coefficients=coefficients,
        source_observation_count=len(observations),
    )
    return OLSFit(
        model=model,
        predicted_values=[float(v) for v in predicted],
        residuals=[float(r) for r in residuals],
    )


def design_matrix(observations: Sequence[Observation], predictor_kind: PredictorKind) -> np.ndarray:
    """Rows ``[1, distance]`` (simple) or ``[1, distance, tonnage]`` (multiple)."""
    rows = []
    for obs in observations:
        if predictor_kind == "simple":
            rows.append([1.0, obs.distance_km])
        else:
            rows.append([1.0, obs.distance_km, obs.tonnage if obs.tonnage is not None else 0.0])
    return np.array(rows, dtype=np.float64)


def predict(x: np.ndarray, beta: np.ndarray) -> np.ndarray:
    """Fitted values, evaluated term by term in the same order as the projector."""
    predicted = beta[0] + beta[1] * x[:, 1]
    if beta.shape[0] == 3:
        predicted = predicted + beta[2] * x[:, 2]
    return predicted


def invert_3x3(m: np.ndarray, cohort: CohortKey | None = None) -> np.ndarray:
    """Closed-form inverse of a 3×3 matrix via its adjugate.

    Raises ``NumericDegeneracyError`` when the determinant is (numerically)
    zero or non-finite.
    """
    a, b, c = m[0]
    d, e, f = m[1]
    g, h, i = m[2]

    # Cofactors
    c00 = e * i - f * h
    c01 = -(d * i - f * g)
    c02 = d * h - e * g
    c10 = -(b * i - c * h)
    c11 = a * i - c * g
    c12 = -(a * h - b * g)
    c20 = b * f - c * e
    c21 = -(a * f - c * d)
    c22 = a * e - b * d

    det = a * c00 + b * c01 + c * c02
    # For a Gram matrix [1, x, t] this is n·Sxx·Stt, the centred sums of squares.
    if a > 0:
        scale = abs(a * (e - b * b / a) * (i - c * c / a)) or 1.0
    else:
        scale = abs(a * e * i) or 1.0
    if not math.isfinite(det) or abs(det) <= _SINGULAR_RTOL * scale:
        raise NumericDegeneracyError(
            f"XᵗX is singular (determinant = {det:.3e})",
            ReasonCode.SINGULAR_MATRIX,
            cohort=cohort,
            quantity="determinant",
        )

    # Adjugate = transpose of the cofactor matrix
    adjugate = np.array([
        [c00, c10, c20],
        [c01, c11, c21],
        [c02, c12, c22],
    ], dtype=np.float64)
    return adjugate / det


def _solve_simple(x: np.ndarray, y: np.ndarray, cohort: CohortKey | None) -> tuple[float, float]:
    mean_x = float(x.mean())
    mean_y = float(y.mean())
    dx = x - mean_x
    sxx = float(np.dot(dx, dx))
    if sxx == 0:
        raise NumericDegeneracyError(
            "Distance has no variance — slope is undefined",
            ReasonCode.SINGULAR_MATRIX,
            cohort=cohort,
            quantity="sxx",
        )
    slope = float(np.dot(dx, y - mean_y)) / sxx
    intercept = mean_y - slope * mean_x
    return intercept, slope


def _solve_multiple(x: np.ndarray, y: np.ndarray, cohort: CohortKey | None) -> np.ndarray:
    # Collinearity is judged on the centred predictors: 1 − r² = (Sxx·Stt − Sxt²) / (Sxx·Stt).
    dx = x[:, 1] - x[:, 1].mean()
    dt = x[:, 2] - x[:, 2].mean()
    sxx = float(np.dot(dx, dx))
    stt = float(np.dot(dt, dt))
    sxt = float(np.dot(dx, dt))
    if sxx * stt - sxt * sxt <= _SINGULAR_RTOL * sxx * stt:
        raise NumericDegeneracyError(
            "Distance and tonnage are collinear — XᵗX is singular",
            ReasonCode.SINGULAR_MATRIX,
            cohort=cohort,
            quantity="determinant",
        )
    xtx = x.T @ x
    xty = x.T @ y
    return invert_3x3(xtx, cohort) @ xty
