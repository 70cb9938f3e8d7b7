"""Model Statistics Calculator — goodness of fit and inference for one fit.

With n observations and k predictors (1 simple, 2 multiple):

  total_ss      = Σ(yᵢ − ȳ)²
  residual_ss   = Σ residᵢ²
  regression_ss = total_ss − residual_ss
  R²            = regression_ss / total_ss
  df            = n − k − 1
  adjusted R²   = 1 − (1 − R²)(n − 1) / df
  mse           = residual_ss / df
  se(β)         = sqrt(diag(mse · (XᵗX)⁻¹))
  t             = β / se(β)
  F             = (regression_ss / k) / (residual_ss / df)
  95% CI        = β ± 1.96 · se(β)
  RMSE          = sqrt(mse)
  MAE           = mean(|residᵢ|)
  AIC           = n·ln(mse) + 2·(k + 1)
  BIC           = n·ln(mse) + ln(n)·(k + 1)

RMSE / AIC / BIC use the df-corrected ``mse``, not residual_ss / n, so
RMSE equals the standard error.

P-values go through a pluggable estimator:
  - ``LogisticApproximation`` — sigmoid stand-in for the t / F CDFs
    (approximate; screening use only)
  - ``StudentTDistribution``  — exact tails from ``scipy.stats``
"""

from __future__ import annotations

import math
from collections.abc import Sequence

import numpy as np
from scipy import stats as sp_stats

from ser_engine.config.cohort import CohortKey
from ser_engine.engine.ols import design_matrix, invert_3x3, predict
from ser_engine.engine.validation import pearson_correlation
from ser_engine.exceptions import ConfigurationError, NumericDegeneracyError, ReasonCode
from ser_engine.models.observation import Observation
from ser_engine.models.regression import CoefficientStatistics, FitStatistics, FittedModel

# Fixed normal-approximation critical value for the 95% intervals.
Z_CRITICAL_95 = 1.96


# ═══════════════════════════════════════════════════════════════════════════
# P-value estimators
# ═══════════════════════════════════════════════════════════════════════════

class PValueEstimator:
    """Strategy for turning t / F statistics into p-values."""

    name = "base"

    def t_two_sided(self, t: float, df: int) -> float:
        raise NotImplementedError

    def f_upper_tail(self, f: float, df_model: int, df_resid: int) -> float:
        raise NotImplementedError


class LogisticApproximation(PValueEstimator):
    """Closed-form sigmoid approximation of the Student-t / F CDFs.

    p(t) = 2 · (1 − σ(0.717·|t| + 0.416·t²))
    p(F) = 1 − σ(0.717·F + 0.416·F²)

    Ignores degrees of freedom entirely — results are approximate and
    should not be used for strict hypothesis testing.
    """

    name = "logistic"

    def t_two_sided(self, t: float, df: int) -> float:
        t_abs = abs(t)
        return 2.0 * (1.0 - _sigmoid(0.717 * t_abs + 0.416 * t_abs * t_abs))

    def f_upper_tail(self, f: float, df_model: int, df_resid: int) -> float:
        return 1.0 - _sigmoid(0.717 * f + 0.416 * f * f)


class StudentTDistribution(PValueEstimator):
    """Exact Student-t / F tail probabilities."""

    name = "student_t"

    def t_two_sided(self, t: float, df: int) -> float:
        return float(2.0 * sp_stats.t.sf(abs(t), df))

    def f_upper_tail(self, f: float, df_model: int, df_resid: int) -> float:
        return float(sp_stats.f.sf(f, df_model, df_resid))


_ESTIMATORS: dict[str, type[PValueEstimator]] = {
    LogisticApproximation.name: LogisticApproximation,
    StudentTDistribution.name: StudentTDistribution,
}


def get_estimator(name: str) -> PValueEstimator:
    """Look up a p-value estimator by name ('logistic' or 'student_t')."""
    try:
        return _ESTIMATORS[name]()
    except KeyError:
        raise ConfigurationError(
            f"Unknown p-value estimator '{name}'",
            ReasonCode.UNKNOWN_ESTIMATOR,
            config_key="statistics.p_value_method",
        ) from None


def _sigmoid(z: float) -> float:
    # exp(-z) overflows for very negative z; z here is always >= 0.
    return 1.0 / (1.0 + math.exp(-z))


# ═══════════════════════════════════════════════════════════════════════════
# Statistics
# ═══════════════════════════════════════════════════════════════════════════

def compute_statistics(
    observations: Sequence[Observation],
    model: FittedModel,
    estimator: PValueEstimator | None = None,
) -> FitStatistics:
    """Derive FitStatistics from a model and the observations it was fitted on.

    Pure function.  ``predicted_values`` / ``residuals`` are index-aligned
    with ``observations``.

    Raises
    ------
    NumericDegeneracyError
        Non-positive degrees of freedom, zero total variance, singular XᵗX,
        or a non-finite intermediate value.
    """
    estimator = estimator or LogisticApproximation()
    cohort = model.cohort

    n = len(observations)
    k = model.predictor_count
    df = n - k - 1
    if df <= 0:
        raise NumericDegeneracyError(
            f"Degenerate model: {n} observations leave {df} degrees of freedom for {k} predictor(s)",
            ReasonCode.DEGENERATE_MODEL,
            cohort=cohort,
            quantity="degrees_of_freedom",
        )

    x = design_matrix(observations, model.predictor_kind)
    y = np.array([obs.fuel_consumed_liters for obs in observations], dtype=np.float64)
    beta = _beta_vector(model)

    predicted = predict(x, beta)
    residuals = y - predicted

    # ── Sums of squares ────────────────────────────────────────────────
    mean_y = float(y.mean())
    total_ss = float(((y - mean_y) ** 2).sum())
    residual_ss = float((residuals ** 2).sum())
    regression_ss = total_ss - residual_ss
    if total_ss == 0:
        raise NumericDegeneracyError(
            "Degenerate model: fuel consumption has no variance",
            ReasonCode.DEGENERATE_MODEL,
            cohort=cohort,
            quantity="total_ss",
        )

    r_squared = regression_ss / total_ss
    adjusted_r_squared = 1.0 - (1.0 - r_squared) * (n - 1) / df
    mse = residual_ss / df
    standard_error = math.sqrt(mse)

    # ── Coefficient standard errors ────────────────────────────────────
    if model.predictor_kind == "simple":
        distance = x[:, 1]
        mean_x = float(distance.mean())
        sxx = float(((distance - mean_x) ** 2).sum())
        if sxx == 0:
            raise NumericDegeneracyError(
                "Degenerate model: distance has no variance",
                ReasonCode.SINGULAR_MATRIX,
                cohort=cohort,
                quantity="sxx",
            )
        se = np.array([
            math.sqrt(mse * (1.0 / n + mean_x ** 2 / sxx)),
            math.sqrt(mse / sxx),
        ])
    else:
        xtx_inv = invert_3x3(x.T @ x, cohort)
        se = np.sqrt(np.clip(np.diag(xtx_inv) * mse, 0.0, None))

    names = ["intercept", "distance"] + (["tonnage"] if k == 2 else [])
    coefficients = [
        _coefficient_statistics(name, float(b), float(s), df, estimator)
        for name, b, s in zip(names, beta, se)
    ]

    # ── ANOVA ──────────────────────────────────────────────────────────
    mean_square_regression = regression_ss / k
    f_statistic = mean_square_regression / mse if mse > 0 else math.inf
    significance_f = estimator.f_upper_tail(f_statistic, k, df) if math.isfinite(f_statistic) else 0.0

    # ── Error metrics / information criteria ───────────────────────────
    mae = float(np.abs(residuals).mean())
    log_mse = math.log(mse) if mse > 0 else -math.inf
    aic = n * log_mse + 2 * (k + 1)
    bic = n * log_mse + math.log(n) * (k + 1)

    vif: list[float] = []
    if k == 2:
        r = pearson_correlation(x[:, 1], x[:, 2])
        r2 = (r or 0.0) ** 2
        vif_value = 1.0 / (1.0 - r2) if r2 < 1 else math.inf
        vif = [vif_value, vif_value]

    _require_finite(
        cohort,
        r_squared=r_squared,
        adjusted_r_squared=adjusted_r_squared,
        mse=mse,
        regression_ss=regression_ss,
        mae=mae,
    )

    return FitStatistics(
        multiple_r=math.sqrt(max(r_squared, 0.0)),
        r_squared=r_squared,
        adjusted_r_squared=adjusted_r_squared,
        standard_error=standard_error,
        observations=n,
        degrees_of_freedom=df,
        total_ss=total_ss,
        regression_ss=regression_ss,
        residual_ss=residual_ss,
        mean_square_regression=mean_square_regression,
        f_statistic=f_statistic,
        significance_f=significance_f,
        coefficients=coefficients,
        predicted_values=[float(v) for v in predicted],
        residuals=[float(r) for r in residuals],
        mse=mse,
        rmse=math.sqrt(mse),
        mae=mae,
        aic=aic,
        bic=bic,
        variance_inflation_factors=vif,
        p_value_method=estimator.name,
    )


def _beta_vector(model: FittedModel) -> np.ndarray:
    coefs = [model.intercept, model.coefficients.distance]
    if model.predictor_kind == "multiple":
        coefs.append(model.coefficients.tonnage)
    return np.array(coefs, dtype=np.float64)


def _coefficient_statistics(
    name: str,
    estimate: float,
    standard_error: float,
    df: int,
    estimator: PValueEstimator,
) -> CoefficientStatistics:
    if standard_error > 0:
        t_stat = estimate / standard_error
        p_value = estimator.t_two_sided(t_stat, df)
    else:
        # Perfect fit: the estimate is exact.
        t_stat = math.copysign(math.inf, estimate) if estimate != 0 else 0.0
        p_value = 0.0 if estimate != 0 else 1.0
    return CoefficientStatistics(
        name=name,
        estimate=estimate,
        standard_error=standard_error,
        t_stat=t_stat,
        p_value=p_value,
        lower_95=estimate - Z_CRITICAL_95 * standard_error,
        upper_95=estimate + Z_CRITICAL_95 * standard_error,
    )


def _require_finite(cohort: CohortKey | None, **values: float) -> None:
    for quantity, value in values.items():
        if not math.isfinite(value):
            raise NumericDegeneracyError(
                f"Non-finite {quantity} ({value})",
                ReasonCode.NON_FINITE_VALUE,
                cohort=cohort,
                quantity=quantity,
            )
