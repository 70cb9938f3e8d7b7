"""Model Statistics Calculator tests — ANOVA, inference, estimators."""

from __future__ import annotations

import math

import pytest
from scipy import stats as sp_stats

from ser_engine.engine.ols import fit_ols
from ser_engine.engine.statistics import (
    LogisticApproximation,
    StudentTDistribution,
    compute_statistics,
    get_estimator,
)
from ser_engine.exceptions import ConfigurationError, NumericDegeneracyError, ReasonCode
from ser_engine.models import FittedModel, RegressionCoefficients

from conftest import MONTHS, make_observation


@pytest.fixture
def car_stats(car_observations):
    return compute_statistics(car_observations, fit_ols(car_observations, "simple").model)


@pytest.fixture
def truck_stats(truck_observations):
    return compute_statistics(truck_observations, fit_ols(truck_observations, "multiple").model)


# ═══════════════════════════════════════════════════════════════════════════
# Simple fit
# ═══════════════════════════════════════════════════════════════════════════

class TestSimpleStatistics:
    """Statistics of the 12-month car fit."""

    def test_good_fit(self, car_stats):
        assert car_stats.r_squared > 0.8
        assert car_stats.r_squared <= 1.0

    def test_degrees_of_freedom(self, car_stats):
        assert car_stats.observations == 12
        assert car_stats.degrees_of_freedom == 10

    def test_sums_of_squares(self, car_stats):
        assert sum(r * r for r in car_stats.residuals) == pytest.approx(
            car_stats.total_ss - car_stats.regression_ss, rel=1e-9
        )
        assert car_stats.residual_ss == pytest.approx(car_stats.total_ss - car_stats.regression_ss)

    def test_adjusted_r_squared_not_above_r_squared(self, car_stats):
        assert car_stats.adjusted_r_squared <= car_stats.r_squared

    def test_multiple_r_is_sqrt_r_squared(self, car_stats):
        assert car_stats.multiple_r == pytest.approx(math.sqrt(car_stats.r_squared))

    def test_rmse_equals_standard_error(self, car_stats):
        assert car_stats.rmse == car_stats.standard_error
        assert car_stats.mse == pytest.approx(car_stats.residual_ss / 10)

    def test_information_criteria_use_mse(self, car_stats):
        n, k = 12, 1
        assert car_stats.aic == pytest.approx(n * math.log(car_stats.mse) + 2 * (k + 1))
        assert car_stats.bic == pytest.approx(n * math.log(car_stats.mse) + math.log(n) * (k + 1))

    def test_mae(self, car_stats):
        assert car_stats.mae == pytest.approx(sum(abs(r) for r in car_stats.residuals) / 12)

    def test_f_statistic(self, car_stats):
        assert car_stats.f_statistic == pytest.approx(car_stats.regression_ss / car_stats.mse)
        assert car_stats.mean_square_regression == pytest.approx(car_stats.regression_ss)

    def test_coefficients(self, car_stats):
        assert [c.name for c in car_stats.coefficients] == ["intercept", "distance"]
        distance = car_stats.coefficient("distance")
        assert distance.t_stat == pytest.approx(distance.estimate / distance.standard_error)
        assert distance.lower_95 == pytest.approx(distance.estimate - 1.96 * distance.standard_error)
        assert distance.upper_95 == pytest.approx(distance.estimate + 1.96 * distance.standard_error)

    def test_unknown_coefficient(self, car_stats):
        with pytest.raises(KeyError):
            car_stats.coefficient("tonnage")

    def test_no_vif_for_simple(self, car_stats):
        assert car_stats.variance_inflation_factors == []

    def test_residual_output_index_aligned(self, car_observations, car_stats):
        assert len(car_stats.predicted_values) == len(car_observations)
        for obs, pred, resid in zip(car_observations, car_stats.predicted_values, car_stats.residuals):
            assert obs.fuel_consumed_liters == pytest.approx(pred + resid)


# ═══════════════════════════════════════════════════════════════════════════
# Multiple fit
# ═══════════════════════════════════════════════════════════════════════════

class TestMultipleStatistics:
    """Statistics of the 12-month truck fit."""

    def test_degrees_of_freedom(self, truck_stats):
        assert truck_stats.degrees_of_freedom == 9

    def test_confidence_intervals_ordered(self, truck_stats):
        assert [c.name for c in truck_stats.coefficients] == ["intercept", "distance", "tonnage"]
        for coef in truck_stats.coefficients:
            assert math.isfinite(coef.lower_95) and math.isfinite(coef.upper_95)
            assert coef.lower_95 < coef.estimate < coef.upper_95

    def test_standard_errors_match_textbook(self, truck_observations, truck_stats):
        import numpy as np

        x = np.array([[1.0, o.distance_km, o.tonnage] for o in truck_observations])
        expected = np.sqrt(np.diag(np.linalg.inv(x.T @ x)) * truck_stats.mse)
        for coef, se in zip(truck_stats.coefficients, expected):
            assert coef.standard_error == pytest.approx(se, rel=1e-6)

    def test_vif_for_weakly_correlated_predictors(self, truck_stats):
        assert len(truck_stats.variance_inflation_factors) == 2
        for vif in truck_stats.variance_inflation_factors:
            assert 1.0 <= vif < 1.5

    def test_r_squared_bounds(self, truck_stats):
        assert 0.0 <= truck_stats.r_squared <= 1.0
        assert truck_stats.adjusted_r_squared <= truck_stats.r_squared


# ═══════════════════════════════════════════════════════════════════════════
# Degenerate inputs
# ═══════════════════════════════════════════════════════════════════════════

class TestDegenerateStatistics:

    def test_zero_degrees_of_freedom(self, truck_observations):
        model = FittedModel(predictor_kind="multiple", intercept=1.0,
                            coefficients=RegressionCoefficients(distance=0.3, tonnage=4.0),
                            source_observation_count=3)
        with pytest.raises(NumericDegeneracyError) as exc_info:
            compute_statistics(truck_observations[:3], model)
        assert exc_info.value.reason_code == ReasonCode.DEGENERATE_MODEL
        assert exc_info.value.quantity == "degrees_of_freedom"

    def test_zero_total_variance(self):
        obs = [make_observation(month=MONTHS[i], distance_km=3000 + 100 * i, fuel_consumed_liters=450)
               for i in range(5)]
        model = FittedModel(predictor_kind="simple", intercept=450.0,
                            coefficients=RegressionCoefficients(distance=0.0), source_observation_count=5)
        with pytest.raises(NumericDegeneracyError) as exc_info:
            compute_statistics(obs, model)
        assert exc_info.value.quantity == "total_ss"

    def test_perfect_fit(self):
        obs = [make_observation(month=MONTHS[i], distance_km=3000 + 160 * i,
                                fuel_consumed_liters=20 + 0.125 * (3000 + 160 * i))
               for i in range(8)]
        stats = compute_statistics(obs, fit_ols(obs, "simple").model)
        assert stats.r_squared == pytest.approx(1.0)
        assert stats.significance_f == pytest.approx(0.0, abs=1e-12)
        assert stats.coefficient("distance").p_value == pytest.approx(0.0, abs=1e-12)


# ═══════════════════════════════════════════════════════════════════════════
# P-value estimators
# ═══════════════════════════════════════════════════════════════════════════

class TestEstimators:

    def test_logistic_at_zero(self):
        est = LogisticApproximation()
        assert est.t_two_sided(0.0, 10) == pytest.approx(1.0)
        assert est.f_upper_tail(0.0, 1, 10) == pytest.approx(0.5)

    def test_logistic_formula(self):
        z = 0.717 * 2.0 + 0.416 * 4.0
        expected = 2 * (1 - 1 / (1 + math.exp(-z)))
        est = LogisticApproximation()
        assert est.t_two_sided(2.0, 10) == pytest.approx(expected)
        assert est.t_two_sided(-2.0, 10) == pytest.approx(expected)

    def test_logistic_ignores_degrees_of_freedom(self):
        est = LogisticApproximation()
        assert est.t_two_sided(1.5, 3) == est.t_two_sided(1.5, 300)

    def test_logistic_huge_statistic(self):
        est = LogisticApproximation()
        assert est.t_two_sided(1e200, 10) == 0.0
        assert est.f_upper_tail(math.inf, 1, 10) == 0.0

    def test_student_t_matches_scipy(self):
        est = StudentTDistribution()
        assert est.t_two_sided(2.0, 10) == pytest.approx(2 * sp_stats.t.sf(2.0, 10))
        assert est.f_upper_tail(5.0, 2, 9) == pytest.approx(sp_stats.f.sf(5.0, 2, 9))

    def test_get_estimator(self):
        assert isinstance(get_estimator("logistic"), LogisticApproximation)
        assert isinstance(get_estimator("student_t"), StudentTDistribution)

    def test_unknown_estimator(self):
        with pytest.raises(ConfigurationError) as exc_info:
            get_estimator("bootstrap")
        assert exc_info.value.reason_code == ReasonCode.UNKNOWN_ESTIMATOR

    def test_method_recorded(self, car_observations):
        model = fit_ols(car_observations, "simple").model
        stats = compute_statistics(car_observations, model, StudentTDistribution())
        assert stats.p_value_method == "student_t"
        distance = stats.coefficient("distance")
        assert distance.p_value == pytest.approx(2 * sp_stats.t.sf(abs(distance.t_stat), 10))
