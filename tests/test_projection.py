"""Reference/Target Projector tests — reference, target, IPE, trends."""

from __future__ import annotations

import pytest

from ser_engine.config import CohortKey
from ser_engine.engine.pipeline import fit_cohort
from ser_engine.engine.projection import (
    build_monthly_trends,
    ipe_per_100km,
    month_number,
    project_batch,
    project_observation,
    reference_consumption,
    target_consumption,
)
from ser_engine.exceptions import ConfigurationError, ProjectionUndefinedError, ReasonCode
from ser_engine.models import FittedModel, RegressionCoefficients

from conftest import make_observation


@pytest.fixture
def car_model() -> FittedModel:
    return FittedModel(
        cohort=CohortKey(vehicle_class="car", year="2023"),
        predictor_kind="simple",
        intercept=20.0,
        coefficients=RegressionCoefficients(distance=0.1),
        source_observation_count=12,
    )


@pytest.fixture
def truck_model() -> FittedModel:
    return FittedModel(
        cohort=CohortKey(vehicle_class="truck", year="2023"),
        predictor_kind="multiple",
        intercept=50.0,
        coefficients=RegressionCoefficients(distance=0.3, tonnage=4.0),
        source_observation_count=12,
    )


# ═══════════════════════════════════════════════════════════════════════════
# Reference / target
# ═══════════════════════════════════════════════════════════════════════════

class TestReferenceAndTarget:

    def test_reference_simple(self, car_model):
        assert reference_consumption(car_model, 1000.0) == pytest.approx(120.0)

    def test_reference_ignores_tonnage_for_simple(self, car_model):
        assert reference_consumption(car_model, 1000.0, 25.0) == pytest.approx(120.0)

    def test_reference_multiple(self, truck_model):
        assert reference_consumption(truck_model, 1000.0, 20.0) == pytest.approx(430.0)

    def test_target_zero_improvement(self):
        assert target_consumption(120.0, 0.0) == 120.0

    def test_target_reduction(self):
        assert target_consumption(120.0, 10.0) == pytest.approx(108.0)

    def test_target_full_improvement(self):
        assert target_consumption(120.0, 100.0) == 0.0

    @pytest.mark.parametrize("pct", [-1.0, 100.5])
    def test_improvement_out_of_range(self, pct):
        with pytest.raises(ConfigurationError) as exc_info:
            target_consumption(120.0, pct)
        assert exc_info.value.reason_code == ReasonCode.IMPROVEMENT_OUT_OF_RANGE

    def test_ipe_zero_distance(self):
        with pytest.raises(ProjectionUndefinedError):
            ipe_per_100km(50.0, 0.0)


# ═══════════════════════════════════════════════════════════════════════════
# project_observation
# ═══════════════════════════════════════════════════════════════════════════

class TestProjectObservation:

    def test_car_metrics(self, car_model):
        obs = make_observation(distance_km=1000.0, fuel_consumed_liters=150.0)
        m = project_observation(obs, car_model, improvement_percentage=10.0)
        assert m.reference_consumption_liters == pytest.approx(120.0)
        assert m.target_consumption_liters == pytest.approx(108.0)
        assert m.actual_ipe == pytest.approx(15.0)
        assert m.reference_ipe == pytest.approx(12.0)
        assert m.deviation_percentage == pytest.approx(-20.0)
        assert m.actual_ipe_per_tonne is None
        assert m.not_computable == []

    def test_positive_deviation_means_below_reference(self, car_model):
        obs = make_observation(distance_km=1000.0, fuel_consumed_liters=100.0)
        m = project_observation(obs, car_model)
        assert m.deviation_percentage == pytest.approx(20.0)

    def test_truck_per_tonne(self, truck_model):
        obs = make_observation(vehicle_class="truck", distance_km=1000.0, tonnage=20.0,
                               fuel_consumed_liters=500.0)
        m = project_observation(obs, truck_model)
        assert m.actual_ipe == pytest.approx(50.0)
        assert m.reference_ipe == pytest.approx(43.0)
        assert m.actual_ipe_per_tonne == pytest.approx(2.5)
        assert m.reference_ipe_per_tonne == pytest.approx(2.15)

    def test_zero_distance_is_soft(self, car_model):
        obs = make_observation(distance_km=0.0, fuel_consumed_liters=30.0)
        m = project_observation(obs, car_model)
        assert m.reference_consumption_liters == pytest.approx(20.0)
        assert m.actual_ipe is None
        assert m.reference_ipe is None
        assert not m.ipe_computable
        assert m.not_computable == ["distance_zero"]

    def test_zero_fuel(self, car_model):
        obs = make_observation(distance_km=1000.0, fuel_consumed_liters=0.0)
        m = project_observation(obs, car_model)
        assert m.actual_ipe == 0.0
        assert m.deviation_percentage is None
        assert "fuel_zero" in m.not_computable

    @pytest.mark.parametrize("tonnage", [None, 0.0])
    def test_truck_without_tonnage(self, truck_model, tonnage):
        obs = make_observation(vehicle_class="truck", distance_km=1000.0, tonnage=tonnage,
                               fuel_consumed_liters=400.0)
        m = project_observation(obs, truck_model)
        assert m.actual_ipe == pytest.approx(40.0)
        assert m.actual_ipe_per_tonne is None
        assert m.not_computable == ["tonnage_missing"]

    def test_cross_year_baseline(self, car_model):
        obs = make_observation(year="2025", distance_km=1000.0, fuel_consumed_liters=130.0)
        m = project_observation(obs, car_model)
        assert m.period == "janvier 2025"
        assert m.baseline_cohort.year == "2023"

    def test_improvement_checked(self, car_model):
        with pytest.raises(ConfigurationError):
            project_observation(make_observation(), car_model, improvement_percentage=120.0)

    def test_reference_equals_fit_prediction(self, car_observations, car_cohort):
        model = fit_cohort(car_observations, car_cohort)
        for obs, predicted in zip(car_observations, model.fit_statistics.predicted_values):
            assert project_observation(obs, model).reference_consumption_liters == predicted

    def test_reference_equals_fit_prediction_trucks(self, truck_observations, truck_cohort):
        model = fit_cohort(truck_observations, truck_cohort)
        for obs, predicted in zip(truck_observations, model.fit_statistics.predicted_values):
            assert project_observation(obs, model).reference_consumption_liters == predicted


class TestProjectBatch:

    def test_preserves_order(self, car_model, car_observations):
        metrics = project_batch(car_observations, car_model, 5.0)
        assert [m.period for m in metrics] == [o.period for o in car_observations]
        assert all(m.improvement_percentage == 5.0 for m in metrics)


# ═══════════════════════════════════════════════════════════════════════════
# Monthly trends
# ═══════════════════════════════════════════════════════════════════════════

class TestMonthlyTrends:

    def test_calendar_order_and_averages(self, car_model):
        obs = [
            make_observation(vehicle_id="A", month="mars", distance_km=1000.0, fuel_consumed_liters=130.0),
            make_observation(vehicle_id="A", month="janvier", distance_km=1000.0, fuel_consumed_liters=110.0),
            make_observation(vehicle_id="B", month="janvier", distance_km=2000.0, fuel_consumed_liters=230.0),
            make_observation(vehicle_id="A", month="février", distance_km=1000.0, fuel_consumed_liters=125.0),
        ]
        trends = build_monthly_trends(obs, project_batch(obs, car_model, 10.0))
        assert [p.month for p in trends] == ["janvier", "février", "mars"]
        january = trends[0]
        assert january.actual == pytest.approx(170.0)
        assert january.reference == pytest.approx(170.0)
        assert january.target == pytest.approx(153.0)

    def test_misaligned_inputs(self, car_model):
        obs = [make_observation()]
        with pytest.raises(ValueError):
            build_monthly_trends(obs, [])

    @pytest.mark.parametrize("label, expected", [
        ("janvier", 1),
        ("Août", 8),
        ("December", 12),
        ("03", 3),
        ("trimestre", 13),
    ])
    def test_month_number(self, label, expected):
        assert month_number(label) == expected
