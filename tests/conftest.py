"""Shared test fixtures — car / truck fitting sets and engine configs."""

from __future__ import annotations

import pytest

from ser_engine.config import CohortKey, EngineConfig
from ser_engine.models import Observation

MONTHS = [
    "janvier", "février", "mars", "avril", "mai", "juin",
    "juillet", "août", "septembre", "octobre", "novembre", "décembre",
]

# Deterministic ±noise in litres, one per month.
NOISE = [4.0, -6.0, 3.0, -2.0, 7.0, -5.0, 1.0, -4.0, 6.0, -3.0, 2.0, -3.0]

# Cars: fuel ≈ 40 + 0.12 · distance
CAR_INTERCEPT = 40.0
CAR_SLOPE = 0.12

# Trucks: fuel ≈ 50 + 0.30 · distance + 4.0 · tonnage (tonnes)
TRUCK_INTERCEPT = 50.0
TRUCK_DISTANCE_COEF = 0.30
TRUCK_TONNAGE_COEF = 4.0
TRUCK_DISTANCES = [3000, 4200, 3500, 4800, 3200, 4500, 3900, 3100, 4600, 3700, 4100, 3300]
TRUCK_TONNAGES = [20, 18, 30, 22, 35, 26, 19, 28, 33, 24, 31, 21]


def make_observation(
    vehicle_id: str = "AB-123-CD",
    vehicle_class: str = "car",
    month: str = "janvier",
    year: str = "2024",
    region: str | None = "Nord",
    distance_km: float = 4000.0,
    fuel_consumed_liters: float = 500.0,
    tonnage: float | None = None,
) -> Observation:
    return Observation(
        vehicle_id=vehicle_id,
        vehicle_class=vehicle_class,
        month=month,
        year=year,
        region=region,
        distance_km=distance_km,
        tonnage=tonnage,
        fuel_consumed_liters=fuel_consumed_liters,
    )


@pytest.fixture
def car_cohort() -> CohortKey:
    return CohortKey(vehicle_class="car", year="2024", region="Nord")


@pytest.fixture
def truck_cohort() -> CohortKey:
    return CohortKey(vehicle_class="truck", year="2024", region="Nord")


@pytest.fixture
def car_observations() -> list[Observation]:
    """12 monthly car observations, 3000–5000 km, ~400–640 L, small noise."""
    distances = [3000 + i * 180 for i in range(12)]
    return [
        make_observation(
            vehicle_id="CAR-001",
            month=MONTHS[i],
            distance_km=float(d),
            fuel_consumed_liters=CAR_INTERCEPT + CAR_SLOPE * d + NOISE[i],
        )
        for i, d in enumerate(distances)
    ]


@pytest.fixture
def truck_observations() -> list[Observation]:
    """12 monthly truck observations, distance and tonnage weakly correlated."""
    return [
        make_observation(
            vehicle_id="TRK-001",
            vehicle_class="truck",
            month=MONTHS[i],
            distance_km=float(d),
            tonnage=float(t),
            fuel_consumed_liters=(
                TRUCK_INTERCEPT + TRUCK_DISTANCE_COEF * d + TRUCK_TONNAGE_COEF * t + NOISE[i]
            ),
        )
        for i, (d, t) in enumerate(zip(TRUCK_DISTANCES, TRUCK_TONNAGES))
    ]


@pytest.fixture
def collinear_truck_observations() -> list[Observation]:
    """Truck observations with tonnage = 50 · distance exactly."""
    return [
        make_observation(
            vehicle_id="TRK-002",
            vehicle_class="truck",
            month=MONTHS[i],
            distance_km=float(d),
            tonnage=50.0 * d,
            fuel_consumed_liters=100.0 + 0.3 * d + NOISE[i],
        )
        for i, d in enumerate(TRUCK_DISTANCES)
    ]


@pytest.fixture
def engine_config() -> EngineConfig:
    return EngineConfig()
