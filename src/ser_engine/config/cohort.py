"""Cohort key — the (vehicle class, year, region) filter a model is fitted for."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

VehicleClass = Literal["car", "truck"]
"""Cars regress on distance only; trucks on distance and tonnage."""

ALL_REGIONS = "all"


class CohortKey(BaseModel):
    """Identifies one fitting cohort.  Frozen so it can key the model cache."""

    model_config = ConfigDict(frozen=True)

    vehicle_class: VehicleClass = Field(description="Vehicle class of the cohort")
    year: str = Field(min_length=1, description="Calendar year label, e.g. '2024'")
    region: str = Field(
        default=ALL_REGIONS,
        min_length=1,
        description="Region tag, or 'all' for the fleet-wide cohort",
    )

    @property
    def is_all_regions(self) -> bool:
        return self.region == ALL_REGIONS

    @property
    def label(self) -> str:
        return f"{self.vehicle_class}/{self.year}/{self.region}"

    def with_year(self, year: str | int) -> "CohortKey":
        return self.model_copy(update={"year": str(year)})

    def fleet_wide(self) -> "CohortKey":
        """Same class and year, all regions."""
        return self.model_copy(update={"region": ALL_REGIONS})
