"""Statistics settings — p-value estimator and significance level."""

from typing import Literal

from pydantic import BaseModel, Field


class StatisticsConfig(BaseModel):
    """Controls the inferential part of the Statistics Calculator.

    - **logistic**: closed-form sigmoid stand-in for the t / F CDFs.  Fast and
      dependency-free, but approximate — fine for screening, not for
      publication-grade inference.
    - **student_t**: exact Student-t / F tails from ``scipy.stats``.
    """

    p_value_method: Literal["logistic", "student_t"] = Field(
        default="logistic",
        description="Estimator used for coefficient p-values and significance F",
    )
    significance_level: float = Field(
        default=0.05, gt=0, lt=1.0,
        description="α used when assessing model / coefficient significance",
    )
