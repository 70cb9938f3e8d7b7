"""SER Engine — fuel-consumption reference models and anomaly scoring for fleets.

Fits a per-cohort regression of monthly fuel consumption on distance (cars)
or distance + tonnage (trucks), projects reference / target consumption for
new observations against that baseline (SER, Situation Énergétique de
Référence), and classifies IPE anomalies for an external notification sink.
"""

from ser_engine.config import CohortKey, EngineConfig
from ser_engine.engine import ModelCache, evaluate_cohort, fit_cohort
from ser_engine.models import AnomalyEvent, FittedModel, Observation

__version__ = "0.1.0"

__all__ = [
    "CohortKey",
    "EngineConfig",
    "ModelCache",
    "fit_cohort",
    "evaluate_cohort",
    "AnomalyEvent",
    "FittedModel",
    "Observation",
    "__version__",
]
