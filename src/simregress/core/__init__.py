"""Core models and helpers exposed at the package level."""
from .comparator import DiffReport, ToleranceViolation, compare, quick_compare
from .errors import (
    ArtifactNotFound,
    BaselineIntegrityError,
    BaselineNotFound,
    CaseSourceNotFound,
    EngineFault,
    NotFoundError,
    PartialCapture,
    RegressionError,
    SimulationTimeout,
    SuiteConfigError,
)
from .models import Case, Tolerance, ToleranceProfile, tolerance_value
from .results import RunResult, RunResultBuilder, SignalSeries, compute_fingerprint

__all__ = [
    "ArtifactNotFound",
    "BaselineIntegrityError",
    "BaselineNotFound",
    "Case",
    "CaseSourceNotFound",
    "DiffReport",
    "EngineFault",
    "NotFoundError",
    "PartialCapture",
    "RegressionError",
    "RunResult",
    "RunResultBuilder",
    "SignalSeries",
    "SimulationTimeout",
    "SuiteConfigError",
    "Tolerance",
    "ToleranceProfile",
    "ToleranceViolation",
    "compare",
    "compute_fingerprint",
    "quick_compare",
    "tolerance_value",
]
