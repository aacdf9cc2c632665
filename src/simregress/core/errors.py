"""Error taxonomy shared across simregress subsystems."""
from __future__ import annotations

from dataclasses import dataclass


class RegressionError(Exception):
    """Base class for all simregress failures."""


class NotFoundError(RegressionError):
    """A case artifact, baseline or source tree is missing."""


class ArtifactNotFound(NotFoundError):
    def __init__(self, path: str) -> None:
        super().__init__(f"Case artifact does not exist: {path}")
        self.path = path


class BaselineNotFound(NotFoundError):
    def __init__(self, case_id: str, location: str) -> None:
        super().__init__(f"Baseline not found for case {case_id}: {location}")
        self.case_id = case_id
        self.location = location


class CaseSourceNotFound(NotFoundError):
    def __init__(self, path: str) -> None:
        super().__init__(f"Case source directory not found: {path}")
        self.path = path


class EngineFault(RegressionError):
    """The external engine failed to load or run a case. Never retried."""

    def __init__(self, case_id: str, stage: str, cause: BaseException) -> None:
        super().__init__(f"Engine failed to {stage} case {case_id}: {cause}")
        self.case_id = case_id
        self.stage = stage


class SimulationTimeout(RegressionError):
    """Completion was not observed within the configured bound."""

    def __init__(self, case_id: str, elapsed_s: float) -> None:
        super().__init__(
            f"Simulation did not complete or timed out after {elapsed_s:g} seconds for case: {case_id}"
        )
        self.case_id = case_id
        self.elapsed_s = elapsed_s


class BaselineIntegrityError(RegressionError):
    """A stored baseline disagrees with its own signal manifest."""


class SuiteConfigError(RegressionError, ValueError):
    """Suite file failed schema or semantic validation."""


@dataclass(frozen=True)
class PartialCapture:
    """Non-fatal note: an output element was omitted or truncated during capture."""

    element: str
    reason: str
    truncated_to: int | None = None

    def describe(self) -> str:
        if self.truncated_to is not None:
            return f"{self.element}: {self.reason} (truncated to {self.truncated_to} points)"
        return f"{self.element}: {self.reason}"
