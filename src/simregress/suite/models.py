"""Data models for suite files and batch outcomes."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

from simregress.core.comparator import DiffReport
from simregress.core.models import Tolerance
from simregress.engines.session import TimingProfile


@dataclass(frozen=True)
class EngineConfig:
    name: Optional[str] = None
    factory: Optional[str] = None
    source: Optional[Path] = None
    callable: str = "create_engine"
    params: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SuiteConfig:
    source_root: Path
    baseline_root: Path
    extension: str
    mode: str
    tolerance: Tolerance
    completion_heuristic: bool
    engine: EngineConfig
    timing: TimingProfile
    suite_dir: Path


@dataclass(frozen=True)
class CaptureOptions:
    subdirectory: Optional[str] = None
    overwrite: bool = False
    verify: bool = False


@dataclass(frozen=True)
class VerifyOptions:
    tolerance: Optional[Tolerance] = None
    case: Optional[str] = None
    quick: bool = False


@dataclass(frozen=True)
class CaseOutcome:
    """Verdict for one case of a capture or verification batch."""

    case_id: str
    status: str  # passed, failed, error or skipped
    details: str = ""
    duration_s: float = 0.0
    report: Optional[DiffReport] = None
    quick_match: Optional[bool] = None
    signal_count: int = 0
    partial: Sequence[str] = field(default_factory=tuple)

    @property
    def passed(self) -> bool:
        return self.status == "passed"


@dataclass(frozen=True)
class BatchSummary:
    operation: str  # capture or verify
    outcomes: Sequence[CaseOutcome]
    duration_s: float = 0.0

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == "passed")

    @property
    def failed(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == "failed")

    @property
    def errors(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == "error")

    @property
    def skipped(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == "skipped")

    @property
    def exit_code(self) -> int:
        return 0 if self.failed == 0 and self.errors == 0 else 1
