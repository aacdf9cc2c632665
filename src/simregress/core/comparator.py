"""Tolerance-aware comparison of a candidate run against its baseline."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np

from .models import Tolerance, tolerance_label, tolerance_value
from .results import RunResult

RELATIVE_FLOOR = 1e-15
MAX_DETAIL_LINES = 5


@dataclass(frozen=True)
class ToleranceViolation:
    """Comparator mismatch expressed as data; never raised."""

    case_id: str
    tolerance: str
    max_absolute_error: float
    max_relative_error: float
    worst_sample: Optional[str]
    difference_count: int


@dataclass(frozen=True)
class DiffReport:
    """Outcome of comparing two runs."""

    case_id: str
    tolerance: str
    matches: bool
    differences: Tuple[str, ...] = field(default_factory=tuple)
    max_absolute_error: float = 0.0
    max_relative_error: float = 0.0
    worst_sample: Optional[str] = None

    @property
    def violation(self) -> Optional[ToleranceViolation]:
        if self.matches:
            return None
        return ToleranceViolation(
            case_id=self.case_id,
            tolerance=self.tolerance,
            max_absolute_error=self.max_absolute_error,
            max_relative_error=self.max_relative_error,
            worst_sample=self.worst_sample,
            difference_count=len(self.differences),
        )

    def render(self) -> str:
        lines = [
            f"Comparison Result: {'PASS' if self.matches else 'FAIL'}",
            f"Max Absolute Error: {self.max_absolute_error!r}",
            f"Max Relative Error: {self.max_relative_error!r}",
        ]
        if self.worst_sample is not None:
            lines.append(f"Signal with Max Error: {self.worst_sample}")
        if self.differences:
            lines.append("")
            lines.append("Differences Found:")
            lines.extend(f"  - {diff}" for diff in self.differences)
        return "\n".join(lines) + "\n"


class _ErrorTracker:
    """Running maxima across the whole report, not per signal."""

    def __init__(self) -> None:
        self.max_abs = 0.0
        self.max_rel = 0.0
        self.worst: Optional[str] = None

    def observe(self, name: str, abs_err: np.ndarray, rel_err: np.ndarray) -> None:
        if abs_err.size == 0:
            return
        # NaN never beats a running maximum
        finite_abs = np.where(np.isnan(abs_err), -np.inf, abs_err)
        index = int(np.argmax(finite_abs))
        if finite_abs[index] > self.max_abs:
            self.max_abs = float(finite_abs[index])
            self.worst = f"{name}[{index}]"
        finite_rel = np.where(np.isnan(rel_err), -np.inf, rel_err)
        peak_rel = float(finite_rel.max())
        if peak_rel > self.max_rel:
            self.max_rel = peak_rel


def compare(baseline: RunResult, candidate: RunResult, tolerance: Tolerance) -> DiffReport:
    """Compare ``candidate`` against ``baseline``.

    A sample counts as a difference only when both its absolute and its
    relative error exceed the tolerance. The run matches when nothing was
    recorded or when the worst absolute error over every signal stays within
    tolerance, so metadata or fingerprint deltas alone never fail a run.
    """

    tol = tolerance_value(tolerance)
    differences: List[str] = []
    tracker = _ErrorTracker()

    if abs(baseline.end_time - candidate.end_time) > tol:
        differences.append(
            f"Simulation time differs: expected={baseline.end_time!r}, actual={candidate.end_time!r}"
        )
    if abs(baseline.timestep - candidate.timestep) > tol:
        differences.append(
            f"Timestep differs: expected={baseline.timestep!r}, actual={candidate.timestep!r}"
        )

    if baseline.fingerprint is not None and candidate.fingerprint is not None:
        if baseline.fingerprint != candidate.fingerprint:
            differences.append(
                f"Checksums differ: expected={baseline.fingerprint}, actual={candidate.fingerprint}"
            )

    expected_signals = baseline.signals
    actual_signals = candidate.signals
    for name in expected_signals:
        if name not in actual_signals:
            differences.append(f"Signal missing in actual result: {name}")
    for name in actual_signals:
        if name not in expected_signals:
            differences.append(f"Unexpected signal in actual result: {name}")

    for name, expected_series in expected_signals.items():
        actual_series = actual_signals.get(name)
        if actual_series is None:
            continue
        expected_values = expected_series.values
        actual_values = actual_series.values
        if expected_values.size != actual_values.size:
            differences.append(
                f"Signal {name} has different lengths: expected={expected_values.size}, "
                f"actual={actual_values.size}"
            )
            continue
        differences.extend(_compare_samples(name, expected_values, actual_values, tol, tracker))

    matches = not differences or tracker.max_abs <= tol
    return DiffReport(
        case_id=baseline.case_id,
        tolerance=tolerance_label(tolerance),
        matches=matches,
        differences=tuple(differences),
        max_absolute_error=tracker.max_abs,
        max_relative_error=tracker.max_rel,
        worst_sample=tracker.worst,
    )


def _compare_samples(
    name: str,
    expected: np.ndarray,
    actual: np.ndarray,
    tol: float,
    tracker: _ErrorTracker,
) -> List[str]:
    with np.errstate(invalid="ignore", divide="ignore", over="ignore"):
        abs_err = np.abs(expected - actual)
        magnitude = np.abs(expected)
        above_floor = magnitude > RELATIVE_FLOOR
        rel_err = np.zeros_like(abs_err)
        np.divide(abs_err, magnitude, out=rel_err, where=above_floor)
        flagged = np.flatnonzero((abs_err > tol) & (rel_err > tol))
    tracker.observe(name, abs_err, rel_err)

    lines: List[str] = []
    for index in flagged[:MAX_DETAIL_LINES]:
        lines.append(
            f"Signal {name}[{index}] differs: expected={float(expected[index])!r}, "
            f"actual={float(actual[index])!r}, absError={float(abs_err[index])!r}, "
            f"relError={float(rel_err[index])!r}"
        )
    if flagged.size > MAX_DETAIL_LINES:
        lines.append(f"Signal {name} has additional errors (truncated)")
    return lines


def quick_compare(baseline: RunResult, candidate: RunResult) -> bool:
    """Fingerprint-only check; independent of :func:`compare` and order sensitive."""

    if baseline.fingerprint is None or candidate.fingerprint is None:
        return False
    return baseline.fingerprint == candidate.fingerprint
