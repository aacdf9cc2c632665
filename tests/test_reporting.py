from __future__ import annotations

import json
import math
from pathlib import Path

import pytest
from jsonschema import ValidationError

from simregress.core.comparator import compare
from simregress.core.models import ToleranceProfile
from simregress.core.results import RunResultBuilder
from simregress.reporting import JsonReporter, ReportManager, TerminalReporter
from simregress.reporting.json_reporter import report_to_dict
from simregress.suite.models import BatchSummary, CaseOutcome


def _failed_outcome() -> CaseOutcome:
    baseline = RunResultBuilder("buck.ipes", 0.01, 1e-6)
    baseline.add_signal("V", [0.0, 1.0], [1.0, 2.0])
    candidate = RunResultBuilder("buck.ipes", 0.01, 1e-6)
    candidate.add_signal("V", [0.0, 1.0], [1.0, 2.5])
    report = compare(baseline.seal(), candidate.seal(), ToleranceProfile.NORMAL)
    return CaseOutcome("buck.ipes", "failed", details="2 difference(s)", duration_s=0.25, report=report, signal_count=1)


def test_terminal_reporter_prints_progress_and_summary(capsys) -> None:
    outcomes = (
        CaseOutcome("a.ipes", "passed", duration_s=0.01),
        _failed_outcome(),
        CaseOutcome("c.ipes", "skipped", details="baseline exists"),
    )
    manager = ReportManager([TerminalReporter(use_color=False)])
    manager.start("verify", len(outcomes))
    for index, outcome in enumerate(outcomes, start=1):
        manager.handle_result(outcome, index, len(outcomes))
    manager.complete(BatchSummary("verify", outcomes, 1.5))

    output = capsys.readouterr().out
    assert "Starting verify: 3 case(s)" in output
    assert "[1/3] PASS  a.ipes" in output
    assert "[2/3] FAIL  buck.ipes (250 ms)" in output
    assert "- Signal V[1] differs" in output
    assert "[3/3] SKIP  c.ipes" in output
    assert "Summary (verify): total=3 succeeded=1 failed=1 errors=0 skipped=1" in output
    assert "Failure details:" in output


def test_json_reporter_writes_valid_document(tmp_path: Path) -> None:
    path = tmp_path / "reports" / "run.json"
    reporter = JsonReporter(str(path))
    outcomes = (CaseOutcome("a.ipes", "passed", duration_s=0.002, quick_match=True), _failed_outcome())
    reporter.on_start("verify", 2)
    for index, outcome in enumerate(outcomes, start=1):
        reporter.on_case_result(outcome, index, 2)
    reporter.on_complete(BatchSummary("verify", outcomes, 0.3))

    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["schema_version"] == "1.0.0"
    assert payload["summary"] == {
        "total": 2,
        "succeeded": 1,
        "failed": 1,
        "errors": 0,
        "skipped": 0,
        "duration_s": 0.3,
    }
    failed = payload["cases"][1]
    assert failed["comparison"]["matches"] is False
    assert failed["comparison"]["worst_sample"] == "V[1]"
    assert failed["duration_ms"] == pytest.approx(250.0)


def test_json_reporter_rejects_unknown_status(tmp_path: Path) -> None:
    reporter = JsonReporter(str(tmp_path / "r.json"))
    outcome = CaseOutcome("a.ipes", "flaky")
    reporter.on_start("capture", 1)
    reporter.on_case_result(outcome, 1, 1)
    with pytest.raises(ValidationError):
        reporter.on_complete(BatchSummary("capture", (outcome,), 0.0))
    assert not (tmp_path / "r.json").exists()


def test_non_finite_errors_become_null() -> None:
    baseline = RunResultBuilder("x.ipes", 0.01, 1e-6)
    baseline.add_signal("V", [0.0], [1.0])
    candidate = RunResultBuilder("x.ipes", 0.01, 1e-6)
    candidate.add_signal("V", [0.0], [math.inf])
    data = report_to_dict(compare(baseline.seal(), candidate.seal(), ToleranceProfile.NORMAL))
    assert data["max_absolute_error"] is None
    assert data["matches"] is False
