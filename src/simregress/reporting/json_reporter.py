"""JSON reporter emitting structured batch results."""
from __future__ import annotations

import datetime as dt
import json
import math
import pathlib
from typing import Any, Dict, Optional

import click
from jsonschema import validate

from simregress.core.comparator import DiffReport
from simregress.suite.models import BatchSummary, CaseOutcome

from .base import Reporter
from .schema import JSON_SCHEMA_V1, SCHEMA_VERSION


class JsonReporter(Reporter):
    """Writes results to a JSON file validated against the schema."""

    def __init__(self, path: str) -> None:
        self._path = pathlib.Path(path)
        self._records: list[Dict[str, Any]] = []

    def on_start(self, operation: str, total: int) -> None:
        self._records.clear()

    def on_case_result(self, outcome: CaseOutcome, index: int, total: int) -> None:
        self._records.append(outcome_to_dict(outcome))

    def on_complete(self, summary: BatchSummary) -> None:
        payload = {
            "schema_version": SCHEMA_VERSION,
            "generated_at": dt.datetime.now(dt.timezone.utc).isoformat(timespec="seconds"),
            "operation": summary.operation,
            "summary": {
                "total": summary.total,
                "succeeded": summary.succeeded,
                "failed": summary.failed,
                "errors": summary.errors,
                "skipped": summary.skipped,
                "duration_s": summary.duration_s,
            },
            "cases": self._records,
        }
        validate(instance=payload, schema=JSON_SCHEMA_V1)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        except OSError as exc:  # pragma: no cover - filesystem protection
            raise RuntimeError(f"Failed to write JSON report to {self._path}: {exc}") from exc
        click.echo(f"JSON report written to {self._path}")


def outcome_to_dict(outcome: CaseOutcome) -> Dict[str, Any]:
    record: Dict[str, Any] = {
        "id": outcome.case_id,
        "status": outcome.status,
        "duration_ms": outcome.duration_s * 1000,
        "details": outcome.details,
        "signal_count": outcome.signal_count,
        "quick_match": outcome.quick_match,
        "partial": list(outcome.partial),
    }
    if outcome.report is not None:
        record["comparison"] = report_to_dict(outcome.report)
    return record


def report_to_dict(report: DiffReport) -> Dict[str, Any]:
    return {
        "matches": report.matches,
        "tolerance": report.tolerance,
        "max_absolute_error": _finite_or_none(report.max_absolute_error),
        "max_relative_error": _finite_or_none(report.max_relative_error),
        "worst_sample": report.worst_sample,
        "differences": list(report.differences),
    }


def _finite_or_none(value: float) -> Optional[float]:
    return value if math.isfinite(value) else None
