"""Terminal reporter rendering progress and summaries."""
from __future__ import annotations

import click
from colorama import Fore, Style, init as colorama_init

from simregress.suite.models import BatchSummary, CaseOutcome

from .base import Reporter

STATUS_COLORS = {
    "passed": Fore.GREEN,
    "failed": Fore.RED,
    "error": Fore.RED,
    "skipped": Fore.YELLOW,
}

STATUS_LABELS = {
    "passed": "PASS",
    "failed": "FAIL",
    "error": "ERROR",
    "skipped": "SKIP",
}


class TerminalReporter(Reporter):
    """Human-readable reporter that streams to stdout."""

    def __init__(self, *, use_color: bool = True, show_differences: int = 10) -> None:
        self._use_color = use_color
        self._show_differences = show_differences
        self._failures: list[tuple[int, CaseOutcome]] = []

    def on_start(self, operation: str, total: int) -> None:
        if self._use_color:
            colorama_init()
        self._failures.clear()
        click.echo(self._colored(f"Starting {operation}: {total} case(s)", Fore.CYAN))

    def on_case_result(self, outcome: CaseOutcome, index: int, total: int) -> None:
        ms = outcome.duration_s * 1000
        status_text = STATUS_LABELS.get(outcome.status, outcome.status.upper())
        label = self._colored(f"{status_text:<5}", STATUS_COLORS.get(outcome.status))
        click.echo(f"[{index}/{total}] {label} {outcome.case_id} ({ms:.0f} ms)")
        if outcome.status in {"failed", "error"}:
            self._failures.append((index, outcome))
            self._print_details(outcome)
        elif outcome.details:
            click.echo(f"    {outcome.details}")

    def on_complete(self, summary: BatchSummary) -> None:
        color = Fore.GREEN if summary.exit_code == 0 else Fore.RED
        click.echo(
            self._colored(
                f"Summary ({summary.operation}): total={summary.total} succeeded={summary.succeeded} "
                f"failed={summary.failed} errors={summary.errors} skipped={summary.skipped} "
                f"duration={summary.duration_s:.2f}s",
                color,
            )
        )
        if self._failures:
            click.echo(self._colored("Failure details:", Fore.RED))
            for index, outcome in self._failures:
                click.echo(f"  [{index}] {outcome.case_id} -> {outcome.status}")
                self._print_details(outcome, indent="    ")

    def _colored(self, text: str, color: str | None) -> str:
        if not self._use_color or not color:
            return text
        return f"{color}{text}{Style.RESET_ALL}"

    def _print_details(self, outcome: CaseOutcome, *, indent: str = "    ") -> None:
        if outcome.details:
            click.echo(f"{indent}{outcome.details}")
        report = outcome.report
        if report is None:
            return
        location = f" at {report.worst_sample}" if report.worst_sample else ""
        click.echo(
            f"{indent}tolerance {report.tolerance}: max_abs={report.max_absolute_error:.3e} "
            f"max_rel={report.max_relative_error:.3e}{location}"
        )
        shown = report.differences[: self._show_differences]
        for line in shown:
            click.echo(f"{indent}- {line}")
        hidden = len(report.differences) - len(shown)
        if hidden > 0:
            click.echo(f"{indent}... {hidden} more difference(s)")
