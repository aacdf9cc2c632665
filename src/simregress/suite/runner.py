"""Batch capture and verification of simulation cases."""
from __future__ import annotations

import logging
import time
from typing import Callable, List, Optional, Sequence, Tuple

from simregress.baselines.store import BaselineStore
from simregress.core.comparator import compare, quick_compare
from simregress.core.errors import BaselineNotFound, RegressionError
from simregress.core.models import Case, Tolerance, ToleranceProfile, strip_extension, tolerance_label
from simregress.core.orchestrator import LifecycleOrchestrator
from simregress.discovery import discover_cases
from simregress.engines.session import EngineSession
from simregress.reporting.base import ReportManager, Reporter

from .custom import resolve_engine
from .models import BatchSummary, CaptureOptions, CaseOutcome, SuiteConfig, VerifyOptions

logger = logging.getLogger(__name__)


def build_orchestrator(
    config: SuiteConfig, sleep: Callable[[float], None] = time.sleep
) -> LifecycleOrchestrator:
    engine = resolve_engine(config.engine)
    session = EngineSession(
        engine,
        config.timing,
        heuristic=config.completion_heuristic,
        sleep=sleep,
    )
    return LifecycleOrchestrator(session)


def list_cases(config: SuiteConfig) -> List[Tuple[Case, bool]]:
    """Every discovered case paired with whether a baseline exists for it."""

    store = BaselineStore(config.baseline_root, config.extension)
    return [(case, store.exists(case.case_id)) for case in discover_cases(config.source_root, config.extension)]


def capture_baselines(
    config: SuiteConfig,
    options: CaptureOptions,
    *,
    orchestrator: Optional[LifecycleOrchestrator] = None,
    store: Optional[BaselineStore] = None,
    reporters: Sequence[Reporter] = (),
) -> BatchSummary:
    """Run every case and persist its result as the new baseline."""

    cases = discover_cases(config.source_root, config.extension, options.subdirectory)
    store = store or BaselineStore(config.baseline_root, config.extension)
    manager = ReportManager(reporters)
    manager.start("capture", len(cases))
    logger.info("Found %d case(s) under %s", len(cases), config.source_root)

    started = time.perf_counter()
    outcomes: List[CaseOutcome] = []
    for index, case in enumerate(cases, start=1):
        if store.exists(case.case_id) and not options.overwrite:
            outcome = CaseOutcome(case.case_id, "skipped", details="baseline exists")
            logger.info("Skipping %s: baseline exists", case.case_id)
        else:
            if orchestrator is None:
                orchestrator = build_orchestrator(config)
            outcome = _capture_case(orchestrator, store, case, options)
        outcomes.append(outcome)
        manager.handle_result(outcome, index, len(cases))

    summary = BatchSummary("capture", tuple(outcomes), time.perf_counter() - started)
    logger.info(
        "Capture complete: %d succeeded, %d failed, %d skipped",
        summary.succeeded,
        summary.failed + summary.errors,
        summary.skipped,
    )
    manager.complete(summary)
    return summary


def _capture_case(
    orchestrator: LifecycleOrchestrator,
    store: BaselineStore,
    case: Case,
    options: CaptureOptions,
) -> CaseOutcome:
    started = time.perf_counter()
    partial: Tuple[str, ...] = ()
    try:
        result = orchestrator.run_case(case)
        partial = _partial_notes(orchestrator)
        if len(result) == 0:
            return CaseOutcome(
                case.case_id,
                "failed",
                details="no signals captured",
                duration_s=time.perf_counter() - started,
                partial=partial,
            )
        location = store.save(result, overwrite=True)
        logger.info("Saved baseline for %s: %d signal(s) to %s", case.case_id, len(result), location)
        if options.verify:
            rerun = orchestrator.run_case(case)
            report = compare(result, rerun, ToleranceProfile.STRICT)
            if not report.matches:
                logger.warning("Case %s is not reproducible", case.case_id)
                return CaseOutcome(
                    case.case_id,
                    "failed",
                    details="not reproducible across two runs",
                    duration_s=time.perf_counter() - started,
                    report=report,
                    signal_count=len(result),
                    partial=partial,
                )
        return CaseOutcome(
            case.case_id,
            "passed",
            details=f"{len(result)} signal(s) saved",
            duration_s=time.perf_counter() - started,
            signal_count=len(result),
            partial=partial,
        )
    except Exception as exc:
        return _error_outcome(case, exc, started, orchestrator)


def verify_baselines(
    config: SuiteConfig,
    options: VerifyOptions,
    *,
    orchestrator: Optional[LifecycleOrchestrator] = None,
    store: Optional[BaselineStore] = None,
    reporters: Sequence[Reporter] = (),
) -> BatchSummary:
    """Re-run every case that has a baseline and compare against it."""

    store = store or BaselineStore(config.baseline_root, config.extension)
    tolerance = options.tolerance if options.tolerance is not None else config.tolerance
    cases = [
        case
        for case in discover_cases(config.source_root, config.extension)
        if store.exists(case.case_id)
    ]
    if options.case:
        wanted = strip_extension(options.case, config.extension)
        cases = [case for case in cases if case.stem_id(config.extension) == wanted]
        if not cases:
            raise BaselineNotFound(options.case, str(store.case_dir(options.case)))

    manager = ReportManager(reporters)
    manager.start("verify", len(cases))
    logger.info("Verifying %d case(s) with tolerance %s", len(cases), tolerance_label(tolerance))

    started = time.perf_counter()
    outcomes: List[CaseOutcome] = []
    for index, case in enumerate(cases, start=1):
        if orchestrator is None:
            orchestrator = build_orchestrator(config)
        outcome = _verify_case(orchestrator, store, case, tolerance, options.quick)
        outcomes.append(outcome)
        manager.handle_result(outcome, index, len(cases))

    summary = BatchSummary("verify", tuple(outcomes), time.perf_counter() - started)
    logger.info("Verification complete: %d passed, %d failed", summary.succeeded, summary.failed + summary.errors)
    manager.complete(summary)
    return summary


def _verify_case(
    orchestrator: LifecycleOrchestrator,
    store: BaselineStore,
    case: Case,
    tolerance: Tolerance,
    quick: bool,
) -> CaseOutcome:
    started = time.perf_counter()
    try:
        baseline = store.load(case.case_id)
        candidate = orchestrator.run_case(case)
        report = compare(baseline, candidate, tolerance)
        quick_match = quick_compare(baseline, candidate) if quick else None
        status = "passed" if report.matches else "failed"
        logger.info("%s: %s", case.case_id, "PASS" if report.matches else "FAIL")
        return CaseOutcome(
            case.case_id,
            status,
            details="" if report.matches else f"{len(report.differences)} difference(s)",
            duration_s=time.perf_counter() - started,
            report=report,
            quick_match=quick_match,
            signal_count=len(candidate),
            partial=_partial_notes(orchestrator),
        )
    except Exception as exc:
        return _error_outcome(case, exc, started, orchestrator)


def _error_outcome(
    case: Case, exc: Exception, started: float, orchestrator: LifecycleOrchestrator
) -> CaseOutcome:
    if isinstance(exc, RegressionError):
        logger.error("%s: %s", case.case_id, exc)
        details = str(exc)
    else:
        logger.exception("Unexpected failure in %s", case.case_id)
        details = f"{type(exc).__name__}: {exc}"
    return CaseOutcome(
        case.case_id,
        "error",
        details=details,
        duration_s=time.perf_counter() - started,
        partial=_partial_notes(orchestrator),
    )


def _partial_notes(orchestrator: LifecycleOrchestrator) -> Tuple[str, ...]:
    return tuple(note.describe() for note in orchestrator.partial_captures)

