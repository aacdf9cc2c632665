"""Suite configuration and batch execution.

The batch entry points live in :mod:`simregress.suite.runner`.
"""
from .custom import resolve_engine
from .loader import load_suite, parse_suite
from .models import BatchSummary, CaptureOptions, CaseOutcome, EngineConfig, SuiteConfig, VerifyOptions

__all__ = [
    "BatchSummary",
    "CaptureOptions",
    "CaseOutcome",
    "EngineConfig",
    "SuiteConfig",
    "VerifyOptions",
    "load_suite",
    "parse_suite",
    "resolve_engine",
]
