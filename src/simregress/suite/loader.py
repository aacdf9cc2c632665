"""YAML loader and validation for suite files."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from jsonschema import Draft7Validator

from simregress.core.errors import SuiteConfigError
from simregress.core.models import ToleranceProfile
from simregress.engines.session import TimingProfile

from .models import EngineConfig, SuiteConfig

DEFAULT_BASELINE_ROOT = "golden/baselines"
DEFAULT_EXTENSION = ".ipes"


def load_suite(path: str) -> SuiteConfig:
    """Load and validate a suite file."""

    suite_path = Path(path).expanduser().resolve()
    try:
        raw = yaml.safe_load(suite_path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise SuiteConfigError(f"Suite file {suite_path} is not valid YAML: {exc}") from exc
    if not isinstance(raw, Mapping):
        raise SuiteConfigError("Suite file must contain a mapping at the top level")
    return parse_suite(raw, suite_path.parent)


def parse_suite(raw: Mapping[str, Any], base: Path) -> SuiteConfig:
    errors = sorted(_validator.iter_errors(dict(raw)), key=lambda e: list(e.path))
    if errors:
        messages = "; ".join(f"{'/'.join(map(str, err.path)) or 'root'}: {err.message}" for err in errors)
        raise SuiteConfigError(f"Suite schema validation failed: {messages}")
    mode = str(raw.get("mode", "headless"))
    try:
        tolerance = ToleranceProfile.parse(str(raw.get("tolerance", "normal")))
        timing = TimingProfile.for_mode(mode, raw.get("timing"))
    except ValueError as exc:
        raise SuiteConfigError(str(exc)) from exc
    extension = str(raw.get("extension", DEFAULT_EXTENSION))
    if not extension.startswith("."):
        extension = "." + extension
    return SuiteConfig(
        source_root=_resolve_dir(raw["source_root"], base),
        baseline_root=_resolve_dir(raw.get("baseline_root", DEFAULT_BASELINE_ROOT), base),
        extension=extension,
        mode=mode,
        tolerance=tolerance,
        completion_heuristic=bool(raw.get("completion_heuristic", True)),
        engine=_parse_engine(raw["engine"], base),
        timing=timing,
        suite_dir=base,
    )


def _resolve_dir(value: Any, base: Path) -> Path:
    path = Path(str(value)).expanduser()
    if not path.is_absolute():
        path = base / path
    return path.resolve()


def _parse_engine(raw: Any, base: Path) -> EngineConfig:
    if isinstance(raw, str):
        return EngineConfig(name=raw)
    chosen = [key for key in ("name", "factory", "source") if raw.get(key)]
    if len(chosen) != 1:
        raise SuiteConfigError(
            "engine must set exactly one of 'name', 'factory' or 'source'"
            + (f" (got {', '.join(chosen)})" if chosen else "")
        )
    source: Optional[Path] = None
    if raw.get("source"):
        source = _resolve_dir(raw["source"], base)
    return EngineConfig(
        name=str(raw["name"]) if raw.get("name") else None,
        factory=str(raw["factory"]) if raw.get("factory") else None,
        source=source,
        callable=str(raw.get("callable", "create_engine")),
        params=dict(raw.get("params") or {}),
    )


_POSITIVE = {"type": "number", "exclusiveMinimum": 0}
_NON_NEGATIVE = {"type": "number", "minimum": 0}

SUITE_SCHEMA = {
    "type": "object",
    "required": ["source_root", "engine"],
    "additionalProperties": False,
    "properties": {
        "source_root": {"type": "string", "minLength": 1},
        "baseline_root": {"type": "string", "minLength": 1},
        "extension": {"type": "string", "minLength": 1},
        "mode": {"enum": ["headless", "interactive"]},
        "tolerance": {"type": ["string", "number"]},
        "completion_heuristic": {"type": "boolean"},
        "engine": {
            "oneOf": [
                {"type": "string", "minLength": 1},
                {
                    "type": "object",
                    "additionalProperties": False,
                    "properties": {
                        "name": {"type": "string"},
                        "factory": {"type": "string"},
                        "source": {"type": "string"},
                        "callable": {"type": "string", "minLength": 1},
                        "params": {"type": "object"},
                    },
                },
            ]
        },
        "timing": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "max_wait_s": _POSITIVE,
                "poll_interval_s": _POSITIVE,
                "bootstrap_timeout_s": _NON_NEGATIVE,
                "ready_poll_s": _POSITIVE,
                "ready_settle_s": _NON_NEGATIVE,
                "load_settle_s": _NON_NEGATIVE,
            },
        },
    },
}
_validator = Draft7Validator(SUITE_SCHEMA)
