from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from simregress.core.errors import SuiteConfigError
from simregress.core.models import ToleranceProfile
from simregress.suite.loader import load_suite


def _write(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "simregress.yaml"
    path.write_text(textwrap.dedent(content), encoding="utf-8")
    return path


def test_load_minimal_suite_applies_defaults(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        """
        source_root: resources
        engine: gecko
        """,
    )
    config = load_suite(str(path))
    assert config.source_root == (tmp_path / "resources").resolve()
    assert config.baseline_root == (tmp_path / "golden" / "baselines").resolve()
    assert config.extension == ".ipes"
    assert config.mode == "headless"
    assert config.tolerance is ToleranceProfile.NORMAL
    assert config.completion_heuristic is True
    assert config.engine.name == "gecko"
    assert config.timing.max_wait_s == 300.0
    assert config.timing.poll_interval_s == 0.5


def test_interactive_mode_with_overrides(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        """
        source_root: resources
        mode: interactive
        tolerance: 1e-8
        extension: sim
        engine:
          source: engines/local.py
          callable: make
          params: {port: 43036}
        timing:
          max_wait_s: 5
        """,
    )
    config = load_suite(str(path))
    assert config.timing.mode == "interactive"
    assert config.timing.max_wait_s == 5.0
    assert config.timing.poll_interval_s == 1.0
    assert config.timing.load_settle_s == 2.0
    assert config.tolerance == pytest.approx(1e-8)
    assert config.extension == ".sim"
    assert config.engine.source == (tmp_path / "engines" / "local.py").resolve()
    assert config.engine.callable == "make"
    assert dict(config.engine.params) == {"port": 43036}


def test_schema_errors_are_collected(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        """
        mode: turbo
        engine: gecko
        timing: {poll_interval_s: 0}
        colour: red
        """,
    )
    with pytest.raises(SuiteConfigError) as exc:
        load_suite(str(path))
    message = str(exc.value)
    assert "source_root" in message
    assert "mode" in message
    assert "timing/poll_interval_s" in message
    assert "colour" in message


def test_engine_requires_exactly_one_source(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        """
        source_root: resources
        engine:
          name: gecko
          factory: pkg.mod:create
        """,
    )
    with pytest.raises(SuiteConfigError, match="exactly one"):
        load_suite(str(path))


def test_unknown_tolerance_rejected(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        """
        source_root: resources
        engine: gecko
        tolerance: sloppy
        """,
    )
    with pytest.raises(SuiteConfigError, match="Unknown tolerance"):
        load_suite(str(path))


def test_invalid_yaml(tmp_path: Path) -> None:
    path = _write(tmp_path, "source_root: [unclosed\n")
    with pytest.raises(SuiteConfigError, match="not valid YAML"):
        load_suite(str(path))


def test_tolerance_parse() -> None:
    assert ToleranceProfile.parse("Strict") is ToleranceProfile.STRICT
    assert ToleranceProfile.parse("0.5") == 0.5
    with pytest.raises(ValueError):
        ToleranceProfile.parse("-1")
    for text in ("nan", "inf", "-inf"):
        with pytest.raises(ValueError, match="finite"):
            ToleranceProfile.parse(text)
    assert ToleranceProfile.RELAXED.label() == "relaxed=1e-06"
