from __future__ import annotations

from pathlib import Path
from typing import Callable, Sequence

import pytest

from fakes import FakeEngine, RecordingSleep
from simregress import bootstrap
from simregress.core.models import Case, ToleranceProfile
from simregress.core.orchestrator import LifecycleOrchestrator
from simregress.engines.session import EngineSession, TimingProfile
from simregress.suite.models import EngineConfig, SuiteConfig


@pytest.fixture(scope="session", autouse=True)
def setup_simregress_plugins() -> None:
    """Load engine plugins once for the entire test session."""

    bootstrap()


@pytest.fixture
def timing() -> TimingProfile:
    return TimingProfile(
        mode="headless",
        max_wait_s=2.0,
        poll_interval_s=0.5,
        bootstrap_timeout_s=0.05,
        ready_poll_s=0.01,
        ready_settle_s=0.0,
        load_settle_s=0.0,
    )


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def make_orchestrator(timing: TimingProfile, sleep: RecordingSleep) -> Callable[..., LifecycleOrchestrator]:
    def factory(engine: FakeEngine, *, heuristic: bool = True) -> LifecycleOrchestrator:
        return LifecycleOrchestrator(EngineSession(engine, timing, heuristic=heuristic, sleep=sleep))

    return factory


@pytest.fixture
def case_tree(tmp_path: Path) -> Callable[[Sequence[str]], Path]:
    """Create empty case artifacts below ``tmp_path/resources``."""

    def factory(names: Sequence[str]) -> Path:
        root = tmp_path / "resources"
        for name in names:
            path = root / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text("model", encoding="utf-8")
        root.mkdir(parents=True, exist_ok=True)
        return root

    return factory


@pytest.fixture
def make_case(case_tree) -> Callable[[str], Case]:
    def factory(case_id: str = "buck.ipes") -> Case:
        root = case_tree([case_id])
        return Case(case_id=case_id, path=root / case_id)

    return factory


@pytest.fixture
def suite_config(tmp_path: Path, timing: TimingProfile) -> SuiteConfig:
    return SuiteConfig(
        source_root=tmp_path / "resources",
        baseline_root=tmp_path / "golden" / "baselines",
        extension=".ipes",
        mode="headless",
        tolerance=ToleranceProfile.NORMAL,
        completion_heuristic=True,
        engine=EngineConfig(factory="fakes:create_engine"),
        timing=timing,
        suite_dir=tmp_path,
    )
