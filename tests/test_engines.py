from __future__ import annotations

from pathlib import Path

import pytest

import simregress
from fakes import FakeEngine
from simregress.engines.base import EngineRegistry, build_engine, engine_registry
from simregress.suite.custom import import_string, resolve_engine
from simregress.suite.models import EngineConfig


def test_registry_create_and_duplicates() -> None:
    registry = EngineRegistry()
    registry.register("Fake", FakeEngine)
    assert "fake" in registry
    assert registry.names() == ("fake",)
    engine = registry.create("FAKE", {"end_time": 0.5})
    assert isinstance(engine, FakeEngine)
    assert engine.end_time() == 0.5
    with pytest.raises(ValueError, match="already registered"):
        registry.register("fake", FakeEngine)
    with pytest.raises(KeyError, match="registered: fake"):
        registry.create("gecko")


def test_build_engine_checks_interface() -> None:
    class Partial:
        def boot(self) -> None:
            pass

    with pytest.raises(TypeError, match="missing: is_ready"):
        build_engine(Partial, label="partial")


def test_import_string_forms() -> None:
    assert import_string("fakes:FakeEngine") is FakeEngine
    assert import_string("fakes.FakeEngine") is FakeEngine
    with pytest.raises(ValueError):
        import_string("nodots")


def test_resolve_engine_from_factory_and_source(tmp_path: Path) -> None:
    engine = resolve_engine(EngineConfig(factory="fakes:create_engine", params={"timestep": 2e-6}))
    assert engine.timestep() == 2e-6

    source = tmp_path / "local_engine.py"
    source.write_text(
        "from fakes import FakeEngine\n\n\ndef make(**params):\n    return FakeEngine(**params)\n",
        encoding="utf-8",
    )
    engine = resolve_engine(EngineConfig(source=source, callable="make", params={"ready": False}))
    assert engine.is_ready() is False

    with pytest.raises(AttributeError):
        resolve_engine(EngineConfig(source=source, callable="absent"))


def test_bootstrap_registers_plugins(tmp_path: Path, monkeypatch) -> None:
    plugin = tmp_path / "simregress_test_plugin.py"
    plugin.write_text(
        "from fakes import FakeEngine\n"
        "from simregress.engines import engine_registry\n\n\n"
        "def register():\n"
        "    engine_registry.register('plugin-fake', FakeEngine)\n",
        encoding="utf-8",
    )
    monkeypatch.syspath_prepend(str(tmp_path))
    monkeypatch.setenv("SIMREGRESS_PLUGINS", "simregress_test_plugin, ")
    monkeypatch.setattr(simregress, "_BOOTSTRAPPED", False)

    simregress.bootstrap()
    simregress.bootstrap()
    assert "plugin-fake" in engine_registry
    assert isinstance(resolve_engine(EngineConfig(name="plugin-fake")), FakeEngine)
