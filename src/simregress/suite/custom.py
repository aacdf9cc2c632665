"""Helpers for resolving user-provided engine factories."""
from __future__ import annotations

import importlib
import importlib.machinery
import importlib.util
import sys
from pathlib import Path
from typing import Any, Callable

from simregress.engines.base import SimulationEngine, build_engine, engine_registry

from .models import EngineConfig


def load_from_source(source: Path, func_name: str) -> Callable:
    """Load a callable named ``func_name`` from a Python file at ``source``."""

    path = source.expanduser().resolve()
    if not path.exists():
        raise FileNotFoundError(f"Engine source file not found: {path}")
    module_name = f"simregress_engine_{path.stem}_{hash(str(path)) & 0xFFFF:x}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Unable to load module from {path}")
    module = importlib.util.module_from_spec(spec)
    loader = spec.loader
    assert isinstance(loader, importlib.machinery.SourceFileLoader)  # type: ignore[attr-defined]
    sys.modules[module_name] = module
    loader.exec_module(module)
    if not hasattr(module, func_name):
        raise AttributeError(f"Function '{func_name}' not found in {path}")
    func = getattr(module, func_name)
    if not callable(func):
        raise TypeError(f"Attribute '{func_name}' in {path} is not callable")
    return func  # type: ignore[return-value]


def import_string(path: str) -> Any:
    """Return the attribute at ``module:attr`` or ``module.attr``."""

    module_name, sep, attr = path.partition(":")
    if not sep:
        module_name, sep, attr = path.rpartition(".")
    if not module_name or not attr:
        raise ValueError(f"Invalid engine factory path '{path}'")
    module = importlib.import_module(module_name)
    try:
        return getattr(module, attr)
    except AttributeError as exc:
        raise AttributeError(f"Module '{module_name}' has no attribute '{attr}'") from exc


def resolve_engine(config: EngineConfig) -> SimulationEngine:
    """Instantiate the engine a suite file asks for."""

    if config.name:
        return engine_registry.create(config.name, config.params)
    if config.factory:
        factory = import_string(config.factory)
        return build_engine(factory, config.params, label=config.factory)
    if config.source:
        factory = load_from_source(config.source, config.callable)
        return build_engine(factory, config.params, label=f"{config.source}:{config.callable}")
    raise ValueError("engine requires one of 'name', 'factory' or 'source'")
