"""Simulation engine abstractions."""
from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Sequence

EngineFactory = Callable[..., "SimulationEngine"]


class SimulationEngine:
    """Base interface for the external simulation engine.

    The engine owns one process-wide session: loading an artifact replaces
    whatever was loaded before. ``run`` must return immediately; completion is
    observed only by polling ``is_complete`` or the element accessors.
    """

    name: str = ""

    def boot(self) -> None:
        """Bring the engine up. Called once, on a background thread; may block."""
        raise NotImplementedError

    def is_ready(self) -> bool:
        raise NotImplementedError

    def load(self, path: str) -> None:
        raise NotImplementedError

    def end_time(self) -> float:
        raise NotImplementedError

    def timestep(self) -> float:
        raise NotImplementedError

    def run(self) -> None:
        raise NotImplementedError

    def is_complete(self) -> bool:
        raise NotImplementedError

    def clear_completion(self) -> None:
        raise NotImplementedError

    def control_elements(self) -> Optional[Sequence[str]]:
        raise NotImplementedError

    def circuit_elements(self) -> Optional[Sequence[str]]:
        raise NotImplementedError

    def time_array(
        self, element: str, start: float, end: float, decimation: int
    ) -> Optional[Sequence[float]]:
        raise NotImplementedError

    def value_array(
        self, element: str, start: float, end: float, decimation: int
    ) -> Optional[Sequence[float]]:
        raise NotImplementedError


class EngineRegistry:
    """Registry of engine factories keyed by name."""

    def __init__(self) -> None:
        self._factories: Dict[str, EngineFactory] = {}

    def register(self, name: str, factory: EngineFactory) -> None:
        key = name.strip().lower()
        if not key:
            raise ValueError("Engine name cannot be empty")
        if key in self._factories:
            raise ValueError(f"Engine '{name}' already registered")
        self._factories[key] = factory

    def create(self, name: str, params: Optional[Mapping[str, Any]] = None) -> SimulationEngine:
        factory = self._factories.get(name.strip().lower())
        if factory is None:
            known = ", ".join(sorted(self._factories)) or "none"
            raise KeyError(f"No engine registered as {name!r} (registered: {known})")
        return build_engine(factory, params, label=name)

    def names(self) -> Iterable[str]:
        return tuple(sorted(self._factories))

    def __contains__(self, name: str) -> bool:
        return name.strip().lower() in self._factories


def build_engine(
    factory: EngineFactory, params: Optional[Mapping[str, Any]] = None, *, label: str = ""
) -> SimulationEngine:
    engine = factory(**dict(params or {}))
    if not isinstance(engine, SimulationEngine):
        missing = [attr for attr in _REQUIRED_METHODS if not callable(getattr(engine, attr, None))]
        if missing:
            raise TypeError(
                f"Engine factory {label or factory!r} returned an object missing: {', '.join(missing)}"
            )
    return engine


_REQUIRED_METHODS = (
    "boot",
    "is_ready",
    "load",
    "end_time",
    "timestep",
    "run",
    "is_complete",
    "clear_completion",
    "control_elements",
    "circuit_elements",
    "time_array",
    "value_array",
)

engine_registry = EngineRegistry()
