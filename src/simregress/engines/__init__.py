"""Engine interface exports."""
from .base import EngineRegistry, SimulationEngine, build_engine, engine_registry
from .session import CompletionMonitor, EngineSession, RunState, TimingProfile

__all__ = [
    "CompletionMonitor",
    "EngineRegistry",
    "EngineSession",
    "RunState",
    "SimulationEngine",
    "TimingProfile",
    "build_engine",
    "engine_registry",
]
