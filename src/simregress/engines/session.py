"""Explicit session around the single external engine instance.

Every wait in here is a bounded polling loop with a fixed interval. Nothing is
edge triggered: the engine offers no notifications, and its completion flag
is not trustworthy, so completion may also be inferred from data
availability.
"""
from __future__ import annotations

import enum
import logging
import math
import threading
import time
from dataclasses import dataclass, replace
from typing import Any, Callable, Iterable, Mapping, Optional

from .base import SimulationEngine

logger = logging.getLogger(__name__)

PROGRESS_INTERVAL_S = 30.0


@dataclass(frozen=True)
class TimingProfile:
    """Polling intervals and bounds for one operating mode."""

    mode: str
    max_wait_s: float
    poll_interval_s: float
    bootstrap_timeout_s: float
    ready_poll_s: float
    ready_settle_s: float
    load_settle_s: float

    @classmethod
    def headless(cls) -> "TimingProfile":
        return cls(
            mode="headless",
            max_wait_s=300.0,
            poll_interval_s=0.5,
            bootstrap_timeout_s=60.0,
            ready_poll_s=0.01,
            ready_settle_s=2.0,
            load_settle_s=0.5,
        )

    @classmethod
    def interactive(cls) -> "TimingProfile":
        return cls(
            mode="interactive",
            max_wait_s=600.0,
            poll_interval_s=1.0,
            bootstrap_timeout_s=120.0,
            ready_poll_s=0.01,
            ready_settle_s=5.0,
            load_settle_s=2.0,
        )

    @classmethod
    def for_mode(cls, mode: str, overrides: Optional[Mapping[str, Any]] = None) -> "TimingProfile":
        if mode == "headless":
            profile = cls.headless()
        elif mode == "interactive":
            profile = cls.interactive()
        else:
            raise ValueError(f"Unknown mode '{mode}' (expected headless or interactive)")
        if overrides:
            profile = replace(profile, **{key: float(value) for key, value in overrides.items()})
        return profile


class RunState(enum.Enum):
    LOADED = "loaded"
    RUNNING = "running"
    COMPLETED_BY_FLAG = "completed-by-flag"
    COMPLETED_BY_HEURISTIC = "completed-by-heuristic"
    TIMED_OUT = "timed-out"

    @property
    def terminal(self) -> bool:
        return self not in (RunState.LOADED, RunState.RUNNING)

    @property
    def completed(self) -> bool:
        return self in (RunState.COMPLETED_BY_FLAG, RunState.COMPLETED_BY_HEURISTIC)


class CompletionMonitor:
    """State machine deciding, one poll at a time, whether a run has finished."""

    def __init__(
        self,
        engine: SimulationEngine,
        *,
        end_time: float,
        poll_interval_s: float,
        max_wait_s: float,
        heuristic: bool = True,
    ) -> None:
        if poll_interval_s <= 0:
            raise ValueError("poll_interval_s must be positive")
        self._engine = engine
        self._end_time = end_time
        self._interval = poll_interval_s
        self._max_polls = max(1, math.ceil(max_wait_s / poll_interval_s - 1e-9))
        self._heuristic = heuristic
        self._polls = 0
        self.state = RunState.LOADED
        self.evidence: Optional[str] = None

    @property
    def elapsed_s(self) -> float:
        return self._polls * self._interval

    def start(self) -> None:
        if self.state is RunState.LOADED:
            self.state = RunState.RUNNING

    def poll(self) -> RunState:
        """Account for one elapsed interval and decide the next state."""

        if self.state.terminal:
            return self.state
        self._polls += 1
        if self._flag_set():
            self.state = RunState.COMPLETED_BY_FLAG
        elif self._heuristic and self._probe_outputs():
            self.state = RunState.COMPLETED_BY_HEURISTIC
        elif self._polls >= self._max_polls:
            self.state = RunState.TIMED_OUT
        return self.state

    def _flag_set(self) -> bool:
        try:
            return bool(self._engine.is_complete())
        except Exception as exc:  # engine state is best effort while running
            logger.debug("Completion flag unreadable: %s", exc)
            return False

    def _probe_outputs(self) -> bool:
        for element in _declared_elements(self._engine):
            try:
                times = self._engine.time_array(element, 0.0, self._end_time, 0)
            except Exception as exc:
                logger.debug("Cannot get data from %s: %s", element, exc)
                continue
            if times is not None and len(times) > 0:
                self.evidence = element
                logger.info(
                    "Completion inferred: %d time points available from %s", len(times), element
                )
                return True
        return False


def _declared_elements(engine: SimulationEngine) -> Iterable[str]:
    for accessor in (engine.control_elements, engine.circuit_elements):
        try:
            names = accessor() or ()
        except Exception as exc:
            logger.debug("Element enumeration failed: %s", exc)
            continue
        for name in names:
            if name and name.strip():
                yield name


class EngineSession:
    """Owns the engine instance and every wait performed against it."""

    def __init__(
        self,
        engine: SimulationEngine,
        timing: TimingProfile,
        *,
        heuristic: bool = True,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.engine = engine
        self.timing = timing
        self.heuristic = heuristic
        self.sleep = sleep
        self._lock = threading.Lock()
        self._started = False
        self._ready = False
        self._thread: Optional[threading.Thread] = None

    @property
    def started(self) -> bool:
        return self._started

    @property
    def ready(self) -> bool:
        return self._ready

    def start(self) -> bool:
        """Boot the engine once; returns whether readiness was observed."""

        with self._lock:
            if self._started:
                return self._ready
            label = getattr(self.engine, "name", "") or "simulation"
            logger.info("Starting %s engine in %s mode", label, self.timing.mode)
            self._thread = threading.Thread(
                target=self._boot, name="simregress-engine", daemon=True
            )
            self._thread.start()
            self._ready = self.await_ready()
            if self.timing.ready_settle_s > 0:
                self.sleep(self.timing.ready_settle_s)
            if not self._ready:
                logger.warning(
                    "Engine did not report ready within %gs, continuing anyway",
                    self.timing.bootstrap_timeout_s,
                )
            self._started = True
            logger.info("Engine initialization completed (may have warnings)")
            return self._ready

    def _boot(self) -> None:
        try:
            self.engine.boot()
        except Exception:
            # the engine may still be partially usable
            logger.warning("Engine bootstrap had issues, continuing", exc_info=True)

    def await_ready(self) -> bool:
        interval = self.timing.ready_poll_s
        max_polls = max(1, math.ceil(self.timing.bootstrap_timeout_s / interval - 1e-9))
        for _ in range(max_polls):
            if self._is_ready():
                return True
            self.sleep(interval)
        return self._is_ready()

    def _is_ready(self) -> bool:
        try:
            return bool(self.engine.is_ready())
        except Exception as exc:
            logger.debug("Readiness flag unreadable: %s", exc)
            return False

    def await_complete(self, case_id: str, end_time: float) -> CompletionMonitor:
        """Poll until the run completes or the maximum wait is exhausted."""

        monitor = CompletionMonitor(
            self.engine,
            end_time=end_time,
            poll_interval_s=self.timing.poll_interval_s,
            max_wait_s=self.timing.max_wait_s,
            heuristic=self.heuristic,
        )
        monitor.start()
        next_progress = PROGRESS_INTERVAL_S
        while not monitor.state.terminal:
            self.sleep(self.timing.poll_interval_s)
            monitor.poll()
            if not monitor.state.terminal and monitor.elapsed_s >= next_progress:
                logger.info("Simulation running... %ds elapsed (%s)", int(monitor.elapsed_s), case_id)
                next_progress += PROGRESS_INTERVAL_S
        return monitor
