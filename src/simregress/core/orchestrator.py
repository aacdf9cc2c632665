"""Drives one case through load, run and capture against the engine session."""
from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np

from simregress.engines.session import EngineSession, RunState

from .errors import ArtifactNotFound, EngineFault, PartialCapture, SimulationTimeout
from .models import Case
from .results import RunResult, RunResultBuilder

logger = logging.getLogger(__name__)

DEFAULT_END_TIME = 0.01
DEFAULT_TIMESTEP = 1e-6
CIRCUIT_PREFIX = "circuit_"


class LifecycleOrchestrator:
    """Runs cases one at a time against a shared :class:`EngineSession`.

    Loading a case replaces whatever the engine had loaded before, so calls
    to :meth:`run_case` must be serialized by the caller.
    """

    def __init__(self, session: EngineSession) -> None:
        self.session = session
        self.last_state: Optional[RunState] = None
        self.partial_captures: List[PartialCapture] = []

    def initialize(self) -> bool:
        return self.session.start()

    def run_case(self, case: Case) -> RunResult:
        if not case.path.is_file():
            raise ArtifactNotFound(str(case.path))
        if not self.session.started:
            self.initialize()

        engine = self.session.engine
        self.partial_captures = []
        self.last_state = None
        logger.info("Running simulation for: %s", case.case_id)

        try:
            engine.clear_completion()
            engine.load(str(case.path.resolve()))
        except Exception as exc:
            raise EngineFault(case.case_id, "load", exc) from exc
        if self.session.timing.load_settle_s > 0:
            self.session.sleep(self.session.timing.load_settle_s)

        end_time, timestep = self._nominal_parameters(case)

        try:
            engine.run()
        except Exception as exc:
            raise EngineFault(case.case_id, "run", exc) from exc

        monitor = self.session.await_complete(case.case_id, end_time)
        self.last_state = monitor.state
        if monitor.state is RunState.TIMED_OUT:
            raise SimulationTimeout(case.case_id, monitor.elapsed_s)
        logger.info(
            "Simulation completed (%s) after %.1fs: %s",
            monitor.state.value,
            monitor.elapsed_s,
            case.case_id,
        )

        result = self._capture(case, end_time, timestep)
        for note in self.partial_captures:
            logger.debug("Partial capture for %s: %s", case.case_id, note.describe())
        return result

    def _nominal_parameters(self, case: Case) -> Tuple[float, float]:
        engine = self.session.engine
        try:
            timestep = float(engine.timestep())
            end_time = float(engine.end_time())
            logger.debug("Simulation parameters: dt=%r, tend=%r", timestep, end_time)
            return end_time, timestep
        except Exception as exc:
            logger.warning(
                "Could not get simulation parameters for %s (%s), using tend=%r dt=%r",
                case.case_id,
                exc,
                DEFAULT_END_TIME,
                DEFAULT_TIMESTEP,
            )
            return DEFAULT_END_TIME, DEFAULT_TIMESTEP

    def _capture(self, case: Case, end_time: float, timestep: float) -> RunResult:
        engine = self.session.engine
        builder = RunResultBuilder(case.case_id, end_time, timestep)
        control = self._enumerate("control", engine.control_elements)
        if not control:
            logger.warning("No control elements found in case: %s", case.case_id)
        for element in control:
            self._capture_element(builder, element, element, end_time)
        for element in self._enumerate("circuit", engine.circuit_elements):
            self._capture_element(builder, element, CIRCUIT_PREFIX + element, end_time)
        logger.info("Captured %d signal(s) from %s", len(builder), case.case_id)
        return builder.seal()

    def _enumerate(self, domain: str, accessor) -> Sequence[str]:
        try:
            names = accessor() or ()
        except Exception as exc:
            logger.warning("Could not enumerate %s elements: %s", domain, exc)
            return ()
        return [name for name in names if name and name.strip()]

    def _capture_element(
        self, builder: RunResultBuilder, element: str, signal_name: str, end_time: float
    ) -> None:
        engine = self.session.engine
        try:
            times = engine.time_array(element, 0.0, end_time, 0)
            values = engine.value_array(element, 0.0, end_time, 0)
        except Exception as exc:
            # most elements are not scopes and carry no series
            self.partial_captures.append(PartialCapture(element=signal_name, reason=str(exc)))
            return
        if times is None or values is None or len(times) == 0:
            return
        time_arr = np.asarray(times, dtype=np.float64).reshape(-1)
        value_arr = np.asarray(values, dtype=np.float64).reshape(-1)
        if time_arr.size != value_arr.size:
            keep = min(time_arr.size, value_arr.size)
            self.partial_captures.append(
                PartialCapture(
                    element=signal_name,
                    reason=f"length mismatch time={time_arr.size} values={value_arr.size}",
                    truncated_to=keep,
                )
            )
            logger.warning(
                "Signal %s has %d time points but %d values, truncating to %d",
                signal_name,
                time_arr.size,
                value_arr.size,
                keep,
            )
            time_arr = time_arr[:keep]
            value_arr = value_arr[:keep]
            if keep == 0:
                return
        builder.add_signal(signal_name, time_arr, value_arr)
        logger.debug("Captured signal: %s (%d points)", signal_name, time_arr.size)
