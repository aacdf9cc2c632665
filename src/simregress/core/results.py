"""Captured run results: signals, the incremental builder and sealed snapshots."""
from __future__ import annotations

import hashlib
import math
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, Mapping, Optional, Tuple

import numpy as np

NOMINAL_EPSILON = 1e-15


class SignalSeries:
    """A named, time-ordered numeric series captured from one output element.

    Both arrays are copied on construction and on every read, so a series can
    be shared freely without exposing its backing storage.
    """

    __slots__ = ("_name", "_time", "_values")

    def __init__(self, name: str, time: Iterable[float], values: Iterable[float]) -> None:
        time_arr = np.array(time, dtype=np.float64).reshape(-1)
        value_arr = np.array(values, dtype=np.float64).reshape(-1)
        if time_arr.shape != value_arr.shape:
            raise ValueError(
                f"Signal '{name}': time and value arrays must have same length "
                f"({time_arr.size} != {value_arr.size})"
            )
        time_arr.flags.writeable = False
        value_arr.flags.writeable = False
        self._name = name
        self._time = time_arr
        self._values = value_arr

    @property
    def name(self) -> str:
        return self._name

    @property
    def time(self) -> np.ndarray:
        return self._time.copy()

    @property
    def values(self) -> np.ndarray:
        return self._values.copy()

    def __len__(self) -> int:
        return int(self._values.size)

    def _digest_into(self, digest) -> None:
        digest.update(self._name.encode("utf-8"))
        for t in self._time:
            digest.update(repr(float(t)).encode("utf-8"))
        for v in self._values:
            digest.update(repr(float(v)).encode("utf-8"))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SignalSeries):
            return NotImplemented
        return (
            self._name == other._name
            and np.array_equal(self._time, other._time)
            and np.array_equal(self._values, other._values)
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"SignalSeries(name={self._name!r}, points={len(self)})"


def compute_fingerprint(signals: Iterable[SignalSeries]) -> str:
    """SHA-256 over signals in iteration order: name, time values, sample values.

    Values are hashed as their shortest round-trip decimal text. The digest is
    deliberately order sensitive; it is part of the stored baseline format.
    """

    digest = hashlib.sha256()
    for series in signals:
        series._digest_into(digest)
    return digest.hexdigest()


class RunResult:
    """Immutable snapshot of one run, produced by :meth:`RunResultBuilder.seal`."""

    __slots__ = ("_case_id", "_end_time", "_timestep", "_signals", "_fingerprint")

    def __init__(
        self,
        case_id: str,
        end_time: float,
        timestep: float,
        signals: Mapping[str, SignalSeries],
        fingerprint: Optional[str],
    ) -> None:
        self._case_id = case_id
        self._end_time = float(end_time)
        self._timestep = float(timestep)
        self._signals = MappingProxyType(dict(signals))
        self._fingerprint = fingerprint

    @property
    def case_id(self) -> str:
        return self._case_id

    @property
    def end_time(self) -> float:
        return self._end_time

    @property
    def timestep(self) -> float:
        return self._timestep

    @property
    def fingerprint(self) -> Optional[str]:
        return self._fingerprint

    @property
    def signals(self) -> Mapping[str, SignalSeries]:
        return self._signals

    def signal(self, name: str) -> SignalSeries:
        return self._signals[name]

    def signal_names(self) -> Tuple[str, ...]:
        return tuple(self._signals)

    def __iter__(self) -> Iterator[SignalSeries]:
        return iter(self._signals.values())

    def __len__(self) -> int:
        return len(self._signals)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RunResult):
            return NotImplemented
        return (
            self._case_id == other._case_id
            and math.isclose(self._end_time, other._end_time, rel_tol=0.0, abs_tol=NOMINAL_EPSILON)
            and math.isclose(self._timestep, other._timestep, rel_tol=0.0, abs_tol=NOMINAL_EPSILON)
            and dict(self._signals) == dict(other._signals)
            and self._fingerprint == other._fingerprint
        )

    def __hash__(self) -> int:
        return hash((self._case_id, self._fingerprint))

    def __repr__(self) -> str:
        return (
            f"RunResult(case_id={self._case_id!r}, end_time={self._end_time!r}, "
            f"timestep={self._timestep!r}, signals={len(self._signals)}, "
            f"fingerprint={self._fingerprint!r})"
        )


class RunResultBuilder:
    """Accumulates signals for one run before sealing."""

    def __init__(self, case_id: str, end_time: float, timestep: float) -> None:
        self.case_id = case_id
        self.end_time = float(end_time)
        self.timestep = float(timestep)
        self._signals: Dict[str, SignalSeries] = {}

    def add_signal(self, name: str, time: Iterable[float], values: Iterable[float]) -> SignalSeries:
        # re-adding a name replaces the data but keeps its original position
        series = SignalSeries(name, time, values)
        self._signals[name] = series
        return series

    def add_series(self, series: SignalSeries) -> None:
        self._signals[series.name] = series

    def __contains__(self, name: str) -> bool:
        return name in self._signals

    def __len__(self) -> int:
        return len(self._signals)

    def seal(self) -> RunResult:
        snapshot = dict(self._signals)
        return RunResult(
            case_id=self.case_id,
            end_time=self.end_time,
            timestep=self.timestep,
            signals=snapshot,
            fingerprint=compute_fingerprint(snapshot.values()),
        )
