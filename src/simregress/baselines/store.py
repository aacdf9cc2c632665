"""Directory-per-case baseline persistence.

Layout under the baseline root::

    <case-id-without-extension>/
        _metadata.txt      circuit=, simulationTime=, timestep=, checksum=, signalCount=, signals=
        <signal>.csv       header "time,value", one row per sample

The ``signals=`` manifest line is optional on read. Baselines written without
it are loaded leniently: every table in the directory becomes a signal.
"""
from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from simregress.core.errors import BaselineIntegrityError, BaselineNotFound
from simregress.core.models import strip_extension
from simregress.core.results import RunResult, RunResultBuilder

logger = logging.getLogger(__name__)

METADATA_FILE = "_metadata.txt"
TABLE_SUFFIX = ".csv"
TABLE_HEADER = "time,value"
_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9._-]")


def sanitize_signal_name(name: str) -> str:
    return _UNSAFE_CHARS.sub("_", name)


@dataclass(frozen=True)
class BaselineMetadata:
    case_id: str
    end_time: float
    timestep: float
    fingerprint: Optional[str]
    signal_count: Optional[int]
    signals: Optional[Tuple[str, ...]] = None  # None for baselines without a manifest


class BaselineStore:
    """Saves and reloads :class:`RunResult` baselines below ``root``."""

    def __init__(self, root: Path, extension: str = ".ipes") -> None:
        self.root = Path(root)
        self.extension = extension

    def case_dir(self, case_id: str) -> Path:
        return self.root / strip_extension(case_id, self.extension)

    def metadata_path(self, case_id: str) -> Path:
        return self.case_dir(case_id) / METADATA_FILE

    def exists(self, case_id: str) -> bool:
        path = self.metadata_path(case_id)
        return path.is_file() and os.access(path, os.R_OK)

    def save(self, result: RunResult, *, overwrite: bool = False) -> Path:
        """Write ``result``; not transactional, a crash can leave a partial baseline."""

        case_dir = self.case_dir(result.case_id)
        if self.exists(result.case_id) and not overwrite:
            raise FileExistsError(f"Baseline already exists for case {result.case_id}: {case_dir}")
        file_names = _table_names(result.signal_names())
        case_dir.mkdir(parents=True, exist_ok=True)
        for stale in case_dir.glob(f"*{TABLE_SUFFIX}"):
            stale.unlink()

        lines = [
            f"circuit={result.case_id}",
            f"simulationTime={result.end_time!r}",
            f"timestep={result.timestep!r}",
            f"checksum={result.fingerprint if result.fingerprint is not None else 'null'}",
            f"signalCount={len(result)}",
            f"signals={json.dumps(list(result.signal_names()))}",
        ]
        (case_dir / METADATA_FILE).write_text("\n".join(lines) + "\n", encoding="utf-8")

        for series in result:
            table = case_dir / file_names[series.name]
            with table.open("w", encoding="utf-8", newline="\n") as handle:
                handle.write(TABLE_HEADER + "\n")
                for t, v in zip(series.time.tolist(), series.values.tolist()):
                    handle.write(f"{t!r},{v!r}\n")
        logger.debug("Saved baseline %s with %d signal(s) to %s", result.case_id, len(result), case_dir)
        return case_dir

    def read_metadata(self, case_id: str) -> BaselineMetadata:
        path = self.metadata_path(case_id)
        if not path.is_file():
            raise BaselineNotFound(case_id, str(path))
        fields: Dict[str, str] = {}
        for line in path.read_text(encoding="utf-8").splitlines():
            key, sep, value = line.partition("=")
            if sep:
                fields[key.strip()] = value.strip()
        try:
            end_time = float(fields.get("simulationTime", 0.0))
            timestep = float(fields.get("timestep", 0.0))
            count_raw = fields.get("signalCount")
            signal_count = int(count_raw) if count_raw is not None else None
            manifest = _parse_manifest(fields.get("signals"))
        except ValueError as exc:
            raise BaselineIntegrityError(f"Malformed metadata in {path}: {exc}") from exc
        fingerprint = fields.get("checksum")
        if fingerprint in ("", "null"):
            fingerprint = None
        return BaselineMetadata(
            case_id=case_id,
            end_time=end_time,
            timestep=timestep,
            fingerprint=fingerprint,
            signal_count=signal_count,
            signals=manifest,
        )

    def load(self, case_id: str) -> RunResult:
        """Rebuild a sealed result; the fingerprint is recomputed, never trusted.

        Compare ``result.fingerprint`` against :meth:`read_metadata` to detect
        tampering or format drift.
        """

        metadata = self.read_metadata(case_id)
        case_dir = self.case_dir(case_id)
        builder = RunResultBuilder(case_id, metadata.end_time, metadata.timestep)
        for signal_name, table in self._tables(case_dir, metadata):
            time_values, sample_values = _read_table(table)
            builder.add_signal(signal_name, time_values, sample_values)
        return builder.seal()

    def _tables(self, case_dir: Path, metadata: BaselineMetadata) -> List[Tuple[str, Path]]:
        present = {path.name: path for path in case_dir.glob(f"*{TABLE_SUFFIX}") if path.is_file()}
        if metadata.signals is None:
            return [(name[: -len(TABLE_SUFFIX)], present[name]) for name in sorted(present)]
        try:
            expected = _table_names(metadata.signals)
        except ValueError as exc:
            raise BaselineIntegrityError(f"Baseline {metadata.case_id}: {exc}") from exc
        missing = [name for name, file_name in expected.items() if file_name not in present]
        stray = sorted(set(present) - set(expected.values()))
        if missing or stray:
            problems = []
            if missing:
                problems.append(f"missing tables for {', '.join(missing)}")
            if stray:
                problems.append(f"unlisted tables {', '.join(stray)}")
            raise BaselineIntegrityError(
                f"Baseline {metadata.case_id} does not match its manifest: {'; '.join(problems)}"
            )
        return [(name, present[expected[name]]) for name in metadata.signals]

    def check(self, case_id: str) -> List[str]:
        """Return integrity problems of a stored baseline; empty when it is sound."""

        metadata = self.read_metadata(case_id)
        result = self.load(case_id)
        issues: List[str] = []
        if metadata.fingerprint != result.fingerprint:
            issues.append(
                f"stored checksum {metadata.fingerprint} != recomputed {result.fingerprint}"
            )
        if metadata.signal_count is not None and metadata.signal_count != len(result):
            issues.append(f"signalCount={metadata.signal_count} but {len(result)} tables loaded")
        if len(result) == 0:
            issues.append("no signals")
        if result.end_time <= 0:
            issues.append(f"non-positive simulation time {result.end_time!r}")
        if result.timestep <= 0:
            issues.append(f"non-positive timestep {result.timestep!r}")
        for series in result:
            time_values = series.time
            sample_values = series.values
            if time_values.size == 0:
                issues.append(f"signal {series.name} has no data points")
                continue
            if not np.all(np.isfinite(time_values)):
                issues.append(f"signal {series.name} has non-finite time values")
            if not np.all(np.isfinite(sample_values)):
                issues.append(f"signal {series.name} has non-finite sample values")
            steps = np.diff(time_values)
            if steps.size and not np.all(steps > 0):
                index = int(np.argmax(~(steps > 0))) + 1
                issues.append(f"signal {series.name} time not increasing at index {index}")
        return issues

    def case_ids(self) -> List[str]:
        """Case ids of every stored baseline, as recorded in their metadata."""

        ids: List[str] = []
        if not self.root.is_dir():
            return ids
        for metadata_path in sorted(self.root.rglob(METADATA_FILE)):
            case_id = None
            for line in metadata_path.read_text(encoding="utf-8").splitlines():
                if line.startswith("circuit="):
                    case_id = line[len("circuit="):].strip()
                    break
            if case_id is None:
                case_id = metadata_path.parent.relative_to(self.root).as_posix() + self.extension
            ids.append(case_id)
        return ids


def _parse_manifest(raw: Optional[str]) -> Optional[Tuple[str, ...]]:
    if raw is None:
        return None
    names = json.loads(raw)
    if not isinstance(names, list) or not all(isinstance(name, str) for name in names):
        raise ValueError("signals manifest must be a JSON list of strings")
    return tuple(names)


def _table_names(signal_names: Sequence[str]) -> Dict[str, str]:
    mapping: Dict[str, str] = {}
    owners: Dict[str, str] = {}
    for name in signal_names:
        file_name = sanitize_signal_name(name) + TABLE_SUFFIX
        if file_name in owners:
            raise ValueError(
                f"Signals {owners[file_name]!r} and {name!r} both map to table {file_name}"
            )
        owners[file_name] = name
        mapping[name] = file_name
    return mapping


def _read_table(path: Path) -> Tuple[np.ndarray, np.ndarray]:
    time_values: List[float] = []
    sample_values: List[float] = []
    with path.open("r", encoding="utf-8") as handle:
        handle.readline()  # header
        for lineno, line in enumerate(handle, start=2):
            parts = line.strip().split(",")
            if len(parts) != 2:
                continue
            try:
                time_values.append(float(parts[0]))
                sample_values.append(float(parts[1]))
            except ValueError as exc:
                raise BaselineIntegrityError(f"{path}:{lineno}: {exc}") from exc
    return np.array(time_values, dtype=np.float64), np.array(sample_values, dtype=np.float64)
