"""Core dataclasses shared across simregress subsystems."""
from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Union


@dataclass(frozen=True)
class Case:
    """One simulation input under regression verification."""

    case_id: str  # relative path from the source root, forward slashes
    path: Path

    def stem_id(self, extension: str) -> str:
        return strip_extension(self.case_id, extension)

    def __str__(self) -> str:
        return self.case_id


class ToleranceProfile(Enum):
    """Named absolute-error thresholds for comparisons."""

    STRICT = (1e-12, "Bit-identical")
    NORMAL = (1e-10, "Standard floating-point tolerance")
    RELAXED = (1e-6, "Relaxed for performance optimizations")

    def __init__(self, absolute: float, description: str) -> None:
        self.absolute = absolute
        self.description = description

    @classmethod
    def parse(cls, text: str) -> "Tolerance":
        """Resolve a profile name (case-insensitive) or a bare float literal."""

        key = text.strip().upper()
        if key in cls.__members__:
            return cls[key]
        try:
            value = float(text)
        except ValueError as exc:
            names = ", ".join(member.name.lower() for member in cls)
            raise ValueError(f"Unknown tolerance '{text}'. Use one of {names} or a number") from exc
        if not math.isfinite(value) or value < 0:
            raise ValueError(f"Tolerance must be a finite non-negative number, got {value}")
        return value

    def label(self) -> str:
        return f"{self.name.lower()}={self.absolute:g}"


Tolerance = Union[ToleranceProfile, float]


def tolerance_value(tolerance: Tolerance) -> float:
    if isinstance(tolerance, ToleranceProfile):
        return tolerance.absolute
    return float(tolerance)


def tolerance_label(tolerance: Tolerance) -> str:
    if isinstance(tolerance, ToleranceProfile):
        return tolerance.label()
    return f"custom={float(tolerance):g}"


def strip_extension(case_id: str, extension: str) -> str:
    if extension and case_id.endswith(extension):
        return case_id[: -len(extension)]
    return case_id
