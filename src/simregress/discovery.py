"""Enumerate case artifacts below a source tree."""
from __future__ import annotations

import os
from pathlib import Path
from typing import List, Optional

from simregress.core.errors import CaseSourceNotFound
from simregress.core.models import Case

DEFAULT_EXTENSION = ".ipes"


def discover_cases(
    source_root: Path,
    extension: str = DEFAULT_EXTENSION,
    subdirectory: Optional[str] = None,
) -> List[Case]:
    """Return every file ending in ``extension`` below the root, sorted by case id.

    ``subdirectory`` restricts the walk to one directory under the root while
    case ids stay relative to the root. Unreadable directories are skipped.
    """

    root = Path(source_root).expanduser().resolve()
    target = root / subdirectory if subdirectory else root
    if not target.is_dir():
        raise CaseSourceNotFound(str(target))
    cases: List[Case] = []
    for dirpath, _dirnames, filenames in os.walk(target):
        for filename in filenames:
            if filename.endswith(extension):
                path = Path(dirpath) / filename
                cases.append(Case(case_id=relative_case_id(path, root), path=path))
    cases.sort(key=lambda case: case.case_id)
    return cases


def relative_case_id(path: Path, source_root: Path) -> str:
    """Forward-slash path of ``path`` relative to the root, or its bare name outside it."""

    absolute = Path(path).expanduser().resolve()
    root = Path(source_root).expanduser().resolve()
    try:
        return absolute.relative_to(root).as_posix()
    except ValueError:
        return absolute.name
