"""Header discovery."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

from .config import Config


def iter_header_files(root: str | Path, excludes: Iterable[str] | None = None) -> list[str]:
    root_path = Path(root)
    exclude_set = set(excludes or Config.EXCLUDED_DIRS)
    matches: list[str] = []

    for path in root_path.rglob("*"):
        if path.suffix not in Config.HEADER_SUFFIXES or not path.is_file():
            continue
        if any(part in exclude_set for part in path.relative_to(root_path).parts):
            continue
        matches.append(str(path))

    return sorted(matches)
