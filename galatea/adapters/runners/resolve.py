"""
Entry-point resolution — find the script or playbook to run.

A task's local path is usually the directory an archive was extracted
into. The runner looks for a conventional file name directly in that
directory first, then descends into subdirectories (depth-first, sorted)
and returns the first match.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from galatea.core.errors import NotFound

SCRIPT_CANDIDATES: tuple[str, ...] = ("install.sh",)

PLAYBOOK_CANDIDATES: tuple[str, ...] = (
    "playbook.yml",
    "main.yml",
    "site.yml",
    "local.yml",
    "install.yml",
    "entrypoint.yml",
    "playbook.yaml",
    "main.yaml",
    "site.yaml",
    "local.yaml",
    "install.yaml",
    "entrypoint.yaml",
)


def find_entry_point(path: Path, candidates: Sequence[str]) -> Path:
    """Resolve ``path`` to a runnable file.

    Args:
        path: A file (returned as-is) or a directory to search.
        candidates: File names to look for, in priority order.

    Raises:
        NotFound: ``path`` does not exist or no candidate was found.
    """
    path = Path(path)
    if path.is_file():
        return path
    if not path.is_dir():
        raise NotFound(f"Entry point not found: {path}")

    found = _search(path, candidates)
    if found is None:
        raise NotFound(f"None of {list(candidates)} found in directory {path}")
    return found


def _search(directory: Path, candidates: Sequence[str]) -> Path | None:
    for name in candidates:
        direct = directory / name
        if direct.is_file():
            return direct

    try:
        children = sorted(p for p in directory.iterdir() if p.is_dir())
    except OSError:
        return None

    for child in children:
        found = _search(child, candidates)
        if found is not None:
            return found
    return None
