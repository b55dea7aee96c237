"""
State file persistence — one installed marker per task.

Each installed task owns ``<state_dir>/<name>.state`` whose trimmed
content is exactly ``installed``. A missing file or any other content
means "not installed". Writes are atomic (write to temp file, then
rename) so a crash never leaves a half-written marker behind.
"""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path

from galatea.core.errors import StateIOError

logger = logging.getLogger(__name__)

STATE_SUFFIX = ".state"
INSTALLED_MARKER = "installed"


class StateStore:
    """Flat-file store of per-task installed markers.

    Args:
        state_dir: Directory holding the ``*.state`` files.
        log: Logger to report through (default: module logger).
    """

    def __init__(self, state_dir: Path, log: logging.Logger | None = None):
        self._state_dir = Path(state_dir)
        self._log = log or logger

    @property
    def state_dir(self) -> Path:
        return self._state_dir

    def path_for(self, name: str) -> Path:
        """State file path for a task name."""
        return self._state_dir / f"{name}{STATE_SUFFIX}"

    def is_installed(self, name: str) -> bool:
        """Read the marker for ``name``.

        Raises:
            StateIOError: The file exists but cannot be read.
        """
        path = self.path_for(name)
        if not path.is_file():
            return False
        try:
            raw = path.read_bytes()
        except OSError as e:
            raise StateIOError(f"Failed to read state file for task {name}: {e}") from e
        try:
            content = raw.decode("utf-8")
        except UnicodeDecodeError:
            self._log.warning("State file %s is not valid UTF-8, treating %s as not installed", path, name)
            return False
        return content.strip() == INSTALLED_MARKER

    def mark_installed(self, name: str) -> None:
        """Write the installed marker (atomic)."""
        path = self.path_for(name)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            _fd, tmp_path = tempfile.mkstemp(
                dir=path.parent,
                prefix=f".{name}_",
                suffix=".tmp",
            )
            tmp = Path(tmp_path)
            try:
                with open(_fd, "w", encoding="utf-8") as f:
                    f.write(INSTALLED_MARKER)
                tmp.replace(path)
            except Exception:
                tmp.unlink(missing_ok=True)
                raise
        except OSError as e:
            self._log.error("Failed to write state file %s: %s", path, e)
            raise StateIOError(f"Failed to write state file for task {name}: {e}") from e
        self._log.debug("State saved to %s", path)

    def clear(self, name: str) -> None:
        """Remove the marker; a missing file is not an error."""
        path = self.path_for(name)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            self._log.error("Failed to remove state file %s: %s", path, e)
            raise StateIOError(f"Failed to remove state file for task {name}: {e}") from e
        self._log.debug("State cleared for %s", name)

    def installed_names(self) -> list[str]:
        """Names of every task currently marked installed, sorted."""
        if not self._state_dir.is_dir():
            return []
        names = []
        for path in sorted(self._state_dir.glob(f"*{STATE_SUFFIX}")):
            name = path.name[: -len(STATE_SUFFIX)]
            try:
                if self.is_installed(name):
                    names.append(name)
            except StateIOError as e:
                self._log.warning("%s", e)
        return names
