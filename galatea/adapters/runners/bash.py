"""
Bash runner — execute a task's shell script with the phase as argument.

    <dir>/install.sh install|uninstall|reset|remediate
"""

from __future__ import annotations

import os
import shutil
from pathlib import Path

from galatea.adapters.base import PhaseRunner
from galatea.adapters.runners.resolve import SCRIPT_CANDIDATES
from galatea.core.errors import ExecutionError

SCRIPT_MODE = 0o755


class BashRunner(PhaseRunner):
    """Run ``install.sh``-style scripts."""

    @property
    def name(self) -> str:
        return "bash"

    @property
    def candidates(self) -> tuple[str, ...]:
        return SCRIPT_CANDIDATES

    def is_available(self) -> bool:
        return shutil.which("sh") is not None

    def prepare(self, entry_point: Path) -> None:
        if os.name != "posix":
            return
        try:
            os.chmod(entry_point, SCRIPT_MODE)
        except OSError as e:
            raise ExecutionError(
                f"Failed to set file permissions on {entry_point}: {e}", exit_code=-1
            ) from e

    def build_command(self, entry_point: Path, phase: str) -> list[str]:
        return [str(entry_point.resolve()), phase]
