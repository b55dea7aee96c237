"""
Runner base — the protocol between the lifecycle engine and external tools.

The engine never spawns processes itself: it asks the runner registry to
run a phase, and the registry picks the runner strategies for the task's
script kind.

To create a new runner:
    1. Subclass PhaseRunner
    2. Implement name, candidates, is_available, build_command
    3. Register it in the RunnerRegistry
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path

from galatea.adapters.runners.process import check_outcome, run_process
from galatea.adapters.runners.resolve import find_entry_point

logger = logging.getLogger(__name__)


class PhaseRunner(ABC):
    """Abstract base class for phase runners.

    Runners raise typed errors (``NotFound``, ``ExecutionError``,
    ``ExecutionTimeout``) rather than returning status objects: a phase
    either completes or the caller learns exactly why it did not.

    Args:
        capture_output: Capture child output instead of inheriting streams.
        timeout: Optional wall-clock limit per run, in seconds.
        log: Logger to report through.
    """

    def __init__(
        self,
        *,
        capture_output: bool = False,
        timeout: float | None = None,
        log: logging.Logger | None = None,
    ):
        self.capture_output = capture_output
        self.timeout = timeout
        self._log = log or logger

    @property
    @abstractmethod
    def name(self) -> str:
        """The runner identifier (e.g. 'bash', 'ansible')."""

    @property
    @abstractmethod
    def candidates(self) -> tuple[str, ...]:
        """Conventional entry-point file names, in priority order."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check whether the underlying tool can be invoked. Never raises."""

    @abstractmethod
    def build_command(self, entry_point: Path, phase: str) -> list[str]:
        """Argument vector that runs ``phase`` of ``entry_point``."""

    def prepare(self, entry_point: Path) -> None:
        """Hook run before spawning (e.g. set execute permission)."""

    def resolve(self, path: Path) -> Path:
        """Resolve a task's local path to this runner's entry point."""
        return find_entry_point(path, self.candidates)

    def run_phase(self, path: Path, phase: str) -> None:
        """Resolve, prepare, and run ``phase``.

        Raises:
            NotFound: No entry point under ``path``.
            ExecutionError: The child exited non-zero or could not start.
            ExecutionTimeout: ``timeout`` elapsed.
        """
        entry_point = self.resolve(path)
        self._log.info("Running %s %s with phase: %s", self.name, entry_point, phase)
        self.prepare(entry_point)
        outcome = run_process(
            self.build_command(entry_point, phase),
            cwd=entry_point.parent,
            capture_output=self.capture_output,
            timeout=self.timeout,
            log=self._log,
        )
        check_outcome(outcome, f"{self.name} {phase} of {entry_point.name}")
        self._log.debug("%s %s finished in %dms", self.name, phase, outcome.elapsed_ms)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
