"""
Mock adapters — test doubles for a dry run of the lifecycle.

In mock mode the runner, the payload transport and the state store are
all replaced: phases succeed without spawning processes, payloads are
never downloaded, and installed markers change only in memory. The
runner is configurable to fail specific phases and records every call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from galatea.adapters.base import PhaseRunner
from galatea.adapters.transport.materialize import expected_artifact
from galatea.core.errors import ExecutionError, GalateaError
from galatea.core.persistence.state_file import StateStore


@dataclass(frozen=True)
class RunnerCall:
    """One recorded invocation."""

    runner: str
    path: Path | None
    phase: str
    command: str | None = None


class MockRunner(PhaseRunner):
    """Universal mock runner.

    By default every phase succeeds. Failures are configured per phase
    (``set_failure("install")``) or per path and phase.
    """

    def __init__(self, runner_name: str = "mock", available: bool = True):
        super().__init__()
        self._name = runner_name
        self._available = available
        self._failures: dict[tuple[str | None, str], GalateaError] = {}
        self._call_log: list[RunnerCall] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def candidates(self) -> tuple[str, ...]:
        return ()

    @property
    def call_log(self) -> list[RunnerCall]:
        """All invocations this mock has received."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    @property
    def phases(self) -> list[str]:
        return [c.phase for c in self._call_log]

    def is_available(self) -> bool:
        return self._available

    def build_command(self, entry_point: Path, phase: str) -> list[str]:
        return [self._name, phase, str(entry_point)]

    def set_failure(
        self,
        phase: str,
        error: GalateaError | None = None,
        path: Path | str | None = None,
    ) -> None:
        """Configure ``phase`` (optionally only under ``path``) to fail."""
        key = (str(path) if path is not None else None, phase)
        self._failures[key] = error or ExecutionError(
            f"[mock] {self._name} {phase} failed", exit_code=1
        )

    def run_phase(self, path: Path, phase: str) -> None:
        self._call_log.append(RunnerCall(self._name, Path(path), phase))
        failure = self._failures.get((str(path), phase)) or self._failures.get((None, phase))
        if failure is not None:
            raise failure

    def run_command(self, command: str) -> None:
        self._call_log.append(RunnerCall(self._name, None, "command", command))
        failure = self._failures.get((None, "command"))
        if failure is not None:
            raise failure

    def reset(self) -> None:
        """Clear call log and configured failures."""
        self._call_log.clear()
        self._failures.clear()


class MockTransport:
    """Transport that records fetches and touches nothing on disk."""

    def __init__(self):
        self.fetched: list[tuple[str, Path]] = []

    def fetch_and_materialize(self, url: str, destination_dir: Path) -> Path:
        self.fetched.append((url, Path(destination_dir)))
        return expected_artifact(url, destination_dir)


class MockStateStore(StateStore):
    """State store that reads recorded markers but never writes them.

    ``mark_installed`` and ``clear`` are kept in an in-memory overlay, so
    a dry run sees its own changes while the state directory stays as it
    was.
    """

    def __init__(self, state_dir: Path, log: logging.Logger | None = None):
        super().__init__(state_dir, log)
        self._overlay: dict[str, bool] = {}

    def is_installed(self, name: str) -> bool:
        if name in self._overlay:
            return self._overlay[name]
        return super().is_installed(name)

    def mark_installed(self, name: str) -> None:
        self._log.debug("[mock] %s marked installed (not persisted)", name)
        self._overlay[name] = True

    def clear(self, name: str) -> None:
        self._log.debug("[mock] %s cleared (not persisted)", name)
        self._overlay[name] = False

    def installed_names(self) -> list[str]:
        names = set(super().installed_names())
        for name, installed in self._overlay.items():
            if installed:
                names.add(name)
            else:
                names.discard(name)
        return sorted(names)
