"""
Runner registry — central dispatch for phase execution.

The registry maps each script kind to an ordered strategy list:

    bash     → [bash]
    ansible  → [ansible]
    mixed    → [ansible, bash]

Strategies are tried in order until one succeeds. When all fail, every
attempt's error is kept and surfaced together. The lifecycle engine
never talks to runners directly — always through the registry.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from galatea.adapters.base import PhaseRunner
from galatea.adapters.mock import MockRunner
from galatea.adapters.runners.command import run_literal_command
from galatea.core.errors import FallbackExhaustedError, GalateaError
from galatea.core.models.task import ScriptKind

logger = logging.getLogger(__name__)

DEFAULT_STRATEGIES: dict[ScriptKind, tuple[str, ...]] = {
    ScriptKind.BASH: ("bash",),
    ScriptKind.ANSIBLE: ("ansible",),
    ScriptKind.MIXED: ("ansible", "bash"),
}


class RunnerRegistry:
    """Central registry and dispatcher for runners.

    Features:
        - Register/unregister runners by name
        - Ordered strategy list per script kind
        - Mock mode: route everything to a mock runner that succeeds
        - Query runner availability
    """

    def __init__(
        self,
        mock_mode: bool = False,
        strategies: dict[ScriptKind, tuple[str, ...]] | None = None,
        command_timeout: float | None = None,
        log: logging.Logger | None = None,
    ):
        self._runners: dict[str, PhaseRunner] = {}
        self._strategies = dict(strategies or DEFAULT_STRATEGIES)
        self._mock_mode = mock_mode
        self._mock_runner: MockRunner | None = MockRunner() if mock_mode else None
        self._command_timeout = command_timeout
        self._log = log or logger

    @classmethod
    def default(
        cls,
        mock_mode: bool = False,
        capture_output: bool = False,
        timeout: float | None = None,
        log: logging.Logger | None = None,
    ) -> RunnerRegistry:
        """Registry with the bash and ansible runners registered."""
        from galatea.adapters.runners.ansible import AnsibleRunner
        from galatea.adapters.runners.bash import BashRunner

        registry = cls(mock_mode=mock_mode, command_timeout=timeout, log=log)
        registry.register(BashRunner(capture_output=capture_output, timeout=timeout, log=log))
        registry.register(AnsibleRunner(capture_output=capture_output, timeout=timeout, log=log))
        return registry

    @property
    def mock_mode(self) -> bool:
        return self._mock_mode

    @property
    def mock_runner(self) -> MockRunner | None:
        return self._mock_runner

    def set_mock_mode(self, enabled: bool, mock_runner: MockRunner | None = None) -> None:
        """Enable or disable mock mode.

        Args:
            enabled: Whether to use mock mode.
            mock_runner: Optional custom mock. If None, a default one is used.
        """
        self._mock_mode = enabled
        self._mock_runner = (mock_runner or MockRunner()) if enabled else None

    def register(self, runner: PhaseRunner) -> None:
        name = runner.name
        if name in self._runners:
            self._log.warning("Overwriting existing runner: %s", name)
        self._runners[name] = runner
        self._log.debug("Registered runner: %s", name)

    def unregister(self, name: str) -> None:
        self._runners.pop(name, None)

    def get(self, name: str) -> PhaseRunner | None:
        return self._runners.get(name)

    def list_runners(self) -> list[str]:
        return list(self._runners.keys())

    def strategies_for(self, kind: ScriptKind) -> tuple[str, ...]:
        return self._strategies[kind]

    def runner_status(self) -> dict[str, dict[str, Any]]:
        """Availability status of all registered runners."""
        status = {}
        for name, runner in self._runners.items():
            try:
                available = runner.is_available()
            except Exception:
                available = False
            status[name] = {
                "name": name,
                "available": available,
                "type": runner.__class__.__name__,
            }
        return status

    def run_phase(self, entry_point: Path, phase: str, kind: ScriptKind) -> None:
        """Run ``phase`` with the strategy list for ``kind``.

        Single-strategy kinds propagate the runner's own error. Multi-
        strategy kinds raise ``FallbackExhaustedError`` holding every
        attempt when none succeeds.
        """
        if self._mock_mode and self._mock_runner is not None:
            self._mock_runner.run_phase(entry_point, phase)
            return

        names = self._strategies[kind]
        attempts: list[tuple[str, GalateaError]] = []

        for name in names:
            runner = self._runners.get(name)
            if runner is None:
                err = GalateaError(f"No runner registered for '{name}'")
                if len(names) == 1:
                    raise err
                attempts.append((name, err))
                continue

            try:
                runner.run_phase(entry_point, phase)
                if attempts:
                    self._log.info(
                        "%s %s succeeded after fallback from %s",
                        name, phase, [n for n, _ in attempts],
                    )
                return
            except GalateaError as e:
                if len(names) == 1:
                    raise
                self._log.warning("%s strategy failed for %s, trying next: %s", name, phase, e)
                attempts.append((name, e))

        raise FallbackExhaustedError(phase, attempts)

    def run_command(self, command: str) -> None:
        """Run a literal shell command (cleanup commands)."""
        if self._mock_mode and self._mock_runner is not None:
            self._mock_runner.run_command(command)
            return
        run_literal_command(command, timeout=self._command_timeout, log=self._log)
