"""
Lifecycle engine — drives tasks and stacks through their phases.

Task flow:
    install    → materialise payload → run install → mark installed
    uninstall  → check installed → materialise → cleanup command or
                 uninstall phase → clear state
    reset      → check installed → materialise → run reset
    remediate  → check installed → materialise → run remediate

Stacks fan an operation out over their member tasks (uninstall walks
the members in reverse) and aggregate failures into a single
``StackOperationError`` after every member has been visited.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from galatea.adapters.registry import RunnerRegistry
from galatea.adapters.transport.materialize import ArchiveTransport
from galatea.core.config.loader import GalateaConfig
from galatea.core.errors import (
    GalateaError,
    PreconditionError,
    StackOperationError,
    add_context,
)
from galatea.core.models.stack import Stack
from galatea.core.models.task import Task
from galatea.core.models.unit import Phase, StackUnit, TaskUnit, Unit
from galatea.core.persistence.state_file import StateStore

logger = logging.getLogger(__name__)

TASK_NOT_FOUND = "Task not found"


class LifecycleEngine:
    """Applies lifecycle phases to tasks and stacks.

    Args:
        config: Loaded configuration (destination directories, timeout).
        store: State store holding the installed markers.
        registry: Runner registry used for every phase and command.
        transport: Payload fetcher (default: one built from ``config``).
        log: Logger to report through.
    """

    def __init__(
        self,
        config: GalateaConfig,
        store: StateStore,
        registry: RunnerRegistry,
        transport: ArchiveTransport | None = None,
        log: logging.Logger | None = None,
    ):
        self._config = config
        self._store = store
        self._registry = registry
        self._log = log or logger
        self._transport = transport or ArchiveTransport(config.download_timeout, self._log)

    @property
    def store(self) -> StateStore:
        return self._store

    # ── Payload ─────────────────────────────────────────────────

    def ensure_payload(self, task: Task) -> Path:
        """Return the task's local payload, fetching it if needed.

        The fetch is skipped when ``task.local_path`` still exists on disk.
        """
        if task.local_path is not None and task.local_path.exists():
            self._log.debug("Using cached payload for %s: %s", task.name, task.local_path)
            return task.local_path

        destination = self._config.resolve(task.name, "tasks")
        try:
            task.local_path = self._transport.fetch_and_materialize(task.url, destination)
        except GalateaError as e:
            add_context(e, f"Failed to download task {task.name}")
            raise
        return task.local_path

    # ── Task operations ─────────────────────────────────────────

    def install_task(self, task: Task) -> None:
        self._log.info("Installing task: %s", task.name)
        if task.dependencies:
            # Informational only, never enforced
            self._log.warning(
                "Task %s has dependencies which are not checked: %s",
                task.name, ", ".join(task.dependencies),
            )

        path = self.ensure_payload(task)
        self._run_phase(task, path, Phase.INSTALL)

        self._store.mark_installed(task.name)
        task.installed = True
        self._log.info("Task %s installed successfully", task.name)

    def uninstall_task(self, task: Task) -> None:
        self._log.info("Uninstalling task: %s", task.name)
        self._require_installed(task, Phase.UNINSTALL)
        path = self.ensure_payload(task)

        if task.cleanup_command:
            self._log.info("Running cleanup command for task %s", task.name)
            try:
                self._registry.run_command(task.cleanup_command)
            except GalateaError as e:
                add_context(e, f"Failed to run cleanup command for task {task.name}")
                raise
        else:
            self._run_phase(task, path, Phase.UNINSTALL)

        self._store.clear(task.name)
        task.installed = False
        self._log.info("Task %s uninstalled successfully", task.name)

    def reset_task(self, task: Task) -> None:
        self._log.info("Resetting task: %s", task.name)
        self._require_installed(task, Phase.RESET)
        path = self.ensure_payload(task)
        self._run_phase(task, path, Phase.RESET)
        self._log.info("Task %s reset successfully", task.name)

    def remediate_task(self, task: Task) -> None:
        self._log.info("Remediating task: %s", task.name)
        self._require_installed(task, Phase.REMEDIATE)
        path = self.ensure_payload(task)
        self._run_phase(task, path, Phase.REMEDIATE)
        self._log.info("Task %s remediated successfully", task.name)

    def run_task(self, task: Task, phase: Phase) -> None:
        """Dispatch ``phase`` to the matching task operation."""
        operations = {
            Phase.INSTALL: self.install_task,
            Phase.UNINSTALL: self.uninstall_task,
            Phase.RESET: self.reset_task,
            Phase.REMEDIATE: self.remediate_task,
        }
        operations[Phase(phase)](task)

    def _require_installed(self, task: Task, phase: Phase) -> None:
        # The state file is authoritative, the in-memory flag may be stale
        task.installed = self._store.is_installed(task.name)
        if not task.installed:
            raise PreconditionError(f"Cannot {phase} task {task.name}: it is not installed")

    def _run_phase(self, task: Task, path: Path, phase: Phase) -> None:
        try:
            self._registry.run_phase(path, phase.value, task.script_kind)
        except GalateaError as e:
            add_context(e, f"Failed to run {phase} phase for task {task.name}")
            raise

    # ── Stack operations ────────────────────────────────────────

    def run_stack(self, stack: Stack, phase: Phase, tasks: Sequence[Task]) -> None:
        """Apply ``phase`` to every member of ``stack``.

        Members are visited in declared order (reverse for uninstall).
        A missing or failing member is recorded and the walk continues.

        Raises:
            StackOperationError: One or more members failed.
        """
        phase = Phase(phase)
        self._log.info("Running %s on stack: %s", phase, stack.name)

        by_name: dict[str, Task] = {}
        for task in tasks:
            by_name.setdefault(task.name, task)

        names = stack.task_names
        if phase == Phase.UNINSTALL:
            names = list(reversed(names))

        failures: list[tuple[str, str]] = []
        for name in names:
            task = by_name.get(name)
            if task is None:
                self._log.warning("Task %s not found for stack %s", name, stack.name)
                failures.append((name, TASK_NOT_FOUND))
                continue
            try:
                self.run_task(task, phase)
            except GalateaError as e:
                self._log.error(
                    "Failed to %s task %s as part of stack %s: %s", phase, name, stack.name, e
                )
                failures.append((name, str(e)))
            else:
                self._log.info("Task %s: %s done as part of stack %s", name, phase, stack.name)

        stack.check_installation_status(tasks)

        if failures:
            raise StackOperationError(stack.name, phase.value, failures, len(stack.task_names))
        self._log.info("Stack %s: %s completed successfully", stack.name, phase)

    def install_stack(self, stack: Stack, tasks: Sequence[Task]) -> None:
        self.run_stack(stack, Phase.INSTALL, tasks)

    def uninstall_stack(self, stack: Stack, tasks: Sequence[Task]) -> None:
        self.run_stack(stack, Phase.UNINSTALL, tasks)

    def reset_stack(self, stack: Stack, tasks: Sequence[Task]) -> None:
        self.run_stack(stack, Phase.RESET, tasks)

    def remediate_stack(self, stack: Stack, tasks: Sequence[Task]) -> None:
        self.run_stack(stack, Phase.REMEDIATE, tasks)

    # ── Units ───────────────────────────────────────────────────

    def apply(self, unit: Unit, phase: Phase, tasks: Sequence[Task] = ()) -> None:
        """Apply ``phase`` to a task or stack unit.

        ``tasks`` is the live task collection, needed to resolve stack
        members.
        """
        if isinstance(unit, TaskUnit):
            self.run_task(unit.task, phase)
        elif isinstance(unit, StackUnit):
            self.run_stack(unit.stack, phase, tasks)
        else:
            raise TypeError(f"Unsupported unit: {unit!r}")
