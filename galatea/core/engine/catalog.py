"""
Catalog — the live task and stack collections.

The collections are shared between the engine and whatever presents
them. Each list has its own lock, held for a single read or mutation
and never while a child process runs. Readers get snapshot lists; the
Task and Stack objects inside are shared.
"""

from __future__ import annotations

import logging
import threading

from galatea.core.errors import GalateaError
from galatea.core.models.stack import Stack
from galatea.core.models.task import Task
from galatea.core.models.unit import Unit, as_units
from galatea.core.persistence.state_file import StateStore

logger = logging.getLogger(__name__)


class Catalog:
    """Lock-guarded task and stack lists."""

    def __init__(self, tasks: list[Task] | None = None, stacks: list[Stack] | None = None):
        self._tasks: list[Task] = list(tasks or [])
        self._stacks: list[Stack] = list(stacks or [])
        self._tasks_lock = threading.Lock()
        self._stacks_lock = threading.Lock()

    # ── Reads ───────────────────────────────────────────────────

    def tasks(self) -> list[Task]:
        with self._tasks_lock:
            return list(self._tasks)

    def stacks(self) -> list[Stack]:
        with self._stacks_lock:
            return list(self._stacks)

    def find_task(self, name: str) -> Task | None:
        with self._tasks_lock:
            return next((t for t in self._tasks if t.name == name), None)

    def find_stack(self, name: str) -> Stack | None:
        with self._stacks_lock:
            return next((s for s in self._stacks if s.name == name), None)

    def task_index(self, name: str) -> int | None:
        with self._tasks_lock:
            return _index_of(self._tasks, name)

    def stack_index(self, name: str) -> int | None:
        with self._stacks_lock:
            return _index_of(self._stacks, name)

    def task_units(self) -> list[Unit]:
        return as_units(self.tasks())

    def stack_units(self) -> list[Unit]:
        return as_units(self.stacks())

    # ── Mutations ───────────────────────────────────────────────

    def replace_tasks(self, tasks: list[Task]) -> None:
        with self._tasks_lock:
            self._tasks = list(tasks)

    def replace_stacks(self, stacks: list[Stack]) -> None:
        with self._stacks_lock:
            self._stacks = list(stacks)

    def refresh_installed(self, store: StateStore) -> None:
        """Re-read every task's installed flag, then reclassify stacks."""
        with self._tasks_lock:
            for task in self._tasks:
                try:
                    task.installed = store.is_installed(task.name)
                except GalateaError as e:
                    logger.warning("Failed to check if task %s is installed: %s", task.name, e)
                    task.installed = False
        self.refresh_stack_status()

    def refresh_stack_status(self) -> None:
        """Recompute every stack's classification from the task list."""
        tasks = self.tasks()
        with self._stacks_lock:
            for stack in self._stacks:
                stack.check_installation_status(tasks)

    def summary(self) -> dict[str, int]:
        tasks = self.tasks()
        stacks = self.stacks()
        return {
            "tasks": len(tasks),
            "tasks_installed": sum(1 for t in tasks if t.installed),
            "stacks": len(stacks),
            "stacks_installed": sum(1 for s in stacks if s.fully_installed),
            "stacks_partial": sum(1 for s in stacks if s.partially_installed),
        }


def _index_of(items: list[Task] | list[Stack], name: str) -> int | None:
    for i, item in enumerate(items):
        if item.name == name:
            return i
    return None
