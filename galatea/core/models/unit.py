"""
Units — the closed set of things the engine operates on.

A unit is either a ``TaskUnit`` or a ``StackUnit``. Both expose the same
capability surface so the batch orchestrator can treat a selection of
either uniformly; the engine dispatches on the variant.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Literal

from galatea.core.models.stack import Stack
from galatea.core.models.task import Task


class Phase(StrEnum):
    """Lifecycle operation name, passed to scripts and playbooks."""

    INSTALL = "install"
    UNINSTALL = "uninstall"
    RESET = "reset"
    REMEDIATE = "remediate"


@dataclass(frozen=True)
class TaskUnit:
    task: Task
    kind: Literal["task"] = "task"

    @property
    def name(self) -> str:
        return self.task.name

    @property
    def status_marker(self) -> str:
        return self.task.status_marker

    def can(self, phase: Phase) -> bool:
        return _can(self.task, phase)


@dataclass(frozen=True)
class StackUnit:
    stack: Stack
    kind: Literal["stack"] = "stack"

    @property
    def name(self) -> str:
        return self.stack.name

    @property
    def status_marker(self) -> str:
        return self.stack.status_marker

    def can(self, phase: Phase) -> bool:
        return _can(self.stack, phase)


Unit = TaskUnit | StackUnit


def _can(item: Task | Stack, phase: Phase) -> bool:
    if phase == Phase.INSTALL:
        return item.can_install()
    if phase == Phase.UNINSTALL:
        return item.can_uninstall()
    if phase == Phase.RESET:
        return item.can_reset()
    return item.can_remediate()


def as_units(items: list[Task] | list[Stack]) -> list[Unit]:
    """Wrap a task or stack list as units, preserving order (and indices)."""
    units: list[Unit] = []
    for item in items:
        if isinstance(item, Task):
            units.append(TaskUnit(item))
        else:
            units.append(StackUnit(item))
    return units
