"""
Stack model — a named, ordered group of task references.

A stack does not own its tasks: it lists task names and derives its
installation classification from the live task collection.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from galatea.core.models.task import Task


class Stack(BaseModel):
    """Composite unit loaded from a ``stacks:`` entry.

    The document key ``tasks`` maps to ``task_names``.
    """

    name: str
    description: str = ""
    task_names: list[str] = Field(default_factory=list, alias="tasks")
    requires_reboot: bool = False
    tags: list[str] = Field(default_factory=list)

    # Derived, never persisted
    fully_installed: bool = Field(default=False, exclude=True)
    partially_installed: bool = Field(default=False, exclude=True)

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("name")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must not be empty")
        return value.strip()

    @field_validator("task_names", "tags", mode="before")
    @classmethod
    def _string_list(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if not isinstance(value, list):
            raise ValueError("must be a list")
        return [str(v) for v in value if isinstance(v, str)]

    def installed_count(self, tasks: Iterable[Task]) -> int:
        """Count member references whose task is installed.

        Unknown task names count as not installed. A task listed twice
        is counted twice, matching ``len(task_names)``.
        """
        installed = {t.name for t in tasks if t.installed}
        return sum(1 for name in self.task_names if name in installed)

    def check_installation_status(self, tasks: Iterable[Task]) -> None:
        """Recompute ``fully_installed`` / ``partially_installed``.

        Pure with respect to ``tasks``; safe to call repeatedly.
        """
        total = len(self.task_names)
        if total == 0:
            self.fully_installed = False
            self.partially_installed = False
            return

        count = self.installed_count(tasks)
        self.fully_installed = count == total
        self.partially_installed = 0 < count < total

    # ── Capabilities ─────────────────────────────────────────────

    @property
    def status_marker(self) -> str:
        if self.fully_installed:
            return "[✓]"
        if self.partially_installed:
            return "[!]"
        return "[ ]"

    @property
    def status_label(self) -> str:
        if self.fully_installed:
            return "fully installed"
        if self.partially_installed:
            return "partially installed"
        return "not installed"

    def can_install(self) -> bool:
        return not self.fully_installed

    def can_uninstall(self) -> bool:
        return self.fully_installed or self.partially_installed

    def can_reset(self) -> bool:
        return self.fully_installed or self.partially_installed

    def can_remediate(self) -> bool:
        return self.fully_installed or self.partially_installed

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "tasks": list(self.task_names),
            "requires_reboot": self.requires_reboot,
            "tags": list(self.tags),
            "fully_installed": self.fully_installed,
            "partially_installed": self.partially_installed,
        }
