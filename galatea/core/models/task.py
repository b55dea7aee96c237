"""
Task model — the atomic installable unit.

A task is a bash script or an Ansible playbook fetched from a URL and
driven through the install / uninstall / reset / remediate phases.
The ``installed`` flag mirrors the state store and is recomputed on
load; it is never the source of truth.
"""

from __future__ import annotations

from enum import StrEnum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ScriptKind(StrEnum):
    """Which runner strategy a task uses."""

    BASH = "bash"
    ANSIBLE = "ansible"
    MIXED = "mixed"

    @classmethod
    def parse(cls, value: str) -> ScriptKind:
        """Parse ``bash|b|ansible|a|mixed|m`` (case-insensitive)."""
        key = str(value).strip().lower()
        alias = _KIND_ALIASES.get(key)
        if alias is None:
            raise ValueError(f"Unknown script type: {value}")
        return alias

    @property
    def letter(self) -> str:
        """Single-letter marker used in listings."""
        return self.value[0].upper()


_KIND_ALIASES: dict[str, ScriptKind] = {
    "bash": ScriptKind.BASH,
    "b": ScriptKind.BASH,
    "ansible": ScriptKind.ANSIBLE,
    "a": ScriptKind.ANSIBLE,
    "mixed": ScriptKind.MIXED,
    "m": ScriptKind.MIXED,
}


class Task(BaseModel):
    """A single installable action.

    Loaded from a ``tasks:`` entry of a definition document. The
    document key ``type`` maps to ``script_kind``.
    """

    # ── Declared ─────────────────────────────────────────────────
    name: str
    script_kind: ScriptKind = Field(alias="type")
    url: str
    description: str = ""
    cleanup_command: str | None = None
    dependencies: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    requires_reboot: bool = False

    # ── Runtime ──────────────────────────────────────────────────
    local_path: Path | None = Field(default=None, exclude=True)
    installed: bool = Field(default=False, exclude=True)

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("name", "url")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must not be empty")
        return value.strip()

    @field_validator("script_kind", mode="before")
    @classmethod
    def _parse_kind(cls, value: Any) -> ScriptKind:
        if isinstance(value, ScriptKind):
            return value
        return ScriptKind.parse(value)

    @field_validator("cleanup_command", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("dependencies", "tags", mode="before")
    @classmethod
    def _string_list(cls, value: Any) -> list[str]:
        # Non-string items are dropped, a missing list is empty
        if value is None:
            return []
        if not isinstance(value, list):
            raise ValueError("must be a list")
        return [str(v) for v in value if isinstance(v, str)]

    # ── Capabilities ─────────────────────────────────────────────

    @property
    def status_marker(self) -> str:
        return "[✓]" if self.installed else "[ ]"

    def can_install(self) -> bool:
        return not self.installed

    def can_uninstall(self) -> bool:
        return self.installed

    def can_reset(self) -> bool:
        return self.installed

    def can_remediate(self) -> bool:
        return self.installed

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.script_kind.value,
            "description": self.description,
            "url": self.url,
            "cleanup_command": self.cleanup_command,
            "dependencies": list(self.dependencies),
            "tags": list(self.tags),
            "requires_reboot": self.requires_reboot,
            "installed": self.installed,
            "local_path": str(self.local_path) if self.local_path else None,
        }
