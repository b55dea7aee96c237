"""
Ansible runner — run a task's playbook against localhost, filtered by tag.

    ansible-playbook -i localhost, --connection=local --tags=<phase> <playbook>
"""

from __future__ import annotations

import shutil
from pathlib import Path

from galatea.adapters.base import PhaseRunner
from galatea.adapters.runners.resolve import PLAYBOOK_CANDIDATES
from galatea.core.errors import ExecutionError

ANSIBLE_PLAYBOOK = "ansible-playbook"


class AnsibleRunner(PhaseRunner):
    """Run playbooks with the phase as the tag filter."""

    @property
    def name(self) -> str:
        return "ansible"

    @property
    def candidates(self) -> tuple[str, ...]:
        return PLAYBOOK_CANDIDATES

    def is_available(self) -> bool:
        return shutil.which(ANSIBLE_PLAYBOOK) is not None

    def prepare(self, entry_point: Path) -> None:
        if not self.is_available():
            raise ExecutionError(
                f"{ANSIBLE_PLAYBOOK} not found on PATH", exit_code=-1
            )

    def build_command(self, entry_point: Path, phase: str) -> list[str]:
        return [
            ANSIBLE_PLAYBOOK,
            "-i",
            "localhost,",
            "--connection=local",
            f"--tags={phase}",
            str(entry_point.resolve()),
        ]
