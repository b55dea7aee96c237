"""
System probes — facts about the machine the engine runs on.

Channel-independent: no CLI dependency. Every probe is safe to call
and never raises.
"""

from __future__ import annotations

import logging
import os
import platform
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)

OS_RELEASE_PATH = Path("/etc/os-release")


def is_running_as_root() -> bool:
    """True when the effective user is root (always False on Windows)."""
    geteuid = getattr(os, "geteuid", None)
    if geteuid is None:
        return False
    return geteuid() == 0


def get_os_name(os_release: Path = OS_RELEASE_PATH) -> str:
    """Human-readable OS name.

    Uses ``PRETTY_NAME`` from /etc/os-release when present, otherwise
    falls back to ``platform``.
    """
    try:
        for line in os_release.read_text(encoding="utf-8").splitlines():
            if line.startswith("PRETTY_NAME="):
                value = line.split("=", 1)[1].strip().strip('"').strip("'")
                if value:
                    return value
    except OSError:
        logger.debug("Cannot read %s", os_release)

    system = platform.system() or "Unknown"
    release = platform.release()
    return f"{system} {release}".strip()


def is_program_available(name: str) -> bool:
    """Check if a command is available on PATH."""
    return shutil.which(name) is not None


def is_ansible_available() -> bool:
    return is_program_available("ansible-playbook")


def probe_system() -> dict:
    """Summary dict used by the status command."""
    return {
        "os": get_os_name(),
        "root": is_running_as_root(),
        "ansible": is_ansible_available(),
        "sh": is_program_available("sh"),
    }
