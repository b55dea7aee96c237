"""
Literal command runner — execute a cleanup command through the shell.

The command string is passed to ``sh -c`` (``cmd /C`` on Windows)
untouched: no argument substitution happens here.
"""

from __future__ import annotations

import logging
import os

from galatea.adapters.runners.process import check_outcome, run_process

logger = logging.getLogger(__name__)


def shell_argv(command: str) -> list[str]:
    """Argument vector running ``command`` through the platform shell."""
    if os.name == "nt":
        return ["cmd", "/C", command]
    return ["sh", "-c", command]


def run_literal_command(
    command: str,
    *,
    capture_output: bool = False,
    timeout: float | None = None,
    log: logging.Logger | None = None,
) -> None:
    """Run ``command`` through the shell.

    Raises:
        ExecutionError: Non-zero exit or the shell could not be started.
        ExecutionTimeout: ``timeout`` elapsed.
    """
    log = log or logger
    log.info("Running command: %s", command)
    outcome = run_process(
        shell_argv(command),
        capture_output=capture_output,
        timeout=timeout,
        log=log,
    )
    check_outcome(outcome, "Command")
