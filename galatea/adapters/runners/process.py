"""
Process execution — the single place runners spawn child processes.

Two modes:
    untimed  → wait for the child to finish (no cancellation hook)
    timed    → poll on a fixed interval; past the deadline send SIGTERM,
               then SIGKILL after a short grace period

Standard streams are inherited unless ``capture_output`` is set. Captured
output goes to a temporary file (a pipe could fill up while we poll) and
its tail is attached to the outcome.
"""

from __future__ import annotations

import contextlib
import logging
import subprocess
import tempfile
import time
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from galatea.core.errors import ExecutionError, ExecutionTimeout

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 0.5
TERMINATE_GRACE = 5.0
_OUTPUT_TAIL = 2000


@dataclass
class ProcessOutcome:
    """Exit status of a finished child."""

    exit_code: int
    elapsed_ms: int
    output: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


def run_process(
    cmd: Sequence[str],
    *,
    cwd: Path | None = None,
    capture_output: bool = False,
    timeout: float | None = None,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    log: logging.Logger | None = None,
) -> ProcessOutcome:
    """Spawn ``cmd`` and wait for it.

    Returns the outcome whatever the exit code; callers decide whether a
    non-zero code is an error.

    Raises:
        ExecutionError: The process could not be started (exit_code -1).
        ExecutionTimeout: ``timeout`` elapsed before the child exited.
    """
    log = log or logger
    argv = [str(c) for c in cmd]
    log.debug("Executing: %s (cwd=%s)", " ".join(argv), cwd)

    sink_cm = tempfile.TemporaryFile() if capture_output else contextlib.nullcontext()
    with sink_cm as sink:
        start = time.monotonic()
        try:
            proc = subprocess.Popen(
                argv,
                cwd=str(cwd) if cwd else None,
                stdout=sink,
                stderr=subprocess.STDOUT if capture_output else None,
            )
        except OSError as e:
            raise ExecutionError(f"Failed to execute {argv[0]}: {e}", exit_code=-1) from e

        if timeout is None:
            proc.wait()
        else:
            _wait_with_deadline(proc, argv, timeout, poll_interval, log)

        elapsed_ms = int((time.monotonic() - start) * 1000)
        output = ""
        if capture_output:
            sink.seek(0)
            output = sink.read().decode("utf-8", errors="replace")[-_OUTPUT_TAIL:]

    code = proc.returncode
    # Negative return codes mean "killed by signal"; report as unknown
    exit_code = code if code is not None and code >= 0 else -1
    return ProcessOutcome(exit_code=exit_code, elapsed_ms=elapsed_ms, output=output)


def _wait_with_deadline(
    proc: subprocess.Popen,
    argv: list[str],
    timeout: float,
    poll_interval: float,
    log: logging.Logger,
) -> None:
    deadline = time.monotonic() + timeout
    while proc.poll() is None:
        if time.monotonic() >= deadline:
            log.warning("Timeout after %ss, terminating: %s", timeout, argv[0])
            proc.terminate()
            try:
                proc.wait(timeout=TERMINATE_GRACE)
            except subprocess.TimeoutExpired:
                proc.kill()
                proc.wait()
            raise ExecutionTimeout(
                f"Command timed out after {timeout}s: {argv[0]}",
                timeout=timeout,
            )
        time.sleep(poll_interval)


def check_outcome(outcome: ProcessOutcome, what: str) -> None:
    """Raise ``ExecutionError`` for a non-zero outcome."""
    if not outcome.ok:
        raise ExecutionError(
            f"{what} failed with exit code: {outcome.exit_code}",
            exit_code=outcome.exit_code,
            output=outcome.output,
        )
