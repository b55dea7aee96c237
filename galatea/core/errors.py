"""
Error types — every failure the engine reports to its callers.

All errors derive from ``GalateaError`` so the batch orchestrator and the
CLI can catch a single base class. Subclasses carry the structured detail
(status code, exit code, attempt list) that callers branch on.
"""

from __future__ import annotations


class GalateaError(Exception):
    """Base class for all engine errors."""


class ConfigError(GalateaError):
    """Raised when the configuration document is invalid or unreadable."""


class InvalidSource(GalateaError):
    """The source URL does not name a file that can be downloaded."""


class TransportError(GalateaError):
    """HTTP or I/O failure while fetching a payload.

    Attributes:
        status_code: HTTP status for non-2xx responses, else None.
        cause: The underlying exception, if any.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.cause = cause


class ExtractError(GalateaError):
    """Corrupt archive, unsupported entry, or entry escaping the destination."""


class NotFound(GalateaError):
    """No script or playbook matched under the searched path."""


class ExecutionError(GalateaError):
    """A child process exited non-zero or could not be started.

    ``exit_code`` is -1 when the code is unavailable (killed by a signal,
    failed to spawn).
    """

    def __init__(self, message: str, *, exit_code: int = -1, output: str = ""):
        super().__init__(message)
        self.exit_code = exit_code
        self.output = output


class FallbackExhaustedError(ExecutionError):
    """Every strategy of an ordered strategy list failed.

    ``attempts`` keeps ``(strategy_name, error)`` pairs in the order tried.
    """

    def __init__(self, phase: str, attempts: list[tuple[str, GalateaError]]):
        tried = "; ".join(f"{name}: {err}" for name, err in attempts)
        last = attempts[-1][1] if attempts else None
        exit_code = last.exit_code if isinstance(last, ExecutionError) else -1
        super().__init__(
            f"All strategies failed for phase '{phase}' ({tried})",
            exit_code=exit_code,
        )
        self.phase = phase
        self.attempts = attempts


class ExecutionTimeout(GalateaError):
    """A timed execution exceeded its deadline and was terminated."""

    def __init__(self, message: str, *, timeout: float):
        super().__init__(message)
        self.timeout = timeout


class StateIOError(GalateaError):
    """A state file could not be read, written, or removed."""


class PreconditionError(GalateaError):
    """An operation was invoked on a unit in the wrong lifecycle state."""


class StackOperationError(GalateaError):
    """One or more member tasks failed during a stack operation.

    Attributes:
        stack: Stack name.
        operation: Lifecycle phase that was fanned out.
        failures: ``(task_name, message)`` pairs in visit order.
        total: Number of task references in the stack.
    """

    def __init__(
        self,
        stack: str,
        operation: str,
        failures: list[tuple[str, str]],
        total: int,
    ):
        names = [name for name, _ in failures]
        super().__init__(
            f"Failed to {operation} {len(failures)} out of {total} tasks "
            f"in stack {stack}: {names}"
        )
        self.stack = stack
        self.operation = operation
        self.failures = failures
        self.total = total

    @property
    def failed_tasks(self) -> list[str]:
        return [name for name, _ in self.failures]


def add_context(err: GalateaError, context: str) -> GalateaError:
    """Prefix ``err``'s message with ``context`` in place.

    The error keeps its type and attributes so callers can still branch
    on them after the lifecycle layer re-raises it.
    """
    err.args = (f"{context}: {err}",)
    return err
