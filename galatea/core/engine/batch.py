"""
Batch orchestrator — apply one operation to a selection of units.

Indices are visited in ascending order. Each selected unit either
succeeds, is skipped (the operation does not apply to its current
state), or fails; failures are collected and the batch moves on, so
one broken unit never blocks the rest.

Invariant:
    success_count + skipped_count + len(errors) == number of unique
    selected indices
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any, NamedTuple

from galatea.core.errors import GalateaError
from galatea.core.models.unit import Unit

logger = logging.getLogger(__name__)


class Selection:
    """Set of selected indices into a unit list."""

    def __init__(self, indices: Iterable[int] = ()):
        self._selected: set[int] = set(indices)

    def toggle(self, index: int) -> bool:
        """Flip ``index``; returns whether it is now selected."""
        if index in self._selected:
            self._selected.discard(index)
            return False
        self._selected.add(index)
        return True

    def select(self, index: int) -> None:
        self._selected.add(index)

    def is_selected(self, index: int) -> bool:
        return index in self._selected

    def clear(self) -> None:
        self._selected.clear()

    def count(self) -> int:
        return len(self._selected)

    def get_selected_indices(self) -> list[int]:
        return sorted(self._selected)

    def retain_valid(self, size: int) -> None:
        """Drop indices that fall outside a collection of ``size`` items."""
        self._selected = {i for i in self._selected if 0 <= i < size}

    def __len__(self) -> int:
        return len(self._selected)

    def __repr__(self) -> str:
        return f"Selection({self.get_selected_indices()})"


class BatchError(NamedTuple):
    """One failed unit: ``(index, unit_name, message)``."""

    index: int
    unit_name: str
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"index": self.index, "unit": self.unit_name, "message": self.message}


@dataclass
class BatchResult:
    """Aggregate outcome of a batch."""

    operation: str = ""
    success_count: int = 0
    skipped_count: int = 0
    errors: list[BatchError] = field(default_factory=list)

    @property
    def failed_count(self) -> int:
        return len(self.errors)

    @property
    def total(self) -> int:
        return self.success_count + self.skipped_count + self.failed_count

    @property
    def attempted(self) -> int:
        """Units the operation actually ran on (skips excluded)."""
        return self.success_count + self.failed_count

    @property
    def all_ok(self) -> bool:
        return not self.errors

    @property
    def status(self) -> str:
        if not self.errors:
            return "ok"
        if self.success_count > 0:
            return "partial"
        return "failed"

    def to_dict(self) -> dict[str, Any]:
        return {
            "operation": self.operation,
            "status": self.status,
            "total": self.total,
            "succeeded": self.success_count,
            "skipped": self.skipped_count,
            "failed": self.failed_count,
            "errors": [e.to_dict() for e in self.errors],
        }


def run_batch(
    units: Sequence[Unit],
    selected_indices: Iterable[int],
    operation: Callable[[Unit], None],
    applicable: Callable[[Unit], bool],
    operation_name: str = "",
    log: logging.Logger | None = None,
) -> BatchResult:
    """Apply ``operation`` to every selected unit.

    Args:
        units: The unit collection the indices refer to.
        selected_indices: Selected positions (duplicates collapse).
        operation: Raises a ``GalateaError`` when a unit fails.
        applicable: False means the unit is skipped.
        operation_name: Label for logs and the result.
        log: Logger to report through.
    """
    log = log or logger
    result = BatchResult(operation=operation_name)

    for index in sorted(set(selected_indices)):
        if not 0 <= index < len(units):
            log.warning("No unit at index %d", index)
            result.errors.append(BatchError(index, "", f"No unit at index {index}"))
            continue

        unit = units[index]
        if not applicable(unit):
            log.info("Skipping %s %s: not applicable in its current state", unit.kind, unit.name)
            result.skipped_count += 1
            continue

        try:
            operation(unit)
        except GalateaError as e:
            log.error("%s %s failed: %s", operation_name or "Operation", unit.name, e)
            result.errors.append(BatchError(index, unit.name, str(e)))
        else:
            result.success_count += 1

    log.info(
        "Batch %s: %d succeeded, %d skipped, %d failed",
        operation_name, result.success_count, result.skipped_count, result.failed_count,
    )
    return result
