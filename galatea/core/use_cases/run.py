"""
Run use case — apply a lifecycle operation to named tasks or stacks.

Names are resolved to positions in the live collection, the positions
become a selection, and the batch orchestrator does the rest. After the
batch, stack classifications are recomputed so they reflect any task
that changed state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from galatea.core.engine.batch import BatchResult, Selection, run_batch
from galatea.core.errors import ConfigError
from galatea.core.models.unit import Phase, Unit
from galatea.core.use_cases.workspace import Workspace, open_workspace

logger = logging.getLogger(__name__)

UNIT_KINDS = ("task", "stack")


@dataclass
class RunResult:
    """Result of running an operation."""

    kind: str = "task"
    operation: str = ""
    selected: list[str] = field(default_factory=list)
    batch: BatchResult | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.batch is not None and self.batch.all_ok

    def to_dict(self) -> dict:
        result: dict = {"kind": self.kind, "operation": self.operation}
        if self.error:
            result["error"] = self.error
            return result
        result["selected"] = list(self.selected)
        if self.batch:
            result["report"] = self.batch.to_dict()
        return result


def select_by_name(units: list[Unit], names: list[str]) -> tuple[Selection, list[str]]:
    """Selection for ``names`` plus the names that matched nothing."""
    positions = {}
    for i, unit in enumerate(units):
        positions.setdefault(unit.name, i)

    selection = Selection()
    unknown = []
    for name in names:
        index = positions.get(name)
        if index is None:
            unknown.append(name)
        else:
            selection.select(index)
    return selection, unknown


def run_operation(
    kind: str,
    operation: str,
    names: list[str] | None = None,
    select_all: bool = False,
    config_path: Path | None = None,
    mock_mode: bool = False,
    workspace: Workspace | None = None,
) -> RunResult:
    """Apply ``operation`` to the named units.

    Args:
        kind: ``task`` or ``stack``.
        operation: install, uninstall, reset or remediate.
        names: Unit names to target.
        select_all: Target every unit of ``kind`` (skips still apply).
        config_path: Explicit config path.
        mock_mode: Use the mock runner (no real execution).
        workspace: Pre-loaded workspace (tests, repeated calls).

    Returns:
        RunResult with the batch report, or an error message.
    """
    result = RunResult(kind=kind, operation=operation)

    if kind not in UNIT_KINDS:
        result.error = f"Unknown unit kind: {kind}"
        return result
    try:
        phase = Phase(operation)
    except ValueError:
        result.error = f"Unknown operation: {operation}"
        return result

    if workspace is None:
        try:
            workspace = open_workspace(config_path, mock_mode=mock_mode)
        except ConfigError as e:
            result.error = str(e)
            return result

    catalog = workspace.catalog
    units = catalog.task_units() if kind == "task" else catalog.stack_units()

    if select_all:
        selection = Selection(range(len(units)))
    else:
        selection, unknown = select_by_name(units, names or [])
        if unknown:
            result.error = f"Unknown {kind}(s): {', '.join(unknown)}"
            return result

    if selection.count() == 0:
        result.error = f"No {kind}s selected"
        return result

    result.selected = [units[i].name for i in selection.get_selected_indices()]
    engine = workspace.engine

    result.batch = run_batch(
        units,
        selection.get_selected_indices(),
        operation=lambda unit: engine.apply(unit, phase, catalog.tasks()),
        applicable=lambda unit: unit.can(phase),
        operation_name=phase.value,
    )
    catalog.refresh_stack_status()
    return result
