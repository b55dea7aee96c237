"""
Domain models — Pydantic types for tasks, stacks, and units.

All models are re-exported here for convenient access:

    from galatea.core.models import Task, Stack, ScriptKind, Phase
"""

from galatea.core.models.stack import Stack
from galatea.core.models.task import ScriptKind, Task
from galatea.core.models.unit import Phase, StackUnit, TaskUnit, Unit, as_units

__all__ = [
    "Phase",
    "ScriptKind",
    "Stack",
    "StackUnit",
    "Task",
    "TaskUnit",
    "Unit",
    "as_units",
]
