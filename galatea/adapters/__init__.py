"""Adapters — runners and transport for external side effects.

Public re-exports for convenient access.
"""

from galatea.adapters.base import PhaseRunner
from galatea.adapters.mock import MockRunner, MockStateStore, MockTransport
from galatea.adapters.registry import RunnerRegistry

__all__ = [
    "MockRunner",
    "MockStateStore",
    "MockTransport",
    "PhaseRunner",
    "RunnerRegistry",
]
