"""
Status use case — summarise config, catalog, runners and host.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from galatea.core.errors import ConfigError
from galatea.core.services.system_probes import probe_system
from galatea.core.use_cases.workspace import Workspace, open_workspace


@dataclass
class StatusResult:
    """Aggregated status."""

    config_path: Path | None = None
    counts: dict[str, int] = field(default_factory=dict)
    runners: dict[str, dict] = field(default_factory=dict)
    system: dict = field(default_factory=dict)
    error: str | None = None

    def to_dict(self) -> dict:
        result: dict = {}
        if self.error:
            result["error"] = self.error
            return result
        result["config_path"] = str(self.config_path) if self.config_path else None
        result["counts"] = dict(self.counts)
        result["runners"] = dict(self.runners)
        result["system"] = dict(self.system)
        return result


def get_status(
    config_path: Path | None = None,
    workspace: Workspace | None = None,
) -> StatusResult:
    """Collect the status summary.

    Args:
        config_path: Optional explicit config path.
        workspace: Pre-loaded workspace.
    """
    result = StatusResult()

    if workspace is None:
        try:
            workspace = open_workspace(config_path)
        except ConfigError as e:
            result.error = str(e)
            return result

    result.config_path = workspace.config.config_file_path
    result.counts = workspace.catalog.summary()
    result.runners = workspace.registry.runner_status()
    result.system = probe_system()
    return result
