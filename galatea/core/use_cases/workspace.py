"""
Workspace use case — load config, state and catalog in one step.

Every CLI command starts here: the returned workspace bundles the
configuration, the state store, the live catalog, and a lifecycle
engine wired to a runner registry.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from galatea.adapters.mock import MockStateStore, MockTransport
from galatea.adapters.registry import RunnerRegistry
from galatea.adapters.transport.materialize import ArchiveTransport
from galatea.core.config.catalog_loader import load_stacks, load_tasks
from galatea.core.config.loader import GalateaConfig, load_config
from galatea.core.engine.catalog import Catalog
from galatea.core.engine.lifecycle import LifecycleEngine
from galatea.core.persistence.state_file import StateStore

logger = logging.getLogger(__name__)


@dataclass
class Workspace:
    """Everything an operation needs."""

    config: GalateaConfig
    store: StateStore
    catalog: Catalog
    registry: RunnerRegistry
    engine: LifecycleEngine
    transport: ArchiveTransport

    def reload(self) -> None:
        """Reload definitions from disk; the state store stays the same."""
        tasks = load_tasks(self.config, self.store, self.transport)
        stacks = load_stacks(self.config, tasks, self.transport)
        self.catalog.replace_tasks(tasks)
        self.catalog.replace_stacks(stacks)


def open_workspace(
    config_path: Path | None = None,
    mock_mode: bool = False,
    registry: RunnerRegistry | None = None,
    transport: ArchiveTransport | None = None,
    config: GalateaConfig | None = None,
) -> Workspace:
    """Load configuration and definitions.

    Args:
        config_path: Explicit config path (default: search order).
        mock_mode: Dry run: mock runner, no payload downloads, state
            changes kept in memory.
        registry: Pre-configured runner registry (tests).
        transport: Pre-configured transport (tests).
        config: Already-loaded configuration; skips ``load_config``.

    Raises:
        ConfigError: The configuration cannot be loaded.
    """
    if config is None:
        config = load_config(config_path)

    if registry is None:
        registry = RunnerRegistry.default(mock_mode=mock_mode)
    elif mock_mode and not registry.mock_mode:
        registry.set_mock_mode(True)

    # Definition sources are always fetched; task payloads and state
    # changes are not in mock mode
    transport = transport or ArchiveTransport(config.download_timeout)
    if registry.mock_mode:
        store = MockStateStore(config.state_dir)
        payloads = MockTransport()
    else:
        store = StateStore(config.state_dir)
        payloads = transport

    tasks = load_tasks(config, store, transport)
    stacks = load_stacks(config, tasks, transport)
    catalog = Catalog(tasks, stacks)

    engine = LifecycleEngine(config, store, registry, payloads)
    return Workspace(config, store, catalog, registry, engine, transport)
