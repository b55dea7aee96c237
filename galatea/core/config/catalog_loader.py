"""
Catalog loader — loads task and stack definitions from ``*.conf`` files.

Definition documents are YAML with a top-level ``tasks:`` or ``stacks:``
list. Configured source URLs are fetched into the directory first; when
the directory holds no documents and no sources are configured, an
example document is written so a fresh install has something to show.

Bad entries and unreadable documents are skipped with a warning: one
broken file never hides the rest of the catalog.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, TypeVar

import yaml
from pydantic import BaseModel, ValidationError

from galatea.adapters.transport.download import file_name_from_url
from galatea.adapters.transport.materialize import ArchiveTransport, expected_artifact
from galatea.core.config.loader import GalateaConfig
from galatea.core.errors import ConfigError, GalateaError
from galatea.core.models.stack import Stack
from galatea.core.models.task import Task
from galatea.core.persistence.state_file import StateStore

logger = logging.getLogger(__name__)

DOCUMENT_SUFFIX = ".conf"
EXAMPLE_TASKS_FILE = "example_tasks.conf"
EXAMPLE_STACKS_FILE = "example_stacks.conf"
SOURCE_MARKER_DIR = ".sources"

_M = TypeVar("_M", bound=BaseModel)

EXAMPLE_TASKS_DOCUMENT = """\
# Example task definitions

tasks:
  - name: example_bash_task
    type: bash
    description: "Example bash task that installs a package"
    url: "https://example.com/tasks/bash_task.tgz"
    requires_reboot: false
    tags:
      - example
      - bash

  - name: example_ansible_task
    type: ansible
    description: "Example ansible task that configures a service"
    url: "https://example.com/tasks/ansible_task.zip"
    cleanup_command: "systemctl stop example_service"
    requires_reboot: true
    tags:
      - example
      - ansible
      - service

  - name: example_mixed_task
    type: mixed
    description: "Example task that can run with either ansible or bash"
    url: "https://example.com/tasks/mixed_task.tar.gz"
    dependencies:
      - example_bash_task
    tags:
      - example
      - mixed
"""

EXAMPLE_STACKS_DOCUMENT = """\
# Example stack definitions

stacks:
  - name: base_system
    description: "Base system configuration"
    tasks:
      - example_bash_task
    requires_reboot: false
    tags:
      - system
      - base

  - name: web_server
    description: "Web server setup"
    tasks:
      - example_bash_task
      - example_ansible_task
    requires_reboot: true
    tags:
      - web
      - server

  - name: monitoring
    description: "System monitoring"
    tasks:
      - example_mixed_task
    requires_reboot: false
    tags:
      - monitoring
      - system
"""


def load_tasks(
    config: GalateaConfig,
    store: StateStore,
    transport: ArchiveTransport | None = None,
) -> list[Task]:
    """Load every task definition under ``config.tasks_dir``.

    Each task's ``installed`` flag is refreshed from ``store``.

    Raises:
        ConfigError: The tasks directory cannot be created or listed.
    """
    logger.info("Loading tasks from %s", config.tasks_dir)
    transport = transport or ArchiveTransport(config.download_timeout)

    _prepare_directory(config.tasks_dir)
    fetch_sources(config.task_sources, config.tasks_dir, transport)
    if not config.task_sources:
        _write_example_if_empty(config.tasks_dir, EXAMPLE_TASKS_FILE, EXAMPLE_TASKS_DOCUMENT)

    tasks = _load_entries(config.tasks_dir, "tasks", Task)
    for task in tasks:
        try:
            task.installed = store.is_installed(task.name)
        except GalateaError as e:
            logger.warning("Failed to check if task %s is installed: %s", task.name, e)
            task.installed = False

    logger.info("Loaded %d tasks", len(tasks))
    return tasks


def load_stacks(
    config: GalateaConfig,
    tasks: list[Task],
    transport: ArchiveTransport | None = None,
) -> list[Stack]:
    """Load every stack definition under ``config.stacks_dir``.

    Each stack's classification is computed against ``tasks``.

    Raises:
        ConfigError: The stacks directory cannot be created or listed.
    """
    logger.info("Loading stacks from %s", config.stacks_dir)
    transport = transport or ArchiveTransport(config.download_timeout)

    _prepare_directory(config.stacks_dir)
    fetch_sources(config.stack_sources, config.stacks_dir, transport)
    if not config.stack_sources:
        _write_example_if_empty(config.stacks_dir, EXAMPLE_STACKS_FILE, EXAMPLE_STACKS_DOCUMENT)

    stacks = _load_entries(config.stacks_dir, "stacks", Stack)
    for stack in stacks:
        stack.check_installation_status(tasks)

    logger.info("Loaded %d stacks", len(stacks))
    return stacks


def fetch_sources(urls: list[str], directory: Path, transport: ArchiveTransport) -> int:
    """Fetch each source URL not already materialised in ``directory``.

    A ``.conf`` source is present when its file exists. An archive source
    is deleted once extracted, so a marker under ``.sources/`` records
    that it was fetched; remove the marker to fetch it again. Failures
    are logged and skipped.

    Returns:
        Number of sources fetched.
    """
    fetched = 0
    for url in urls:
        try:
            artifact = expected_artifact(url, directory)
            marker = directory / SOURCE_MARKER_DIR / file_name_from_url(url)
        except GalateaError as e:
            logger.warning("Skipping source %s: %s", url, e)
            continue

        needs_marker = artifact == directory
        if (marker if needs_marker else artifact).exists():
            logger.info("Source already present: %s", url)
            continue

        try:
            transport.fetch_and_materialize(url, directory)
        except GalateaError as e:
            logger.warning("Failed to fetch source %s: %s", url, e)
            continue
        fetched += 1
        if needs_marker:
            _write_marker(marker, url)
    return fetched


def _write_marker(marker: Path, url: str) -> None:
    try:
        marker.parent.mkdir(parents=True, exist_ok=True)
        marker.write_text(url + "\n", encoding="utf-8")
    except OSError as e:
        logger.warning("Could not record fetched source %s: %s", url, e)


def document_paths(directory: Path) -> list[Path]:
    """All ``*.conf`` files directly in ``directory``, sorted by name."""
    if not directory.is_dir():
        return []
    return sorted(p for p in directory.iterdir() if p.is_file() and p.suffix == DOCUMENT_SUFFIX)


def _prepare_directory(directory: Path) -> None:
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ConfigError(f"Cannot create directory {directory}: {e}") from e


def _write_example_if_empty(directory: Path, file_name: str, content: str) -> None:
    if document_paths(directory):
        return
    path = directory / file_name
    logger.info("No definition documents in %s, creating %s", directory, file_name)
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Failed to write example document {path}: {e}") from e


def _load_entries(directory: Path, key: str, model: type[_M]) -> list[_M]:
    """Parse every document's ``key`` list into ``model`` instances.

    Duplicate names keep the first definition.
    """
    items: list[_M] = []
    seen: set[str] = set()

    for path in document_paths(directory):
        for entry in _read_document(path, key):
            item = _build(model, entry, path)
            if item is None:
                continue
            name = item.name  # type: ignore[attr-defined]
            if name in seen:
                logger.warning("Duplicate %s %r in %s, keeping the first definition", key[:-1], name, path)
                continue
            seen.add(name)
            items.append(item)
    return items


def _read_document(path: Path, key: str) -> list[Any]:
    """Return the ``key`` list of a document, or [] when unusable."""
    logger.debug("Loading %s from %s", key, path)
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
        logger.warning("Failed to read definition document %s: %s", path, e)
        return []

    if data is None:
        return []
    if not isinstance(data, dict):
        logger.warning("Definition document %s is not a mapping, skipping", path)
        return []

    entries = data.get(key)
    if entries is None:
        return []
    if not isinstance(entries, list):
        logger.warning("'%s' in %s is not a list, skipping", key, path)
        return []
    return entries


def _build(model: type[_M], entry: Any, path: Path) -> _M | None:
    if not isinstance(entry, dict):
        logger.warning("Skipping non-mapping entry in %s: %r", path, entry)
        return None
    try:
        return model.model_validate(entry)
    except ValidationError as e:
        label = entry.get("name", "<unnamed>")
        logger.warning("Failed to parse %s from %s: %s", label, path, _first_error(e))
        return None


def _first_error(error: ValidationError) -> str:
    errors = error.errors()
    if not errors:
        return str(error)
    first = errors[0]
    loc = ".".join(str(part) for part in first.get("loc", ()))
    return f"{loc}: {first.get('msg', '')}" if loc else first.get("msg", "")


