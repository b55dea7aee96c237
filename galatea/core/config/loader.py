"""
Configuration loader — reads galatea.yaml into a typed config object.

This is the primary entry point for loading configuration. It reads
YAML, validates against the Pydantic schema, and fills in working
directories relative to the file that was loaded.

Search order when no explicit path is given:
    $GALATEA_CONFIG  >  /etc/galatea/galatea.yaml  >  ./galatea.yaml

When nothing is found a default configuration is written to
./galatea.yaml and used.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from galatea.core.errors import ConfigError

logger = logging.getLogger(__name__)

# Default config filename
CONFIG_FILE = "galatea.yaml"
SYSTEM_CONFIG_PATH = Path("/etc/galatea") / CONFIG_FILE
CONFIG_ENV_VAR = "GALATEA_CONFIG"

DEFAULT_DOWNLOAD_TIMEOUT = 60

# Directory keys and the subdirectory each defaults to
_DIR_DEFAULTS = {
    "tasks_dir": "tasks",
    "stacks_dir": "stacks",
    "state_dir": "state",
    "log_dir": "logs",
}

_EXAMPLE_TASK_SOURCES = (
    "https://example.com/tasks/security.zip",
    "https://example.com/tasks/monitoring.zip",
)
_EXAMPLE_STACK_SOURCES = ("https://example.com/stacks/web_server.zip",)


class GalateaConfig(BaseModel):
    """Application configuration.

    Directory fields are always absolute once loaded; relative values in
    the document are taken relative to the config file's directory.
    """

    tasks_dir: Path
    stacks_dir: Path
    state_dir: Path
    log_dir: Path
    download_timeout: int = Field(default=DEFAULT_DOWNLOAD_TIMEOUT, gt=0)
    ui_theme: str = "default"
    task_sources: list[str] = Field(default_factory=list)
    stack_sources: list[str] = Field(default_factory=list)

    # Where this config was loaded from (not serialised)
    config_file_path: Path | None = Field(default=None, exclude=True)

    @classmethod
    def default(cls, base_dir: Path | None = None) -> GalateaConfig:
        """Default configuration rooted at ``base_dir`` (default: cwd)."""
        return cls.from_mapping({}, base_dir)

    @classmethod
    def from_mapping(cls, data: dict[str, Any], base_dir: Path | None = None) -> GalateaConfig:
        """Validate a raw mapping, filling and anchoring directory keys.

        Raises:
            ConfigError: The mapping does not validate.
        """
        base = (base_dir or Path.cwd()).resolve()
        values = dict(data)
        for key, default in _DIR_DEFAULTS.items():
            raw = values.get(key)
            if raw is None or (isinstance(raw, str) and not raw.strip()):
                values[key] = base / default
            else:
                path = Path(str(raw)).expanduser()
                values[key] = path if path.is_absolute() else base / path

        try:
            return cls.model_validate(values)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

    def has_sources(self) -> bool:
        """True when any task or stack source URL is configured."""
        return bool(self.task_sources or self.stack_sources)

    def resolve(self, relative: str | Path, category: str) -> Path:
        """Join ``relative`` onto the directory for ``category``.

        ``category`` is one of ``tasks``, ``stacks``, ``state``; any other
        value is used as a literal base directory.
        """
        bases = {
            "tasks": self.tasks_dir,
            "stacks": self.stacks_dir,
            "state": self.state_dir,
        }
        base = bases.get(category, Path(category))
        return base / relative

    def add_task_source(self, url: str) -> bool:
        return _add_unique(self.task_sources, url)

    def add_stack_source(self, url: str) -> bool:
        return _add_unique(self.stack_sources, url)

    def remove_task_source(self, url: str) -> bool:
        return _remove_all(self.task_sources, url)

    def remove_stack_source(self, url: str) -> bool:
        return _remove_all(self.stack_sources, url)

    def to_dict(self) -> dict[str, Any]:
        """Serialisable form (paths as strings)."""
        return self.model_dump(mode="json")


def _add_unique(items: list[str], url: str) -> bool:
    if url in items:
        return False
    items.append(url)
    return True


def _remove_all(items: list[str], url: str) -> bool:
    before = len(items)
    items[:] = [u for u in items if u != url]
    return len(items) < before


def _read_config_file(path: Path) -> GalateaConfig:
    """Parse one config file.

    Raises:
        ConfigError: If the file is unreadable or invalid.
    """
    logger.debug("Loading config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    config = GalateaConfig.from_mapping(data, path.parent)
    config.config_file_path = path.resolve()
    return config


def candidate_paths() -> list[Path]:
    """Config locations searched when no explicit path is given."""
    paths = []
    env_path = os.environ.get(CONFIG_ENV_VAR, "").strip()
    if env_path:
        paths.append(Path(env_path))
    paths.append(SYSTEM_CONFIG_PATH)
    paths.append(Path.cwd() / CONFIG_FILE)
    return paths


def load_config(path: Path | None = None) -> GalateaConfig:
    """Load and validate the configuration, creating working directories.

    Args:
        path: Explicit config path. If None, the search order applies.

    Returns:
        Validated GalateaConfig.

    Raises:
        ConfigError: The explicit path is missing or invalid, or a working
            directory cannot be created.
    """
    if path is not None:
        path = Path(path)
        if not path.is_file():
            raise ConfigError(f"Config file not found: {path}")
        config = _read_config_file(path)
    else:
        config = _search_config()

    ensure_directories(config)
    logger.info(
        "Loaded config (tasks=%s, stacks=%s, state=%s)",
        config.tasks_dir, config.stacks_dir, config.state_dir,
    )
    return config


def _search_config() -> GalateaConfig:
    for candidate in candidate_paths():
        if not candidate.is_file():
            continue
        try:
            config = _read_config_file(candidate)
        except ConfigError as e:
            logger.warning("Skipping config %s: %s", candidate, e)
            continue
        logger.info("Configuration loaded from %s", candidate)
        return config

    default_path = Path.cwd() / CONFIG_FILE
    config = GalateaConfig.default(default_path.parent)
    try:
        save_config(config, default_path)
    except ConfigError as e:
        # Carry on with the in-memory default
        logger.warning("Could not save default config to %s: %s", default_path, e)
    else:
        config.config_file_path = default_path.resolve()
        logger.info("Created default configuration in %s", default_path)
    return config


def ensure_directories(config: GalateaConfig) -> None:
    """Create the tasks, stacks and state directories if missing."""
    for directory in (config.tasks_dir, config.stacks_dir, config.state_dir):
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigError(f"Cannot create directory {directory}: {e}") from e


def save_config(config: GalateaConfig, path: Path) -> Path:
    """Write ``config`` as YAML to ``path``.

    Raises:
        ConfigError: The file cannot be written.
    """
    path = Path(path)
    content = yaml.dump(config.to_dict(), default_flow_style=False, sort_keys=False)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot write config to {path}: {e}") from e
    logger.info("Configuration saved to %s", path)
    return path


def create_example_config(path: Path) -> GalateaConfig:
    """Write a default config with example sources to ``path``."""
    path = Path(path)
    config = GalateaConfig.default(path.parent)
    for url in _EXAMPLE_TASK_SOURCES:
        config.add_task_source(url)
    for url in _EXAMPLE_STACK_SOURCES:
        config.add_stack_source(url)
    save_config(config, path)
    config.config_file_path = path.resolve()
    return config
