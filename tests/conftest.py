"""
Shared test fixtures and configuration.
"""

import io
import shutil
from pathlib import Path

import pytest

from galatea.adapters.registry import RunnerRegistry
from galatea.core.config.loader import GalateaConfig, ensure_directories
from galatea.core.engine.lifecycle import LifecycleEngine
from galatea.core.persistence.state_file import StateStore

requires_sh = pytest.mark.skipif(shutil.which("sh") is None, reason="sh not available")

OK_SCRIPT = "#!/bin/sh\nexit 0\n"


class FakeResponse(io.BytesIO):
    """Stand-in for the object ``urlopen`` returns."""

    def __init__(self, data: bytes, code: int = 200):
        super().__init__(data)
        self.code = code

    def getcode(self) -> int:
        return self.code


class StubTransport:
    """Writes a fixed payload into the destination instead of downloading."""

    def __init__(self, files: dict[str, str] | None = None, error: Exception | None = None):
        self.files = files if files is not None else {"install.sh": OK_SCRIPT}
        self.error = error
        self.calls: list[tuple[str, Path]] = []

    def fetch_and_materialize(self, url: str, destination_dir: Path) -> Path:
        self.calls.append((url, Path(destination_dir)))
        if self.error is not None:
            raise self.error
        dest = Path(destination_dir)
        dest.mkdir(parents=True, exist_ok=True)
        for name, content in self.files.items():
            (dest / name).write_text(content)
        return dest


@pytest.fixture
def tmp_state_dir(tmp_path: Path) -> Path:
    """Return a temporary directory for state files."""
    state_dir = tmp_path / "state"
    state_dir.mkdir()
    return state_dir


@pytest.fixture
def config(tmp_path: Path) -> GalateaConfig:
    """Default configuration rooted in a temporary directory."""
    cfg = GalateaConfig.default(tmp_path)
    ensure_directories(cfg)
    return cfg


@pytest.fixture
def store(config: GalateaConfig) -> StateStore:
    return StateStore(config.state_dir)


@pytest.fixture
def transport() -> StubTransport:
    return StubTransport()


@pytest.fixture
def registry() -> RunnerRegistry:
    """Registry in mock mode: phases are recorded, nothing is spawned."""
    return RunnerRegistry(mock_mode=True)


@pytest.fixture
def engine(config, store, registry, transport) -> LifecycleEngine:
    return LifecycleEngine(config, store, registry, transport)


def write_document(directory: Path, name: str, content: str) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_text(content)
    return path
