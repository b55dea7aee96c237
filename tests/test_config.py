"""
Tests for configuration loading and definition-document loading.
"""

import logging
import textwrap
from pathlib import Path

import pytest
import yaml
from conftest import StubTransport, write_document

from galatea.core.config import loader
from galatea.core.config.catalog_loader import (
    EXAMPLE_STACKS_FILE,
    EXAMPLE_TASKS_FILE,
    SOURCE_MARKER_DIR,
    load_stacks,
    load_tasks,
)
from galatea.core.config.loader import (
    GalateaConfig,
    create_example_config,
    load_config,
    save_config,
)
from galatea.core.errors import ConfigError, TransportError
from galatea.core.models.task import ScriptKind


@pytest.fixture
def isolated(tmp_path: Path, monkeypatch) -> Path:
    """cwd = tmp_path, no env override, no system config."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv(loader.CONFIG_ENV_VAR, raising=False)
    monkeypatch.setattr(loader, "SYSTEM_CONFIG_PATH", tmp_path / "etc" / "galatea.yaml")
    return tmp_path


# ── GalateaConfig ────────────────────────────────────────────────────


class TestGalateaConfig:
    def test_defaults(self, tmp_path: Path):
        cfg = GalateaConfig.default(tmp_path)
        base = tmp_path.resolve()
        assert cfg.tasks_dir == base / "tasks"
        assert cfg.stacks_dir == base / "stacks"
        assert cfg.state_dir == base / "state"
        assert cfg.log_dir == base / "logs"
        assert cfg.download_timeout == 60
        assert cfg.ui_theme == "default"
        assert not cfg.has_sources()

    def test_relative_dirs_anchored_to_base(self, tmp_path: Path):
        cfg = GalateaConfig.from_mapping({"tasks_dir": "my-tasks", "state_dir": "/var/lib/galatea"}, tmp_path)
        assert cfg.tasks_dir == tmp_path.resolve() / "my-tasks"
        assert cfg.state_dir == Path("/var/lib/galatea")

    @pytest.mark.parametrize("timeout", [0, -5])
    def test_timeout_must_be_positive(self, tmp_path: Path, timeout):
        with pytest.raises(ConfigError):
            GalateaConfig.from_mapping({"download_timeout": timeout}, tmp_path)

    def test_resolve(self, tmp_path: Path):
        cfg = GalateaConfig.default(tmp_path)
        assert cfg.resolve("nginx", "tasks") == cfg.tasks_dir / "nginx"
        assert cfg.resolve("x.conf", "stacks") == cfg.stacks_dir / "x.conf"
        assert cfg.resolve("a.state", "state") == cfg.state_dir / "a.state"
        assert cfg.resolve("f", "/opt/other") == Path("/opt/other") / "f"

    def test_sources(self, tmp_path: Path):
        cfg = GalateaConfig.default(tmp_path)
        assert cfg.add_task_source("https://e.com/a.zip") is True
        assert cfg.add_task_source("https://e.com/a.zip") is False
        assert cfg.add_stack_source("https://e.com/s.zip") is True
        assert cfg.has_sources()
        assert cfg.remove_task_source("https://e.com/a.zip") is True
        assert cfg.remove_task_source("https://e.com/a.zip") is False
        assert cfg.remove_stack_source("https://e.com/other.zip") is False
        assert cfg.stack_sources == ["https://e.com/s.zip"]


# ── load_config / save_config ────────────────────────────────────────


class TestLoadConfig:
    def test_explicit_path(self, tmp_path: Path):
        path = tmp_path / "conf" / "galatea.yaml"
        write_document(path.parent, path.name, "download_timeout: 15\ntask_sources:\n  - https://e.com/t.zip\n")
        cfg = load_config(path)
        assert cfg.download_timeout == 15
        assert cfg.task_sources == ["https://e.com/t.zip"]
        assert cfg.tasks_dir == path.parent.resolve() / "tasks"
        assert cfg.config_file_path == path.resolve()
        # Working directories created
        assert cfg.tasks_dir.is_dir() and cfg.stacks_dir.is_dir() and cfg.state_dir.is_dir()

    def test_explicit_missing(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "absent.yaml")

    def test_explicit_invalid_yaml(self, tmp_path: Path):
        path = write_document(tmp_path, "galatea.yaml", "tasks_dir: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(path)

    def test_explicit_not_mapping(self, tmp_path: Path):
        path = write_document(tmp_path, "galatea.yaml", "- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_config(path)

    def test_empty_file_uses_defaults(self, tmp_path: Path):
        path = write_document(tmp_path, "galatea.yaml", "")
        assert load_config(path).download_timeout == 60

    def test_search_creates_default(self, isolated: Path):
        cfg = load_config()
        assert (isolated / "galatea.yaml").is_file()
        assert cfg.config_file_path == (isolated / "galatea.yaml").resolve()
        assert (isolated / "tasks").is_dir()

    def test_search_env_var_first(self, isolated: Path, monkeypatch):
        env_conf = write_document(isolated / "custom", "g.yaml", "ui_theme: dark\n")
        write_document(isolated, "galatea.yaml", "ui_theme: light\n")
        monkeypatch.setenv(loader.CONFIG_ENV_VAR, str(env_conf))
        assert load_config().ui_theme == "dark"

    def test_search_skips_broken_file(self, isolated: Path, monkeypatch, caplog):
        caplog.set_level(logging.WARNING)
        broken = write_document(isolated / "custom", "g.yaml", "download_timeout: nope\n")
        write_document(isolated, "galatea.yaml", "ui_theme: light\n")
        monkeypatch.setenv(loader.CONFIG_ENV_VAR, str(broken))
        assert load_config().ui_theme == "light"
        assert "Skipping config" in caplog.text

    def test_save_round_trip(self, tmp_path: Path):
        cfg = GalateaConfig.default(tmp_path)
        cfg.add_stack_source("https://e.com/s.zip")
        path = save_config(cfg, tmp_path / "out.yaml")
        data = yaml.safe_load(path.read_text())
        assert data["stack_sources"] == ["https://e.com/s.zip"]
        assert "config_file_path" not in data
        assert load_config(path).stack_sources == ["https://e.com/s.zip"]

    def test_create_example_config(self, tmp_path: Path):
        cfg = create_example_config(tmp_path / "example" / "galatea.yaml")
        assert len(cfg.task_sources) == 2
        assert len(cfg.stack_sources) == 1
        assert (tmp_path / "example" / "galatea.yaml").is_file()


# ── Definition documents ─────────────────────────────────────────────


TASKS_DOC = textwrap.dedent("""\
    tasks:
      - name: nginx
        type: b
        url: https://e.com/nginx.zip
        tags: [web]
      - name: broken
        type: cobol
        url: https://e.com/broken.zip
      - name: nourl
        type: bash
      - just a string
      - name: site
        type: Ansible
        url: https://e.com/site.tgz
        cleanup_command: systemctl stop site
""")


class TestLoadTasks:
    def test_example_created_when_empty(self, config, store):
        tasks = load_tasks(config, store, StubTransport())
        assert (config.tasks_dir / EXAMPLE_TASKS_FILE).is_file()
        assert [t.name for t in tasks] == ["example_bash_task", "example_ansible_task", "example_mixed_task"]
        assert tasks[2].dependencies == ["example_bash_task"]

    def test_invalid_entries_skipped(self, config, store):
        write_document(config.tasks_dir, "main.conf", TASKS_DOC)
        tasks = load_tasks(config, store, StubTransport())
        assert [t.name for t in tasks] == ["nginx", "site"]
        assert tasks[1].script_kind is ScriptKind.ANSIBLE
        assert not (config.tasks_dir / EXAMPLE_TASKS_FILE).exists()

    def test_unparsable_document_skipped(self, config, store, caplog):
        caplog.set_level(logging.WARNING)
        write_document(config.tasks_dir, "a.conf", "tasks: [unclosed\n")
        write_document(config.tasks_dir, "b.conf", TASKS_DOC)
        tasks = load_tasks(config, store, StubTransport())
        assert [t.name for t in tasks] == ["nginx", "site"]
        assert "a.conf" in caplog.text

    def test_non_conf_files_ignored(self, config, store):
        write_document(config.tasks_dir, "main.conf", TASKS_DOC)
        write_document(config.tasks_dir, "notes.yaml", "tasks: [{name: x, type: bash, url: u}]\n")
        assert len(load_tasks(config, store, StubTransport())) == 2

    def test_first_duplicate_wins(self, config, store):
        write_document(config.tasks_dir, "a.conf", "tasks:\n  - {name: dup, type: bash, url: https://e.com/first.zip}\n")
        write_document(config.tasks_dir, "b.conf", "tasks:\n  - {name: dup, type: bash, url: https://e.com/second.zip}\n")
        tasks = load_tasks(config, store, StubTransport())
        assert len(tasks) == 1
        assert tasks[0].url == "https://e.com/first.zip"

    def test_installed_flag_from_store(self, config, store):
        write_document(config.tasks_dir, "main.conf", TASKS_DOC)
        store.mark_installed("site")
        tasks = {t.name: t for t in load_tasks(config, store, StubTransport())}
        assert tasks["site"].installed
        assert not tasks["nginx"].installed

    def test_garbage_state_file_does_not_abort_load(self, config, store):
        write_document(config.tasks_dir, "main.conf", TASKS_DOC)
        (config.state_dir / "nginx.state").write_bytes(b"\xff\xfe\x00garbage")
        tasks = {t.name: t for t in load_tasks(config, store, StubTransport())}
        assert not tasks["nginx"].installed

    def test_sources_fetched(self, config, store):
        config.add_task_source("https://e.com/remote.conf")
        transport = StubTransport(files={"remote.conf": "tasks:\n  - {name: r, type: m, url: https://e.com/r.zip}\n"})
        tasks = load_tasks(config, store, transport)
        assert transport.calls == [("https://e.com/remote.conf", config.tasks_dir)]
        assert [t.name for t in tasks] == ["r"]
        assert not (config.tasks_dir / EXAMPLE_TASKS_FILE).exists()

    def test_present_source_not_refetched(self, config, store):
        write_document(config.tasks_dir, "remote.conf", "tasks: []\n")
        config.add_task_source("https://e.com/remote.conf")
        transport = StubTransport()
        load_tasks(config, store, transport)
        assert transport.calls == []

    def test_archive_source_fetched_once(self, config, store):
        config.add_task_source("https://e.com/bundle.zip")
        transport = StubTransport(files={"bundle.conf": "tasks:\n  - {name: r, type: b, url: https://e.com/r.zip}\n"})
        load_tasks(config, store, transport)
        tasks = load_tasks(config, store, transport)
        assert len(transport.calls) == 1
        assert [t.name for t in tasks] == ["r"]
        assert (config.tasks_dir / SOURCE_MARKER_DIR / "bundle.zip").is_file()

    def test_failed_archive_source_retried(self, config, store):
        config.add_task_source("https://e.com/bundle.zip")
        transport = StubTransport(error=TransportError("HTTP error 503", status_code=503))
        load_tasks(config, store, transport)
        load_tasks(config, store, transport)
        assert len(transport.calls) == 2
        assert not (config.tasks_dir / SOURCE_MARKER_DIR).exists()

    def test_source_failure_skipped(self, config, store):
        config.add_task_source("https://e.com/down.zip")
        transport = StubTransport(error=TransportError("HTTP error 500", status_code=500))
        assert load_tasks(config, store, transport) == []


class TestLoadStacks:
    def test_example_created_when_empty(self, config, store):
        tasks = load_tasks(config, store, StubTransport())
        stacks = load_stacks(config, tasks, StubTransport())
        assert (config.stacks_dir / EXAMPLE_STACKS_FILE).is_file()
        assert [s.name for s in stacks] == ["base_system", "web_server", "monitoring"]

    def test_classification_computed(self, config, store):
        write_document(config.tasks_dir, "main.conf", TASKS_DOC)
        write_document(
            config.stacks_dir,
            "web.conf",
            "stacks:\n  - name: web\n    tasks: [nginx, site]\n  - name: bad\n    tasks: not-a-list\n",
        )
        store.mark_installed("nginx")
        tasks = load_tasks(config, store, StubTransport())
        stacks = load_stacks(config, tasks, StubTransport())
        assert [s.name for s in stacks] == ["web"]
        assert stacks[0].partially_installed
