"""
Tests for runners, entry-point resolution, the mock runner and the registry.

Bash tests run real ``sh`` scripts in the temporary directory; ansible
is never required (its availability is patched).
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from conftest import requires_sh

from galatea.adapters.base import PhaseRunner
from galatea.adapters.mock import MockRunner, MockStateStore, MockTransport
from galatea.adapters.registry import RunnerRegistry
from galatea.adapters.runners.ansible import AnsibleRunner
from galatea.adapters.runners.bash import BashRunner
from galatea.adapters.runners.command import run_literal_command, shell_argv
from galatea.adapters.runners.process import run_process
from galatea.adapters.runners.resolve import PLAYBOOK_CANDIDATES, SCRIPT_CANDIDATES, find_entry_point
from galatea.core.errors import (
    ExecutionError,
    ExecutionTimeout,
    FallbackExhaustedError,
    GalateaError,
    NotFound,
)
from galatea.core.models.task import ScriptKind


def _script(directory: Path, body: str, name: str = "install.sh") -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_text("#!/bin/sh\n" + body)
    return path


# ── Entry-point resolution ───────────────────────────────────────────


class TestFindEntryPoint:
    def test_file_used_as_is(self, tmp_path: Path):
        f = tmp_path / "custom.sh"
        f.write_text("")
        assert find_entry_point(f, SCRIPT_CANDIDATES) == f

    def test_direct_candidate(self, tmp_path: Path):
        _script(tmp_path, "")
        assert find_entry_point(tmp_path, SCRIPT_CANDIDATES) == tmp_path / "install.sh"

    def test_candidate_priority(self, tmp_path: Path):
        (tmp_path / "site.yml").write_text("")
        (tmp_path / "main.yml").write_text("")
        assert find_entry_point(tmp_path, PLAYBOOK_CANDIDATES).name == "main.yml"

    def test_yml_before_yaml(self, tmp_path: Path):
        (tmp_path / "playbook.yaml").write_text("")
        (tmp_path / "entrypoint.yml").write_text("")
        assert find_entry_point(tmp_path, PLAYBOOK_CANDIDATES).name == "entrypoint.yml"

    def test_nested_sorted_depth_first(self, tmp_path: Path):
        _script(tmp_path / "b", "")
        _script(tmp_path / "a" / "deep", "")
        assert find_entry_point(tmp_path, SCRIPT_CANDIDATES) == tmp_path / "a" / "deep" / "install.sh"

    def test_nothing_found(self, tmp_path: Path):
        (tmp_path / "README").write_text("")
        with pytest.raises(NotFound):
            find_entry_point(tmp_path, SCRIPT_CANDIDATES)

    def test_missing_path(self, tmp_path: Path):
        with pytest.raises(NotFound):
            find_entry_point(tmp_path / "absent", SCRIPT_CANDIDATES)


# ── Process execution ────────────────────────────────────────────────


@requires_sh
class TestRunProcess:
    def test_exit_code(self):
        outcome = run_process(["sh", "-c", "exit 4"])
        assert outcome.exit_code == 4
        assert not outcome.ok

    def test_capture_output(self):
        outcome = run_process(["sh", "-c", "echo out; echo err >&2"], capture_output=True)
        assert outcome.ok
        assert "out" in outcome.output
        assert "err" in outcome.output

    def test_timed_run_finishes(self):
        outcome = run_process(["sh", "-c", "exit 0"], timeout=5, poll_interval=0.01)
        assert outcome.ok

    def test_timeout_terminates(self):
        with pytest.raises(ExecutionTimeout) as exc_info:
            run_process(["sh", "-c", "sleep 30"], timeout=0.2, poll_interval=0.05)
        assert exc_info.value.timeout == 0.2

    def test_spawn_failure(self, tmp_path: Path):
        with pytest.raises(ExecutionError) as exc_info:
            run_process([str(tmp_path / "does-not-exist")])
        assert exc_info.value.exit_code == -1


# ── Bash runner ──────────────────────────────────────────────────────


@requires_sh
class TestBashRunner:
    def test_passes_phase_and_cwd(self, tmp_path: Path):
        _script(tmp_path / "pkg", 'echo "$1" > phase.txt\n')
        BashRunner().run_phase(tmp_path, "remediate")
        # cwd is the script's directory
        assert (tmp_path / "pkg" / "phase.txt").read_text().strip() == "remediate"

    @pytest.mark.skipif(os.name != "posix", reason="POSIX permissions")
    def test_made_executable(self, tmp_path: Path):
        script = _script(tmp_path, "exit 0\n")
        script.chmod(0o644)
        BashRunner().run_phase(tmp_path, "install")
        assert script.stat().st_mode & 0o777 == 0o755

    def test_non_zero_exit(self, tmp_path: Path):
        _script(tmp_path, "exit 3\n")
        with pytest.raises(ExecutionError) as exc_info:
            BashRunner().run_phase(tmp_path, "install")
        assert exc_info.value.exit_code == 3
        assert "exit code: 3" in str(exc_info.value)

    def test_captured_output_attached(self, tmp_path: Path):
        _script(tmp_path, "echo broken package >&2\nexit 1\n")
        with pytest.raises(ExecutionError) as exc_info:
            BashRunner(capture_output=True).run_phase(tmp_path, "install")
        assert "broken package" in exc_info.value.output

    def test_missing_script(self, tmp_path: Path):
        with pytest.raises(NotFound):
            BashRunner().run_phase(tmp_path, "install")

    def test_timeout(self, tmp_path: Path):
        _script(tmp_path, "sleep 30\n")
        runner = BashRunner(timeout=0.3)
        with pytest.raises(ExecutionTimeout):
            runner.run_phase(tmp_path, "install")


# ── Ansible runner ───────────────────────────────────────────────────


class TestAnsibleRunner:
    def test_build_command(self, tmp_path: Path):
        playbook = tmp_path / "site.yml"
        cmd = AnsibleRunner().build_command(playbook, "reset")
        assert cmd[:4] == ["ansible-playbook", "-i", "localhost,", "--connection=local"]
        assert cmd[4] == "--tags=reset"
        assert cmd[5] == str(playbook.resolve())

    def test_missing_binary(self, tmp_path: Path):
        (tmp_path / "playbook.yml").write_text("- hosts: all\n")
        with patch("galatea.adapters.runners.ansible.shutil.which", return_value=None):
            with pytest.raises(ExecutionError, match="ansible-playbook") as exc_info:
                AnsibleRunner().run_phase(tmp_path, "install")
        assert exc_info.value.exit_code == -1

    def test_runs_playbook(self, tmp_path: Path):
        (tmp_path / "main.yml").write_text("- hosts: all\n")
        with patch("galatea.adapters.runners.ansible.shutil.which", return_value="/usr/bin/ansible-playbook"), \
                patch("galatea.adapters.base.run_process") as mock_run:
            mock_run.return_value.ok = True
            mock_run.return_value.elapsed_ms = 1
            AnsibleRunner().run_phase(tmp_path, "install")
        args, kwargs = mock_run.call_args
        assert "--tags=install" in args[0]
        assert kwargs["cwd"] == tmp_path


# ── Literal commands ─────────────────────────────────────────────────


class TestLiteralCommand:
    def test_shell_argv(self):
        argv = shell_argv("systemctl stop x")
        assert argv[-1] == "systemctl stop x"

    @requires_sh
    def test_success(self, tmp_path: Path):
        marker = tmp_path / "done"
        run_literal_command(f"touch '{marker}'")
        assert marker.exists()

    @requires_sh
    def test_failure(self):
        with pytest.raises(ExecutionError) as exc_info:
            run_literal_command("exit 7")
        assert exc_info.value.exit_code == 7


# ── Mock runner ──────────────────────────────────────────────────────


class TestMockRunner:
    def test_default_success(self, tmp_path: Path):
        mock = MockRunner()
        mock.run_phase(tmp_path, "install")
        assert mock.call_count == 1
        assert mock.phases == ["install"]

    def test_set_failure(self, tmp_path: Path):
        mock = MockRunner()
        mock.set_failure("reset")
        mock.run_phase(tmp_path, "install")
        with pytest.raises(ExecutionError):
            mock.run_phase(tmp_path, "reset")

    def test_failure_scoped_to_path(self, tmp_path: Path):
        mock = MockRunner()
        mock.set_failure("install", path=tmp_path / "bad")
        mock.run_phase(tmp_path / "good", "install")
        with pytest.raises(ExecutionError):
            mock.run_phase(tmp_path / "bad", "install")

    def test_commands_recorded(self):
        mock = MockRunner()
        mock.run_command("echo hi")
        assert mock.call_log[0].command == "echo hi"

    def test_reset(self, tmp_path: Path):
        mock = MockRunner()
        mock.set_failure("install")
        mock.reset()
        mock.run_phase(tmp_path, "install")
        assert mock.call_count == 1

    def test_is_available(self):
        assert MockRunner(available=True).is_available()
        assert not MockRunner(available=False).is_available()


# ── Registry ─────────────────────────────────────────────────────────


class RecordingRunner(PhaseRunner):
    """Runner double whose outcome is fixed at construction."""

    def __init__(self, runner_name: str, error: GalateaError | None = None):
        super().__init__()
        self._name = runner_name
        self.error = error
        self.calls: list[str] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def candidates(self) -> tuple[str, ...]:
        return ()

    def is_available(self) -> bool:
        return self.error is None

    def build_command(self, entry_point, phase):
        return []

    def run_phase(self, path, phase):
        self.calls.append(phase)
        if self.error is not None:
            raise self.error


class TestMockStateStore:
    def test_reads_recorded_markers(self, tmp_path: Path):
        (tmp_path / "nginx.state").write_text("installed")
        assert MockStateStore(tmp_path).is_installed("nginx")

    def test_changes_stay_in_memory(self, tmp_path: Path):
        (tmp_path / "old.state").write_text("installed")
        store = MockStateStore(tmp_path)
        store.mark_installed("nginx")
        store.clear("old")
        assert store.is_installed("nginx")
        assert not store.is_installed("old")
        assert store.installed_names() == ["nginx"]
        assert sorted(p.name for p in tmp_path.iterdir()) == ["old.state"]


class TestMockTransport:
    def test_records_without_touching_disk(self, tmp_path: Path):
        transport = MockTransport()
        dest = tmp_path / "nginx"
        assert transport.fetch_and_materialize("https://e.com/nginx.zip", dest) == dest
        assert transport.fetch_and_materialize("https://e.com/s.conf", tmp_path) == tmp_path / "s.conf"
        assert transport.fetched == [("https://e.com/nginx.zip", dest), ("https://e.com/s.conf", tmp_path)]
        assert not dest.exists()


class TestRunnerRegistry:
    def _registry(self, bash_error=None, ansible_error=None):
        registry = RunnerRegistry()
        bash = RecordingRunner("bash", bash_error)
        ansible = RecordingRunner("ansible", ansible_error)
        registry.register(bash)
        registry.register(ansible)
        return registry, bash, ansible

    def test_default_registers_runners(self):
        registry = RunnerRegistry.default()
        assert sorted(registry.list_runners()) == ["ansible", "bash"]
        assert isinstance(registry.get("bash"), BashRunner)

    def test_mixed_strategy_order(self):
        registry = RunnerRegistry()
        assert registry.strategies_for(ScriptKind.MIXED) == ("ansible", "bash")
        assert registry.strategies_for(ScriptKind.BASH) == ("bash",)

    def test_bash_kind_uses_bash_only(self, tmp_path: Path):
        registry, bash, ansible = self._registry()
        registry.run_phase(tmp_path, "install", ScriptKind.BASH)
        assert bash.calls == ["install"]
        assert ansible.calls == []

    def test_single_strategy_error_propagates(self, tmp_path: Path):
        registry, _, _ = self._registry(ansible_error=ExecutionError("boom", exit_code=2))
        with pytest.raises(ExecutionError) as exc_info:
            registry.run_phase(tmp_path, "install", ScriptKind.ANSIBLE)
        assert not isinstance(exc_info.value, FallbackExhaustedError)
        assert exc_info.value.exit_code == 2

    def test_mixed_prefers_ansible(self, tmp_path: Path):
        registry, bash, ansible = self._registry()
        registry.run_phase(tmp_path, "install", ScriptKind.MIXED)
        assert ansible.calls == ["install"]
        assert bash.calls == []

    def test_mixed_falls_back_to_bash(self, tmp_path: Path):
        registry, bash, ansible = self._registry(ansible_error=NotFound("no playbook"))
        registry.run_phase(tmp_path, "reset", ScriptKind.MIXED)
        assert ansible.calls == ["reset"]
        assert bash.calls == ["reset"]

    def test_mixed_exhausted_keeps_every_attempt(self, tmp_path: Path):
        registry, _, _ = self._registry(
            ansible_error=ExecutionError("ansible died", exit_code=2),
            bash_error=ExecutionError("bash died", exit_code=5),
        )
        with pytest.raises(FallbackExhaustedError) as exc_info:
            registry.run_phase(tmp_path, "install", ScriptKind.MIXED)
        err = exc_info.value
        assert [name for name, _ in err.attempts] == ["ansible", "bash"]
        assert "ansible" in str(err) and "bash" in str(err)
        assert err.exit_code == 5
        assert isinstance(err, ExecutionError)

    def test_runner_status(self):
        registry, _, _ = self._registry(ansible_error=ExecutionError("x"))
        status = registry.runner_status()
        assert status["bash"]["available"] is True
        assert status["ansible"]["available"] is False

    def test_mock_mode_short_circuits(self, tmp_path: Path):
        registry, bash, _ = self._registry()
        registry.set_mock_mode(True)
        registry.run_phase(tmp_path, "install", ScriptKind.BASH)
        registry.run_command("rm -rf /")
        assert bash.calls == []
        assert registry.mock_runner.call_count == 2

    def test_unregistered_runner(self, tmp_path: Path):
        registry = RunnerRegistry()
        with pytest.raises(GalateaError, match="No runner registered"):
            registry.run_phase(tmp_path, "install", ScriptKind.BASH)
