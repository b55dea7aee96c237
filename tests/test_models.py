"""
Tests for Task, Stack, and unit models.
"""

import pytest
from pydantic import ValidationError

from galatea.core.models import Phase, ScriptKind, Stack, StackUnit, Task, TaskUnit, as_units


def _task(name: str = "t1", installed: bool = False, **kwargs) -> Task:
    data = {"name": name, "type": "bash", "url": f"https://example.com/{name}.zip", **kwargs}
    task = Task.model_validate(data)
    task.installed = installed
    return task


# ── ScriptKind ───────────────────────────────────────────────────────


class TestScriptKind:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("bash", ScriptKind.BASH),
            ("B", ScriptKind.BASH),
            ("Ansible", ScriptKind.ANSIBLE),
            ("a", ScriptKind.ANSIBLE),
            ("MIXED", ScriptKind.MIXED),
            ("m", ScriptKind.MIXED),
        ],
    )
    def test_parse_aliases(self, raw, expected):
        assert ScriptKind.parse(raw) is expected

    def test_parse_unknown(self):
        with pytest.raises(ValueError, match="Unknown script type"):
            ScriptKind.parse("python")

    def test_letter(self):
        assert ScriptKind.ANSIBLE.letter == "A"


# ── Task ─────────────────────────────────────────────────────────────


class TestTask:
    def test_minimal_definition(self):
        task = _task()
        assert task.script_kind is ScriptKind.BASH
        assert task.description == ""
        assert task.cleanup_command is None
        assert task.dependencies == []
        assert task.requires_reboot is False
        assert task.local_path is None
        assert not task.installed

    def test_type_alias(self):
        task = Task.model_validate({"name": "x", "type": "m", "url": "https://e.com/x.tgz"})
        assert task.script_kind is ScriptKind.MIXED

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            Task.model_validate({"name": "x", "type": "perl", "url": "https://e.com/x.zip"})

    def test_missing_url_rejected(self):
        with pytest.raises(ValidationError):
            Task.model_validate({"name": "x", "type": "bash"})

    def test_blank_name_rejected(self):
        with pytest.raises(ValidationError):
            _task(name="  ")

    def test_blank_cleanup_becomes_none(self):
        assert _task(cleanup_command="   ").cleanup_command is None

    def test_non_string_tags_dropped(self):
        assert _task(tags=["web", 3, "db"]).tags == ["web", "db"]

    def test_predicates_not_installed(self):
        task = _task()
        assert task.can_install()
        assert not task.can_uninstall()
        assert not task.can_reset()
        assert not task.can_remediate()
        assert task.status_marker == "[ ]"

    def test_predicates_installed(self):
        task = _task(installed=True)
        assert not task.can_install()
        assert task.can_uninstall()
        assert task.can_reset()
        assert task.can_remediate()
        assert task.status_marker == "[✓]"

    def test_runtime_fields_not_serialised(self):
        dumped = _task(installed=True).model_dump()
        assert "installed" not in dumped
        assert "local_path" not in dumped

    def test_to_dict(self):
        d = _task(tags=["x"]).to_dict()
        assert d["type"] == "bash"
        assert d["tags"] == ["x"]
        assert d["installed"] is False


# ── Stack ────────────────────────────────────────────────────────────


class TestStack:
    def test_tasks_alias(self):
        stack = Stack.model_validate({"name": "web", "tasks": ["a", "b"]})
        assert stack.task_names == ["a", "b"]

    def test_empty_stack_is_neither(self):
        stack = Stack(name="empty")
        stack.check_installation_status([_task("a", installed=True)])
        assert not stack.fully_installed
        assert not stack.partially_installed
        assert stack.can_install()
        assert not stack.can_uninstall()

    def test_fully_installed(self):
        tasks = [_task("a", installed=True), _task("b", installed=True)]
        stack = Stack(name="web", task_names=["a", "b"])
        stack.check_installation_status(tasks)
        assert stack.fully_installed
        assert not stack.partially_installed
        assert stack.status_marker == "[✓]"
        assert not stack.can_install()
        assert stack.can_uninstall()

    def test_partially_installed(self):
        tasks = [_task("a", installed=True), _task("b")]
        stack = Stack(name="web", task_names=["a", "b"])
        stack.check_installation_status(tasks)
        assert stack.partially_installed
        assert not stack.fully_installed
        assert stack.status_marker == "[!]"
        assert stack.status_label == "partially installed"
        assert stack.can_install()
        assert stack.can_reset()
        assert stack.can_remediate()

    def test_unknown_member_counts_not_installed(self):
        tasks = [_task("a", installed=True)]
        stack = Stack(name="web", task_names=["a", "ghost"])
        stack.check_installation_status(tasks)
        assert stack.partially_installed

    def test_recompute_is_idempotent(self):
        tasks = [_task("a", installed=True), _task("b")]
        stack = Stack(name="web", task_names=["a", "b"])
        stack.check_installation_status(tasks)
        first = (stack.fully_installed, stack.partially_installed)
        stack.check_installation_status(tasks)
        assert (stack.fully_installed, stack.partially_installed) == first

    def test_not_installed(self):
        stack = Stack(name="web", task_names=["a"])
        stack.check_installation_status([_task("a")])
        assert stack.status_marker == "[ ]"
        assert not stack.can_uninstall()


# ── Units ────────────────────────────────────────────────────────────


class TestUnits:
    def test_as_units_preserves_order(self):
        units = as_units([_task("a"), _task("b")])
        assert [u.name for u in units] == ["a", "b"]
        assert all(isinstance(u, TaskUnit) and u.kind == "task" for u in units)

    def test_stack_unit(self):
        unit = as_units([Stack(name="s", task_names=["a"])])[0]
        assert isinstance(unit, StackUnit)
        assert unit.kind == "stack"
        assert unit.status_marker == "[ ]"

    @pytest.mark.parametrize("phase", list(Phase))
    def test_can_follows_model(self, phase):
        installed = TaskUnit(_task(installed=True))
        fresh = TaskUnit(_task())
        if phase is Phase.INSTALL:
            assert fresh.can(phase) and not installed.can(phase)
        else:
            assert installed.can(phase) and not fresh.can(phase)
