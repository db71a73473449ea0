"""Unit tests for DevForge workspace management.

This module tests project directories, atomic writes, persisted state and
the checkpoint log.
"""

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from devforge.errors import PersistenceError, ValidationError
from devforge.models import Checkpoint, Phase, Project, utc_now
from devforge.workspace import Workspace


def _project(name="demo"):
    return Project(name=name, project_type="api", description="Demo", requirements=["CRUD todos"])


class TestWorkspaceInitialization:
    """Test cases for Workspace initialization."""

    def test_creates_root(self, tmp_path):
        root = tmp_path / "nested" / "projects"

        workspace = Workspace(root)

        assert workspace.root == root.resolve()
        assert root.is_dir()

    def test_accepts_string_path(self, tmp_path):
        assert Workspace(str(tmp_path)).root == tmp_path.resolve()

    def test_unwritable_root(self, tmp_path):
        with patch.object(Path, "mkdir", side_effect=PermissionError("denied")):
            with pytest.raises(PersistenceError):
                Workspace(tmp_path / "blocked")


class TestProjectPaths:
    """Test cases for project directory resolution."""

    def test_project_dir(self, workspace):
        assert workspace.project_dir("todo-app") == workspace.root / "todo-app"
        assert workspace.state_path("todo-app") == workspace.root / "todo-app" / ".devforge" / "state.json"

    @pytest.mark.parametrize("name", ["", "  ", ".", "..", "a/b", "a\\b"])
    def test_invalid_names(self, workspace, name):
        with pytest.raises(ValidationError):
            workspace.project_dir(name)


class TestWrites:
    """Test cases for atomic writes."""

    def test_write_text_creates_parents(self, workspace):
        path = workspace.write_text("demo", "docs/SPEC.md", "# Spec\n")

        assert path.read_text(encoding="utf-8") == "# Spec\n"
        assert path.parent.name == "docs"

    def test_write_replaces_without_temp_leftovers(self, workspace):
        workspace.write_text("demo", "notes.txt", "one")
        path = workspace.write_text("demo", "notes.txt", "two")

        assert path.read_text() == "two"
        assert [p.name for p in path.parent.iterdir()] == ["notes.txt"]

    def test_refuses_escape_from_project_dir(self, workspace):
        with pytest.raises(ValidationError):
            workspace.write_text("demo", "../other/evil.txt", "x")

    def test_os_error_becomes_persistence_error(self, workspace):
        with patch("devforge.workspace.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(PersistenceError) as exc:
                workspace.write_text("demo", "notes.txt", "content")

        assert "disk full" in exc.value.message
        assert not (workspace.project_dir("demo") / "notes.txt").exists()
        assert list((workspace.project_dir("demo")).iterdir()) == []

    def test_write_files(self, workspace):
        paths = workspace.write_files("demo", {"a.txt": "A", "b/c.txt": "C"})

        assert [Path(p).name for p in paths] == ["a.txt", "c.txt"]

    def test_write_json(self, workspace):
        path = workspace.write_json("demo", "data.json", {"x": 1})
        assert json.loads(path.read_text()) == {"x": 1}


class TestProjectState:
    """Test cases for persisted project state."""

    def test_save_and_load(self, workspace):
        project = _project()
        project.ledger.record_completion("T001")

        workspace.save_state(project)
        loaded = workspace.load_state("demo")

        assert loaded.to_dict() == project.to_dict()

    def test_load_missing(self, workspace):
        assert workspace.load_state("ghost") is None

    def test_load_corrupt(self, workspace):
        workspace.write_text("demo", ".devforge/state.json", "{not json")

        with pytest.raises(PersistenceError):
            workspace.load_state("demo")

    def test_list_persisted_projects(self, workspace):
        workspace.save_state(_project("beta"))
        workspace.save_state(_project("alpha"))
        workspace.write_text("scratch", "notes.txt", "not a project")

        assert workspace.list_persisted_projects() == ["alpha", "beta"]


class TestCheckpointLog:
    """Test cases for the append-only checkpoint log."""

    def _checkpoint(self, number):
        return Checkpoint(id=f"CP-{number:04d}", timestamp=utc_now(), phase=Phase.BACKEND_DEV, tasks_completed=number)

    def test_list_in_creation_order(self, workspace):
        for number in (2, 10, 1):
            workspace.append_checkpoint("demo", self._checkpoint(number))

        assert [c.id for c in workspace.list_checkpoints("demo")] == ["CP-0001", "CP-0002", "CP-0010"]

    def test_empty_log(self, workspace):
        assert workspace.list_checkpoints("demo") == []

    def test_continuation_prompt(self, workspace):
        assert workspace.load_continuation_prompt("demo") is None

        workspace.write_text("demo", ".devforge/continuation-prompt.txt", "resume here")

        assert workspace.load_continuation_prompt("demo") == "resume here"


class TestArchivePreviousRun:
    """Test cases for archive_previous_run."""

    def test_nothing_persisted(self, workspace):
        assert workspace.archive_previous_run("demo") is None

    def test_moves_state_and_log(self, workspace):
        workspace.save_state(_project())
        workspace.append_checkpoint("demo", Checkpoint(id="CP-0001", timestamp=utc_now(), phase=Phase.BACKEND_DEV))
        workspace.write_text("demo", ".devforge/continuation-prompt.txt", "resume here")

        target = workspace.archive_previous_run("demo")

        assert target == workspace.state_dir("demo") / "archive" / "run-001"
        assert (target / "state.json").exists()
        assert (target / "checkpoints" / "CP-0001.json").exists()
        assert (target / "continuation-prompt.txt").read_text() == "resume here"
        assert workspace.load_state("demo") is None
        assert workspace.list_checkpoints("demo") == []
        assert workspace.list_persisted_projects() == []

    def test_runs_are_numbered(self, workspace):
        workspace.save_state(_project())
        workspace.archive_previous_run("demo")
        workspace.save_state(_project())

        assert workspace.archive_previous_run("demo").name == "run-002"

    def test_move_failure(self, workspace):
        workspace.save_state(_project())

        with patch("devforge.workspace.os.replace", side_effect=OSError("busy")):
            with pytest.raises(PersistenceError, match="Could not archive"):
                workspace.archive_previous_run("demo")
