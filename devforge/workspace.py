"""Durable storage for DevForge projects.

Every project lives in its own directory under the projects root. The
``.devforge/`` sub-directory holds the reload source (``state.json``), the
append-only checkpoint log and the latest continuation prompt; generated
documents are written next to it.

All writes go through :meth:`Workspace.write_text`, which writes to a
temporary file in the target directory and then ``os.replace``s it, so a
reader never observes a half-written file. Any ``OSError`` is re-raised as
:class:`~devforge.errors.PersistenceError`.
"""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional

from .devforge_logging import log_error_with_context, log_performance, observability_hooks
from .errors import PersistenceError, ValidationError
from .models import Checkpoint, Project

logger = logging.getLogger("devforge.workspace")

_CHECKPOINT_FILE = re.compile(r"^CP-(\d{4,})\.json$")


class Workspace:
    """Manage DevForge project directories and their persisted state."""

    STATE_DIR = ".devforge"

    def __init__(self, root: Path | str):
        """Initialize workspace with the given projects root directory."""
        self.root = Path(root).expanduser().resolve()
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            log_error_with_context(e, {"operation": "workspace_init", "root": str(self.root)})
            raise PersistenceError(f"Could not initialize workspace at {self.root}: {e}") from e

        logger.info(f"Workspace initialized at {self.root}")
        observability_hooks.log_workflow_event("workspace_initialized", root=str(self.root))

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def project_dir(self, project_name: str) -> Path:
        """Directory holding everything written for ``project_name``."""
        name = (project_name or "").strip()
        if not name or name in {".", ".."} or re.search(r"[\\/\x00]", name):
            raise ValidationError(
                f"Invalid project name {project_name!r}: use a non-empty name without path separators",
                next_step="start_project",
            )
        return self.root / name

    def state_dir(self, project_name: str) -> Path:
        return self.project_dir(project_name) / self.STATE_DIR

    def state_path(self, project_name: str) -> Path:
        return self.state_dir(project_name) / "state.json"

    def checkpoints_dir(self, project_name: str) -> Path:
        return self.state_dir(project_name) / "checkpoints"

    def continuation_prompt_path(self, project_name: str) -> Path:
        return self.state_dir(project_name) / "continuation-prompt.txt"

    # ------------------------------------------------------------------
    # Primitive writes
    # ------------------------------------------------------------------

    def mkdir(self, path: Path) -> Path:
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(f"Could not create directory {path}: {e}") from e
        return path

    def write_text(self, project_name: str, relative_path: str, content: str) -> Path:
        """Atomically write ``content`` under the project directory."""
        project_dir = self.project_dir(project_name)
        path = (project_dir / relative_path).resolve()
        if project_dir.resolve() not in path.parents:
            raise ValidationError(f"Refusing to write outside the project directory: {relative_path}")

        self.mkdir(path.parent)
        tmp_name: Optional[str] = None
        try:
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", delete=False
            ) as handle:
                tmp_name = handle.name
                handle.write(content)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, path)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            log_error_with_context(e, {"operation": "write_text", "path": str(path)})
            raise PersistenceError(f"Failed to write {path}: {e}") from e

        logger.debug(f"Wrote {len(content)} characters to {path}")
        return path

    def write_json(self, project_name: str, relative_path: str, data: Any) -> Path:
        return self.write_text(project_name, relative_path, json.dumps(data, indent=2) + "\n")

    def write_files(self, project_name: str, files: Dict[str, str]) -> List[str]:
        """Write a batch of ``relative_path -> content`` files, returning their paths."""
        return [str(self.write_text(project_name, rel, content)) for rel, content in files.items()]

    # ------------------------------------------------------------------
    # Project state
    # ------------------------------------------------------------------

    @log_performance("save_state")
    def save_state(self, project: Project) -> Path:
        """Persist the full project snapshot used to resume after a restart."""
        return self.write_json(project.name, f"{self.STATE_DIR}/state.json", project.to_dict())

    def load_state(self, project_name: str) -> Optional[Project]:
        """Load a project snapshot, or ``None`` when nothing was persisted."""
        path = self.state_path(project_name)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return Project.from_dict(data)
        except (OSError, ValueError, KeyError) as e:
            log_error_with_context(e, {"operation": "load_state", "path": str(path)})
            raise PersistenceError(f"Persisted state at {path} is unreadable: {e}") from e

    def list_persisted_projects(self) -> List[str]:
        """Names of projects that have a persisted state snapshot."""
        return sorted(
            path.parent.parent.name for path in self.root.glob(f"*/{self.STATE_DIR}/state.json")
        )

    # ------------------------------------------------------------------
    # Checkpoint log
    # ------------------------------------------------------------------

    def append_checkpoint(self, project_name: str, checkpoint: Checkpoint) -> Path:
        return self.write_json(
            project_name,
            f"{self.STATE_DIR}/checkpoints/{checkpoint.id}.json",
            checkpoint.to_dict(),
        )

    def list_checkpoints(self, project_name: str) -> List[Checkpoint]:
        """All persisted checkpoints in creation order."""
        directory = self.checkpoints_dir(project_name)
        if not directory.is_dir():
            return []
        entries = []
        for path in directory.iterdir():
            match = _CHECKPOINT_FILE.match(path.name)
            if match:
                entries.append((int(match.group(1)), path))
        checkpoints = []
        for _, path in sorted(entries):
            try:
                checkpoints.append(Checkpoint.from_dict(json.loads(path.read_text(encoding="utf-8"))))
            except (OSError, ValueError, KeyError) as e:
                raise PersistenceError(f"Checkpoint file {path} is unreadable: {e}") from e
        return checkpoints

    def archive_previous_run(self, project_name: str) -> Optional[Path]:
        """Move an earlier run's state and checkpoint log under ``.devforge/archive/``.

        Returns the archive directory, or ``None`` when nothing was persisted
        for ``project_name``. Generated documents are left in place; the next
        run overwrites them.
        """
        state_dir = self.state_dir(project_name)
        leftovers = [
            path
            for path in (self.state_path(project_name), self.checkpoints_dir(project_name),
                         self.continuation_prompt_path(project_name))
            if path.exists()
        ]
        if not leftovers:
            return None

        archive_root = state_dir / "archive"
        run_number = len(list(archive_root.glob("run-*"))) + 1 if archive_root.is_dir() else 1
        target = self.mkdir(archive_root / f"run-{run_number:03d}")
        try:
            for path in leftovers:
                os.replace(path, target / path.name)
        except OSError as e:
            log_error_with_context(e, {"operation": "archive_previous_run", "path": str(target)})
            raise PersistenceError(f"Could not archive the previous run of {project_name}: {e}") from e

        logger.info(f"Archived previous run of {project_name} to {target}")
        return target

    def load_continuation_prompt(self, project_name: str) -> Optional[str]:
        path = self.continuation_prompt_path(project_name)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")
