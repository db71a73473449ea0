"""Checkpoint creation, continuation prompts and POML export.

A checkpoint closes the ledger's current window: it records which task ids
were completed since the previous checkpoint, refreshes the project's
progress snapshot and derives the continuation prompt a fresh session uses
to pick the work back up.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional
from xml.sax.saxutils import escape, quoteattr

from .errors import PreconditionError
from .models import Checkpoint, Project, utc_now
from .phases import HAS_PROGRESS, next_command
from .workspace import Workspace

logger = logging.getLogger("devforge.checkpoints")

NEXT_TASKS_IN_PROMPT = 5


def compute_progress(project: Project) -> float:
    """Percent of planned tasks completed, capped at 100."""
    total = project.total_tasks
    if total <= 0:
        return 0.0
    return round(min(100.0, project.ledger.tasks_completed / total * 100), 1)


def create_checkpoint(
    project: Project,
    completed_task_ids: Iterable[str] = (),
    current_task_id: Optional[str] = None,
    issues: Iterable[str] = (),
) -> Checkpoint:
    """Record a checkpoint on a staged project and return it.

    ``completed_task_ids`` are added to the ledger as a batch before the
    window is closed, so the checkpoint delta holds both those ids and any
    recorded one at a time through ``complete_task``.
    """
    if project.progress is None:
        raise PreconditionError(HAS_PROGRESS.message, next_step=HAS_PROGRESS.next_step)

    ids = [str(task_id) for task_id in completed_task_ids]
    if ids:
        project.ledger.record_batch(ids)

    new_issues = [issue for issue in issues if issue]
    project.issues.extend(new_issues)

    delta = project.ledger.mark_checkpoint()
    progress = project.progress
    progress.overall_progress = compute_progress(project)
    progress.total_tasks = project.total_tasks

    checkpoint = Checkpoint(
        id=progress.next_checkpoint_id(),
        timestamp=utc_now(),
        phase=project.current_phase,
        completed_task_ids=tuple(delta),
        current_task_id=current_task_id,
        issues=tuple(new_issues),
        tasks_completed=project.ledger.tasks_completed,
        overall_progress=progress.overall_progress,
    )

    progress.checkpoint_count += 1
    progress.latest_checkpoint = checkpoint
    progress.updated_at = checkpoint.timestamp
    progress.continuation_prompt = build_continuation_prompt(project, checkpoint)
    project.touch()

    logger.debug(f"Checkpoint {checkpoint.id} staged for {project.name} with {len(delta)} task(s)")
    return checkpoint


def build_continuation_prompt(project: Project, checkpoint: Optional[Checkpoint] = None) -> str:
    """Natural-language summary a new session can resume from."""
    checkpoint = checkpoint or (project.progress.latest_checkpoint if project.progress else None)
    overall = project.progress.overall_progress if project.progress else compute_progress(project)
    last_task = project.ledger.last_completed_task_id or "none yet"

    lines = [
        f"# Continue DevForge project: {project.name}",
        "",
        f"You are resuming work on '{project.name}' ({project.project_type}): {project.description}",
        "",
        "## Where things stand",
        f"- Current phase: {project.current_phase.value}",
        f"- Progress: {overall:.1f}% ({project.ledger.tasks_completed}/{project.total_tasks} tasks)",
        f"- Last completed task: {last_task}",
    ]
    if checkpoint is not None:
        lines.append(f"- Latest checkpoint: {checkpoint.id} at {checkpoint.timestamp}")
        if checkpoint.current_task_id:
            lines.append(f"- Task in progress at checkpoint: {checkpoint.current_task_id}")
    completed = ", ".join(phase.value for phase in project.completed_phases) or "none"
    lines.append(f"- Completed phases: {completed}")

    lines.extend(["", "## Outstanding issues"])
    if project.issues:
        lines.extend(f"- {issue}" for issue in project.issues)
    else:
        lines.append("- None recorded")

    upcoming = project.open_tasks(limit=NEXT_TASKS_IN_PROMPT)
    if upcoming:
        lines.extend(["", "## Next tasks"])
        lines.extend(f"- {task.id}: {task.title} ({task.type}, {task.priority})" for task in upcoming)

    lines.extend([
        "",
        "## How to continue",
        f"Call get_workflow_status for '{project.name}', then {next_command(project)}.",
        "Record finished work with complete_task and checkpoint with create_checkpoint.",
    ])
    return "\n".join(lines) + "\n"


def export_poml(project: Project) -> str:
    """Render the POML progress snapshot written to ``PROJECT.poml``."""
    progress = project.progress
    done = set(project.ledger.completed_task_ids)
    lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        "<poml>",
        f"  <project name={quoteattr(project.name)} type={quoteattr(project.project_type)}"
        f" phase={quoteattr(project.current_phase.value)} updated={quoteattr(project.updated_at)}>",
        f"    <description>{escape(project.description)}</description>",
        "  </project>",
    ]
    if progress is not None:
        lines.append(
            f'  <progress overall="{progress.overall_progress:.1f}"'
            f' tasks-completed="{project.ledger.tasks_completed}"'
            f' total-tasks="{progress.total_tasks}"'
            f' checkpoints="{progress.checkpoint_count}"/>'
        )
        if progress.latest_checkpoint is not None:
            latest = progress.latest_checkpoint
            lines.append(f"  <checkpoint id={quoteattr(latest.id)} timestamp={quoteattr(latest.timestamp)}/>")

    lines.append("  <phases>")
    lines.extend(f"    <phase>{phase.value}</phase>" for phase in project.completed_phases)
    lines.append("  </phases>")

    if project.spec_kit is not None:
        lines.append("  <tasks>")
        for task in project.spec_kit.tasks:
            status = "done" if task.id in done else "open"
            lines.append(
                f"    <task id={quoteattr(task.id)} status=\"{status}\" type={quoteattr(task.type)}"
                f" priority={quoteattr(task.priority)}>{escape(task.title)}</task>"
            )
        lines.append("  </tasks>")

    if project.issues:
        lines.append("  <issues>")
        lines.extend(f"    <issue>{escape(issue)}</issue>" for issue in project.issues)
        lines.append("  </issues>")

    lines.append("</poml>")
    return "\n".join(lines) + "\n"


class CheckpointWriter:
    """Persist checkpoints and the files derived from them."""

    def __init__(self, workspace: Workspace):
        self.workspace = workspace

    def persist(self, project: Project, checkpoint: Checkpoint) -> List[str]:
        """Write the checkpoint log entry, POML snapshot, continuation prompt and state.

        Raises :class:`~devforge.errors.PersistenceError` if any write fails;
        the caller then discards its staged project. A retry rewrites the
        same checkpoint id because the registered project never advanced
        its checkpoint count.
        """
        prompt = project.progress.continuation_prompt if project.progress else ""
        paths = [
            self.workspace.append_checkpoint(project.name, checkpoint),
            self.workspace.write_text(project.name, "PROJECT.poml", export_poml(project)),
            self.workspace.write_text(
                project.name, f"{Workspace.STATE_DIR}/continuation-prompt.txt",
                prompt or build_continuation_prompt(project, checkpoint),
            ),
            self.workspace.save_state(project),
        ]
        logger.info(f"Checkpoint {checkpoint.id} persisted for {project.name}")
        return [str(path) for path in paths]
