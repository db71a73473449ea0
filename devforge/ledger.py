"""Task completion ledger.

The ledger is a counter plus an audit log of completed task identifiers. It
is not a source of truth for task state: identifiers are not
checked against the spec-kit task list, and duplicates are accepted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List


@dataclass(slots=True)
class TaskLedger:
    """Per-project completion counter and checkpoint bookkeeping."""

    tasks_completed: int = 0
    last_checkpoint_task: int = 0
    completed_task_ids: List[str] = field(default_factory=list)
    pending_task_ids: List[str] = field(default_factory=list)

    @property
    def tasks_since_checkpoint(self) -> int:
        """Number of completions recorded since the last checkpoint."""
        return self.tasks_completed - self.last_checkpoint_task

    @property
    def last_completed_task_id(self) -> str | None:
        return self.completed_task_ids[-1] if self.completed_task_ids else None

    def record_completion(self, task_id: str) -> int:
        """Record a single completed task and return tasks since checkpoint."""
        self.tasks_completed += 1
        self.completed_task_ids.append(task_id)
        self.pending_task_ids.append(task_id)
        return self.tasks_since_checkpoint

    def record_batch(self, task_ids: Iterable[str]) -> int:
        """Record a batch of completions reported with a manual checkpoint."""
        ids = list(task_ids)
        self.tasks_completed += len(ids)
        self.completed_task_ids.extend(ids)
        self.pending_task_ids.extend(ids)
        return self.tasks_since_checkpoint

    def checkpoint_due(self, threshold: int) -> bool:
        return self.tasks_since_checkpoint >= threshold

    def mark_checkpoint(self) -> List[str]:
        """Close the current checkpoint window and return its task id delta."""
        delta = list(self.pending_task_ids)
        self.pending_task_ids.clear()
        self.last_checkpoint_task = self.tasks_completed
        return delta

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "tasks_completed": self.tasks_completed,
            "last_checkpoint_task": self.last_checkpoint_task,
            "completed_task_ids": list(self.completed_task_ids),
            "pending_task_ids": list(self.pending_task_ids),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TaskLedger":
        """Create from dictionary representation."""
        ledger = cls(
            tasks_completed=int(data.get("tasks_completed", 0)),
            last_checkpoint_task=int(data.get("last_checkpoint_task", 0)),
            completed_task_ids=list(data.get("completed_task_ids", [])),
            pending_task_ids=list(data.get("pending_task_ids", [])),
        )
        # A snapshot can never claim more checkpointed work than was completed.
        if ledger.last_checkpoint_task > ledger.tasks_completed:
            ledger.last_checkpoint_task = ledger.tasks_completed
        return ledger
