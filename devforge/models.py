"""Data models for the DevForge workflow.

This module contains the core data structures used throughout DevForge:
the project aggregate, its phase tags, the decision matrix and spec-kit
artifacts, durable progress state and checkpoint records.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from .ledger import TaskLedger


def utc_now() -> str:
    """Current UTC time as an ISO-8601 string with a ``Z`` suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


class Phase(str, Enum):
    """Workflow phase tags, declared in documentation order."""

    REQUIREMENTS = "requirements"
    DECISION_MATRIX = "decision_matrix"
    SPEC_KIT = "spec_kit"
    BACKEND_DEV = "backend_dev"
    API_TESTING = "api_testing"
    FRONTEND_PROMPT = "frontend_prompt"
    FRONTEND_INTEGRATION = "frontend_integration"
    BDD_TESTING = "bdd_testing"
    COMPLETE = "complete"

    @property
    def order(self) -> int:
        return PHASE_ORDER.index(self)


PHASE_ORDER: List[Phase] = list(Phase)


class ArtifactKind(str, Enum):
    """Generated artifacts whose presence the workflow tracks."""

    POSTMAN = "postman"
    FRONTEND_PROMPT = "frontend_prompt"
    BDD_TESTS = "bdd_tests"


@dataclass(slots=True)
class ArtifactRecord:
    """Presence marker for one generated artifact."""

    kind: ArtifactKind
    generated_at: str = field(default_factory=utc_now)
    paths: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "kind": self.kind.value,
            "generated_at": self.generated_at,
            "paths": list(self.paths),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ArtifactRecord":
        """Create from dictionary representation."""
        return cls(
            kind=ArtifactKind(data["kind"]),
            generated_at=data.get("generated_at", utc_now()),
            paths=list(data.get("paths", [])),
        )


@dataclass(slots=True)
class ArtifactSet:
    """Generated artifacts keyed by kind.

    Entries are only ever added or refreshed, never removed, so presence of
    an artifact is monotonic for the lifetime of a project.
    """

    records: Dict[ArtifactKind, ArtifactRecord] = field(default_factory=dict)

    def record(self, kind: ArtifactKind, paths: Optional[List[str]] = None) -> ArtifactRecord:
        """Record (or refresh) a generated artifact."""
        entry = ArtifactRecord(kind=kind, paths=list(paths or []))
        self.records[kind] = entry
        return entry

    def has(self, kind: ArtifactKind) -> bool:
        return kind in self.records

    def get(self, kind: ArtifactKind) -> Optional[ArtifactRecord]:
        return self.records.get(kind)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {kind.value: record.to_dict() for kind, record in self.records.items()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ArtifactSet":
        """Create from dictionary representation."""
        records = {}
        for payload in (data or {}).values():
            record = ArtifactRecord.from_dict(payload)
            records[record.kind] = record
        return cls(records=records)


# ---------------------------------------------------------------------------
# Decision matrix
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class DecisionQuestion:
    """A single architecture question put to the user."""

    id: str
    category: str
    question: str
    type: str = "choice"  # 'choice', 'multi_choice', 'text'
    options: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "category": self.category,
            "question": self.question,
            "type": self.type,
            "options": list(self.options),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DecisionQuestion":
        """Create from dictionary representation."""
        return cls(
            id=data["id"],
            category=data["category"],
            question=data["question"],
            type=data.get("type", "choice"),
            options=list(data.get("options", [])),
        )


@dataclass(slots=True)
class DecisionAnswer:
    """User answer to a decision matrix question."""

    question_id: str
    answer: str

    def to_dict(self) -> Dict[str, str]:
        """Convert to dictionary representation."""
        return {"question_id": self.question_id, "answer": self.answer}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DecisionAnswer":
        """Create from dictionary representation.

        Accepts both the wire form (``questionId``) and the stored form
        (``question_id``).
        """
        question_id = data.get("question_id", data.get("questionId"))
        if not question_id or data.get("answer") in (None, ""):
            raise ValueError(f"Decision answer needs a questionId and an answer, got {data!r}")
        return cls(question_id=str(question_id), answer=str(data["answer"]))


@dataclass(slots=True)
class DecisionMatrix:
    """Architecture questions for a project plus the user's answers."""

    project_type: str
    description: str
    questions: List[DecisionQuestion]
    answers: List[DecisionAnswer] = field(default_factory=list)
    recommendation: str = ""

    def answer_for(self, question_id: str) -> Optional[str]:
        for answer in self.answers:
            if answer.question_id == question_id:
                return answer.answer
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "project_type": self.project_type,
            "description": self.description,
            "questions": [q.to_dict() for q in self.questions],
            "answers": [a.to_dict() for a in self.answers],
            "recommendation": self.recommendation,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DecisionMatrix":
        """Create from dictionary representation."""
        return cls(
            project_type=data["project_type"],
            description=data.get("description", ""),
            questions=[DecisionQuestion.from_dict(q) for q in data.get("questions", [])],
            answers=[DecisionAnswer.from_dict(a) for a in data.get("answers", [])],
            recommendation=data.get("recommendation", ""),
        )


# ---------------------------------------------------------------------------
# Spec-kit
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class Constitution:
    """Project vision, principles and constraints."""

    project_name: str
    vision: str
    principles: List[str] = field(default_factory=list)
    constraints: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "project_name": self.project_name,
            "vision": self.vision,
            "principles": list(self.principles),
            "constraints": list(self.constraints),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Constitution":
        """Create from dictionary representation."""
        return cls(
            project_name=data["project_name"],
            vision=data.get("vision", ""),
            principles=list(data.get("principles", [])),
            constraints=list(data.get("constraints", [])),
        )


@dataclass(slots=True)
class FunctionalRequirement:
    """One numbered functional requirement of the specification."""

    id: str
    title: str
    description: str
    priority: str = "medium"  # 'high', 'medium', 'low'
    acceptance_criteria: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "priority": self.priority,
            "acceptance_criteria": list(self.acceptance_criteria),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FunctionalRequirement":
        """Create from dictionary representation."""
        return cls(
            id=data["id"],
            title=data["title"],
            description=data.get("description", ""),
            priority=data.get("priority", "medium"),
            acceptance_criteria=list(data.get("acceptance_criteria", [])),
        )


@dataclass(slots=True)
class ApiEndpoint:
    """HTTP endpoint derived from a functional requirement."""

    method: str
    path: str
    description: str
    requirement_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "method": self.method,
            "path": self.path,
            "description": self.description,
            "requirement_id": self.requirement_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ApiEndpoint":
        """Create from dictionary representation."""
        return cls(
            method=data["method"],
            path=data["path"],
            description=data.get("description", ""),
            requirement_id=data.get("requirement_id"),
        )


@dataclass(slots=True)
class Specification:
    """Functional requirements and API design."""

    overview: str
    functional_requirements: List[FunctionalRequirement] = field(default_factory=list)
    api_endpoints: List[ApiEndpoint] = field(default_factory=list)
    non_functional: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "overview": self.overview,
            "functional_requirements": [r.to_dict() for r in self.functional_requirements],
            "api_endpoints": [e.to_dict() for e in self.api_endpoints],
            "non_functional": list(self.non_functional),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Specification":
        """Create from dictionary representation."""
        return cls(
            overview=data.get("overview", ""),
            functional_requirements=[
                FunctionalRequirement.from_dict(r) for r in data.get("functional_requirements", [])
            ],
            api_endpoints=[ApiEndpoint.from_dict(e) for e in data.get("api_endpoints", [])],
            non_functional=list(data.get("non_functional", [])),
        )


@dataclass(slots=True)
class TechnicalPlan:
    """Architecture pattern, layers and the chosen stack."""

    pattern: str
    layers: List[str] = field(default_factory=list)
    tech_stack: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "pattern": self.pattern,
            "layers": list(self.layers),
            "tech_stack": dict(self.tech_stack),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TechnicalPlan":
        """Create from dictionary representation."""
        return cls(
            pattern=data["pattern"],
            layers=list(data.get("layers", [])),
            tech_stack=dict(data.get("tech_stack", {})),
        )


@dataclass(frozen=True, slots=True)
class Task:
    """Planned unit of work. Completion is tracked by id in the ledger."""

    id: str
    title: str
    type: str  # 'setup', 'backend', 'testing', 'frontend', 'docs'
    priority: str = "medium"
    estimated_hours: float = 1.0
    requirement_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "title": self.title,
            "type": self.type,
            "priority": self.priority,
            "estimated_hours": self.estimated_hours,
            "requirement_id": self.requirement_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        """Create from dictionary representation."""
        return cls(
            id=data["id"],
            title=data["title"],
            type=data.get("type", "backend"),
            priority=data.get("priority", "medium"),
            estimated_hours=float(data.get("estimated_hours", 1.0)),
            requirement_id=data.get("requirement_id"),
        )


@dataclass(slots=True)
class SpecKit:
    """Planning bundle produced once per project."""

    constitution: Constitution
    specification: Specification
    technical_plan: TechnicalPlan
    tasks: List[Task] = field(default_factory=list)

    @property
    def total_estimated_hours(self) -> float:
        return sum(task.estimated_hours for task in self.tasks)

    def tasks_by_type(self) -> Dict[str, int]:
        """Count planned tasks per type tag."""
        counts: Dict[str, int] = {}
        for task in self.tasks:
            counts[task.type] = counts.get(task.type, 0) + 1
        return counts

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "constitution": self.constitution.to_dict(),
            "specification": self.specification.to_dict(),
            "technical_plan": self.technical_plan.to_dict(),
            "tasks": [task.to_dict() for task in self.tasks],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SpecKit":
        """Create from dictionary representation."""
        return cls(
            constitution=Constitution.from_dict(data["constitution"]),
            specification=Specification.from_dict(data["specification"]),
            technical_plan=TechnicalPlan.from_dict(data["technical_plan"]),
            tasks=[Task.from_dict(t) for t in data.get("tasks", [])],
        )


# ---------------------------------------------------------------------------
# Progress and checkpoints
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Checkpoint:
    """Immutable record of progress at a point in time."""

    id: str
    timestamp: str
    phase: Phase
    completed_task_ids: tuple[str, ...] = ()
    current_task_id: Optional[str] = None
    issues: tuple[str, ...] = ()
    tasks_completed: int = 0
    overall_progress: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "phase": self.phase.value,
            "completed_task_ids": list(self.completed_task_ids),
            "current_task_id": self.current_task_id,
            "issues": list(self.issues),
            "tasks_completed": self.tasks_completed,
            "overall_progress": self.overall_progress,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Checkpoint":
        """Create from dictionary representation."""
        return cls(
            id=data["id"],
            timestamp=data["timestamp"],
            phase=Phase(data["phase"]),
            completed_task_ids=tuple(data.get("completed_task_ids", [])),
            current_task_id=data.get("current_task_id"),
            issues=tuple(data.get("issues", [])),
            tasks_completed=int(data.get("tasks_completed", 0)),
            overall_progress=float(data.get("overall_progress", 0.0)),
        )


@dataclass(slots=True)
class ProgressState:
    """Durable progress snapshot, refreshed by every checkpoint."""

    project_name: str
    total_tasks: int
    overall_progress: float = 0.0
    checkpoint_count: int = 0
    latest_checkpoint: Optional[Checkpoint] = None
    continuation_prompt: str = ""
    updated_at: str = field(default_factory=utc_now)

    def next_checkpoint_id(self) -> str:
        return f"CP-{self.checkpoint_count + 1:04d}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "project_name": self.project_name,
            "total_tasks": self.total_tasks,
            "overall_progress": self.overall_progress,
            "checkpoint_count": self.checkpoint_count,
            "latest_checkpoint": self.latest_checkpoint.to_dict() if self.latest_checkpoint else None,
            "continuation_prompt": self.continuation_prompt,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProgressState":
        """Create from dictionary representation."""
        latest = data.get("latest_checkpoint")
        return cls(
            project_name=data["project_name"],
            total_tasks=int(data.get("total_tasks", 0)),
            overall_progress=float(data.get("overall_progress", 0.0)),
            checkpoint_count=int(data.get("checkpoint_count", 0)),
            latest_checkpoint=Checkpoint.from_dict(latest) if latest else None,
            continuation_prompt=data.get("continuation_prompt", ""),
            updated_at=data.get("updated_at", utc_now()),
        )


# ---------------------------------------------------------------------------
# Project aggregate
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class Project:
    """Root aggregate for one workflow run, keyed by project name."""

    name: str
    project_type: str
    description: str
    requirements: List[str]
    current_phase: Phase = Phase.DECISION_MATRIX
    completed_phases: List[Phase] = field(default_factory=lambda: [Phase.REQUIREMENTS])
    decision_matrix: Optional[DecisionMatrix] = None
    spec_kit: Optional[SpecKit] = None
    progress: Optional[ProgressState] = None
    artifacts: ArtifactSet = field(default_factory=ArtifactSet)
    ledger: TaskLedger = field(default_factory=TaskLedger)
    issues: List[str] = field(default_factory=list)
    created_at: str = field(default_factory=utc_now)
    updated_at: str = field(default_factory=utc_now)

    @property
    def postman_generated(self) -> bool:
        return self.artifacts.has(ArtifactKind.POSTMAN)

    @property
    def frontend_prompt_generated(self) -> bool:
        return self.artifacts.has(ArtifactKind.FRONTEND_PROMPT)

    @property
    def bdd_tests_generated(self) -> bool:
        return self.artifacts.has(ArtifactKind.BDD_TESTS)

    @property
    def total_tasks(self) -> int:
        return len(self.spec_kit.tasks) if self.spec_kit else 0

    def open_tasks(self, limit: Optional[int] = None) -> List[Task]:
        """Planned tasks whose id does not appear in the ledger."""
        if not self.spec_kit:
            return []
        done = set(self.ledger.completed_task_ids)
        remaining = [task for task in self.spec_kit.tasks if task.id not in done]
        return remaining[:limit] if limit is not None else remaining

    def touch(self) -> None:
        self.updated_at = utc_now()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "name": self.name,
            "project_type": self.project_type,
            "description": self.description,
            "requirements": list(self.requirements),
            "current_phase": self.current_phase.value,
            "completed_phases": [phase.value for phase in self.completed_phases],
            "decision_matrix": self.decision_matrix.to_dict() if self.decision_matrix else None,
            "spec_kit": self.spec_kit.to_dict() if self.spec_kit else None,
            "progress": self.progress.to_dict() if self.progress else None,
            "artifacts": self.artifacts.to_dict(),
            "ledger": self.ledger.to_dict(),
            "issues": list(self.issues),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Project":
        """Create from dictionary representation."""
        matrix = data.get("decision_matrix")
        spec_kit = data.get("spec_kit")
        progress = data.get("progress")
        return cls(
            name=data["name"],
            project_type=data.get("project_type", ""),
            description=data.get("description", ""),
            requirements=list(data.get("requirements", [])),
            current_phase=Phase(data.get("current_phase", Phase.DECISION_MATRIX.value)),
            completed_phases=[Phase(p) for p in data.get("completed_phases", [Phase.REQUIREMENTS.value])],
            decision_matrix=DecisionMatrix.from_dict(matrix) if matrix else None,
            spec_kit=SpecKit.from_dict(spec_kit) if spec_kit else None,
            progress=ProgressState.from_dict(progress) if progress else None,
            artifacts=ArtifactSet.from_dict(data.get("artifacts", {})),
            ledger=TaskLedger.from_dict(data.get("ledger", {})),
            issues=list(data.get("issues", [])),
            created_at=data.get("created_at", utc_now()),
            updated_at=data.get("updated_at", utc_now()),
        )
