"""Phase state machine for DevForge projects.

Commands are gated by the presence of the artifacts they depend on rather
than by strict phase equality. A human driving the workflow may re-issue a
later command (asking the frontend questions again, regenerating the API
tests) without being forced back through earlier phases. The table below is
the single place that pins which artifacts each command needs.

One gate is stricter than artifact presence: approve_architecture is refused
once a Spec-Kit exists, so the Spec-Kit and its task progress are created
exactly once per project.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple, Type

from .errors import PreconditionError, ProjectExistsError, ProjectNotFoundError, ValidationError
from .models import ArtifactKind, Phase, Project


@dataclass(frozen=True, slots=True)
class Requirement:
    """A named artifact-presence check with the message shown when it fails."""

    name: str
    check: Callable[[Project], bool]
    message: str
    next_step: str
    error: Type[PreconditionError] = PreconditionError


HAS_DECISION_MATRIX = Requirement(
    name="decision_matrix",
    check=lambda project: project.decision_matrix is not None,
    message="Project not started. Call start_project first.",
    next_step="start_project",
)

ARCHITECTURE_OPEN = Requirement(
    name="architecture_open",
    check=lambda project: project.spec_kit is None,
    message="Architecture already approved and Spec-Kit generated. Call get_workflow_status for the next step.",
    next_step="get_workflow_status",
)

HAS_SPEC_KIT = Requirement(
    name="spec_kit",
    check=lambda project: project.spec_kit is not None,
    message="Spec-Kit not generated. Call approve_architecture first.",
    next_step="approve_architecture",
)

HAS_PROGRESS = Requirement(
    name="progress",
    check=lambda project: project.progress is not None,
    message="Progress state not initialized. Call approve_architecture first.",
    next_step="approve_architecture",
)

HAS_BDD_TESTS = Requirement(
    name="bdd_tests",
    check=lambda project: project.bdd_tests_generated,
    message="BDD tests not generated. Call generate_bdd_tests first.",
    next_step="generate_bdd_tests",
)


@dataclass(frozen=True, slots=True)
class PhaseTransition:
    """One row of the transition table."""

    command: str
    requires: Tuple[Requirement, ...] = ()
    target: Optional[Phase] = None
    completes: Tuple[Phase, ...] = ()
    records: Optional[ArtifactKind] = None
    needs_project: bool = True
    # approve_architecture reports a missing project as "not started"
    missing_project_message: Optional[str] = None


TRANSITIONS: Dict[str, PhaseTransition] = {
    "start_project": PhaseTransition(
        command="start_project",
        target=Phase.DECISION_MATRIX,
        completes=(Phase.REQUIREMENTS,),
        needs_project=False,
    ),
    "approve_architecture": PhaseTransition(
        command="approve_architecture",
        requires=(HAS_DECISION_MATRIX, ARCHITECTURE_OPEN),
        target=Phase.BACKEND_DEV,
        completes=(Phase.DECISION_MATRIX, Phase.SPEC_KIT),
        missing_project_message=HAS_DECISION_MATRIX.message,
    ),
    "generate_api_tests": PhaseTransition(
        command="generate_api_tests",
        requires=(HAS_SPEC_KIT,),
        target=Phase.API_TESTING,
        completes=(Phase.BACKEND_DEV,),
        records=ArtifactKind.POSTMAN,
    ),
    "ask_frontend_questions": PhaseTransition(command="ask_frontend_questions"),
    "generate_frontend_prompt": PhaseTransition(
        command="generate_frontend_prompt",
        requires=(HAS_SPEC_KIT,),
        target=Phase.FRONTEND_PROMPT,
        completes=(Phase.API_TESTING,),
        records=ArtifactKind.FRONTEND_PROMPT,
    ),
    "generate_bdd_tests": PhaseTransition(
        command="generate_bdd_tests",
        requires=(HAS_SPEC_KIT,),
        target=Phase.BDD_TESTING,
        completes=(Phase.FRONTEND_INTEGRATION,),
        records=ArtifactKind.BDD_TESTS,
    ),
    "create_checkpoint": PhaseTransition(command="create_checkpoint", requires=(HAS_PROGRESS,)),
    "complete_task": PhaseTransition(command="complete_task", requires=(HAS_PROGRESS,)),
    "get_workflow_status": PhaseTransition(command="get_workflow_status"),
    "finalize_project": PhaseTransition(
        command="finalize_project",
        requires=(HAS_BDD_TESTS, HAS_PROGRESS),
        target=Phase.COMPLETE,
        completes=(Phase.BDD_TESTING,),
    ),
    "check_knowledge_base": PhaseTransition(command="check_knowledge_base", needs_project=False),
    "generate_ui_blueprint": PhaseTransition(command="generate_ui_blueprint", needs_project=False),
}


def get_transition(command: str) -> PhaseTransition:
    try:
        return TRANSITIONS[command]
    except KeyError:
        raise ValidationError(f"No phase transition defined for command '{command}'") from None


def check_precondition(command: str, project: Optional[Project], project_name: str = "") -> None:
    """Raise if ``command`` may not run against ``project`` right now.

    ``project`` is ``None`` when no project with ``project_name`` is
    registered. Nothing is mutated.
    """
    transition = get_transition(command)

    if command == "start_project":
        if project is not None:
            raise ProjectExistsError(
                f"Project '{project_name or project.name}' is already active "
                f"(phase: {project.current_phase.value}). Call get_workflow_status to continue it."
            )
        return

    if project is None:
        if not transition.needs_project:
            return
        if transition.missing_project_message:
            raise PreconditionError(transition.missing_project_message, next_step="start_project")
        raise ProjectNotFoundError(
            f"Project '{project_name}' not found. Call start_project first, "
            "or resume_project to reload it from disk."
        )

    for requirement in transition.requires:
        if not requirement.check(project):
            raise requirement.error(requirement.message, next_step=requirement.next_step)


def apply_transition(
    command: str, project: Project, paths: Optional[List[str]] = None
) -> Tuple[Phase, Phase]:
    """Apply the effect of ``command`` to a staged project.

    ``current_phase`` only ever moves forward in documentation order, and a
    phase already listed in ``completed_phases`` is not appended twice.
    Returns the ``(before, after)`` phases.
    """
    transition = get_transition(command)
    before = project.current_phase

    for phase in transition.completes:
        if phase not in project.completed_phases:
            project.completed_phases.append(phase)

    if transition.target is not None and transition.target.order > project.current_phase.order:
        project.current_phase = transition.target

    if transition.records is not None:
        project.artifacts.record(transition.records, paths)

    project.touch()
    return before, project.current_phase


def next_command(project: Optional[Project]) -> str:
    """The command the user should issue next for ``project``."""
    if project is None or project.decision_matrix is None:
        return "start_project"
    # finalize_project does not require the API or frontend artifacts
    if project.current_phase is Phase.COMPLETE:
        return "list_projects"
    if project.spec_kit is None:
        return "approve_architecture"
    if not project.postman_generated:
        return "generate_api_tests"
    if not project.frontend_prompt_generated:
        return "ask_frontend_questions"
    if not project.bdd_tests_generated:
        return "generate_bdd_tests"
    return "finalize_project"


# ---------------------------------------------------------------------------
# Workflow guide
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class WorkflowStep:
    """Represents a single step in the DevForge workflow."""

    step_number: int
    phase: Phase
    tool_name: str
    description: str
    prerequisites: List[str] = field(default_factory=list)
    expected_output: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        """Convert to dictionary representation."""
        return {
            "step_number": self.step_number,
            "phase": self.phase.value,
            "tool_name": self.tool_name,
            "description": self.description,
            "prerequisites": list(self.prerequisites),
            "expected_output": self.expected_output,
        }


WORKFLOW_STEPS = [
    WorkflowStep(
        step_number=1,
        phase=Phase.REQUIREMENTS,
        tool_name="check_knowledge_base",
        description="Optionally look up earlier research about the project",
        expected_output="Relevant notebook excerpts with citations, or suggestions",
    ),
    WorkflowStep(
        step_number=2,
        phase=Phase.DECISION_MATRIX,
        tool_name="start_project",
        description="Register the project and generate the architecture decision matrix",
        expected_output="Decision matrix questions",
    ),
    WorkflowStep(
        step_number=3,
        phase=Phase.SPEC_KIT,
        tool_name="approve_architecture",
        description="Answer the decision matrix to generate the Spec-Kit",
        prerequisites=["start_project"],
        expected_output="docs/CONSTITUTION.md, SPECIFICATION.md, TECHNICAL_PLAN.md, TASKS.md",
    ),
    WorkflowStep(
        step_number=4,
        phase=Phase.BACKEND_DEV,
        tool_name="complete_task, create_checkpoint",
        description="Implement the backend tasks, checkpointing progress along the way",
        prerequisites=["approve_architecture"],
        expected_output="Checkpoints under .devforge/checkpoints/ and PROJECT.poml",
    ),
    WorkflowStep(
        step_number=5,
        phase=Phase.API_TESTING,
        tool_name="generate_api_tests",
        description="Generate the Postman collection and environments",
        prerequisites=["approve_architecture"],
        expected_output="postman/collection.json and docs/API_TESTING_GUIDE.md",
    ),
    WorkflowStep(
        step_number=6,
        phase=Phase.FRONTEND_PROMPT,
        tool_name="ask_frontend_questions, generate_frontend_prompt",
        description="Collect design preferences and generate the UI builder prompt",
        prerequisites=["approve_architecture"],
        expected_output="docs/FRONTEND_PROMPT.md",
    ),
    WorkflowStep(
        step_number=7,
        phase=Phase.FRONTEND_INTEGRATION,
        tool_name="generate_ui_blueprint",
        description="Optionally generate an A2UI blueprint for the screens",
        expected_output="a2ui/blueprint.json and a2ui/messages.jsonl",
    ),
    WorkflowStep(
        step_number=8,
        phase=Phase.BDD_TESTING,
        tool_name="generate_bdd_tests",
        description="Generate Gherkin features and step definitions",
        prerequisites=["approve_architecture"],
        expected_output="tests/features/*.feature and cucumber.js",
    ),
    WorkflowStep(
        step_number=9,
        phase=Phase.COMPLETE,
        tool_name="finalize_project",
        description="Write the final checkpoint and mark the project complete",
        prerequisites=["generate_bdd_tests"],
        expected_output="Final checkpoint and continuation prompt",
    ),
]
