"""Unit tests for the phase state machine.

These pin the exact precondition set of every command, since gating is by
artifact presence rather than by strict phase equality.
"""

import pytest

from devforge.errors import PreconditionError, ProjectExistsError, ProjectNotFoundError, ValidationError
from devforge.models import ArtifactKind, Constitution, DecisionMatrix, Phase, ProgressState, Project, SpecKit, Specification, TechnicalPlan
from devforge.phases import TRANSITIONS, WORKFLOW_STEPS, apply_transition, check_precondition, get_transition, next_command


def _project(phase=Phase.DECISION_MATRIX, matrix=True, spec_kit=False, progress=False):
    project = Project(name="demo", project_type="api", description="", requirements=["CRUD todos"], current_phase=phase)
    if matrix:
        project.decision_matrix = DecisionMatrix(project_type="api", description="", questions=[])
    if spec_kit:
        project.spec_kit = SpecKit(
            constitution=Constitution(project_name="demo", vision=""),
            specification=Specification(overview=""),
            technical_plan=TechnicalPlan(pattern="Monolith"),
        )
    if progress:
        project.progress = ProgressState(project_name="demo", total_tasks=0)
    return project


class TestPreconditionTable:
    """Pin the requirement names of every command."""

    def test_requirement_names(self):
        requires = {command: [r.name for r in t.requires] for command, t in TRANSITIONS.items()}

        assert requires == {
            "start_project": [],
            "approve_architecture": ["decision_matrix", "architecture_open"],
            "generate_api_tests": ["spec_kit"],
            "ask_frontend_questions": [],
            "generate_frontend_prompt": ["spec_kit"],
            "generate_bdd_tests": ["spec_kit"],
            "create_checkpoint": ["progress"],
            "complete_task": ["progress"],
            "get_workflow_status": [],
            "finalize_project": ["bdd_tests", "progress"],
            "check_knowledge_base": [],
            "generate_ui_blueprint": [],
        }

    def test_unknown_command(self):
        with pytest.raises(ValidationError):
            get_transition("launch_rocket")


class TestCheckPrecondition:
    """Test cases for check_precondition."""

    def test_start_project_rejects_existing_project(self):
        with pytest.raises(ProjectExistsError) as exc:
            check_precondition("start_project", _project(), "demo")
        assert exc.value.next_step == "get_workflow_status"

    def test_start_project_allows_new_name(self):
        check_precondition("start_project", None, "demo")

    def test_approve_without_project_is_not_started(self):
        with pytest.raises(PreconditionError) as exc:
            check_precondition("approve_architecture", None, "todo-app")

        assert not isinstance(exc.value, ProjectNotFoundError)
        assert "Project not started" in exc.value.message
        assert exc.value.next_step == "start_project"

    def test_other_commands_report_missing_project(self):
        with pytest.raises(ProjectNotFoundError) as exc:
            check_precondition("generate_api_tests", None, "ghost")
        assert "ghost" in exc.value.message

    def test_no_project_needed_for_blueprint(self):
        check_precondition("generate_ui_blueprint", None, "anything")
        check_precondition("check_knowledge_base", None, "anything")

    def test_approve_locked_once_spec_kit_exists(self):
        with pytest.raises(PreconditionError) as exc:
            check_precondition("approve_architecture", _project(spec_kit=True, progress=True), "demo")
        assert exc.value.next_step == "get_workflow_status"

    @pytest.mark.parametrize("command", ["generate_api_tests", "generate_frontend_prompt", "generate_bdd_tests"])
    def test_generators_need_spec_kit(self, command):
        with pytest.raises(PreconditionError) as exc:
            check_precondition(command, _project(), "demo")
        assert exc.value.message == "Spec-Kit not generated. Call approve_architecture first."
        assert exc.value.next_step == "approve_architecture"

    @pytest.mark.parametrize("command", ["complete_task", "create_checkpoint"])
    def test_progress_commands_need_progress(self, command):
        with pytest.raises(PreconditionError) as exc:
            check_precondition(command, _project(), "demo")
        assert "Progress state not initialized" in exc.value.message

    def test_finalize_needs_bdd_tests(self):
        project = _project(phase=Phase.FRONTEND_PROMPT, spec_kit=True, progress=True)
        with pytest.raises(PreconditionError) as exc:
            check_precondition("finalize_project", project, "demo")
        assert exc.value.next_step == "generate_bdd_tests"

        project.artifacts.record(ArtifactKind.BDD_TESTS)
        check_precondition("finalize_project", project, "demo")

    def test_later_artifacts_may_be_regenerated(self):
        """Artifact gating lets a later command be re-issued from a later phase."""
        project = _project(phase=Phase.BDD_TESTING, spec_kit=True, progress=True)
        check_precondition("generate_api_tests", project, "demo")
        check_precondition("ask_frontend_questions", project, "demo")


class TestApplyTransition:
    """Test cases for apply_transition."""

    def test_approve_moves_to_backend_dev(self):
        project = _project()

        before, after = apply_transition("approve_architecture", project)

        assert (before, after) == (Phase.DECISION_MATRIX, Phase.BACKEND_DEV)
        assert project.completed_phases == [Phase.REQUIREMENTS, Phase.DECISION_MATRIX, Phase.SPEC_KIT]

    def test_artifact_recorded_with_paths(self):
        project = _project(phase=Phase.BACKEND_DEV, spec_kit=True)

        apply_transition("generate_api_tests", project, ["postman/collection.json"])

        assert project.postman_generated
        assert project.current_phase is Phase.API_TESTING
        assert project.artifacts.get(ArtifactKind.POSTMAN).paths == ["postman/collection.json"]

    def test_completed_phases_not_duplicated(self):
        project = _project(phase=Phase.BACKEND_DEV, spec_kit=True)

        apply_transition("generate_api_tests", project)
        apply_transition("generate_api_tests", project)

        assert project.completed_phases.count(Phase.BACKEND_DEV) == 1

    def test_phase_never_moves_backwards(self):
        project = _project(phase=Phase.BDD_TESTING, spec_kit=True)

        before, after = apply_transition("generate_api_tests", project)

        assert before is after is Phase.BDD_TESTING
        assert project.postman_generated

    def test_read_only_commands_leave_phase(self):
        project = _project()
        apply_transition("complete_task", project)
        assert project.current_phase is Phase.DECISION_MATRIX


class TestNextCommand:
    """Test cases for next_command."""

    def test_progression(self):
        assert next_command(None) == "start_project"

        project = _project()
        assert next_command(project) == "approve_architecture"

        project = _project(phase=Phase.BACKEND_DEV, spec_kit=True, progress=True)
        assert next_command(project) == "generate_api_tests"

        project.artifacts.record(ArtifactKind.POSTMAN)
        assert next_command(project) == "ask_frontend_questions"

        project.artifacts.record(ArtifactKind.FRONTEND_PROMPT)
        assert next_command(project) == "generate_bdd_tests"

        project.artifacts.record(ArtifactKind.BDD_TESTS)
        assert next_command(project) == "finalize_project"

        project.current_phase = Phase.COMPLETE
        assert next_command(project) == "list_projects"

    def test_complete_without_optional_artifacts(self):
        project = _project(phase=Phase.COMPLETE, spec_kit=True, progress=True)
        project.artifacts.record(ArtifactKind.BDD_TESTS)

        assert not project.postman_generated
        assert next_command(project) == "list_projects"


class TestWorkflowSteps:
    """Test cases for the workflow guide steps."""

    def test_steps_are_numbered_in_order(self):
        assert [step.step_number for step in WORKFLOW_STEPS] == list(range(1, len(WORKFLOW_STEPS) + 1))
        assert WORKFLOW_STEPS[-1].phase is Phase.COMPLETE

    def test_to_dict(self):
        data = WORKFLOW_STEPS[2].to_dict()
        assert data["tool_name"] == "approve_architecture"
        assert data["phase"] == "spec_kit"
        assert data["prerequisites"] == ["start_project"]
