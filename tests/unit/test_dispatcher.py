"""Unit tests for command dispatch and report rendering."""

import json
from unittest.mock import patch

import pytest

from conftest import TODO_REQUIREMENTS
from devforge.errors import PreconditionError, UnknownCommandError, ValidationError
from devforge.reports import render_error, render_report

START_ARGS = {
    "project_name": "todo-app",
    "project_type": "api",
    "description": "A todo API",
    "requirements": TODO_REQUIREMENTS,
}


class TestExecute:
    """Test cases for CommandDispatcher.execute."""

    def test_all_commands_mapped(self, dispatcher):
        assert sorted(dispatcher.commands) == sorted([
            "start_project",
            "approve_architecture",
            "generate_api_tests",
            "ask_frontend_questions",
            "generate_frontend_prompt",
            "generate_bdd_tests",
            "create_checkpoint",
            "get_workflow_status",
            "complete_task",
            "check_knowledge_base",
            "generate_ui_blueprint",
            "resume_project",
            "finalize_project",
            "list_projects",
            "get_workflow_guide",
        ])

    def test_unknown_command(self, dispatcher):
        with pytest.raises(UnknownCommandError) as exc:
            dispatcher.execute("deploy_to_prod", {})
        assert exc.value.next_step == "get_workflow_guide"

    def test_bad_arguments(self, dispatcher):
        with pytest.raises(ValidationError) as exc:
            dispatcher.execute("start_project", {"project_name": "todo-app"})
        assert "Invalid arguments for start_project" in exc.value.message

    def test_returns_structured_result(self, dispatcher):
        result = dispatcher.execute("start_project", START_ARGS)
        assert result["phase"] == "decision_matrix"


class TestDispatch:
    """Test cases for CommandDispatcher.dispatch."""

    def test_success_report(self, dispatcher):
        report = dispatcher.dispatch("start_project", START_ARGS)

        assert report.startswith("Decision matrix generated with 6 questions.")
        assert "Phase: decision_matrix" in report
        assert "arch_01 [architecture]" in report
        assert "Next step: approve_architecture" in report

    def test_unknown_command_is_error_text(self, dispatcher):
        report = dispatcher.dispatch("deploy_to_prod", {})

        assert report.startswith("Error: Unknown command 'deploy_to_prod'")
        assert "Next step: get_workflow_guide" in report

    def test_precondition_failure(self, dispatcher):
        report = dispatcher.dispatch(
            "approve_architecture",
            {"project_name": "todo-app", "decision_matrix_answers": [{"questionId": "arch_01", "answer": "Monolith"}]},
        )

        assert report == "Error: Project not started. Call start_project first.\nNext step: start_project\n"

    def test_unexpected_exception_is_rendered(self, dispatcher):
        dispatcher.dispatch("start_project", START_ARGS)
        dispatcher.dispatch(
            "approve_architecture",
            {"project_name": "todo-app", "decision_matrix_answers": [{"questionId": "arch_01", "answer": "Monolith"}]},
        )
        with patch.object(dispatcher.orchestrator.generators.bdd, "generate", side_effect=KeyError("features")):
            report = dispatcher.dispatch("generate_bdd_tests", {"project_name": "todo-app"})

        assert report == "Error: KeyError: 'features'\nNext step: get_workflow_status\n"
        assert not dispatcher.orchestrator.registry.get("todo-app").bdd_tests_generated

    def test_status_is_json(self, dispatcher):
        dispatcher.dispatch("start_project", START_ARGS)

        status = json.loads(dispatcher.dispatch("get_workflow_status", {"project_name": "todo-app"}))

        assert status["currentPhase"] == "decision_matrix"
        assert status["nextCommand"] == "approve_architecture"

    def test_guide_without_arguments(self, dispatcher):
        guide = json.loads(dispatcher.dispatch("get_workflow_guide"))
        assert guide["steps"][0]["step_number"] == 1


class TestRenderReport:
    """Test cases for render_report and render_error."""

    def test_generic_report(self):
        text = render_report("generate_bdd_tests", {
            "message": "BDD suite generated.",
            "phase": "bdd_testing",
            "files": ["/p/cucumber.js"],
            "next_suggested_step": "finalize_project",
            "workflow_tip": "Run the suite.",
        })

        assert text.splitlines() == [
            "BDD suite generated.",
            "Phase: bdd_testing",
            "",
            "Files written:",
            "  - /p/cucumber.js",
            "",
            "Next step: finalize_project",
            "Tip: Run the suite.",
        ]

    def test_complete_task_notes(self):
        text = render_report("complete_task", {
            "message": "Task T001 completed.",
            "tasks_completed": 1,
            "tasks_since_checkpoint": 1,
            "progress": 12.5,
            "notes": ["Checkpoint recommended soon"],
        })

        assert "Progress: 12.5%" in text
        assert "Note: Checkpoint recommended soon" in text

    def test_render_devforge_error(self):
        error = PreconditionError("Spec-Kit not generated.", next_step="approve_architecture")
        assert render_error(error, "get_workflow_status") == (
            "Error: Spec-Kit not generated.\nNext step: approve_architecture\n"
        )

    def test_render_foreign_error_uses_fallback(self):
        assert render_error(KeyError("x"), "get_workflow_guide") == "Error: KeyError: 'x'\nNext step: get_workflow_guide\n"
