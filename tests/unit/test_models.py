"""Unit tests for DevForge data models.

This module tests the project aggregate, phase ordering, decision matrix
answers and the serialization used for persisted state.
"""

import pytest

from devforge.models import (
    ArtifactKind,
    ArtifactSet,
    Checkpoint,
    Constitution,
    DecisionAnswer,
    DecisionMatrix,
    DecisionQuestion,
    Phase,
    PHASE_ORDER,
    ProgressState,
    Project,
    SpecKit,
    Specification,
    Task,
    TechnicalPlan,
    utc_now,
)


def _spec_kit(task_count=3):
    return SpecKit(
        constitution=Constitution(project_name="demo", vision="A demo."),
        specification=Specification(overview="Demo overview"),
        technical_plan=TechnicalPlan(pattern="Monolith"),
        tasks=[Task(id=f"T{i:03d}", title=f"Task {i}", type="backend", estimated_hours=2.0) for i in range(1, task_count + 1)],
    )


class TestPhase:
    """Test cases for the Phase enum."""

    def test_documentation_order(self):
        assert PHASE_ORDER[0] is Phase.REQUIREMENTS
        assert PHASE_ORDER[-1] is Phase.COMPLETE
        assert Phase.SPEC_KIT.order < Phase.BACKEND_DEV.order < Phase.API_TESTING.order

    def test_values_are_strings(self):
        assert Phase("api_testing") is Phase.API_TESTING
        assert Phase.BDD_TESTING == "bdd_testing"

    def test_utc_now_has_z_suffix(self):
        assert utc_now().endswith("Z")


class TestArtifactSet:
    """Test cases for artifact presence tracking."""

    def test_record_and_has(self):
        artifacts = ArtifactSet()
        assert not artifacts.has(ArtifactKind.POSTMAN)

        entry = artifacts.record(ArtifactKind.POSTMAN, ["/tmp/collection.json"])

        assert artifacts.has(ArtifactKind.POSTMAN)
        assert artifacts.get(ArtifactKind.POSTMAN) is entry
        assert entry.paths == ["/tmp/collection.json"]

    def test_round_trip(self):
        artifacts = ArtifactSet()
        artifacts.record(ArtifactKind.BDD_TESTS, ["a.feature"])

        restored = ArtifactSet.from_dict(artifacts.to_dict())

        assert restored.has(ArtifactKind.BDD_TESTS)
        assert restored.get(ArtifactKind.BDD_TESTS).paths == ["a.feature"]


class TestDecisionMatrix:
    """Test cases for decision matrix answers."""

    def test_answer_accepts_wire_and_stored_keys(self):
        assert DecisionAnswer.from_dict({"questionId": "arch_01", "answer": "Monolith"}).question_id == "arch_01"
        assert DecisionAnswer.from_dict({"question_id": "arch_01", "answer": "Monolith"}).answer == "Monolith"

    @pytest.mark.parametrize("payload", [{"answer": "Monolith"}, {"questionId": "arch_01"}, {"questionId": "arch_01", "answer": ""}])
    def test_incomplete_answer_rejected(self, payload):
        with pytest.raises(ValueError):
            DecisionAnswer.from_dict(payload)

    def test_answer_for(self):
        matrix = DecisionMatrix(
            project_type="api",
            description="",
            questions=[DecisionQuestion(id="arch_01", category="architecture", question="?", options=["Monolith"])],
            answers=[DecisionAnswer("arch_01", "Monolith")],
        )

        assert matrix.answer_for("arch_01") == "Monolith"
        assert matrix.answer_for("data_01") is None


class TestSpecKit:
    """Test cases for the Spec-Kit bundle."""

    def test_totals(self):
        spec_kit = _spec_kit(3)

        assert spec_kit.total_estimated_hours == 6.0
        assert spec_kit.tasks_by_type() == {"backend": 3}

    def test_tasks_are_immutable(self):
        task = _spec_kit(1).tasks[0]
        with pytest.raises(AttributeError):
            task.title = "changed"


class TestProgressState:
    """Test cases for ProgressState."""

    def test_next_checkpoint_id(self):
        progress = ProgressState(project_name="demo", total_tasks=3)
        assert progress.next_checkpoint_id() == "CP-0001"

        progress.checkpoint_count = 41
        assert progress.next_checkpoint_id() == "CP-0042"

    def test_round_trip_with_latest_checkpoint(self):
        checkpoint = Checkpoint(
            id="CP-0001",
            timestamp=utc_now(),
            phase=Phase.BACKEND_DEV,
            completed_task_ids=("T001",),
            tasks_completed=1,
            overall_progress=33.3,
        )
        progress = ProgressState(project_name="demo", total_tasks=3, checkpoint_count=1, latest_checkpoint=checkpoint)

        restored = ProgressState.from_dict(progress.to_dict())

        assert restored.latest_checkpoint == checkpoint
        assert restored.checkpoint_count == 1


class TestProject:
    """Test cases for the Project aggregate."""

    def test_defaults(self):
        project = Project(name="demo", project_type="api", description="", requirements=["CRUD todos"])

        assert project.current_phase is Phase.DECISION_MATRIX
        assert project.completed_phases == [Phase.REQUIREMENTS]
        assert project.total_tasks == 0
        assert not project.postman_generated
        assert project.open_tasks() == []

    def test_artifact_flags_follow_artifact_set(self):
        project = Project(name="demo", project_type="api", description="", requirements=[])
        project.artifacts.record(ArtifactKind.FRONTEND_PROMPT)

        assert project.frontend_prompt_generated
        assert not project.bdd_tests_generated

    def test_open_tasks_excludes_ledger_ids(self):
        project = Project(name="demo", project_type="api", description="", requirements=[], spec_kit=_spec_kit(3))
        project.ledger.record_completion("T002")

        assert [t.id for t in project.open_tasks()] == ["T001", "T003"]
        assert [t.id for t in project.open_tasks(limit=1)] == ["T001"]

    def test_round_trip(self):
        project = Project(
            name="demo",
            project_type="api",
            description="Demo project",
            requirements=["CRUD todos"],
            current_phase=Phase.API_TESTING,
            spec_kit=_spec_kit(2),
            progress=ProgressState(project_name="demo", total_tasks=2),
        )
        project.artifacts.record(ArtifactKind.POSTMAN, ["postman/collection.json"])
        project.ledger.record_completion("T001")
        project.issues.append("Flaky test")

        restored = Project.from_dict(project.to_dict())

        assert restored.to_dict() == project.to_dict()
        assert restored.current_phase is Phase.API_TESTING
        assert restored.postman_generated
