"""Unit tests for checkpoint creation, continuation prompts and POML export."""

import json
import xml.etree.ElementTree as ET

import pytest

from devforge.checkpoints import CheckpointWriter, build_continuation_prompt, compute_progress, create_checkpoint, export_poml
from devforge.errors import PreconditionError
from devforge.models import (
    Constitution,
    DecisionAnswer,
    DecisionMatrix,
    DecisionQuestion,
    Phase,
    ProgressState,
    Project,
    SpecKit,
    Specification,
    Task,
    TechnicalPlan,
)


@pytest.fixture
def project():
    spec_kit = SpecKit(
        constitution=Constitution(project_name="demo", vision="A demo."),
        specification=Specification(overview="Demo"),
        technical_plan=TechnicalPlan(pattern="Monolith"),
        tasks=[Task(id=f"T{i:03d}", title=f"Task <{i}>", type="backend") for i in range(1, 5)],
    )
    return Project(
        name="demo",
        project_type="api",
        description="Demo & friends",
        requirements=["CRUD todos"],
        current_phase=Phase.BACKEND_DEV,
        completed_phases=[Phase.REQUIREMENTS, Phase.DECISION_MATRIX, Phase.SPEC_KIT],
        decision_matrix=DecisionMatrix(
            project_type="api",
            description="Demo & friends",
            questions=[DecisionQuestion(id="arch_01", category="architecture", question="Pattern?")],
            answers=[DecisionAnswer(question_id="arch_01", answer="Monolith")],
        ),
        spec_kit=spec_kit,
        progress=ProgressState(project_name="demo", total_tasks=4),
    )


class TestComputeProgress:
    """Test cases for compute_progress."""

    def test_no_tasks(self):
        assert compute_progress(Project(name="x", project_type="api", description="", requirements=[])) == 0.0

    def test_fraction(self, project):
        project.ledger.record_completion("T001")
        assert compute_progress(project) == 25.0

    def test_capped_at_100(self, project):
        for _ in range(9):
            project.ledger.record_completion("T001")
        assert compute_progress(project) == 100.0


class TestCreateCheckpoint:
    """Test cases for create_checkpoint."""

    def test_requires_progress(self, project):
        project.progress = None
        with pytest.raises(PreconditionError):
            create_checkpoint(project)

    def test_manual_checkpoint_records_batch(self, project):
        checkpoint = create_checkpoint(project, ["T001", "T002"], current_task_id="T003", issues=["DB slow", ""])

        assert checkpoint.id == "CP-0001"
        assert checkpoint.phase is Phase.BACKEND_DEV
        assert checkpoint.completed_task_ids == ("T001", "T002")
        assert checkpoint.current_task_id == "T003"
        assert checkpoint.issues == ("DB slow",)
        assert checkpoint.tasks_completed == 2
        assert checkpoint.overall_progress == 50.0

        assert project.ledger.last_checkpoint_task == project.ledger.tasks_completed == 2
        assert project.issues == ["DB slow"]
        assert project.progress.checkpoint_count == 1
        assert project.progress.latest_checkpoint is checkpoint
        assert "CP-0001" in project.progress.continuation_prompt

    def test_delta_includes_single_completions(self, project):
        project.ledger.record_completion("T001")

        checkpoint = create_checkpoint(project, ["T002"])

        assert checkpoint.completed_task_ids == ("T001", "T002")

    def test_ids_increase(self, project):
        create_checkpoint(project)
        second = create_checkpoint(project)

        assert second.id == "CP-0002"
        assert second.completed_task_ids == ()


class TestContinuationPrompt:
    """Test cases for build_continuation_prompt."""

    def test_contents(self, project):
        project.ledger.record_completion("T001")
        project.issues.append("Flaky migration")

        prompt = build_continuation_prompt(project)

        assert "# Continue DevForge project: demo" in prompt
        assert "Current phase: backend_dev" in prompt
        assert "Last completed task: T001" in prompt
        assert "- Flaky migration" in prompt
        assert "T002: Task <2>" in prompt
        assert "T001: Task" not in prompt
        assert "then generate_api_tests" in prompt

    def test_is_pure(self, project):
        before = project.to_dict()
        build_continuation_prompt(project)
        assert project.to_dict() == before


class TestExportPoml:
    """Test cases for export_poml."""

    def test_is_well_formed_xml(self, project):
        project.ledger.record_completion("T001")
        create_checkpoint(project, issues=["a < b"])

        root = ET.fromstring(export_poml(project))

        assert root.tag == "poml"
        assert root.find("project").get("name") == "demo"
        assert root.find("project/description").text == "Demo & friends"
        statuses = {task.get("id"): task.get("status") for task in root.iter("task")}
        assert statuses["T001"] == "done"
        assert statuses["T002"] == "open"
        assert root.find("checkpoint").get("id") == "CP-0001"
        assert [i.text for i in root.iter("issue")] == ["a < b"]


class TestCheckpointWriter:
    """Test cases for CheckpointWriter.persist."""

    def test_persist_writes_all_files(self, project, workspace):
        checkpoint = create_checkpoint(project, ["T001"])

        paths = CheckpointWriter(workspace).persist(project, checkpoint)

        assert len(paths) == 4
        state_dir = workspace.state_dir("demo")
        logged = json.loads((state_dir / "checkpoints" / "CP-0001.json").read_text())
        assert logged["completed_task_ids"] == ["T001"]
        assert (workspace.project_dir("demo") / "PROJECT.poml").exists()
        assert (state_dir / "continuation-prompt.txt").read_text() == project.progress.continuation_prompt
        assert workspace.load_state("demo").progress.checkpoint_count == 1
