"""Workflow orchestration for DevForge.

The orchestrator is the only component that mutates a :class:`Project`.
Every mutating command follows the same sequence under the project's lock:

1. check the command's precondition against the registered project,
2. deep-copy the project and run the generator against the copy,
3. apply the phase transition to the copy and persist it,
4. commit the copy to the registry.

Any failure before step 4 leaves the registered project exactly as it was,
so re-issuing the same command after fixing the cause is safe.
"""

from __future__ import annotations

import copy
import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Sequence, TypeVar

from .checkpoints import CheckpointWriter, build_continuation_prompt, compute_progress, create_checkpoint, export_poml
from .config import DEFAULT_CHECKPOINT_THRESHOLD
from .devforge_logging import (
    log_artifact_generated,
    log_checkpoint_created,
    log_operation,
    log_performance,
    log_phase_transition,
)
from .errors import ProjectNotFoundError, ValidationError
from .generators import PROJECT_TYPES, FrontendAnswers, Generators, frontend_questions, render_spec_kit
from .generators.frontend_prompt import FRONTEND_OPTIONS
from .knowledge import KnowledgeBase
from .models import DecisionAnswer, Phase, Project, ProgressState
from .phases import TRANSITIONS, WORKFLOW_STEPS, apply_transition, check_precondition, next_command
from .text_generation import TextGenerator
from .workspace import Workspace

logger = logging.getLogger("devforge.workflow")

T = TypeVar("T")

# complete_task starts suggesting a checkpoint this many tasks before the threshold
CHECKPOINT_WARNING_MARGIN = 5


class ProjectRegistry:
    """In-memory name -> Project store with one lock per project.

    A name's lock is dropped once no caller holds or waits on it and no
    project is registered under that name.
    """

    def __init__(self):
        self._projects: Dict[str, Project] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._holders: Dict[str, int] = {}
        self._lock = threading.Lock()

    @contextmanager
    def locked(self, name: str) -> Iterator[None]:
        with self._lock:
            lock = self._locks.setdefault(name, threading.Lock())
            self._holders[name] = self._holders.get(name, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._lock:
                self._holders[name] -= 1
                if not self._holders[name]:
                    del self._holders[name]
                    if name not in self._projects:
                        del self._locks[name]

    def has_lock(self, name: str) -> bool:
        with self._lock:
            return name in self._locks

    def get(self, name: str) -> Optional[Project]:
        with self._lock:
            return self._projects.get(name)

    def put(self, project: Project) -> None:
        with self._lock:
            self._projects[project.name] = project

    def names(self) -> List[str]:
        with self._lock:
            return sorted(self._projects)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._projects

    def __len__(self) -> int:
        with self._lock:
            return len(self._projects)


class WorkflowOrchestrator:
    """Runs DevForge commands against the project registry."""

    def __init__(
        self,
        workspace: Workspace,
        generators: Optional[Generators] = None,
        text_generator: Optional[TextGenerator] = None,
        registry: Optional[ProjectRegistry] = None,
        knowledge_base: Optional[KnowledgeBase] = None,
        checkpoint_threshold: int = DEFAULT_CHECKPOINT_THRESHOLD,
    ):
        if generators is None:
            if text_generator is None:
                raise ValueError("Provide either generators or a text_generator to build them from")
            generators = Generators.default(text_generator)
        if checkpoint_threshold < 1:
            raise ValueError("checkpoint_threshold must be at least 1")

        self.workspace = workspace
        self.generators = generators
        self.registry = registry if registry is not None else ProjectRegistry()
        self.knowledge_base = knowledge_base if knowledge_base is not None else KnowledgeBase(enabled=False)
        self.checkpoint_threshold = checkpoint_threshold
        self.checkpoint_writer = CheckpointWriter(workspace)

    # ------------------------------------------------------------------
    # Transaction helpers
    # ------------------------------------------------------------------

    def _transact(self, command: str, project_name: str, action: Callable[[Project], T]) -> T:
        """Run ``action`` on a staged copy of the project and commit it on success."""
        with self.registry.locked(project_name):
            current = self.registry.get(project_name)
            check_precondition(command, current, project_name)
            staged = copy.deepcopy(current)
            with log_operation(command, project_name=project_name):
                result = action(staged)
                self.workspace.save_state(staged)
            self.registry.put(staged)
        if current.current_phase is not staged.current_phase:
            log_phase_transition(project_name, command, current.current_phase.value, staged.current_phase.value)
        return result

    def _read(self, command: str, project_name: str) -> Project:
        """Validated snapshot of a project for read-only commands."""
        with self.registry.locked(project_name):
            project = self.registry.get(project_name)
            check_precondition(command, project, project_name)
            return copy.deepcopy(project)

    def _envelope(self, project: Project, message: str, tip: str, **data: Any) -> Dict[str, Any]:
        return {
            "project_name": project.name,
            "phase": project.current_phase.value,
            "message": message,
            "next_suggested_step": next_command(project),
            "workflow_tip": tip,
            **data,
        }

    # ------------------------------------------------------------------
    # Planning
    # ------------------------------------------------------------------

    @log_performance("start_project")
    def start_project(
        self,
        project_name: str,
        project_type: str,
        description: str,
        requirements: Sequence[str],
    ) -> Dict[str, Any]:
        """Register a project and generate its decision matrix."""
        self.workspace.project_dir(project_name)
        project_type = (project_type or "").strip().lower()
        if project_type not in PROJECT_TYPES:
            raise ValidationError(
                f"Unsupported project_type '{project_type}'. Choose one of: {', '.join(PROJECT_TYPES)}",
                next_step="start_project",
            )
        if isinstance(requirements, str) or not isinstance(requirements, Sequence):
            raise ValidationError("requirements must be a list of strings", next_step="start_project")
        cleaned = [str(r).strip() for r in requirements if str(r).strip()]
        if not cleaned:
            raise ValidationError("Provide at least one requirement", next_step="start_project")

        with self.registry.locked(project_name):
            check_precondition("start_project", self.registry.get(project_name), project_name)
            with log_operation("start_project", project_name=project_name, project_type=project_type):
                matrix = self.generators.decision_matrix.generate(
                    project_name, project_type, description or "", cleaned
                )
                project = Project(
                    name=project_name,
                    project_type=project_type,
                    description=description or "",
                    requirements=cleaned,
                    current_phase=Phase.REQUIREMENTS,
                    completed_phases=[],
                    decision_matrix=matrix,
                )
                apply_transition("start_project", project)
                self.workspace.archive_previous_run(project_name)
                path = self.workspace.write_json(project_name, ".devforge/decision-matrix.json", matrix.to_dict())
                self.workspace.save_state(project)
            self.registry.put(project)

        log_phase_transition(project_name, "start_project", Phase.REQUIREMENTS.value, project.current_phase.value)
        logger.info(f"Project {project_name} started with {len(matrix.questions)} decision questions")
        return self._envelope(
            project,
            f"Decision matrix generated with {len(matrix.questions)} questions. "
            "Please review and answer them to proceed.",
            "Answer each question id with approve_architecture to generate the Spec-Kit.",
            questions=[q.to_dict() for q in matrix.questions],
            recommendation=matrix.recommendation,
            decision_matrix_path=str(path),
        )

    @log_performance("approve_architecture")
    def approve_architecture(self, project_name: str, decision_matrix_answers: Sequence[Mapping[str, Any]]) -> Dict[str, Any]:
        """Attach the decision matrix answers and generate the Spec-Kit."""

        def action(project: Project) -> Dict[str, Any]:
            answers = self._parse_answers(project, decision_matrix_answers)
            project.decision_matrix.answers = answers
            spec_kit = self.generators.spec_kit.generate(
                project.name, project.project_type, project.description, project.requirements, project.decision_matrix
            )
            project.spec_kit = spec_kit
            project.progress = ProgressState(project_name=project.name, total_tasks=len(spec_kit.tasks))
            apply_transition("approve_architecture", project)
            project.progress.continuation_prompt = build_continuation_prompt(project)

            files = render_spec_kit(spec_kit)
            files["PROJECT.poml"] = export_poml(project)
            files[".devforge/continuation-prompt.txt"] = project.progress.continuation_prompt
            paths = self.workspace.write_files(project.name, files)
            log_artifact_generated(project.name, "spec_kit", paths, task_count=len(spec_kit.tasks))

            return self._envelope(
                project,
                f"Spec-Kit generated successfully! {len(spec_kit.tasks)} tasks planned.",
                "Work through the tasks and report each one with complete_task; "
                f"a checkpoint is written automatically every {self.checkpoint_threshold} tasks.",
                files=paths,
                requirement_count=len(spec_kit.specification.functional_requirements),
                endpoint_count=len(spec_kit.specification.api_endpoints),
                total_tasks=len(spec_kit.tasks),
                estimated_hours=spec_kit.total_estimated_hours,
                tasks_by_type=spec_kit.tasks_by_type(),
                architecture=spec_kit.technical_plan.pattern,
            )

        return self._transact("approve_architecture", project_name, action)

    def _parse_answers(self, project: Project, raw_answers: Any) -> List[DecisionAnswer]:
        if isinstance(raw_answers, (str, bytes)) or not isinstance(raw_answers, Sequence) or not raw_answers:
            raise ValidationError(
                "Provide decision_matrix_answers as a non-empty list of {questionId, answer}",
                next_step="approve_architecture",
            )
        try:
            answers = [DecisionAnswer.from_dict(item) for item in raw_answers]
        except (ValueError, AttributeError, TypeError) as e:
            raise ValidationError(str(e), next_step="approve_architecture") from e

        known = {q.id for q in project.decision_matrix.questions}
        unknown = [a.question_id for a in answers if a.question_id not in known]
        if unknown:
            raise ValidationError(
                f"Unknown question id(s): {', '.join(unknown)}. Valid ids: {', '.join(sorted(known))}",
                next_step="approve_architecture",
            )
        return answers

    # ------------------------------------------------------------------
    # Artifact generation
    # ------------------------------------------------------------------

    @log_performance("generate_api_tests")
    def generate_api_tests(self, project_name: str) -> Dict[str, Any]:
        """Generate the Postman collection, environments and testing guide."""

        def action(project: Project) -> Dict[str, Any]:
            artifact = self.generators.postman.generate(project.spec_kit)
            paths = self.workspace.write_files(project.name, artifact.files)
            apply_transition("generate_api_tests", project, paths)
            log_artifact_generated(project.name, "postman", paths, request_count=artifact.request_count)
            return self._envelope(
                project,
                f"Postman collection generated with {artifact.request_count} requests.",
                "Import the collection into Postman or run it with Newman, then ask_frontend_questions.",
                files=paths,
                request_count=artifact.request_count,
                environments=sorted(artifact.environments),
                newman_commands=artifact.newman_commands,
            )

        return self._transact("generate_api_tests", project_name, action)

    def ask_frontend_questions(self, project_name: str) -> Dict[str, Any]:
        """Return the frontend questionnaire; no state changes."""
        project = self._read("ask_frontend_questions", project_name)
        return {
            "project_name": project.name,
            "phase": project.current_phase.value,
            "message": frontend_questions(),
            "options": {key: list(values) for key, values in FRONTEND_OPTIONS.items()},
            "next_suggested_step": "generate_frontend_prompt",
            "workflow_tip": "Pass the answers as frontend_answers to generate_frontend_prompt.",
        }

    @log_performance("generate_frontend_prompt")
    def generate_frontend_prompt(self, project_name: str, frontend_answers: Mapping[str, Any]) -> Dict[str, Any]:
        """Generate the UI builder prompt from the frontend answers."""

        def action(project: Project) -> Dict[str, Any]:
            answers = FrontendAnswers.from_dict(frontend_answers)
            prompt = self.generators.frontend_prompt.generate(project.spec_kit, answers)
            paths = self.workspace.write_files(project.name, {"docs/FRONTEND_PROMPT.md": prompt.markdown})
            apply_transition("generate_frontend_prompt", project, paths)
            log_artifact_generated(project.name, "frontend_prompt", paths, platform=answers.platform)
            return self._envelope(
                project,
                f"Frontend prompt generated for {answers.platform}.",
                "Paste docs/FRONTEND_PROMPT.md into your UI builder, then generate_bdd_tests.",
                files=paths,
                components=[c["name"] for c in prompt.components],
                prompt_preview=prompt.main_prompt[:500],
            )

        return self._transact("generate_frontend_prompt", project_name, action)

    @log_performance("generate_bdd_tests")
    def generate_bdd_tests(self, project_name: str) -> Dict[str, Any]:
        """Generate Gherkin features, step definitions and the cucumber config."""

        def action(project: Project) -> Dict[str, Any]:
            suite = self.generators.bdd.generate(project.spec_kit)
            paths = self.workspace.write_files(project.name, suite.files)
            apply_transition("generate_bdd_tests", project, paths)
            log_artifact_generated(project.name, "bdd_tests", paths, scenario_count=suite.scenario_count)
            return self._envelope(
                project,
                f"BDD suite generated: {len(suite.features)} features, {suite.scenario_count} scenarios.",
                "Run the suite with `npx cucumber-js`, fix failures, then finalize_project.",
                files=paths,
                feature_count=len(suite.features),
                scenario_count=suite.scenario_count,
            )

        return self._transact("generate_bdd_tests", project_name, action)

    @log_performance("generate_ui_blueprint")
    def generate_ui_blueprint(
        self, project_name: str, platform: str, screens: Sequence[Mapping[str, Any]]
    ) -> Dict[str, Any]:
        """Generate an A2UI blueprint. Works whether or not the project is registered."""
        check_precondition("generate_ui_blueprint", None, project_name)
        if isinstance(screens, Mapping) or isinstance(screens, str) or not isinstance(screens, Sequence):
            raise ValidationError("screens must be a list of {name, route, components}")

        with self.registry.locked(project_name):
            blueprint = self.generators.ui_blueprint.generate(project_name, platform, screens)
            paths = self.workspace.write_files(project_name, blueprint.files)
            project = self.registry.get(project_name)

        log_artifact_generated(project_name, "ui_blueprint", paths, platform=platform)
        return {
            "project_name": project_name,
            "phase": project.current_phase.value if project else None,
            "message": f"A2UI blueprint generated with {len(blueprint.blueprint['surfaces'])} surface(s) for {platform}.",
            "catalog": blueprint.catalog,
            "warnings": blueprint.warnings,
            "files": paths,
            "blueprint": blueprint.blueprint,
            "next_suggested_step": next_command(project) if project else "start_project",
            "workflow_tip": "Stream a2ui/messages.jsonl to an A2UI renderer or start from the generated code.",
        }

    # ------------------------------------------------------------------
    # Progress tracking
    # ------------------------------------------------------------------

    @log_performance("create_checkpoint")
    def create_checkpoint(
        self,
        project_name: str,
        completed_task_ids: Sequence[str] = (),
        current_task_id: Optional[str] = None,
        issues_encountered: Optional[Sequence[str]] = None,
    ) -> Dict[str, Any]:
        """Record a manual checkpoint."""
        if isinstance(completed_task_ids, str) or not isinstance(completed_task_ids, Sequence):
            raise ValidationError("completed_task_ids must be a list of task ids", next_step="create_checkpoint")
        if issues_encountered is not None and (
            isinstance(issues_encountered, str) or not isinstance(issues_encountered, Sequence)
        ):
            raise ValidationError("issues_encountered must be a list of strings", next_step="create_checkpoint")

        def action(project: Project) -> Dict[str, Any]:
            checkpoint = create_checkpoint(project, completed_task_ids, current_task_id, issues_encountered or ())
            paths = self.checkpoint_writer.persist(project, checkpoint)
            log_checkpoint_created(project.name, checkpoint.id, automatic=False, tasks=len(checkpoint.completed_task_ids))
            return self._envelope(
                project,
                f"Checkpoint {checkpoint.id} created. Progress: {checkpoint.overall_progress:.1f}%.",
                "If the session resets, call resume_project and read the continuation prompt.",
                checkpoint=checkpoint.to_dict(),
                continuation_prompt=project.progress.continuation_prompt,
                files=paths,
            )

        return self._transact("create_checkpoint", project_name, action)

    @log_performance("complete_task")
    def complete_task(self, project_name: str, task_id: str) -> Dict[str, Any]:
        """Record one completed task, checkpointing automatically at the threshold."""
        task_id = str(task_id or "").strip()
        if not task_id:
            raise ValidationError("task_id is required", next_step="complete_task")

        def action(project: Project) -> Dict[str, Any]:
            project.ledger.record_completion(task_id)
            planned = {task.id for task in project.spec_kit.tasks} if project.spec_kit else set()
            checkpoint = None
            if project.ledger.checkpoint_due(self.checkpoint_threshold):
                checkpoint = create_checkpoint(project, current_task_id=task_id)
                self.checkpoint_writer.persist(project, checkpoint)
                log_checkpoint_created(project.name, checkpoint.id, automatic=True, tasks=len(checkpoint.completed_task_ids))

            since = project.ledger.tasks_since_checkpoint
            notes = []
            if task_id not in planned:
                notes.append(f"{task_id} is not in the Spec-Kit task list; it was counted anyway.")
            if checkpoint is not None:
                message = f"Task {task_id} completed. Automatic checkpoint {checkpoint.id} created."
            else:
                message = f"Task {task_id} completed. {since} task(s) since the last checkpoint."
                if since >= self.checkpoint_threshold - CHECKPOINT_WARNING_MARGIN:
                    notes.append(
                        f"Checkpoint recommended soon: automatic checkpoint at {self.checkpoint_threshold} tasks."
                    )
            return self._envelope(
                project,
                message,
                "Keep reporting finished tasks; call create_checkpoint before a long break.",
                task_id=task_id,
                tasks_completed=project.ledger.tasks_completed,
                tasks_since_checkpoint=since,
                progress=compute_progress(project),
                checkpoint=checkpoint.to_dict() if checkpoint else None,
                notes=notes,
            )

        return self._transact("complete_task", project_name, action)

    @log_performance("finalize_project")
    def finalize_project(self, project_name: str) -> Dict[str, Any]:
        """Write the final checkpoint and mark the project complete."""

        def action(project: Project) -> Dict[str, Any]:
            apply_transition("finalize_project", project)
            checkpoint = create_checkpoint(project)
            paths = self.checkpoint_writer.persist(project, checkpoint)
            log_checkpoint_created(project.name, checkpoint.id, automatic=False, final=True)
            return self._envelope(
                project,
                f"Project {project.name} finalized with checkpoint {checkpoint.id} "
                f"({checkpoint.overall_progress:.1f}% of planned tasks reported).",
                "All phases are recorded. Use list_projects to start on the next one.",
                checkpoint=checkpoint.to_dict(),
                files=paths,
            )

        return self._transact("finalize_project", project_name, action)

    # ------------------------------------------------------------------
    # Status and recovery
    # ------------------------------------------------------------------

    def get_workflow_status(self, project_name: str) -> Dict[str, Any]:
        """Status snapshot of a registered project."""
        project = self._read("get_workflow_status", project_name)
        return self._status(project)

    def _status(self, project: Project) -> Dict[str, Any]:
        ledger = project.ledger
        progress = project.progress
        return {
            "project": project.name,
            "projectType": project.project_type,
            "currentPhase": project.current_phase.value,
            "completedPhases": [phase.value for phase in project.completed_phases],
            "tasksCompleted": ledger.tasks_completed,
            "totalTasks": project.total_tasks,
            "progress": compute_progress(project),
            "lastCheckpointTask": ledger.last_checkpoint_task,
            "tasksSinceCheckpoint": ledger.tasks_since_checkpoint,
            "checkpointNeeded": ledger.checkpoint_due(self.checkpoint_threshold),
            "checkpointCount": progress.checkpoint_count if progress else 0,
            "latestCheckpoint": progress.latest_checkpoint.id if progress and progress.latest_checkpoint else None,
            "postmanGenerated": project.postman_generated,
            "frontendPromptGenerated": project.frontend_prompt_generated,
            "bddTestsGenerated": project.bdd_tests_generated,
            "issues": list(project.issues),
            "nextCommand": next_command(project),
        }

    @log_performance("resume_project")
    def resume_project(self, project_name: str) -> Dict[str, Any]:
        """Reload a project persisted by an earlier process."""
        with self.registry.locked(project_name):
            project = self.registry.get(project_name)
            reloaded = False
            if project is None:
                project = self.workspace.load_state(project_name)
                if project is None:
                    raise ProjectNotFoundError(
                        f"No persisted state for project '{project_name}' under {self.workspace.root}. "
                        "Call start_project to begin it."
                    )
                self.registry.put(project)
                reloaded = True
            project = copy.deepcopy(project)

        prompt = self.workspace.load_continuation_prompt(project_name)
        if prompt is None:
            prompt = build_continuation_prompt(project)
        checkpoints = self.workspace.list_checkpoints(project_name)
        if reloaded:
            logger.info(f"Project {project_name} resumed from disk in phase {project.current_phase.value}")

        status = self._status(project)
        return self._envelope(
            project,
            f"Project {project_name} {'resumed from disk' if reloaded else 'is already active'} "
            f"in phase {project.current_phase.value}.",
            "Read the continuation prompt, then carry on with the next command.",
            reloaded=reloaded,
            status=status,
            checkpoint_log=[c.id for c in checkpoints],
            continuation_prompt=prompt,
        )

    def list_projects(self) -> Dict[str, Any]:
        active = []
        for name in self.registry.names():
            project = self.registry.get(name)
            if project is None:
                continue
            active.append({
                "name": name,
                "phase": project.current_phase.value,
                "progress": compute_progress(project),
                "next_command": next_command(project),
            })
        active_names = {entry["name"] for entry in active}
        persisted = [name for name in self.workspace.list_persisted_projects() if name not in active_names]
        return {
            "message": f"{len(active)} active project(s), {len(persisted)} more on disk.",
            "active": active,
            "persisted": persisted,
            "next_suggested_step": "resume_project" if persisted and not active else "start_project",
            "workflow_tip": "Projects on disk can be reloaded with resume_project.",
        }

    def check_knowledge_base(
        self,
        project_name: str,
        project_description: str,
        keywords: Optional[Sequence[str]] = None,
    ) -> Dict[str, Any]:
        """Look for earlier research about the project. Never fails on a missing match."""
        result = self.knowledge_base.check_for_project_context(project_name, project_description or "", keywords)
        if not result.enabled:
            message = "Knowledge base is not enabled. Set DEVFORGE_KNOWLEDGE_DIR and DEVFORGE_KNOWLEDGE_ENABLED=true."
        elif result.found:
            message = f"Found notebook '{result.notebook.name}' (matched '{result.matched_query}')."
        else:
            message = f"No notebook found for '{project_name}'."
        project = self.registry.get(project_name)
        return {
            "project_name": project_name,
            "message": message,
            "next_suggested_step": next_command(project),
            "workflow_tip": "Use any excerpts as extra context when answering the decision matrix.",
            **result.to_dict(),
        }

    def get_workflow_guide(self) -> Dict[str, Any]:
        return {
            "workflow_overview": "DevForge project workflow, in recommended order",
            "steps": [step.to_dict() for step in WORKFLOW_STEPS],
            "preconditions": {
                command: [requirement.name for requirement in transition.requires]
                for command, transition in TRANSITIONS.items()
            },
            "checkpoint_threshold": self.checkpoint_threshold,
            "tips": [
                "Commands are gated by the artifacts they need, so later steps may be re-run",
                "Report every finished task with complete_task to keep progress accurate",
                "After a restart, call resume_project before anything else",
            ],
        }
