"""Shared fixtures for the DevForge test suite."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import pytest

from devforge.devforge_logging import observability_hooks
from devforge.dispatcher import CommandDispatcher
from devforge.errors import GenerationError
from devforge.orchestrator import WorkflowOrchestrator
from devforge.workspace import Workspace

TODO_REQUIREMENTS = ["CRUD todos", "auth"]


class FakeTextGenerator:
    """Deterministic stand-in for a provider adapter."""

    def __init__(self, reply: str = "Generated text."):
        self.reply = reply
        self.prompts: List[str] = []

    def generate_text(self, prompt: str, max_tokens: int = 1024) -> str:
        self.prompts.append(prompt)
        return self.reply


class FailingTextGenerator:
    """Fails until ``fixed`` is set, then behaves like FakeTextGenerator."""

    def __init__(self, fixed: bool = False):
        self.fixed = fixed
        self.calls = 0

    def generate_text(self, prompt: str, max_tokens: int = 1024) -> str:
        self.calls += 1
        if not self.fixed:
            raise GenerationError("provider unavailable")
        return "Recovered text."


@pytest.fixture(autouse=True)
def clear_hooks():
    """Hooks are module-global; keep tests isolated."""
    observability_hooks.clear()
    yield
    observability_hooks.clear()


@pytest.fixture
def text_generator() -> FakeTextGenerator:
    return FakeTextGenerator()


@pytest.fixture
def workspace(tmp_path: Path) -> Workspace:
    return Workspace(tmp_path / "projects")


@pytest.fixture
def orchestrator(workspace: Workspace, text_generator: FakeTextGenerator) -> WorkflowOrchestrator:
    return WorkflowOrchestrator(workspace, text_generator=text_generator)


@pytest.fixture
def dispatcher(orchestrator: WorkflowOrchestrator) -> CommandDispatcher:
    return CommandDispatcher(orchestrator)


def start_todo_app(orchestrator: WorkflowOrchestrator, name: str = "todo-app", project_type: str = "api"):
    return orchestrator.start_project(name, project_type, "A todo API", list(TODO_REQUIREMENTS))


def approve_todo_app(orchestrator: WorkflowOrchestrator, name: str = "todo-app", answer: Optional[str] = "Monolith"):
    return orchestrator.approve_architecture(name, [{"questionId": "arch_01", "answer": answer}])


def planned_todo_app(orchestrator: WorkflowOrchestrator, name: str = "todo-app"):
    """Start and approve a project so it is ready for backend work."""
    start_todo_app(orchestrator, name)
    return approve_todo_app(orchestrator, name)


@pytest.fixture
def planned_project(orchestrator: WorkflowOrchestrator) -> str:
    planned_todo_app(orchestrator)
    return "todo-app"
