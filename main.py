"""MCP server exposing the DevForge project workflow tools."""

from __future__ import annotations

import logging
import sys
from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.resources import TextResource

from devforge.config import Settings
from devforge.devforge_logging import setup_logging
from devforge.dispatcher import CommandDispatcher
from devforge.errors import ConfigurationError
from devforge.knowledge import KnowledgeBase
from devforge.orchestrator import WorkflowOrchestrator
from devforge.text_generation import create_text_generator
from devforge.workspace import Workspace

mcp = FastMCP("devforge")

logger = logging.getLogger("devforge.server")

_dispatcher: Optional[CommandDispatcher] = None


def build_dispatcher(settings: Settings) -> CommandDispatcher:
    """Wire the orchestrator and its collaborators from settings."""
    orchestrator = WorkflowOrchestrator(
        workspace=Workspace(settings.projects_root),
        text_generator=create_text_generator(settings),
        knowledge_base=KnowledgeBase(settings.knowledge_dir, enabled=settings.knowledge_enabled),
        checkpoint_threshold=settings.checkpoint_threshold,
    )
    return CommandDispatcher(orchestrator)


def _dispatch(command: str, **arguments: Any) -> str:
    if _dispatcher is None:
        return "Error: DevForge server is not configured. Start it through main.run().\n"
    return _dispatcher.dispatch(command, arguments)


@mcp.tool()
def start_project(project_name: str, project_type: str, description: str, requirements: List[str]) -> str:
    """PHASE 1: Start a new project and generate the architecture decision matrix.
    project_type is one of web, api, cli, desktop, mobile, library."""
    return _dispatch(
        "start_project",
        project_name=project_name,
        project_type=project_type,
        description=description,
        requirements=requirements,
    )


@mcp.tool()
def approve_architecture(project_name: str, decision_matrix_answers: List[Dict[str, str]]) -> str:
    """PHASE 2: Answer the decision matrix ([{questionId, answer}]) and generate the Spec-Kit
    (constitution, specification, technical plan, tasks)."""
    return _dispatch(
        "approve_architecture",
        project_name=project_name,
        decision_matrix_answers=decision_matrix_answers,
    )


@mcp.tool()
def generate_api_tests(project_name: str) -> str:
    """PHASE 3: Generate the Postman collection, environments and API testing guide."""
    return _dispatch("generate_api_tests", project_name=project_name)


@mcp.tool()
def ask_frontend_questions(project_name: str) -> str:
    """PHASE 4: Show the frontend design questions to answer before generating the prompt."""
    return _dispatch("ask_frontend_questions", project_name=project_name)


@mcp.tool()
def generate_frontend_prompt(project_name: str, frontend_answers: Dict[str, Any]) -> str:
    """PHASE 4: Generate the UI builder prompt. frontend_answers holds platform, designStyle,
    colorScheme, primaryColor, uiFramework and features."""
    return _dispatch("generate_frontend_prompt", project_name=project_name, frontend_answers=frontend_answers)


@mcp.tool()
def generate_bdd_tests(project_name: str) -> str:
    """PHASE 5: Generate Gherkin features, Cucumber step definitions and config."""
    return _dispatch("generate_bdd_tests", project_name=project_name)


@mcp.tool()
def create_checkpoint(
    project_name: str,
    completed_task_ids: List[str],
    current_task_id: Optional[str] = None,
    issues_encountered: Optional[List[str]] = None,
) -> str:
    """Save progress to PROJECT.poml and write a continuation prompt for a future session."""
    return _dispatch(
        "create_checkpoint",
        project_name=project_name,
        completed_task_ids=completed_task_ids,
        current_task_id=current_task_id,
        issues_encountered=issues_encountered,
    )


@mcp.tool()
def get_workflow_status(project_name: str) -> str:
    """Return the project's phase, task counts and generated artifacts as JSON."""
    return _dispatch("get_workflow_status", project_name=project_name)


@mcp.tool()
def complete_task(project_name: str, task_id: str) -> str:
    """Mark a task complete. A checkpoint is written automatically every N tasks."""
    return _dispatch("complete_task", project_name=project_name, task_id=task_id)


@mcp.tool()
def check_knowledge_base(project_name: str, project_description: str, keywords: Optional[List[str]] = None) -> str:
    """Search the local knowledge base for notebooks related to the project."""
    return _dispatch(
        "check_knowledge_base",
        project_name=project_name,
        project_description=project_description,
        keywords=keywords,
    )


@mcp.tool()
def generate_ui_blueprint(project_name: str, platform: str, screens: List[Dict[str, Any]]) -> str:
    """Generate an A2UI v0.8 blueprint. platform is one of react, flutter, react-native, web,
    angular, console. Each screen has name, route and components."""
    return _dispatch("generate_ui_blueprint", project_name=project_name, platform=platform, screens=screens)


@mcp.tool()
def resume_project(project_name: str) -> str:
    """Reload a project saved by an earlier session and show its continuation prompt."""
    return _dispatch("resume_project", project_name=project_name)


@mcp.tool()
def finalize_project(project_name: str) -> str:
    """Write the final checkpoint and mark the project complete."""
    return _dispatch("finalize_project", project_name=project_name)


@mcp.tool()
def list_projects() -> str:
    """List active projects and projects saved on disk."""
    return _dispatch("list_projects")


@mcp.tool()
def get_workflow_guide() -> str:
    """Get the recommended DevForge workflow and each command's preconditions."""
    return _dispatch("get_workflow_guide")


PROJECTS_URI = "devforge://projects"


def _text_resource(text: str) -> TextResource:
    return TextResource(uri=PROJECTS_URI, name="projects", mime_type="text/plain", text=text)


@mcp.resource(PROJECTS_URI)
def resource_projects():
    """Resource view listing active and persisted projects."""

    if _dispatcher is None:
        return _text_resource("DevForge server is not configured.")

    listing = _dispatcher.execute("list_projects")
    if not listing["active"] and not listing["persisted"]:
        return _text_resource("No projects have been started yet.")

    lines = ["DevForge Projects"]
    for entry in listing["active"]:
        lines.append(f"- {entry['name']}: {entry['phase']} ({entry['progress']:.1f}%), next: {entry['next_command']}")
    for name in listing["persisted"]:
        lines.append(f"- {name}: saved on disk (resume_project to load)")
    return _text_resource("\n".join(lines))


def run() -> None:
    """Console entry point: configure, then serve over stdio."""
    global _dispatcher

    setup_logging()
    try:
        settings = Settings.from_env()
    except ConfigurationError as e:
        logger.error(f"Startup aborted: {e.message}")
        sys.exit(1)

    setup_logging(settings.log_level, settings.log_file)
    _dispatcher = build_dispatcher(settings)
    logger.info(f"DevForge serving projects from {settings.projects_root}")
    mcp.run(transport="stdio")


if __name__ == "__main__":
    run()
