"""Command dispatch: maps a command name and its arguments to the orchestrator."""

from __future__ import annotations

import inspect
import logging
from typing import Any, Callable, Dict, Mapping, Optional

from .devforge_logging import log_error_with_context
from .errors import DevForgeError, UnknownCommandError, ValidationError
from .orchestrator import WorkflowOrchestrator
from .reports import render_error, render_report

logger = logging.getLogger("devforge.dispatcher")


class CommandDispatcher:
    """Routes named commands to :class:`WorkflowOrchestrator` methods.

    ``dispatch`` never raises: every failure is rendered as an
    ``Error: ...`` report naming the next command to issue.
    """

    def __init__(self, orchestrator: WorkflowOrchestrator):
        self.orchestrator = orchestrator
        self.commands: Dict[str, Callable[..., Dict[str, Any]]] = {
            "start_project": orchestrator.start_project,
            "approve_architecture": orchestrator.approve_architecture,
            "generate_api_tests": orchestrator.generate_api_tests,
            "ask_frontend_questions": orchestrator.ask_frontend_questions,
            "generate_frontend_prompt": orchestrator.generate_frontend_prompt,
            "generate_bdd_tests": orchestrator.generate_bdd_tests,
            "create_checkpoint": orchestrator.create_checkpoint,
            "get_workflow_status": orchestrator.get_workflow_status,
            "complete_task": orchestrator.complete_task,
            "check_knowledge_base": orchestrator.check_knowledge_base,
            "generate_ui_blueprint": orchestrator.generate_ui_blueprint,
            "resume_project": orchestrator.resume_project,
            "finalize_project": orchestrator.finalize_project,
            "list_projects": orchestrator.list_projects,
            "get_workflow_guide": orchestrator.get_workflow_guide,
        }

    def execute(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """Run a command and return its structured result, raising on failure."""
        handler = self.commands.get(name)
        if handler is None:
            raise UnknownCommandError(
                f"Unknown command '{name}'. Available commands: {', '.join(sorted(self.commands))}"
            )
        kwargs = dict(arguments or {})
        try:
            inspect.signature(handler).bind(**kwargs)
        except TypeError as e:
            raise ValidationError(f"Invalid arguments for {name}: {e}", next_step="get_workflow_guide") from e
        return handler(**kwargs)

    def dispatch(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> str:
        """Run a command and return the rendered report."""
        arguments = dict(arguments or {})
        try:
            result = self.execute(name, arguments)
        except DevForgeError as e:
            logger.info(f"{name} rejected: {e.message}")
            return render_error(e, self._fallback_step(arguments))
        except Exception as e:
            log_error_with_context(e, {"operation": name, "project_name": arguments.get("project_name")})
            return render_error(e, self._fallback_step(arguments))
        return render_report(name, result)

    def _fallback_step(self, arguments: Mapping[str, Any]) -> str:
        return "get_workflow_status" if arguments.get("project_name") else "get_workflow_guide"
