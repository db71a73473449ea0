"""Render orchestrator results as the text returned over the tool channel."""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, List, Optional

from .errors import DevForgeError


def _json(value: Any) -> str:
    return json.dumps(value, indent=2, default=str)


def _files(result: Dict[str, Any]) -> List[str]:
    files = result.get("files") or []
    if not files:
        return []
    return ["Files written:"] + [f"  - {path}" for path in files]


def _start_project(result: Dict[str, Any]) -> List[str]:
    lines = ["Decision matrix:"]
    for question in result.get("questions", []):
        lines.append(f"  {question['id']} [{question['category']}] {question['question']}")
        if question.get("options"):
            lines.append(f"      Options: {' | '.join(question['options'])}")
    if result.get("recommendation"):
        lines.extend(["", "AI recommendation:", result["recommendation"]])
    lines.extend([
        "",
        'Answer format: [{"questionId": "arch_01", "answer": "<option>"}, ...]',
    ])
    return lines


def _approve_architecture(result: Dict[str, Any]) -> List[str]:
    lines = [
        f"Architecture: {result.get('architecture')}",
        f"Requirements: {result.get('requirement_count')}  Endpoints: {result.get('endpoint_count')}  "
        f"Tasks: {result.get('total_tasks')} (~{result.get('estimated_hours', 0):g}h)",
    ]
    by_type = result.get("tasks_by_type") or {}
    if by_type:
        lines.append("Tasks by type: " + ", ".join(f"{kind}={count}" for kind, count in sorted(by_type.items())))
    return lines + _files(result)


def _api_tests(result: Dict[str, Any]) -> List[str]:
    lines = _files(result)
    commands = result.get("newman_commands") or {}
    if commands:
        lines.append("Newman:")
        lines.extend(f"  {command}" for command in commands.values())
    return lines


def _checkpoint(result: Dict[str, Any]) -> List[str]:
    lines = []
    checkpoint = result.get("checkpoint")
    if checkpoint:
        lines.append(
            f"Checkpoint {checkpoint['id']} at {checkpoint['timestamp']}: "
            f"{len(checkpoint['completed_task_ids'])} task(s) since previous checkpoint, "
            f"{checkpoint['tasks_completed']} total."
        )
    if result.get("continuation_prompt"):
        lines.extend(["", "Continuation prompt:", result["continuation_prompt"].rstrip()])
    return lines + _files(result)


def _complete_task(result: Dict[str, Any]) -> List[str]:
    lines = [
        f"Tasks completed: {result['tasks_completed']}  Since checkpoint: {result['tasks_since_checkpoint']}  "
        f"Progress: {result['progress']:.1f}%"
    ]
    lines.extend(f"Note: {note}" for note in result.get("notes", []))
    return lines


def _knowledge(result: Dict[str, Any]) -> List[str]:
    lines = []
    if result.get("found"):
        lines.extend(["Answer:", result.get("answer") or ""])
        if result.get("citations"):
            lines.append("Citations: " + "; ".join(result["citations"]))
    for suggestion in result.get("suggested_sources", []):
        lines.append(f"Suggestion: {suggestion}")
    return lines


def _ui_blueprint(result: Dict[str, Any]) -> List[str]:
    lines = [f"Catalog: {', '.join(result.get('catalog', []))}"]
    lines.extend(f"Warning: {warning}" for warning in result.get("warnings", []))
    lines.extend(_files(result))
    lines.extend(["", "Blueprint:", _json(result.get("blueprint"))])
    return lines


def _resume(result: Dict[str, Any]) -> List[str]:
    lines = ["Status:", _json(result.get("status"))]
    if result.get("checkpoint_log"):
        lines.append("Checkpoints: " + ", ".join(result["checkpoint_log"]))
    lines.extend(["", "Continuation prompt:", (result.get("continuation_prompt") or "").rstrip()])
    return lines


def _frontend_prompt(result: Dict[str, Any]) -> List[str]:
    lines = []
    if result.get("components"):
        lines.append("Components: " + ", ".join(result["components"]))
    if result.get("prompt_preview"):
        lines.extend(["Preview:", result["prompt_preview"]])
    return lines + _files(result)


def _bdd(result: Dict[str, Any]) -> List[str]:
    return _files(result)


_DETAILS: Dict[str, Callable[[Dict[str, Any]], List[str]]] = {
    "start_project": _start_project,
    "approve_architecture": _approve_architecture,
    "generate_api_tests": _api_tests,
    "generate_frontend_prompt": _frontend_prompt,
    "generate_bdd_tests": _bdd,
    "create_checkpoint": _checkpoint,
    "finalize_project": _checkpoint,
    "complete_task": _complete_task,
    "check_knowledge_base": _knowledge,
    "generate_ui_blueprint": _ui_blueprint,
    "resume_project": _resume,
}

# Commands whose whole result is returned as JSON
_JSON_COMMANDS = {"get_workflow_status", "list_projects", "get_workflow_guide"}


def render_report(command: str, result: Dict[str, Any]) -> str:
    """Render a successful command result as a self-describing text block."""
    if command in _JSON_COMMANDS:
        return _json(result)

    lines = [result.get("message", f"{command} completed.")]
    if result.get("phase"):
        lines.append(f"Phase: {result['phase']}")

    details = _DETAILS.get(command)
    if details is not None:
        body = details(result)
        if body:
            lines.append("")
            lines.extend(body)

    lines.append("")
    if result.get("next_suggested_step"):
        lines.append(f"Next step: {result['next_suggested_step']}")
    if result.get("workflow_tip"):
        lines.append(f"Tip: {result['workflow_tip']}")
    return "\n".join(lines).rstrip() + "\n"


def render_error(error: BaseException, next_step: Optional[str] = None) -> str:
    """Render any failure as ``Error: <message>`` followed by the next step."""
    if isinstance(error, DevForgeError):
        message = error.message
        next_step = error.next_step or next_step
    else:
        message = f"{type(error).__name__}: {error}"
    lines = [f"Error: {message}"]
    if next_step:
        lines.append(f"Next step: {next_step}")
    return "\n".join(lines) + "\n"
