"""Spec-Kit generation: constitution, specification, technical plan and tasks."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, List, Sequence

from ..models import (
    ApiEndpoint,
    Constitution,
    DecisionMatrix,
    FunctionalRequirement,
    SpecKit,
    Specification,
    Task,
    TechnicalPlan,
)
from ..text_generation import TextGenerator
from .common import AUTH_TERMS, bullet_list, mentions_auth, resource_name, title_case

logger = logging.getLogger("devforge.generators.spec_kit")

BASE_PRINCIPLES = [
    "Every functional requirement is covered by an automated acceptance test",
    "Public interfaces are documented before they are implemented",
    "Progress is checkpointed so work can resume after any interruption",
]

LAYERS_BY_PATTERN: Dict[str, List[str]] = {
    "microservices": ["API gateway", "Services", "Messaging", "Data stores"],
    "serverless": ["HTTP triggers", "Functions", "Managed data services"],
    "spa": ["UI (SPA)", "REST API", "Domain services", "Persistence"],
    "mvvm": ["Views", "View models", "Models", "Services"],
    "mvc": ["Views", "Controllers", "Models"],
    "command": ["Command parser", "Commands", "Core library"],
}
DEFAULT_LAYERS = ["Presentation", "Application services", "Domain", "Persistence"]

NON_FUNCTIONAL: Dict[str, List[str]] = {
    "api": ["p95 latency under 300 ms for CRUD endpoints", "Consistent JSON error envelope", "OpenAPI description kept current"],
    "web": ["First contentful paint under 2 s", "WCAG 2.1 AA accessibility", "Responsive layout down to 360 px"],
    "mobile": ["Cold start under 2 s", "Offline-tolerant data access", "Platform accessibility guidelines"],
}
DEFAULT_NON_FUNCTIONAL = ["Clear error messages for invalid input", "Documented installation and usage"]

CRUD_TERMS = ("crud", "manage", "management")


class SpecKitGenerator:
    """Turns the approved decision matrix into the Spec-Kit bundle."""

    def __init__(self, text_generator: TextGenerator):
        self.text_generator = text_generator

    def generate(
        self,
        project_name: str,
        project_type: str,
        description: str,
        requirements: Sequence[str],
        matrix: DecisionMatrix,
    ) -> SpecKit:
        vision = self.text_generator.generate_text(
            f"Write a three sentence product vision for the {project_type} project '{project_name}'.\n"
            f"Description: {description}\nRequirements:\n{bullet_list(requirements)}",
            300,
        )
        constitution = Constitution(
            project_name=project_name,
            vision=vision,
            principles=list(BASE_PRINCIPLES),
            constraints=self._constraints(matrix),
        )
        requirements_list = self._functional_requirements(requirements)
        specification = Specification(
            overview=f"{project_name} is a {project_type} project. {description}".strip(),
            functional_requirements=requirements_list,
            api_endpoints=self._endpoints(requirements_list) if project_type in {"api", "web", "mobile"} else [],
            non_functional=list(NON_FUNCTIONAL.get(project_type, DEFAULT_NON_FUNCTIONAL)),
        )
        plan = self._technical_plan(matrix)
        tasks = self._tasks(requirements_list, matrix, project_type)
        logger.debug(f"Spec-Kit for {project_name}: {len(requirements_list)} requirements, {len(tasks)} tasks")
        return SpecKit(constitution=constitution, specification=specification, technical_plan=plan, tasks=tasks)

    # ------------------------------------------------------------------
    # Builders
    # ------------------------------------------------------------------

    def _constraints(self, matrix: DecisionMatrix) -> List[str]:
        constraints = []
        for question in matrix.questions:
            answer = matrix.answer_for(question.id)
            if answer:
                constraints.append(f"{question.category.capitalize()}: {answer}")
        return constraints

    def _functional_requirements(self, requirements: Sequence[str]) -> List[FunctionalRequirement]:
        result = []
        for index, text in enumerate(requirements, start=1):
            lowered = text.lower()
            resource = resource_name(text)
            subject = resource or "the feature"
            is_auth = any(term in lowered for term in AUTH_TERMS)
            if is_auth:
                criteria = [
                    "Given a registered account, when valid credentials are submitted, then a session token is issued",
                    "Given invalid credentials, when they are submitted, then access is denied with an error",
                ]
            elif any(term in lowered for term in CRUD_TERMS):
                criteria = [
                    f"Given valid input, when a user creates {subject}, then it is stored and returned",
                    f"Given existing {subject}, when a user lists them, then all of them are returned",
                    f"Given an existing item, when a user updates it, then the change is persisted",
                    f"Given an existing item, when a user deletes it, then it is no longer returned",
                ]
            else:
                criteria = [
                    f"Given the system is running, when a user uses '{text.strip()}', then it completes successfully",
                    "Given invalid input, when the request is made, then a validation error is reported",
                ]
            result.append(FunctionalRequirement(
                id=f"FR-{index:03d}",
                title=title_case(text),
                description=f"The system shall support: {text.strip()}.",
                priority="high" if index <= 2 or is_auth else "medium",
                acceptance_criteria=criteria,
            ))
        return result

    def _endpoints(self, requirements: List[FunctionalRequirement]) -> List[ApiEndpoint]:
        endpoints: List[ApiEndpoint] = []
        seen = set()

        def add(method: str, path: str, description: str, requirement_id: str) -> None:
            if (method, path) not in seen:
                seen.add((method, path))
                endpoints.append(ApiEndpoint(method, path, description, requirement_id))

        for requirement in requirements:
            lowered = requirement.title.lower()
            if mentions_auth([lowered]):
                add("POST", "/api/auth/register", "Register a new account", requirement.id)
                add("POST", "/api/auth/login", "Authenticate and obtain a token", requirement.id)
                continue
            resource = resource_name(requirement.title)
            if not resource:
                continue
            base = f"/api/{resource}"
            add("GET", base, f"List {resource}", requirement.id)
            add("POST", base, f"Create one of {resource}", requirement.id)
            if any(term in lowered for term in CRUD_TERMS):
                add("GET", f"{base}/:id", f"Fetch one of {resource}", requirement.id)
                add("PUT", f"{base}/:id", f"Update one of {resource}", requirement.id)
                add("DELETE", f"{base}/:id", f"Delete one of {resource}", requirement.id)
        return endpoints

    def _technical_plan(self, matrix: DecisionMatrix) -> TechnicalPlan:
        pattern = matrix.answer_for("arch_01") or (matrix.questions[0].options[0] if matrix.questions else "Monolith")
        lowered = pattern.lower()
        layers = next((layers for key, layers in LAYERS_BY_PATTERN.items() if key in lowered), DEFAULT_LAYERS)
        stack = {}
        for question in matrix.questions:
            if question.category == "architecture":
                continue
            answer = matrix.answer_for(question.id)
            if answer:
                stack[question.category] = answer
        return TechnicalPlan(pattern=pattern, layers=list(layers), tech_stack=stack)

    def _tasks(self, requirements: List[FunctionalRequirement], matrix: DecisionMatrix, project_type: str) -> List[Task]:
        planned: List[tuple] = [
            ("Set up repository, tooling and CI pipeline", "setup", "high", 2.0, None),
        ]
        if matrix.answer_for("data_01"):
            planned.append((f"Provision {matrix.answer_for('data_01')} schema and migrations", "setup", "high", 2.0, None))
        for requirement in requirements:
            planned.append((f"Implement {requirement.id}: {requirement.title}", "backend", requirement.priority, 4.0, requirement.id))
            planned.append((f"Write tests for {requirement.id}", "testing", requirement.priority, 2.0, requirement.id))
        planned.append(("Document the public interface", "docs", "medium", 1.5, None))
        if project_type in {"web", "mobile", "desktop", "api"}:
            planned.append(("Integrate the frontend with the backend", "frontend", "medium", 4.0, None))
        planned.append(("Run the BDD acceptance suite and fix failures", "testing", "high", 3.0, None))

        return [
            Task(id=f"T{index:03d}", title=title, type=kind, priority=priority, estimated_hours=hours, requirement_id=req)
            for index, (title, kind, priority, hours, req) in enumerate(planned, start=1)
        ]


# ---------------------------------------------------------------------------
# Markdown rendering
# ---------------------------------------------------------------------------


def render_spec_kit(spec_kit: SpecKit) -> Dict[str, str]:
    """Markdown documents keyed by their path relative to the project directory."""
    return {
        "docs/CONSTITUTION.md": render_constitution(spec_kit.constitution),
        "docs/SPECIFICATION.md": render_specification(spec_kit.specification),
        "docs/TECHNICAL_PLAN.md": render_technical_plan(spec_kit.technical_plan),
        "docs/TASKS.md": render_tasks(spec_kit.tasks),
    }


def render_constitution(constitution: Constitution) -> str:
    principles = "\n".join(f"{i}. {p}" for i, p in enumerate(constitution.principles, start=1))
    return (
        f"# {constitution.project_name} Constitution\n\n"
        f"## Vision\n\n{constitution.vision}\n\n"
        f"## Principles\n\n{principles}\n\n"
        f"## Constraints\n\n{bullet_list(constitution.constraints)}\n"
    )


def render_specification(spec: Specification) -> str:
    lines = ["# Specification", "", "## Overview", "", spec.overview, "", "## Functional Requirements", ""]
    for req in spec.functional_requirements:
        lines.extend([
            f"### {req.id}: {req.title}",
            "",
            f"**Priority:** {req.priority}",
            "",
            req.description,
            "",
            "**Acceptance Criteria:**",
            bullet_list(req.acceptance_criteria),
            "",
        ])
    if spec.api_endpoints:
        lines.extend(["## API Design", "", "| Method | Path | Description | Requirement |", "|---|---|---|---|"])
        lines.extend(
            f"| {e.method} | `{e.path}` | {e.description} | {e.requirement_id or '-'} |" for e in spec.api_endpoints
        )
        lines.append("")
    lines.extend(["## Non-Functional Requirements", "", bullet_list(spec.non_functional), ""])
    return "\n".join(lines)


def render_technical_plan(plan: TechnicalPlan) -> str:
    stack = bullet_list(f"**{key.capitalize()}:** {value}" for key, value in plan.tech_stack.items())
    return (
        "# Technical Plan\n\n"
        "## Architecture\n\n"
        f"**Pattern:** {plan.pattern}\n\n"
        f"**Layers:** {', '.join(plan.layers)}\n\n"
        f"## Technology Stack\n\n{stack}\n"
    )


def render_tasks(tasks: List[Task]) -> str:
    today = datetime.now(timezone.utc).strftime("%Y-%m-%d")
    total_hours = sum(task.estimated_hours for task in tasks)
    lines = [
        "# Task Breakdown",
        "",
        f"Generated: {today}. Total tasks: {len(tasks)} (~{total_hours:g}h).",
        "",
    ]
    for task in tasks:
        ref = f" ({task.requirement_id})" if task.requirement_id else ""
        lines.append(f"- [ ] {task.id} [{task.type}/{task.priority}, {task.estimated_hours:g}h] {task.title}{ref}")
    return "\n".join(lines) + "\n"
