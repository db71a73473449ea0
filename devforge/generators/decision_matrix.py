"""Architecture decision matrix generation."""

from __future__ import annotations

import logging
from typing import Dict, List, Sequence

from ..models import DecisionMatrix, DecisionQuestion
from ..text_generation import TextGenerator
from .common import bullet_list, mentions_auth

logger = logging.getLogger("devforge.generators.decision_matrix")

PROJECT_TYPES = ("web", "api", "cli", "desktop", "mobile", "library")

ARCHITECTURE_OPTIONS: Dict[str, List[str]] = {
    "web": ["Monolith (server-rendered)", "SPA + REST API", "Jamstack", "Microservices"],
    "api": ["Monolith", "Modular monolith", "Microservices", "Serverless functions"],
    "cli": ["Single command", "Command groups (subcommands)", "Plugin-based"],
    "desktop": ["MVC", "MVVM", "Electron shell + local service"],
    "mobile": ["Native", "Cross-platform (Flutter / React Native)", "Progressive web app"],
    "library": ["Functional core", "Object-oriented API", "Plugin / extension points"],
}

STACK_OPTIONS: Dict[str, List[str]] = {
    "web": ["Node.js (Express) + React", "Python (Django)", "Next.js full-stack", "Go + HTMX"],
    "api": ["Node.js (Express)", "Python (FastAPI)", "Go (Gin)", "Java (Spring Boot)"],
    "cli": ["Python (Click)", "Go (Cobra)", "Rust (clap)", "Node.js (Commander)"],
    "desktop": ["Electron", "Tauri", "Qt", ".NET MAUI"],
    "mobile": ["Flutter", "React Native", "Swift + Kotlin"],
    "library": ["Python", "TypeScript", "Go", "Rust"],
}

DATABASE_OPTIONS = ["PostgreSQL", "MySQL", "MongoDB", "SQLite"]
AUTH_OPTIONS = ["JWT bearer tokens", "OAuth 2.0 / OpenID Connect", "Session cookies", "API keys"]
DEPLOYMENT_OPTIONS = ["Docker on a VM", "Kubernetes", "Serverless platform", "Managed PaaS"]
TESTING_OPTIONS = ["Unit tests only", "Unit + API tests", "Unit + API + BDD acceptance tests"]

# Project types that persist data behind a server
_DATA_BACKED = {"web", "api", "mobile", "desktop"}


class DecisionMatrixGenerator:
    """Builds the architecture questions for a new project."""

    def __init__(self, text_generator: TextGenerator):
        self.text_generator = text_generator

    def generate(
        self,
        project_name: str,
        project_type: str,
        description: str,
        requirements: Sequence[str],
    ) -> DecisionMatrix:
        project_type = project_type.lower()
        questions = self._questions(project_name, project_type, requirements)
        recommendation = self.text_generator.generate_text(
            self._recommendation_prompt(project_name, project_type, description, requirements, questions),
            600,
        )
        logger.debug(f"Decision matrix for {project_name}: {len(questions)} questions")
        return DecisionMatrix(
            project_type=project_type,
            description=description,
            questions=questions,
            recommendation=recommendation,
        )

    def _questions(self, project_name: str, project_type: str, requirements: Sequence[str]) -> List[DecisionQuestion]:
        questions = [
            DecisionQuestion(
                id="arch_01",
                category="architecture",
                question=f"Which architecture pattern should {project_name} follow?",
                options=list(ARCHITECTURE_OPTIONS[project_type]),
            ),
            DecisionQuestion(
                id="tech_01",
                category="stack",
                question="Which language and framework should the implementation use?",
                options=list(STACK_OPTIONS[project_type]),
            ),
        ]
        if project_type in _DATA_BACKED:
            questions.append(DecisionQuestion(
                id="data_01",
                category="database",
                question="Which database should store the application data?",
                options=list(DATABASE_OPTIONS),
            ))
        if mentions_auth(requirements):
            questions.append(DecisionQuestion(
                id="auth_01",
                category="auth",
                question="How should users authenticate?",
                options=list(AUTH_OPTIONS),
            ))
        if project_type in _DATA_BACKED:
            questions.append(DecisionQuestion(
                id="deploy_01",
                category="deployment",
                question="Where will the application be deployed?",
                options=list(DEPLOYMENT_OPTIONS),
            ))
        questions.append(DecisionQuestion(
            id="test_01",
            category="testing",
            question="What level of automated testing is expected?",
            options=list(TESTING_OPTIONS),
        ))
        return questions

    def _recommendation_prompt(
        self,
        project_name: str,
        project_type: str,
        description: str,
        requirements: Sequence[str],
        questions: List[DecisionQuestion],
    ) -> str:
        question_block = "\n".join(
            f"- {q.id} ({q.category}): {q.question} Options: {', '.join(q.options)}" for q in questions
        )
        return (
            f"You are a senior software architect. Recommend one option per question for the "
            f"{project_type} project '{project_name}'.\n\n"
            f"Description: {description}\n\n"
            f"Requirements:\n{bullet_list(requirements)}\n\n"
            f"Questions:\n{question_block}\n\n"
            "Answer with one short line per question id followed by a two sentence rationale."
        )
