"""Document generators used by the workflow orchestrator."""

from __future__ import annotations

from dataclasses import dataclass

from ..text_generation import TextGenerator
from .bdd import BddGenerator, BddSuite
from .decision_matrix import PROJECT_TYPES, DecisionMatrixGenerator
from .frontend_prompt import FrontendAnswers, FrontendPrompt, FrontendPromptGenerator, frontend_questions
from .postman import PostmanArtifact, PostmanGenerator
from .spec_kit import SpecKitGenerator, render_spec_kit
from .ui_blueprint import UiBlueprint, UiBlueprintGenerator


@dataclass(slots=True)
class Generators:
    """The generator set injected into the orchestrator."""

    decision_matrix: DecisionMatrixGenerator
    spec_kit: SpecKitGenerator
    postman: PostmanGenerator
    frontend_prompt: FrontendPromptGenerator
    bdd: BddGenerator
    ui_blueprint: UiBlueprintGenerator

    @classmethod
    def default(cls, text_generator: TextGenerator) -> "Generators":
        return cls(
            decision_matrix=DecisionMatrixGenerator(text_generator),
            spec_kit=SpecKitGenerator(text_generator),
            postman=PostmanGenerator(text_generator),
            frontend_prompt=FrontendPromptGenerator(text_generator),
            bdd=BddGenerator(),
            ui_blueprint=UiBlueprintGenerator(),
        )


__all__ = [
    "BddGenerator",
    "BddSuite",
    "DecisionMatrixGenerator",
    "FrontendAnswers",
    "FrontendPrompt",
    "FrontendPromptGenerator",
    "Generators",
    "PROJECT_TYPES",
    "PostmanArtifact",
    "PostmanGenerator",
    "SpecKitGenerator",
    "UiBlueprint",
    "UiBlueprintGenerator",
    "frontend_questions",
    "render_spec_kit",
]
