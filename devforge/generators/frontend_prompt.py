"""Frontend builder prompt generation (Google Stitch, Lovable, v0, Bolt...)."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping

from ..errors import ValidationError
from ..models import SpecKit
from ..text_generation import TextGenerator
from .common import mentions_auth, pascal_case, resource_name

logger = logging.getLogger("devforge.generators.frontend_prompt")

FRONTEND_OPTIONS: Dict[str, List[str]] = {
    "platform": ["google-stitch", "lovable", "v0", "bolt", "generic"],
    "designStyle": ["modern", "minimal", "colorful", "professional", "playful"],
    "colorScheme": ["light", "dark", "auto"],
    "uiFramework": ["tailwind", "mui", "chakra", "ant-design"],
}

DESIGN_TOKENS: Dict[str, Dict[str, str]] = {
    "modern": {"font": "Inter", "radius": "12px", "spacing": "8px grid", "shadow": "soft layered shadows"},
    "minimal": {"font": "IBM Plex Sans", "radius": "4px", "spacing": "generous whitespace", "shadow": "none"},
    "colorful": {"font": "Poppins", "radius": "16px", "spacing": "8px grid", "shadow": "vivid accent glows"},
    "professional": {"font": "Source Sans 3", "radius": "6px", "spacing": "4px grid", "shadow": "subtle"},
    "playful": {"font": "Nunito", "radius": "20px", "spacing": "8px grid", "shadow": "bouncy elevation"},
}

_HEX_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{3}){1,2}$")


@dataclass(slots=True)
class FrontendAnswers:
    platform: str = "generic"
    design_style: str = "modern"
    color_scheme: str = "light"
    primary_color: str = "#3B82F6"
    ui_framework: str = "tailwind"
    features: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FrontendAnswers":
        """Parse the ``frontend_answers`` record, filling defaults for missing keys."""
        if not isinstance(data, Mapping):
            raise ValidationError("frontend_answers must be an object", next_step="ask_frontend_questions")

        values = {
            key: str(data.get(key) or default).strip().lower()
            for key, default in (
                ("platform", "generic"),
                ("designStyle", "modern"),
                ("colorScheme", "light"),
                ("uiFramework", "tailwind"),
            )
        }
        for key, value in values.items():
            if value not in FRONTEND_OPTIONS[key]:
                raise ValidationError(
                    f"Unsupported {key} '{value}'. Choose one of: {', '.join(FRONTEND_OPTIONS[key])}",
                    next_step="ask_frontend_questions",
                )

        primary = str(data.get("primaryColor") or "#3B82F6").strip()
        if not _HEX_COLOR.match(primary):
            raise ValidationError(
                f"primaryColor must be a hex color such as #3B82F6, got '{primary}'",
                next_step="ask_frontend_questions",
            )

        features = data.get("features") or []
        if isinstance(features, str):
            features = [item.strip() for item in features.split(",") if item.strip()]

        return cls(
            platform=values["platform"],
            design_style=values["designStyle"],
            color_scheme=values["colorScheme"],
            primary_color=primary,
            ui_framework=values["uiFramework"],
            features=[str(item) for item in features],
        )


@dataclass(slots=True)
class FrontendPrompt:
    main_prompt: str
    components: List[Dict[str, str]]
    design_system: Dict[str, str]
    api_integration: str
    user_flows: List[str]
    markdown: str = ""


def frontend_questions() -> str:
    """The questionnaire shown by ``ask_frontend_questions``."""
    return (
        "Answer these questions, then call generate_frontend_prompt with frontend_answers:\n\n"
        f"1. platform: which builder will create the UI? ({' / '.join(FRONTEND_OPTIONS['platform'])})\n"
        f"2. designStyle: {' / '.join(FRONTEND_OPTIONS['designStyle'])}\n"
        f"3. colorScheme: {' / '.join(FRONTEND_OPTIONS['colorScheme'])}\n"
        "4. primaryColor: brand color as hex, e.g. #3B82F6\n"
        f"5. uiFramework: {' / '.join(FRONTEND_OPTIONS['uiFramework'])}\n"
        "6. features: extra UI features (search, dark mode toggle, notifications...)\n"
    )


class FrontendPromptGenerator:
    """Assembles the prompt handed to a UI builder."""

    def __init__(self, text_generator: TextGenerator):
        self.text_generator = text_generator

    def generate(self, spec_kit: SpecKit, answers: FrontendAnswers) -> FrontendPrompt:
        spec = spec_kit.specification
        project_name = spec_kit.constitution.project_name

        narrative = self.text_generator.generate_text(
            f"Write a concise brief for a {answers.design_style} {answers.color_scheme}-mode frontend for "
            f"'{project_name}', to be built with {answers.platform} using {answers.ui_framework}.\n"
            f"Overview: {spec.overview}\n"
            "Requirements:\n" + "\n".join(f"- {r.title}" for r in spec.functional_requirements),
            800,
        )

        components = self._components(spec_kit)
        design_system = dict(DESIGN_TOKENS[answers.design_style])
        design_system.update({
            "primary_color": answers.primary_color,
            "color_scheme": answers.color_scheme,
            "framework": answers.ui_framework,
        })
        api_integration = self._api_integration(spec_kit)
        flows = [
            f"{r.id} {r.title}: " + " -> ".join(c.split(", then ")[-1] for c in r.acceptance_criteria[:2])
            for r in spec.functional_requirements
        ]
        main_prompt = (
            f"Build the frontend for **{project_name}** on {answers.platform}.\n\n{narrative}\n\n"
            f"Use {answers.ui_framework} with a {answers.design_style} style, {answers.color_scheme} color scheme "
            f"and primary color {answers.primary_color}."
        )
        if answers.features:
            main_prompt += "\n\nInclude these features: " + ", ".join(answers.features) + "."

        prompt = FrontendPrompt(
            main_prompt=main_prompt,
            components=components,
            design_system=design_system,
            api_integration=api_integration,
            user_flows=flows,
        )
        prompt.markdown = export_prompt(project_name, prompt)
        logger.debug(f"Frontend prompt for {project_name}: {len(components)} components")
        return prompt

    def _components(self, spec_kit: SpecKit) -> List[Dict[str, str]]:
        components = [{"name": "AppLayout", "purpose": "Shell with navigation, header and content area"}]
        seen = set()
        for requirement in spec_kit.specification.functional_requirements:
            if mentions_auth([requirement.title]):
                if "AuthForm" not in seen:
                    seen.add("AuthForm")
                    components.append({"name": "AuthForm", "purpose": "Login and registration forms"})
                continue
            resource = resource_name(requirement.title)
            if not resource or resource in seen:
                continue
            seen.add(resource)
            base = pascal_case(resource)
            components.extend([
                {"name": f"{base}List", "purpose": f"Browse and filter {resource}"},
                {"name": f"{base}Form", "purpose": f"Create and edit {resource}"},
                {"name": f"{base}Detail", "purpose": f"Show one of {resource}"},
            ])
        return components

    def _api_integration(self, spec_kit: SpecKit) -> str:
        endpoints = spec_kit.specification.api_endpoints
        if not endpoints:
            return "No HTTP API was derived; keep state local to the client."
        lines = ["Call these endpoints through a single API client module (base URL from env):"]
        lines.extend(f"- {e.method} {e.path}: {e.description}" for e in endpoints)
        lines.append("Show a loading state while requests are pending and surface API errors inline.")
        return "\n".join(lines)


def export_prompt(project_name: str, prompt: FrontendPrompt) -> str:
    components = "\n".join(f"- **{c['name']}**: {c['purpose']}" for c in prompt.components)
    design = "\n".join(f"- {key.replace('_', ' ').capitalize()}: {value}" for key, value in prompt.design_system.items())
    flows = "\n".join(f"{i}. {flow}" for i, flow in enumerate(prompt.user_flows, start=1)) or "1. Explore the home screen"
    return (
        f"# Frontend Prompt: {project_name}\n\n"
        f"## Main Prompt\n\n{prompt.main_prompt}\n\n"
        f"## Components\n\n{components}\n\n"
        f"## Design System\n\n{design}\n\n"
        f"## API Integration\n\n{prompt.api_integration}\n\n"
        f"## User Flows\n\n{flows}\n"
    )
