"""Gherkin feature files and Cucumber scaffolding."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from ..models import FunctionalRequirement, SpecKit
from .common import slugify

logger = logging.getLogger("devforge.generators.bdd")

_CRITERION = re.compile(r"^given (?P<given>.+?), when (?P<when>.+?), then (?P<then>.+)$", re.IGNORECASE)

CUCUMBER_CONFIG = """module.exports = {
  default: {
    paths: ['tests/features/**/*.feature'],
    require: ['tests/step-definitions/**/*.js'],
    format: ['progress-bar', 'html:reports/cucumber-report.html'],
    publishQuiet: true,
  },
};
"""


@dataclass(slots=True)
class BddSuite:
    features: Dict[str, str]
    step_definitions: str
    config: str
    scenario_count: int = 0
    files: Dict[str, str] = field(default_factory=dict)


def parse_criterion(criterion: str) -> Tuple[str, str, str]:
    """Split a "Given ..., when ..., then ..." sentence into its three steps."""
    match = _CRITERION.match(criterion.strip().rstrip("."))
    if match:
        return match.group("given"), match.group("when"), match.group("then")
    return "the system is running", criterion.strip().rstrip(".").lower(), "the outcome is accepted"


class BddGenerator:
    """Builds one feature per functional requirement."""

    def generate(self, spec_kit: SpecKit, pattern: str = "") -> BddSuite:
        features: Dict[str, str] = {}
        steps: Dict[str, List[str]] = {"Given": [], "When": [], "Then": []}
        scenario_count = 0

        for requirement in spec_kit.specification.functional_requirements:
            path = f"tests/features/{requirement.id.lower()}-{slugify(requirement.title)}.feature"
            content, parsed = self._feature(requirement, pattern or spec_kit.technical_plan.pattern)
            features[path] = content
            scenario_count += len(parsed)
            for given, when, then in parsed:
                for keyword, text in (("Given", given), ("When", when), ("Then", then)):
                    if text not in steps[keyword]:
                        steps[keyword].append(text)

        step_definitions = render_step_definitions(steps)
        files = dict(features)
        files["tests/step-definitions/steps.js"] = step_definitions
        files["cucumber.js"] = CUCUMBER_CONFIG

        logger.debug(f"BDD suite: {len(features)} features, {scenario_count} scenarios")
        return BddSuite(
            features=features,
            step_definitions=step_definitions,
            config=CUCUMBER_CONFIG,
            scenario_count=scenario_count,
            files=files,
        )

    def _feature(self, requirement: FunctionalRequirement, pattern: str) -> Tuple[str, List[Tuple[str, str, str]]]:
        tag = "@critical" if requirement.priority == "high" else "@regression"
        lines = [
            f"{tag} @{requirement.id.lower()}",
            f"Feature: {requirement.title}",
            f"  {requirement.description}",
        ]
        if pattern:
            lines.append(f"  Architecture: {pattern}")
        lines.append("")

        parsed = [parse_criterion(c) for c in requirement.acceptance_criteria]
        for index, (given, when, then) in enumerate(parsed, start=1):
            lines.extend([
                f"  Scenario: {requirement.id} acceptance {index}",
                f"    Given {given}",
                f"    When {when}",
                f"    Then {then}",
                "",
            ])
        return "\n".join(lines), parsed


def render_step_definitions(steps: Dict[str, List[str]]) -> str:
    lines = ["const { Given, When, Then } = require('@cucumber/cucumber');", ""]
    for keyword, texts in steps.items():
        for text in texts:
            escaped = text.replace("\\", "\\\\").replace("'", "\\'")
            lines.extend([
                f"{keyword}('{escaped}', async function () {{",
                "  return 'pending';",
                "});",
                "",
            ])
    return "\n".join(lines)
