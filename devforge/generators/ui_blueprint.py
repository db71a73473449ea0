"""A2UI (agent-to-UI) blueprint generation.

Each screen becomes one surface: an ``AppBar`` header followed by the
requested widgets, all wrapped in a ``Column``. Unknown widget names fall
back to ``Container``. The blueprint's catalog lists only the widget names
the surfaces actually use.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..errors import ValidationError
from ..models import utc_now
from .common import pascal_case, slugify
from .ui_catalog import PLATFORMS, WidgetCatalog, default_catalog

logger = logging.getLogger("devforge.generators.ui_blueprint")

A2UI_VERSION = "0.8"
DEFAULT_COMPONENTS = ["Container", "Text", "Button"]

CODE_FILES = {
    "react": "a2ui/screens.jsx",
    "react-native": "a2ui/screens.jsx",
    "web": "a2ui/screens.jsx",
    "angular": "a2ui/screens.jsx",
    "flutter": "a2ui/screens.dart",
    "console": "a2ui/screens.txt",
}


@dataclass(slots=True)
class Screen:
    name: str
    route: str
    description: str = ""
    components: List[str] = field(default_factory=list)
    data_requirements: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Screen":
        if not isinstance(data, Mapping) or not str(data.get("name") or "").strip():
            raise ValidationError(f"Each screen needs a name, got {data!r}")
        name = str(data["name"]).strip()
        components = data.get("components") or list(DEFAULT_COMPONENTS)
        if isinstance(components, str):
            components = [part.strip() for part in components.split(",") if part.strip()]
        return cls(
            name=name,
            route=str(data.get("route") or f"/{slugify(name, 'screen')}"),
            description=str(data.get("description") or ""),
            components=[str(c) for c in components],
            data_requirements=[str(d) for d in data.get("dataRequirements") or data.get("data_requirements") or []],
        )


@dataclass(slots=True)
class UiBlueprint:
    blueprint: Dict[str, Any]
    messages: List[Dict[str, Any]]
    code: str
    warnings: List[str] = field(default_factory=list)
    files: Dict[str, str] = field(default_factory=dict)

    @property
    def catalog(self) -> List[str]:
        return list(self.blueprint["catalog"])

    @property
    def jsonl(self) -> str:
        return "\n".join(json.dumps(message) for message in self.messages) + "\n"


class UiBlueprintGenerator:
    """Generates A2UI blueprints, streaming messages and starter code."""

    def __init__(self, catalog: Optional[WidgetCatalog] = None):
        self.catalog = catalog or default_catalog()

    def generate(self, project_name: str, platform: str, screens: Sequence[Mapping[str, Any]]) -> UiBlueprint:
        platform = (platform or "").strip().lower()
        if platform not in PLATFORMS:
            raise ValidationError(f"Unsupported platform '{platform}'. Choose one of: {', '.join(PLATFORMS)}")
        if not screens:
            raise ValidationError("Provide at least one screen to generate a blueprint")

        parsed = [Screen.from_dict(screen) for screen in screens]
        counter = _IdCounter()
        surfaces = [self._surface(screen, counter) for screen in parsed]

        used: List[str] = []
        for surface in surfaces:
            for component in surface["components"]:
                widget_name = next(iter(component["component"]))
                if widget_name not in used:
                    used.append(widget_name)

        warnings = [
            f"{name} is not supported on {platform}" for name in used if not self.catalog.is_supported(name, platform)
        ]
        unknown = sorted({c for screen in parsed for c in screen.components if self.catalog.get(c) is None})
        warnings.extend(f"Unknown widget '{name}' rendered as Container" for name in unknown)

        blueprint = {
            "version": A2UI_VERSION,
            "platform": platform,
            "surfaces": surfaces,
            "catalog": used,
            "metadata": {
                "projectName": project_name,
                "generatedAt": utc_now(),
                "generator": "DevForge A2UI Generator",
            },
        }
        messages = generate_messages(blueprint)
        code = render_code(blueprint)

        result = UiBlueprint(blueprint=blueprint, messages=messages, code=code, warnings=warnings)
        result.files = {
            "a2ui/blueprint.json": json.dumps(blueprint, indent=2) + "\n",
            "a2ui/messages.jsonl": result.jsonl,
            CODE_FILES[platform]: code,
        }
        logger.debug(f"A2UI blueprint for {project_name}: {len(surfaces)} surfaces on {platform}")
        return result

    def _surface(self, screen: Screen, counter: "_IdCounter") -> Dict[str, Any]:
        components: List[Dict[str, Any]] = []

        header_id = counter.next("header")
        header = self.catalog.resolve("AppBar")
        components.append({
            "id": header_id,
            "component": {header.name: {"value": screen.name, "style": {**header.default_style, "backgroundColor": "primary"}}},
        })

        child_ids = []
        for name in screen.components:
            widget = self.catalog.resolve(name)
            component_id = counter.next(slugify(name, "widget").replace("-", "_"))
            child_ids.append(component_id)
            components.append({
                "id": component_id,
                "component": {widget.name: {"props": dict(widget.default_props), "style": dict(widget.default_style)}},
            })

        components.append({
            "id": counter.next("container"),
            "component": {"Column": {"children": [header_id, *child_ids], "style": {"padding": 16}}},
        })

        return {
            "surfaceId": screen.route.strip("/").replace("/", "_") or "root",
            "title": screen.name,
            "route": screen.route,
            "components": components,
            "dataModel": data_model(screen.data_requirements),
        }


class _IdCounter:
    def __init__(self):
        self.value = 0

    def next(self, prefix: str) -> str:
        self.value += 1
        return f"{prefix}_{self.value}"


def data_model(requirements: Sequence[str]) -> Dict[str, Any]:
    model: Dict[str, Any] = {}
    for requirement in requirements:
        if "list" in requirement:
            model[requirement] = []
        elif "user" in requirement:
            model[requirement] = {"id": "", "name": "", "email": ""}
        else:
            model[requirement] = None
    return model


def generate_messages(blueprint: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Streaming messages: beginRendering, surfaceUpdate and (if any) dataModelUpdate per surface."""
    messages = []
    for surface in blueprint["surfaces"]:
        messages.append({"type": "beginRendering", "surfaceId": surface["surfaceId"]})
        messages.append({"type": "surfaceUpdate", "surfaceId": surface["surfaceId"], "components": surface["components"]})
        if surface["dataModel"]:
            messages.append({"type": "dataModelUpdate", "surfaceId": surface["surfaceId"], "dataModel": surface["dataModel"]})
    return messages


# ---------------------------------------------------------------------------
# Code rendering
# ---------------------------------------------------------------------------


def _component_index(surface: Dict[str, Any]) -> Dict[str, tuple]:
    return {c["id"]: next(iter(c["component"].items())) for c in surface["components"]}


def render_code(blueprint: Dict[str, Any]) -> str:
    platform = blueprint["platform"]
    if platform == "flutter":
        return render_flutter(blueprint)
    if platform == "console":
        return render_outline(blueprint)
    return render_react(blueprint)


def render_react(blueprint: Dict[str, Any]) -> str:
    lines = [
        "// Generated by DevForge A2UI Generator",
        f"// Project: {blueprint['metadata']['projectName']}",
        f"// Platform: {blueprint['platform']}",
        "",
        "import React from 'react';",
        "",
    ]
    for surface in blueprint["surfaces"]:
        index = _component_index(surface)
        root_type, root = index[surface["components"][-1]["id"]]
        lines.append(f"export function {pascal_case(surface['surfaceId']) or 'Root'}Screen() {{")
        lines.append("  return (")
        lines.append(f'    <div className="{root_type.lower()}">')
        for child_id in root.get("children", []):
            child_type, child = index[child_id]
            if child.get("value"):
                lines.append(f'      <header className="{child_type.lower()}">{child["value"]}</header>')
            else:
                lines.append(f'      <div className="{child_type.lower()}" data-a2ui-id="{child_id}" />')
        lines.append("    </div>")
        lines.append("  );")
        lines.append("}")
        lines.append("")
    return "\n".join(lines)


def render_flutter(blueprint: Dict[str, Any]) -> str:
    lines = [
        "// Generated by DevForge A2UI Generator",
        f"// Project: {blueprint['metadata']['projectName']}",
        "",
        "import 'package:flutter/material.dart';",
        "",
    ]
    for surface in blueprint["surfaces"]:
        index = _component_index(surface)
        _, root = index[surface["components"][-1]["id"]]
        lines.append(f"class {pascal_case(surface['surfaceId']) or 'Root'}Screen extends StatelessWidget {{")
        lines.append("  @override")
        lines.append("  Widget build(BuildContext context) {")
        lines.append("    return Column(")
        lines.append("      children: [")
        for child_id in root.get("children", []):
            child_type, child = index[child_id]
            if child.get("value"):
                lines.append(f"        AppBar(title: Text('{child['value']}')),")
            else:
                lines.append(f"        // {child_type} ({child_id})")
                lines.append("        Container(),")
        lines.append("      ],")
        lines.append("    );")
        lines.append("  }")
        lines.append("}")
        lines.append("")
    return "\n".join(lines)


def render_outline(blueprint: Dict[str, Any]) -> str:
    lines = [f"{blueprint['metadata']['projectName']} ({blueprint['platform']})"]
    for surface in blueprint["surfaces"]:
        lines.append(f"- {surface['title']} [{surface['route']}]")
        for component in surface["components"]:
            widget_name = next(iter(component["component"]))
            lines.append(f"    {widget_name} #{component['id']}")
    return "\n".join(lines) + "\n"
