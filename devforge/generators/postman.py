"""Postman collection, environments and API testing guide."""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List

from ..models import ApiEndpoint, SpecKit
from ..text_generation import TextGenerator
from .common import slugify

logger = logging.getLogger("devforge.generators.postman")

SCHEMA_URL = "https://schema.getpostman.com/json/collection/v2.1.0/collection.json"

ENVIRONMENTS = {
    "dev": "http://localhost:3000",
    "staging": "https://staging.example.com",
    "prod": "https://api.example.com",
}


@dataclass(slots=True)
class PostmanArtifact:
    collection: Dict[str, Any]
    environments: Dict[str, Dict[str, Any]]
    guide: str
    newman_commands: Dict[str, str]
    request_count: int = 0
    files: Dict[str, str] = field(default_factory=dict)


class PostmanGenerator:
    """Builds a Postman v2.1 collection from the specification's endpoints."""

    def __init__(self, text_generator: TextGenerator):
        self.text_generator = text_generator

    def generate(self, spec_kit: SpecKit) -> PostmanArtifact:
        project_name = spec_kit.constitution.project_name
        endpoints = spec_kit.specification.api_endpoints
        description = self.text_generator.generate_text(
            f"In two sentences, describe the purpose of the API test collection for '{project_name}'. "
            f"It covers {len(endpoints)} endpoints: "
            + ", ".join(f"{e.method} {e.path}" for e in endpoints),
            200,
        )

        collection = self.build_collection(project_name, description, endpoints)
        environments = {name: self.build_environment(project_name, name, url) for name, url in ENVIRONMENTS.items()}
        commands = newman_commands("postman/collection.json", "postman/dev.environment.json")
        guide = testing_guide(project_name, endpoints, commands)

        files = {"postman/collection.json": json.dumps(collection, indent=2) + "\n"}
        for name, environment in environments.items():
            files[f"postman/{name}.environment.json"] = json.dumps(environment, indent=2) + "\n"
        files["docs/API_TESTING_GUIDE.md"] = guide

        logger.debug(f"Postman collection for {project_name}: {len(endpoints)} requests")
        return PostmanArtifact(
            collection=collection,
            environments=environments,
            guide=guide,
            newman_commands=commands,
            request_count=len(endpoints),
            files=files,
        )

    def build_collection(self, project_name: str, description: str, endpoints: List[ApiEndpoint]) -> Dict[str, Any]:
        folders: Dict[str, Dict[str, Any]] = {}
        for endpoint in endpoints:
            folder_name = endpoint.path.strip("/").split("/")[1] if endpoint.path.count("/") > 1 else "root"
            folder = folders.setdefault(folder_name, {"name": folder_name, "item": []})
            folder["item"].append(self._request_item(endpoint))

        return {
            "info": {
                "_postman_id": str(uuid.uuid5(uuid.NAMESPACE_URL, f"devforge:{slugify(project_name)}")),
                "name": f"{project_name} API",
                "description": description,
                "schema": SCHEMA_URL,
            },
            "item": list(folders.values()),
            "variable": [{"key": "base_url", "value": ENVIRONMENTS["dev"]}],
        }

    def _request_item(self, endpoint: ApiEndpoint) -> Dict[str, Any]:
        segments = [segment for segment in endpoint.path.strip("/").split("/") if segment]
        request: Dict[str, Any] = {
            "method": endpoint.method,
            "header": [{"key": "Content-Type", "value": "application/json"}],
            "url": {
                "raw": "{{base_url}}" + endpoint.path,
                "host": ["{{base_url}}"],
                "path": segments,
            },
            "description": endpoint.description,
        }
        if endpoint.method in {"POST", "PUT", "PATCH"}:
            request["body"] = {"mode": "raw", "raw": "{\n  \"name\": \"example\"\n}", "options": {"raw": {"language": "json"}}}

        expected = 201 if endpoint.method == "POST" and "auth/login" not in endpoint.path else 200
        if endpoint.method == "DELETE":
            expected = 204
        tests = [
            f"pm.test('Status code is {expected}', function () {{",
            f"    pm.response.to.have.status({expected});",
            "});",
            "pm.test('Response time is below 2000ms', function () {",
            "    pm.expect(pm.response.responseTime).to.be.below(2000);",
            "});",
        ]
        return {
            "name": f"{endpoint.method} {endpoint.path}",
            "request": request,
            "event": [{"listen": "test", "script": {"type": "text/javascript", "exec": tests}}],
        }

    def build_environment(self, project_name: str, name: str, base_url: str) -> Dict[str, Any]:
        return {
            "id": str(uuid.uuid5(uuid.NAMESPACE_URL, f"devforge:{slugify(project_name)}:{name}")),
            "name": f"{project_name} ({name})",
            "values": [
                {"key": "base_url", "value": base_url, "enabled": True},
                {"key": "auth_token", "value": "", "enabled": True},
            ],
            "_postman_variable_scope": "environment",
        }


def newman_commands(collection_path: str, environment_path: str) -> Dict[str, str]:
    base = f"newman run {collection_path} -e {environment_path}"
    return {
        "basic": base,
        "with_html_report": f"{base} -r cli,htmlextra --reporter-htmlextra-export reports/api-report.html",
        "ci": f"{base} --bail -r cli,junit --reporter-junit-export reports/junit.xml",
    }


def testing_guide(project_name: str, endpoints: List[ApiEndpoint], commands: Dict[str, str]) -> str:
    rows = "\n".join(f"| {e.method} | `{e.path}` | {e.description} |" for e in endpoints) or "| - | - | No endpoints derived |"
    command_block = "\n".join(commands.values())
    return (
        f"# {project_name} API Testing Guide\n\n"
        "## Import\n\n"
        "1. Open Postman and import `postman/collection.json`.\n"
        "2. Import the environments from `postman/*.environment.json` and select `dev`.\n\n"
        "## Endpoints\n\n"
        "| Method | Path | Description |\n|---|---|---|\n"
        f"{rows}\n\n"
        "## Running with Newman\n\n"
        f"```bash\nnpm install -g newman newman-reporter-htmlextra\n{command_block}\n```\n"
    )
