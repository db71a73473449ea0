"""Unit tests for the A2UI widget catalog and blueprint generator."""

import json

import pytest

from devforge.errors import ValidationError
from devforge.generators.ui_blueprint import A2UI_VERSION, Screen, UiBlueprintGenerator
from devforge.generators.ui_catalog import CATEGORIES, PLATFORMS, default_catalog

HOME = {"name": "Home", "route": "/home", "components": ["Container", "Text", "Button"]}


class TestWidgetCatalog:
    """Test cases for WidgetCatalog."""

    def test_lookup(self):
        catalog = default_catalog()

        assert catalog.get("Button").category == "input"
        assert catalog.get("Hologram") is None
        assert catalog.resolve("Hologram").name == "Container"

    def test_every_widget_has_known_category(self):
        catalog = default_catalog()
        assert {w.category for w in catalog.widgets.values()} <= set(CATEGORIES)

    def test_console_subset(self):
        catalog = default_catalog()

        assert catalog.is_supported("Text", "console")
        assert not catalog.is_supported("Dialog", "console")
        assert len(catalog.by_platform("console")) < len(catalog.by_platform("react"))

    def test_to_dict(self):
        data = default_catalog().get("Grid").to_dict()
        assert data["defaultProps"] == {"columns": 2}
        assert data["platforms"] == list(PLATFORMS[:-1])


class TestScreen:
    """Test cases for Screen parsing."""

    def test_defaults(self):
        screen = Screen.from_dict({"name": "User Profile"})

        assert screen.route == "/user-profile"
        assert screen.components == ["Container", "Text", "Button"]

    def test_name_required(self):
        with pytest.raises(ValidationError):
            Screen.from_dict({"route": "/x"})


class TestUiBlueprintGenerator:
    """Test cases for UiBlueprintGenerator."""

    def test_catalog_lists_requested_and_structural_widgets(self):
        result = UiBlueprintGenerator().generate("todo-app", "react", [HOME])

        assert result.catalog == ["AppBar", "Container", "Text", "Button", "Column"]
        assert result.warnings == []

    def test_surface_structure(self):
        blueprint = UiBlueprintGenerator().generate("todo-app", "react", [HOME]).blueprint
        surface = blueprint["surfaces"][0]

        assert blueprint["version"] == A2UI_VERSION
        assert blueprint["metadata"]["projectName"] == "todo-app"
        assert surface["surfaceId"] == "home"
        root = surface["components"][-1]["component"]["Column"]
        assert root["children"] == [c["id"] for c in surface["components"][:-1]]
        assert surface["components"][0]["component"]["AppBar"]["value"] == "Home"

    def test_unknown_widget_falls_back_to_container(self):
        screen = {"name": "Lab", "components": ["Hologram"]}

        result = UiBlueprintGenerator().generate("demo", "flutter", [screen])

        assert result.catalog == ["AppBar", "Container", "Column"]
        assert result.warnings == ["Unknown widget 'Hologram' rendered as Container"]

    def test_unsupported_widgets_on_console(self):
        result = UiBlueprintGenerator().generate("demo", "console", [HOME])

        assert "AppBar is not supported on console" in result.warnings
        assert "Column is not supported on console" in result.warnings
        assert "a2ui/screens.txt" in result.files

    def test_messages(self):
        screen = dict(HOME, dataRequirements=["todo list"])

        result = UiBlueprintGenerator().generate("demo", "react", [screen])

        assert [m["type"] for m in result.messages] == ["beginRendering", "surfaceUpdate", "dataModelUpdate"]
        lines = result.files["a2ui/messages.jsonl"].strip().splitlines()
        assert [json.loads(line)["type"] for line in lines] == ["beginRendering", "surfaceUpdate", "dataModelUpdate"]

    @pytest.mark.parametrize("platform,path,marker", [
        ("react", "a2ui/screens.jsx", "export function HomeScreen()"),
        ("flutter", "a2ui/screens.dart", "class HomeScreen extends StatelessWidget"),
    ])
    def test_code_files(self, platform, path, marker):
        result = UiBlueprintGenerator().generate("demo", platform, [HOME])

        assert marker in result.files[path]
        assert json.loads(result.files["a2ui/blueprint.json"])["platform"] == platform

    def test_invalid_platform(self):
        with pytest.raises(ValidationError):
            UiBlueprintGenerator().generate("demo", "winforms", [HOME])

    def test_no_screens(self):
        with pytest.raises(ValidationError):
            UiBlueprintGenerator().generate("demo", "react", [])
