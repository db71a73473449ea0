"""A2UI widget catalog.

Framework-agnostic widget definitions that the React, Flutter, React
Native, Angular and Web Components renderers understand. Only a subset is
available on the console renderer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

PLATFORMS: Tuple[str, ...] = ("react", "flutter", "react-native", "web", "angular", "console")
GRAPHICAL = PLATFORMS[:-1]

CATEGORIES = ("layout", "display", "input", "navigation", "feedback")


@dataclass(frozen=True, slots=True)
class Widget:
    name: str
    category: str
    description: str
    default_props: Dict[str, Any] = field(default_factory=dict)
    default_style: Dict[str, Any] = field(default_factory=dict)
    children: bool = False
    platforms: Tuple[str, ...] = GRAPHICAL

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "name": self.name,
            "category": self.category,
            "description": self.description,
            "defaultProps": dict(self.default_props),
            "defaultStyle": dict(self.default_style),
            "children": self.children,
            "platforms": list(self.platforms),
        }


def _w(name, category, description, props=None, style=None, children=False, console=False) -> Widget:
    return Widget(
        name=name,
        category=category,
        description=description,
        default_props=props or {},
        default_style=style or {},
        children=children,
        platforms=PLATFORMS if console else GRAPHICAL,
    )


_WIDGETS = [
    # layout
    _w("Container", "layout", "A container widget that holds other widgets", style={"padding": 8}, children=True, console=True),
    _w("Row", "layout", "Horizontal layout container", style={"display": "flex", "flexDirection": "row"}, children=True),
    _w("Column", "layout", "Vertical layout container", style={"display": "flex", "flexDirection": "column"}, children=True),
    _w("Grid", "layout", "Grid layout container", props={"columns": 2}, children=True),
    _w("Stack", "layout", "Overlay/stack layout", children=True),
    _w("Scroll", "layout", "Scrollable container", props={"direction": "vertical"}, children=True),
    # display
    _w("Text", "display", "Display text content", props={"variant": "body"}, console=True),
    _w("Image", "display", "Display images", props={"fit": "contain"}),
    _w("Icon", "display", "Display icons", props={"size": 24}, console=True),
    _w("Avatar", "display", "User avatar display", props={"size": "medium"}),
    _w("Card", "display", "Card container with elevation", style={"borderRadius": 8, "elevation": 2}, children=True),
    _w("Divider", "display", "Visual separator", console=True),
    _w("Badge", "display", "Notification badge", props={"variant": "default"}),
    _w("Chip", "display", "Compact element for tags/filters", props={"deletable": False}),
    _w("List", "display", "Vertical list of items", children=True, console=True),
    _w("ListItem", "display", "Single list item", children=True, console=True),
    _w("Table", "display", "Data table", children=True, console=True),
    # input
    _w("Button", "input", "Clickable button", props={"variant": "contained"}, console=True),
    _w("TextField", "input", "Text input field", props={"variant": "outlined"}, console=True),
    _w("TextArea", "input", "Multi-line text input", props={"rows": 4}),
    _w("Checkbox", "input", "Checkbox input", props={"checked": False}, console=True),
    _w("Radio", "input", "Radio button input", console=True),
    _w("Switch", "input", "Toggle switch", props={"value": False}),
    _w("Slider", "input", "Range slider", props={"min": 0, "max": 100}),
    _w("Select", "input", "Dropdown select", props={"multiple": False}, console=True),
    _w("DatePicker", "input", "Date picker input"),
    _w("TimePicker", "input", "Time picker input"),
    _w("FileUpload", "input", "File upload widget", props={"multiple": False}),
    _w("Form", "input", "Form container with validation", children=True),
    _w("FormField", "input", "Form field with label and validation", children=True),
    # navigation
    _w("AppBar", "navigation", "Top app bar/header", style={"height": 56}, children=True),
    _w("BottomNav", "navigation", "Bottom navigation bar", children=True),
    _w("Drawer", "navigation", "Side drawer/menu", children=True),
    _w("Tabs", "navigation", "Tab navigation", children=True),
    _w("TabItem", "navigation", "Single tab item"),
    _w("Breadcrumb", "navigation", "Breadcrumb navigation"),
    _w("Link", "navigation", "Navigation link", console=True),
    _w("Fab", "navigation", "Floating action button", props={"position": "bottom-right"}),
    # feedback
    _w("Alert", "feedback", "Alert/notification message", props={"severity": "info"}, console=True),
    _w("Snackbar", "feedback", "Temporary notification", props={"duration": 3000}),
    _w("Dialog", "feedback", "Modal dialog", children=True),
    _w("Progress", "feedback", "Progress indicator", props={"variant": "circular"}, console=True),
    _w("Skeleton", "feedback", "Loading skeleton", props={"variant": "text"}),
    _w("Tooltip", "feedback", "Hover tooltip"),
]


class WidgetCatalog:
    """Lookup of widgets by name."""

    version = "1.0.0"

    def __init__(self, widgets: Optional[List[Widget]] = None):
        self.widgets: Dict[str, Widget] = {w.name: w for w in (widgets if widgets is not None else _WIDGETS)}

    def get(self, name: str) -> Optional[Widget]:
        return self.widgets.get(name)

    def resolve(self, name: str) -> Widget:
        """The widget called ``name``, or ``Container`` when it is unknown."""
        return self.widgets.get(name) or self.widgets["Container"]

    def by_category(self, category: str) -> List[Widget]:
        return [w for w in self.widgets.values() if w.category == category]

    def by_platform(self, platform: str) -> List[Widget]:
        return [w for w in self.widgets.values() if platform in w.platforms]

    def is_supported(self, name: str, platform: str) -> bool:
        widget = self.widgets.get(name)
        return widget is not None and platform in widget.platforms


def default_catalog() -> WidgetCatalog:
    return WidgetCatalog()
