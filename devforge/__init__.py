"""DevForge MCP Server - workflow state machine, checkpoints and generators."""

from .dispatcher import CommandDispatcher
from .errors import DevForgeError
from .models import Phase, Project
from .orchestrator import ProjectRegistry, WorkflowOrchestrator
from .workspace import Workspace

__version__ = "0.1.0"

__all__ = [
    "CommandDispatcher",
    "DevForgeError",
    "Phase",
    "Project",
    "ProjectRegistry",
    "WorkflowOrchestrator",
    "Workspace",
]
