"""Error taxonomy for the DevForge workflow.

Every failure raised inside the workflow derives from ``DevForgeError`` and
carries the command the caller should issue next, so the dispatcher can turn
any failure into an actionable ``Error: ...`` report.
"""

from __future__ import annotations

from typing import Optional


class DevForgeError(Exception):
    """Base class for all workflow errors."""

    default_next_step: Optional[str] = None

    def __init__(self, message: str, *, next_step: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.next_step = next_step or self.default_next_step


class PreconditionError(DevForgeError):
    """A command was issued before the artifact it depends on exists."""


class ProjectNotFoundError(DevForgeError):
    """No project with the given name is registered in this run."""

    default_next_step = "start_project"


class ProjectExistsError(PreconditionError):
    """start_project was called for a name that is already active."""

    default_next_step = "get_workflow_status"


class ValidationError(DevForgeError):
    """Command arguments are malformed or missing."""


class GenerationError(DevForgeError):
    """A text or document generator failed."""


class PersistenceError(DevForgeError):
    """A durable write or read failed."""


class UnknownCommandError(DevForgeError):
    """The dispatcher has no operation mapped to the command name."""

    default_next_step = "get_workflow_guide"


class ConfigurationError(DevForgeError):
    """Essential startup configuration is missing."""
