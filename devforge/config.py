"""Runtime configuration read from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from .errors import ConfigurationError

PROVIDERS = ("gemini", "anthropic", "openai")

DEFAULT_MODELS = {
    "gemini": "gemini-2.0-flash",
    "anthropic": "claude-3-5-sonnet-latest",
    "openai": "gpt-4o-mini",
}

DEFAULT_CHECKPOINT_THRESHOLD = 20

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True, slots=True)
class Settings:
    """Resolved DevForge settings."""

    provider: str
    api_key: str
    model: str
    projects_root: Path
    checkpoint_threshold: int = DEFAULT_CHECKPOINT_THRESHOLD
    knowledge_dir: Optional[Path] = None
    knowledge_enabled: bool = False
    log_level: str = "INFO"
    log_file: Optional[Path] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from ``environ`` (defaults to ``os.environ``).

        Raises :class:`ConfigurationError` when no text-generation credential
        is available or a value cannot be parsed.
        """
        env = os.environ if environ is None else environ

        keys = {
            "gemini": env.get("GEMINI_API_KEY") or env.get("AI_API_KEY"),
            "anthropic": env.get("ANTHROPIC_API_KEY"),
            "openai": env.get("OPENAI_API_KEY"),
        }

        provider = (env.get("AI_PROVIDER") or "").strip().lower()
        if provider:
            if provider not in PROVIDERS:
                raise ConfigurationError(
                    f"Unsupported AI_PROVIDER '{provider}'. Use one of: {', '.join(PROVIDERS)}"
                )
            api_key = keys[provider] or env.get("AI_API_KEY")
        else:
            provider = next((name for name in PROVIDERS if keys[name]), "")
            api_key = keys.get(provider) if provider else None

        if not api_key:
            raise ConfigurationError(
                "No text-generation credential found. Set GEMINI_API_KEY (or AI_API_KEY), "
                "ANTHROPIC_API_KEY or OPENAI_API_KEY."
            )

        raw_threshold = env.get("DEVFORGE_CHECKPOINT_THRESHOLD", str(DEFAULT_CHECKPOINT_THRESHOLD))
        try:
            threshold = int(raw_threshold)
        except ValueError:
            raise ConfigurationError(
                f"DEVFORGE_CHECKPOINT_THRESHOLD must be an integer, got '{raw_threshold}'"
            ) from None
        if threshold < 1:
            raise ConfigurationError("DEVFORGE_CHECKPOINT_THRESHOLD must be at least 1")

        knowledge_dir = env.get("DEVFORGE_KNOWLEDGE_DIR")
        enabled_flag = env.get("DEVFORGE_KNOWLEDGE_ENABLED", env.get("NOTEBOOKLM_ENABLED", ""))
        log_file = env.get("DEVFORGE_LOG_FILE")

        return cls(
            provider=provider,
            api_key=api_key,
            model=env.get("AI_MODEL") or DEFAULT_MODELS[provider],
            projects_root=Path(env.get("DEVFORGE_PROJECTS_ROOT") or "~/devforge-projects").expanduser(),
            checkpoint_threshold=threshold,
            knowledge_dir=Path(knowledge_dir).expanduser() if knowledge_dir else None,
            knowledge_enabled=enabled_flag.strip().lower() in _TRUTHY,
            log_level=(env.get("DEVFORGE_LOG_LEVEL") or "INFO").upper(),
            log_file=Path(log_file).expanduser() if log_file else None,
        )
