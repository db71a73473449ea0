"""Text-generation adapters.

Generators depend only on the :class:`TextGenerator` protocol. One adapter
per provider SDK wraps every provider failure (and an empty completion) in
:class:`~devforge.errors.GenerationError`; none of them retry, so a failed
call fails the enclosing command and the caller may simply re-issue it.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Protocol, runtime_checkable

from .config import Settings
from .devforge_logging import log_performance
from .errors import ConfigurationError, GenerationError

logger = logging.getLogger("devforge.text_generation")

DEFAULT_MAX_TOKENS = 1024


@runtime_checkable
class TextGenerator(Protocol):
    def generate_text(self, prompt: str, max_tokens: int = DEFAULT_MAX_TOKENS) -> str:
        ...


class _ProviderTextGenerator(ABC):
    """Shared error handling for the provider adapters.

    Subclasses implement :meth:`_complete` with a single SDK call.
    """

    provider = "unknown"

    def __init__(self, model: str):
        self.model = model

    @abstractmethod
    def _complete(self, prompt: str, max_tokens: int) -> str:
        """Return the raw completion text for ``prompt``."""

    @log_performance("generate_text")
    def generate_text(self, prompt: str, max_tokens: int = DEFAULT_MAX_TOKENS) -> str:
        try:
            text = self._complete(prompt, max_tokens)
        except GenerationError:
            raise
        except Exception as e:
            raise GenerationError(f"{self.provider} text generation failed: {e}") from e

        text = (text or "").strip()
        if not text:
            raise GenerationError(f"{self.provider} returned an empty completion")
        logger.debug(f"{self.provider}/{self.model} produced {len(text)} characters")
        return text


class GeminiTextGenerator(_ProviderTextGenerator):
    """Google Gemini through ``langchain_google_genai``."""

    provider = "gemini"

    def __init__(self, api_key: str, model: str = "gemini-2.0-flash", temperature: float = 0.7):
        from langchain_google_genai import ChatGoogleGenerativeAI

        super().__init__(model)
        self._llm = ChatGoogleGenerativeAI(
            model=model,
            google_api_key=api_key,
            temperature=temperature,
        )

    def _complete(self, prompt: str, max_tokens: int) -> str:
        response = self._llm.invoke(prompt, max_output_tokens=max_tokens)
        content: Any = getattr(response, "content", response)
        if isinstance(content, list):
            # Multi-part responses come back as a list of strings or text blocks
            content = "".join(
                part if isinstance(part, str) else str(part.get("text", "")) for part in content
            )
        return str(content)


class AnthropicTextGenerator(_ProviderTextGenerator):
    """Anthropic Messages API."""

    provider = "anthropic"

    def __init__(self, api_key: str, model: str = "claude-3-5-sonnet-latest"):
        from anthropic import Anthropic

        super().__init__(model)
        self._client = Anthropic(api_key=api_key)

    def _complete(self, prompt: str, max_tokens: int) -> str:
        message = self._client.messages.create(
            model=self.model,
            max_tokens=max_tokens,
            messages=[{"role": "user", "content": prompt}],
        )
        return "".join(getattr(block, "text", "") for block in message.content)


class OpenAITextGenerator(_ProviderTextGenerator):
    """OpenAI Responses API."""

    provider = "openai"

    def __init__(self, api_key: str, model: str = "gpt-4o-mini"):
        from openai import OpenAI

        super().__init__(model)
        self._client = OpenAI(api_key=api_key, max_retries=0)

    def _complete(self, prompt: str, max_tokens: int) -> str:
        response = self._client.responses.create(
            model=self.model,
            input=prompt,
            max_output_tokens=max_tokens,
        )
        return getattr(response, "output_text", "") or ""


_ADAPTERS = {
    "gemini": GeminiTextGenerator,
    "anthropic": AnthropicTextGenerator,
    "openai": OpenAITextGenerator,
}


def create_text_generator(settings: Settings) -> TextGenerator:
    """Build the adapter selected by ``settings.provider``."""
    try:
        adapter = _ADAPTERS[settings.provider]
    except KeyError:
        raise ConfigurationError(f"Unsupported text-generation provider '{settings.provider}'") from None
    logger.info(f"Using {settings.provider} text generation with model {settings.model}")
    return adapter(api_key=settings.api_key, model=settings.model)
