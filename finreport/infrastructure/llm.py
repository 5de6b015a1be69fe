"""Language-model integration hooks.

Report enrichment asks a generative-language model for one analysis per
table. When no provider is configured the default client refuses every
request, which sends each table down the fallback-analysis path. A real
provider only needs to implement :class:`LanguageModelClient` and be installed
with ``configure_llm_client`` during application start-up.
"""
from __future__ import annotations

from typing import Protocol


class LanguageModelError(RuntimeError):
    """Raised when a language model cannot produce a usable reply."""


class LanguageModelClient(Protocol):
    """Contract for text generation providers."""

    async def generate(self, prompt: str) -> str:
        """Return the model's free-text reply to ``prompt``."""


class UnconfiguredLanguageModel:
    """Fallback client used when no API key is available."""

    async def generate(self, prompt: str) -> str:
        raise LanguageModelError("Gemini API key is not configured")


_client: LanguageModelClient = UnconfiguredLanguageModel()


def configure_llm_client(client: LanguageModelClient) -> None:
    """Install the client used for table analysis."""

    global _client
    _client = client


def get_llm_client() -> LanguageModelClient:
    return _client


def reset_llm_client() -> None:
    configure_llm_client(UnconfiguredLanguageModel())
