"""Infrastructure layer exports."""

from .backend_api import BackendClient, BackendError
from .gemini import GeminiClient
from .llm import (
    LanguageModelClient,
    LanguageModelError,
    UnconfiguredLanguageModel,
    configure_llm_client,
    get_llm_client,
    reset_llm_client,
)
from .sessions import InMemoryReportSessionRepository, ReportSessionRepository

__all__ = [
    "BackendClient",
    "BackendError",
    "GeminiClient",
    "InMemoryReportSessionRepository",
    "LanguageModelClient",
    "LanguageModelError",
    "ReportSessionRepository",
    "UnconfiguredLanguageModel",
    "configure_llm_client",
    "get_llm_client",
    "reset_llm_client",
]
