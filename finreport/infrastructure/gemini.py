"""Integration with the Gemini generative-language REST API."""
from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlparse

import httpx

from .llm import LanguageModelError

logger = logging.getLogger(__name__)


class GeminiClient:
    """Async client for ``models/{model}:generateContent``."""

    def __init__(
        self,
        api_key: str,
        *,
        model: str = "gemini-2.0-flash",
        api_base: str = "https://generativelanguage.googleapis.com/v1beta",
        temperature: float = 0.7,
        max_output_tokens: int = 2048,
        timeout: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("api_key is required")
        parsed = urlparse(api_base)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError("api_base must include scheme and host")

        self._api_key = api_key
        self._model = model
        self._request_url = f"{api_base.rstrip('/')}/models/{model}:generateContent"
        self._temperature = temperature
        self._max_output_tokens = max_output_tokens
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = http_client is None

    @property
    def model_name(self) -> str:
        return self._model

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _build_payload(self, prompt: str) -> dict[str, Any]:
        return {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self._temperature,
                "maxOutputTokens": self._max_output_tokens,
            },
        }

    @staticmethod
    def _extract_text(data: dict[str, Any]) -> str:
        candidates = data.get("candidates") or []
        if not candidates:
            feedback = (data.get("promptFeedback") or {}).get("blockReason")
            raise LanguageModelError(f"Gemini returned no candidates ({feedback or 'no reason given'})")

        candidate = candidates[0]
        if candidate.get("finishReason") == "SAFETY":
            raise LanguageModelError("Gemini response blocked by safety filter")

        parts = (candidate.get("content") or {}).get("parts") or []
        text = "".join(str(part.get("text") or "") for part in parts if isinstance(part, dict))
        if not text.strip():
            raise LanguageModelError("Gemini returned an empty reply")
        return text

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------
    async def generate(self, prompt: str) -> str:
        try:
            response = await self._client.post(
                self._request_url,
                params={"key": self._api_key},
                json=self._build_payload(prompt),
            )
        except httpx.HTTPError as exc:
            raise LanguageModelError(f"Gemini request failed: {exc}") from exc

        if response.status_code >= 400:
            raise LanguageModelError(f"Gemini returned HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as exc:
            raise LanguageModelError("Gemini returned a non-JSON body") from exc

        text = self._extract_text(data)
        logger.debug("Gemini %s replied with %d characters", self._model, len(text))
        return text

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


__all__ = ["GeminiClient"]
