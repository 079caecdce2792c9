"""Client for the Ollama local inference HTTP API."""
from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class OllamaError(RuntimeError):
    """Raised when the Ollama server cannot serve a chat request."""


class OllamaClient:
    """Minimal chat client for a local Ollama server."""

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        *,
        model: str = "qwen2.5:32b",
        temperature: float = 0.3,
        max_tokens: int = 8192,
        timeout: float = 600.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._timeout = timeout
        self._client = http_client or httpx.Client(timeout=timeout)
        self._owns_client = http_client is None

    @property
    def model(self) -> str:
        return self._model

    def _build_payload(self, messages: list[dict[str, str]], *, json_format: bool) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self._model,
            "messages": messages,
            "stream": False,
            "options": {
                "temperature": self._temperature,
                "num_predict": self._max_tokens,
            },
        }
        if json_format:
            payload["format"] = "json"
        return payload

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------
    def is_available(self) -> bool:
        try:
            response = self._client.get(f"{self._base_url}/api/tags", timeout=5.0)
        except httpx.HTTPError:
            return False
        return response.is_success

    def chat(self, messages: list[dict[str, str]], *, json_format: bool = True) -> str:
        """Send a non-streaming chat request and return the assistant reply."""

        payload = self._build_payload(messages, json_format=json_format)
        try:
            response = self._client.post(f"{self._base_url}/api/chat", json=payload, timeout=self._timeout)
        except httpx.TimeoutException as exc:
            raise OllamaError("Ollama request timed out. Try a smaller model or shorter text.") from exc
        except httpx.HTTPError as exc:
            raise OllamaError(f"Ollama request failed: {exc}") from exc

        if not response.is_success:
            raise OllamaError(f"Ollama API error: {response.status_code} {response.reason_phrase}")

        try:
            data = response.json()
        except ValueError as exc:
            raise OllamaError(f"Ollama returned a malformed response: {exc}") from exc
        message = data.get("message") if isinstance(data, dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str):
            raise OllamaError("Ollama response did not include a message")
        logger.debug("Ollama %s replied with %d characters", self._model, len(content))
        return content

    def close(self) -> None:  # pragma: no cover - best effort cleanup
        if self._owns_client:
            self._client.close()


__all__ = ["OllamaClient", "OllamaError"]
