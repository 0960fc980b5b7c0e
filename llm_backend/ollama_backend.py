"""Ollama backend for local planning and command interpretation."""

from typing import Any

import requests

from .base import BackendCapacityError, LLMBackend

# Ollama answers 429 when the server queue is full and 503 while loading
_CAPACITY_STATUS_CODES = {429, 503}


class OllamaBackend(LLMBackend):
    """Ollama backend for local LLM execution.

    Lets field deployments run without network access to a hosted model.
    See: https://ollama.ai/
    """

    def __init__(
        self,
        model: str = "llama3.1:8b",
        base_url: str = "http://localhost:11434",
        timeout: int = 120,
        **kwargs: Any,
    ) -> None:
        """Initialize Ollama backend.

        Args:
            model: Default model to use for requests
            base_url: Ollama server URL
            timeout: Request timeout in seconds
        """
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def chat(
        self,
        messages: list[dict[str, str]],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        json_mode: bool = False,
        **kwargs: Any,
    ) -> str:
        """Send a chat request to ``/api/chat``.

        ``json_mode`` maps to Ollama's ``format: "json"``, and ``max_tokens``
        to ``num_predict``.
        """
        payload: dict[str, Any] = {
            "model": model or self.model,
            "messages": messages,
            "stream": False,
            "options": {"temperature": temperature},
        }
        if json_mode:
            payload["format"] = "json"
        if max_tokens is not None:
            payload["options"]["num_predict"] = max_tokens
        payload["options"].update(kwargs.get("options", {}))

        try:
            response = requests.post(f"{self.base_url}/api/chat", json=payload, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.ConnectionError as e:
            raise ConnectionError(
                f"Failed to connect to Ollama at {self.base_url}. Is Ollama running? Try: ollama serve"
            ) from e
        except requests.exceptions.Timeout as e:
            raise TimeoutError(f"Ollama request timed out after {self.timeout}s") from e
        except requests.exceptions.HTTPError as e:
            if e.response is not None and e.response.status_code in _CAPACITY_STATUS_CODES:
                raise BackendCapacityError(f"Ollama is at capacity: {e}") from e
            raise RuntimeError(f"Ollama returned an error: {e}") from e

        data = response.json()
        message = data.get("message") or {}
        if "content" not in message:
            raise RuntimeError(f"Unexpected Ollama response format: {data}")
        return message["content"]

    def list_models(self) -> list[str]:
        try:
            response = requests.get(f"{self.base_url}/api/tags", timeout=10)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise ConnectionError(f"Failed to list Ollama models: {e}") from e
        return [m["name"] for m in response.json().get("models", [])]

    def is_available(self) -> bool:
        try:
            response = requests.get(f"{self.base_url}/api/tags", timeout=5)
        except requests.exceptions.RequestException:
            return False
        return response.status_code == 200

    def __repr__(self) -> str:
        return f"OllamaBackend(model={self.model!r}, base_url={self.base_url!r})"
