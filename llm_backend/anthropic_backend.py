"""Anthropic backend for Claude models."""

import os
from typing import Any

from .base import BackendCapacityError, LLMBackend

JSON_MODE_INSTRUCTION = "Respond with a single JSON object and nothing else."


class AnthropicBackend(LLMBackend):
    """Anthropic Messages API backend.

    Requires ANTHROPIC_API_KEY unless ``api_key`` is passed.
    """

    def __init__(
        self,
        model: str = "claude-sonnet-4-20250514",
        api_key: str | None = None,
        timeout: int = 60,
        max_tokens: int = 4096,
        **kwargs: Any,
    ) -> None:
        """Initialize Anthropic backend.

        Args:
            model: Default model to use
            api_key: API key (defaults to ANTHROPIC_API_KEY env var)
            timeout: Request timeout in seconds
            max_tokens: Default max tokens for responses
        """
        try:
            from anthropic import Anthropic
        except ImportError as e:
            raise ImportError("Anthropic package not installed. Run: pip install 'recovery-ops[anthropic]'") from e

        self.model = model
        self.timeout = timeout
        self.default_max_tokens = max_tokens

        self._api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        if not self._api_key:
            raise ValueError(
                "Anthropic API key not found. Set ANTHROPIC_API_KEY environment variable or pass api_key parameter."
            )
        self._client = Anthropic(api_key=self._api_key, timeout=timeout)

    def chat(
        self,
        messages: list[dict[str, str]],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        json_mode: bool = False,
        **kwargs: Any,
    ) -> str:
        """Send a messages request.

        System messages are folded into the ``system`` parameter. The API has
        no JSON switch, so ``json_mode`` appends an instruction to it.
        """
        from anthropic import APIConnectionError, APIError, APITimeoutError, RateLimitError

        system_parts = [m["content"] for m in messages if m["role"] == "system"]
        chat_messages = [{"role": m["role"], "content": m["content"]} for m in messages if m["role"] != "system"]
        if json_mode:
            system_parts.append(JSON_MODE_INSTRUCTION)

        request_kwargs: dict[str, Any] = {
            "model": model or self.model,
            "messages": chat_messages,
            "max_tokens": max_tokens or self.default_max_tokens,
            "temperature": min(temperature, 1.0),
        }
        if system_parts:
            request_kwargs["system"] = "\n\n".join(system_parts)

        try:
            response = self._client.messages.create(**request_kwargs)
        except APITimeoutError as e:
            raise TimeoutError(f"Anthropic request timed out: {e}") from e
        except APIConnectionError as e:
            raise ConnectionError(f"Failed to connect to Anthropic API: {e}") from e
        except RateLimitError as e:
            raise BackendCapacityError(f"Anthropic rate limit exceeded: {e}") from e
        except APIError as e:
            raise RuntimeError(f"Anthropic API error: {e}") from e

        if response.stop_reason == "max_tokens":
            raise BackendCapacityError("Anthropic response truncated at the token limit")

        text = [block.text for block in response.content if hasattr(block, "text")]
        if not text:
            raise RuntimeError("Anthropic returned no text content")
        return "\n".join(text)

    def list_models(self) -> list[str]:
        try:
            page = self._client.models.list()
        except Exception as e:
            raise ConnectionError(f"Failed to list Anthropic models: {e}") from e
        return [m.id for m in page.data]

    def is_available(self) -> bool:
        try:
            self._client.models.list(limit=1)
        except Exception:
            return False
        return True

    def __repr__(self) -> str:
        return f"AnthropicBackend(model={self.model!r})"
