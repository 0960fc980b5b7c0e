"""OpenAI backend (also serves LM Studio's OpenAI-compatible server)."""

import os
from typing import Any

from .base import BackendCapacityError, LLMBackend


class OpenAIBackend(LLMBackend):
    """OpenAI chat completions backend.

    Requires OPENAI_API_KEY unless ``api_key`` is passed.
    """

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: int = 60,
        **kwargs: Any,
    ) -> None:
        """Initialize OpenAI backend.

        Args:
            model: Default model to use
            api_key: API key (defaults to OPENAI_API_KEY env var)
            base_url: Optional base URL override (LM Studio, proxies)
            timeout: Request timeout in seconds
        """
        try:
            from openai import OpenAI
        except ImportError as e:
            raise ImportError("OpenAI package not installed. Run: pip install 'recovery-ops[openai]'") from e

        self.model = model
        self.timeout = timeout

        self._api_key = api_key or os.environ.get("OPENAI_API_KEY")
        if not self._api_key:
            raise ValueError(
                "OpenAI API key not found. Set OPENAI_API_KEY environment variable or pass api_key parameter."
            )

        client_kwargs: dict[str, Any] = {"api_key": self._api_key, "timeout": timeout}
        if base_url:
            client_kwargs["base_url"] = base_url
        self._client = OpenAI(**client_kwargs)

    def chat(
        self,
        messages: list[dict[str, str]],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        json_mode: bool = False,
        **kwargs: Any,
    ) -> str:
        """Send a chat completion request.

        ``json_mode`` sets ``response_format`` to a JSON object.
        """
        from openai import APIConnectionError, APIError, APITimeoutError, RateLimitError

        request_kwargs: dict[str, Any] = {
            "model": model or self.model,
            "messages": messages,
            "temperature": temperature,
        }
        if max_tokens is not None:
            request_kwargs["max_tokens"] = max_tokens
        if json_mode:
            request_kwargs["response_format"] = {"type": "json_object"}
        for key in ("top_p", "stop"):
            if key in kwargs:
                request_kwargs[key] = kwargs[key]

        try:
            response = self._client.chat.completions.create(**request_kwargs)
        except APITimeoutError as e:
            raise TimeoutError(f"OpenAI request timed out: {e}") from e
        except APIConnectionError as e:
            raise ConnectionError(f"Failed to connect to OpenAI API: {e}") from e
        except RateLimitError as e:
            raise BackendCapacityError(f"OpenAI rate limit or quota exceeded: {e}") from e
        except APIError as e:
            raise RuntimeError(f"OpenAI API error: {e}") from e

        if not response.choices:
            raise RuntimeError("OpenAI returned empty response")

        choice = response.choices[0]
        if choice.finish_reason == "length":
            raise BackendCapacityError("OpenAI response truncated at the token limit")
        if choice.message.content is None:
            raise RuntimeError("OpenAI returned null content")
        return choice.message.content

    def list_models(self) -> list[str]:
        try:
            models = self._client.models.list()
        except Exception as e:
            raise ConnectionError(f"Failed to list OpenAI models: {e}") from e
        return sorted(m.id for m in models.data)

    def is_available(self) -> bool:
        try:
            self._client.models.list()
        except Exception:
            return False
        return True

    def __repr__(self) -> str:
        return f"OpenAIBackend(model={self.model!r})"
