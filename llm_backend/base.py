"""Abstract base class for LLM backends."""

import asyncio
from abc import ABC, abstractmethod
from typing import Any


class BackendCapacityError(RuntimeError):
    """The provider refused the request for quota, rate or context limits.

    Raised instead of a plain RuntimeError so callers can tell an exhausted
    model apart from a broken one.
    """


class LLMBackend(ABC):
    """Abstract interface for LLM providers.

    Backends are synchronous; ``achat`` runs ``chat`` in a worker thread so
    the orchestrator's event loop is never blocked by a model call.
    """

    @abstractmethod
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

        Args:
            messages: List of message dicts with 'role' and 'content' keys.
                     Roles: "system", "user", "assistant"
            model: Optional model override (uses default if not specified)
            temperature: Sampling temperature
            max_tokens: Maximum tokens in response
            json_mode: Ask the provider for a JSON object response
            **kwargs: Provider-specific parameters

        Returns:
            The assistant's response content as a string.

        Raises:
            ConnectionError: If unable to connect to the backend
            TimeoutError: If the request times out
            BackendCapacityError: If the provider rejects the request for capacity
            RuntimeError: If the backend returns any other error
        """
        ...

    async def achat(
        self,
        messages: list[dict[str, str]],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        json_mode: bool = False,
        **kwargs: Any,
    ) -> str:
        """Async wrapper around ``chat``."""
        return await asyncio.to_thread(
            self.chat,
            messages,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            json_mode=json_mode,
            **kwargs,
        )

    @abstractmethod
    def list_models(self) -> list[str]:
        """List available models."""
        ...

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the backend is reachable and ready."""
        ...
