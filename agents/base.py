"""Base agent class for the recovery operation agents."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class LLMProtocol(Protocol):
    """Anything with ``chat``/``achat`` taking role/content message dicts.

    ``llm_backend.LLMBackend`` implementations satisfy it, as do test doubles.
    """

    def chat(self, messages: list[dict[str, str]], **kwargs: Any) -> str: ...

    async def achat(self, messages: list[dict[str, str]], **kwargs: Any) -> str: ...


class BaseAgent(ABC):
    """Abstract base class for LLM-backed agents.

    Subclasses supply a system prompt and a typed async entry point
    (``generate``, ``interpret``) that goes through ``_achat``.
    """

    def __init__(
        self,
        llm: LLMProtocol,
        name: str | None = None,
        system_prompt: str | None = None,
        description: str | None = None,
        temperature: float = 0.7,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize agent.

        Args:
            llm: LLM backend for inference
            name: Agent identifier (defaults to class name)
            system_prompt: Override the default system prompt
            description: Human-readable purpose
            temperature: Sampling temperature used unless a call overrides it
            logger: Optional logger instance
        """
        self.llm = llm
        self.name = name or type(self).__name__
        self.description = description or ""
        self.system_prompt = system_prompt or self.default_system_prompt()
        self.temperature = temperature
        self.logger = logger or logging.getLogger(f"agent.{self.name}")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, temperature={self.temperature})"

    @abstractmethod
    def default_system_prompt(self) -> str: ...

    def _build_messages(self, prompt: str, history: list[dict[str, str]] | None = None) -> list[dict[str, str]]:
        return [
            {"role": "system", "content": self.system_prompt},
            *(history or []),
            {"role": "user", "content": prompt},
        ]

    async def _achat(self, prompt: str, history: list[dict[str, str]] | None = None, **kwargs: Any) -> str:
        messages = self._build_messages(prompt, history)
        self.logger.debug("%s: sending %d messages", self.name, len(messages))
        return await self.llm.achat(messages, **{"temperature": self.temperature, **kwargs})
