"""LLM backend abstraction layer.

The planner and command interpreter talk to whichever provider is
configured. In "auto" mode the provider is picked in this order:
1. Anthropic (if ANTHROPIC_API_KEY set)
2. OpenAI (if OPENAI_API_KEY set)
3. LM Studio (if running on localhost:1234)
4. Ollama (local fallback)
"""

import logging
import os
import socket

from .base import BackendCapacityError, LLMBackend
from .ollama_backend import OllamaBackend

logger = logging.getLogger(__name__)

__all__ = [
    "BackendCapacityError",
    "LLMBackend",
    "OllamaBackend",
    "BACKENDS",
    "get_backend",
    "detect_backend",
]

BACKENDS = ("auto", "ollama", "openai", "anthropic", "lmstudio")

LM_STUDIO_DEFAULT_URL = "http://localhost:1234/v1"


def _get_openai_backend():
    """Lazy import OpenAI backend."""
    from .openai_backend import OpenAIBackend

    return OpenAIBackend


def _get_anthropic_backend():
    """Lazy import Anthropic backend."""
    from .anthropic_backend import AnthropicBackend

    return AnthropicBackend


def _lmstudio_running(host: str = "localhost", port: int = 1234) -> bool:
    try:
        with socket.create_connection((host, port), timeout=1):
            return True
    except OSError:
        return False


def detect_backend() -> str:
    """Pick a backend from API keys and locally running servers.

    Returns:
        Backend name: "anthropic", "openai", "lmstudio", or "ollama"
    """
    if os.environ.get("ANTHROPIC_API_KEY"):
        logger.info("Auto-detected: Anthropic API key found")
        return "anthropic"

    if os.environ.get("OPENAI_API_KEY"):
        logger.info("Auto-detected: OpenAI API key found")
        return "openai"

    if _lmstudio_running():
        logger.info("Auto-detected: LM Studio running on localhost:1234")
        return "lmstudio"

    logger.info("Auto-detected: no API keys found, using Ollama (local)")
    return "ollama"


def get_backend(kind: str, **kwargs) -> LLMBackend:
    """Factory function to get an LLM backend instance.

    Args:
        kind: One of ``BACKENDS``; "auto" detects from the environment
        **kwargs: Backend-specific configuration (model, base_url, timeout)

    Returns:
        LLMBackend instance

    Raises:
        ValueError: If backend type is unknown
        ImportError: If the provider SDK is not installed
    """
    if kind == "auto":
        kind = detect_backend()
        logger.info("Auto-selected backend: %s", kind)

    if kind == "ollama":
        return OllamaBackend(**kwargs)
    if kind == "openai":
        return _get_openai_backend()(**kwargs)
    if kind == "anthropic":
        return _get_anthropic_backend()(**kwargs)
    if kind == "lmstudio":
        kwargs["base_url"] = kwargs.get("base_url") or LM_STUDIO_DEFAULT_URL
        kwargs.setdefault("model", "local-model")
        # LM Studio ignores the key but the client requires one
        kwargs.setdefault("api_key", "lm-studio")
        return _get_openai_backend()(**kwargs)

    raise ValueError(f"Unknown LLM backend: {kind}. Available: {', '.join(BACKENDS)}")
