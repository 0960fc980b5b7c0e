"""Configuration management for Recovery Ops.

Loads configuration from:
1. config.toml (defaults)
2. Environment variables (overrides, .env honoured)
"""

import logging
import os
import sys
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()

logger = logging.getLogger(__name__)


@dataclass
class LLMConfig:
    """LLM backend configuration."""

    backend: str = "auto"  # "auto", "ollama", "openai", "anthropic", "lmstudio"
    base_url: str = "http://localhost:11434"
    model: str = "llama3.1:8b"
    timeout: int = 60
    temperature: float = 0.4

    def backend_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``llm_backend.get_backend``.

        The Ollama URL is only meaningful for local backends.
        """
        kwargs: dict[str, Any] = {"model": self.model, "timeout": self.timeout}
        if self.backend in ("ollama", "lmstudio"):
            kwargs["base_url"] = self.base_url
        return kwargs


@dataclass
class OperationConfig:
    """Recovery operation execution configuration."""

    task_duration_seconds: float = 3.0
    planner_timeout_seconds: float | None = 60.0
    command_timeout_seconds: float | None = 30.0
    log_max_entries: int | None = 500
    default_location: str = "Coastal District A"
    default_disaster_type: str = "Flood"
    auto_approve: bool = False


@dataclass
class LoggingConfig:
    """Console logging configuration."""

    level: str = "INFO"
    rich_tracebacks: bool = True


@dataclass
class Config:
    """Main configuration container."""

    llm: LLMConfig = field(default_factory=LLMConfig)
    operation: OperationConfig = field(default_factory=OperationConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Config":
        """Create Config from dictionary."""
        return cls(
            llm=_section(LLMConfig, data.get("llm", {}), "llm"),
            operation=_section(OperationConfig, data.get("operation", {}), "operation"),
            logging=_section(LoggingConfig, data.get("logging", {}), "logging"),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _section(cls: type, values: dict[str, Any], name: str) -> Any:
    """Build a section dataclass, skipping keys it does not define."""
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(values) - known)
    if unknown:
        logger.warning("Ignoring unknown [%s] keys in config: %s", name, ", ".join(unknown))
    return cls(**{k: v for k, v in values.items() if k in known})


def find_config_file() -> Path | None:
    """Find config.toml in current or parent directories.

    Returns:
        Path to config.toml or None if not found.
    """
    current = Path.cwd()

    for directory in [current, *current.parents]:
        config_path = directory / "config.toml"
        if config_path.exists():
            return config_path

    return None


def load_config(config_path: Path | str | None = None) -> Config:
    """Load configuration from file and environment.

    Args:
        config_path: Optional explicit path to config.toml

    Returns:
        Config object with merged settings.
    """
    config_data: dict[str, Any] = {}

    if config_path is None:
        config_path = find_config_file()

    if config_path is not None:
        path = Path(config_path)
        if path.exists():
            with open(path, "rb") as f:
                config_data = tomllib.load(f)

    env_overrides = {
        "llm": {
            "backend": os.getenv("LLM_BACKEND"),
            "base_url": os.getenv("OLLAMA_BASE_URL"),
            "model": os.getenv("LLM_MODEL"),
            "timeout": _int_or_none(os.getenv("LLM_TIMEOUT")),
        },
        "operation": {
            "task_duration_seconds": _float_or_none(os.getenv("TASK_DURATION_SECONDS")),
            "command_timeout_seconds": _float_or_none(os.getenv("COMMAND_TIMEOUT_SECONDS")),
        },
        "logging": {
            "level": os.getenv("LOG_LEVEL"),
        },
    }

    # Merge env overrides (only non-None values)
    for section, values in env_overrides.items():
        config_data.setdefault(section, {})
        for key, value in values.items():
            if value is not None:
                config_data[section][key] = value

    return Config.from_dict(config_data)


def _int_or_none(value: str | None) -> int | None:
    """Convert string to int, or return None."""
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _float_or_none(value: str | None) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


# Global config instance (lazy loaded)
_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance.

    Returns:
        Config object (loaded once, cached).
    """
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> Config:
    """Force reload of configuration.

    Returns:
        Fresh Config object.
    """
    global _config
    _config = load_config()
    return _config
