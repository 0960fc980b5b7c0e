"""Configuration for recovery operations."""

from .config import (
    Config,
    LLMConfig,
    LoggingConfig,
    OperationConfig,
    find_config_file,
    get_config,
    load_config,
    reload_config,
)

__all__ = [
    "Config",
    "LLMConfig",
    "LoggingConfig",
    "OperationConfig",
    "find_config_file",
    "get_config",
    "load_config",
    "reload_config",
]
