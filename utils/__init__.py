"""Shared helpers for agents."""

from .json_repair import extract_json_block, parse_llm_json

__all__ = ["extract_json_block", "parse_llm_json"]
