"""Lenient JSON extraction for LLM responses.

Models wrap JSON in markdown fences, prepend prose, or leave trailing
commas. ``parse_llm_json`` undoes the common cases and gives up otherwise.
"""

import json
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*(.*?)```", re.DOTALL)
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")

_CLOSERS = {"{": "}", "[": "]"}


def extract_json_block(text: str) -> str | None:
    """Return the first balanced ``{...}`` or ``[...]`` block in ``text``.

    String literals are honoured, so brackets inside quoted values do not
    affect the balance.
    """
    start = next((i for i, ch in enumerate(text) if ch in _CLOSERS), None)
    if start is None:
        return None

    stack: list[str] = []
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch in _CLOSERS:
            stack.append(_CLOSERS[ch])
        elif stack and ch == stack[-1]:
            stack.pop()
            if not stack:
                return text[start : i + 1]
    return None


def _loads(candidate: str) -> Any:
    try:
        return json.loads(candidate)
    except json.JSONDecodeError:
        return json.loads(_TRAILING_COMMA_RE.sub(r"\1", candidate))


def parse_llm_json(text: str | None, default: Any = None) -> Any:
    """Parse JSON out of a model response.

    Tries, in order: the raw text, the contents of a fenced code block, and
    the first balanced object or array. Trailing commas are removed on retry.

    Args:
        text: Raw model response
        default: Returned when nothing parses

    Returns:
        The decoded value, or ``default``
    """
    if not text:
        return default

    candidates = [text.strip()]
    fenced = _FENCE_RE.search(text)
    if fenced:
        candidates.append(fenced.group(1).strip())
    block = extract_json_block(fenced.group(1) if fenced else text)
    if block:
        candidates.append(block)

    for candidate in candidates:
        try:
            return _loads(candidate)
        except json.JSONDecodeError:
            continue

    logger.debug("Could not parse JSON from response: %.200s", text)
    return default
