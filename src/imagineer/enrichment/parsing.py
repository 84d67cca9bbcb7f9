"""Helpers for turning LLM replies into Python values."""

from __future__ import annotations

import json
from typing import Any

from imagineer.core.logging import get_logger

logger = get_logger(__name__)


def strip_code_fences(text: str) -> str:
    """Remove a surrounding Markdown code fence, if any.

    Example:
        >>> strip_code_fences('```json\\n{"a": 1}\\n```')
        '{"a": 1}'
    """
    text = text.strip()
    if not text.startswith("```"):
        return text
    newline = text.find("\n")
    if newline < 0:
        return ""
    text = text[newline + 1:].strip()
    if text.endswith("```"):
        text = text[:-3]
    return text.strip()


def truncate(text: str, limit: int, marker: str = "\n\n[...]") -> str:
    """Cut ``text`` to ``limit`` characters, appending ``marker`` when cut."""
    if len(text) <= limit:
        return text
    return text[:limit] + marker


def centred_excerpt(content: str, focus: str, limit: int) -> str:
    """A window of ``limit`` characters around the first mention of ``focus``.

    Content that fits is returned unchanged. When the focus text does not
    occur, the window starts at the beginning. Cut ends are marked with
    ``[...]``.
    """
    if len(content) <= limit:
        return content
    index = content.lower().find(focus.lower()) if focus else -1
    if index < 0:
        return truncate(content, limit)

    half = limit // 2
    start = max(0, index - half)
    end = start + limit
    if end > len(content):
        end = len(content)
        start = max(0, end - limit)

    excerpt = content[start:end]
    if start > 0:
        excerpt = "[...]\n\n" + excerpt
    if end < len(content):
        excerpt = excerpt + "\n\n[...]"
    return excerpt


def parse_json_object(text: str) -> dict[str, Any] | None:
    """Parse an LLM reply expected to hold one JSON object.

    Code fences are stripped first. When the reply has prose around the
    object, the outermost braces are tried as a fallback.

    Returns:
        The decoded object, or None when no object can be decoded.
    """
    cleaned = strip_code_fences(text or "")
    if not cleaned:
        return None
    try:
        value = json.loads(cleaned)
    except json.JSONDecodeError:
        start, end = cleaned.find("{"), cleaned.rfind("}")
        if start < 0 or end <= start:
            logger.warning("LLM reply is not JSON", preview=cleaned[:200])
            return None
        try:
            value = json.loads(cleaned[start:end + 1])
        except json.JSONDecodeError:
            logger.warning("LLM reply is not JSON", preview=cleaned[:200])
            return None
    if not isinstance(value, dict):
        logger.warning("LLM reply is not a JSON object", kind=type(value).__name__)
        return None
    return value


def as_list(value: Any) -> list[Any]:
    """Coerce a decoded JSON field to a list, dropping anything else."""
    return value if isinstance(value, list) else []


def clean_str(value: Any) -> str:
    """Coerce a decoded JSON field to a stripped string."""
    return value.strip() if isinstance(value, str) else ""


__all__ = [
    "strip_code_fences",
    "truncate",
    "centred_excerpt",
    "parse_json_object",
    "as_list",
    "clean_str",
]
