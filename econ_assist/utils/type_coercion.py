"""Shared helpers for safe type coercion of search API payloads."""

import json
from typing import Any, Optional


def as_optional_int(value: Any) -> Optional[int]:
    """
    Convert *value* to ``int`` returning ``None`` if conversion fails.

    Parameters
    ----------
    value : Any
        Input value that may be ``int``, ``float``, ``str`` or any other type.

    Returns
    -------
    int | None
        Parsed integer or ``None``.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def as_float(value: Any, default: Optional[float] = None) -> Optional[float]:
    """
    Convert *value* to ``float`` returning *default* if conversion fails.

    Parameters
    ----------
    value : Any
        Input that might be convertible to ``float``.
    default : float | None, optional
        Value returned when conversion is unsuccessful. Defaults to ``None``.

    Returns
    -------
    float | None
        Parsed float or *default*.
    """
    if value is None or isinstance(value, bool):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def parse_api_content(content: Any, max_depth: int = 4) -> Any:
    """
    Decode series content that may be JSON wrapped in one or more strings.

    Series payloads sometimes arrive double encoded (a JSON string holding a
    JSON document) or with escaped quotes. Up to *max_depth* unwrapping
    passes are attempted; whatever cannot be decoded is returned as text.

    Parameters
    ----------
    content : Any
        Raw ``content`` field of a search result.
    max_depth : int, optional
        Maximum number of unwrapping passes. Defaults to ``4``.

    Returns
    -------
    Any
        Decoded JSON value, or the best-effort unwrapped string.
    """
    if not isinstance(content, str):
        return content

    current: Any = content
    for _ in range(max_depth):
        if not isinstance(current, str):
            return current
        trimmed = current.strip()
        if not trimmed:
            return ""

        try:
            parsed = json.loads(trimmed)
        except ValueError:
            if len(trimmed) >= 2 and trimmed[0] == trimmed[-1] and trimmed[0] in "\"'":
                current = trimmed[1:-1]
                continue

            unescaped = (
                trimmed.replace('\\"', '"')
                .replace("\\n", "\n")
                .replace("\\r", "\r")
                .replace("\\t", "\t")
            )
            if unescaped != trimmed:
                current = unescaped
                continue
            return trimmed

        if isinstance(parsed, str):
            current = parsed
            continue
        return parsed

    return current


def truncate_text(text: Any, limit: int, suffix: str = "") -> Any:
    """Cut strings longer than *limit* characters, appending *suffix*."""
    if isinstance(text, str) and len(text) > limit:
        return text[:limit] + suffix
    return text
