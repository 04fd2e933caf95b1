"""Canonical cache keys for tool invocations.

``build_tool_key`` folds a tool name, a free-text query and an options
mapping into one string so that equivalent invocations share memo entries:

* the query is trimmed, whitespace runs collapse to one space, and it is
  lowercased;
* option mappings lose ``None`` values and are key-sorted recursively;
* sequences are **array-order-insensitive**: their canonical elements are
  sorted by their serialized form. ``{"included_sources": ["b", "a"]}`` and
  ``{"included_sources": ["a", "b"]}`` give the same key. Never route an
  option whose element order matters through this path, or distinct requests
  will share one cache entry.
"""

from __future__ import annotations

import json
import re
from typing import Any

_WHITESPACE = re.compile(r"\s+")


def compact_json(value: Any) -> str:
    """Serialize without whitespace; unknown types fall back to ``str``."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)


def canon_query(query: Any) -> str:
    if query is None:
        text = ""
    elif isinstance(query, str):
        text = query
    else:
        text = str(query)
    return _WHITESPACE.sub(" ", text.strip()).lower()


def canon_options(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            str(k): canon_options(v)
            for k, v in sorted(value.items(), key=lambda kv: str(kv[0]))
            if v is not None
        }
    if isinstance(value, (list, tuple, set, frozenset)):
        items = [canon_options(v) for v in value]
        return sorted(items, key=compact_json)
    return value


def build_tool_key(tool: str, query: Any, options: Any = None) -> str:
    opts = canon_options(options if options is not None else {})
    return f"{tool}::{canon_query(query)}::{compact_json(opts)}"
