"""
Core configuration for the economics assistant tool layer.

Centralises the tunable knobs for the Valyu search API client, the retrying
timeout wrapper and the in-memory deduplication stores. Values can be
overridden via env vars (a local ``.env`` file is honoured) so limits can be
adjusted per environment without code changes.
"""

import os
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)) or default)
    except Exception:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)) or default)
    except Exception:
        return default


def get_valyu_api_key() -> Optional[str]:
    """Read the API key at call time so tests and hot reloads see changes."""
    key = os.getenv("VALYU_API_KEY")
    return key.strip() if key and key.strip() else None


# ────────────────────────────────────────────────────────────
#  Valyu search API
# ────────────────────────────────────────────────────────────

VALYU_BASE_URL: str = os.getenv("VALYU_BASE_URL", "https://api.valyu.network/v1")

# Per-attempt timeout for search-style calls (milliseconds)
VALYU_API_TIMEOUT_MS: int = _env_int("VALYU_API_TIMEOUT", 30000)

# Additional attempts after the first for transient failures
VALYU_API_RETRIES: int = _env_int("VALYU_API_RETRIES", 2)

# Error response bodies are cut to this many characters in exception messages
VALYU_ERROR_BODY_MAX: int = _env_int("VALYU_LOG_BODY_MAX", 512)

# Base of the exponential backoff between retries (seconds)
RETRY_BACKOFF_BASE_SEC: float = _env_float("VALYU_RETRY_BACKOFF_BASE", 1.0)


# ────────────────────────────────────────────────────────────
#  Direct URL fetches
# ────────────────────────────────────────────────────────────

# Lighter fetch-style operations (reading a user-supplied file) time out sooner
FETCH_TIMEOUT_MS: int = _env_int("FETCH_TIMEOUT", 15000)

# Download limits for text fetched from a URL (bytes)
FETCH_DEFAULT_MAX_BYTES: int = 10 * 1024 * 1024
FETCH_MAX_BYTES_LIMIT: int = 25 * 1024 * 1024


# ────────────────────────────────────────────────────────────
#  Deduplication / memoization stores
# ────────────────────────────────────────────────────────────

# Completed results kept per conversation session (FIFO beyond this)
SESSION_MEMO_MAX_KEYS: int = _env_int("SESSION_MEMO_MAX_KEYS", 200)

# Sessions tracked at once; least recently used session dropped beyond this
SESSION_MEMO_MAX_SESSIONS: int = _env_int("SESSION_MEMO_MAX_SESSIONS", 1000)

# Request seen-sets tracked at once; least recently used dropped beyond this
REQUEST_SEEN_MAX_REQUESTS: int = _env_int("REQUEST_SEEN_MAX_REQUESTS", 5000)
