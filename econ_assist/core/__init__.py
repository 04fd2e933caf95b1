"""
Core package for the economics assistant.

Re-exports the configuration values so the rest of the application can import
them from ``econ_assist.core`` without knowing the module layout.
"""

from econ_assist.core.config import (
    VALYU_BASE_URL,
    VALYU_API_TIMEOUT_MS,
    VALYU_API_RETRIES,
    VALYU_ERROR_BODY_MAX,
    RETRY_BACKOFF_BASE_SEC,
    FETCH_TIMEOUT_MS,
    FETCH_DEFAULT_MAX_BYTES,
    FETCH_MAX_BYTES_LIMIT,
    SESSION_MEMO_MAX_KEYS,
    SESSION_MEMO_MAX_SESSIONS,
    REQUEST_SEEN_MAX_REQUESTS,
    get_valyu_api_key,
)

__all__ = [
    "VALYU_BASE_URL",
    "VALYU_API_TIMEOUT_MS",
    "VALYU_API_RETRIES",
    "VALYU_ERROR_BODY_MAX",
    "RETRY_BACKOFF_BASE_SEC",
    "FETCH_TIMEOUT_MS",
    "FETCH_DEFAULT_MAX_BYTES",
    "FETCH_MAX_BYTES_LIMIT",
    "SESSION_MEMO_MAX_KEYS",
    "SESSION_MEMO_MAX_SESSIONS",
    "REQUEST_SEEN_MAX_REQUESTS",
    "get_valyu_api_key",
]
