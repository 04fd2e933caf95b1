"""
Error taxonomy and classification for calls to the external search API.

The API adapter raises typed errors carrying an :class:`ErrorKind`; foreign
exceptions (raw aiohttp errors, errors from injected test doubles) are
classified from their type and, as a last resort, from well-known message
substrings. Classification decides what the retry wrapper may retry and what
the tool layer tells the user.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any, Dict, Optional

import aiohttp
import structlog

logger = structlog.get_logger(__name__)


class ErrorKind(str, Enum):
    CONFIGURATION = "configuration"
    AUTHENTICATION = "authentication"
    RATE_LIMIT = "rate_limit"
    TRANSIENT = "transient"
    NOT_FOUND = "not_found"
    UNKNOWN = "unknown"


# Only these kinds are retried automatically
RETRYABLE_KINDS = frozenset({ErrorKind.TRANSIENT})

# Substrings that mark a transient network failure in foreign error messages
TRANSIENT_MARKERS = ("ECONNRESET", "ENOTFOUND", "ETIMEDOUT")


class EconAssistError(Exception):
    """Base class for errors raised by the tool layer."""

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(self, message: str, kind: Optional[ErrorKind] = None) -> None:
        super().__init__(message)
        if kind is not None:
            self.kind = kind


class ConfigurationError(EconAssistError):
    kind = ErrorKind.CONFIGURATION


class ExternalAPIError(EconAssistError):
    """Error reported by the search API, tagged with the HTTP status if any."""

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.UNKNOWN,
        status: Optional[int] = None,
        retry_after: Optional[float] = None,
    ) -> None:
        super().__init__(message, kind)
        self.status = status
        self.retry_after = retry_after


class RequestTimeoutError(EconAssistError):
    kind = ErrorKind.TRANSIENT

    def __init__(self, timeout_ms: int) -> None:
        super().__init__(f"Request timeout after {timeout_ms}ms")
        self.timeout_ms = timeout_ms


def kind_for_status(status: int) -> ErrorKind:
    """Map an HTTP status code from the search API onto an error kind."""
    if status in (401, 403):
        return ErrorKind.AUTHENTICATION
    if status == 429:
        return ErrorKind.RATE_LIMIT
    if status in (408, 502, 503, 504):
        return ErrorKind.TRANSIENT
    return ErrorKind.UNKNOWN


def classify_error(error: BaseException) -> ErrorKind:
    """Classify an exception raised while calling the search API."""
    if isinstance(error, EconAssistError):
        return error.kind
    if isinstance(error, (asyncio.TimeoutError, aiohttp.ServerTimeoutError)):
        return ErrorKind.TRANSIENT
    if isinstance(error, aiohttp.ClientConnectionError):
        return ErrorKind.TRANSIENT
    if isinstance(error, aiohttp.ClientResponseError):
        return kind_for_status(error.status)

    msg = str(error)
    lowered = msg.lower()
    if "timeout" in lowered or any(marker in msg for marker in TRANSIENT_MARKERS):
        return ErrorKind.TRANSIENT
    if "401" in msg or "unauthorized" in lowered:
        return ErrorKind.AUTHENTICATION
    if "429" in msg:
        return ErrorKind.RATE_LIMIT
    return ErrorKind.UNKNOWN


def is_retryable(error: BaseException) -> bool:
    return classify_error(error) in RETRYABLE_KINDS


# User-facing messages per error kind, used by the tool layer
ERROR_CLASSIFICATIONS: Dict[ErrorKind, Dict[str, Any]] = {
    ErrorKind.CONFIGURATION: {
        "user_message": (
            "Valyu API key not configured. Please add VALYU_API_KEY to your "
            "environment variables"
        ),
        "severity": "error",
    },
    ErrorKind.AUTHENTICATION: {
        "user_message": (
            "Invalid Valyu API key. Please check your VALYU_API_KEY environment variable."
        ),
        "severity": "error",
    },
    ErrorKind.RATE_LIMIT: {
        "user_message": "Rate limit exceeded. Please try again in a moment.",
        "severity": "warning",
    },
    ErrorKind.TRANSIENT: {
        "user_message": (
            "Network error connecting to Valyu API. Please check your internet connection."
        ),
        "severity": "warning",
    },
}


def describe_error(error: BaseException, action: str, feature: str = "") -> str:
    """Turn an error into the annotated string returned to the chat model.

    Args:
        error: The exception surfaced by the core layer
        action: Short description of what failed, e.g. "searching economics data"
        feature: Optional suffix naming the feature that needs the API key
    """
    kind = classify_error(error)
    info = ERROR_CLASSIFICATIONS.get(kind)
    if info is None:
        return f"Error {action}: {error or 'Unknown error'}"
    message = info["user_message"]
    if kind is ErrorKind.CONFIGURATION:
        message = f"{message}{' to enable ' + feature if feature else ''}."
    return message


def log_exception(context: str, exc: BaseException, **fields: Any) -> None:
    """Log an exception with its classification; never raises."""
    try:
        logger.warning(
            context,
            error=str(exc),
            error_type=type(exc).__name__,
            error_kind=classify_error(exc).value,
            **fields,
        )
    except Exception:
        # Avoid secondary failures during error handling
        pass
