"""
Timeout and retry handling for calls to the external search API.

Every attempt races the call against a timer; transient failures (timeouts,
connection resets, DNS failures) are retried with exponential backoff, every
other failure propagates immediately. This is the only place in the
application where automatic retries happen.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from econ_assist.core.config import (
    RETRY_BACKOFF_BASE_SEC,
    VALYU_API_RETRIES,
    VALYU_API_TIMEOUT_MS,
)
from econ_assist.utils.error_handling import (
    RequestTimeoutError,
    classify_error,
    is_retryable,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")

ExternalCall = Callable[[str, Dict[str, Any]], Awaitable[T]]


def parse_retry_after(retry_after: Optional[str]) -> Optional[float]:
    """
    Parse Retry-After header value (seconds or HTTP date).

    Returns:
        Delay in seconds or None if parsing fails
    """
    if not retry_after:
        return None

    value = retry_after.strip()

    try:
        return max(0.0, float(value))
    except ValueError:
        pass

    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    now = datetime.now(when.tzinfo)
    return max(0.0, (when - now).total_seconds())


async def _backoff_sleep(seconds: float) -> None:
    await asyncio.sleep(seconds)


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    delay = retry_state.next_action.sleep if retry_state.next_action else None
    logger.info(
        "Retrying search API call after backoff",
        attempt=retry_state.attempt_number,
        delay=delay,
        error=str(exc),
        error_kind=classify_error(exc).value if exc else None,
    )


async def _attempt_with_timeout(
    external_call: ExternalCall,
    query: str,
    options: Dict[str, Any],
    timeout_ms: int,
) -> Any:
    # The timer only abandons this wait; the call itself runs to completion
    task = asyncio.ensure_future(external_call(query, options))
    task.add_done_callback(_drain_abandoned)
    try:
        return await asyncio.wait_for(asyncio.shield(task), timeout_ms / 1000.0)
    except asyncio.TimeoutError as exc:
        logger.debug("Abandoned wait on search API call", timeout_ms=timeout_ms)
        raise RequestTimeoutError(timeout_ms) from exc


def _drain_abandoned(task: "asyncio.Future[Any]") -> None:
    # Retrieve late failures so an abandoned call never logs "exception was never retrieved"
    if not task.cancelled():
        task.exception()


async def call_with_timeout(
    external_call: ExternalCall,
    query: str,
    options: Dict[str, Any],
    timeout_ms: Optional[int] = None,
    max_retries: Optional[int] = None,
) -> Any:
    """Run ``external_call(query, options)`` with a timeout and retries.

    Args:
        external_call: Coroutine function performing one API request
        query: Query string forwarded unchanged
        options: Options mapping forwarded unchanged
        timeout_ms: Per-attempt timeout, defaults to ``VALYU_API_TIMEOUT``
        max_retries: Extra attempts for transient failures, defaults to
            ``VALYU_API_RETRIES``. Waits ``2**attempt`` seconds between
            attempts (1s, 2s, 4s ...).

    Raises:
        The last observed error once retries are exhausted, or the first
        non-retryable error unchanged.
    """
    timeout_ms = VALYU_API_TIMEOUT_MS if timeout_ms is None else int(timeout_ms)
    max_retries = VALYU_API_RETRIES if max_retries is None else max(0, int(max_retries))

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_retries + 1),
        wait=wait_exponential(multiplier=RETRY_BACKOFF_BASE_SEC, exp_base=2),
        retry=retry_if_exception(is_retryable),
        before_sleep=_log_retry,
        sleep=_backoff_sleep,
        reraise=True,
    )
    try:
        return await retrying(_attempt_with_timeout, external_call, query, options, timeout_ms)
    except Exception as exc:
        logger.warning(
            "Search API call failed",
            error=str(exc),
            error_kind=classify_error(exc).value,
            retryable=is_retryable(exc),
            timeout_ms=timeout_ms,
            max_retries=max_retries,
        )
        raise
