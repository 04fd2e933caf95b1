"""
Request deduplication service.

One ``DedupService`` per process owns the three pieces of shared state the
tool layer relies on:

* ``SessionMemoStore`` - completed responses per conversation session,
* ``InflightRegistry`` - outstanding external calls per coalescing key,
* ``RequestSeenRegistry`` - fingerprints already surfaced per user turn.

``fetch`` chains them in the order every tool uses: canonical key, session
memo, in-flight coalescing, then the retrying timeout wrapper around the
external call. For one session this means at most one external call per
canonical key is ever running, and repeats after completion are answered from
memory.
"""

from __future__ import annotations

import threading
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, TypeVar

import structlog

from econ_assist.models.results import ResultRecord
from econ_assist.services.inflight import InflightRegistry
from econ_assist.services.request_keys import build_tool_key, canon_options, canon_query
from econ_assist.services.result_deduplicator import RequestSeenRegistry, dedupe_records
from econ_assist.services.session_memo import SessionMemoStore
from econ_assist.utils.retry import ExternalCall, call_with_timeout

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class DedupService:
    def __init__(
        self,
        memo: Optional[SessionMemoStore] = None,
        inflight: Optional[InflightRegistry] = None,
        seen: Optional[RequestSeenRegistry] = None,
    ) -> None:
        self.memo = memo or SessionMemoStore()
        self.inflight = inflight or InflightRegistry()
        self.seen = seen or RequestSeenRegistry()

    async def once(
        self,
        tool: str,
        query: Any,
        options: Optional[Dict[str, Any]],
        run: Callable[[], Awaitable[T]],
    ) -> T:
        return await self.inflight.once(tool, query, options, run)

    async def with_session_memo(
        self,
        session_id: Optional[str],
        key: str,
        run: Callable[[], Awaitable[T]],
    ) -> T:
        return await self.memo.with_memo(session_id, key, run)

    def dedupe_against_request(
        self,
        request_id: Optional[str],
        items: List[T],
        get_id: Callable[[T], Optional[str]],
    ) -> List[T]:
        return self.seen.dedupe_against_request(request_id, items, get_id)

    async def fetch(
        self,
        tool: str,
        query: str,
        options: Dict[str, Any],
        external_call: ExternalCall,
        *,
        session_id: Optional[str] = None,
        api_query: Optional[str] = None,
        timeout_ms: Optional[int] = None,
        max_retries: Optional[int] = None,
    ) -> Any:
        """Fetch through memo, coalescer and retry wrapper.

        ``query`` identifies the request for caching; ``api_query`` (when
        given) is what is actually sent, e.g. with a tool-specific prefix.
        """
        key = build_tool_key(tool, query, options)

        async def _call() -> Any:
            logger.info("Calling search API", tool=tool, key=key)
            return await call_with_timeout(
                external_call,
                api_query or query,
                options,
                timeout_ms=timeout_ms,
                max_retries=max_retries,
            )

        return await self.with_session_memo(
            session_id,
            key,
            lambda: self.once(tool, canon_query(query), canon_options(options), _call),
        )

    def finalize_records(
        self,
        tool: str,
        request_id: Optional[str],
        records: Iterable[ResultRecord],
        raw_count: Optional[int] = None,
    ) -> List[ResultRecord]:
        """Deduplicate within one response, then against the current request."""
        mapped = list(records)
        unique = dedupe_records(mapped)
        final = self.dedupe_against_request(request_id, unique, lambda r: r.id)
        logger.info(
            "Result deduplication complete",
            tool=tool,
            request_id=request_id,
            raw_count=len(mapped) if raw_count is None else raw_count,
            mapped_count=len(mapped),
            unique_count=len(unique),
            final_count=len(final),
        )
        return final

    def stats(self) -> Dict[str, Any]:
        return {
            "memo": self.memo.stats(),
            "inflight": self.inflight.pending_count(),
            "seen": self.seen.stats(),
        }


_service: Optional[DedupService] = None
_service_lock = threading.Lock()


def get_dedup_service() -> DedupService:
    """Return the process-wide service, creating it on first use."""
    global _service
    with _service_lock:
        if _service is None:
            _service = DedupService()
        return _service


def set_dedup_service(service: Optional[DedupService]) -> None:
    """Install a specific service (or reset to lazy creation with None)."""
    global _service
    with _service_lock:
        _service = service


async def once(tool: str, query: Any, options: Optional[Dict[str, Any]], run: Callable[[], Awaitable[T]]) -> T:
    return await get_dedup_service().once(tool, query, options, run)


async def with_session_memo(session_id: Optional[str], key: str, run: Callable[[], Awaitable[T]]) -> T:
    return await get_dedup_service().with_session_memo(session_id, key, run)


def dedupe_against_request(
    request_id: Optional[str],
    items: List[T],
    get_id: Callable[[T], Optional[str]],
) -> List[T]:
    return get_dedup_service().dedupe_against_request(request_id, items, get_id)
