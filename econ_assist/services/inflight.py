"""
In-flight request coalescing.

``InflightRegistry.once`` guarantees that at most one call per coalescing key
is running at any moment. Callers that arrive while a call is outstanding
await the same future and observe the same result or exception; the call is
never re-executed for them. Entries are removed as soon as the call settles,
whatever the outcome, so a later caller starts a fresh call.

The check-and-register step contains no ``await``, which makes it atomic on
the event loop. The registry map is also guarded by a ``threading.Lock`` for
hosts that drive tools from several threads.
"""

from __future__ import annotations

import asyncio
import threading
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

import structlog

from econ_assist.services.request_keys import compact_json

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def inflight_key(tool: str, query: Any, options: Optional[Dict[str, Any]] = None) -> str:
    query_str = query if isinstance(query, str) else str(query or "")
    return f"{tool}::{query_str.strip().lower()}::{compact_json(options or {})}"


class InflightRegistry:
    """Registry of outstanding calls keyed by tool, query and options."""

    def __init__(self) -> None:
        self._inflight: Dict[str, asyncio.Future] = {}
        self._lock = threading.Lock()
        self.started = 0
        self.coalesced = 0

    async def once(
        self,
        tool: str,
        query: Any,
        options: Optional[Dict[str, Any]],
        run: Callable[[], Awaitable[T]],
    ) -> T:
        """Run ``run()`` unless an identical call is already in flight.

        Cancelling one awaiter abandons only its own wait; the shared call
        keeps running for the other awaiters.
        """
        key = inflight_key(tool, query, options)
        with self._lock:
            future = self._inflight.get(key)
            if future is None:
                future = asyncio.ensure_future(run())
                self._inflight[key] = future
                self.started += 1
                future.add_done_callback(lambda f, k=key: self._release(k, f))
                leader = True
            else:
                self.coalesced += 1
                leader = False

        if not leader:
            logger.debug("Joined in-flight call", tool=tool, key=key)
        return await asyncio.shield(future)

    def _release(self, key: str, future: asyncio.Future) -> None:
        with self._lock:
            if self._inflight.get(key) is future:
                del self._inflight[key]
        # Mark the outcome as retrieved when every awaiter has gone away
        if not future.cancelled():
            future.exception()

    def is_pending(self, key: str) -> bool:
        with self._lock:
            return key in self._inflight

    def pending_count(self) -> int:
        with self._lock:
            return len(self._inflight)
