"""Per-session memoization of completed tool results.

Each conversation session owns an insertion-ordered map of canonical request
key to result. When an insert pushes the map past ``max_keys`` the single
oldest-inserted entry is evicted (FIFO: reads never refresh an entry's
position). Only successful results are stored; a ``run`` that raises leaves
no trace and the next call with the same key runs again.

Sessions themselves are tracked in a bounded map as well: once more than
``max_sessions`` sessions are held, the least recently used session's memo is
dropped.
"""

from __future__ import annotations

import threading
from collections import OrderedDict
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

import structlog

from econ_assist.core.config import SESSION_MEMO_MAX_KEYS, SESSION_MEMO_MAX_SESSIONS

logger = structlog.get_logger(__name__)

T = TypeVar("T")

_MISSING = object()


class SessionMemoStore:
    def __init__(
        self,
        max_keys: Optional[int] = None,
        max_sessions: Optional[int] = None,
    ) -> None:
        self.max_keys = max_keys or SESSION_MEMO_MAX_KEYS
        self.max_sessions = max_sessions or SESSION_MEMO_MAX_SESSIONS
        if self.max_keys <= 0 or self.max_sessions <= 0:
            raise ValueError("memo capacities must be positive")
        self._sessions: "OrderedDict[str, OrderedDict[str, Any]]" = OrderedDict()
        self._lock = threading.Lock()
        self.hit_count = 0
        self.miss_count = 0

    async def with_memo(
        self,
        session_id: Optional[str],
        key: str,
        run: Callable[[], Awaitable[T]],
    ) -> T:
        """Return the memoized result for ``key`` or compute and store it.

        Without a ``session_id`` nothing is cached and ``run`` always executes.
        """
        if not session_id:
            return await run()

        cached = self._lookup(session_id, key)
        if cached is not _MISSING:
            logger.debug("Session memo hit", session_id=session_id, key=key)
            return cached

        value = await run()
        self._insert(session_id, key, value)
        return value

    def get(self, session_id: str, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._get_locked(session_id, key, default)

    def _lookup(self, session_id: str, key: str) -> Any:
        # Lookup and counter update happen under one lock acquisition
        with self._lock:
            cached = self._get_locked(session_id, key, _MISSING)
            if cached is _MISSING:
                self.miss_count += 1
            else:
                self.hit_count += 1
            return cached

    def _get_locked(self, session_id: str, key: str, default: Any) -> Any:
        bag = self._sessions.get(session_id)
        if bag is None:
            return default
        self._sessions.move_to_end(session_id)
        return bag.get(key, default)

    def _insert(self, session_id: str, key: str, value: Any) -> None:
        with self._lock:
            bag = self._sessions.get(session_id)
            if bag is None:
                bag = OrderedDict()
                self._sessions[session_id] = bag
                while len(self._sessions) > self.max_sessions:
                    dropped, _ = self._sessions.popitem(last=False)
                    logger.info("Dropped least recently used session memo", session_id=dropped)
            else:
                self._sessions.move_to_end(session_id)

            if key in bag:
                # A concurrent miss already stored it; keep the original position
                bag[key] = value
                return
            bag[key] = value
            if len(bag) > self.max_keys:
                evicted, _ = bag.popitem(last=False)
                logger.debug("Evicted oldest session memo entry", session_id=session_id, key=evicted)

    def keys(self, session_id: str) -> list:
        with self._lock:
            return list(self._sessions.get(session_id, ()))

    def size(self, session_id: str) -> int:
        with self._lock:
            return len(self._sessions.get(session_id, ()))

    def clear(self, session_id: Optional[str] = None) -> None:
        with self._lock:
            if session_id is None:
                self._sessions.clear()
            else:
                self._sessions.pop(session_id, None)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            total = self.hit_count + self.miss_count
            return {
                "sessions": len(self._sessions),
                "entries": sum(len(b) for b in self._sessions.values()),
                "hit_count": self.hit_count,
                "miss_count": self.miss_count,
                "hit_rate": (self.hit_count / total) if total else 0.0,
            }
