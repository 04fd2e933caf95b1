from __future__ import annotations

import threading
from collections import OrderedDict
from typing import Callable, Dict, Iterable, List, Optional, Set, TypeVar

import structlog

from econ_assist.core.config import REQUEST_SEEN_MAX_REQUESTS
from econ_assist.models.results import ResultRecord

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def dedupe_by(items: Iterable[T], get_id: Callable[[T], Optional[str]]) -> List[T]:
    """Keep the first item per id, preserving input order.

    Items whose id is empty are dropped.
    """
    seen: Set[str] = set()
    unique: List[T] = []
    for item in items:
        item_id = get_id(item)
        if not item_id or item_id in seen:
            continue
        seen.add(item_id)
        unique.append(item)
    return unique


def dedupe_records(records: Iterable[ResultRecord]) -> List[ResultRecord]:
    return dedupe_by(records, lambda r: r.id)


class RequestSeenRegistry:
    """Fingerprints already surfaced during one logical request.

    A request is a single user turn that may invoke several tools; records
    one tool already returned in that turn are filtered out of later tool
    results. The outer map is bounded: beyond ``max_requests`` the least
    recently used request's set is dropped.
    """

    def __init__(self, max_requests: Optional[int] = None) -> None:
        self.max_requests = max_requests or REQUEST_SEEN_MAX_REQUESTS
        if self.max_requests <= 0:
            raise ValueError("max_requests must be positive")
        self._seen: "OrderedDict[str, Set[str]]" = OrderedDict()
        self._lock = threading.Lock()

    def dedupe_against_request(
        self,
        request_id: Optional[str],
        items: List[T],
        get_id: Callable[[T], Optional[str]],
    ) -> List[T]:
        """Drop items already seen in ``request_id`` and remember the rest.

        Without a ``request_id`` the input list is returned unchanged.
        """
        if not request_id:
            return items

        with self._lock:
            bag = self._bag_locked(request_id)
            admitted: List[T] = []
            dropped = 0
            for item in items:
                item_id = get_id(item)
                if not item_id or item_id in bag:
                    dropped += 1
                    continue
                bag.add(item_id)
                admitted.append(item)

        if dropped:
            logger.debug(
                "Dropped records already surfaced in request",
                request_id=request_id,
                dropped=dropped,
                admitted=len(admitted),
            )
        return admitted

    def seen_ids(self, request_id: str) -> Set[str]:
        with self._lock:
            return set(self._seen.get(request_id, ()))

    def forget(self, request_id: str) -> None:
        with self._lock:
            self._seen.pop(request_id, None)

    def __len__(self) -> int:
        return len(self._seen)

    def _bag_locked(self, request_id: str) -> Set[str]:
        bag = self._seen.get(request_id)
        if bag is None:
            bag = set()
            self._seen[request_id] = bag
            while len(self._seen) > self.max_requests:
                evicted, _ = self._seen.popitem(last=False)
                logger.debug("Evicted request seen-set", request_id=evicted)
        else:
            self._seen.move_to_end(request_id)
        return bag

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "requests": len(self._seen),
                "fingerprints": sum(len(b) for b in self._seen.values()),
                "max_requests": self.max_requests,
            }
