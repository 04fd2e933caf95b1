"""
Result models for the economics assistant.

``SearchResponse`` is the parsed payload of one search API call and is what
the session memo stores; ``ResultRecord`` is one fingerprinted item handed to
the calling tool.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class SearchResponse:
    results: List[Dict[str, Any]] = field(default_factory=list)
    total_deduction_dollars: Optional[float] = None
    tx_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    success: bool = True
    error: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Optional[Dict[str, Any]]) -> "SearchResponse":
        payload = payload or {}
        results = payload.get("results") or []
        return cls(
            results=[r for r in results if isinstance(r, dict)],
            total_deduction_dollars=payload.get("total_deduction_dollars"),
            tx_id=payload.get("tx_id"),
            metadata=payload.get("metadata") or {},
            success=payload.get("success", True) is not False,
            error=payload.get("error") or None,
        )


@dataclass
class ResultRecord:
    id: str
    title: str
    url: str
    content: Any = None
    date: Optional[str] = None
    source: Optional[str] = None
    data_type: Optional[str] = None
    length: Optional[int] = None
    image_url: Dict[str, Any] = field(default_factory=dict)
    relevance_score: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        # Tool payloads use the API's camelCase for the data type
        data["dataType"] = data.pop("data_type")
        return data
