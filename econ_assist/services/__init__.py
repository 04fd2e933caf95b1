"""Deduplication services and the economics tools built on them."""

from .request_keys import build_tool_key, canon_options, canon_query
from .result_identity import key_to_uuid, result_id
from .result_deduplicator import RequestSeenRegistry, dedupe_by, dedupe_records
from .inflight import InflightRegistry
from .session_memo import SessionMemoStore
from .dedup_service import (
    DedupService,
    dedupe_against_request,
    get_dedup_service,
    once,
    set_dedup_service,
    with_session_memo,
)
from .valyu_client import ValyuClient
from .url_reader import read_text_from_url
from .economics_tools import ECONOMICS_TOOLS

__all__ = [
    "build_tool_key",
    "canon_options",
    "canon_query",
    "key_to_uuid",
    "result_id",
    "RequestSeenRegistry",
    "dedupe_by",
    "dedupe_records",
    "InflightRegistry",
    "SessionMemoStore",
    "DedupService",
    "dedupe_against_request",
    "get_dedup_service",
    "once",
    "set_dedup_service",
    "with_session_memo",
    "ValyuClient",
    "read_text_from_url",
    "ECONOMICS_TOOLS",
]
