"""
Economics tools exposed to the chat model.

Every tool follows the same path through the deduplication layer: validate
the arguments, build the option preset, fetch through
``DedupService.fetch`` (session memo, in-flight coalescing, retrying timeout
wrapper), fingerprint the raw results and drop records already surfaced in
the current request. Tools return JSON text for the model, or a short
annotated message when the search could not be performed.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

import structlog
from pydantic import ValidationError

from econ_assist.core.config import VALYU_API_TIMEOUT_MS, get_valyu_api_key
from econ_assist.logging_config import bind_request_context
from econ_assist.models.results import ResultRecord, SearchResponse
from econ_assist.models.tool_inputs import (
    EconomicsSearchInput,
    SeriesLookupInput,
    ToolContext,
    WebSearchInput,
    WorldBankInput,
)
from econ_assist.services.dedup_service import DedupService, get_dedup_service
from econ_assist.services.result_identity import key_to_uuid, record_field, result_id
from econ_assist.services.valyu_client import ValyuClient
from econ_assist.services.url_reader import read_text_from_url
from econ_assist.utils.error_handling import ERROR_CLASSIFICATIONS, ErrorKind, describe_error, log_exception
from econ_assist.utils.type_coercion import as_float, as_optional_int, parse_api_content, truncate_text
from econ_assist.utils.url_utils import extract_arxiv_id, extract_doi, normalize_url

logger = structlog.get_logger(__name__)

WB_MAX_CONTENT_CHARS = 50000
WB_MAX_DATA_CHARS = 20000

_default_client: Optional[ValyuClient] = None


def get_valyu_client() -> ValyuClient:
    """Shared client reused by all tools unless one is passed explicitly."""
    global _default_client
    if _default_client is None:
        _default_client = ValyuClient()
    return _default_client


async def close_valyu_client() -> None:
    global _default_client
    if _default_client is not None:
        await _default_client.close()
        _default_client = None


@dataclass(frozen=True)
class SeriesSpec:
    """Preset for a single-source series lookup tool."""

    tool: str
    label: str
    source: str
    query_prefix: str
    natural_key_field: str
    payload_type: str
    not_found: str
    action: str


FRED_SERIES = SeriesSpec(
    tool="get_fred_series_data",
    label="FRED",
    source="valyu/valyu-fred",
    query_prefix="FRED series: ",
    natural_key_field="fred_id",
    payload_type="FRED_series_details",
    not_found="No FRED series found for query: {query}",
    action="fetching FRED series details",
)

BLS_SERIES = SeriesSpec(
    tool="get_bls_series_data",
    label="BLS",
    source="valyu/valyu-bls",
    query_prefix="BLS series: ",
    natural_key_field="bls_id",
    payload_type="BLS_series_details",
    not_found="No BLS series found with: {query}",
    action="fetching BLS series details",
)

USASPENDING_SERIES = SeriesSpec(
    tool="get_usaspending_details",
    label="USASpending",
    source="valyu/valyu-usaspending",
    query_prefix="USASpending.gov Award: ",
    natural_key_field="usaspending_id",
    payload_type="USASpending_series_details",
    not_found="No USASpending series found with USASpending ID: {query}",
    action="fetching USASpending series details",
)


def series_options(series: SeriesSpec, max_results: int) -> Dict[str, Any]:
    return {
        "max_num_results": max_results,
        "search_type": "proprietary",
        "included_sources": [series.source],
        "relevance_threshold": 0.1,
        "is_tool_call": True,
    }


def to_record(raw: Dict[str, Any], record_id: str, default_title: str = "") -> ResultRecord:
    """Map one raw API result onto a fingerprinted record."""
    image_url = raw.get("image_url")
    return ResultRecord(
        id=record_id,
        title=raw.get("title") or default_title,
        url=raw.get("url") or "",
        content=raw.get("content"),
        date=record_field(raw, "date"),
        source=record_field(raw, "source"),
        data_type=raw.get("data_type"),
        length=as_optional_int(raw.get("length")),
        image_url=image_url if isinstance(image_url, dict) else {},
        relevance_score=as_float(raw.get("relevance_score")),
    )


def natural_key_id(raw: Dict[str, Any], field_name: str) -> str:
    """Fingerprint from a registry id when present, else the generic resolver."""
    key = record_field(raw, field_name)
    return key_to_uuid(str(key)) if key else result_id(raw)


def web_result_id(raw: Dict[str, Any]) -> str:
    url = raw.get("url") if isinstance(raw.get("url"), str) else ""
    content = raw.get("content")
    key = (
        extract_doi(url)
        or extract_doi(content if isinstance(content, str) else "")
        or extract_arxiv_id(url)
        or normalize_url(url)
    )
    return key_to_uuid(key) if key else result_id(raw)


def _dump(payload: Dict[str, Any]) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False, default=str)


def _missing_key_message(feature: str) -> str:
    base = ERROR_CLASSIFICATIONS[ErrorKind.CONFIGURATION]["user_message"]
    return f"{base} to enable {feature}."


def _bind(context: Optional[ToolContext]) -> ToolContext:
    context = context or ToolContext()
    bind_request_context(context.request_id, context.session_id)
    return context


async def _fetch(
    service: DedupService,
    client: ValyuClient,
    tool: str,
    query: str,
    options: Dict[str, Any],
    context: ToolContext,
    api_query: Optional[str] = None,
) -> SearchResponse:
    return await service.fetch(
        tool,
        query,
        options,
        client.search,
        session_id=context.session_id,
        api_query=api_query,
        timeout_ms=VALYU_API_TIMEOUT_MS,
    )


async def economics_search(
    query: str,
    data_type: Optional[str] = None,
    max_results: int = 10,
    *,
    context: Optional[ToolContext] = None,
    client: Optional[ValyuClient] = None,
    service: Optional[DedupService] = None,
) -> str:
    """Search economic indicators, research, news and policy sources."""
    try:
        args = EconomicsSearchInput(query=query, data_type=data_type, max_results=max_results)
    except ValidationError as exc:
        return f"Invalid arguments for economics search: {exc.errors()[0]['msg']}"

    if client is None and not get_valyu_api_key():
        return _missing_key_message("economics search")

    context = _bind(context)
    service = service or get_dedup_service()
    options = {"max_num_results": args.max_results}
    try:
        response = await _fetch(service, client or get_valyu_client(), "economics_search", args.query, options, context)
    except Exception as exc:
        log_exception("Economics search failed", exc, query=args.query)
        return describe_error(exc, "searching economics data", "economics search")

    records = [to_record(r, result_id(r), "Financial Data") for r in response.results]
    final = service.finalize_records("economics_search", context.request_id, records, len(response.results))
    if not response.results:
        return (
            f'No economics data found for "{args.query}". Try rephrasing your search '
            "or checking if the company/symbol exists."
        )

    return _dump(
        {
            "type": "economics_search",
            "query": args.query,
            "dataType": args.data_type,
            "resultCount": len(final),
            "results": [r.to_dict() for r in final],
        }
    )


# Same tool under the name older prompts use
financial_search = economics_search


async def lookup_series(
    series: SeriesSpec,
    query: str,
    max_results: int = 5,
    *,
    context: Optional[ToolContext] = None,
    client: Optional[ValyuClient] = None,
    service: Optional[DedupService] = None,
) -> str:
    """Fetch full details of the best matching series from one source.

    The first raw result is returned in full with its content decoded; all
    results are still fingerprinted so later tools in the same request skip
    them.
    """
    try:
        args = SeriesLookupInput(query=query, max_results=max_results)
    except ValidationError as exc:
        return f"Invalid arguments for {series.label} lookup: {exc.errors()[0]['msg']}"

    if client is None and not get_valyu_api_key():
        return _missing_key_message(f"{series.label} series lookup")

    context = _bind(context)
    service = service or get_dedup_service()
    options = series_options(series, args.max_results)
    try:
        response = await _fetch(
            service,
            client or get_valyu_client(),
            series.tool,
            args.query,
            options,
            context,
            api_query=f"{series.query_prefix}{args.query}",
        )
    except Exception as exc:
        log_exception("Series lookup failed", exc, tool=series.tool, query=args.query)
        return describe_error(exc, series.action)

    records = [to_record(r, natural_key_id(r, series.natural_key_field)) for r in response.results]
    service.finalize_records(series.tool, context.request_id, records, len(response.results))

    if not response.results:
        return _dump(
            {
                "type": series.payload_type,
                "query": args.query,
                "found": False,
                "message": series.not_found.format(query=args.query),
            }
        )

    first = response.results[0]
    return _dump(
        {
            "type": series.payload_type,
            "query": args.query,
            "found": True,
            "title": first.get("title"),
            "url": first.get("url"),
            "data": parse_api_content(first.get("content")),
            "note": f"Full details for {series.label} series {args.query}",
        }
    )


async def get_fred_series_data(query: str, max_results: int = 5, **kwargs: Any) -> str:
    return await lookup_series(FRED_SERIES, query, max_results, **kwargs)


async def get_bls_series_data(query: str, max_results: int = 5, **kwargs: Any) -> str:
    return await lookup_series(BLS_SERIES, query, max_results, **kwargs)


async def get_usaspending_details(query: str, max_results: int = 5, **kwargs: Any) -> str:
    return await lookup_series(USASPENDING_SERIES, query, max_results, **kwargs)


async def get_wb_details(
    query: str,
    max_results: int = 10,
    *,
    context: Optional[ToolContext] = None,
    client: Optional[ValyuClient] = None,
    service: Optional[DedupService] = None,
) -> str:
    """Search World Bank indicator metadata (descriptions, not time series)."""
    try:
        args = WorldBankInput(query=query, max_results=max_results)
    except ValidationError as exc:
        return f"Invalid arguments for World Bank search: {exc.errors()[0]['msg']}"

    if client is None and not get_valyu_api_key():
        return _missing_key_message("World Bank search")

    context = _bind(context)
    service = service or get_dedup_service()
    options = {
        "max_num_results": args.max_results,
        "search_type": "proprietary",
        "included_sources": ["valyu/valyu-worldbank-indicators"],
    }
    try:
        response = await _fetch(service, client or get_valyu_client(), "get_wb_details", args.query, options, context)
    except Exception as exc:
        log_exception("World Bank search failed", exc, query=args.query)
        return describe_error(exc, "searching World Bank economic indicator metadata")

    records = [to_record(r, result_id(r)) for r in response.results]
    service.finalize_records("get_wb_details", context.request_id, records, len(response.results))

    if not response.results:
        return _dump(
            {
                "type": "WB_series_details",
                "query": args.query,
                "found": False,
                "message": (
                    f'No World Bank economic indicator metadata found for "{args.query}". '
                    "This tool only searches for indicator descriptions, not time series "
                    "data. Try rephrasing your search or use other tools for actual data."
                ),
            }
        )

    first = response.results[0]
    data: Dict[str, Any] = first
    original_size = len(_dump(first))
    if original_size > WB_MAX_DATA_CHARS:
        logger.info("Truncating World Bank payload", query=args.query, original_size=original_size)
        data = dict(first, content="Data available but truncated due to size", originalSize=original_size)

    return _dump(
        {
            "type": "WB_series_details",
            "query": args.query,
            "found": True,
            "title": first.get("title") or "World Bank Economic Indicator",
            "url": first.get("url"),
            "content": truncate_text(
                first.get("content"), WB_MAX_CONTENT_CHARS, "\n\n... (content truncated due to size)"
            ),
            "data": data,
            "note": (
                f"World Bank indicator metadata for {args.query}. This is descriptive "
                "information about the indicator, not actual time series data."
            ),
        }
    )


async def web_search(
    query: str,
    *,
    context: Optional[ToolContext] = None,
    client: Optional[ValyuClient] = None,
    service: Optional[DedupService] = None,
) -> str:
    """General web search across proprietary and open web sources."""
    try:
        args = WebSearchInput(query=query)
    except ValidationError as exc:
        return f"Invalid arguments for web search: {exc.errors()[0]['msg']}"

    context = _bind(context)
    service = service or get_dedup_service()
    options = {"search_type": "all"}
    try:
        response = await _fetch(service, client or get_valyu_client(), "web_search", args.query, options, context)
    except Exception as exc:
        log_exception("Web search failed", exc, query=args.query)
        return describe_error(exc, "performing web search", "web search")

    records = [to_record(r, web_result_id(r), "Web Result") for r in response.results]
    final: List[ResultRecord] = service.finalize_records(
        "web_search", context.request_id, records, len(response.results)
    )

    if not final:
        return _dump(
            {
                "type": "web_search",
                "query": args.query,
                "resultCount": 0,
                "results": [],
                "message": (
                    f'No web results found for "{args.query}". Try rephrasing your search '
                    "with different keywords."
                ),
            }
        )

    metadata = response.metadata or {}
    return _dump(
        {
            "type": "web_search",
            "query": args.query,
            "resultCount": len(final),
            "metadata": {
                "totalCost": metadata.get("totalCost", response.total_deduction_dollars),
                "searchTime": metadata.get("searchTime"),
            },
            "results": [r.to_dict() for r in final],
        }
    )


ECONOMICS_TOOLS: Dict[str, Callable[..., Awaitable[str]]] = {
    "economics_search": economics_search,
    "financial_search": financial_search,
    "get_fred_series_data": get_fred_series_data,
    "get_bls_series_data": get_bls_series_data,
    "get_usaspending_details": get_usaspending_details,
    "get_wb_details": get_wb_details,
    "web_search": web_search,
    "read_text_from_url": read_text_from_url,
}
