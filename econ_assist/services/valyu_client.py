"""
Valyu DeepSearch API client.

Thin aiohttp adapter around ``POST {base_url}/deepsearch``. Every failure is
raised as an :class:`ExternalAPIError` tagged with an :class:`ErrorKind`, so
the retry wrapper and the tool layer never need to inspect error messages.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import aiohttp
import structlog

from econ_assist.core.config import VALYU_BASE_URL, VALYU_ERROR_BODY_MAX, get_valyu_api_key
from econ_assist.models.results import SearchResponse
from econ_assist.utils.error_handling import (
    ConfigurationError,
    ErrorKind,
    ExternalAPIError,
    kind_for_status,
)
from econ_assist.utils.retry import parse_retry_after

logger = structlog.get_logger(__name__)

# Option names accepted by the deepsearch endpoint
SEARCH_OPTION_FIELDS = (
    "max_num_results",
    "search_type",
    "included_sources",
    "excluded_sources",
    "relevance_threshold",
    "max_price",
    "is_tool_call",
    "start_date",
    "end_date",
)


class ValyuClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.api_key = api_key if api_key is not None else get_valyu_api_key()
        self.base = (base_url or VALYU_BASE_URL).rstrip("/")
        self.session = session
        self._owns_session = session is None

    async def __aenter__(self):
        self._sess()
        return self

    async def __aexit__(self, *_exc):
        await self.close()

    async def close(self) -> None:
        if self._owns_session and self.session and not self.session.closed:
            await self.session.close()

    def _sess(self) -> aiohttp.ClientSession:
        if self.session is None or self.session.closed:
            # Per-attempt timeouts are enforced by the retry wrapper
            self.session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=None))
            self._owns_session = True
        return self.session

    def build_payload(self, query: str, options: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"query": query}
        for name in SEARCH_OPTION_FIELDS:
            value = (options or {}).get(name)
            if value is not None:
                payload[name] = list(value) if isinstance(value, (tuple, set)) else value
        return payload

    async def search(self, query: str, options: Optional[Dict[str, Any]] = None) -> SearchResponse:
        """Run one search request.

        Raises:
            ConfigurationError: no API key is configured
            ExternalAPIError: the API rejected the request or was unreachable
        """
        if not self.api_key:
            raise ConfigurationError("Valyu API key not configured (VALYU_API_KEY)")

        headers = {
            "x-api-key": self.api_key,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        payload = self.build_payload(query, options)
        try:
            async with self._sess().post(f"{self.base}/deepsearch", headers=headers, json=payload) as r:
                if r.status != 200:
                    body = (await r.text())[:VALYU_ERROR_BODY_MAX]
                    raise ExternalAPIError(
                        f"Valyu API error {r.status}: {body}",
                        kind_for_status(r.status),
                        status=r.status,
                        retry_after=parse_retry_after(r.headers.get("Retry-After")),
                    )
                data = await r.json(content_type=None)
        except aiohttp.ClientConnectionError as exc:
            raise ExternalAPIError(
                f"Connection to Valyu API failed: {exc}", ErrorKind.TRANSIENT
            ) from exc
        except ValueError as exc:
            raise ExternalAPIError(f"Malformed Valyu API response: {exc}") from exc

        response = SearchResponse.from_payload(data if isinstance(data, dict) else {})
        if not response.success:
            raise ExternalAPIError(f"Valyu API error: {response.error or 'unknown error'}")

        logger.info(
            "Valyu API call",
            query=query[:120],
            result_count=len(response.results),
            cost=response.total_deduction_dollars,
            tx_id=response.tx_id,
        )
        return response
