"""
Read a user-supplied text file from a URL.

A lighter fetch-style tool: one attempt with the shorter ``FETCH_TIMEOUT``
instead of the search API's timeout and retries. Only text-like content types
are accepted and the download stops once ``max_bytes`` is exceeded.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import aiohttp
import structlog
from pydantic import ValidationError

from econ_assist.core.config import FETCH_DEFAULT_MAX_BYTES, FETCH_TIMEOUT_MS
from econ_assist.models.tool_inputs import ReadTextInput
from econ_assist.utils.error_handling import ExternalAPIError, RequestTimeoutError, log_exception
from econ_assist.utils.retry import call_with_timeout

logger = structlog.get_logger(__name__)

TEXT_LIKE_MARKERS = ("application/json", "application/xml", "+json", "+xml")

CHUNK_SIZE = 64 * 1024


def is_text_like(content_type: str) -> bool:
    ctype = (content_type or "").lower()
    return ctype.startswith("text/") or any(marker in ctype for marker in TEXT_LIKE_MARKERS)


async def download_text(
    session: aiohttp.ClientSession,
    url: str,
    max_bytes: int,
    charset: Optional[str] = None,
) -> str:
    """GET ``url`` and decode it, refusing non-text or oversized bodies.

    Raises:
        ExternalAPIError: bad status, unsupported content type or size limit
    """
    async with session.get(url, allow_redirects=True) as r:
        if not 200 <= r.status < 300:
            raise ExternalAPIError(f"Failed to fetch URL (status {r.status})", status=r.status)

        ctype = r.headers.get("Content-Type") or ""
        if not is_text_like(ctype):
            raise ExternalAPIError(f"Unsupported content-type for read_text_from_url: {ctype}")

        chunks = []
        downloaded = 0
        async for chunk in r.content.iter_chunked(CHUNK_SIZE):
            downloaded += len(chunk)
            if downloaded > max_bytes:
                raise ExternalAPIError(f"File exceeds max_bytes limit ({max_bytes} bytes)")
            chunks.append(chunk)

    text = b"".join(chunks).decode(charset or "utf-8", errors="replace")
    logger.info("Read text from URL", url=url, bytes=downloaded)
    return text


async def read_text_from_url(
    url: str,
    max_bytes: int = FETCH_DEFAULT_MAX_BYTES,
    charset: Optional[str] = None,
    *,
    session: Optional[aiohttp.ClientSession] = None,
) -> str:
    """Fetch a plain text or text-like file (JSON, XML, code) from a URL."""
    try:
        args = ReadTextInput(url=url, max_bytes=max_bytes, charset=charset)
    except ValidationError as exc:
        return f"Invalid arguments for read_text_from_url: {exc.errors()[0]['msg']}"

    async def _fetch(target: str, _options: Dict[str, Any]) -> str:
        if session is not None:
            return await download_text(session, target, args.max_bytes, args.charset)
        async with aiohttp.ClientSession() as own:
            return await download_text(own, target, args.max_bytes, args.charset)

    try:
        return await call_with_timeout(_fetch, args.url, {}, timeout_ms=FETCH_TIMEOUT_MS, max_retries=0)
    except RequestTimeoutError:
        return f"Timeout fetching the URL ({FETCH_TIMEOUT_MS / 1000:g}s)."
    except ExternalAPIError as exc:
        return str(exc)
    except Exception as exc:
        log_exception("Reading URL failed", exc, url=args.url)
        return f"Error fetching text: {exc}"
