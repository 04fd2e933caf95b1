"""
Input schemas for the economics tools.

The chat model fills these from the tool descriptions; validation keeps
malformed arguments away from the search API.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field

from econ_assist.core.config import FETCH_DEFAULT_MAX_BYTES, FETCH_MAX_BYTES_LIMIT


EconomicsDataType = Literal[
    "economic_indicators",
    "economic_research",
    "economic_news",
    "economic_policy",
    "economic_history",
    "economic_comparative",
]


class ToolContext(BaseModel):
    """Identities supplied by the surrounding chat request.

    ``session_id`` scopes memoization to a conversation, ``request_id`` scopes
    cross-tool deduplication to one user turn. Both are opaque.
    """
    session_id: Optional[str] = None
    request_id: Optional[str] = None
    user_id: Optional[str] = None


class EconomicsSearchInput(BaseModel):
    query: str = Field(
        ...,
        min_length=1,
        description=(
            'Economics search query (e.g., "Apple latest quarterly earnings", '
            '"Bitcoin price trends", "Tesla SEC filings")'
        ),
    )
    data_type: Optional[EconomicsDataType] = Field(
        default=None, description="Type of economics data to focus on"
    )
    max_results: int = Field(
        default=10, ge=1, le=20, description="Maximum number of results to return"
    )


class SeriesLookupInput(BaseModel):
    """Lookup of a single FRED/BLS/USASpending series."""
    query: str = Field(
        ...,
        min_length=1,
        description="Search query for the series, e.g. 'GDP', 'unemployment rate'",
    )
    max_results: int = Field(default=5, ge=1, le=5)


class WorldBankInput(BaseModel):
    query: str = Field(
        ...,
        min_length=1,
        description="Search query for World Bank indicator metadata and descriptions",
    )
    max_results: int = Field(default=10, ge=1, le=20)


class WebSearchInput(BaseModel):
    query: str = Field(
        ...,
        min_length=1,
        description='Search query for any topic (e.g., "benefits of renewable energy")',
    )


class ReadTextInput(BaseModel):
    url: str = Field(
        ...,
        pattern=r"^https?://\S+$",
        description="Publicly accessible URL to the file",
    )
    max_bytes: int = Field(
        default=FETCH_DEFAULT_MAX_BYTES,
        ge=1024,
        le=FETCH_MAX_BYTES_LIMIT,
        description="Maximum bytes to download (default 10MB, max 25MB)",
    )
    charset: Optional[str] = Field(
        default=None, description="Optional character set hint, e.g. 'utf-8'"
    )
