from econ_assist.models.results import ResultRecord, SearchResponse
from econ_assist.models.tool_inputs import (
    EconomicsSearchInput,
    ReadTextInput,
    SeriesLookupInput,
    WorldBankInput,
    WebSearchInput,
    ToolContext,
)

__all__ = [
    "ResultRecord",
    "SearchResponse",
    "EconomicsSearchInput",
    "ReadTextInput",
    "SeriesLookupInput",
    "WorldBankInput",
    "WebSearchInput",
    "ToolContext",
]
