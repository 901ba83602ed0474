"""Public interface for the reconnaissance adapters."""

from __future__ import annotations

from .schema import FactFeedResponse, RawFactPayload, SearchResultPayload
from .sources import HttpFactSource, JsonlFactSource, StaticFactSource
from .translator import parse_raw_fact, parse_search_result

__all__ = [
    "FactFeedResponse",
    "HttpFactSource",
    "JsonlFactSource",
    "RawFactPayload",
    "SearchResultPayload",
    "StaticFactSource",
    "parse_raw_fact",
    "parse_search_result",
]
