"""Translate feed payloads into domain facts and search results."""

from __future__ import annotations

from typing import TYPE_CHECKING

from civicops.domain.model import RawFact, SearchResult

if TYPE_CHECKING:
    from .schema import RawFactPayload, SearchResultPayload


def parse_raw_fact(payload: RawFactPayload) -> RawFact:
    return RawFact(
        entity_id=payload.entity_id.strip(),
        fact_type=payload.fact_type,
        payload=dict(payload.payload),
        source_url=payload.source_url,
        confidence=payload.confidence,
    )


def parse_search_result(payload: SearchResultPayload) -> SearchResult:
    return SearchResult(title=payload.title, link=payload.link, snippet=payload.snippet)
