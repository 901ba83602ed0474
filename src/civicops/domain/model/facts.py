"""Raw facts and search results produced by reconnaissance."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .enums import FactType


@dataclass(frozen=True, slots=True, kw_only=True)
class RawFact:
    entity_id: str
    fact_type: FactType
    payload: dict[str, Any] = field(default_factory=dict[str, Any])
    source_url: str | None = None
    confidence: float = 1.0


@dataclass(frozen=True, slots=True, kw_only=True)
class SearchResult:
    title: str
    link: str
    snippet: str = ""
