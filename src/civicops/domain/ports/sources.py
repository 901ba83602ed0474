"""Reconnaissance data source contract."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from civicops.domain.model import RawFact, SearchResult


class SourceStatus(StrEnum):
    OK = "ok"
    NO_DATA = "no_data"
    FAILED = "failed"


@dataclass(frozen=True, slots=True, kw_only=True)
class SourceQuery:
    subject: str
    scenario_hash: str
    parameters: dict[str, str] = field(default_factory=dict[str, str])


@dataclass(frozen=True, slots=True, kw_only=True)
class SourceResult:
    """Outcome of one source query; "no data" and "failed" are distinct."""

    source: str
    status: SourceStatus
    facts: tuple[RawFact, ...] = ()
    documents: tuple[SearchResult, ...] = ()
    error: str | None = None

    @classmethod
    def no_data(cls, source: str) -> SourceResult:
        return cls(source=source, status=SourceStatus.NO_DATA)

    @classmethod
    def failed(cls, source: str, error: str) -> SourceResult:
        return cls(source=source, status=SourceStatus.FAILED, error=error)


@runtime_checkable
class DataSource(Protocol):
    name: str

    async def fetch(self, query: SourceQuery) -> SourceResult: ...
