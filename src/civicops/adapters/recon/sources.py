"""Reconnaissance data sources: in-memory, JSON lines files and an HTTP fact feed."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from civicops.adapters.http_resilience import ResilientClient
from civicops.domain.ports.sources import DataSource, SourceQuery, SourceResult, SourceStatus

from .schema import FactFeedResponse, RawFactPayload, SearchResultPayload
from .translator import parse_raw_fact, parse_search_result

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from civicops.config.sources import FactSourceConfig
    from civicops.domain.model import RawFact, SearchResult

log = getLogger(__name__)

FACTS_PATH = "facts"


def _default_client_factory(config: FactSourceConfig) -> ResilientClient:
    return ResilientClient(config)


def _result(
    source: str, facts: Sequence[RawFact], documents: Sequence[SearchResult]
) -> SourceResult:
    if not facts and not documents:
        return SourceResult.no_data(source)
    return SourceResult(
        source=source,
        status=SourceStatus.OK,
        facts=tuple(facts),
        documents=tuple(documents),
    )


@dataclass(slots=True)
class StaticFactSource:
    """Serve a fixed batch of facts, whatever the query."""

    name: str
    facts: Sequence[RawFact] = ()
    documents: Sequence[SearchResult] = ()

    async def fetch(self, query: SourceQuery) -> SourceResult:  # noqa: ARG002
        return _result(self.name, self.facts, self.documents)


@dataclass(slots=True)
class JsonlFactSource:
    """Read facts from a JSON lines file, one ``RawFactPayload`` per line.

    Lines carrying a ``link`` instead of a ``fact_type`` are read as search results.
    A missing file means no data; an unreadable or malformed one is a failure.
    """

    name: str
    path: Path

    async def fetch(self, query: SourceQuery) -> SourceResult:  # noqa: ARG002
        if not self.path.exists():
            log.info("Fact file %s does not exist", self.path)
            return SourceResult.no_data(self.name)

        facts: list[RawFact] = []
        documents: list[SearchResult] = []
        try:
            with self.path.open(encoding="utf-8") as handle:
                for number, line in enumerate(handle, start=1):
                    if not line.strip():
                        continue
                    try:
                        record = json.loads(line)
                        if isinstance(record, dict) and "fact_type" in record:
                            facts.append(parse_raw_fact(RawFactPayload.model_validate(record)))
                        else:
                            documents.append(
                                parse_search_result(SearchResultPayload.model_validate(record))
                            )
                    except ValidationError as exc:
                        raise ValueError(f"{self.path}:{number}: {exc}") from exc
        except (OSError, ValueError) as exc:
            log.error("Could not read fact file %s: %s", self.path, exc)
            return SourceResult.failed(self.name, str(exc))
        return _result(self.name, facts, documents)


@dataclass(slots=True)
class HttpFactSource:
    """Query a remote fact feed at ``GET {base_url}/facts``."""

    config: FactSourceConfig
    client_factory: Callable[[FactSourceConfig], ResilientClient] = field(
        default=_default_client_factory
    )
    name: str = field(init=False)

    def __post_init__(self) -> None:
        self.name = self.config.name

    async def fetch(self, query: SourceQuery) -> SourceResult:
        params = {"subject": query.subject, "scenario": query.scenario_hash, **query.parameters}
        try:
            async with self.client_factory(self.config) as client:
                body = await client.get_json(FACTS_PATH, params=params)
            if body is None:
                return SourceResult.no_data(self.name)
            feed = FactFeedResponse.model_validate(body)
        except httpx.HTTPError as exc:
            log.error("Fact feed %s request failed: %s", self.name, exc)
            return SourceResult.failed(self.name, str(exc))
        except (ValidationError, ValueError) as exc:
            log.error("Fact feed %s returned an invalid payload: %s", self.name, exc)
            return SourceResult.failed(self.name, f"invalid payload: {exc}")

        if feed.is_empty:
            return SourceResult.no_data(self.name)
        return _result(
            self.name,
            [parse_raw_fact(item) for item in feed.facts],
            [parse_search_result(item) for item in feed.results],
        )


if TYPE_CHECKING:
    _static_check: DataSource = StaticFactSource(name="static")
    _jsonl_check: DataSource = JsonlFactSource(name="jsonl", path=Path())
    _http_check: DataSource = HttpFactSource(config=FactSourceConfig(name="facts", base_url=""))
