"""Pipeline stages: one per non-terminal working state."""

from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING, Any, Protocol

from civicops.domain.errors import StageFailed
from civicops.domain.ports.sources import SourceQuery, SourceStatus

from .state import PipelineState

if TYPE_CHECKING:
    from collections.abc import Sequence

    from civicops.domain.analysis import AnalystEngine
    from civicops.domain.correlation import CorrelationEngine
    from civicops.domain.documents import DocumentStore
    from civicops.domain.model import DocumentFingerprint, RawFact
    from civicops.domain.ports.advisory import Advisor
    from civicops.domain.ports.sources import DataSource, SourceResult

    from .context import PipelineContext

log = getLogger(__name__)

type StageReport = dict[str, Any]


class Stage(Protocol):
    name: str
    state: PipelineState

    async def run(self, context: PipelineContext) -> StageReport: ...


class ReconStage:
    """Collect raw facts and search results from the configured data sources.

    Sources are queried in order. With ``cascade`` enabled the first source that
    returns data ends the search. Coverage is the share of queried sources that
    returned data; the stage only fails when every queried source failed.
    """

    name = "recon"
    state = PipelineState.RECON

    def __init__(
        self,
        sources: Sequence[DataSource],
        *,
        documents: DocumentStore | None = None,
        coverage_threshold: float = 0.5,
        cascade: bool = False,
    ) -> None:
        self.sources = tuple(sources)
        self.documents = documents
        self.coverage_threshold = coverage_threshold
        self.cascade = cascade

    async def run(self, context: PipelineContext) -> StageReport:
        query = context.data.query or SourceQuery(
            subject=context.scenario_hash,
            scenario_hash=context.scenario_hash,
        )
        results: list[SourceResult] = []
        for source in self.sources:
            result = await source.fetch(query)
            log.info(
                "Source %s returned %s (%s facts, %s documents)",
                source.name,
                result.status,
                len(result.facts),
                len(result.documents),
            )
            results.append(result)
            if self.cascade and result.status is SourceStatus.OK:
                break

        failed = [result for result in results if result.status is SourceStatus.FAILED]
        if results and len(failed) == len(results):
            errors = "; ".join(f"{result.source}: {result.error}" for result in failed)
            raise StageFailed(self.name, f"All data sources failed ({errors})")

        facts: list[RawFact] = [fact for result in results for fact in result.facts]
        if facts or results:
            context.data.facts = facts

        stored = 0
        if self.documents is not None:
            fingerprints: list[DocumentFingerprint] = []
            for result in results:
                for document in result.documents:
                    text = f"{document.title}\n{document.snippet}"
                    fingerprint = await asyncio.to_thread(
                        self.documents.store, text, context.scenario_hash, document.link
                    )
                    fingerprints.append(fingerprint)
            context.data.documents = fingerprints
            stored = len(fingerprints)

        with_data = sum(1 for result in results if result.status is SourceStatus.OK)
        if results:
            coverage = with_data / len(results)
        else:
            coverage = 1.0 if context.data.facts else 0.0
        if coverage < self.coverage_threshold:
            log.warning(
                "Recon coverage %.2f below threshold %.2f for %s",
                coverage,
                self.coverage_threshold,
                context.scenario_hash,
            )

        return {
            "entities_processed": len({fact.entity_id for fact in context.data.facts}),
            "facts_collected": len(context.data.facts),
            "documents_stored": stored,
            "sources_failed": len(failed),
            "coverage": coverage,
            "coverage_met": coverage >= self.coverage_threshold,
        }


class CorrelationStage:
    name = "correlation"
    state = PipelineState.CORRELATION

    def __init__(self, engine: CorrelationEngine) -> None:
        self.engine = engine

    async def run(self, context: PipelineContext) -> StageReport:
        graph = await self.engine.correlate(context.scenario_hash, context.data.facts)
        context.data.graph = graph
        return {
            "conflicts_resolved": graph.metadata.get("conflicts_resolved", 0),
            "loops_detected": len(graph.cycles),
            "nodes": len(graph.nodes),
            "edges": len(graph.edges),
            "facts_skipped": graph.metadata.get("facts_skipped", 0),
        }


class AnalysisStage:
    name = "analysis"
    state = PipelineState.ANALYSIS

    def __init__(self, engine: AnalystEngine) -> None:
        self.engine = engine

    async def run(self, context: PipelineContext) -> StageReport:
        graph = context.data.graph
        if graph is None:
            raise StageFailed(self.name, "No correlation graph to analyze")
        scored = self.engine.analyze(graph)
        context.data.scored = scored
        return {
            "violations_flagged": len(scored.flagged),
            "ml_confidence": scored.metadata.get("mean_confidence", 0.0),
            "mean_score": scored.metadata.get("mean_score", 0.0),
            "feature_gaps": len(scored.feature_gaps),
        }


class AdvisoryStage:
    name = "advisory"
    state = PipelineState.ADVISORY

    def __init__(self, advisor: Advisor) -> None:
        self.advisor = advisor

    async def run(self, context: PipelineContext) -> StageReport:
        graph = context.data.graph
        scored = context.data.scored
        if graph is None or scored is None:
            raise StageFailed(self.name, "No scored entities to advise on")
        recommendations = self.advisor.advise(scored, graph)
        context.data.recommendations = recommendations
        return {"recommendations_generated": len(recommendations)}
