from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from civicops.adapters.recon import StaticFactSource
from civicops.domain.analysis import AnalystEngine, FixedScorer
from civicops.domain.errors import StageFailed
from civicops.domain.model import (
    EdgeProperties,
    FeatureVector,
    GraphEdge,
    Relationship,
    RiskVector,
    ScoredEntity,
    ScoredSet,
    ScoringMode,
    SearchResult,
)
from civicops.domain.pipeline import (
    AdvisoryStage,
    AnalysisStage,
    FlaggedEntityAdvisor,
    PipelineContext,
    ReconStage,
)
from civicops.domain.ports.sources import SourceQuery, SourceResult
from tests.helpers.facts import scenario_a_facts
from tests.helpers.graph import make_edge, make_graph

if TYPE_CHECKING:
    from civicops.domain.documents import DocumentStore


class _FailingSource:
    def __init__(self, name: str) -> None:
        self.name = name
        self.calls = 0

    async def fetch(self, query: SourceQuery) -> SourceResult:
        _ = query
        self.calls += 1
        return SourceResult.failed(self.name, "connection refused")


def _context() -> PipelineContext:
    context = PipelineContext(scenario_hash="scenario-a")
    context.data.query = SourceQuery(subject="Acme", scenario_hash="scenario-a")
    return context


@pytest.mark.asyncio
async def test_recon_collects_facts_and_coverage() -> None:
    sources = [
        StaticFactSource("primary", facts=tuple(scenario_a_facts())),
        StaticFactSource("empty"),
    ]
    context = _context()

    report = await ReconStage(sources, coverage_threshold=0.5).run(context)

    assert context.data.facts == scenario_a_facts()
    assert report["facts_collected"] == 2
    assert report["entities_processed"] == 1
    assert report["coverage"] == 0.5
    assert report["coverage_met"] is True
    assert report["sources_failed"] == 0


@pytest.mark.asyncio
async def test_recon_tolerates_partial_failure() -> None:
    sources = [_FailingSource("down"), StaticFactSource("up", facts=tuple(scenario_a_facts()))]

    report = await ReconStage(sources, coverage_threshold=0.8).run(_context())

    assert report["sources_failed"] == 1
    assert report["coverage"] == 0.5
    assert report["coverage_met"] is False


@pytest.mark.asyncio
async def test_recon_fails_when_every_source_fails() -> None:
    sources = [_FailingSource("one"), _FailingSource("two")]

    with pytest.raises(StageFailed, match="All data sources failed"):
        await ReconStage(sources).run(_context())


@pytest.mark.asyncio
async def test_cascade_stops_at_first_source_with_data() -> None:
    fallback = _FailingSource("fallback")
    sources = [StaticFactSource("primary", facts=tuple(scenario_a_facts())), fallback]

    report = await ReconStage(sources, cascade=True).run(_context())

    assert fallback.calls == 0
    assert report["coverage"] == 1.0


@pytest.mark.asyncio
async def test_recon_without_sources_keeps_seeded_facts() -> None:
    context = _context()
    context.data.facts = scenario_a_facts()

    report = await ReconStage([]).run(context)

    assert report["facts_collected"] == 2
    assert report["coverage"] == 1.0


@pytest.mark.asyncio
async def test_recon_archives_search_results(document_store: DocumentStore) -> None:
    documents = (
        SearchResult(title="Acme wins contract", link="https://example.org/a", snippet="..."),
        SearchResult(title="Acme donation", link="https://example.org/b"),
    )
    context = _context()

    report = await ReconStage(
        [StaticFactSource("news", documents=documents)], documents=document_store
    ).run(context)

    assert report["documents_stored"] == 2
    assert len(context.data.documents) == 2
    assert document_store.get(context.data.documents[0].doc_hash) is not None


@pytest.mark.asyncio
async def test_analysis_stage_requires_a_graph() -> None:
    with pytest.raises(StageFailed):
        await AnalysisStage(AnalystEngine()).run(_context())


@pytest.mark.asyncio
async def test_analysis_stage_reports_counters() -> None:
    context = _context()
    context.data.graph = make_graph([make_edge("V1", Relationship.CONTRACTS, "A1", amount=5.0)])

    report = await AnalysisStage(AnalystEngine(scorer=FixedScorer(confidence=0.2))).run(context)

    assert report == {
        "violations_flagged": 0,
        "ml_confidence": pytest.approx(0.2),
        "mean_score": 0.0,
        "feature_gaps": 0,
    }
    assert context.data.scored is not None


def _flagged(entity_id: str, total: float, risk: RiskVector) -> ScoredEntity:
    return ScoredEntity(
        entity_id=entity_id,
        features=FeatureVector(),
        risk=risk,
        total_score=total,
        confidence=0.1,
        scoring_mode=ScoringMode.RULES_ONLY,
        violation_flags=("ViolationFlag",),
    )


def test_advisor_orders_high_priority_first_and_cites_loops() -> None:
    looped = GraphEdge(
        id="V2-CONTRACTS-A1",
        from_id="V2",
        to_id="A1",
        relationship=Relationship.CONTRACTS,
        properties=EdgeProperties(source="test", confidence=1.0, loop_ids=["loop_1"]),
    )
    graph = make_graph([make_edge("V1", Relationship.CONTRACTS, "A1"), looped])
    scored = ScoredSet(
        scored_entities=[
            _flagged("V1", 0.85, RiskVector(financial_anomaly=0.9, transparency_gap=0.8)),
            _flagged("V2", 0.95, RiskVector(conflict_of_interest=1.0)),
        ]
    )

    recommendations = FlaggedEntityAdvisor().advise(scored, graph)

    assert [item.entity_id for item in recommendations] == ["V2", "V1"]
    assert recommendations[0].priority == "high"
    assert recommendations[0].action == "review_procurement_and_donation_records"
    assert recommendations[0].evidence == ("V2-CONTRACTS-A1",)
    assert recommendations[1].priority == "elevated"
    assert recommendations[1].action == "audit_payment_flows"
    assert recommendations[1].evidence == ()


@pytest.mark.asyncio
async def test_advisory_stage_requires_scores() -> None:
    with pytest.raises(StageFailed):
        await AdvisoryStage(FlaggedEntityAdvisor()).run(_context())
