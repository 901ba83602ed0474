from __future__ import annotations

import pytest

from civicops.domain.correlation import GraphMerger
from civicops.domain.errors import GraphConflict, IndexingFailure
from civicops.domain.identity import IdentityLinker, entity_key_for
from civicops.domain.model import FactType, NodeType, RawFact, Relationship
from tests.helpers.facts import (
    AGENCY_ID,
    VENDOR_ID,
    contract,
    donation,
    officer_of,
    scenario_a_facts,
)


def test_two_facts_for_one_vendor_merge_into_one_node(linker: IdentityLinker) -> None:
    result = GraphMerger(linker).merge("scenario-a", scenario_a_facts())
    graph = result.graph
    vendor_key = entity_key_for({"ein": "12-3456789"})
    agency_key = entity_key_for({"agency": "AG1"})

    assert sorted(node.id for node in graph.nodes) == sorted([vendor_key, agency_key])
    outgoing = graph.outgoing(vendor_key)
    assert sorted(edge.relationship for edge in outgoing) == [
        Relationship.CONTRACTS,
        Relationship.DONOR,
    ]
    assert {edge.to_id for edge in outgoing} == {agency_key}
    assert graph.node(vendor_key).type is NodeType.VENDOR  # type: ignore[union-attr]
    assert graph.node(agency_key).type is NodeType.AGENCY  # type: ignore[union-attr]
    amounts = {edge.relationship: edge.properties.amount for edge in outgoing}
    assert amounts == {Relationship.CONTRACTS: 500_000.0, Relationship.DONOR: 5_000.0}
    assert result.conflicts_resolved == 2


def test_fact_order_does_not_change_the_graph(linker: IdentityLinker) -> None:
    merger = GraphMerger(linker)
    forward = merger.merge("scenario-a", scenario_a_facts()).graph
    backward = merger.merge("scenario-a", list(reversed(scenario_a_facts()))).graph

    assert {(node.id, node.type) for node in forward.nodes} == {
        (node.id, node.type) for node in backward.nodes
    }
    assert {edge.id for edge in forward.edges} == {edge.id for edge in backward.edges}


def test_repeated_pairs_get_distinct_edge_ids(linker: IdentityLinker) -> None:
    graph = (
        GraphMerger(linker)
        .merge(
            "scenario-a",
            [contract(VENDOR_ID, AGENCY_ID, 10), contract(VENDOR_ID, AGENCY_ID, 20)],
        )
        .graph
    )

    ids = sorted(edge.id for edge in graph.edges)
    assert len(set(ids)) == 2
    assert ids[1] == f"{ids[0]}#2"


def test_explicit_type_beats_fact_type_default(linker: IdentityLinker) -> None:
    graph = (
        GraphMerger(linker)
        .merge(
            "scenario-a",
            [
                donation("FEC_ID:P1", "FEC_ID:C9", 100, recipient_type="PAC"),
                officer_of("FEC_ID:P1", "EIN:55-5555555", entity_type="Legislator"),
            ],
        )
        .graph
    )

    person = graph.node(entity_key_for({"fec_id": "P1"}))
    organization = graph.node(entity_key_for({"ein": "55-5555555"}))
    assert person is not None
    assert person.type is NodeType.LEGISLATOR
    assert organization is not None
    assert organization.type is NodeType.NGO


def test_edge_properties_are_copied_from_the_payload(linker: IdentityLinker) -> None:
    fact = RawFact(
        entity_id="NGO:N1",
        fact_type=FactType.FUNDED_BY,
        payload={
            "funder_id": AGENCY_ID,
            "amount": "$1,250.50",
            "start_date": "2023-01-01",
            "statute_ref": "31 U.S.C. 1352",
        },
        source_url="https://grants.example.org/7",
        confidence=0.9,
    )

    edge = GraphMerger(linker).merge("scenario-a", [fact]).graph.edges[0]

    assert edge.relationship is Relationship.FUNDED_BY
    assert edge.properties.amount == 1250.5
    assert edge.properties.start_date == "2023-01-01"
    assert edge.properties.statute_ref == "31 U.S.C. 1352"
    assert edge.properties.source == "https://grants.example.org/7"
    assert edge.properties.confidence == 0.9


@pytest.mark.parametrize(
    "fact",
    [
        contract(VENDOR_ID, ""),
        RawFact(
            entity_id=VENDOR_ID,
            fact_type=FactType.CONTRACT,
            payload={"agency_id": AGENCY_ID, "amount": "lots"},
        ),
    ],
)
def test_facts_without_a_usable_edge_keep_their_subject(
    linker: IdentityLinker, fact: RawFact
) -> None:
    result = GraphMerger(linker).merge("scenario-a", [fact])

    assert result.skipped == []
    assert len(result.detached) == 1
    assert result.detached[0][0] is fact
    assert result.graph.edges == []
    assert [node.id for node in result.graph.nodes] == [entity_key_for({"ein": "12-3456789"})]
    assert result.graph.nodes[0].type is NodeType.VENDOR


def test_detached_subject_merges_with_its_other_facts(linker: IdentityLinker) -> None:
    result = GraphMerger(linker).merge("scenario-a", [contract(VENDOR_ID, ""), *scenario_a_facts()])

    assert len(result.detached) == 1
    assert len(result.graph.nodes) == 2
    assert len(result.graph.edges) == 2


def test_facts_with_an_unresolvable_subject_are_skipped(linker: IdentityLinker) -> None:
    fact = contract("   ", AGENCY_ID)

    result = GraphMerger(linker).merge("scenario-a", [fact, *scenario_a_facts()])

    assert len(result.skipped) == 1
    assert result.skipped[0][0] is fact
    assert result.detached == []
    assert len(result.graph.edges) == 2


def test_unexpected_failures_become_graph_conflicts(
    linker: IdentityLinker, monkeypatch: pytest.MonkeyPatch
) -> None:
    def broken(*_args: object, **_kwargs: object) -> None:
        raise IndexingFailure("Could not read the entity registry")

    monkeypatch.setattr(linker, "canonicalize", broken)

    with pytest.raises(GraphConflict) as exc:
        GraphMerger(linker).merge("scenario-a", scenario_a_facts())

    assert isinstance(exc.value.__cause__, IndexingFailure)
