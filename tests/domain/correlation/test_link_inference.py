from __future__ import annotations

from civicops.domain.correlation import NameAffinityPolicy, NullLinkPolicy, find_orphans
from civicops.domain.model import GraphSet, Relationship
from tests.helpers.graph import make_edge, make_graph


def _graph_with_orphans() -> GraphSet:
    return make_graph(
        [make_edge("V1", Relationship.CONTRACTS, "AG1")],
        names={
            "V1": "acme_road_services",
            "AG1": "state_transport_department",
            "ORPHAN": "acme_road_services_llc",
            "LONER": "unrelated_foundation",
        },
    )


def test_find_orphans() -> None:
    graph = _graph_with_orphans()

    assert sorted(node.id for node in find_orphans(graph)) == ["LONER", "ORPHAN"]


def test_null_policy_infers_nothing() -> None:
    graph = _graph_with_orphans()

    assert NullLinkPolicy().infer(find_orphans(graph), graph) == []


def test_name_affinity_links_similar_names() -> None:
    graph = _graph_with_orphans()

    inferred = NameAffinityPolicy().infer(find_orphans(graph), graph)

    assert len(inferred) == 1
    edge = inferred[0]
    assert (edge.from_id, edge.to_id) == ("ORPHAN", "V1")
    assert edge.relationship is Relationship.AFFILIATED_WITH
    assert edge.properties.inferred
    # jaccard 3/4, halved
    assert edge.properties.confidence == 0.375
    assert edge.properties.source == "inference:name_affinity"


def test_name_affinity_respects_threshold() -> None:
    graph = _graph_with_orphans()

    assert NameAffinityPolicy(threshold=0.9).infer(find_orphans(graph), graph) == []
