from __future__ import annotations

import pytest

from civicops.adapters.neo4j import GraphStore, flatten_properties
from civicops.domain.errors import GraphUnavailable
from civicops.domain.model import NodeType, Relationship
from tests.helpers.graph import FakeGraphDriver, make_edge, make_graph
from tests.helpers.pipeline import FakeSleep


def _store(driver: FakeGraphDriver, sleep: FakeSleep | None = None) -> GraphStore:
    return GraphStore(driver, write_attempts=3, retry_base_delay=1.0, sleep=sleep or FakeSleep())


def test_flatten_properties() -> None:
    flat = flatten_properties(
        {
            "name": "acme",
            "amount": 10.5,
            "alt_ids": ["ein:1", "duns:2"],
            "missing": None,
            "nested": {"b": 1, "a": 2},
        }
    )

    assert flat == {
        "name": "acme",
        "amount": 10.5,
        "alt_ids": ["ein:1", "duns:2"],
        "nested": '{"a": 2, "b": 1}',
    }


@pytest.mark.asyncio
async def test_upsert_writes_scenario_nodes_and_edges(fake_graph_driver: FakeGraphDriver) -> None:
    graph = make_graph(
        [
            make_edge("V1", Relationship.CONTRACTS, "A1", amount=100.0),
            make_edge("P1", Relationship.DONOR, "V1"),
        ],
        scenario_hash="scenario-a",
        types={"A1": NodeType.AGENCY, "P1": NodeType.INDIVIDUAL},
    )

    await _store(fake_graph_driver).upsert_graph(graph)

    queries = [query for query, _ in fake_graph_driver.writes]
    assert queries[0].startswith("MERGE (s:Scenario")
    assert sum("MERGE (n:" in query for query in queries) == 3
    assert sum("MERGE (a)-[r:" in query for query in queries) == 2
    contracts = next(params for query, params in fake_graph_driver.writes if ":CONTRACTS" in query)
    [row] = contracts["rows"]
    assert contracts["hash"] == "scenario-a"
    assert row["id"] == "V1-CONTRACTS-A1"
    assert row["properties"]["amount"] == 100.0
    assert "loop_id" not in row["properties"]


@pytest.mark.asyncio
async def test_write_retries_with_linear_backoff() -> None:
    driver = FakeGraphDriver(write_failures=2)
    sleep = FakeSleep()

    await _store(driver, sleep).delete_scenario("scenario-a")

    assert sleep.delays == [1.0, 2.0]
    assert len(driver.writes) == 4


@pytest.mark.asyncio
async def test_write_gives_up_after_configured_attempts() -> None:
    driver = FakeGraphDriver(write_failures=5)
    sleep = FakeSleep()

    with pytest.raises(GraphUnavailable):
        await _store(driver, sleep).ensure_constraints()

    assert len(driver.writes) == 3
    assert sleep.delays == [1.0, 2.0]


def test_store_requires_an_attempt(fake_graph_driver: FakeGraphDriver) -> None:
    with pytest.raises(ValueError, match="write_attempts"):
        GraphStore(fake_graph_driver, write_attempts=0)


@pytest.mark.asyncio
async def test_ensure_constraints_covers_every_label(fake_graph_driver: FakeGraphDriver) -> None:
    await _store(fake_graph_driver).ensure_constraints()

    queries = [query for query, _ in fake_graph_driver.writes]
    assert len(queries) == len(NodeType) + 1
    assert all("IF NOT EXISTS" in query for query in queries)


@pytest.mark.asyncio
async def test_find_cycles_passes_bounds_and_limit() -> None:
    driver = FakeGraphDriver(read_results=[[{"edge_ids": ["e1", "e2", "e3"]}]])

    cycles = await _store(driver).find_cycles("scenario-a", min_length=3, max_length=6, limit=7)

    assert cycles == [("e1", "e2", "e3")]
    [(query, params)] = driver.reads
    assert "*3..6" in query
    assert "nodes(p)[i] <> nodes(p)[j]" in query
    assert params == {"hash": "scenario-a", "limit": 7}


@pytest.mark.asyncio
async def test_stamp_loops_skips_unstamped_edges(fake_graph_driver: FakeGraphDriver) -> None:
    stamped = make_edge("V1", Relationship.CONTRACTS, "A1")
    stamped.properties.stamp("loop_a")
    plain = make_edge("P1", Relationship.DONOR, "V1")

    await _store(fake_graph_driver).stamp_loops("scenario-a", [stamped, plain])

    [(_, params)] = fake_graph_driver.writes
    assert params["rows"] == [
        {"edge_id": "V1-CONTRACTS-A1", "loop_id": "loop_a", "loop_ids": ["loop_a"]}
    ]


@pytest.mark.asyncio
async def test_get_subgraph_parses_records() -> None:
    nodes = [
        {
            "id": "V1",
            "labels": ["Vendor"],
            "properties": {"id": "V1", "name": "acme", "source_derivation": ["fact:contract"]},
        },
        {"id": "A1", "labels": ["Unknown", "Agency"], "properties": {"id": "A1"}},
    ]
    edges = [
        {
            "id": "V1-CONTRACTS-A1",
            "from_id": "V1",
            "to_id": "A1",
            "relationship": "CONTRACTS",
            "properties": {
                "edge_id": "V1-CONTRACTS-A1",
                "scenario_hash": "scenario-a",
                "source": "https://example.org",
                "confidence": 0.9,
                "amount": 12.0,
                "loop_id": "loop_a",
                "loop_ids": ["loop_a"],
            },
        }
    ]
    driver = FakeGraphDriver(read_results=[nodes, edges])

    graph = await _store(driver).get_subgraph("scenario-a")

    vendor = graph.node("V1")
    assert vendor is not None
    assert vendor.type is NodeType.VENDOR
    assert vendor.properties == {"name": "acme"}
    assert vendor.source_derivation == ["fact:contract"]
    agency = graph.node("A1")
    assert agency is not None
    assert agency.type is NodeType.AGENCY
    [edge] = graph.edges
    assert edge.relationship is Relationship.CONTRACTS
    assert edge.properties.amount == 12.0
    assert edge.properties.loop_ids == ["loop_a"]
    assert not edge.properties.inferred


@pytest.mark.asyncio
async def test_delete_scenario_removes_edges_then_members(
    fake_graph_driver: FakeGraphDriver,
) -> None:
    await _store(fake_graph_driver).delete_scenario("scenario-a")

    [(edges_query, params), (members_query, _)] = fake_graph_driver.writes
    assert "DELETE r" in edges_query
    assert "DETACH DELETE s" in members_query
    assert params == {"hash": "scenario-a"}
