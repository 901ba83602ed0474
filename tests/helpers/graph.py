from __future__ import annotations

from typing import TYPE_CHECKING, Any

from civicops.domain.errors import GraphUnavailable
from civicops.domain.model import EdgeProperties, GraphEdge, GraphNode, GraphSet, NodeType

if TYPE_CHECKING:
    from collections.abc import Sequence

    from civicops.domain.model import Relationship


class FakeGraphDriver:
    """In-memory ``GraphDriver`` recording every query it receives."""

    def __init__(
        self,
        *,
        read_results: list[list[dict[str, Any]]] | None = None,
        write_failures: int = 0,
    ) -> None:
        self.reads: list[tuple[str, dict[str, Any]]] = []
        self.writes: list[tuple[str, dict[str, Any]]] = []
        self.read_results = list(read_results or [])
        self.write_failures = write_failures
        self.closed = False

    async def execute_read(
        self, query: str, params: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        self.reads.append((query, dict(params or {})))
        return self.read_results.pop(0) if self.read_results else []

    async def execute_write(
        self, query: str, params: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        self.writes.append((query, dict(params or {})))
        if self.write_failures > 0:
            self.write_failures -= 1
            raise GraphUnavailable("graph database offline")
        return []

    async def close(self) -> None:
        self.closed = True


class FakeScenarioStore:
    """``ScenarioGraphStore`` double with scripted cycle query results."""

    def __init__(
        self,
        *,
        cycles: list[tuple[str, ...]] | None = None,
        cycle_error: Exception | None = None,
        delete_error: Exception | None = None,
    ) -> None:
        self.cycles = cycles or []
        self.cycle_error = cycle_error
        self.delete_error = delete_error
        self.upserted: list[GraphSet] = []
        self.stamped: list[tuple[str, list[str]]] = []
        self.deleted: list[str] = []

    async def upsert_graph(self, graph: GraphSet) -> None:
        self.upserted.append(graph)

    async def find_cycles(
        self,
        scenario_hash: str,
        *,
        min_length: int,
        max_length: int,
        limit: int,
    ) -> list[tuple[str, ...]]:
        _ = scenario_hash, min_length, max_length
        if self.cycle_error is not None:
            raise self.cycle_error
        return self.cycles[:limit]

    async def stamp_loops(self, scenario_hash: str, edges: Sequence[GraphEdge]) -> None:
        self.stamped.append((scenario_hash, [edge.id for edge in edges]))

    async def get_subgraph(self, scenario_hash: str) -> GraphSet:
        return GraphSet(scenario_hash=scenario_hash)

    async def delete_scenario(self, scenario_hash: str) -> None:
        if self.delete_error is not None:
            raise self.delete_error
        self.deleted.append(scenario_hash)


def make_edge(
    from_id: str,
    relationship: Relationship,
    to_id: str,
    *,
    amount: float | None = None,
    inferred: bool = False,
    suffix: str = "",
) -> GraphEdge:
    return GraphEdge(
        id=f"{from_id}-{relationship.value}-{to_id}{suffix}",
        from_id=from_id,
        to_id=to_id,
        relationship=relationship,
        properties=EdgeProperties(
            source="test", confidence=1.0, amount=amount, inferred=inferred
        ),
    )


def make_graph(
    edges: Sequence[GraphEdge],
    *,
    scenario_hash: str = "scenario-test",
    types: dict[str, NodeType] | None = None,
    names: dict[str, str] | None = None,
) -> GraphSet:
    node_ids = sorted({edge.from_id for edge in edges} | {edge.to_id for edge in edges})
    node_ids.extend(sorted(set(names or {}) - set(node_ids)))
    return GraphSet(
        scenario_hash=scenario_hash,
        nodes=[
            GraphNode(
                id=node_id,
                type=(types or {}).get(node_id, NodeType.VENDOR),
                properties={"name": (names or {}).get(node_id, node_id.lower())},
            )
            for node_id in node_ids
        ],
        edges=list(edges),
    )
