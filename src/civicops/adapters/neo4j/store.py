"""Scenario-partitioned graph persistence over a ``GraphDriver``.

Every node joins its scenario through a ``PART_OF`` relationship and every edge carries
the ``scenario_hash`` property, so several runs can share one database and still be
queried or deleted independently. Labels and relationship types are interpolated only
from the ``NodeType``/``Relationship`` enums; everything else is passed as parameters.
"""

from __future__ import annotations

import asyncio
import json
from collections import defaultdict
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING, Any, Final

from civicops.domain.errors import GraphUnavailable
from civicops.domain.model import (
    EdgeProperties,
    GraphEdge,
    GraphNode,
    GraphSet,
    NodeType,
    Relationship,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from civicops.domain.ports.graph import GraphDriver, Record

log = getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]

SCENARIO_LABEL: Final[str] = "Scenario"
BATCH_SIZE: Final[int] = 500

_PRIMITIVES = (str, int, float, bool)


def flatten_properties(properties: dict[str, Any]) -> dict[str, Any]:
    """Reduce a property map to values neo4j can store directly."""

    flat: dict[str, Any] = {}
    for key, value in properties.items():
        if value is None:
            continue
        if isinstance(value, _PRIMITIVES):
            flat[key] = value
        elif isinstance(value, (list, tuple)) and all(
            isinstance(item, _PRIMITIVES) for item in value
        ):
            flat[key] = list(value)
        else:
            flat[key] = json.dumps(value, sort_keys=True, default=str)
    return flat


class GraphStore:
    def __init__(
        self,
        driver: GraphDriver,
        *,
        write_attempts: int = 3,
        retry_base_delay: float = 1.0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if write_attempts < 1:
            raise ValueError("write_attempts must be at least 1")
        self.driver = driver
        self.write_attempts = write_attempts
        self.retry_base_delay = retry_base_delay
        self._sleep = sleep

    async def ensure_constraints(self) -> None:
        for label in NodeType:
            await self._write(
                f"CREATE CONSTRAINT {label.value.lower()}_id IF NOT EXISTS "
                f"FOR (n:{label.value}) REQUIRE n.id IS UNIQUE",
                {},
            )
        await self._write(
            f"CREATE CONSTRAINT scenario_hash IF NOT EXISTS "
            f"FOR (s:{SCENARIO_LABEL}) REQUIRE s.hash IS UNIQUE",
            {},
        )

    async def upsert_graph(self, graph: GraphSet) -> None:
        scenario_hash = graph.scenario_hash
        await self._write(
            f"MERGE (s:{SCENARIO_LABEL} {{hash: $hash}}) "
            "ON CREATE SET s.created_at = $now "
            "SET s.updated_at = $now",
            {"hash": scenario_hash, "now": datetime.now(UTC).isoformat()},
        )

        nodes_by_label: defaultdict[NodeType, list[dict[str, Any]]] = defaultdict(list)
        for node in graph.nodes:
            nodes_by_label[node.type].append(
                {
                    "id": node.id,
                    "properties": flatten_properties(node.properties),
                    "source_derivation": list(node.source_derivation),
                }
            )
        for label, rows in nodes_by_label.items():
            for batch in _batched(rows):
                await self._write(
                    "UNWIND $rows AS row "
                    f"MERGE (n:{label.value} {{id: row.id}}) "
                    "SET n += row.properties, n.source_derivation = row.source_derivation "
                    "WITH n "
                    f"MATCH (s:{SCENARIO_LABEL} {{hash: $hash}}) "
                    "MERGE (n)-[:PART_OF]->(s)",
                    {"rows": batch, "hash": scenario_hash},
                )

        edges_by_type: defaultdict[Relationship, list[dict[str, Any]]] = defaultdict(list)
        for edge in graph.edges:
            edges_by_type[edge.relationship].append(_edge_row(edge))
        for relationship, rows in edges_by_type.items():
            for batch in _batched(rows):
                await self._write(
                    "UNWIND $rows AS row "
                    f"MATCH (s:{SCENARIO_LABEL} {{hash: $hash}}) "
                    "MATCH (a {id: row.from_id})-[:PART_OF]->(s) "
                    "MATCH (b {id: row.to_id})-[:PART_OF]->(s) "
                    f"MERGE (a)-[r:{relationship.value} "
                    "{edge_id: row.id, scenario_hash: $hash}]->(b) "
                    "SET r += row.properties",
                    {"rows": batch, "hash": scenario_hash},
                )
        log.info(
            "Upserted scenario %s: %s nodes, %s edges",
            scenario_hash,
            len(graph.nodes),
            len(graph.edges),
        )

    async def find_cycles(
        self,
        scenario_hash: str,
        *,
        min_length: int = 3,
        max_length: int = 10,
        limit: int = 1000,
    ) -> list[tuple[str, ...]]:
        records = await self.driver.execute_read(
            f"MATCH (:{SCENARIO_LABEL} {{hash: $hash}})<-[:PART_OF]-(start) "
            f"MATCH p = (start)-[rels*{int(min_length)}..{int(max_length)}]->(start) "
            "WHERE all(r IN rels WHERE r.scenario_hash = $hash) "
            # every node at most once per loop
            "AND all(i IN range(0, size(rels) - 2) "
            "WHERE all(j IN range(i + 1, size(rels) - 1) WHERE nodes(p)[i] <> nodes(p)[j])) "
            "RETURN [r IN rels | r.edge_id] AS edge_ids "
            "LIMIT $limit",
            {"hash": scenario_hash, "limit": limit},
        )
        return [tuple(record["edge_ids"]) for record in records]

    async def stamp_loops(self, scenario_hash: str, edges: Sequence[GraphEdge]) -> None:
        rows = [
            {
                "edge_id": edge.id,
                "loop_id": edge.properties.loop_id,
                "loop_ids": list(edge.properties.loop_ids),
            }
            for edge in edges
            if edge.properties.loop_id is not None
        ]
        for batch in _batched(rows):
            await self._write(
                "UNWIND $rows AS row "
                "MATCH ()-[r {edge_id: row.edge_id, scenario_hash: $hash}]->() "
                "SET r.loop_id = row.loop_id, r.loop_ids = row.loop_ids",
                {"rows": batch, "hash": scenario_hash},
            )

    async def get_subgraph(self, scenario_hash: str) -> GraphSet:
        node_records = await self.driver.execute_read(
            f"MATCH (:{SCENARIO_LABEL} {{hash: $hash}})<-[:PART_OF]-(n) "
            "RETURN n.id AS id, labels(n) AS labels, properties(n) AS properties",
            {"hash": scenario_hash},
        )
        edge_records = await self.driver.execute_read(
            "MATCH (a)-[r]->(b) WHERE r.scenario_hash = $hash "
            "RETURN r.edge_id AS id, a.id AS from_id, b.id AS to_id, "
            "type(r) AS relationship, properties(r) AS properties",
            {"hash": scenario_hash},
        )
        return GraphSet(
            scenario_hash=scenario_hash,
            nodes=[_node_from_record(record) for record in node_records],
            edges=[_edge_from_record(record) for record in edge_records],
        )

    async def delete_scenario(self, scenario_hash: str) -> None:
        params = {"hash": scenario_hash}
        await self._write("MATCH ()-[r]->() WHERE r.scenario_hash = $hash DELETE r", params)
        await self._write(
            f"MATCH (s:{SCENARIO_LABEL} {{hash: $hash}}) "
            "OPTIONAL MATCH (n)-[p:PART_OF]->(s) "
            "DELETE p "
            "WITH s, collect(n) AS members "
            "DETACH DELETE s "
            "WITH members UNWIND members AS n "
            f"WITH n WHERE NOT (n)-[:PART_OF]->(:{SCENARIO_LABEL}) "
            "DETACH DELETE n",
            params,
        )
        log.info("Deleted scenario %s from the graph database", scenario_hash)

    async def _write(self, query: str, params: dict[str, Any]) -> list[Record]:
        for attempt in range(1, self.write_attempts + 1):
            try:
                return await self.driver.execute_write(query, params)
            except GraphUnavailable:
                if attempt == self.write_attempts:
                    raise
                delay = self.retry_base_delay * attempt
                log.warning(
                    "Graph write failed (attempt %s/%s), retrying in %.1fs",
                    attempt,
                    self.write_attempts,
                    delay,
                )
                await self._sleep(delay)
        raise AssertionError("unreachable")


def _batched(rows: list[dict[str, Any]]) -> list[list[dict[str, Any]]]:
    return [rows[index : index + BATCH_SIZE] for index in range(0, len(rows), BATCH_SIZE)]


def _edge_row(edge: GraphEdge) -> dict[str, Any]:
    return {
        "id": edge.id,
        "from_id": edge.from_id,
        "to_id": edge.to_id,
        "properties": flatten_properties(edge.properties.as_record()),
    }


def _node_from_record(record: Record) -> GraphNode:
    properties = dict(record.get("properties") or {})
    properties.pop("id", None)
    derivation = properties.pop("source_derivation", None) or []
    labels = [label for label in record.get("labels") or [] if label in NodeType]
    return GraphNode(
        id=record["id"],
        type=NodeType(labels[0]) if labels else NodeType.INDIVIDUAL,
        properties=properties,
        source_derivation=list(derivation),
    )


def _edge_from_record(record: Record) -> GraphEdge:
    properties = dict(record.get("properties") or {})
    return GraphEdge(
        id=record["id"],
        from_id=record["from_id"],
        to_id=record["to_id"],
        relationship=Relationship(record["relationship"]),
        properties=EdgeProperties(
            source=str(properties.get("source", "")),
            confidence=float(properties.get("confidence", 0.0)),
            amount=properties.get("amount"),
            start_date=properties.get("start_date"),
            end_date=properties.get("end_date"),
            statute_ref=properties.get("statute_ref"),
            loop_id=properties.get("loop_id"),
            loop_ids=list(properties.get("loop_ids") or []),
            inferred=bool(properties.get("inferred", False)),
        ),
    )
