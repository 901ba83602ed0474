"""Typed correlation graph: nodes, edges, cycles."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .enums import NodeType, Relationship


def edge_id_for(from_id: str, relationship: Relationship, to_id: str) -> str:
    return f"{from_id}-{relationship.value}-{to_id}"


@dataclass(slots=True, kw_only=True)
class GraphNode:
    id: str
    type: NodeType
    properties: dict[str, Any] = field(default_factory=dict[str, Any])
    source_derivation: list[str] = field(default_factory=list[str])


@dataclass(slots=True, kw_only=True)
class EdgeProperties:
    source: str
    confidence: float
    amount: float | None = None
    start_date: str | None = None
    end_date: str | None = None
    statute_ref: str | None = None
    loop_id: str | None = None
    loop_ids: list[str] = field(default_factory=list[str])
    inferred: bool = False

    def stamp(self, loop_id: str) -> None:
        if loop_id in self.loop_ids:
            return
        self.loop_ids.append(loop_id)
        if self.loop_id is None:
            self.loop_id = loop_id

    def as_record(self) -> dict[str, Any]:
        record: dict[str, Any] = {
            "source": self.source,
            "confidence": self.confidence,
            "inferred": self.inferred,
            "loop_ids": list(self.loop_ids),
        }
        optional = {
            "amount": self.amount,
            "start_date": self.start_date,
            "end_date": self.end_date,
            "statute_ref": self.statute_ref,
            "loop_id": self.loop_id,
        }
        record.update({key: value for key, value in optional.items() if value is not None})
        return record


@dataclass(slots=True, kw_only=True)
class GraphEdge:
    id: str
    from_id: str
    to_id: str
    relationship: Relationship
    properties: EdgeProperties


@dataclass(frozen=True, slots=True)
class Cycle:
    loop_id: str
    edge_ids: tuple[str, ...]


@dataclass(slots=True, kw_only=True)
class GraphSet:
    scenario_hash: str
    nodes: list[GraphNode] = field(default_factory=list[GraphNode])
    edges: list[GraphEdge] = field(default_factory=list[GraphEdge])
    cycles: list[Cycle] = field(default_factory=list[Cycle])
    metadata: dict[str, Any] = field(default_factory=dict[str, Any])

    def node(self, node_id: str) -> GraphNode | None:
        return next((node for node in self.nodes if node.id == node_id), None)

    def edge(self, edge_id: str) -> GraphEdge | None:
        return next((edge for edge in self.edges if edge.id == edge_id), None)

    def edges_of(self, node_id: str) -> list[GraphEdge]:
        return [edge for edge in self.edges if node_id in (edge.from_id, edge.to_id)]

    def outgoing(self, node_id: str) -> list[GraphEdge]:
        return [edge for edge in self.edges if edge.from_id == node_id]

    @property
    def density(self) -> float:
        node_count = len(self.nodes)
        if node_count < 2:  # noqa: PLR2004
            return 0.0
        return len(self.edges) / (node_count * (node_count - 1))
