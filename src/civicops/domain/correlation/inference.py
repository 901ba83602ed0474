"""Orphan detection and link inference policies."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from civicops.domain.model import EdgeProperties, GraphEdge, Relationship, edge_id_for

if TYPE_CHECKING:
    from collections.abc import Sequence

    from civicops.domain.model import GraphNode, GraphSet

log = getLogger(__name__)


def find_orphans(graph: GraphSet) -> list[GraphNode]:
    connected = {edge.from_id for edge in graph.edges} | {edge.to_id for edge in graph.edges}
    return [node for node in graph.nodes if node.id not in connected]


class NullLinkPolicy:
    name = "none"

    def infer(self, orphans: Sequence[GraphNode], graph: GraphSet) -> list[GraphEdge]:
        _ = orphans, graph
        return []


@dataclass(slots=True)
class NameAffinityPolicy:
    """Attach an orphan to the node whose normalized name shares the most tokens.

    Similarity is the Jaccard index of the underscore-separated name tokens. Inferred
    edges carry half the similarity as confidence and are marked ``inferred``.
    """

    threshold: float = 0.5
    confidence_scale: float = 0.5
    name: str = "name_affinity"

    def infer(self, orphans: Sequence[GraphNode], graph: GraphSet) -> list[GraphEdge]:
        orphan_ids = {node.id for node in orphans}
        candidates = [node for node in graph.nodes if node.id not in orphan_ids]
        inferred: list[GraphEdge] = []
        for orphan in orphans:
            tokens = _tokens(orphan)
            if not tokens:
                continue
            best: tuple[float, str] | None = None
            for candidate in candidates:
                similarity = _jaccard(tokens, _tokens(candidate))
                if similarity < self.threshold:
                    continue
                # ties resolved on node id so the result does not depend on node order
                if best is None or (similarity, candidate.id) > (best[0], best[1]):
                    best = (similarity, candidate.id)
            if best is None:
                continue
            similarity, target_id = best
            inferred.append(
                GraphEdge(
                    id=edge_id_for(orphan.id, Relationship.AFFILIATED_WITH, target_id),
                    from_id=orphan.id,
                    to_id=target_id,
                    relationship=Relationship.AFFILIATED_WITH,
                    properties=EdgeProperties(
                        source=f"inference:{self.name}",
                        confidence=round(similarity * self.confidence_scale, 4),
                        inferred=True,
                    ),
                )
            )
        log.debug("Inferred %s edges for %s orphans", len(inferred), len(orphans))
        return inferred


def _tokens(node: GraphNode) -> set[str]:
    name = node.properties.get("name")
    if not isinstance(name, str):
        return set()
    return {token for token in name.split("_") if token}


def _jaccard(left: set[str], right: set[str]) -> float:
    if not left or not right:
        return 0.0
    return len(left & right) / len(left | right)
