"""Per-node feature extraction."""

from __future__ import annotations

import statistics
from collections import defaultdict
from logging import getLogger
from typing import TYPE_CHECKING, Final

from civicops.domain.model import FeatureGap, FeatureVector, Relationship

if TYPE_CHECKING:
    from civicops.domain.model import GraphEdge, GraphNode, GraphSet

log = getLogger(__name__)

MONETARY: Final[frozenset[Relationship]] = frozenset(
    {
        Relationship.CONTRACTS,
        Relationship.DONOR,
        Relationship.LOBBIED,
        Relationship.FUNDED_BY,
    }
)

type FeatureMap = dict[str, FeatureVector]


class GraphFeatureExtractor:
    """Derive a ``FeatureVector`` for every node of a graph.

    A node whose features cannot be computed keeps a zero-filled vector and is
    reported as a ``FeatureGap``; it is never dropped from the result.
    """

    def extract(self, graph: GraphSet) -> tuple[FeatureMap, list[FeatureGap]]:
        outgoing: defaultdict[str, list[GraphEdge]] = defaultdict(list)
        incident: defaultdict[str, list[GraphEdge]] = defaultdict(list)
        for edge in graph.edges:
            if edge.properties.inferred:
                continue
            outgoing[edge.from_id].append(edge)
            incident[edge.from_id].append(edge)
            if edge.to_id != edge.from_id:
                incident[edge.to_id].append(edge)

        gaps: list[FeatureGap] = []
        volumes: dict[str, float] = {}
        for node in graph.nodes:
            try:
                volumes[node.id] = _monetary_volume(incident[node.id])
            except (TypeError, ValueError) as exc:
                gaps.append(FeatureGap(entity_id=node.id, reason=f"monetary volume: {exc}"))

        mean, deviation = _population(list(volumes.values()))
        seats = _officer_seats(graph)

        features: FeatureMap = {}
        gap_ids = {gap.entity_id for gap in gaps}
        for node in graph.nodes:
            if node.id in gap_ids:
                features[node.id] = FeatureVector()
                continue
            try:
                features[node.id] = self._node_features(
                    node,
                    outgoing[node.id],
                    incident[node.id],
                    zscore=(volumes[node.id] - mean) / deviation if deviation else 0.0,
                    seats=seats,
                )
            except (TypeError, ValueError, KeyError, ArithmeticError) as exc:
                gaps.append(FeatureGap(entity_id=node.id, reason=str(exc)))
                features[node.id] = FeatureVector()

        for gap in gaps:
            log.warning("FeatureGap for %s: %s", gap.entity_id, gap.reason)
        return features, gaps

    @staticmethod
    def _node_features(
        node: GraphNode,
        outgoing: list[GraphEdge],
        incident: list[GraphEdge],
        *,
        zscore: float,
        seats: dict[str, set[str]],
    ) -> FeatureVector:
        lobbying = sum(
            float(edge.properties.amount or 0.0)
            for edge in outgoing
            if edge.relationship is Relationship.LOBBIED
        )
        monetary = [edge for edge in incident if edge.relationship in MONETARY]
        undisclosed = sum(1 for edge in monetary if edge.properties.amount is None)
        shared = [
            organization
            for organization, holders in seats.items()
            if node.id in holders and len(holders) > 1
        ]
        return FeatureVector(
            financial_zscore=zscore,
            common_officer_count=len(shared),
            lobbying_spend=lobbying,
            contract_count=sum(
                1 for edge in outgoing if edge.relationship is Relationship.CONTRACTS
            ),
            donation_frequency=sum(
                1 for edge in outgoing if edge.relationship is Relationship.DONOR
            ),
            undisclosed_share=undisclosed / len(monetary) if monetary else 0.0,
        )


def _monetary_volume(edges: list[GraphEdge]) -> float:
    return sum(
        float(edge.properties.amount)
        for edge in edges
        if edge.relationship in MONETARY and edge.properties.amount is not None
    )


def _population(values: list[float]) -> tuple[float, float]:
    if len(values) < 2:  # noqa: PLR2004
        return (values[0] if values else 0.0), 0.0
    return statistics.fmean(values), statistics.pstdev(values)


def _officer_seats(graph: GraphSet) -> dict[str, set[str]]:
    """Map each OFFICER_OF target to the nodes holding a seat there."""

    seats: defaultdict[str, set[str]] = defaultdict(set)
    for edge in graph.edges:
        if edge.relationship is Relationship.OFFICER_OF and not edge.properties.inferred:
            seats[edge.to_id].add(edge.from_id)
    return dict(seats)
