"""Structured recommendations for flagged entities."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

from civicops.domain.model import RiskDimension
from civicops.domain.ports.advisory import Recommendation

if TYPE_CHECKING:
    from civicops.domain.model import GraphSet, ScoredEntity, ScoredSet

ACTIONS: Final[dict[RiskDimension, str]] = {
    RiskDimension.CONFLICT_OF_INTEREST: "review_procurement_and_donation_records",
    RiskDimension.FINANCIAL_ANOMALY: "audit_payment_flows",
    RiskDimension.REGULATORY_VIOLATION: "check_lobbying_disclosures",
    RiskDimension.TRANSPARENCY_GAP: "request_missing_disclosures",
    RiskDimension.INFLUENCE_CONCENTRATION: "map_shared_officers",
}


class FlaggedEntityAdvisor:
    """One recommendation per flagged entity, led by its strongest risk dimension."""

    def __init__(self, *, high_priority_score: float = 0.9) -> None:
        self.high_priority_score = high_priority_score

    def advise(self, scored: ScoredSet, graph: GraphSet) -> list[Recommendation]:
        recommendations = [self._recommend(entity, graph) for entity in scored.flagged]
        recommendations.sort(key=lambda item: (item.priority != "high", item.entity_id))
        return recommendations

    def _recommend(self, entity: ScoredEntity, graph: GraphSet) -> Recommendation:
        dimension, _ = max(entity.risk.items(), key=lambda item: item[1])
        evidence = sorted(
            edge.id for edge in graph.edges_of(entity.entity_id) if edge.properties.loop_ids
        )
        return Recommendation(
            entity_id=entity.entity_id,
            priority="high" if entity.total_score >= self.high_priority_score else "elevated",
            action=ACTIONS[dimension],
            flags=entity.violation_flags,
            evidence=tuple(evidence),
        )
