"""Analyst engine: hybrid rule/statistical risk scoring with violation flags."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Protocol

from civicops.config import ScoringConfig
from civicops.domain.model import (
    VIOLATION_FLAG,
    ScoredEntity,
    ScoredSet,
    ScoringMode,
)

from .features import GraphFeatureExtractor
from .rules import RuleSet
from .scorer import PopulationAnomalyScorer

if TYPE_CHECKING:
    from civicops.domain.model import FeatureGap, FeatureVector, GraphSet, RiskVector
    from civicops.domain.ports.scoring import Scorer

log = getLogger(__name__)


class FeatureExtractor(Protocol):
    def extract(self, graph: GraphSet) -> tuple[dict[str, FeatureVector], list[FeatureGap]]: ...


def violation_flags(risk: RiskVector, total: float, config: ScoringConfig) -> tuple[str, ...]:
    if total < config.flag_threshold:
        return ()
    sub_flags = [
        f"{VIOLATION_FLAG}:{dimension.value}"
        for dimension, value in risk.items()
        if value > config.sub_flag_threshold
    ]
    return (VIOLATION_FLAG, *sub_flags)


class AnalystEngine:
    def __init__(
        self,
        *,
        scorer: Scorer | None = None,
        rules: RuleSet | None = None,
        extractor: FeatureExtractor | None = None,
        config: ScoringConfig | None = None,
    ) -> None:
        self.scorer = scorer or PopulationAnomalyScorer()
        self.rules = rules or RuleSet()
        self.extractor = extractor or GraphFeatureExtractor()
        self.config = config or ScoringConfig()

    def analyze(self, graph: GraphSet) -> ScoredSet:
        features, gaps = self.extractor.extract(graph)
        self.scorer.fit(list(features.values()))
        gap_ids = {gap.entity_id for gap in gaps}

        scored = ScoredSet(feature_gaps=list(gaps))
        for node in graph.nodes:
            vector = features.get(node.id)
            if vector is None:
                log.warning("No features for %s, skipping", node.id)
                continue
            scored.scored_entities.append(
                self._score_entity(node.id, vector, feature_gap=node.id in gap_ids)
            )

        scored.metadata = _summarize(scored)
        log.info(
            "Scored %s entities: %s flagged, %s rules-only",
            len(scored.scored_entities),
            len(scored.flagged),
            scored.metadata["rules_only_count"],
        )
        return scored

    def _score_entity(
        self,
        entity_id: str,
        features: FeatureVector,
        *,
        feature_gap: bool,
    ) -> ScoredEntity:
        rules_risk = self.rules.evaluate(features)
        statistical = self.scorer.score(features)
        confidence = min(max(statistical.confidence, 0.0), 1.0)

        if confidence < self.config.confidence_threshold:
            risk = rules_risk
            mode = ScoringMode.RULES_ONLY
        else:
            risk = rules_risk.blend(statistical.risk, weight=self.config.rule_weight)
            mode = ScoringMode.HYBRID

        total = risk.mean()
        return ScoredEntity(
            entity_id=entity_id,
            features=features,
            risk=risk,
            total_score=total,
            confidence=confidence,
            scoring_mode=mode,
            violation_flags=violation_flags(risk, total, self.config),
            feature_gap=feature_gap,
        )


def _summarize(scored: ScoredSet) -> dict[str, float | int]:
    entities = scored.scored_entities
    count = len(entities)
    if not count:
        return {
            "entity_count": 0,
            "mean_confidence": 0.0,
            "flag_precision": 0.0,
            "mean_score": 0.0,
            "rules_only_count": 0,
            "feature_gaps": len(scored.feature_gaps),
        }
    return {
        "entity_count": count,
        "mean_confidence": sum(entity.confidence for entity in entities) / count,
        "flag_precision": len(scored.flagged) / count,
        "mean_score": sum(entity.total_score for entity in entities) / count,
        "rules_only_count": sum(
            1 for entity in entities if entity.scoring_mode is ScoringMode.RULES_ONLY
        ),
        "feature_gaps": len(scored.feature_gaps),
    }
