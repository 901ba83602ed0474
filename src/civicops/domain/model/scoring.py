"""Feature and risk vectors produced by the analyst engine."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Self

from .enums import RiskDimension, ScoringMode

VIOLATION_FLAG = "ViolationFlag"


@dataclass(frozen=True, slots=True, kw_only=True)
class FeatureVector:
    financial_zscore: float = 0.0
    common_officer_count: int = 0
    lobbying_spend: float = 0.0
    contract_count: int = 0
    donation_frequency: int = 0
    undisclosed_share: float = 0.0

    def as_dict(self) -> dict[str, float]:
        return {item.name: float(getattr(self, item.name)) for item in fields(self)}


@dataclass(frozen=True, slots=True, kw_only=True)
class RiskVector:
    conflict_of_interest: float = 0.0
    financial_anomaly: float = 0.0
    regulatory_violation: float = 0.0
    transparency_gap: float = 0.0
    influence_concentration: float = 0.0

    def __getitem__(self, dimension: RiskDimension) -> float:
        return getattr(self, dimension.value)

    def items(self) -> list[tuple[RiskDimension, float]]:
        return [(dimension, self[dimension]) for dimension in RiskDimension]

    def mean(self) -> float:
        values = [value for _, value in self.items()]
        return sum(values) / len(values)

    def blend(self, other: RiskVector, *, weight: float) -> Self:
        """Return ``weight * self + (1 - weight) * other`` per dimension."""

        other_weight = 1.0 - weight
        return type(self)(
            **{
                dimension.value: weight * value + other_weight * other[dimension]
                for dimension, value in self.items()
            }
        )


@dataclass(frozen=True, slots=True)
class ScorerOutput:
    risk: RiskVector
    confidence: float


@dataclass(frozen=True, slots=True)
class FeatureGap:
    entity_id: str
    reason: str


@dataclass(frozen=True, slots=True, kw_only=True)
class ScoredEntity:
    entity_id: str
    features: FeatureVector
    risk: RiskVector
    total_score: float
    confidence: float
    scoring_mode: ScoringMode
    violation_flags: tuple[str, ...] = ()
    feature_gap: bool = False

    @property
    def flagged(self) -> bool:
        return VIOLATION_FLAG in self.violation_flags


@dataclass(slots=True, kw_only=True)
class ScoredSet:
    scored_entities: list[ScoredEntity] = field(default_factory=list[ScoredEntity])
    feature_gaps: list[FeatureGap] = field(default_factory=list[FeatureGap])
    metadata: dict[str, Any] = field(default_factory=dict[str, Any])

    @property
    def flagged(self) -> list[ScoredEntity]:
        return [entity for entity in self.scored_entities if entity.flagged]
