"""Deterministic rule-based risk scoring."""

from __future__ import annotations

from dataclasses import dataclass, field

from civicops.domain.model import FeatureVector, RiskVector


@dataclass(frozen=True, slots=True)
class RuleThresholds:
    contract_count: int = 5
    donation_frequency: int = 10
    financial_zscore: float = 2.5
    lobbying_spend: float = 100_000.0
    lobbying_contract_count: int = 3
    common_officer_count: int = 3
    undisclosed_share: float = 0.5


@dataclass(frozen=True, slots=True)
class RuleScores:
    conflict_of_interest: float = 0.8
    financial_anomaly: float = 0.9
    regulatory_violation: float = 0.7
    transparency_gap: float = 0.8
    influence_concentration: float = 0.8


@dataclass(frozen=True, slots=True)
class RuleSet:
    thresholds: RuleThresholds = field(default_factory=RuleThresholds)
    scores: RuleScores = field(default_factory=RuleScores)

    def evaluate(self, features: FeatureVector) -> RiskVector:
        limits = self.thresholds
        scores = self.scores
        conflict = (
            features.contract_count > limits.contract_count
            and features.donation_frequency > limits.donation_frequency
        )
        regulatory = (
            features.lobbying_spend > limits.lobbying_spend
            and features.contract_count > limits.lobbying_contract_count
        )
        return RiskVector(
            conflict_of_interest=scores.conflict_of_interest if conflict else 0.0,
            financial_anomaly=(
                scores.financial_anomaly
                if abs(features.financial_zscore) > limits.financial_zscore
                else 0.0
            ),
            regulatory_violation=scores.regulatory_violation if regulatory else 0.0,
            transparency_gap=(
                scores.transparency_gap
                if features.undisclosed_share >= limits.undisclosed_share
                else 0.0
            ),
            influence_concentration=(
                scores.influence_concentration
                if features.common_officer_count > limits.common_officer_count
                else 0.0
            ),
        )
