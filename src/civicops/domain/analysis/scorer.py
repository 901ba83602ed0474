"""Statistical scorers plugged into the analyst engine."""

from __future__ import annotations

import statistics
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from civicops.domain.model import RiskVector, ScorerOutput

if TYPE_CHECKING:
    from collections.abc import Sequence

    from civicops.domain.model import FeatureVector


@dataclass(slots=True)
class FixedScorer:
    """Deterministic stand-in returning the same output for every entity."""

    risk: RiskVector = field(default_factory=RiskVector)
    confidence: float = 1.0

    def fit(self, population: Sequence[FeatureVector]) -> None:
        _ = population

    def score(self, features: FeatureVector) -> ScorerOutput:
        _ = features
        return ScorerOutput(risk=self.risk, confidence=self.confidence)


@dataclass(slots=True)
class PopulationAnomalyScorer:
    """Score entities by how far their features sit above the graph's population.

    Each feature is z-scored against the fitted population and squashed to [0, 1] by
    ``z / saturation``. Confidence is ``n / (n + prior)`` for a population of ``n``,
    so small graphs fall back to rules-only scoring.
    """

    saturation: float = 3.0
    prior: float = 10.0
    _stats: dict[str, tuple[float, float]] = field(
        init=False, default_factory=dict[str, "tuple[float, float]"]
    )
    _population_size: int = field(init=False, default=0)

    def fit(self, population: Sequence[FeatureVector]) -> None:
        self._population_size = len(population)
        self._stats = {}
        if not population:
            return
        columns: dict[str, list[float]] = {}
        for vector in population:
            for name, value in vector.as_dict().items():
                columns.setdefault(name, []).append(value)
        for name, values in columns.items():
            self._stats[name] = (statistics.fmean(values), statistics.pstdev(values))

    def score(self, features: FeatureVector) -> ScorerOutput:
        values = features.as_dict()
        z = {name: self._zscore(name, value) for name, value in values.items()}
        present = sum(
            1
            for name in ("lobbying_spend", "contract_count", "donation_frequency")
            if values[name] > 0
        )
        risk = RiskVector(
            conflict_of_interest=self._squash(min(z["contract_count"], z["donation_frequency"])),
            financial_anomaly=self._squash(abs(values["financial_zscore"])),
            regulatory_violation=self._squash(z["lobbying_spend"]),
            transparency_gap=max(values["undisclosed_share"], 0.0) if present else 0.0,
            influence_concentration=self._squash(z["common_officer_count"]),
        )
        confidence = self._population_size / (self._population_size + self.prior)
        return ScorerOutput(risk=risk, confidence=confidence)

    def _zscore(self, name: str, value: float) -> float:
        mean, deviation = self._stats.get(name, (0.0, 0.0))
        if not deviation:
            return 0.0
        return (value - mean) / deviation

    def _squash(self, z: float) -> float:
        return min(max(z / self.saturation, 0.0), 1.0)
