"""Statistical scorer integration contract."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from civicops.domain.model import FeatureVector, ScorerOutput


@runtime_checkable
class Scorer(Protocol):
    """Map features to a risk vector plus a confidence in [0, 1]."""

    def fit(self, population: Sequence[FeatureVector]) -> None: ...

    def score(self, features: FeatureVector) -> ScorerOutput: ...
