"""Structural quality gate applied before a graph is accepted."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from civicops.domain.errors import QualityGateError
from civicops.domain.model import Relationship

if TYPE_CHECKING:
    from civicops.domain.model import GraphSet

DEFAULT_REQUIRED = frozenset({Relationship.CONTRACTS, Relationship.FUNDED_BY})


@dataclass(frozen=True, slots=True)
class QualityGate:
    required: frozenset[Relationship] = field(default=DEFAULT_REQUIRED)

    def missing(self, graph: GraphSet) -> frozenset[Relationship]:
        # inferred edges never satisfy the gate
        present = {edge.relationship for edge in graph.edges if not edge.properties.inferred}
        return frozenset(self.required - present)

    def check(self, graph: GraphSet) -> None:
        missing = self.missing(graph)
        if missing:
            raise QualityGateError(missing)
