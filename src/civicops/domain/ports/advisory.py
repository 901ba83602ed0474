"""Advisory collaborator contract."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from civicops.domain.model import GraphSet, ScoredSet


@dataclass(frozen=True, slots=True, kw_only=True)
class Recommendation:
    entity_id: str
    priority: str
    action: str
    flags: tuple[str, ...] = ()
    evidence: tuple[str, ...] = field(default_factory=tuple)


@runtime_checkable
class Advisor(Protocol):
    def advise(self, scored: ScoredSet, graph: GraphSet) -> list[Recommendation]: ...
