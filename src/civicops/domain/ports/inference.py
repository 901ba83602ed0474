"""Pluggable orphan link inference."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from civicops.domain.model import GraphEdge, GraphNode, GraphSet


@runtime_checkable
class LinkInferencePolicy(Protocol):
    """Propose edges for nodes that ended the merge without any incident edge."""

    name: str

    def infer(self, orphans: Sequence[GraphNode], graph: GraphSet) -> list[GraphEdge]: ...
