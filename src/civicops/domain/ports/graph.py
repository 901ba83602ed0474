"""Graph database ports: the minimal driver contract and the scenario graph store."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from civicops.domain.model import GraphEdge, GraphSet

type Record = dict[str, Any]


@runtime_checkable
class GraphDriver(Protocol):
    async def execute_read(
        self, query: str, params: dict[str, Any] | None = None
    ) -> list[Record]: ...

    async def execute_write(
        self, query: str, params: dict[str, Any] | None = None
    ) -> list[Record]: ...

    async def close(self) -> None: ...


@runtime_checkable
class ScenarioGraphStore(Protocol):
    """Scenario-partitioned persistence used by the correlation engine."""

    async def upsert_graph(self, graph: GraphSet) -> None: ...

    async def find_cycles(
        self,
        scenario_hash: str,
        *,
        min_length: int,
        max_length: int,
        limit: int,
    ) -> list[tuple[str, ...]]: ...

    async def stamp_loops(self, scenario_hash: str, edges: Sequence[GraphEdge]) -> None: ...

    async def get_subgraph(self, scenario_hash: str) -> GraphSet: ...

    async def delete_scenario(self, scenario_hash: str) -> None: ...
