"""Circular-flow detection with a graph-query primary and a depth-first fallback."""

from __future__ import annotations

import hashlib
from collections import defaultdict
from logging import getLogger
from typing import TYPE_CHECKING, Final

from civicops.domain.errors import CycleDetectionError
from civicops.domain.model import Cycle

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from civicops.domain.model import GraphEdge, GraphSet
    from civicops.domain.ports.graph import ScenarioGraphStore

log = getLogger(__name__)

MIN_CYCLE_LENGTH: Final[int] = 3
MAX_CYCLE_LENGTH: Final[int] = 10
MAX_CYCLES: Final[int] = 1000

GRAPH_QUERY = "graph_query"
DEPTH_FIRST = "depth_first"


def loop_id_for(edge_ids: Iterable[str]) -> str:
    digest = hashlib.sha256("|".join(sorted(edge_ids)).encode("utf-8")).hexdigest()
    return f"loop_{digest[:16]}"


def find_cycles_dfs(
    edges: Sequence[GraphEdge],
    *,
    min_length: int = MIN_CYCLE_LENGTH,
    max_length: int = MAX_CYCLE_LENGTH,
    limit: int = MAX_CYCLES,
) -> list[tuple[str, ...]]:
    """Enumerate simple directed cycles as edge-id paths.

    Each cycle is reported once, starting from its smallest node id; parallel edges
    between the same nodes yield distinct cycles.
    """

    adjacency: defaultdict[str, list[GraphEdge]] = defaultdict(list)
    for edge in sorted(edges, key=lambda item: item.id):
        adjacency[edge.from_id].append(edge)

    found: list[tuple[str, ...]] = []
    path: list[GraphEdge] = []
    on_path: set[str] = set()

    def visit(start: str, node: str) -> None:
        for edge in adjacency.get(node, ()):
            if len(found) >= limit:
                return
            length = len(path) + 1
            if edge.to_id == start:
                if length >= min_length:
                    found.append(tuple(item.id for item in (*path, edge)))
                continue
            if edge.to_id < start or edge.to_id in on_path or length >= max_length:
                continue
            path.append(edge)
            on_path.add(edge.to_id)
            visit(start, edge.to_id)
            on_path.discard(edge.to_id)
            path.pop()

    for start in sorted(adjacency):
        if len(found) >= limit:
            break
        on_path.add(start)
        visit(start, start)
        on_path.discard(start)
    return found


def _is_simple_cycle(path: Sequence[GraphEdge]) -> bool:
    if not path:
        return False
    for edge, following in zip(path, (*path[1:], path[0]), strict=True):
        if edge.to_id != following.from_id:
            return False
    return len({edge.from_id for edge in path}) == len(path)


def build_cycles(paths: Iterable[Sequence[str]], edges: Iterable[GraphEdge]) -> list[Cycle]:
    """Deduplicate rotations and drop paths that are not simple cycles of ``edges``.

    A path naming an edge outside the graph, a path whose edges do not chain head to
    tail, and a closed walk that passes through a node twice are all rejected.
    """

    by_id = {edge.id: edge for edge in edges}
    cycles: dict[frozenset[str], Cycle] = {}
    for path in paths:
        edge_ids = tuple(path)
        unknown = [edge_id for edge_id in edge_ids if edge_id not in by_id]
        if unknown:
            log.warning("Ignoring cycle with edges outside the scenario graph: %s", unknown)
            continue
        if not _is_simple_cycle([by_id[edge_id] for edge_id in edge_ids]):
            log.warning("Ignoring closed walk that is not a simple cycle: %s", edge_ids)
            continue
        key = frozenset(edge_ids)
        if key not in cycles:
            cycles[key] = Cycle(loop_id=loop_id_for(edge_ids), edge_ids=edge_ids)
    return sorted(cycles.values(), key=lambda cycle: cycle.loop_id)


def stamp_cycles(graph: GraphSet, cycles: Iterable[Cycle]) -> list[GraphEdge]:
    """Write loop ids onto edges; returns the edges that were touched."""

    edges = {edge.id: edge for edge in graph.edges}
    stamped: dict[str, GraphEdge] = {}
    for cycle in cycles:
        for edge_id in cycle.edge_ids:
            edge = edges[edge_id]
            edge.properties.stamp(cycle.loop_id)
            stamped[edge_id] = edge
    return list(stamped.values())


class CycleDetector:
    def __init__(
        self,
        store: ScenarioGraphStore | None = None,
        *,
        min_length: int = MIN_CYCLE_LENGTH,
        max_length: int = MAX_CYCLE_LENGTH,
        limit: int = MAX_CYCLES,
    ) -> None:
        self.store = store
        self.min_length = min_length
        self.max_length = max_length
        self.limit = limit

    async def detect(self, graph: GraphSet) -> tuple[list[Cycle], str]:
        """Return the cycles found and the name of the strategy that found them."""

        if self.store is not None:
            try:
                paths = await self.store.find_cycles(
                    graph.scenario_hash,
                    min_length=self.min_length,
                    max_length=self.max_length,
                    limit=self.limit,
                )
            except Exception:  # noqa: BLE001
                log.warning(
                    "Graph cycle query failed for %s, using in-memory search",
                    graph.scenario_hash,
                    exc_info=True,
                )
            else:
                return build_cycles(paths, graph.edges), GRAPH_QUERY

        try:
            paths = find_cycles_dfs(
                graph.edges,
                min_length=self.min_length,
                max_length=self.max_length,
                limit=self.limit,
            )
        except RecursionError as exc:
            raise CycleDetectionError(f"In-memory cycle search failed: {exc}") from exc
        return build_cycles(paths, graph.edges), DEPTH_FIRST
