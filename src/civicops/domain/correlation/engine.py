"""Correlation engine: merge, infer, persist, detect loops, gate."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING

from civicops.domain.errors import CivicOpsError, QualityGateError

from .cycles import CycleDetector, stamp_cycles
from .inference import NullLinkPolicy, find_orphans
from .merge import GraphMerger
from .quality import QualityGate

if TYPE_CHECKING:
    from collections.abc import Sequence

    from civicops.domain.identity import IdentityLinker
    from civicops.domain.model import GraphSet, RawFact
    from civicops.domain.ports.graph import ScenarioGraphStore
    from civicops.domain.ports.inference import LinkInferencePolicy

log = getLogger(__name__)


class CorrelationEngine:
    def __init__(
        self,
        linker: IdentityLinker,
        *,
        store: ScenarioGraphStore | None = None,
        inference: LinkInferencePolicy | None = None,
        gate: QualityGate | None = None,
        detector: CycleDetector | None = None,
    ) -> None:
        self.merger = GraphMerger(linker)
        self.store = store
        self.inference = inference or NullLinkPolicy()
        self.gate = gate or QualityGate()
        self.detector = detector or CycleDetector(store)

    async def correlate(self, scenario_hash: str, raw_facts: Sequence[RawFact]) -> GraphSet:
        merged = await asyncio.to_thread(self.merger.merge, scenario_hash, list(raw_facts))
        graph = merged.graph
        log.info(
            "Merged %s facts into %s nodes and %s edges (%s skipped)",
            len(raw_facts),
            len(graph.nodes),
            len(graph.edges),
            len(merged.skipped),
        )

        orphans = find_orphans(graph)
        inferred = self.inference.infer(orphans, graph) if orphans else []
        graph.edges.extend(inferred)
        if orphans:
            log.info(
                "Policy %s inferred %s edges for %s orphan nodes",
                self.inference.name,
                len(inferred),
                len(orphans),
            )

        if self.store is not None:
            await self.store.upsert_graph(graph)

        cycles, strategy = await self.detector.detect(graph)
        stamped = stamp_cycles(graph, cycles)
        graph.cycles = cycles
        if self.store is not None and stamped:
            await self.store.stamp_loops(scenario_hash, stamped)
        log.info("Detected %s loops in %s via %s", len(cycles), scenario_hash, strategy)

        graph.metadata = {
            "created_at": datetime.now(UTC).isoformat(),
            "node_count": len(graph.nodes),
            "edge_count": len(graph.edges),
            "graph_density": graph.density,
            "conflicts_resolved": merged.conflicts_resolved,
            "facts_skipped": len(merged.skipped),
            "facts_detached": len(merged.detached),
            "orphans": len(orphans),
            "inferred_edges": len(inferred),
            "loops_detected": len(cycles),
            "cycle_strategy": strategy,
        }

        try:
            self.gate.check(graph)
        except QualityGateError:
            log.warning("Scenario %s rejected by the quality gate", scenario_hash)
            if self.store is not None:
                try:
                    await self.store.delete_scenario(scenario_hash)
                except CivicOpsError:
                    # the rejection is what the caller must see
                    log.exception("Could not delete rejected scenario %s", scenario_hash)
            raise
        return graph
