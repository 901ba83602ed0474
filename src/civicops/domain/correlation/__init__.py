"""Correlation engine: facts to a validated, loop-annotated graph."""

from __future__ import annotations

from .cycles import CycleDetector, build_cycles, find_cycles_dfs, loop_id_for, stamp_cycles
from .engine import CorrelationEngine
from .inference import NameAffinityPolicy, NullLinkPolicy, find_orphans
from .merge import EDGE_RULES, GraphMerger, MergeResult
from .quality import QualityGate

__all__ = [
    "EDGE_RULES",
    "CorrelationEngine",
    "CycleDetector",
    "GraphMerger",
    "MergeResult",
    "NameAffinityPolicy",
    "NullLinkPolicy",
    "QualityGate",
    "build_cycles",
    "find_cycles_dfs",
    "find_orphans",
    "loop_id_for",
    "stamp_cycles",
]
