"""Domain model types."""

from __future__ import annotations

from .documents import DocumentFingerprint, DocumentMetadata
from .entity import (
    CanonicalEntity,
    EntityCollision,
    EntityPatch,
    format_identifier,
    split_identifier,
)
from .enums import FactType, NodeType, Relationship, RiskDimension, ScoringMode
from .facts import RawFact, SearchResult
from .graph import Cycle, EdgeProperties, GraphEdge, GraphNode, GraphSet, edge_id_for
from .scoring import (
    VIOLATION_FLAG,
    FeatureGap,
    FeatureVector,
    RiskVector,
    ScoredEntity,
    ScoredSet,
    ScorerOutput,
)

__all__ = [
    "VIOLATION_FLAG",
    "CanonicalEntity",
    "Cycle",
    "DocumentFingerprint",
    "DocumentMetadata",
    "EdgeProperties",
    "EntityCollision",
    "EntityPatch",
    "FactType",
    "FeatureGap",
    "FeatureVector",
    "GraphEdge",
    "GraphNode",
    "GraphSet",
    "NodeType",
    "RawFact",
    "Relationship",
    "RiskDimension",
    "RiskVector",
    "ScoredEntity",
    "ScoredSet",
    "ScorerOutput",
    "ScoringMode",
    "SearchResult",
    "edge_id_for",
    "format_identifier",
    "split_identifier",
]
