"""Domain port definitions for adapters."""

from __future__ import annotations

from .advisory import Advisor, Recommendation
from .graph import GraphDriver, Record, ScenarioGraphStore
from .inference import LinkInferencePolicy
from .persistence import (
    DocumentRepository,
    EntityRepository,
    IndexLock,
    StoreRepositories,
    StoreUnitOfWork,
)
from .scoring import Scorer
from .sources import DataSource, SourceQuery, SourceResult, SourceStatus

__all__ = [
    "Advisor",
    "DataSource",
    "DocumentRepository",
    "EntityRepository",
    "GraphDriver",
    "IndexLock",
    "LinkInferencePolicy",
    "Recommendation",
    "Record",
    "ScenarioGraphStore",
    "Scorer",
    "SourceQuery",
    "SourceResult",
    "SourceStatus",
    "StoreRepositories",
    "StoreUnitOfWork",
]
