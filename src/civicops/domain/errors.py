"""Domain error taxonomy.

Every error carries a stable ``code`` so that pipeline failure records and log lines
can be matched without depending on exception class names.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from civicops.domain.model import EntityCollision, Relationship


class CivicOpsError(RuntimeError):
    code: ClassVar[str] = "civicops_error"


class StorageFailure(CivicOpsError):
    """The document archive could not be written or read."""

    code = "storage_failure"


class IndexingFailure(CivicOpsError):
    """The scenario index or entity registry could not be written or read."""

    code = "indexing_failure"


class LockTimeoutError(CivicOpsError):
    code = "lock_timeout"

    def __init__(self, name: str, timeout_seconds: float) -> None:
        super().__init__(f"Could not acquire lock {name!r} within {timeout_seconds:.1f}s")
        self.name = name
        self.timeout_seconds = timeout_seconds


class EntityExistsError(CivicOpsError):
    code = "entity_exists"

    def __init__(self, entity_key: str) -> None:
        super().__init__(f"Entity already exists: {entity_key}")
        self.entity_key = entity_key


class EntityNotFoundError(CivicOpsError):
    code = "entity_not_found"

    def __init__(self, entity_key: str) -> None:
        super().__init__(f"Entity not found: {entity_key}")
        self.entity_key = entity_key


class EntityCollisionError(CivicOpsError):
    """Distinct identifier sets resolved to one entity key. Never merged automatically."""

    code = "entity_collision"

    def __init__(self, collision: EntityCollision) -> None:
        super().__init__(
            f"Identifier sets {collision.identifier_sets!r} collide on {collision.entity_key}"
        )
        self.collision = collision


class KeyIntegrityError(CivicOpsError):
    code = "key_integrity"


class FactRejected(CivicOpsError):
    """A single raw fact could not be harmonized; the batch continues without it."""

    code = "fact_rejected"


class GraphConflict(CivicOpsError):
    code = "graph_conflict"


class GraphUnavailable(CivicOpsError):
    """The graph database rejected or could not serve a query."""

    code = "graph_unavailable"


class CycleDetectionError(CivicOpsError):
    code = "cycle_detection_failed"


class QualityGateError(CivicOpsError):
    code = "quality_gate_rejected"

    def __init__(self, missing: frozenset[Relationship]) -> None:
        names = ", ".join(sorted(item.value for item in missing))
        super().__init__(f"Graph rejected: missing required relationships {names}")
        self.missing = missing


class StageFailed(CivicOpsError):
    code = "stage_failed"

    def __init__(self, stage: str, message: str) -> None:
        super().__init__(message)
        self.stage = stage
