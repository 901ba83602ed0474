"""Repository and lock ports for the document archive and entity registry."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from contextlib import AbstractContextManager
    from types import TracebackType

    from civicops.domain.model import CanonicalEntity, DocumentFingerprint


@runtime_checkable
class DocumentRepository(Protocol):
    def get(self, doc_hash: str) -> DocumentFingerprint | None: ...

    def add(self, fingerprint: DocumentFingerprint) -> None: ...

    def scenarios_for(self, doc_hash: str) -> list[str]: ...

    def index(self, doc_hash: str, scenario_hash: str) -> None: ...

    def list_by_scenario(self, scenario_hash: str) -> list[DocumentFingerprint]: ...


@runtime_checkable
class EntityRepository(Protocol):
    def get(self, entity_key: str) -> CanonicalEntity | None: ...

    def add(self, entity: CanonicalEntity) -> None: ...

    def save(self, entity: CanonicalEntity) -> None: ...

    def remove(self, entity_key: str) -> None: ...

    def list_all(self) -> list[CanonicalEntity]: ...

    def list_by_jurisdiction(self, jurisdiction: str) -> list[CanonicalEntity]: ...


@runtime_checkable
class IndexLock(Protocol):
    """Mutual-exclusion lease guarding writers of shared stores."""

    def hold(self) -> AbstractContextManager[None]: ...


@dataclass(slots=True)
class StoreRepositories:
    documents: DocumentRepository
    entities: EntityRepository


@runtime_checkable
class StoreUnitOfWork(Protocol):
    @property
    def repositories(self) -> StoreRepositories: ...

    def __enter__(self) -> StoreUnitOfWork: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...
