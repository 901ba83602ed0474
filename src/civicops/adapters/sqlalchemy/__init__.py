"""SQLAlchemy adapter package for civicops."""

from __future__ import annotations

from .locking import DOCUMENT_INDEX_LOCK, ENTITY_INDEX_LOCK, SqlAlchemyLeaseLock
from .mappings import mapper_registry
from .repositories import SqlAlchemyDocumentRepository, SqlAlchemyEntityRepository
from .unit_of_work import SqlAlchemyStoreUnitOfWork, shutdown, startup

__all__ = [
    "DOCUMENT_INDEX_LOCK",
    "ENTITY_INDEX_LOCK",
    "SqlAlchemyDocumentRepository",
    "SqlAlchemyEntityRepository",
    "SqlAlchemyLeaseLock",
    "SqlAlchemyStoreUnitOfWork",
    "mapper_registry",
    "shutdown",
    "startup",
]
