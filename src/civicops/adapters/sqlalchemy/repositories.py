"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import SQLAlchemyError

from civicops.adapters.sqlalchemy.mappings import (
    canonical_entity_table,
    document_scenario_table,
    document_table,
)
from civicops.domain.errors import IndexingFailure, StorageFailure
from civicops.domain.model import CanonicalEntity, DocumentFingerprint, DocumentMetadata

if TYPE_CHECKING:
    from sqlalchemy import Row
    from sqlalchemy.orm import Session
    from sqlalchemy.sql import Executable


class SqlAlchemyDocumentRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, doc_hash: str) -> DocumentFingerprint | None:
        stmt = select(document_table).where(document_table.c.doc_hash == doc_hash)
        try:
            row = self.session.execute(stmt).one_or_none()
        except SQLAlchemyError as exc:
            raise StorageFailure(f"Could not read document {doc_hash}") from exc
        return None if row is None else _fingerprint_from_row(row)

    def add(self, fingerprint: DocumentFingerprint) -> None:
        metadata = fingerprint.metadata
        stmt = insert(document_table).values(
            doc_hash=fingerprint.doc_hash,
            scenario_hash=fingerprint.scenario_hash,
            normalized_text=fingerprint.normalized_text,
            original_length=metadata.original_length,
            normalized_length=metadata.normalized_length,
            created_at=metadata.created_at,
            source_url=metadata.source_url,
        )
        try:
            self.session.execute(stmt)
        except SQLAlchemyError as exc:
            raise StorageFailure(f"Could not persist document {fingerprint.doc_hash}") from exc

    def scenarios_for(self, doc_hash: str) -> list[str]:
        stmt = (
            select(document_scenario_table.c.scenario_hash)
            .where(document_scenario_table.c.doc_hash == doc_hash)
            .order_by(document_scenario_table.c.scenario_hash)
        )
        try:
            return list(self.session.execute(stmt).scalars())
        except SQLAlchemyError as exc:
            raise IndexingFailure(f"Could not read scenario index for {doc_hash}") from exc

    def index(self, doc_hash: str, scenario_hash: str) -> None:
        stmt = insert(document_scenario_table).values(
            doc_hash=doc_hash,
            scenario_hash=scenario_hash,
            indexed_at=datetime.now(UTC),
        )
        try:
            self.session.execute(stmt)
        except SQLAlchemyError as exc:
            raise IndexingFailure(f"Could not index {doc_hash} for {scenario_hash}") from exc

    def list_by_scenario(self, scenario_hash: str) -> list[DocumentFingerprint]:
        stmt = (
            select(document_table)
            .join(
                document_scenario_table,
                document_scenario_table.c.doc_hash == document_table.c.doc_hash,
            )
            .where(document_scenario_table.c.scenario_hash == scenario_hash)
            .order_by(document_scenario_table.c.indexed_at, document_table.c.doc_hash)
        )
        try:
            rows = self.session.execute(stmt).all()
        except SQLAlchemyError as exc:
            raise IndexingFailure(f"Could not list documents for {scenario_hash}") from exc
        return [_fingerprint_from_row(row).for_scenario(scenario_hash) for row in rows]


class SqlAlchemyEntityRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, entity_key: str) -> CanonicalEntity | None:
        stmt = select(canonical_entity_table).where(
            canonical_entity_table.c.entity_key == entity_key
        )
        rows = self._fetch(stmt)
        return rows[0] if rows else None

    def add(self, entity: CanonicalEntity) -> None:
        stmt = insert(canonical_entity_table).values(**_entity_values(entity))
        self._write(stmt, entity.entity_key)

    def save(self, entity: CanonicalEntity) -> None:
        values = _entity_values(entity)
        del values["entity_key"]
        stmt = (
            update(canonical_entity_table)
            .where(canonical_entity_table.c.entity_key == entity.entity_key)
            .values(**values)
        )
        self._write(stmt, entity.entity_key)

    def remove(self, entity_key: str) -> None:
        stmt = delete(canonical_entity_table).where(
            canonical_entity_table.c.entity_key == entity_key
        )
        self._write(stmt, entity_key)

    def list_all(self) -> list[CanonicalEntity]:
        stmt = select(canonical_entity_table).order_by(canonical_entity_table.c.entity_key)
        return self._fetch(stmt)

    def list_by_jurisdiction(self, jurisdiction: str) -> list[CanonicalEntity]:
        stmt = (
            select(canonical_entity_table)
            .where(canonical_entity_table.c.jurisdiction == jurisdiction)
            .order_by(canonical_entity_table.c.entity_key)
        )
        return self._fetch(stmt)

    def _fetch(self, stmt: Executable) -> list[CanonicalEntity]:
        try:
            rows = self.session.execute(stmt).all()
        except SQLAlchemyError as exc:
            raise IndexingFailure("Could not read the entity registry") from exc
        return [_entity_from_row(row) for row in rows]

    def _write(self, stmt: Executable, entity_key: str) -> None:
        try:
            self.session.execute(stmt)
        except SQLAlchemyError as exc:
            raise IndexingFailure(f"Could not write entity {entity_key}") from exc


def _fingerprint_from_row(row: Row[tuple[object, ...]]) -> DocumentFingerprint:
    values = row._mapping  # noqa: SLF001
    return DocumentFingerprint(
        doc_hash=values["doc_hash"],
        scenario_hash=values["scenario_hash"],
        normalized_text=values["normalized_text"],
        metadata=DocumentMetadata(
            original_length=values["original_length"],
            normalized_length=values["normalized_length"],
            created_at=values["created_at"],
            source_url=values["source_url"],
        ),
    )


def _entity_values(entity: CanonicalEntity) -> dict[str, object]:
    return {
        "entity_key": entity.entity_key,
        "primary_id": entity.primary_id,
        "alt_ids": tuple(entity.alt_ids),
        "name_norm": entity.name_norm,
        "jurisdiction": entity.jurisdiction,
    }


def _entity_from_row(row: Row[tuple[object, ...]]) -> CanonicalEntity:
    values = row._mapping  # noqa: SLF001
    return CanonicalEntity(
        entity_key=values["entity_key"],
        primary_id=values["primary_id"],
        alt_ids=tuple(values["alt_ids"]),
        name_norm=values["name_norm"],
        jurisdiction=values["jurisdiction"],
    )
