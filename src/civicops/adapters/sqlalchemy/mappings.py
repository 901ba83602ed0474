"""SQLAlchemy table metadata for the document archive and entity registry."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any, cast

from sqlalchemy import (
    Column,
    DateTime,
    Dialect,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    orm,
)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class IdentifierListType(TypeDecorator[tuple[str, ...]]):
    """Ordered ``type:value`` identifiers stored as a JSON array."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: tuple[str, ...] | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return json.dumps(list(value))

    def process_result_value(self, value: str | None, dialect: Dialect) -> tuple[str, ...]:
        _ = dialect
        if value is None:
            return ()
        loaded = json.loads(value)
        if not isinstance(loaded, list):
            return ()
        items = cast(list[Any], loaded)
        return tuple(item for item in items if isinstance(item, str))


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Document archive ------------------------------------------------------------

document_table = Table(
    "document",
    mapper_registry.metadata,
    Column("doc_hash", String(64), primary_key=True),
    Column("scenario_hash", String(64), nullable=False),
    Column("normalized_text", Text, nullable=False),
    Column("original_length", Integer, nullable=False),
    Column("normalized_length", Integer, nullable=False),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("source_url", String, nullable=True),
)

document_scenario_table = Table(
    "document_scenario",
    mapper_registry.metadata,
    Column(
        "doc_hash",
        String(64),
        ForeignKey("document.doc_hash", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("scenario_hash", String(64), primary_key=True),
    Column("indexed_at", UTCDateTime(), nullable=False),
    Index("ix_document_scenario_scenario_hash", "scenario_hash"),
)

# Entity registry ---------------------------------------------------------------

canonical_entity_table = Table(
    "canonical_entity",
    mapper_registry.metadata,
    Column("entity_key", String(64), primary_key=True),
    Column("primary_id", String, nullable=False),
    Column("alt_ids", IdentifierListType(), nullable=False),
    Column("name_norm", String, nullable=False, default=""),
    Column("jurisdiction", String, nullable=True),
    Index("ix_canonical_entity_jurisdiction", "jurisdiction"),
    Index("ix_canonical_entity_primary_id", "primary_id"),
)

# Leases ------------------------------------------------------------------------

index_lock_table = Table(
    "index_lock",
    mapper_registry.metadata,
    Column("name", String, primary_key=True),
    Column("holder", String(32), nullable=False),
    Column("acquired_at", UTCDateTime(), nullable=False),
)
