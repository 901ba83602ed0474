"""Initial schema: document archive, scenario index, entity registry, leases.

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19

"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

from civicops.adapters.sqlalchemy.mappings import IdentifierListType, UTCDateTime

revision: str = "0001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "document",
        sa.Column("doc_hash", sa.String(64), nullable=False),
        sa.Column("scenario_hash", sa.String(64), nullable=False),
        sa.Column("normalized_text", sa.Text(), nullable=False),
        sa.Column("original_length", sa.Integer(), nullable=False),
        sa.Column("normalized_length", sa.Integer(), nullable=False),
        sa.Column("created_at", UTCDateTime(), nullable=False),
        sa.Column("source_url", sa.String(), nullable=True),
        sa.PrimaryKeyConstraint("doc_hash", name=op.f("pk_document")),
    )
    op.create_table(
        "document_scenario",
        sa.Column("doc_hash", sa.String(64), nullable=False),
        sa.Column("scenario_hash", sa.String(64), nullable=False),
        sa.Column("indexed_at", UTCDateTime(), nullable=False),
        sa.ForeignKeyConstraint(
            ["doc_hash"],
            ["document.doc_hash"],
            name=op.f("fk_document_scenario_doc_hash_document"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("doc_hash", "scenario_hash", name=op.f("pk_document_scenario")),
    )
    op.create_index(
        "ix_document_scenario_scenario_hash",
        "document_scenario",
        ["scenario_hash"],
    )
    op.create_table(
        "canonical_entity",
        sa.Column("entity_key", sa.String(64), nullable=False),
        sa.Column("primary_id", sa.String(), nullable=False),
        sa.Column("alt_ids", IdentifierListType(), nullable=False),
        sa.Column("name_norm", sa.String(), nullable=False),
        sa.Column("jurisdiction", sa.String(), nullable=True),
        sa.PrimaryKeyConstraint("entity_key", name=op.f("pk_canonical_entity")),
    )
    op.create_index(
        "ix_canonical_entity_jurisdiction",
        "canonical_entity",
        ["jurisdiction"],
    )
    op.create_index(
        "ix_canonical_entity_primary_id",
        "canonical_entity",
        ["primary_id"],
    )
    op.create_table(
        "index_lock",
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("holder", sa.String(32), nullable=False),
        sa.Column("acquired_at", UTCDateTime(), nullable=False),
        sa.PrimaryKeyConstraint("name", name=op.f("pk_index_lock")),
    )


def downgrade() -> None:
    op.drop_table("index_lock")
    op.drop_index("ix_canonical_entity_primary_id", table_name="canonical_entity")
    op.drop_index("ix_canonical_entity_jurisdiction", table_name="canonical_entity")
    op.drop_table("canonical_entity")
    op.drop_index("ix_document_scenario_scenario_hash", table_name="document_scenario")
    op.drop_table("document_scenario")
    op.drop_table("document")
