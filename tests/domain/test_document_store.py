from __future__ import annotations

from datetime import UTC, datetime
from typing import Never, cast

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from civicops.adapters.sqlalchemy import SqlAlchemyDocumentRepository
from civicops.domain.documents import DocumentStore, hash_text, normalize_text
from civicops.domain.errors import IndexingFailure, StorageFailure
from civicops.domain.model import DocumentFingerprint, DocumentMetadata


def test_normalize_text_strips_markup_and_whitespace() -> None:
    assert normalize_text("<p>Hello   World</p>") == "hello world"
    assert normalize_text("hello world") == "hello world"
    assert normalize_text("Ｆｕｌｌ width\n\tTEXT") == "full width text"


def test_markup_and_plain_text_share_a_hash(document_store: DocumentStore) -> None:
    first = document_store.store("<p>Hello   World</p>", "scenario-1")
    second = document_store.store("hello world", "scenario-1")

    assert first.doc_hash == second.doc_hash
    assert first.doc_hash == hash_text("hello world")
    assert len(document_store.get_by_scenario("scenario-1")) == 1


def test_store_records_metadata(document_store: DocumentStore) -> None:
    fingerprint = document_store.store(
        "<b>Contract</b> awarded", "scenario-1", "https://records.example.org/1"
    )

    assert fingerprint.normalized_text == "contract awarded"
    assert fingerprint.metadata.original_length == len("<b>Contract</b> awarded")
    assert fingerprint.metadata.normalized_length == len("contract awarded")
    assert fingerprint.metadata.source_url == "https://records.example.org/1"
    assert fingerprint.metadata.created_at.tzinfo is not None


def test_same_document_is_indexed_per_scenario(document_store: DocumentStore) -> None:
    first = document_store.store("Shared text", "scenario-1")
    second = document_store.store("shared   TEXT", "scenario-2")

    assert first.doc_hash == second.doc_hash
    assert second.scenario_hash == "scenario-2"
    assert [item.doc_hash for item in document_store.get_by_scenario("scenario-1")] == [
        first.doc_hash
    ]
    assert [item.scenario_hash for item in document_store.get_by_scenario("scenario-2")] == [
        "scenario-2"
    ]


def test_get_returns_none_for_unknown_hash(document_store: DocumentStore) -> None:
    assert document_store.get("0" * 64) is None


def test_get_returns_archived_document(document_store: DocumentStore) -> None:
    stored = document_store.store("Archived text", "scenario-1")

    loaded = document_store.get(stored.doc_hash)

    assert loaded is not None
    assert loaded.normalized_text == "archived text"


class _FailingSession:
    """Session stub whose every statement fails at the driver level."""

    def execute(self, *_args: object, **_kwargs: object) -> Never:
        raise OperationalError("statement", {}, Exception("disk I/O error"))


def _fingerprint() -> DocumentFingerprint:
    return DocumentFingerprint(
        doc_hash=hash_text("text"),
        scenario_hash="scenario-1",
        normalized_text="text",
        metadata=DocumentMetadata(
            original_length=4,
            normalized_length=4,
            created_at=datetime(2024, 1, 1, tzinfo=UTC),
        ),
    )


def test_repository_wraps_archive_errors() -> None:
    repository = SqlAlchemyDocumentRepository(cast(Session, _FailingSession()))

    with pytest.raises(StorageFailure) as exc:
        repository.add(_fingerprint())

    assert exc.value.code == "storage_failure"
    assert isinstance(exc.value.__cause__, OperationalError)


def test_repository_wraps_index_errors() -> None:
    repository = SqlAlchemyDocumentRepository(cast(Session, _FailingSession()))

    with pytest.raises(IndexingFailure) as exc:
        repository.index(hash_text("text"), "scenario-1")

    assert exc.value.code == "indexing_failure"


def test_index_failure_leaves_no_partial_archive(
    document_store: DocumentStore, monkeypatch: pytest.MonkeyPatch
) -> None:
    def failing_index(self: SqlAlchemyDocumentRepository, doc_hash: str, scenario: str) -> None:
        _ = self
        raise IndexingFailure(f"Could not index {doc_hash} for {scenario}")

    monkeypatch.setattr(SqlAlchemyDocumentRepository, "index", failing_index)

    with pytest.raises(IndexingFailure):
        document_store.store("text", "scenario-1")

    assert document_store.get(hash_text("text")) is None
