"""Content-addressable archive of normalized source text."""

from __future__ import annotations

import hashlib
import re
import unicodedata
from collections.abc import Callable
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING

from civicops.domain.model import DocumentFingerprint, DocumentMetadata
from civicops.domain.ports.persistence import StoreUnitOfWork

if TYPE_CHECKING:
    from civicops.domain.ports.persistence import IndexLock

UnitOfWorkFactory = Callable[[], StoreUnitOfWork]

log = getLogger(__name__)

_TAG = re.compile(r"<[^>]*>")
_WHITESPACE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """Strip HTML tags, NFKC-normalize, collapse whitespace, lower-case."""

    without_tags = _TAG.sub(" ", text)
    normalized = unicodedata.normalize("NFKC", without_tags)
    return _WHITESPACE.sub(" ", normalized).lower().strip()


def hash_text(normalized: str) -> str:
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


def _utcnow() -> datetime:
    return datetime.now(UTC)


class DocumentStore:
    """Deduplicate documents per (doc_hash, scenario_hash) pair.

    The archive keeps one row per ``doc_hash``; each scenario that sees the document
    adds a row to the scenario index. The check-then-write sequence runs under the
    store lock so that concurrent runs cannot index the same pair twice.
    """

    def __init__(
        self,
        unit_of_work_factory: UnitOfWorkFactory,
        lock: IndexLock,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self._lock = lock
        self._clock = clock

    def store(
        self,
        text: str,
        scenario_hash: str,
        source_url: str | None = None,
    ) -> DocumentFingerprint:
        normalized = normalize_text(text)
        doc_hash = hash_text(normalized)

        with self._lock.hold(), self._uow_factory() as uow:
            documents = uow.repositories.documents
            existing = documents.get(doc_hash)
            if existing is not None and scenario_hash in documents.scenarios_for(doc_hash):
                log.debug("Document %s already indexed for %s", doc_hash, scenario_hash)
                return existing.for_scenario(scenario_hash)

            if existing is None:
                fingerprint = DocumentFingerprint(
                    doc_hash=doc_hash,
                    scenario_hash=scenario_hash,
                    normalized_text=normalized,
                    metadata=DocumentMetadata(
                        original_length=len(text),
                        normalized_length=len(normalized),
                        created_at=self._clock(),
                        source_url=source_url,
                    ),
                )
                documents.add(fingerprint)
            else:
                fingerprint = existing.for_scenario(scenario_hash)
            documents.index(doc_hash, scenario_hash)
            uow.commit()

        log.info("Stored document %s for scenario %s", doc_hash, scenario_hash)
        return fingerprint

    def get(self, doc_hash: str) -> DocumentFingerprint | None:
        with self._uow_factory() as uow:
            return uow.repositories.documents.get(doc_hash)

    def get_by_scenario(self, scenario_hash: str) -> list[DocumentFingerprint]:
        with self._uow_factory() as uow:
            return uow.repositories.documents.list_by_scenario(scenario_hash)
