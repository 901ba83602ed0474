from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine

from civicops.adapters.sqlalchemy import (
    ENTITY_INDEX_LOCK,
    SqlAlchemyLeaseLock,
    SqlAlchemyStoreUnitOfWork,
)
from civicops.adapters.sqlalchemy.unit_of_work import shutdown, startup
from civicops.config import LockConfig
from civicops.domain.entity_index import EntityIndex
from civicops.domain.errors import (
    EntityExistsError,
    EntityNotFoundError,
    KeyIntegrityError,
)
from civicops.domain.identity import IdentityLinker, build_entity
from civicops.domain.model import EntityPatch

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


def test_create_and_get(entity_index: EntityIndex) -> None:
    entity = build_entity("Acme Corp", {"ein": "12-3456789"}, "US-CA")

    entity_index.create(entity)

    assert entity_index.get(entity.entity_key) == entity
    assert entity_index.get("missing") is None


def test_create_rejects_existing_key(entity_index: EntityIndex) -> None:
    entity = build_entity("Acme Corp", {"ein": "12-3456789"})
    entity_index.create(entity)

    with pytest.raises(EntityExistsError, match=entity.entity_key):
        entity_index.create(entity)


def test_update_merges_patch(entity_index: EntityIndex) -> None:
    entity = entity_index.create(build_entity("Acme Corp", {"ein": "12-3456789"}))

    updated = entity_index.update(
        entity.entity_key, EntityPatch(jurisdiction="US-NY", name_norm="acme_corporation")
    )

    assert updated.jurisdiction == "US-NY"
    assert updated.name_norm == "acme_corporation"
    assert updated.primary_id == entity.primary_id
    assert entity_index.get(entity.entity_key) == updated


def test_update_missing_entity_raises(entity_index: EntityIndex) -> None:
    with pytest.raises(EntityNotFoundError):
        entity_index.update("missing", EntityPatch(jurisdiction="US-NY"))


def test_update_with_identifier_that_changes_the_key_raises(entity_index: EntityIndex) -> None:
    entity = entity_index.create(build_entity("Acme Corp", {"ein": "12-3456789"}))

    with pytest.raises(KeyIntegrityError):
        entity_index.update(entity.entity_key, EntityPatch(identifiers={"cik": "0000123"}))

    assert entity_index.get(entity.entity_key) == entity


def test_update_with_known_identifier_is_a_noop(entity_index: EntityIndex) -> None:
    entity = entity_index.create(build_entity("Acme Corp", {"ein": "12-3456789"}))

    updated = entity_index.update(
        entity.entity_key, EntityPatch(identifiers={"ein": "12-3456789"})
    )

    assert updated == entity


def test_delete(entity_index: EntityIndex) -> None:
    entity = entity_index.create(build_entity("Acme Corp", {"ein": "12-3456789"}))

    entity_index.delete(entity.entity_key)

    assert entity_index.get(entity.entity_key) is None
    with pytest.raises(EntityNotFoundError):
        entity_index.delete(entity.entity_key)


def test_searches(entity_index: EntityIndex) -> None:
    acme = entity_index.create(
        build_entity("Acme Corp", {"ein": "12-3456789", "duns": "987654321"}, "US-CA")
    )
    parks = entity_index.create(build_entity("Friends of Parks", {"ein": "98-7654321"}, "US-NY"))

    assert entity_index.search_by_jurisdiction("US-CA") == [acme]
    assert entity_index.search_by_name("^ACME") == [acme]
    assert entity_index.search_by_name("park") == [parks]
    assert entity_index.search_by_alt_id("DUNS", "987654321") == [acme]
    assert entity_index.search_by_alt_id("ein", "98-7654321") == [parks]
    assert entity_index.search_by_alt_id("cik", "0000123") == []


@pytest.fixture
def file_backed_index(tmp_path: Path) -> Iterator[EntityIndex]:
    engine = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'index.db'}",
        future=True,
        connect_args={"timeout": 30},
    )
    startup(engine=engine, force=True)
    try:
        yield EntityIndex(
            SqlAlchemyStoreUnitOfWork,
            SqlAlchemyLeaseLock(
                engine,
                ENTITY_INDEX_LOCK,
                config=LockConfig(timeout_seconds=20.0, poll_interval_seconds=0.01),
            ),
        )
    finally:
        shutdown()


def test_concurrent_writers_converge_on_one_entity(file_backed_index: EntityIndex) -> None:
    linker = IdentityLinker(file_backed_index)
    names = [None, "Acme Corp", None, "Acme Corp", None, None, "Acme Corp", None]

    def canonicalize(name: str | None) -> str:
        return linker.canonicalize(name, {"ein": "12-3456789", "cik": "0000123"}).entity_key

    with ThreadPoolExecutor(max_workers=4) as pool:
        keys = set(pool.map(canonicalize, names))

    stored = file_backed_index.all()
    assert len(keys) == 1
    assert len(stored) == 1
    assert stored[0].name_norm == "acme_corp"
    assert linker.validate_deterministic_keys()
