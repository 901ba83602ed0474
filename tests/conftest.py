from __future__ import annotations

import os
from typing import TYPE_CHECKING, Any

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.pool import StaticPool

from civicops.adapters.sqlalchemy import (
    DOCUMENT_INDEX_LOCK,
    ENTITY_INDEX_LOCK,
    SqlAlchemyLeaseLock,
    SqlAlchemyStoreUnitOfWork,
)
from civicops.adapters.sqlalchemy.migrations import upgrade_head
from civicops.adapters.sqlalchemy.unit_of_work import shutdown, startup
from civicops.config import LockConfig
from civicops.domain.documents import DocumentStore
from civicops.domain.entity_index import EntityIndex
from civicops.domain.identity import IdentityLinker
from tests.helpers.graph import FakeGraphDriver

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator


FAST_LOCKS = LockConfig(stale_after_seconds=5.0, timeout_seconds=1.0, poll_interval_seconds=0.01)


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    # one shared connection so that worker threads see the same in-memory database
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyStoreUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyStoreUnitOfWork:
        return SqlAlchemyStoreUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()


@pytest.fixture
def entity_index(
    sqlite_engine: Engine,
    sqlite_unit_of_work: Callable[[], SqlAlchemyStoreUnitOfWork],
) -> Iterator[EntityIndex]:
    index = EntityIndex(
        sqlite_unit_of_work,
        SqlAlchemyLeaseLock(sqlite_engine, ENTITY_INDEX_LOCK, config=FAST_LOCKS),
    )
    yield index
    # every stored key must still be derivable from its own identifiers
    assert IdentityLinker(index).validate_deterministic_keys()


@pytest.fixture
def linker(entity_index: EntityIndex) -> IdentityLinker:
    return IdentityLinker(entity_index)


@pytest.fixture
def document_store(
    sqlite_engine: Engine,
    sqlite_unit_of_work: Callable[[], SqlAlchemyStoreUnitOfWork],
) -> DocumentStore:
    return DocumentStore(
        sqlite_unit_of_work,
        SqlAlchemyLeaseLock(sqlite_engine, DOCUMENT_INDEX_LOCK, config=FAST_LOCKS),
    )


@pytest.fixture
def fake_graph_driver() -> FakeGraphDriver:
    return FakeGraphDriver()
