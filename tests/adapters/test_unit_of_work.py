from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from civicops.adapters.sqlalchemy.migrations import current_revision
from civicops.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyStoreUnitOfWork,
    StartupError,
    configured_engine,
    shutdown,
    startup,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from sqlalchemy.engine import Engine


def test_schema_is_at_head(sqlite_engine: Engine) -> None:
    assert current_revision(sqlite_engine) == "0001_initial_schema"


def test_unit_of_work_requires_startup() -> None:
    shutdown()

    with pytest.raises(StartupError, match="not started"):
        SqlAlchemyStoreUnitOfWork()


def test_startup_refuses_to_rebind_without_force(
    sqlite_engine: Engine,
    sqlite_unit_of_work: Callable[[], SqlAlchemyStoreUnitOfWork],  # noqa: ARG001
) -> None:
    assert configured_engine() is sqlite_engine

    with pytest.raises(StartupError, match="already started"):
        startup(engine=sqlite_engine)


def test_repositories_only_inside_the_block(
    sqlite_unit_of_work: Callable[[], SqlAlchemyStoreUnitOfWork],
) -> None:
    uow = sqlite_unit_of_work()

    with pytest.raises(StartupError, match="not open"):
        _ = uow.repositories

    with uow:
        assert uow.repositories.documents.list_by_scenario("nothing") == []

    with pytest.raises(StartupError, match="not open"):
        _ = uow.session
