"""SQLAlchemy-backed unit of work for the document archive and entity registry."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from civicops.adapters.sqlalchemy.migrations import upgrade_head
from civicops.adapters.sqlalchemy.repositories import (
    SqlAlchemyDocumentRepository,
    SqlAlchemyEntityRepository,
)
from civicops.config import DatabaseConfig, get_database_config
from civicops.domain.errors import StorageFailure
from civicops.domain.ports.persistence import StoreRepositories

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine

log = getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when the archive is used before ``startup`` or a unit of work is misused."""


@dataclass(slots=True)
class _ArchiveState:
    engine: Engine | None = None
    sessions: sessionmaker[Session] | None = None


_STATE = _ArchiveState()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> Engine:
    """Migrate the archive schema to head and bind the session factory to ``engine``.

    Without an engine one is created from ``database_uri`` or, failing that, from
    ``DATABASE_URI`` and ``CIVICOPS_DATA_DIR``.
    """

    if _STATE.engine is not None and not force:
        raise StartupError("Archive already started. Pass force=True to rebind it.")

    if engine is None:
        settings = DatabaseConfig(uri=database_uri) if database_uri else get_database_config()
        engine = create_engine(settings.uri, echo=settings.echo)
    upgrade_head(engine=engine)
    _STATE.engine = engine
    _STATE.sessions = sessionmaker(bind=engine, expire_on_commit=False)
    log.info("Archive ready at %s", engine.url.render_as_string(hide_password=True))
    return engine


def configured_engine() -> Engine | None:
    """Return the engine bound by ``startup``, if any."""

    return _STATE.engine


def shutdown() -> None:
    """Dispose the bound engine and forget it (primarily for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None
    _STATE.sessions = None


class SqlAlchemyStoreUnitOfWork:
    """One session over the document archive and the entity registry.

    Leaving the ``with`` block after an exception rolls back; callers commit
    explicitly. A commit failure is reported as ``StorageFailure``.
    """

    def __init__(self) -> None:
        if _STATE.sessions is None:
            raise StartupError(
                "Archive not started. Call civicops.adapters.sqlalchemy.unit_of_work.startup() "
                "before requesting a unit of work."
            )
        self._sessions = _STATE.sessions
        self._session: Session | None = None
        self._repositories: StoreRepositories | None = None

    def __enter__(self) -> SqlAlchemyStoreUnitOfWork:
        if self._session is not None:
            raise StartupError("Unit of work is already open")
        session = self._sessions()
        self._session = session
        self._repositories = StoreRepositories(
            documents=SqlAlchemyDocumentRepository(session),
            entities=SqlAlchemyEntityRepository(session),
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        session = self.session
        try:
            if exc_type is not None:
                session.rollback()
        finally:
            session.close()
            self._session = None
            self._repositories = None
        return False

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work is not open")
        return self._session

    @property
    def repositories(self) -> StoreRepositories:
        if self._repositories is None:
            raise StartupError("Unit of work is not open")
        return self._repositories

    def commit(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StorageFailure("Could not commit unit of work") from exc

    def rollback(self) -> None:
        self.session.rollback()


if TYPE_CHECKING:
    from civicops.domain.ports.persistence import StoreUnitOfWork

    _uow_check: StoreUnitOfWork = SqlAlchemyStoreUnitOfWork()
