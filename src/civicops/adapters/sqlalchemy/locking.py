"""Database lease lock with staleness reclaim.

A lock is one row in ``index_lock`` naming its holder and acquisition time. Holders
that crash leave the row behind; once it is older than the staleness window the next
contender takes it over with a compare-and-swap on the holder token.
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import UTC, datetime, timedelta
from logging import getLogger
from typing import TYPE_CHECKING

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from civicops.adapters.sqlalchemy.mappings import index_lock_table
from civicops.config import LockConfig
from civicops.domain.errors import IndexingFailure, LockTimeoutError

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = getLogger(__name__)

ENTITY_INDEX_LOCK = "entity_index"
DOCUMENT_INDEX_LOCK = "document_index"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SqlAlchemyLeaseLock:
    def __init__(
        self,
        engine: Engine,
        name: str,
        *,
        config: LockConfig | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.engine = engine
        self.name = name
        self.config = config or LockConfig()
        self._clock = clock

    @contextmanager
    def hold(self) -> Iterator[None]:
        token = self.acquire()
        try:
            yield
        finally:
            self.release(token)

    def acquire(self) -> str:
        token = uuid.uuid4().hex
        deadline = time.monotonic() + self.config.timeout_seconds
        while True:
            if self._try_acquire(token):
                return token
            if time.monotonic() >= deadline:
                raise LockTimeoutError(self.name, self.config.timeout_seconds)
            time.sleep(self.config.poll_interval_seconds)

    def release(self, token: str) -> None:
        stmt = (
            delete(index_lock_table)
            .where(index_lock_table.c.name == self.name)
            .where(index_lock_table.c.holder == token)
        )
        try:
            with self.engine.begin() as connection:
                result = connection.execute(stmt)
        except SQLAlchemyError as exc:
            raise IndexingFailure(f"Could not release lock {self.name}") from exc
        if result.rowcount == 0:
            log.warning("Lock %s was reclaimed from holder %s before release", self.name, token)

    def _try_acquire(self, token: str) -> bool:
        now = self._clock()
        try:
            with self.engine.begin() as connection:
                connection.execute(
                    insert(index_lock_table).values(name=self.name, holder=token, acquired_at=now)
                )
        except IntegrityError:
            return self._try_reclaim(token, now)
        except SQLAlchemyError as exc:
            raise IndexingFailure(f"Could not acquire lock {self.name}") from exc
        return True

    def _try_reclaim(self, token: str, now: datetime) -> bool:
        stale_after = timedelta(seconds=self.config.stale_after_seconds)
        try:
            with self.engine.begin() as connection:
                row = connection.execute(
                    select(index_lock_table.c.holder, index_lock_table.c.acquired_at).where(
                        index_lock_table.c.name == self.name
                    )
                ).one_or_none()
                if row is None or now - row.acquired_at <= stale_after:
                    return False
                result = connection.execute(
                    update(index_lock_table)
                    .where(index_lock_table.c.name == self.name)
                    .where(index_lock_table.c.holder == row.holder)
                    .values(holder=token, acquired_at=now)
                )
        except SQLAlchemyError as exc:
            raise IndexingFailure(f"Could not reclaim lock {self.name}") from exc
        if result.rowcount != 1:
            return False
        log.warning("Reclaimed stale lock %s from holder %s", self.name, row.holder)
        return True
