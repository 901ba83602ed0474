"""Async neo4j implementation of the graph driver contract."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Any

from neo4j import AsyncGraphDatabase
from neo4j.exceptions import DriverError, Neo4jError

from civicops.domain.errors import GraphUnavailable

if TYPE_CHECKING:
    from neo4j import AsyncDriver, AsyncManagedTransaction

    from civicops.config import Neo4jConfig
    from civicops.domain.ports.graph import Record

log = getLogger(__name__)


async def _collect(
    tx: AsyncManagedTransaction, query: str, params: dict[str, Any]
) -> list[Record]:
    result = await tx.run(query, params)
    return await result.data()


class Neo4jGraphDriver:
    """Wrap an ``AsyncDriver``; neo4j errors surface as ``GraphUnavailable``."""

    def __init__(self, driver: AsyncDriver, *, database: str | None = None) -> None:
        self._driver = driver
        self._database = database

    @classmethod
    def from_config(cls, config: Neo4jConfig) -> Neo4jGraphDriver:
        driver = AsyncGraphDatabase.driver(config.uri, auth=(config.user, config.password))
        log.info("Created neo4j driver for %s (database=%s)", config.uri, config.database)
        return cls(driver, database=config.database)

    async def execute_read(self, query: str, params: dict[str, Any] | None = None) -> list[Record]:
        try:
            async with self._driver.session(database=self._database) as session:
                return await session.execute_read(_collect, query, params or {})
        except (Neo4jError, DriverError) as exc:
            raise GraphUnavailable(f"Graph read failed: {exc}") from exc

    async def execute_write(
        self, query: str, params: dict[str, Any] | None = None
    ) -> list[Record]:
        try:
            async with self._driver.session(database=self._database) as session:
                return await session.execute_write(_collect, query, params or {})
        except (Neo4jError, DriverError) as exc:
            raise GraphUnavailable(f"Graph write failed: {exc}") from exc

    async def close(self) -> None:
        await self._driver.close()
        log.info("Closed neo4j driver")
