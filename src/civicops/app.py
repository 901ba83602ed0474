"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from civicops.adapters.neo4j import GraphStore, Neo4jGraphDriver
from civicops.adapters.recon import HttpFactSource, JsonlFactSource
from civicops.adapters.sqlalchemy import (
    DOCUMENT_INDEX_LOCK,
    ENTITY_INDEX_LOCK,
    SqlAlchemyLeaseLock,
    SqlAlchemyStoreUnitOfWork,
)
from civicops.adapters.sqlalchemy.unit_of_work import configured_engine, startup
from civicops.config import (
    ConfigurationError,
    get_fact_source_config,
    get_neo4j_config,
    get_pipeline_config,
)
from civicops.domain.analysis import AnalystEngine
from civicops.domain.correlation import CorrelationEngine, NameAffinityPolicy
from civicops.domain.documents import DocumentStore
from civicops.domain.errors import KeyIntegrityError
from civicops.domain.entity_index import EntityIndex
from civicops.domain.identity import IdentityLinker
from civicops.domain.pipeline import (
    AdvisoryStage,
    AnalysisStage,
    CorrelationStage,
    FlaggedEntityAdvisor,
    PipelineCoordinator,
    ReconStage,
    scenario_hash_for,
)
from civicops.domain.ports.sources import DataSource, SourceQuery

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from pathlib import Path

    from sqlalchemy.engine import Engine

    from civicops.config import Neo4jConfig, PipelineConfig
    from civicops.domain.model import EntityCollision
    from civicops.domain.pipeline import PipelineResult

log = getLogger(__name__)


@dataclass(slots=True)
class Services:
    """Long-lived collaborators shared by every scenario run in one process."""

    config: PipelineConfig
    index: EntityIndex
    linker: IdentityLinker
    documents: DocumentStore
    graph_driver: Neo4jGraphDriver | None = None
    graph_store: GraphStore | None = None
    sources: list[DataSource] = field(default_factory=list[DataSource])

    def coordinator(self, *, cascade: bool = False) -> PipelineCoordinator:
        scoring = self.config.scoring
        stages = [
            ReconStage(
                self.sources,
                documents=self.documents,
                coverage_threshold=self.config.coverage_threshold,
                cascade=cascade,
            ),
            CorrelationStage(
                CorrelationEngine(
                    self.linker,
                    store=self.graph_store,
                    inference=NameAffinityPolicy(),
                )
            ),
            AnalysisStage(AnalystEngine(config=scoring)),
            AdvisoryStage(FlaggedEntityAdvisor()),
        ]
        return PipelineCoordinator(
            stages,
            max_attempts=self.config.max_retries,
            retry_delay_seconds=self.config.retry_delay_seconds,
        )

    async def aclose(self) -> None:
        if self.graph_driver is not None:
            await self.graph_driver.close()


def _ensure_engine(engine: Engine | None) -> Engine:
    if engine is not None:
        return startup(engine=engine, force=True)
    return configured_engine() or startup()


def build_sources(*, fact_file: Path | None = None) -> list[DataSource]:
    sources: list[DataSource] = []
    if fact_file is not None:
        sources.append(JsonlFactSource(name=fact_file.stem, path=fact_file))
    feed_config = get_fact_source_config()
    if feed_config is not None:
        sources.append(HttpFactSource(config=feed_config))
    return sources


def build_services(
    *,
    engine: Engine | None = None,
    config: PipelineConfig | None = None,
    neo4j: Neo4jConfig | None = None,
    sources: Sequence[DataSource] = (),
) -> Services:
    """Wire the stores, engines and graph database from configuration."""

    resolved_engine = _ensure_engine(engine)
    effective_config = config or get_pipeline_config()

    index = EntityIndex(
        SqlAlchemyStoreUnitOfWork,
        SqlAlchemyLeaseLock(resolved_engine, ENTITY_INDEX_LOCK, config=effective_config.lock),
    )
    documents = DocumentStore(
        SqlAlchemyStoreUnitOfWork,
        SqlAlchemyLeaseLock(resolved_engine, DOCUMENT_INDEX_LOCK, config=effective_config.lock),
    )

    graph_driver: Neo4jGraphDriver | None = None
    graph_store: GraphStore | None = None
    if neo4j is not None:
        graph_driver = Neo4jGraphDriver.from_config(neo4j)
        graph_store = GraphStore(
            graph_driver,
            write_attempts=neo4j.write_attempts,
            retry_base_delay=neo4j.retry_base_delay,
        )
    else:
        log.info("No graph database configured; cycles are detected in memory")

    return Services(
        config=effective_config,
        index=index,
        linker=IdentityLinker(index),
        documents=documents,
        graph_driver=graph_driver,
        graph_store=graph_store,
        sources=list(sources),
    )


async def run_scenario_async(
    services: Services,
    subject: str,
    *,
    parameters: Mapping[str, str] | None = None,
    cascade: bool = False,
) -> PipelineResult:
    scenario_hash = scenario_hash_for(subject, parameters)
    query = SourceQuery(
        subject=subject,
        scenario_hash=scenario_hash,
        parameters=dict(parameters or {}),
    )
    if services.graph_store is not None:
        await services.graph_store.ensure_constraints()
    log.info("Starting scenario %s for %r", scenario_hash, subject)
    return await services.coordinator(cascade=cascade).run(scenario_hash, query=query)


def run_scenario(
    subject: str,
    *,
    parameters: Mapping[str, str] | None = None,
    fact_file: Path | None = None,
    cascade: bool = False,
) -> PipelineResult:
    """Run one scenario end to end with the configured adapters."""

    services = build_services(
        neo4j=get_neo4j_config(),
        sources=build_sources(fact_file=fact_file),
    )
    if not services.sources:
        raise ConfigurationError(
            "No data sources configured (pass a fact file or set CIVICOPS_FACTS_URL)"
        )

    async def _run() -> PipelineResult:
        try:
            return await run_scenario_async(
                services, subject, parameters=parameters, cascade=cascade
            )
        finally:
            await services.aclose()

    return asyncio.run(_run())


def verify_index() -> list[EntityCollision]:
    """Check every stored entity key and return the collisions found."""

    services = build_services()
    entities = services.index.all()
    valid = services.linker.validate_deterministic_keys(entities)
    collisions = services.linker.detect_collisions(entities)
    log.info(
        "Verified %s entities: keys %s, %s collisions",
        len(entities),
        "valid" if valid else "INVALID",
        len(collisions),
    )
    if not valid:
        raise KeyIntegrityError("Entity index holds keys that do not match their identifiers")
    return collisions


def delete_scenario(scenario_hash: str) -> None:
    """Remove a scenario subgraph from the graph database."""

    neo4j = get_neo4j_config()
    if neo4j is None:
        raise ConfigurationError("NEO4J_URI is not set")
    services = build_services(neo4j=neo4j)
    store = services.graph_store
    if store is None:
        raise ConfigurationError("Graph store could not be created")

    async def _delete() -> None:
        try:
            await store.delete_scenario(scenario_hash)
        finally:
            await services.aclose()

    asyncio.run(_delete())
    log.info("Deleted scenario %s", scenario_hash)
