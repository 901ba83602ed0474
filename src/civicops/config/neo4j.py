"""Graph database connection settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Final

from .env import env_float, env_int, require_env_vars

DEFAULT_NEO4J_DATABASE: Final[str] = "neo4j"


@dataclass(frozen=True, slots=True)
class Neo4jConfig:
    uri: str
    user: str
    password: str
    database: str = DEFAULT_NEO4J_DATABASE
    write_attempts: int = 3
    retry_base_delay: float = 1.0


def get_neo4j_config() -> Neo4jConfig | None:
    """Return the graph database config, or None when no graph database is configured."""

    if not os.getenv("NEO4J_URI"):
        return None
    values = require_env_vars(["NEO4J_URI", "NEO4J_USER", "NEO4J_PASSWORD"])
    return Neo4jConfig(
        uri=values["NEO4J_URI"],
        user=values["NEO4J_USER"],
        password=values["NEO4J_PASSWORD"],
        database=os.getenv("NEO4J_DATABASE") or DEFAULT_NEO4J_DATABASE,
        write_attempts=env_int("NEO4J_WRITE_ATTEMPTS", 3, minimum=1),
        retry_base_delay=env_float("NEO4J_RETRY_DELAY", 1.0),
    )
