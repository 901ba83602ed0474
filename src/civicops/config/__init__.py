"""Application configuration helpers."""

from __future__ import annotations

from .env import env_bool, env_float, env_int, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .logging import configure_logging, resolve_log_level
from .neo4j import Neo4jConfig, get_neo4j_config
from .pipeline import (
    LockConfig,
    PipelineConfig,
    ScoringConfig,
    get_lock_config,
    get_pipeline_config,
)
from .sources import FactSourceConfig, FeedRetry, get_fact_source_config
from .storage import DatabaseConfig, data_dir, get_database_config

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "FactSourceConfig",
    "FeedRetry",
    "LockConfig",
    "MissingConfigurationError",
    "Neo4jConfig",
    "PipelineConfig",
    "ScoringConfig",
    "configure_logging",
    "data_dir",
    "env_bool",
    "env_float",
    "env_int",
    "get_database_config",
    "get_fact_source_config",
    "get_lock_config",
    "get_neo4j_config",
    "get_pipeline_config",
    "require_env_vars",
    "resolve_log_level",
]
