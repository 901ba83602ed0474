"""Pipeline, locking and scoring settings."""

from __future__ import annotations

from dataclasses import dataclass, field

from .env import env_float, env_int
from .errors import ConfigurationError


@dataclass(frozen=True, slots=True)
class LockConfig:
    stale_after_seconds: float = 5.0
    timeout_seconds: float = 5.0
    poll_interval_seconds: float = 0.1


@dataclass(frozen=True, slots=True)
class ScoringConfig:
    confidence_threshold: float = 0.65
    flag_threshold: float = 0.8
    sub_flag_threshold: float = 0.7
    rule_weight: float = 0.7
    statistical_weight: float = 0.3

    def __post_init__(self) -> None:
        if abs(self.rule_weight + self.statistical_weight - 1.0) > 1e-9:
            raise ConfigurationError("Scoring weights must sum to 1.0")


@dataclass(frozen=True, slots=True)
class PipelineConfig:
    max_retries: int = 3
    retry_delay_seconds: float = 1.0
    coverage_threshold: float = 0.5
    lock: LockConfig = field(default_factory=LockConfig)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)


def get_lock_config() -> LockConfig:
    return LockConfig(
        stale_after_seconds=env_float("CIVICOPS_LOCK_STALE", 5.0),
        timeout_seconds=env_float("CIVICOPS_LOCK_TIMEOUT", 5.0),
        poll_interval_seconds=env_float("CIVICOPS_LOCK_POLL", 0.1),
    )


def get_pipeline_config() -> PipelineConfig:
    coverage = env_float("CIVICOPS_COVERAGE_THRESHOLD", 0.5)
    if coverage > 1.0:
        raise ConfigurationError(
            "CIVICOPS_COVERAGE_THRESHOLD must be <= 1.0", settings=["CIVICOPS_COVERAGE_THRESHOLD"]
        )
    return PipelineConfig(
        max_retries=env_int("CIVICOPS_MAX_RETRIES", 3, minimum=1),
        retry_delay_seconds=env_float("CIVICOPS_RETRY_DELAY", 1.0),
        coverage_threshold=coverage,
        lock=get_lock_config(),
    )
