"""Settings for the remote fact feed."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from .env import env_float, env_int

RETRY_STATUSES = frozenset({429, 500, 502, 503, 504})


@dataclass(frozen=True, slots=True)
class FeedRetry:
    attempts: int = 4
    backoff_factor: float = 0.5
    max_backoff_wait: float = 60.0
    statuses: frozenset[int] = RETRY_STATUSES


@dataclass(frozen=True, slots=True)
class FactSourceConfig:
    name: str
    base_url: str
    api_key: str | None = None
    timeout_seconds: float = 30.0
    requests_per_second: int | None = 5
    retry: FeedRetry = field(default_factory=FeedRetry)

    @property
    def headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers


def get_fact_source_config() -> FactSourceConfig | None:
    """Return the remote fact feed settings, or None if no feed is configured."""

    base_url = os.getenv("CIVICOPS_FACTS_URL")
    if not base_url:
        return None
    return FactSourceConfig(
        name=os.getenv("CIVICOPS_FACTS_NAME") or "facts",
        base_url=base_url,
        api_key=os.getenv("CIVICOPS_FACTS_API_KEY") or None,
        timeout_seconds=env_float("CIVICOPS_FACTS_TIMEOUT", 30.0),
        requests_per_second=env_int("CIVICOPS_FACTS_RATE", 5, minimum=1),
        retry=FeedRetry(attempts=env_int("CIVICOPS_FACTS_RETRIES", 4)),
    )
