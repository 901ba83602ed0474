"""Rate limited, retrying ``httpx`` client for the remote fact feed."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from aiolimiter import AsyncLimiter
from httpx_retries import Retry, RetryTransport

if TYPE_CHECKING:
    from collections.abc import Mapping
    from types import TracebackType

    from civicops.config.sources import FactSourceConfig, FeedRetry

log = getLogger(__name__)

NO_CONTENT_STATUSES = frozenset({204, 404})


def build_retry(policy: FeedRetry) -> Retry:
    return Retry(
        total=policy.attempts,
        backoff_factor=policy.backoff_factor,
        max_backoff_wait=policy.max_backoff_wait,
        status_forcelist=sorted(policy.statuses),
        allowed_methods=["GET"],
        retry_on_exceptions=[httpx.TimeoutException, httpx.NetworkError],
    )


class ResilientClient:
    """``httpx.AsyncClient`` behind a retry transport and a per-second rate limit.

    ``transport`` replaces the network layer underneath the retries, which lets tests
    plug in an ``httpx.MockTransport`` while keeping retry behavior intact.
    """

    def __init__(
        self,
        config: FactSourceConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        rate = config.requests_per_second
        self._limiter = AsyncLimiter(rate, 1.0) if rate else None
        self._client = httpx.AsyncClient(
            base_url=config.base_url,
            timeout=config.timeout_seconds,
            headers=config.headers,
            transport=RetryTransport(transport=transport, retry=build_retry(config.retry)),
        )

    async def __aenter__(self) -> ResilientClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get_json(self, path: str, *, params: Mapping[str, str] | None = None) -> object:
        """GET ``path`` and decode its JSON body.

        Returns ``None`` for 204 and 404, which the feed uses to say it has nothing.
        Other error statuses raise ``httpx.HTTPStatusError``.
        """

        if self._limiter is None:
            response = await self._client.get(path, params=params)
        else:
            async with self._limiter:
                response = await self._client.get(path, params=params)
        if response.status_code in NO_CONTENT_STATUSES:
            log.debug("%s answered %s for %s", self.config.name, response.status_code, path)
            return None
        response.raise_for_status()
        return response.json()
