"""Batch feed downloaded over HTTP.

The server publishes the same files as the on-disk layout::

    {base_url}/{category}/batches.csv
    {base_url}/{category}/history.csv          (optional)
    {base_url}/{category}/batches/{batch}.csv
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Final
from urllib.parse import quote

import httpx

from loadsync.adapters.http_resilience import RateLimit, ResilienceConfig, ResilientClient
from loadsync.domain.errors import FeedReadError
from loadsync.domain.ports import BatchFeed, FeedBatch, FeedFailure, FeedFetchResult

from .metadata import merge_metadata_sources
from .schema import (
    BatchListing,
    batch_file_name,
    looks_like_html,
    parse_batch_listing,
    parse_feed_rows,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from loadsync.domain.model import Scope
    from loadsync.domain.ports import FeedBatchMetadata

log = getLogger(__name__)

_DEFAULT_TIMEOUT_SECONDS: Final[float] = 30.0
_EXPIRED_SESSION: Final[str] = "received HTML instead of CSV; the feed session may have expired"


def _default_resilience_config(base_url: str, auth_token: str | None) -> ResilienceConfig:
    headers = {"Accept": "text/csv"}
    if auth_token:
        headers["Authorization"] = f"Bearer {auth_token}"
    return ResilienceConfig(
        name="batch-feed",
        base_url=base_url.rstrip("/") + "/",
        timeout_seconds=_DEFAULT_TIMEOUT_SECONDS,
        ratelimit=RateLimit(max_calls=8, per_seconds=1.0),
        default_headers=headers,
    )


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


@dataclass(slots=True)
class HttpBatchFeed:
    base_url: str
    auth_token: str | None = None
    resilience: ResilienceConfig | None = None
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )

    def __call__(self, *, scope: Scope) -> FeedFetchResult:
        return asyncio.run(self._fetch_async(scope))

    async def _fetch_async(self, scope: Scope) -> FeedFetchResult:
        config = self.resilience or _default_resilience_config(self.base_url, self.auth_token)
        category = scope.category.value
        async with self.client_factory(config) as client:
            listing = await self._fetch_listing(client, category)
            outcomes = await asyncio.gather(
                *(
                    self._fetch_batch(client, category, batch_number, metadata)
                    for batch_number, metadata in listing
                )
            )

        result = FeedFetchResult()
        for outcome in outcomes:
            if isinstance(outcome, FeedFailure):
                result.failures.append(outcome)
            else:
                result.batches.append(outcome)
        log.info(
            "Fetched %d batch(es) for %s (%d failure(s))",
            len(result.batches),
            scope,
            len(result.failures),
        )
        return result

    async def _fetch_listing(self, client: ResilientClient, category: str) -> BatchListing:
        sources: list[BatchListing] = []
        for name, required in (("batches.csv", True), ("history.csv", False)):
            try:
                response = await client.get(f"{category}/{name}")
            except httpx.HTTPError as exc:
                raise FeedReadError(f"Could not fetch {category}/{name}: {exc}") from exc
            if response.status_code == httpx.codes.NOT_FOUND and not required:
                continue
            if response.is_error:
                raise FeedReadError(
                    f"Could not fetch {category}/{name}: HTTP {response.status_code}"
                )
            if looks_like_html(response.text):
                raise FeedReadError(f"{category}/{name}: {_EXPIRED_SESSION}")
            sources.append(parse_batch_listing(response.text))
        return merge_metadata_sources(sources)

    async def _fetch_batch(
        self,
        client: ResilientClient,
        category: str,
        batch_number: str,
        metadata: FeedBatchMetadata,
    ) -> FeedBatch | FeedFailure:
        try:
            path = f"{category}/batches/{quote(batch_file_name(batch_number), safe='')}"
        except FeedReadError as exc:
            log.warning("Skipping batch %r: %s", batch_number, exc)
            return FeedFailure(batch_number, str(exc))
        try:
            response = await client.get(path)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            log.warning("Could not fetch %s: %s", path, exc)
            return FeedFailure(batch_number, str(exc))
        if looks_like_html(response.text):
            log.warning("Unexpected HTML for %s", path)
            return FeedFailure(batch_number, _EXPIRED_SESSION)
        try:
            rows = parse_feed_rows(response.text)
        except FeedReadError as exc:
            log.warning("Could not parse %s: %s", path, exc)
            return FeedFailure(batch_number, str(exc))
        return FeedBatch(batch_number, rows, metadata)


if TYPE_CHECKING:
    _feed_check: BatchFeed = HttpBatchFeed("https://feeds.example")
