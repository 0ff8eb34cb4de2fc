from __future__ import annotations

import asyncio

import httpx
from httpx_retries import Retry

from loadsync.adapters.http_resilience import (
    RateLimit,
    ResilienceConfig,
    ResilientClient,
    RetryPolicy,
)


def test_retry_policy_builds_retry() -> None:
    retry = RetryPolicy(total=2, status_forcelist=frozenset({503})).build()

    assert isinstance(retry, Retry)


def test_client_applies_base_url_and_headers() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, text="ok")

    config = ResilienceConfig(
        name="test",
        base_url="https://feeds.test/export/",
        ratelimit=RateLimit(max_calls=10, per_seconds=1.0),
        default_headers={"Accept": "text/csv"},
    )

    async def fetch() -> list[str]:
        async with ResilientClient(config, transport=httpx.MockTransport(handler)) as client:
            responses = await asyncio.gather(client.get("a.csv"), client.get("b.csv"))
        return [response.text for response in responses]

    assert asyncio.run(fetch()) == ["ok", "ok"]
    assert sorted(str(request.url) for request in seen) == [
        "https://feeds.test/export/a.csv",
        "https://feeds.test/export/b.csv",
    ]
    assert {request.headers["Accept"] for request in seen} == {"text/csv"}
