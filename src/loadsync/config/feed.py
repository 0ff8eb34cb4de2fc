"""Feed source configuration."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .env import optional_env

DEFAULT_TENANT_ID = "default"


@dataclass(frozen=True, slots=True)
class FeedConfig:
    """Where batch feeds and the product catalog come from.

    Exactly one of ``directory`` and ``base_url`` is used; the directory wins
    when both are configured.
    """

    directory: Path | None = None
    base_url: str | None = None
    catalog_path: Path | None = None
    auth_token: str | None = None
    tenant_id: str = DEFAULT_TENANT_ID


def get_feed_config() -> FeedConfig:
    directory = optional_env("LOADSYNC_FEED_DIR")
    catalog = optional_env("LOADSYNC_CATALOG_CSV")
    return FeedConfig(
        directory=Path(directory).expanduser() if directory else None,
        base_url=optional_env("LOADSYNC_FEED_URL"),
        catalog_path=Path(catalog).expanduser() if catalog else None,
        auth_token=optional_env("LOADSYNC_FEED_TOKEN"),
        tenant_id=optional_env("LOADSYNC_TENANT") or DEFAULT_TENANT_ID,
    )
