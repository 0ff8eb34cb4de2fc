"""Reconciliation defaults for ingest runs."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_env_int

DEFAULT_WRITE_CHUNK_SIZE = 500
DEFAULT_LOOKUP_CHUNK_SIZE = 500


@dataclass(frozen=True, slots=True)
class SyncConfig:
    chunk_size: int = DEFAULT_WRITE_CHUNK_SIZE
    lookup_chunk_size: int = DEFAULT_LOOKUP_CHUNK_SIZE


def get_sync_config() -> SyncConfig:
    return SyncConfig(
        chunk_size=optional_env_int("LOADSYNC_CHUNK_SIZE", DEFAULT_WRITE_CHUNK_SIZE),
        lookup_chunk_size=optional_env_int(
            "LOADSYNC_LOOKUP_CHUNK_SIZE", DEFAULT_LOOKUP_CHUNK_SIZE
        ),
    )
