"""Merge batch metadata published by more than one listing source."""

from __future__ import annotations

from dataclasses import fields, replace
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from loadsync.domain.ports import FeedBatchMetadata

    from .schema import BatchListing


def merge_metadata(primary: FeedBatchMetadata, fallback: FeedBatchMetadata) -> FeedBatchMetadata:
    """Fill the empty fields of ``primary`` from ``fallback``."""

    missing = {
        spec.name: getattr(fallback, spec.name)
        for spec in fields(primary)
        if getattr(primary, spec.name) is None and getattr(fallback, spec.name) is not None
    }
    return replace(primary, **missing) if missing else primary


def merge_metadata_sources(sources: Iterable[BatchListing]) -> BatchListing:
    """Combine listings ordered from highest to lowest precedence.

    Batches keep the order in which they are first listed. For every field the
    first non-empty value, taken in source order, wins.
    """

    merged: dict[str, FeedBatchMetadata] = {}
    for listing in sources:
        for batch_number, metadata in listing:
            current = merged.get(batch_number)
            if current is None:
                merged[batch_number] = metadata
            else:
                merged[batch_number] = merge_metadata(current, metadata)
    return list(merged.items())
