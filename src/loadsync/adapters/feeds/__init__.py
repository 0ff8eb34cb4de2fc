"""Batch feed adapters."""

from __future__ import annotations

from .csv_directory import CsvDirectoryFeed
from .http_feed import HttpBatchFeed
from .metadata import merge_metadata, merge_metadata_sources
from .schema import (
    BatchListingPayload,
    FeedRowPayload,
    batch_file_name,
    looks_like_html,
    parse_batch_listing,
    parse_feed_rows,
)

__all__ = [
    "BatchListingPayload",
    "CsvDirectoryFeed",
    "FeedRowPayload",
    "HttpBatchFeed",
    "batch_file_name",
    "looks_like_html",
    "merge_metadata",
    "merge_metadata_sources",
    "parse_batch_listing",
    "parse_feed_rows",
]
