"""Batch feed read from CSV exports saved on disk.

Layout per category::

    <root>/<category>/batches.csv    batch list, in ingest order
    <root>/<category>/history.csv    optional second listing, lower precedence
    <root>/<category>/<batch>.csv    rows of one batch
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Final

from loadsync.domain.errors import FeedReadError
from loadsync.domain.ports import (
    BatchFeed,
    FeedBatch,
    FeedBatchMetadata,
    FeedFailure,
    FeedFetchResult,
)

from .metadata import merge_metadata_sources
from .schema import BatchListing, batch_file_name, parse_batch_listing, parse_feed_rows

if TYPE_CHECKING:
    from loadsync.domain.model import Scope

log = logging.getLogger(__name__)

LISTING_FILES: Final[tuple[str, ...]] = ("batches.csv", "history.csv")


@dataclass(slots=True)
class CsvDirectoryFeed:
    root: Path
    encoding: str = "utf-8-sig"

    def __call__(self, *, scope: Scope) -> FeedFetchResult:
        directory = self.root / scope.category.value
        if not directory.is_dir():
            raise FeedReadError(f"Feed directory {directory} does not exist")

        listing = self._read_listing(directory)
        result = FeedFetchResult()
        for batch_number, metadata in listing:
            try:
                path = directory / batch_file_name(batch_number)
                text = path.read_text(encoding=self.encoding)
            except (OSError, UnicodeDecodeError, FeedReadError) as exc:
                log.warning("Could not read batch %s in %s: %s", batch_number, directory, exc)
                result.failures.append(FeedFailure(batch_number, f"unreadable batch file: {exc}"))
                continue
            try:
                rows = parse_feed_rows(text)
            except FeedReadError as exc:
                log.warning("Could not parse %s: %s", path, exc)
                result.failures.append(FeedFailure(batch_number, str(exc)))
                continue
            result.batches.append(FeedBatch(batch_number, rows, metadata))

        log.info(
            "Read %d batch(es) from %s (%d failure(s))",
            len(result.batches),
            directory,
            len(result.failures),
        )
        return result

    def _read_listing(self, directory: Path) -> BatchListing:
        sources: list[BatchListing] = []
        for name in LISTING_FILES:
            path = directory / name
            if not path.is_file():
                continue
            try:
                sources.append(parse_batch_listing(path.read_text(encoding=self.encoding)))
            except (OSError, UnicodeDecodeError) as exc:
                raise FeedReadError(f"Could not read batch list {path}: {exc}") from exc
        if sources:
            return merge_metadata_sources(sources)

        # without a listing every batch file is a batch, ordered by name
        return [
            (path.stem, FeedBatchMetadata())
            for path in sorted(directory.glob("*.csv"))
            if path.name not in LISTING_FILES
        ]


if TYPE_CHECKING:
    _feed_check: BatchFeed = CsvDirectoryFeed(Path())
