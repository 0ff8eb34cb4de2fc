"""Normalization stage: raw feed rows to strict inventory records.

Responsibilities of this stage:
- coerce quantities and batch timestamps into usable values
- resolve models against the product catalog
- assign every batch its ingest rank (position in the combined feed)
- never raise for a malformed row; degrade to defaults instead
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Final

from loadsync.domain.model import EPOCH, UNKNOWN_PRODUCT_TYPE, Category, ScanState

if TYPE_CHECKING:
    from collections.abc import Sequence

    from loadsync.domain.model import Scope
    from loadsync.domain.ports import CatalogLookup, CatalogProduct, FeedBatch, FeedRow

log = logging.getLogger(__name__)

BATCH_TIMESTAMP_FORMATS: Final[tuple[str, ...]] = ("%Y/%m/%d %H:%M:%S", "%Y/%m/%d %H:%M")
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


@dataclass(frozen=True, slots=True, kw_only=True)
class NormalizedRecord:
    serial: str | None
    model: str
    quantity: int
    category: Category
    product_ref: str | None
    product_type: str
    batch_number: str
    batch_ingest_rank: int
    batch_timestamp: datetime
    order_ref: str | None = None
    feed_status: str | None = None
    feed_message: str | None = None
    feed_quantity: int | None = None

    @property
    def scan_state(self) -> ScanState:
        return ScanState.SCANNED if self.serial else ScanState.PENDING

    @property
    def sort_key(self) -> tuple[datetime, int]:
        return (self.batch_timestamp, self.batch_ingest_rank)


@dataclass(slots=True)
class NormalizationResult:
    records: list[NormalizedRecord] = field(default_factory=list)
    skipped_rows: int = 0
    catalog_misses: int = 0


def clean(value: str | None) -> str | None:
    """Strip ``value`` and map blanks to ``None``."""

    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def parse_quantity(raw: str | None) -> tuple[int, int | None]:
    """Return ``(quantity, feed_quantity)`` for a raw quantity cell.

    The feed value is the leading integer of the cell, if any. The usable
    quantity falls back to 1 whenever that value is missing or not positive.
    """

    if raw is None:
        return 1, None
    match = _LEADING_INT.match(raw)
    if match is None:
        return 1, None
    parsed = int(match.group(1))
    return (parsed if parsed > 0 else 1), parsed


def parse_batch_timestamp(raw: str | None) -> datetime:
    """Parse a feed scan timestamp; anything unreadable sorts as epoch zero."""

    value = clean(raw)
    if value is None:
        return EPOCH
    for fmt in BATCH_TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(value, fmt).replace(tzinfo=UTC)
        except ValueError:
            continue
    log.debug("Unparsable batch timestamp %r, using epoch", value)
    return EPOCH


@dataclass(slots=True)
class RecordNormalizer:
    """Turn ordered feed batches into normalized records for one scope."""

    catalog: CatalogLookup
    _cache: dict[str, CatalogProduct | None] = field(init=False, default_factory=dict)

    def __call__(self, batches: Sequence[FeedBatch], *, scope: Scope) -> NormalizationResult:
        result = NormalizationResult()
        for rank, batch in enumerate(batches):
            timestamp = parse_batch_timestamp(batch.metadata.scanned_at)
            for row in batch.rows:
                record = self._normalize_row(
                    row,
                    scope=scope,
                    batch_number=batch.batch_number,
                    rank=rank,
                    timestamp=timestamp,
                )
                if record is None:
                    result.skipped_rows += 1
                    continue
                if record.product_ref is None:
                    result.catalog_misses += 1
                result.records.append(record)
        if result.skipped_rows:
            log.warning(
                "Skipped %d row(s) without serial or model in %s",
                result.skipped_rows,
                scope,
            )
        return result

    def _normalize_row(
        self,
        row: FeedRow,
        *,
        scope: Scope,
        batch_number: str,
        rank: int,
        timestamp: datetime,
    ) -> NormalizedRecord | None:
        serial = clean(row.serial)
        model = clean(row.model)
        if serial is None and model is None:
            return None
        quantity, feed_quantity = parse_quantity(row.quantity)
        product = self._lookup(model)
        return NormalizedRecord(
            serial=serial,
            model=model or "",
            quantity=quantity,
            category=scope.category,
            product_ref=product.id if product else None,
            product_type=product.product_type if product else UNKNOWN_PRODUCT_TYPE,
            # a row may name its own batch; rank and timestamp stay with the container
            batch_number=clean(row.batch_number) or batch_number,
            batch_ingest_rank=rank,
            batch_timestamp=timestamp,
            order_ref=clean(row.order_ref),
            feed_status=clean(row.status),
            feed_message=clean(row.message),
            feed_quantity=feed_quantity,
        )

    def _lookup(self, model: str | None) -> CatalogProduct | None:
        if model is None:
            return None
        if model not in self._cache:
            self._cache[model] = self.catalog.lookup(model)
        return self._cache[model]


def normalize_batches(
    batches: Sequence[FeedBatch],
    *,
    scope: Scope,
    catalog: CatalogLookup,
) -> NormalizationResult:
    return RecordNormalizer(catalog)(batches, scope=scope)
