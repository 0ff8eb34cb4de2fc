"""Ports for reading batch feeds and the product catalog."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from loadsync.domain.model import Scope


@dataclass(frozen=True, slots=True)
class FeedRow:
    """One scanned row as delivered by the feed; every value is a raw string."""

    order_ref: str | None = None
    model: str | None = None
    serial: str | None = None
    quantity: str | None = None
    batch_number: str | None = None
    status: str | None = None
    message: str | None = None


@dataclass(frozen=True, slots=True)
class FeedBatchMetadata:
    status: str | None = None
    cso_status: str | None = None
    cso_reference: str | None = None
    pricing: str | None = None
    submitted_date: str | None = None
    scanned_at: str | None = None
    notes: str | None = None
    units: str | None = None


@dataclass(frozen=True, slots=True)
class FeedBatch:
    batch_number: str
    rows: tuple[FeedRow, ...] = ()
    metadata: FeedBatchMetadata = field(default_factory=FeedBatchMetadata)


@dataclass(frozen=True, slots=True)
class FeedFailure:
    """A batch the feed listed but whose rows could not be read."""

    batch_number: str
    reason: str


@dataclass(slots=True)
class FeedFetchResult:
    """Batches in source order; position in ``batches`` is the ingest rank."""

    batches: list[FeedBatch] = field(default_factory=list)
    failures: list[FeedFailure] = field(default_factory=list)


@runtime_checkable
class BatchFeed(Protocol):
    """Callable port returning every batch currently published for a scope."""

    def __call__(self, *, scope: Scope) -> FeedFetchResult: ...


@dataclass(frozen=True, slots=True)
class CatalogProduct:
    id: str
    product_type: str


@runtime_checkable
class CatalogLookup(Protocol):
    def lookup(self, model: str) -> CatalogProduct | None: ...


__all__ = [
    "BatchFeed",
    "CatalogLookup",
    "CatalogProduct",
    "FeedBatch",
    "FeedBatchMetadata",
    "FeedFailure",
    "FeedFetchResult",
    "FeedRow",
]
