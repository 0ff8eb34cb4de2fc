"""Stored inventory records: items and the batches (loads) they belong to."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

from .entity import new_id, utc_now
from .enums import BatchStatus, Category, ScanState
from .scope import Scope

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

UNKNOWN_PRODUCT_TYPE: Final[str] = "UNKNOWN"


@dataclass(eq=False, kw_only=True)
class ItemRecord:
    """One physical inventory item (or a quantity of a serial-less model).

    Within a scope a non-empty ``serial`` identifies at most one record. Items
    without a serial cannot be matched across runs and are never deduplicated.
    """

    tenant_id: str
    category: Category
    model: str
    serial: str | None = None
    quantity: int = 1
    product_ref: str | None = None
    product_type: str = UNKNOWN_PRODUCT_TYPE
    batch_number: str | None = None
    scan_state: ScanState = ScanState.PENDING

    # pass-through from the feed, overwritten on every run
    feed_status: str | None = None
    feed_message: str | None = None
    feed_order_ref: str | None = None
    feed_quantity: int | None = None

    # user edits, never written by reconciliation
    notes: str | None = None
    manual_status: str | None = None

    orphaned: bool = False
    orphaned_at: datetime | None = None

    id: UUID = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @property
    def scope(self) -> Scope:
        return Scope(self.tenant_id, self.category)


# Fields a person edits through the UI. Reconciliation never writes them, and a
# preserving resync carries them across the wipe.
BATCH_HUMAN_FIELDS: Final[tuple[str, ...]] = (
    "display_name",
    "notes",
    "color_tag",
    "sub_category",
    "prep_tagged",
    "prep_wrapped",
    "review_requested",
    "review_requested_at",
    "review_requested_by",
)

# Fields copied from the feed's batch metadata.
BATCH_FEED_FIELDS: Final[tuple[str, ...]] = (
    "feed_status",
    "feed_cso_status",
    "feed_cso_reference",
    "feed_pricing",
    "feed_submitted_date",
    "feed_scanned_at",
    "feed_notes",
    "feed_units",
)


@dataclass(eq=False, kw_only=True)
class BatchRecord:
    """A load: a named group of items that moves through the warehouse together."""

    tenant_id: str
    category: Category
    batch_number: str
    status: BatchStatus = BatchStatus.ACTIVE
    item_count: int = 0

    display_name: str | None = None
    notes: str | None = None
    color_tag: str | None = None
    sub_category: str | None = None
    prep_tagged: bool = False
    prep_wrapped: bool = False
    review_requested: bool = False
    review_requested_at: datetime | None = None
    review_requested_by: str | None = None

    feed_status: str | None = None
    feed_cso_status: str | None = None
    feed_cso_reference: str | None = None
    feed_pricing: str | None = None
    feed_submitted_date: str | None = None
    feed_scanned_at: str | None = None
    feed_notes: str | None = None
    feed_units: int | None = None

    id: UUID = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @property
    def scope(self) -> Scope:
        return Scope(self.tenant_id, self.category)

    def human_fields(self) -> dict[str, object]:
        return {name: getattr(self, name) for name in BATCH_HUMAN_FIELDS}


def is_customized(name: str, value: object) -> bool:
    """Return whether a human field holds something other than its blank default."""

    if name not in BATCH_HUMAN_FIELDS:
        raise ValueError(f"{name!r} is not a human-edited batch field")
    if value is None or value is False:
        return False
    return not (isinstance(value, str) and not value.strip())
