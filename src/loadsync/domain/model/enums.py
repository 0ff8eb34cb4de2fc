"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class Category(StrEnum):
    """Inventory category an item or batch belongs to within a tenant."""

    ASIS = "asis"
    FINISHED_GOODS = "finished_goods"
    LOCAL_STOCK = "local_stock"
    PARTS = "parts"


class ScanState(StrEnum):
    SCANNED = "scanned"
    PENDING = "pending"


class BatchStatus(StrEnum):
    ACTIVE = "active"
    STAGED = "staged"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"


class ConflictStatus(StrEnum):
    OPEN = "open"
    RESOLVED = "resolved"


class ChangeType(StrEnum):
    ITEM_APPEARED = "item_appeared"
    ITEM_BATCH_CHANGED = "item_batch_changed"
    ITEM_ORPHANED = "item_orphaned"
    ITEM_REAPPEARED = "item_reappeared"
