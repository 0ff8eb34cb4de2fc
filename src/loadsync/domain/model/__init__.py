"""Domain model package."""

from __future__ import annotations

from .conflicts import ChangeLogEntry, ConflictRecord
from .entity import EPOCH, new_id, utc_now
from .enums import BatchStatus, Category, ChangeType, ConflictStatus, ScanState
from .inventory import (
    BATCH_FEED_FIELDS,
    BATCH_HUMAN_FIELDS,
    UNKNOWN_PRODUCT_TYPE,
    BatchRecord,
    ItemRecord,
    is_customized,
)
from .scope import Scope

__all__ = [
    "BATCH_FEED_FIELDS",
    "BATCH_HUMAN_FIELDS",
    "EPOCH",
    "UNKNOWN_PRODUCT_TYPE",
    "BatchRecord",
    "BatchStatus",
    "Category",
    "ChangeLogEntry",
    "ChangeType",
    "ConflictRecord",
    "ConflictStatus",
    "ItemRecord",
    "Scope",
    "ScanState",
    "is_customized",
    "new_id",
    "utc_now",
]
