"""Batch metadata sync: keep one BatchRecord per batch seen in the feed."""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Final

from loadsync.domain.model import BatchRecord, BatchStatus

from .normalize import clean, parse_quantity

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence
    from datetime import datetime

    from loadsync.domain.model import Scope
    from loadsync.domain.ports import FeedBatch, FeedBatchMetadata

    from .canonicalize import CanonicalSet

_NAMEABLE_STATUS: Final[str] = "FOR SALE"
_LETTER = re.compile(r"\bLETTER\s+([A-Z]{1,2})\b")
_SHORT_TOKEN = re.compile(r"^[A-Z]{1,2}$")
_MONTH_DAY = re.compile(r"\b(\d{1,2}/\d{1,2})\b")
_ORDINAL_DAY = re.compile(r"\b(\d{1,2}(?:ST|ND|RD|TH))\b")


def derive_display_name(notes: str | None, status: str | None) -> str | None:
    """Guess a short display name from the feed's free-text batch notes.

    Only batches that are unlabeled or ``FOR SALE`` get a name. Tried in order:
    ``LETTER X``, a leading one or two letter token, an ``M/D`` date and an
    ordinal day such as ``3RD``.
    """

    text = clean(notes)
    if text is None:
        return None
    state = (status or "").strip().upper()
    if state and state != _NAMEABLE_STATUS:
        return None
    upper = text.upper()

    if match := _LETTER.search(upper):
        return match.group(1)
    first = next((token for token in re.split(r"[\s-]+", upper) if token), None)
    if first and _SHORT_TOKEN.match(first):
        return first
    if match := _MONTH_DAY.search(upper):
        return match.group(1)
    if match := _ORDINAL_DAY.search(upper):
        return match.group(1)
    return None


def feed_field_values(metadata: FeedBatchMetadata) -> dict[str, Any]:
    """Map feed batch metadata onto the ``feed_*`` columns of a BatchRecord."""

    units = clean(metadata.units)
    return {
        "feed_status": clean(metadata.status),
        "feed_cso_status": clean(metadata.cso_status),
        "feed_cso_reference": clean(metadata.cso_reference),
        "feed_pricing": clean(metadata.pricing),
        "feed_submitted_date": clean(metadata.submitted_date),
        "feed_scanned_at": clean(metadata.scanned_at),
        "feed_notes": clean(metadata.notes),
        "feed_units": parse_quantity(units)[1] if units else None,
    }


def count_items_by_batch(canonical: CanonicalSet) -> Counter[str]:
    counts: Counter[str] = Counter(entry.batch_number for entry in canonical.canonical)
    counts.update(record.batch_number for record in canonical.serialless)
    return counts


def feed_batch_numbers(batches: Iterable[FeedBatch], canonical: CanonicalSet) -> list[str]:
    """Every batch number the run touches, in first-seen order.

    Rows can name a batch of their own, so batches referenced only by records
    are included after the listed ones. A losing sighting counts as a touch too.
    """

    ordered: dict[str, None] = {batch.batch_number: None for batch in batches}
    for entry in canonical.canonical:
        ordered.setdefault(entry.batch_number, None)
        for number in sorted(entry.losing_batches):
            ordered.setdefault(number, None)
    for record in canonical.serialless:
        ordered.setdefault(record.batch_number, None)
    return list(ordered)


@dataclass(slots=True)
class BatchSyncPlan:
    new: list[BatchRecord] = field(default_factory=list)
    updated: list[BatchRecord] = field(default_factory=list)
    unchanged: int = 0

    @property
    def records(self) -> list[BatchRecord]:
        return [*self.new, *self.updated]


def plan_batch_sync(
    scope: Scope,
    batches: Sequence[FeedBatch],
    batch_numbers: Sequence[str],
    stored: Mapping[str, BatchRecord],
    item_counts: Mapping[str, int],
    *,
    now: datetime,
) -> BatchSyncPlan:
    """Decide which BatchRecords to insert and which feed fields to refresh.

    Human-edited fields are never written, except that a blank display name is
    filled from the feed notes when a name can be derived.
    """

    metadata_by_batch = {batch.batch_number: batch.metadata for batch in batches}
    plan = BatchSyncPlan()

    for batch_number in batch_numbers:
        metadata = metadata_by_batch.get(batch_number)
        feed_values: dict[str, Any] = feed_field_values(metadata) if metadata is not None else {}
        count = item_counts.get(batch_number, 0)
        existing = stored.get(batch_number)

        if existing is None:
            plan.new.append(
                BatchRecord(
                    tenant_id=scope.tenant_id,
                    category=scope.category,
                    batch_number=batch_number,
                    status=BatchStatus.ACTIVE,
                    item_count=count,
                    display_name=derive_display_name(
                        feed_values.get("feed_notes"),
                        feed_values.get("feed_status"),
                    ),
                    created_at=now,
                    updated_at=now,
                    **feed_values,
                )
            )
            continue

        changes: dict[str, Any] = {
            name: value
            for name, value in feed_values.items()
            if value is not None and getattr(existing, name) != value
        }
        if not clean(existing.display_name):
            derived = derive_display_name(
                changes.get("feed_notes", existing.feed_notes),
                changes.get("feed_status", existing.feed_status),
            )
            if derived is not None:
                changes["display_name"] = derived
        if existing.item_count != count:
            changes["item_count"] = count

        if not changes:
            plan.unchanged += 1
            continue
        plan.updated.append(replace(existing, updated_at=now, **changes))

    return plan


__all__ = [
    "BatchSyncPlan",
    "count_items_by_batch",
    "derive_display_name",
    "feed_batch_numbers",
    "feed_field_values",
    "plan_batch_sync",
]
