"""Persistence stage: diff canonical records against stored items and write the delta.

Planning is pure: it takes the stored rows read up front and decides every
insert, update and orphan. Applying the plan writes in bounded chunks, each in
its own unit of work, so a failure leaves earlier chunks committed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from itertools import batched
from typing import TYPE_CHECKING, Any, Final

from loadsync.domain.errors import PersistenceWriteError
from loadsync.domain.model import ChangeLogEntry, ChangeType, ItemRecord

if TYPE_CHECKING:
    from collections.abc import Callable, Collection, Iterable, Sequence
    from datetime import datetime

    from loadsync.domain.model import Scope
    from loadsync.domain.ports import InventoryRepositories, UnitOfWorkFactory

    from .canonicalize import CanonicalSet
    from .normalize import NormalizedRecord

log = logging.getLogger(__name__)

# Attributes reconciliation owns on a stored item; anything else belongs to users.
_RECONCILED_FIELDS: Final[tuple[str, ...]] = (
    "model",
    "quantity",
    "product_ref",
    "product_type",
    "batch_number",
    "scan_state",
    "feed_status",
    "feed_message",
    "feed_order_ref",
    "feed_quantity",
    "orphaned",
    "orphaned_at",
)


@dataclass(slots=True)
class ReconciliationPlan:
    inserts: list[ItemRecord] = field(default_factory=list)
    updates: list[ItemRecord] = field(default_factory=list)
    orphans: list[ItemRecord] = field(default_factory=list)
    unchanged: int = 0
    changes: list[ChangeLogEntry] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.inserts or self.updates or self.orphans)


@dataclass(slots=True)
class AppliedCounts:
    inserted: int = 0
    updated: int = 0
    orphaned: int = 0
    changes_logged: int = 0


def _reconciled_values(item: ItemRecord) -> tuple[object, ...]:
    return tuple(getattr(item, name) for name in _RECONCILED_FIELDS)


def _new_item(record: NormalizedRecord, scope: Scope, now: datetime) -> ItemRecord:
    return ItemRecord(
        tenant_id=scope.tenant_id,
        category=scope.category,
        serial=record.serial,
        model=record.model,
        quantity=record.quantity,
        product_ref=record.product_ref,
        product_type=record.product_type,
        batch_number=record.batch_number,
        scan_state=record.scan_state,
        feed_status=record.feed_status,
        feed_message=record.feed_message,
        feed_order_ref=record.order_ref,
        feed_quantity=record.feed_quantity,
        created_at=now,
        updated_at=now,
    )


def _updated_item(stored: ItemRecord, record: NormalizedRecord, now: datetime) -> ItemRecord:
    return replace(
        stored,
        model=record.model or stored.model,
        quantity=record.quantity,
        product_ref=record.product_ref,
        product_type=record.product_type,
        batch_number=record.batch_number,
        scan_state=record.scan_state,
        feed_status=record.feed_status,
        feed_message=record.feed_message,
        feed_order_ref=record.order_ref,
        feed_quantity=record.feed_quantity,
        orphaned=False,
        orphaned_at=None,
        updated_at=now,
    )


def _change(
    scope: Scope,
    change_type: ChangeType,
    item: ItemRecord,
    *,
    old: str | None,
    new: str | None,
    now: datetime,
) -> ChangeLogEntry:
    return ChangeLogEntry(
        tenant_id=scope.tenant_id,
        category=scope.category,
        change_type=change_type,
        serial=item.serial,
        model=item.model,
        batch_number=new or old,
        old_value=old,
        new_value=new,
        recorded_at=now,
    )


def build_plan(
    scope: Scope,
    canonical: CanonicalSet,
    stored: Iterable[ItemRecord],
    *,
    now: datetime,
    unreadable_batches: Collection[str] = (),
) -> ReconciliationPlan:
    """Compare canonical records with the stored rows of ``scope``.

    ``unreadable_batches`` could not be fetched; stored rows assigned to one of
    them are left where they are instead of being orphaned. A serial dropped by
    cross-category exclusion is absent here like any other.
    """

    plan = ReconciliationPlan()
    stored_by_serial: dict[str, ItemRecord] = {}
    for item in stored:
        if item.serial:
            stored_by_serial[item.serial] = item

    for entry in canonical.canonical:
        record = entry.record
        existing = stored_by_serial.get(entry.serial)
        if existing is None:
            item = _new_item(record, scope, now)
            plan.inserts.append(item)
            plan.changes.append(
                _change(
                    scope,
                    ChangeType.ITEM_APPEARED,
                    item,
                    old=None,
                    new=item.batch_number,
                    now=now,
                )
            )
            continue

        updated = _updated_item(existing, record, now)
        if _reconciled_values(updated) == _reconciled_values(existing):
            plan.unchanged += 1
            continue
        plan.updates.append(updated)
        if existing.orphaned:
            plan.changes.append(
                _change(
                    scope,
                    ChangeType.ITEM_REAPPEARED,
                    updated,
                    old=None,
                    new=updated.batch_number,
                    now=now,
                )
            )
        elif existing.batch_number != updated.batch_number:
            plan.changes.append(
                _change(
                    scope,
                    ChangeType.ITEM_BATCH_CHANGED,
                    updated,
                    old=existing.batch_number,
                    new=updated.batch_number,
                    now=now,
                )
            )

    for record in canonical.serialless:
        item = _new_item(record, scope, now)
        plan.inserts.append(item)
        plan.changes.append(
            _change(
                scope, ChangeType.ITEM_APPEARED, item, old=None, new=item.batch_number, now=now
            )
        )

    present = canonical.serials()
    skipped_batches = set(unreadable_batches)
    for serial, item in stored_by_serial.items():
        if serial in present or item.orphaned:
            continue
        if item.batch_number is not None and item.batch_number in skipped_batches:
            continue
        orphan = replace(item, batch_number=None, orphaned=True, orphaned_at=now, updated_at=now)
        plan.orphans.append(orphan)
        plan.changes.append(
            _change(
                scope, ChangeType.ITEM_ORPHANED, orphan, old=item.batch_number, new=None, now=now
            )
        )

    return plan


def write_in_chunks[T](
    uow_factory: UnitOfWorkFactory,
    rows: Sequence[T],
    write: Callable[[InventoryRepositories, tuple[T, ...]], None],
    *,
    phase: str,
    chunk_size: int,
) -> int:
    """Write ``rows`` ``chunk_size`` at a time, one committed transaction per chunk.

    Returns the number of rows written. On failure raises
    :class:`PersistenceWriteError` with the number of rows already committed.
    """

    committed = 0
    for chunk in batched(rows, chunk_size):
        try:
            with uow_factory() as uow:
                write(uow.repositories, chunk)
                uow.commit()
        except Exception as exc:
            log.exception("Chunk write failed during %s after %d row(s)", phase, committed)
            raise PersistenceWriteError(phase, committed, str(exc)) from exc
        committed += len(chunk)
        log.debug("%s: committed %d/%d", phase, committed, len(rows))
    return committed


def apply_plan(
    plan: ReconciliationPlan,
    uow_factory: UnitOfWorkFactory,
    *,
    chunk_size: int,
    counts: AppliedCounts | None = None,
) -> AppliedCounts:
    """Write ``plan``: updates, then inserts, then orphans, then the change log.

    ``counts`` is filled in as phases complete so callers still see partial
    progress when a later phase raises.
    """

    applied = counts if counts is not None else AppliedCounts()

    def upsert(repos: InventoryRepositories, chunk: tuple[ItemRecord, ...]) -> None:
        repos.items.upsert_items(chunk)

    def log_changes(repos: InventoryRepositories, chunk: tuple[ChangeLogEntry, ...]) -> None:
        repos.changes.add_entries(chunk)

    phases: tuple[tuple[str, Sequence[Any], Callable[..., None], str], ...] = (
        ("update", plan.updates, upsert, "updated"),
        ("insert", plan.inserts, upsert, "inserted"),
        ("orphan", plan.orphans, upsert, "orphaned"),
        ("change_log", plan.changes, log_changes, "changes_logged"),
    )
    for phase, rows, write, counter in phases:
        try:
            written = write_in_chunks(uow_factory, rows, write, phase=phase, chunk_size=chunk_size)
        except PersistenceWriteError as exc:
            setattr(applied, counter, exc.committed)
            raise
        setattr(applied, counter, written)
    return applied
