"""Destructive category resync that keeps human-edited batch metadata.

The feed is read before anything is deleted, so an unreachable feed never
leaves the category empty. Held metadata is re-applied only to batches the new
feed brings back; the rest is dropped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from loadsync.domain.errors import FeedReadError
from loadsync.domain.model import is_customized, utc_now

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from loadsync.domain.model import Scope
    from loadsync.domain.ports import BatchFeed, UnitOfWorkFactory
    from loadsync.domain.reconciliation import ReconciliationEngine, ReconciliationSummary

log = logging.getLogger(__name__)

type HeldMetadata = dict[str, dict[str, object]]


@dataclass(slots=True)
class WipeCounts:
    items: int = 0
    batches: int = 0
    conflicts: int = 0
    changes: int = 0

    def as_dict(self) -> dict[str, int]:
        return {
            "items": self.items,
            "batches": self.batches,
            "conflicts": self.conflicts,
            "changes": self.changes,
        }


@dataclass(slots=True)
class ResyncResult:
    summary: ReconciliationSummary
    preserve_metadata: bool
    preserved_batches: int = 0
    restored_batches: int = 0
    wiped: WipeCounts = field(default_factory=WipeCounts)

    def as_dict(self) -> dict[str, object]:
        payload = self.summary.as_dict()
        payload.update(
            {
                "preserveMetadata": self.preserve_metadata,
                "preservedBatches": self.preserved_batches,
                "restoredBatches": self.restored_batches,
                "wiped": self.wiped.as_dict(),
            }
        )
        return payload


def snapshot_metadata(uow_factory: UnitOfWorkFactory, scope: Scope) -> HeldMetadata:
    """Hold every customized human field, keyed by batch number."""

    held: HeldMetadata = {}
    with uow_factory() as uow:
        for batch in uow.repositories.batches.list_for_scope(scope):
            fields = {
                name: value
                for name, value in batch.human_fields().items()
                if is_customized(name, value)
            }
            if fields:
                held[batch.batch_number] = fields
    return held


def wipe_scope(uow_factory: UnitOfWorkFactory, scope: Scope) -> WipeCounts:
    """Delete change log, conflicts, items and batches of ``scope`` in one transaction."""

    with uow_factory() as uow:
        repos = uow.repositories
        counts = WipeCounts(
            changes=repos.changes.delete_for_scope(scope),
            conflicts=repos.conflicts.delete_for_scope(scope),
            items=repos.items.delete_for_scope(scope),
            batches=repos.batches.delete_for_scope(scope),
        )
        uow.commit()
    log.info(
        "Wiped %s: %d item(s), %d batch(es), %d conflict(s), %d change(s)",
        scope,
        counts.items,
        counts.batches,
        counts.conflicts,
        counts.changes,
    )
    return counts


def restore_metadata(
    uow_factory: UnitOfWorkFactory,
    scope: Scope,
    held: HeldMetadata,
    *,
    now: datetime,
) -> int:
    """Re-apply held fields to batches that exist again; returns how many were restored."""

    if not held:
        return 0
    with uow_factory() as uow:
        repos = uow.repositories
        current = repos.batches.read_batch_fields(scope, list(held))
        restored = [
            replace(batch, updated_at=now, **held[batch_number])
            for batch_number, batch in current.items()
        ]
        repos.batches.upsert_batches(restored)
        uow.commit()
    dropped = len(held) - len(restored)
    if dropped:
        log.info("Dropped held metadata for %d batch(es) no longer in the feed", dropped)
    return len(restored)


def resync_category(
    scope: Scope,
    feed: BatchFeed,
    *,
    engine: ReconciliationEngine,
    unit_of_work_factory: UnitOfWorkFactory,
    preserve_metadata: bool = True,
    clock: Callable[[], datetime] = utc_now,
) -> ResyncResult:
    """Wipe ``scope`` and reload it from ``feed``.

    With ``preserve_metadata`` (the default) customized human fields survive
    for every batch the fresh feed still contains. Passing ``False`` performs a
    hard reset. Raises :class:`FeedReadError` without touching storage when
    the feed yields nothing readable.
    """

    fetched = feed(scope=scope)
    if not fetched.batches and fetched.failures:
        raise FeedReadError(
            f"Feed for {scope} returned no readable batches "
            f"({len(fetched.failures)} failure(s)); nothing was wiped"
        )

    held = snapshot_metadata(unit_of_work_factory, scope) if preserve_metadata else {}
    wiped = wipe_scope(unit_of_work_factory, scope)
    summary = engine.reconcile(scope, fetched.batches, fetched.failures)
    restored = restore_metadata(unit_of_work_factory, scope, held, now=clock())

    log.info(
        "Resynced %s: %d batch(es) held, %d restored, completed=%s",
        scope,
        len(held),
        restored,
        summary.completed,
    )
    return ResyncResult(
        summary=summary,
        preserve_metadata=preserve_metadata,
        preserved_batches=len(held),
        restored_batches=restored,
        wiped=wiped,
    )
