"""Orchestrator for one reconciliation pass over a scope.

Everything that decides ownership (normalization, canonicalization, exclusion
and conflict detection) finishes before the first write. Writes then happen in
order: batch records, conflict replacement, item delta.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from loadsync.domain.errors import PersistenceWriteError
from loadsync.domain.model import utc_now

from .batches import count_items_by_batch, feed_batch_numbers, plan_batch_sync
from .canonicalize import canonicalize
from .conflicts import detect_conflicts
from .exclusion import exclude_cross_category, find_cross_category_serials
from .normalize import normalize_batches
from .persist import AppliedCounts, apply_plan, build_plan, write_in_chunks

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from datetime import datetime

    from loadsync.domain.model import BatchRecord, ConflictRecord, Scope
    from loadsync.domain.ports import (
        CatalogLookup,
        FeedBatch,
        FeedFailure,
        InventoryRepositories,
        UnitOfWorkFactory,
    )

log = logging.getLogger(__name__)


@dataclass(slots=True)
class ReconciliationSummary:
    batches_in_feed: int = 0
    unique_batches: int = 0
    new_batches: int = 0
    updated_batches: int = 0
    items_processed: int = 0
    rows_skipped: int = 0
    conflicts_logged: int = 0
    cross_type_skipped: int = 0
    items_inserted: int = 0
    items_updated: int = 0
    items_orphaned: int = 0
    changes_logged: int = 0
    errors: list[str] = field(default_factory=list)
    completed: bool = False

    def as_dict(self) -> dict[str, object]:
        return {
            "batchesInFeed": self.batches_in_feed,
            "uniqueBatches": self.unique_batches,
            "newBatches": self.new_batches,
            "updatedBatches": self.updated_batches,
            "itemsProcessed": self.items_processed,
            "rowsSkipped": self.rows_skipped,
            "conflictsLogged": self.conflicts_logged,
            "crossTypeSkipped": self.cross_type_skipped,
            "itemsInserted": self.items_inserted,
            "itemsUpdated": self.items_updated,
            "itemsOrphaned": self.items_orphaned,
            "changesLogged": self.changes_logged,
            "errors": list(self.errors),
            "completed": self.completed,
        }

    def record_writes(self, counts: AppliedCounts) -> None:
        self.items_inserted = counts.inserted
        self.items_updated = counts.updated
        self.items_orphaned = counts.orphaned
        self.changes_logged = counts.changes_logged


@dataclass(slots=True, kw_only=True)
class ReconciliationEngine:
    """Run a full reconciliation pass from feed batches to persisted rows."""

    uow_factory: UnitOfWorkFactory
    catalog: CatalogLookup
    chunk_size: int = 500
    lookup_chunk_size: int = 500
    clock: Callable[[], datetime] = utc_now

    def reconcile(
        self,
        scope: Scope,
        batches: Sequence[FeedBatch],
        failures: Sequence[FeedFailure] = (),
    ) -> ReconciliationSummary:
        """Reconcile ``batches`` (in source order) into the stored state of ``scope``.

        Feed failures are recorded in ``errors`` and the pass continues; items
        of an unreadable batch are not orphaned. A write failure stops the pass
        and is reported through the returned summary with ``completed=False``.
        """

        now = self.clock()
        summary = ReconciliationSummary(batches_in_feed=len(batches))
        for failure in failures:
            log.warning("Batch %s could not be read: %s", failure.batch_number, failure.reason)
            summary.errors.append(f"{failure.batch_number}: {failure.reason}")
        if failures and not batches:
            log.error("No readable batches for %s, skipping reconciliation", scope)
            summary.errors.append("no batches could be read; nothing was written")
            return summary

        normalized = normalize_batches(batches, scope=scope, catalog=self.catalog)
        summary.rows_skipped = normalized.skipped_rows
        canonical = canonicalize(normalized.records)

        with self.uow_factory() as uow:
            repos = uow.repositories
            owned = find_cross_category_serials(
                repos.items,
                scope,
                canonical.serials(),
                chunk_size=self.lookup_chunk_size,
            )
            stored_items = repos.items.list_for_scope(scope)
            stored_batches = repos.batches.read_batch_fields(scope)

        exclusion = exclude_cross_category(canonical, owned)
        kept = exclusion.kept
        conflicts = detect_conflicts(kept.canonical, scope=scope, detected_at=now)
        batch_numbers = feed_batch_numbers(batches, kept)
        batch_plan = plan_batch_sync(
            scope,
            batches,
            batch_numbers,
            stored_batches,
            count_items_by_batch(kept),
            now=now,
        )
        item_plan = build_plan(
            scope,
            kept,
            stored_items,
            now=now,
            unreadable_batches=[failure.batch_number for failure in failures],
        )

        summary.unique_batches = len(batch_numbers)
        summary.items_processed = len(kept)
        summary.cross_type_skipped = exclusion.skipped
        log.info(
            "Planned %s: %d batch(es), %d item(s), %d conflict(s), %d insert(s), "
            "%d update(s), %d orphan(s)",
            scope,
            summary.unique_batches,
            summary.items_processed,
            len(conflicts),
            len(item_plan.inserts),
            len(item_plan.updates),
            len(item_plan.orphans),
        )

        counts = AppliedCounts()
        try:
            summary.new_batches, summary.updated_batches = self._write_batches(
                batch_plan.new, batch_plan.updated
            )
            summary.conflicts_logged = self._replace_conflicts(scope, batch_numbers, conflicts)
            apply_plan(item_plan, self.uow_factory, chunk_size=self.chunk_size, counts=counts)
        except PersistenceWriteError as exc:
            log.error("Reconciliation of %s stopped: %s", scope, exc)
            summary.errors.append(str(exc))
            summary.record_writes(counts)
            return summary

        summary.record_writes(counts)
        summary.completed = True
        log.info(
            "Reconciled %s: %d inserted, %d updated, %d orphaned, %d conflict(s)",
            scope,
            summary.items_inserted,
            summary.items_updated,
            summary.items_orphaned,
            summary.conflicts_logged,
        )
        return summary

    def _write_batches(
        self,
        new: Sequence[BatchRecord],
        updated: Sequence[BatchRecord],
    ) -> tuple[int, int]:
        def upsert(repos: InventoryRepositories, chunk: tuple[BatchRecord, ...]) -> None:
            repos.batches.upsert_batches(chunk)

        inserted = write_in_chunks(
            self.uow_factory, new, upsert, phase="batch_insert", chunk_size=self.chunk_size
        )
        changed = write_in_chunks(
            self.uow_factory, updated, upsert, phase="batch_update", chunk_size=self.chunk_size
        )
        return inserted, changed

    def _replace_conflicts(
        self,
        scope: Scope,
        batch_numbers: Sequence[str],
        conflicts: Sequence[ConflictRecord],
    ) -> int:
        """Clear conflicts of every touched batch, then insert this run's set."""

        def clear(repos: InventoryRepositories, chunk: tuple[str, ...]) -> None:
            repos.conflicts.delete_for_batches(scope, chunk)

        def insert(repos: InventoryRepositories, chunk: tuple[ConflictRecord, ...]) -> None:
            repos.conflicts.insert_conflicts(chunk)

        write_in_chunks(
            self.uow_factory,
            batch_numbers,
            clear,
            phase="conflict_clear",
            chunk_size=self.lookup_chunk_size,
        )
        return write_in_chunks(
            self.uow_factory, conflicts, insert, phase="conflict_insert", chunk_size=self.chunk_size
        )
