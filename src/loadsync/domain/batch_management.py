"""Batch-level operations outside of reconciliation: deletes, edits, conflict review."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING

from loadsync.domain.errors import BatchNotFoundError
from loadsync.domain.model import (
    BATCH_FEED_FIELDS,
    BATCH_HUMAN_FIELDS,
    BatchStatus,
    ConflictStatus,
    utc_now,
)

if TYPE_CHECKING:
    from uuid import UUID

    from loadsync.domain.model import BatchRecord, ConflictRecord, Scope
    from loadsync.domain.ports import UnitOfWorkFactory

log = logging.getLogger(__name__)


def delete_batch(
    scope: Scope,
    batch_number: str,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    clear_items: bool = True,
) -> int:
    """Delete a batch record; returns how many items were unassigned from it."""

    with unit_of_work_factory() as uow:
        repos = uow.repositories
        if repos.batches.get(scope, batch_number) is None:
            raise BatchNotFoundError(batch_number)
        unassigned = repos.items.unassign_items(scope, batch_number) if clear_items else 0
        repos.batches.delete(scope, [batch_number])
        uow.commit()
    log.info("Deleted batch %s in %s (%d item(s) unassigned)", batch_number, scope, unassigned)
    return unassigned


def update_batch_status(
    scope: Scope,
    batch_number: str,
    status: BatchStatus | str,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
) -> BatchRecord:
    new_status = BatchStatus(status)
    with unit_of_work_factory() as uow:
        repos = uow.repositories
        batch = repos.batches.get(scope, batch_number)
        if batch is None:
            raise BatchNotFoundError(batch_number)
        updated = replace(batch, status=new_status, updated_at=utc_now())
        repos.batches.upsert_batches([updated])
        uow.commit()
    return updated


def update_batch_metadata(
    scope: Scope,
    batch_number: str,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    **fields: object,
) -> BatchRecord:
    """Edit human fields of a batch. Feed-sourced and unknown fields are rejected."""

    feed_fields = sorted(name for name in fields if name in BATCH_FEED_FIELDS)
    if feed_fields:
        raise ValueError(f"Feed-sourced fields are read-only: {', '.join(feed_fields)}")
    unknown = sorted(name for name in fields if name not in BATCH_HUMAN_FIELDS)
    if unknown:
        raise ValueError(f"Unknown batch field(s): {', '.join(unknown)}")

    with unit_of_work_factory() as uow:
        repos = uow.repositories
        batch = repos.batches.get(scope, batch_number)
        if batch is None:
            raise BatchNotFoundError(batch_number)
        updated = replace(batch, updated_at=utc_now(), **fields)
        repos.batches.upsert_batches([updated])
        uow.commit()
    return updated


def list_conflicts(
    scope: Scope,
    batch_number: str,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    status: ConflictStatus | None = None,
) -> list[ConflictRecord]:
    with unit_of_work_factory() as uow:
        return uow.repositories.conflicts.list_for_batch(scope, batch_number, status=status)


def count_open_conflicts(
    scope: Scope,
    batch_number: str,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
) -> int:
    return len(
        list_conflicts(
            scope,
            batch_number,
            unit_of_work_factory=unit_of_work_factory,
            status=ConflictStatus.OPEN,
        )
    )


def resolve_conflict(
    scope: Scope,
    conflict_id: UUID,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    notes: str | None = None,
) -> ConflictRecord:
    """Mark a conflict resolved. It is re-opened by the next pass if it still applies."""

    with unit_of_work_factory() as uow:
        conflict = uow.repositories.conflicts.get(scope, conflict_id)
        if conflict is None:
            raise LookupError(f"Conflict {conflict_id} not found in {scope}")
        conflict.status = ConflictStatus.RESOLVED
        if notes is not None:
            conflict.notes = notes
        uow.commit()
    return conflict
