"""Merge several batches into one target batch."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from loadsync.domain.errors import MergePreconditionError
from loadsync.domain.model import BatchRecord, BatchStatus, utc_now

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from datetime import datetime

    from loadsync.domain.model import Scope
    from loadsync.domain.ports import UnitOfWorkFactory

log = logging.getLogger(__name__)


@dataclass(slots=True)
class MergeResult:
    target: str
    merged_sources: list[str]
    items_moved: int
    created_target: bool

    def as_dict(self) -> dict[str, object]:
        return {
            "target": self.target,
            "mergedSources": list(self.merged_sources),
            "itemsMoved": self.items_moved,
            "createdTarget": self.created_target,
        }


def _distinct(values: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(value.strip() for value in values if value.strip()))


def merge_batches(
    scope: Scope,
    sources: Iterable[str],
    target: str,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    create_target: bool = False,
    clock: Callable[[], datetime] = utc_now,
) -> MergeResult:
    """Move every item of ``sources`` into ``target`` and delete the source batches.

    All checks run before the first write and everything happens in a single
    unit of work. Conflict records are left alone.
    """

    source_numbers = _distinct(sources)
    target_number = target.strip()
    if len(source_numbers) < 2:
        raise MergePreconditionError("At least two distinct source batches are required")
    if not target_number:
        raise MergePreconditionError("A target batch number is required")
    if create_target and target_number in source_numbers:
        raise MergePreconditionError(
            f"New target {target_number!r} cannot also be one of the sources"
        )

    now = clock()
    with unit_of_work_factory() as uow:
        repos = uow.repositories
        known = repos.batches.read_batch_fields(scope, [*source_numbers, target_number])

        missing = [number for number in source_numbers if number not in known]
        if missing:
            raise MergePreconditionError(f"Source batch(es) not found: {', '.join(missing)}")
        if create_target and target_number in known:
            raise MergePreconditionError(f"Target batch {target_number!r} already exists")
        if not create_target and target_number not in known:
            raise MergePreconditionError(f"Target batch {target_number!r} does not exist")

        moving = [number for number in source_numbers if number != target_number]
        moved = repos.items.reassign_batches(scope, moving, target_number)
        repos.batches.delete(scope, moving)

        item_count = len(repos.items.list_for_scope(scope, batch_number=target_number))
        if create_target:
            target_record = BatchRecord(
                tenant_id=scope.tenant_id,
                category=scope.category,
                batch_number=target_number,
                status=BatchStatus.ACTIVE,
                item_count=item_count,
                created_at=now,
                updated_at=now,
            )
        else:
            target_record = replace(known[target_number], item_count=item_count, updated_at=now)
        repos.batches.upsert_batches([target_record])
        uow.commit()

    log.info(
        "Merged %s into %s in %s: %d item(s) moved",
        ", ".join(moving),
        target_number,
        scope,
        moved,
    )
    return MergeResult(
        target=target_number,
        merged_sources=moving,
        items_moved=moved,
        created_target=create_target,
    )
