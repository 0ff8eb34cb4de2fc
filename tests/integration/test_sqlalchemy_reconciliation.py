from __future__ import annotations

from typing import TYPE_CHECKING

from loadsync.adapters.catalog import EmptyCatalog
from loadsync.domain.model import Category, ChangeType, ConflictStatus, Scope
from loadsync.domain.ports import FeedFailure
from loadsync.domain.reconciliation import ReconciliationEngine
from tests.helpers.feeds import make_batch, make_row
from tests.helpers.inventory import (
    WriteFailure,
    flaky_factory,
    make_item,
    read_batches,
    read_items,
    seed,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from loadsync.adapters.sqlalchemy import SqlAlchemyInventoryUnitOfWork
    from loadsync.domain.ports import FeedBatch

    UowFactory = Callable[[], SqlAlchemyInventoryUnitOfWork]


def _engine(factory: UowFactory, *, chunk_size: int = 500) -> ReconciliationEngine:
    return ReconciliationEngine(
        uow_factory=factory,
        catalog=EmptyCatalog(),
        chunk_size=chunk_size,
        lookup_chunk_size=2,
    )


def _feed() -> list[FeedBatch]:
    return [
        make_batch(
            "L1",
            "S1",
            "S2",
            scanned_at="2024/01/01 08:00:00",
            status="FOR SALE",
            notes="LETTER B pickup",
        ),
        make_batch("L2", "S2", "S3", scanned_at="2024/02/01 08:00:00"),
    ]


def test_first_pass_stores_items_batches_and_conflicts(
    sqlite_unit_of_work: UowFactory,
    asis_scope: Scope,
) -> None:
    summary = _engine(sqlite_unit_of_work).reconcile(asis_scope, _feed())

    assert summary.completed is True
    assert summary.errors == []
    assert summary.batches_in_feed == 2
    assert summary.unique_batches == 2
    assert summary.new_batches == 2
    assert summary.items_processed == 3
    assert summary.items_inserted == 3
    assert summary.conflicts_logged == 1
    assert summary.changes_logged == 3

    items = read_items(sqlite_unit_of_work, asis_scope)
    assert {serial: item.batch_number for serial, item in items.items()} == {
        "S1": "L1",
        "S2": "L2",
        "S3": "L2",
    }
    batches = read_batches(sqlite_unit_of_work, asis_scope)
    assert batches["L1"].display_name == "B"
    assert batches["L1"].item_count == 1
    assert batches["L2"].item_count == 2

    with sqlite_unit_of_work() as uow:
        (conflict,) = uow.repositories.conflicts.list_for_batch(asis_scope, "L1")
    assert conflict.serial == "S2"
    assert conflict.winning_batch_number == "L2"
    assert conflict.status is ConflictStatus.OPEN


def test_second_identical_pass_changes_nothing(
    sqlite_unit_of_work: UowFactory,
    asis_scope: Scope,
) -> None:
    engine = _engine(sqlite_unit_of_work)
    engine.reconcile(asis_scope, _feed())

    summary = engine.reconcile(asis_scope, _feed())

    assert summary.completed is True
    assert summary.new_batches == 0
    assert summary.updated_batches == 0
    assert summary.items_inserted == 0
    assert summary.items_updated == 0
    assert summary.items_orphaned == 0
    assert summary.conflicts_logged == 1
    with sqlite_unit_of_work() as uow:
        assert len(uow.repositories.conflicts.list_for_batch(asis_scope, "L1")) == 1
        assert len(uow.repositories.changes.list_for_scope(asis_scope)) == 3


def test_vanished_items_are_orphaned_and_conflicts_cleared(
    sqlite_unit_of_work: UowFactory,
    asis_scope: Scope,
) -> None:
    engine = _engine(sqlite_unit_of_work)
    engine.reconcile(asis_scope, _feed())

    summary = engine.reconcile(
        asis_scope,
        [make_batch("L2", "S2", "S3", scanned_at="2024/02/01 08:00:00")],
    )

    assert summary.items_orphaned == 1
    items = read_items(sqlite_unit_of_work, asis_scope)
    assert set(items) == {"S1", "S2", "S3"}
    assert items["S1"].orphaned is True
    assert items["S1"].batch_number is None
    with sqlite_unit_of_work() as uow:
        assert uow.repositories.conflicts.list_for_batch(asis_scope, "L1") == []
        changes = uow.repositories.changes.list_for_scope(asis_scope)
    assert [change.change_type for change in changes].count(ChangeType.ITEM_ORPHANED) == 1


def test_orphan_reappears_in_new_batch(
    sqlite_unit_of_work: UowFactory,
    asis_scope: Scope,
) -> None:
    engine = _engine(sqlite_unit_of_work)
    engine.reconcile(asis_scope, [make_batch("L1", "S1")])
    engine.reconcile(asis_scope, [make_batch("L2", "S2")])

    summary = engine.reconcile(asis_scope, [make_batch("L3", "S1", "S2")])

    assert summary.items_updated == 2
    items = read_items(sqlite_unit_of_work, asis_scope)
    assert items["S1"].orphaned is False
    assert items["S1"].batch_number == "L3"


def test_user_edits_on_items_survive_reconciliation(
    sqlite_unit_of_work: UowFactory,
    asis_scope: Scope,
) -> None:
    seed(sqlite_unit_of_work, items=[make_item(asis_scope, "S1", "L1", notes="scratched")])

    _engine(sqlite_unit_of_work).reconcile(asis_scope, [make_batch("L2", "S1")])

    item = read_items(sqlite_unit_of_work, asis_scope)["S1"]
    assert item.batch_number == "L2"
    assert item.notes == "scratched"


def test_serial_owned_by_other_category_is_skipped(
    sqlite_unit_of_work: UowFactory,
    asis_scope: Scope,
    parts_scope: Scope,
) -> None:
    seed(sqlite_unit_of_work, items=[make_item(parts_scope, "X1", "P1")])
    feed = [
        make_batch("L1", "X1", "S1", scanned_at="2024/01/01 08:00:00"),
        make_batch("L2", "X1", scanned_at="2024/02/01 08:00:00"),
    ]

    summary = _engine(sqlite_unit_of_work).reconcile(asis_scope, feed)

    assert summary.cross_type_skipped == 1
    assert summary.items_processed == 1
    assert summary.conflicts_logged == 0
    assert set(read_items(sqlite_unit_of_work, asis_scope)) == {"S1"}
    assert read_items(sqlite_unit_of_work, parts_scope)["X1"].batch_number == "P1"


def test_stored_row_of_excluded_serial_is_orphaned(
    sqlite_unit_of_work: UowFactory,
    asis_scope: Scope,
    parts_scope: Scope,
) -> None:
    seed(
        sqlite_unit_of_work,
        items=[make_item(asis_scope, "X1", "L0"), make_item(parts_scope, "X1", "P1")],
    )

    summary = _engine(sqlite_unit_of_work).reconcile(asis_scope, [make_batch("L1", "X1", "S1")])

    assert summary.cross_type_skipped == 1
    assert summary.items_orphaned == 1
    stranded = read_items(sqlite_unit_of_work, asis_scope)["X1"]
    assert stranded.batch_number is None
    assert stranded.orphaned is True
    assert read_items(sqlite_unit_of_work, parts_scope)["X1"].batch_number == "P1"


def test_other_tenants_do_not_exclude_serials(
    sqlite_unit_of_work: UowFactory,
    asis_scope: Scope,
) -> None:
    other = Scope("tenant-b", Category.PARTS)
    seed(sqlite_unit_of_work, items=[make_item(other, "S1", "P1")])

    summary = _engine(sqlite_unit_of_work).reconcile(asis_scope, [make_batch("L1", "S1")])

    assert summary.cross_type_skipped == 0
    assert set(read_items(sqlite_unit_of_work, asis_scope)) == {"S1"}


def test_unreadable_batch_keeps_its_items(
    sqlite_unit_of_work: UowFactory,
    asis_scope: Scope,
) -> None:
    engine = _engine(sqlite_unit_of_work)
    engine.reconcile(asis_scope, [make_batch("L1", "S1"), make_batch("L2", "S2")])

    summary = engine.reconcile(
        asis_scope,
        [make_batch("L2", "S2")],
        [FeedFailure("L1", "HTTP 500")],
    )

    assert summary.completed is True
    assert summary.errors == ["L1: HTTP 500"]
    assert summary.items_orphaned == 0
    assert read_items(sqlite_unit_of_work, asis_scope)["S1"].batch_number == "L1"


def test_pass_without_readable_batches_writes_nothing(
    sqlite_unit_of_work: UowFactory,
    asis_scope: Scope,
) -> None:
    engine = _engine(sqlite_unit_of_work)
    engine.reconcile(asis_scope, [make_batch("L1", "S1")])

    summary = engine.reconcile(asis_scope, [], [FeedFailure("L1", "timeout")])

    assert summary.completed is False
    assert len(summary.errors) == 2
    assert read_items(sqlite_unit_of_work, asis_scope)["S1"].orphaned is False


def test_serialless_rows_are_stored_as_pending(
    sqlite_unit_of_work: UowFactory,
    asis_scope: Scope,
) -> None:
    batch = make_batch("L1", rows=(make_row(None, model="SHELF", quantity="5"),))

    summary = _engine(sqlite_unit_of_work).reconcile(asis_scope, [batch])

    assert summary.items_inserted == 1
    item = read_items(sqlite_unit_of_work, asis_scope)[None]
    assert item.quantity == 5
    assert item.scan_state == "pending"
    assert read_batches(sqlite_unit_of_work, asis_scope)["L1"].item_count == 1


def test_write_failure_stops_pass_and_keeps_committed_chunks(
    sqlite_unit_of_work: UowFactory,
    asis_scope: Scope,
) -> None:
    engine = _engine(flaky_factory(WriteFailure(fail_on_call=2)), chunk_size=2)
    batch = make_batch("L1", "S1", "S2", "S3", "S4", "S5")

    summary = engine.reconcile(asis_scope, [batch])

    assert summary.completed is False
    assert summary.new_batches == 1
    assert summary.items_inserted == 2
    assert summary.changes_logged == 0
    assert any(error.startswith("insert:") for error in summary.errors)
    assert set(read_items(sqlite_unit_of_work, asis_scope)) == {"S1", "S2"}


def test_rerun_after_write_failure_converges(
    sqlite_unit_of_work: UowFactory,
    asis_scope: Scope,
) -> None:
    batch = make_batch("L1", "S1", "S2", "S3")
    _engine(flaky_factory(WriteFailure(fail_on_call=2)), chunk_size=1).reconcile(
        asis_scope, [batch]
    )

    summary = _engine(sqlite_unit_of_work).reconcile(asis_scope, [batch])

    assert summary.completed is True
    assert summary.items_inserted == 2
    assert set(read_items(sqlite_unit_of_work, asis_scope)) == {"S1", "S2", "S3"}


def test_summary_payload_uses_camel_case(
    sqlite_unit_of_work: UowFactory,
    asis_scope: Scope,
) -> None:
    payload = _engine(sqlite_unit_of_work).reconcile(asis_scope, _feed()).as_dict()

    assert payload["batchesInFeed"] == 2
    assert payload["crossTypeSkipped"] == 0
    assert payload["completed"] is True
