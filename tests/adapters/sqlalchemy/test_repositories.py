from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy.exc import IntegrityError

from loadsync.domain.model import Category, ChangeLogEntry, ChangeType, ConflictRecord, Scope
from tests.helpers.inventory import make_batch_record, make_item, seed

if TYPE_CHECKING:
    from collections.abc import Callable

    from loadsync.adapters.sqlalchemy import SqlAlchemyInventoryUnitOfWork

    UowFactory = Callable[[], SqlAlchemyInventoryUnitOfWork]


def _conflict(scope: Scope, serial: str, losing: str, winning: str) -> ConflictRecord:
    return ConflictRecord(
        tenant_id=scope.tenant_id,
        category=scope.category,
        serial=serial,
        losing_batch_number=losing,
        winning_batch_number=winning,
    )


def test_items_round_trip_by_serial(sqlite_unit_of_work: UowFactory, asis_scope: Scope) -> None:
    stored = make_item(asis_scope, "S1", "L1", quantity=2, feed_status="Available")
    seed(sqlite_unit_of_work, items=[stored, make_item(asis_scope, None, "L1")])

    with sqlite_unit_of_work() as uow:
        found = uow.repositories.items.read_by_serial(asis_scope, ["S1", "S9"])

    assert set(found) == {"S1"}
    item = found["S1"]
    assert item.id == stored.id
    assert item.quantity == 2
    assert item.category is Category.ASIS
    assert item.feed_status == "Available"
    assert item.created_at.tzinfo is not None


def test_upsert_updates_existing_row(sqlite_unit_of_work: UowFactory, asis_scope: Scope) -> None:
    stored = make_item(asis_scope, "S1", "L1")
    seed(sqlite_unit_of_work, items=[stored])

    with sqlite_unit_of_work() as uow:
        (item,) = uow.repositories.items.list_for_scope(asis_scope)
        item.batch_number = "L2"
        uow.repositories.items.upsert_items([item])
        uow.commit()

    with sqlite_unit_of_work() as uow:
        items = uow.repositories.items.list_for_scope(asis_scope)
    assert [(item.id, item.batch_number) for item in items] == [(stored.id, "L2")]


def test_serial_is_unique_within_scope(sqlite_unit_of_work: UowFactory, asis_scope: Scope) -> None:
    seed(sqlite_unit_of_work, items=[make_item(asis_scope, "S1")])

    with pytest.raises(IntegrityError):
        seed(sqlite_unit_of_work, items=[make_item(asis_scope, "S1")])


def test_same_serial_allowed_in_other_scopes(
    sqlite_unit_of_work: UowFactory,
    asis_scope: Scope,
    parts_scope: Scope,
) -> None:
    seed(
        sqlite_unit_of_work,
        items=[
            make_item(asis_scope, "S1"),
            make_item(parts_scope, "S1"),
            make_item(Scope("tenant-b", Category.ASIS), "S1"),
        ],
    )

    with sqlite_unit_of_work() as uow:
        assert len(uow.repositories.items.list_for_scope(asis_scope)) == 1


def test_cross_category_lookup_is_tenant_scoped(
    sqlite_unit_of_work: UowFactory,
    asis_scope: Scope,
    parts_scope: Scope,
) -> None:
    seed(
        sqlite_unit_of_work,
        items=[
            make_item(asis_scope, "S1"),
            make_item(parts_scope, "S2"),
            make_item(Scope("tenant-b", Category.LOCAL_STOCK), "S3"),
        ],
    )

    with sqlite_unit_of_work() as uow:
        owned = uow.repositories.items.read_by_serial_excluding_category(
            asis_scope, ["S1", "S2", "S3"]
        )

    assert owned == {"S2": Category.PARTS}


def test_unassign_and_reassign(sqlite_unit_of_work: UowFactory, asis_scope: Scope) -> None:
    seed(
        sqlite_unit_of_work,
        items=[
            make_item(asis_scope, "S1", "L1"),
            make_item(asis_scope, "S2", "L2"),
            make_item(asis_scope, "S3", "L3"),
        ],
    )

    with sqlite_unit_of_work() as uow:
        repos = uow.repositories
        assert repos.items.reassign_batches(asis_scope, ["L1", "L2"], "L3") == 2
        assert repos.items.unassign_items(asis_scope, "L3") == 3
        assert repos.items.reassign_batches(asis_scope, [], "L3") == 0
        uow.commit()

    with sqlite_unit_of_work() as uow:
        items = uow.repositories.items.list_for_scope(asis_scope)
    assert {item.batch_number for item in items} == {None}


def test_batches_by_number(sqlite_unit_of_work: UowFactory, asis_scope: Scope) -> None:
    seed(
        sqlite_unit_of_work,
        batches=[
            make_batch_record(asis_scope, "L2", feed_units=4),
            make_batch_record(asis_scope, "L1"),
        ],
    )

    with sqlite_unit_of_work() as uow:
        repos = uow.repositories.batches
        assert [batch.batch_number for batch in repos.list_for_scope(asis_scope)] == ["L1", "L2"]
        assert set(repos.read_batch_fields(asis_scope, ["L2", "L9"])) == {"L2"}
        assert repos.read_batch_fields(asis_scope, []) == {}
        fetched = repos.get(asis_scope, "L2")
        assert fetched is not None
        assert fetched.feed_units == 4
        assert repos.delete(asis_scope, ["L1"]) == 1
        uow.commit()

    with sqlite_unit_of_work() as uow:
        assert uow.repositories.batches.get(asis_scope, "L1") is None


def test_conflicts_cleared_by_either_side(
    sqlite_unit_of_work: UowFactory,
    asis_scope: Scope,
) -> None:
    with sqlite_unit_of_work() as uow:
        uow.repositories.conflicts.insert_conflicts(
            [
                _conflict(asis_scope, "S1", "L1", "L2"),
                _conflict(asis_scope, "S2", "L3", "L4"),
                _conflict(asis_scope, "S3", "L4", "L5"),
            ]
        )
        uow.commit()

    with sqlite_unit_of_work() as uow:
        assert uow.repositories.conflicts.delete_for_batches(asis_scope, ["L2", "L4"]) == 3
        uow.commit()


def test_change_log_and_scope_wipe(
    sqlite_unit_of_work: UowFactory,
    asis_scope: Scope,
    parts_scope: Scope,
) -> None:
    entry = ChangeLogEntry(
        tenant_id=asis_scope.tenant_id,
        category=asis_scope.category,
        change_type=ChangeType.ITEM_APPEARED,
        serial="S1",
        new_value="L1",
    )
    seed(
        sqlite_unit_of_work,
        items=[make_item(asis_scope, "S1"), make_item(parts_scope, "S1")],
        batches=[make_batch_record(asis_scope, "L1")],
    )
    with sqlite_unit_of_work() as uow:
        uow.repositories.changes.add_entries([entry])
        uow.commit()

    with sqlite_unit_of_work() as uow:
        repos = uow.repositories
        assert [change.id for change in repos.changes.list_for_scope(asis_scope)] == [entry.id]
        assert repos.changes.delete_for_scope(asis_scope) == 1
        assert repos.items.delete_for_scope(asis_scope) == 1
        assert repos.batches.delete_for_scope(asis_scope) == 1
        uow.commit()

    with sqlite_unit_of_work() as uow:
        assert len(uow.repositories.items.list_for_scope(parts_scope)) == 1
