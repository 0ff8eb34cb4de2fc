from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from loadsync.adapters.catalog import EmptyCatalog
from loadsync.domain.batch_management import update_batch_metadata
from loadsync.domain.errors import FeedReadError
from loadsync.domain.ports import FeedFailure
from loadsync.domain.reconciliation import ReconciliationEngine
from loadsync.domain.resync import resync_category, snapshot_metadata
from tests.helpers.feeds import StaticFeed, make_batch
from tests.helpers.inventory import read_batches, read_items

if TYPE_CHECKING:
    from collections.abc import Callable

    from loadsync.adapters.sqlalchemy import SqlAlchemyInventoryUnitOfWork
    from loadsync.domain.model import Scope
    from loadsync.domain.resync import ResyncResult

    UowFactory = Callable[[], SqlAlchemyInventoryUnitOfWork]


def _resync(
    factory: UowFactory,
    scope: Scope,
    feed: StaticFeed,
    *,
    preserve: bool = True,
) -> ResyncResult:
    return resync_category(
        scope,
        feed,
        engine=ReconciliationEngine(uow_factory=factory, catalog=EmptyCatalog()),
        unit_of_work_factory=factory,
        preserve_metadata=preserve,
    )


def _initial_feed() -> StaticFeed:
    return StaticFeed(
        [
            make_batch("L1", "S1", "S2", status="FOR SALE", notes="LETTER B"),
            make_batch("L2", "S3"),
            make_batch("L3", "S4"),
        ]
    )


def _load_and_customize(factory: UowFactory, scope: Scope) -> None:
    _resync(factory, scope, _initial_feed())
    update_batch_metadata(
        scope,
        "L2",
        unit_of_work_factory=factory,
        display_name="Dock 4",
        notes="fragile",
        prep_tagged=True,
    )
    update_batch_metadata(scope, "L3", unit_of_work_factory=factory, color_tag="red")


def test_snapshot_holds_only_customized_fields(
    sqlite_unit_of_work: UowFactory,
    asis_scope: Scope,
) -> None:
    _load_and_customize(sqlite_unit_of_work, asis_scope)

    held = snapshot_metadata(sqlite_unit_of_work, asis_scope)

    assert held == {
        "L1": {"display_name": "B"},
        "L2": {"display_name": "Dock 4", "notes": "fragile", "prep_tagged": True},
        "L3": {"color_tag": "red"},
    }


def test_resync_preserves_metadata_of_returning_batches(
    sqlite_unit_of_work: UowFactory,
    asis_scope: Scope,
) -> None:
    _load_and_customize(sqlite_unit_of_work, asis_scope)
    feed = StaticFeed(
        [
            make_batch("L1", "S1", "S2", status="FOR SALE", notes="LETTER B"),
            make_batch("L2", "S3", "S5"),
        ]
    )

    result = _resync(sqlite_unit_of_work, asis_scope, feed)

    assert result.summary.completed is True
    assert result.preserved_batches == 3
    assert result.restored_batches == 2
    assert result.wiped.items == 4
    assert result.wiped.batches == 3
    batches = read_batches(sqlite_unit_of_work, asis_scope)
    assert set(batches) == {"L1", "L2"}
    assert batches["L2"].display_name == "Dock 4"
    assert batches["L2"].notes == "fragile"
    assert batches["L2"].prep_tagged is True
    assert batches["L2"].item_count == 2
    assert batches["L1"].display_name == "B"
    assert set(read_items(sqlite_unit_of_work, asis_scope)) == {"S1", "S2", "S3", "S5"}


def test_hard_reset_discards_metadata(
    sqlite_unit_of_work: UowFactory,
    asis_scope: Scope,
) -> None:
    _load_and_customize(sqlite_unit_of_work, asis_scope)

    result = _resync(sqlite_unit_of_work, asis_scope, _initial_feed(), preserve=False)

    assert result.preserved_batches == 0
    assert result.restored_batches == 0
    batches = read_batches(sqlite_unit_of_work, asis_scope)
    assert batches["L2"].display_name is None
    assert batches["L2"].notes is None
    assert batches["L2"].prep_tagged is False
    assert batches["L3"].color_tag is None
    assert batches["L1"].display_name == "B"


def test_resync_does_not_touch_other_categories(
    sqlite_unit_of_work: UowFactory,
    asis_scope: Scope,
    parts_scope: Scope,
) -> None:
    _resync(sqlite_unit_of_work, parts_scope, StaticFeed([make_batch("P1", "X1")]))

    _resync(sqlite_unit_of_work, asis_scope, _initial_feed())

    assert set(read_items(sqlite_unit_of_work, parts_scope)) == {"X1"}


def test_unreadable_feed_aborts_before_wipe(
    sqlite_unit_of_work: UowFactory,
    asis_scope: Scope,
) -> None:
    _load_and_customize(sqlite_unit_of_work, asis_scope)
    feed = StaticFeed(failures=[FeedFailure("L1", "HTTP 503")])

    with pytest.raises(FeedReadError):
        _resync(sqlite_unit_of_work, asis_scope, feed)

    assert len(feed.calls) == 1
    assert set(read_items(sqlite_unit_of_work, asis_scope)) == {"S1", "S2", "S3", "S4"}
    assert read_batches(sqlite_unit_of_work, asis_scope)["L2"].display_name == "Dock 4"


def test_resync_payload_includes_wipe_counts(
    sqlite_unit_of_work: UowFactory,
    asis_scope: Scope,
) -> None:
    payload = _resync(sqlite_unit_of_work, asis_scope, _initial_feed()).as_dict()

    assert payload["preserveMetadata"] is True
    assert payload["wiped"] == {"items": 0, "batches": 0, "conflicts": 0, "changes": 0}
    assert payload["itemsInserted"] == 4
