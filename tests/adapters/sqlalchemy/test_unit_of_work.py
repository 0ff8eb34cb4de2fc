from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from loadsync.adapters.sqlalchemy import SqlAlchemyInventoryUnitOfWork, StartupError
from loadsync.adapters.sqlalchemy.unit_of_work import (
    configured_engine,
    is_started,
    shutdown,
    startup,
)
from tests.helpers.inventory import make_item

if TYPE_CHECKING:
    from collections.abc import Callable

    from sqlalchemy.engine import Engine

    from loadsync.domain.model import Scope

    UowFactory = Callable[[], SqlAlchemyInventoryUnitOfWork]


@pytest.fixture(autouse=True)
def _reset_adapter() -> None:
    shutdown()


def test_unit_of_work_requires_startup() -> None:
    with pytest.raises(StartupError):
        SqlAlchemyInventoryUnitOfWork()


def test_startup_twice_requires_force(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine)
    try:
        assert is_started()
        assert configured_engine() is sqlite_engine
        with pytest.raises(StartupError):
            startup(engine=sqlite_engine)
        startup(engine=sqlite_engine, force=True)
    finally:
        shutdown()
    assert not is_started()


def test_startup_reads_database_uri(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URI", "sqlite+pysqlite:///:memory:")
    startup()
    try:
        engine = configured_engine()
        assert engine is not None
        assert engine.url.drivername == "sqlite+pysqlite"
    finally:
        shutdown()


def test_repositories_unavailable_outside_context(sqlite_unit_of_work: UowFactory) -> None:
    uow = sqlite_unit_of_work()

    with pytest.raises(StartupError):
        _ = uow.repositories


def test_exception_rolls_back(sqlite_unit_of_work: UowFactory, asis_scope: Scope) -> None:
    with pytest.raises(RuntimeError), sqlite_unit_of_work() as uow:
        uow.repositories.items.upsert_items([make_item(asis_scope, "S1")])
        raise RuntimeError("boom")

    with sqlite_unit_of_work() as uow:
        assert uow.repositories.items.list_for_scope(asis_scope) == []


def test_uncommitted_work_is_discarded(sqlite_unit_of_work: UowFactory, asis_scope: Scope) -> None:
    with sqlite_unit_of_work() as uow:
        uow.repositories.items.upsert_items([make_item(asis_scope, "S1")])

    with sqlite_unit_of_work() as uow:
        assert uow.repositories.items.list_for_scope(asis_scope) == []
