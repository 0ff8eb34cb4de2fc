"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING, cast

from sqlalchemy import delete, or_, select, update

from loadsync.adapters.sqlalchemy.mappings import (
    batch_table,
    change_log_table,
    conflict_table,
    item_table,
)
from loadsync.domain.model import (
    BatchRecord,
    Category,
    ChangeLogEntry,
    ConflictRecord,
    ItemRecord,
    utc_now,
)

if TYPE_CHECKING:
    import uuid
    from collections.abc import Collection, Sequence

    from sqlalchemy import ColumnElement, CursorResult, Table
    from sqlalchemy.orm import Session

    from loadsync.domain.model import ConflictStatus, Scope


def _in_scope(table: Table, scope: Scope) -> ColumnElement[bool]:
    return (table.c.tenant_id == scope.tenant_id) & (table.c.category == scope.category)


def _rowcount(result: object) -> int:
    return cast("CursorResult[object]", result).rowcount


class SqlAlchemyItemRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def upsert_items(self, items: Sequence[ItemRecord]) -> None:
        for item in items:
            self.session.merge(item)
        self.session.flush()

    def unassign_items(self, scope: Scope, batch_number: str) -> int:
        stmt = (
            update(item_table)
            .where(_in_scope(item_table, scope))
            .where(item_table.c.batch_number == batch_number)
            .values(batch_number=None, updated_at=utc_now())
        )
        return _rowcount(self.session.execute(stmt))

    def read_by_serial(self, scope: Scope, serials: Collection[str]) -> dict[str, ItemRecord]:
        if not serials:
            return {}
        stmt = (
            select(ItemRecord)
            .where(_in_scope(item_table, scope))
            .where(item_table.c.serial.in_(list(serials)))
        )
        return {
            item.serial: item
            for item in self.session.execute(stmt).scalars()
            if item.serial is not None
        }

    def read_by_serial_excluding_category(
        self,
        scope: Scope,
        serials: Collection[str],
    ) -> dict[str, Category]:
        if not serials:
            return {}
        stmt = (
            select(item_table.c.serial, item_table.c.category)
            .where(item_table.c.tenant_id == scope.tenant_id)
            .where(item_table.c.category != scope.category)
            .where(item_table.c.serial.in_(list(serials)))
        )
        return {serial: Category(category) for serial, category in self.session.execute(stmt)}

    def list_for_scope(
        self,
        scope: Scope,
        *,
        batch_number: str | None = None,
    ) -> list[ItemRecord]:
        stmt = select(ItemRecord).where(_in_scope(item_table, scope))
        if batch_number is not None:
            stmt = stmt.where(item_table.c.batch_number == batch_number)
        return list(self.session.execute(stmt.order_by(item_table.c.created_at)).scalars())

    def reassign_batches(self, scope: Scope, sources: Collection[str], target: str) -> int:
        if not sources:
            return 0
        stmt = (
            update(item_table)
            .where(_in_scope(item_table, scope))
            .where(item_table.c.batch_number.in_(list(sources)))
            .values(batch_number=target, updated_at=utc_now())
        )
        return _rowcount(self.session.execute(stmt))

    def delete_for_scope(self, scope: Scope) -> int:
        stmt = delete(item_table).where(_in_scope(item_table, scope))
        return _rowcount(self.session.execute(stmt))


class SqlAlchemyBatchRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def upsert_batches(self, batches: Sequence[BatchRecord]) -> None:
        for batch in batches:
            self.session.merge(batch)
        self.session.flush()

    def get(self, scope: Scope, batch_number: str) -> BatchRecord | None:
        stmt = (
            select(BatchRecord)
            .where(_in_scope(batch_table, scope))
            .where(batch_table.c.batch_number == batch_number)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def read_batch_fields(
        self,
        scope: Scope,
        batch_numbers: Collection[str] | None = None,
    ) -> dict[str, BatchRecord]:
        stmt = select(BatchRecord).where(_in_scope(batch_table, scope))
        if batch_numbers is not None:
            if not batch_numbers:
                return {}
            stmt = stmt.where(batch_table.c.batch_number.in_(list(batch_numbers)))
        return {batch.batch_number: batch for batch in self.session.execute(stmt).scalars()}

    def list_for_scope(self, scope: Scope) -> list[BatchRecord]:
        stmt = (
            select(BatchRecord)
            .where(_in_scope(batch_table, scope))
            .order_by(batch_table.c.batch_number)
        )
        return list(self.session.execute(stmt).scalars())

    def delete(self, scope: Scope, batch_numbers: Collection[str]) -> int:
        if not batch_numbers:
            return 0
        stmt = (
            delete(batch_table)
            .where(_in_scope(batch_table, scope))
            .where(batch_table.c.batch_number.in_(list(batch_numbers)))
        )
        return _rowcount(self.session.execute(stmt))

    def delete_for_scope(self, scope: Scope) -> int:
        stmt = delete(batch_table).where(_in_scope(batch_table, scope))
        return _rowcount(self.session.execute(stmt))


class SqlAlchemyConflictRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def delete_for_batches(self, scope: Scope, batch_numbers: Collection[str]) -> int:
        if not batch_numbers:
            return 0
        numbers = list(batch_numbers)
        stmt = (
            delete(conflict_table)
            .where(_in_scope(conflict_table, scope))
            .where(
                or_(
                    conflict_table.c.losing_batch_number.in_(numbers),
                    conflict_table.c.winning_batch_number.in_(numbers),
                )
            )
        )
        return _rowcount(self.session.execute(stmt))

    def insert_conflicts(self, conflicts: Sequence[ConflictRecord]) -> None:
        self.session.add_all(conflicts)
        self.session.flush()

    def list_for_batch(
        self,
        scope: Scope,
        batch_number: str,
        *,
        status: ConflictStatus | None = None,
    ) -> list[ConflictRecord]:
        stmt = (
            select(ConflictRecord)
            .where(_in_scope(conflict_table, scope))
            .where(conflict_table.c.losing_batch_number == batch_number)
        )
        if status is not None:
            stmt = stmt.where(conflict_table.c.status == status)
        stmt = stmt.order_by(conflict_table.c.serial)
        return list(self.session.execute(stmt).scalars())

    def get(self, scope: Scope, conflict_id: uuid.UUID) -> ConflictRecord | None:
        stmt = (
            select(ConflictRecord)
            .where(_in_scope(conflict_table, scope))
            .where(conflict_table.c.id == conflict_id)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def delete_for_scope(self, scope: Scope) -> int:
        stmt = delete(conflict_table).where(_in_scope(conflict_table, scope))
        return _rowcount(self.session.execute(stmt))


class SqlAlchemyChangeLogRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add_entries(self, entries: Sequence[ChangeLogEntry]) -> None:
        self.session.add_all(entries)
        self.session.flush()

    def list_for_scope(self, scope: Scope) -> list[ChangeLogEntry]:
        stmt = (
            select(ChangeLogEntry)
            .where(_in_scope(change_log_table, scope))
            .order_by(change_log_table.c.recorded_at)
        )
        return list(self.session.execute(stmt).scalars())

    def delete_for_scope(self, scope: Scope) -> int:
        stmt = delete(change_log_table).where(_in_scope(change_log_table, scope))
        return _rowcount(self.session.execute(stmt))


if TYPE_CHECKING:
    from loadsync.domain.ports.persistence import (
        BatchRepository,
        ChangeLogRepository,
        ConflictRepository,
        ItemRepository,
    )

    _session_stub = cast("Session", object())
    _item_repo: ItemRepository = SqlAlchemyItemRepository(_session_stub)
    _batch_repo: BatchRepository = SqlAlchemyBatchRepository(_session_stub)
    _conflict_repo: ConflictRepository = SqlAlchemyConflictRepository(_session_stub)
    _change_repo: ChangeLogRepository = SqlAlchemyChangeLogRepository(_session_stub)
