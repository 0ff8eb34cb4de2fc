"""Persistence ports for the inventory domain.

Every method takes the scope explicitly; implementations must never read or
write rows outside of it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Collection, Sequence
    from uuid import UUID

    from loadsync.domain.model import (
        BatchRecord,
        Category,
        ChangeLogEntry,
        ConflictRecord,
        ConflictStatus,
        ItemRecord,
        Scope,
    )


class ItemRepository(Protocol):
    def upsert_items(self, items: Sequence[ItemRecord]) -> None: ...

    def unassign_items(self, scope: Scope, batch_number: str) -> int: ...

    def read_by_serial(self, scope: Scope, serials: Collection[str]) -> dict[str, ItemRecord]: ...

    def read_by_serial_excluding_category(
        self,
        scope: Scope,
        serials: Collection[str],
    ) -> dict[str, Category]:
        """Return serials already stored for the tenant under another category."""
        ...

    def list_for_scope(
        self,
        scope: Scope,
        *,
        batch_number: str | None = None,
    ) -> list[ItemRecord]: ...

    def reassign_batches(self, scope: Scope, sources: Collection[str], target: str) -> int: ...

    def delete_for_scope(self, scope: Scope) -> int: ...


class BatchRepository(Protocol):
    def upsert_batches(self, batches: Sequence[BatchRecord]) -> None: ...

    def get(self, scope: Scope, batch_number: str) -> BatchRecord | None: ...

    def read_batch_fields(
        self,
        scope: Scope,
        batch_numbers: Collection[str] | None = None,
    ) -> dict[str, BatchRecord]: ...

    def list_for_scope(self, scope: Scope) -> list[BatchRecord]: ...

    def delete(self, scope: Scope, batch_numbers: Collection[str]) -> int: ...

    def delete_for_scope(self, scope: Scope) -> int: ...


class ConflictRepository(Protocol):
    def delete_for_batches(self, scope: Scope, batch_numbers: Collection[str]) -> int: ...

    def insert_conflicts(self, conflicts: Sequence[ConflictRecord]) -> None: ...

    def list_for_batch(
        self,
        scope: Scope,
        batch_number: str,
        *,
        status: ConflictStatus | None = None,
    ) -> list[ConflictRecord]: ...

    def get(self, scope: Scope, conflict_id: UUID) -> ConflictRecord | None: ...

    def delete_for_scope(self, scope: Scope) -> int: ...


class ChangeLogRepository(Protocol):
    def add_entries(self, entries: Sequence[ChangeLogEntry]) -> None: ...

    def list_for_scope(self, scope: Scope) -> list[ChangeLogEntry]: ...

    def delete_for_scope(self, scope: Scope) -> int: ...


__all__ = [
    "BatchRepository",
    "ChangeLogRepository",
    "ConflictRepository",
    "ItemRepository",
]
