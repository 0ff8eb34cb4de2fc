"""Conflict records and the change log written by reconciliation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .entity import new_id, utc_now
from .enums import Category, ChangeType, ConflictStatus

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID


@dataclass(eq=False, kw_only=True)
class ConflictRecord:
    """A serial seen in ``losing_batch_number`` although it canonically belongs elsewhere."""

    tenant_id: str
    category: Category
    serial: str
    losing_batch_number: str
    winning_batch_number: str
    status: ConflictStatus = ConflictStatus.OPEN
    notes: str | None = None
    id: UUID = field(default_factory=new_id)
    detected_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        if self.losing_batch_number == self.winning_batch_number:
            raise ValueError("A conflict must name two different batches")


@dataclass(eq=False, kw_only=True)
class ChangeLogEntry:
    tenant_id: str
    category: Category
    change_type: ChangeType
    serial: str | None = None
    model: str | None = None
    batch_number: str | None = None
    old_value: str | None = None
    new_value: str | None = None
    id: UUID = field(default_factory=new_id)
    recorded_at: datetime = field(default_factory=utc_now)
