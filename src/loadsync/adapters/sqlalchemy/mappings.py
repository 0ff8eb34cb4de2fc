"""SQLAlchemy mapping metadata for the loadsync domain model."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from functools import cache
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Dialect,
    Enum,
    Index,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
    orm,
)
from sqlalchemy.orm import configure_mappers

from loadsync.domain.model import (
    BatchRecord,
    BatchStatus,
    Category,
    ChangeLogEntry,
    ChangeType,
    ConflictRecord,
    ConflictStatus,
    ItemRecord,
    ScanState,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


def _category_column() -> Column[Category]:
    return Column("category", Enum(Category, native_enum=False), nullable=False)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_N_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Core tables -----------------------------------------------------------------

# Items reference their batch by number so orphaning and merging are plain
# column updates; the batch row may be deleted while items stay.
item_table = Table(
    "inventory_item",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("tenant_id", String, nullable=False),
    _category_column(),
    Column("serial", String, nullable=True),
    Column("model", String, nullable=False, default=""),
    Column("quantity", Integer, nullable=False, default=1),
    Column("product_ref", String, nullable=True),
    Column("product_type", String, nullable=False),
    Column("batch_number", String, nullable=True),
    Column("scan_state", Enum(ScanState, native_enum=False), nullable=False),
    Column("feed_status", String, nullable=True),
    Column("feed_message", Text, nullable=True),
    Column("feed_order_ref", String, nullable=True),
    Column("feed_quantity", Integer, nullable=True),
    Column("notes", Text, nullable=True),
    Column("manual_status", String, nullable=True),
    Column("orphaned", Boolean, nullable=False, default=False),
    Column("orphaned_at", UTCDateTime(), nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
    UniqueConstraint("tenant_id", "category", "serial"),
    Index("ix_inventory_item_scope_batch", "tenant_id", "category", "batch_number"),
    Index("ix_inventory_item_tenant_serial", "tenant_id", "serial"),
)

batch_table = Table(
    "inventory_batch",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("tenant_id", String, nullable=False),
    _category_column(),
    Column("batch_number", String, nullable=False),
    Column("status", Enum(BatchStatus, native_enum=False), nullable=False),
    Column("item_count", Integer, nullable=False, default=0),
    Column("display_name", String, nullable=True),
    Column("notes", Text, nullable=True),
    Column("color_tag", String, nullable=True),
    Column("sub_category", String, nullable=True),
    Column("prep_tagged", Boolean, nullable=False, default=False),
    Column("prep_wrapped", Boolean, nullable=False, default=False),
    Column("review_requested", Boolean, nullable=False, default=False),
    Column("review_requested_at", UTCDateTime(), nullable=True),
    Column("review_requested_by", String, nullable=True),
    Column("feed_status", String, nullable=True),
    Column("feed_cso_status", String, nullable=True),
    Column("feed_cso_reference", String, nullable=True),
    Column("feed_pricing", String, nullable=True),
    Column("feed_submitted_date", String, nullable=True),
    Column("feed_scanned_at", String, nullable=True),
    Column("feed_notes", Text, nullable=True),
    Column("feed_units", Integer, nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
    UniqueConstraint("tenant_id", "category", "batch_number"),
)

conflict_table = Table(
    "batch_conflict",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("tenant_id", String, nullable=False),
    _category_column(),
    Column("serial", String, nullable=False),
    Column("losing_batch_number", String, nullable=False),
    Column("winning_batch_number", String, nullable=False),
    Column("status", Enum(ConflictStatus, native_enum=False), nullable=False),
    Column("notes", Text, nullable=True),
    Column("detected_at", UTCDateTime(), nullable=False),
    UniqueConstraint("tenant_id", "category", "losing_batch_number", "serial"),
)

change_log_table = Table(
    "inventory_change",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("tenant_id", String, nullable=False),
    _category_column(),
    Column("change_type", Enum(ChangeType, native_enum=False), nullable=False),
    Column("serial", String, nullable=True),
    Column("model", String, nullable=True),
    Column("batch_number", String, nullable=True),
    Column("old_value", String, nullable=True),
    Column("new_value", String, nullable=True),
    Column("recorded_at", UTCDateTime(), nullable=False),
    Index("ix_inventory_change_scope", "tenant_id", "category"),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(ItemRecord, item_table)
    mapper_registry.map_imperatively(BatchRecord, batch_table)
    mapper_registry.map_imperatively(ConflictRecord, conflict_table)
    mapper_registry.map_imperatively(ChangeLogEntry, change_log_table)

    configure_mappers()
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
