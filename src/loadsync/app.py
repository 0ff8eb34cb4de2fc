"""Application orchestration entry points."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from loadsync.adapters.catalog import EmptyCatalog, load_catalog_csv
from loadsync.adapters.feeds import CsvDirectoryFeed, HttpBatchFeed
from loadsync.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyInventoryUnitOfWork,
    is_started,
    startup,
)
from loadsync.config import (
    FeedConfig,
    MissingConfigurationError,
    get_feed_config,
    get_sync_config,
)
from loadsync.domain import batch_management
from loadsync.domain.merge import MergeResult, merge_batches
from loadsync.domain.model import Category, Scope
from loadsync.domain.reconciliation import ReconciliationEngine, ReconciliationSummary
from loadsync.domain.resync import ResyncResult, resync_category

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from loadsync.config import SyncConfig
    from loadsync.domain.model import BatchRecord, BatchStatus, ConflictRecord, ConflictStatus
    from loadsync.domain.ports import BatchFeed, CatalogLookup, UnitOfWorkFactory

log = getLogger(__name__)


def resolve_scope(category: Category | str, tenant_id: str | None = None) -> Scope:
    return Scope(tenant_id or get_feed_config().tenant_id, Category(category))


def build_feed(config: FeedConfig | None = None) -> BatchFeed:
    """Return the configured feed; a local directory wins over a URL."""

    effective = config or get_feed_config()
    if effective.directory is not None:
        return CsvDirectoryFeed(effective.directory)
    if effective.base_url is not None:
        return HttpBatchFeed(effective.base_url, auth_token=effective.auth_token)
    raise MissingConfigurationError(
        "Missing configuration for: LOADSYNC_FEED_DIR, LOADSYNC_FEED_URL"
    )


def build_catalog(config: FeedConfig | None = None) -> CatalogLookup:
    effective = config or get_feed_config()
    if effective.catalog_path is None:
        log.info("No catalog configured; every item will be stored with an unknown product type")
        return EmptyCatalog()
    return load_catalog_csv(effective.catalog_path)


def _unit_of_work_factory(factory: UnitOfWorkFactory | None) -> UnitOfWorkFactory:
    if factory is not None:
        return factory
    if not is_started():
        startup()
    return SqlAlchemyInventoryUnitOfWork


def build_engine(
    *,
    catalog: CatalogLookup | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    sync_config: SyncConfig | None = None,
) -> ReconciliationEngine:
    config = sync_config or get_sync_config()
    return ReconciliationEngine(
        uow_factory=_unit_of_work_factory(unit_of_work_factory),
        catalog=catalog if catalog is not None else build_catalog(),
        chunk_size=config.chunk_size,
        lookup_chunk_size=config.lookup_chunk_size,
    )


def resync(
    category: Category | str,
    *,
    tenant_id: str | None = None,
    preserve_metadata: bool = True,
    feed: BatchFeed | None = None,
    catalog: CatalogLookup | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> ResyncResult:
    """Wipe a category and reload it from the configured feed."""

    scope = resolve_scope(category, tenant_id)
    uow_factory = _unit_of_work_factory(unit_of_work_factory)
    log.info("Starting resync of %s (preserve_metadata=%s)", scope, preserve_metadata)
    return resync_category(
        scope,
        feed if feed is not None else build_feed(),
        engine=build_engine(catalog=catalog, unit_of_work_factory=uow_factory),
        unit_of_work_factory=uow_factory,
        preserve_metadata=preserve_metadata,
    )


def reconcile(
    category: Category | str,
    *,
    tenant_id: str | None = None,
    feed: BatchFeed | None = None,
    catalog: CatalogLookup | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> ReconciliationSummary:
    """Run one non-destructive reconciliation pass against the stored state."""

    scope = resolve_scope(category, tenant_id)
    fetched = (feed if feed is not None else build_feed())(scope=scope)
    engine = build_engine(catalog=catalog, unit_of_work_factory=unit_of_work_factory)
    log.info("Starting reconciliation of %s", scope)
    return engine.reconcile(scope, fetched.batches, fetched.failures)


def merge(
    category: Category | str,
    sources: Sequence[str],
    target: str,
    *,
    tenant_id: str | None = None,
    create_target: bool = False,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> MergeResult:
    return merge_batches(
        resolve_scope(category, tenant_id),
        sources,
        target,
        unit_of_work_factory=_unit_of_work_factory(unit_of_work_factory),
        create_target=create_target,
    )


def delete_batch(
    category: Category | str,
    batch_number: str,
    *,
    tenant_id: str | None = None,
    clear_items: bool = True,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> int:
    return batch_management.delete_batch(
        resolve_scope(category, tenant_id),
        batch_number,
        unit_of_work_factory=_unit_of_work_factory(unit_of_work_factory),
        clear_items=clear_items,
    )


def set_batch_status(
    category: Category | str,
    batch_number: str,
    status: BatchStatus | str,
    *,
    tenant_id: str | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> BatchRecord:
    return batch_management.update_batch_status(
        resolve_scope(category, tenant_id),
        batch_number,
        status,
        unit_of_work_factory=_unit_of_work_factory(unit_of_work_factory),
    )


def list_conflicts(
    category: Category | str,
    batch_number: str,
    *,
    tenant_id: str | None = None,
    status: ConflictStatus | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> list[ConflictRecord]:
    return batch_management.list_conflicts(
        resolve_scope(category, tenant_id),
        batch_number,
        unit_of_work_factory=_unit_of_work_factory(unit_of_work_factory),
        status=status,
    )


def resolve_conflict(
    category: Category | str,
    conflict_id: UUID,
    *,
    tenant_id: str | None = None,
    notes: str | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> ConflictRecord:
    return batch_management.resolve_conflict(
        resolve_scope(category, tenant_id),
        conflict_id,
        unit_of_work_factory=_unit_of_work_factory(unit_of_work_factory),
        notes=notes,
    )
