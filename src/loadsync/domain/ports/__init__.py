"""Domain ports."""

from __future__ import annotations

from .fetching import (
    BatchFeed,
    CatalogLookup,
    CatalogProduct,
    FeedBatch,
    FeedBatchMetadata,
    FeedFailure,
    FeedFetchResult,
    FeedRow,
)
from .persistence import (
    BatchRepository,
    ChangeLogRepository,
    ConflictRepository,
    ItemRepository,
)
from .unit_of_work import (
    InventoryRepositories,
    InventoryUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
    UnitOfWorkFactory,
)

__all__ = [
    "BatchFeed",
    "BatchRepository",
    "CatalogLookup",
    "CatalogProduct",
    "ChangeLogRepository",
    "ConflictRepository",
    "FeedBatch",
    "FeedBatchMetadata",
    "FeedFailure",
    "FeedFetchResult",
    "FeedRow",
    "InventoryRepositories",
    "InventoryUnitOfWork",
    "ItemRepository",
    "RepositoryCollection",
    "UnitOfWork",
    "UnitOfWorkFactory",
]
