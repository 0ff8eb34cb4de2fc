"""SQLAlchemy adapter package for loadsync."""

from __future__ import annotations

from .mappings import create_all_tables, mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyBatchRepository,
    SqlAlchemyChangeLogRepository,
    SqlAlchemyConflictRepository,
    SqlAlchemyItemRepository,
)
from .unit_of_work import (
    SqlAlchemyInventoryUnitOfWork,
    StartupError,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyBatchRepository",
    "SqlAlchemyChangeLogRepository",
    "SqlAlchemyConflictRepository",
    "SqlAlchemyInventoryUnitOfWork",
    "SqlAlchemyItemRepository",
    "StartupError",
    "create_all_tables",
    "mapper_registry",
    "start_mappers",
    "shutdown",
    "startup",
]
