"""Errors raised by loadsync domain services."""

from __future__ import annotations


class LoadSyncError(RuntimeError):
    """Base class for reconciliation, resync and merge failures."""


class FeedReadError(LoadSyncError):
    """Raised by feed adapters when the batch source, or a single batch file, cannot be read."""


class PersistenceWriteError(LoadSyncError):
    """A chunked write failed part-way; earlier chunks stay committed."""

    def __init__(self, phase: str, committed: int, message: str | None = None) -> None:
        self.phase = phase
        self.committed = committed
        detail = message or "write failed"
        super().__init__(f"{phase}: {detail} after {committed} committed row(s)")


class MergePreconditionError(LoadSyncError, ValueError):
    """Raised before any mutation when a merge request is invalid."""


class BatchNotFoundError(LoadSyncError, LookupError):
    def __init__(self, batch_number: str) -> None:
        self.batch_number = batch_number
        super().__init__(f"Batch {batch_number!r} does not exist")
