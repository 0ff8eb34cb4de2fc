"""Conflict detection: one open conflict per non-canonical sighting of a serial."""

from __future__ import annotations

from typing import TYPE_CHECKING

from loadsync.domain.model import ConflictRecord, ConflictStatus, utc_now

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime

    from loadsync.domain.model import Scope

    from .canonicalize import CanonicalRecord


def detect_conflicts(
    canonical: Iterable[CanonicalRecord],
    *,
    scope: Scope,
    detected_at: datetime | None = None,
) -> list[ConflictRecord]:
    """Return conflicts pointing every losing batch at the canonical one.

    Serials seen in a single batch produce nothing. Losing batches are emitted
    in sorted order so repeated runs produce identical output.
    """

    stamp = detected_at or utc_now()
    conflicts: list[ConflictRecord] = []
    for entry in canonical:
        for losing in sorted(entry.losing_batches):
            conflicts.append(
                ConflictRecord(
                    tenant_id=scope.tenant_id,
                    category=scope.category,
                    serial=entry.serial,
                    losing_batch_number=losing,
                    winning_batch_number=entry.batch_number,
                    status=ConflictStatus.OPEN,
                    detected_at=stamp,
                )
            )
    return conflicts
