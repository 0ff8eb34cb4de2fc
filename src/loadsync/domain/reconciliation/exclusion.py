"""Cross-category exclusion: a serial owned by another category stays there."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from itertools import batched
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Collection

    from loadsync.domain.model import Category, Scope
    from loadsync.domain.ports import ItemRepository

    from .canonicalize import CanonicalSet

log = logging.getLogger(__name__)


@dataclass(slots=True)
class ExclusionResult:
    kept: CanonicalSet
    excluded: dict[str, Category] = field(default_factory=dict)

    @property
    def skipped(self) -> int:
        return len(self.excluded)


def find_cross_category_serials(
    items: ItemRepository,
    scope: Scope,
    serials: Collection[str],
    *,
    chunk_size: int,
) -> dict[str, Category]:
    """Look up ``serials`` in the tenant's other categories, ``chunk_size`` at a time."""

    owned: dict[str, Category] = {}
    for chunk in batched(sorted(serials), chunk_size):
        owned.update(items.read_by_serial_excluding_category(scope, chunk))
    return owned


def exclude_cross_category(canonical: CanonicalSet, owned: dict[str, Category]) -> ExclusionResult:
    if owned:
        log.info("Excluding %d serial(s) already stored in another category", len(owned))
    return ExclusionResult(kept=canonical.without(owned.keys()), excluded=dict(owned))
