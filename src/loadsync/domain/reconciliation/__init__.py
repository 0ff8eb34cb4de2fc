"""Reconciliation of overlapping batch feeds into stored inventory."""

from __future__ import annotations

from .batches import derive_display_name
from .canonicalize import CanonicalRecord, CanonicalSet, canonicalize
from .conflicts import detect_conflicts
from .engine import ReconciliationEngine, ReconciliationSummary
from .exclusion import ExclusionResult, exclude_cross_category, find_cross_category_serials
from .normalize import (
    NormalizationResult,
    NormalizedRecord,
    RecordNormalizer,
    normalize_batches,
    parse_batch_timestamp,
    parse_quantity,
)
from .persist import AppliedCounts, ReconciliationPlan, apply_plan, build_plan, write_in_chunks

__all__ = [
    "AppliedCounts",
    "CanonicalRecord",
    "CanonicalSet",
    "ExclusionResult",
    "NormalizationResult",
    "NormalizedRecord",
    "ReconciliationEngine",
    "ReconciliationPlan",
    "ReconciliationSummary",
    "RecordNormalizer",
    "apply_plan",
    "build_plan",
    "canonicalize",
    "derive_display_name",
    "detect_conflicts",
    "exclude_cross_category",
    "find_cross_category_serials",
    "normalize_batches",
    "parse_batch_timestamp",
    "parse_quantity",
    "write_in_chunks",
]
