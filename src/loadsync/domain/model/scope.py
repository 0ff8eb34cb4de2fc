"""Tenant/category scope passed explicitly to every operation."""

from __future__ import annotations

from dataclasses import dataclass

from .enums import Category


@dataclass(frozen=True, slots=True)
class Scope:
    """The ``(tenant, category)`` pair every read and write is confined to."""

    tenant_id: str
    category: Category

    def __post_init__(self) -> None:
        if not self.tenant_id.strip():
            raise ValueError("tenant_id must be a non-empty string")
        # accept plain strings from callers and coerce to the enum
        object.__setattr__(self, "category", Category(self.category))

    def __str__(self) -> str:
        return f"{self.tenant_id}/{self.category.value}"
