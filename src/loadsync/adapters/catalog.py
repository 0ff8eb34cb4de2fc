"""Product catalog lookups used to resolve scanned model numbers."""

from __future__ import annotations

import csv
import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
)

from loadsync.domain.model import UNKNOWN_PRODUCT_TYPE
from loadsync.domain.ports import CatalogLookup, CatalogProduct

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator
    from pathlib import Path

log = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^A-Z0-9]")
_TOKEN_SPLIT = re.compile(r"[\s/(]+")


def model_variants(model: str) -> Iterator[str]:
    """Yield lookup candidates for ``model``, most specific first.

    Scanners and exports disagree on case and decoration, e.g. ``gtw465asnww``,
    ``GTW465ASNWW (WHITE)`` and ``GTW465-ASNWW`` all name the same product.
    """

    raw = model.strip()
    if not raw:
        return
    seen: set[str] = set()
    upper = raw.upper()
    base = _TOKEN_SPLIT.split(upper, maxsplit=1)[0]
    for candidate in (raw, upper, base, _NON_ALNUM.sub("", upper)):
        if candidate and candidate not in seen:
            seen.add(candidate)
            yield candidate


class CatalogRowPayload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    model: str = Field(validation_alias=AliasChoices("model", "Model", "Model #", "MODELS"))
    id: str = Field(validation_alias=AliasChoices("id", "product_id", "Product ID"))
    product_type: str = Field(
        default=UNKNOWN_PRODUCT_TYPE,
        validation_alias=AliasChoices("product_type", "Product Type", "type"),
    )

    @field_validator("*", mode="before")
    @classmethod
    def _blank_cells(cls, value: object, info: ValidationInfo) -> object:
        if isinstance(value, str):
            value = value.strip() or None
        if value is None and info.field_name == "product_type":
            return UNKNOWN_PRODUCT_TYPE
        return value


@dataclass(slots=True)
class InMemoryCatalog:
    """Catalog keyed by model number; lookups try :func:`model_variants` in order."""

    products: dict[str, CatalogProduct] = field(default_factory=dict)
    _index: dict[str, CatalogProduct] = field(init=False, default_factory=dict)

    def __post_init__(self) -> None:
        for model, product in self.products.items():
            self._index_model(model, product)

    def add(self, model: str, product: CatalogProduct) -> None:
        self.products[model] = product
        self._index_model(model, product)

    def _index_model(self, model: str, product: CatalogProduct) -> None:
        upper = model.strip().upper()
        self._index.setdefault(upper, product)
        self._index.setdefault(_NON_ALNUM.sub("", upper), product)

    def lookup(self, model: str) -> CatalogProduct | None:
        for candidate in model_variants(model):
            product = self._index.get(candidate.upper())
            if product is not None:
                return product
        return None

    def __len__(self) -> int:
        return len(self.products)

    @classmethod
    def from_rows(cls, rows: Iterable[CatalogRowPayload]) -> InMemoryCatalog:
        catalog = cls()
        for row in rows:
            catalog.add(row.model, CatalogProduct(id=row.id, product_type=row.product_type))
        return catalog


def load_catalog_csv(path: Path) -> InMemoryCatalog:
    """Load a catalog export with ``model``, ``id`` and ``product_type`` columns."""

    rows: list[CatalogRowPayload] = []
    with path.open(newline="", encoding="utf-8-sig") as handle:
        for line_number, row in enumerate(csv.DictReader(handle), start=2):
            try:
                rows.append(CatalogRowPayload.model_validate(row))
            except ValidationError:
                log.warning("Skipping catalog line %d in %s", line_number, path)
    catalog = InMemoryCatalog.from_rows(rows)
    log.info("Loaded %d catalog product(s) from %s", len(catalog), path)
    return catalog


@dataclass(slots=True)
class EmptyCatalog:
    """Catalog that knows no products; every item is stored as ``UNKNOWN``."""

    def lookup(self, model: str) -> CatalogProduct | None:
        _ = model
        return None


if TYPE_CHECKING:
    _catalog_check: CatalogLookup = InMemoryCatalog()
    _empty_check: CatalogLookup = EmptyCatalog()
