"""Pydantic models describing the CSV exports that make up a batch feed.

Column headers differ between exports of the same data, so every field lists
the header spellings seen in the wild.
"""

from __future__ import annotations

import csv
import io
import logging
from collections.abc import Mapping
from typing import cast

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from loadsync.domain.errors import FeedReadError
from loadsync.domain.ports import FeedBatchMetadata, FeedRow

log = logging.getLogger(__name__)

_HTML_MARKERS = ("<!doctype html", "<html")
_UNSAFE_NAMES = frozenset({"", ".", ".."})


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def looks_like_html(text: str) -> bool:
    """An HTML page where CSV was expected usually means an expired session."""

    head = text.lstrip("\ufeff \t\r\n")[:64].lower()
    return head.startswith(_HTML_MARKERS)


class FeedBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    @model_validator(mode="before")
    @classmethod
    def _normalize_headers(cls, value: object) -> object:
        if not isinstance(value, Mapping):
            return value
        mapping_value = cast(Mapping[object, object], value)
        # DictReader puts overflow cells under a ``None`` key
        return {
            key.lstrip("\ufeff").strip(): cell
            for key, cell in mapping_value.items()
            if isinstance(key, str)
        }

    _normalize_blanks = field_validator("*", mode="before")(_blank_to_none)


class FeedRowPayload(FeedBaseModel):
    serial: str | None = Field(
        default=None,
        validation_alias=AliasChoices("SERIALS", "Serial #", "Serial#", "Serial", "serial"),
    )
    model: str | None = Field(
        default=None,
        validation_alias=AliasChoices("MODELS", "Model #", "Model#", "Model", "model"),
    )
    quantity: str | None = Field(
        default=None,
        validation_alias=AliasChoices("QTY", "Inv Qty", "InvQty", "Qty", "quantity"),
    )
    batch_number: str | None = Field(
        default=None,
        validation_alias=AliasChoices("LOAD NUMBER", "Load Number", "batch_number"),
    )
    order_ref: str | None = Field(default=None, validation_alias=AliasChoices("ORDC", "order_ref"))
    status: str | None = Field(
        default=None,
        validation_alias=AliasChoices("Availability Status", "AvailabilityStatus", "status"),
    )
    message: str | None = Field(
        default=None,
        validation_alias=AliasChoices("Availability Message", "AvailabilityMessage", "message"),
    )

    def to_feed_row(self) -> FeedRow:
        return FeedRow(
            order_ref=self.order_ref,
            model=self.model,
            serial=self.serial,
            quantity=self.quantity,
            batch_number=self.batch_number,
            status=self.status,
            message=self.message,
        )


class BatchListingPayload(FeedBaseModel):
    batch_number: str = Field(
        validation_alias=AliasChoices("Load Number", "LOAD NUMBER", "batch_number")
    )
    status: str | None = Field(default=None, validation_alias=AliasChoices("Status", "status"))
    cso_status: str | None = Field(
        default=None, validation_alias=AliasChoices("CSO Status", "cso_status")
    )
    cso_reference: str | None = Field(
        default=None, validation_alias=AliasChoices("CSO", "cso_reference")
    )
    pricing: str | None = Field(default=None, validation_alias=AliasChoices("Pricing", "pricing"))
    submitted_date: str | None = Field(
        default=None, validation_alias=AliasChoices("Submitted Date", "submitted_date")
    )
    scanned_at: str | None = Field(
        default=None,
        validation_alias=AliasChoices("Scanned Date/Time", "Scanned Date", "scanned_at"),
    )
    notes: str | None = Field(default=None, validation_alias=AliasChoices("Notes", "notes"))
    units: str | None = Field(default=None, validation_alias=AliasChoices("Units", "units"))

    def to_metadata(self) -> FeedBatchMetadata:
        return FeedBatchMetadata(
            status=self.status,
            cso_status=self.cso_status,
            cso_reference=self.cso_reference,
            pricing=self.pricing,
            submitted_date=self.submitted_date,
            scanned_at=self.scanned_at,
            notes=self.notes,
            units=self.units,
        )


type BatchListing = list[tuple[str, FeedBatchMetadata]]


def batch_file_name(batch_number: str) -> str:
    """File name of a batch export; names that could leave the feed root are refused."""

    if batch_number.strip() in _UNSAFE_NAMES or any(sep in batch_number for sep in "/\\"):
        raise FeedReadError(f"unsafe batch number {batch_number!r}")
    return f"{batch_number}.csv"


def parse_feed_rows(text: str) -> tuple[FeedRow, ...]:
    """Parse a per-batch CSV export into raw feed rows.

    Malformed CSV and rows failing validation raise :class:`FeedReadError`.
    """

    reader = csv.DictReader(io.StringIO(text))
    try:
        return tuple(FeedRowPayload.model_validate(row).to_feed_row() for row in reader)
    except (csv.Error, ValidationError) as exc:
        raise FeedReadError(f"malformed batch file: {exc}") from exc


def parse_batch_listing(text: str) -> BatchListing:
    """Parse a batch list export; rows without a batch number are dropped."""

    listing: BatchListing = []
    try:
        for line_number, row in enumerate(csv.DictReader(io.StringIO(text)), start=2):
            try:
                payload = BatchListingPayload.model_validate(row)
            except ValidationError:
                log.warning("Ignoring batch list line %d without a batch number", line_number)
                continue
            listing.append((payload.batch_number, payload.to_metadata()))
    except csv.Error as exc:
        raise FeedReadError(f"malformed batch list: {exc}") from exc
    return listing
