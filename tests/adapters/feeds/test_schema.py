from __future__ import annotations

import pytest

from loadsync.adapters.feeds import (
    BatchListingPayload,
    FeedRowPayload,
    looks_like_html,
    parse_batch_listing,
    parse_feed_rows,
)
from loadsync.domain.ports import FeedRow


def test_feed_rows_accept_header_variants() -> None:
    text = (
        "\ufeffORDC,MODELS,SERIALS,QTY,LOAD NUMBER,Availability Status,Availability Message\n"
        "ORD-1,GTW465ASNWW,S1,1,,Available,\n"
        "ORD-2,  ,  ,2,L9,,Hold for pickup\n"
    )

    rows = parse_feed_rows(text)

    assert rows == (
        FeedRow(
            order_ref="ORD-1",
            model="GTW465ASNWW",
            serial="S1",
            quantity="1",
            status="Available",
        ),
        FeedRow(order_ref="ORD-2", quantity="2", batch_number="L9", message="Hold for pickup"),
    )


def test_feed_rows_accept_alternate_headers() -> None:
    text = " Serial # ,Model #,Inv Qty,Load Number\nS1,PTW600,3,L2\n"

    (row,) = parse_feed_rows(text)

    assert (row.serial, row.model, row.quantity, row.batch_number) == ("S1", "PTW600", "3", "L2")


def test_overflow_cells_and_unknown_columns_are_ignored() -> None:
    text = "SERIALS,MODELS,Color\nS1,M1,white,extra\n"

    (row,) = parse_feed_rows(text)

    assert row.serial == "S1"
    assert row.model == "M1"


def test_feed_row_payload_validates_mappings() -> None:
    payload = FeedRowPayload.model_validate({"SERIALS": " S1 ", "QTY": ""})

    assert payload.serial == "S1"
    assert payload.quantity is None


def test_batch_listing_skips_rows_without_batch_number() -> None:
    text = (
        "Load Number,Status,CSO Status,CSO,Pricing,Submitted Date,Scanned Date/Time,Notes,Units\n"
        "L1,FOR SALE,Open,C-1,$400,2024/01/02,2024/01/03 10:00:00,LETTER B,12\n"
        ",SOLD,,,,,,,\n"
        "L2,,,,,,,,\n"
    )

    listing = parse_batch_listing(text)

    assert [number for number, _ in listing] == ["L1", "L2"]
    metadata = listing[0][1]
    assert metadata.status == "FOR SALE"
    assert metadata.cso_reference == "C-1"
    assert metadata.scanned_at == "2024/01/03 10:00:00"
    assert metadata.units == "12"
    assert listing[1][1].status is None


def test_batch_listing_payload_requires_number() -> None:
    with pytest.raises(ValueError, match="Field required"):
        BatchListingPayload.model_validate({"Status": "SOLD"})


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("<!DOCTYPE html><html><body>Login</body></html>", True),
        ("\ufeff  <html>", True),
        ("SERIALS,MODELS\nS1,M1\n", False),
        ("", False),
    ],
)
def test_looks_like_html(text: str, expected: bool) -> None:  # noqa: FBT001
    assert looks_like_html(text) is expected
