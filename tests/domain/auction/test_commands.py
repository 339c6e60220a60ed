from __future__ import annotations

import uuid
from datetime import UTC, datetime

import pytest

from pharmabid.domain.auction.commands import BidRequestItem, BidSubmission, parse_command
from pharmabid.domain.errors import ValidationError


def test_bid_request_item_accepts_wire_aliases() -> None:
    item = parse_command(BidRequestItem, {"productId": 7, "quantity": 3})

    assert (item.product_id, item.quantity) == (7, 3)


@pytest.mark.parametrize(
    "payload",
    [
        {"productId": 7, "quantity": 0},
        {"productId": 0, "quantity": 1},
        {"quantity": 1},
        {"productId": 7, "quantity": 1, "color": "red"},
    ],
)
def test_bid_request_item_rejects_bad_payloads(payload: dict[str, object]) -> None:
    with pytest.raises(ValidationError) as excinfo:
        parse_command(BidRequestItem, payload)

    assert excinfo.value.details


def test_bid_submission_normalises_expiry_to_utc() -> None:
    request_id = uuid.uuid4()

    submission = parse_command(
        BidSubmission,
        {
            "bidRequestId": str(request_id),
            "discountPercent": 12.5,
            "expiry": "2026-03-02T12:00:00",
        },
    )

    assert submission.bid_request_id == request_id
    assert submission.mrp is None
    assert submission.expiry == datetime(2026, 3, 2, 12, 0, tzinfo=UTC)


@pytest.mark.parametrize("discount", [-1, 100.5])
def test_bid_submission_rejects_out_of_range_discount(discount: float) -> None:
    with pytest.raises(ValidationError, match="discountPercent"):
        parse_command(
            BidSubmission, {"bidRequestId": str(uuid.uuid4()), "discountPercent": discount}
        )


def test_parse_command_passes_models_through() -> None:
    item = BidRequestItem(product_id=1, quantity=2)

    assert parse_command(BidRequestItem, item) is item
