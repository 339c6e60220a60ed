from __future__ import annotations

import uuid
from datetime import timedelta
from typing import TYPE_CHECKING

import pytest

from pharmabid.config.marketplace import AuctionConfig
from pharmabid.domain.auction import (
    active_bid_requests,
    buckets_for_wholesaler,
    cancel_bid_request,
    create_bid_requests,
    distributor_bid_requests,
    orders_for_retailer,
    retailer_bid_requests,
    submit_bid,
    wholesaler_bids,
    withdraw_bid,
)
from pharmabid.domain.errors import ConflictError, NotFoundError, ValidationError
from pharmabid.domain.events import BidSnapshot, EventType, OrderSnapshot
from pharmabid.domain.model import BidRequestStatus, BidStatus
from tests.helpers.auction import accept, load_bid, load_request, open_request, place_bid
from tests.helpers.catalog import load_product, seed_product

if TYPE_CHECKING:
    from collections.abc import Callable

    from pharmabid.adapters.events import RecordingEventPublisher
    from pharmabid.adapters.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork
    from tests.helpers.clock import FakeClock

    type UowFactory = Callable[[], SqlAlchemyUnitOfWork]


@pytest.fixture
def product_id(sqlite_unit_of_work: UowFactory) -> int:
    return seed_product(sqlite_unit_of_work, "Paracetamol 500", price=22, stocked_by=["w1", "w2"])


def test_competitive_bidding_and_settlement(
    sqlite_unit_of_work: UowFactory,
    publisher: RecordingEventPublisher,
    clock: FakeClock,
    product_id: int,
) -> None:
    uow = sqlite_unit_of_work
    request = open_request(uow, publisher, clock, product_id)

    first = place_bid(uow, publisher, clock, request.id, "w1", 10)
    assert first.mrp == 22
    assert first.final_price == pytest.approx(19.8)
    assert first.status == BidStatus.PENDING

    with pytest.raises(ConflictError) as excinfo:
        place_bid(uow, publisher, clock, request.id, "w2", 10)
    assert str(excinfo.value) == (
        "Your discount must be higher than the current best offer of 10.0%. "
        "Please offer at least 10.1% discount."
    )
    assert excinfo.value.minimum_discount == pytest.approx(10.1)

    best = place_bid(uow, publisher, clock, request.id, "w2", 15)
    [view] = retailer_bid_requests("retailer-1", unit_of_work_factory=uow)
    assert view.best_bid is not None
    assert view.best_bid.id == best.id
    assert [bid.wholesaler_id for bid in view.bids] == ["w2", "w1"]

    order = accept(uow, publisher, clock, best.id)

    assert order.discount_percent == 15
    assert order.mrp == 22
    assert order.total_price == pytest.approx(187.0)
    assert load_bid(uow, first.id).status == BidStatus.REJECTED
    assert load_bid(uow, best.id).status == BidStatus.ACCEPTED
    settled = load_request(uow, request.id)
    assert settled is not None
    assert settled.status == BidRequestStatus.INACTIVE
    assert retailer_bid_requests("retailer-1", unit_of_work_factory=uow) == []

    event = publisher.events[-1]
    assert event.type is EventType.ORDER_CREATED
    assert isinstance(event.payload, OrderSnapshot)
    assert event.payload.total_price == pytest.approx(187.0)


def test_settled_request_cannot_be_settled_again(
    sqlite_unit_of_work: UowFactory,
    publisher: RecordingEventPublisher,
    clock: FakeClock,
    product_id: int,
) -> None:
    uow = sqlite_unit_of_work
    request = open_request(uow, publisher, clock, product_id)
    first = place_bid(uow, publisher, clock, request.id, "w1", 10)
    second = place_bid(uow, publisher, clock, request.id, "w2", 12)
    accept(uow, publisher, clock, second.id)

    with pytest.raises(ConflictError, match="no longer active"):
        accept(uow, publisher, clock, first.id)
    with pytest.raises(ConflictError, match="no longer active"):
        place_bid(uow, publisher, clock, request.id, "w1", 20)

    assert len(orders_for_retailer("retailer-1", unit_of_work_factory=uow)) == 1


def test_only_the_owner_can_accept(
    sqlite_unit_of_work: UowFactory,
    publisher: RecordingEventPublisher,
    clock: FakeClock,
    product_id: int,
) -> None:
    uow = sqlite_unit_of_work
    request = open_request(uow, publisher, clock, product_id)
    bid = place_bid(uow, publisher, clock, request.id, "w1", 10)

    with pytest.raises(ConflictError, match="You do not own this request."):
        accept(uow, publisher, clock, bid.id, retailer_id="retailer-2")

    assert load_bid(uow, bid.id).status == BidStatus.PENDING


def test_rebid_replaces_own_pending_bid(
    sqlite_unit_of_work: UowFactory,
    publisher: RecordingEventPublisher,
    clock: FakeClock,
    product_id: int,
) -> None:
    uow = sqlite_unit_of_work
    request = open_request(uow, publisher, clock, product_id)
    original = place_bid(uow, publisher, clock, request.id, "w1", 10)
    clock.advance(minutes=5)

    replaced = place_bid(uow, publisher, clock, request.id, "w1", 9)

    assert replaced.id == original.id
    assert replaced.discount_percent == 9
    assert replaced.created_at == original.created_at
    assert replaced.updated_at == clock.now
    [view] = active_bid_requests(unit_of_work_factory=uow)
    assert view.has_bids
    assert [bid.id for bid in view.bids] == [original.id]


def test_custom_bids_are_hidden_from_the_retailer(
    sqlite_unit_of_work: UowFactory,
    publisher: RecordingEventPublisher,
    clock: FakeClock,
    product_id: int,
) -> None:
    uow = sqlite_unit_of_work
    request = open_request(uow, publisher, clock, product_id)
    place_bid(uow, publisher, clock, request.id, "w1", 5)
    custom = submit_bid(
        {"bidRequestId": request.id, "discountPercent": 8, "isCustom": True},
        wholesaler_id="w2",
        unit_of_work_factory=uow,
        publisher=publisher,
        clock=clock,
    )

    assert load_bid(uow, custom.id).is_custom
    [view] = retailer_bid_requests("retailer-1", unit_of_work_factory=uow)
    assert [bid.wholesaler_id for bid in view.bids] == ["w1"]
    [own] = wholesaler_bids("w2", unit_of_work_factory=uow)
    assert own.bid.id == custom.id

    place_bid(uow, publisher, clock, request.id, "w2", 9)

    [view] = retailer_bid_requests("retailer-1", unit_of_work_factory=uow)
    assert [bid.wholesaler_id for bid in view.bids] == ["w2", "w1"]


def test_explicit_mrp_raises_catalog_price(
    sqlite_unit_of_work: UowFactory,
    publisher: RecordingEventPublisher,
    clock: FakeClock,
    product_id: int,
) -> None:
    uow = sqlite_unit_of_work
    request = open_request(uow, publisher, clock, product_id)

    place_bid(uow, publisher, clock, request.id, "w1", 10, mrp=25)
    later = place_bid(uow, publisher, clock, request.id, "w2", 11)

    assert load_product(uow, product_id).price == 25
    assert later.mrp == 25

    place_bid(uow, publisher, clock, request.id, "w1", 12, mrp=21)
    assert load_product(uow, product_id).price == 25


def test_bid_without_any_reference_price_is_rejected(
    sqlite_unit_of_work: UowFactory,
    publisher: RecordingEventPublisher,
    clock: FakeClock,
) -> None:
    uow = sqlite_unit_of_work
    unpriced = seed_product(uow, "Mystery Tonic")
    request = open_request(uow, publisher, clock, unpriced)

    with pytest.raises(ValidationError, match="MRP is required for Mystery Tonic"):
        place_bid(uow, publisher, clock, request.id, "w1", 10)

    bid = place_bid(uow, publisher, clock, request.id, "w1", 10, mrp=50)
    assert bid.final_price == pytest.approx(45.0)


def test_bid_on_unknown_request_fails(
    sqlite_unit_of_work: UowFactory, publisher: RecordingEventPublisher, clock: FakeClock
) -> None:
    with pytest.raises(NotFoundError, match="Bid request with ID"):
        place_bid(sqlite_unit_of_work, publisher, clock, uuid.uuid4(), "w1", 10)


def test_request_creation_is_all_or_nothing(
    sqlite_unit_of_work: UowFactory,
    publisher: RecordingEventPublisher,
    clock: FakeClock,
    product_id: int,
) -> None:
    with pytest.raises(NotFoundError, match="Product with ID 9999 not found"):
        create_bid_requests(
            [{"productId": product_id, "quantity": 2}, {"productId": 9999, "quantity": 1}],
            retailer_id="retailer-1",
            unit_of_work_factory=sqlite_unit_of_work,
            publisher=publisher,
            clock=clock,
        )

    assert active_bid_requests(unit_of_work_factory=sqlite_unit_of_work) == []
    assert publisher.events == []


def test_orders_within_window_share_a_bucket(
    sqlite_unit_of_work: UowFactory,
    publisher: RecordingEventPublisher,
    clock: FakeClock,
    product_id: int,
) -> None:
    uow = sqlite_unit_of_work
    first_request = open_request(uow, publisher, clock, product_id, quantity=10)
    second_request = open_request(uow, publisher, clock, product_id, quantity=2)
    first_bid = place_bid(uow, publisher, clock, first_request.id, "w1", 10)
    first = accept(uow, publisher, clock, first_bid.id)
    clock.advance(minutes=30)
    second = accept(
        uow, publisher, clock, place_bid(uow, publisher, clock, second_request.id, "w1", 50).id
    )
    clock.advance(hours=2)
    third_request = open_request(uow, publisher, clock, product_id, quantity=1)
    third_bid = place_bid(uow, publisher, clock, third_request.id, "w1", 0)
    third = accept(uow, publisher, clock, third_bid.id)

    assert first.bucket_id == second.bucket_id
    assert third.bucket_id != first.bucket_id
    views = buckets_for_wholesaler("w1", unit_of_work_factory=uow)
    assert [len(view.orders) for view in views] == [1, 2]
    shared = views[1].bucket
    assert shared.total_items == 12
    assert shared.total_price == pytest.approx(10 * 22 * 0.9 + 2 * 22 * 0.5)


def test_bucket_window_is_configurable(
    sqlite_unit_of_work: UowFactory,
    publisher: RecordingEventPublisher,
    clock: FakeClock,
    product_id: int,
) -> None:
    uow = sqlite_unit_of_work
    narrow = AuctionConfig(bucket_window=timedelta(minutes=10))
    first_request = open_request(uow, publisher, clock, product_id)
    second_request = open_request(uow, publisher, clock, product_id)
    first_bid = place_bid(uow, publisher, clock, first_request.id, "w1", 10)
    first = accept(uow, publisher, clock, first_bid.id, config=narrow)
    clock.advance(minutes=30)
    second_bid = place_bid(uow, publisher, clock, second_request.id, "w1", 10)
    second = accept(uow, publisher, clock, second_bid.id, config=narrow)

    assert second.bucket_id != first.bucket_id


def test_cancellation_detaches_and_rejects_bids(
    sqlite_unit_of_work: UowFactory,
    publisher: RecordingEventPublisher,
    clock: FakeClock,
    product_id: int,
) -> None:
    uow = sqlite_unit_of_work
    request = open_request(uow, publisher, clock, product_id)
    bid = place_bid(uow, publisher, clock, request.id, "w1", 10)

    with pytest.raises(ConflictError, match="You do not own this bid request"):
        cancel_bid_request(
            request.id,
            retailer_id="retailer-2",
            unit_of_work_factory=uow,
            publisher=publisher,
            clock=clock,
        )

    cancel_bid_request(
        request.id,
        retailer_id="retailer-1",
        unit_of_work_factory=uow,
        publisher=publisher,
        clock=clock,
    )

    assert load_request(uow, request.id) is None
    detached = load_bid(uow, bid.id)
    assert detached.status == BidStatus.REJECTED
    assert detached.bid_request_id is None
    assert publisher.events[-1].type is EventType.BID_REQUEST_CANCELLED
    [view] = wholesaler_bids("w1", unit_of_work_factory=uow)
    assert view.bid_request is None
    assert not view.can_cancel
    assert not view.is_current_bid


def test_withdrawal_is_one_shot_per_request(
    sqlite_unit_of_work: UowFactory,
    publisher: RecordingEventPublisher,
    clock: FakeClock,
    product_id: int,
) -> None:
    uow = sqlite_unit_of_work
    request = open_request(uow, publisher, clock, product_id)
    bid = place_bid(uow, publisher, clock, request.id, "w1", 10)

    withdrawn = withdraw_bid(
        bid.id, wholesaler_id="w1", unit_of_work_factory=uow, publisher=publisher, clock=clock
    )
    assert withdrawn.status == BidStatus.REJECTED
    event = publisher.events[-1]
    assert event.type is EventType.BID_CANCELLED
    assert isinstance(event.payload, BidSnapshot)
    assert event.payload.status == "REJECTED"

    again = place_bid(uow, publisher, clock, request.id, "w1", 11)
    assert again.id != bid.id
    [view] = [v for v in wholesaler_bids("w1", unit_of_work_factory=uow) if v.bid.id == again.id]
    assert view.is_current_bid
    assert not view.can_cancel

    with pytest.raises(ConflictError, match="after a rejection"):
        withdraw_bid(
            again.id, wholesaler_id="w1", unit_of_work_factory=uow, publisher=publisher, clock=clock
        )


def test_distributor_feed_hides_requests_it_leads(
    sqlite_unit_of_work: UowFactory,
    publisher: RecordingEventPublisher,
    clock: FakeClock,
    product_id: int,
) -> None:
    uow = sqlite_unit_of_work
    request = open_request(uow, publisher, clock, product_id)
    place_bid(uow, publisher, clock, request.id, "w1", 10)

    assert distributor_bid_requests("w1", unit_of_work_factory=uow) == []
    [view] = distributor_bid_requests("w2", unit_of_work_factory=uow)
    assert view.bid_request.id == request.id
    assert view.has_my_bid is False
    assert distributor_bid_requests("w3", unit_of_work_factory=uow) == []


def test_request_lifecycle_events(
    sqlite_unit_of_work: UowFactory,
    publisher: RecordingEventPublisher,
    clock: FakeClock,
    product_id: int,
) -> None:
    uow = sqlite_unit_of_work
    request = open_request(uow, publisher, clock, product_id)
    place_bid(uow, publisher, clock, request.id, "w1", 10)

    assert [event.type for event in publisher.events] == [
        EventType.BID_REQUEST_CREATED,
        EventType.BID_CREATED,
    ]
    created = publisher.events[0].to_dict()
    assert created["type"] == "bid-request-created"
    assert created["payload"]["bid_request_id"] == str(request.id)  # type: ignore[index]
    assert created["payload"]["product_name"] == "Paracetamol 500"  # type: ignore[index]
