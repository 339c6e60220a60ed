from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

import pytest

from pharmabid.config.marketplace import ExpiryConfig
from pharmabid.domain.auction import ExpirySweep
from pharmabid.domain.model import BidRequestStatus, BidStatus
from tests.helpers.auction import load_bid, load_request, open_request, place_bid
from tests.helpers.catalog import seed_product

if TYPE_CHECKING:
    from collections.abc import Callable

    from pharmabid.adapters.events import RecordingEventPublisher
    from pharmabid.adapters.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork
    from tests.helpers.clock import FakeClock

    type UowFactory = Callable[[], SqlAlchemyUnitOfWork]


@pytest.fixture
def product_id(sqlite_unit_of_work: UowFactory) -> int:
    return seed_product(sqlite_unit_of_work, "Cetirizine 10", price=12, stocked_by=["w1"])


def test_idle_request_without_bids_expires(
    sqlite_unit_of_work: UowFactory,
    publisher: RecordingEventPublisher,
    clock: FakeClock,
    product_id: int,
) -> None:
    request = open_request(sqlite_unit_of_work, publisher, clock, product_id)
    clock.advance(hours=1, minutes=1)

    result = ExpirySweep(sqlite_unit_of_work, clock=clock).run()

    assert result.expired == (request.id,)
    assert result.failed == ()
    expired = load_request(sqlite_unit_of_work, request.id)
    assert expired is not None
    assert expired.status == BidRequestStatus.INACTIVE


def test_young_request_is_left_alone(
    sqlite_unit_of_work: UowFactory,
    publisher: RecordingEventPublisher,
    clock: FakeClock,
    product_id: int,
) -> None:
    request = open_request(sqlite_unit_of_work, publisher, clock, product_id)
    clock.advance(minutes=59)

    result = ExpirySweep(sqlite_unit_of_work, clock=clock).run()

    assert result.examined == 0
    loaded = load_request(sqlite_unit_of_work, request.id)
    assert loaded is not None
    assert loaded.is_active


def test_recent_bid_keeps_old_request_open(
    sqlite_unit_of_work: UowFactory,
    publisher: RecordingEventPublisher,
    clock: FakeClock,
    product_id: int,
) -> None:
    uow = sqlite_unit_of_work
    request = open_request(uow, publisher, clock, product_id)
    clock.advance(minutes=50)
    bid = place_bid(uow, publisher, clock, request.id, "w1", 5)
    clock.advance(minutes=20)

    sweep = ExpirySweep(uow, clock=clock)
    first = sweep.run()

    assert first.expired == ()
    assert load_bid(uow, bid.id).status == BidStatus.PENDING

    clock.advance(minutes=15)
    second = sweep.run()

    assert second.expired == (request.id,)
    assert load_bid(uow, bid.id).status == BidStatus.REJECTED


def test_expiry_windows_are_configurable(
    sqlite_unit_of_work: UowFactory,
    publisher: RecordingEventPublisher,
    clock: FakeClock,
    product_id: int,
) -> None:
    request = open_request(sqlite_unit_of_work, publisher, clock, product_id)
    clock.advance(minutes=11)
    config = ExpiryConfig(
        request_max_age=timedelta(minutes=10), bid_quiet_period=timedelta(minutes=5)
    )

    result = ExpirySweep(sqlite_unit_of_work, config=config, clock=clock).run()

    assert result.expired == (request.id,)


def test_failure_on_one_request_does_not_stop_the_sweep(
    sqlite_unit_of_work: UowFactory,
    publisher: RecordingEventPublisher,
    clock: FakeClock,
    product_id: int,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    broken = open_request(sqlite_unit_of_work, publisher, clock, product_id)
    healthy = open_request(sqlite_unit_of_work, publisher, clock, product_id, quantity=3)
    clock.advance(hours=2)
    sweep = ExpirySweep(sqlite_unit_of_work, clock=clock)
    original = ExpirySweep.expire

    def flaky(self: ExpirySweep, bid_request_id, now):  # noqa: ANN001, ANN202
        if bid_request_id == broken.id:
            raise RuntimeError("lock lost")
        return original(self, bid_request_id, now)

    monkeypatch.setattr(ExpirySweep, "expire", flaky)

    result = sweep.run()

    assert result.failed == (broken.id,)
    assert result.expired == (healthy.id,)


def test_replacing_a_bid_does_not_reset_its_age(
    sqlite_unit_of_work: UowFactory,
    publisher: RecordingEventPublisher,
    clock: FakeClock,
    product_id: int,
) -> None:
    uow = sqlite_unit_of_work
    request = open_request(uow, publisher, clock, product_id)
    clock.advance(minutes=10)
    bid = place_bid(uow, publisher, clock, request.id, "w1", 5)
    clock.advance(minutes=45)
    place_bid(uow, publisher, clock, request.id, "w1", 6)
    clock.advance(minutes=10)

    result = ExpirySweep(uow, clock=clock).run()

    assert result.expired == (request.id,)
    expired = load_request(uow, request.id)
    assert expired is not None
    assert expired.status == BidRequestStatus.INACTIVE
    assert load_bid(uow, bid.id).status == BidStatus.REJECTED
