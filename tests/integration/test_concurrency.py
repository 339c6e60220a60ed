from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING

import httpx

from pharmabid.adapters.events import FanOutEventPublisher, RecordingEventPublisher
from pharmabid.adapters.http_resilience import ResilientClient
from pharmabid.adapters.webhook import WebhookEventPublisher
from pharmabid.config.http_resilience import ResilienceConfig, RetryPolicy
from pharmabid.config.webhook import WebhookConfig
from pharmabid.domain.auction import active_bid_requests, cancel_bid_request
from pharmabid.domain.errors import ConflictError
from pharmabid.domain.model import BidStatus
from pharmabid.domain.reconciliation import reconcile_inventory
from tests.helpers.auction import load_request, open_request, place_bid
from tests.helpers.catalog import distributor_id, find_product, seed_product, staged_entries

if TYPE_CHECKING:
    from collections.abc import Callable

    from pharmabid.adapters.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork
    from pharmabid.domain.model import Bid
    from tests.helpers.clock import FakeClock

    type UowFactory = Callable[[], SqlAlchemyUnitOfWork]


def test_equal_concurrent_bids_admit_exactly_one(
    sqlite_unit_of_work: UowFactory,
    publisher: RecordingEventPublisher,
    clock: FakeClock,
) -> None:
    uow = sqlite_unit_of_work
    product_id = seed_product(uow, "Paracetamol 500", price=22, stocked_by=["w1", "w2"])
    request = open_request(uow, publisher, clock, product_id)
    barrier = threading.Barrier(2)

    def bid(wholesaler_id: str) -> Bid | ConflictError:
        barrier.wait(timeout=5)
        try:
            return place_bid(uow, publisher, clock, request.id, wholesaler_id, 12)
        except ConflictError as exc:
            return exc

    with ThreadPoolExecutor(max_workers=2) as pool:
        outcomes = list(pool.map(bid, ["w1", "w2"]))

    conflicts = [outcome for outcome in outcomes if isinstance(outcome, ConflictError)]
    assert len(conflicts) == 1
    assert conflicts[0].minimum_discount == 12.1
    [view] = active_bid_requests(unit_of_work_factory=uow)
    assert len(view.bids) == 1
    assert view.bids[0].status == BidStatus.PENDING


def test_concurrent_uploads_promote_a_single_product(
    sqlite_unit_of_work: UowFactory, publisher: RecordingEventPublisher
) -> None:
    uow = sqlite_unit_of_work
    rows = [{"name": "Zyrtec Drops", "manufacturer": "UCB", "price": 90}]
    reconcile_inventory(rows, distributor="dist-a", unit_of_work_factory=uow, publisher=publisher)
    barrier = threading.Barrier(2)

    def upload(distributor: str) -> None:
        barrier.wait(timeout=5)
        reconcile_inventory(
            rows, distributor=distributor, unit_of_work_factory=uow, publisher=publisher
        )

    with ThreadPoolExecutor(max_workers=2) as pool:
        list(pool.map(upload, ["dist-b", "dist-c"]))

    product = find_product(uow, "zyrtec drops")
    assert product is not None
    assert product.distributor_ids == {
        distributor_id(uow, "dist-a"),
        distributor_id(uow, "dist-b"),
        distributor_id(uow, "dist-c"),
    }
    for key in ("dist-a", "dist-b", "dist-c"):
        assert staged_entries(uow, key) == []


def test_stalled_webhook_does_not_hold_the_write_lock(
    sqlite_unit_of_work: UowFactory,
    publisher: RecordingEventPublisher,
    clock: FakeClock,
) -> None:
    uow = sqlite_unit_of_work
    product_id = seed_product(uow, "Cetirizine 10", price=12)
    request = open_request(uow, publisher, clock, product_id)
    gate = threading.Event()
    delivered: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        gate.wait(timeout=5)
        delivered.append(request.url.path)
        return httpx.Response(204)

    webhook = WebhookEventPublisher(
        config=WebhookConfig(
            url="https://hooks.test/events",
            secret=None,
            resilience=ResilienceConfig(name="webhook-test", retry=RetryPolicy(total=0)),
        ),
        client_factory=lambda config: ResilientClient(
            config, transport=httpx.MockTransport(handler)
        ),
    )
    try:
        cancel_bid_request(
            request.id,
            retailer_id="retailer-1",
            unit_of_work_factory=uow,
            publisher=FanOutEventPublisher([publisher, webhook]),
            clock=clock,
        )
        seed_product(uow, "Ibuprofen 400", price=18)

        assert delivered == []
        assert load_request(uow, request.id) is None
        assert find_product(uow, "ibuprofen 400") is not None
    finally:
        gate.set()
        webhook.close()

    assert delivered == ["/events"]
