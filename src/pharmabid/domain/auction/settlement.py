"""Settlement of an accepted bid into an order, plus order read queries."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pharmabid.config.marketplace import AuctionConfig
from pharmabid.domain.clock import Clock, utcnow
from pharmabid.domain.errors import ConflictError, NotFoundError
from pharmabid.domain.events import DomainEvent, EventType
from pharmabid.domain.model import Order, OrderBucket

from .notifications import order_snapshot
from .pricing import order_total
from .views import OrderBucketView

if TYPE_CHECKING:
    import uuid

    from pharmabid.domain.ports import EventPublisher, UnitOfWorkFactory

log = logging.getLogger(__name__)


def accept_bid(
    bid_id: uuid.UUID,
    *,
    retailer_id: str,
    unit_of_work_factory: UnitOfWorkFactory,
    publisher: EventPublisher,
    pickup_point: str | None = None,
    config: AuctionConfig | None = None,
    clock: Clock = utcnow,
) -> Order:
    """Turn ``bid_id`` into an order and close out its request.

    Price and discount are taken from the bid as stored, never from the
    catalog. All writes happen in one unit of work; the ``order-created``
    event is published only after it commits.
    """

    bucket_window = (config or AuctionConfig()).bucket_window
    now = clock()
    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        bid = repositories.bids.get_for_update(bid_id)
        if bid is None:
            raise NotFoundError("Bid", bid_id)
        if bid.bid_request_id is None:
            raise NotFoundError("Bid request", None)
        bid_request = repositories.bid_requests.get_for_update(bid.bid_request_id)
        if bid_request is None:
            raise NotFoundError("Bid request", bid.bid_request_id)
        if bid_request.retailer_id != retailer_id:
            raise ConflictError("You do not own this request.")
        if not bid_request.is_active:
            raise ConflictError("Bid request is no longer active")
        if not bid.is_pending:
            raise ConflictError(f"Bid is {bid.status} and cannot be accepted")
        product = repositories.catalog.get(bid_request.product_id)

        bucket = repositories.buckets.latest_open(
            retailer_id=retailer_id,
            wholesaler_id=bid.wholesaler_id,
            since=now - bucket_window,
        )
        if bucket is None:
            bucket = OrderBucket(
                retailer_id=retailer_id, wholesaler_id=bid.wholesaler_id, created_at=now
            )
            repositories.buckets.add(bucket)

        order = Order(
            quantity=bid_request.quantity,
            total_price=order_total(bid_request.quantity, bid.mrp, bid.discount_percent),
            discount_percent=bid.discount_percent,
            mrp=bid.mrp,
            retailer_id=retailer_id,
            wholesaler_id=bid.wholesaler_id,
            product_id=bid_request.product_id,
            bid_id=bid.id,
            bucket_id=bucket.id,
            pickup_point=pickup_point,
            created_at=now,
        )
        repositories.orders.add(order)
        bucket.record(order)

        bid_request.deactivate(now)
        bid.accept(now)
        for sibling in repositories.bids.for_request(bid_request.id):
            if sibling.id != bid.id:
                sibling.reject(now)

        event = DomainEvent(
            EventType.ORDER_CREATED, order_snapshot(order, bid_request, product), occurred_at=now
        )
        uow.commit()

    publisher.publish(event)
    log.info(
        "Settled bid %s into order %s (bucket %s, total %.2f)",
        bid.id,
        order.id,
        bucket.id,
        order.total_price,
    )
    return order


def orders_for_retailer(
    retailer_id: str, *, unit_of_work_factory: UnitOfWorkFactory
) -> list[Order]:
    with unit_of_work_factory() as uow:
        return uow.repositories.orders.for_retailer(retailer_id)


def buckets_for_wholesaler(
    wholesaler_id: str, *, unit_of_work_factory: UnitOfWorkFactory
) -> list[OrderBucketView]:
    with unit_of_work_factory() as uow:
        buckets = uow.repositories.buckets.for_wholesaler(wholesaler_id)
        orders = uow.repositories.orders.for_buckets([bucket.id for bucket in buckets])
    return [
        OrderBucketView(bucket=bucket, orders=tuple(orders.get(bucket.id, [])))
        for bucket in buckets
    ]
