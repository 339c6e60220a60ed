"""Bid request lifecycle: creation, cancellation and the request views."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pharmabid.domain.clock import Clock, utcnow
from pharmabid.domain.errors import ConflictError, NotFoundError
from pharmabid.domain.events import DomainEvent, EventType
from pharmabid.domain.model import BidRequest

from .commands import BidRequestItem, parse_command
from .notifications import bid_request_snapshot
from .views import BidRequestView

if TYPE_CHECKING:
    import uuid
    from collections.abc import Iterable, Mapping

    from pharmabid.domain.model import Bid, CatalogProduct
    from pharmabid.domain.ports import (
        EventPublisher,
        MarketplaceRepositories,
        UnitOfWorkFactory,
    )

log = logging.getLogger(__name__)


def create_bid_requests(
    items: Iterable[BidRequestItem | Mapping[str, object]],
    *,
    retailer_id: str,
    unit_of_work_factory: UnitOfWorkFactory,
    publisher: EventPublisher,
    clock: Clock = utcnow,
) -> list[BidRequest]:
    """Open one ACTIVE bid request per item; all or nothing."""

    commands = [parse_command(BidRequestItem, item) for item in items]
    now = clock()
    events: list[DomainEvent] = []
    created: list[BidRequest] = []

    with unit_of_work_factory() as uow:
        catalog = uow.repositories.catalog
        for command in commands:
            product = catalog.get(command.product_id)
            if product is None:
                raise NotFoundError("Product", command.product_id)
            bid_request = BidRequest(
                retailer_id=retailer_id,
                product_id=command.product_id,
                quantity=command.quantity,
                created_at=now,
                updated_at=now,
            )
            uow.repositories.bid_requests.add(bid_request)
            created.append(bid_request)
            events.append(
                DomainEvent(
                    EventType.BID_REQUEST_CREATED,
                    bid_request_snapshot(bid_request, product),
                    occurred_at=now,
                )
            )
        uow.commit()

    for event in events:
        publisher.publish(event)
    log.info("Retailer %s opened %s bid request(s)", retailer_id, len(created))
    return created


def cancel_bid_request(
    bid_request_id: uuid.UUID,
    *,
    retailer_id: str,
    unit_of_work_factory: UnitOfWorkFactory,
    publisher: EventPublisher,
    clock: Clock = utcnow,
) -> None:
    """Withdraw an ACTIVE request owned by ``retailer_id``.

    The request row is deleted; its bids survive detached from it, and any
    that were still PENDING become REJECTED.
    """

    now = clock()
    with unit_of_work_factory() as uow:
        bid_request = uow.repositories.bid_requests.get_for_update(bid_request_id)
        if bid_request is None:
            raise NotFoundError("Bid request", bid_request_id)
        if bid_request.retailer_id != retailer_id:
            raise ConflictError("You do not own this bid request")
        if not bid_request.is_active:
            raise ConflictError("Bid request is already inactive")

        product = uow.repositories.catalog.get(bid_request.product_id)
        publisher.publish(
            DomainEvent(
                EventType.BID_REQUEST_CANCELLED,
                bid_request_snapshot(bid_request, product),
                occurred_at=now,
            )
        )

        bids = uow.repositories.bids.for_request(bid_request.id)
        rejected = 0
        for bid in bids:
            bid.bid_request_id = None
            if bid.is_pending:
                bid.reject(now)
                rejected += 1
        uow.repositories.bid_requests.delete(bid_request)
        uow.commit()

    log.info("Cancelled bid request %s (rejected %s pending bids)", bid_request_id, rejected)


def _pending(bids: Iterable[Bid]) -> tuple[Bid, ...]:
    return tuple(bid for bid in bids if bid.is_pending)


def _views(
    repositories: MarketplaceRepositories,
    bid_requests: list[BidRequest],
) -> list[tuple[BidRequest, CatalogProduct | None, list[Bid]]]:
    products = repositories.catalog.get_many({request.product_id for request in bid_requests})
    bids = repositories.bids.for_requests([request.id for request in bid_requests])
    return [
        (request, products.get(request.product_id), bids.get(request.id, []))
        for request in bid_requests
    ]


def retailer_bid_requests(
    retailer_id: str, *, unit_of_work_factory: UnitOfWorkFactory
) -> list[BidRequestView]:
    """The retailer's ACTIVE requests with their PENDING non-custom bids, best first."""

    with unit_of_work_factory() as uow:
        active = uow.repositories.bid_requests.list_active(retailer_id=retailer_id)
        rows = _views(uow.repositories, active)
    return [
        BidRequestView(
            bid_request=request,
            product=product,
            bids=tuple(bid for bid in _pending(bids) if not bid.is_custom),
        )
        for request, product, bids in rows
    ]


def active_bid_requests(*, unit_of_work_factory: UnitOfWorkFactory) -> list[BidRequestView]:
    """Every ACTIVE request system-wide with all of its PENDING bids."""

    with unit_of_work_factory() as uow:
        rows = _views(uow.repositories, uow.repositories.bid_requests.list_active())
    return [
        BidRequestView(bid_request=request, product=product, bids=_pending(bids))
        for request, product, bids in rows
    ]


def distributor_bid_requests(
    distributor: str, *, unit_of_work_factory: UnitOfWorkFactory
) -> list[BidRequestView]:
    """ACTIVE requests for products the distributor stocks, minus those it leads."""

    with unit_of_work_factory() as uow:
        distributor_id = uow.repositories.distributors.lookup(distributor)
        if distributor_id is None:
            return []
        rows = _views(
            uow.repositories,
            uow.repositories.bid_requests.list_active(stocked_by=distributor_id),
        )

    views: list[BidRequestView] = []
    for request, product, bids in rows:
        pending = _pending(bids)
        if pending and pending[0].wholesaler_id == distributor:
            continue
        views.append(
            BidRequestView(
                bid_request=request,
                product=product,
                bids=pending,
                has_my_bid=any(bid.wholesaler_id == distributor for bid in bids),
            )
        )
    return views
