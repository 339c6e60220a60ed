"""Bid submission, withdrawal and the wholesaler's bid list."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pharmabid.config.marketplace import AuctionConfig
from pharmabid.domain.clock import Clock, utcnow
from pharmabid.domain.errors import ConflictError, NotFoundError
from pharmabid.domain.events import DomainEvent, EventType
from pharmabid.domain.model import Bid, BidStatus

from .commands import BidSubmission, parse_command
from .notifications import bid_snapshot
from .pricing import final_price, resolve_mrp, validate_mrp
from .views import WholesalerBidView

if TYPE_CHECKING:
    import uuid
    from collections.abc import Iterable

    from pharmabid.domain.ports import EventPublisher, UnitOfWorkFactory

log = logging.getLogger(__name__)


def _best_competing_discount(bids: Iterable[Bid], wholesaler_id: str) -> float | None:
    discounts = [
        bid.discount_percent
        for bid in bids
        if bid.is_pending and bid.wholesaler_id != wholesaler_id
    ]
    return max(discounts) if discounts else None


def submit_bid(
    submission: BidSubmission | dict[str, Any],
    *,
    wholesaler_id: str,
    unit_of_work_factory: UnitOfWorkFactory,
    publisher: EventPublisher,
    config: AuctionConfig | None = None,
    clock: Clock = utcnow,
) -> Bid:
    """Place or replace ``wholesaler_id``'s offer on a bid request.

    The request row is locked before the competing bids are read, so the
    "must beat the current best" comparison and the write commit together.
    """

    cfg = config or AuctionConfig()
    command = parse_command(BidSubmission, submission)
    if command.mrp is not None:
        validate_mrp(command.mrp)
    now = clock()

    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        bid_request = repositories.bid_requests.get_for_update(command.bid_request_id)
        if bid_request is None:
            raise NotFoundError("Bid request", command.bid_request_id)
        if not bid_request.is_active:
            raise ConflictError("Bid request is no longer active")
        product = repositories.catalog.get_for_update(bid_request.product_id)
        if product is None:
            raise NotFoundError("Product", bid_request.product_id)

        siblings = repositories.bids.for_request(bid_request.id)
        own = next(
            (bid for bid in siblings if bid.wholesaler_id == wholesaler_id and bid.is_pending),
            None,
        )
        mrp = resolve_mrp(
            product_name=product.name,
            explicit=command.mrp,
            catalog=product.price,
            fallback=own.mrp if own is not None else None,
        )

        best = _best_competing_discount(siblings, wholesaler_id)
        if best is not None and command.discount_percent <= best:
            minimum = best + cfg.minimum_increment
            raise ConflictError(
                f"Your discount must be higher than the current best offer of {best:.1f}%. "
                f"Please offer at least {minimum:.1f}% discount.",
                minimum_discount=round(minimum, 1),
            )

        price = final_price(mrp, command.discount_percent)
        if own is not None:
            own.replace_offer(
                discount_percent=command.discount_percent,
                mrp=mrp,
                final_price=price,
                expiry=command.expiry,
                is_custom=command.is_custom,
                at=now,
            )
            bid = own
        else:
            bid = Bid(
                bid_request_id=bid_request.id,
                wholesaler_id=wholesaler_id,
                discount_percent=command.discount_percent,
                mrp=mrp,
                final_price=price,
                expiry=command.expiry,
                is_custom=command.is_custom,
                created_at=now,
                updated_at=now,
            )
            repositories.bids.add(bid)

        if command.mrp is not None and product.raise_price(command.mrp):
            log.info("Raised catalog price of product %s to %s", product.id, command.mrp)
        bid_request.touch(now)
        event = DomainEvent(
            EventType.BID_CREATED, bid_snapshot(bid, bid_request, product), occurred_at=now
        )
        uow.commit()

    publisher.publish(event)
    log.info(
        "Wholesaler %s bid %.1f%% on request %s (replaced=%s)",
        wholesaler_id,
        command.discount_percent,
        bid_request.id,
        own is not None,
    )
    return bid


def _has_rejection(siblings: Iterable[Bid], wholesaler_id: str) -> bool:
    return any(
        bid.wholesaler_id == wholesaler_id and bid.status == BidStatus.REJECTED
        for bid in siblings
    )


def withdraw_bid(
    bid_id: uuid.UUID,
    *,
    wholesaler_id: str,
    unit_of_work_factory: UnitOfWorkFactory,
    publisher: EventPublisher,
    clock: Clock = utcnow,
) -> Bid:
    """Withdraw a PENDING bid; refused once the wholesaler has any rejection on the request."""

    now = clock()
    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        bid = repositories.bids.get_for_update(bid_id)
        if bid is None:
            raise NotFoundError("Bid", bid_id)
        if bid.wholesaler_id != wholesaler_id:
            raise ConflictError("You do not own this bid")
        if not bid.is_pending or bid.bid_request_id is None:
            raise ConflictError("Only pending bids can be withdrawn")
        bid_request = repositories.bid_requests.get_for_update(bid.bid_request_id)
        if bid_request is None:
            raise NotFoundError("Bid request", bid.bid_request_id)
        if _has_rejection(repositories.bids.for_request(bid_request.id), wholesaler_id):
            raise ConflictError("Bids cannot be withdrawn after a rejection on this request")

        bid.reject(now)
        product = repositories.catalog.get(bid_request.product_id)
        event = DomainEvent(
            EventType.BID_CANCELLED, bid_snapshot(bid, bid_request, product), occurred_at=now
        )
        uow.commit()

    publisher.publish(event)
    return bid


def wholesaler_bids(
    wholesaler_id: str, *, unit_of_work_factory: UnitOfWorkFactory
) -> list[WholesalerBidView]:
    """Every bid ``wholesaler_id`` ever placed, newest first, with current standing."""

    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        bids = repositories.bids.for_wholesaler(wholesaler_id)
        request_ids = {bid.bid_request_id for bid in bids if bid.bid_request_id is not None}
        bid_requests = repositories.bid_requests.get_many(request_ids)
        siblings = repositories.bids.for_requests(request_ids)
        products = repositories.catalog.get_many(
            {request.product_id for request in bid_requests.values()}
        )

    views: list[WholesalerBidView] = []
    for bid in bids:
        bid_request = bid_requests.get(bid.bid_request_id) if bid.bid_request_id else None
        request_bids = siblings.get(bid.bid_request_id, []) if bid.bid_request_id else []
        pending = [sibling for sibling in request_bids if sibling.is_pending]
        is_current = bool(pending) and pending[0].id == bid.id
        views.append(
            WholesalerBidView(
                bid=bid,
                bid_request=bid_request,
                product=products.get(bid_request.product_id) if bid_request else None,
                is_current_bid=is_current,
                can_cancel=bid.is_pending and not _has_rejection(request_bids, wholesaler_id),
            )
        )
    return views
