"""Builders for the event payloads published by auction operations."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pharmabid.domain.events import BidRequestSnapshot, BidSnapshot, OrderSnapshot

if TYPE_CHECKING:
    from pharmabid.domain.model import Bid, BidRequest, CatalogProduct, Order


def bid_request_snapshot(
    bid_request: BidRequest, product: CatalogProduct | None
) -> BidRequestSnapshot:
    return BidRequestSnapshot(
        bid_request_id=bid_request.id,
        retailer_id=bid_request.retailer_id,
        product_id=bid_request.product_id,
        product_name=product.name if product is not None else None,
        quantity=bid_request.quantity,
        status=str(bid_request.status),
    )


def bid_snapshot(
    bid: Bid, bid_request: BidRequest | None, product: CatalogProduct | None
) -> BidSnapshot:
    return BidSnapshot(
        bid_id=bid.id,
        bid_request_id=bid.bid_request_id,
        wholesaler_id=bid.wholesaler_id,
        retailer_id=bid_request.retailer_id if bid_request is not None else None,
        product_id=bid_request.product_id if bid_request is not None else None,
        product_name=product.name if product is not None else None,
        quantity=bid_request.quantity if bid_request is not None else None,
        discount_percent=bid.discount_percent,
        mrp=bid.mrp,
        final_price=bid.final_price,
        status=str(bid.status),
    )


def order_snapshot(
    order: Order, bid_request: BidRequest, product: CatalogProduct | None
) -> OrderSnapshot:
    return OrderSnapshot(
        order_id=order.id,
        bucket_id=order.bucket_id,
        bid_id=order.bid_id,
        bid_request_id=bid_request.id,
        retailer_id=order.retailer_id,
        wholesaler_id=order.wholesaler_id,
        product_id=order.product_id,
        product_name=product.name if product is not None else None,
        quantity=order.quantity,
        mrp=order.mrp,
        discount_percent=order.discount_percent,
        total_price=order.total_price,
        pickup_point=order.pickup_point,
    )
