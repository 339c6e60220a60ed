"""Auction engine: bid requests, competing bids, settlement and expiry."""

from __future__ import annotations

from .bid_requests import (
    active_bid_requests,
    cancel_bid_request,
    create_bid_requests,
    distributor_bid_requests,
    retailer_bid_requests,
)
from .bids import submit_bid, wholesaler_bids, withdraw_bid
from .commands import BidRequestItem, BidSubmission, parse_command
from .expiry import ExpirySweep, SweepResult
from .pricing import (
    final_price,
    order_total,
    resolve_mrp,
    retailer_discount,
    retailer_price,
    validate_mrp,
)
from .settlement import accept_bid, buckets_for_wholesaler, orders_for_retailer
from .views import BidRequestView, OrderBucketView, WholesalerBidView

__all__ = [
    "BidRequestItem",
    "BidRequestView",
    "BidSubmission",
    "ExpirySweep",
    "OrderBucketView",
    "SweepResult",
    "WholesalerBidView",
    "accept_bid",
    "active_bid_requests",
    "buckets_for_wholesaler",
    "cancel_bid_request",
    "create_bid_requests",
    "distributor_bid_requests",
    "final_price",
    "order_total",
    "orders_for_retailer",
    "parse_command",
    "resolve_mrp",
    "retailer_bid_requests",
    "retailer_discount",
    "retailer_price",
    "submit_bid",
    "validate_mrp",
    "wholesaler_bids",
    "withdraw_bid",
]
