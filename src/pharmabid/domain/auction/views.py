"""Read models returned by the auction queries."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pharmabid.domain.model import Bid, BidRequest, CatalogProduct, Order, OrderBucket


@dataclass(frozen=True, slots=True, kw_only=True)
class BidRequestView:
    bid_request: BidRequest
    product: CatalogProduct | None
    bids: tuple[Bid, ...]
    has_my_bid: bool | None = None

    @property
    def has_bids(self) -> bool:
        return bool(self.bids)

    @property
    def best_bid(self) -> Bid | None:
        return self.bids[0] if self.bids else None


@dataclass(frozen=True, slots=True, kw_only=True)
class WholesalerBidView:
    bid: Bid
    bid_request: BidRequest | None
    product: CatalogProduct | None
    is_current_bid: bool
    can_cancel: bool


@dataclass(frozen=True, slots=True, kw_only=True)
class OrderBucketView:
    bucket: OrderBucket
    orders: tuple[Order, ...]
