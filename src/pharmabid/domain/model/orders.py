"""Settled orders and the buckets that aggregate them."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime  # noqa: TC003

from pharmabid.domain.clock import utcnow

from .enums import OrderBucketStatus


@dataclass(eq=False, kw_only=True)
class Order:
    """Immutable record of one settlement; prices are locked from the accepted bid."""

    quantity: int
    total_price: float
    discount_percent: float
    mrp: float
    retailer_id: str
    wholesaler_id: str
    product_id: int
    bid_id: uuid.UUID
    bucket_id: uuid.UUID
    pickup_point: str | None = None
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    created_at: datetime = field(default_factory=utcnow)


@dataclass(eq=False, kw_only=True)
class OrderBucket:
    retailer_id: str
    wholesaler_id: str
    total_price: float = 0.0
    total_items: int = 0
    status: OrderBucketStatus = OrderBucketStatus.PENDING_FULFILLMENT
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    created_at: datetime = field(default_factory=utcnow)

    def record(self, order: Order) -> None:
        self.total_price += order.total_price
        self.total_items += order.quantity
