"""Bid requests and the competing bids placed against them."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime  # noqa: TC003

from pharmabid.domain.clock import utcnow

from .enums import BidRequestStatus, BidStatus


@dataclass(eq=False, kw_only=True)
class BidRequest:
    retailer_id: str
    product_id: int
    quantity: int
    status: BidRequestStatus = BidRequestStatus.ACTIVE
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def is_active(self) -> bool:
        return self.status == BidRequestStatus.ACTIVE

    def touch(self, at: datetime) -> None:
        self.updated_at = at

    def deactivate(self, at: datetime) -> None:
        self.status = BidRequestStatus.INACTIVE
        self.updated_at = at


@dataclass(eq=False, kw_only=True)
class Bid:
    bid_request_id: uuid.UUID | None
    wholesaler_id: str
    discount_percent: float
    mrp: float
    final_price: float
    status: BidStatus = BidStatus.PENDING
    expiry: datetime | None = None
    is_custom: bool = False
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def is_pending(self) -> bool:
        return self.status == BidStatus.PENDING

    def replace_offer(
        self,
        *,
        discount_percent: float,
        mrp: float,
        final_price: float,
        expiry: datetime | None,
        is_custom: bool,
        at: datetime,
    ) -> None:
        self.discount_percent = discount_percent
        self.mrp = mrp
        self.final_price = final_price
        self.expiry = expiry
        self.is_custom = is_custom
        self.updated_at = at

    def accept(self, at: datetime) -> None:
        self.status = BidStatus.ACCEPTED
        self.updated_at = at

    def reject(self, at: datetime) -> None:
        self.status = BidStatus.REJECTED
        self.updated_at = at
