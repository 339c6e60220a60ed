"""Domain events published by the reconciliation and auction services."""

from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Literal

from pharmabid.domain.clock import utcnow


class EventType(StrEnum):
    UPLOAD_PROGRESS = "upload-progress"
    UPLOAD_COMPLETE = "upload-complete"
    UPLOAD_ERROR = "upload-error"
    BID_CREATED = "bid-created"
    BID_UPDATED = "bid-updated"
    BID_CANCELLED = "bid-cancelled"
    BID_REQUEST_CREATED = "bid-request-created"
    BID_REQUEST_CANCELLED = "bid-request-cancelled"
    ORDER_CREATED = "order-created"
    ORDER_UPDATED = "order-updated"


type UploadStatus = Literal["processing", "completed", "error"]


@dataclass(frozen=True, slots=True, kw_only=True)
class UploadProgress:
    distributor: str
    total_rows: int
    processed_rows: int
    matched_count: int
    not_found_count: int
    percentage: int
    status: UploadStatus
    message: str


@dataclass(frozen=True, slots=True, kw_only=True)
class UploadFailure:
    distributor: str
    error: str


@dataclass(frozen=True, slots=True, kw_only=True)
class BidRequestSnapshot:
    bid_request_id: uuid.UUID
    retailer_id: str
    product_id: int
    product_name: str | None
    quantity: int
    status: str


@dataclass(frozen=True, slots=True, kw_only=True)
class BidSnapshot:
    bid_id: uuid.UUID
    bid_request_id: uuid.UUID | None
    wholesaler_id: str
    retailer_id: str | None
    product_id: int | None
    product_name: str | None
    quantity: int | None
    discount_percent: float
    mrp: float
    final_price: float
    status: str


@dataclass(frozen=True, slots=True, kw_only=True)
class OrderSnapshot:
    order_id: uuid.UUID
    bucket_id: uuid.UUID
    bid_id: uuid.UUID
    bid_request_id: uuid.UUID
    retailer_id: str
    wholesaler_id: str
    product_id: int
    product_name: str | None
    quantity: int
    mrp: float
    discount_percent: float
    total_price: float
    pickup_point: str | None


type EventPayload = (
    UploadProgress | UploadFailure | BidRequestSnapshot | BidSnapshot | OrderSnapshot
)


@dataclass(frozen=True, slots=True)
class DomainEvent:
    type: EventType
    payload: EventPayload
    occurred_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-friendly representation of the event."""

        return {
            "type": self.type.value,
            "occurred_at": self.occurred_at.isoformat(),
            "payload": {key: _jsonable(value) for key, value in asdict(self.payload).items()},
        }


def _jsonable(value: object) -> object:
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return value


__all__ = [
    "BidRequestSnapshot",
    "BidSnapshot",
    "DomainEvent",
    "EventPayload",
    "EventType",
    "OrderSnapshot",
    "UploadFailure",
    "UploadProgress",
]
