"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class BidRequestStatus(StrEnum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class BidStatus(StrEnum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class OrderBucketStatus(StrEnum):
    PENDING_FULFILLMENT = "PENDING_FULFILLMENT"
    FULFILLED = "FULFILLED"
