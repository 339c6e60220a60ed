"""Marketplace domain model."""

from __future__ import annotations

from .auction import Bid, BidRequest
from .catalog import (
    UNKNOWN_MANUFACTURER,
    CatalogProduct,
    Distributor,
    DistributorStock,
    UnidentifiedEntry,
    is_usable_manufacturer,
)
from .enums import BidRequestStatus, BidStatus, OrderBucketStatus
from .orders import Order, OrderBucket

__all__ = [
    "UNKNOWN_MANUFACTURER",
    "Bid",
    "BidRequest",
    "BidRequestStatus",
    "BidStatus",
    "CatalogProduct",
    "Distributor",
    "DistributorStock",
    "Order",
    "OrderBucket",
    "OrderBucketStatus",
    "UnidentifiedEntry",
    "is_usable_manufacturer",
]
