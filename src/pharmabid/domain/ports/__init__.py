"""Ports the domain services depend on."""

from __future__ import annotations

from .notification import EventPublisher
from .persistence import (
    BidRepository,
    BidRequestRepository,
    CatalogRepository,
    DistributorRegistry,
    OrderBucketRepository,
    OrderRepository,
    StagingRepository,
)
from .unit_of_work import (
    MarketplaceRepositories,
    MarketplaceUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
    UnitOfWorkFactory,
)

__all__ = [
    "BidRepository",
    "BidRequestRepository",
    "CatalogRepository",
    "DistributorRegistry",
    "EventPublisher",
    "MarketplaceRepositories",
    "MarketplaceUnitOfWork",
    "OrderBucketRepository",
    "OrderRepository",
    "RepositoryCollection",
    "StagingRepository",
    "UnitOfWork",
    "UnitOfWorkFactory",
]
