"""SQLAlchemy adapter package for pharmabid."""

from __future__ import annotations

from .mappings import mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyBidRepository,
    SqlAlchemyBidRequestRepository,
    SqlAlchemyCatalogRepository,
    SqlAlchemyDistributorRegistry,
    SqlAlchemyOrderBucketRepository,
    SqlAlchemyOrderRepository,
    SqlAlchemyStagingRepository,
)
from .unit_of_work import (
    SqlAlchemyUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyBidRepository",
    "SqlAlchemyBidRequestRepository",
    "SqlAlchemyCatalogRepository",
    "SqlAlchemyDistributorRegistry",
    "SqlAlchemyOrderBucketRepository",
    "SqlAlchemyOrderRepository",
    "SqlAlchemyStagingRepository",
    "SqlAlchemyUnitOfWork",
    "StartupError",
    "configured_engine",
    "is_started",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]
