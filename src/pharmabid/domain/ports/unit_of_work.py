"""Unit-of-work abstractions for coordinating repositories."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

    from pharmabid.domain.ports.persistence import (
        BidRepository,
        BidRequestRepository,
        CatalogRepository,
        DistributorRegistry,
        OrderBucketRepository,
        OrderRepository,
        StagingRepository,
    )


@runtime_checkable
class RepositoryCollection(Protocol):
    """Marker protocol for groups of repositories managed together."""


@runtime_checkable
class UnitOfWork[TRepositories: RepositoryCollection](Protocol):
    """Generic unit-of-work boundary around a repository collection."""

    @property
    def repositories(self) -> TRepositories: ...

    def __enter__(self) -> UnitOfWork[TRepositories]: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


@dataclass(slots=True)
class MarketplaceRepositories(RepositoryCollection):
    """Repositories touched by reconciliation, auctions and settlement."""

    catalog: CatalogRepository
    distributors: DistributorRegistry
    staging: StagingRepository
    bid_requests: BidRequestRepository
    bids: BidRepository
    orders: OrderRepository
    buckets: OrderBucketRepository


type MarketplaceUnitOfWork = UnitOfWork[MarketplaceRepositories]
type UnitOfWorkFactory = Callable[[], MarketplaceUnitOfWork]
