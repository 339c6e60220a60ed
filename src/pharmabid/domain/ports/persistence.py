"""Repository protocols for the marketplace aggregates."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    import uuid
    from collections.abc import Collection, Iterable, Mapping
    from datetime import datetime

    from pharmabid.domain.model import (
        Bid,
        BidRequest,
        CatalogProduct,
        Order,
        OrderBucket,
        UnidentifiedEntry,
    )


class CatalogRepository(Protocol):
    """Canonical product catalog."""

    def add(self, product: CatalogProduct) -> None: ...

    def get(self, product_id: int) -> CatalogProduct | None: ...

    def get_for_update(self, product_id: int) -> CatalogProduct | None: ...

    def get_many(self, product_ids: Collection[int]) -> Mapping[int, CatalogProduct]: ...

    def find_by_normalized_name(self, normalized_name: str) -> CatalogProduct | None: ...

    def find_by_normalized_names(
        self, normalized_names: Collection[str]
    ) -> Mapping[str, CatalogProduct]: ...

    def find_by_prefixes(
        self, prefixes: Collection[str], *, length: int
    ) -> list[CatalogProduct]: ...

    def add_if_absent(self, product: CatalogProduct) -> tuple[CatalogProduct, bool]:
        """Insert ``product`` unless its normalized name exists; return (stored, created)."""
        ...

    def similar_to(
        self, text: str, *, threshold: float, limit: int
    ) -> list[tuple[CatalogProduct, float]]: ...

    def search_candidates(self, term: str, *, min_similarity: float) -> list[CatalogProduct]: ...

    def sample(self, *, limit: int) -> list[CatalogProduct]: ...

    def stocked_by(self, distributor_id: int) -> list[CatalogProduct]: ...

    def count_stocked_by(self, distributor_id: int) -> int: ...


class DistributorRegistry(Protocol):
    """Explicit mapping from opaque distributor keys to integer ids."""

    def resolve(self, key: str) -> int:
        """Return the id for ``key``, assigning a new one on first use."""
        ...

    def lookup(self, key: str) -> int | None: ...


class StagingRepository(Protocol):
    """Unidentified inventory rows awaiting promotion or future matches."""

    def replace_for_distributor(
        self, distributor_id: int, entries: Iterable[UnidentifiedEntry]
    ) -> None: ...

    def for_distributor(self, distributor_id: int) -> list[UnidentifiedEntry]: ...

    def count_for_distributor(self, distributor_id: int) -> int: ...

    def clear_for_distributor(self, distributor_id: int) -> int: ...

    def names_staged_by_multiple_distributors(self) -> list[str]: ...

    def entries_for_names(self, raw_names: Collection[str]) -> list[UnidentifiedEntry]: ...

    def delete_names(self, raw_names: Collection[str]) -> int: ...

    def search_candidates(
        self, term: str, *, min_similarity: float, limit: int
    ) -> list[tuple[UnidentifiedEntry, float]]: ...


class BidRequestRepository(Protocol):
    def add(self, bid_request: BidRequest) -> None: ...

    def get(self, bid_request_id: uuid.UUID) -> BidRequest | None: ...

    def get_for_update(self, bid_request_id: uuid.UUID) -> BidRequest | None: ...

    def get_many(
        self, bid_request_ids: Collection[uuid.UUID]
    ) -> Mapping[uuid.UUID, BidRequest]: ...

    def delete(self, bid_request: BidRequest) -> None: ...

    def list_active(
        self,
        *,
        retailer_id: str | None = None,
        stocked_by: int | None = None,
    ) -> list[BidRequest]:
        """Return ACTIVE requests, newest first, optionally filtered."""
        ...

    def list_expiry_candidates(self, *, created_before: datetime) -> list[BidRequest]: ...


class BidRepository(Protocol):
    def add(self, bid: Bid) -> None: ...

    def get(self, bid_id: uuid.UUID) -> Bid | None: ...

    def get_for_update(self, bid_id: uuid.UUID) -> Bid | None: ...

    def for_request(self, bid_request_id: uuid.UUID) -> list[Bid]:
        """Return every bid on the request ordered by discount, best first."""
        ...

    def for_requests(
        self, bid_request_ids: Collection[uuid.UUID]
    ) -> Mapping[uuid.UUID, list[Bid]]: ...

    def for_wholesaler(self, wholesaler_id: str) -> list[Bid]: ...

    def latest_pending_created_at(self, bid_request_id: uuid.UUID) -> datetime | None: ...

    def delete_pending_for_wholesaler(self, wholesaler_id: str) -> int: ...


class OrderRepository(Protocol):
    def add(self, order: Order) -> None: ...

    def for_retailer(self, retailer_id: str) -> list[Order]: ...

    def for_buckets(self, bucket_ids: Collection[uuid.UUID]) -> Mapping[uuid.UUID, list[Order]]: ...


class OrderBucketRepository(Protocol):
    def add(self, bucket: OrderBucket) -> None: ...

    def latest_open(
        self, *, retailer_id: str, wholesaler_id: str, since: datetime
    ) -> OrderBucket | None: ...

    def for_wholesaler(self, wholesaler_id: str) -> list[OrderBucket]: ...
