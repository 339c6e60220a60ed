"""SQLAlchemy repository implementations."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, cast

from sqlalchemy import case, delete, distinct, exists, func, or_, select
from sqlalchemy.exc import IntegrityError

from pharmabid.domain.model import (
    Bid,
    BidRequest,
    BidRequestStatus,
    BidStatus,
    CatalogProduct,
    Distributor,
    Order,
    OrderBucket,
    OrderBucketStatus,
    UnidentifiedEntry,
)

from .mappings import (
    bid_request_table,
    bid_table,
    catalog_product_table,
    distributor_table,
    order_bucket_table,
    order_table,
    product_distributor_table,
    unidentified_entry_table,
)

if TYPE_CHECKING:
    import uuid
    from collections.abc import Collection, Iterable
    from datetime import datetime

    from sqlalchemy.engine import CursorResult
    from sqlalchemy.orm import Session

log = logging.getLogger(__name__)

SEARCH_CANDIDATE_CAP = 200


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _rowcount(result: object) -> int:
    return cast("CursorResult[object]", result).rowcount


class SqlAlchemyCatalogRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, product: CatalogProduct) -> None:
        self.session.add(product)

    def get(self, product_id: int) -> CatalogProduct | None:
        return self.session.get(CatalogProduct, product_id)

    def get_for_update(self, product_id: int) -> CatalogProduct | None:
        return self.session.get(CatalogProduct, product_id, with_for_update=True)

    def get_many(self, product_ids: Collection[int]) -> dict[int, CatalogProduct]:
        if not product_ids:
            return {}
        stmt = select(CatalogProduct).where(catalog_product_table.c.id.in_(list(product_ids)))
        return {
            cast(int, product.id): product for product in self.session.scalars(stmt)
        }

    def find_by_normalized_name(self, normalized_name: str) -> CatalogProduct | None:
        stmt = select(CatalogProduct).where(
            catalog_product_table.c.normalized_name == normalized_name
        )
        return self.session.scalars(stmt).one_or_none()

    def find_by_normalized_names(
        self, normalized_names: Collection[str]
    ) -> dict[str, CatalogProduct]:
        if not normalized_names:
            return {}
        stmt = select(CatalogProduct).where(
            catalog_product_table.c.normalized_name.in_(list(normalized_names))
        )
        return {product.normalized_name: product for product in self.session.scalars(stmt)}

    def find_by_prefixes(self, prefixes: Collection[str], *, length: int) -> list[CatalogProduct]:
        if not prefixes:
            return []
        prefix = func.substr(catalog_product_table.c.normalized_name, 1, length)
        stmt = select(CatalogProduct).where(prefix.in_(list(prefixes)))
        return list(self.session.scalars(stmt))

    def add_if_absent(self, product: CatalogProduct) -> tuple[CatalogProduct, bool]:
        existing = self.find_by_normalized_name(product.normalized_name)
        if existing is not None:
            return existing, False
        try:
            with self.session.begin_nested():
                self.session.add(product)
        except IntegrityError:
            log.info("Concurrent insert of %r detected; merging", product.normalized_name)
            existing = self.find_by_normalized_name(product.normalized_name)
            if existing is None:
                raise
            return existing, False
        return product, True

    def similar_to(
        self, text: str, *, threshold: float, limit: int
    ) -> list[tuple[CatalogProduct, float]]:
        score = func.similarity(func.lower(catalog_product_table.c.name), text)
        stmt = (
            select(CatalogProduct, score.label("score"))
            .where(score > threshold)
            .order_by(score.desc(), catalog_product_table.c.name)
            .limit(limit)
        )
        return [(row[0], float(row[1])) for row in self.session.execute(stmt)]

    def search_candidates(self, term: str, *, min_similarity: float) -> list[CatalogProduct]:
        pattern = _like_pattern(term)
        name = func.lower(catalog_product_table.c.name)
        manufacturer = func.lower(func.coalesce(catalog_product_table.c.manufacturer, ""))
        stmt = (
            select(CatalogProduct)
            .where(
                or_(
                    name.like(pattern, escape="\\"),
                    manufacturer.like(pattern, escape="\\"),
                    func.similarity(name, term) > min_similarity,
                )
            )
            .limit(SEARCH_CANDIDATE_CAP)
        )
        return list(self.session.scalars(stmt))

    def sample(self, *, limit: int) -> list[CatalogProduct]:
        stocked = exists().where(
            product_distributor_table.c.product_id == catalog_product_table.c.id
        )
        stmt = (
            select(CatalogProduct)
            .order_by(case((stocked, 0), else_=1), catalog_product_table.c.name)
            .limit(limit)
        )
        return list(self.session.scalars(stmt))

    def stocked_by(self, distributor_id: int) -> list[CatalogProduct]:
        stmt = (
            select(CatalogProduct)
            .join(
                product_distributor_table,
                product_distributor_table.c.product_id == catalog_product_table.c.id,
            )
            .where(product_distributor_table.c.distributor_id == distributor_id)
            .order_by(catalog_product_table.c.name)
        )
        return list(self.session.scalars(stmt))

    def count_stocked_by(self, distributor_id: int) -> int:
        stmt = (
            select(func.count())
            .select_from(product_distributor_table)
            .where(product_distributor_table.c.distributor_id == distributor_id)
        )
        return int(self.session.execute(stmt).scalar_one())


class SqlAlchemyDistributorRegistry:
    def __init__(self, session: Session) -> None:
        self.session = session

    def lookup(self, key: str) -> int | None:
        stmt = select(distributor_table.c.id).where(distributor_table.c.key == key)
        return self.session.execute(stmt).scalar_one_or_none()

    def resolve(self, key: str) -> int:
        existing = self.lookup(key)
        if existing is not None:
            return existing
        distributor = Distributor(key=key)
        try:
            with self.session.begin_nested():
                self.session.add(distributor)
        except IntegrityError:
            existing = self.lookup(key)
            if existing is None:
                raise
            return existing
        log.info("Registered distributor %r as %s", key, distributor.id)
        return cast(int, distributor.id)


class SqlAlchemyStagingRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def replace_for_distributor(
        self, distributor_id: int, entries: Iterable[UnidentifiedEntry]
    ) -> None:
        self.clear_for_distributor(distributor_id)
        self.session.add_all(list(entries))
        self.session.flush()

    def for_distributor(self, distributor_id: int) -> list[UnidentifiedEntry]:
        stmt = (
            select(UnidentifiedEntry)
            .where(unidentified_entry_table.c.distributor_id == distributor_id)
            .order_by(unidentified_entry_table.c.raw_name)
        )
        return list(self.session.scalars(stmt))

    def count_for_distributor(self, distributor_id: int) -> int:
        stmt = (
            select(func.count())
            .select_from(unidentified_entry_table)
            .where(unidentified_entry_table.c.distributor_id == distributor_id)
        )
        return int(self.session.execute(stmt).scalar_one())

    def clear_for_distributor(self, distributor_id: int) -> int:
        stmt = delete(UnidentifiedEntry).where(
            unidentified_entry_table.c.distributor_id == distributor_id
        )
        return _rowcount(self.session.execute(stmt))

    def names_staged_by_multiple_distributors(self) -> list[str]:
        raw_name = unidentified_entry_table.c.raw_name
        stmt = (
            select(raw_name)
            .group_by(raw_name)
            .having(func.count(distinct(unidentified_entry_table.c.distributor_id)) > 1)
            .order_by(raw_name)
        )
        return list(self.session.scalars(stmt))

    def entries_for_names(self, raw_names: Collection[str]) -> list[UnidentifiedEntry]:
        if not raw_names:
            return []
        stmt = select(UnidentifiedEntry).where(
            unidentified_entry_table.c.raw_name.in_(list(raw_names))
        )
        return list(self.session.scalars(stmt))

    def delete_names(self, raw_names: Collection[str]) -> int:
        if not raw_names:
            return 0
        stmt = delete(UnidentifiedEntry).where(
            unidentified_entry_table.c.raw_name.in_(list(raw_names))
        )
        return _rowcount(self.session.execute(stmt))

    def search_candidates(
        self, term: str, *, min_similarity: float, limit: int
    ) -> list[tuple[UnidentifiedEntry, float]]:
        score = func.similarity(func.lower(unidentified_entry_table.c.raw_name), term)
        stmt = (
            select(UnidentifiedEntry, score.label("score"))
            .where(score > min_similarity)
            .order_by(score.desc())
            .limit(limit)
        )
        return [(row[0], float(row[1])) for row in self.session.execute(stmt)]


class SqlAlchemyBidRequestRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, bid_request: BidRequest) -> None:
        self.session.add(bid_request)

    def get(self, bid_request_id: uuid.UUID) -> BidRequest | None:
        return self.session.get(BidRequest, bid_request_id)

    def get_for_update(self, bid_request_id: uuid.UUID) -> BidRequest | None:
        return self.session.get(BidRequest, bid_request_id, with_for_update=True)

    def get_many(self, bid_request_ids: Collection[uuid.UUID]) -> dict[uuid.UUID, BidRequest]:
        if not bid_request_ids:
            return {}
        stmt = select(BidRequest).where(bid_request_table.c.id.in_(list(bid_request_ids)))
        return {request.id: request for request in self.session.scalars(stmt)}

    def delete(self, bid_request: BidRequest) -> None:
        # pending changes to the request's bids must reach the store before the row goes
        self.session.flush()
        self.session.delete(bid_request)
        self.session.flush()

    def list_active(
        self,
        *,
        retailer_id: str | None = None,
        stocked_by: int | None = None,
    ) -> list[BidRequest]:
        stmt = select(BidRequest).where(bid_request_table.c.status == BidRequestStatus.ACTIVE)
        if retailer_id is not None:
            stmt = stmt.where(bid_request_table.c.retailer_id == retailer_id)
        if stocked_by is not None:
            stocked_products = select(product_distributor_table.c.product_id).where(
                product_distributor_table.c.distributor_id == stocked_by
            )
            stmt = stmt.where(bid_request_table.c.product_id.in_(stocked_products))
        stmt = stmt.order_by(bid_request_table.c.created_at.desc())
        return list(self.session.scalars(stmt))

    def list_expiry_candidates(self, *, created_before: datetime) -> list[BidRequest]:
        stmt = (
            select(BidRequest)
            .where(
                bid_request_table.c.status == BidRequestStatus.ACTIVE,
                bid_request_table.c.created_at < created_before,
            )
            .order_by(bid_request_table.c.created_at)
        )
        return list(self.session.scalars(stmt))


class SqlAlchemyBidRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, bid: Bid) -> None:
        self.session.add(bid)

    def get(self, bid_id: uuid.UUID) -> Bid | None:
        return self.session.get(Bid, bid_id)

    def get_for_update(self, bid_id: uuid.UUID) -> Bid | None:
        return self.session.get(Bid, bid_id, with_for_update=True)

    def for_request(self, bid_request_id: uuid.UUID) -> list[Bid]:
        stmt = (
            select(Bid)
            .where(bid_table.c.bid_request_id == bid_request_id)
            .order_by(bid_table.c.discount_percent.desc(), bid_table.c.created_at)
        )
        return list(self.session.scalars(stmt))

    def for_requests(self, bid_request_ids: Collection[uuid.UUID]) -> dict[uuid.UUID, list[Bid]]:
        if not bid_request_ids:
            return {}
        stmt = (
            select(Bid)
            .where(bid_table.c.bid_request_id.in_(list(bid_request_ids)))
            .order_by(bid_table.c.discount_percent.desc(), bid_table.c.created_at)
        )
        grouped: dict[uuid.UUID, list[Bid]] = {}
        for bid in self.session.scalars(stmt):
            if bid.bid_request_id is not None:
                grouped.setdefault(bid.bid_request_id, []).append(bid)
        return grouped

    def for_wholesaler(self, wholesaler_id: str) -> list[Bid]:
        stmt = (
            select(Bid)
            .where(bid_table.c.wholesaler_id == wholesaler_id)
            .order_by(bid_table.c.created_at.desc())
        )
        return list(self.session.scalars(stmt))

    def latest_pending_created_at(self, bid_request_id: uuid.UUID) -> datetime | None:
        stmt = select(func.max(bid_table.c.created_at)).where(
            bid_table.c.bid_request_id == bid_request_id,
            bid_table.c.status == BidStatus.PENDING,
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def delete_pending_for_wholesaler(self, wholesaler_id: str) -> int:
        stmt = delete(Bid).where(
            bid_table.c.wholesaler_id == wholesaler_id,
            bid_table.c.status == BidStatus.PENDING,
        )
        return _rowcount(self.session.execute(stmt))


class SqlAlchemyOrderRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, order: Order) -> None:
        self.session.add(order)

    def for_retailer(self, retailer_id: str) -> list[Order]:
        stmt = (
            select(Order)
            .where(order_table.c.retailer_id == retailer_id)
            .order_by(order_table.c.created_at.desc())
        )
        return list(self.session.scalars(stmt))

    def for_buckets(self, bucket_ids: Collection[uuid.UUID]) -> dict[uuid.UUID, list[Order]]:
        if not bucket_ids:
            return {}
        stmt = (
            select(Order)
            .where(order_table.c.bucket_id.in_(list(bucket_ids)))
            .order_by(order_table.c.created_at)
        )
        grouped: dict[uuid.UUID, list[Order]] = {}
        for order in self.session.scalars(stmt):
            grouped.setdefault(order.bucket_id, []).append(order)
        return grouped


class SqlAlchemyOrderBucketRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, bucket: OrderBucket) -> None:
        # orders reference the bucket row, so it has to exist before they are flushed
        self.session.add(bucket)
        self.session.flush()

    def latest_open(
        self, *, retailer_id: str, wholesaler_id: str, since: datetime
    ) -> OrderBucket | None:
        stmt = (
            select(OrderBucket)
            .where(
                order_bucket_table.c.retailer_id == retailer_id,
                order_bucket_table.c.wholesaler_id == wholesaler_id,
                order_bucket_table.c.status == OrderBucketStatus.PENDING_FULFILLMENT,
                order_bucket_table.c.created_at >= since,
            )
            .order_by(order_bucket_table.c.created_at.desc())
            .limit(1)
            .with_for_update()
        )
        return self.session.scalars(stmt).first()

    def for_wholesaler(self, wholesaler_id: str) -> list[OrderBucket]:
        stmt = (
            select(OrderBucket)
            .where(order_bucket_table.c.wholesaler_id == wholesaler_id)
            .order_by(order_bucket_table.c.created_at.desc())
        )
        return list(self.session.scalars(stmt))


if TYPE_CHECKING:
    from pharmabid.domain.ports import (
        BidRepository,
        BidRequestRepository,
        CatalogRepository,
        DistributorRegistry,
        OrderBucketRepository,
        OrderRepository,
        StagingRepository,
    )

    def _catalog_check(session: Session) -> CatalogRepository:
        return SqlAlchemyCatalogRepository(session)

    def _registry_check(session: Session) -> DistributorRegistry:
        return SqlAlchemyDistributorRegistry(session)

    def _staging_check(session: Session) -> StagingRepository:
        return SqlAlchemyStagingRepository(session)

    def _bid_request_check(session: Session) -> BidRequestRepository:
        return SqlAlchemyBidRequestRepository(session)

    def _bid_check(session: Session) -> BidRepository:
        return SqlAlchemyBidRepository(session)

    def _order_check(session: Session) -> OrderRepository:
        return SqlAlchemyOrderRepository(session)

    def _bucket_check(session: Session) -> OrderBucketRepository:
        return SqlAlchemyOrderBucketRepository(session)
