"""SQLAlchemy mapping metadata for the marketplace domain model."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from functools import cache

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Dialect,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    TypeDecorator,
    Uuid,
    orm,
)
from sqlalchemy.orm import relationship

from pharmabid.domain.model import (
    Bid,
    BidRequest,
    BidRequestStatus,
    BidStatus,
    CatalogProduct,
    Distributor,
    DistributorStock,
    Order,
    OrderBucket,
    OrderBucketStatus,
    UnidentifiedEntry,
)

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


def _status(enum_type: type[BidStatus | BidRequestStatus | OrderBucketStatus]) -> Enum:
    return Enum(enum_type, native_enum=False, length=32, validate_strings=True)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Catalog ---------------------------------------------------------------------

distributor_table = Table(
    "distributor",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("key", String(255), nullable=False, unique=True),
    Column("created_at", UTCDateTime(), nullable=False),
)

catalog_product_table = Table(
    "catalog_product",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(512), nullable=False),
    Column("normalized_name", String(512), nullable=False, unique=True),
    Column("manufacturer", String(255), nullable=True),
    Column("price", Float, nullable=True),
)

product_distributor_table = Table(
    "product_distributor",
    mapper_registry.metadata,
    Column(
        "product_id",
        Integer,
        ForeignKey("catalog_product.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "distributor_id",
        Integer,
        ForeignKey("distributor.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Index("ix_product_distributor_distributor_id", "distributor_id"),
)

unidentified_entry_table = Table(
    "unidentified_entry",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "distributor_id",
        Integer,
        ForeignKey("distributor.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("raw_name", String(512), nullable=False),
    Column("raw_manufacturer", String(255), nullable=False, default=""),
    Column("raw_price", Float, nullable=True),
    Column("uploaded_at", UTCDateTime(), nullable=False),
    Index("ix_unidentified_entry_distributor_id", "distributor_id"),
    Index("ix_unidentified_entry_raw_name", "raw_name"),
)

# Auction ---------------------------------------------------------------------

bid_request_table = Table(
    "bid_request",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True),
    Column("retailer_id", String(64), nullable=False),
    Column("product_id", Integer, ForeignKey("catalog_product.id"), nullable=False),
    Column("quantity", Integer, nullable=False),
    Column("status", _status(BidRequestStatus), nullable=False),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
    Index("ix_bid_request_status_created_at", "status", "created_at"),
    Index("ix_bid_request_retailer_id", "retailer_id"),
)

bid_table = Table(
    "bid",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True),
    Column(
        "bid_request_id",
        UUIDColumnType,
        ForeignKey("bid_request.id", ondelete="SET NULL"),
        nullable=True,
    ),
    Column("wholesaler_id", String(64), nullable=False),
    Column("discount_percent", Float, nullable=False),
    Column("mrp", Float, nullable=False),
    Column("final_price", Float, nullable=False),
    Column("status", _status(BidStatus), nullable=False),
    Column("expiry", UTCDateTime(), nullable=True),
    Column("is_custom", Boolean, nullable=False, default=False),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
    Index("ix_bid_bid_request_id", "bid_request_id"),
    Index("ix_bid_wholesaler_id", "wholesaler_id"),
)

# Settlement ------------------------------------------------------------------

order_bucket_table = Table(
    "order_bucket",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True),
    Column("retailer_id", String(64), nullable=False),
    Column("wholesaler_id", String(64), nullable=False),
    Column("total_price", Float, nullable=False),
    Column("total_items", Integer, nullable=False),
    Column("status", _status(OrderBucketStatus), nullable=False),
    Column("created_at", UTCDateTime(), nullable=False),
    Index("ix_order_bucket_pair_created_at", "retailer_id", "wholesaler_id", "created_at"),
)

order_table = Table(
    "orders",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True),
    Column("quantity", Integer, nullable=False),
    Column("total_price", Float, nullable=False),
    Column("discount_percent", Float, nullable=False),
    Column("mrp", Float, nullable=False),
    Column("retailer_id", String(64), nullable=False),
    Column("wholesaler_id", String(64), nullable=False),
    Column("product_id", Integer, ForeignKey("catalog_product.id"), nullable=False),
    Column("bid_id", UUIDColumnType, ForeignKey("bid.id"), nullable=False),
    Column("bucket_id", UUIDColumnType, ForeignKey("order_bucket.id"), nullable=False),
    Column("pickup_point", String(255), nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
    Index("ix_orders_retailer_id", "retailer_id"),
    Index("ix_orders_bucket_id", "bucket_id"),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(Distributor, distributor_table)
    mapper_registry.map_imperatively(DistributorStock, product_distributor_table)
    mapper_registry.map_imperatively(
        CatalogProduct,
        catalog_product_table,
        properties={
            "_stock": relationship(
                DistributorStock,
                cascade="all, delete-orphan",
                lazy="selectin",
            ),
        },
    )
    mapper_registry.map_imperatively(UnidentifiedEntry, unidentified_entry_table)
    mapper_registry.map_imperatively(BidRequest, bid_request_table)
    mapper_registry.map_imperatively(Bid, bid_table)
    mapper_registry.map_imperatively(OrderBucket, order_bucket_table)
    mapper_registry.map_imperatively(Order, order_table)

    orm.configure_mappers()
    return mapper_registry
