"""Initial marketplace schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 09:00:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamp() -> sa.DateTime:
    return sa.DateTime(timezone=True)


def upgrade() -> None:
    op.create_table(
        "distributor",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("key", sa.String(length=255), nullable=False),
        sa.Column("created_at", _timestamp(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_distributor"),
        sa.UniqueConstraint("key", name="uq_distributor_key"),
    )
    op.create_table(
        "catalog_product",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=512), nullable=False),
        sa.Column("normalized_name", sa.String(length=512), nullable=False),
        sa.Column("manufacturer", sa.String(length=255), nullable=True),
        sa.Column("price", sa.Float(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_catalog_product"),
        sa.UniqueConstraint("normalized_name", name="uq_catalog_product_normalized_name"),
    )
    op.create_table(
        "product_distributor",
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("distributor_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["product_id"],
            ["catalog_product.id"],
            name="fk_product_distributor_product_id_catalog_product",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["distributor_id"],
            ["distributor.id"],
            name="fk_product_distributor_distributor_id_distributor",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("product_id", "distributor_id", name="pk_product_distributor"),
    )
    op.create_index(
        "ix_product_distributor_distributor_id", "product_distributor", ["distributor_id"]
    )
    op.create_table(
        "unidentified_entry",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("distributor_id", sa.Integer(), nullable=False),
        sa.Column("raw_name", sa.String(length=512), nullable=False),
        sa.Column("raw_manufacturer", sa.String(length=255), nullable=False),
        sa.Column("raw_price", sa.Float(), nullable=True),
        sa.Column("uploaded_at", _timestamp(), nullable=False),
        sa.ForeignKeyConstraint(
            ["distributor_id"],
            ["distributor.id"],
            name="fk_unidentified_entry_distributor_id_distributor",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_unidentified_entry"),
    )
    op.create_index(
        "ix_unidentified_entry_distributor_id", "unidentified_entry", ["distributor_id"]
    )
    op.create_index("ix_unidentified_entry_raw_name", "unidentified_entry", ["raw_name"])

    op.create_table(
        "bid_request",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("retailer_id", sa.String(length=64), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("created_at", _timestamp(), nullable=False),
        sa.Column("updated_at", _timestamp(), nullable=False),
        sa.ForeignKeyConstraint(
            ["product_id"],
            ["catalog_product.id"],
            name="fk_bid_request_product_id_catalog_product",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_bid_request"),
    )
    op.create_index(
        "ix_bid_request_status_created_at", "bid_request", ["status", "created_at"]
    )
    op.create_index("ix_bid_request_retailer_id", "bid_request", ["retailer_id"])
    op.create_table(
        "bid",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("bid_request_id", sa.Uuid(), nullable=True),
        sa.Column("wholesaler_id", sa.String(length=64), nullable=False),
        sa.Column("discount_percent", sa.Float(), nullable=False),
        sa.Column("mrp", sa.Float(), nullable=False),
        sa.Column("final_price", sa.Float(), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("expiry", _timestamp(), nullable=True),
        sa.Column("is_custom", sa.Boolean(), nullable=False),
        sa.Column("created_at", _timestamp(), nullable=False),
        sa.Column("updated_at", _timestamp(), nullable=False),
        sa.ForeignKeyConstraint(
            ["bid_request_id"],
            ["bid_request.id"],
            name="fk_bid_bid_request_id_bid_request",
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_bid"),
    )
    op.create_index("ix_bid_bid_request_id", "bid", ["bid_request_id"])
    op.create_index("ix_bid_wholesaler_id", "bid", ["wholesaler_id"])

    op.create_table(
        "order_bucket",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("retailer_id", sa.String(length=64), nullable=False),
        sa.Column("wholesaler_id", sa.String(length=64), nullable=False),
        sa.Column("total_price", sa.Float(), nullable=False),
        sa.Column("total_items", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("created_at", _timestamp(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_order_bucket"),
    )
    op.create_index(
        "ix_order_bucket_pair_created_at",
        "order_bucket",
        ["retailer_id", "wholesaler_id", "created_at"],
    )
    op.create_table(
        "orders",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("total_price", sa.Float(), nullable=False),
        sa.Column("discount_percent", sa.Float(), nullable=False),
        sa.Column("mrp", sa.Float(), nullable=False),
        sa.Column("retailer_id", sa.String(length=64), nullable=False),
        sa.Column("wholesaler_id", sa.String(length=64), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("bid_id", sa.Uuid(), nullable=False),
        sa.Column("bucket_id", sa.Uuid(), nullable=False),
        sa.Column("pickup_point", sa.String(length=255), nullable=True),
        sa.Column("created_at", _timestamp(), nullable=False),
        sa.ForeignKeyConstraint(
            ["product_id"], ["catalog_product.id"], name="fk_orders_product_id_catalog_product"
        ),
        sa.ForeignKeyConstraint(["bid_id"], ["bid.id"], name="fk_orders_bid_id_bid"),
        sa.ForeignKeyConstraint(
            ["bucket_id"], ["order_bucket.id"], name="fk_orders_bucket_id_order_bucket"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_orders"),
    )
    op.create_index("ix_orders_retailer_id", "orders", ["retailer_id"])
    op.create_index("ix_orders_bucket_id", "orders", ["bucket_id"])


def downgrade() -> None:
    op.drop_index("ix_orders_bucket_id", table_name="orders")
    op.drop_index("ix_orders_retailer_id", table_name="orders")
    op.drop_table("orders")
    op.drop_index("ix_order_bucket_pair_created_at", table_name="order_bucket")
    op.drop_table("order_bucket")
    op.drop_index("ix_bid_wholesaler_id", table_name="bid")
    op.drop_index("ix_bid_bid_request_id", table_name="bid")
    op.drop_table("bid")
    op.drop_index("ix_bid_request_retailer_id", table_name="bid_request")
    op.drop_index("ix_bid_request_status_created_at", table_name="bid_request")
    op.drop_table("bid_request")
    op.drop_index("ix_unidentified_entry_raw_name", table_name="unidentified_entry")
    op.drop_index("ix_unidentified_entry_distributor_id", table_name="unidentified_entry")
    op.drop_table("unidentified_entry")
    op.drop_index("ix_product_distributor_distributor_id", table_name="product_distributor")
    op.drop_table("product_distributor")
    op.drop_table("catalog_product")
    op.drop_table("distributor")
