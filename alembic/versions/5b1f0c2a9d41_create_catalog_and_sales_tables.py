"""create_catalog_and_sales_tables

Revision ID: 5b1f0c2a9d41
Revises:
Create Date: 2026-10-17 09:12:44.208113
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from ecommerce_api.models.mixins import UTCDateTime


# revision identifiers, used by Alembic.
revision: str = '5b1f0c2a9d41'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""

    # CATEGORIES
    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=False),
        sa.Column("is_deleted", sa.Boolean(), nullable=False),
        sa.Column("deleted_at", UTCDateTime(), nullable=True),
        sa.Column("created_at", UTCDateTime(), nullable=False),
        sa.Column("updated_at", UTCDateTime(), nullable=True),
        sa.CheckConstraint("NOT is_deleted OR deleted_at IS NOT NULL", name="ck_category_deleted_at_set"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_categories_id", "categories", ["id"], unique=False)
    op.create_index("ix_categories_name", "categories", ["name"], unique=True)
    op.create_index("ix_categories_is_deleted", "categories", ["is_deleted"], unique=False)

    # PRODUCTS
    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=False),
        sa.Column("price", sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column("stock", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("category_id", sa.Integer(), nullable=False),
        sa.Column("is_deleted", sa.Boolean(), nullable=False),
        sa.Column("deleted_at", UTCDateTime(), nullable=True),
        sa.Column("created_at", UTCDateTime(), nullable=False),
        sa.Column("updated_at", UTCDateTime(), nullable=True),
        sa.CheckConstraint("price > 0", name="ck_product_price_positive"),
        sa.CheckConstraint("stock >= 0", name="ck_product_stock_non_negative"),
        sa.CheckConstraint("NOT is_deleted OR deleted_at IS NOT NULL", name="ck_product_deleted_at_set"),
        sa.ForeignKeyConstraint(["category_id"], ["categories.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_products_id", "products", ["id"], unique=False)
    op.create_index("ix_products_category_id", "products", ["category_id"], unique=False)
    op.create_index("ix_products_is_deleted", "products", ["is_deleted"], unique=False)
    op.create_index("ix_products_category_deleted", "products", ["category_id", "is_deleted"], unique=False)

    # SALES
    op.create_table(
        "sales",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("sale_date", UTCDateTime(), nullable=False),
        sa.Column("customer_name", sa.String(length=100), nullable=False),
        sa.Column("customer_email", sa.String(length=100), nullable=False),
        sa.Column("customer_address", sa.String(length=200), nullable=False),
        sa.Column("total_amount", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("created_at", UTCDateTime(), nullable=False),
        sa.Column("updated_at", UTCDateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_sales_id", "sales", ["id"], unique=False)
    op.create_index("ix_sales_sale_date", "sales", ["sale_date"], unique=False)
    op.create_index("ix_sales_customer_email", "sales", ["customer_email"], unique=False)
    op.create_index("ix_sales_customer_name", "sales", ["customer_name"], unique=False)

    # SALE ITEMS
    op.create_table(
        "sale_items",
        sa.Column("sale_id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Numeric(precision=10, scale=2), nullable=False),
        sa.CheckConstraint("quantity > 0", name="ck_sale_item_quantity_positive"),
        sa.CheckConstraint("unit_price > 0", name="ck_sale_item_unit_price_positive"),
        sa.ForeignKeyConstraint(["sale_id"], ["sales.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("sale_id", "product_id"),
    )
    op.create_index("ix_sale_items_product_id", "sale_items", ["product_id"], unique=False)


def downgrade() -> None:
    """Downgrade schema."""

    op.drop_index("ix_sale_items_product_id", table_name="sale_items")
    op.drop_table("sale_items")

    op.drop_index("ix_sales_customer_name", table_name="sales")
    op.drop_index("ix_sales_customer_email", table_name="sales")
    op.drop_index("ix_sales_sale_date", table_name="sales")
    op.drop_index("ix_sales_id", table_name="sales")
    op.drop_table("sales")

    op.drop_index("ix_products_category_deleted", table_name="products")
    op.drop_index("ix_products_is_deleted", table_name="products")
    op.drop_index("ix_products_category_id", table_name="products")
    op.drop_index("ix_products_id", table_name="products")
    op.drop_table("products")

    op.drop_index("ix_categories_is_deleted", table_name="categories")
    op.drop_index("ix_categories_name", table_name="categories")
    op.drop_index("ix_categories_id", table_name="categories")
    op.drop_table("categories")
