"""storefront schema + row-level security policies

Revision ID: 0001_storefront_schema
Revises:
Create Date: 2026-10-19 10:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "0001_storefront_schema"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


# tables carrying store_id; each one gets the tenant policy
TENANT_TABLES = (
    "categories",
    "products",
    "orders",
    "order_items",
    "shipments",
    "reviews",
    "wishlist",
    "abandoned_carts",
    "stock_movements",
    "store_config",
)

JSONB = postgresql.JSONB(astext_type=sa.Text())


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()"))


def _updated_at() -> sa.Column:
    return sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()"))


def _store_fk(nullable: bool = False, ondelete: str = "CASCADE") -> sa.Column:
    return sa.Column(
        "store_id",
        sa.String(length=36),
        sa.ForeignKey("stores.id", ondelete=ondelete),
        nullable=nullable,
    )


def upgrade() -> None:
    """Upgrade schema: tenants, catalog, orders, shipments, then RLS."""
    op.create_table(
        "stores",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("domain", sa.String(length=128), nullable=True, unique=True),
        sa.Column("custom_domain", sa.String(length=255), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="active"),
        sa.Column("type", sa.String(length=32), nullable=True),
        sa.Column("plan", sa.String(length=32), nullable=False, server_default="free"),
        sa.Column("license_key", sa.String(length=32), nullable=True),
        sa.Column("owner_email", sa.String(length=255), nullable=True),
        sa.Column("owner_name", sa.String(length=255), nullable=True),
        sa.Column("trial_ends_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("subscription_ends_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        _updated_at(),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "licenses",
        sa.Column("serial", sa.String(length=32), primary_key=True),
        sa.Column("plan", sa.String(length=32), nullable=False, server_default="free"),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="generated"),
        _store_fk(nullable=True, ondelete="SET NULL"),
        sa.Column("max_products", sa.Integer(), nullable=True),
        sa.Column("max_orders", sa.Integer(), nullable=True),
        sa.Column("owner_email", sa.String(length=255), nullable=True),
        sa.Column("owner_name", sa.String(length=255), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("activated_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )
    op.create_index("ix_licenses_store_id", "licenses", ["store_id"])

    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), primary_key=True),
        _store_fk(nullable=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=50), nullable=True),
        sa.Column("role", sa.String(length=16), nullable=False, server_default="customer"),
        sa.Column("reset_token", sa.String(length=128), nullable=True),
        sa.Column("reset_token_expires", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        _updated_at(),
        sa.UniqueConstraint("store_id", "email", name="uq_users_store_email"),
    )
    op.create_index("ix_users_store_id", "users", ["store_id"])
    op.create_index("ix_users_reset_token", "users", ["reset_token"])

    op.create_table(
        "categories",
        sa.Column("id", sa.String(length=36), primary_key=True),
        _store_fk(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("image", sa.String(length=512), nullable=True),
        sa.Column("order_num", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _created_at(),
        sa.UniqueConstraint("store_id", "slug", name="uq_categories_store_slug"),
    )
    op.create_index("ix_categories_store_id", "categories", ["store_id"])

    op.create_table(
        "products",
        sa.Column("id", sa.String(length=36), primary_key=True),
        _store_fk(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("price", sa.Integer(), nullable=False),
        sa.Column("original_price", sa.Integer(), nullable=True),
        sa.Column("transfer_price", sa.Integer(), nullable=True),
        sa.Column(
            "category_id",
            sa.String(length=36),
            sa.ForeignKey("categories.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("subcategory", sa.String(length=128), nullable=True),
        sa.Column("images", JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("sizes", JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("colors", JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("stock", sa.Integer(), nullable=False, server_default="100"),
        sa.Column("variants_stock", JSONB, nullable=True),
        sa.Column("is_new", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_featured", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("views", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("clicks", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("order_num", sa.Integer(), nullable=False, server_default="0"),
        _created_at(),
        _updated_at(),
    )
    op.create_index("ix_products_store_id", "products", ["store_id"])
    op.create_index("ix_products_store_category", "products", ["store_id", "category_id"])

    op.create_table(
        "orders",
        sa.Column("id", sa.String(length=36), primary_key=True),
        _store_fk(),
        sa.Column("order_number", sa.String(length=32), nullable=False),
        sa.Column("user_id", sa.String(length=36), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("customer_name", sa.String(length=255), nullable=False),
        sa.Column("customer_email", sa.String(length=255), nullable=False),
        sa.Column("customer_phone", sa.String(length=50), nullable=True),
        sa.Column("shipping_address", sa.Text(), nullable=True),
        sa.Column("shipping_method", sa.String(length=64), nullable=True),
        sa.Column("shipping_cost", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("shipping_carrier", sa.String(length=32), nullable=True),
        sa.Column("tracking_number", sa.String(length=128), nullable=True),
        sa.Column("subtotal", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="pending"),
        sa.Column("payment_method", sa.String(length=32), nullable=True),
        sa.Column("payment_status", sa.String(length=32), nullable=True),
        sa.Column("payment_id", sa.String(length=128), nullable=True),
        sa.Column("payment_receipt", sa.String(length=512), nullable=True),
        sa.Column("receipt_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("notes", sa.Text(), nullable=True),
        _created_at(),
        _updated_at(),
    )
    op.create_index("ix_orders_store_id", "orders", ["store_id"])
    op.create_index("ix_orders_order_number", "orders", ["order_number"], unique=True)
    op.create_index("ix_orders_customer_email", "orders", ["customer_email"])
    op.create_index("ix_orders_store_status", "orders", ["store_id", "status"])

    op.create_table(
        "order_items",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("order_id", sa.String(length=36), sa.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False),
        _store_fk(),
        sa.Column(
            "product_id", sa.String(length=36), sa.ForeignKey("products.id", ondelete="SET NULL"), nullable=True
        ),
        sa.Column("product_name", sa.String(length=255), nullable=False),
        sa.Column("product_image", sa.String(length=512), nullable=True),
        sa.Column("price", sa.Integer(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("size", sa.String(length=32), nullable=True),
        sa.Column("color", sa.String(length=64), nullable=True),
    )
    op.create_index("ix_order_items_order_id", "order_items", ["order_id"])
    op.create_index("ix_order_items_store_id", "order_items", ["store_id"])

    op.create_table(
        "shipments",
        sa.Column("id", sa.String(length=36), primary_key=True),
        _store_fk(),
        sa.Column(
            "order_id",
            sa.String(length=36),
            sa.ForeignKey("orders.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("carrier", sa.String(length=32), nullable=False),
        sa.Column("tracking_number", sa.String(length=128), nullable=True),
        sa.Column("label_url", sa.String(length=1024), nullable=True),
        sa.Column("label_data", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="created"),
        sa.Column("carrier_response", JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("shipped_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("delivered_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        _updated_at(),
    )
    op.create_index("ix_shipments_store_id", "shipments", ["store_id"])
    op.create_index("ix_shipments_tracking_number", "shipments", ["tracking_number"])

    op.create_table(
        "reviews",
        sa.Column("id", sa.String(length=36), primary_key=True),
        _store_fk(),
        sa.Column(
            "product_id", sa.String(length=36), sa.ForeignKey("products.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("customer_name", sa.String(length=255), nullable=False),
        sa.Column("customer_email", sa.String(length=255), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=True),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("verified_purchase", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("approved", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
        sa.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_reviews_rating_range"),
    )
    op.create_index("ix_reviews_store_id", "reviews", ["store_id"])
    op.create_index("ix_reviews_product_id", "reviews", ["product_id"])

    op.create_table(
        "wishlist",
        sa.Column("id", sa.String(length=36), primary_key=True),
        _store_fk(),
        sa.Column("user_id", sa.String(length=36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "product_id", sa.String(length=36), sa.ForeignKey("products.id", ondelete="CASCADE"), nullable=False
        ),
        _created_at(),
        sa.UniqueConstraint("user_id", "product_id", name="uq_wishlist_user_product"),
    )
    op.create_index("ix_wishlist_store_id", "wishlist", ["store_id"])

    op.create_table(
        "abandoned_carts",
        sa.Column("id", sa.String(length=36), primary_key=True),
        _store_fk(),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("session_id", sa.String(length=128), nullable=True),
        sa.Column("cart_data", JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("recovered", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
        _updated_at(),
    )
    op.create_index("ix_abandoned_carts_store_id", "abandoned_carts", ["store_id"])
    op.create_index("ix_abandoned_carts_email", "abandoned_carts", ["email"])
    op.create_index("ix_abandoned_carts_session_id", "abandoned_carts", ["session_id"])

    op.create_table(
        "stock_movements",
        sa.Column("id", sa.String(length=36), primary_key=True),
        _store_fk(),
        sa.Column(
            "product_id", sa.String(length=36), sa.ForeignKey("products.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("quantity_change", sa.Integer(), nullable=False),
        sa.Column("previous_stock", sa.Integer(), nullable=False),
        sa.Column("new_stock", sa.Integer(), nullable=False),
        sa.Column("reason", sa.String(length=64), nullable=False, server_default="manual_update"),
        sa.Column("user_id", sa.String(length=36), nullable=True),
        _created_at(),
    )
    op.create_index("ix_stock_movements_store_id", "stock_movements", ["store_id"])
    op.create_index("ix_stock_movements_product_id", "stock_movements", ["product_id"])

    op.create_table(
        "store_config",
        sa.Column(
            "store_id",
            sa.String(length=36),
            sa.ForeignKey("stores.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("key", sa.String(length=128), primary_key=True),
        sa.Column("value", JSONB, nullable=True),
        _updated_at(),
    )

    # ---- row-level security ----
    # ENABLE (not FORCE): the owning role keeps full access for migrations
    # and platform jobs; the application role is bound by the policy.
    for table in TENANT_TABLES:
        op.execute(f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY")
        op.execute(
            f"""
            CREATE POLICY {table}_tenant_isolation ON {table}
                USING (store_id = current_setting('app.current_store_id', true))
                WITH CHECK (store_id = current_setting('app.current_store_id', true))
            """
        )


def downgrade() -> None:
    """Downgrade schema: drop policies, then tables in reverse order."""
    for table in TENANT_TABLES:
        op.execute(f"DROP POLICY IF EXISTS {table}_tenant_isolation ON {table}")
        op.execute(f"ALTER TABLE {table} DISABLE ROW LEVEL SECURITY")

    op.drop_table("store_config")
    op.drop_table("stock_movements")
    op.drop_table("abandoned_carts")
    op.drop_table("wishlist")
    op.drop_table("reviews")
    op.drop_table("shipments")
    op.drop_table("order_items")
    op.drop_table("orders")
    op.drop_table("products")
    op.drop_table("categories")
    op.drop_table("users")
    op.drop_table("licenses")
    op.drop_table("stores")
