"""initial studio schema

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "user",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(200), nullable=False),
        sa.Column("user_type", sa.String(20), nullable=False, server_default="user"),
        sa.Column("license_key", sa.String(100), nullable=False, server_default=""),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_user_email", "user", ["email"], unique=True)

    op.create_table(
        "otp_code",
        sa.Column("email", sa.String(255), primary_key=True),
        sa.Column("code_hash", sa.String(200), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "serial_counter",
        sa.Column("year", sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column("value", sa.Integer(), nullable=False, server_default="0"),
    )

    money = dict(nullable=False, server_default="0")
    op.create_table(
        "price",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("album_type", sa.String(40), nullable=False),
        sa.Column("user_type", sa.String(20), nullable=False),
        sa.Column("paper_size", sa.String(40), nullable=False),
        sa.Column("bag_type", sa.String(80), nullable=True),
        sa.Column("glossy_paper_price", sa.BigInteger(), **money),
        sa.Column("glossy_sheet_price", sa.BigInteger(), **money),
        sa.Column("ntr_paper_price", sa.BigInteger(), **money),
        sa.Column("ntr_sheet_price", sa.BigInteger(), **money),
        sa.Column("binding_price", sa.BigInteger(), **money),
        sa.Column("bag_price", sa.BigInteger(), **money),
        sa.Column("service_tax", sa.Numeric(5, 2), **money),
        sa.Column("delivery_charge", sa.BigInteger(), nullable=False, server_default="11000"),
        sa.Column("premium_glossy_paper_price", sa.BigInteger(), **money),
        sa.Column("premium_glossy_sheet_price", sa.BigInteger(), **money),
        sa.Column("premium_ntr_paper_price", sa.BigInteger(), **money),
        sa.Column("premium_ntr_sheet_price", sa.BigInteger(), **money),
        sa.Column("premium_binding_price", sa.BigInteger(), **money),
        sa.Column("premium_bag_price", sa.BigInteger(), **money),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_price_lookup", "price", ["album_type", "user_type", "paper_size"])

    op.create_table(
        "stock",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("product_name", sa.String(150), nullable=False),
        sa.Column("product_code", sa.String(64), nullable=False),
        sa.Column("paper_type", sa.String(20), nullable=False, server_default="glossy"),
        sa.Column("paper_size", sa.String(40), nullable=False),
        sa.Column("brand", sa.String(100), nullable=False, server_default=""),
        sa.Column("gsm", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("unit", sa.String(10), nullable=False, server_default="sheets"),
        sa.Column("sheets_per_pack", sa.Integer(), nullable=False, server_default="100"),
        sa.Column("purchase_price", sa.BigInteger(), **money),
        sa.Column("selling_price", sa.BigInteger(), **money),
        sa.Column("reorder_level", sa.Integer(), nullable=False, server_default="10"),
        sa.Column("reorder_quantity", sa.Integer(), nullable=False, server_default="50"),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("created_by_id", sa.Integer(), sa.ForeignKey("user.id"), nullable=True),
        sa.Column("last_updated_by_id", sa.Integer(), sa.ForeignKey("user.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_stock_product_code", "stock", ["product_code"], unique=True)
    op.create_index("ix_stock_status", "stock", ["status"])

    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("order_no", sa.String(64), nullable=False),
        sa.Column("serial_no", sa.String(32), nullable=False),
        sa.Column("album_name", sa.String(200), nullable=False),
        sa.Column("album_type", sa.String(40), nullable=True),
        sa.Column("paper_type", sa.String(40), nullable=False),
        sa.Column("album_size", sa.String(40), nullable=False),
        sa.Column("design_point", sa.String(80), nullable=True),
        sa.Column("bag_type", sa.String(80), nullable=True),
        sa.Column("sheet_count", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("order_date", sa.DateTime(), nullable=False),
        sa.Column("delivery_date", sa.DateTime(), nullable=True),
        sa.Column("payment_method", sa.String(40), nullable=True),
        sa.Column("advance_percent", sa.Numeric(5, 2), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("mobile", sa.String(20), nullable=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("user.id"), nullable=True),
        sa.Column("delivery_option", sa.String(10), nullable=False, server_default="pickup"),
        sa.Column("street", sa.String(255), nullable=True),
        sa.Column("landmark", sa.String(255), nullable=True),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("state", sa.String(100), nullable=True),
        sa.Column("zip_code", sa.String(20), nullable=True),
        sa.Column("country", sa.String(100), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("paper_rate", sa.BigInteger(), **money),
        sa.Column("binding_rate", sa.BigInteger(), **money),
        sa.Column("bag_rate", sa.BigInteger(), **money),
        sa.Column("delivery_charge", sa.BigInteger(), **money),
        sa.Column("subtotal", sa.BigInteger(), **money),
        sa.Column("tax_rate", sa.Numeric(5, 2), **money),
        sa.Column("tax", sa.BigInteger(), **money),
        sa.Column("total", sa.BigInteger(), **money),
        sa.Column("advance_amount", sa.BigInteger(), **money),
        sa.Column("cash_payment", sa.BigInteger(), **money),
        sa.Column("counter_upi_payment", sa.BigInteger(), **money),
        sa.Column("manual_payment_date", sa.DateTime(), nullable=True),
        sa.Column("payment_status", sa.String(10), nullable=False, server_default="Pending"),
        sa.Column("razorpay_order_id", sa.String(100), nullable=True),
        sa.Column("razorpay_payment_id", sa.String(100), nullable=True),
        sa.Column("razorpay_signature", sa.String(255), nullable=True),
        sa.Column("payment_date", sa.DateTime(), nullable=True),
        sa.Column("utr", sa.String(64), nullable=True),
        sa.Column("order_status", sa.String(20), nullable=False, server_default="Pending"),
        sa.Column("order_status_updated_at", sa.DateTime(), nullable=True),
        sa.Column("uploaded_files", sa.JSON(), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_orders_order_no", "orders", ["order_no"], unique=True)
    op.create_index("ix_orders_serial_no", "orders", ["serial_no"], unique=True)
    op.create_index("ix_orders_email", "orders", ["email"])
    op.create_index("ix_orders_payment_status", "orders", ["payment_status"])
    op.create_index("ix_orders_order_status", "orders", ["order_status"])
    op.create_index("ix_orders_active", "orders", ["active"])

    op.create_table(
        "payment",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("channel", sa.String(20), nullable=False),
        sa.Column("amount", sa.BigInteger(), **money),
        sa.Column("gateway_order_id", sa.String(100), nullable=True),
        sa.Column("gateway_payment_id", sa.String(100), nullable=True),
        sa.Column("signature", sa.String(255), nullable=True),
        sa.Column("utr", sa.String(64), nullable=True),
        sa.Column("note", sa.String(255), nullable=True),
        sa.Column("recorded_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("gateway_payment_id", name="uq_payment_gateway_payment_id"),
    )
    op.create_index("ix_payment_order_id", "payment", ["order_id"])


def downgrade():
    op.drop_index("ix_payment_order_id", table_name="payment")
    op.drop_table("payment")
    for ix in ("ix_orders_active", "ix_orders_order_status", "ix_orders_payment_status",
               "ix_orders_email", "ix_orders_serial_no", "ix_orders_order_no"):
        op.drop_index(ix, table_name="orders")
    op.drop_table("orders")
    op.drop_index("ix_stock_status", table_name="stock")
    op.drop_index("ix_stock_product_code", table_name="stock")
    op.drop_table("stock")
    op.drop_index("ix_price_lookup", table_name="price")
    op.drop_table("price")
    op.drop_table("serial_counter")
    op.drop_table("otp_code")
    op.drop_index("ix_user_email", table_name="user")
    op.drop_table("user")
