"""initial console schema: users, catalog, sales, ledger, support

Revision ID: 3f2a9c41d7e0
Revises:
Create Date: <AUTO>
"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "3f2a9c41d7e0"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _jsonb_list(name: str) -> sa.Column:
    return sa.Column(
        name,
        postgresql.JSONB(astext_type=sa.Text()),
        nullable=False,
        server_default=sa.text("'[]'::jsonb"),
    )


def upgrade() -> None:
    # ------------------------------------------------------------
    # 1) users
    # ------------------------------------------------------------
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=40), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("role", sa.String(length=30), nullable=False),
        sa.Column("is_blocked", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("privacy_policy_url", sa.String(length=500), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"], unique=False)

    # ------------------------------------------------------------
    # 2) products
    # ------------------------------------------------------------
    op.create_table(
        "products",
        sa.Column("id", sa.String(length=40), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("ref_number", sa.String(length=64), nullable=True),
        sa.Column("niche", sa.String(length=100), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("allowed_affiliate_ids", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("price", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0.00")),
        sa.Column("commission_value", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0.00")),
        sa.Column("cost_of_goods", sa.Numeric(12, 2), nullable=True),
        sa.Column("shipping_cost", sa.Numeric(12, 2), nullable=True),
        sa.Column("shipping_charge", sa.Numeric(12, 2), nullable=True),
        sa.Column("fulfillment_cost", sa.Numeric(12, 2), nullable=True),
        sa.Column("customer_care_commission", sa.Numeric(12, 2), nullable=True),
        sa.Column("platform_fee", sa.Numeric(12, 2), nullable=True),
        _jsonb_list("bundle_options"),
        _jsonb_list("variants"),
    )

    # ------------------------------------------------------------
    # 3) sales
    # ------------------------------------------------------------
    op.create_table(
        "sales",
        sa.Column("id", sa.String(length=40), primary_key=True, nullable=False),
        sa.Column("product_id", sa.String(length=40), nullable=False),
        sa.Column("product_name", sa.String(length=255), nullable=False, server_default=sa.text("''")),
        sa.Column("affiliate_id", sa.String(length=40), nullable=False),
        sa.Column("affiliate_name", sa.String(length=200), nullable=False, server_default=sa.text("''")),
        sa.Column("bundle_id", sa.String(length=40), nullable=True),
        sa.Column("variant_id", sa.String(length=40), nullable=True),
        sa.Column("sale_amount", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0.00")),
        sa.Column("commission_amount", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0.00")),
        sa.Column("quantity", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(length=30), nullable=False),
        sa.Column("status_updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_contacted_by", sa.String(length=40), nullable=True),
        sa.Column("last_contacted_by_name", sa.String(length=200), nullable=True),
        sa.Column("is_bonus", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("customer_name", sa.String(length=200), nullable=True),
        sa.Column("customer_phone", sa.String(length=50), nullable=True),
        sa.Column("customer_email", sa.String(length=320), nullable=True),
        sa.Column("address_street", sa.String(length=255), nullable=True),
        sa.Column("address_city", sa.String(length=120), nullable=True),
        sa.Column("address_province", sa.String(length=10), nullable=True),
        sa.Column("address_zip", sa.String(length=10), nullable=True),
        sa.Column("sub_id", sa.String(length=120), nullable=True),
        sa.Column("sale_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("tracking_code", sa.String(length=120), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        _jsonb_list("contact_history"),
    )
    op.create_index("ix_sales_status", "sales", ["status"], unique=False)
    op.create_index("ix_sales_last_contacted_by", "sales", ["last_contacted_by"], unique=False)
    op.create_index("ix_sales_product_sale_date", "sales", ["product_id", "sale_date"], unique=False)
    op.create_index("ix_sales_affiliate_status", "sales", ["affiliate_id", "status"], unique=False)

    # ------------------------------------------------------------
    # 4) transactions
    # ------------------------------------------------------------
    op.create_table(
        "transactions",
        sa.Column("id", sa.String(length=40), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(length=40), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default=sa.text("'Pending'")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("from_user_id", sa.String(length=40), nullable=True),
        sa.Column("from_user_name", sa.String(length=200), nullable=True),
        sa.Column("to_user_id", sa.String(length=40), nullable=True),
        sa.Column("to_user_name", sa.String(length=200), nullable=True),
        sa.Column("payment_method", sa.String(length=30), nullable=True),
        sa.Column("payment_details", sa.Text(), nullable=True),
        sa.CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),
    )
    op.create_index("ix_transactions_user_id", "transactions", ["user_id"], unique=False)
    op.create_index("ix_transactions_from_user_id", "transactions", ["from_user_id"], unique=False)
    op.create_index("ix_transactions_to_user_id", "transactions", ["to_user_id"], unique=False)
    op.create_index("ix_transactions_type_status", "transactions", ["type", "status"], unique=False)

    # ------------------------------------------------------------
    # 5) notifications
    # ------------------------------------------------------------
    op.create_table(
        "notifications",
        sa.Column("id", sa.String(length=40), primary_key=True, nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        _jsonb_list("target_roles"),
        _jsonb_list("read_by"),
        sa.Column("event_type", sa.String(length=40), nullable=True),
        sa.Column("link_to", sa.String(length=255), nullable=True),
    )
    op.create_index("ix_notifications_created_at", "notifications", ["created_at"], unique=False)

    # ------------------------------------------------------------
    # 6) tickets + replies
    # ------------------------------------------------------------
    op.create_table(
        "tickets",
        sa.Column("id", sa.String(length=40), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(length=40), nullable=False),
        sa.Column("user_name", sa.String(length=200), nullable=False),
        sa.Column("user_role", sa.String(length=30), nullable=False),
        sa.Column("subject", sa.String(length=255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default=sa.text("'Aperto'")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_tickets_user_id", "tickets", ["user_id"], unique=False)

    op.create_table(
        "ticket_replies",
        sa.Column("id", sa.String(length=40), primary_key=True, nullable=False),
        sa.Column("ticket_id", sa.String(length=40), nullable=False),
        sa.Column("user_id", sa.String(length=40), nullable=False),
        sa.Column("user_name", sa.String(length=200), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["ticket_id"],
            ["tickets.id"],
            ondelete="CASCADE",
            name="ticket_replies_ticket_id_fkey",
        ),
    )
    op.create_index(
        "ix_ticket_replies_ticket_created",
        "ticket_replies",
        ["ticket_id", "created_at"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_ticket_replies_ticket_created", table_name="ticket_replies")
    op.drop_table("ticket_replies")

    op.drop_index("ix_tickets_user_id", table_name="tickets")
    op.drop_table("tickets")

    op.drop_index("ix_notifications_created_at", table_name="notifications")
    op.drop_table("notifications")

    op.drop_index("ix_transactions_type_status", table_name="transactions")
    op.drop_index("ix_transactions_to_user_id", table_name="transactions")
    op.drop_index("ix_transactions_from_user_id", table_name="transactions")
    op.drop_index("ix_transactions_user_id", table_name="transactions")
    op.drop_table("transactions")

    op.drop_index("ix_sales_affiliate_status", table_name="sales")
    op.drop_index("ix_sales_product_sale_date", table_name="sales")
    op.drop_index("ix_sales_last_contacted_by", table_name="sales")
    op.drop_index("ix_sales_status", table_name="sales")
    op.drop_table("sales")

    op.drop_table("products")

    op.drop_index("ix_users_role", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
