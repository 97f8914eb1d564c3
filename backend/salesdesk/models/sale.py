# salesdesk/models/sale.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import Boolean, DateTime, Index, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from salesdesk.db.base import Base


class Sale(Base):
    """
    One customer order, or a synthetic bonus/debit entry (is_bonus).

    product_id / affiliate_id are plain strings, not foreign keys: bonus rows
    point at BONUS-MANUALE / BONUS-DEBIT and orders outlive deleted products.
    """

    __tablename__ = "sales"
    __table_args__ = (
        Index("ix_sales_product_sale_date", "product_id", "sale_date"),
        Index("ix_sales_affiliate_status", "affiliate_id", "status"),
    )

    id: Mapped[str] = mapped_column(String(40), primary_key=True)
    product_id: Mapped[str] = mapped_column(String(40), nullable=False)
    product_name: Mapped[str] = mapped_column(String(255), nullable=False, default="", server_default="")
    affiliate_id: Mapped[str] = mapped_column(String(40), nullable=False)
    affiliate_name: Mapped[str] = mapped_column(String(200), nullable=False, default="", server_default="")
    bundle_id: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    variant_id: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)

    sale_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    # can be negative for BONUS-DEBIT rows
    commission_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    quantity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, default=1)

    # Italian status label, see SaleStatus
    status: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    status_updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    last_contacted_by: Mapped[Optional[str]] = mapped_column(String(40), nullable=True, index=True)
    last_contacted_by_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    is_bonus: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")

    customer_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    customer_phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    customer_email: Mapped[Optional[str]] = mapped_column(String(320), nullable=True)
    address_street: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    address_city: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    address_province: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    address_zip: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)

    sub_id: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    sale_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    tracking_code: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # [{at, user_id, user_name, status, note}], append-only
    contact_history: Mapped[list[dict[str, Any]]] = mapped_column(JSONB, nullable=False, default=list, server_default="[]")
