# salesdesk/models/product.py

from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import Boolean, Numeric, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from salesdesk.db.base import Base


class Product(Base):
    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(40), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    ref_number: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    niche: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")

    # NULL = every affiliate may promote it
    allowed_affiliate_ids: Mapped[Optional[list[str]]] = mapped_column(JSONB, nullable=True)

    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    commission_value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    cost_of_goods: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    shipping_cost: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    shipping_charge: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    fulfillment_cost: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    customer_care_commission: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    platform_fee: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)

    # [{id, quantity, price, commission_value, platform_fee}]
    bundle_options: Mapped[list[dict[str, Any]]] = mapped_column(JSONB, nullable=False, default=list, server_default="[]")
    # [{id, name, stock}]
    variants: Mapped[list[dict[str, Any]]] = mapped_column(JSONB, nullable=False, default=list, server_default="[]")
