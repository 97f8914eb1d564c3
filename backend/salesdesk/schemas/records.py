# salesdesk/schemas/records.py
"""
Plain records the core reads from a snapshot and hands back to persistence.

Field names are snake_case; the ORM models in salesdesk.models use the same
names so rows validate with from_attributes=True.
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from salesdesk.core.clock import ensure_aware
from salesdesk.core.roles import UserRole
from salesdesk.core.statuses import (
    PaymentMethod,
    SaleStatus,
    TicketStatus,
    TransactionStatus,
    TransactionType,
)

ZERO = Decimal("0.00")


def money(value: Optional[Decimal]) -> Decimal:
    """Missing money fields count as zero."""
    return value if value is not None else ZERO


class _Record(BaseModel):
    model_config = ConfigDict(from_attributes=True, use_enum_values=False)


# ---------------------------------------------------------
# Sales
# ---------------------------------------------------------
class ContactEvent(_Record):
    at: datetime
    user_id: str
    user_name: Optional[str] = None
    status: Optional[SaleStatus] = None
    note: Optional[str] = None

    @field_validator("at")
    @classmethod
    def _aware_at(cls, v: datetime) -> datetime:
        return ensure_aware(v)


class SaleRecord(_Record):
    id: str
    product_id: str
    product_name: str = ""
    affiliate_id: str
    affiliate_name: str = ""
    bundle_id: Optional[str] = None
    variant_id: Optional[str] = None

    sale_amount: Decimal = ZERO
    commission_amount: Decimal = ZERO
    quantity: Optional[int] = 1

    status: SaleStatus = SaleStatus.IN_ATTESA
    status_updated_at: Optional[datetime] = None
    last_contacted_by: Optional[str] = None
    last_contacted_by_name: Optional[str] = None

    # Synthetic bookkeeping entry (manual bonus / manager debit).
    is_bonus: bool = False

    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None
    address_street: Optional[str] = None
    address_city: Optional[str] = None
    address_province: Optional[str] = None
    address_zip: Optional[str] = None

    sub_id: Optional[str] = None
    sale_date: datetime
    tracking_code: Optional[str] = None
    notes: Optional[str] = None
    contact_history: List[ContactEvent] = Field(default_factory=list)

    @field_validator("sale_date", "status_updated_at")
    @classmethod
    def _aware_dates(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_aware(v) if v is not None else None

    @field_validator("contact_history", mode="before")
    @classmethod
    def _none_history(cls, v: Any) -> Any:
        return [] if v is None else v

    @property
    def units(self) -> int:
        # Older rows have no quantity; zero/negative is treated as one unit.
        return self.quantity if self.quantity and self.quantity > 0 else 1


class SaleUpdate(BaseModel):
    """Single-row write produced by a status transition."""

    status: SaleStatus
    status_updated_at: datetime
    tracking_code: Optional[str] = None
    last_contacted_by: Optional[str] = None
    last_contacted_by_name: Optional[str] = None
    notes: Optional[str] = None
    contact_history: Optional[List[ContactEvent]] = None

    def changes(self) -> Dict[str, Any]:
        """Column -> value for the fields this update actually sets."""
        data = self.model_dump(exclude_none=True, mode="python")
        if self.contact_history is not None:
            data["contact_history"] = [e.model_dump(mode="json") for e in self.contact_history]
        return data


# ---------------------------------------------------------
# Transactions
# ---------------------------------------------------------
class TransactionRecord(_Record):
    id: str
    user_id: str
    type: TransactionType
    amount: Decimal
    status: TransactionStatus = TransactionStatus.PENDING
    created_at: datetime
    notes: Optional[str] = None

    from_user_id: Optional[str] = None
    from_user_name: Optional[str] = None
    to_user_id: Optional[str] = None
    to_user_name: Optional[str] = None

    payment_method: Optional[PaymentMethod] = None
    payment_details: Optional[str] = None

    @field_validator("created_at")
    @classmethod
    def _aware_created_at(cls, v: datetime) -> datetime:
        return ensure_aware(v)

    @property
    def is_completed(self) -> bool:
        return self.status == TransactionStatus.COMPLETED


# ---------------------------------------------------------
# Catalog
# ---------------------------------------------------------
class BundleOption(_Record):
    id: str
    quantity: int
    price: Decimal
    commission_value: Decimal = ZERO
    platform_fee: Optional[Decimal] = None


class ProductVariant(_Record):
    id: str
    name: str
    stock: Optional[int] = None


class ProductRecord(_Record):
    id: str
    name: str
    ref_number: Optional[str] = None
    niche: Optional[str] = None
    is_active: bool = True
    # None = open to every affiliate
    allowed_affiliate_ids: Optional[List[str]] = None

    price: Decimal = ZERO
    commission_value: Decimal = ZERO
    cost_of_goods: Optional[Decimal] = None
    shipping_cost: Optional[Decimal] = None
    shipping_charge: Optional[Decimal] = None
    fulfillment_cost: Optional[Decimal] = None
    customer_care_commission: Optional[Decimal] = None
    platform_fee: Optional[Decimal] = None

    bundle_options: List[BundleOption] = Field(default_factory=list)
    variants: List[ProductVariant] = Field(default_factory=list)

    @field_validator("bundle_options", "variants", mode="before")
    @classmethod
    def _none_list(cls, v: Any) -> Any:
        return [] if v is None else v

    def bundle(self, bundle_id: Optional[str]) -> Optional[BundleOption]:
        if not bundle_id:
            return None
        return next((b for b in self.bundle_options if b.id == bundle_id), None)


# ---------------------------------------------------------
# Users (tagged on role)
# ---------------------------------------------------------
class _UserBase(_Record):
    id: str
    name: str
    email: EmailStr
    is_blocked: bool = False

    @property
    def user_role(self) -> UserRole:
        return UserRole(self.role)


class AdminUser(_UserBase):
    role: Literal["ADMIN"] = "ADMIN"


class AffiliateUser(_UserBase):
    role: Literal["AFFILIATE"] = "AFFILIATE"
    privacy_policy_url: Optional[str] = None


class ManagerUser(_UserBase):
    role: Literal["MANAGER"] = "MANAGER"


class LogisticsUser(_UserBase):
    role: Literal["LOGISTICS"] = "LOGISTICS"


class CustomerCareUser(_UserBase):
    role: Literal["CUSTOMER_CARE"] = "CUSTOMER_CARE"


UserRecord = Annotated[
    Union[AdminUser, AffiliateUser, ManagerUser, LogisticsUser, CustomerCareUser],
    Field(discriminator="role"),
]


# ---------------------------------------------------------
# Notifications & tickets
# ---------------------------------------------------------
class NotificationRecord(_Record):
    id: str
    title: str
    message: str
    created_at: datetime
    target_roles: List[UserRole] = Field(default_factory=list)
    read_by: List[str] = Field(default_factory=list)
    event_type: Optional[str] = None  # new-product | product-deactivated | None
    link_to: Optional[str] = None     # e.g. "product-detail/p1"

    @field_validator("created_at")
    @classmethod
    def _aware_created_at(cls, v: datetime) -> datetime:
        return ensure_aware(v)

    @field_validator("target_roles", "read_by", mode="before")
    @classmethod
    def _none_list(cls, v: Any) -> Any:
        return [] if v is None else v


class TicketReplyRecord(_Record):
    id: str
    ticket_id: str
    user_id: str
    user_name: str
    message: str
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def _aware_created_at(cls, v: datetime) -> datetime:
        return ensure_aware(v)


class TicketRecord(_Record):
    id: str
    user_id: str
    user_name: str
    user_role: UserRole
    subject: str
    message: str
    status: TicketStatus = TicketStatus.OPEN
    created_at: datetime
    updated_at: datetime
    replies: List[TicketReplyRecord] = Field(default_factory=list)

    @field_validator("created_at", "updated_at")
    @classmethod
    def _aware_dates(cls, v: datetime) -> datetime:
        return ensure_aware(v)
