# salesdesk/schemas/payments.py
from __future__ import annotations

from decimal import Decimal
from typing import Annotated, List, Optional

from pydantic import BaseModel, Field

from salesdesk.core.roles import UserRole
from salesdesk.core.statuses import PaymentMethod
from salesdesk.schemas.records import TransactionRecord

Amount = Annotated[Decimal, Field(max_digits=12, decimal_places=2)]


class PayoutRequestIn(BaseModel):
    amount: Amount
    payment_method: PaymentMethod
    payment_details: str = Field(max_length=500)


class TransferIn(BaseModel):
    to_user_id: str
    amount: Amount


class AdminTransferIn(BaseModel):
    from_user_id: str
    to_user_id: str
    amount: Amount


class CreditIn(BaseModel):
    to_user_id: str
    amount: Amount
    notes: Optional[str] = Field(default=None, max_length=500)


class BonusIn(BaseModel):
    affiliate_id: str
    amount: Amount
    note: Optional[str] = Field(default=None, max_length=500)


class UserBalanceOut(BaseModel):
    user_id: str
    name: str
    role: UserRole
    current_balance: Decimal


class MyBalanceOut(BaseModel):
    """
    Admin gets unlimited=True and no figures. Everyone else with a balance
    gets the full breakdown.
    """

    user_id: str
    role: UserRole
    unlimited: bool = False

    current_balance: Optional[Decimal] = None
    available: Optional[Decimal] = None
    earned: Optional[Decimal] = None
    transfers_received: Optional[Decimal] = None
    adjustments: Optional[Decimal] = None
    transfers_sent: Optional[Decimal] = None
    payouts: Optional[Decimal] = None
    pending_payouts: Optional[Decimal] = None

    # affiliate-side split (affiliates / managers)
    approved_commissions: Optional[Decimal] = None
    pending_commissions: Optional[Decimal] = None


class TransactionListOut(BaseModel):
    items: List[TransactionRecord]
    total: int
