# salesdesk/models/transaction.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from salesdesk.db.base import Base


class Transaction(Base):
    """
    Ledger movement: Payout | Transfer | Adjustment.

    Only Completed rows move balances. Pending -> Completed/Failed is written
    with a compare-and-swap on status, after which the row never changes.
    """

    __tablename__ = "transactions"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),
        Index("ix_transactions_type_status", "type", "status"),
    )

    id: Mapped[str] = mapped_column(String(40), primary_key=True)
    # who initiated it (payout requester, transfer sender, acting admin)
    user_id: Mapped[str] = mapped_column(String(40), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="Pending", server_default="Pending")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    from_user_id: Mapped[Optional[str]] = mapped_column(String(40), nullable=True, index=True)
    from_user_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    to_user_id: Mapped[Optional[str]] = mapped_column(String(40), nullable=True, index=True)
    to_user_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    # PayPal | Bonifico Bancario | Worldfili
    payment_method: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    payment_details: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
