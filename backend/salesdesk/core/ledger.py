# salesdesk/core/ledger.py
"""
Commission ledger.

Balances are never stored: they are folded from the duplicate-annotated sale
list plus the Completed transactions every time they are needed.

    current_balance = earned + transfers received + adjustments
                      - transfers sent - payouts

Operations validate against a snapshot and return the record(s) persistence
must write. A Pending -> Completed/Failed move is only safe if persistence
applies it as a compare-and-swap on status = 'Pending'; the checks here assume
the snapshot is current.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Union

from salesdesk.core.clock import new_record_id, utcnow
from salesdesk.core.duplicates import flag_duplicates
from salesdesk.core.results import OperationResult, forbidden, invalid, not_found
from salesdesk.core.roles import BALANCE_ROLES, MANAGERIAL_ROLES, UserRole
from salesdesk.core.statuses import (
    CUSTOMER_CARE_APPROVED_STATUSES,
    PaymentMethod,
    SaleStatus,
    TransactionStatus,
    TransactionType,
    is_commission_approved,
    is_commission_pending,
)
from salesdesk.schemas.records import (
    ZERO,
    SaleRecord,
    TransactionRecord,
    UserRecord,
    money,
)
from salesdesk.schemas.snapshot import Snapshot

logger = logging.getLogger(__name__)

BONUS_PRODUCT_ID = "BONUS-MANUALE"
BONUS_DEBIT_PRODUCT_ID = "BONUS-DEBIT"

# Which requesters each role may approve/reject payout requests for.
APPROVABLE_REQUESTERS: Mapping[UserRole, FrozenSet[UserRole]] = {
    UserRole.ADMIN: frozenset({UserRole.AFFILIATE, UserRole.MANAGER, UserRole.CUSTOMER_CARE}),
    UserRole.MANAGER: frozenset({UserRole.AFFILIATE, UserRole.CUSTOMER_CARE}),
}

# Nobody can send money to these roles.
NON_RECIPIENT_ROLES = frozenset({UserRole.ADMIN, UserRole.LOGISTICS})


class _Unlimited:
    """Admin balance: no ceiling when checking outgoing amounts."""

    _instance: Optional["_Unlimited"] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def covers(self, amount: Decimal) -> bool:
        return True

    def __repr__(self) -> str:
        return "UNLIMITED"


UNLIMITED = _Unlimited()

Available = Union[Decimal, _Unlimited]


@dataclass(frozen=True)
class CommissionSummary:
    approved: Decimal = ZERO
    pending: Decimal = ZERO


@dataclass(frozen=True)
class BalanceBreakdown:
    user_id: str
    earned: Decimal
    transfers_received: Decimal
    adjustments: Decimal
    transfers_sent: Decimal
    payouts: Decimal
    pending_payouts: Decimal

    @property
    def current_balance(self) -> Decimal:
        return self.earned + self.transfers_received + self.adjustments - self.transfers_sent - self.payouts

    @property
    def available(self) -> Decimal:
        """What can still leave the account once queued payouts go through."""
        return self.current_balance - self.pending_payouts


# ---------------------------------------------------------
# Folding
# ---------------------------------------------------------
def _customer_care_earned(sales: Iterable[SaleRecord], snapshot: Snapshot, user_id: str) -> Decimal:
    total = ZERO
    for s in sales:
        if s.last_contacted_by != user_id or s.status not in CUSTOMER_CARE_APPROVED_STATUSES:
            continue
        product = snapshot.product(s.product_id)
        total += money(product.customer_care_commission) if product else ZERO
    return total


def commission_summary(sales: Iterable[SaleRecord], user_id: str) -> CommissionSummary:
    """Affiliate-side commission split over the sales attributed to user_id."""
    approved = ZERO
    pending = ZERO
    for s in sales:
        if s.affiliate_id != user_id:
            continue
        if is_commission_approved(s.status, is_bonus=s.is_bonus):
            approved += money(s.commission_amount)
        elif is_commission_pending(s.status, is_bonus=s.is_bonus):
            pending += money(s.commission_amount)
    return CommissionSummary(approved=approved, pending=pending)


def _earned(snapshot: Snapshot, sales: Sequence[SaleRecord], user: UserRecord) -> Decimal:
    if user.user_role == UserRole.CUSTOMER_CARE:
        return _customer_care_earned(sales, snapshot, user.id)
    return commission_summary(sales, user.id).approved


def _breakdown(snapshot: Snapshot, sales: Sequence[SaleRecord], user: UserRecord) -> BalanceBreakdown:
    received = adjustments = sent = payouts = pending_payouts = ZERO

    for t in snapshot.transactions:
        if t.type == TransactionType.PAYOUT and t.user_id == user.id:
            if t.is_completed:
                payouts += t.amount
            elif t.status == TransactionStatus.PENDING:
                pending_payouts += t.amount
            continue

        if not t.is_completed:
            continue

        if t.type == TransactionType.TRANSFER:
            if t.from_user_id == user.id:
                sent += t.amount
            if t.to_user_id == user.id:
                received += t.amount
        elif t.type == TransactionType.ADJUSTMENT and t.to_user_id == user.id:
            adjustments += t.amount

    return BalanceBreakdown(
        user_id=user.id,
        earned=_earned(snapshot, sales, user),
        transfers_received=received,
        adjustments=adjustments,
        transfers_sent=sent,
        payouts=payouts,
        pending_payouts=pending_payouts,
    )


def compute_balances(snapshot: Snapshot) -> Dict[str, Decimal]:
    """current_balance for every Affiliate, Manager and CustomerCare user."""
    sales = flag_duplicates(snapshot.sales)
    return {
        u.id: _breakdown(snapshot, sales, u).current_balance
        for u in snapshot.users
        if u.user_role in BALANCE_ROLES
    }


def balance_breakdown(snapshot: Snapshot, user_id: str) -> OperationResult[BalanceBreakdown]:
    user = snapshot.user(user_id)
    if user is None:
        return not_found("user_not_found", f"User {user_id} not found.")
    if user.user_role not in BALANCE_ROLES:
        return invalid("no_balance", f"Role {user.role} has no balance.")
    return OperationResult.ok(_breakdown(snapshot, flag_duplicates(snapshot.sales), user))


def available_balance(snapshot: Snapshot, user: UserRecord) -> Optional[Available]:
    """
    Spendable amount: current balance minus queued payouts.
    UNLIMITED for Admin, None for roles without a balance.
    """
    if user.user_role == UserRole.ADMIN:
        return UNLIMITED
    if user.user_role not in BALANCE_ROLES:
        return None
    return _breakdown(snapshot, flag_duplicates(snapshot.sales), user).available


def _covers(available: Optional[Available], amount: Decimal) -> bool:
    if available is None:
        return False
    if isinstance(available, _Unlimited):
        return available.covers(amount)
    return amount <= available


# ---------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------
def _refused(operation: str, result: OperationResult) -> OperationResult:
    err = result.error
    logger.info(f"{operation} refused: {err.kind.value}/{err.code} {err.message}")
    return result


def _amount_error(amount: Decimal) -> Optional[OperationResult]:
    try:
        ok = amount.is_finite() and amount > 0
    except (AttributeError, InvalidOperation):
        ok = False
    if not ok:
        return invalid("invalid_amount", "Amount must be greater than zero.")
    return None


def _insufficient(who: str) -> OperationResult:
    return invalid("insufficient_balance", f"Insufficient balance for {who}.")


# ---------------------------------------------------------
# Payouts
# ---------------------------------------------------------
def request_payout(
    snapshot: Snapshot,
    user_id: str,
    amount: Decimal,
    method: PaymentMethod,
    details: str,
    *,
    now: Optional[datetime] = None,
) -> OperationResult[TransactionRecord]:
    op = "request_payout"

    bad = _amount_error(amount)
    if bad:
        return _refused(op, bad)
    if not (details or "").strip():
        return _refused(op, invalid("payment_details_required", "Payment details are required."))

    user = snapshot.user(user_id)
    if user is None:
        return _refused(op, not_found("user_not_found", f"User {user_id} not found."))
    if user.user_role not in BALANCE_ROLES:
        return _refused(op, invalid("no_balance", f"Role {user.role} cannot request payouts."))

    if not _covers(available_balance(snapshot, user), amount):
        return _refused(op, _insufficient(user.name))

    tx = TransactionRecord(
        id=new_record_id("T"),
        user_id=user.id,
        type=TransactionType.PAYOUT,
        amount=amount,
        status=TransactionStatus.PENDING,
        created_at=now or utcnow(),
        payment_method=method,
        payment_details=details.strip(),
    )
    return OperationResult.ok(tx)


def can_approve(actor: UserRecord, requester_role: Optional[UserRole]) -> bool:
    allowed = APPROVABLE_REQUESTERS.get(actor.user_role, frozenset())
    return requester_role is not None and requester_role in allowed


def _settle(
    snapshot: Snapshot,
    actor: UserRecord,
    transaction_id: str,
    new_status: TransactionStatus,
    op: str,
) -> OperationResult[TransactionRecord]:
    tx = snapshot.transaction(transaction_id)
    if tx is None:
        return _refused(op, not_found("transaction_not_found", f"Transaction {transaction_id} not found."))

    requester = snapshot.user(tx.user_id)
    if not can_approve(actor, requester.user_role if requester else None):
        return _refused(op, forbidden("approval_not_allowed", f"Role {actor.role} cannot settle this request."))

    if tx.status != TransactionStatus.PENDING:
        return _refused(
            op,
            invalid("transaction_not_pending", f"Transaction {tx.id} is already {tx.status.value}."),
        )

    return OperationResult.ok(tx.model_copy(update={"status": new_status}))


def approve_transaction(snapshot: Snapshot, actor: UserRecord, transaction_id: str) -> OperationResult[TransactionRecord]:
    return _settle(snapshot, actor, transaction_id, TransactionStatus.COMPLETED, "approve_transaction")


def reject_transaction(snapshot: Snapshot, actor: UserRecord, transaction_id: str) -> OperationResult[TransactionRecord]:
    # Failed payouts never touched the balance, so nothing to give back.
    return _settle(snapshot, actor, transaction_id, TransactionStatus.FAILED, "reject_transaction")


def pending_payout_requests(snapshot: Snapshot, viewer: UserRecord) -> List[TransactionRecord]:
    """Pending payouts the viewer may approve, oldest first."""
    out: List[TransactionRecord] = []
    for t in snapshot.transactions:
        if t.type != TransactionType.PAYOUT or t.status != TransactionStatus.PENDING:
            continue
        requester = snapshot.user(t.user_id)
        if can_approve(viewer, requester.user_role if requester else None):
            out.append(t)
    return sorted(out, key=lambda t: t.created_at)


# ---------------------------------------------------------
# Transfers & credits
# ---------------------------------------------------------
def _transfer_record(
    initiator: UserRecord,
    source: UserRecord,
    recipient: UserRecord,
    amount: Decimal,
    now: Optional[datetime],
) -> TransactionRecord:
    return TransactionRecord(
        id=new_record_id("T"),
        user_id=initiator.id,
        type=TransactionType.TRANSFER,
        amount=amount,
        status=TransactionStatus.COMPLETED,
        created_at=now or utcnow(),
        from_user_id=source.id,
        from_user_name=source.name,
        to_user_id=recipient.id,
        to_user_name=recipient.name,
    )


def transfer_funds(
    snapshot: Snapshot,
    actor: UserRecord,
    to_user_id: str,
    amount: Decimal,
    *,
    now: Optional[datetime] = None,
) -> OperationResult[TransactionRecord]:
    """Completed transfer from the actor's own balance."""
    op = "transfer_funds"

    bad = _amount_error(amount)
    if bad:
        return _refused(op, bad)

    available = available_balance(snapshot, actor)
    if available is None:
        return _refused(op, forbidden("no_balance", f"Role {actor.role} cannot transfer funds."))

    if to_user_id == actor.id:
        return _refused(op, invalid("self_transfer", "Cannot transfer funds to yourself."))

    recipient = snapshot.user(to_user_id)
    if recipient is None:
        return _refused(op, not_found("user_not_found", f"User {to_user_id} not found."))
    if recipient.user_role in NON_RECIPIENT_ROLES:
        return _refused(op, invalid("invalid_recipient", f"Role {recipient.role} cannot receive transfers."))

    if not _covers(available, amount):
        return _refused(op, _insufficient(actor.name))

    return OperationResult.ok(_transfer_record(actor, actor, recipient, amount, now))


def admin_transfer(
    snapshot: Snapshot,
    actor: UserRecord,
    from_user_id: str,
    to_user_id: str,
    amount: Decimal,
    *,
    now: Optional[datetime] = None,
) -> OperationResult[TransactionRecord]:
    """Admin moves money between two balance holders; only the source is checked."""
    op = "admin_transfer"

    if actor.user_role != UserRole.ADMIN:
        return _refused(op, forbidden("admin_only", "Only an admin can move funds between users."))

    bad = _amount_error(amount)
    if bad:
        return _refused(op, bad)

    if from_user_id == to_user_id:
        return _refused(op, invalid("self_transfer", "Source and recipient must differ."))

    source = snapshot.user(from_user_id)
    recipient = snapshot.user(to_user_id)
    if source is None:
        return _refused(op, not_found("user_not_found", f"User {from_user_id} not found."))
    if recipient is None:
        return _refused(op, not_found("user_not_found", f"User {to_user_id} not found."))
    if source.user_role not in BALANCE_ROLES or recipient.user_role not in BALANCE_ROLES:
        return _refused(op, invalid("invalid_party", "Both parties must hold a balance."))

    if not _covers(available_balance(snapshot, source), amount):
        return _refused(op, _insufficient(source.name))

    return OperationResult.ok(_transfer_record(actor, source, recipient, amount, now))


def add_credit(
    snapshot: Snapshot,
    actor: UserRecord,
    to_user_id: str,
    amount: Decimal,
    notes: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
) -> OperationResult[TransactionRecord]:
    op = "add_credit"

    if actor.user_role != UserRole.ADMIN:
        return _refused(op, forbidden("admin_only", "Only an admin can add credit."))

    bad = _amount_error(amount)
    if bad:
        return _refused(op, bad)

    recipient = snapshot.user(to_user_id)
    if recipient is None:
        return _refused(op, not_found("user_not_found", f"User {to_user_id} not found."))
    if recipient.user_role not in BALANCE_ROLES:
        return _refused(op, invalid("invalid_recipient", f"Role {recipient.role} has no balance to credit."))

    tx = TransactionRecord(
        id=new_record_id("T"),
        user_id=actor.id,
        type=TransactionType.ADJUSTMENT,
        amount=amount,
        status=TransactionStatus.COMPLETED,
        created_at=now or utcnow(),
        notes=(notes or "").strip() or None,
        from_user_id=actor.id,
        from_user_name=actor.name,
        to_user_id=recipient.id,
        to_user_name=recipient.name,
    )
    return OperationResult.ok(tx)


# ---------------------------------------------------------
# Bonuses
# ---------------------------------------------------------
def _bonus_sale(
    *,
    prefix: str,
    product_id: str,
    product_name: str,
    owner: UserRecord,
    commission: Decimal,
    note: Optional[str],
    at: datetime,
) -> SaleRecord:
    return SaleRecord(
        id=new_record_id(prefix),
        product_id=product_id,
        product_name=product_name,
        affiliate_id=owner.id,
        affiliate_name=owner.name,
        sale_amount=ZERO,
        commission_amount=commission,
        quantity=1,
        status=SaleStatus.CONSEGNATO,
        status_updated_at=at,
        is_bonus=True,
        sale_date=at,
        notes=note,
    )


def issue_bonus(
    snapshot: Snapshot,
    actor: UserRecord,
    affiliate_id: str,
    amount: Decimal,
    note: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
) -> OperationResult[List[SaleRecord]]:
    """
    Pre-approved bonus to an affiliate, booked as a synthetic Consegnato sale.
    A manager pays it out of their own balance through a matching debit sale.
    """
    op = "issue_bonus"

    if actor.user_role not in MANAGERIAL_ROLES:
        return _refused(op, forbidden("bonus_not_allowed", f"Role {actor.role} cannot issue bonuses."))

    bad = _amount_error(amount)
    if bad:
        return _refused(op, bad)

    affiliate = snapshot.user(affiliate_id)
    if affiliate is None:
        return _refused(op, not_found("user_not_found", f"User {affiliate_id} not found."))
    if affiliate.user_role != UserRole.AFFILIATE:
        return _refused(op, invalid("invalid_recipient", "Bonuses can only be issued to affiliates."))

    if not _covers(available_balance(snapshot, actor), amount):
        return _refused(op, _insufficient(actor.name))

    at = now or utcnow()
    text = (note or "").strip() or None

    rows = [
        _bonus_sale(
            prefix="BONUS",
            product_id=BONUS_PRODUCT_ID,
            product_name="Bonus manuale",
            owner=affiliate,
            commission=amount,
            note=text,
            at=at,
        )
    ]
    if actor.user_role == UserRole.MANAGER:
        rows.append(
            _bonus_sale(
                prefix="DEBIT",
                product_id=BONUS_DEBIT_PRODUCT_ID,
                product_name=f"Bonus a {affiliate.name}",
                owner=actor,
                commission=-amount,
                note=text,
                at=at,
            )
        )
    return OperationResult.ok(rows)
