# salesdesk/api/v1/payments.py
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status

from salesdesk.api.deps.context import get_current_user, get_snapshot, get_writer, require_roles
from salesdesk.api.deps.results import conflict, unwrap
from salesdesk.core import ledger
from salesdesk.core.duplicates import flag_duplicates
from salesdesk.core.roles import MANAGERIAL_ROLES, UserRole
from salesdesk.crud.records import RecordWriter
from salesdesk.schemas.payments import (
    AdminTransferIn,
    BonusIn,
    CreditIn,
    MyBalanceOut,
    PayoutRequestIn,
    TransactionListOut,
    TransferIn,
    UserBalanceOut,
)
from salesdesk.schemas.records import SaleRecord, TransactionRecord, UserRecord
from salesdesk.schemas.snapshot import Snapshot

router = APIRouter(prefix="/payments", tags=["payments"])

require_managerial = require_roles(UserRole.ADMIN, UserRole.MANAGER)


@router.get("/balances", response_model=List[UserBalanceOut])
async def list_balances(
    snapshot: Snapshot = Depends(get_snapshot),
    user: UserRecord = Depends(require_managerial),
):
    balances = ledger.compute_balances(snapshot)
    return [
        UserBalanceOut(user_id=u.id, name=u.name, role=u.user_role, current_balance=balances[u.id])
        for u in snapshot.users
        if u.id in balances
    ]


@router.get("/me", response_model=MyBalanceOut)
async def my_balance(
    snapshot: Snapshot = Depends(get_snapshot),
    user: UserRecord = Depends(get_current_user),
):
    if user.user_role == UserRole.ADMIN:
        return MyBalanceOut(user_id=user.id, role=user.user_role, unlimited=True)

    b = unwrap(ledger.balance_breakdown(snapshot, user.id))
    out = MyBalanceOut(
        user_id=user.id,
        role=user.user_role,
        current_balance=b.current_balance,
        available=b.available,
        earned=b.earned,
        transfers_received=b.transfers_received,
        adjustments=b.adjustments,
        transfers_sent=b.transfers_sent,
        payouts=b.payouts,
        pending_payouts=b.pending_payouts,
    )
    if user.user_role in (UserRole.AFFILIATE, UserRole.MANAGER):
        summary = ledger.commission_summary(flag_duplicates(snapshot.sales), user.id)
        out.approved_commissions = summary.approved
        out.pending_commissions = summary.pending
    return out


@router.get("/transactions", response_model=TransactionListOut)
async def list_transactions(
    snapshot: Snapshot = Depends(get_snapshot),
    user: UserRecord = Depends(get_current_user),
):
    """Admin/Manager see every movement; everybody else the ones touching them."""
    if user.user_role in MANAGERIAL_ROLES:
        items = list(snapshot.transactions)
    else:
        items = [t for t in snapshot.transactions if user.id in (t.user_id, t.from_user_id, t.to_user_id)]
    items.sort(key=lambda t: t.created_at, reverse=True)
    return TransactionListOut(items=items, total=len(items))


@router.get("/requests", response_model=List[TransactionRecord])
async def list_payout_requests(
    snapshot: Snapshot = Depends(get_snapshot),
    user: UserRecord = Depends(require_managerial),
):
    return ledger.pending_payout_requests(snapshot, user)


@router.post("/payouts", response_model=TransactionRecord, status_code=status.HTTP_201_CREATED)
async def request_payout(
    payload: PayoutRequestIn,
    snapshot: Snapshot = Depends(get_snapshot),
    writer: RecordWriter = Depends(get_writer),
    user: UserRecord = Depends(get_current_user),
):
    tx = unwrap(
        ledger.request_payout(snapshot, user.id, payload.amount, payload.payment_method, payload.payment_details)
    )
    await writer.add_transaction(tx)
    return tx


@router.post("/transfers", response_model=TransactionRecord, status_code=status.HTTP_201_CREATED)
async def transfer_funds(
    payload: TransferIn,
    snapshot: Snapshot = Depends(get_snapshot),
    writer: RecordWriter = Depends(get_writer),
    user: UserRecord = Depends(get_current_user),
):
    tx = unwrap(ledger.transfer_funds(snapshot, user, payload.to_user_id, payload.amount))
    await writer.add_transaction(tx)
    return tx


@router.post("/admin-transfers", response_model=TransactionRecord, status_code=status.HTTP_201_CREATED)
async def admin_transfer(
    payload: AdminTransferIn,
    snapshot: Snapshot = Depends(get_snapshot),
    writer: RecordWriter = Depends(get_writer),
    user: UserRecord = Depends(get_current_user),
):
    tx = unwrap(ledger.admin_transfer(snapshot, user, payload.from_user_id, payload.to_user_id, payload.amount))
    await writer.add_transaction(tx)
    return tx


@router.post("/credits", response_model=TransactionRecord, status_code=status.HTTP_201_CREATED)
async def add_credit(
    payload: CreditIn,
    snapshot: Snapshot = Depends(get_snapshot),
    writer: RecordWriter = Depends(get_writer),
    user: UserRecord = Depends(get_current_user),
):
    tx = unwrap(ledger.add_credit(snapshot, user, payload.to_user_id, payload.amount, payload.notes))
    await writer.add_transaction(tx)
    return tx


@router.post("/bonuses", response_model=List[SaleRecord], status_code=status.HTTP_201_CREATED)
async def issue_bonus(
    payload: BonusIn,
    snapshot: Snapshot = Depends(get_snapshot),
    writer: RecordWriter = Depends(get_writer),
    user: UserRecord = Depends(get_current_user),
):
    rows = unwrap(ledger.issue_bonus(snapshot, user, payload.affiliate_id, payload.amount, payload.note))
    await writer.add_sales(rows)
    return rows


async def _settle(
    writer: RecordWriter,
    tx: TransactionRecord,
) -> TransactionRecord:
    if not await writer.set_transaction_status(tx.id, tx.status):
        raise conflict("transaction_already_settled", f"Transaction {tx.id} was settled by someone else.")
    return tx


@router.post("/transactions/{transaction_id}/approve", response_model=TransactionRecord)
async def approve_transaction(
    transaction_id: str,
    snapshot: Snapshot = Depends(get_snapshot),
    writer: RecordWriter = Depends(get_writer),
    user: UserRecord = Depends(get_current_user),
):
    tx = unwrap(ledger.approve_transaction(snapshot, user, transaction_id))
    return await _settle(writer, tx)


@router.post("/transactions/{transaction_id}/reject", response_model=TransactionRecord)
async def reject_transaction(
    transaction_id: str,
    snapshot: Snapshot = Depends(get_snapshot),
    writer: RecordWriter = Depends(get_writer),
    user: UserRecord = Depends(get_current_user),
):
    tx = unwrap(ledger.reject_transaction(snapshot, user, transaction_id))
    return await _settle(writer, tx)
