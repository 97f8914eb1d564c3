# salesdesk/crud/records.py
"""
Single-record writes. Each public method is one transaction: it commits on
success and rolls back on failure.
"""
from __future__ import annotations

import enum
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, Sequence

from pydantic import BaseModel
from pydantic_core import to_jsonable_python
from sqlalchemy import delete, literal, update
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncSession

from salesdesk.core.statuses import SYSTEM_ONLY_STATUSES, SaleStatus, TicketStatus, TransactionStatus
from salesdesk.core.tickets import ReplyPlan, StatusPlan
from salesdesk.models.notification import Notification
from salesdesk.models.sale import Sale
from salesdesk.models.ticket import Ticket, TicketReply
from salesdesk.models.transaction import Transaction
from salesdesk.schemas.records import (
    NotificationRecord,
    SaleRecord,
    SaleUpdate,
    TicketRecord,
    TransactionRecord,
)

logger = logging.getLogger(__name__)


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, enum.Enum) else value


def column_values(record: BaseModel, json_fields: Iterable[str] = ()) -> Dict[str, Any]:
    """
    Record -> column values. Enums become their stored labels; nested
    records in JSONB columns become plain JSON.
    """
    json_fields = set(json_fields)
    data = record.model_dump(mode="python", exclude=json_fields)
    out = {k: _plain(v) for k, v in data.items()}
    for name in json_fields:
        out[name] = to_jsonable_python(getattr(record, name))
    return out


def sale_row(sale: SaleRecord) -> Sale:
    return Sale(**column_values(sale, json_fields=("contact_history",)))


class RecordWriter:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _commit(self, what: str) -> None:
        try:
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            logger.exception(f"Write failed: {what}")
            raise

    # -----------------------------
    # Sales
    # -----------------------------
    async def add_sales(self, sales: Sequence[SaleRecord]) -> None:
        """Several rows in one commit (bonus + matching debit)."""
        for s in sales:
            self.db.add(sale_row(s))
        await self._commit(f"add_sales {[s.id for s in sales]}")
        logger.info(f"Sales added: {[s.id for s in sales]}")

    async def update_sale(self, sale_id: str, change: SaleUpdate) -> bool:
        values = {k: _plain(v) for k, v in change.changes().items()}
        res = await self.db.execute(
            update(Sale)
            .where(Sale.id == sale_id)
            .where(Sale.status.notin_([s.value for s in SYSTEM_ONLY_STATUSES]))
            .values(**values)
        )
        await self._commit(f"update_sale {sale_id}")
        ok = (res.rowcount or 0) == 1
        if ok:
            logger.info(f"Sale {sale_id} -> {change.status.value}")
        else:
            logger.warning(f"Sale {sale_id} not updated (missing or locked)")
        return ok

    async def mark_duplicates(self, sale_ids: Sequence[str]) -> int:
        """Idempotent: rows already Duplicato (or Test) are never rewritten."""
        if not sale_ids:
            return 0
        res = await self.db.execute(
            update(Sale)
            .where(Sale.id.in_(list(sale_ids)))
            .where(Sale.status.notin_([s.value for s in SYSTEM_ONLY_STATUSES]))
            .values(status=SaleStatus.DUPLICATO.value)
        )
        await self._commit("mark_duplicates")
        count = res.rowcount or 0
        logger.info(f"Marked {count} sale(s) as duplicate")
        return count

    # -----------------------------
    # Transactions
    # -----------------------------
    async def add_transaction(self, tx: TransactionRecord) -> None:
        self.db.add(Transaction(**column_values(tx)))
        await self._commit(f"add_transaction {tx.id}")
        logger.info(f"Transaction {tx.id} recorded: {tx.type.value} {tx.amount} ({tx.status.value})")

    async def set_transaction_status(self, transaction_id: str, status: TransactionStatus) -> bool:
        """
        Compare-and-swap on status = 'Pending'. False means somebody else
        settled it first.
        """
        res = await self.db.execute(
            update(Transaction)
            .where(Transaction.id == transaction_id)
            .where(Transaction.status == TransactionStatus.PENDING.value)
            .values(status=status.value)
        )
        await self._commit(f"set_transaction_status {transaction_id}")
        if (res.rowcount or 0) != 1:
            logger.warning(f"Transaction {transaction_id} was no longer Pending; {status.value} not applied")
            return False
        logger.info(f"Transaction {transaction_id} -> {status.value}")
        return True

    # -----------------------------
    # Notifications
    # -----------------------------
    async def add_notification(self, notification: NotificationRecord) -> None:
        self.db.add(Notification(**column_values(notification, json_fields=("target_roles", "read_by"))))
        await self._commit(f"add_notification {notification.id}")
        logger.info(f"Notification {notification.id} published")

    async def add_reader(self, notification_ids: Sequence[str], user_id: str) -> int:
        """
        Append user_id to read_by inside the database. Rows that already list
        the user are skipped, so concurrent readers never drop each other.
        Returns how many notifications were marked.
        """
        if not notification_ids:
            return 0

        res = await self.db.execute(
            update(Notification)
            .where(Notification.id.in_(list(notification_ids)))
            .where(~Notification.read_by.contains([user_id]))
            .values(read_by=Notification.read_by.op("||", return_type=JSONB)(literal([user_id], JSONB)))
            .execution_options(synchronize_session=False)
        )
        await self._commit(f"add_reader {user_id}")
        return res.rowcount or 0

    async def delete_notification(self, notification_id: str) -> bool:
        res = await self.db.execute(delete(Notification).where(Notification.id == notification_id))
        await self._commit(f"delete_notification {notification_id}")
        return (res.rowcount or 0) == 1

    # -----------------------------
    # Tickets
    # -----------------------------
    async def add_ticket(self, ticket: TicketRecord) -> None:
        values = column_values(ticket)
        values.pop("replies", None)
        self.db.add(Ticket(**values))
        await self._commit(f"add_ticket {ticket.id}")
        logger.info(f"Ticket {ticket.id} opened by {ticket.user_id}")

    async def add_ticket_reply(self, plan: ReplyPlan) -> None:
        self.db.add(TicketReply(**column_values(plan.reply)))
        await self._set_ticket_status(plan.reply.ticket_id, plan.status, plan.updated_at)
        await self._commit(f"add_ticket_reply {plan.reply.ticket_id}")

    async def set_ticket_status(self, ticket_id: str, plan: StatusPlan) -> None:
        await self._set_ticket_status(ticket_id, plan.status, plan.updated_at)
        await self._commit(f"set_ticket_status {ticket_id}")

    async def _set_ticket_status(self, ticket_id: str, status: TicketStatus, updated_at: datetime) -> None:
        await self.db.execute(
            update(Ticket)
            .where(Ticket.id == ticket_id)
            .values(status=status.value, updated_at=updated_at)
        )
