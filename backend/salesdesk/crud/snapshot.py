# salesdesk/crud/snapshot.py
from __future__ import annotations

from collections import defaultdict
from typing import Any, Dict, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from salesdesk.db.base import Base
from salesdesk.models.notification import Notification
from salesdesk.models.product import Product
from salesdesk.models.sale import Sale
from salesdesk.models.ticket import Ticket, TicketReply
from salesdesk.models.transaction import Transaction
from salesdesk.models.user import User
from salesdesk.schemas.snapshot import Snapshot


def row_to_dict(row: Base) -> Dict[str, Any]:
    """Mapped column values keyed by attribute name."""
    return {attr.key: getattr(row, attr.key) for attr in row.__mapper__.column_attrs}


async def _all(db: AsyncSession, stmt) -> List[Dict[str, Any]]:
    res = await db.execute(stmt)
    return [row_to_dict(r) for r in res.scalars().all()]


async def load_snapshot(db: AsyncSession) -> Snapshot:
    """
    Whole-collection read. No pagination: the core always works on the
    complete data set.
    """
    users = await _all(db, select(User).order_by(User.created_at, User.id))
    products = await _all(db, select(Product).order_by(Product.id))
    sales = await _all(db, select(Sale).order_by(Sale.sale_date, Sale.id))
    transactions = await _all(db, select(Transaction).order_by(Transaction.created_at, Transaction.id))
    notifications = await _all(db, select(Notification).order_by(Notification.created_at))
    tickets = await _all(db, select(Ticket).order_by(Ticket.created_at))
    replies = await _all(db, select(TicketReply).order_by(TicketReply.created_at, TicketReply.id))

    by_ticket: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
    for r in replies:
        by_ticket[r["ticket_id"]].append(r)
    for t in tickets:
        t["replies"] = by_ticket.get(t["id"], [])

    return Snapshot.model_validate(
        {
            "users": users,
            "products": products,
            "sales": sales,
            "transactions": transactions,
            "notifications": notifications,
            "tickets": tickets,
        }
    )
