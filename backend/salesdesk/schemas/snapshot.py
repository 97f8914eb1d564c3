# salesdesk/schemas/snapshot.py
from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field, PrivateAttr

from salesdesk.core.roles import UserRole
from salesdesk.schemas.records import (
    NotificationRecord,
    ProductRecord,
    SaleRecord,
    TicketRecord,
    TransactionRecord,
    UserRecord,
)


class Snapshot(BaseModel):
    """
    Whole-collection view of the console's data at one point in time.

    Reducers read it and never mutate it; writes go to persistence and the
    next request works on a freshly loaded snapshot.
    """

    sales: List[SaleRecord] = Field(default_factory=list)
    transactions: List[TransactionRecord] = Field(default_factory=list)
    products: List[ProductRecord] = Field(default_factory=list)
    users: List[UserRecord] = Field(default_factory=list)
    notifications: List[NotificationRecord] = Field(default_factory=list)
    tickets: List[TicketRecord] = Field(default_factory=list)

    _users_by_id: Dict[str, UserRecord] = PrivateAttr(default_factory=dict)
    _products_by_id: Dict[str, ProductRecord] = PrivateAttr(default_factory=dict)

    def model_post_init(self, __context) -> None:
        self._users_by_id = {u.id: u for u in self.users}
        self._products_by_id = {p.id: p for p in self.products}

    def user(self, user_id: Optional[str]) -> Optional[UserRecord]:
        if not user_id:
            return None
        return self._users_by_id.get(user_id)

    def product(self, product_id: Optional[str]) -> Optional[ProductRecord]:
        if not product_id:
            return None
        return self._products_by_id.get(product_id)

    def sale(self, sale_id: str) -> Optional[SaleRecord]:
        return next((s for s in self.sales if s.id == sale_id), None)

    def transaction(self, transaction_id: str) -> Optional[TransactionRecord]:
        return next((t for t in self.transactions if t.id == transaction_id), None)

    def notification(self, notification_id: str) -> Optional[NotificationRecord]:
        return next((n for n in self.notifications if n.id == notification_id), None)

    def ticket(self, ticket_id: str) -> Optional[TicketRecord]:
        return next((t for t in self.tickets if t.id == ticket_id), None)

    def users_with_role(self, *roles: UserRole) -> List[UserRecord]:
        wanted = set(roles)
        return [u for u in self.users if u.user_role in wanted]
