# salesdesk/schemas/support.py
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from salesdesk.core.roles import UserRole
from salesdesk.core.statuses import TicketStatus
from salesdesk.schemas.records import TicketRecord


# ---------------------------------------------------------
# Notifications
# ---------------------------------------------------------
class NotificationCreate(BaseModel):
    title: str = Field(max_length=255)
    message: str = Field(max_length=5000)
    target_roles: List[UserRole]
    link_to: Optional[str] = Field(default=None, max_length=255)
    event_type: Optional[str] = Field(default=None, max_length=40)


class NotificationOut(BaseModel):
    id: str
    title: str
    message: str
    created_at: datetime
    target_roles: List[UserRole]
    link_to: Optional[str] = None
    event_type: Optional[str] = None
    is_read: bool = False


class NotificationListOut(BaseModel):
    items: List[NotificationOut]
    unread_count: int


class MarkedReadOut(BaseModel):
    marked: int


# ---------------------------------------------------------
# Tickets
# ---------------------------------------------------------
class TicketCreate(BaseModel):
    subject: str = Field(max_length=255)
    message: str = Field(max_length=5000)


class TicketReplyCreate(BaseModel):
    message: str = Field(max_length=5000)


class TicketStatusUpdate(BaseModel):
    status: TicketStatus


class TicketListOut(BaseModel):
    items: List[TicketRecord]
    attention_count: int
