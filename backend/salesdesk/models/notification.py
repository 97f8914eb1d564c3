# salesdesk/models/notification.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from salesdesk.db.base import Base


class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[str] = mapped_column(String(40), primary_key=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)

    target_roles: Mapped[list[str]] = mapped_column(JSONB, nullable=False, default=list, server_default="[]")
    # user ids that acknowledged it; only ever grows
    read_by: Mapped[list[str]] = mapped_column(JSONB, nullable=False, default=list, server_default="[]")

    event_type: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    link_to: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
