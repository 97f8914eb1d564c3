# salesdesk/core/tickets.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional

from salesdesk.core.clock import new_record_id, utcnow
from salesdesk.core.results import OperationResult, forbidden, invalid
from salesdesk.core.roles import MANAGERIAL_ROLES, UserRole
from salesdesk.core.statuses import TicketStatus
from salesdesk.schemas.records import TicketRecord, TicketReplyRecord, UserRecord


@dataclass(frozen=True)
class ReplyPlan:
    reply: TicketReplyRecord
    status: TicketStatus
    updated_at: datetime


@dataclass(frozen=True)
class StatusPlan:
    status: TicketStatus
    updated_at: datetime


def can_view_ticket(ticket: TicketRecord, user: UserRecord) -> bool:
    role = user.user_role
    if role == UserRole.ADMIN:
        return True
    if ticket.user_id == user.id:
        return True
    # managers look after the affiliates' support queue
    return role == UserRole.MANAGER and ticket.user_role == UserRole.AFFILIATE


def visible_tickets(tickets: Iterable[TicketRecord], user: UserRecord) -> List[TicketRecord]:
    """Visible tickets, most recently updated first."""
    mine = [t for t in tickets if can_view_ticket(t, user)]
    return sorted(mine, key=lambda t: t.updated_at, reverse=True)


def _awaits_owner(ticket: TicketRecord, user: UserRecord) -> bool:
    # last word was somebody else's on a ticket still open
    if ticket.status == TicketStatus.CLOSED or not ticket.replies:
        return False
    return ticket.replies[-1].user_id != user.id


def attention_count(tickets: Iterable[TicketRecord], user: UserRecord) -> int:
    """
    Support badge:
      Admin    -> open tickets
      Manager  -> open affiliate tickets + own tickets with a reply to read
      others   -> own tickets with a reply to read
    """
    role = user.user_role
    items = list(tickets)

    if role == UserRole.ADMIN:
        return sum(1 for t in items if t.status == TicketStatus.OPEN)

    own = sum(1 for t in items if t.user_id == user.id and _awaits_owner(t, user))
    if role == UserRole.MANAGER:
        return own + sum(1 for t in items if t.user_role == UserRole.AFFILIATE and t.status == TicketStatus.OPEN)
    return own


def create_ticket(
    actor: UserRecord,
    *,
    subject: str,
    message: str,
    now: Optional[datetime] = None,
) -> OperationResult[TicketRecord]:
    subject = (subject or "").strip()
    message = (message or "").strip()
    if not subject or not message:
        return invalid("ticket_incomplete", "Subject and message are required.")

    at = now or utcnow()
    return OperationResult.ok(
        TicketRecord(
            id=new_record_id("TICKET"),
            user_id=actor.id,
            user_name=actor.name,
            user_role=actor.user_role,
            subject=subject,
            message=message,
            status=TicketStatus.OPEN,
            created_at=at,
            updated_at=at,
            replies=[],
        )
    )


def add_reply(
    ticket: TicketRecord,
    actor: UserRecord,
    message: str,
    *,
    now: Optional[datetime] = None,
) -> OperationResult[ReplyPlan]:
    if not can_view_ticket(ticket, actor):
        return forbidden("ticket_not_visible", "You cannot reply to this ticket.")
    if ticket.status == TicketStatus.CLOSED:
        return invalid("ticket_closed", "The ticket is closed.")

    text = (message or "").strip()
    if not text:
        return invalid("reply_empty", "Reply message is required.")

    at = now or utcnow()
    reply = TicketReplyRecord(
        id=new_record_id("REPLY"),
        ticket_id=ticket.id,
        user_id=actor.id,
        user_name=actor.name,
        message=text,
        created_at=at,
    )
    status = TicketStatus.IN_PROGRESS if actor.user_role in MANAGERIAL_ROLES else ticket.status
    return OperationResult.ok(ReplyPlan(reply=reply, status=status, updated_at=at))


def change_ticket_status(
    ticket: TicketRecord,
    actor: UserRecord,
    target: TicketStatus,
    *,
    now: Optional[datetime] = None,
) -> OperationResult[StatusPlan]:
    if not can_view_ticket(ticket, actor):
        return forbidden("ticket_not_visible", "You cannot change this ticket.")

    staff = actor.user_role in MANAGERIAL_ROLES
    owner_closing = ticket.user_id == actor.id and target == TicketStatus.CLOSED
    if not (staff or owner_closing):
        return forbidden("ticket_status_not_allowed", "Only support staff can change this status.")

    return OperationResult.ok(StatusPlan(status=target, updated_at=now or utcnow()))
