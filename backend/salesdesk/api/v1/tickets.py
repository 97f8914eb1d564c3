# salesdesk/api/v1/tickets.py
from __future__ import annotations

from fastapi import APIRouter, Depends, status

from salesdesk.api.deps.context import get_current_user, get_snapshot, get_writer
from salesdesk.api.deps.results import not_found, unwrap
from salesdesk.core import tickets as support
from salesdesk.crud.records import RecordWriter
from salesdesk.schemas.records import TicketRecord, UserRecord
from salesdesk.schemas.snapshot import Snapshot
from salesdesk.schemas.support import (
    TicketCreate,
    TicketListOut,
    TicketReplyCreate,
    TicketStatusUpdate,
)

router = APIRouter(prefix="/tickets", tags=["tickets"])


def _get_ticket(snapshot: Snapshot, ticket_id: str) -> TicketRecord:
    ticket = snapshot.ticket(ticket_id)
    if ticket is None:
        raise not_found("ticket_not_found", f"Ticket {ticket_id} not found.")
    return ticket


@router.get("", response_model=TicketListOut)
async def list_tickets(
    snapshot: Snapshot = Depends(get_snapshot),
    user: UserRecord = Depends(get_current_user),
):
    return TicketListOut(
        items=support.visible_tickets(snapshot.tickets, user),
        attention_count=support.attention_count(snapshot.tickets, user),
    )


@router.post("", response_model=TicketRecord, status_code=status.HTTP_201_CREATED)
async def create_ticket(
    payload: TicketCreate,
    writer: RecordWriter = Depends(get_writer),
    user: UserRecord = Depends(get_current_user),
):
    ticket = unwrap(support.create_ticket(user, subject=payload.subject, message=payload.message))
    await writer.add_ticket(ticket)
    return ticket


@router.post("/{ticket_id}/replies", response_model=TicketRecord, status_code=status.HTTP_201_CREATED)
async def add_reply(
    ticket_id: str,
    payload: TicketReplyCreate,
    snapshot: Snapshot = Depends(get_snapshot),
    writer: RecordWriter = Depends(get_writer),
    user: UserRecord = Depends(get_current_user),
):
    ticket = _get_ticket(snapshot, ticket_id)
    plan = unwrap(support.add_reply(ticket, user, payload.message))
    await writer.add_ticket_reply(plan)
    return ticket.model_copy(
        update={
            "replies": [*ticket.replies, plan.reply],
            "status": plan.status,
            "updated_at": plan.updated_at,
        }
    )


@router.patch("/{ticket_id}/status", response_model=TicketRecord)
async def change_status(
    ticket_id: str,
    payload: TicketStatusUpdate,
    snapshot: Snapshot = Depends(get_snapshot),
    writer: RecordWriter = Depends(get_writer),
    user: UserRecord = Depends(get_current_user),
):
    ticket = _get_ticket(snapshot, ticket_id)
    plan = unwrap(support.change_ticket_status(ticket, user, payload.status))
    await writer.set_ticket_status(ticket.id, plan)
    return ticket.model_copy(update={"status": plan.status, "updated_at": plan.updated_at})
