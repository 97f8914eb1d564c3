# salesdesk/core/lifecycle.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from salesdesk.core.clock import utcnow
from salesdesk.core.results import OperationResult, forbidden, invalid
from salesdesk.core.statuses import (
    ROLES_STAMPED_AS_CONTACT,
    SYSTEM_ONLY_STATUSES,
    SaleStatus,
    settable_statuses,
)
from salesdesk.schemas.records import ContactEvent, SaleRecord, SaleUpdate, UserRecord

logger = logging.getLogger(__name__)


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    v = value.strip()
    return v or None


def can_set_status(actor: UserRecord, target: SaleStatus) -> bool:
    return target in settable_statuses(actor.user_role)


def plan_status_change(
    *,
    actor: UserRecord,
    sale: SaleRecord,
    target: SaleStatus,
    tracking_code: Optional[str] = None,
    note: Optional[str] = None,
    now: Optional[datetime] = None,
) -> OperationResult[SaleUpdate]:
    """
    Validate a manual status change and build the single-row write for it.

    Rules:
      - Duplicato / Test are system-assigned: never a target, and a sale
        holding one of them is locked.
      - the actor's role must allow the target status
      - Spedito needs a tracking code
      - every actor except Logistics is stamped as last contact
      - a note replaces sale.notes and appends one contact-history event
    """
    if target in SYSTEM_ONLY_STATUSES:
        return invalid("status_system_only", f"'{target.value}' is assigned by the system and cannot be set manually.")

    if sale.status in SYSTEM_ONLY_STATUSES:
        return invalid("sale_locked", f"Sale {sale.id} is marked '{sale.status.value}' and cannot be edited.")

    if not can_set_status(actor, target):
        logger.info(f"Status change refused: role={actor.role} sale={sale.id} target={target.value}")
        return forbidden("status_not_allowed", f"Role {actor.role} cannot set status '{target.value}'.")

    code = _clean(tracking_code)
    if target == SaleStatus.SPEDITO and not code:
        return invalid("tracking_code_required", "A tracking code is required to mark a sale as shipped.")

    at = now or utcnow()
    update = SaleUpdate(status=target, status_updated_at=at)

    if target == SaleStatus.SPEDITO:
        update.tracking_code = code

    if actor.user_role in ROLES_STAMPED_AS_CONTACT:
        update.last_contacted_by = actor.id
        update.last_contacted_by_name = actor.name

    text = _clean(note)
    if text is not None:
        update.notes = text
        event = ContactEvent(at=at, user_id=actor.id, user_name=actor.name, status=target, note=text)
        update.contact_history = [*sale.contact_history, event]

    return OperationResult.ok(update)


def apply_sale_update(sale: SaleRecord, update: SaleUpdate) -> SaleRecord:
    """Copy of `sale` with the update applied (what persistence will hold)."""
    return sale.model_copy(update={name: value for name, value in update if value is not None})
