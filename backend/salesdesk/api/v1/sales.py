# salesdesk/api/v1/sales.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from salesdesk.api.deps.context import get_current_user, get_snapshot, get_writer, require_roles
from salesdesk.api.deps.results import conflict, not_found, unwrap
from salesdesk.core.duplicates import flag_duplicates, pending_duplicate_flags
from salesdesk.core.lifecycle import apply_sale_update, plan_status_change
from salesdesk.core.roles import MANAGERIAL_ROLES, UserRole
from salesdesk.core.statuses import SaleStatus
from salesdesk.crud.records import RecordWriter
from salesdesk.schemas.records import SaleRecord, UserRecord
from salesdesk.schemas.sales import DuplicateSyncOut, SaleListOut, SaleStatusChange
from salesdesk.schemas.snapshot import Snapshot

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sales", tags=["sales"])


@router.get("", response_model=SaleListOut)
async def list_sales(
    status: Optional[SaleStatus] = Query(default=None),
    product_id: Optional[str] = Query(default=None),
    affiliate_id: Optional[str] = Query(default=None),
    limit: int = Query(default=100, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    snapshot: Snapshot = Depends(get_snapshot),
    user: UserRecord = Depends(get_current_user),
):
    """
    Duplicate-annotated sales, newest first. Affiliates only see their own.
    """
    sales = flag_duplicates(snapshot.sales)

    if user.user_role == UserRole.AFFILIATE:
        sales = [s for s in sales if s.affiliate_id == user.id]
    elif affiliate_id and user.user_role in MANAGERIAL_ROLES:
        sales = [s for s in sales if s.affiliate_id == affiliate_id]

    if status is not None:
        sales = [s for s in sales if s.status == status]
    if product_id:
        sales = [s for s in sales if s.product_id == product_id]

    sales.sort(key=lambda s: s.sale_date, reverse=True)
    return SaleListOut(items=sales[offset : offset + limit], total=len(sales))


@router.post("/{sale_id}/status", response_model=SaleRecord)
async def change_sale_status(
    sale_id: str,
    payload: SaleStatusChange,
    snapshot: Snapshot = Depends(get_snapshot),
    writer: RecordWriter = Depends(get_writer),
    user: UserRecord = Depends(get_current_user),
):
    # plan against what operators see: read-time duplicates are locked too
    sale = next((s for s in flag_duplicates(snapshot.sales) if s.id == sale_id), None)
    if sale is None:
        raise not_found("sale_not_found", f"Sale {sale_id} not found.")

    change = unwrap(
        plan_status_change(
            actor=user,
            sale=sale,
            target=payload.status,
            tracking_code=payload.tracking_code,
            note=payload.note,
        )
    )

    if not await writer.update_sale(sale_id, change):
        raise conflict("sale_changed", "The sale was locked or removed meanwhile; reload and retry.")

    return apply_sale_update(sale, change)


@router.post("/duplicates/sync", response_model=DuplicateSyncOut)
async def sync_duplicates(
    snapshot: Snapshot = Depends(get_snapshot),
    writer: RecordWriter = Depends(get_writer),
    user: UserRecord = Depends(require_roles(UserRole.ADMIN, UserRole.MANAGER)),
):
    """Persist read-time duplicate flags. Safe to call repeatedly."""
    pending = [s.id for s in pending_duplicate_flags(snapshot.sales)]
    flagged = await writer.mark_duplicates(pending)
    logger.info(f"Duplicate sync by {user.id}: {flagged} of {len(pending)} flagged")
    return DuplicateSyncOut(flagged=flagged, sale_ids=pending)
