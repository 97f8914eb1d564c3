# salesdesk/api/v1/notifications.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from salesdesk.api.deps.context import get_current_user, get_snapshot, get_writer, require_roles
from salesdesk.api.deps.results import not_found, unwrap
from salesdesk.core import notifications as feed
from salesdesk.core.roles import UserRole
from salesdesk.crud.records import RecordWriter
from salesdesk.schemas.records import NotificationRecord, UserRecord
from salesdesk.schemas.snapshot import Snapshot
from salesdesk.schemas.support import (
    MarkedReadOut,
    NotificationCreate,
    NotificationListOut,
    NotificationOut,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])


def _out(n: NotificationRecord, user: UserRecord) -> NotificationOut:
    return NotificationOut(
        id=n.id,
        title=n.title,
        message=n.message,
        created_at=n.created_at,
        target_roles=n.target_roles,
        link_to=n.link_to,
        event_type=n.event_type,
        is_read=feed.is_read_by(n, user),
    )


@router.get("", response_model=NotificationListOut)
async def list_notifications(
    snapshot: Snapshot = Depends(get_snapshot),
    user: UserRecord = Depends(get_current_user),
):
    items = feed.visible_notifications(snapshot.notifications, user)
    return NotificationListOut(
        items=[_out(n, user) for n in items],
        unread_count=feed.unread_count(snapshot.notifications, user),
    )


@router.post("", response_model=NotificationOut, status_code=status.HTTP_201_CREATED)
async def create_notification(
    payload: NotificationCreate,
    writer: RecordWriter = Depends(get_writer),
    user: UserRecord = Depends(get_current_user),
):
    n = unwrap(
        feed.create_notification(
            user,
            title=payload.title,
            message=payload.message,
            target_roles=payload.target_roles,
            link_to=payload.link_to,
            event_type=payload.event_type,
        )
    )
    await writer.add_notification(n)
    return _out(n, user)


@router.post("/read-all", response_model=MarkedReadOut)
async def mark_all_read(
    snapshot: Snapshot = Depends(get_snapshot),
    writer: RecordWriter = Depends(get_writer),
    user: UserRecord = Depends(get_current_user),
):
    ids = feed.unread_ids(snapshot.notifications, user)
    return MarkedReadOut(marked=await writer.add_reader(ids, user.id))


@router.post("/{notification_id}/read", response_model=MarkedReadOut)
async def mark_read(
    notification_id: str,
    snapshot: Snapshot = Depends(get_snapshot),
    writer: RecordWriter = Depends(get_writer),
    user: UserRecord = Depends(get_current_user),
):
    n = snapshot.notification(notification_id)
    if n is None or not feed.is_visible_to(n, user):
        raise not_found("notification_not_found", f"Notification {notification_id} not found.")

    if feed.is_read_by(n, user):
        return MarkedReadOut(marked=0)
    return MarkedReadOut(marked=await writer.add_reader([n.id], user.id))


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(
    notification_id: str,
    writer: RecordWriter = Depends(get_writer),
    user: UserRecord = Depends(require_roles(UserRole.ADMIN, UserRole.MANAGER)),
):
    if not await writer.delete_notification(notification_id):
        raise not_found("notification_not_found", f"Notification {notification_id} not found.")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
