# salesdesk/core/notifications.py
from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Optional, Sequence

from salesdesk.core.clock import new_record_id, utcnow
from salesdesk.core.results import OperationResult, forbidden, invalid
from salesdesk.core.roles import MANAGERIAL_ROLES, UserRole
from salesdesk.schemas.records import NotificationRecord, UserRecord


def can_manage_notifications(user: UserRecord) -> bool:
    return user.user_role in MANAGERIAL_ROLES


def is_visible_to(notification: NotificationRecord, user: UserRecord) -> bool:
    return user.user_role in notification.target_roles


def visible_notifications(notifications: Iterable[NotificationRecord], user: UserRecord) -> List[NotificationRecord]:
    """Notifications targeted at the user's role, newest first."""
    mine = [n for n in notifications if is_visible_to(n, user)]
    return sorted(mine, key=lambda n: n.created_at, reverse=True)


def is_read_by(notification: NotificationRecord, user: UserRecord) -> bool:
    return user.id in notification.read_by


def unread_ids(notifications: Iterable[NotificationRecord], user: UserRecord) -> List[str]:
    """Ids of the visible notifications the user has not read yet."""
    return [n.id for n in notifications if is_visible_to(n, user) and not is_read_by(n, user)]


def unread_count(notifications: Iterable[NotificationRecord], user: UserRecord) -> int:
    return len(unread_ids(notifications, user))


def create_notification(
    actor: UserRecord,
    *,
    title: str,
    message: str,
    target_roles: Sequence[UserRole],
    link_to: Optional[str] = None,
    event_type: Optional[str] = None,
    now: Optional[datetime] = None,
) -> OperationResult[NotificationRecord]:
    if not can_manage_notifications(actor):
        return forbidden("notifications_admin_only", f"Role {actor.role} cannot publish notifications.")

    title = (title or "").strip()
    message = (message or "").strip()
    if not title or not message:
        return invalid("notification_incomplete", "Title and message are required.")

    roles = list(dict.fromkeys(target_roles))  # de-dup, keep order
    if not roles:
        return invalid("notification_no_targets", "Select at least one target role.")

    return OperationResult.ok(
        NotificationRecord(
            id=new_record_id("N"),
            title=title,
            message=message,
            created_at=now or utcnow(),
            target_roles=roles,
            read_by=[],
            event_type=event_type,
            link_to=(link_to or "").strip() or None,
        )
    )
