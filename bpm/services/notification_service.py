"""
Notification Service - handles in-app notifications.

Provides CRUD for notifications and `notify`, which persists a notification
and queues it for real-time delivery.
"""

import logging
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from bpm.core.errors import NotFoundError, PermissionDenied
from bpm.db.enums import NotificationPriority, NotificationType, RealtimeEvent, Role
from bpm.db.models import Notification, User
from bpm.schemas.auth import UserSession
from bpm.schemas.notification import NotificationRead
from bpm.services.notification_dispatch import NotificationOutbox

logger = logging.getLogger(__name__)


# =============================================================================
# Notification CRUD
# =============================================================================


def create_notification(
    db: Session,
    user_id: UUID,
    title: str,
    message: str,
    type: NotificationType = NotificationType.INFO,
    priority: NotificationPriority = NotificationPriority.MEDIUM,
    data: Optional[dict] = None,
) -> Notification:
    notification = Notification(
        user_id=user_id,
        type=NotificationType(type).value,
        title=title,
        message=message,
        priority=NotificationPriority(priority).value,
        data=_json_safe(data or {}),
    )
    db.add(notification)
    db.commit()
    db.refresh(notification)
    return notification


def get_notifications(
    db: Session,
    user_id: UUID,
    unread_only: bool = False,
    limit: int = 20,
    offset: int = 0,
) -> list[Notification]:
    """Get notifications for a user, newest first."""
    query = db.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        query = query.filter(Notification.read.is_(False))
    return (
        query.order_by(Notification.created_at.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )


def count_notifications(db: Session, user_id: UUID) -> int:
    return db.query(Notification).filter(Notification.user_id == user_id).count()


def get_unread_count(db: Session, user_id: UUID) -> int:
    """Get count of unread notifications."""
    return (
        db.query(Notification)
        .filter(Notification.user_id == user_id, Notification.read.is_(False))
        .count()
    )


def _get_owned(db: Session, notification_id: UUID, session: UserSession) -> Notification:
    notification = db.get(Notification, notification_id)
    if not notification:
        raise NotFoundError("Notification not found")
    if notification.user_id != session.user_id and session.role != Role.ADMIN:
        raise PermissionDenied("You can only manage your own notifications")
    return notification


def mark_read(db: Session, notification_id: UUID, session: UserSession) -> Notification:
    """Flip the read flag. Owner or admin only."""
    notification = _get_owned(db, notification_id, session)
    if not notification.read:
        notification.read = True
        db.commit()
        db.refresh(notification)
    return notification


def mark_all_read(db: Session, user_id: UUID) -> int:
    """Mark all of a user's notifications as read. Returns count updated."""
    count = (
        db.query(Notification)
        .filter(Notification.user_id == user_id, Notification.read.is_(False))
        .update({Notification.read: True}, synchronize_session=False)
    )
    db.commit()
    return count


def delete_notification(db: Session, notification_id: UUID, session: UserSession) -> None:
    notification = _get_owned(db, notification_id, session)
    db.delete(notification)
    db.commit()


# =============================================================================
# Dispatch
# =============================================================================


def serialize(notification: Notification) -> dict:
    """The payload pushed over the real-time channel (same shape the API returns)."""
    return NotificationRead.model_validate(notification).model_dump(mode="json")


def notify(
    db: Session,
    outbox: NotificationOutbox | None,
    user_id: UUID,
    title: str,
    message: str,
    *,
    type: NotificationType = NotificationType.INFO,
    priority: NotificationPriority = NotificationPriority.MEDIUM,
    data: Optional[dict] = None,
    event: RealtimeEvent | str | None = None,
) -> Notification | None:
    """
    Persist a notification, then queue a real-time push of it.

    The push goes out on the generic `notification` event and on `event`
    when given. A failed insert is logged and returns None; the caller's
    own writes are never affected.
    """
    try:
        notification = create_notification(
            db,
            user_id=user_id,
            title=title,
            message=message,
            type=type,
            priority=priority,
            data=data,
        )
    except Exception:
        db.rollback()
        logger.warning("Failed to persist notification for user %s", user_id, exc_info=True)
        return None

    enqueue_push(outbox, notification, event)
    return notification


def enqueue_push(
    outbox: NotificationOutbox | None,
    notification: Notification,
    event: RealtimeEvent | str | None = None,
) -> None:
    """Queue `notification` for its owner on `notification` plus `event`."""
    if outbox is None:
        return
    events = [RealtimeEvent.NOTIFICATION.value]
    if event:
        event_name = event.value if isinstance(event, RealtimeEvent) else event
        if event_name not in events:
            events.append(event_name)
    outbox.enqueue(notification.user_id, tuple(events), serialize(notification))


def notify_many(
    db: Session,
    outbox: NotificationOutbox | None,
    user_ids: Iterable[UUID],
    title: str,
    message: str,
    *,
    exclude: Iterable[UUID] = (),
    **kwargs,
) -> list[Notification]:
    """notify() once per distinct recipient, skipping `exclude`."""
    skip = set(exclude)
    seen: set[UUID] = set()
    created = []
    for user_id in user_ids:
        if user_id in skip or user_id in seen:
            continue
        seen.add(user_id)
        notification = notify(db, outbox, user_id, title, message, **kwargs)
        if notification is not None:
            created.append(notification)
    return created


def get_admin_ids(db: Session) -> list[UUID]:
    """Active admin user ids."""
    rows = (
        db.query(User.id)
        .filter(User.role == Role.ADMIN.value, User.is_active.is_(True))
        .order_by(User.created_at)
        .all()
    )
    return [row[0] for row in rows]


def _json_safe(data: dict) -> dict:
    """Stringify UUIDs and datetimes so the payload fits a JSON column."""
    safe = {}
    for key, value in data.items():
        if value is None or isinstance(value, (str, int, float, bool, list, dict)):
            safe[key] = value
        else:
            safe[key] = str(value) if not hasattr(value, "isoformat") else value.isoformat()
    return safe
