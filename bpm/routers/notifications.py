"""
Notifications Router - /notifications endpoints.

Provides notification listing, read status and deletion. Users see their
own notifications; admins may act on anyone's.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from bpm.core.deps import (
    get_current_session,
    get_db,
    get_outbox,
    require_csrf_header,
    require_roles,
)
from bpm.core.errors import NotFoundError, PermissionDenied
from bpm.db.enums import RealtimeEvent, Role
from bpm.schemas.auth import UserSession
from bpm.schemas.common import ApiResponse, ok
from bpm.schemas.notification import (
    NotificationCreate,
    NotificationListResponse,
    NotificationRead,
    UnreadCountResponse,
)
from bpm.services import notification_service, user_service
from bpm.services.notification_dispatch import NotificationOutbox

router = APIRouter()


def _check_self_or_admin(session: UserSession, user_id: UUID) -> None:
    if session.user_id != user_id and session.role != Role.ADMIN:
        raise PermissionDenied("You can only access your own notifications")


def _list_for(db: Session, user_id: UUID, unread_only: bool, limit: int, offset: int):
    notifications = notification_service.get_notifications(
        db, user_id, unread_only=unread_only, limit=limit, offset=offset
    )
    return NotificationListResponse(
        items=[NotificationRead.model_validate(n) for n in notifications],
        unread_count=notification_service.get_unread_count(db, user_id),
        total=notification_service.count_notifications(db, user_id),
    )


@router.get("", response_model=ApiResponse[NotificationListResponse])
def list_my_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Get the caller's notifications, newest first."""
    return ok(_list_for(db, session.user_id, unread_only, limit, offset))


@router.post(
    "",
    status_code=201,
    response_model=ApiResponse[NotificationRead],
    dependencies=[Depends(require_csrf_header)],
)
def create_notification(
    data: NotificationCreate,
    session: UserSession = Depends(require_roles([Role.ADMIN])),
    db: Session = Depends(get_db),
    outbox: NotificationOutbox = Depends(get_outbox),
):
    """Send an ad-hoc notification to one user and push it in real time."""
    if not user_service.get_user_by_id(db, data.user_id):
        raise NotFoundError("User not found")
    notification = notification_service.create_notification(
        db,
        user_id=data.user_id,
        title=data.title,
        message=data.message,
        type=data.type,
        priority=data.priority,
        data=data.data,
    )
    notification_service.enqueue_push(outbox, notification, RealtimeEvent.ADMIN_MESSAGE)
    return ok(NotificationRead.model_validate(notification), "Notification sent")


@router.get("/{user_id}", response_model=ApiResponse[NotificationListResponse])
def list_user_notifications(
    user_id: UUID,
    unread_only: bool = Query(False),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    _check_self_or_admin(session, user_id)
    return ok(_list_for(db, user_id, unread_only, limit, offset))


@router.get("/{user_id}/unread-count", response_model=ApiResponse[UnreadCountResponse])
def get_unread_count(
    user_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Unread count only (for polling)."""
    _check_self_or_admin(session, user_id)
    count = notification_service.get_unread_count(db, user_id)
    return ok(UnreadCountResponse(count=count))


@router.patch(
    "/{notification_id}/read",
    response_model=ApiResponse[NotificationRead],
    dependencies=[Depends(require_csrf_header)],
)
def mark_notification_read(
    notification_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Mark a notification as read."""
    notification = notification_service.mark_read(db, notification_id, session)
    return ok(NotificationRead.model_validate(notification), "Notification marked as read")


@router.patch(
    "/{user_id}/read-all",
    dependencies=[Depends(require_csrf_header)],
)
def mark_all_read(
    user_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Mark all notifications of a user as read."""
    _check_self_or_admin(session, user_id)
    count = notification_service.mark_all_read(db, user_id)
    return ok({"marked_read": count}, "All notifications marked as read")


@router.delete(
    "/{notification_id}",
    dependencies=[Depends(require_csrf_header)],
)
def delete_notification(
    notification_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    notification_service.delete_notification(db, notification_id, session)
    return ok(message="Notification deleted")
