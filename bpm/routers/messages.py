"""
Messages Router - /messages endpoints.

REST counterpart of the chat frames on the WebSocket: inbox summaries,
sending, read receipts, deletion and the unread badge count.
"""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from bpm.core.deps import get_current_session, get_db, get_outbox, require_csrf_header
from bpm.schemas.auth import UserSession
from bpm.schemas.common import ApiResponse, ok
from bpm.schemas.message import (
    ConversationPartner,
    ConversationRead,
    MessageCreate,
    MessageRead,
    MessagesMarkRead,
)
from bpm.schemas.notification import UnreadCountResponse
from bpm.services import message_service
from bpm.services.notification_dispatch import NotificationOutbox

router = APIRouter()


@router.get("/conversations", response_model=ApiResponse[list[ConversationRead]])
def list_conversations(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """The caller's conversations, one per application, most recent first."""
    conversations = message_service.list_conversations(db, session)
    return ok([
        ConversationRead(
            application_id=c["application"].id,
            service_type=c["application"].service_type,
            status=c["application"].status,
            partner=ConversationPartner.model_validate(c["partner"]),
            last_message=MessageRead.model_validate(c["last_message"]),
            unread_count=c["unread_count"],
        )
        for c in conversations
    ])


@router.get("/unread-count", response_model=ApiResponse[UnreadCountResponse])
def get_unread_count(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return ok(UnreadCountResponse(count=message_service.get_unread_count(db, session.user_id)))


@router.post(
    "",
    status_code=201,
    response_model=ApiResponse[MessageRead],
    dependencies=[Depends(require_csrf_header)],
)
def send_message(
    data: MessageCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
    outbox: NotificationOutbox = Depends(get_outbox),
):
    """Send a chat message on an application; both parties get `new_message`."""
    message = message_service.send_message(
        db, data.application_id, session, data.content, data.type
    )
    return ok(message_service.enqueue_new_message(outbox, message), "Message sent")


@router.put(
    "/read",
    dependencies=[Depends(require_csrf_header)],
)
def mark_messages_read(
    data: MessagesMarkRead,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    count = message_service.mark_read_by_ids(db, session, data.message_ids)
    return ok({"marked_read": count}, "Messages marked as read")


@router.delete(
    "/{message_id}",
    dependencies=[Depends(require_csrf_header)],
)
def delete_message(
    message_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    message_service.delete_message(db, message_id, session)
    return ok(message="Message deleted successfully")
